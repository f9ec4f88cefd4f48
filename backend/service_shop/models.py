"""SQLModel data models.

This module defines the application's database tables using SQLModel.
Each class maps to a table and uses relationships where appropriate.
"""

from enum import Enum
from typing import List, Optional
from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ServiceType(str, Enum):
    """Allowed values of `ServiceRecord.type`.

    The first group names a kind of service, the second a workflow stage.
    Both live in the same column: an admin status change replaces the
    category the customer booked.
    """
    OIL_CHANGE = 'Oil Change'
    TIRE_ROTATION = 'Tire Rotation'
    BRAKE_INSPECTION = 'Brake Inspection'
    ENGINE_DIAGNOSTIC = 'Engine Diagnostic'
    FLUID_CHECK = 'Fluid Check'
    OTHER = 'Other'
    PENDING = 'Pending'
    IN_PROGRESS = 'In Progress'
    COMPLETED = 'Completed'
    READY_FOR_PICKUP = 'Ready for Pickup'
    PICKED_UP = 'Picked Up'
    CANCELLED = 'Cancelled'


class User(SQLModel, table=True):
    """A registered customer or administrator.

    Fields:
    - `email`: unique, stored lowercase
    - `password_hash`: hashed password string (never store plaintext)
    - `phone`: optional contact number used to fill service records
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: str = Field(index=True, nullable=False, unique=True)
    phone: Optional[str] = None
    password_hash: str
    is_admin: bool = False
    created_at: datetime = Field(default_factory=utcnow)


class Vehicle(SQLModel, table=True):
    """A vehicle registered by its owner.

    `license_plate` is stored uppercase and is unique across all owners.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key='user.id', index=True)
    make: str
    model: str
    year: int
    license_plate: str = Field(index=True, nullable=False, unique=True)
    created_at: datetime = Field(default_factory=utcnow)


class ServiceRecord(SQLModel, table=True):
    """A booked service for one of the owner's vehicles.

    `vehicle_id` is a plain reference: removing the vehicle keeps the
    record. `customer_name`/`customer_phone` are copied from the owner's
    profile at booking time and edited by admins afterwards.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key='user.id', index=True)
    vehicle_id: int = Field(index=True)
    date: datetime
    type: str = Field(default=ServiceType.PENDING.value, index=True)
    description: str = ''
    cost: float = 0
    total_bill: float = 0
    customer_name: str
    customer_phone: str = ''
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    parts: List['ServicePart'] = Relationship(
        back_populates='service',
        sa_relationship_kwargs={'order_by': 'ServicePart.position', 'cascade': 'all, delete-orphan'},
    )


class ServicePart(SQLModel, table=True):
    """A part used on a `ServiceRecord`; `position` keeps the submitted order."""
    id: Optional[int] = Field(default=None, primary_key=True)
    service_id: int = Field(foreign_key='servicerecord.id', index=True)
    position: int = 0
    part_name: str
    quantity: int
    unit_cost: float
    service: Optional[ServiceRecord] = Relationship(back_populates='parts')
