"""Pydantic request/response schemas used by the API.

Schemas keep API input/output shapes stable and provide validation for
controller handlers and tests. JSON keys are camelCase (`licensePlate`,
`totalBill`, ...); request bodies also accept the snake_case field names.
"""

from datetime import datetime, timezone
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from .models import ServiceRecord, ServiceType, Vehicle

MIN_VEHICLE_YEAR = 1900
MAX_VEHICLE_YEAR = 2099


def _required(value: Optional[str], message: str) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if not value:
        raise ValueError(message)
    return value


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # dates sent without an offset are taken as UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class CamelModel(BaseModel):
    """Base schema mapping snake_case fields to camelCase JSON keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class RegisterIn(CamelModel):
    """Payload for the registration endpoint."""
    name: str
    email: EmailStr
    password: str
    phone: Optional[str] = None

    @field_validator('name')
    @classmethod
    def _name_required(cls, v):
        return _required(v, 'Name is required')

    @field_validator('email', mode='wrap')
    @classmethod
    def _valid_email(cls, v, handler):
        if isinstance(v, str):
            v = v.strip().lower()
        try:
            return handler(v)
        except ValueError:
            raise ValueError('Please include a valid email')

    @field_validator('password')
    @classmethod
    def _password_length(cls, v):
        if len(v) < 6:
            raise ValueError('Please enter a password with 6 or more characters')
        return v

    @field_validator('phone')
    @classmethod
    def _strip_phone(cls, v):
        if v is None:
            return None
        return v.strip() or None


class LoginIn(CamelModel):
    """Payload for the login endpoint."""
    email: EmailStr
    password: str

    @field_validator('email', mode='wrap')
    @classmethod
    def _valid_email(cls, v, handler):
        if isinstance(v, str):
            v = v.strip().lower()
        try:
            return handler(v)
        except ValueError:
            raise ValueError('Please include a valid email')


class TokenOut(BaseModel):
    """Authentication response containing an identity token."""
    msg: str
    token: str


class VehicleIn(CamelModel):
    """Request format for registering a vehicle."""
    make: str
    model: str
    year: int
    license_plate: str

    @field_validator('make')
    @classmethod
    def _make_required(cls, v):
        return _required(v, 'Make is required')

    @field_validator('model')
    @classmethod
    def _model_required(cls, v):
        return _required(v, 'Model is required')

    @field_validator('year', mode='wrap')
    @classmethod
    def _year_range(cls, v, handler):
        message = f'Year must be a valid number between {MIN_VEHICLE_YEAR} and {MAX_VEHICLE_YEAR}'
        try:
            year = handler(v)
        except ValueError:
            raise ValueError(message)
        if not MIN_VEHICLE_YEAR <= year <= MAX_VEHICLE_YEAR:
            raise ValueError(message)
        return year

    @field_validator('license_plate')
    @classmethod
    def _plate_required(cls, v):
        return _required(v, 'License Plate is required')


class VehicleOut(CamelModel):
    id: int
    user_id: int
    make: str
    model: str
    year: int
    license_plate: str
    created_at: datetime


class VehicleSummary(CamelModel):
    """Vehicle details attached to service listings."""
    id: int
    make: str
    model: str
    license_plate: str


class PartIn(CamelModel):
    """A single part line submitted with a booking or an admin update."""
    part_name: str
    quantity: int = Field(ge=1)
    unit_cost: float = Field(ge=0)

    @field_validator('part_name')
    @classmethod
    def _part_name_required(cls, v):
        return _required(v, 'Part name is required')


class PartOut(CamelModel):
    part_name: str
    quantity: int
    unit_cost: float


class ServiceBookIn(CamelModel):
    """Request model for booking a service on one of the caller's vehicles."""
    vehicle_id: int
    date: datetime
    type: ServiceType = ServiceType.PENDING
    description: Optional[str] = ''
    cost: float = Field(default=0, ge=0)
    total_bill: float = Field(default=0, ge=0)
    parts_used: List[PartIn] = Field(default_factory=list)

    @field_validator('date')
    @classmethod
    def _date_utc(cls, v):
        return _as_utc(v)


class ServiceStatusIn(CamelModel):
    status: ServiceType


class ServiceUpdateIn(CamelModel):
    """Admin edit of a service record.

    Every field is optional; only the keys present in the request body are
    applied (see `ServiceRecordService.update_details`).
    """
    date: Optional[datetime] = None
    type: Optional[ServiceType] = None
    description: Optional[str] = None
    cost: Optional[float] = Field(default=None, ge=0)
    total_bill: Optional[float] = Field(default=None, ge=0)
    parts_used: Optional[List[PartIn]] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None

    @field_validator('date')
    @classmethod
    def _date_utc(cls, v):
        return _as_utc(v)

    @field_validator('customer_name')
    @classmethod
    def _customer_name_required(cls, v):
        return _required(v, 'Customer Name is required')

    @field_validator('customer_phone')
    @classmethod
    def _customer_phone_required(cls, v):
        return _required(v, 'Customer Phone is required')


class ServiceOut(CamelModel):
    id: int
    user_id: int
    vehicle_id: int
    date: datetime
    type: str
    description: str
    cost: float
    total_bill: float
    parts_used: List[PartOut]
    customer_name: str
    customer_phone: str
    created_at: datetime
    updated_at: datetime
    vehicle: Optional[VehicleSummary] = None

    @classmethod
    def from_record(
        cls,
        record: ServiceRecord,
        vehicle: Optional[Vehicle] = None,
        customer_name: Optional[str] = None,
        customer_phone: Optional[str] = None,
    ) -> 'ServiceOut':
        """Build the response shape, optionally overriding the customer fields."""
        return cls(
            id=record.id,
            user_id=record.user_id,
            vehicle_id=record.vehicle_id,
            date=record.date,
            type=record.type,
            description=record.description,
            cost=record.cost,
            total_bill=record.total_bill,
            parts_used=[PartOut.model_validate(p) for p in record.parts],
            customer_name=record.customer_name if customer_name is None else customer_name,
            customer_phone=record.customer_phone if customer_phone is None else customer_phone,
            created_at=record.created_at,
            updated_at=record.updated_at,
            vehicle=VehicleSummary.model_validate(vehicle) if vehicle is not None else None,
        )
