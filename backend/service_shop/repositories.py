"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate (users,
vehicles, service records). Repositories return SQLModel objects and
perform commits/refreshes where appropriate. Unique-index violations are
left to propagate as `IntegrityError` after a rollback so services can
turn them into conflicts.
"""

from typing import Dict, Iterable, List, Optional
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, select
from . import models


class _Repository:
    def __init__(self, session: Session):
        self.session = session

    def _commit(self):
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            raise


class UserRepository(_Repository):
    """CRUD operations for `User` objects."""

    def create(self, user: models.User) -> models.User:
        """Persist a new user and return the managed instance."""
        self.session.add(user)
        self._commit()
        self.session.refresh(user)
        return user

    def get_by_email(self, email: str) -> Optional[models.User]:
        """Return a `User` by (already normalized) email or `None`."""
        stmt = select(models.User).where(models.User.email == email)
        return self.session.exec(stmt).first()

    def get(self, user_id: int) -> Optional[models.User]:
        """Get a `User` by primary key."""
        return self.session.get(models.User, user_id)

    def get_many(self, user_ids: Iterable[int]) -> Dict[int, models.User]:
        ids = set(user_ids)
        if not ids:
            return {}
        stmt = select(models.User).where(col(models.User.id).in_(ids))
        return {u.id: u for u in self.session.exec(stmt).all()}

    def save(self, user: models.User) -> models.User:
        self.session.add(user)
        self._commit()
        self.session.refresh(user)
        return user


class VehicleRepository(_Repository):
    """CRUD operations for `Vehicle` records scoped by owner."""

    def create(self, vehicle: models.Vehicle) -> models.Vehicle:
        self.session.add(vehicle)
        self._commit()
        self.session.refresh(vehicle)
        return vehicle

    def get_for_owner(self, vehicle_id: int, user_id: int) -> Optional[models.Vehicle]:
        """Return the vehicle only if `user_id` owns it."""
        stmt = select(models.Vehicle).where(models.Vehicle.id == vehicle_id, models.Vehicle.user_id == user_id)
        return self.session.exec(stmt).first()

    def get_by_plate_for_owner(self, user_id: int, license_plate: str) -> Optional[models.Vehicle]:
        stmt = select(models.Vehicle).where(
            models.Vehicle.user_id == user_id,
            models.Vehicle.license_plate == license_plate
        )
        return self.session.exec(stmt).first()

    def list_for_owner(self, user_id: int) -> List[models.Vehicle]:
        """Return the owner's vehicles, most recently added first."""
        stmt = (
            select(models.Vehicle)
            .where(models.Vehicle.user_id == user_id)
            .order_by(col(models.Vehicle.created_at).desc(), col(models.Vehicle.id).desc())
        )
        return self.session.exec(stmt).all()

    def get_many(self, vehicle_ids: Iterable[int]) -> Dict[int, models.Vehicle]:
        ids = set(vehicle_ids)
        if not ids:
            return {}
        stmt = select(models.Vehicle).where(col(models.Vehicle.id).in_(ids))
        return {v.id: v for v in self.session.exec(stmt).all()}

    def delete(self, vehicle: models.Vehicle):
        self.session.delete(vehicle)
        self._commit()


class ServiceRepository(_Repository):
    """Persist `ServiceRecord` rows together with their ordered parts."""

    def create(self, record: models.ServiceRecord, parts: List[models.ServicePart]) -> models.ServiceRecord:
        """Store a record and attach `parts` in the given order."""
        for i, part in enumerate(parts):
            part.position = i
        record.parts = parts
        self.session.add(record)
        self._commit()
        self.session.refresh(record)
        return record

    def get(self, service_id: int) -> Optional[models.ServiceRecord]:
        return self.session.get(models.ServiceRecord, service_id)

    def list_all(self, exclude_type: Optional[str] = None) -> List[models.ServiceRecord]:
        """Return every record, newest service date first.

        `exclude_type` drops records whose `type` equals the given value.
        """
        stmt = select(models.ServiceRecord)
        if exclude_type is not None:
            stmt = stmt.where(models.ServiceRecord.type != exclude_type)
        stmt = stmt.order_by(col(models.ServiceRecord.date).desc(), col(models.ServiceRecord.id).desc())
        return self.session.exec(stmt).all()

    def list_for_owner(self, user_id: int) -> List[models.ServiceRecord]:
        stmt = (
            select(models.ServiceRecord)
            .where(models.ServiceRecord.user_id == user_id)
            .order_by(col(models.ServiceRecord.date).desc(), col(models.ServiceRecord.id).desc())
        )
        return self.session.exec(stmt).all()

    def replace_parts(self, record: models.ServiceRecord, parts: List[models.ServicePart]):
        """Swap the record's parts; orphaned rows are deleted on commit."""
        for i, part in enumerate(parts):
            part.position = i
        record.parts = parts

    def save(self, record: models.ServiceRecord) -> models.ServiceRecord:
        self.session.add(record)
        self._commit()
        self.session.refresh(record)
        return record

    def delete(self, record: models.ServiceRecord):
        self.session.delete(record)
        self._commit()
