"""Business logic services used by HTTP controllers.

This module holds small service classes that coordinate repositories and
the token service. Services are intentionally thin: they apply the
ownership and uniqueness rules, persist aggregates via repositories and
raise the exceptions from `errors` that the application turns into JSON.
Callers pass the authenticated `Identity` explicitly.
"""

import logging
from datetime import datetime, timezone
from typing import List
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from . import models, repositories
from .auth import Identity, TokenService, dummy_verify, hash_password, verify_and_update
from .errors import ConflictError, InvalidCredentialsError, NotFoundError, ValidationError
from .schemas import (
    LoginIn,
    RegisterIn,
    ServiceBookIn,
    ServiceOut,
    ServiceUpdateIn,
    VehicleIn,
    VehicleOut,
)

logger = logging.getLogger("service_shop.services")

# vehicles may be registered up to this many model years ahead
FUTURE_MODEL_YEARS = 5


class AuthService:
    """Authentication related operations (register + authenticate)."""
    def __init__(self, session: Session, tokens: TokenService):
        self.session = session
        self.tokens = tokens
        self.user_repo = repositories.UserRepository(session)

    def register(self, data: RegisterIn) -> str:
        """Create a new user with a hashed password and return its token.

        Raises `ConflictError` if the normalized email is already taken,
        including when a concurrent registration wins the unique index.
        """
        email = data.email.strip().lower()
        if self.user_repo.get_by_email(email):
            raise ConflictError('User already exists')
        user = models.User(
            name=data.name,
            email=email,
            phone=data.phone,
            password_hash=hash_password(data.password),
        )
        try:
            user = self.user_repo.create(user)
        except IntegrityError:
            raise ConflictError('User already exists')
        logger.info('registered user_id=%s', user.id)
        return self.tokens.issue(user.id, user.name, user.is_admin)

    def authenticate(self, data: LoginIn) -> str:
        """Verify credentials and return a signed token on success.

        Unknown email and wrong password raise the same
        `InvalidCredentialsError`. A stored hash using outdated parameters
        is replaced after a successful check.
        """
        user = self.user_repo.get_by_email(data.email.strip().lower())
        if not user:
            dummy_verify()
            logger.info('login rejected')
            raise InvalidCredentialsError()
        ok, new_hash = verify_and_update(data.password, user.password_hash)
        if not ok:
            logger.info('login rejected')
            raise InvalidCredentialsError()
        if new_hash:
            user.password_hash = new_hash
            self.user_repo.save(user)
            logger.info('rehashed password for user_id=%s', user.id)
        logger.info('login user_id=%s', user.id)
        return self.tokens.issue(user.id, user.name, user.is_admin)


class VehicleService:
    """Vehicles owned by the calling user."""
    def __init__(self, session: Session):
        self.session = session
        self.vehicle_repo = repositories.VehicleRepository(session)
        self.user_repo = repositories.UserRepository(session)

    def create(self, identity: Identity, data: VehicleIn) -> VehicleOut:
        """Register a vehicle for the caller.

        The plate is stored trimmed and uppercase. A plate the caller
        already registered is a conflict; so is a plate held by another
        owner, which the unique index reports on insert.
        """
        max_year = datetime.now(timezone.utc).year + FUTURE_MODEL_YEARS
        if data.year > max_year:
            raise ValidationError(f'Year must not be later than {max_year}', param='year')
        if self.user_repo.get(identity.user_id) is None:
            raise NotFoundError('User not found')
        plate = data.license_plate.strip().upper()
        if self.vehicle_repo.get_by_plate_for_owner(identity.user_id, plate):
            raise ConflictError('Vehicle with this license plate already added.')
        vehicle = models.Vehicle(
            user_id=identity.user_id,
            make=data.make,
            model=data.model,
            year=data.year,
            license_plate=plate,
        )
        try:
            vehicle = self.vehicle_repo.create(vehicle)
        except IntegrityError:
            raise ConflictError('Vehicle with this license plate is already registered.')
        logger.info('vehicle_id=%s added by user_id=%s', vehicle.id, identity.user_id)
        return VehicleOut.model_validate(vehicle)

    def list(self, identity: Identity) -> List[VehicleOut]:
        return [VehicleOut.model_validate(v) for v in self.vehicle_repo.list_for_owner(identity.user_id)]

    def delete(self, identity: Identity, vehicle_id: int):
        """Remove one of the caller's vehicles.

        Someone else's vehicle is reported exactly like a missing one.
        """
        vehicle = self.vehicle_repo.get_for_owner(vehicle_id, identity.user_id)
        if vehicle is None:
            raise NotFoundError('Vehicle not found or user not authorized')
        self.vehicle_repo.delete(vehicle)
        logger.info('vehicle_id=%s removed by user_id=%s', vehicle_id, identity.user_id)


class ServiceRecordService:
    """Book, list and administer service records."""
    def __init__(self, session: Session):
        self.session = session
        self.service_repo = repositories.ServiceRepository(session)
        self.vehicle_repo = repositories.VehicleRepository(session)
        self.user_repo = repositories.UserRepository(session)

    def book(self, identity: Identity, data: ServiceBookIn) -> ServiceOut:
        """Create a record for one of the caller's vehicles.

        The customer name and phone are copied from the caller's profile
        at booking time and are not kept in sync afterwards.
        """
        vehicle = self.vehicle_repo.get_for_owner(data.vehicle_id, identity.user_id)
        if vehicle is None:
            raise NotFoundError('Vehicle not found or does not belong to user')
        user = self.user_repo.get(identity.user_id)
        if user is None:
            raise NotFoundError('User not found')
        record = models.ServiceRecord(
            user_id=identity.user_id,
            vehicle_id=vehicle.id,
            date=data.date,
            type=data.type.value,
            description=data.description or '',
            cost=data.cost,
            total_bill=data.total_bill,
            customer_name=user.name,
            customer_phone=user.phone or '',
        )
        parts = [
            models.ServicePart(part_name=p.part_name, quantity=p.quantity, unit_cost=p.unit_cost)
            for p in data.parts_used
        ]
        record = self.service_repo.create(record, parts)
        logger.info('service_id=%s booked by user_id=%s', record.id, identity.user_id)
        return ServiceOut.from_record(record)

    def list(self, identity: Identity, include_picked_up: bool = False) -> List[ServiceOut]:
        """List records visible to the caller.

        Admins see every record, minus those already picked up unless
        `include_picked_up` is set. Other users see only their own records
        and the flag is ignored. Each item carries its vehicle summary;
        empty customer fields are filled from the owner's profile.
        """
        if identity.is_admin:
            exclude = None if include_picked_up else models.ServiceType.PICKED_UP.value
            records = self.service_repo.list_all(exclude_type=exclude)
        else:
            records = self.service_repo.list_for_owner(identity.user_id)
        vehicles = self.vehicle_repo.get_many(r.vehicle_id for r in records)
        owners = self.user_repo.get_many(
            r.user_id for r in records if not r.customer_name or not r.customer_phone
        )
        out = []
        for r in records:
            name, phone = r.customer_name, r.customer_phone
            owner = owners.get(r.user_id)
            if owner is not None:
                if not name:
                    name = owner.name
                if not phone:
                    phone = owner.phone or ''
            out.append(ServiceOut.from_record(r, vehicle=vehicles.get(r.vehicle_id), customer_name=name, customer_phone=phone))
        return out

    def _get_or_404(self, service_id: int) -> models.ServiceRecord:
        record = self.service_repo.get(service_id)
        if record is None:
            raise NotFoundError('Service not found')
        return record

    def update_status(self, service_id: int, status: models.ServiceType) -> ServiceOut:
        """Replace the record's `type` with a workflow status."""
        record = self._get_or_404(service_id)
        previous = record.type
        record.type = status.value
        record.updated_at = models.utcnow()
        record = self.service_repo.save(record)
        logger.info('service_id=%s status %s -> %s', service_id, previous, record.type)
        return ServiceOut.from_record(record)

    def update_details(self, service_id: int, data: ServiceUpdateIn) -> ServiceOut:
        """Apply the fields present in `data`; omitted ones stay untouched.

        Presence, not truthiness, decides: an empty description is written.
        A `partsUsed` list replaces all existing parts.
        """
        record = self._get_or_404(service_id)
        fields = data.model_dump(exclude_unset=True, exclude_none=True)
        parts = fields.pop('parts_used', None)
        if 'type' in fields:
            fields['type'] = data.type.value
        for key, value in fields.items():
            setattr(record, key, value)
        if parts is not None:
            self.service_repo.replace_parts(record, [
                models.ServicePart(part_name=p.part_name, quantity=p.quantity, unit_cost=p.unit_cost)
                for p in data.parts_used
            ])
        record.updated_at = models.utcnow()
        record = self.service_repo.save(record)
        logger.info('service_id=%s updated fields=%s', service_id, sorted(data.model_fields_set))
        return ServiceOut.from_record(record)

    def delete(self, service_id: int):
        record = self._get_or_404(service_id)
        self.service_repo.delete(record)
        logger.info('service_id=%s removed', service_id)
