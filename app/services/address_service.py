import secrets
from typing import List

import structlog
from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.core.exceptions import AddressNotFound, NotAddressOwner
from app.models.address import Address
from app.models.user import User
from app.schemas.address import AddressCreate, AddressResponse, AddressUpdate
from app.schemas.fallback_contact import FallbackContactResponse
from app.services.fallback_contact_service import FallbackContactService
from app.services.photo_service import normalize_photo_fields

logger = structlog.get_logger()

DIGITAL_ID_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
DIGITAL_ID_LENGTH = 8
DIGITAL_ID_MAX_ATTEMPTS = 10


def generate_digital_id() -> str:
    return "".join(secrets.choice(DIGITAL_ID_ALPHABET) for _ in range(DIGITAL_ID_LENGTH))


class AddressService:

    @staticmethod
    def _unique_digital_id(db: Session) -> str:
        for _ in range(DIGITAL_ID_MAX_ATTEMPTS):
            candidate = generate_digital_id()
            taken = db.query(Address.id).filter(Address.digital_id == candidate).first()
            if taken is None:
                return candidate
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not allocate a digital address id, please retry"
        )

    @staticmethod
    def create_address(db: Session, user_id: int, address_data: AddressCreate, commit: bool = True) -> Address:
        """Create an address; a user's first address becomes primary."""
        has_addresses = db.query(Address.id).filter(Address.user_id == user_id).first() is not None

        values = normalize_photo_fields(address_data.model_dump())
        address = Address(
            user_id=user_id,
            digital_id=AddressService._unique_digital_id(db),
            is_primary=not has_addresses,
            **values,
        )
        db.add(address)
        if commit:
            db.commit()
            db.refresh(address)
        else:
            db.flush()

        logger.info(
            "address_created",
            address_id=address.id,
            digital_id=address.digital_id,
            user_id=user_id,
            pinned=address.coordinates is not None,
        )
        return address

    @staticmethod
    def list_addresses(db: Session, user_id: int) -> List[Address]:
        return db.query(Address).filter(Address.user_id == user_id).order_by(Address.id).all()

    @staticmethod
    def get_owned_address(db: Session, user_id: int, address_id: int) -> Address:
        address = db.query(Address).filter(Address.id == address_id).first()
        if not address:
            raise AddressNotFound()
        if address.user_id != user_id:
            raise NotAddressOwner()
        return address

    @staticmethod
    def update_address(db: Session, user_id: int, address_id: int, address_update: AddressUpdate) -> Address:
        """Apply a partial update. Moving the pin recomputes every fallback contact's distance."""
        address = AddressService.get_owned_address(db, user_id, address_id)

        update_data = normalize_photo_fields(address_update.model_dump(exclude_unset=True))
        # null on a stored column means "leave as is"
        for field in ("text_address", "preferred_time", "fallback_option"):
            if field in update_data and update_data[field] is None:
                update_data.pop(field)
        previous_coordinates = address.coordinates

        for field, value in update_data.items():
            setattr(address, field, value)

        if address.coordinates != previous_coordinates:
            FallbackContactService.refresh_distances(address)

        db.commit()
        db.refresh(address)
        return address

    @staticmethod
    def set_primary(db: Session, user_id: int, address_id: int) -> Address:
        address = AddressService.get_owned_address(db, user_id, address_id)

        db.query(Address).filter(
            Address.user_id == user_id,
            Address.id != address_id,
            Address.is_primary == True
        ).update({"is_primary": False})
        address.is_primary = True

        db.commit()
        db.refresh(address)
        return address

    @staticmethod
    def delete_address(db: Session, user_id: int, address_id: int) -> None:
        """Delete an address together with its fallback contacts."""
        address = AddressService.get_owned_address(db, user_id, address_id)
        was_primary = address.is_primary

        db.delete(address)
        db.flush()

        if was_primary:
            replacement = (
                db.query(Address)
                .filter(Address.user_id == user_id)
                .order_by(Address.id)
                .first()
            )
            if replacement:
                replacement.is_primary = True

        db.commit()
        logger.info("address_deleted", address_id=address_id, user_id=user_id)

    @staticmethod
    def get_public_by_digital_id(db: Session, digital_id: str) -> Address:
        address = db.query(Address).filter(Address.digital_id == digital_id.strip().upper()).first()
        if not address:
            raise AddressNotFound()
        return address

    @staticmethod
    def public_view(address: Address) -> dict:
        owner: User = address.user
        return {
            "address": AddressResponse.model_validate(address).model_dump(),
            "user": {
                "name": owner.name,
                "phone": owner.phone,
                "email": owner.email,
            },
            "fallback_contacts": [
                FallbackContactResponse.model_validate(contact).model_dump()
                for contact in address.fallback_contacts
            ],
        }
