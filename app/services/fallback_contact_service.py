from typing import List, Optional

import structlog
from sqlalchemy.orm import Session

from app.core.exceptions import AddressNotFound, FallbackContactNotFound, NotAddressOwner
from app.models.address import Address
from app.models.fallback_contact import FallbackContact
from app.schemas.fallback_contact import FallbackContactCreate, FallbackContactUpdate
from app.services import fallback_policy
from app.services.fallback_policy import DistanceAssessment
from app.services.photo_service import normalize_photo_fields

logger = structlog.get_logger()

# Computed server-side; dropped from client payloads before persistence
COMPUTED_FIELDS = ("distance_km", "requires_extra_fee")


def _coordinates(lat: Optional[float], lng: Optional[float]):
    if lat is None or lng is None:
        return None
    return (lat, lng)


class FallbackContactService:

    @staticmethod
    def _get_owned_address(db: Session, user_id: int, address_id: int) -> Address:
        address = db.query(Address).filter(Address.id == address_id).first()
        if not address:
            raise AddressNotFound()
        if address.user_id != user_id:
            raise NotAddressOwner()
        return address

    @staticmethod
    def get_owned_contact(db: Session, user_id: int, contact_id: int) -> FallbackContact:
        contact = db.query(FallbackContact).filter(FallbackContact.id == contact_id).first()
        if not contact:
            raise FallbackContactNotFound()
        if contact.address.user_id != user_id:
            raise NotAddressOwner()
        return contact

    @staticmethod
    def assess_location(db: Session, user_id: int, address_id: int, lat: float, lng: float) -> DistanceAssessment:
        """Preview the distance classification of a candidate pin without saving anything."""
        address = FallbackContactService._get_owned_address(db, user_id, address_id)
        return fallback_policy.assess(address.coordinates, (lat, lng))

    @staticmethod
    def list_for_address(db: Session, user_id: int, address_id: int) -> List[FallbackContact]:
        address = FallbackContactService._get_owned_address(db, user_id, address_id)
        return list(address.fallback_contacts)

    @staticmethod
    def create_contact(db: Session, user_id: int, contact_data: FallbackContactCreate) -> FallbackContact:
        """Create a fallback contact, gating extended-distance contacts on scheduling and fee acknowledgement."""
        address = FallbackContactService._get_owned_address(db, user_id, contact_data.address_id)

        values = contact_data.model_dump(exclude={"address_id", *COMPUTED_FIELDS})
        values["relationship_label"] = values.pop("relationship")
        values["extra_fee_acknowledged"] = bool(values.get("extra_fee_acknowledged"))

        assessment = fallback_policy.assess(address.coordinates, _coordinates(values["lat"], values["lng"]))
        fallback_policy.note_client_supplied_values(
            assessment, contact_data.distance_km, contact_data.requires_extra_fee
        )
        fallback_policy.enforce(
            assessment.requires_extra_fee,
            values["scheduled_date"],
            values["scheduled_time_slot"],
            values["extra_fee_acknowledged"],
        )

        normalize_photo_fields(values)
        contact = FallbackContact(
            address_id=address.id,
            distance_km=assessment.distance_km,
            requires_extra_fee=assessment.requires_extra_fee,
            **values,
        )
        db.add(contact)
        db.commit()
        db.refresh(contact)

        logger.info(
            "fallback_contact_created",
            contact_id=contact.id,
            address_id=address.id,
            distance_km=contact.distance_km,
            requires_extra_fee=contact.requires_extra_fee,
        )
        return contact

    @staticmethod
    def update_contact(
        db: Session,
        user_id: int,
        contact_id: int,
        contact_update: FallbackContactUpdate,
    ) -> FallbackContact:
        """Apply a partial update; the gate is checked against stored values overlaid with the update."""
        contact = FallbackContactService.get_owned_contact(db, user_id, contact_id)

        update_data = contact_update.model_dump(exclude_unset=True, exclude=set(COMPUTED_FIELDS))
        if "relationship" in update_data:
            update_data["relationship_label"] = update_data.pop("relationship")
        # Explicit nulls on non-nullable columns mean "leave as stored"
        for field in ("name", "phone", "extra_fee_acknowledged"):
            if field in update_data and update_data[field] is None:
                update_data.pop(field)

        def merged(field):
            return update_data[field] if field in update_data else getattr(contact, field)

        assessment = fallback_policy.assess(
            contact.address.coordinates,
            _coordinates(merged("lat"), merged("lng")),
        )
        fallback_policy.note_client_supplied_values(
            assessment, contact_update.distance_km, contact_update.requires_extra_fee
        )
        fallback_policy.enforce(
            assessment.requires_extra_fee,
            merged("scheduled_date"),
            merged("scheduled_time_slot"),
            merged("extra_fee_acknowledged"),
        )

        normalize_photo_fields(update_data)
        for field, value in update_data.items():
            setattr(contact, field, value)
        contact.distance_km = assessment.distance_km
        contact.requires_extra_fee = assessment.requires_extra_fee

        db.commit()
        db.refresh(contact)

        logger.info(
            "fallback_contact_updated",
            contact_id=contact.id,
            distance_km=contact.distance_km,
            requires_extra_fee=contact.requires_extra_fee,
        )
        return contact

    @staticmethod
    def set_default(db: Session, user_id: int, contact_id: int) -> FallbackContact:
        contact = FallbackContactService.get_owned_contact(db, user_id, contact_id)

        db.query(FallbackContact).filter(
            FallbackContact.address_id == contact.address_id,
            FallbackContact.id != contact.id,
            FallbackContact.is_default == True
        ).update({"is_default": False})
        contact.is_default = True

        db.commit()
        db.refresh(contact)
        return contact

    @staticmethod
    def delete_contact(db: Session, user_id: int, contact_id: int) -> None:
        contact = FallbackContactService.get_owned_contact(db, user_id, contact_id)
        db.delete(contact)
        db.commit()
        logger.info("fallback_contact_deleted", contact_id=contact_id)

    @staticmethod
    def refresh_distances(address: Address) -> None:
        """Recompute distance and fee flag for every contact of an address whose pin moved.

        Existing contacts are not re-gated here; a contact that became extended
        must satisfy the gate on its next update.
        """
        for contact in address.fallback_contacts:
            assessment = fallback_policy.assess(address.coordinates, contact.coordinates)
            if assessment.requires_extra_fee != contact.requires_extra_fee:
                logger.info(
                    "fallback_distance_recomputed",
                    contact_id=contact.id,
                    address_id=address.id,
                    distance_km=assessment.distance_km,
                    requires_extra_fee=assessment.requires_extra_fee,
                )
            contact.distance_km = assessment.distance_km
            contact.requires_extra_fee = assessment.requires_extra_fee
