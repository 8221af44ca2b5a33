from datetime import datetime
from typing import Optional

import structlog
from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.exceptions import DriverNotFound, PendingFeedbackError, ShipmentLookupNotFound
from app.models.address import Address
from app.models.company import CompanyDriver, DriverStatus
from app.models.delivery import DriverFeedback, LookupStatus, ShipmentLookup
from app.schemas.address import AddressResponse
from app.schemas.company import DriverFeedbackCreate, DriverLookupRequest
from app.services.address_service import AddressService

logger = structlog.get_logger()


class DriverService:
    """Address lookups and delivery feedback, authenticated by a company-issued driver id.

    A driver holds at most one open lookup: the next address is released only
    after feedback for the previous shipment has been submitted.
    """

    @staticmethod
    def resolve_driver(db: Session, driver_id: str) -> CompanyDriver:
        # Oldest active credential wins when two companies issued the same id
        driver = (
            db.query(CompanyDriver)
            .filter(
                func.lower(CompanyDriver.driver_id) == driver_id.strip().lower(),
                CompanyDriver.status == DriverStatus.ACTIVE,
            )
            .order_by(CompanyDriver.id)
            .first()
        )
        if not driver:
            raise DriverNotFound()
        return driver

    @staticmethod
    def pending_lookup(db: Session, driver: CompanyDriver) -> Optional[ShipmentLookup]:
        return (
            db.query(ShipmentLookup)
            .filter(
                ShipmentLookup.company_driver_id == driver.id,
                ShipmentLookup.status == LookupStatus.PENDING_FEEDBACK,
            )
            .order_by(ShipmentLookup.created_at, ShipmentLookup.id)
            .first()
        )

    @staticmethod
    def check_pending(db: Session, driver_id: str) -> dict:
        driver = DriverService.resolve_driver(db, driver_id)
        pending = DriverService.pending_lookup(db, driver)
        return {
            "has_pending_feedback": pending is not None,
            "pending_lookup": {
                "id": pending.id,
                "shipment_number": pending.shipment_number,
                "address_digital_id": pending.address_digital_id,
            } if pending else None,
            "company_name": driver.company.company_name,
        }

    @staticmethod
    def lookup_address(db: Session, lookup_request: DriverLookupRequest) -> dict:
        """Resolve a digital id for a shipment and open a lookup awaiting feedback."""
        driver = DriverService.resolve_driver(db, lookup_request.driver_id)

        pending = DriverService.pending_lookup(db, driver)
        if pending is not None:
            logger.info("driver_lookup_blocked", driver_pk=driver.id, pending_lookup_id=pending.id)
            raise PendingFeedbackError(pending.id)

        address = AddressService.get_public_by_digital_id(db, lookup_request.digital_id)

        lookup = ShipmentLookup(
            company_profile_id=driver.company_profile_id,
            company_driver_id=driver.id,
            driver_id=driver.driver_id,
            shipment_number=lookup_request.shipment_number,
            address_digital_id=address.digital_id,
        )
        db.add(lookup)
        db.commit()
        db.refresh(lookup)

        logger.info(
            "driver_address_lookup",
            lookup_id=lookup.id,
            driver_pk=driver.id,
            company_id=driver.company_profile_id,
            digital_id=address.digital_id,
        )
        view = AddressService.public_view(address)
        view["lookup_id"] = lookup.id
        view["company_name"] = driver.company.company_name
        return view

    @staticmethod
    def get_lookup_for_driver(db: Session, lookup_id: int, driver_id: str) -> ShipmentLookup:
        lookup = db.query(ShipmentLookup).filter(ShipmentLookup.id == lookup_id).first()
        if not lookup or lookup.driver_id.lower() != driver_id.strip().lower():
            raise ShipmentLookupNotFound()
        return lookup

    @staticmethod
    def lookup_summary(db: Session, lookup: ShipmentLookup) -> Optional[dict]:
        address = db.query(Address).filter(Address.digital_id == lookup.address_digital_id).first()
        if address is None:
            return None
        return AddressResponse.model_validate(address).model_dump()

    @staticmethod
    def submit_feedback(db: Session, feedback_data: DriverFeedbackCreate) -> DriverFeedback:
        """Record the delivery outcome and close the lookup."""
        lookup = DriverService.get_lookup_for_driver(db, feedback_data.lookup_id, feedback_data.driver_id)
        if lookup.status != LookupStatus.PENDING_FEEDBACK:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Feedback already submitted for this shipment",
            )

        feedback = DriverFeedback(
            shipment_lookup_id=lookup.id,
            **feedback_data.model_dump(exclude={"lookup_id", "driver_id"}),
        )
        db.add(feedback)
        lookup.status = LookupStatus.COMPLETED
        lookup.delivery_completed_at = datetime.utcnow()

        db.commit()
        db.refresh(feedback)

        logger.info(
            "driver_feedback_submitted",
            lookup_id=lookup.id,
            delivery_status=feedback.delivery_status.value,
            location_score=feedback.location_score,
        )
        return feedback
