import math
from collections import defaultdict
from typing import List

import structlog
from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.exceptions import CompanyAccountRequired, DriverNotFound, EmailAlreadyExists
from app.core.security import hash_password
from app.models.address import Address
from app.models.company import CompanyDriver, CompanyProfile
from app.models.delivery import DeliveryStatus, DriverFeedback, ShipmentLookup
from app.models.user import AccountType, User
from app.schemas.company import CompanyRegister, DriverCreate, DriverUpdate

logger = structlog.get_logger()


def _round_half_up(value: float, digits: int = 0) -> float:
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def _summarize(feedback: List[DriverFeedback]) -> dict:
    total = len(feedback)
    delivered = sum(1 for f in feedback if f.delivery_status == DeliveryStatus.DELIVERED)
    failed = sum(1 for f in feedback if f.delivery_status == DeliveryStatus.FAILED)
    scores = [f.location_score for f in feedback if f.location_score is not None]
    return {
        "total_deliveries": total,
        "successful_deliveries": delivered,
        "failed_deliveries": failed,
        "success_rate": (delivered / total) * 100 if total else 0.0,
        "avg_location_score": sum(scores) / len(scores) if scores else 0.0,
    }


def credit_score(success_rate: float, avg_location_score: float) -> int:
    """Address reliability on a 0-100 scale: 60% delivery success, 40% location accuracy."""
    score = int(_round_half_up(success_rate * 0.6 + avg_location_score * 8))
    return min(100, max(0, score))


class CompanyService:

    @staticmethod
    def register_company(db: Session, data: CompanyRegister) -> User:
        """Create a company account together with its profile."""
        email = data.email.lower()
        if db.query(User).filter(func.lower(User.email) == email).first():
            raise EmailAlreadyExists()

        if db.query(User).filter(User.phone == data.phone).first():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Phone number already registered",
            )

        if db.query(CompanyProfile).filter(CompanyProfile.unified_number == data.unified_number).first():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Unified number already registered",
            )

        user = User(
            email=email,
            password_hash=hash_password(data.password),
            name=data.company_name,
            phone=data.phone,
            account_type=AccountType.COMPANY,
        )
        db.add(user)
        db.flush()

        db.add(
            CompanyProfile(
                user_id=user.id,
                company_name=data.company_name,
                unified_number=data.unified_number,
                company_type=data.company_type,
            )
        )
        db.commit()
        db.refresh(user)

        logger.info("company_registered", user_id=user.id, company_type=data.company_type.value)
        return user

    @staticmethod
    def get_profile(user: User) -> CompanyProfile:
        if user.account_type != AccountType.COMPANY or user.company_profile is None:
            raise CompanyAccountRequired()
        return user.company_profile

    @staticmethod
    def list_drivers(company: CompanyProfile) -> List[CompanyDriver]:
        return list(company.drivers)

    @staticmethod
    def get_driver(db: Session, company: CompanyProfile, driver_pk: int) -> CompanyDriver:
        driver = db.query(CompanyDriver).filter(
            CompanyDriver.id == driver_pk,
            CompanyDriver.company_profile_id == company.id
        ).first()
        if not driver:
            raise DriverNotFound()
        return driver

    @staticmethod
    def create_driver(db: Session, company: CompanyProfile, driver_data: DriverCreate) -> CompanyDriver:
        taken = db.query(CompanyDriver.id).filter(
            CompanyDriver.company_profile_id == company.id,
            func.lower(CompanyDriver.driver_id) == driver_data.driver_id.lower()
        ).first()
        if taken:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Driver ID already exists for this company",
            )

        driver = CompanyDriver(company_profile_id=company.id, **driver_data.model_dump())
        db.add(driver)
        db.commit()
        db.refresh(driver)

        logger.info("company_driver_created", company_id=company.id, driver_pk=driver.id)
        return driver

    @staticmethod
    def update_driver(db: Session, company: CompanyProfile, driver_pk: int, driver_update: DriverUpdate) -> CompanyDriver:
        driver = CompanyService.get_driver(db, company, driver_pk)

        update_data = driver_update.model_dump(exclude_unset=True)
        for field in ("name", "status"):
            if field in update_data and update_data[field] is None:
                update_data.pop(field)
        for field, value in update_data.items():
            setattr(driver, field, value)

        db.commit()
        db.refresh(driver)
        logger.info("company_driver_updated", company_id=company.id, driver_pk=driver.id, status=driver.status.value)
        return driver

    @staticmethod
    def delete_driver(db: Session, company: CompanyProfile, driver_pk: int) -> None:
        driver = CompanyService.get_driver(db, company, driver_pk)
        db.delete(driver)
        db.commit()
        logger.info("company_driver_deleted", company_id=company.id, driver_pk=driver_pk)

    @staticmethod
    def delivery_stats(db: Session, company: CompanyProfile) -> dict:
        """Delivery totals for the company plus a per-address breakdown with credit scores."""
        feedback = (
            db.query(DriverFeedback)
            .join(ShipmentLookup, DriverFeedback.shipment_lookup_id == ShipmentLookup.id)
            .filter(ShipmentLookup.company_profile_id == company.id)
            .all()
        )

        summary = _summarize(feedback)
        summary["success_rate"] = _round_half_up(summary["success_rate"], 1)
        summary["avg_location_score"] = _round_half_up(summary["avg_location_score"], 1)

        by_address = defaultdict(list)
        for entry in feedback:
            by_address[entry.lookup.address_digital_id].append(entry)

        addresses = {
            a.digital_id: a
            for a in db.query(Address).filter(Address.digital_id.in_(list(by_address))).all()
        } if by_address else {}

        rows = []
        for digital_id, entries in by_address.items():
            stats = _summarize(entries)
            address = addresses.get(digital_id)
            rows.append({
                "address_digital_id": digital_id,
                "total_deliveries": stats["total_deliveries"],
                "successful_deliveries": stats["successful_deliveries"],
                "failed_deliveries": stats["failed_deliveries"],
                "avg_location_score": _round_half_up(stats["avg_location_score"], 1),
                "credit_score": credit_score(stats["success_rate"], stats["avg_location_score"]),
                "last_delivery_date": max(e.created_at for e in entries).isoformat(),
                "lat": address.lat if address else None,
                "lng": address.lng if address else None,
                "text_address": address.text_address if address else None,
            })
        rows.sort(key=lambda row: row["total_deliveries"], reverse=True)

        return {"summary": summary, "addresses": rows}
