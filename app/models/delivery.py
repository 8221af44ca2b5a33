from datetime import datetime
import enum

from sqlalchemy import Column, Integer, String, ForeignKey, Text, DateTime, Enum
from sqlalchemy.orm import relationship
from app.db.base_class import Base


class LookupStatus(str, enum.Enum):
    PENDING_FEEDBACK = "pending_feedback"
    COMPLETED = "completed"


class DeliveryStatus(str, enum.Enum):
    DELIVERED = "delivered"
    FAILED = "failed"


class ShipmentLookup(Base):
    """A driver resolving a digital id for one shipment; closed by driver feedback."""

    __tablename__ = "shipment_lookups"

    id = Column(Integer, primary_key=True, index=True)
    company_profile_id = Column(
        Integer, ForeignKey("company_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    company_driver_id = Column(
        Integer, ForeignKey("company_drivers.id", ondelete="SET NULL"), nullable=True, index=True
    )

    # Copied at lookup time so history survives driver and address deletion
    driver_id = Column(String(50), nullable=False)
    shipment_number = Column(String(100), nullable=False)
    address_digital_id = Column(String(16), nullable=False, index=True)

    status = Column(Enum(LookupStatus), default=LookupStatus.PENDING_FEEDBACK, nullable=False, index=True)
    delivery_completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    company = relationship("CompanyProfile")
    driver = relationship("CompanyDriver", back_populates="lookups")
    feedback = relationship(
        "DriverFeedback",
        back_populates="lookup",
        uselist=False,
        cascade="all, delete-orphan",
    )


class DriverFeedback(Base):
    __tablename__ = "driver_feedback"

    id = Column(Integer, primary_key=True, index=True)
    shipment_lookup_id = Column(
        Integer, ForeignKey("shipment_lookups.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    delivery_status = Column(Enum(DeliveryStatus), nullable=False)
    location_score = Column(Integer, nullable=False)  # 1-5, accuracy of the pin and photos
    customer_behavior = Column(String(30), nullable=False)
    failure_reason = Column(String(30), nullable=True)
    additional_notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    lookup = relationship("ShipmentLookup", back_populates="feedback")
