from datetime import datetime
import enum

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Enum, UniqueConstraint
from sqlalchemy.orm import relationship
from app.db.base_class import Base


class CompanyType(str, enum.Enum):
    LOGISTICS = "Logistics"
    COURIER = "Courier"
    E_COMMERCE = "E-commerce"
    MARKETPLACE = "Marketplace"
    GROCERY = "Grocery"
    PHARMACY = "Pharmacy"


class DriverStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class CompanyProfile(Base):
    __tablename__ = "company_profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    company_name = Column(String(150), nullable=False)
    unified_number = Column(String(30), unique=True, index=True, nullable=False)  # commercial registration
    company_type = Column(Enum(CompanyType), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    user = relationship("User", back_populates="company_profile")
    drivers = relationship(
        "CompanyDriver",
        back_populates="company",
        cascade="all, delete-orphan",
        order_by="CompanyDriver.id",
    )


class CompanyDriver(Base):
    """Driver credential a company hands out for address lookups."""

    __tablename__ = "company_drivers"
    __table_args__ = (
        UniqueConstraint("company_profile_id", "driver_id", name="uq_company_driver_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    company_profile_id = Column(
        Integer, ForeignKey("company_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    driver_id = Column(String(50), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    phone = Column(String(20), nullable=True)
    status = Column(Enum(DriverStatus), default=DriverStatus.ACTIVE, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    company = relationship("CompanyProfile", back_populates="drivers")
    # Lookups outlive the driver; the ORM nulls company_driver_id on delete
    lookups = relationship("ShipmentLookup", back_populates="driver")
