from sqlalchemy import Boolean, Column, Integer, String, DateTime, Enum
from sqlalchemy.orm import relationship
from datetime import datetime
import enum
from app.db.base_class import Base


class AccountType(str, enum.Enum):
    INDIVIDUAL = "individual"
    COMPANY = "company"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(20), unique=True, index=True, nullable=False)
    iqama_id = Column(String(20), unique=True, index=True, nullable=True)  # national / residency id
    password_hash = Column(String(255), nullable=False)
    name = Column(String(100), nullable=False)
    account_type = Column(Enum(AccountType), default=AccountType.INDIVIDUAL, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    session_version = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    addresses = relationship(
        "Address",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="Address.id",
    )
    company_profile = relationship(
        "CompanyProfile",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
    )
