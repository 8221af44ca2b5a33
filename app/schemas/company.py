from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from typing import Optional
from datetime import datetime
import re

from app.models.company import CompanyType, DriverStatus
from app.models.delivery import DeliveryStatus, LookupStatus
from app.schemas.user import PHONE_PATTERN

DRIVER_ID_PATTERN = re.compile(r'^[A-Za-z0-9_-]{2,50}$')

FAILURE_REASONS = {
    "wrong_address",
    "customer_unavailable",
    "access_denied",
    "dangerous_area",
    "address_not_found",
    "weather_conditions",
    "vehicle_issue",
    "other",
}
CUSTOMER_BEHAVIORS = {"cooperative", "neutral", "difficult", "unavailable", "aggressive"}


def _required_text(v, message):
    v = v.strip()
    if not v:
        raise ValueError(message)
    return v


def _validate_name(v):
    v = v.strip()
    if len(v) < 2:
        raise ValueError('Name is required')
    return v


def _validate_phone(v):
    if v is not None and not PHONE_PATTERN.match(v):
        raise ValueError('Phone must be 9 to 15 digits')
    return v


def _validate_driver_id(v):
    v = v.strip()
    if not DRIVER_ID_PATTERN.match(v):
        raise ValueError('Driver ID must be 2 to 50 letters, digits, "-" or "_"')
    return v


class CompanyRegister(BaseModel):
    company_name: str
    unified_number: str
    company_type: CompanyType
    email: EmailStr
    phone: str
    password: str

    @field_validator('company_name')
    @classmethod
    def validate_company_name(cls, v):
        v = v.strip()
        if len(v) < 2:
            raise ValueError('Company name is required')
        return v

    @field_validator('unified_number')
    @classmethod
    def validate_unified_number(cls, v):
        v = v.strip()
        if len(v) < 5 or not v.isdigit():
            raise ValueError('Unified number must be at least 5 digits')
        return v

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v):
        if not PHONE_PATTERN.match(v):
            raise ValueError('Phone must be 9 to 15 digits')
        return v

    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        if len(v) < 8:
            raise ValueError('Password must be at least 8 characters')
        if not re.search(r'[A-Za-z]', v) or not re.search(r'\d', v):
            raise ValueError('Password must contain letters and digits')
        return v


class CompanyProfileResponse(BaseModel):
    id: int
    company_name: str
    unified_number: str
    company_type: CompanyType
    created_at: datetime

    class Config:
        from_attributes = True


class DriverCreate(BaseModel):
    driver_id: str
    name: str
    phone: Optional[str] = None

    @field_validator('driver_id')
    @classmethod
    def validate_driver_id(cls, v):
        return _validate_driver_id(v)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        return _validate_name(v)

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v):
        return _validate_phone(v)


class DriverUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    status: Optional[DriverStatus] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if v is None:
            return v
        return _validate_name(v)

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v):
        return _validate_phone(v)


class DriverResponse(BaseModel):
    id: int
    driver_id: str
    name: str
    phone: Optional[str] = None
    status: DriverStatus
    created_at: datetime

    class Config:
        from_attributes = True


class DriverCheck(BaseModel):
    driver_id: str

    @field_validator('driver_id')
    @classmethod
    def validate_driver_id(cls, v):
        return _required_text(v, 'Driver ID is required')


class DriverLookupRequest(BaseModel):
    shipment_number: str
    driver_id: str
    digital_id: str

    @field_validator('shipment_number')
    @classmethod
    def validate_shipment_number(cls, v):
        return _required_text(v, 'Shipment number is required')

    @field_validator('driver_id')
    @classmethod
    def validate_driver_id(cls, v):
        return _required_text(v, 'Driver ID is required')

    @field_validator('digital_id')
    @classmethod
    def validate_digital_id(cls, v):
        return _required_text(v, 'Digital ID is required')


class ShipmentLookupResponse(BaseModel):
    id: int
    driver_id: str
    shipment_number: str
    address_digital_id: str
    status: LookupStatus
    delivery_completed_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class DriverFeedbackCreate(BaseModel):
    lookup_id: int
    driver_id: str
    delivery_status: DeliveryStatus
    location_score: int = Field(ge=1, le=5)
    customer_behavior: str
    failure_reason: Optional[str] = None
    additional_notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator('driver_id')
    @classmethod
    def validate_driver_id(cls, v):
        return _required_text(v, 'Driver ID is required')

    @field_validator('customer_behavior')
    @classmethod
    def validate_customer_behavior(cls, v):
        if v not in CUSTOMER_BEHAVIORS:
            raise ValueError(f"customer_behavior must be one of: {', '.join(sorted(CUSTOMER_BEHAVIORS))}")
        return v

    @field_validator('failure_reason')
    @classmethod
    def validate_failure_reason(cls, v):
        if v is not None and v not in FAILURE_REASONS:
            raise ValueError(f"failure_reason must be one of: {', '.join(sorted(FAILURE_REASONS))}")
        return v

    @model_validator(mode="after")
    def require_reason_for_failure(self):
        if self.delivery_status is DeliveryStatus.FAILED and not self.failure_reason:
            raise ValueError("Please select a reason for the failed delivery")
        return self


class DriverFeedbackResponse(BaseModel):
    id: int
    shipment_lookup_id: int
    delivery_status: DeliveryStatus
    location_score: int
    customer_behavior: str
    failure_reason: Optional[str] = None
    additional_notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
