from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator
from typing import Optional
from datetime import datetime
import re

PHONE_PATTERN = re.compile(r'^\+?\d{9,15}$')


def _strip_optional(v):
    if v is None:
        return None
    v = v.strip()
    return v or None


class FallbackContactFields(BaseModel):
    relationship: Optional[str] = Field(default=None, max_length=50)
    text_address: Optional[str] = None
    lat: Optional[float] = Field(default=None, ge=-90, le=90, allow_inf_nan=False)
    lng: Optional[float] = Field(default=None, ge=-180, le=180, allow_inf_nan=False)
    extra_fee_acknowledged: Optional[bool] = None
    scheduled_date: Optional[str] = None
    scheduled_time_slot: Optional[str] = None
    photo_building: Optional[str] = None
    photo_gate: Optional[str] = None
    photo_door: Optional[str] = None
    special_note: Optional[str] = Field(default=None, max_length=1000)

    # Accepted for compatibility with older clients; always recomputed server-side
    distance_km: Optional[float] = None
    requires_extra_fee: Optional[bool] = None

    @field_validator('scheduled_date', 'scheduled_time_slot', 'text_address')
    @classmethod
    def strip_text(cls, v):
        return _strip_optional(v)

    @model_validator(mode="after")
    def validate_coordinates(self):
        if (self.lat is None) != (self.lng is None):
            raise ValueError("lat and lng must be provided together")
        return self


def _validate_name(v):
    v = v.strip()
    if len(v) < 2:
        raise ValueError('Name is required')
    return v


class FallbackContactCreate(FallbackContactFields):
    address_id: int
    name: str
    phone: str

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        return _validate_name(v)

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v):
        if not PHONE_PATTERN.match(v):
            raise ValueError('Phone must be 9 to 15 digits')
        return v


class FallbackContactUpdate(FallbackContactFields):
    name: Optional[str] = None
    phone: Optional[str] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if v is None:
            return v
        return _validate_name(v)

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v):
        if v is not None and not PHONE_PATTERN.match(v):
            raise ValueError('Phone must be 9 to 15 digits')
        return v


class FallbackContactResponse(BaseModel):
    id: int
    address_id: int
    name: str
    phone: str
    relationship: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("relationship_label", "relationship"),
    )
    text_address: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    distance_km: Optional[float] = None
    requires_extra_fee: bool
    extra_fee_acknowledged: bool
    scheduled_date: Optional[str] = None
    scheduled_time_slot: Optional[str] = None
    photo_building: Optional[str] = None
    photo_gate: Optional[str] = None
    photo_door: Optional[str] = None
    special_note: Optional[str] = None
    is_default: bool
    created_at: datetime

    class Config:
        from_attributes = True


class DistanceAssessmentRequest(BaseModel):
    address_id: int
    lat: float = Field(ge=-90, le=90, allow_inf_nan=False)
    lng: float = Field(ge=-180, le=180, allow_inf_nan=False)


class DistanceAssessmentResponse(BaseModel):
    distance_km: Optional[float]
    requires_extra_fee: bool
    extended_distance_km: float
    extra_fee_amount: float
    currency: str


class FieldError(BaseModel):
    field: str
    message: str
