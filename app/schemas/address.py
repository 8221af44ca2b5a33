from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional
from datetime import datetime

FALLBACK_OPTIONS = {"door", "neighbor", "call", "security"}


def _validate_fallback_option(v):
    if v is not None and v not in FALLBACK_OPTIONS:
        raise ValueError(f"fallback_option must be one of: {', '.join(sorted(FALLBACK_OPTIONS))}")
    return v


def _validate_coordinate_pair(model):
    if (model.lat is None) != (model.lng is None):
        raise ValueError("lat and lng must be provided together")
    return model


class AddressBase(BaseModel):
    text_address: str = Field(min_length=5)
    lat: Optional[float] = Field(default=None, ge=-90, le=90, allow_inf_nan=False)
    lng: Optional[float] = Field(default=None, ge=-180, le=180, allow_inf_nan=False)
    photo_building: Optional[str] = None
    photo_gate: Optional[str] = None
    photo_door: Optional[str] = None
    preferred_time: str = "morning"
    preferred_time_slot: Optional[str] = None
    special_note: Optional[str] = Field(default=None, max_length=1000)
    fallback_option: str = "door"

    @field_validator('fallback_option')
    @classmethod
    def validate_fallback_option(cls, v):
        return _validate_fallback_option(v)

    @model_validator(mode="after")
    def validate_coordinates(self):
        return _validate_coordinate_pair(self)


class AddressCreate(AddressBase):
    pass


class AddressUpdate(BaseModel):
    # digital_id is immutable and intentionally absent
    text_address: Optional[str] = Field(default=None, min_length=5)
    lat: Optional[float] = Field(default=None, ge=-90, le=90, allow_inf_nan=False)
    lng: Optional[float] = Field(default=None, ge=-180, le=180, allow_inf_nan=False)
    photo_building: Optional[str] = None
    photo_gate: Optional[str] = None
    photo_door: Optional[str] = None
    preferred_time: Optional[str] = None
    preferred_time_slot: Optional[str] = None
    special_note: Optional[str] = Field(default=None, max_length=1000)
    fallback_option: Optional[str] = None

    @field_validator('fallback_option')
    @classmethod
    def validate_fallback_option(cls, v):
        return _validate_fallback_option(v)

    @model_validator(mode="after")
    def validate_coordinates(self):
        return _validate_coordinate_pair(self)


class AddressResponse(AddressBase):
    id: int
    digital_id: str
    user_id: int
    is_primary: bool
    created_at: datetime

    class Config:
        from_attributes = True
