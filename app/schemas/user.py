from pydantic import BaseModel, EmailStr, field_validator
from typing import Optional
from datetime import datetime
import re

from app.models.user import AccountType
from app.schemas.address import AddressCreate, AddressResponse

PHONE_PATTERN = re.compile(r'^\+?\d{9,15}$')


class UserBase(BaseModel):
    email: EmailStr
    name: str
    phone: str
    iqama_id: Optional[str] = None


class UserCreate(UserBase):
    password: str
    account_type: AccountType = AccountType.INDIVIDUAL
    address: Optional[AddressCreate] = None

    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        if len(v) < 8:
            raise ValueError('Password must be at least 8 characters')
        if not re.search(r'[A-Za-z]', v) or not re.search(r'\d', v):
            raise ValueError('Password must contain letters and digits')
        return v

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v):
        if not PHONE_PATTERN.match(v):
            raise ValueError('Phone must be 9 to 15 digits')
        return v

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        v = v.strip()
        if len(v) < 2:
            raise ValueError('Name is required')
        return v


class UserLogin(BaseModel):
    # email address or national id
    identifier: str
    password: str


class UserResponse(BaseModel):
    id: int
    email: EmailStr
    name: str
    phone: str
    iqama_id: Optional[str] = None
    account_type: AccountType
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class UserProfileResponse(UserResponse):
    addresses: list[AddressResponse] = []


class UserUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v):
        if v is not None and not PHONE_PATTERN.match(v):
            raise ValueError('Phone must be 9 to 15 digits')
        return v


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str
    password: str

    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        if len(v) < 8:
            raise ValueError('Password must be at least 8 characters')
        return v
