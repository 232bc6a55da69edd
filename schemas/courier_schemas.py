from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from schemas.order_schemas import normalize_phone


class CreateCourierRequest(BaseModel):
    username: str
    password: str
    mobile_no: str

    @field_validator('username')
    @classmethod
    def validate_username(cls, value):
        if not value or not value.strip():
            raise ValueError('Username cannot be empty')
        return value.strip()

    @field_validator('password')
    @classmethod
    def validate_password(cls, value):
        if len(value) < 8:
            raise ValueError('Password must be at least 8 characters')
        return value

    @field_validator('mobile_no')
    @classmethod
    def validate_phone(cls, value):
        return normalize_phone(value)


class UpdateCourierRequest(BaseModel):
    username: Optional[str] = None
    mobile_no: Optional[str] = None
    password: Optional[str] = None

    @field_validator('mobile_no')
    @classmethod
    def validate_phone(cls, value):
        if value is None:
            return value
        return normalize_phone(value)

    @field_validator('password')
    @classmethod
    def validate_password(cls, value):
        if value is not None and len(value) < 8:
            raise ValueError('Password must be at least 8 characters')
        return value


class CourierResponse(BaseModel):
    id: int
    name: str
    mobile_no: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
