import uuid
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field

from paperdesk.auth.models import UserRole


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    name: str = Field(min_length=1, max_length=200)
    mobile: Optional[str] = Field(default=None, max_length=20)
    # Signatory accounts come from the startup bootstrap, never self-registration.
    role: Literal["customer", "shop_owner"] = "customer"


class UserResponse(BaseModel):
    id: uuid.UUID
    email: str
    name: str
    mobile: Optional[str]
    role: UserRole
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}
