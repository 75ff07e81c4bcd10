"""
Authentication Pydantic schemas.

Defines request and response schemas for authentication endpoints.
"""

from pydantic import BaseModel, EmailStr, Field, model_validator
from datetime import datetime
from typing import Optional
from pharmalink.app.models.enums import PHARMACY_ROLES, UserRole


class UserRegister(BaseModel):
    """
    Schema for user registration.

    Used by POST /auth/register endpoint.
    Default role is PATIENT. Pharmacy staff must name their pharmacy.
    """
    email: EmailStr = Field(..., description="User email address")
    username: str = Field(..., min_length=3, max_length=50, description="Unique username")
    password: str = Field(..., min_length=6, description="Password (min 6 characters)")
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    role: UserRole = Field(default=UserRole.PATIENT, description="User role (defaults to PATIENT)")
    pharmacy_id: Optional[int] = Field(default=None, description="Pharmacy ID (required for PHARMACIST and DISPATCHER)")

    @model_validator(mode="after")
    def check_pharmacy(self):
        if self.role in PHARMACY_ROLES and self.pharmacy_id is None:
            raise ValueError("pharmacy_id is required for pharmacy staff")
        return self


class UserLogin(BaseModel):
    """
    Schema for user login.

    Supports login with either username or email.
    """
    username: str = Field(..., description="Username or email")
    password: str = Field(..., description="Password")


class TokenResponse(BaseModel):
    """Schema for JWT token response."""
    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    user_id: int = Field(..., description="User ID")
    username: str = Field(..., description="Username")
    email: str = Field(..., description="Email address")
    role: UserRole = Field(..., description="User role")
    pharmacy_id: Optional[int] = Field(default=None, description="Pharmacy ID (for pharmacy staff)")


class UserResponse(BaseModel):
    """Schema for GET /auth/me."""
    id: int
    email: str
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: UserRole
    pharmacy_id: Optional[int] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
