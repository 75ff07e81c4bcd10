"""
Identity verification schemas.
"""

from pydantic import BaseModel, Field
from datetime import date
from typing import Optional


class IdentityVerifyRequest(BaseModel):
    id_number: str = Field(..., alias="idNumber", description="13-digit South African ID number")

    class Config:
        populate_by_name = True


class IdentityVerifyResponse(BaseModel):
    valid: bool
    error: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    citizenship: Optional[str] = None

    class Config:
        from_attributes = True
