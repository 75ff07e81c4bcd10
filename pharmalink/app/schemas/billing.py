"""
Medical-aid billing schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from pharmalink.app.models.order_enums import ClaimStatus


class ClaimLineItem(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    price: Decimal = Field(..., ge=0, description="Line total in ZAR")
    category: Optional[str] = Field(None, max_length=50)


class AdjudicationRequest(BaseModel):
    """Benefit check for a scheme without recording a claim."""
    scheme: str = Field(..., min_length=1, description="Medical aid scheme name, e.g. 'Discovery Health'")
    items: List[ClaimLineItem] = Field(..., min_length=1)


class ClaimSubmitRequest(AdjudicationRequest):
    order_id: int


class AdjudicatedItem(BaseModel):
    name: str
    cost: Decimal
    benefitCover: Decimal
    patientPortion: Decimal
    status: str


class AdjudicationSummary(BaseModel):
    totalValue: Decimal
    benefitPaid: Decimal
    patientCoPayment: Decimal


class AdjudicationResponse(BaseModel):
    transactionId: str
    scheme: str
    status: str
    coverageRate: float
    limitPerOrder: Decimal
    requiresPreAuth: List[str]
    items: List[AdjudicatedItem]
    summary: AdjudicationSummary
    timestamp: datetime


class ClaimResponse(BaseModel):
    id: int
    delivery_id: int
    scheme: str
    transaction_id: str
    claim_amount: Decimal
    medical_aid_paid: Decimal
    patient_co_payment: Decimal
    auth_number: str
    status: ClaimStatus
    created_at: datetime

    class Config:
        from_attributes = True


class ClaimSubmitResponse(BaseModel):
    success: bool
    claim: ClaimResponse
    adjudication: AdjudicationResponse
    actions: str = Field(..., description="CO_PAYMENT_REQUIRED or FULLY_COVERED")
