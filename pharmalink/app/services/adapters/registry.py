"""
The set of external verification adapters the orchestrator may call.

Built once per application so each adapter keeps its own circuit breaker
state across requests.
"""

from dataclasses import dataclass

from pharmalink.app.core.config import Settings
from pharmalink.app.services.adapters.adjudication import ClaimAdjudicator
from pharmalink.app.services.adapters.biometric import BiometricVerifier
from pharmalink.app.services.adapters.identity import IdentityVerifier
from pharmalink.app.services.adapters.payment import PaymentVerifier


@dataclass
class AdapterSet:
    payment: PaymentVerifier
    adjudicator: ClaimAdjudicator
    biometric: BiometricVerifier
    identity: IdentityVerifier

    @classmethod
    def from_settings(cls, settings: Settings) -> "AdapterSet":
        return cls(
            payment=PaymentVerifier(secret=settings.payment_webhook_secret),
            adjudicator=ClaimAdjudicator(schemes=settings.medical_aid_schemes),
            biometric=BiometricVerifier(min_hash_length=settings.biometric_min_hash_length),
            identity=IdentityVerifier(),
        )
