"""
Proof-of-delivery biometric confirmation.

Placeholder decision policy: the opaque hash from the device is accepted if
it is longer than the configured minimum. This is not a security guarantee;
a real matcher must replace ``_matches``.
"""

import hashlib
from typing import Optional

from pharmalink.app.core.exceptions import BiometricMismatchError, UnauthorizedError
from pharmalink.app.models.delivery import Delivery
from pharmalink.app.services.adapters.base import VerificationAdapter


class BiometricVerifier(VerificationAdapter):
    name = "biometric_confirmation"

    def __init__(self, min_hash_length: int = 20, **kwargs):
        super().__init__(**kwargs)
        self.min_hash_length = min_hash_length

    def _matches(self, biometric_hash: Optional[str]) -> bool:
        return bool(biometric_hash) and len(biometric_hash) > self.min_hash_length

    async def confirm(self, delivery: Delivery, driver_id: int, biometric_hash: Optional[str]) -> str:
        """
        Confirm recipient identity for a delivery.

        Returns:
            Audit hash binding the delivery to the presented biometric

        Raises:
            UnauthorizedError: driver is not the one assigned to the delivery
            BiometricMismatchError: the biometric was rejected
        """
        return await self._invoke(self._confirm, delivery.id, delivery.driver_id, driver_id, biometric_hash)

    async def _confirm(
        self, delivery_id: int, assigned_driver_id: int, driver_id: int, biometric_hash: Optional[str]
    ) -> str:
        if assigned_driver_id != driver_id:
            raise UnauthorizedError("Unauthorized to verify this delivery")
        if not self._matches(biometric_hash):
            raise BiometricMismatchError()
        return hashlib.sha256(f"{delivery_id}{biometric_hash}".encode("utf-8")).hexdigest()
