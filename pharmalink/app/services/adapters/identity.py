"""
South African ID number verification.

Structural checks only (length, digits, encoded birth date). Gender and
citizenship are decoded from the number itself.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional

from pharmalink.app.services.adapters.base import VerificationAdapter
from pharmalink.app.services.events import utcnow


@dataclass(frozen=True)
class IdentityResult:
    valid: bool
    error: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    citizenship: Optional[str] = None


def decode_birth_date(yymmdd: str, today: Optional[date] = None) -> Optional[date]:
    today = today or utcnow().date()
    year, month, day = int(yymmdd[:2]), int(yymmdd[2:4]), int(yymmdd[4:6])
    century = 2000 if year <= today.year % 100 else 1900
    try:
        return date(century + year, month, day)
    except ValueError:
        return None


class IdentityVerifier(VerificationAdapter):
    name = "identity_verification"

    async def verify_sa_id(self, id_number: Optional[str]) -> IdentityResult:
        return await self._invoke(self._verify, id_number)

    async def _verify(self, id_number: Optional[str]) -> IdentityResult:
        if not id_number or len(id_number) != 13:
            return IdentityResult(valid=False, error="Invalid ID length")
        if not id_number.isdigit():
            return IdentityResult(valid=False, error="ID number must contain digits only")

        born = decode_birth_date(id_number[:6])
        if born is None:
            return IdentityResult(valid=False, error="Invalid birth date encoded in ID")

        return IdentityResult(
            valid=True,
            date_of_birth=born,
            gender="Female" if int(id_number[6:10]) < 5000 else "Male",
            citizenship="SA Citizen" if id_number[10] == "0" else "Permanent Resident",
        )
