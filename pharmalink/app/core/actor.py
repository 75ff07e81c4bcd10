"""
The authenticated caller of a dispatch operation.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from pharmalink.app.models.enums import UserRole


@dataclass(frozen=True)
class Actor:
    user_id: int
    username: str
    role: UserRole
    pharmacy_id: Optional[int] = None
    origin: Optional[str] = None
    user_agent: Optional[str] = None

    @classmethod
    def from_token(cls, payload: dict, request: Optional[Request] = None) -> "Actor":
        """Build an actor from a decoded JWT payload and, if given, the request origin."""
        origin = None
        user_agent = None
        if request is not None:
            origin = request.client.host if request.client else None
            user_agent = request.headers.get("user-agent")
        return cls(
            user_id=payload["user_id"],
            username=payload.get("sub", ""),
            role=UserRole(payload["role"]),
            pharmacy_id=payload.get("pharmacy_id"),
            origin=origin,
            user_agent=user_agent,
        )

    def has_role(self, *roles: UserRole) -> bool:
        return self.role in roles
