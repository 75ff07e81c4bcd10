"""
Authentication API endpoints.

Doctors, patients, pharmacy staff and drivers self-register; admins are
provisioned out of band. Every register, login attempt and logout lands in
the audit trail.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from pharmalink.app.core.dependencies import get_current_user
from pharmalink.app.core.jwt import issue_access_token, remaining_lifetime
from pharmalink.app.core.security import get_password_hash, verify_password
from pharmalink.app.core.token_revocation import revoke_token
from pharmalink.app.db.session import get_db
from pharmalink.app.models.enums import PHARMACY_ROLES, UserRole
from pharmalink.app.models.user import User
from pharmalink.app.schemas.auth import TokenResponse, UserLogin, UserRegister, UserResponse
from pharmalink.app.services.audit import AuditAction, log_auth_event

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _client_host(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


async def _find_user(db: AsyncSession, login: str, email: Optional[str] = None) -> Optional[User]:
    """Match on username, or on email (``login`` doubles as the email when none is given)."""
    result = await db.execute(
        select(User).where(or_(User.username == login, User.email == (email or login)))
    )
    return result.scalars().first()


def _token_response(user: User) -> TokenResponse:
    return TokenResponse(
        access_token=issue_access_token(user),
        user_id=user.id,
        username=user.username,
        email=user.email,
        role=user.role,
        pharmacy_id=user.pharmacy_id,
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserRegister,
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    """
    Register a user and sign them in.

    - ADMIN cannot be self-registered (403).
    - PHARMACIST and DISPATCHER must name a pharmacy (422, checked by the schema).
    - Every other role must not (400).
    """
    if user_data.role == UserRole.ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin users cannot be registered via API")
    if user_data.role not in PHARMACY_ROLES and user_data.pharmacy_id is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{user_data.role.value} cannot have a pharmacy_id"
        )

    existing = await _find_user(db, user_data.username, user_data.email)
    if existing is not None:
        taken = "Username" if existing.username == user_data.username else "Email"
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"{taken} already registered")

    user = User(
        email=user_data.email,
        username=user_data.username,
        hashed_password=get_password_hash(user_data.password),
        first_name=user_data.first_name,
        last_name=user_data.last_name,
        role=user_data.role,
        pharmacy_id=user_data.pharmacy_id,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    await log_auth_event(
        db=db,
        action=AuditAction.USER_REGISTERED,
        user_id=user.id,
        username=user.username,
        ip_address=_client_host(request),
        metadata={"role": user.role.value, "pharmacy_id": user.pharmacy_id}
    )
    return _token_response(user)


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: UserLogin,
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    """Sign in with username or email."""
    user = await _find_user(db, credentials.username)

    failure = None
    if user is None:
        failure = "User not found"
    elif not verify_password(credentials.password, user.hashed_password):
        failure = "Invalid password"
    elif not user.is_active:
        failure = "Account is inactive"

    if failure is not None:
        await log_auth_event(
            db=db,
            action=AuditAction.LOGIN_FAILED,
            user_id=user.id if user else None,
            username=user.username if user else credentials.username,
            ip_address=_client_host(request),
            metadata={"reason": failure}
        )
        if failure == "Account is inactive":
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user account")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    await log_auth_event(
        db=db,
        action=AuditAction.LOGIN_SUCCESS,
        user_id=user.id,
        username=user.username,
        ip_address=_client_host(request)
    )
    return _token_response(user)


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    # get_current_user has already confirmed the user exists and is active
    user = await db.get(User, current_user["user_id"])
    return UserResponse.model_validate(user)


@router.post("/logout")
async def logout(
    request: Request,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Revoke the presented token for the rest of its lifetime."""
    revoked = await revoke_token(
        current_user["token"], current_user["user_id"], ttl_seconds=remaining_lifetime(current_user)
    )

    await log_auth_event(
        db=db,
        action=AuditAction.TOKEN_REVOKED,
        user_id=current_user["user_id"],
        username=current_user.get("sub"),
        ip_address=_client_host(request),
        metadata={"revoked": revoked}
    )
    return {"message": "Logged out", "revoked": revoked}
