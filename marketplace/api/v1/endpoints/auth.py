"""Authentication endpoints (phone OTP to JWT)."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.core.config import settings
from marketplace.core.errors import DENY_UNAUTHENTICATED, NotAuthorizedError, NotFoundError
from marketplace.core.security import create_actor_token, get_current_actor
from marketplace.db.session import get_db
from marketplace.models.user import User
from marketplace.schemas.auth import (
    Actor,
    AuthUserResponse,
    OtpIssuedResponse,
    OtpRequest,
    OtpVerifyRequest,
    TokenResponse,
)
from marketplace.schemas.common import ApiResponse
from marketplace.services.account_service import login_verified_phone
from marketplace.services.otp_service import OtpVerifier, get_otp_verifier

router: APIRouter = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/otp/request", response_model=ApiResponse[OtpIssuedResponse])
def request_otp(
    payload: OtpRequest,
    verifier: OtpVerifier = Depends(get_otp_verifier),
) -> ApiResponse[OtpIssuedResponse]:
    code = verifier.issue(payload.phone)
    issued = OtpIssuedResponse(
        phone=payload.phone,
        expires_in_seconds=int(verifier.expiry.total_seconds()),
        dev_code=code if settings.app_env == "dev" else None,
    )
    return ApiResponse(data=issued, message="OTP sent successfully")


@router.post("/otp/verify", response_model=ApiResponse[TokenResponse])
def verify_otp(
    payload: OtpVerifyRequest,
    db: Session = Depends(get_db),
    verifier: OtpVerifier = Depends(get_otp_verifier),
) -> ApiResponse[TokenResponse]:
    if not verifier.verify(payload.phone, payload.code):
        logger.info("[AUTH] OTP rejected for phone=%s", payload.phone)
        raise NotAuthorizedError("Invalid or expired OTP", reason=DENY_UNAUTHENTICATED)
    user, partner_id = login_verified_phone(db, payload.phone, payload.name, payload.role)
    if not user.is_active:
        raise NotAuthorizedError("Account is disabled", reason=DENY_UNAUTHENTICATED)
    token = TokenResponse(
        access_token=create_actor_token(user, partner_id),
        user_id=user.id,
        role=user.role,
        partner_id=partner_id,
    )
    return ApiResponse(data=token, message="Login successful")


@router.get("/me", response_model=ApiResponse[AuthUserResponse])
def me(actor: Actor = Depends(get_current_actor), db: Session = Depends(get_db)) -> ApiResponse[AuthUserResponse]:
    user = db.get(User, actor.id)
    if user is None:
        raise NotFoundError("User not found")
    return ApiResponse(data=AuthUserResponse.model_validate(user))
