"""One-time login codes with explicit expiry."""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import NamedTuple

from passlib.context import CryptContext

from marketplace.core.config import settings

logger = logging.getLogger(__name__)

otp_context: CryptContext = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


class _PendingCode(NamedTuple):
    code_hash: str
    expires_at: datetime


class OtpVerifier:
    """Issues and checks single-use codes per phone number.

    Each instance owns its own pending-code table; codes are stored hashed and
    are consumed on the first successful check.
    """

    def __init__(
        self,
        expiry: timedelta | None = None,
        length: int | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.expiry = expiry or timedelta(minutes=settings.otp_expiry_minutes)
        self.length = length or settings.otp_length
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._pending: dict[str, _PendingCode] = {}

    def issue(self, phone: str) -> str:
        """Generate a fresh code for ``phone``, replacing any earlier one."""
        code = "".join(secrets.choice("0123456789") for _ in range(self.length))
        self._pending[phone] = _PendingCode(otp_context.hash(code), self._clock() + self.expiry)
        logger.info("[AUTH] OTP issued for phone=%s expires_in=%ss", phone, int(self.expiry.total_seconds()))
        return code

    def verify(self, phone: str, code: str) -> bool:
        pending = self._pending.get(phone)
        if pending is None:
            return False
        if self._clock() >= pending.expires_at:
            del self._pending[phone]
            return False
        if not otp_context.verify(code, pending.code_hash):
            return False
        del self._pending[phone]
        return True


_otp_verifier = OtpVerifier()


def get_otp_verifier() -> OtpVerifier:
    return _otp_verifier
