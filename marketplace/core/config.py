"""Application configuration."""

from decimal import Decimal
from os import getenv

from pydantic import BaseModel


class Settings(BaseModel):
    """Runtime settings for the application."""

    app_name: str = "marketplace API"
    app_env: str = getenv("APP_ENV", "dev")
    debug: bool = getenv("DEBUG", "0") == "1"
    database_url: str = getenv("DATABASE_URL", "sqlite:///./marketplace.db")
    jwt_secret_key: str = getenv("JWT_SECRET_KEY", "dev-only-change-me-to-a-long-random-secret")
    jwt_algorithm: str = getenv("JWT_ALGORITHM", "HS256")
    jwt_expire_minutes: int = int(getenv("JWT_EXPIRE_MINUTES", str(60 * 24 * 7)))
    delivery_fee: Decimal = Decimal(getenv("DELIVERY_FEE", "49"))
    otp_expiry_minutes: int = int(getenv("OTP_EXPIRY_MINUTES", "10"))
    otp_length: int = int(getenv("OTP_LENGTH", "6"))
    admin_phone: str = getenv("ADMIN_PHONE", "")
    admin_name: str = getenv("ADMIN_NAME", "Admin")


settings: Settings = Settings()
