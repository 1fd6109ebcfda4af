import json
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_DEFAULT_CORS = ["http://localhost:3000", "http://localhost:5173"]


def _parse_cors_origins(v: str) -> list[str]:
    s = (v or "").strip()
    if not s:
        return _DEFAULT_CORS.copy()
    if s.startswith("["):
        try:
            out = json.loads(s)
        except ValueError:
            return _DEFAULT_CORS.copy()
        return [x for x in out if isinstance(x, str) and x.strip()] or _DEFAULT_CORS.copy()
    return [x.strip() for x in s.split(",") if x.strip()] or _DEFAULT_CORS.copy()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # App
    env: str = "development"
    debug: bool = False
    secret_key: str = "change-me-in-production-min-32-chars"
    access_token_max_age: int = Field(default=24 * 3600, alias="ACCESS_TOKEN_MAX_AGE")

    # MongoDB (transactions need a replica set)
    mongodb_uri: str = Field(default="mongodb://localhost:27017/?replicaSet=rs0", alias="MONGODB_URI")
    mongodb_db_name: str = Field(default="studyhub", alias="MONGODB_DB_NAME")

    # Redis (ARQ notification queue)
    redis_url: str = Field(default="redis://localhost:6379/0", alias="REDIS_URL")

    # Razorpay
    razorpay_key_id: str = Field(default="", alias="RAZORPAY_KEY_ID")
    razorpay_key_secret: str = Field(default="", alias="RAZORPAY_KEY_SECRET")
    razorpay_webhook_secret: str = Field(default="", alias="RAZORPAY_WEBHOOK_SECRET")
    payment_currency: str = Field(default="INR", alias="PAYMENT_CURRENCY")

    # Notifications
    notification_backend: Literal["background", "arq"] = Field(default="background", alias="NOTIFICATION_BACKEND")
    mail_api_url: str = Field(default="https://api.brevo.com/v3/smtp/email", alias="MAIL_API_URL")
    mail_api_key: str = Field(default="", alias="MAIL_API_KEY")
    mail_from_email: str = Field(default="info@studyhubedu.online", alias="MAIL_FROM_EMAIL")
    mail_from_name: str = Field(default="StudyHub", alias="MAIL_FROM_NAME")
    frontend_url: str = Field(default="http://localhost:5173", alias="FRONTEND_URL")

    # Sentry
    sentry_dsn: str | None = Field(default=None, alias="SENTRY_DSN")

    # CORS: env as string, exposed as list
    cors_origins_raw: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        alias="CORS_ORIGINS",
    )

    @property
    def cors_origins(self) -> list[str]:
        return _parse_cors_origins(self.cors_origins_raw)


@lru_cache
def get_settings() -> Settings:
    return Settings()
