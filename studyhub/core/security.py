import hashlib
import hmac
from typing import Any

from bson import ObjectId
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from studyhub.core.config import get_settings


def get_token_serializer() -> URLSafeTimedSerializer:
    settings = get_settings()
    return URLSafeTimedSerializer(
        settings.secret_key,
        salt="studyhub-access",
        signer_kwargs={"key_derivation": "hmac", "digest_method": hashlib.sha256},
    )


def create_access_token(user_id: str, role: str = "student") -> str:
    """Mint a signed bearer token. Issued by the auth service; used here by operators and tests."""
    return get_token_serializer().dumps({"user_id": user_id, "role": role})


def load_access_token(token: str, max_age_seconds: int | None = None) -> dict[str, Any] | None:
    max_age = max_age_seconds if max_age_seconds is not None else get_settings().access_token_max_age
    try:
        payload = get_token_serializer().loads(token, max_age=max_age)
    except (BadSignature, SignatureExpired):
        return None
    return payload if isinstance(payload, dict) else None


def parse_bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1].strip() or None


def is_object_id(value: Any) -> bool:
    """24-hex Mongo ObjectId string."""
    return isinstance(value, str) and len(value) == 24 and ObjectId.is_valid(value)


def verify_razorpay_webhook(payload: bytes, signature: str | None, secret: str) -> bool:
    if not signature:
        return False
    expected = hmac.new(
        secret.encode("utf-8"),
        payload,
        hashlib.sha256,
    ).hexdigest()
    return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))
