"""Razorpay gateway: order creation, typed order notes and webhook payloads."""

import json
from collections.abc import Mapping
from typing import Any, Literal, Protocol

from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from studyhub.core.config import Settings
from studyhub.core.exceptions import PaymentGatewayError
from studyhub.core.logging import get_logger
from studyhub.core.security import is_object_id

log = get_logger(__name__)

NOTES_VERSION = "1"


class InvalidNotesError(ValueError):
    """Order notes echoed back by the gateway are absent or fail the schema."""


class OrderNotes(BaseModel):
    """Correlation data carried on the gateway order and echoed in webhooks.

    Razorpay notes are a flat string map, so ``course_ids`` travels as a JSON
    array string under ``courseIds``. Notes without ``v`` come from orders
    created before the envelope was versioned and are read as version 1.
    """

    version: Literal["1"] = NOTES_VERSION
    user_id: str
    course_ids: list[str] = Field(min_length=1)

    @field_validator("user_id")
    @classmethod
    def _user_id_is_object_id(cls, v: str) -> str:
        if not is_object_id(v):
            raise ValueError("userId is not an ObjectId")
        return v

    @field_validator("course_ids")
    @classmethod
    def _course_ids_are_object_ids(cls, v: list[str]) -> list[str]:
        if not all(is_object_id(c) for c in v):
            raise ValueError("courseIds must be ObjectIds")
        return list(dict.fromkeys(v))

    def to_gateway(self) -> dict[str, str]:
        return {
            "v": self.version,
            "userId": self.user_id,
            "courseIds": json.dumps(self.course_ids),
        }

    @classmethod
    def from_gateway(cls, notes: Mapping[str, Any] | None) -> "OrderNotes":
        if not notes:
            raise InvalidNotesError("notes missing")
        course_ids = notes.get("courseIds")
        if isinstance(course_ids, str):
            try:
                course_ids = json.loads(course_ids)
            except ValueError as e:
                raise InvalidNotesError("courseIds is not a JSON array") from e
        try:
            return cls(
                version=str(notes.get("v", NOTES_VERSION)),
                user_id=notes.get("userId"),
                course_ids=course_ids,
            )
        except ValidationError as e:
            raise InvalidNotesError(str(e)) from e


class GatewayPayment(BaseModel):
    """Razorpay payment entity (amount in paise)."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    order_id: str | None = None
    amount: int = 0
    currency: str = "INR"
    status: str | None = None
    notes: dict[str, Any] = Field(default_factory=dict)
    error_code: str | None = None
    error_description: str | None = None
    error_reason: str | None = None

    @field_validator("notes", mode="before")
    @classmethod
    def _empty_notes(cls, v: Any) -> Any:
        # Razorpay serializes empty notes as []
        if v is None or v == []:
            return {}
        return v

    @property
    def amount_rupees(self) -> int:
        """Whole rupees. Course prices are whole rupees, so paise are dropped rather than stored."""
        return self.amount // 100

    @property
    def failure_reason(self) -> str:
        return self.error_description or self.error_reason or "Payment processing failed"


class WebhookEnvelope(BaseModel):
    model_config = ConfigDict(extra="ignore")

    event: str = ""
    payload: dict[str, Any] = Field(default_factory=dict)

    @field_validator("event", mode="before")
    @classmethod
    def _event_string(cls, v: Any) -> Any:
        return v if isinstance(v, str) else ""

    @field_validator("payload", mode="before")
    @classmethod
    def _payload_object(cls, v: Any) -> Any:
        return v if isinstance(v, dict) else {}

    def payment_entity(self) -> GatewayPayment | None:
        """Return payload.payment.entity, or None when absent or malformed."""
        payment = self.payload.get("payment")
        entity = payment.get("entity") if isinstance(payment, dict) else None
        if not isinstance(entity, dict):
            return None
        try:
            return GatewayPayment.model_validate(entity)
        except ValidationError:
            return None


class PaymentGateway(Protocol):
    key_id: str

    async def create_order(
        self, amount: int, currency: str, receipt: str, notes: dict[str, str]
    ) -> dict[str, Any]: ...


class RazorpayGateway:
    def __init__(self, key_id: str, key_secret: str):
        import razorpay
        self.key_id = key_id
        self._client = razorpay.Client(auth=(key_id, key_secret))

    async def create_order(
        self, amount: int, currency: str, receipt: str, notes: dict[str, str]
    ) -> dict[str, Any]:
        """Create a Razorpay order; the SDK is blocking so it runs in the threadpool."""
        body = {"amount": amount, "currency": currency, "receipt": receipt, "notes": notes}
        try:
            return await run_in_threadpool(self._client.order.create, body)
        except Exception as e:
            log.exception("gateway_order_failed", receipt=receipt, amount=amount)
            raise PaymentGatewayError("Could not create payment order") from e


def build_gateway(settings: Settings) -> RazorpayGateway | None:
    """Return a Razorpay client, or None when keys are not configured."""
    if not settings.razorpay_key_id or not settings.razorpay_key_secret:
        return None
    return RazorpayGateway(settings.razorpay_key_id, settings.razorpay_key_secret)
