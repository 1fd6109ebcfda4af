"""Razorpay checkout orders and the signed webhook entry point."""

import json
import time
from typing import Any

from studyhub.core.exceptions import (
    BadRequestError,
    ConfigurationError,
    NotFoundError,
    ServiceUnavailableError,
    UnauthorizedError,
)
from studyhub.core.logging import get_logger
from studyhub.core.security import is_object_id, verify_razorpay_webhook
from studyhub.services.enrollment import EnrollmentCommitter, EnrollmentOutcome, EnrollmentResult
from studyhub.services.enrollment_store import EnrollmentStore
from studyhub.services.gateway import OrderNotes, PaymentGateway, WebhookEnvelope

log = get_logger(__name__)

EVENT_PAYMENT_CAPTURED = "payment.captured"
EVENT_PAYMENT_FAILED = "payment.failed"


def _receipt() -> str:
    return f"receipt_{int(time.time() * 1000)}"


class OrderCreator:
    def __init__(self, store: EnrollmentStore, gateway: PaymentGateway | None, currency: str = "INR"):
        self._store = store
        self._gateway = gateway
        self._currency = currency

    async def create_order(self, user_id: str, course_ids: Any) -> dict[str, Any]:
        """Price the cart and open a gateway order. Nothing is written locally."""
        if not course_ids or not isinstance(course_ids, list):
            raise BadRequestError("Please select at least one course")
        if not all(is_object_id(c) for c in course_ids):
            raise BadRequestError("Invalid course IDs format")
        course_ids = list(dict.fromkeys(course_ids))

        student = await self._store.get_student(user_id)
        if student is None:
            raise UnauthorizedError("User not found")

        courses = await self._store.get_courses(course_ids)
        if len(courses) != len(course_ids):
            raise NotFoundError("One or more courses not found")

        by_id = {c.id: c for c in courses}
        total = 0
        for course_id in course_ids:
            course = by_id[course_id]
            if course.id in student.enrolled_course_ids:
                raise BadRequestError(f"Already enrolled in {course.title}", details={"course_id": course.id})
            total += course.price

        if self._gateway is None:
            raise ServiceUnavailableError("Payments not configured")
        notes = OrderNotes(user_id=user_id, course_ids=course_ids)
        receipt = _receipt()
        order = await self._gateway.create_order(
            amount=total * 100,
            currency=self._currency,
            receipt=receipt,
            notes=notes.to_gateway(),
        )
        log.info(
            "order_created",
            order_id=order.get("id"),
            user_id=user_id,
            course_ids=course_ids,
            amount=total * 100,
            receipt=receipt,
        )
        return {"success": True, "order": order, "key_id": self._gateway.key_id}


class WebhookReceiver:
    def __init__(self, committer: EnrollmentCommitter, secret: str | None):
        self._committer = committer
        self._secret = secret

    async def handle(self, payload: bytes, signature: str | None) -> EnrollmentResult | None:
        """Verify, parse and dispatch one delivery.

        Returns None for events that are acknowledged without action. Raises
        AppError for rejected deliveries; anything else raised is a transient
        failure the gateway should retry.
        """
        if not self._secret:
            log.error("webhook_secret_missing")
            raise ConfigurationError()
        if not verify_razorpay_webhook(payload, signature, self._secret):
            log.warning("webhook_signature_mismatch", has_signature=bool(signature))
            raise BadRequestError("Invalid signature")

        try:
            data = json.loads(payload.decode("utf-8"))
        except (ValueError, RecursionError):
            log.warning("webhook_malformed_payload")
            raise BadRequestError("Malformed payload")
        if not isinstance(data, dict):
            log.warning("webhook_malformed_payload", type=type(data).__name__)
            raise BadRequestError("Malformed payload")

        envelope = WebhookEnvelope.model_validate(data)
        payment = envelope.payment_entity()
        log.info(
            "webhook_received",
            webhook_event=envelope.event,
            order_id=payment.order_id if payment else None,
            payment_id=payment.id if payment else None,
        )

        if envelope.event not in (EVENT_PAYMENT_CAPTURED, EVENT_PAYMENT_FAILED):
            log.info("webhook_unhandled_event", webhook_event=envelope.event)
            return None
        if payment is None:
            log.warning("webhook_invalid_payment_entity", webhook_event=envelope.event)
            return EnrollmentResult(EnrollmentOutcome.INVALID)

        if envelope.event == EVENT_PAYMENT_CAPTURED:
            return await self._committer.handle_captured(payment)
        return await self._committer.handle_failed(payment)
