"""Turn gateway payment events into ledger rows and enrollments.

Redelivery safety rests on two checks: a ledger lookup by gateway payment id
before any work, and the unique ledger index that rejects a concurrent second
writer inside the transaction.
"""

from dataclasses import dataclass, field
from enum import Enum

from studyhub.core.logging import get_logger
from studyhub.models.payment import PaymentStatus
from studyhub.services.enrollment_store import (
    DuplicateTransactionError,
    EnrollmentStore,
    LedgerEntry,
)
from studyhub.services.gateway import GatewayPayment, InvalidNotesError, OrderNotes
from studyhub.services.notifications import Notifier

log = get_logger(__name__)


class EnrollmentOutcome(str, Enum):
    ENROLLED = "enrolled"
    DUPLICATE = "duplicate"
    ALREADY_ENROLLED = "already_enrolled"
    INVALID = "invalid"
    FAILURE_RECORDED = "failure_recorded"


@dataclass
class EnrollmentResult:
    outcome: EnrollmentOutcome
    user_id: str | None = None
    enrolled_course_ids: list[str] = field(default_factory=list)
    enrolled_titles: list[str] = field(default_factory=list)


def _parse_notes(payment: GatewayPayment) -> OrderNotes | None:
    try:
        return OrderNotes.from_gateway(payment.notes)
    except InvalidNotesError as e:
        log.warning("webhook_invalid_notes", payment_id=payment.id, order_id=payment.order_id, reason=str(e))
        return None


class EnrollmentCommitter:
    def __init__(self, store: EnrollmentStore, notifier: Notifier):
        self._store = store
        self._notifier = notifier

    async def handle_captured(self, payment: GatewayPayment) -> EnrollmentResult:
        """Record a captured payment and enroll the buyer. Safe to call repeatedly for one payment."""
        if not payment.id:
            log.warning("webhook_invalid_payment_entity", order_id=payment.order_id)
            return EnrollmentResult(EnrollmentOutcome.INVALID)

        if await self._store.has_payment(payment.id):
            log.info("webhook_duplicate_payment", payment_id=payment.id)
            return EnrollmentResult(EnrollmentOutcome.DUPLICATE)

        notes = _parse_notes(payment)
        if notes is None:
            return EnrollmentResult(EnrollmentOutcome.INVALID)

        student = await self._store.get_student(notes.user_id)
        courses = await self._store.get_courses(notes.course_ids)
        if student is None:
            log.warning("webhook_user_not_found", payment_id=payment.id, user_id=notes.user_id)
            return EnrollmentResult(EnrollmentOutcome.INVALID, user_id=notes.user_id)
        if len(courses) != len(notes.course_ids):
            log.warning(
                "webhook_course_mismatch",
                payment_id=payment.id,
                expected=notes.course_ids,
                found=[c.id for c in courses],
            )
            return EnrollmentResult(EnrollmentOutcome.INVALID, user_id=notes.user_id)

        expected_paise = sum(c.price for c in courses) * 100
        if payment.amount != expected_paise:
            log.warning(
                "webhook_amount_mismatch",
                payment_id=payment.id,
                captured=payment.amount,
                expected=expected_paise,
            )

        new_ids = [c for c in notes.course_ids if c not in student.enrolled_course_ids]
        if not new_ids:
            log.info("webhook_already_enrolled", payment_id=payment.id, user_id=student.id)
            return EnrollmentResult(EnrollmentOutcome.ALREADY_ENROLLED, user_id=student.id)

        by_id = {c.id: c for c in courses}
        entries = [
            LedgerEntry(
                user_id=student.id,
                course_id=course_id,
                instructor_id=by_id[course_id].instructor_id,
                amount=by_id[course_id].price,
                currency=payment.currency,
                status=PaymentStatus.SUCCESS,
                transaction_id=payment.id,
                gateway_order_id=payment.order_id or "",
            )
            for course_id in notes.course_ids
        ]
        try:
            await self._store.commit_enrollment(student.id, new_ids, entries)
        except DuplicateTransactionError:
            log.info("webhook_duplicate_payment_on_commit", payment_id=payment.id)
            return EnrollmentResult(EnrollmentOutcome.DUPLICATE, user_id=student.id)

        titles = [by_id[c].title for c in new_ids]
        log.info(
            "enrollment_committed",
            payment_id=payment.id,
            order_id=payment.order_id,
            user_id=student.id,
            course_ids=new_ids,
        )
        await self._notifier.enrollment_confirmed(student, payment, titles)
        return EnrollmentResult(
            EnrollmentOutcome.ENROLLED,
            user_id=student.id,
            enrolled_course_ids=new_ids,
            enrolled_titles=titles,
        )

    async def handle_failed(self, payment: GatewayPayment) -> EnrollmentResult:
        """Record a failed attempt (no enrollment change) and tell the buyer."""
        if not payment.id:
            log.warning("webhook_invalid_payment_entity", order_id=payment.order_id)
            return EnrollmentResult(EnrollmentOutcome.INVALID)

        notes = _parse_notes(payment)
        if notes is None:
            return EnrollmentResult(EnrollmentOutcome.INVALID)

        if await self._store.has_payment(payment.id):
            log.info("webhook_duplicate_payment", payment_id=payment.id)
            return EnrollmentResult(EnrollmentOutcome.DUPLICATE, user_id=notes.user_id)

        entry = LedgerEntry(
            user_id=notes.user_id,
            course_id=notes.course_ids[0],
            amount=payment.amount_rupees,
            currency=payment.currency,
            status=PaymentStatus.FAILED,
            transaction_id=payment.id,
            gateway_order_id=payment.order_id or "",
        )
        try:
            await self._store.record_payment(entry)
        except DuplicateTransactionError:
            log.info("webhook_duplicate_payment_on_commit", payment_id=payment.id)
            return EnrollmentResult(EnrollmentOutcome.DUPLICATE, user_id=notes.user_id)

        log.info(
            "payment_failure_recorded",
            payment_id=payment.id,
            order_id=payment.order_id,
            user_id=notes.user_id,
            reason=payment.failure_reason,
        )
        student = await self._store.get_student(notes.user_id)
        if student is not None:
            await self._notifier.payment_failed(student, payment)
        return EnrollmentResult(EnrollmentOutcome.FAILURE_RECORDED, user_id=notes.user_id)
