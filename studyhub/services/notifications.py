"""Payment emails: typed notices, rendering and non-blocking dispatch.

The webhook only ever calls ``Notifier``; it hands a notice to a queue and
returns. Delivery runs later (after the response via BackgroundTasks, or in
the ARQ worker) behind its own error boundary, so a broken mail transport can
never fail or roll back an enrollment.
"""

from typing import Annotated, Any, Literal, Protocol, Union

from fastapi import BackgroundTasks
from pydantic import BaseModel, Field, TypeAdapter

from studyhub.core.logging import get_logger
from studyhub.services.email_templates import enrollment_email, payment_failed_email
from studyhub.services.enrollment_store import StudentRecord
from studyhub.services.gateway import GatewayPayment
from studyhub.services.mailer import Mailer

log = get_logger(__name__)

SEND_NOTIFICATION_JOB = "send_notification"


class EnrollmentNotice(BaseModel):
    kind: Literal["enrollment"] = "enrollment"
    to_email: str
    name: str
    amount: int  # rupees
    order_id: str
    payment_id: str
    course_titles: list[str]


class PaymentFailedNotice(BaseModel):
    kind: Literal["payment_failed"] = "payment_failed"
    to_email: str
    name: str
    amount: int  # rupees
    order_id: str
    reason: str


Notice = Annotated[Union[EnrollmentNotice, PaymentFailedNotice], Field(discriminator="kind")]
notice_adapter: TypeAdapter[Notice] = TypeAdapter(Notice)


def render_notice(notice: Notice, frontend_url: str) -> tuple[str, str]:
    """Return (subject, html)."""
    if isinstance(notice, EnrollmentNotice):
        return enrollment_email(
            notice.name,
            notice.amount,
            notice.order_id,
            notice.payment_id,
            notice.course_titles,
            frontend_url,
        )
    return payment_failed_email(notice.name, notice.amount, notice.order_id, notice.reason, frontend_url)


async def send_notice(mailer: Mailer, notice: Notice, frontend_url: str) -> None:
    """Render and send; raises on transport failure."""
    subject, html = render_notice(notice, frontend_url)
    await mailer.send(notice.to_email, subject, html)


async def deliver_notice(mailer: Mailer, notice: Notice, frontend_url: str) -> bool:
    """Best-effort send: errors are logged, never raised."""
    try:
        await send_notice(mailer, notice, frontend_url)
    except Exception:
        log.exception("email_failed", kind=notice.kind, order_id=notice.order_id)
        return False
    return True


class NotificationQueue(Protocol):
    async def submit(self, notice: Notice) -> None: ...


class BackgroundNotificationQueue:
    """Runs delivery after the HTTP response has been sent."""

    def __init__(self, background_tasks: BackgroundTasks, mailer: Mailer, frontend_url: str):
        self._background_tasks = background_tasks
        self._mailer = mailer
        self._frontend_url = frontend_url

    async def submit(self, notice: Notice) -> None:
        self._background_tasks.add_task(deliver_notice, self._mailer, notice, self._frontend_url)


class ArqNotificationQueue:
    """Hands the notice to the ARQ worker (see studyhub.worker.tasks.send_notification)."""

    def __init__(self, pool: Any):
        self._pool = pool

    async def submit(self, notice: Notice) -> None:
        await self._pool.enqueue_job(SEND_NOTIFICATION_JOB, notice.model_dump(mode="json"))


class Notifier:
    def __init__(self, queue: NotificationQueue):
        self._queue = queue

    async def _enqueue(self, notice: Notice) -> None:
        try:
            await self._queue.submit(notice)
        except Exception:
            log.exception("email_enqueue_failed", kind=notice.kind, order_id=notice.order_id)
            return
        log.info("email_enqueued", kind=notice.kind, order_id=notice.order_id)

    async def enrollment_confirmed(
        self, student: StudentRecord, payment: GatewayPayment, course_titles: list[str]
    ) -> None:
        await self._enqueue(
            EnrollmentNotice(
                to_email=student.email,
                name=student.name,
                amount=payment.amount_rupees,
                order_id=payment.order_id or "",
                payment_id=payment.id or "",
                course_titles=course_titles,
            )
        )

    async def payment_failed(self, student: StudentRecord, payment: GatewayPayment) -> None:
        await self._enqueue(
            PaymentFailedNotice(
                to_email=student.email,
                name=student.name,
                amount=payment.amount_rupees,
                order_id=payment.order_id or "",
                reason=payment.failure_reason,
            )
        )
