"""Shared FastAPI dependencies.

Long-lived clients (Mongo, Razorpay, mailer, ARQ pool) are created at startup
and kept on ``app.state``; handlers receive them only through these functions,
so tests swap them with ``app.dependency_overrides``.
"""

from dataclasses import dataclass

from fastapi import BackgroundTasks, Depends, Header, Request

from studyhub.core.config import Settings, get_settings
from studyhub.core.exceptions import UnauthorizedError
from studyhub.core.security import is_object_id, load_access_token, parse_bearer_token
from studyhub.services.enrollment import EnrollmentCommitter
from studyhub.services.enrollment_store import BeanieEnrollmentStore, EnrollmentStore
from studyhub.services.gateway import PaymentGateway
from studyhub.services.notifications import (
    ArqNotificationQueue,
    BackgroundNotificationQueue,
    NotificationQueue,
    Notifier,
)
from studyhub.services.payments import OrderCreator, WebhookReceiver


@dataclass
class CurrentUser:
    id: str
    role: str = "student"


async def get_current_user(
    authorization: str | None = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> CurrentUser:
    """Dependency: verify the bearer token and return its claims."""
    token = parse_bearer_token(authorization)
    if not token:
        raise UnauthorizedError("Not authenticated")
    payload = load_access_token(token, max_age_seconds=settings.access_token_max_age)
    if not payload:
        raise UnauthorizedError("Invalid or expired token")
    user_id = payload.get("user_id")
    if not is_object_id(user_id):
        raise UnauthorizedError("Invalid token")
    return CurrentUser(id=user_id, role=payload.get("role") or "student")


def get_enrollment_store(request: Request) -> EnrollmentStore:
    return BeanieEnrollmentStore(request.app.state.mongo_client)


def get_payment_gateway(request: Request) -> PaymentGateway | None:
    return getattr(request.app.state, "payment_gateway", None)


def get_notification_queue(
    request: Request,
    background_tasks: BackgroundTasks,
    settings: Settings = Depends(get_settings),
) -> NotificationQueue:
    pool = getattr(request.app.state, "arq_pool", None)
    if settings.notification_backend == "arq" and pool is not None:
        return ArqNotificationQueue(pool)
    return BackgroundNotificationQueue(background_tasks, request.app.state.mailer, settings.frontend_url)


def get_notifier(queue: NotificationQueue = Depends(get_notification_queue)) -> Notifier:
    return Notifier(queue)


def get_order_creator(
    store: EnrollmentStore = Depends(get_enrollment_store),
    gateway: PaymentGateway | None = Depends(get_payment_gateway),
    settings: Settings = Depends(get_settings),
) -> OrderCreator:
    return OrderCreator(store, gateway, currency=settings.payment_currency)


def get_webhook_receiver(
    store: EnrollmentStore = Depends(get_enrollment_store),
    notifier: Notifier = Depends(get_notifier),
    settings: Settings = Depends(get_settings),
) -> WebhookReceiver:
    return WebhookReceiver(EnrollmentCommitter(store, notifier), settings.razorpay_webhook_secret)
