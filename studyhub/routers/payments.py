from datetime import datetime
from typing import Any

from fastapi import APIRouter, Body, Depends, Header, Query, Request
from pydantic import BaseModel

from studyhub.core.pagination import Page, paginate
from studyhub.deps import (
    CurrentUser,
    get_current_user,
    get_enrollment_store,
    get_order_creator,
    get_webhook_receiver,
)
from studyhub.services.enrollment_store import EnrollmentStore
from studyhub.services.payments import OrderCreator, WebhookReceiver

router = APIRouter()


class PaymentOut(BaseModel):
    id: str | None
    course: str
    instructor: str | None
    amount: int
    currency: str
    status: str
    payment_method: str
    transaction_id: str | None
    payment_gateway_order_id: str
    created_at: datetime | None


@router.post("/order")
async def create_order(
    # Raw JSON; OrderCreator validates the cart
    body: Any = Body(default=None),
    user: CurrentUser = Depends(get_current_user),
    orders: OrderCreator = Depends(get_order_creator),
):
    """Create a Razorpay order for a cart of courses; the frontend opens checkout with it."""
    course_ids = body.get("courseIds") if isinstance(body, dict) else None
    return await orders.create_order(user.id, course_ids)


@router.post("/webhook")
async def razorpay_webhook(
    request: Request,
    x_razorpay_signature: str | None = Header(default=None, alias="X-Razorpay-Signature"),
    receiver: WebhookReceiver = Depends(get_webhook_receiver),
):
    """Razorpay webhook. 200 once handled or ignorable; errors only for rejects and retryable failures."""
    body = await request.body()
    await receiver.handle(body, x_razorpay_signature)
    return {"success": True}


@router.get("/history", response_model=Page[PaymentOut])
async def payment_history(
    user: CurrentUser = Depends(get_current_user),
    store: EnrollmentStore = Depends(get_enrollment_store),
    limit: int = Query(50),
    offset: int = Query(0),
):
    """Return the caller's payment ledger (newest first)."""
    limit, offset = paginate(limit, offset)
    entries = await store.list_payments(user.id, limit, offset)
    items = [
        PaymentOut(
            id=e.id,
            course=e.course_id,
            instructor=e.instructor_id,
            amount=e.amount,
            currency=e.currency,
            status=e.status.value,
            payment_method=e.payment_method.value,
            transaction_id=e.transaction_id,
            payment_gateway_order_id=e.gateway_order_id,
            created_at=e.created_at,
        )
        for e in entries
    ]
    return Page[PaymentOut](items=items, limit=limit, offset=offset)
