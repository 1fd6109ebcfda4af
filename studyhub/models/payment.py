from datetime import datetime
from enum import Enum

from beanie import Document, PydanticObjectId
from pydantic import Field
from pymongo import ASCENDING, DESCENDING, IndexModel


class PaymentStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    STRIPE = "stripe"
    PAYPAL = "paypal"
    RAZORPAY = "razorpay"
    MANUAL = "manual"


class Payment(Document):
    """Append-only ledger: one row per course per payment attempt. Refunds and retries add rows."""
    user: PydanticObjectId
    instructor: PydanticObjectId | None = None
    course: PydanticObjectId
    amount: int  # whole rupees
    currency: str = "INR"
    status: PaymentStatus = PaymentStatus.PENDING
    payment_method: PaymentMethod = PaymentMethod.RAZORPAY
    transaction_id: str | None = None  # gateway payment id
    payment_gateway_order_id: str
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "payments"
        indexes = [
            [("user", 1), ("created_at", -1)],
            # Rejects the second writer when two deliveries of one capture race past the dedup read
            IndexModel(
                [("transaction_id", ASCENDING), ("course", ASCENDING), ("status", ASCENDING)],
                name="uniq_transaction_course_status",
                unique=True,
                partialFilterExpression={"transaction_id": {"$type": "string"}},
            ),
            IndexModel([("course", ASCENDING), ("created_at", DESCENDING)], name="course_created"),
        ]
