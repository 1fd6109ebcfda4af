from studyhub.models.user import User
from studyhub.models.course import Course
from studyhub.models.payment import Payment, PaymentMethod, PaymentStatus
from studyhub.models.audit_log import AuditLog
from studyhub.models.failed_job import FailedJob

__all__ = [
    "User",
    "Course",
    "Payment",
    "PaymentMethod",
    "PaymentStatus",
    "AuditLog",
    "FailedJob",
]
