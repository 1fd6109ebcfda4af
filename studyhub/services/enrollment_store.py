"""Data access for ordering and enrollment.

Services see plain records; ``BeanieEnrollmentStore`` maps them onto the
User, Course and Payment documents and runs enrollment writes in one
transaction.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from beanie import PydanticObjectId
from beanie.operators import In
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import DuplicateKeyError

from studyhub.core.audit import log_event
from studyhub.db.unit_of_work import UnitOfWork
from studyhub.models.course import Course
from studyhub.models.payment import Payment, PaymentMethod, PaymentStatus
from studyhub.models.user import User


class DuplicateTransactionError(Exception):
    """The ledger already holds a row for this transaction/course/status."""


@dataclass
class StudentRecord:
    id: str
    name: str
    email: str
    enrolled_course_ids: set[str] = field(default_factory=set)


@dataclass
class CourseRecord:
    id: str
    title: str
    price: int
    instructor_id: str | None = None


@dataclass
class LedgerEntry:
    user_id: str
    course_id: str
    amount: int
    currency: str
    status: PaymentStatus
    transaction_id: str | None
    gateway_order_id: str
    instructor_id: str | None = None
    payment_method: PaymentMethod = PaymentMethod.RAZORPAY
    id: str | None = None
    created_at: datetime | None = None


class EnrollmentStore(Protocol):
    async def has_payment(self, transaction_id: str) -> bool: ...

    async def get_student(self, user_id: str) -> StudentRecord | None: ...

    async def get_courses(self, course_ids: list[str]) -> list[CourseRecord]: ...

    async def commit_enrollment(
        self, user_id: str, new_course_ids: list[str], entries: list[LedgerEntry]
    ) -> None: ...

    async def record_payment(self, entry: LedgerEntry) -> None: ...

    async def list_payments(self, user_id: str, limit: int, offset: int) -> list[LedgerEntry]: ...

    async def list_enrolled_courses(self, user_id: str) -> list[CourseRecord]: ...


def _oid(value: str | None) -> PydanticObjectId | None:
    return PydanticObjectId(value) if value else None


def _student(user: User) -> StudentRecord:
    return StudentRecord(
        id=str(user.id),
        name=user.full_name,
        email=user.email,
        enrolled_course_ids={str(c) for c in user.enrolled_courses},
    )


def _course(course: Course) -> CourseRecord:
    return CourseRecord(
        id=str(course.id),
        title=course.title,
        price=course.price,
        instructor_id=str(course.instructor) if course.instructor else None,
    )


def _payment_document(entry: LedgerEntry) -> Payment:
    return Payment(
        user=_oid(entry.user_id),
        instructor=_oid(entry.instructor_id),
        course=_oid(entry.course_id),
        amount=entry.amount,
        currency=entry.currency,
        status=entry.status,
        payment_method=entry.payment_method,
        transaction_id=entry.transaction_id,
        payment_gateway_order_id=entry.gateway_order_id,
    )


def _ledger_entry(payment: Payment) -> LedgerEntry:
    return LedgerEntry(
        id=str(payment.id),
        user_id=str(payment.user),
        course_id=str(payment.course),
        instructor_id=str(payment.instructor) if payment.instructor else None,
        amount=payment.amount,
        currency=payment.currency,
        status=payment.status,
        payment_method=payment.payment_method,
        transaction_id=payment.transaction_id,
        gateway_order_id=payment.payment_gateway_order_id,
        created_at=payment.created_at,
    )


class BeanieEnrollmentStore:
    def __init__(self, client: AsyncIOMotorClient):
        self._client = client

    async def has_payment(self, transaction_id: str) -> bool:
        return await Payment.find_one(Payment.transaction_id == transaction_id) is not None

    async def get_student(self, user_id: str) -> StudentRecord | None:
        user = await User.get(PydanticObjectId(user_id))
        return _student(user) if user else None

    async def get_courses(self, course_ids: list[str]) -> list[CourseRecord]:
        oids = [PydanticObjectId(c) for c in course_ids]
        courses = await Course.find(In(Course.id, oids)).to_list()
        return [_course(c) for c in courses]

    async def commit_enrollment(
        self, user_id: str, new_course_ids: list[str], entries: list[LedgerEntry]
    ) -> None:
        """Ledger rows, both enrollment back-references and the audit entry in one transaction."""
        uid = PydanticObjectId(user_id)
        new_oids = [PydanticObjectId(c) for c in new_course_ids]
        try:
            async with UnitOfWork(self._client) as uow:
                for entry in entries:
                    await _payment_document(entry).insert(session=uow.session)
                if new_oids:
                    await User.find_one(User.id == uid, session=uow.session).update(
                        {"$addToSet": {"enrolled_courses": {"$each": new_oids}}},
                        session=uow.session,
                    )
                    await Course.find(In(Course.id, new_oids), session=uow.session).update(
                        {"$addToSet": {"enrolled_students": uid}},
                        session=uow.session,
                    )
                transaction_id = entries[0].transaction_id if entries else None
                await log_event(
                    user_id,
                    "payment_captured",
                    "payment",
                    transaction_id,
                    {
                        "course_ids": [e.course_id for e in entries],
                        "new_course_ids": new_course_ids,
                        "amount": sum(e.amount for e in entries),
                    },
                    session=uow.session,
                )
        except DuplicateKeyError as e:
            raise DuplicateTransactionError(str(e)) from e

    async def record_payment(self, entry: LedgerEntry) -> None:
        try:
            async with UnitOfWork(self._client) as uow:
                await _payment_document(entry).insert(session=uow.session)
                await log_event(
                    entry.user_id,
                    f"payment_{entry.status.value}",
                    "payment",
                    entry.transaction_id,
                    {"course_id": entry.course_id, "amount": entry.amount},
                    session=uow.session,
                )
        except DuplicateKeyError as e:
            raise DuplicateTransactionError(str(e)) from e

    async def list_payments(self, user_id: str, limit: int, offset: int) -> list[LedgerEntry]:
        payments = (
            await Payment.find(Payment.user == PydanticObjectId(user_id))
            .sort(-Payment.created_at)
            .skip(offset)
            .limit(limit)
            .to_list()
        )
        return [_ledger_entry(p) for p in payments]

    async def list_enrolled_courses(self, user_id: str) -> list[CourseRecord]:
        user = await User.get(PydanticObjectId(user_id))
        if not user or not user.enrolled_courses:
            return []
        courses = await Course.find(In(Course.id, user.enrolled_courses)).to_list()
        return [_course(c) for c in courses]
