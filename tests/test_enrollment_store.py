"""BeanieEnrollmentStore against a real MongoDB replica set (transactions need one).

Skipped when MONGODB_URI is unreachable or not a replica set member.
"""

import pytest
import pytest_asyncio
from beanie import PydanticObjectId
from motor.motor_asyncio import AsyncIOMotorClient

from studyhub.models.payment import PaymentStatus
from studyhub.services.enrollment_store import BeanieEnrollmentStore, DuplicateTransactionError, LedgerEntry


@pytest_asyncio.fixture
async def mongo():
    from studyhub.core.config import get_settings
    from studyhub.db.init import init_db

    client = AsyncIOMotorClient(get_settings().mongodb_uri, serverSelectionTimeoutMS=1000)
    try:
        hello = await client.admin.command("hello")
    except Exception:
        client.close()
        pytest.skip("MongoDB not reachable")
    if "setName" not in hello:
        client.close()
        pytest.skip("MongoDB is not a replica set; transactions unavailable")
    await init_db(client)
    from studyhub.db.init import DOCUMENT_MODELS
    for model in DOCUMENT_MODELS:
        await model.find_all().delete()
    yield client
    client.close()


async def _seed():
    from studyhub.models.course import Course
    from studyhub.models.user import User
    user = await User(first_name="Asha", last_name="Rao", email="asha@example.com").insert()
    instructor = PydanticObjectId()
    a = await Course(title="Course A", instructor=instructor, price=100).insert()
    b = await Course(title="Course B", instructor=instructor, price=50).insert()
    return user, a, b


def _entries(user, courses, tx="pay_1"):
    return [
        LedgerEntry(
            user_id=str(user.id),
            course_id=str(c.id),
            instructor_id=str(c.instructor),
            amount=c.price,
            currency="INR",
            status=PaymentStatus.SUCCESS,
            transaction_id=tx,
            gateway_order_id="order_1",
        )
        for c in courses
    ]


async def test_commit_enrollment_is_symmetric_and_audited(mongo):
    from studyhub.models.audit_log import AuditLog
    from studyhub.models.course import Course
    from studyhub.models.user import User
    store = BeanieEnrollmentStore(mongo)
    user, a, b = await _seed()

    await store.commit_enrollment(str(user.id), [str(a.id), str(b.id)], _entries(user, [a, b]))

    assert await store.has_payment("pay_1")
    fresh = await User.get(user.id)
    assert set(fresh.enrolled_courses) == {a.id, b.id}
    for course_id in (a.id, b.id):
        assert (await Course.get(course_id)).enrolled_students == [user.id]
    assert await AuditLog.find(AuditLog.event_type == "payment_captured").count() == 1
    student = await store.get_student(str(user.id))
    assert student.name == "Asha Rao"
    assert student.enrolled_course_ids == {str(a.id), str(b.id)}
    history = await store.list_payments(str(user.id), 10, 0)
    assert {p.course_id for p in history} == {str(a.id), str(b.id)}
    assert {c.title for c in await store.list_enrolled_courses(str(user.id))} == {"Course A", "Course B"}


async def test_duplicate_commit_rolls_back_everything(mongo):
    from studyhub.models.payment import Payment
    from studyhub.models.user import User
    store = BeanieEnrollmentStore(mongo)
    user, a, b = await _seed()
    await store.commit_enrollment(str(user.id), [str(a.id)], _entries(user, [a]))

    # Same transaction again, now also touching B: the ledger index must reject it whole
    with pytest.raises(DuplicateTransactionError):
        await store.commit_enrollment(str(user.id), [str(b.id)], _entries(user, [b, a]))

    assert await Payment.find(Payment.transaction_id == "pay_1").count() == 1
    assert (await User.get(user.id)).enrolled_courses == [a.id]


async def test_record_failed_payment(mongo):
    store = BeanieEnrollmentStore(mongo)
    user, a, _ = await _seed()
    entry = LedgerEntry(
        user_id=str(user.id),
        course_id=str(a.id),
        amount=100,
        currency="INR",
        status=PaymentStatus.FAILED,
        transaction_id="pay_f",
        gateway_order_id="order_2",
    )
    await store.record_payment(entry)
    with pytest.raises(DuplicateTransactionError):
        await store.record_payment(entry)
    [row] = await store.list_payments(str(user.id), 10, 0)
    assert row.status == PaymentStatus.FAILED
