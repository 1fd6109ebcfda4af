import pytest

from studyhub.worker import tasks
from tests.fakes import RecordingMailer

NOTICE = {
    "kind": "payment_failed",
    "to_email": "asha@example.com",
    "name": "Asha",
    "amount": 100,
    "order_id": "order_1",
    "reason": "Card declined",
}


class FakeFailedJob:
    inserted: list["FakeFailedJob"] = []

    def __init__(self, **fields):
        self.fields = fields

    async def insert(self):
        FakeFailedJob.inserted.append(self)


async def test_send_notification_delivers():
    mailer = RecordingMailer()
    await tasks.send_notification({"job_id": "j1", "mailer": mailer}, NOTICE)
    [(to_email, subject, html)] = mailer.sent
    assert to_email == "asha@example.com"
    assert subject == "Payment Failed - StudyHub"
    assert "Card declined" in html


async def test_send_notification_failure_goes_to_dead_letter(monkeypatch):
    FakeFailedJob.inserted = []
    monkeypatch.setattr("studyhub.models.failed_job.FailedJob", FakeFailedJob)

    with pytest.raises(ConnectionError):
        await tasks.send_notification({"job_id": "j2", "mailer": RecordingMailer(fail=True)}, NOTICE)

    [dead] = FakeFailedJob.inserted
    assert dead.fields["job_name"] == "send_notification"
    assert dead.fields["job_id"] == "j2"
    assert dead.fields["args"] == [NOTICE]


def test_redis_settings_from_url(monkeypatch):
    from studyhub.core.config import get_settings
    monkeypatch.setenv("REDIS_URL", "redis://:pw@cache.internal:6380/2")
    get_settings.cache_clear()
    try:
        s = tasks.get_redis_settings()
    finally:
        get_settings.cache_clear()
    assert (s.host, s.port, s.password, s.database) == ("cache.internal", 6380, "pw", 2)
