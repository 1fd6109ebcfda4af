"""ARQ job definitions."""

import uuid
from typing import Any
from urllib.parse import urlparse

from arq.connections import RedisSettings

from studyhub.core.config import get_settings
from studyhub.core.logging import get_logger
from studyhub.services.mailer import build_mailer
from studyhub.services.notifications import notice_adapter, send_notice

log = get_logger(__name__)


async def _run_with_dlq(
    job_name: str,
    job_id: str | None,
    args: list[Any],
    kwargs: dict[str, Any],
    coro,
) -> None:
    """Run coroutine; on exception persist to FailedJob then re-raise."""
    try:
        await coro
    except Exception as e:
        from studyhub.models.failed_job import FailedJob
        fid = job_id or str(uuid.uuid4())
        await FailedJob(
            job_name=job_name,
            job_id=fid,
            args=args,
            kwargs=kwargs,
            reason=str(e)[:2000],
            retries=0,
        ).insert()
        log.exception("job_failed", job=job_name, job_id=fid, reason=str(e))
        raise


async def send_notification(ctx: dict[str, Any], notice: dict[str, Any]) -> None:
    """Render and send one payment email queued by the webhook."""
    job_id = ctx.get("job_id") if isinstance(ctx.get("job_id"), str) else None
    parsed = notice_adapter.validate_python(notice)

    async def _run() -> None:
        log.info("job_start", job="send_notification", kind=parsed.kind, order_id=parsed.order_id)
        await send_notice(ctx["mailer"], parsed, get_settings().frontend_url)
        log.info("job_done", job="send_notification", kind=parsed.kind, order_id=parsed.order_id)

    await _run_with_dlq("send_notification", job_id, [notice], {}, _run())


async def startup(ctx: dict) -> None:
    from studyhub.db.init import init_db
    ctx["mongo_client"] = await init_db()
    ctx["mailer"] = build_mailer(get_settings())


async def shutdown(ctx: dict) -> None:
    mailer = ctx.get("mailer")
    if mailer is not None:
        await mailer.aclose()
    client = ctx.get("mongo_client")
    if client is not None:
        client.close()


def get_redis_settings() -> RedisSettings:
    s = get_settings()
    u = urlparse(s.redis_url)
    return RedisSettings(
        host=u.hostname or "localhost",
        port=u.port or 6379,
        password=u.password,
        database=int(u.path.lstrip("/")) if u.path.lstrip("/") else 0,
    )
