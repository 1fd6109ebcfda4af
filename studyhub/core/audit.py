"""Audit log for payment events."""

from typing import Any

from motor.motor_asyncio import AsyncIOMotorClientSession

from studyhub.models.audit_log import AuditLog


async def log_event(
    user_id: str | None,
    event_type: str,
    entity_type: str,
    entity_id: str | None = None,
    metadata: dict[str, Any] | None = None,
    session: AsyncIOMotorClientSession | None = None,
) -> None:
    """Append to audit_logs collection (inside the caller's transaction when a session is given)."""
    await AuditLog(
        user_id=user_id,
        event_type=event_type,
        entity_type=entity_type,
        entity_id=entity_id,
        metadata=metadata or {},
    ).insert(session=session)
