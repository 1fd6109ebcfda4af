import certifi
from beanie import init_beanie
from motor.motor_asyncio import AsyncIOMotorClient

from studyhub.core.config import get_settings
from studyhub.models.audit_log import AuditLog
from studyhub.models.course import Course
from studyhub.models.failed_job import FailedJob
from studyhub.models.payment import Payment
from studyhub.models.user import User

DOCUMENT_MODELS = [
    User,
    Course,
    Payment,
    AuditLog,
    FailedJob,
]


def _use_tls(uri: str) -> bool:
    """True if URI uses TLS (Atlas or explicit tls=true). Avoids TLS for plain mongodb:// in CI."""
    return "mongodb+srv://" in uri or "tls=true" in uri.lower()


def create_client(uri: str | None = None) -> AsyncIOMotorClient:
    uri = uri or get_settings().mongodb_uri
    # Atlas in Docker: tlsCAFile + tlsDisableOCSPEndpointCheck avoid TLSV1_ALERT_INTERNAL_ERROR
    kwargs = {}
    if _use_tls(uri):
        kwargs["tlsCAFile"] = certifi.where()
        kwargs["tlsDisableOCSPEndpointCheck"] = True
    return AsyncIOMotorClient(uri, **kwargs)


async def init_db(client: AsyncIOMotorClient | None = None) -> AsyncIOMotorClient:
    """Register Beanie documents and return the client; the enrollment store opens transactions on it."""
    settings = get_settings()
    client = client or create_client(settings.mongodb_uri)
    await init_beanie(database=client[settings.mongodb_db_name], document_models=DOCUMENT_MODELS)
    return client
