"""Multi-document transaction scope.

Every read and write that must land atomically takes ``uow.session``. Leaving
the block commits; an exception aborts and re-raises. Either way the session
is ended, so a unit of work is committed or aborted exactly once.
"""

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorClientSession

from studyhub.core.logging import get_logger

log = get_logger(__name__)


class UnitOfWork:
    def __init__(self, client: AsyncIOMotorClient):
        self._client = client
        self._session: AsyncIOMotorClientSession | None = None

    @property
    def session(self) -> AsyncIOMotorClientSession:
        if self._session is None:
            raise RuntimeError("UnitOfWork used outside its async with block")
        return self._session

    async def __aenter__(self) -> "UnitOfWork":
        if self._session is not None:
            raise RuntimeError("UnitOfWork is not reentrant")
        self._session = await self._client.start_session()
        self._session.start_transaction()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        session = self.session
        try:
            if exc_type is None:
                await session.commit_transaction()
            else:
                log.warning("transaction_aborted", error=type(exc).__name__)
                await session.abort_transaction()
        finally:
            await session.end_session()
            self._session = None
        return False
