"""Run ARQ worker for payment emails. Usage: python -m studyhub.worker.run_worker"""

import asyncio

from arq import run_worker

from studyhub.core.config import get_settings
from studyhub.core.logging import configure_logging
from studyhub.worker.tasks import get_redis_settings, send_notification, shutdown, startup


class WorkerSettings:
    functions = [send_notification]
    on_startup = startup
    on_shutdown = shutdown
    max_tries = 3


def main() -> None:
    configure_logging(debug=get_settings().debug)
    asyncio.set_event_loop(asyncio.new_event_loop())
    run_worker(WorkerSettings, redis_settings=get_redis_settings())


if __name__ == "__main__":
    main()
