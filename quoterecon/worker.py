"""RQ Worker entrypoint.

Run with: python -m quoterecon.worker
"""

import structlog
from redis import Redis
from rq import Worker, Queue

from quoterecon.config import settings

logger = structlog.get_logger(__name__)

QUEUE_NAME = "quote-analysis"


def main() -> None:
    """Start the RQ worker listening on the quote analysis queue."""
    redis_conn = Redis.from_url(settings.redis_url)
    queues = [Queue(QUEUE_NAME, connection=redis_conn)]

    logger.info("worker_starting", queue=QUEUE_NAME, redis_url=settings.redis_url)

    worker = Worker(queues, connection=redis_conn)
    worker.work(with_scheduler=False)


if __name__ == "__main__":
    main()
