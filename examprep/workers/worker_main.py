# examprep/workers/worker_main.py
# 启动: python -m examprep.workers.worker_main

import logging

from rq import Queue, SimpleWorker

from examprep.core.config import settings
from examprep.core.logging_config import configure_logging
from examprep.workers.queue import EVALUATION_QUEUE_NAME, get_redis_connection

logger = logging.getLogger(__name__)

QUEUE_NAMES = [EVALUATION_QUEUE_NAME]


def main():
    configure_logging()
    redis_conn = get_redis_connection()

    queues = [Queue(name, connection=redis_conn) for name in QUEUE_NAMES]
    # SimpleWorker 不 fork，数据库连接池和 LLM client 在同一进程里复用
    worker = SimpleWorker(queues, connection=redis_conn)

    logger.info(
        f"Worker listening on {', '.join(QUEUE_NAMES)} (burst={settings.WORKER_BURST})"
    )
    worker.work(burst=settings.WORKER_BURST, logging_level=settings.LOG_LEVEL.upper())


if __name__ == "__main__":
    main()
