# examprep/workers/queue.py

from typing import Any, Dict, Optional

from redis import Redis
from rq import Queue

from examprep.core.config import settings

EVALUATION_QUEUE_NAME = "evaluation"

_redis_conn: Redis | None = None


def get_redis_connection() -> Redis:
    global _redis_conn
    if _redis_conn is None:
        redis_url = settings.REDIS_URL
        _redis_conn = Redis.from_url(redis_url)
    return _redis_conn


def get_queue(name: str = EVALUATION_QUEUE_NAME) -> Queue:
    return Queue(name, connection=get_redis_connection())


def enqueue_evaluation_task(
    submission_id: str,
    request: Optional[Dict[str, Any]] = None,
    *,
    queue: Optional[Queue] = None,
) -> str:
    from examprep.workers.tasks import evaluation_task

    q = queue or get_queue(EVALUATION_QUEUE_NAME)
    job = q.enqueue(evaluation_task, submission_id, request or {})
    return job.id
