# examprep/api/deps.py
from typing import Generator

from fastapi import Depends
from rq import Queue
from sqlalchemy.orm import Session

from examprep.core.config import settings
from examprep.db.session import get_db
from examprep.services.evaluation_service import EvaluationPipeline, build_pipeline
from examprep.services.llm_client import LLMGatewayClient
from examprep.services.storage_client import ObjectStorage
from examprep.workers.queue import EVALUATION_QUEUE_NAME, get_queue


def get_storage() -> ObjectStorage:
    return ObjectStorage(settings)


def get_llm_client() -> Generator:
    client = LLMGatewayClient(settings)
    try:
        yield client
    finally:
        client.close()


def get_pipeline(
    db: Session = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
    llm: LLMGatewayClient = Depends(get_llm_client),
) -> EvaluationPipeline:
    return build_pipeline(db, settings, storage=storage, llm=llm)


def get_evaluation_queue() -> Queue:
    return get_queue(EVALUATION_QUEUE_NAME)
