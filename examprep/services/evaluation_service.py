# examprep/services/evaluation_service.py
"""
Answer-sheet evaluation pipeline.

Stages run strictly in order for one submission:

    Ingestion -> Text Acquisition -> Context Assembler
              -> Evaluation Invoker -> Result Persister

The submission goes ``processing`` when the run starts and ends either
``completed`` with one new Evaluation row or ``failed`` with none. A retry is
a fresh run of every stage.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from examprep.core.config import Settings, settings as default_settings
from examprep.models.evaluation import Evaluation
from examprep.models.submission import Submission
from examprep.schemas.evaluation import EvaluateAnswerSheetRequest, EvaluationRecord
from examprep.services.context_assembler import assemble_course_context
from examprep.services.errors import (
    AcquisitionError,
    EvaluationError,
    SubmissionNotFoundError,
    UpstreamServiceError,
)
from examprep.services.evaluation_invoker import EvaluationInvoker
from examprep.services.ingestion import IngestionResolver
from examprep.services.llm_client import LLMGatewayClient
from examprep.services.result_persister import ResultPersister
from examprep.services.storage_client import ObjectStorage
from examprep.services.text_acquisition import (
    RedisTextCache,
    TextAcquirer,
    TextCache,
    default_text_acquirer,
)

logger = logging.getLogger(__name__)


@dataclass
class EvaluationOutcome:
    submission: Submission
    evaluation: Evaluation
    record: EvaluationRecord


class EvaluationPipeline:
    def __init__(
        self,
        db: Session,
        *,
        resolver: IngestionResolver,
        acquirer: TextAcquirer,
        invoker: EvaluationInvoker,
        persister: Optional[ResultPersister] = None,
    ) -> None:
        self.db = db
        self.resolver = resolver
        self.acquirer = acquirer
        self.invoker = invoker
        self.persister = persister or ResultPersister(db)

    def run(self, request: EvaluateAnswerSheetRequest) -> EvaluationOutcome:
        submission_id = request.submission_id
        submission = self.db.get(Submission, submission_id) if submission_id else None
        if submission is None:
            raise SubmissionNotFoundError()

        logger.info(f"Evaluating submission {submission_id}")
        self.persister.mark_processing(submission)
        try:
            return self._run_stages(submission, request)
        except EvaluationError as e:
            logger.error(f"Evaluation of submission {submission_id} failed: {e.message}")
            self.persister.mark_failed(submission_id)
            raise
        except Exception as e:
            logger.error(
                f"Unexpected error evaluating submission {submission_id}: {e}",
                exc_info=True,
            )
            self.persister.mark_failed(submission_id)
            raise EvaluationError() from e

    def _run_stages(
        self,
        submission: Submission,
        request: EvaluateAnswerSheetRequest,
    ) -> EvaluationOutcome:
        sheet = self.resolver.resolve_answer_sheet(
            submission,
            text=request.answer_sheet_text,
            images=request.answer_sheet_images,
        )
        key = self.resolver.resolve_answer_key(
            submission,
            text=request.answer_key_text,
            images=request.answer_key_images,
        )

        sheet_text = self.acquirer.acquire(sheet)

        key_text: Optional[str] = None
        if key is not None:
            try:
                key_text = self.acquirer.acquire(key)
            except (AcquisitionError, UpstreamServiceError) as e:
                logger.warning(
                    f"Answer key for submission {submission.id} unusable, "
                    f"evaluating without it: {e.message}"
                )

        course_context = assemble_course_context(self.db, submission.course_id)

        record = self.invoker.evaluate(sheet_text, key_text, course_context)

        evaluation = self.persister.save_success(submission, sheet_text, record)
        logger.info(
            f"Evaluation completed for submission {submission.id}: "
            f"score={record.total_score}/{record.max_score}"
        )
        return EvaluationOutcome(submission=submission, evaluation=evaluation, record=record)


def build_text_cache(config: Settings) -> Optional[TextCache]:
    if not config.OCR_CACHE_ENABLED:
        return None
    from examprep.workers.queue import get_redis_connection

    return RedisTextCache(get_redis_connection(), ttl_seconds=config.OCR_CACHE_TTL_SECONDS)


def build_pipeline(
    db: Session,
    config: Optional[Settings] = None,
    *,
    storage: Optional[ObjectStorage] = None,
    llm: Optional[LLMGatewayClient] = None,
    cache: Optional[TextCache] = None,
) -> EvaluationPipeline:
    config = config or default_settings
    storage = storage or ObjectStorage(config)
    llm = llm or LLMGatewayClient(config)
    if cache is None:
        cache = build_text_cache(config)
    resolver = IngestionResolver(storage, config)
    return EvaluationPipeline(
        db,
        resolver=resolver,
        acquirer=default_text_acquirer(resolver, llm, cache),
        invoker=EvaluationInvoker(llm),
    )


def run_evaluation_for_submission(
    db: Session,
    request: EvaluateAnswerSheetRequest,
    *,
    config: Optional[Settings] = None,
) -> EvaluationOutcome:
    """
    API / worker entry point: build the collaborators from settings and run once.
    """
    config = config or default_settings
    llm = LLMGatewayClient(config)
    try:
        pipeline = build_pipeline(db, config, llm=llm)
        return pipeline.run(request)
    finally:
        llm.close()
