# examprep/services/result_persister.py
from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from examprep.models.evaluation import Evaluation
from examprep.models.submission import (
    STATUS_COMPLETED,
    STATUS_FAILED,
    STATUS_PROCESSING,
    Submission,
)
from examprep.schemas.evaluation import EvaluationRecord
from examprep.services.errors import PersistenceError

logger = logging.getLogger(__name__)


class ResultPersister:
    def __init__(self, db: Session) -> None:
        self.db = db

    def _set_status(self, submission: Submission, status: str) -> None:
        submission.processing_status = status
        self.db.add(submission)
        self.db.commit()
        self.db.refresh(submission)

    def mark_processing(self, submission: Submission) -> None:
        try:
            self._set_status(submission, STATUS_PROCESSING)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError("Failed to update submission status.") from e

    def save_success(
        self,
        submission: Submission,
        sheet_text: str,
        record: EvaluationRecord,
    ) -> Evaluation:
        """
        Two separate commits: extracted text + ``completed`` first, then the
        Evaluation row. Between them the submission reads ``completed`` with no
        evaluation; readers must treat that as a display error.
        """
        try:
            submission.ocr_text = sheet_text
            self._set_status(submission, STATUS_COMPLETED)

            evaluation = Evaluation(
                submission_id=submission.id,
                user_id=submission.user_id,
                total_score=record.total_score,
                max_score=record.max_score,
                weak_areas=record.weak_areas,
                improvement_suggestions=record.improvement_suggestions,
                detailed_analytics=record.analytics_as_returned(),
            )
            self.db.add(evaluation)
            self.db.commit()
            self.db.refresh(evaluation)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Storing evaluation for submission {submission.id} failed: {e}")
            raise PersistenceError() from e
        return evaluation

    def mark_failed(self, submission_id: str) -> None:
        """Best effort: a failure here is logged, the original error is what the caller sees."""
        try:
            self.db.rollback()
            submission = self.db.get(Submission, submission_id)
            if submission is None:
                return
            self._set_status(submission, STATUS_FAILED)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to mark submission {submission_id} as failed: {e}")
