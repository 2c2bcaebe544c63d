"""
Evaluation Tasks for Worker
These tasks are executed by RQ workers to evaluate answer sheets in the background
"""

import logging
from typing import Any, Dict, Optional

from examprep.db.session import SessionLocal
from examprep.schemas.evaluation import EvaluateAnswerSheetRequest
from examprep.services.errors import EvaluationError
from examprep.services.evaluation_service import run_evaluation_for_submission

logger = logging.getLogger(__name__)


def evaluation_task(submission_id: str, request: Optional[Dict[str, Any]] = None) -> dict:
    """
    Worker task to run the evaluation pipeline for one submission.

    ``request`` carries the optional pre-extracted text / page images, using
    the same field names as the HTTP body. The submission's processing_status
    is the source of truth; the returned dict is only a job summary.
    """
    db = SessionLocal()
    try:
        logger.info(f"Starting evaluation task for submission {submission_id}")
        payload = dict(request or {})
        payload["submission_id"] = submission_id
        outcome = run_evaluation_for_submission(
            db, EvaluateAnswerSheetRequest.model_validate(payload)
        )
        return {
            "status": "success",
            "submission_id": submission_id,
            "evaluation_id": outcome.evaluation.id,
            "total_score": outcome.record.total_score,
            "max_score": outcome.record.max_score,
            "message": f"Successfully evaluated submission {submission_id}",
        }

    except EvaluationError as e:
        logger.error(f"Evaluation failed for submission {submission_id}: {e.message}")
        return {
            "status": "error",
            "submission_id": submission_id,
            "error": e.message,
            "message": f"Evaluation failed for submission {submission_id}",
        }

    except Exception as e:
        logger.error(
            f"Unexpected error during evaluation task for submission {submission_id}: {e}",
            exc_info=True,
        )
        return {
            "status": "error",
            "submission_id": submission_id,
            "error": str(e),
            "message": "Unexpected error during evaluation",
        }

    finally:
        db.close()
