# examprep/api/v1/endpoints/evaluations.py
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from examprep.api.deps import get_pipeline
from examprep.schemas.evaluation import (
    EvaluateAnswerSheetRequest,
    EvaluateAnswerSheetResponse,
)
from examprep.services.errors import EvaluationError
from examprep.services.evaluation_service import EvaluationPipeline

router = APIRouter(tags=["evaluations"])


def failure_response(status_code: int, message: str) -> JSONResponse:
    # 所有失败统一：非 2xx + {"success": false, "error": ...}
    return JSONResponse(
        status_code=status_code,
        content=EvaluateAnswerSheetResponse(success=False, error=message).model_dump(
            exclude_none=True
        ),
    )


@router.post("/evaluate-answer-sheet", response_model=EvaluateAnswerSheetResponse)
def evaluate_answer_sheet(
    payload: EvaluateAnswerSheetRequest,
    pipeline: EvaluationPipeline = Depends(get_pipeline),
):
    """
    Run the whole evaluation pipeline for one submission inside the request.
    """
    if not payload.submission_id or not payload.submission_id.strip():
        return failure_response(400, "Submission ID is required")

    try:
        outcome = pipeline.run(payload)
    except EvaluationError as e:
        return failure_response(e.status_code, e.message)

    return EvaluateAnswerSheetResponse(success=True, evaluation=outcome.record.to_response())
