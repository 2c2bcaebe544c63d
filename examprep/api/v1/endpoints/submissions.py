# examprep/api/v1/endpoints/submissions.py
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile, status
from redis.exceptions import RedisError
from rq import Queue
from sqlalchemy.orm import Session

from examprep.api.deps import get_evaluation_queue, get_storage
from examprep.db.session import get_db
from examprep.models.submission import STATUS_COMPLETED, STATUS_PROCESSING
from examprep.schemas.evaluation import EvaluateAnswerSheetRequest, EvaluationPublic
from examprep.schemas.submission import (
    EnqueuedEvaluation,
    SubmissionCreate,
    SubmissionDetail,
    SubmissionPublic,
)
from examprep.services import submission_service
from examprep.services.result_persister import ResultPersister
from examprep.services.storage_client import ObjectStorage, StorageError
from examprep.workers.queue import enqueue_evaluation_task

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/submissions", tags=["submissions"])


def _get_or_404(db: Session, submission_id: str):
    sub = submission_service.get_submission(db, submission_id)
    if not sub:
        raise HTTPException(status_code=404, detail="Submission not found")
    return sub


def _enqueue(db: Session, queue: Queue, submission, request: Optional[dict] = None) -> EnqueuedEvaluation:
    # 入队前先置为 processing，前端据此开始轮询；入队失败则置为 failed，避免一直轮询
    persister = ResultPersister(db)
    persister.mark_processing(submission)
    try:
        job_id = enqueue_evaluation_task(submission.id, request, queue=queue)
    except RedisError as e:
        logger.error(f"Could not enqueue evaluation for submission {submission.id}: {e}")
        persister.mark_failed(submission.id)
        raise HTTPException(
            status_code=503,
            detail="Evaluation queue is unavailable. Please try again later.",
        )
    return EnqueuedEvaluation(
        submission_id=submission.id,
        job_id=job_id,
        processing_status=STATUS_PROCESSING,
    )


@router.post("/", response_model=SubmissionPublic, status_code=status.HTTP_201_CREATED)
def create_submission(
    obj_in: SubmissionCreate,
    db: Session = Depends(get_db),
):
    """
    登记一份已经存入对象存储的答题卡。
    """
    return submission_service.create_submission(db, obj_in=obj_in)


@router.post("/upload", response_model=SubmissionPublic, status_code=status.HTTP_201_CREATED)
def upload_submission(
    user_id: str = Form(...),
    course_id: str = Form(...),
    evaluate: bool = Form(False),
    answer_sheet: UploadFile = File(...),
    answer_key: UploadFile | None = File(None),
    db: Session = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
    queue: Queue = Depends(get_evaluation_queue),
):
    """
    上传答题卡（和可选的答案）到对象存储并创建 submission；evaluate=true 时直接入队评分。
    """
    sheet_content = answer_sheet.file.read()
    if not sheet_content:
        raise HTTPException(status_code=400, detail="Answer sheet file is empty")
    key_content = answer_key.file.read() if answer_key is not None else None

    try:
        sub = submission_service.upload_and_create_submission(
            db,
            storage,
            user_id=user_id,
            course_id=course_id,
            sheet_name=answer_sheet.filename or "answer_sheet",
            sheet_content=sheet_content,
            key_name=answer_key.filename if answer_key is not None else None,
            key_content=key_content,
        )
    except StorageError as e:
        raise HTTPException(status_code=502, detail=f"Upload failed: {e}")

    if evaluate:
        _enqueue(db, queue, sub)
    return sub


@router.get("/", response_model=List[SubmissionPublic])
def list_submissions(
    user_id: str,
    db: Session = Depends(get_db),
    skip: int = 0,
    limit: int = 100,
):
    return submission_service.list_submissions_for_user(
        db, user_id=user_id, skip=skip, limit=limit
    )


@router.get("/{submission_id}", response_model=SubmissionDetail)
def get_submission(submission_id: str, db: Session = Depends(get_db)):
    """
    前端轮询 processing_status。
    """
    return _get_or_404(db, submission_id)


@router.get("/{submission_id}/evaluation", response_model=EvaluationPublic)
def get_submission_evaluation(submission_id: str, db: Session = Depends(get_db)):
    sub = _get_or_404(db, submission_id)
    evaluation = submission_service.get_latest_evaluation(db, submission_id)
    if evaluation is None:
        if sub.processing_status == STATUS_COMPLETED:
            # completed 但还没有 evaluation 行：显示错误，由调用方决定是否重试
            raise HTTPException(
                status_code=409,
                detail="Evaluation data not found. Please try uploading your answer sheet again.",
            )
        raise HTTPException(status_code=404, detail="Evaluation not available")
    return evaluation


@router.post(
    "/{submission_id}/evaluate",
    response_model=EnqueuedEvaluation,
    status_code=status.HTTP_202_ACCEPTED,
)
def enqueue_evaluation(
    submission_id: str,
    payload: EvaluateAnswerSheetRequest | None = None,
    db: Session = Depends(get_db),
    queue: Queue = Depends(get_evaluation_queue),
):
    """
    后台（RQ worker）跑完整评分流程；失败后的重试也走这里。
    """
    sub = _get_or_404(db, submission_id)
    request = payload.model_dump(exclude_none=True, exclude={"submission_id"}) if payload else None
    return _enqueue(db, queue, sub, request)


@router.delete("/{submission_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_submission(
    submission_id: str,
    db: Session = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
):
    sub = _get_or_404(db, submission_id)
    submission_service.delete_submission(db, db_obj=sub, storage=storage)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
