# examprep/services/submission_service.py
import logging
import time
from typing import List, Optional

from sqlalchemy.orm import Session

from examprep.core.config import Settings, settings as default_settings
from examprep.models.evaluation import Evaluation
from examprep.models.submission import STATUS_NOT_STARTED, Submission
from examprep.schemas.submission import SubmissionCreate
from examprep.services.ingestion import mime_type_for
from examprep.services.storage_client import ObjectStorage, StorageError

logger = logging.getLogger(__name__)


def create_submission(db: Session, *, obj_in: SubmissionCreate) -> Submission:
    """
    登记一份已上传的答题卡；status 初始为 'not_started'
    """
    submission = Submission(
        user_id=obj_in.user_id,
        course_id=obj_in.course_id,
        answer_sheet_path=obj_in.answer_sheet_path,
        answer_key_path=obj_in.answer_key_path,
        processing_status=STATUS_NOT_STARTED,
    )
    db.add(submission)
    db.commit()
    db.refresh(submission)
    return submission


def storage_path_for(user_id: str, file_name: str) -> str:
    return f"{user_id}/{int(time.time() * 1000)}_{file_name}"


def upload_and_create_submission(
    db: Session,
    storage: ObjectStorage,
    *,
    user_id: str,
    course_id: str,
    sheet_name: str,
    sheet_content: bytes,
    key_name: Optional[str] = None,
    key_content: Optional[bytes] = None,
    config: Optional[Settings] = None,
) -> Submission:
    """Upload the answer sheet (and key) to object storage, then register the submission."""
    config = config or default_settings

    sheet_path = storage_path_for(user_id, sheet_name)
    storage.upload(
        config.ANSWER_SHEET_BUCKET, sheet_path, sheet_content, mime_type_for(sheet_name)
    )

    key_path = None
    if key_name and key_content:
        key_path = storage_path_for(user_id, key_name)
        storage.upload(config.ANSWER_KEY_BUCKET, key_path, key_content, mime_type_for(key_name))

    return create_submission(
        db,
        obj_in=SubmissionCreate(
            user_id=user_id,
            course_id=course_id,
            answer_sheet_path=sheet_path,
            answer_key_path=key_path,
        ),
    )


def get_submission(db: Session, submission_id: str) -> Optional[Submission]:
    return db.get(Submission, submission_id)


def list_submissions_for_user(
    db: Session,
    *,
    user_id: str,
    skip: int = 0,
    limit: int = 100,
) -> List[Submission]:
    return (
        db.query(Submission)
        .filter(Submission.user_id == user_id)
        .order_by(Submission.created_at.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )


def get_latest_evaluation(db: Session, submission_id: str) -> Optional[Evaluation]:
    # 重试会产生新行，取最新一条
    return (
        db.query(Evaluation)
        .filter(Evaluation.submission_id == submission_id)
        .order_by(Evaluation.created_at.desc(), Evaluation.id.desc())
        .first()
    )


def delete_submission(
    db: Session,
    *,
    db_obj: Submission,
    storage: Optional[ObjectStorage] = None,
    config: Optional[Settings] = None,
) -> None:
    """
    用户主动删除：先删 evaluations（relationship cascade），再删 submission；
    存储里的文件尽力删除
    """
    config = config or default_settings
    files = [(config.ANSWER_SHEET_BUCKET, db_obj.answer_sheet_path)]
    if db_obj.answer_key_path:
        files.append((config.ANSWER_KEY_BUCKET, db_obj.answer_key_path))

    db.delete(db_obj)
    db.commit()

    if storage is None:
        return
    for bucket, path in files:
        try:
            storage.delete(bucket, path)
        except StorageError as e:
            logger.warning(f"Could not delete stored file {bucket}/{path}: {e}")
