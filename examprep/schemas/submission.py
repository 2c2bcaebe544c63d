# examprep/schemas/submission.py
from pydantic import BaseModel
from datetime import datetime


class SubmissionBase(BaseModel):
    user_id: str
    course_id: str
    answer_sheet_path: str
    answer_key_path: str | None = None


class SubmissionCreate(SubmissionBase):
    pass


class SubmissionPublic(SubmissionBase):
    """轮询用：处理状态 + 基本信息（不含 OCR 文本）"""
    id: str
    processing_status: str  # not_started / processing / completed / failed

    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class SubmissionDetail(SubmissionPublic):
    ocr_text: str | None = None


class EnqueuedEvaluation(BaseModel):
    submission_id: str
    job_id: str
    processing_status: str
