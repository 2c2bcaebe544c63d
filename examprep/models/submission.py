# examprep/models/submission.py
import uuid

from sqlalchemy import Column, String, Text, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from examprep.db.base_class import Base

# processing_status 状态机: not_started -> processing -> completed / failed
STATUS_NOT_STARTED = "not_started"
STATUS_PROCESSING = "processing"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"

PROCESSING_STATUSES = (
    STATUS_NOT_STARTED,
    STATUS_PROCESSING,
    STATUS_COMPLETED,
    STATUS_FAILED,
)


def _new_id() -> str:
    return str(uuid.uuid4())


class Submission(Base):
    __tablename__ = "post_exam_submissions"

    id = Column(String(36), primary_key=True, default=_new_id)

    user_id = Column(String(36), nullable=False, index=True)
    course_id = Column(String(36), nullable=False, index=True)

    answer_sheet_path = Column(String(1024), nullable=False)
    answer_key_path = Column(String(1024), nullable=True)

    # OCR / 提取后的答题卡文本
    ocr_text = Column(Text, nullable=True)

    processing_status = Column(
        String(20), nullable=False, default=STATUS_NOT_STARTED, index=True
    )

    evaluations = relationship(
        "Evaluation",
        back_populates="submission",
        cascade="all, delete-orphan",
        order_by="Evaluation.created_at",
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )
