# examprep/models/evaluation.py
import uuid

from sqlalchemy import Column, String, Text, DateTime, Float, ForeignKey, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from examprep.db.base_class import Base


class Evaluation(Base):
    """Structured scoring result for one pipeline run. Rows are never updated."""

    __tablename__ = "evaluations"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # one-to-one in practice, not enforced: a retry inserts a new row
    submission_id = Column(
        String(36), ForeignKey("post_exam_submissions.id"), nullable=False, index=True
    )
    user_id = Column(String(36), nullable=False, index=True)

    total_score = Column(Float, nullable=True)
    max_score = Column(Float, nullable=True)
    weak_areas = Column(JSON, nullable=True)
    improvement_suggestions = Column(Text, nullable=True)
    detailed_analytics = Column(JSON, nullable=True)

    submission = relationship("Submission", back_populates="evaluations")

    created_at = Column(DateTime(timezone=True), server_default=func.now())
