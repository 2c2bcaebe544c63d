# examprep/models/mock_paper.py
import uuid

from sqlalchemy import Column, String, Integer, Text, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from examprep.db.base_class import Base

QUESTION_TYPES = ("mcq", "long_answer")


class MockPaper(Base):
    __tablename__ = "mock_papers"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    course_id = Column(String(36), nullable=False, index=True)
    user_id = Column(String(36), nullable=False, index=True)

    title = Column(String(255), nullable=False)
    question_type = Column(String(20), nullable=False)
    total_marks = Column(Integer, nullable=False)
    duration_minutes = Column(Integer, nullable=False, default=60)

    questions = relationship(
        "MockQuestion",
        back_populates="paper",
        cascade="all, delete-orphan",
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())


class MockQuestion(Base):
    __tablename__ = "mock_questions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    mock_paper_id = Column(
        String(36), ForeignKey("mock_papers.id"), nullable=False, index=True
    )

    question_text = Column(Text, nullable=False)
    question_type = Column(String(20), nullable=False)
    marks = Column(Integer, nullable=True)

    # mcq only: [{"text": ..., "is_correct": bool}, ...]
    options = Column(JSON, nullable=True)
    # long_answer only
    correct_answer = Column(Text, nullable=True)
    concept_tags = Column(JSON, nullable=True)

    paper = relationship("MockPaper", back_populates="questions")
