# examprep/schemas/mock_paper.py
from typing import Any, List, Literal

from pydantic import BaseModel, Field
from datetime import datetime


class MockPaperCreate(BaseModel):
    user_id: str
    title: str
    question_type: Literal["mcq", "long_answer"] = "mcq"
    total_marks: int = Field(default=20, gt=0)
    duration_minutes: int = Field(default=60, gt=0)


class MockQuestionPublic(BaseModel):
    id: str
    question_text: str
    question_type: str
    marks: int | None = None
    options: List[Any] | None = None
    correct_answer: str | None = None
    concept_tags: List[str] | None = None

    model_config = {"from_attributes": True}


class MockPaperPublic(BaseModel):
    id: str
    course_id: str
    user_id: str
    title: str
    question_type: str
    total_marks: int
    duration_minutes: int
    created_at: datetime | None = None
    questions: List[MockQuestionPublic] = []

    model_config = {"from_attributes": True}
