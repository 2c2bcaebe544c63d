# examprep/schemas/study_content.py
from typing import Any

from pydantic import BaseModel
from datetime import datetime


class StudyContentRequest(BaseModel):
    user_id: str


class GeneratedContentPublic(BaseModel):
    id: str
    course_id: str
    user_id: str
    module_name: str
    content_type: str  # summary / mindmap / acronyms
    content: Any
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class StudyContentResult(BaseModel):
    success: bool = True
    modules: int
    message: str
