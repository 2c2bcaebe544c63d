# examprep/schemas/material.py
from typing import Literal

from pydantic import BaseModel
from datetime import datetime


class MaterialBase(BaseModel):
    user_id: str
    file_name: str
    file_path: str
    file_size: int | None = None
    resource_type: Literal["syllabus", "notes", "question_paper", "other"] = "other"


class MaterialCreate(MaterialBase):
    pass


class MaterialPublic(MaterialBase):
    id: str
    course_id: str
    created_at: datetime | None = None

    model_config = {"from_attributes": True}
