# examprep/models/resource_material.py
import uuid

from sqlalchemy import Column, String, Integer, DateTime
from sqlalchemy.sql import func

from examprep.db.base_class import Base

RESOURCE_TYPES = ("syllabus", "notes", "question_paper", "other")


class ResourceMaterial(Base):
    __tablename__ = "resource_materials"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    course_id = Column(String(36), nullable=False, index=True)
    user_id = Column(String(36), nullable=False, index=True)

    file_name = Column(String(255), nullable=False)
    file_path = Column(String(1024), nullable=False)
    file_size = Column(Integer, nullable=True)
    resource_type = Column(String(30), nullable=False, default="other")

    created_at = Column(DateTime(timezone=True), server_default=func.now())
