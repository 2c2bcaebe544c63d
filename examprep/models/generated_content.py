# examprep/models/generated_content.py
import uuid

from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.sql import func

from examprep.db.base_class import Base

# summary: list[str] / mindmap: dict / acronyms: list[dict]
CONTENT_TYPES = ("summary", "mindmap", "acronyms")


class GeneratedContent(Base):
    __tablename__ = "generated_content"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    course_id = Column(String(36), nullable=False, index=True)
    user_id = Column(String(36), nullable=False, index=True)

    module_name = Column(String(255), nullable=False)
    content_type = Column(String(20), nullable=False)
    content = Column(JSON, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
