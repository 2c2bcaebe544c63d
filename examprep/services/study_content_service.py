# examprep/services/study_content_service.py
"""
Study aids generated from a course syllabus: per module a bullet summary,
a mind map and a list of acronyms.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from examprep.core.config import Settings, settings as default_settings
from examprep.models.generated_content import GeneratedContent
from examprep.services.errors import GenerationError, PersistenceError, SchemaError
from examprep.services.json_payload import loads_fenced
from examprep.services.llm_client import LLMGatewayClient
from examprep.services.material_service import list_materials_for_course
from examprep.services.storage_client import (
    ObjectStorage,
    StorageError,
    extract_storage_key,
)

logger = logging.getLogger(__name__)

MIN_SYLLABUS_LENGTH = 50

STUDY_CONTENT_SYSTEM_PROMPT = (
    "You are an expert educator creating study materials. Generate comprehensive, "
    "detailed study content strictly based ONLY on the provided syllabus. Cover ALL "
    "topics and subtopics mentioned in the syllabus with detailed bullet points, a "
    "mindmap structure, and acronyms."
)

MINDMAP_COLORS = [
    "#FF6B6B", "#4ECDC4", "#95E1D3", "#FFA500",
    "#9D50BB", "#FF69B4", "#32CD32", "#FFD700",
]


def build_study_content_prompt(syllabus_text: str) -> str:
    return (
        "Analyze this syllabus carefully and generate detailed study content that "
        "strictly follows it.\n\n"
        f"SYLLABUS CONTENT:\n{syllabus_text}\n\n"
        "YOUR TASK:\n"
        "1. Identify ALL modules/units/topics mentioned in the syllabus\n"
        "2. For EACH module, create:\n"
        "   - Comprehensive bullet-point summary covering ALL subtopics "
        "(10-20 detailed points per module)\n"
        "   - A hierarchical mindmap with central topic, main branches, and sub-branches\n"
        "   - Helpful acronyms for memorizing key concepts\n\n"
        "CRITICAL REQUIREMENTS:\n"
        "- Stay 100% within syllabus scope - DO NOT add external topics\n"
        "- Bullet points should be detailed explanations, not just topic names\n"
        f"- Use diverse colors for mindmap branches ({', '.join(MINDMAP_COLORS)})\n"
        "- Each mindmap should have 4-8 main branches with 2-5 subbranches each\n\n"
        "Return ONLY a valid JSON object (no markdown, no code blocks, no extra text):\n"
        '{"modules": [{"name": "...", "summary": ["..."], '
        '"mindmap": {"central": "...", "branches": [{"name": "...", "color": "#FF6B6B", '
        '"subbranches": ["..."]}]}, '
        '"acronyms": [{"acronym": "...", "meaning": "..."}]}]}'
    )


def parse_modules(raw: str) -> List[Dict[str, Any]]:
    try:
        data = loads_fenced(raw)
    except ValueError as e:
        logger.error(f"Study content JSON parse failed: {raw[:500]}")
        raise SchemaError() from e
    modules = data.get("modules") if isinstance(data, dict) else None
    if not isinstance(modules, list):
        raise SchemaError("AI output missing the mandatory 'modules' array.")
    return [m for m in modules if isinstance(m, dict)]


def _load_syllabus_text(
    db: Session,
    storage: ObjectStorage,
    *,
    course_id: str,
    user_id: str,
    config: Settings,
) -> str:
    materials = list_materials_for_course(db, course_id=course_id, user_id=user_id)
    if not materials:
        raise GenerationError("No resources found for this course and user.", status_code=404)

    syllabus = next((m for m in materials if m.resource_type == "syllabus"), None)
    if syllabus is None or not syllabus.file_path:
        raise GenerationError("Mandatory syllabus file path not found.", status_code=404)

    key = extract_storage_key(syllabus.file_path, config.SYLLABUS_BUCKET)
    try:
        content = storage.download(config.SYLLABUS_BUCKET, key)
    except StorageError as e:
        logger.error(f"Error downloading syllabus {key}: {e}")
        raise GenerationError("Failed to download syllabus from storage.", status_code=404) from e

    text = content.decode("utf-8", errors="replace")
    if len(text) < MIN_SYLLABUS_LENGTH:
        raise GenerationError(
            "Syllabus content is too short or empty after download.", status_code=400
        )
    return text


def generate_study_content(
    db: Session,
    storage: ObjectStorage,
    llm: LLMGatewayClient,
    *,
    course_id: str,
    user_id: str,
    config: Optional[Settings] = None,
) -> List[GeneratedContent]:
    config = config or default_settings
    syllabus_text = _load_syllabus_text(
        db, storage, course_id=course_id, user_id=user_id, config=config
    )
    logger.info(f"Generating study content from syllabus of {len(syllabus_text)} characters")

    raw = llm.complete_text(
        [
            {"role": "system", "content": STUDY_CONTENT_SYSTEM_PROMPT},
            {"role": "user", "content": build_study_content_prompt(syllabus_text)},
        ]
    )
    modules = parse_modules(raw)

    rows: List[GeneratedContent] = []
    for module in modules:
        name = str(module.get("name") or "Untitled module")
        rows.extend(
            [
                GeneratedContent(
                    course_id=course_id, user_id=user_id, module_name=name,
                    content_type="summary", content=module.get("summary") or [],
                ),
                GeneratedContent(
                    course_id=course_id, user_id=user_id, module_name=name,
                    content_type="mindmap", content=module.get("mindmap") or {},
                ),
                GeneratedContent(
                    course_id=course_id, user_id=user_id, module_name=name,
                    content_type="acronyms", content=module.get("acronyms") or [],
                ),
            ]
        )
    try:
        db.add_all(rows)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceError("Failed to store generated content.") from e

    logger.info(f"Stored study content for {len(modules)} modules of course {course_id}")
    return rows


def list_study_content(
    db: Session,
    *,
    course_id: str,
    user_id: Optional[str] = None,
) -> List[GeneratedContent]:
    query = db.query(GeneratedContent).filter(GeneratedContent.course_id == course_id)
    if user_id is not None:
        query = query.filter(GeneratedContent.user_id == user_id)
    return query.order_by(GeneratedContent.created_at.asc()).all()
