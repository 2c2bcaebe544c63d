# examprep/api/v1/endpoints/study_content.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from examprep.api.deps import get_llm_client, get_storage
from examprep.db.session import get_db
from examprep.schemas.study_content import (
    GeneratedContentPublic,
    StudyContentRequest,
    StudyContentResult,
)
from examprep.services import study_content_service
from examprep.services.errors import EvaluationError
from examprep.services.llm_client import LLMGatewayClient
from examprep.services.storage_client import ObjectStorage

router = APIRouter(prefix="/courses/{course_id}/study-content", tags=["study-content"])


@router.post("/", response_model=StudyContentResult, status_code=status.HTTP_201_CREATED)
def generate_study_content(
    course_id: str,
    payload: StudyContentRequest,
    db: Session = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
    llm: LLMGatewayClient = Depends(get_llm_client),
):
    """
    根据课程大纲生成摘要 / 思维导图 / 助记缩写。
    """
    try:
        rows = study_content_service.generate_study_content(
            db, storage, llm, course_id=course_id, user_id=payload.user_id
        )
    except EvaluationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    modules = len(rows) // 3
    return StudyContentResult(
        modules=modules,
        message=f"Successfully generated and stored content for {modules} modules.",
    )


@router.get("/", response_model=List[GeneratedContentPublic])
def list_study_content(
    course_id: str,
    db: Session = Depends(get_db),
    user_id: str | None = None,
):
    return study_content_service.list_study_content(db, course_id=course_id, user_id=user_id)
