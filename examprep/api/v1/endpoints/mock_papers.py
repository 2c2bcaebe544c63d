# examprep/api/v1/endpoints/mock_papers.py
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from examprep.api.deps import get_llm_client
from examprep.db.session import get_db
from examprep.schemas.mock_paper import MockPaperCreate, MockPaperPublic
from examprep.services import mock_paper_service
from examprep.services.errors import EvaluationError
from examprep.services.llm_client import LLMGatewayClient

router = APIRouter(tags=["mock-papers"])


@router.post(
    "/courses/{course_id}/mock-papers",
    response_model=MockPaperPublic,
    status_code=status.HTTP_201_CREATED,
)
def generate_mock_paper(
    course_id: str,
    obj_in: MockPaperCreate,
    db: Session = Depends(get_db),
    llm: LLMGatewayClient = Depends(get_llm_client),
):
    try:
        return mock_paper_service.generate_mock_paper(
            db, llm, course_id=course_id, obj_in=obj_in
        )
    except EvaluationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/mock-papers/{paper_id}", response_model=MockPaperPublic)
def get_mock_paper(paper_id: str, db: Session = Depends(get_db)):
    paper = mock_paper_service.get_mock_paper(db, paper_id)
    if paper is None:
        raise HTTPException(status_code=404, detail="Mock paper not found")
    return paper
