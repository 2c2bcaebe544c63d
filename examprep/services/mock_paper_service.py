# examprep/services/mock_paper_service.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from examprep.models.mock_paper import MockPaper, MockQuestion
from examprep.schemas.mock_paper import MockPaperCreate
from examprep.services.errors import GenerationError, PersistenceError, SchemaError
from examprep.services.json_payload import loads_fenced_object
from examprep.services.llm_client import LLMGatewayClient
from examprep.services.study_content_service import list_study_content

logger = logging.getLogger(__name__)

LONG_ANSWER_MARKS = 10


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def question_count(question_type: str, total_marks: int) -> int:
    # mcq: 1 mark each / long_answer: 10 marks each
    if question_type == "mcq":
        return total_marks
    return total_marks // LONG_ANSWER_MARKS


def build_course_context(db: Session, *, course_id: str, user_id: str) -> str:
    content = list_study_content(db, course_id=course_id, user_id=user_id)
    if not content:
        raise GenerationError(
            "No study content found. Please generate study materials first.",
            status_code=404,
        )
    blocks = []
    for row in content:
        if row.content_type == "summary" and isinstance(row.content, list):
            summary = "\n".join(str(point) for point in row.content)
            blocks.append(f"Module: {row.module_name}\nSummary:\n{summary}")
        else:
            blocks.append(f"Module: {row.module_name}")
    return "\n\n".join(blocks)


def build_mock_paper_messages(
    question_type: str,
    num_questions: int,
    course_context: str,
) -> List[Dict[str, Any]]:
    is_mcq = question_type == "mcq"
    kind = "multiple choice questions with 4 options" if is_mcq else "long answer questions"
    if is_mcq:
        item_shape = (
            '"options": [{"text": "Option A", "is_correct": false}, '
            '{"text": "Option B", "is_correct": true}, '
            '{"text": "Option C", "is_correct": false}, '
            '{"text": "Option D", "is_correct": false}], "marks": 1'
        )
        rule = "Each MCQ must have 4 options with only one correct answer"
    else:
        item_shape = '"answer": "Expected answer outline", "marks": 10'
        rule = "Each question should be worth 10 marks"
    return [
        {
            "role": "system",
            "content": (
                f"You are an expert exam paper creator. Generate {kind} STRICTLY based on "
                "the provided course content. Do not add questions from outside the given "
                "material."
            ),
        },
        {
            "role": "user",
            "content": (
                f"Based ONLY on the following course content, generate {num_questions} "
                f"{'MCQ' if is_mcq else 'long answer'} questions for a mock exam.\n\n"
                f"COURSE CONTENT:\n{course_context}\n\n"
                "REQUIREMENTS:\n"
                f"- Generate EXACTLY {num_questions} questions\n"
                f"- {rule}\n"
                "- Questions must cover different modules proportionally\n"
                "- Questions should test understanding, not just recall\n"
                "- Stay STRICTLY within the provided content\n\n"
                "Format as valid JSON (no markdown, no code blocks):\n"
                f'{{"questions": [{{"text": "Question text", {item_shape}, '
                '"concept": "Main concept/module tested"}]}'
            ),
        },
    ]


def parse_questions(raw: str) -> List[Dict[str, Any]]:
    try:
        data = loads_fenced_object(raw)
    except ValueError as e:
        logger.error(f"Mock paper JSON parse failed: {raw[:500]}")
        raise SchemaError() from e
    questions = data.get("questions") if isinstance(data, dict) else None
    if not isinstance(questions, list):
        raise SchemaError()
    return [q for q in questions if isinstance(q, dict) and q.get("text")]


def generate_mock_paper(
    db: Session,
    llm: LLMGatewayClient,
    *,
    course_id: str,
    obj_in: MockPaperCreate,
) -> MockPaper:
    num_questions = question_count(obj_in.question_type, obj_in.total_marks)
    if num_questions < 1:
        raise GenerationError(
            "Total marks too low for the selected question type.", status_code=400
        )
    course_context = build_course_context(db, course_id=course_id, user_id=obj_in.user_id)

    raw = llm.complete_text(
        build_mock_paper_messages(obj_in.question_type, num_questions, course_context)
    )
    questions = parse_questions(raw)
    logger.info(f"Generated {len(questions)} {obj_in.question_type} questions for course {course_id}")

    is_mcq = obj_in.question_type == "mcq"
    paper = MockPaper(
        course_id=course_id,
        user_id=obj_in.user_id,
        title=obj_in.title,
        question_type=obj_in.question_type,
        total_marks=obj_in.total_marks,
        duration_minutes=obj_in.duration_minutes,
    )
    for q in questions:
        paper.questions.append(
            MockQuestion(
                question_text=str(q["text"]),
                question_type=obj_in.question_type,
                marks=_as_int(q.get("marks")),
                options=q.get("options") if is_mcq else None,
                correct_answer=None if is_mcq else q.get("answer"),
                concept_tags=[q["concept"]] if q.get("concept") else None,
            )
        )
    try:
        db.add(paper)
        db.commit()
        db.refresh(paper)
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceError("Failed to save questions.") from e
    return paper


def get_mock_paper(db: Session, paper_id: str) -> Optional[MockPaper]:
    return db.get(MockPaper, paper_id)
