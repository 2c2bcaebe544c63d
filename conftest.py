"""
Shared pytest fixtures.

Collaborators that talk to the network (object storage, LLM gateway, RQ)
are replaced with in-memory fakes; the database is an in-memory SQLite.
"""

import json
import os

# Settings are read at import time, so configure before importing examprep
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LLM_API_KEY", "test-llm-key")
os.environ.setdefault("OCR_CACHE_ENABLED", "false")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from examprep.core.config import settings
from examprep.db.base import Base
from examprep.db.session import engine_options
from examprep.models.resource_material import ResourceMaterial
from examprep.models.submission import Submission
from examprep.services.storage_client import ObjectNotFoundError

TEST_DATABASE_URL = "sqlite://"

USER_ID = "11111111-1111-1111-1111-111111111111"
COURSE_ID = "22222222-2222-2222-2222-222222222222"


class FakeStorage:
    """In-memory object storage keyed by (bucket, path)."""

    def __init__(self, objects=None):
        self.objects = dict(objects or {})
        self.downloads = []
        self.uploads = []
        self.deleted = []

    def download(self, bucket, path):
        self.downloads.append((bucket, path))
        if (bucket, path) not in self.objects:
            raise ObjectNotFoundError(f"{bucket}/{path} not found")
        return self.objects[(bucket, path)]

    def upload(self, bucket, path, content, content_type=None):
        self.uploads.append((bucket, path, content_type))
        self.objects[(bucket, path)] = content

    def delete(self, bucket, path):
        self.deleted.append((bucket, path))
        self.objects.pop((bucket, path), None)


def tool_call_message(arguments, name="submit_evaluation"):
    return {
        "role": "assistant",
        "content": None,
        "tool_calls": [
            {
                "id": "call_1",
                "type": "function",
                "function": {
                    "name": name,
                    "arguments": arguments if isinstance(arguments, str) else json.dumps(arguments),
                },
            }
        ],
    }


SAMPLE_EVALUATION = {
    "total_score": 7,
    "max_score": 10,
    "weak_areas": ["Arithmetic"],
    "improvement_suggestions": "Show your working for calculations.",
    "detailed_analytics": {
        "questions": [
            {
                "question_number": "1",
                "question_text": "Capital of France?",
                "student_answer": "Paris",
                "expected_answer": "Paris",
                "score": 5,
                "max_score": 5,
                "feedback": "Correct.",
                "improvement_tip": "None needed.",
            },
            {
                "question_number": "2",
                "question_text": "6 x 7?",
                "student_answer": "42",
                "expected_answer": "42 with working",
                "score": 2,
                "max_score": 5,
                "feedback": "Right answer, no working shown.",
                "improvement_tip": "Write out the multiplication.",
            },
        ],
        "concept_wise_performance": {
            "Geography": {"score": 5, "max_score": 5, "percentage": 100},
            "Arithmetic": {"score": 2, "max_score": 5, "percentage": 40},
        },
        "strengths": ["Recall of facts"],
        "areas_to_focus": ["Presenting working"],
    },
}


class ScriptedLLM:
    """Stands in for LLMGatewayClient and records every call."""

    def __init__(self, *, ocr_text="Q1: Paris\nQ2: 42", evaluation=None, message=None, completion=None):
        self.ocr_text = ocr_text
        self.message = message if message is not None else tool_call_message(
            evaluation if evaluation is not None else SAMPLE_EVALUATION
        )
        self.completion = completion
        self.ocr_calls = []
        self.chat_calls = []
        self.completion_calls = []

    def extract_text(self, instruction, image_urls):
        self.ocr_calls.append((instruction, list(image_urls)))
        if isinstance(self.ocr_text, Exception):
            raise self.ocr_text
        return self.ocr_text

    def chat(self, messages, *, tools=None, tool_choice=None):
        self.chat_calls.append({"messages": messages, "tools": tools, "tool_choice": tool_choice})
        if isinstance(self.message, Exception):
            raise self.message
        return self.message

    def complete_text(self, messages):
        self.completion_calls.append(messages)
        if isinstance(self.completion, Exception):
            raise self.completion
        return self.completion

    def close(self):
        pass


@pytest.fixture(scope="function")
def db_session():
    """Create a test database session."""
    engine = create_engine(TEST_DATABASE_URL, **engine_options(TEST_DATABASE_URL))
    Base.metadata.create_all(bind=engine)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def test_settings():
    return settings.model_copy(update={"MAX_OCR_PAGES": 5, "OCR_CACHE_ENABLED": False})


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def llm():
    return ScriptedLLM()


def make_submission(db, *, sheet_path="user/sheet.jpg", key_path=None, status="not_started"):
    submission = Submission(
        user_id=USER_ID,
        course_id=COURSE_ID,
        answer_sheet_path=sheet_path,
        answer_key_path=key_path,
        processing_status=status,
    )
    db.add(submission)
    db.commit()
    db.refresh(submission)
    return submission


def add_material(db, file_name, *, resource_type="notes", file_path=None, user_id=USER_ID):
    material = ResourceMaterial(
        course_id=COURSE_ID,
        user_id=user_id,
        file_name=file_name,
        file_path=file_path or f"{user_id}/{file_name}",
        resource_type=resource_type,
    )
    db.add(material)
    db.commit()
    db.refresh(material)
    return material


@pytest.fixture
def image_submission(db_session):
    return make_submission(db_session, sheet_path=f"{USER_ID}/1700000000000_sheet.jpg")


@pytest.fixture
def pdf_submission(db_session):
    return make_submission(db_session, sheet_path=f"{USER_ID}/1700000000000_sheet.pdf")
