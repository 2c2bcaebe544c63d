"""
Tests for the ingestion resolver and the text acquisition strategies.
"""

import base64

import pytest

from conftest import FakeStorage, ScriptedLLM, USER_ID, make_submission
from examprep.services.errors import AcquisitionError
from examprep.services.ingestion import (
    ROLE_ANSWER_KEY,
    ROLE_ANSWER_SHEET,
    IngestionResolver,
    mime_type_for,
)
from examprep.services.text_acquisition import (
    ANSWER_KEY_OCR_INSTRUCTION,
    ANSWER_SHEET_OCR_INSTRUCTION,
    default_text_acquirer,
)

SHEET_PATH = f"{USER_ID}/1700000000000_sheet.jpg"


class DictRedis:
    def __init__(self):
        self.store = {}
        self.expiry = {}

    def get(self, key):
        value = self.store.get(key)
        return value.encode("utf-8") if value is not None else None

    def set(self, key, value, ex=None):
        self.store[key] = value
        self.expiry[key] = ex


def _pages(n):
    return [f"data:image/png;base64,page{i}" for i in range(n)]


class TestMimeTypes:

    @pytest.mark.parametrize(
        "path, expected",
        [
            ("u/sheet.pdf", "application/pdf"),
            ("u/SHEET.PDF", "application/pdf"),
            ("u/sheet.png", "image/png"),
            ("u/sheet.jpeg", "image/jpeg"),
            ("u/sheet.heic", "image/jpeg"),
            ("u/no_extension", "image/jpeg"),
        ],
    )
    def test_extension_decides_mime(self, path, expected):
        assert mime_type_for(path) == expected


class TestIngestionResolver:

    def test_sheet_document_points_at_answer_sheet_bucket(self, db_session, test_settings):
        submission = make_submission(db_session, sheet_path=SHEET_PATH)
        resolver = IngestionResolver(FakeStorage(), test_settings)

        doc = resolver.resolve_answer_sheet(submission)

        assert doc.role == ROLE_ANSWER_SHEET
        assert doc.bucket == "answer-sheets"
        assert doc.path == SHEET_PATH
        assert doc.submission_id == submission.id

    def test_page_images_are_capped_in_order(self, db_session, test_settings):
        submission = make_submission(db_session)
        resolver = IngestionResolver(FakeStorage(), test_settings)

        doc = resolver.resolve_answer_sheet(submission, images=_pages(8))

        assert doc.supplied_images == _pages(5)

    def test_no_key_when_nothing_stored_or_supplied(self, db_session, test_settings):
        submission = make_submission(db_session, key_path=None)
        resolver = IngestionResolver(FakeStorage(), test_settings)

        assert resolver.resolve_answer_key(submission) is None
        assert resolver.resolve_answer_key(submission, text="   ") is None

    def test_supplied_key_text_without_stored_key(self, db_session, test_settings):
        submission = make_submission(db_session, key_path=None)
        resolver = IngestionResolver(FakeStorage(), test_settings)

        doc = resolver.resolve_answer_key(submission, text="Q1: Paris")

        assert doc.role == ROLE_ANSWER_KEY
        assert doc.bucket == "answer-keys"
        assert doc.supplied_text == "Q1: Paris"

    def test_download_missing_file_is_acquisition_error(self, db_session, test_settings):
        submission = make_submission(db_session, sheet_path=SHEET_PATH)
        resolver = IngestionResolver(FakeStorage(), test_settings)

        with pytest.raises(AcquisitionError):
            resolver.download(resolver.resolve_answer_sheet(submission))

    def test_download_builds_data_uri(self, db_session, test_settings):
        submission = make_submission(db_session, sheet_path=SHEET_PATH)
        storage = FakeStorage({("answer-sheets", SHEET_PATH): b"\xff\xd8jpeg"})
        resolver = IngestionResolver(storage, test_settings)

        stored = resolver.download(resolver.resolve_answer_sheet(submission))

        encoded = base64.b64encode(b"\xff\xd8jpeg").decode("ascii")
        assert stored.to_data_uri() == f"data:image/jpeg;base64,{encoded}"


class TestTextAcquisition:

    def _acquirer(self, storage, llm, settings, cache=None):
        resolver = IngestionResolver(storage, settings)
        return resolver, default_text_acquirer(resolver, llm, cache)

    def test_supplied_text_used_as_is_without_fetch(self, db_session, test_settings):
        submission = make_submission(db_session, sheet_path=SHEET_PATH)
        storage, llm = FakeStorage(), ScriptedLLM()
        resolver, acquirer = self._acquirer(storage, llm, test_settings)

        doc = resolver.resolve_answer_sheet(
            submission, text="Q1: Paris\nQ2: 42", images=_pages(2)
        )
        text = acquirer.acquire(doc)

        assert text == "Q1: Paris\nQ2: 42"
        assert storage.downloads == []
        assert llm.ocr_calls == []

    def test_blank_text_falls_through_to_page_images(self, db_session, test_settings):
        submission = make_submission(db_session, sheet_path=SHEET_PATH)
        storage, llm = FakeStorage(), ScriptedLLM(ocr_text="Q1: from pages")
        resolver, acquirer = self._acquirer(storage, llm, test_settings)

        doc = resolver.resolve_answer_sheet(submission, text="  \n ", images=_pages(7))
        text = acquirer.acquire(doc)

        assert text == "Q1: from pages"
        assert len(llm.ocr_calls) == 1
        instruction, images = llm.ocr_calls[0]
        assert instruction == ANSWER_SHEET_OCR_INSTRUCTION
        assert images == _pages(5)
        assert storage.downloads == []

    def test_raw_image_file_is_downloaded_and_ocrd(self, db_session, test_settings):
        submission = make_submission(db_session, sheet_path=SHEET_PATH)
        storage = FakeStorage({("answer-sheets", SHEET_PATH): b"jpeg-bytes"})
        llm = ScriptedLLM(ocr_text="Q1: raw")
        resolver, acquirer = self._acquirer(storage, llm, test_settings)

        text = acquirer.acquire(resolver.resolve_answer_sheet(submission))

        assert text == "Q1: raw"
        assert storage.downloads == [("answer-sheets", SHEET_PATH)]
        _, images = llm.ocr_calls[0]
        assert images[0].startswith("data:image/jpeg;base64,")

    def test_raw_pdf_rejected_before_download_or_ocr(self, db_session, test_settings):
        path = f"{USER_ID}/sheet.pdf"
        submission = make_submission(db_session, sheet_path=path)
        storage = FakeStorage({("answer-sheets", path): b"%PDF-1.7"})
        llm = ScriptedLLM()
        resolver, acquirer = self._acquirer(storage, llm, test_settings)

        with pytest.raises(AcquisitionError):
            acquirer.acquire(resolver.resolve_answer_sheet(submission))

        assert llm.ocr_calls == []
        assert storage.downloads == []

    def test_pdf_with_page_images_is_fine(self, db_session, test_settings):
        submission = make_submission(db_session, sheet_path=f"{USER_ID}/sheet.pdf")
        llm = ScriptedLLM(ocr_text="Q1: rendered")
        resolver, acquirer = self._acquirer(FakeStorage(), llm, test_settings)

        doc = resolver.resolve_answer_sheet(submission, images=_pages(2))

        assert acquirer.acquire(doc) == "Q1: rendered"

    def test_whitespace_ocr_result_is_failure(self, db_session, test_settings):
        submission = make_submission(db_session, sheet_path=SHEET_PATH)
        storage = FakeStorage({("answer-sheets", SHEET_PATH): b"jpeg"})
        llm = ScriptedLLM(ocr_text="   \n")
        resolver, acquirer = self._acquirer(storage, llm, test_settings)

        with pytest.raises(AcquisitionError):
            acquirer.acquire(resolver.resolve_answer_sheet(submission))

    def test_key_uses_key_instruction(self, db_session, test_settings):
        key_path = f"{USER_ID}/key.png"
        submission = make_submission(db_session, sheet_path=SHEET_PATH, key_path=key_path)
        storage = FakeStorage({("answer-keys", key_path): b"png"})
        llm = ScriptedLLM(ocr_text="Q1: Capital? | Expected: Paris")
        resolver, acquirer = self._acquirer(storage, llm, test_settings)

        acquirer.acquire(resolver.resolve_answer_key(submission))

        instruction, images = llm.ocr_calls[0]
        assert instruction == ANSWER_KEY_OCR_INSTRUCTION
        assert images[0].startswith("data:image/png;base64,")

    def test_repeated_acquisition_is_identical(self, db_session, test_settings):
        submission = make_submission(db_session, sheet_path=SHEET_PATH)
        storage = FakeStorage({("answer-sheets", SHEET_PATH): b"jpeg"})
        llm = ScriptedLLM(ocr_text="Q1: same")
        resolver, acquirer = self._acquirer(storage, llm, test_settings)
        doc = resolver.resolve_answer_sheet(submission)

        assert acquirer.acquire(doc) == acquirer.acquire(doc)

    def test_ocr_cache_skips_second_ocr_call(self, db_session, test_settings):
        from examprep.services.text_acquisition import RedisTextCache

        submission = make_submission(db_session, sheet_path=SHEET_PATH)
        storage = FakeStorage({("answer-sheets", SHEET_PATH): b"jpeg"})
        llm = ScriptedLLM(ocr_text="Q1: cached")
        redis = DictRedis()
        resolver, acquirer = self._acquirer(
            storage, llm, test_settings, cache=RedisTextCache(redis, ttl_seconds=60)
        )
        doc = resolver.resolve_answer_sheet(submission)

        first = acquirer.acquire(doc)
        second = acquirer.acquire(doc)

        assert first == second == "Q1: cached"
        assert len(llm.ocr_calls) == 1
        (key,) = redis.store
        assert key.startswith(f"examprep:ocr:{submission.id}:answer_sheet:")
        assert redis.expiry[key] == 60
