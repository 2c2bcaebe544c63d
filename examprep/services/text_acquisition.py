# examprep/services/text_acquisition.py
"""
Text Acquisition: turn each document into plain text by the cheapest method.

Strategies are tried in a fixed priority order and the first one that
applies wins:

1. caller-supplied extracted text, used as-is
2. vision OCR over caller-supplied page images
3. vision OCR over the raw stored file, images only

A stored PDF with neither text nor page images is rejected before any
download or OCR call; PDFs have to be rendered to text or images upstream.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Iterable, List, Optional, Protocol

from examprep.services.errors import AcquisitionError
from examprep.services.ingestion import (
    ROLE_ANSWER_KEY,
    DocumentSource,
    IngestionResolver,
)
from examprep.services.llm_client import LLMGatewayClient

logger = logging.getLogger(__name__)

ANSWER_SHEET_OCR_INSTRUCTION = (
    "You are transcribing a student's handwritten or printed exam answer sheet.\n"
    "Identify every question the student answered and output one block per question "
    "in exactly this format:\n"
    "Q<n>: <answer text>\n"
    "Preserve all visible work: steps, formulas, diagrams described in words, and "
    "crossed-out attempts that are still legible. Do not correct, summarise or grade "
    "the answers. Output only the transcription."
)

ANSWER_KEY_OCR_INSTRUCTION = (
    "Extract text from this answer key / question paper.\n"
    "Identify every question and its expected answer if present, and output one block "
    "per question in exactly this format:\n"
    "Q<n>: <question text> | Expected: <expected answer or 'not provided'>\n"
    "Output only the extracted content."
)


def ocr_instruction_for(role: str) -> str:
    return ANSWER_KEY_OCR_INSTRUCTION if role == ROLE_ANSWER_KEY else ANSWER_SHEET_OCR_INSTRUCTION


class TextCache(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, text: str) -> None: ...


class RedisTextCache:
    """OCR results keyed by submission, document role and a hash of the OCR input."""

    def __init__(self, redis_conn, *, ttl_seconds: int) -> None:
        self._redis = redis_conn
        self._ttl = ttl_seconds

    def get(self, key: str) -> Optional[str]:
        value = self._redis.get(key)
        if value is None:
            return None
        return value.decode("utf-8") if isinstance(value, bytes) else str(value)

    def set(self, key: str, text: str) -> None:
        self._redis.set(key, text, ex=self._ttl)


def ocr_cache_key(document: DocumentSource, image_urls: Iterable[str]) -> str:
    digest = hashlib.sha256()
    for url in image_urls:
        digest.update(url.encode("utf-8"))
    return f"examprep:ocr:{document.submission_id}:{document.role}:{digest.hexdigest()}"


class VisionOcr:
    def __init__(self, llm: LLMGatewayClient, cache: Optional[TextCache] = None) -> None:
        self.llm = llm
        self.cache = cache

    def run(self, document: DocumentSource, image_urls: List[str]) -> str:
        key = ocr_cache_key(document, image_urls) if self.cache is not None else None
        if key is not None:
            cached = self.cache.get(key)
            if cached:
                logger.info(f"OCR cache hit for {document.role} of submission {document.submission_id}")
                return cached

        logger.info(f"Running vision OCR on {len(image_urls)} page(s) of {document.role}")
        text = self.llm.extract_text(ocr_instruction_for(document.role), image_urls)
        if not text or not text.strip():
            raise AcquisitionError(
                f"No text could be extracted from the {document.role.replace('_', ' ')}."
            )
        logger.info(f"Extracted {document.role} text length: {len(text)}")

        if key is not None:
            self.cache.set(key, text)
        return text


class AcquisitionStrategy:
    name = "base"

    def acquire(self, document: DocumentSource) -> Optional[str]:
        """Return the text, ``None`` when not applicable, or raise AcquisitionError."""
        raise NotImplementedError


class SuppliedTextStrategy(AcquisitionStrategy):
    name = "supplied_text"

    def acquire(self, document: DocumentSource) -> Optional[str]:
        if document.supplied_text and document.supplied_text.strip():
            return document.supplied_text
        return None


class PageImageOcrStrategy(AcquisitionStrategy):
    name = "page_image_ocr"

    def __init__(self, ocr: VisionOcr) -> None:
        self.ocr = ocr

    def acquire(self, document: DocumentSource) -> Optional[str]:
        if not document.supplied_images:
            return None
        return self.ocr.run(document, document.supplied_images)


class RawFileOcrStrategy(AcquisitionStrategy):
    name = "raw_file_ocr"

    def __init__(self, resolver: IngestionResolver, ocr: VisionOcr) -> None:
        self.resolver = resolver
        self.ocr = ocr

    def acquire(self, document: DocumentSource) -> Optional[str]:
        if not document.path:
            return None
        if document.is_pdf:
            raise AcquisitionError(
                "PDF answer sheets must be submitted with extracted text or page images."
            )
        stored = self.resolver.download(document)
        return self.ocr.run(document, [stored.to_data_uri()])


class TextAcquirer:
    def __init__(self, strategies: List[AcquisitionStrategy]) -> None:
        self.strategies = strategies

    def acquire(self, document: DocumentSource) -> str:
        for strategy in self.strategies:
            text = strategy.acquire(document)
            if text is not None:
                logger.info(f"Acquired {document.role} text via {strategy.name}")
                return text
        raise AcquisitionError(
            f"No readable source for the {document.role.replace('_', ' ')}."
        )


def default_text_acquirer(
    resolver: IngestionResolver,
    llm: LLMGatewayClient,
    cache: Optional[TextCache] = None,
) -> TextAcquirer:
    ocr = VisionOcr(llm, cache)
    return TextAcquirer(
        [
            SuppliedTextStrategy(),
            PageImageOcrStrategy(ocr),
            RawFileOcrStrategy(resolver, ocr),
        ]
    )
