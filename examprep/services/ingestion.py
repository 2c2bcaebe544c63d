# examprep/services/ingestion.py
"""
Ingestion Resolver: decides what represents each document of a submission.

A document is either caller-supplied text, caller-supplied page images, or
the original file in object storage. Nothing is downloaded here unless a
strategy asks for the stored bytes.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from examprep.core.config import Settings
from examprep.models.submission import Submission
from examprep.services.errors import AcquisitionError
from examprep.services.storage_client import ObjectStorage, StorageError

logger = logging.getLogger(__name__)

ROLE_ANSWER_SHEET = "answer_sheet"
ROLE_ANSWER_KEY = "answer_key"

_MIME_BY_EXTENSION = {
    "pdf": "application/pdf",
    "png": "image/png",
    "webp": "image/webp",
    "gif": "image/gif",
}
PDF_MIME = "application/pdf"


def file_extension(path: str) -> str:
    name = path.rsplit("/", 1)[-1]
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[-1].lower()


def mime_type_for(path: str) -> str:
    # anything that is not a known type is treated as a JPEG image
    return _MIME_BY_EXTENSION.get(file_extension(path), "image/jpeg")


@dataclass
class DocumentSource:
    role: str
    bucket: str
    submission_id: Optional[str] = None
    path: Optional[str] = None
    supplied_text: Optional[str] = None
    supplied_images: List[str] = field(default_factory=list)

    @property
    def mime_type(self) -> str:
        return mime_type_for(self.path or "")

    @property
    def is_pdf(self) -> bool:
        return self.mime_type == PDF_MIME


@dataclass
class StoredFile:
    content: bytes
    mime_type: str

    def to_data_uri(self) -> str:
        encoded = base64.b64encode(self.content).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"


class IngestionResolver:
    def __init__(self, storage: ObjectStorage, config: Settings) -> None:
        self.storage = storage
        self.config = config

    def _cap_pages(self, images: Optional[List[str]]) -> List[str]:
        pages = [img for img in (images or []) if img]
        if len(pages) > self.config.MAX_OCR_PAGES:
            logger.info(
                f"Capping {len(pages)} supplied page images to {self.config.MAX_OCR_PAGES}"
            )
        return pages[: self.config.MAX_OCR_PAGES]

    def resolve_answer_sheet(
        self,
        submission: Submission,
        *,
        text: Optional[str] = None,
        images: Optional[List[str]] = None,
    ) -> DocumentSource:
        return DocumentSource(
            role=ROLE_ANSWER_SHEET,
            bucket=self.config.ANSWER_SHEET_BUCKET,
            submission_id=submission.id,
            path=submission.answer_sheet_path,
            supplied_text=text,
            supplied_images=self._cap_pages(images),
        )

    def resolve_answer_key(
        self,
        submission: Submission,
        *,
        text: Optional[str] = None,
        images: Optional[List[str]] = None,
    ) -> Optional[DocumentSource]:
        """No stored key and nothing supplied means the evaluation runs without a key."""
        pages = self._cap_pages(images)
        has_text = bool(text and text.strip())
        if not submission.answer_key_path and not has_text and not pages:
            return None
        return DocumentSource(
            role=ROLE_ANSWER_KEY,
            bucket=self.config.ANSWER_KEY_BUCKET,
            submission_id=submission.id,
            path=submission.answer_key_path,
            supplied_text=text,
            supplied_images=pages,
        )

    def download(self, document: DocumentSource) -> StoredFile:
        if not document.path:
            raise AcquisitionError(f"No stored file for the {document.role.replace('_', ' ')}.")
        logger.info(f"Downloading {document.role} from {document.bucket}/{document.path}")
        try:
            content = self.storage.download(document.bucket, document.path)
        except StorageError as e:
            logger.error(f"Download of {document.role} failed: {e}")
            raise AcquisitionError(
                f"Failed to download the {document.role.replace('_', ' ')}."
            ) from e
        if not content:
            raise AcquisitionError(f"The {document.role.replace('_', ' ')} file is empty.")
        return StoredFile(content=content, mime_type=document.mime_type)
