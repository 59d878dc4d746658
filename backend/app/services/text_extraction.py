"""
Text Extraction Adapter for StudyQuiz

Maps a stored upload (path + declared MIME type) to plain text.

Never raises: every failure is captured in ExtractionResult.error so that
one bad file cannot abort the rest of an upload batch.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from docx import Document
from pypdf import PdfReader

logger = logging.getLogger(__name__)

MIME_TEXT = "text/plain"
MIME_PDF = "application/pdf"
MIME_DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
MIME_PPTX = "application/vnd.openxmlformats-officedocument.presentationml.presentation"

PRESENTATION_NOT_SUPPORTED = "not yet supported"
UNSUPPORTED_FILE_TYPE = "unsupported file type"


@dataclass
class ExtractionResult:
    """Outcome of extracting one file. Exactly one of text/error is normally set."""
    text: Optional[str] = None
    error: Optional[str] = None

    @property
    def is_processed(self) -> bool:
        return bool(self.text)


def _read_plain_text(path: Path) -> str:
    # Decode raw bytes so line endings come through untouched
    return path.read_bytes().decode("utf-8", errors="replace")


def _read_pdf(path: Path) -> str:
    reader = PdfReader(str(path))
    return "\n".join(page.extract_text() or "" for page in reader.pages)


def _read_docx(path: Path) -> str:
    document = Document(str(path))
    return "\n".join(paragraph.text for paragraph in document.paragraphs)


_EXTRACTORS = {
    MIME_TEXT: _read_plain_text,
    MIME_PDF: _read_pdf,
    MIME_DOCX: _read_docx,
}


def extract_text(file_path: Union[str, Path], mime_type: str) -> ExtractionResult:
    """
    Extract plain text from a stored file according to its MIME type.

    Args:
        file_path: Location of the stored upload
        mime_type: MIME type declared by the client

    Returns:
        ExtractionResult with the text, or with the error that prevented it.
        Empty extracted text is reported as None.
    """
    path = Path(file_path)

    if mime_type == MIME_PPTX:
        logger.info("Presentation extraction not supported yet: %s", path.name)
        return ExtractionResult(error=PRESENTATION_NOT_SUPPORTED)

    extractor = _EXTRACTORS.get(mime_type)
    if extractor is None:
        logger.info("Unsupported file type %s for %s", mime_type, path.name)
        return ExtractionResult(error=UNSUPPORTED_FILE_TYPE)

    try:
        text = extractor(path)
    except Exception as e:
        logger.error("Text extraction failed for %s (%s): %s", path.name, mime_type, e)
        return ExtractionResult(error=str(e) or type(e).__name__)

    logger.info("Extracted %d characters from %s", len(text), path.name)
    return ExtractionResult(text=text or None)
