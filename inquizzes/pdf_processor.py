# inquizzes/pdf_processor.py
import logging
from dataclasses import dataclass
from io import BytesIO

from PyPDF2 import PdfReader

logger = logging.getLogger(__name__)


class DocumentError(Exception):
    """The upload could not be turned into usable text."""


@dataclass
class ExtractedDocument:
    content: str
    page_count: int


def extract_pdf_text(data: bytes) -> ExtractedDocument:
    """Pull the text layer out of a PDF. Pages are separated by blank lines."""
    try:
        reader = PdfReader(BytesIO(data))
        pages = [(page.extract_text() or "").strip() for page in reader.pages]
    except Exception as e:
        # PyPDF2 surfaces corrupt files as arbitrary exception types (AttributeError, IndexError, ...)
        logger.warning("PDF parsing error: %s", e)
        raise DocumentError(
            "Failed to process PDF. Please ensure the file is a valid PDF with readable text content."
        ) from e

    content = "\n\n".join(p for p in pages if p)
    return ExtractedDocument(content=content, page_count=len(pages) or 1)
