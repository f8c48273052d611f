"""Text extraction and chunking for uploaded files."""

import logging
from pathlib import Path

import fitz  # PyMuPDF

from wingman.constants import DEFAULT_CHUNK_OVERLAP, DEFAULT_CHUNK_SIZE

logger = logging.getLogger(__name__)

PDF_EXTENSIONS = {".pdf"}
TEXT_EXTENSIONS = {".txt", ".md", ".markdown", ".csv", ".json", ".html", ".xml", ".py", ".rst"}
SUPPORTED_EXTENSIONS = PDF_EXTENSIONS | TEXT_EXTENSIONS


def extract_text_from_pdf(pdf_path: Path) -> str:
    """Extract all text from a PDF file.

    Args:
        pdf_path: Path to the PDF file

    Returns:
        str: Concatenated text from all pages
    """
    return extract_text(pdf_path.name, pdf_path.read_bytes())


def extract_text(filename: str, content: bytes) -> str:
    """Extract plain text from an uploaded file.

    PDFs are read page by page with PyMuPDF; anything else is decoded as
    UTF-8 with undecodable bytes replaced.

    Args:
        filename: Original file name, used to pick the extractor
        content: Raw file bytes

    Returns:
        str: The extracted text
    """
    if Path(filename).suffix.lower() in PDF_EXTENSIONS:
        with fitz.open(stream=content, filetype="pdf") as doc:
            text = "".join(page.get_text() for page in doc)
    else:
        text = content.decode("utf-8", errors="replace")

    logger.debug(f"Extracted {len(text)} characters from {filename}")
    return text


def chunk_text(
    text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_CHUNK_OVERLAP,
) -> list[str]:
    """Split text into overlapping chunks based on word count.

    Args:
        text: The text to chunk
        chunk_size: Target number of words per chunk
        overlap: Number of words to overlap between chunks

    Returns:
        list[str]: List of text chunks; empty for blank text
    """
    if overlap >= chunk_size:
        raise ValueError("overlap must be smaller than chunk_size")

    words = text.split()
    if not words:
        return []

    if len(words) <= chunk_size:
        return [text.strip()]

    chunks = []
    start = 0
    while start < len(words):
        end = start + chunk_size
        chunks.append(" ".join(words[start:end]))
        if end >= len(words):
            break
        start = end - overlap

    return chunks


def is_supported_file(filename: str) -> bool:
    return Path(filename).suffix.lower() in SUPPORTED_EXTENSIONS
