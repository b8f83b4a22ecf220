"""
Document parsing service for PDF, DOCX and plain-text brand documents.

Extracts page text, section headings and tables, with Tesseract OCR for
image-only PDF pages. Returns a ParsedDocument with full_text, sections
and metadata (page_count, word_count, title, ...).
"""
from __future__ import annotations

import io
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import aiofiles
import fitz  # PyMuPDF
import pytesseract
from docx import Document as DocxDocument
from PIL import Image

from app.config import settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

@dataclass
class ParsedSection:
    """A headed block of text extracted from a document."""

    title: str          # Heading text; empty string for the preamble
    content: str
    level: int          # 0 = no heading, 1 = H1, 2 = H2, 3 = H3+
    page_num: int = 0   # 1-based; 0 = unknown


@dataclass
class ParsedDocument:
    """
    Output of the DocumentParser.

    Attributes:
        full_text: Complete text of the document, pages separated by "[Page N]" markers.
        sections:  Ordered list of ParsedSection objects.
        metadata:  Dict with keys page_count, word_count, title, author, file_type,
                   ocr_pages and has_tables.
    """

    full_text: str
    sections: List[ParsedSection] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def word_count(self) -> int:
        return self.metadata.get("word_count", 0)

    @property
    def page_count(self) -> Optional[int]:
        return self.metadata.get("page_count")


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

class DocumentParser:
    """Parses PDF, DOCX and TXT files into ParsedDocument objects."""

    def __init__(self) -> None:
        if settings.TESSERACT_CMD:
            pytesseract.pytesseract.tesseract_cmd = settings.TESSERACT_CMD

    async def parse_document(self, file_path: str, file_type: str) -> ParsedDocument:
        """
        Parse a document file.

        Args:
            file_path: Path to the file on disk.
            file_type: Extension with or without dot, e.g. ".pdf" or "docx".

        Raises:
            ValueError:   Unsupported file type.
            RuntimeError: Password-protected or unreadable file.
        """
        ft = file_type.lower().lstrip(".")
        if ft == "pdf":
            return await self._parse_pdf(file_path)
        if ft in ("docx", "doc"):
            return await self._parse_docx(file_path)
        if ft == "txt":
            return await self._parse_txt(file_path)
        raise ValueError(f"Unsupported file type: {file_type!r}")

    # ------------------------------------------------------------------
    # PDF
    # ------------------------------------------------------------------

    async def _parse_pdf(self, file_path: str) -> ParsedDocument:
        """Parse a PDF with PyMuPDF, falling back to OCR for image-only pages."""
        try:
            doc = fitz.open(file_path)
        except Exception as exc:
            raise RuntimeError(f"Cannot open PDF file: {exc}") from exc

        if doc.needs_pass:
            doc.close()
            raise RuntimeError("PDF is password-protected. Please provide an unlocked copy.")

        try:
            raw_meta = doc.metadata or {}
            page_count = doc.page_count

            font_sizes: List[float] = []
            for page in doc:
                for block in page.get_text("dict")["blocks"]:
                    for line in block.get("lines", []):
                        font_sizes.extend(s["size"] for s in line.get("spans", []) if s.get("size"))
            body_size = _modal_font_size(font_sizes) if font_sizes else 11.0

            sections: List[ParsedSection] = []
            current = ParsedSection(title="", content="", level=0, page_num=1)
            page_texts: List[str] = []
            table_texts: List[str] = []
            ocr_pages: List[int] = []

            for page_num, page in enumerate(doc, start=1):
                lines: List[str] = []
                for block in page.get_text("dict")["blocks"]:
                    if block.get("type") != 0:
                        continue
                    for line in block.get("lines", []):
                        spans = [s for s in line.get("spans", []) if s.get("text", "").strip()]
                        text = " ".join(s["text"] for s in spans).strip()
                        if not text or re.match(r"^\d{1,4}$", text):
                            continue
                        size = max(s.get("size", 0.0) for s in spans)
                        if size >= body_size * 1.15 and len(text.split()) <= 15:
                            if current.title or current.content.strip():
                                sections.append(current)
                            level = _estimate_heading_level(size, body_size)
                            current = ParsedSection(title=text, content="", level=level, page_num=page_num)
                            lines.append(f"\n{'#' * level} {text}")
                        else:
                            current.content += " " + text
                            lines.append(text)

                if not lines:
                    ocr = await self._ocr_page(page)
                    if ocr.strip():
                        ocr_pages.append(page_num)
                        current.content += "\n" + ocr
                        page_texts.append(f"[Page {page_num}]\n{ocr.strip()}")
                    continue

                page_texts.append(f"[Page {page_num}]\n" + "\n".join(lines))

                try:
                    for table in page.find_tables():
                        formatted = _format_table_rows(table.extract())
                        if formatted:
                            table_texts.append(formatted)
                except Exception as exc:
                    logger.debug("Table extraction skipped on page %d: %s", page_num, exc)

            if current.title or current.content.strip():
                sections.append(current)
        finally:
            doc.close()

        full_text = "\n\n".join(page_texts)
        if table_texts:
            full_text += "\n\n[Tables]\n" + "\n\n".join(table_texts)

        return ParsedDocument(
            full_text=full_text,
            sections=sections,
            metadata={
                "page_count": page_count,
                "word_count": len(full_text.split()),
                "title": raw_meta.get("title", ""),
                "author": raw_meta.get("author", ""),
                "subject": raw_meta.get("subject", ""),
                "file_type": "pdf",
                "ocr_pages": ocr_pages,
                "has_tables": bool(table_texts),
            },
        )

    async def _ocr_page(self, page: fitz.Page) -> str:
        """Render an entire page at 2x scale and run Tesseract OCR."""
        try:
            pix = page.get_pixmap(matrix=fitz.Matrix(2, 2))
            img = Image.open(io.BytesIO(pix.tobytes("png")))
            return pytesseract.image_to_string(img)
        except Exception as exc:
            logger.warning("Full-page OCR failed on page %d: %s", page.number + 1, exc)
            return ""

    # ------------------------------------------------------------------
    # DOCX
    # ------------------------------------------------------------------

    async def _parse_docx(self, file_path: str) -> ParsedDocument:
        """Parse a DOCX file preserving heading hierarchy and tables."""
        try:
            doc = DocxDocument(file_path)
        except Exception as exc:
            raise RuntimeError(f"Cannot open DOCX file: {exc}") from exc

        heading_styles: Dict[str, int] = {
            "title": 1,
            "heading 1": 1,
            "subtitle": 2,
            "heading 2": 2,
            "heading 3": 3,
            "heading 4": 3,
        }

        sections: List[ParsedSection] = []
        parts: List[str] = []
        current = ParsedSection(title="", content="", level=0)

        for para in doc.paragraphs:
            text = para.text.strip()
            if not text:
                continue
            style_name = para.style.name.lower() if para.style is not None and para.style.name else ""
            level = heading_styles.get(style_name, 0)
            if level == 0 and _is_implicit_heading(para):
                level = 3

            if level:
                if current.title or current.content.strip():
                    sections.append(current)
                current = ParsedSection(title=text, content="", level=level)
                parts.append(f"\n{'#' * level} {text}\n")
            else:
                current.content += " " + text
                parts.append(text)

        for table in doc.tables:
            rows = [[cell.text for cell in row.cells] for row in table.rows]
            formatted = _format_table_rows(rows)
            if formatted:
                current.content += "\n" + formatted
                parts.append(formatted)

        if current.title or current.content.strip():
            sections.append(current)

        core = doc.core_properties
        full_text = "\n\n".join(parts)
        return ParsedDocument(
            full_text=full_text,
            sections=sections,
            metadata={
                "page_count": None,  # python-docx has no rendered page count
                "word_count": len(full_text.split()),
                "title": core.title or "",
                "author": core.author or "",
                "subject": core.subject or "",
                "file_type": "docx",
                "ocr_pages": [],
                "has_tables": bool(doc.tables),
            },
        )

    # ------------------------------------------------------------------
    # TXT
    # ------------------------------------------------------------------

    async def _parse_txt(self, file_path: str) -> ParsedDocument:
        try:
            async with aiofiles.open(file_path, "rb") as fh:
                raw = await fh.read()
        except OSError as exc:
            raise RuntimeError(f"Cannot open text file: {exc}") from exc

        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError:
            text = raw.decode("latin-1")

        text = text.replace("\r\n", "\n").strip()
        first_line = text.split("\n", 1)[0].strip() if text else ""
        return ParsedDocument(
            full_text=text,
            sections=[ParsedSection(title="", content=text, level=0, page_num=1)] if text else [],
            metadata={
                "page_count": 1,
                "word_count": len(text.split()),
                "title": first_line[:200],
                "author": "",
                "subject": "",
                "file_type": "txt",
                "ocr_pages": [],
                "has_tables": False,
            },
        )


# ---------------------------------------------------------------------------
# Module-level helpers
# ---------------------------------------------------------------------------

def _modal_font_size(sizes: List[float]) -> float:
    """Most frequent font size, used as the body text size."""
    freq: Dict[float, int] = {}
    for s in sizes:
        key = round(s, 1)
        freq[key] = freq.get(key, 0) + 1
    return max(freq, key=lambda k: freq[k])


def _estimate_heading_level(span_size: float, body_size: float) -> int:
    ratio = span_size / body_size if body_size > 0 else 1.0
    if ratio >= 1.5:
        return 1
    if ratio >= 1.25:
        return 2
    return 3


def _is_implicit_heading(para) -> bool:
    """Short paragraph (<= 15 words) where every run with text is bold."""
    text = para.text.strip()
    if not text or len(text.split()) > 15:
        return False
    runs = [r for r in para.runs if r.text.strip()]
    return bool(runs) and all(r.bold for r in runs)


def _format_table_rows(rows: List[List[Optional[str]]]) -> str:
    """Format a list-of-lists table as pipe-delimited text."""
    lines: List[str] = []
    for row in rows:
        cells = [str(cell).strip() if cell is not None else "" for cell in row]
        if any(cells):
            lines.append(" | ".join(cells))
    return "\n".join(lines)
