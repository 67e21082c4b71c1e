"""Structure-aware chunking for the compliance manual corpus.

Strategies, in order of preference:
  1. Chapter markers ("Chapter 3", "第三章"), then numbered sub-sections ("3.2 ")
  2. Blank-line paragraphs
  3. The whole document as a single chunk

Units shorter than MIN_CHUNK_CHARS are treated as noise and dropped, so a
manual full of headings and separators still produces usable chunks.
"""

import logging
import re

from schemas.chunk import TextChunk

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

MIN_CHUNK_CHARS = 10
DEFAULT_SOURCE = "manual.txt"
FULL_DOCUMENT_LABEL = "full document"

CHAPTER_MARKER = re.compile(
    r"^[ \t]*(?:Chapter\s+\d+|第[一二三四五六七八九十百零]+章)",
    re.MULTILINE | re.IGNORECASE,
)
SECTION_MARKER = re.compile(r"^[ \t]*\d+\.\d+\s", re.MULTILINE)
PARAGRAPH_BREAK = re.compile(r"\n\s*\n")

# Title decoration such as "=====" underlines
_DECORATION = re.compile(r"[-=]")


def _split_before(pattern: re.Pattern, text: str) -> list[str]:
    """Split ``text`` immediately before every match of ``pattern``."""
    starts = [m.start() for m in pattern.finditer(text)]
    if not starts:
        return [text]
    bounds = ([0] if starts[0] != 0 else []) + starts + [len(text)]
    return [text[a:b] for a, b in zip(bounds, bounds[1:])]


class Chunker:
    """Splits raw corpus text into ordered TextChunks."""

    def __init__(self, min_chars: int = MIN_CHUNK_CHARS):
        self.min_chars = min_chars

    def chunk_text(self, text: str, source: str = DEFAULT_SOURCE) -> list[TextChunk]:
        """Chunk a whole corpus document.

        Returns an empty list only for empty or whitespace-only input.
        """
        if not text or not text.strip():
            return []

        chunks = self._chunk_structural(text, source)
        strategy = "structural"

        if not chunks:
            chunks = self._chunk_paragraphs(text, source)
            strategy = "paragraph"

        if not chunks:
            chunks = [
                TextChunk(
                    id=f"{source}-full",
                    content=text.strip(),
                    source=source,
                    chapter=FULL_DOCUMENT_LABEL,
                    index=0,
                )
            ]
            strategy = "full-document"

        logger.info("Chunked %s into %d chunks (%s)", source, len(chunks), strategy)
        return chunks

    # -------------------------------------------------------------------
    # Strategy: chapters and numbered sub-sections
    # -------------------------------------------------------------------

    def _chunk_structural(self, text: str, source: str) -> list[TextChunk]:
        if not CHAPTER_MARKER.search(text) and not SECTION_MARKER.search(text):
            return []

        chunks: list[TextChunk] = []
        for chapter_idx, chapter in enumerate(_split_before(CHAPTER_MARKER, text)):
            if not chapter.strip():
                continue
            chapter_title = self._chapter_title(chapter, chapter_idx)

            for section_idx, section in enumerate(_split_before(SECTION_MARKER, chapter)):
                content = section.strip()
                if len(content) < self.min_chars:
                    continue
                chunks.append(
                    TextChunk(
                        id=f"{source}-ch{chapter_idx}-s{section_idx}",
                        content=content,
                        source=source,
                        chapter=chapter_title,
                        index=len(chunks),
                    )
                )
        return chunks

    def _chapter_title(self, chapter: str, chapter_idx: int) -> str:
        first_line = chapter.strip().split("\n", 1)[0]
        title = _DECORATION.sub("", first_line).strip()
        return title or f"Section {chapter_idx + 1}"

    # -------------------------------------------------------------------
    # Strategy: blank-line paragraphs
    # -------------------------------------------------------------------

    def _chunk_paragraphs(self, text: str, source: str) -> list[TextChunk]:
        chunks: list[TextChunk] = []
        for i, paragraph in enumerate(PARAGRAPH_BREAK.split(text)):
            content = paragraph.strip()
            if len(content) < self.min_chars:
                continue
            chunks.append(
                TextChunk(
                    id=f"{source}-p{i}",
                    content=content,
                    source=source,
                    chapter=FULL_DOCUMENT_LABEL,
                    index=len(chunks),
                )
            )
        return chunks
