"""Shared pytest helpers.

All tests run locally: OCR results are built in memory and the HTTP
collaborators are replaced with ``httpx.MockTransport`` or simple fakes.
"""

from typing import List, Optional, Sequence, Tuple

import fitz  # PyMuPDF
import pytest

from pii_redaction.models.entities import (
    DocumentAnalysis,
    Entity,
    EntitySource,
    Page,
    PageUnit,
    Span,
    Style,
    Word,
)


def make_word(
    content: str,
    offset: int,
    x: float,
    y: float,
    width: float = 0.5,
    height: float = 0.2,
) -> Word:
    """An axis-aligned word whose top-left corner is (x, y)."""
    polygon = (x, y, x + width, y, x + width, y + height, x, y + height)
    return Word(content=content, polygon=polygon, span=Span(offset, len(content)))


def layout(
    text: str,
    x: float = 1.0,
    y: float = 1.0,
    start: int = 0,
    char_width: float = 0.1,
) -> List[Word]:
    """Words of ``text`` laid out left to right on one line."""
    words = []
    pos = 0
    for token in text.split(" "):
        if token:
            words.append(
                make_word(
                    token,
                    start + pos,
                    x + pos * char_width,
                    y,
                    width=len(token) * char_width,
                )
            )
        pos += len(token) + 1
    return words


def make_page(
    words: Sequence[Word],
    number: int = 1,
    width: float = 8.5,
    height: float = 11.0,
    unit: PageUnit = PageUnit.INCH,
) -> Page:
    return Page(number=number, width=width, height=height, unit=unit, words=tuple(words))


def make_analysis(
    content: str,
    pages: Sequence[Page],
    handwritten: Sequence[Tuple[int, int]] = (),
) -> DocumentAnalysis:
    styles: Tuple[Style, ...] = ()
    if handwritten:
        styles = (
            Style(
                spans=tuple(Span(o, n) for o, n in handwritten),
                is_handwritten=True,
                confidence=0.9,
            ),
        )
    return DocumentAnalysis(content=content, pages=tuple(pages), styles=styles)


def entity(
    text: str,
    category: str,
    offset: int,
    length: Optional[int] = None,
    confidence: float = 0.9,
    source: EntitySource = EntitySource.NER,
) -> Entity:
    return Entity(
        text=text,
        category=category,
        offset=offset,
        length=len(text) if length is None else length,
        confidence_score=confidence,
        source=source,
    )


def make_pdf(pages: int = 1, text: str = "Hello") -> bytes:
    doc = fitz.open()
    for _ in range(pages):
        page = doc.new_page()
        page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def pdf_bytes() -> bytes:
    return make_pdf()
