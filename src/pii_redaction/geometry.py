"""OCR word index and conversion of text spans into page geometry."""

import logging
from bisect import bisect_left
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from .models.entities import DocumentAnalysis, Entity, Page, RedactionRegion, Word
from .tuning import DEFAULT_THRESHOLDS, Thresholds

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IndexedWord:
    """A word together with the index of the page that owns it."""

    word: Word
    page_index: int


class TextSpanIndex:
    """Flat, offset-sorted index of every OCR word in a document.

    Built once per document. Lookups return the words whose span intersects
    a half-open character range, in offset order.
    """

    def __init__(self, pages: Sequence[Page]):
        self.pages = tuple(pages)
        items = [
            IndexedWord(word=word, page_index=page_index)
            for page_index, page in enumerate(self.pages)
            for word in page.words
        ]
        items.sort(key=lambda item: item.word.span.offset)
        self._items: List[IndexedWord] = items
        self._starts = [item.word.span.offset for item in items]
        self._max_length = max((item.word.span.length for item in items), default=0)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self._items)

    def overlapping(self, start: int, end: int) -> List[IndexedWord]:
        """Return words whose span overlaps ``[start, end)``."""
        if end <= start or not self._items:
            return []
        # A word starting before start - max_length cannot reach start.
        lo = bisect_left(self._starts, start - self._max_length + 1)
        hi = bisect_left(self._starts, end)
        return [
            item
            for item in self._items[lo:hi]
            if item.word.span.overlaps(start, end)
        ]

    def page(self, page_index: int) -> Page:
        return self.pages[page_index]


def bounding_box(words: Iterable[Word]) -> Tuple[float, float, float, float]:
    """Axis-aligned ``(min_x, min_y, max_x, max_y)`` over all polygon corners."""
    xs: List[float] = []
    ys: List[float] = []
    for word in words:
        xs.extend(word.xs)
        ys.extend(word.ys)
    if not xs:
        raise ValueError("bounding_box() needs at least one word")
    return min(xs), min(ys), max(xs), max(ys)


def to_region(
    box: Tuple[float, float, float, float],
    page_index: int,
    page: Page,
    padding: float,
    text: Optional[str] = None,
    category: Optional[str] = None,
) -> RedactionRegion:
    """Pad a page-unit box (clamping at the page origin) and convert to points."""
    min_x, min_y, max_x, max_y = box
    min_x = max(0.0, min_x - padding)
    min_y = max(0.0, min_y - padding)
    max_x += padding
    max_y += padding

    # Pixel pages pass through; the renderer owns that conversion.
    scale = page.scale
    return RedactionRegion(
        page_index=page_index,
        x=min_x * scale,
        y=min_y * scale,
        width=(max_x - min_x) * scale,
        height=(max_y - min_y) * scale,
        text=text,
        category=category,
    )


class CoordinateMapper:
    """Turn character-offset entities into per-word redaction regions."""

    def __init__(self, thresholds: Thresholds = DEFAULT_THRESHOLDS):
        self.thresholds = thresholds

    def map(
        self,
        entities: Sequence[Entity],
        source: Union[DocumentAnalysis, TextSpanIndex, Sequence[Page]],
    ) -> List[RedactionRegion]:
        """Emit one region per OCR word that overlaps an entity."""
        index = self._as_index(source)
        regions: List[RedactionRegion] = []

        for entity in entities:
            matches = index.overlapping(entity.offset, entity.end)
            if not matches:
                logger.debug(
                    "No OCR words under [%s] %r at %d-%d",
                    entity.category, entity.text, entity.offset, entity.end,
                )
            for item in matches:
                regions.append(
                    to_region(
                        bounding_box([item.word]),
                        item.page_index,
                        index.page(item.page_index),
                        self.thresholds.word_padding,
                        text=entity.text,
                        category=entity.category,
                    )
                )

        logger.info(
            "Converted %d entities to %d redaction regions", len(entities), len(regions)
        )
        return regions

    @staticmethod
    def _as_index(source) -> TextSpanIndex:
        if isinstance(source, TextSpanIndex):
            return source
        if isinstance(source, DocumentAnalysis):
            return TextSpanIndex(source.pages)
        return TextSpanIndex(source)
