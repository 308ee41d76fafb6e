"""Heuristic handwritten-signature detection on OCR output.

The primary pass looks at spans the OCR engine marked as handwritten and
keeps those that sit near a signature label, either in the text stream or on
the page, or that are long enough and low enough on the page to be a
signature block. When nothing is found, a fallback pass looks for any word
printed just below a signature label in the lower half of a page.
"""

import logging
import re
from typing import List, Optional, Sequence

from ..geometry import TextSpanIndex, bounding_box, to_region
from ..models.entities import (
    SIGNATURE_CATEGORY,
    DocumentAnalysis,
    Page,
    RedactionRegion,
    Span,
    Word,
)
from ..tuning import DEFAULT_THRESHOLDS, Thresholds

logger = logging.getLogger(__name__)

SIGNATURE_LABELS = (
    "unterschrift",
    "unterschriften",
    "signature",
    "signatures",
    "signed",
    "datum/unterschrift",
    "unterzeichner",
    "unterzeichnet",
    "gezeichnet",
    "gez.",
    "i.a.",
    "ppa.",
    "protokollführer",
    "zeuge",
)

# Handwritten text that is almost always a filled-in form field
FORM_FIELD_PATTERNS = tuple(
    re.compile(p, flags)
    for p, flags in (
        (r"^[\d\s.,€$%]+$", 0),
        (r"^\d{1,2}[.,]\d{2}[.,]\d{4}$", 0),
        (r"^[xX✓✗]$", 0),
        (r"^ja$", re.IGNORECASE),
        (r"^nein$", re.IGNORECASE),
        (r"^EUR?$", re.IGNORECASE),
        (r"^\d{5}$", 0),
        (r"^\d+[.,]?\d*\s*kWh", re.IGNORECASE),
        (r"^\d+[.,]?\d*\s*m[²2³3]", re.IGNORECASE),
        (r"^\d+[.,]?\d*\s*%$", 0),
        (r"^[A-H]\+?$", re.IGNORECASE),
        (r"^>?\d+$", 0),
        (r"^\d{1,3}$", 0),
        (r"^[A-Z]{1,5}$", 0),
    )
)

_STOPWORD = re.compile(r"^(ja|nein|oder|und|der|die|das|nicht|bitte|von|zu)$", re.IGNORECASE)
_LETTER_RUN = re.compile(r"[a-zA-ZäöüÄÖÜß]{3,}")


def is_form_field(text: str) -> bool:
    return any(p.search(text) for p in FORM_FIELD_PATTERNS)


def contains_label(text: str, labels: Sequence[str] = SIGNATURE_LABELS) -> bool:
    lowered = text.lower()
    return any(label in lowered for label in labels)


def _contains_label_or_prefix(text: str, labels: Sequence[str] = SIGNATURE_LABELS) -> bool:
    lowered = text.lower()
    return any(
        label in lowered or (len(label) > 4 and label[:5] in lowered)
        for label in labels
    )


class SignatureDetector:
    """Produce ``Signature`` regions from an OCR ``DocumentAnalysis``."""

    def __init__(
        self,
        thresholds: Thresholds = DEFAULT_THRESHOLDS,
        labels: Sequence[str] = SIGNATURE_LABELS,
    ):
        self.thresholds = thresholds
        self.labels = tuple(labels)

    def detect(
        self,
        analysis: DocumentAnalysis,
        index: Optional[TextSpanIndex] = None,
    ) -> List[RedactionRegion]:
        index = index if index is not None else TextSpanIndex(analysis.pages)

        handwritten = [s for s in analysis.styles if s.is_handwritten is True]
        logger.info("Checking %d handwritten styles for signatures", len(handwritten))

        signatures: List[RedactionRegion] = []
        for style in handwritten:
            for span in style.spans:
                region = self._check_span(analysis.content, span, index)
                if region is not None:
                    signatures.append(region)

        if not signatures:
            signatures = self._fallback(analysis.pages)

        logger.info("Total signatures detected: %d", len(signatures))
        return signatures

    # -- primary pass ------------------------------------------------------

    def _check_span(
        self, content: str, span: Span, index: TextSpanIndex
    ) -> Optional[RedactionRegion]:
        t = self.thresholds
        text = content[span.offset:span.end].strip()

        radius = t.signature_context_radius
        context = content[max(0, span.offset - radius):span.end + radius]
        near_text_label = contains_label(context, self.labels)

        matches = index.overlapping(span.offset, span.end)
        if not matches:
            logger.debug("No OCR words under handwritten span at %d-%d", span.offset, span.end)
            return None

        page_index = matches[0].page_index
        page = index.page(page_index)
        on_page = [m.word for m in matches if m.page_index == page_index]
        near_spatial_label = self._near_label_on_page(on_page, page)
        near_label = near_text_label or near_spatial_label

        min_length = t.signature_min_length_near_label if near_label else t.signature_min_length
        if len(text) < min_length:
            logger.debug(
                "Handwritten %r skipped: too short (%d < %d, near label: %s)",
                text, len(text), min_length, near_label,
            )
            return None

        if is_form_field(text):
            logger.debug("Handwritten %r skipped: form field", text)
            return None

        avg_y = sum(m.word.center[1] for m in matches) / len(matches)
        in_bottom = avg_y > page.height * t.signature_bottom_ratio

        if not (near_label or (in_bottom and len(text) >= t.signature_bottom_min_length)):
            logger.debug(
                "Handwritten %r is not a signature (near label: %s, bottom: %s)",
                text, near_label, in_bottom,
            )
            return None

        region = to_region(
            bounding_box(on_page),
            page_index,
            page,
            t.signature_padding,
            text=f"[Signature: {text[:30]}...]",
            category=SIGNATURE_CATEGORY,
        )
        logger.debug(
            "Signature on page %d at (%.1f, %.1f) %.1fx%.1f",
            region.page_index, region.x, region.y, region.width, region.height,
        )
        return region

    def _near_label_on_page(self, words: List[Word], page: Page) -> bool:
        t = self.thresholds
        cx = sum(w.center[0] for w in words) / len(words)
        cy = sum(w.center[1] for w in words) / len(words)

        for candidate in page.words:
            if not contains_label(candidate.content, self.labels):
                continue
            lx, ly = candidate.center
            if abs(cy - ly) < t.label_max_dy and abs(cx - lx) < t.label_max_dx:
                logger.debug("Handwriting near label %r", candidate.content)
                return True
        return False

    # -- fallback pass -----------------------------------------------------

    def _fallback(self, pages: Sequence[Page]) -> List[RedactionRegion]:
        t = self.thresholds
        logger.debug("No handwritten signatures, searching near signature labels")

        found: List[RedactionRegion] = []
        for page_index, page in enumerate(pages):
            for label in page.words:
                if len(label.content) <= 3 or not _contains_label_or_prefix(label.content, self.labels):
                    continue
                lx, ly = label.center
                if ly < page.height * t.fallback_label_min_ratio:
                    continue

                for word in page.words:
                    if word is label:
                        continue
                    wx, wy = word.center
                    if not (0 < wy - ly < t.fallback_max_dy and abs(wx - lx) < t.fallback_max_dx):
                        continue

                    region = self._fallback_region(word, page_index, page, found)
                    if region is not None:
                        found.append(region)
        return found

    def _fallback_region(
        self,
        word: Word,
        page_index: int,
        page: Page,
        found: List[RedactionRegion],
    ) -> Optional[RedactionRegion]:
        t = self.thresholds
        text = word.content
        if _STOPWORD.match(text) or not _LETTER_RUN.search(text) or len(text) < 3:
            return None

        x0, y0 = word.polygon[0] * page.scale, word.polygon[1] * page.scale
        limit = t.fallback_duplicate_distance_pt
        if any(
            r.page_index == page_index and abs(r.x - x0) < limit and abs(r.y - y0) < limit
            for r in found
        ):
            return None

        region = to_region(
            bounding_box([word]),
            page_index,
            page,
            t.fallback_padding,
            text=f"[Signature (fallback): {text}]",
            category=SIGNATURE_CATEGORY,
        )
        if region.width > t.fallback_min_width_pt and region.height > t.fallback_min_height_pt:
            logger.debug("Fallback signature %r on page %d", text, page_index)
            return region
        return None


