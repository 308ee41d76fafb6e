"""Data models for the document redaction pipeline."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class PageUnit(str, Enum):
    """Native coordinate unit of an OCR page."""

    PIXEL = "pixel"
    INCH = "inch"


class EntitySource(str, Enum):
    """Which detector family produced an entity."""

    NER = "ner"
    PATTERN = "pattern"


POINTS_PER_INCH = 72.0

SIGNATURE_CATEGORY = "Signature"


@dataclass(frozen=True)
class Span:
    """A half-open ``[offset, offset + length)`` range in the document text."""

    offset: int
    length: int

    @property
    def end(self) -> int:
        return self.offset + self.length

    def overlaps(self, start: int, end: int) -> bool:
        return self.offset < end and self.end > start

    @classmethod
    def from_dict(cls, data: dict) -> "Span":
        return cls(offset=int(data["offset"]), length=int(data["length"]))


@dataclass(frozen=True)
class Entity:
    """A candidate span of document text tagged with a PII category."""

    text: str
    category: str
    offset: int
    length: int
    confidence_score: float
    source: EntitySource = EntitySource.NER

    @property
    def end(self) -> int:
        return self.offset + self.length

    def overlaps(self, other: "Entity") -> bool:
        return self.offset < other.end and self.end > other.offset

    def shifted(self, delta: int) -> "Entity":
        """Return a copy moved ``delta`` characters to the right."""
        return Entity(
            text=self.text,
            category=self.category,
            offset=self.offset + delta,
            length=self.length,
            confidence_score=self.confidence_score,
            source=self.source,
        )

    def is_valid_for(self, full_text: str) -> bool:
        return self.offset >= 0 and self.length > 0 and self.end <= len(full_text)

    def sort_key(self) -> tuple:
        """Total ordering used wherever entity lists must be deterministic."""
        return (
            self.offset,
            self.length,
            self.category,
            self.text,
            self.confidence_score,
            self.source.value,
        )

    @classmethod
    def from_dict(cls, data: dict, source: EntitySource = EntitySource.NER) -> "Entity":
        """Build from the NER service's camelCase payload."""
        return cls(
            text=data["text"],
            category=data["category"],
            offset=int(data["offset"]),
            length=int(data["length"]),
            confidence_score=float(data.get("confidenceScore", 0.0)),
            source=source,
        )


@dataclass(frozen=True)
class Word:
    """A single OCR word. ``polygon`` holds 4 corner x/y pairs."""

    content: str
    polygon: Tuple[float, ...]
    span: Span
    confidence: float = 1.0

    @property
    def xs(self) -> Tuple[float, ...]:
        return self.polygon[0::2]

    @property
    def ys(self) -> Tuple[float, ...]:
        return self.polygon[1::2]

    @property
    def center(self) -> Tuple[float, float]:
        """Midpoint of the top edge in x and of the left edge in y."""
        p = self.polygon
        return (p[0] + p[2]) / 2, (p[1] + p[5]) / 2

    @classmethod
    def from_dict(cls, data: dict) -> "Word":
        return cls(
            content=data.get("content", ""),
            polygon=tuple(float(v) for v in data.get("polygon", ())),
            span=Span.from_dict(data["span"]),
            confidence=float(data.get("confidence", 1.0)),
        )


@dataclass(frozen=True)
class Page:
    """One OCR page with its words in page-native units."""

    number: int
    width: float
    height: float
    unit: PageUnit = PageUnit.INCH
    angle: float = 0.0
    words: Tuple[Word, ...] = ()

    @property
    def scale(self) -> float:
        """Factor converting page units into points."""
        return POINTS_PER_INCH if self.unit == PageUnit.INCH else 1.0

    @classmethod
    def from_dict(cls, data: dict) -> "Page":
        unit = data.get("unit") or PageUnit.INCH.value
        return cls(
            number=int(data.get("pageNumber", 0)),
            width=float(data.get("width", 0.0)),
            height=float(data.get("height", 0.0)),
            unit=PageUnit(unit),
            angle=float(data.get("angle") or 0.0),
            words=tuple(
                Word.from_dict(w)
                for w in data.get("words", [])
                if len(w.get("polygon", ())) >= 8
            ),
        )


@dataclass(frozen=True)
class Style:
    """An OCR annotation layer over text spans (e.g. handwriting)."""

    spans: Tuple[Span, ...]
    is_handwritten: Optional[bool] = None
    confidence: float = 0.0

    @classmethod
    def from_dict(cls, data: dict) -> "Style":
        return cls(
            spans=tuple(Span.from_dict(s) for s in data.get("spans", [])),
            is_handwritten=data.get("isHandwritten"),
            confidence=float(data.get("confidence", 0.0)),
        )


@dataclass(frozen=True)
class DocumentAnalysis:
    """Parsed OCR result: canonical text, pages and styles."""

    content: str
    pages: Tuple[Page, ...] = ()
    styles: Tuple[Style, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> "DocumentAnalysis":
        """Build from a Document Intelligence ``analyzeResult`` payload."""
        return cls(
            content=data.get("content") or "",
            pages=tuple(Page.from_dict(p) for p in data.get("pages") or []),
            styles=tuple(Style.from_dict(s) for s in data.get("styles") or []),
        )


@dataclass
class RedactionRegion:
    """A page-relative rectangle in points, handed to the renderer."""

    page_index: int
    x: float
    y: float
    width: float
    height: float
    text: Optional[str] = None
    category: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "RedactionRegion":
        return cls(
            page_index=int(data["pageIndex"]),
            x=float(data["x"]),
            y=float(data["y"]),
            width=float(data["width"]),
            height=float(data["height"]),
            text=data.get("text"),
            category=data.get("category"),
        )

    def to_dict(self) -> dict:
        """Serialize in the renderer's camelCase format."""
        data = {
            "pageIndex": self.page_index,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
        }
        if self.text is not None:
            data["text"] = self.text
        if self.category is not None:
            data["category"] = self.category
        return data


@dataclass
class NERResult:
    """Entities returned by the NER service plus the chunks that failed."""

    entities: List[Entity] = field(default_factory=list)
    dropped_chunks: int = 0


@dataclass
class RedactionPlan:
    """Output of the pure reconciliation/geometry core for one document."""

    entities: List[Entity]
    pii_regions: List[RedactionRegion]
    signature_regions: List[RedactionRegion]

    @property
    def regions(self) -> List[RedactionRegion]:
        return self.pii_regions + self.signature_regions


@dataclass
class DocumentResult:
    """Result of running one document through the pipeline."""

    filename: str
    status: str = "completed"
    language: str = ""
    entities: List[Entity] = field(default_factory=list)
    regions: List[RedactionRegion] = field(default_factory=list)
    pii_regions: int = 0
    signature_regions: int = 0
    dropped_chunks: int = 0
    signature_model_failed: bool = False
    page_count: int = 0
    stage: str = ""
    error: Optional[str] = None
    redacted_pdf: Optional[bytes] = None
    processing_time_seconds: float = 0.0

    @property
    def entities_found(self) -> int:
        return len(self.entities)

    @property
    def regions_produced(self) -> int:
        return len(self.regions)

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass
class BatchResult:
    """Result of processing several documents together."""

    documents: List[DocumentResult]
    combined_pdf: Optional[bytes] = None

    @property
    def total_entities(self) -> int:
        return sum(d.entities_found for d in self.documents)

    @property
    def total_regions(self) -> int:
        return sum(d.regions_produced for d in self.documents)

    @property
    def dropped_chunks(self) -> int:
        return sum(d.dropped_chunks for d in self.documents)

    @property
    def failed(self) -> List[DocumentResult]:
        return [d for d in self.documents if not d.succeeded]
