"""Declarative regex detectors for PII the NER service tends to miss.

Each ``PatternRule`` is an independent pure function ``text -> [Entity]``
with a fixed category and confidence. ``PatternDetectorBank`` evaluates the
ordered rule table and concatenates the results; entities from different
rules are not deduplicated against each other.
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from ..models.entities import Entity, EntitySource

logger = logging.getLogger(__name__)

# (text, start, end) of the value a match contributes
Extraction = Tuple[str, int, int]

OCCUPATION_TITLES = (
    # German
    "Krankenpfleger", "Krankenschwester", "Arzt", "Ärztin",
    "Ingenieur", "Ingenieurin", "Lehrer", "Lehrerin",
    "Buchhalter", "Buchhalterin", "Programmierer", "Programmiererin",
    "Manager", "Managerin", "Verkäufer", "Verkäuferin",
    # English
    "Nurse", "Doctor", "Engineer", "Teacher", "Accountant",
    "Programmer", "Salesperson",
)

GERMAN_MONTHS = (
    "Januar", "Februar", "März", "April", "Mai", "Juni", "Juli",
    "August", "September", "Oktober", "November", "Dezember",
)

ENERGY_SCALE_ANCHORS = ("25", "50", "75", "100", "125", "150", "175", "200", "225", "250")

MIN_PHONE_DIGITS = 10

_BIC = r"[A-Z]{4}\s?[A-Z]{2}\s?[A-Z0-9]\s?[A-Z0-9]\s?(?:[A-Z0-9]{3})?"
_GEB_DATUM = r"Geb\s*\.?\s*-?\s*Datum"


def _group_value(group: int = 1) -> Callable[[re.Match], Optional[Extraction]]:
    """Use one capture group (trimmed) as the entity value."""

    def extract(match: re.Match) -> Optional[Extraction]:
        raw = match.group(group)
        value = raw.strip()
        if not value:
            return None
        start = match.start(group) + (len(raw) - len(raw.lstrip()))
        return value, start, start + len(value)

    return extract


def _joined_groups(match: re.Match) -> Extraction:
    """Concatenate all groups; the span runs from group 1 to the match end."""
    return "".join(match.groups()), match.start(1), match.end()


def _digits(text: str) -> str:
    return re.sub(r"\D", "", text)


def _is_bic(value: str) -> bool:
    return len(re.sub(r"\s", "", value)) in (8, 11)


def _is_card_number(value: str) -> bool:
    return len(re.sub(r"[\s\-]", "", value)) == 16


def looks_like_energy_scale(candidate: str, max_value: int = 300) -> bool:
    """True for digit runs that are really an energy-efficiency scale.

    OCR reads the coloured scale bar of a German energy certificate
    ("25 50 75 100 ...") as one long number.
    """
    digits = _digits(candidate)
    groups = re.findall(r"\d+", candidate)
    wrapped = "\n" in candidate or "\r" in candidate
    if (
        wrapped
        and groups
        and all(len(g) <= 3 for g in groups)
        and digits.startswith(ENERGY_SCALE_ANCHORS)
    ):
        return True

    tokens = candidate.split()
    return len(tokens) >= 3 and all(
        re.fullmatch(r"\d+", t) and int(t) <= max_value for t in tokens
    )


def _is_phone_number(value: str) -> bool:
    if looks_like_energy_scale(value):
        logger.debug("Phone pattern skipped (likely energy scale): %r", value)
        return False
    return len(_digits(value)) >= MIN_PHONE_DIGITS


@dataclass(frozen=True)
class PatternRule:
    """One row of the detector table."""

    name: str
    pattern: re.Pattern
    category: str
    confidence: float
    validator: Optional[Callable[[str], bool]] = None
    extract: Callable[[re.Match], Optional[Extraction]] = _group_value(1)
    unique_offset: bool = False
    """Skip matches at an offset already emitted for this category."""

    def detect(self, text: str) -> List[Entity]:
        entities = []
        for match in self.pattern.finditer(text):
            extracted = self.extract(match)
            if extracted is None:
                continue
            value, start, end = extracted
            if self.validator is not None and not self.validator(value):
                continue
            entities.append(
                Entity(
                    text=value,
                    category=self.category,
                    offset=start,
                    length=end - start,
                    confidence_score=self.confidence,
                    source=EntitySource.PATTERN,
                )
            )
        return entities


DEFAULT_RULES: Tuple[PatternRule, ...] = (
    PatternRule(
        name="occupation_keyword",
        pattern=re.compile(
            r"\b(" + "|".join(re.escape(t) for t in OCCUPATION_TITLES) + r")\b",
            re.IGNORECASE,
        ),
        category="Occupation",
        confidence=0.85,
    ),
    PatternRule(
        name="occupation_label",
        pattern=re.compile(
            r"(?:Beruf|Occupation|Job|Tätigkeit)[:\s]*"
            r"([A-Za-zäöüÄÖÜß0-9\s\-]+?)(?:\n|,|\.|\||$)",
            re.IGNORECASE,
        ),
        category="Occupation",
        confidence=0.80,
    ),
    PatternRule(
        name="dob_labeled",
        pattern=re.compile(
            r"(?:" + _GEB_DATUM + r"|Geb\.|Geboren|Geburtsdatum)(?:\s+am)?[:\s]+"
            r"(\d{1,2}[./\-]\d{1,2}[./\-]\d{2,4})",
            re.IGNORECASE,
        ),
        category="DateOfBirth",
        confidence=0.90,
    ),
    PatternRule(
        name="dob_fallback",
        pattern=re.compile(
            r"\b(?:" + _GEB_DATUM + r"|Geboren)\b\D{0,50}(\d{1,2}\.\d{1,2}\.\d{2,4})",
            re.IGNORECASE,
        ),
        category="DateOfBirth",
        confidence=0.85,
    ),
    PatternRule(
        name="dob_table",
        pattern=re.compile(r"Geb\s*\.\s*-\s*Datum\D{0,100}(\d{2}\.\d{2}\.\d{4})", re.IGNORECASE),
        category="DateOfBirth",
        confidence=0.85,
    ),
    PatternRule(
        name="dob_text_month",
        pattern=re.compile(
            r"(?:geboren|Geb\.|Geburtsdatum)\s+am\s+"
            r"(\d{1,2}\.\s+(?:" + "|".join(GERMAN_MONTHS) + r")\s+\d{4})",
            re.IGNORECASE,
        ),
        category="DateOfBirth",
        confidence=0.90,
    ),
    PatternRule(
        name="bank_code",
        pattern=re.compile(r"BLZ\s*\.?\s*:?\s*(\d{1,3})\s+(\d{1,3})\s+(\d{1,5})", re.IGNORECASE),
        category="DEBankCode",
        confidence=0.90,
        extract=_joined_groups,
    ),
    PatternRule(
        name="swift_code",
        pattern=re.compile(r"\b(" + _BIC + r")\b"),
        category="SWIFTCode",
        confidence=0.85,
        validator=_is_bic,
    ),
    PatternRule(
        name="swift_code_labeled",
        pattern=re.compile(r"BIC\s*\.?\s*:?\s*(" + _BIC + r")", re.IGNORECASE),
        category="SWIFTCode",
        confidence=0.90,
        validator=_is_bic,
    ),
    PatternRule(
        name="credit_card",
        pattern=re.compile(r"\b(\d{4}[\s\-]?\d{4}[\s\-]?\d{4}[\s\-]?\d{4})\b"),
        category="CreditCardNumber",
        confidence=0.75,
        validator=_is_card_number,
    ),
    PatternRule(
        name="swiss_ahv",
        pattern=re.compile(r"\b(\d{3}\.\d{4}\.\d{4}\.\d{2})\b"),
        category="CHSocialSecurityNumber",
        confidence=0.90,
    ),
    PatternRule(
        name="phone_number",
        pattern=re.compile(r"\b(\+?\d{1,3}[\s\-]?\(?\d{2,4}\)?[\s\-]?\d{3,4}[\s\-]?\d{3,4})\b"),
        category="PhoneNumber",
        confidence=0.70,
        validator=_is_phone_number,
    ),
    PatternRule(
        name="vat_spaced",
        pattern=re.compile(r"\b(DE\s*\d{3}\s*\d{3}\s*\d{3})\b", re.IGNORECASE),
        category="DEVatNumber",
        confidence=0.95,
        unique_offset=True,
    ),
    PatternRule(
        name="vat_compact",
        pattern=re.compile(r"\b(DE\d{9})\b", re.IGNORECASE),
        category="DEVatNumber",
        confidence=0.95,
        unique_offset=True,
    ),
)


class PatternDetectorBank:
    """Runs an ordered table of ``PatternRule`` detectors over document text."""

    def __init__(self, rules: Optional[Sequence[PatternRule]] = None):
        self.rules: Tuple[PatternRule, ...] = tuple(DEFAULT_RULES if rules is None else rules)
        names = [r.name for r in self.rules]
        if len(names) != len(set(names)):
            raise ValueError("Pattern rule names must be unique")

    def rule(self, name: str) -> PatternRule:
        for r in self.rules:
            if r.name == name:
                return r
        raise KeyError(name)

    def detect(self, text: str) -> List[Entity]:
        """Concatenate every rule's matches in table order."""
        entities: List[Entity] = []
        for rule in self.rules:
            found = rule.detect(text)
            if rule.unique_offset:
                found = self._drop_seen_offsets(entities, found, rule.category)
            if found:
                logger.debug("Pattern %s matched %d times", rule.name, len(found))
            entities.extend(found)

        logger.info("Pattern detectors found %d candidate entities", len(entities))
        return entities

    @staticmethod
    def _drop_seen_offsets(
        existing: Iterable[Entity], found: List[Entity], category: str
    ) -> List[Entity]:
        seen = {e.offset for e in existing if e.category == category}
        kept = []
        for entity in found:
            if entity.offset not in seen:
                seen.add(entity.offset)
                kept.append(entity)
        return kept
