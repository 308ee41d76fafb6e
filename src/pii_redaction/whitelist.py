"""Whitelist filtering of detected entities.

Entities are dropped when they are OCR noise from energy-certificate scales,
when they match the static allow-list (role nouns, the auction houses' own
names and addresses), or when they match an address the caller asked to keep
visible. All comparisons run on ``normalize``d text so umlauts, ``ß`` and
street abbreviations do not defeat a match.
"""

import json
import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

from rapidfuzz.distance import Levenshtein

from .models.entities import Entity
from .tuning import DEFAULT_THRESHOLDS, Thresholds

logger = logging.getLogger(__name__)

_FOLDS = (("ß", "ss"), ("ä", "ae"), ("ö", "oe"), ("ü", "ue"))
_SEPARATORS = re.compile(r"[\r\n,.\-]")
_WHITESPACE = re.compile(r"\s+")
_DETACHED_STRASSE = re.compile(r"(?<=[^\W\d_]) strasse\b")
_ENERGY_GRADE = re.compile(r"[A-H]\+?", re.IGNORECASE)
_HOUSE_NUMBER = re.compile(r"\d+[a-z]?")
_POSTAL_CODE = re.compile(r"\d{5}")
_INTEGER = re.compile(r"\d+")

ADDRESS = "address"
ORGANIZATION = "organization"
ROLE = "role"

_JSON_KINDS = {"addresses": ADDRESS, "organizations": ORGANIZATION, "role_words": ROLE}


def normalize(text: str) -> str:
    """Lowercase, fold German diacritics, expand ``Str.`` and flatten punctuation.

    ``Musterstraße``, ``Musterstrasse`` and ``Muster Str.`` all normalize to
    ``musterstrasse``.
    """
    s = text.lower()
    for src, dst in _FOLDS:
        s = s.replace(src, dst)
    s = re.sub(r"str\.", "strasse", s)
    s = re.sub(r"str\b", "strasse", s)
    s = _SEPARATORS.sub(" ", s)
    s = _WHITESPACE.sub(" ", s).strip()
    return _DETACHED_STRASSE.sub("strasse", s)


def similarity(a: str, b: str) -> float:
    """``(maxLen - editDistance) / maxLen``; two empty strings are identical."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return (longest - Levenshtein.distance(a, b)) / longest


@dataclass(frozen=True)
class AddressComponents:
    street: str = ""
    number: str = ""
    postal: str = ""
    city: str = ""

    @classmethod
    def parse(cls, normalized: str) -> "AddressComponents":
        parts = normalized.split()

        def first(predicate) -> str:
            return next((p for p in parts if predicate(p)), "")

        return cls(
            street=first(lambda p: "str" in p),
            number=first(lambda p: _HOUSE_NUMBER.fullmatch(p)),
            postal=first(lambda p: _POSTAL_CODE.fullmatch(p)),
            city=first(
                lambda p: len(p) > 2
                and "str" not in p
                and not _HOUSE_NUMBER.fullmatch(p)
                and not _POSTAL_CODE.fullmatch(p)
            ),
        )

    def __bool__(self) -> bool:
        return bool(self.street or self.number or self.postal or self.city)


@dataclass(frozen=True)
class WhitelistEntry:
    kind: str
    value: str


@dataclass(frozen=True)
class Whitelist:
    """Ordered, immutable allow-list entries tagged by kind."""

    entries: Tuple[WhitelistEntry, ...] = ()

    def values(self, kind: str) -> Tuple[str, ...]:
        return tuple(e.value for e in self.entries if e.kind == kind)

    @classmethod
    def from_dict(cls, data: dict) -> "Whitelist":
        entries = []
        for key, kind in _JSON_KINDS.items():
            entries.extend(WhitelistEntry(kind=kind, value=v) for v in data.get(key, []))
        return cls(entries=tuple(entries))


def load_whitelist(path: Optional[Union[str, Path]] = None) -> Whitelist:
    """Load allow-list data from ``path`` or the packaged default."""
    if path is None:
        raw = resources.files("pii_redaction.data").joinpath("whitelist.json").read_text("utf-8")
    else:
        raw = Path(path).read_text(encoding="utf-8")
    whitelist = Whitelist.from_dict(json.loads(raw))
    logger.info(
        "Loaded whitelist: %d addresses, %d organizations, %d role words",
        len(whitelist.values(ADDRESS)),
        len(whitelist.values(ORGANIZATION)),
        len(whitelist.values(ROLE)),
    )
    return whitelist


@lru_cache(maxsize=None)
def default_whitelist() -> Whitelist:
    return load_whitelist()


def _tokens(normalized: str, min_length: int) -> List[str]:
    return [t for t in normalized.split(" ") if len(t) >= min_length]


class WhitelistFilter:
    """Decides whether an entity must be kept out of the redaction set."""

    def __init__(
        self,
        whitelist: Optional[Whitelist] = None,
        thresholds: Thresholds = DEFAULT_THRESHOLDS,
    ):
        whitelist = whitelist if whitelist is not None else default_whitelist()
        self.thresholds = thresholds
        self._roles = [
            (role, re.compile(r"\b" + re.escape(role) + r"\b"))
            for role in dict.fromkeys(normalize(v) for v in whitelist.values(ROLE))
            if role
        ]
        self._organizations = [o for o in (normalize(v) for v in whitelist.values(ORGANIZATION)) if o]
        self._addresses = [a for a in (normalize(v) for v in whitelist.values(ADDRESS)) if a]

    def filter(self, entities: Iterable[Entity], exclude_address: Optional[str] = None) -> List[Entity]:
        entities = list(entities)
        kept = [e for e in entities if not self.is_excluded(e, exclude_address)]
        logger.info(
            "Filtered entities: %d -> %d (excluded %d)",
            len(entities), len(kept), len(entities) - len(kept),
        )
        return kept

    def is_excluded(self, entity: Entity, exclude_address: Optional[str] = None) -> bool:
        reason = self.exclusion_reason(entity, exclude_address)
        if reason:
            logger.debug("Excluding [%s] %r: %s", entity.category, entity.text, reason)
        return reason is not None

    def exclusion_reason(self, entity: Entity, exclude_address: Optional[str] = None) -> Optional[str]:
        """Name of the first rule that excludes ``entity``, or None to keep it."""
        reason = self._noise_reason(entity)
        if reason:
            return reason

        normalized = normalize(entity.text)
        reason = self._static_reason(normalized)
        if reason:
            return reason

        if exclude_address and exclude_address.strip():
            return self._dynamic_reason(normalized, normalize(exclude_address))
        return None

    # -- noise -------------------------------------------------------------

    def _noise_reason(self, entity: Entity) -> Optional[str]:
        t = self.thresholds
        clean = entity.text.replace("\r", " ").replace("\n", " ").strip()

        if entity.category == "Organization":
            if _ENERGY_GRADE.fullmatch(clean):
                return "energy rating letter"
            if re.fullmatch(r"\d{1,3}", clean) and int(clean) <= t.energy_scale_max:
                return "energy scale number"
            if len(clean) <= 2:
                return "organization too short"

        parts = clean.split()
        if len(parts) >= t.energy_scale_min_tokens and all(
            _INTEGER.fullmatch(p) and int(p) <= t.energy_scale_max for p in parts
        ):
            nums = [int(p) for p in parts]
            steps = [b - a for a, b in zip(nums, nums[1:])]
            increasing = all(s > 0 for s in steps)
            evenly_spaced = steps[0] in t.energy_scale_steps and all(s == steps[0] for s in steps)
            if increasing or evenly_spaced:
                return "energy scale sequence"
        return None

    # -- static whitelist --------------------------------------------------

    def _static_reason(self, normalized: str) -> Optional[str]:
        if not normalized:
            return "empty after normalization"

        words = normalized.split(" ")
        for role, pattern in self._roles:
            if normalized == role or role in words or pattern.search(normalized):
                return f"role word {role!r}"

        for org in self._organizations:
            if normalized == org or org in normalized or normalized in org:
                return f"organization {org!r}"

        t = self.thresholds
        entity_parts = _tokens(normalized, t.min_token_length)
        for address in self._addresses:
            if address in normalized or normalized in address:
                return f"address {address!r}"

            address_parts = _tokens(address, t.min_token_length)
            if not address_parts:
                continue
            matching = [
                part for part in address_parts
                if any(ep == part or part in ep or ep in part for ep in entity_parts)
            ]
            if (
                len(matching) >= t.min_token_matches
                and len(matching) / len(address_parts) >= t.static_address_ratio
            ):
                return f"address parts {len(matching)}/{len(address_parts)} of {address!r}"
        return None

    # -- dynamic exclusion -------------------------------------------------

    def _dynamic_reason(self, normalized: str, excluded: str) -> Optional[str]:
        t = self.thresholds
        if not excluded:
            return None

        if excluded in normalized or normalized in excluded:
            return "exclude-address substring"

        score = similarity(normalized, excluded)
        if score >= t.address_similarity:
            return f"exclude-address similarity {score:.2f}"

        excluded_parts = _tokens(excluded, t.min_token_length)
        entity_parts = _tokens(normalized, t.min_token_length)
        if excluded_parts:
            matching = [
                part for part in excluded_parts
                if any(
                    ep == part or similarity(ep, part) >= t.token_similarity
                    for ep in entity_parts
                )
            ]
            if (
                len(matching) >= t.min_token_matches
                and len(matching) / len(excluded_parts) >= t.token_match_ratio
            ):
                return f"exclude-address parts {len(matching)}/{len(excluded_parts)}"

        ours = AddressComponents.parse(normalized)
        if not ours:
            return None
        theirs = AddressComponents.parse(excluded)
        matches = []
        if ours.street and theirs.street and similarity(ours.street, theirs.street) >= t.component_similarity:
            matches.append("street")
        if ours.number and ours.number == theirs.number:
            matches.append("number")
        if ours.postal and ours.postal == theirs.postal:
            matches.append("postal")
        if ours.city and theirs.city and similarity(ours.city, theirs.city) >= t.component_similarity:
            matches.append("city")
        if len(matches) >= t.min_component_matches:
            return "exclude-address components " + "+".join(matches)
        return None
