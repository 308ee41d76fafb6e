"""Merge NER entities with pattern-detector entities.

NER output is the baseline. A pattern entity that overlaps nothing is added.
A pattern entity that overlaps NER entities is admitted only when every
overlapped pair is listed in the priority-override table; in that case the
overlapped NER entities are removed. Any other overlap drops the pattern
entity.

Overlaps are always checked against the original NER list, so the result
does not depend on the order in which pattern entities are supplied.
"""

import logging
from typing import FrozenSet, List, Sequence, Set, Tuple

from .models.entities import Entity

logger = logging.getLogger(__name__)

# (pattern category, NER category) pairs where the pattern entity wins
PRIORITY_OVERRIDES: FrozenSet[Tuple[str, str]] = frozenset({
    ("Occupation", "Organization"),
    ("DEBankCode", "PhoneNumber"),
    ("DEBankCode", "InternationalBankingAccountNumber"),
})


def merge_entities(
    ner_entities: Sequence[Entity],
    pattern_entities: Sequence[Entity],
    overrides: FrozenSet[Tuple[str, str]] = PRIORITY_OVERRIDES,
) -> List[Entity]:
    """Return a new, offset-sorted list combining both inputs."""
    removed: Set[int] = set()
    admitted: List[Entity] = []

    for candidate in pattern_entities:
        conflicts = [i for i, ner in enumerate(ner_entities) if candidate.overlaps(ner)]

        if not conflicts:
            admitted.append(candidate)
            continue

        # All-or-nothing: one non-override overlap keeps every overlapped NER entity, even override pairs.
        blocking = [
            ner_entities[i]
            for i in conflicts
            if (candidate.category, ner_entities[i].category) not in overrides
        ]
        if blocking:
            logger.debug(
                "Dropped pattern entity [%s] %r at %d-%d (overlaps NER [%s] %r)",
                candidate.category, candidate.text, candidate.offset, candidate.end,
                blocking[0].category, blocking[0].text,
            )
            continue

        for i in conflicts:
            logger.debug(
                "Pattern [%s] %r replaces NER [%s] %r",
                candidate.category, candidate.text,
                ner_entities[i].category, ner_entities[i].text,
            )
        removed.update(conflicts)
        admitted.append(candidate)

    merged = [e for i, e in enumerate(ner_entities) if i not in removed] + admitted
    merged.sort(key=Entity.sort_key)

    logger.info(
        "Merged total: %d entities (%d NER kept, %d NER replaced, %d from patterns)",
        len(merged), len(ner_entities) - len(removed), len(removed), len(admitted),
    )
    return merged
