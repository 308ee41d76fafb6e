"""Unit tests for merging NER and pattern entities."""

from conftest import entity

from pii_redaction.merging import PRIORITY_OVERRIDES, merge_entities
from pii_redaction.models.entities import EntitySource


def _pattern(text, category, offset, length=None):
    return entity(text, category, offset, length, confidence=0.85, source=EntitySource.PATTERN)


class TestMergeEntities:
    def test_disjoint_pattern_entity_added(self):
        ner = [entity("Anna Schmidt", "Person", 0)]
        pat = [_pattern("Lehrerin", "Occupation", 20)]

        merged = merge_entities(ner, pat)

        assert [e.text for e in merged] == ["Anna Schmidt", "Lehrerin"]

    def test_override_replaces_ner_entity(self):
        ner = [entity("Lehrer GmbH", "Organization", 10)]
        pat = [_pattern("Lehrer", "Occupation", 10)]

        merged = merge_entities(ner, pat)

        assert len(merged) == 1
        assert merged[0].category == "Occupation"
        assert merged[0].source == EntitySource.PATTERN

    def test_bank_code_beats_phone_number(self):
        ner = [entity("370 400 44", "PhoneNumber", 5)]
        pat = [_pattern("37040044", "DEBankCode", 5, length=10)]

        merged = merge_entities(ner, pat)

        assert [(e.category, e.text) for e in merged] == [("DEBankCode", "37040044")]

    def test_non_override_overlap_drops_pattern_entity(self):
        ner = [entity("12.03.1980", "DateTime", 14)]
        pat = [_pattern("12.03.1980", "DateOfBirth", 14)]

        merged = merge_entities(ner, pat)

        assert [(e.category, e.source) for e in merged] == [("DateTime", EntitySource.NER)]

    def test_partial_override_blocks_everything(self):
        # Overlaps one overridable and one non-overridable NER entity
        ner = [
            entity("Muster", "Organization", 0),
            entity("Ingenieur Berlin", "Address", 7),
        ]
        pat = [_pattern("Muster Ingenieur", "Occupation", 0)]

        merged = merge_entities(ner, pat)

        assert [e.category for e in merged] == ["Organization", "Address"]

    def test_one_pattern_replaces_several_ner_entities(self):
        ner = [
            entity("Bau", "Organization", 0),
            entity("Ingenieur", "Organization", 4),
            entity("Anna", "Person", 30),
        ]
        pat = [_pattern("Bauingenieur X", "Occupation", 0, length=13)]

        merged = merge_entities(ner, pat)

        assert [e.text for e in merged] == ["Bauingenieur X", "Anna"]

    def test_independent_of_pattern_order(self):
        ner = [entity("Bank GmbH", "Organization", 0), entity("12345", "PhoneNumber", 40)]
        pat = [
            _pattern("Bank", "Occupation", 0),
            _pattern("Bankkaufmann", "Occupation", 0, length=12),
            _pattern("12345", "DEBankCode", 40),
            _pattern("COBADEFFXXX", "SWIFTCode", 60),
        ]

        forward = merge_entities(ner, pat)
        backward = merge_entities(ner, list(reversed(pat)))

        assert forward == backward

    def test_empty_pattern_list_returns_sorted_ner(self):
        ner = [entity("B", "Person", 9), entity("A", "Person", 2)]

        merged = merge_entities(ner, [])

        assert [e.offset for e in merged] == [2, 9]
        assert merged is not ner

    def test_inputs_not_mutated(self):
        ner = [entity("Bank GmbH", "Organization", 0)]
        pat = [_pattern("Bank", "Occupation", 0)]

        merge_entities(ner, pat)

        assert len(ner) == 1 and len(pat) == 1

    def test_custom_override_table(self):
        ner = [entity("12.03.1980", "DateTime", 0)]
        pat = [_pattern("12.03.1980", "DateOfBirth", 0)]

        merged = merge_entities(ner, pat, overrides=PRIORITY_OVERRIDES | {("DateOfBirth", "DateTime")})

        assert [e.category for e in merged] == ["DateOfBirth"]
