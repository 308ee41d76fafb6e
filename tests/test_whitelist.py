"""Unit tests for whitelist filtering."""

import json

import pytest
from conftest import entity

from pii_redaction.tuning import Thresholds
from pii_redaction.whitelist import (
    ADDRESS,
    ORGANIZATION,
    ROLE,
    AddressComponents,
    Whitelist,
    WhitelistFilter,
    load_whitelist,
    normalize,
    similarity,
)


@pytest.fixture(scope="module")
def wf() -> WhitelistFilter:
    return WhitelistFilter()


class TestNormalize:
    @pytest.mark.parametrize(
        "variant",
        ["Musterstraße", "Musterstrasse", "Muster Str.", "MUSTERSTR", "Muster-Straße"],
    )
    def test_street_spellings_converge(self, variant):
        assert normalize(variant) == "musterstrasse"

    def test_umlauts_folded(self):
        assert normalize("Kurfürstendamm") == "kurfuerstendamm"
        assert normalize("Sächsische Grundstücksauktionen") == "saechsische grundstuecksauktionen"

    def test_punctuation_and_whitespace_flattened(self):
        assert normalize("Hauptstr. 9,\r\n10115   Berlin") == "hauptstrasse 9 10115 berlin"

    def test_empty(self):
        assert normalize("  ,. ") == ""


class TestSimilarity:
    def test_identical(self):
        assert similarity("berlin", "berlin") == 1.0

    def test_both_empty(self):
        assert similarity("", "") == 1.0

    def test_one_edit(self):
        assert similarity("abc", "abd") == pytest.approx(2 / 3)


class TestAddressComponents:
    def test_parse_full_address(self):
        parts = AddressComponents.parse("hauptstrasse 9a 10115 berlin")
        assert parts == AddressComponents(
            street="hauptstrasse", number="9a", postal="10115", city="berlin"
        )

    def test_parse_nothing(self):
        assert not AddressComponents.parse("an")


class TestNoiseSuppression:
    @pytest.mark.parametrize(
        ("text", "reason"),
        [
            ("B+", "energy rating letter"),
            ("a", "energy rating letter"),
            ("150", "energy scale number"),
            ("XY", "organization too short"),
        ],
    )
    def test_organization_noise(self, wf, text, reason):
        assert wf.exclusion_reason(entity(text, "Organization", 0)) == reason

    def test_short_person_not_noise(self, wf):
        assert wf.exclusion_reason(entity("Jo", "Person", 0)) is None

    def test_scale_number_over_limit_is_kept(self, wf):
        assert wf.exclusion_reason(entity("301", "Organization", 0)) is None

    @pytest.mark.parametrize("text", ["25 50 75 100", "100\n125 150", "0 50 100"])
    def test_scale_sequences_dropped(self, wf, text):
        assert wf.exclusion_reason(entity(text, "PhoneNumber", 0)) == "energy scale sequence"

    def test_irregular_numbers_kept(self, wf):
        assert wf.exclusion_reason(entity("17 203 4", "PhoneNumber", 0)) is None


class TestStaticWhitelist:
    def test_role_word_exact(self, wf):
        assert wf.is_excluded(entity("Eigentümer", "Person", 0))

    def test_role_word_inside_phrase(self, wf):
        reason = wf.exclusion_reason(entity("der Notar", "Person", 0))
        assert reason == "role word 'notar'"

    def test_role_word_as_prefix_does_not_match(self, wf):
        assert wf.exclusion_reason(entity("Notarius Meier", "Person", 0)) is None

    def test_organization(self, wf):
        reason = wf.exclusion_reason(entity("Deutsche Grundstücksauktionen AG", "Organization", 0))
        assert reason.startswith("organization")

    def test_organization_case_insensitive(self, wf):
        assert wf.is_excluded(entity("westdeutsche grundstücksauktionen ag", "Organization", 0))

    def test_company_address(self, wf):
        reason = wf.exclusion_reason(entity("Kurfürstendamm 65", "Address", 0))
        assert reason.startswith("address")

    def test_company_address_abbreviated(self, wf):
        assert wf.is_excluded(entity("Hohe Str. 12, 01069 Dresden", "Address", 0))

    def test_city_alone_is_contained_in_company_address(self, wf):
        assert wf.is_excluded(entity("Berlin", "Location", 0))

    def test_person_kept(self, wf):
        assert not wf.is_excluded(entity("Anna Schmidt", "Person", 0))

    def test_custom_whitelist(self):
        custom = Whitelist.from_dict({"role_words": ["Makler"], "addresses": ["Teststraße 1"]})
        f = WhitelistFilter(custom)

        kept = f.filter([
            entity("Makler", "Person", 0),
            entity("Teststr. 1", "Address", 10),
            entity("Anna Schmidt", "Person", 30),
        ])

        assert [e.text for e in kept] == ["Anna Schmidt"]


class TestDynamicExclusion:
    EXCLUDE = "Hauptstraße 9, 10115 Berlin"

    def test_substring(self, wf):
        reason = wf.exclusion_reason(entity("Hauptstraße 9", "Address", 0), self.EXCLUDE)
        assert reason == "exclude-address substring"

    def test_similarity(self, wf):
        reason = wf.exclusion_reason(entity("Hauptstrase 9 10115 Berlin", "Address", 0), self.EXCLUDE)
        assert reason.startswith("exclude-address similarity")

    def test_token_matches(self, wf):
        reason = wf.exclusion_reason(entity("10115 Berlin Hauptstrasse", "Address", 0), self.EXCLUDE)
        assert reason == "exclude-address parts 3/3"

    def test_component_matches(self, wf):
        reason = wf.exclusion_reason(
            entity("Hauptstr. 7 Berlin", "Address", 0),
            "Hauptstraße 9, 10115 Berlin, Deutschland",
        )
        assert reason == "exclude-address components street+city"

    def test_unrelated_person_kept(self, wf):
        assert wf.exclusion_reason(entity("Max Mustermann", "Person", 0), self.EXCLUDE) is None

    def test_blank_exclude_address_ignored(self, wf):
        assert wf.exclusion_reason(entity("Hauptstraße 9", "Address", 0), "   ") is None
        assert wf.exclusion_reason(entity("Hauptstraße 9", "Address", 0), None) is None

    def test_stricter_thresholds(self):
        strict = WhitelistFilter(Whitelist(), Thresholds(min_component_matches=3))
        assert strict.exclusion_reason(
            entity("Hauptstr. 7 Berlin", "Address", 0),
            "Hauptstraße 9, 10115 Berlin, Deutschland",
        ) is None

    def test_filter_preserves_order(self, wf):
        entities = [
            entity("Max Mustermann", "Person", 0),
            entity("Hauptstraße 9", "Address", 20),
            entity("Erika Musterfrau", "Person", 40),
        ]
        kept = wf.filter(entities, exclude_address=self.EXCLUDE)
        assert [e.text for e in kept] == ["Max Mustermann", "Erika Musterfrau"]


class TestLoadWhitelist:
    def test_packaged_default(self):
        wl = load_whitelist()
        assert "Kurfürstendamm 65" in wl.values(ADDRESS)
        assert "Notar" in wl.values(ROLE)
        assert wl.values(ORGANIZATION)

    def test_from_file(self, tmp_path):
        path = tmp_path / "whitelist.json"
        path.write_text(
            json.dumps({"addresses": ["Teststraße 1"], "role_words": ["Makler"]}),
            encoding="utf-8",
        )

        wl = load_whitelist(path)

        assert wl.values(ADDRESS) == ("Teststraße 1",)
        assert wl.values(ROLE) == ("Makler",)
        assert wl.values(ORGANIZATION) == ()
