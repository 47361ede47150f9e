import random

import pytest

import autocomposer.errors
import autocomposer.parts
import autocomposer.sections

from autocomposer.parts import PartKind, PartRequest
from autocomposer.sections import SectionKind


EXPECTED_TABLE = {
	"intro":  (2, 64, [PartRequest(PartKind.PAD), PartRequest(PartKind.ARPEGGIO)]),
	"verse":  (2, 64, [PartRequest(PartKind.DRUMS), PartRequest(PartKind.BASS), PartRequest(PartKind.PAD), PartRequest(PartKind.MELODY)]),
	"chorus": (2, 64, [PartRequest(PartKind.DRUMS), PartRequest(PartKind.BASS), PartRequest(PartKind.PAD), PartRequest(PartKind.ARPEGGIO), PartRequest(PartKind.MELODY, 1)]),
	"bridge": (1, 64, [PartRequest(PartKind.DRUMS), PartRequest(PartKind.BASS), PartRequest(PartKind.PAD), PartRequest(PartKind.ARPEGGIO)]),
	"s1":     (2, 64, [PartRequest(PartKind.DRUMS), PartRequest(PartKind.BASS), PartRequest(PartKind.ARPEGGIO)]),
	"s2":     (4, 64, [PartRequest(PartKind.BASS), PartRequest(PartKind.PAD), PartRequest(PartKind.ARPEGGIO)]),
}


ALLOWED = {
	"intro": {"verse", "bridge"},
	"verse": {"chorus"},
	"chorus": {"verse", "bridge"},
	"bridge": {"verse", "s1", "s2"},
	"s1": {"bridge", "s2"},
	"s2": {"s1", "bridge"},
}


def test_default_catalog_matches_section_table () -> None:

	"""Every built-in section should have the documented length, pattern length and parts."""

	catalog = autocomposer.sections.SectionCatalog()

	assert len(catalog) == 6

	for name, (section_length, pattern_length, parts) in EXPECTED_TABLE.items():
		definition = catalog.get(name)
		assert definition.section_length == section_length, name
		assert definition.pattern_length == pattern_length, name
		assert list(definition.parts) == parts, name


def test_unknown_section_is_a_configuration_error () -> None:

	"""Looking up a section that does not exist should name the known ones."""

	catalog = autocomposer.sections.SectionCatalog()

	with pytest.raises(autocomposer.errors.ConfigurationError, match="Known sections"):
		catalog.get("outro")


def test_contains_accepts_names_and_kinds () -> None:

	"""Membership works for plain names, enum members and rejects strangers."""

	catalog = autocomposer.sections.SectionCatalog()

	assert "verse" in catalog
	assert SectionKind.S2 in catalog
	assert "outro" not in catalog
	assert 42 not in catalog


@pytest.mark.parametrize("current, draw, expected", [
	("intro", 0.0, "verse"),
	("intro", 0.69, "verse"),
	("intro", 0.7, "bridge"),
	("verse", 0.99, "chorus"),
	("chorus", 0.29, "verse"),
	("chorus", 0.3, "bridge"),
	("bridge", 0.49, "verse"),
	("bridge", 0.5, "s1"),
	("bridge", 0.75, "s2"),
	("s1", 0.49, "bridge"),
	("s1", 0.5, "s2"),
	("s2", 0.49, "s1"),
	("s2", 0.5, "bridge"),
])
def test_next_section_follows_probabilities (scripted_random, current: str, draw: float, expected: str) -> None:

	"""A single uniform draw walks the cumulative transition probabilities in order."""

	catalog = autocomposer.sections.SectionCatalog()

	assert catalog.next_section(current, scripted_random(floats=[draw])) == expected


def test_next_section_stays_within_allowed_targets () -> None:

	"""Over many draws each section only ever moves to its allowed successors."""

	catalog = autocomposer.sections.SectionCatalog()
	rng = random.Random(2024)

	for current, allowed in ALLOWED.items():
		seen = {catalog.next_section(current, rng).value for _ in range(400)}
		assert seen == allowed, current


def test_transition_closure_from_intro () -> None:

	"""Every section reachable from the intro leads only to catalog sections."""

	catalog = autocomposer.sections.SectionCatalog()
	reachable = catalog.reachable_from("intro")

	assert reachable == set(SectionKind)

	for kind in reachable:
		for target, _ in catalog.transitions(kind):
			assert target in catalog


def test_next_section_unknown_source_is_transition_error () -> None:

	"""Transitioning from an unknown section raises TransitionError, a ConfigurationError."""

	catalog = autocomposer.sections.SectionCatalog()

	with pytest.raises(autocomposer.errors.TransitionError):
		catalog.next_section("outro", random.Random())

	assert issubclass(autocomposer.errors.TransitionError, autocomposer.errors.ConfigurationError)


def test_custom_catalog_with_subset_of_sections () -> None:

	"""A catalog may use only some sections as long as transitions stay inside it."""

	catalog = autocomposer.sections.SectionCatalog(
		sections = {
			"intro": (1, 16, ["pad"]),
			"verse": (2, 32, ["bass", ("melody", 1)]),
		},
		transitions = {
			"intro": [("verse", 1.0)],
			"verse": [("verse", 0.5), ("intro", 0.5)],
		}
	)

	assert catalog.get("verse").parts == (PartRequest(PartKind.BASS), PartRequest(PartKind.MELODY, 1))

	with pytest.raises(autocomposer.errors.ConfigurationError, match="not in this catalog"):
		catalog.get("chorus")


def test_catalog_rejects_dangling_transition () -> None:

	"""A transition to a section with no definition is caught at construction."""

	with pytest.raises(autocomposer.errors.ConfigurationError, match="undefined section"):
		autocomposer.sections.SectionCatalog(
			sections = {"intro": (1, 64, ["pad"])},
			transitions = {"intro": [("verse", 1.0)]}
		)


def test_catalog_rejects_probabilities_not_summing_to_one () -> None:

	"""Each section's outgoing probabilities must add up to one."""

	with pytest.raises(autocomposer.errors.ConfigurationError, match="sum to"):
		autocomposer.sections.SectionCatalog(
			sections = {"intro": (1, 64, ["pad"]), "verse": (1, 64, ["pad"])},
			transitions = {"intro": [("verse", 0.6)], "verse": [("intro", 1.0)]}
		)


def test_catalog_rejects_section_without_exit () -> None:

	"""Every defined section needs somewhere to go."""

	with pytest.raises(autocomposer.errors.ConfigurationError, match="no transitions"):
		autocomposer.sections.SectionCatalog(
			sections = {"intro": (1, 64, ["pad"]), "verse": (1, 64, ["pad"])},
			transitions = {"intro": [("verse", 1.0)]}
		)


@pytest.mark.parametrize("section_length, pattern_length", [(0, 64), (-1, 64), (2, 0)])
def test_catalog_rejects_non_positive_lengths (section_length: int, pattern_length: int) -> None:

	"""Section and pattern lengths must be positive."""

	with pytest.raises(autocomposer.errors.ConfigurationError):
		autocomposer.sections.SectionCatalog(
			sections = {"intro": (section_length, pattern_length, ["pad"])},
			transitions = {"intro": [("intro", 1.0)]}
		)


def test_catalog_rejects_unknown_part () -> None:

	"""Part names in the table are checked when the catalog loads."""

	with pytest.raises(autocomposer.errors.ConfigurationError, match="Known parts"):
		autocomposer.sections.SectionCatalog(
			sections = {"intro": (1, 64, ["theremin"])},
			transitions = {"intro": [("intro", 1.0)]}
		)
