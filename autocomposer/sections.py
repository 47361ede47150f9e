"""Song sections and the policy that moves between them.

Defines :class:`SectionKind` (the closed set of section names),
:class:`SectionDefinition` (one row of the section table) and
:class:`SectionCatalog` (the table plus its transition graph).

The default catalog encodes a small song-form grammar: an intro leads into a
verse/chorus loop with occasional bridges, and a bridge may open into one of
two instrumental sections (``s1``, ``s2``) that wander between themselves and
back to the bridge.
"""

import dataclasses
import enum
import math
import typing

import autocomposer.errors
import autocomposer.parts
import autocomposer.weighted_graph


class SectionKind (str, enum.Enum):

	"""The named song sections a composition moves through."""

	INTRO = "intro"
	VERSE = "verse"
	CHORUS = "chorus"
	BRIDGE = "bridge"
	S1 = "s1"
	S2 = "s2"


@dataclasses.dataclass(frozen=True)
class SectionDefinition:

	"""
	How long a section lasts and who plays in it.

	Attributes:
		section_length: Pattern loops played before the section may change.
		pattern_length: Sequencer steps per pattern loop.
		parts: Parts requested on every loop, in scheduling order.
	"""

	section_length: int
	pattern_length: int
	parts: typing.Tuple[autocomposer.parts.PartRequest, ...]


SectionSpec = typing.Tuple[int, int, typing.Sequence[autocomposer.parts.PartEntry]]
TransitionSpec = typing.Sequence[typing.Tuple[typing.Union[str, SectionKind], float]]


DEFAULT_SECTIONS: typing.Dict[SectionKind, SectionSpec] = {
	SectionKind.INTRO:  (2, 64, ["pad", "arpeggio"]),
	SectionKind.VERSE:  (2, 64, ["drums", "bass", "pad", "melody"]),
	SectionKind.CHORUS: (2, 64, ["drums", "bass", "pad", "arpeggio", ("melody", 1)]),
	SectionKind.BRIDGE: (1, 64, ["drums", "bass", "pad", "arpeggio"]),
	SectionKind.S1:     (2, 64, ["drums", "bass", "arpeggio"]),
	SectionKind.S2:     (4, 64, ["bass", "pad", "arpeggio"]),
}


DEFAULT_TRANSITIONS: typing.Dict[SectionKind, TransitionSpec] = {
	SectionKind.INTRO:  [(SectionKind.VERSE, 0.7), (SectionKind.BRIDGE, 0.3)],
	SectionKind.VERSE:  [(SectionKind.CHORUS, 1.0)],
	SectionKind.CHORUS: [(SectionKind.VERSE, 0.3), (SectionKind.BRIDGE, 0.7)],
	SectionKind.BRIDGE: [(SectionKind.VERSE, 0.5), (SectionKind.S1, 0.25), (SectionKind.S2, 0.25)],
	SectionKind.S1:     [(SectionKind.BRIDGE, 0.5), (SectionKind.S2, 0.5)],
	SectionKind.S2:     [(SectionKind.S1, 0.5), (SectionKind.BRIDGE, 0.5)],
}


def section_kind (name: typing.Union[str, SectionKind]) -> SectionKind:

	"""Return the SectionKind for a name, raising ConfigurationError for unknown sections."""

	try:
		return SectionKind(name)

	except ValueError:
		known = ", ".join(kind.value for kind in SectionKind)
		raise autocomposer.errors.ConfigurationError(
			f"Section {name!r} not found. Known sections: {known}"
		) from None


class SectionCatalog:

	"""The section table and its transition policy.

	Bare part names in the section specs are resolved to
	:class:`~autocomposer.parts.PartRequest` entries here, once, so the
	director only ever sees normalized requests.

	Example:
		```python
		catalog = SectionCatalog()
		catalog.get("chorus").parts[-1]   # → PartRequest(PartKind.MELODY, 1)
		catalog.next_section("verse", random.Random())  # → SectionKind.CHORUS
		```
	"""

	def __init__ (
		self,
		sections: typing.Optional[typing.Mapping[typing.Union[str, SectionKind], SectionSpec]] = None,
		transitions: typing.Optional[typing.Mapping[typing.Union[str, SectionKind], TransitionSpec]] = None
	) -> None:

		"""Build and validate a catalog, defaulting to the built-in song form."""

		if sections is None:
			sections = DEFAULT_SECTIONS

		if transitions is None:
			transitions = DEFAULT_TRANSITIONS

		self._definitions: typing.Dict[SectionKind, SectionDefinition] = {}
		self._graph: autocomposer.weighted_graph.WeightedGraph[SectionKind] = autocomposer.weighted_graph.WeightedGraph()

		for name, (section_length, pattern_length, entries) in sections.items():

			kind = section_kind(name)

			if section_length <= 0:
				raise autocomposer.errors.ConfigurationError(f"Section {kind.value!r} must last at least one pattern")

			if pattern_length <= 0:
				raise autocomposer.errors.ConfigurationError(f"Section {kind.value!r} needs a positive pattern length")

			self._definitions[kind] = SectionDefinition(
				section_length = section_length,
				pattern_length = pattern_length,
				parts = tuple(autocomposer.parts.resolve_part_entry(entry) for entry in entries)
			)

		for source, options in transitions.items():
			for target, probability in options:
				self._graph.add_transition(section_kind(source), section_kind(target), probability)

		self._validate()


	def _validate (self) -> None:

		"""Check that every section can be left and every transition lands somewhere defined."""

		for kind in self._definitions:

			if not self._graph.get_transitions(kind):
				raise autocomposer.errors.ConfigurationError(f"Section {kind.value!r} has no transitions")

			total = self._graph.total_probability(kind)

			if not math.isclose(total, 1.0, abs_tol=1e-9):
				raise autocomposer.errors.ConfigurationError(
					f"Transitions from {kind.value!r} sum to {total}, expected 1.0"
				)

		for kind in set(self._graph.sources()) | self._graph.targets():
			if kind not in self._definitions:
				raise autocomposer.errors.ConfigurationError(
					f"Transition refers to undefined section {kind.value!r}"
				)


	def get (self, name: typing.Union[str, SectionKind]) -> SectionDefinition:

		"""
		Return the definition for a section name.
		"""

		kind = section_kind(name)

		if kind not in self._definitions:
			raise autocomposer.errors.ConfigurationError(f"Section {kind.value!r} is not in this catalog")

		return self._definitions[kind]


	def transitions (self, name: typing.Union[str, SectionKind]) -> typing.List[typing.Tuple[SectionKind, float]]:

		"""
		Return the ``(target, probability)`` options leaving a section.
		"""

		return self._graph.get_transitions(section_kind(name))


	def next_section (self, current: typing.Union[str, SectionKind], rng: autocomposer.weighted_graph.RandomSource) -> SectionKind:

		"""Choose the section that follows ``current``.

		Raises:
			TransitionError: If ``current`` is not a section this catalog can leave.
		"""

		try:
			kind = SectionKind(current)

		except ValueError:
			raise autocomposer.errors.TransitionError(f"Cannot transition from unknown section {current!r}") from None

		if kind not in self._definitions:
			raise autocomposer.errors.TransitionError(f"Cannot transition from {kind.value!r}: not in this catalog")

		return self._graph.choose_next(kind, rng)


	def reachable_from (self, start: typing.Union[str, SectionKind]) -> typing.Set[SectionKind]:

		"""
		Return every section that can eventually follow ``start``, including itself.
		"""

		seen: typing.Set[SectionKind] = set()
		pending = [section_kind(start)]

		while pending:
			kind = pending.pop()

			if kind in seen:
				continue

			seen.add(kind)
			pending.extend(target for target, _ in self._graph.get_transitions(kind))

		return seen


	def __contains__ (self, name: object) -> bool:

		try:
			return SectionKind(name) in self._definitions

		except ValueError:
			return False


	def __iter__ (self) -> typing.Iterator[SectionKind]:

		return iter(self._definitions)


	def __len__ (self) -> int:

		return len(self._definitions)
