"""Section harmony: chord choice, sparse harmony maps, and their expansion.

A harmony map is a sparse ``{step: degree}`` dictionary saying where the
chord changes within a pattern loop.  Patterns read the *dense* form, one
degree per step, produced by :func:`expand_harmony`.  Each section gets one
map for the whole composition (see :class:`HarmonyCache`), so coming back to
a verse brings back the verse's chords.
"""

import logging
import typing

import autocomposer.errors
import autocomposer.scales
import autocomposer.weighted_graph


logger = logging.getLogger(__name__)


HarmonyMap = typing.Dict[int, int]

CHANGES_PER_PATTERN = 4


def _section_key (section: str) -> str:

	"""Return the plain string for a section name or a str-valued enum member."""

	# Enum members hash by member name, not by value.
	return str(getattr(section, "value", section))


def expand_harmony (harmony_map: typing.Mapping[int, int], pattern_length: int) -> typing.Tuple[int, ...]:

	"""Expand a sparse harmony map into one chord degree per step.

	Each step holds the degree of the nearest map entry at or before it.

	Parameters:
		harmony_map: Sparse ``{step: degree}`` map; must contain step 0.
		pattern_length: Number of steps in the pattern loop.

	Returns:
		A tuple of exactly ``pattern_length`` degrees.

	Raises:
		ConfigurationError: If ``pattern_length`` is not positive.
		InvariantViolation: If the map has no step-0 entry or has an entry
			outside the pattern.

	Example:
		```python
		dense = expand_harmony({0: 0, 16: 3, 32: 5}, 64)
		dense[15], dense[16], dense[63]  # → (0, 3, 5)
		```
	"""

	if pattern_length <= 0:
		raise autocomposer.errors.ConfigurationError("Pattern length must be positive")

	if 0 not in harmony_map:
		raise autocomposer.errors.InvariantViolation("Harmony map has no entry at step 0")

	slots: typing.List[typing.Optional[int]] = [None] * pattern_length

	for step, degree in harmony_map.items():

		if not 0 <= step < pattern_length:
			raise autocomposer.errors.InvariantViolation(
				f"Harmony map entry at step {step} lies outside a {pattern_length} step pattern"
			)

		slots[step] = degree

	dense: typing.List[int] = []
	chord = harmony_map[0]

	for slot in slots:
		if slot is not None:
			chord = slot
		dense.append(chord)

	if len(dense) != pattern_length:
		raise autocomposer.errors.InvariantViolation(
			f"Expanded harmony has {len(dense)} steps, expected {pattern_length}"
		)

	return tuple(dense)


def pick_chord (scale_type: int, rng: autocomposer.weighted_graph.RandomSource) -> int:

	"""Pick a random chord degree (0-6), steering away from the diminished degree.

	A first draw that lands on ``(6 - scale_type) % 7`` is pushed up by one to
	three degrees (wrapping at 7), so that chord is never chosen directly.

	Example:
		```python
		# In minor (scale type 5) degree 1 is avoided.
		pick_chord(5, random.Random(3))
		```
	"""

	chord = rng.randint(0, 6)

	if chord == autocomposer.scales.avoided_degree(scale_type):
		chord += rng.randint(1, 3)

	return chord % autocomposer.scales.DEGREES_PER_OCTAVE


def generate_harmony_map (
	scale_type: int,
	rng: autocomposer.weighted_graph.RandomSource,
	pattern_length: int = 64
) -> HarmonyMap:

	"""Create a new sparse harmony map for one section.

	The loop opens on the tonic (degree 0) and changes chord at each quarter
	of the pattern (steps 16, 32 and 48 of a 64 step loop).
	"""

	if pattern_length <= 0:
		raise autocomposer.errors.ConfigurationError("Pattern length must be positive")

	harmony_map: HarmonyMap = {0: 0}
	spacing = pattern_length // CHANGES_PER_PATTERN

	if spacing == 0:
		return harmony_map

	for change in range(1, CHANGES_PER_PATTERN):
		harmony_map[change * spacing] = pick_chord(scale_type, rng)

	return harmony_map


class HarmonyCache:

	"""Remember one harmony map per section for the length of a composition."""

	def __init__ (self, scale_type: int, rng: autocomposer.weighted_graph.RandomSource) -> None:

		"""
		Initialize an empty cache that draws new maps from ``rng``.
		"""

		self.scale_type = scale_type
		self.rng = rng
		self._maps: typing.Dict[str, HarmonyMap] = {}


	def harmony_map (self, section: str, pattern_length: int) -> HarmonyMap:

		"""
		Return the section's map, generating it on first request.
		"""

		key = _section_key(section)

		if key not in self._maps:
			self._maps[key] = generate_harmony_map(self.scale_type, self.rng, pattern_length)
			logger.debug(f"Generated harmony for {key}: {self._maps[key]}")

		return self._maps[key]


	def dense_harmony (self, section: str, pattern_length: int) -> typing.Tuple[int, ...]:

		"""
		Return the section's harmony expanded to one degree per step.
		"""

		return expand_harmony(self.harmony_map(section, pattern_length), pattern_length)


	def clear (self, scale_type: typing.Optional[int] = None) -> None:

		"""
		Forget every cached map, optionally switching to another scale type.
		"""

		if scale_type is not None:
			self.scale_type = scale_type

		self._maps = {}


	def __contains__ (self, section: object) -> bool:

		return isinstance(section, str) and _section_key(section) in self._maps


	def __len__ (self) -> int:

		return len(self._maps)
