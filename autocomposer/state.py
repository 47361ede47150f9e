import dataclasses
import typing

import autocomposer.parts
import autocomposer.sections


@dataclasses.dataclass
class CompositionState:

	"""
	The now-playing record of a composition.

	Owned and mutated by :class:`~autocomposer.director.CompositionDirector`;
	generators receive it on every call and must only read from it.

	Attributes:
		key: Tonic pitch class (0-11).
		scale: Scale type (see :mod:`autocomposer.scales`), 5 = minor.
		scale_pitches: Pitch-table indices of the scale, fixed at start.
		section: The section currently playing.
		pattern_length: Steps per pattern loop in this section.
		section_length: Loops this section lasts.
		section_pattern: Loops completed in this section so far.
		parts: Part requests for this section, in scheduling order.
		harmony: One chord degree (0-6) per step of the loop.

	Example:
		```python
		class Bass:

			def next_events (self, state):
				root = state.chord_at(0)
				pitch = state.scale_pitches[7 * 3 + root]
				return [Event(step=0, pitch=pitch, duration=16)]
		```
	"""

	key: int
	scale: int
	scale_pitches: typing.Tuple[int, ...]
	section: autocomposer.sections.SectionKind = autocomposer.sections.SectionKind.INTRO
	pattern_length: int = 64
	section_length: int = 1
	section_pattern: int = 0
	parts: typing.Tuple[autocomposer.parts.PartRequest, ...] = ()
	harmony: typing.Tuple[int, ...] = ()

	def chord_at (self, step: int) -> int:

		"""Return the chord degree playing at a step of the loop (wrapping past the end)."""

		return self.harmony[step % self.pattern_length]

	@property
	def progress (self) -> float:

		"""Return how far through the section we are (0.0 to ~1.0)."""

		if self.section_length <= 0:
			return 0.0

		return self.section_pattern / self.section_length

	@property
	def last_pattern (self) -> bool:

		"""Return True if the loop being generated is the section's last."""

		return self.section_pattern == self.section_length - 1
