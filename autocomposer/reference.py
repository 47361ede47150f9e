"""A small reference ensemble: one generator per part.

These generators are deliberately simple.  Each reads the composition state
it is handed (scale pitches, per-step harmony, section progress) and returns
one loop of :class:`~autocomposer.events.Event` objects.  This is the
default ``composition.generators`` factory in ``config.yaml``; point that
setting at another ``module:function`` to use a different ensemble.
"""

import random
import typing

import autocomposer.constants.gm_drums
import autocomposer.constants.pulses
import autocomposer.constants.velocity
import autocomposer.events
import autocomposer.parts
import autocomposer.state


def chord_changes (state: autocomposer.state.CompositionState) -> typing.List[typing.Tuple[int, int, int]]:

	"""Return ``(step, length, degree)`` for every chord in the loop."""

	changes: typing.List[typing.Tuple[int, int, int]] = []
	start = 0

	for step in range(1, state.pattern_length + 1):
		if step == state.pattern_length or state.harmony[step] != state.harmony[start]:
			changes.append((start, step - start, state.harmony[start]))
			start = step

	return changes


def scale_note (state: autocomposer.state.CompositionState, octave: int, degree: int) -> int:

	"""Return the pitch of a scale degree, letting degrees above 6 spill into the next octave."""

	return state.scale_pitches[octave * 7 + degree]


class Drums:

	def __init__ (self, seed: typing.Optional[int] = None) -> None:

		self.rng = random.Random(seed)

	def next_events (self, state: autocomposer.state.CompositionState) -> typing.List[autocomposer.events.Event]:

		events: typing.List[autocomposer.events.Event] = []

		for step in range(state.pattern_length):

			bar_step = step % autocomposer.constants.pulses.STEPS_PER_BAR

			if bar_step % 4 == 0:
				events.append(autocomposer.events.Event(step=step, pitch=autocomposer.constants.gm_drums.KICK, velocity=110))

			if bar_step in (4, 12):
				events.append(autocomposer.events.Event(step=step, pitch=autocomposer.constants.gm_drums.SNARE))

			if bar_step % 2 == 0:
				accent = 80 if bar_step % 4 == 2 else 60
				events.append(autocomposer.events.Event(step=step, pitch=autocomposer.constants.gm_drums.HI_HAT_CLOSED, velocity=accent))

		# Fill into the next section.
		if state.last_pattern:
			for step in range(max(0, state.pattern_length - 4), state.pattern_length):
				if self.rng.random() < 0.7:
					events.append(autocomposer.events.Event(step=step, pitch=autocomposer.constants.gm_drums.SNARE, velocity=self.rng.randint(70, 110)))

		return events


class Bass:

	def next_events (self, state: autocomposer.state.CompositionState) -> typing.List[autocomposer.events.Event]:

		events: typing.List[autocomposer.events.Event] = []

		for start, length, degree in chord_changes(state):
			for step in range(start, start + length, 4):
				events.append(autocomposer.events.Event(step=step, pitch=scale_note(state, 3, degree), duration=3))

		return events


class Pad:

	def next_events (self, state: autocomposer.state.CompositionState) -> typing.List[autocomposer.events.Event]:

		events: typing.List[autocomposer.events.Event] = []

		for start, length, degree in chord_changes(state):
			for offset in (0, 2, 4):
				events.append(autocomposer.events.Event(
					step = start,
					pitch = scale_note(state, 4, degree + offset),
					velocity = autocomposer.constants.velocity.DEFAULT_CHORD_VELOCITY,
					duration = length
				))

		return events


class Melody:

	def __init__ (self, seed: typing.Optional[int] = None) -> None:

		self.rng = random.Random(seed)
		self.degree = 0

	def next_events (self, state: autocomposer.state.CompositionState) -> typing.List[autocomposer.events.Event]:

		events: typing.List[autocomposer.events.Event] = []

		for step in range(0, state.pattern_length, 2):

			if self.rng.random() < 0.3:
				continue

			# Land on a chord tone at each chord change, otherwise wander.
			if step == 0 or state.harmony[step] != state.harmony[step - 1]:
				self.degree = state.chord_at(step) + self.rng.choice((0, 2, 4))
			else:
				self.degree = max(0, min(13, self.degree + self.rng.choice((-2, -1, 1, 2))))

			events.append(autocomposer.events.Event(step=step, pitch=scale_note(state, 5, self.degree), duration=2))

		return events


class Arpeggio:

	def next_events (self, state: autocomposer.state.CompositionState) -> typing.List[autocomposer.events.Event]:

		events: typing.List[autocomposer.events.Event] = []
		shape = (0, 2, 4, 7, 4, 2)

		for step in range(state.pattern_length):
			degree = state.chord_at(step) + shape[step % len(shape)]
			events.append(autocomposer.events.Event(step=step, pitch=scale_note(state, 5, degree), velocity=70))

		return events


def create_generators () -> typing.Dict[autocomposer.parts.PartKind, typing.Any]:

	"""Return a fresh generator for every part."""

	return {
		autocomposer.parts.PartKind.DRUMS: Drums(),
		autocomposer.parts.PartKind.BASS: Bass(),
		autocomposer.parts.PartKind.PAD: Pad(),
		autocomposer.parts.PartKind.MELODY: Melody(),
		autocomposer.parts.PartKind.ARPEGGIO: Arpeggio(),
	}
