import dataclasses

import autocomposer.constants.velocity


@dataclasses.dataclass(frozen=True)
class Event:

	"""
	A single note produced by a part generator.

	Positions and durations are in sequencer steps (sixteenth notes),
	relative to the start of the pattern loop the event belongs to.  Drum
	events use a General MIDI percussion note as their pitch.
	"""

	step: int
	pitch: int
	velocity: int = autocomposer.constants.velocity.DEFAULT_VELOCITY
	duration: int = 1

	def __post_init__ (self) -> None:

		"""
		Reject events the sequencer could not place.
		"""

		if self.step < 0:
			raise ValueError("Event step cannot be negative")

		if self.duration <= 0:
			raise ValueError("Event duration must be positive")

		if not 0 <= self.pitch <= 127:
			raise ValueError(f"Event pitch must be 0-127, got {self.pitch}")

		if not autocomposer.constants.velocity.MIN_VELOCITY <= self.velocity <= autocomposer.constants.velocity.MAX_VELOCITY:
			raise ValueError(f"Event velocity must be 0-127, got {self.velocity}")
