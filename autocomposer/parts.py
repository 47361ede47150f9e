"""Instrumental parts and the contract their generators fulfil.

A section lists the parts it wants as :class:`PartRequest` entries.  The
catalog may spell a request as a bare part name (instrument 0) or as a
``(part, instrument)`` pair; :func:`resolve_part_entry` normalizes both when
the catalog is loaded so nothing downstream inspects types at runtime.
"""

import dataclasses
import enum
import typing

import autocomposer.errors
import autocomposer.events

if typing.TYPE_CHECKING:
	import autocomposer.state


class PartKind (str, enum.Enum):

	"""The instrumental roles a composition can ask for."""

	DRUMS = "drums"
	BASS = "bass"
	PAD = "pad"
	MELODY = "melody"
	ARPEGGIO = "arpeggio"


PartEntry = typing.Union[str, PartKind, typing.Tuple[typing.Union[str, PartKind], int]]


@dataclasses.dataclass(frozen=True)
class PartRequest:

	"""
	One part a section wants played, on a specific instrument of that part.

	Attributes:
		part: The instrumental role.
		instrument: Index into the part's list of playback destinations.
	"""

	part: PartKind
	instrument: int = 0


@typing.runtime_checkable
class PartGenerator (typing.Protocol):

	"""
	Produces the next pattern loop of events for one part.

	Generators receive the whole composition state and must treat it as
	read-only.  Anything they remember between calls is their own business;
	the director never shares mutable data between generators.
	"""

	def next_events (self, state: "autocomposer.state.CompositionState") -> typing.Sequence[autocomposer.events.Event]:

		"""
		Return the events for the loop that is about to start.
		"""

		...


def part_kind (name: typing.Union[str, PartKind]) -> PartKind:

	"""Return the PartKind for a name, raising ConfigurationError for unknown parts."""

	try:
		return PartKind(name)

	except ValueError:
		known = ", ".join(kind.value for kind in PartKind)
		raise autocomposer.errors.ConfigurationError(
			f"Unknown part {name!r}. Known parts: {known}"
		) from None


def resolve_part_entry (entry: PartEntry) -> PartRequest:

	"""Turn a bare part name or a ``(part, instrument)`` pair into a PartRequest.

	Example:
		```python
		resolve_part_entry("pad")            # → PartRequest(PartKind.PAD, 0)
		resolve_part_entry(("melody", 1))    # → PartRequest(PartKind.MELODY, 1)
		```
	"""

	if isinstance(entry, tuple):
		name, instrument = entry

		if instrument < 0:
			raise autocomposer.errors.ConfigurationError(
				f"Instrument index for {name!r} cannot be negative"
			)

		return PartRequest(part=part_kind(name), instrument=instrument)

	return PartRequest(part=part_kind(entry))
