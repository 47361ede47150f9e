"""Playback destinations for each part.

A :class:`Channel` is one instrument: a MIDI channel with an optional
program.  The *pool* maps every part to its instruments, indexed by the
``instrument`` number in a :class:`~autocomposer.parts.PartRequest`, and is
built once before the composition starts.
"""

import dataclasses
import logging
import typing

import autocomposer.constants.gm_drums
import autocomposer.errors
import autocomposer.parts


logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class Channel:

	"""
	One playback destination.

	Attributes:
		name: Label used in logs, e.g. ``"melody.1"``.
		midi_channel: 0-indexed MIDI channel (0-15).
		program: Optional General MIDI program sent when the channel is added.
	"""

	name: str
	midi_channel: int
	program: typing.Optional[int] = None

	def __post_init__ (self) -> None:

		"""
		Validate the MIDI channel and program ranges.
		"""

		if not 0 <= self.midi_channel <= 15:
			raise autocomposer.errors.ConfigurationError(f"MIDI channel for {self.name!r} must be 0-15, got {self.midi_channel}")

		if self.program is not None and not 0 <= self.program <= 127:
			raise autocomposer.errors.ConfigurationError(f"Program for {self.name!r} must be 0-127, got {self.program}")


PartPool = typing.Mapping[autocomposer.parts.PartKind, typing.Sequence[Channel]]

ChannelSpec = typing.Dict[str, typing.Any]


class ChannelHost (typing.Protocol):

	"""
	Anything channels can be registered with (normally the sequencer).
	"""

	def add_channel (self, channel: Channel) -> None:

		...


# One instrument per part, two melody voices (lead, then the chorus lead).
DEFAULT_CHANNEL_MAP: typing.Dict[str, typing.List[ChannelSpec]] = {
	"drums": [{"channel": autocomposer.constants.gm_drums.GM_DRUM_CHANNEL}],
	"bass": [{"channel": 0, "program": 38}],
	"pad": [{"channel": 1, "program": 89}],
	"melody": [{"channel": 2, "program": 81}, {"channel": 3, "program": 80}],
	"arpeggio": [{"channel": 4, "program": 5}],
}


def build_pool (
	host: ChannelHost,
	channel_map: typing.Optional[typing.Mapping[str, typing.Sequence[ChannelSpec]]] = None
) -> typing.Dict[autocomposer.parts.PartKind, typing.List[Channel]]:

	"""Create every part's channels and register them with ``host``.

	Parameters:
		host: Receives ``add_channel()`` for each channel, in part order.
		channel_map: ``{part name: [{"channel": int, "program": int}, ...]}``.
			Defaults to ``DEFAULT_CHANNEL_MAP``.

	Raises:
		ConfigurationError: For unknown parts or malformed channel entries.

	Example:
		```python
		pool = build_pool(sequencer, {"bass": [{"channel": 0}], "drums": [{"channel": 9}]})
		pool[PartKind.BASS][0].midi_channel  # → 0
		```
	"""

	if channel_map is None:
		channel_map = DEFAULT_CHANNEL_MAP

	pool: typing.Dict[autocomposer.parts.PartKind, typing.List[Channel]] = {}

	for part_name, specs in channel_map.items():

		kind = autocomposer.parts.part_kind(part_name)
		channels: typing.List[Channel] = []

		for index, spec in enumerate(specs):

			if "channel" not in spec:
				raise autocomposer.errors.ConfigurationError(f"Instrument {index} of {kind.value!r} has no MIDI channel")

			channel = Channel(
				name = f"{kind.value}.{index}",
				midi_channel = int(spec["channel"]),
				program = spec.get("program")
			)

			host.add_channel(channel)
			channels.append(channel)

		pool[kind] = channels

	logger.info(f"Ensemble ready: {', '.join(f'{kind.value} x{len(channels)}' for kind, channels in pool.items())}")

	return pool


def lookup_destination (pool: PartPool, request: autocomposer.parts.PartRequest) -> Channel:

	"""Return the channel for a part request, raising ConfigurationError if the pool lacks it."""

	channels = pool.get(request.part)

	if not channels:
		raise autocomposer.errors.ConfigurationError(f"No playback destination for part {request.part.value!r}")

	if request.instrument >= len(channels):
		raise autocomposer.errors.ConfigurationError(
			f"Part {request.part.value!r} has {len(channels)} instrument(s), "
			f"instrument {request.instrument} was requested"
		)

	return channels[request.instrument]
