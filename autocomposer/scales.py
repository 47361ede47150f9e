"""Pitch tables and diatonic scale construction.

Scale types are the seven rotations of the major scale, numbered in mode
order (0 = ionian ... 5 = aeolian ... 6 = locrian).  Because every scale type
is a rotation of the same interval pattern, the diminished triad always sits
on degree ``(6 - scale_type) % 7``, which is what
:func:`autocomposer.harmony.pick_chord` steers away from.

Module-level helpers:

- ``build_pitch_table(reference_pitch)``: 12-TET frequency for every MIDI note.
- ``build_scale(key, scale_type, pitch_table)``: ascending pitch-table indices
  of a diatonic scale, rooted on ``key``.
- ``key_name_to_pc(key_name)`` / ``scale_type_from_name(name)``: turn the
  human-readable names used in configuration into the integers stored on
  :class:`~autocomposer.state.CompositionState`.
"""

import typing

import autocomposer.errors


NOTE_NAME_TO_PC: typing.Dict[str, int] = {
	"C": 0,
	"C#": 1,
	"Db": 1,
	"D": 2,
	"D#": 3,
	"Eb": 3,
	"E": 4,
	"F": 5,
	"F#": 6,
	"Gb": 6,
	"G": 7,
	"G#": 8,
	"Ab": 8,
	"A": 9,
	"A#": 10,
	"Bb": 10,
	"B": 11,
}


MAJOR_SCALE_STEPS: typing.List[int] = [0, 2, 4, 5, 7, 9, 11]


# Index = scale type.
SCALE_TYPE_NAMES: typing.List[str] = [
	"ionian",
	"dorian",
	"phrygian",
	"lydian",
	"mixolydian",
	"aeolian",
	"locrian",
]

SCALE_TYPE_ALIASES: typing.Dict[str, int] = {
	"major": 0,
	"minor": 5,
}

DEGREES_PER_OCTAVE = 7
PITCH_TABLE_SIZE = 128
REFERENCE_NOTE = 69		# A4


def key_name_to_pc (key_name: str) -> int:

	"""Validate a key name and return its pitch class (0-11).

	Raises:
		ConfigurationError: If the key name is not recognised.

	Example:
		```python
		key_name_to_pc("C")   # → 0
		key_name_to_pc("Bb")  # → 10
		```
	"""

	if key_name not in NOTE_NAME_TO_PC:
		raise autocomposer.errors.ConfigurationError(
			f"Unknown key name: {key_name!r}. Expected e.g. 'C', 'F#', 'Bb'."
		)

	return NOTE_NAME_TO_PC[key_name]


def scale_type_from_name (name: str) -> int:

	"""Return the scale type number for a mode name such as ``"dorian"`` or ``"minor"``."""

	lowered = name.lower()

	if lowered in SCALE_TYPE_ALIASES:
		return SCALE_TYPE_ALIASES[lowered]

	if lowered not in SCALE_TYPE_NAMES:
		known = ", ".join(SCALE_TYPE_NAMES + sorted(SCALE_TYPE_ALIASES))
		raise autocomposer.errors.ConfigurationError(
			f"Unknown scale {name!r}. Known scales: {known}"
		)

	return SCALE_TYPE_NAMES.index(lowered)


def scale_intervals (scale_type: int) -> typing.List[int]:

	"""
	Return the semitone offsets (0-11) of a scale type, starting on its tonic.
	"""

	if not 0 <= scale_type < len(SCALE_TYPE_NAMES):
		raise autocomposer.errors.ConfigurationError(
			f"Unknown scale type {scale_type}. Expected 0-{len(SCALE_TYPE_NAMES) - 1}"
		)

	rotated = MAJOR_SCALE_STEPS[scale_type:] + MAJOR_SCALE_STEPS[:scale_type]
	tonic = rotated[0]

	return [(step - tonic) % 12 for step in rotated]


def build_pitch_table (reference_pitch: float = 440.0) -> typing.List[float]:

	"""Return 12-TET frequencies (Hz) for MIDI notes 0-127.

	Parameters:
		reference_pitch: Frequency of A4 (MIDI note 69).

	Example:
		```python
		table = build_pitch_table(440.0)
		table[69]  # → 440.0
		table[57]  # → 220.0
		```
	"""

	if reference_pitch <= 0:
		raise ValueError("Reference pitch must be positive")

	return [
		reference_pitch * 2.0 ** ((note - REFERENCE_NOTE) / 12.0)
		for note in range(PITCH_TABLE_SIZE)
	]


def build_scale (key: int, scale_type: int, pitch_table: typing.Sequence[float]) -> typing.List[int]:

	"""Return every pitch-table index that belongs to a diatonic scale.

	The list starts on the lowest tonic (``key`` itself) and climbs through
	the table, so ``pitches[7 * octave + degree]`` is scale degree ``degree``
	in octave ``octave``.  Indices past the end of the table are dropped.

	Parameters:
		key: Tonic pitch class (0 = C, ..., 11 = B).
		scale_type: Index into ``SCALE_TYPE_NAMES``.
		pitch_table: Table from :func:`build_pitch_table`; its length bounds
			the returned indices.

	Example:
		```python
		table = build_pitch_table()
		build_scale(0, 5, table)[:8]  # → [0, 2, 3, 5, 7, 8, 10, 12] (C minor)
		```
	"""

	if not 0 <= key < 12:
		raise autocomposer.errors.ConfigurationError(f"Key must be a pitch class 0-11, got {key}")

	intervals = scale_intervals(scale_type)
	pitches: typing.List[int] = []
	octave_root = key

	while octave_root < len(pitch_table):

		for interval in intervals:
			pitch = octave_root + interval
			if pitch >= len(pitch_table):
				break
			pitches.append(pitch)

		octave_root += 12

	return pitches


def avoided_degree (scale_type: int) -> int:

	"""
	Return the scale degree that carries the diminished triad for this scale type.
	"""

	return (6 - scale_type) % DEGREES_PER_OCTAVE
