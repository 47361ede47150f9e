import random
import typing

import mido
import pytest

import autocomposer.director
import autocomposer.ensemble
import autocomposer.events
import autocomposer.sequencer

from autocomposer.parts import PartKind


def test_add_events_converts_steps_to_pulses (patch_midi: list) -> None:

	"""Events land at (offset + step) * 6 pulses, with the note off after its duration."""

	sequencer = autocomposer.sequencer.Sequencer()
	channel = autocomposer.ensemble.Channel("bass.0", 0)

	sequencer.add_events(channel, [autocomposer.events.Event(step=2, pitch=40, velocity=90, duration=3)], time_offset=64)

	queued = sorted(sequencer.event_queue)

	assert [(event.pulse, event.message_type, event.note) for event in queued] == [
		(396, "note_on", 40),
		(414, "note_off", 40),
	]
	assert queued[0].velocity == 90
	assert queued[0].destination == channel


def test_note_off_sorts_before_note_on_on_same_pulse (patch_midi: list) -> None:

	"""A repeated pitch is released before it is struck again."""

	sequencer = autocomposer.sequencer.Sequencer()
	channel = autocomposer.ensemble.Channel("pad.0", 1)

	sequencer.add_events(channel, [
		autocomposer.events.Event(step=0, pitch=60),
		autocomposer.events.Event(step=1, pitch=60),
	], time_offset=0)

	at_six = [event.message_type for event in sorted(sequencer.event_queue) if event.pulse == 6]

	assert at_six == ["note_off", "note_on"]


def test_negative_offset_rejected (patch_midi: list) -> None:

	"""Batches cannot be scheduled before the start of the song."""

	sequencer = autocomposer.sequencer.Sequencer()

	with pytest.raises(ValueError):
		sequencer.add_events(autocomposer.ensemble.Channel("pad.0", 1), [], time_offset=-1)


def test_invalid_bpm_and_render_length (patch_midi: list) -> None:

	"""Tempo and render length must be positive."""

	sequencer = autocomposer.sequencer.Sequencer()

	with pytest.raises(ValueError):
		sequencer.set_bpm(0)

	with pytest.raises(ValueError):
		sequencer.render(0)


def test_step_callbacks_fire_every_six_pulses (patch_midi: list) -> None:

	"""Step listeners hear (time, step) once per sixteenth note."""

	sequencer = autocomposer.sequencer.Sequencer()
	steps: typing.List[int] = []

	sequencer.add_step_callback(lambda time, step: steps.append(step))

	for _ in range(13):
		sequencer._advance_pulse()

	assert steps == [0, 1, 2]


def test_remove_unknown_step_callback_raises (patch_midi: list) -> None:

	"""Removing a callback that was never added is an error."""

	sequencer = autocomposer.sequencer.Sequencer()

	with pytest.raises(ValueError):
		sequencer.remove_step_callback(lambda time, step: None)


def test_add_channel_queues_program_change_once (patch_midi: list) -> None:

	"""A channel with a program selects it when added, and adding it twice does nothing more."""

	sequencer = autocomposer.sequencer.Sequencer()
	channel = autocomposer.ensemble.Channel("pad.0", 1, program=89)

	sequencer.add_channel(channel)
	sequencer.add_channel(channel)

	assert sequencer.channels == [channel]
	assert [(event.message_type, event.channel, event.value) for event in sequencer.event_queue] == [("program_change", 1, 89)]


def test_remove_channel_drops_pending_and_releases_held_notes (patch_midi: list) -> None:

	"""Removing a destination cancels its queued events and silences its sounding notes."""

	sequencer = autocomposer.sequencer.Sequencer()
	bass = autocomposer.ensemble.Channel("bass.0", 0)
	pad = autocomposer.ensemble.Channel("pad.0", 1)

	sequencer.open_output()
	sequencer.add_channel(bass)
	sequencer.add_channel(pad)
	sequencer.add_events(bass, [autocomposer.events.Event(step=0, pitch=36, duration=8)], time_offset=0)
	sequencer.add_events(pad, [autocomposer.events.Event(step=4, pitch=60)], time_offset=0)

	# Play the first step so the bass note is held.
	sequencer._advance_pulse()
	assert (0, 36) in sequencer.active_notes

	sequencer.remove_channel(bass)

	assert bass not in sequencer.channels
	assert all(event.destination != bass for event in sequencer.event_queue)
	assert any(event.destination == pad for event in sequencer.event_queue)
	assert (0, 36) not in sequencer.active_notes

	last = sequencer.midi_out.sent[-1]
	assert (last.type, last.channel, last.note) == ("note_off", 0, 36)


def test_panic_silences_all_channels (patch_midi: list) -> None:

	"""Panic sends All Notes Off and All Sound Off on every channel."""

	sequencer = autocomposer.sequencer.Sequencer()
	sequencer.open_output()
	sequencer.active_notes.add((2, 72))

	sequencer.panic()

	sent = sequencer.midi_out.sent

	assert sent[0].type == "note_off"
	assert {message.channel for message in sent if message.type == "control_change" and message.control == 123} == set(range(16))
	assert sequencer.active_notes == set()


class OneNote:

	"""Generator that plays the loop's root on step 0."""

	def next_events (self, state: typing.Any) -> typing.List[autocomposer.events.Event]:

		return [autocomposer.events.Event(step=0, pitch=state.scale_pitches[35 + state.chord_at(0)], duration=4)]


@pytest.mark.asyncio
async def test_render_drives_director (patch_midi: list) -> None:

	"""In render mode the director keeps the sequencer supplied, loop after loop."""

	sequencer = autocomposer.sequencer.Sequencer(initial_bpm=120)
	sequencer.render(3 * 64)

	pool = autocomposer.ensemble.build_pool(sequencer)

	director = autocomposer.director.CompositionDirector(
		step_source = sequencer,
		scheduler = sequencer,
		pool = pool,
		generator_factory = lambda: {kind: OneNote() for kind in PartKind},
		rng = random.Random(3)
	)

	director.start()

	try:
		await sequencer.play()
	finally:
		director.stop()

	midi_out = patch_midi[0]

	note_ons = [message for message in midi_out.sent if message.type == "note_on"]
	programs = [message for message in midi_out.sent if message.type == "program_change"]

	# Two intro parts on the first two loops, at least two parts on the third.
	assert len(note_ons) >= 6
	assert {message.program for message in programs} == {38, 89, 81, 80, 5}
	assert midi_out.closed is True
	assert sequencer.current_step == 3 * 64 - 1
	assert sequencer.event_queue == []


@pytest.mark.asyncio
async def test_render_records_midi_file (patch_midi: list, tmp_path: typing.Any) -> None:

	"""A recorded render is written as a MIDI file with the scheduled notes."""

	filename = str(tmp_path / "render.mid")

	sequencer = autocomposer.sequencer.Sequencer(record=True, record_filename=filename)
	sequencer.render(16)

	channel = autocomposer.ensemble.Channel("pad.0", 1, program=89)
	sequencer.add_channel(channel)
	sequencer.add_events(channel, [
		autocomposer.events.Event(step=0, pitch=60, duration=4),
		autocomposer.events.Event(step=4, pitch=63, duration=4),
	], time_offset=0)

	await sequencer.play()

	midi_file = mido.MidiFile(filename)
	messages = [message for message in midi_file.tracks[0] if not message.is_meta]

	assert midi_file.ticks_per_beat == 480
	assert [(message.type, getattr(message, "note", None)) for message in messages] == [
		("program_change", None),
		("note_on", 60),
		("note_off", 60),
		("note_on", 63),
		("note_off", 63),
	]

	# The first note lasts one beat (480 ticks) and the second follows at once.
	assert messages[3].time == 0
	assert messages[2].time == 480


@pytest.mark.asyncio
async def test_output_opens_on_start_and_closes_on_stop (patch_midi: list) -> None:

	"""Constructing a sequencer holds no port; playing opens one and stopping releases it."""

	sequencer = autocomposer.sequencer.Sequencer()

	assert patch_midi == []
	assert sequencer.midi_out is None

	sequencer.render(4)
	await sequencer.play()

	assert len(patch_midi) == 1
	assert patch_midi[0].closed is True
	assert sequencer.midi_out is None
	assert sequencer.output_device_name == "Dummy MIDI"


def test_open_output_is_idempotent (patch_midi: list) -> None:

	sequencer = autocomposer.sequencer.Sequencer()

	sequencer.open_output()
	sequencer.open_output()

	assert len(patch_midi) == 1
	assert sequencer.midi_out is patch_midi[0]
