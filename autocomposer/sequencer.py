import asyncio
import dataclasses
import datetime
import heapq
import itertools
import logging
import time
import typing

import mido

import autocomposer.constants.pulses
import autocomposer.ensemble
import autocomposer.event_emitter
import autocomposer.events
import autocomposer.midi_utils


logger = logging.getLogger(__name__)


StepCallback = typing.Callable[[float, int], typing.Any]


@dataclasses.dataclass(order=True)
class MidiEvent:

	"""
	Represents a MIDI event scheduled at a specific pulse.
	"""

	pulse: int
	order: int
	message_type: str = dataclasses.field(compare=False)
	channel: int = dataclasses.field(compare=False)
	note: int = dataclasses.field(compare=False, default=0)
	velocity: int = dataclasses.field(compare=False, default=0)
	value: int = dataclasses.field(compare=False, default=0)
	destination: typing.Optional[autocomposer.ensemble.Channel] = dataclasses.field(compare=False, default=None)


class Sequencer:

	"""
	The step clock and MIDI scheduler that plays a composition.

	The sequencer runs a 24 PPQN clock and notifies step callbacks on every
	sixteenth note with ``(seconds_since_start, step)``.  Batches of
	:class:`~autocomposer.events.Event` added with :meth:`add_events` are
	converted to note on/off messages and sent to the MIDI output when their
	pulse comes round.
	"""

	def __init__ (
		self,
		output_device_name: typing.Optional[str] = None,
		initial_bpm: float = 120,
		record: bool = False,
		record_filename: typing.Optional[str] = None,
		spin_wait: bool = True
	) -> None:

		"""Initialize the sequencer with an initial BPM; the MIDI output opens on start().

		Parameters:
			output_device_name: MIDI output device name. When omitted, the first
				output mido reports is used.
			initial_bpm: Tempo in BPM.
			record: When True, record all MIDI events to a file.
			record_filename: Optional filename for the recording (defaults to timestamp).
			spin_wait: When True (default), sleep to within a millisecond of each
				pulse and busy-wait the remainder for tighter timing.
		"""

		self.output_device_name = output_device_name
		self.pulses_per_beat = autocomposer.constants.pulses.MIDI_QUARTER_NOTE
		self.pulses_per_step = autocomposer.constants.pulses.PULSES_PER_STEP

		# Recording state
		self.recording = record
		self.record_filename = record_filename
		self.recorded_events: typing.List[typing.Tuple[float, typing.Union[mido.Message, mido.MetaMessage]]] = []

		# Render mode: run as fast as possible and stop after render_steps steps.
		self.render_mode: bool = False
		self.render_steps: int = 0

		self.event_queue: typing.List[MidiEvent] = []
		self._event_counter = itertools.count()
		self.task: typing.Optional[asyncio.Task] = None
		self.start_time = 0.0
		self.elapsed_seconds = 0.0
		self.pulse_count = 0
		self.current_step: int = -1
		self.active_notes: typing.Set[typing.Tuple[int, int]] = set()
		self.channels: typing.List[autocomposer.ensemble.Channel] = []
		self.events = autocomposer.event_emitter.EventEmitter()

		# Timing variables
		self.current_bpm: float = 0
		self.seconds_per_beat = 0.0
		self.seconds_per_pulse = 0.0
		self.running = False
		self._spin_wait: bool = spin_wait
		self._spin_threshold: float = 0.001

		self.set_bpm(initial_bpm)

		# Opened by start(), so a misconfigured composition never holds the port.
		self.midi_out: typing.Optional[typing.Any] = None


	def open_output (self) -> None:

		"""Open the MIDI output port unless one is already open (see :func:`autocomposer.midi_utils.open_output`)."""

		if self.midi_out is not None:
			return

		device_name, midi_out = autocomposer.midi_utils.open_output(self.output_device_name)

		if device_name:
			self.output_device_name = device_name
			self.midi_out = midi_out


	def set_bpm (self, bpm: float) -> None:

		"""
		Instantly change the tempo.
		"""

		if bpm <= 0:
			raise ValueError("BPM must be positive")

		self.current_bpm = bpm
		self.seconds_per_beat = 60.0 / self.current_bpm
		self.seconds_per_pulse = self.seconds_per_beat / self.pulses_per_beat

		logger.info(f"BPM set to {self.current_bpm:.2f}")

		if self.recording:
			tempo = mido.bpm2tempo(self.current_bpm)
			self._record_event(self.pulse_count, mido.MetaMessage('set_tempo', tempo=tempo))


	def add_step_callback (self, callback: StepCallback) -> None:

		"""
		Register a callback invoked with ``(time, step)`` on every step.
		"""

		self.events.on("step", callback)


	def remove_step_callback (self, callback: StepCallback) -> None:

		"""
		Unregister a step callback.

		Raises ``ValueError`` if the callback was never registered.
		"""

		self.events.off("step", callback)


	def add_channel (self, channel: autocomposer.ensemble.Channel) -> None:

		"""
		Register a playback destination, selecting its program when it has one.
		"""

		if channel in self.channels:
			return

		self.channels.append(channel)

		if channel.program is not None:
			self._push_event(
				pulse = self.pulse_count,
				message_type = 'program_change',
				channel = channel.midi_channel,
				value = channel.program,
				destination = channel
			)

		logger.debug(f"Added channel {channel.name} on MIDI channel {channel.midi_channel}")


	def remove_channel (self, channel: autocomposer.ensemble.Channel) -> None:

		"""
		Forget a destination: drop its pending events and release its held notes.
		"""

		if channel in self.channels:
			self.channels.remove(channel)

		self.event_queue = [event for event in self.event_queue if event.destination != channel]
		heapq.heapify(self.event_queue)

		# Held notes are tracked per MIDI channel, so a channel shared by two
		# destinations is silenced for both.
		for midi_channel, note in list(self.active_notes):
			if midi_channel == channel.midi_channel:
				self._send_midi(MidiEvent(pulse=self.pulse_count, order=0, message_type='note_off', channel=midi_channel, note=note))
				self.active_notes.discard((midi_channel, note))

		logger.debug(f"Removed channel {channel.name}")


	def add_events (
		self,
		destination: autocomposer.ensemble.Channel,
		events: typing.Iterable[autocomposer.events.Event],
		time_offset: int
	) -> None:

		"""
		Schedule a batch of events on a destination.

		Parameters:
			destination: The channel to play on.
			events: Events positioned in steps relative to ``time_offset``.
			time_offset: Absolute step at which the batch's loop starts.
		"""

		if time_offset < 0:
			raise ValueError("Time offset cannot be negative")

		count = 0

		for event in events:

			abs_pulse = (time_offset + event.step) * self.pulses_per_step

			self._push_event(
				pulse = abs_pulse,
				message_type = 'note_on',
				channel = destination.midi_channel,
				note = event.pitch,
				velocity = event.velocity,
				destination = destination
			)

			self._push_event(
				pulse = abs_pulse + event.duration * self.pulses_per_step,
				message_type = 'note_off',
				channel = destination.midi_channel,
				note = event.pitch,
				destination = destination
			)

			count += 1

		logger.debug(f"Scheduled {count} events for {destination.name} at step {time_offset}, queue size: {len(self.event_queue)}")


	def _push_event (self, pulse: int, message_type: str, channel: int, **fields: typing.Any) -> None:

		"""Queue one MIDI event, keeping insertion order among events on the same pulse."""

		# Note offs sort before note ons on the same pulse so a repeated pitch retriggers.
		priority = 0 if message_type == 'note_off' else 1
		order = priority * 2 ** 40 + next(self._event_counter)

		heapq.heappush(self.event_queue, MidiEvent(pulse=pulse, order=order, message_type=message_type, channel=channel, **fields))


	def render (self, steps: int) -> None:

		"""
		Switch to render mode: run unthrottled and stop after ``steps`` steps.
		"""

		if steps <= 0:
			raise ValueError("Render length must be at least one step")

		self.render_mode = True
		self.render_steps = steps
		self._spin_wait = False


	async def play (self) -> None:

		"""
		Convenience method to start playback and wait for completion.
		"""

		await self.start()

		try:
			if self.task:
				await self.task
		except asyncio.CancelledError:
			pass
		finally:
			await self.stop()


	async def start (self) -> None:

		"""Start playback in a separate asyncio task."""

		if self.running:
			return

		self.open_output()

		self.running = True
		self.task = asyncio.create_task(self._run_loop())

		logger.info("Sequencer started")


	async def stop (self) -> None:

		"""
		Stop playback and release the MIDI output.
		"""

		if self.task is None and not self.running:
			return

		logger.info("Stopping sequencer...")

		self.running = False

		if self.task and self.task is not asyncio.current_task():
			await self.task

		self.task = None
		self.panic()

		if self.midi_out:
			self.midi_out.close()
			self.midi_out = None

		self.save_recording()

		self.event_queue = []
		self.active_notes = set()

		logger.info("Sequencer stopped")


	async def _run_loop (self) -> None:

		"""Advance the clock one pulse at a time until stopped, throttled to tempo unless rendering."""

		self.start_time = time.perf_counter()
		self.elapsed_seconds = 0.0
		self.pulse_count = 0
		self.current_step = -1

		next_pulse_time = self.start_time

		while self.running:

			current_time = next_pulse_time if self.render_mode else time.perf_counter()

			while current_time >= next_pulse_time:

				self._advance_pulse()
				next_pulse_time += self.seconds_per_pulse

				if not self.running:
					break

			if not self.running:
				break

			if self.render_mode:
				# Let other tasks run between pulses.
				await asyncio.sleep(0)
				continue

			if not self.event_queue and not self.active_notes and not self.events.listeners("step"):
				logger.info("Sequence complete (no more events, notes, or step callbacks).")
				self.running = False
				break

			sleep_time = next_pulse_time - time.perf_counter()

			if sleep_time > 0:
				if self._spin_wait and sleep_time > self._spin_threshold:
					await asyncio.sleep(sleep_time - self._spin_threshold)
					while time.perf_counter() < next_pulse_time:
						pass
				else:
					await asyncio.sleep(sleep_time)


	def _advance_pulse (self) -> None:

		"""Notify step callbacks on step boundaries, send due events, and move the clock on."""

		if self.pulse_count % self.pulses_per_step == 0:

			step = self.pulse_count // self.pulses_per_step

			if self.render_mode and step >= self.render_steps:
				self.running = False
				return

			self.current_step = step
			step_time = self.elapsed_seconds if self.render_mode else time.perf_counter() - self.start_time

			# Callbacks run before this pulse's events are sent, so anything they
			# schedule for the current pulse still plays on time.
			self.events.emit("step", step_time, step)

		self._process_pulse(self.pulse_count)
		self.pulse_count += 1
		self.elapsed_seconds += self.seconds_per_pulse


	def _process_pulse (self, pulse: int) -> None:

		"""
		Send every queued event due at or before a pulse.
		"""

		while self.event_queue and self.event_queue[0].pulse <= pulse:

			event = heapq.heappop(self.event_queue)

			if event.message_type == 'note_on' and event.velocity > 0:
				self.active_notes.add((event.channel, event.note))
			elif event.message_type == 'note_off':
				self.active_notes.discard((event.channel, event.note))

			# Late events are sent immediately.
			self._send_midi(event)

			if self.recording:
				message = self._to_message(event)
				if message is not None:
					self._record_event(event.pulse, message)


	def _to_message (self, event: MidiEvent) -> typing.Optional[mido.Message]:

		"""Convert a queued event to a mido message."""

		if event.message_type in ('note_on', 'note_off'):
			return mido.Message(event.message_type, channel=event.channel, note=event.note, velocity=event.velocity)

		if event.message_type == 'program_change':
			return mido.Message('program_change', channel=event.channel, program=event.value)

		return None


	def _send_midi (self, event: MidiEvent) -> None:

		"""
		Send a MIDI message to the output port.
		"""

		if not self.midi_out:
			return

		try:
			message = self._to_message(event)

			if message is not None:
				self.midi_out.send(message)

		except Exception:
			logger.exception("MIDI send failed (device may be disconnected)")


	def _record_event (self, pulse: int, message: typing.Union[mido.Message, mido.MetaMessage]) -> None:

		"""Record a MIDI message with an absolute pulse timestamp for later export."""

		if not self.recording:
			return

		self.recorded_events.append((float(pulse), message))


	def save_recording (self) -> None:

		"""Save the recorded session to a type 1 MIDI file at 480 ticks per beat."""

		if not self.recording or not self.recorded_events:
			return

		if self.record_filename:
			filename = self.record_filename
		else:
			now = datetime.datetime.now()
			filename = now.strftime("composition_%Y%m%d_%H%M%S.mid")

		logger.info(f"Saving MIDI recording ({len(self.recorded_events)} events) to {filename}...")

		mid = mido.MidiFile(type=1)
		track = mido.MidiTrack()
		mid.tracks.append(track)

		# 24 PPQN internally, scaled up by 20 to 480 ticks per beat.
		ticks_per_pulse = 20
		mid.ticks_per_beat = 480

		self.recorded_events.sort(key=lambda x: x[0])

		last_pulse = 0.0

		for pulse, message in self.recorded_events:

			delta_ticks = max(0, int((pulse - last_pulse) * ticks_per_pulse))
			track.append(message.copy(time=delta_ticks))
			last_pulse = pulse

		try:
			mid.save(filename)
			logger.info(f"Saved {filename}")
		except Exception as e:
			logger.error(f"Failed to save MIDI recording: {e}")


	def panic (self) -> None:

		"""
		Release every held note and send All Notes Off on all 16 channels.
		"""

		logger.info("Panic: sending all notes off.")

		if self.midi_out:

			try:
				for channel, note in list(self.active_notes):
					self.midi_out.send(mido.Message('note_off', channel=channel, note=note, velocity=0))

				for channel in range(16):
					self.midi_out.send(mido.Message('control_change', channel=channel, control=123, value=0))
					self.midi_out.send(mido.Message('control_change', channel=channel, control=120, value=0))

			except Exception:
				logger.exception("MIDI panic failed (device may be disconnected)")

		self.active_notes.clear()
