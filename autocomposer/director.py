"""The composition director: song-form state machine and pattern scheduling.

:class:`CompositionDirector` owns the :class:`~autocomposer.state.CompositionState`
and is driven entirely by step notifications from a step source (normally
:class:`~autocomposer.sequencer.Sequencer`).  Four steps before each pattern
loop ends it:

1. moves the loop-start offset on by one pattern,
2. counts the finished loop and, once the section has played its length,
   picks the next section and enters it (new or remembered harmony),
3. asks each requested part's generator for the next loop of events and
   hands them to the scheduler, time-stamped with the loop-start offset.

Everything runs synchronously inside the step callback.  The director never
waits, spawns work, or shares state with generators beyond the read-only
state it passes them.
"""

import logging
import random
import typing

import autocomposer.ensemble
import autocomposer.errors
import autocomposer.event_emitter
import autocomposer.events
import autocomposer.harmony
import autocomposer.parts
import autocomposer.scales
import autocomposer.sections
import autocomposer.state
import autocomposer.weighted_graph


logger = logging.getLogger(__name__)


GeneratorMap = typing.Dict[autocomposer.parts.PartKind, autocomposer.parts.PartGenerator]
GeneratorFactory = typing.Callable[[], typing.Mapping[autocomposer.parts.PartKind, autocomposer.parts.PartGenerator]]

LOOKAHEAD_STEPS = 4


class StepSource (typing.Protocol):

	"""
	Delivers ``(time, step)`` notifications once per sequencer step.
	"""

	def add_step_callback (self, callback: typing.Callable[[float, int], typing.Any]) -> None:

		...

	def remove_step_callback (self, callback: typing.Callable[[float, int], typing.Any]) -> None:

		...


class Scheduler (typing.Protocol):

	"""
	Plays batches of events on playback destinations.
	"""

	def add_events (
		self,
		destination: autocomposer.ensemble.Channel,
		events: typing.Iterable[autocomposer.events.Event],
		time_offset: int
	) -> None:

		...

	def remove_channel (self, destination: autocomposer.ensemble.Channel) -> None:

		...


class CompositionDirector:

	"""Drive a composition through its sections and keep every part supplied with patterns.

	Example:
		```python
		sequencer = autocomposer.sequencer.Sequencer(initial_bpm=120)
		pool = autocomposer.ensemble.build_pool(sequencer)

		director = autocomposer.director.CompositionDirector(
			step_source = sequencer,
			scheduler = sequencer,
			pool = pool,
			generator_factory = create_generators,
			key = 0,
			scale = 5
		)

		director.start()
		asyncio.run(sequencer.play())
		```
	"""

	def __init__ (
		self,
		step_source: StepSource,
		scheduler: Scheduler,
		pool: autocomposer.ensemble.PartPool,
		generator_factory: GeneratorFactory,
		key: int = 0,
		scale: int = 5,
		catalog: typing.Optional[autocomposer.sections.SectionCatalog] = None,
		rng: typing.Optional[autocomposer.weighted_graph.RandomSource] = None,
		reference_pitch: float = 440.0,
		start_section: typing.Union[str, autocomposer.sections.SectionKind] = autocomposer.sections.SectionKind.INTRO
	) -> None:

		"""
		Store the collaborators and fixed composition settings.

		Parameters:
			step_source: Delivers per-step notifications.
			scheduler: Receives generated events and channel teardown.
			pool: Playback destinations per part, already set up.
			generator_factory: Called on every ``start()`` to create fresh generators.
			key: Tonic pitch class (0-11).
			scale: Scale type (see :mod:`autocomposer.scales`), 5 = minor.
			catalog: Section table and transition policy (default song form when omitted).
			rng: Random source for section and chord choices.
			reference_pitch: A4 frequency used to build the pitch table.
			start_section: Section entered on ``start()``.
		"""

		self.step_source = step_source
		self.scheduler = scheduler
		self.pool = pool
		self.generator_factory = generator_factory
		self.key = key
		self.scale = scale
		self.catalog = catalog if catalog is not None else autocomposer.sections.SectionCatalog()
		self.rng: autocomposer.weighted_graph.RandomSource = rng if rng is not None else random.Random()
		self.pitch_table = autocomposer.scales.build_pitch_table(reference_pitch)
		self.start_section = autocomposer.sections.section_kind(start_section)

		# Fail on a bad key or scale now rather than on the first start().
		autocomposer.scales.build_scale(key, scale, self.pitch_table)

		self.state: typing.Optional[autocomposer.state.CompositionState] = None
		self.generators: GeneratorMap = {}
		self.harmonies = autocomposer.harmony.HarmonyCache(scale, self.rng)
		self.loop_start: int = 0
		self.running: bool = False
		self.events = autocomposer.event_emitter.EventEmitter()


	def on_section (self, callback: typing.Callable[[autocomposer.state.CompositionState], typing.Any]) -> None:

		"""
		Register a callback invoked with the state each time a section is entered.
		"""

		self.events.on("section", callback)


	def start (self) -> None:

		"""Create generators, enter the first section, subscribe to steps, and schedule the first loop.

		Raises:
			RuntimeError: If the director is already running.
			ConfigurationError: If a generator lacks next_events(), or a section
				can request a part with no generator or no playback destination.
		"""

		if self.running:
			raise RuntimeError("Composition already started; call stop() first")

		generators = {
			autocomposer.parts.part_kind(kind): generator
			for kind, generator in self.generator_factory().items()
		}

		self._validate_ensemble(generators)

		self.generators = generators
		self.loop_start = 0

		self.init_state(self.key, self.scale)

		self.step_source.add_step_callback(self._on_step)
		self.running = True

		logger.info(f"Composition started (key {self.key}, {autocomposer.scales.SCALE_TYPE_NAMES[self.scale]})")

		self.generate_patterns()


	def stop (self) -> None:

		"""
		Unsubscribe from steps, tear down the pool's channels, and discard generators and state.
		"""

		if not self.running:
			return

		self.running = False
		self.step_source.remove_step_callback(self._on_step)

		for channels in self.pool.values():
			for channel in channels:
				self.scheduler.remove_channel(channel)

		self.generators = {}
		self.state = None

		logger.info("Composition stopped")


	def init_state (self, key: int, scale: int) -> autocomposer.state.CompositionState:

		"""
		Build a fresh state for ``(key, scale)`` and enter the start section.
		"""

		self.harmonies.clear(scale)

		self.state = autocomposer.state.CompositionState(
			key = key,
			scale = scale,
			scale_pitches = tuple(autocomposer.scales.build_scale(key, scale, self.pitch_table))
		)

		self.enter_section(self.start_section)

		return self.state


	def enter_section (self, name: typing.Union[str, autocomposer.sections.SectionKind]) -> None:

		"""Switch the state to a section and load its harmony.

		Raises:
			ConfigurationError: If the section is unknown.
		"""

		state = self._require_state()
		definition = self.catalog.get(name)
		kind = autocomposer.sections.section_kind(name)

		logger.info(f"Setting up section {kind.value}")

		state.section = kind
		state.section_length = definition.section_length
		state.pattern_length = definition.pattern_length
		state.parts = definition.parts
		state.section_pattern = 0
		state.harmony = self.harmonies.dense_harmony(kind, definition.pattern_length)

		if len(state.harmony) != state.pattern_length:
			raise autocomposer.errors.InvariantViolation(
				f"Section {kind.value!r} harmony has {len(state.harmony)} steps, pattern has {state.pattern_length}"
			)

		self.events.emit("section", state)


	def next_state (self) -> bool:

		"""
		Count a finished loop and change section when this one has run its course.

		Returns True when a new section was entered.
		"""

		state = self._require_state()
		state.section_pattern += 1

		if state.section_pattern == state.section_length:
			self.enter_section(self.catalog.next_section(state.section, self.rng))
			return True

		return False


	def on_loop_boundary (self) -> None:

		"""
		Advance the song form by one loop, then schedule the next loop's patterns.
		"""

		self.next_state()
		self.generate_patterns()


	def generate_patterns (self) -> None:

		"""Ask every requested part for its next loop and forward it to the scheduler.

		Parts are forwarded in the order the section lists them.

		Raises:
			ConfigurationError: If a part has no generator or no destination.
		"""

		state = self._require_state()

		for request in state.parts:

			generator = self.generators.get(request.part)

			if generator is None:
				raise autocomposer.errors.ConfigurationError(f"No generator for part {request.part.value!r}")

			destination = autocomposer.ensemble.lookup_destination(self.pool, request)
			events = list(generator.next_events(state))

			self.scheduler.add_events(destination, events, self.loop_start)

		logger.debug(
			f"Scheduled {state.section.value} loop {state.section_pattern + 1}/{state.section_length} "
			f"at step {self.loop_start} for {len(state.parts)} parts"
		)


	def _on_step (self, time: float, step: int) -> None:

		"""Step callback: detect the lookahead point four steps before the loop ends."""

		if not self.running or self.state is None:
			return

		pattern_length = self.state.pattern_length

		# Loops of four steps or fewer are prepared at their own first step.
		if step % pattern_length == (pattern_length - LOOKAHEAD_STEPS) % pattern_length:
			self.loop_start += pattern_length
			self.on_loop_boundary()


	def _validate_ensemble (self, generators: typing.Mapping[autocomposer.parts.PartKind, autocomposer.parts.PartGenerator]) -> None:

		"""Check that every part any reachable section asks for can actually be played."""

		for kind, generator in generators.items():
			if not isinstance(generator, autocomposer.parts.PartGenerator):
				raise autocomposer.errors.ConfigurationError(
					f"Generator for part {kind.value!r} has no next_events() method"
				)

		reachable = self.catalog.reachable_from(self.start_section)

		for kind in reachable:
			for request in self.catalog.get(kind).parts:

				if request.part not in generators:
					raise autocomposer.errors.ConfigurationError(
						f"Section {kind.value!r} needs part {request.part.value!r} but no generator was provided"
					)

				autocomposer.ensemble.lookup_destination(self.pool, request)


	def _require_state (self) -> autocomposer.state.CompositionState:

		"""Return the current state, or raise if the composition has not been started."""

		if self.state is None:
			raise RuntimeError("Composition is not running")

		return self.state
