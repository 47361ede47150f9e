import asyncio
import importlib
import logging
import os
import random
import typing

import yaml

import autocomposer.director
import autocomposer.ensemble
import autocomposer.errors
import autocomposer.scales
import autocomposer.sequencer


# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


DEFAULT_GENERATORS = "autocomposer.reference:create_generators"


def load_config (config_path: str = 'config.yaml') -> dict:

	"""
	Load configuration from a YAML file.
	"""

	if not os.path.exists(config_path):
		logger.warning(f"Config file {config_path} not found. Using defaults.")
		return {}

	with open(config_path, 'r') as f:
		config = yaml.safe_load(f)

	if config is None:
		return {}

	if not isinstance(config, dict):
		raise autocomposer.errors.ConfigurationError(f"{config_path} must contain a mapping at the top level")

	return config


def resolve_key (value: typing.Union[str, int]) -> int:

	"""Accept a pitch class number or a note name like ``"Eb"``."""

	if isinstance(value, int):
		return value

	return autocomposer.scales.key_name_to_pc(str(value))


def resolve_scale (value: typing.Union[str, int]) -> int:

	"""Accept a scale type number or a mode name like ``"minor"``."""

	if isinstance(value, int):
		return value

	return autocomposer.scales.scale_type_from_name(str(value))


def load_generator_factory (path: str) -> autocomposer.director.GeneratorFactory:

	"""
	Import a ``module:function`` generator factory.
	"""

	module_name, _, attribute = path.partition(":")

	if not module_name or not attribute:
		raise autocomposer.errors.ConfigurationError(f"Generator factory must look like 'module:function', got {path!r}")

	try:
		module = importlib.import_module(module_name)
	except ImportError as e:
		raise autocomposer.errors.ConfigurationError(f"Cannot import generator module {module_name!r}: {e}") from e

	factory = getattr(module, attribute, None)

	if not callable(factory):
		raise autocomposer.errors.ConfigurationError(f"{path!r} is not a callable generator factory")

	return factory


def main () -> None:

	"""
	Main entry point: build the ensemble from config and play until interrupted.
	"""

	logger.info("autocomposer starting...")

	config = load_config()

	midi_config = config.get('midi') or {}
	sequencer_config = config.get('sequencer') or {}
	composition_config = config.get('composition') or {}

	# Resolve everything that can be misconfigured before touching MIDI.
	generator_factory = load_generator_factory(composition_config.get('generators', DEFAULT_GENERATORS))
	key = resolve_key(composition_config.get('key', 0))
	scale = resolve_scale(composition_config.get('scale', 5))
	seed = composition_config.get('seed')

	sequencer = autocomposer.sequencer.Sequencer(
		output_device_name = midi_config.get('device_name'),
		initial_bpm = sequencer_config.get('bpm', 120),
		record = sequencer_config.get('record', False),
		record_filename = sequencer_config.get('record_filename')
	)

	pool = autocomposer.ensemble.build_pool(sequencer, config.get('parts'))

	director = autocomposer.director.CompositionDirector(
		step_source = sequencer,
		scheduler = sequencer,
		pool = pool,
		generator_factory = generator_factory,
		key = key,
		scale = scale,
		rng = random.Random(seed),
		reference_pitch = composition_config.get('reference_pitch', 440.0)
	)

	render_steps = sequencer_config.get('render_steps')

	if render_steps:
		sequencer.render(int(render_steps))

	try:
		director.start()
		asyncio.run(sequencer.play())
	except KeyboardInterrupt:
		logger.info("Stopping...")
	finally:
		director.stop()


if __name__ == "__main__":
	main()
