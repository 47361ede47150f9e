import asyncio
import logging
import random

import autocomposer
import autocomposer.reference
import autocomposer.scales

logging.basicConfig(level=logging.INFO)


sequencer = autocomposer.Sequencer(initial_bpm=120, record=True, record_filename="demo.mid")

# 32 loops of 64 steps, written as fast as possible.
sequencer.render(32 * 64)

pool = autocomposer.build_pool(sequencer)

director = autocomposer.CompositionDirector(
	step_source = sequencer,
	scheduler = sequencer,
	pool = pool,
	generator_factory = autocomposer.reference.create_generators,
	key = autocomposer.scales.key_name_to_pc("C"),
	scale = autocomposer.scales.scale_type_from_name("minor"),
	rng = random.Random(7)
)

director.on_section(lambda state: logging.info(f"[{state.section.value}] chords {sorted(set(state.harmony))}"))

director.start()

try:
	asyncio.run(sequencer.play())
finally:
	director.stop()
