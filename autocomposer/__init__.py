"""
autocomposer - a procedural song composer that drives MIDI instruments.

Given a key, a scale and an ensemble of parts (drums, bass, pad, melody,
arpeggio), autocomposer writes an endless, never-quite-repeating song.  It
moves through intro, verse, chorus, bridge and two instrumental sections
along a probabilistic song-form grammar, gives every section its own chord
progression, and four steps before each pattern loop ends asks every active
part for its next loop of notes.

What it does:

- **Song form.** A catalog of sections (length in loops, pattern length,
  active parts) and weighted transitions between them.  Sections change
  only at loop boundaries.
- **Harmony.** Each section's progression opens on the tonic and changes
  chord every quarter of the loop, steering away from the scale's
  diminished degree.  A section keeps its progression for the whole
  composition, so choruses sound like choruses.
- **Generators.** Parts are played by generator objects with a single
  ``next_events(state)`` method.  They read the current key, scale, section
  and per-step harmony from the state; how they choose notes is up to them
  (see :mod:`autocomposer.reference`).
- **MIDI playback.** A 24 PPQN asyncio sequencer sends the result to any
  MIDI output via ``mido``, can render without waiting for real time, and
  can record to a MIDI file.

Minimal example:

    ```python
    import asyncio
    import autocomposer

    sequencer = autocomposer.Sequencer(initial_bpm=120)
    pool = autocomposer.build_pool(sequencer)

    director = autocomposer.CompositionDirector(
        step_source = sequencer,
        scheduler = sequencer,
        pool = pool,
        generator_factory = create_generators,
        key = 0,
        scale = 5,
    )

    director.start()
    asyncio.run(sequencer.play())
    ```

Package-level exports: ``CompositionDirector``, ``CompositionState``,
``SectionCatalog``, ``Sequencer``, ``Event``, ``build_pool`` and the error
types.
"""

import autocomposer.director
import autocomposer.ensemble
import autocomposer.errors
import autocomposer.events
import autocomposer.parts
import autocomposer.sections
import autocomposer.sequencer
import autocomposer.state


CompositionDirector = autocomposer.director.CompositionDirector
CompositionState = autocomposer.state.CompositionState
SectionCatalog = autocomposer.sections.SectionCatalog
SectionKind = autocomposer.sections.SectionKind
PartKind = autocomposer.parts.PartKind
Sequencer = autocomposer.sequencer.Sequencer
Event = autocomposer.events.Event
build_pool = autocomposer.ensemble.build_pool
ConfigurationError = autocomposer.errors.ConfigurationError
InvariantViolation = autocomposer.errors.InvariantViolation
TransitionError = autocomposer.errors.TransitionError
