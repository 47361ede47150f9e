"""Pulse-based MIDI timing constants.

The sequencer uses **24 pulses per quarter note** (PPQN = 24) as its internal
time base.  Compositions are written in **steps**, where one step is a
sixteenth note, so a 64 step pattern loop lasts four 4/4 bars.
"""

MIDI_SIXTEENTH_NOTE = 6
MIDI_EIGHTH_NOTE = 12
MIDI_QUARTER_NOTE = 24
MIDI_WHOLE_NOTE = 96

PULSES_PER_STEP = MIDI_SIXTEENTH_NOTE
STEPS_PER_BEAT = MIDI_QUARTER_NOTE // PULSES_PER_STEP
STEPS_PER_BAR = 4 * STEPS_PER_BEAT
