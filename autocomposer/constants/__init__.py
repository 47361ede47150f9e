"""Constants for autocomposer.

- ``autocomposer.constants.pulses`` - Pulse and step timing used by the sequencer
- ``autocomposer.constants.velocity`` - MIDI velocity constants
- ``autocomposer.constants.gm_drums`` - General MIDI percussion notes for drum parts
"""
