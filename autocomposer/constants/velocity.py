"""MIDI velocity constants.

Velocity is the MIDI attack strength (0-127).
"""

DEFAULT_VELOCITY = 100          # Most notes and hits
DEFAULT_CHORD_VELOCITY = 90     # Pads and other harmonic content (softer)

# MIDI standard range
MIN_VELOCITY = 0
MAX_VELOCITY = 127
