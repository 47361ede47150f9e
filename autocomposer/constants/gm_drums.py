"""General MIDI Level 1 percussion notes used by drum parts.

Drum events carry one of these note numbers as their pitch and are normally
routed to MIDI channel 10 (0-indexed channel 9).
"""

GM_DRUM_CHANNEL = 9

KICK = 36
RIMSHOT = 37
SNARE = 38
CLAP = 39
LOW_TOM = 45
HI_HAT_CLOSED = 42
HI_HAT_PEDAL = 44
HI_HAT_OPEN = 46
MID_TOM = 47
HIGH_TOM = 50
CRASH = 49
RIDE = 51
COWBELL = 56
