"""MIDI and timing constants for chordblink.

Controller numbers follow the General MIDI assignments where one exists
(sustain, sostenuto). The realtime and update controllers sit in the
undefined 80-83 range so they never collide with a keyboard's own pedals.
"""

# Pitch classes per octave
PITCH_CLASS_COUNT = 12

# Note pattern states
OFF = 0
DIM = 1
BRIGHT = 2

# Control change numbers
SUSTAIN_CONTROLLER = 64
SOSTENUTO_CONTROLLER = 66
REALTIME_CONTROLLER = 80
UPDATE_CONTROLLER = 81
ALL_NOTES_OFF_CONTROLLER = 123

# A controller value at or above this threshold means "pedal down"
CONTROLLER_ON_THRESHOLD = 64

# MIDI channels carrying each output role
ODD_CHANNEL = 0
EVEN_CHANNEL = 1
MIXED_CHANNEL = 2
BASS_CHANNEL = 3
SCALE_CHANNEL = 4
UPDATE_CHANNEL = 15

MIDI_CHANNEL_COUNT = 16

# Octaves sounded for every active pitch class (C2 = 36 ... B6 = 95)
FIRST_OCTAVE = 3
LAST_OCTAVE = 7

# Velocities per pattern state
DIM_VELOCITY = 32
BRIGHT_VELOCITY = 127

# File timing
TICKS_PER_BEAT = 480
NOTE_ON_DELAY_TICKS = 2
NOTE_OFF_LEAD_TICKS = 24

DEFAULT_ROOT = "C"
