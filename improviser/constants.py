"""Parameter ranges and defaults.

The ranges match the controls of the web interface.  Reinforcement
values are expressed in the same units as those controls: the reinforcement
factor runs 100–200 (mapped to an exponent of ``log2(x / 100)``) and the
threshold runs 0–100 (mapped to a probability of ``x / 100``).
"""

# Markov order of the first training pass
MIN_PREDICTABILITY = 1
MAX_PREDICTABILITY = 10
DEFAULT_PREDICTABILITY = 1

# Feedback iterations; final order = predictability + boosting steps
MIN_BOOSTING_STEPS = 0
MAX_BOOSTING_STEPS = 15
DEFAULT_BOOSTING_STEPS = 5

# Reinforcement factor (percent)
MIN_REINFORCEMENT = 100.0
MAX_REINFORCEMENT = 200.0
DEFAULT_REINFORCEMENT = 180.0

# Reinforcement threshold (percent)
MIN_REINFORCEMENT_THRESHOLD = 0.0
MAX_REINFORCEMENT_THRESHOLD = 100.0
DEFAULT_REINFORCEMENT_THRESHOLD = 66.0

# Number of notes in the final generation pass
MIN_OUTPUT_LENGTH = 50
MAX_OUTPUT_LENGTH = 3000
OUTPUT_LENGTH_STEP = 50
DEFAULT_OUTPUT_LENGTH = 500

# Beats per minute, carried to the encoder only
MIN_TEMPO = 40
MAX_TEMPO = 208
DEFAULT_TEMPO = 90

# MIDI standard ranges
MIN_PITCH = 0
MAX_PITCH = 127
MIN_VELOCITY = 0
MAX_VELOCITY = 127

# Resolution used for decoded and encoded files. Standard is 480.
TICKS_PER_BEAT = 480
