"""Audio format constants shared across layers."""

SAMPLE_RATE = 16000
CHANNELS = 1
SAMPLE_WIDTH = 2  # int16
INT16_SCALE = 32768.0
