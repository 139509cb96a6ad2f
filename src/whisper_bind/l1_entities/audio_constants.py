"""Audio format the engine consumes."""

SAMPLE_RATE = 16000  # Hz, mono float32
CENTISECONDS_PER_SECOND = 100
