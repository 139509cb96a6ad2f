"""whisper-bind: bootstrap and drive the whisper.cpp native engine."""

__version__ = '0.1.0'
