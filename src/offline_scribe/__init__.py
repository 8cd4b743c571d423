"""
offline-scribe - local transcription on top of whisper.cpp.

Stands up an inference context once per model, then runs one blocking
transcription pass per request: audio normalization → native inference →
segment extraction → optional speaker diarization merge.
"""

__version__ = '0.1.0'
