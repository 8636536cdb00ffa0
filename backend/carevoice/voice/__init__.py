"""Voice subsystem: speech recognition, command dispatch and speech synthesis."""

from __future__ import annotations

from carevoice.voice.engines import RecognitionEngine, SynthesisEngine
from carevoice.voice.recognizer import RestartPolicy, SpeechRecognizer
from carevoice.voice.registry import CommandRegistry
from carevoice.voice.remote import RemoteRecognitionEngine, RemoteSynthesisEngine
from carevoice.voice.synthesizer import SpeechSynthesizer

__all__ = [
    "CommandRegistry",
    "RecognitionEngine",
    "RemoteRecognitionEngine",
    "RemoteSynthesisEngine",
    "RestartPolicy",
    "SpeechRecognizer",
    "SpeechSynthesizer",
    "SynthesisEngine",
]
