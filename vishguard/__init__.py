"""Voice phishing screening: transcribe an audio file and score it for phishing risk."""

__version__ = "0.1.0"
