"""Tod AI backend: resilient Gemini access and the tutoring features built on it."""

__version__ = "0.1.0"
