"""Screenshot-to-report service backed by an OpenAI assistant."""

__version__ = "0.1.0"
