"""Legal authority retrieval and grounding core."""

__version__ = "0.1.0"
