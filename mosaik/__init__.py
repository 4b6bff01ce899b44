"""mosaik — node-graph editor engine for composing and running LLM workflows."""

__version__ = "0.1.0"
