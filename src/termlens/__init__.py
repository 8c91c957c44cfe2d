"""termlens - LLM explanations of terminal output."""

__version__ = "0.1.0"
