"""ember - command-line chat client for hosted LLM APIs."""

__version__ = "0.1.0"
