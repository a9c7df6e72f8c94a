"""Commit message parsing and validation, configuration, history, caching, retries and error handling for commit message generation."""

__version__ = "0.1.0"