# src/__init__.py - v1
"""polyglot: one prompt, several LLM providers, one synthesized answer."""

__version__ = "0.1.0"
