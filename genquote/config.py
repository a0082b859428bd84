from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class QuoteConfig:
    """Knobs shared by the parser, the formatter and diagnostics."""

    filename: str = "<template>"
    indentation: str = "    "
    newline: str = "\n"
    # Bounds the recursion of nested groups and control bodies.
    max_depth: int = 64


DEFAULT_CONFIG = QuoteConfig()
