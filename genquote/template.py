"""
Public entry points.

Usage::

    from genquote import Template

    tmpl = Template('''
    fn #name() {
        #(for stmt in body join (#<push>) => #stmt;)
    }
    ''')
    print(tmpl.render(name="main", body=["a()", "b()"]))
"""

from __future__ import annotations

import logging
from typing import Any

from .config import DEFAULT_CONFIG, QuoteConfig
from .output import Tokens
from .quote import parse_template
from .routine import Routine

logger = logging.getLogger(__name__)


class Template:
    """A template parsed once and rendered any number of times.

    Args:
        source: Template text.
        receiver: Name under which the output receiver is visible to
            template expressions.
        config: Parser and formatter settings.
    """

    def __init__(
        self,
        source: str,
        *,
        receiver: str = "t",
        config: QuoteConfig | None = None,
    ) -> None:
        self.source = source
        self.receiver = receiver
        self.config = config or DEFAULT_CONFIG
        self.routine: Routine = parse_template(source, receiver, self.config)

    def populate(self, tokens: Tokens, **bindings: Any) -> Tokens:
        """Append this template's output to an existing receiver."""
        logger.debug("rendering %s", self.config.filename)
        return self.routine.run(tokens, bindings)

    def tokens(self, **bindings: Any) -> Tokens:
        return self.populate(Tokens(), **bindings)

    def render(self, **bindings: Any) -> str:
        return self.tokens(**bindings).to_string(self.config)


def compile_template(
    source: str,
    receiver: str = "t",
    config: QuoteConfig | None = None,
) -> Template:
    return Template(source, receiver=receiver, config=config)


def quote(source: str, **bindings: Any) -> Tokens:
    """Parse and run `source` in one step, returning the populated receiver."""
    return Template(source).tokens(**bindings)


def render(source: str, **bindings: Any) -> str:
    return Template(source).render(**bindings)
