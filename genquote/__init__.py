"""
genquote: token templates for source-code generation.

Templates are written in the target language's own token syntax plus a
small control language introduced by `#`. Output spacing follows the
layout of the template itself.
"""

from .config import QuoteConfig
from .errors import Diagnostic, EncoderError, RenderError, TemplateError, TemplateSyntaxError
from .output import Tokens, Whitespace
from .quote import Quote, parse_template
from .routine import Routine
from .template import Template, compile_template, quote, render

__all__ = [
    "Diagnostic",
    "EncoderError",
    "Quote",
    "QuoteConfig",
    "RenderError",
    "Routine",
    "Template",
    "TemplateError",
    "TemplateSyntaxError",
    "Tokens",
    "Whitespace",
    "compile_template",
    "parse_template",
    "quote",
    "render",
]
