"""Turns a received response into terminal output.

Body, status line and headers go to stdout. Warnings and errors go to
stderr through rich, which drops the colors when stderr isn't a terminal.
JSON is syntax highlighted with Pygments only when stdout is a terminal,
so piped output stays parseable.
"""
import json
import os
import sys
from typing import Any, Optional, TextIO

import pygments
from pygments.formatters.terminal import TerminalFormatter
from pygments.formatters.terminal256 import Terminal256Formatter
from pygments.lexers.data import JsonLexer
from rich.console import Console
from rich.markup import escape

from .models import DecodedBody, ResponseView, parse_json

JSON_INDENT = 2
JSON_STYLE = 'monokai'

_stderr = Console(stderr=True, highlight=False, soft_wrap=True)


def _formatter():
    if '256' in os.environ.get('TERM', ''):
        return Terminal256Formatter(style=JSON_STYLE)
    return TerminalFormatter()


def highlight_json(text: str) -> str:
    # JsonLexer marks anything it can't place as an Error token instead of
    # raising, so odd input still comes out.
    return pygments.highlight(text, JsonLexer(), _formatter()).rstrip('\n')


def format_json(value: Any, colors: bool = False) -> str:
    text = json.dumps(value, indent=JSON_INDENT, ensure_ascii=False)
    return highlight_json(text) if colors else text


def format_head(view: ResponseView) -> str:
    lines = [f"HTTP/{view.http_version} {view.status_code} {view.status_text}"]
    lines.extend(f"{name}: {value}" for name, value in view.headers.items())
    return '\n'.join(lines) + '\n'


def format_body(view: ResponseView, colors: bool = False) -> str:
    """Pick the body's printed form.

    Already-decoded JSON is pretty printed. A raw body claiming to be JSON
    gets one parse attempt and falls back to the text as received.
    Anything else is returned unchanged.
    """
    if isinstance(view.body, DecodedBody):
        return format_json(view.body.value, colors)

    text = view.body.text
    if 'application/json' in view.content_type.lower():
        value = parse_json(text)
        if value is not None:
            return format_json(value, colors)
    return text


def warn(message: str) -> None:
    _stderr.print(f"[yellow]{escape(message)}[/yellow]")


def error(message: str) -> None:
    _stderr.print(f"[red]{escape(message)}[/red]")


def render_response(
        view: ResponseView,
        include: bool = False,
        silent: bool = False,
        out: Optional[TextIO] = None
    ) -> int:

    out = out or sys.stdout
    colors = out.isatty()

    if include:
        print(format_head(view), file=out)

    if view.is_error() and not silent:
        warn(f"Warning: Request failed with status {view.status_code} {view.status_text}")

    print(format_body(view, colors), file=out)
    return 0
