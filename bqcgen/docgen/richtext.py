"""
bqcgen/docgen/richtext.py

Inline HTML (from the explanatory-note editors) -> styled runs.

Only <br>, <b>/<strong>, <i>/<em> and <u> carry meaning. Any other tag is
dropped without consuming text. A "<...>" span that is not a tag (such as
"a<3 and b>2") is kept as text, and unbalanced markup never raises.
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass, replace
from typing import List

from .nodes import DEFAULT_FONT, DEFAULT_SIZE, Run

_BREAK_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
_TAG_SPLIT_RE = re.compile(r"(<[^>]*>)")
_TAG_RE = re.compile(r"^<\s*(/?)\s*([a-zA-Z][a-zA-Z0-9]*)(?=[\s/>])")

_STYLE_TAGS = {
    "b": "bold",
    "strong": "bold",
    "i": "italic",
    "em": "italic",
    "u": "underline",
}


@dataclass(frozen=True)
class RunStyle:
    bold: bool = False
    italic: bool = False
    underline: bool = False


DEFAULT_STYLE = RunStyle()


class FormatStack:
    """Opening tags push the active style; closing tags restore the previous one."""

    def __init__(self):
        self._saved: List[RunStyle] = []
        self.current = DEFAULT_STYLE

    def open(self, attribute: str) -> None:
        self._saved.append(self.current)
        self.current = replace(self.current, **{attribute: True})

    def close(self) -> None:
        self.current = self._saved.pop() if self._saved else DEFAULT_STYLE


def _run(value: str, style: RunStyle, font: str, size: float) -> Run:
    return Run(
        text=value,
        bold=style.bold,
        italic=style.italic,
        underline=style.underline,
        font=font,
        size=size,
    )


def html_to_runs(markup: str, font: str = DEFAULT_FONT, size: float = DEFAULT_SIZE) -> List[Run]:
    """
    Convert inline HTML to runs. A "\\n" run separates <br>-delimited lines;
    blank lines are skipped. Always returns at least one run.
    """
    if not markup or not markup.strip():
        return [Run(text="", font=font, size=size)]

    runs: List[Run] = []
    stack = FormatStack()

    for index, line in enumerate(_BREAK_RE.split(markup)):
        if index > 0:
            runs.append(Run(text="\n", font=font, size=size))
        if not line.strip():
            continue

        for segment in _TAG_SPLIT_RE.split(line):
            if not segment:
                continue
            match = _TAG_RE.match(segment)
            if match:
                closing, name = match.group(1), match.group(2).lower()
                attribute = _STYLE_TAGS.get(name)
                if attribute is None:
                    continue
                if closing:
                    stack.close()
                else:
                    stack.open(attribute)
                continue

            value = html.unescape(segment).replace("\xa0", " ")
            if value:
                runs.append(_run(value, stack.current, font, size))

    if not any(run.text.strip() for run in runs):
        return [Run(text="", font=font, size=size)]
    return runs

