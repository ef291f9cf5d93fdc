"""
Locate LaTeX math spans inside mixed prose/markdown text.

Two delimiter forms are recognised:
- ``$$ ... $$`` block (display) math
- ``$ ... $`` inline math

A single alternation pattern is run to exhaustion with ``re.finditer``, so the
block form always wins when ``$$`` appears and the scan keeps no state between
calls. Escaped dollars (``\\$``) are not special-cased.
"""
from __future__ import annotations

import re
from dataclasses import dataclass

from core.logger import logger

# Group 1: block payload. Group 2: inline payload, which may not start with "$".
MATH_SPAN_PATTERN = re.compile(r"\$\$([\s\S]*?)\$\$|\$((?!\$)[\s\S]*?)\$")


@dataclass(frozen=True)
class MathSpan:
    """One delimited LaTeX expression found in the source text."""

    raw_latex: str
    is_block: bool
    source_order: int


def scan_math_spans(text: str) -> list[MathSpan]:
    """Return every math span in ``text`` in left-to-right order.

    Never raises for content reasons; text without delimiters yields ``[]``.
    """
    if not text:
        return []

    spans: list[MathSpan] = []
    for match in MATH_SPAN_PATTERN.finditer(text):
        block, inline = match.group(1), match.group(2)
        is_block = block is not None
        spans.append(
            MathSpan(
                raw_latex=block if is_block else inline,
                is_block=is_block,
                source_order=len(spans),
            )
        )

    logger.debug(
        "Scanned %d math span(s) (%d block)",
        len(spans),
        sum(1 for span in spans if span.is_block),
    )
    return spans
