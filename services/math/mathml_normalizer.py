"""
Rendered MathML → clean, portable MathML.

For each math span:
1. render the LaTeX with the injected renderer
2. pull the first ``<math>...</math>`` element out of the raw output
3. parse it with ElementTree
4. strip ``annotation`` / ``annotation-xml`` nodes at any depth
5. unwrap every ``semantics`` wrapper into its parent
6. unwrap a sole top-level ``mrow`` (one level only)
7. serialize back to a string

Rewrites are pure: each transform returns a new tree and leaves its input
untouched. Render and extraction problems are reported as ``SpanFailure``
values so a batch can carry on past a bad expression.
"""
from __future__ import annotations

import copy
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Callable, Union

from core.errors import ExtractionFailure, RenderFailure
from core.logger import logger
from services.math.renderer import MathRenderer
from services.math.span_scanner import MathSpan
from utils.xml_utils import has_local_name, to_unicode

MATH_ROOT_PATTERN = re.compile(r"<math\b[\s\S]*?</math>")

ANNOTATION_TAGS = ("annotation", "annotation-xml")
SEMANTICS_TAG = "semantics"
GROUPING_TAG = "mrow"

Predicate = Callable[[ET.Element], bool]


@dataclass(frozen=True)
class NormalizedFragment:
    """Cleaned MathML for one span."""

    serialized_markup: str
    source_order: int


@dataclass(frozen=True)
class SpanFailure:
    """Diagnostic for a span that could not be normalized."""

    source_order: int
    raw_latex: str
    kind: str
    message: str

    def describe(self) -> str:
        return f"span #{self.source_order} ({self.kind}): {self.message}"


NormalizationOutcome = Union[NormalizedFragment, SpanFailure]


# ---------------------------------------------------------
# Tree transforms
# ---------------------------------------------------------
def _shallow_copy(element: ET.Element) -> ET.Element:
    clone = ET.Element(element.tag, dict(element.attrib))
    clone.text = element.text
    clone.tail = element.tail
    return clone


def _append_text(parent: ET.Element, text: str | None) -> None:
    """Append character data after the last child of ``parent``."""
    if not text:
        return
    if len(parent):
        last = parent[-1]
        last.tail = (last.tail or "") + text
    else:
        parent.text = (parent.text or "") + text


def strip_elements(element: ET.Element, predicate: Predicate) -> ET.Element:
    """Return a copy of ``element`` without descendants matching ``predicate``.

    The element itself is never removed. A removed node's tail text stays in place.
    """
    clone = _shallow_copy(element)
    for child in element:
        if predicate(child):
            _append_text(clone, child.tail)
            continue
        clone.append(strip_elements(child, predicate))
    return clone


def unwrap_elements(element: ET.Element, predicate: Predicate) -> ET.Element:
    """Return a copy of ``element`` with every matching descendant replaced by its children."""
    clone = _shallow_copy(element)
    _splice_children(clone, element, predicate)
    return clone


def _splice_children(target: ET.Element, source: ET.Element, predicate: Predicate) -> None:
    for child in source:
        if predicate(child):
            _append_text(target, child.text)
            _splice_children(target, child, predicate)
            _append_text(target, child.tail)
        else:
            target.append(unwrap_elements(child, predicate))


def unwrap_sole_child(root: ET.Element, predicate: Predicate) -> ET.Element:
    """Flatten ``root`` when its only element child matches ``predicate``.

    Applies once, at the top level only; grandchildren are copied as-is even
    when they match too.
    """
    children = list(root)
    if len(children) != 1 or not predicate(children[0]):
        return root

    wrapper = children[0]
    clone = _shallow_copy(root)
    _append_text(clone, wrapper.text)
    for child in wrapper:
        clone.append(copy.deepcopy(child))
    _append_text(clone, wrapper.tail)
    return clone


def clean_math_tree(root: ET.Element) -> ET.Element:
    """Apply annotation stripping, semantics unwrapping and top-level mrow unwrapping, in that order."""
    root = strip_elements(root, lambda el: has_local_name(el, *ANNOTATION_TAGS))
    root = unwrap_elements(root, lambda el: has_local_name(el, SEMANTICS_TAG))
    return unwrap_sole_child(root, lambda el: has_local_name(el, GROUPING_TAG))


# ---------------------------------------------------------
# Extraction / serialization
# ---------------------------------------------------------
def extract_math_root(markup: str) -> ET.Element:
    """Parse the first ``<math>`` element embedded in renderer output."""
    if not isinstance(markup, str):
        raise ExtractionFailure(f"Renderer returned {type(markup).__name__}, expected markup text")
    match = MATH_ROOT_PATTERN.search(markup)
    if match is None:
        raise ExtractionFailure("Renderer output contains no <math> element")
    try:
        return ET.fromstring(match.group(0))
    except ET.ParseError as exc:
        raise ExtractionFailure(f"Malformed <math> element in renderer output: {exc}") from exc


def serialize_math(root: ET.Element) -> str:
    """Serialize a cleaned math tree; attribute and child order are kept as built."""
    return to_unicode(root)


def normalize_markup(markup: str) -> str:
    """Clean raw renderer markup into a portable ``<math>`` string."""
    root = extract_math_root(markup)
    try:
        return serialize_math(clean_math_tree(root))
    except RecursionError as exc:
        raise ExtractionFailure("Rendered <math> element is nested too deeply to normalize") from exc


# ---------------------------------------------------------
# Per-span entry point
# ---------------------------------------------------------
def _render(span: MathSpan, renderer: MathRenderer) -> str:
    try:
        return renderer(span.raw_latex, span.is_block)
    except Exception as exc:  # noqa: BLE001
        raise RenderFailure(f"{type(exc).__name__}: {exc}") from exc


def normalize_span(span: MathSpan, renderer: MathRenderer) -> NormalizationOutcome:
    """Render and clean one span, reporting failures instead of raising them."""
    try:
        raw = _render(span, renderer)
        markup = normalize_markup(raw)
    except (RenderFailure, ExtractionFailure) as exc:
        failure = SpanFailure(
            source_order=span.source_order,
            raw_latex=span.raw_latex,
            kind=exc.kind,
            message=str(exc),
        )
        logger.debug("Normalization failed: %s", failure.describe())
        return failure

    return NormalizedFragment(serialized_markup=markup, source_order=span.source_order)
