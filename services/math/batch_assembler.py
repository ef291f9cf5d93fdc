"""Turn a whole document into joined, cleaned MathML."""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from core.logger import logger
from services.math.mathml_normalizer import (
    NormalizationOutcome,
    NormalizedFragment,
    SpanFailure,
    normalize_span,
)
from services.math.renderer import MathRenderer, ensure_renderer
from services.math.span_scanner import MathSpan, scan_math_spans

NO_MATH_FOUND = "No mathematical formulas detected."
FRAGMENT_SEPARATOR = "\n\n"

FailureCallback = Callable[[SpanFailure], None]


@dataclass
class AssemblyResult:
    """Outcome of assembling one document."""

    output: str
    fragments: list[NormalizedFragment] = field(default_factory=list)
    failures: list[SpanFailure] = field(default_factory=list)
    span_count: int = 0

    @property
    def found(self) -> bool:
        """True when at least one fragment made it into ``output``."""
        return bool(self.fragments)


def _normalize_all(
    spans: list[MathSpan], renderer: MathRenderer, max_workers: int
) -> list[NormalizationOutcome]:
    if max_workers <= 1 or len(spans) <= 1:
        return [normalize_span(span, renderer) for span in spans]

    with ThreadPoolExecutor(max_workers=min(max_workers, len(spans))) as pool:
        outcomes = list(pool.map(lambda span: normalize_span(span, renderer), spans))
    # Completion order is irrelevant; output order follows the source text
    return sorted(outcomes, key=lambda outcome: outcome.source_order)


def assemble_report(
    text: str, renderer: MathRenderer, max_workers: int = 1
) -> AssemblyResult:
    """Scan ``text``, normalize every span and join the successes."""
    renderer = ensure_renderer(renderer)
    spans = scan_math_spans(text)

    fragments: list[NormalizedFragment] = []
    failures: list[SpanFailure] = []
    for outcome in _normalize_all(spans, renderer, max_workers):
        if isinstance(outcome, SpanFailure):
            failures.append(outcome)
        else:
            fragments.append(outcome)

    if fragments:
        output = FRAGMENT_SEPARATOR.join(f.serialized_markup for f in fragments)
    else:
        output = NO_MATH_FOUND

    logger.debug(
        "Assembled %d/%d math span(s), %d failed",
        len(fragments),
        len(spans),
        len(failures),
    )
    return AssemblyResult(
        output=output, fragments=fragments, failures=failures, span_count=len(spans)
    )


def assemble(
    text: str,
    renderer: MathRenderer,
    on_failure: Optional[FailureCallback] = None,
    max_workers: int = 1,
) -> str:
    """Return joined MathML for ``text`` or ``NO_MATH_FOUND``.

    Every failed span is logged and, when given, handed to ``on_failure``.
    """
    result = assemble_report(text, renderer, max_workers=max_workers)
    for failure in result.failures:
        logger.warning("Skipping math %s | LaTeX: %s", failure.describe(), failure.raw_latex[:200])
        if on_failure is not None:
            on_failure(failure)
    return result.output


def assemble_documents(
    texts: Iterable[str], renderer: MathRenderer, max_workers: int = 1
) -> list[AssemblyResult]:
    """Assemble many independent documents, keeping input order."""
    renderer = ensure_renderer(renderer)
    documents = list(texts)
    if max_workers <= 1 or len(documents) <= 1:
        results = [assemble_report(text, renderer) for text in documents]
    else:
        with ThreadPoolExecutor(max_workers=min(max_workers, len(documents))) as pool:
            results = list(pool.map(lambda text: assemble_report(text, renderer), documents))

    logger.info(
        "Assembled %d document(s); %d with math",
        len(results),
        sum(1 for result in results if result.found),
    )
    return results
