"""Exception classes for MathML Extractor.

Render and extraction failures are scoped to a single math span and are
recovered inside the normalizer. Only ``RendererUnavailableError`` is meant
to reach callers.
"""
from __future__ import annotations


class MathMLExtractorError(Exception):
    """Base exception for all MathML Extractor errors."""


class RenderFailure(MathMLExtractorError):
    """The math renderer raised while rendering one LaTeX expression."""

    kind = "render"


class ExtractionFailure(MathMLExtractorError):
    """The renderer succeeded but produced no usable ``<math>`` root."""

    kind = "extraction"


class RendererUnavailableError(MathMLExtractorError):
    """The renderer capability is missing, unknown or not callable."""

    def __init__(self, message: str, renderer: object = None) -> None:
        self.renderer = renderer
        super().__init__(message)
