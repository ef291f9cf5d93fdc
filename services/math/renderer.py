"""Math renderer capability: LaTeX in, MathML markup out."""
from __future__ import annotations

from typing import Callable, Protocol

from latex2mathml.converter import convert as latex2mathml_convert

from core.errors import RendererUnavailableError
from core.logger import logger
from utils.xml_utils import MATHML_NS


class MathRenderer(Protocol):
    """Anything callable as ``renderer(latex, display_mode) -> markup``.

    Implementations either return a string containing a ``<math>`` element
    or raise.
    """

    def __call__(self, latex: str, display_mode: bool) -> str: ...


class Latex2MathMLRenderer:
    """Render LaTeX to MathML with latex2mathml."""

    name = "latex2mathml"

    def __init__(self, xmlns: str = MATHML_NS) -> None:
        self.xmlns = xmlns

    def __call__(self, latex: str, display_mode: bool) -> str:
        display = "block" if display_mode else "inline"
        return latex2mathml_convert(latex, xmlns=self.xmlns, display=display)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(xmlns={self.xmlns!r})"


RENDERERS: dict[str, Callable[[], MathRenderer]] = {
    Latex2MathMLRenderer.name: Latex2MathMLRenderer,
}


def get_renderer(name: str) -> MathRenderer:
    """Build the renderer registered under ``name``."""
    factory = RENDERERS.get(name)
    if factory is None:
        available = ", ".join(sorted(RENDERERS))
        raise RendererUnavailableError(
            f"Unknown math renderer {name!r} (available: {available})", renderer=name
        )
    logger.debug("Using math renderer %s", name)
    return factory()


def ensure_renderer(renderer: object) -> MathRenderer:
    """Reject a missing or non-callable renderer before any span is processed."""
    if renderer is None:
        raise RendererUnavailableError("Math renderer not configured")
    if not callable(renderer):
        raise RendererUnavailableError(
            f"Math renderer {renderer!r} is not callable", renderer=renderer
        )
    return renderer  # type: ignore[return-value]
