"""Pytest configuration for tests."""
from __future__ import annotations

import sys
from pathlib import Path
from xml.sax.saxutils import escape

import pytest

# Add the project root to the Python path
# This allows imports like "from services.math..." to work
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))


def katex_like_markup(latex: str, display_mode: bool = False) -> str:
    """Markup shaped like KaTeX's MathML output, HTML wrapper included."""
    payload = escape(latex)
    display = ' display="block"' if display_mode else ""
    return (
        '<span class="katex"><math xmlns="http://www.w3.org/1998/Math/MathML"'
        f"{display}><semantics><mrow><mi>{payload}</mi></mrow>"
        f'<annotation encoding="application/x-tex">{payload}</annotation>'
        "</semantics></math></span>"
    )


class EchoRenderer:
    """Renders every payload as a single <mi>, recording calls."""

    def __init__(self, fail_on: tuple[str, ...] = ()) -> None:
        self.fail_on = fail_on
        self.calls: list[tuple[str, bool]] = []

    def __call__(self, latex: str, display_mode: bool) -> str:
        self.calls.append((latex, display_mode))
        if latex in self.fail_on:
            raise ValueError(f"cannot render {latex!r}")
        payload = escape(latex)
        return (
            f"<math><semantics><mrow><mi>{payload}</mi></mrow>"
            f"<annotation>{payload}</annotation></semantics></math>"
        )


@pytest.fixture
def echo_renderer() -> EchoRenderer:
    return EchoRenderer()


@pytest.fixture
def failing_renderer():
    def render(latex: str, display_mode: bool) -> str:
        raise RuntimeError("renderer exploded")

    return render
