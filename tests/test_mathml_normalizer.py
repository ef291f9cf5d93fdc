"""Tests for MathML normalization rules."""
from __future__ import annotations

import xml.etree.ElementTree as ET

import pytest

from conftest import EchoRenderer, katex_like_markup
from core.errors import ExtractionFailure
from services.math.mathml_normalizer import (
    NormalizedFragment,
    SpanFailure,
    clean_math_tree,
    extract_math_root,
    normalize_markup,
    normalize_span,
    serialize_math,
    strip_elements,
    unwrap_elements,
    unwrap_sole_child,
)
from services.math.span_scanner import MathSpan

MATHML_NS = "http://www.w3.org/1998/Math/MathML"


def _clean(markup: str) -> str:
    return serialize_math(clean_math_tree(ET.fromstring(markup)))


class TestRewriteRules:
    """Annotation stripping, semantics unwrapping, top-level mrow unwrapping."""

    def test_semantics_shape_collapses_to_content(self) -> None:
        markup = (
            "<math><semantics><mrow><mi>x</mi><mo>+</mo><mn>1</mn></mrow>"
            "<annotation encoding=\"application/x-tex\">x+1</annotation></semantics></math>"
        )
        assert _clean(markup) == "<math><mi>x</mi><mo>+</mo><mn>1</mn></math>"

    def test_annotations_removed_at_any_depth(self) -> None:
        markup = (
            "<math><mrow><mfrac><mi>a</mi><semantics><mi>b</mi>"
            "<annotation>b</annotation><annotation-xml>b</annotation-xml>"
            "</semantics></mfrac><mi>c</mi></mrow></math>"
        )
        result = _clean(markup)
        assert "annotation" not in result
        assert "semantics" not in result
        assert result == "<math><mfrac><mi>a</mi><mi>b</mi></mfrac><mi>c</mi></math>"

    def test_nested_semantics_are_all_unwrapped(self) -> None:
        markup = "<math><semantics><semantics><mi>x</mi></semantics><mi>y</mi></semantics></math>"
        assert _clean(markup) == "<math><mi>x</mi><mi>y</mi></math>"

    def test_top_level_mrow_unwrapped_only_once(self) -> None:
        markup = "<math><mrow><mrow><mi>x</mi></mrow></mrow></math>"
        assert _clean(markup) == "<math><mrow><mi>x</mi></mrow></math>"

    def test_mrow_kept_when_not_sole_child(self) -> None:
        markup = "<math><mrow><mi>x</mi></mrow><mo>=</mo><mn>2</mn></math>"
        assert _clean(markup) == markup

    def test_non_mrow_sole_child_kept(self) -> None:
        markup = "<math><mfrac><mn>1</mn><mn>2</mn></mfrac></math>"
        assert _clean(markup) == markup

    def test_empty_root_after_unwrap(self) -> None:
        markup = "<math><semantics><annotation>x</annotation></semantics></math>"
        assert _clean(markup) == "<math />"

    def test_attributes_keep_their_order(self) -> None:
        markup = '<math display="block" class="x"><semantics><mrow><mi mathvariant="normal">d</mi></mrow></semantics></math>'
        assert _clean(markup) == '<math display="block" class="x"><mi mathvariant="normal">d</mi></math>'

    def test_namespaced_tree_keeps_default_namespace(self) -> None:
        root = extract_math_root(katex_like_markup("x", display_mode=True))
        result = serialize_math(clean_math_tree(root))
        assert result == f'<math xmlns="{MATHML_NS}" display="block"><mi>x</mi></math>'


class TestPureTransforms:
    def test_strip_does_not_mutate_input(self) -> None:
        root = ET.fromstring("<math><mi>x</mi><annotation>x</annotation></math>")
        stripped = strip_elements(root, lambda el: el.tag == "annotation")
        assert len(root) == 2
        assert len(stripped) == 1

    def test_strip_keeps_tail_text(self) -> None:
        root = ET.fromstring("<math><mi>x</mi><annotation>x</annotation> tail</math>")
        stripped = strip_elements(root, lambda el: el.tag == "annotation")
        assert stripped[0].tail == " tail"

    def test_unwrap_preserves_child_order_and_text(self) -> None:
        root = ET.fromstring("<math><mi>a</mi><wrap>t<mi>b</mi><mi>c</mi></wrap><mi>d</mi></math>")
        result = unwrap_elements(root, lambda el: el.tag == "wrap")
        assert [child.text for child in result] == ["a", "b", "c", "d"]
        assert result[0].tail == "t"
        assert len(root) == 3

    def test_unwrap_sole_child_returns_same_tree_when_not_applicable(self) -> None:
        root = ET.fromstring("<math><mi>a</mi><mi>b</mi></math>")
        assert unwrap_sole_child(root, lambda el: el.tag == "mrow") is root


class TestExtraction:
    def test_extracts_root_from_wrapper_markup(self) -> None:
        markup = '<span class="katex"><math><mi>x</mi></math></span><span>html</span>'
        root = extract_math_root(markup)
        assert root.tag == "math"
        assert root[0].text == "x"

    def test_first_math_root_wins(self) -> None:
        root = extract_math_root("<math><mi>a</mi></math><math><mi>b</mi></math>")
        assert root[0].text == "a"

    def test_missing_math_root(self) -> None:
        with pytest.raises(ExtractionFailure):
            extract_math_root("<span>no math</span>")

    def test_similar_tag_names_do_not_match(self) -> None:
        with pytest.raises(ExtractionFailure):
            extract_math_root("<mathish>x</mathish>")

    def test_malformed_math_root(self) -> None:
        with pytest.raises(ExtractionFailure):
            extract_math_root("<math><mi>x</math>")

    def test_non_string_output(self) -> None:
        with pytest.raises(ExtractionFailure):
            extract_math_root(None)  # type: ignore[arg-type]

    def test_normalize_markup(self) -> None:
        assert normalize_markup(katex_like_markup("y")).endswith("><mi>y</mi></math>")


class TestNormalizeSpan:
    def test_success_carries_source_order(self, echo_renderer: EchoRenderer) -> None:
        span = MathSpan(raw_latex="x^2", is_block=False, source_order=3)
        outcome = normalize_span(span, echo_renderer)
        assert outcome == NormalizedFragment("<math><mi>x^2</mi></math>", 3)
        assert echo_renderer.calls == [("x^2", False)]

    def test_display_mode_forwarded(self, echo_renderer: EchoRenderer) -> None:
        normalize_span(MathSpan("a", True, 0), echo_renderer)
        assert echo_renderer.calls == [("a", True)]

    def test_render_failure_reported(self, failing_renderer) -> None:
        outcome = normalize_span(MathSpan(r"\frac{", False, 0), failing_renderer)
        assert isinstance(outcome, SpanFailure)
        assert outcome.kind == "render"
        assert outcome.raw_latex == r"\frac{"
        assert "renderer exploded" in outcome.message

    def test_extraction_failure_reported(self) -> None:
        outcome = normalize_span(MathSpan("x", False, 1), lambda latex, display: "<span/>")
        assert isinstance(outcome, SpanFailure)
        assert outcome.kind == "extraction"
        assert outcome.source_order == 1
        assert "span #1 (extraction)" in outcome.describe()

    def test_payload_escaping_survives_round_trip(self, echo_renderer: EchoRenderer) -> None:
        outcome = normalize_span(MathSpan("a<b", False, 0), echo_renderer)
        assert outcome.serialized_markup == "<math><mi>a&lt;b</mi></math>"
