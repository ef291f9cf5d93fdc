"""XML helper utilities."""
from __future__ import annotations

from xml.etree import ElementTree as ET

MATHML_NS = "http://www.w3.org/1998/Math/MathML"

# Serialize MathML as the default namespace instead of ns0: prefixes
ET.register_namespace("", MATHML_NS)


def local_name(tag: object) -> str:
    """Return the tag name without its ``{namespace}`` prefix."""
    if not isinstance(tag, str):
        return ""
    return tag.split("}")[-1] if "}" in tag else tag


def has_local_name(element: ET.Element, *names: str) -> bool:
    """Check whether an element's local tag name is one of ``names``."""
    return local_name(element.tag) in names


def to_unicode(element: ET.Element) -> str:
    """Serialize an element to a string without an XML declaration."""
    return ET.tostring(element, encoding="unicode", method="xml")
