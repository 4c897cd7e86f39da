"""Thin XML tree model over lxml.

lxml resolves namespaces on parse, while feed extraction wants the document
as it was written: lower-cased ``prefix:local`` tag names, prefixed
attribute names and ``xmlns`` declarations visible as attributes. Element
rebuilds that view from the lxml tree and adds the lookups, base-URL
inheritance and text coercions used by the feed extractors.
"""

from __future__ import annotations

import datetime
import html as _html_mod
import math
import re
from typing import TYPE_CHECKING, Optional, Union
from urllib.parse import urljoin, urlsplit

from lxml import etree

from .dates import parse_date

if TYPE_CHECKING:
    from lxml.etree import _Element

_RE_WHITESPACE = re.compile(r"\s+")
_XML_NAMESPACE = "http://www.w3.org/XML/1998/namespace"


class _DefaultNamespace:
    """Marker for elements without a prefix, distinct from any prefix string."""

    def __repr__(self) -> str:
        return "<default namespace>"


DEFAULT_NAMESPACE = _DefaultNamespace()

NamespaceKey = Union[str, _DefaultNamespace]
Child = Union["Element", str]


def resolve_url(url: str, base_url: Optional[str]) -> str:
    """Resolve ``url`` against an absolute ``base_url``.

    The URL is returned unchanged when there is no usable base or the join
    fails.
    """
    if not base_url or not isinstance(url, str):
        return url
    try:
        if not urlsplit(base_url).scheme:
            return url
        return urljoin(base_url, url)
    except ValueError:
        return url


def _split_clark(name: str) -> tuple[Optional[str], str]:
    if name.startswith("{"):
        uri, local = name[1:].split("}", 1)
        return uri, local
    return None, name


class Element:
    """An XML element with a parent link for namespace and base URL lookups."""

    def __init__(self, raw: _Element, parent: Optional[Element] = None) -> None:
        self.raw = raw
        self.parent = parent

        prefix = raw.prefix if raw.tag.startswith("{") else None
        local = _split_clark(raw.tag)[1]
        self.raw_name = f"{prefix}:{local}" if prefix else local

        name_parts = self.raw_name.lower().split(":")
        self.name = ":".join(name_parts[1:]) if len(name_parts) > 1 else name_parts[0]
        self.namespace: NamespaceKey = (
            name_parts[0] if len(name_parts) > 1 and name_parts[0] else DEFAULT_NAMESPACE
        )

        self._raw_attributes: Optional[dict[str, str]] = None
        self._attributes: Optional[dict[str, str]] = None
        self._children: Optional[list[Child]] = None
        self._declarations: Optional[dict[NamespaceKey, str]] = None

    def __repr__(self) -> str:
        return f"<Element {self.raw_name}>"

    @property
    def raw_attributes(self) -> dict[str, str]:
        """Attributes with their source prefixes and case, namespace declarations included."""
        if self._raw_attributes is None:
            raw = self.raw
            attributes: dict[str, str] = {}
            for key, value in raw.attrib.items():
                uri, local = _split_clark(key)
                if uri == _XML_NAMESPACE:
                    key = f"xml:{local}"
                elif uri is not None:
                    prefix = next(
                        (p for p, u in raw.nsmap.items() if u == uri and p), None
                    )
                    key = f"{prefix}:{local}" if prefix else local
                attributes[key] = value

            parent = raw.getparent()
            inherited = parent.nsmap if parent is not None else {}
            for prefix, uri in raw.nsmap.items():
                if inherited.get(prefix) != uri:
                    attributes["xmlns" if prefix is None else f"xmlns:{prefix}"] = uri
            self._raw_attributes = attributes
        return self._raw_attributes

    @property
    def attributes(self) -> dict[str, str]:
        if self._attributes is None:
            self._attributes = {
                key.lower(): value for key, value in self.raw_attributes.items()
            }
        return self._attributes

    @property
    def children(self) -> list[Child]:
        """Child elements and text fragments in document order."""
        if self._children is None:
            raw = self.raw
            children: list[Child] = []
            if raw.text:
                children.append(raw.text)
            for node in raw:
                if isinstance(node.tag, str):
                    children.append(Element(node, self))
                elif node.tag is etree.Entity and node.text:
                    children.append(node.text)
                # Comments and processing instructions are dropped, tails kept
                if node.tail:
                    children.append(node.tail)
            self._children = children
        return self._children

    @property
    def namespace_declarations(self) -> dict[NamespaceKey, str]:
        if self._declarations is None:
            declarations: dict[NamespaceKey, str] = (
                dict(self.parent.namespace_declarations) if self.parent else {}
            )
            for key, value in self.attributes.items():
                if key == "xmlns":
                    declarations[DEFAULT_NAMESPACE] = value.strip()
                elif key.startswith("xmlns:"):
                    declarations[key[len("xmlns:") :]] = value.strip()
            self._declarations = declarations
        return self._declarations

    @property
    def namespace_uri(self) -> Optional[str]:
        return self.namespace_declarations.get(self.namespace) or None

    @property
    def base_url(self) -> Optional[str]:
        parent_base_url = self.parent.base_url if self.parent else None
        xml_base = self.attributes.get("xml:base")
        if xml_base:
            return resolve_url(xml_base, parent_base_url)
        return parent_base_url

    @property
    def text_content(self) -> str:
        """All descendant text joined, whitespace untouched."""
        return "".join(
            child if isinstance(child, str) else child.text_content
            for child in self.children
        )

    @property
    def text_content_normalized(self) -> str:
        text = self.text_content
        if "&" in text:
            text = _html_mod.unescape(text)
        return _RE_WHITESPACE.sub(" ", text).strip()

    @property
    def text_content_as_url(self) -> str:
        return self.resolve_url(self.text_content.strip())

    @property
    def text_content_as_date(self) -> Optional[datetime.datetime]:
        return parse_date(self.text_content.strip())

    @property
    def inner_html(self) -> str:
        """The element's children serialised as markup."""
        return "".join(_serialize(child) for child in self.children).strip()

    def find_elements_with_name(self, name: str) -> list[Element]:
        name = name.lower()
        return [
            child
            for child in self.children
            if isinstance(child, Element) and child.name == name
        ]

    def find_element_with_name(self, name: str, nth: int = 0) -> Optional[Element]:
        """Return the nth matching child, counting from the end when nth is negative."""
        elements = self.find_elements_with_name(name)
        try:
            return elements[nth]
        except IndexError:
            return None

    def has_element_with_name(self, name: str) -> bool:
        return bool(self.find_elements_with_name(name))

    def get_attribute(self, name: str) -> Optional[str]:
        return self.attributes.get(name.lower()) or None

    def resolve_url(self, url: str) -> str:
        return resolve_url(url, self.base_url)

    def get_attribute_as_url(self, name: str) -> Optional[str]:
        value = self.get_attribute(name)
        if value and value.strip():
            return self.resolve_url(value.strip())
        return None

    def get_attribute_as_number(self, name: str) -> Optional[Union[int, float]]:
        value = self.get_attribute(name)
        if value is None:
            return None
        try:
            number = float(value.strip())
        except ValueError:
            return None
        if not math.isfinite(number):
            return None
        return int(number) if number.is_integer() else number


class Document(Element):
    """The document node: its only child is the document's root element."""

    def __init__(self, root: _Element) -> None:
        self.raw = root
        self.parent = None
        self.raw_name = "#document"
        self.name = "#document"
        self.namespace = DEFAULT_NAMESPACE
        self._raw_attributes = {}
        self._attributes = {}
        self._children = None
        self._declarations = {}

    @property
    def children(self) -> list[Child]:
        if self._children is None:
            self._children = [Element(self.raw, self)]
        return self._children

    @property
    def root(self) -> Element:
        return next(child for child in self.children if isinstance(child, Element))

    @property
    def base_url(self) -> Optional[str]:
        return None


def _serialize(child: Child) -> str:
    if isinstance(child, str):
        return _html_mod.escape(child, quote=False)
    attributes = "".join(
        f' {key}="{_html_mod.escape(value)}"'
        for key, value in child.raw_attributes.items()
    )
    inner = "".join(_serialize(grandchild) for grandchild in child.children)
    if not inner:
        return f"<{child.raw_name}{attributes}/>"
    return f"<{child.raw_name}{attributes}>{inner}</{child.raw_name}>"
