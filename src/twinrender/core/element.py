"""Element wrapper handed to ``select`` callbacks.

Both substrates hold their documents as BeautifulSoup trees, so a single
wrapper gives callbacks the same behaviour on the server and the client.
"""

from __future__ import annotations

from typing import Any

from bs4 import BeautifulSoup
from bs4.element import Tag


_UNSET: Any = object()


def parse_html(content: str) -> BeautifulSoup:
    """Parse markup with the parser used for every template and document."""
    return BeautifulSoup(content, "html.parser")


def replace_children(tag: Tag, content: str | BeautifulSoup | Tag) -> None:
    """Replace the children of ``tag`` with parsed ``content``."""
    source = parse_html(content) if isinstance(content, str) else content
    tag.clear()
    for child in list(source.contents):
        tag.append(child.extract())


class Element:
    """Attribute and content accessors for one matched element."""

    def __init__(self, tag: Tag) -> None:
        self._tag = tag

    @property
    def tag(self) -> Tag:
        """Return the underlying BeautifulSoup tag."""
        return self._tag

    def attr(self, name: str, value: Any = _UNSET) -> str | None:
        """Read an attribute, set it, or remove it when ``value`` is False."""
        if value is _UNSET:
            current = self._tag.get(name)
            if isinstance(current, list):
                return " ".join(current)
            return current
        if value is False or value is None:
            if name in self._tag.attrs:
                del self._tag[name]
        else:
            self._tag[name] = str(value)
        return None

    def boolean(self, name: str, value: bool | None = None) -> bool | None:
        """Read or toggle a boolean attribute such as ``disabled``."""
        if value is None:
            return name in self._tag.attrs
        if value:
            self._tag[name] = name
        elif name in self._tag.attrs:
            del self._tag[name]
        return None

    def html(self, content: str) -> None:
        replace_children(self._tag, str(content))

    def text(self, content: Any) -> None:
        self._tag.string = str(content)

    def style(self, prop: str, value: Any = _UNSET) -> str | None:
        """Read or update one declaration of the inline ``style`` attribute."""
        declarations: dict[str, str] = {}
        for declaration in (self.attr("style") or "").split(";"):
            key, _, current = declaration.partition(":")
            key = key.strip()
            if key:
                declarations[key] = current.strip()

        if value is _UNSET:
            return declarations.get(prop)

        if value is None or value == "":
            declarations.pop(prop, None)
        else:
            declarations[prop] = str(value)
        serialised = "; ".join(f"{key}: {current}" for key, current in declarations.items())
        self.attr("style", serialised if serialised else False)
        return None

    def class_(self, name: str, value: Any = _UNSET) -> bool | None:
        """Test for a class, or add/remove it depending on ``value``."""
        classes = (self.attr("class") or "").split()
        if value is _UNSET:
            return name in classes
        if value:
            if name not in classes:
                classes.append(name)
        else:
            classes = [entry for entry in classes if entry != name]
        self.attr("class", " ".join(classes) if classes else False)
        return None

    def toggle_class(self, name: str) -> None:
        self.class_(name, not self.class_(name))

    def value(self, value: Any = _UNSET) -> str | None:
        if value is _UNSET:
            return self.attr("value")
        self.attr("value", value)
        return None

    def __repr__(self) -> str:
        return f"Element(<{self._tag.name}>)"


__all__ = ["Element", "parse_html", "replace_children"]
