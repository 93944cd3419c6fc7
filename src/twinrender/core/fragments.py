"""Fragment definitions, the immutable registry, and placeholder discovery.

A fragment lives in its own directory::

    fragments/
      home/
        fragment.html   # static template (optional)
        fragment.py     # module-level ``control`` and/or ``render`` hooks (optional)

Parents embed children with placeholder elements::

    <twin-fragment name="home" data-msg="hello"></twin-fragment>

The ``data-*`` attributes become the child's props (prefix stripped, no case
conversion). Fragments discovered from a plugin directory are namespaced as
``prefix:name``.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from functools import cache
import importlib.util
import logging
from pathlib import Path
import re
from types import MappingProxyType, ModuleType
from typing import Any

from bs4.element import Tag
from slugify import slugify

from .exceptions import FragmentDefinitionError, FragmentNotFoundError


logger = logging.getLogger(__name__)

PLACEHOLDER_TAG = "twin-fragment"
TEMPLATE_FILENAME = "fragment.html"
MODULE_FILENAME = "fragment.py"

Hook = Callable[[Any], Any]


@dataclass(frozen=True, slots=True)
class FragmentHooks:
    """Resolved hook callables of one fragment."""

    control: Hook | None = None
    render: Hook | None = None


@dataclass(frozen=True)
class FragmentDefinition:
    """Static description of a fragment.

    Hooks are either given directly or imported lazily from ``module_path`` the
    first time :meth:`load` is called.
    """

    id: str
    template: str = ""
    control: Hook | None = None
    render: Hook | None = None
    source: Path | None = None
    module_path: Path | None = field(default=None, repr=False)

    def load(self) -> FragmentHooks:
        """Return the fragment hooks, importing the fragment module if needed."""
        if self.module_path is None:
            return FragmentHooks(control=self.control, render=self.render)
        module = _import_fragment_module(self.id, self.module_path)
        return FragmentHooks(
            control=getattr(module, "control", None),
            render=getattr(module, "render", None),
        )

    @classmethod
    def from_directory(cls, directory: Path, *, prefix: str = "") -> FragmentDefinition:
        """Build a definition from a fragment directory."""
        if not directory.is_dir():
            raise FragmentDefinitionError(f"Fragment directory is missing: {directory}")

        name = slugify(directory.name)
        if not name:
            raise FragmentDefinitionError(f"Cannot derive a fragment id from {directory}")
        fragment_id = f"{prefix}:{name}" if prefix else name

        template_path = directory / TEMPLATE_FILENAME
        module_path = directory / MODULE_FILENAME
        if not template_path.exists() and not module_path.exists():
            raise FragmentDefinitionError(
                f"Fragment '{fragment_id}' needs a {TEMPLATE_FILENAME} or {MODULE_FILENAME}"
            )

        try:
            template = template_path.read_text(encoding="utf-8") if template_path.exists() else ""
        except OSError as exc:  # pragma: no cover - IO edge cases
            raise FragmentDefinitionError(f"Failed to read {template_path}: {exc}") from exc

        return cls(
            id=fragment_id,
            template=template,
            source=directory.resolve(),
            module_path=module_path.resolve() if module_path.exists() else None,
        )


@cache
def _import_fragment_module(fragment_id: str, path: Path) -> ModuleType:
    module_name = "twinrender_fragments." + re.sub(r"\W", "_", fragment_id)
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise FragmentDefinitionError(f"Cannot import fragment module {path}")
    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        raise FragmentDefinitionError(
            f"Fragment module for '{fragment_id}' failed to import: {exc}"
        ) from exc
    logger.debug("Loaded hooks for fragment '%s' from %s", fragment_id, path)
    return module


class FragmentRegistry(Mapping[str, FragmentDefinition]):
    """Read-only, ordered mapping from fragment id to definition."""

    def __init__(self, definitions: Iterable[FragmentDefinition] = ()) -> None:
        entries: dict[str, FragmentDefinition] = {}
        for definition in definitions:
            if definition.id in entries:
                raise FragmentDefinitionError(f"Fragment '{definition.id}' is defined twice")
            entries[definition.id] = definition
        self._entries = MappingProxyType(entries)

    def __getitem__(self, fragment_id: str) -> FragmentDefinition:
        return self._entries[fragment_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def require(self, fragment_id: str) -> FragmentDefinition:
        """Return a definition or raise :class:`FragmentNotFoundError`."""
        try:
            return self._entries[fragment_id]
        except KeyError as exc:
            raise FragmentNotFoundError(fragment_id) from exc

    def loaders(self) -> Mapping[str, Callable[[], FragmentHooks]]:
        """Return the id → hook loader mapping used by the client cache."""
        return MappingProxyType({fragment_id: d.load for fragment_id, d in self._entries.items()})

    @classmethod
    def from_directory(cls, directory: Path, *, prefix: str = "") -> FragmentRegistry:
        """Load every fragment directory found directly under ``directory``."""
        return cls(_scan_directory(directory, prefix))

    @classmethod
    def discover(
        cls,
        fragment_dir: Path | None,
        plugins: Mapping[str, Path] | None = None,
    ) -> FragmentRegistry:
        """Collect user fragments followed by namespaced plugin fragments."""
        definitions: list[FragmentDefinition] = []
        if fragment_dir is not None:
            definitions.extend(_scan_directory(fragment_dir, ""))
        for prefix, directory in (plugins or {}).items():
            definitions.extend(_scan_directory(directory, prefix))
        return cls(definitions)


def _scan_directory(directory: Path, prefix: str) -> list[FragmentDefinition]:
    if not directory.is_dir():
        raise FragmentDefinitionError(f"Fragment directory does not exist: {directory}")
    return [
        FragmentDefinition.from_directory(child, prefix=prefix)
        for child in sorted(directory.iterdir())
        if child.is_dir() and not child.name.startswith(("_", "."))
    ]


def props_from_attributes(attributes: Mapping[str, Any]) -> dict[str, str]:
    """Return the ``data-*`` attributes of a placeholder with the prefix stripped."""
    props: dict[str, str] = {}
    for name, value in attributes.items():
        if name.startswith("data-"):
            props[name[5:]] = " ".join(value) if isinstance(value, list) else str(value)
    return props


def is_placeholder(node: Any) -> bool:
    return isinstance(node, Tag) and node.name == PLACEHOLDER_TAG


def is_owned(tag: Tag, root: Tag) -> bool:
    """Return True when ``tag`` belongs to ``root`` and not to a nested fragment.

    A placeholder itself is owned by the enclosing fragment; only its
    descendants belong to the child.
    """
    if tag is root:
        return False
    current = tag.parent
    while current is not None:
        if current is root:
            return True
        if is_placeholder(current):
            return False
        current = current.parent
    return False


def owned_placeholders(root: Tag) -> list[Tag]:
    """Return the placeholders directly owned by ``root`` in document order."""
    return [tag for tag in root.find_all(PLACEHOLDER_TAG) if is_owned(tag, root)]


__all__ = [
    "MODULE_FILENAME",
    "PLACEHOLDER_TAG",
    "TEMPLATE_FILENAME",
    "FragmentDefinition",
    "FragmentHooks",
    "FragmentRegistry",
    "Hook",
    "is_owned",
    "is_placeholder",
    "owned_placeholders",
    "props_from_attributes",
]
