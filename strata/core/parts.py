"""Named content blocks attached to one page state."""

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from strata.core.errors import ValidationError

PART_NAME_MAX_LENGTH = 100


@dataclass(frozen=True)
class PagePart:
    """A single named block of page content.

    The filter id names the text filter an external renderer applies to the
    content; Strata only stores it.
    """

    name: str
    content: str = ""
    filter_id: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "filter_id": self.filter_id, "content": self.content}


class PartSet(Mapping[str, PagePart]):
    """Immutable mapping of part name to part.

    Insertion order is kept for display. Equality ignores order and compares
    each part's filter id and content.
    """

    __slots__ = ("_parts",)

    def __init__(self, parts: Iterable[PagePart] = ()) -> None:
        collected: dict[str, PagePart] = {}
        for part in parts:
            if not isinstance(part, PagePart):
                raise ValidationError(f"Expected a PagePart, got {type(part).__name__}", field="parts")
            _check_part(part)
            if part.name in collected:
                raise ValidationError(f"Duplicate part name: {part.name!r}", field="parts")
            collected[part.name] = part
        self._parts = collected

    @classmethod
    def coerce(cls, value: Any) -> "PartSet":
        """Build a PartSet from the shapes callers commonly pass.

        Accepts a PartSet, a mapping of name to content string or to a dict
        with ``content``/``filter_id`` keys, or an iterable of PagePart
        objects or dicts carrying a ``name`` key.
        """
        if isinstance(value, PartSet):
            return value
        if value is None:
            return cls()
        if isinstance(value, Mapping):
            return cls(_part_from_item(name, item) for name, item in value.items())
        if isinstance(value, (str, bytes)):
            raise ValidationError("Parts must be a mapping or a list of parts", field="parts")
        return cls(_part_from_entry(entry) for entry in value)

    @classmethod
    def from_list(cls, data: list[dict[str, str]] | None) -> "PartSet":
        """Rebuild a PartSet from its stored list form."""
        return cls(_part_from_entry(entry) for entry in data or [])

    def to_list(self) -> list[dict[str, str]]:
        return [part.to_dict() for part in self._parts.values()]

    def __getitem__(self, name: str) -> PagePart:
        return self._parts[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._parts)

    def __len__(self) -> int:
        return len(self._parts)

    def __hash__(self) -> int:
        return hash(frozenset(self._parts.items()))

    def __repr__(self) -> str:
        return f"PartSet({list(self._parts.values())!r})"


def _check_part(part: PagePart) -> None:
    if not isinstance(part.name, str) or not part.name.strip():
        raise ValidationError("Part name is required", field="parts")
    if len(part.name) > PART_NAME_MAX_LENGTH:
        raise ValidationError(
            f"Part name {part.name[:20]!r}... exceeds {PART_NAME_MAX_LENGTH} characters",
            field="parts",
        )
    if not isinstance(part.content, str) or not isinstance(part.filter_id, str):
        raise ValidationError(f"Part {part.name!r} content and filter id must be strings", field="parts")


def _part_from_item(name: str, item: Any) -> PagePart:
    if isinstance(item, PagePart):
        if item.name != name:
            raise ValidationError(f"Part key {name!r} does not match part name {item.name!r}", field="parts")
        return item
    if isinstance(item, str):
        return PagePart(name=name, content=item)
    if isinstance(item, Mapping):
        return PagePart(
            name=name,
            content=item.get("content") or "",
            filter_id=item.get("filter_id") or "",
        )
    raise ValidationError(f"Malformed part {name!r}", field="parts")


def _part_from_entry(entry: Any) -> PagePart:
    if isinstance(entry, PagePart):
        return entry
    if isinstance(entry, Mapping) and "name" in entry:
        return _part_from_item(entry["name"], entry)
    raise ValidationError("Each part needs a name", field="parts")
