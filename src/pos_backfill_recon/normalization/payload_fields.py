"""
Field extraction from persisted event payloads.

Events stored over time encode the same fields in different shapes: at the
top level, nested under ``payload``, or under a synonym. Each canonical
field has an ordered chain of path extractors; the first one yielding a
non-empty value wins. The chains are built from configuration data.
"""

from typing import Any, Callable, Mapping, Optional, Sequence

from .text import cell_to_text

Extractor = Callable[[Mapping[str, Any]], Any]


def path_extractor(path: str) -> Extractor:
    """
    Build an extractor for a dotted path such as ``payload.itemSold``.

    Args:
        path: Dotted key path into the payload

    Returns:
        Function returning the value at that path, or None
    """
    parts = tuple(part for part in path.split(".") if part)

    def extract(payload: Mapping[str, Any]) -> Any:
        current: Any = payload
        for part in parts:
            if not isinstance(current, Mapping):
                return None
            current = current.get(part)
        return current

    return extract


def first_match(extractors: Sequence[Extractor]) -> Extractor:
    """Compose extractors so the first non-empty value wins."""

    def extract(payload: Mapping[str, Any]) -> Any:
        for extractor in extractors:
            value = extractor(payload)
            if value is not None and cell_to_text(value) != "":
                return value
        return None

    return extract


class PayloadFieldExtractor:
    """Extracts canonical fields from payloads of any known shape."""

    def __init__(self, field_paths: Mapping[str, Sequence[str]]):
        """
        Initialize with the alias table.

        Args:
            field_paths: Canonical field -> dotted paths in priority order
        """
        self.field_paths = {field: list(paths) for field, paths in field_paths.items()}
        self._chains = {
            field: first_match([path_extractor(p) for p in paths])
            for field, paths in self.field_paths.items()
        }

    def extract(self, payload: Optional[Mapping[str, Any]], field: str) -> Any:
        """Value of one canonical field, or None when absent in every shape."""
        if not isinstance(payload, Mapping):
            return None
        chain = self._chains.get(field)
        if chain is None:
            return None
        return chain(payload)

    def extract_all(self, payload: Optional[Mapping[str, Any]]) -> dict[str, Any]:
        """All configured canonical fields for a payload."""
        return {field: self.extract(payload, field) for field in self._chains}
