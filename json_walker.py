"""Slash-delimited navigation through parsed JSON documents.

Only mappings are descended into; arrays have to be pulled out with one
``walk`` call and iterated by the caller.
"""

from typing import Any, Dict, List, Union


JsonValue = Union[None, bool, int, float, str, List[Any], Dict[str, Any]]

ROOT_SEGMENT = "<root>"


class JsonPathError(Exception):
    """Base navigation error."""

    def __init__(self, message: str, path: str, segment: str) -> None:
        super().__init__(message)
        self.path = path
        self.segment = segment


class EmptyPathError(JsonPathError):
    """Raised when the path has no segments."""


class NotAMappingError(JsonPathError):
    """Raised when a segment resolves to something that cannot be descended into."""


class MissingKeyError(JsonPathError):
    """Raised when a mapping along the path lacks the requested key."""


def walk(document: JsonValue, path: str) -> JsonValue:
    """Return the value found at ``path`` inside ``document``.

    The final value is returned untyped, JSON null included; asserting its
    shape is up to the caller.
    """
    if not path:
        raise EmptyPathError("Empty path", path=path, segment="")

    current = document
    parent = ROOT_SEGMENT
    for segment in path.split("/"):
        if not isinstance(current, dict):
            raise NotAMappingError(
                f"Bad path, {parent} is not a mapping", path=path, segment=parent
            )
        if segment not in current:
            raise MissingKeyError(
                f"Bad path, {segment} not found", path=path, segment=segment
            )
        current = current[segment]
        parent = segment
    return current
