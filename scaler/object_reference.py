"""
ObjectReference - Request key parsing and derived storage keys.
"""

import re
from dataclasses import dataclass

from .errors import BadRequest
from .scaler_config import DEFAULT_MAX_SIZE, DEFAULT_MIN_SIZE


MEDIA_PREFIX = 'media'

_LEADING_INT = re.compile(r'^\s*([+-]?\d+)')


@dataclass(frozen=True)
class ObjectReference:
    """
    A validated reference to an original object and the requested size.

    Attributes:
        id: Object id, the key of the original is media/<id>
        requested_size: Height of the thumbnail to produce
    """
    id: str
    requested_size: int

    @property
    def origin_key(self) -> str:
        return origin_key(self.id)

    @property
    def derived_key(self) -> str:
        return derived_key(self)


def origin_key(object_id: str) -> str:
    """Store key of the original object."""
    return f"{MEDIA_PREFIX}/{object_id}"


def derived_key(ref: ObjectReference) -> str:
    """Store key under which the derivative of ref is published."""
    return f"{MEDIA_PREFIX}/{ref.id}/{ref.requested_size}"


def parse_size(text: str) -> int:
    """
    Parse the leading base-10 integer of text.

    Anything that does not start with digits parses as 0, which then fails
    the range check.
    """
    match = _LEADING_INT.match(text)
    if not match:
        return 0
    return int(match.group(1))


def parse(
    raw_key: str,
    min_size: int = DEFAULT_MIN_SIZE,
    max_size: int = DEFAULT_MAX_SIZE
) -> ObjectReference:
    """
    Parse a request key of the form <id>/<size> or media/<id>/<size>.

    Args:
        raw_key: Key from the request
        min_size: Smallest accepted size
        max_size: Largest accepted size

    Returns:
        ObjectReference

    Raises:
        BadRequest: Fewer than two segments, or size out of range
    """
    parts = [part for part in (raw_key or '').strip().split('/') if part]

    if len(parts) > 2 and parts[0] == MEDIA_PREFIX:
        parts = parts[1:]

    if len(parts) < 2:
        raise BadRequest("`key` should be `<object-id>/<scaled-size>`")

    object_id, size_text = parts[0], parts[1]
    size = parse_size(size_text)

    if size < min_size or size > max_size:
        raise BadRequest(
            f"Requested scaled image size must be in the range {min_size} to {max_size}"
        )

    return ObjectReference(id=object_id, requested_size=size)
