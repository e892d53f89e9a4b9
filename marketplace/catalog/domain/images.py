"""
Canonical image references.

Catalog payloads carry images as a bare URL string, an object with ``url``
(plus optional ``public_id``, ``alt`` and ``is_primary``) or a list mixing
both. Everything downstream works with a single ``ImageReference``.
"""

from dataclasses import asdict, dataclass
from typing import Any, Mapping, Optional, Sequence, Union

ImageInput = Union[str, Mapping[str, Any], Sequence[Union[str, Mapping[str, Any]]], None]


@dataclass(frozen=True)
class ImageReference:
    url: str
    public_id: str = ""
    alt: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


def _from_single(value) -> Optional[ImageReference]:
    if isinstance(value, str):
        url = value.strip()
        return ImageReference(url=url) if url else None
    if isinstance(value, Mapping):
        url = str(value.get("url") or value.get("secure_url") or "").strip()
        if not url:
            return None
        return ImageReference(
            url=url,
            public_id=str(value.get("public_id") or ""),
            alt=str(value.get("alt") or value.get("alt_text") or ""),
        )
    return None


def normalize_image_reference(value: ImageInput) -> Optional[ImageReference]:
    """
    Reduce any accepted image shape to one ImageReference.

    For lists the entry flagged ``is_primary`` wins, otherwise the first usable
    entry. Returns None when nothing carries a URL.
    """
    if value is None:
        return None
    if isinstance(value, (str, Mapping)):
        return _from_single(value)
    if isinstance(value, Sequence):
        primary = next((item for item in value if isinstance(item, Mapping) and item.get("is_primary")), None)
        if primary is not None:
            reference = _from_single(primary)
            if reference is not None:
                return reference
        for item in value:
            reference = _from_single(item)
            if reference is not None:
                return reference
        return None
    raise TypeError(f"Unsupported image value of type {type(value).__name__}")
