"""
Image storage collaborator.

Goals only ever hold the opaque reference returned by put(); compression and
format conversion belong to the concrete store.
"""

import base64
import binascii
import uuid
from typing import Dict, Optional, Protocol, Tuple

from backend.core.errors import ValidationError
from backend.models.goal import ImageUpload


class ImageStore(Protocol):
    def put(self, data: bytes, content_type: str) -> str: ...


class InMemoryImageStore:
    """Keeps blobs in a dict keyed by a generated reference."""

    def __init__(self):
        self._blobs: Dict[str, Tuple[bytes, str]] = {}

    def put(self, data: bytes, content_type: str) -> str:
        ref = f"images/{uuid.uuid4()}"
        self._blobs[ref] = (data, content_type)
        return ref

    def get(self, ref: str) -> Optional[Tuple[bytes, str]]:
        return self._blobs.get(ref)

    def clear(self) -> None:
        self._blobs.clear()


def store_upload(upload: ImageUpload, store: ImageStore) -> str:
    """Decode a base64 upload and hand the raw bytes to the store."""
    try:
        data = base64.b64decode(upload.content_base64, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("Image payload is not valid base64")
    if not data:
        raise ValidationError("Image payload is empty")
    return store.put(data, upload.content_type)


image_store = InMemoryImageStore()
