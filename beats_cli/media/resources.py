"""
Registry for the ephemeral image resources created from embedded cover art.

Each resource is an in-memory image addressed by an opaque `blob:` handle.
Handles stay resolvable until they are revoked; once revoked the image bytes
are dropped and the handle no longer resolves.
"""

import logging
import uuid
from dataclasses import dataclass, field

log = logging.getLogger(__name__)

HANDLE_PREFIX = "blob:beats-cli/"
DEFAULT_IMAGE_MIME = "image/jpeg"


@dataclass
class ImageResource:
    """An in-memory image addressed by a `blob:` handle."""

    data: bytes = field(repr=False)
    mime_type: str = DEFAULT_IMAGE_MIME
    handle: str = field(default_factory=lambda: f"{HANDLE_PREFIX}{uuid.uuid4()}")
    revoked: bool = False

    @property
    def size(self) -> int:
        return len(self.data)

    def release(self) -> None:
        self.data = b""
        self.revoked = True


def is_resource_handle(ref: str) -> bool:
    return ref.startswith(HANDLE_PREFIX)


class ResourceLifecycleManager:
    """Tracks every live image resource and releases them on request."""

    def __init__(self):
        self._resources: dict[str, ImageResource] = {}

    def create(self, data: bytes, mime_type: str | None = None) -> ImageResource:
        """Creates a resource from raw image bytes and registers it."""
        resource = ImageResource(data=bytes(data), mime_type=mime_type or DEFAULT_IMAGE_MIME)
        return self.register(resource)

    def register(self, resource: ImageResource) -> ImageResource:
        if resource.revoked:
            raise ValueError(f"Cannot register revoked resource {resource.handle}")
        self._resources[resource.handle] = resource
        log.debug(
            f"Registered image resource {resource.handle} "
            f"({resource.mime_type}, {resource.size} bytes)"
        )
        return resource

    def resolve(self, handle: str) -> ImageResource | None:
        """Returns the live resource behind `handle`, or None once revoked."""
        return self._resources.get(handle)

    def revoke(self, handle: str) -> bool:
        """Releases one resource. Revoking an unknown handle is a no-op."""
        resource = self._resources.pop(handle, None)
        if resource is None:
            return False
        resource.release()
        log.debug(f"Revoked image resource {handle}")
        return True

    def revoke_many(self, handles) -> int:
        return sum(1 for handle in list(handles) if self.revoke(handle))

    def revoke_all(self) -> int:
        """Releases every tracked resource and clears the registry."""
        count = 0
        for handle in list(self._resources):
            if self.revoke(handle):
                count += 1
        if count:
            log.debug(f"Revoked {count} image resources.")
        return count

    @property
    def handles(self) -> frozenset[str]:
        return frozenset(self._resources)

    def __contains__(self, handle: object) -> bool:
        return handle in self._resources

    def __len__(self) -> int:
        return len(self._resources)
