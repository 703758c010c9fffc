"""Bank transfer slip checks"""

import hashlib
import logging
from dataclasses import dataclass
from typing import Optional

from ..core.config import settings
from ..core.errors import RejectionError, ValidationError

logger = logging.getLogger(__name__)

IMAGE_SIGNATURES: dict[str, tuple[bytes, ...]] = {
    "image/png": (b"\x89PNG\r\n\x1a\n",),
    "image/jpeg": (b"\xff\xd8\xff",),
    "image/gif": (b"GIF87a", b"GIF89a"),
    "image/webp": (b"RIFF",),
}


@dataclass
class SlipUpload:
    """An uploaded slip image held until submission"""
    filename: str
    content_type: str
    size: int
    content: bytes
    sha256: str


def sniff_image_type(content: bytes) -> Optional[str]:
    """Detect the image type from the file signature"""
    for mime, signatures in IMAGE_SIGNATURES.items():
        for signature in signatures:
            if content.startswith(signature):
                if mime == "image/webp" and content[8:12] != b"WEBP":
                    continue
                return mime
    return None


def check_slip(
    filename: str,
    content_type: str,
    content: bytes,
    max_bytes: Optional[int] = None,
) -> SlipUpload:
    """
    Validate an uploaded slip before it is accepted for review.

    Raises:
        ValidationError: wrong type, too large, empty or not really an image
    """
    max_bytes = max_bytes if max_bytes is not None else settings.slip_max_bytes

    if not (content_type or "").lower().startswith("image/"):
        raise ValidationError("Only image files can be uploaded", fields={"content_type": content_type})

    size = len(content)
    if size == 0:
        raise ValidationError("Uploaded file is empty", fields={"size": "0"})
    if size > max_bytes:
        raise ValidationError(
            f"File must not exceed {max_bytes // (1024 * 1024)} MB",
            fields={"size": str(size)},
        )

    if sniff_image_type(content) is None:
        raise ValidationError("File content is not a supported image", fields={"content": filename})

    return SlipUpload(
        filename=filename,
        content_type=content_type,
        size=size,
        content=content,
        sha256=hashlib.sha256(content).hexdigest(),
    )


class SlipRegistry:
    """Remembers which order each accepted slip settled"""

    def __init__(self):
        self._used: dict[str, str] = {}

    def ensure_available(self, slip: SlipUpload, order_id: str) -> None:
        """
        Check that a slip is not bound to a different order.

        Raises:
            RejectionError: the same slip already settled another order
        """
        owner = self.owner_of(slip.sha256)
        if owner is not None and owner != order_id:
            logger.warning(f"Slip {slip.sha256[:12]} reused: already claimed by {owner}, offered for {order_id}")
            raise RejectionError("This transfer slip was already used for another order")

    def claim(self, slip: SlipUpload, order_id: str) -> None:
        """Bind an accepted slip to the order it settled"""
        self.ensure_available(slip, order_id)
        self._used[slip.sha256] = order_id

    def owner_of(self, sha256: str) -> Optional[str]:
        return self._used.get(sha256)


# Singleton instance
slip_registry = SlipRegistry()
