"""Error screenshot handling for the error-fix prompt."""

from __future__ import annotations

import base64
import mimetypes
from dataclasses import dataclass

from .errors import ValidationError

MAX_IMAGE_BYTES = 5 * 1024 * 1024


@dataclass(frozen=True)
class ImageAttachment:
    name: str
    mime_type: str
    data: bytes

    @classmethod
    def from_upload(cls, name: str, data: bytes, mime_type: str | None = None) -> "ImageAttachment":
        """Validate an uploaded file and wrap it. Raises ``ValidationError``."""
        resolved = mime_type or mimetypes.guess_type(name)[0] or ""
        if not resolved.startswith("image/"):
            raise ValidationError("Only image files can be attached as error screenshots.")
        if len(data) > MAX_IMAGE_BYTES:
            raise ValidationError("Images must be 5 MB or smaller.")
        return cls(name=name, mime_type=resolved, data=data)

    def to_data_uri(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"
