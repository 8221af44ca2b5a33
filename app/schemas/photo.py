import base64
import binascii
import re
from io import BytesIO
from typing import Optional, Set

from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel, field_validator, model_validator


DATA_URL_PATTERN = re.compile(r"^data:(?P<mime>image/[a-z0-9.+-]+);base64,(?P<payload>.+)$", re.IGNORECASE | re.DOTALL)

IMAGE_MIME_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
}


class PhotoPayload(BaseModel):
    """A base64 data URL photo as sent by the address capture screens."""

    data_url: str
    max_size: int
    allowed_extensions: Set[str]
    content_type: Optional[str] = None
    data: bytes = b""
    detected_extension: Optional[str] = None

    @field_validator("allowed_extensions", mode="before")
    @classmethod
    def normalize_extensions(cls, value):
        return {str(ext).lower() for ext in value}

    @model_validator(mode="after")
    def decode_and_validate(self):
        match = DATA_URL_PATTERN.match(self.data_url.strip())
        if not match:
            raise ValueError("Photo must be a base64 data URL")

        self.content_type = match.group("mime").lower()
        try:
            self.data = base64.b64decode(match.group("payload"), validate=True)
        except (binascii.Error, ValueError):
            raise ValueError("Photo is not valid base64")

        if not self.data:
            raise ValueError("Empty photo")
        if len(self.data) > self.max_size:
            raise ValueError("Photo too large")

        try:
            with Image.open(BytesIO(self.data)) as image:
                detected = (image.format or "").lower()
        except UnidentifiedImageError:
            detected = ""

        if not detected:
            raise ValueError("Invalid photo type")

        detected_extension = "jpg" if detected == "jpeg" else detected
        if detected_extension not in self.allowed_extensions:
            raise ValueError("Invalid photo type")

        detected_mime = IMAGE_MIME_TYPES.get(detected_extension)
        if detected_mime and self.content_type != detected_mime:
            raise ValueError("Photo MIME type does not match content")

        self.detected_extension = detected_extension
        return self
