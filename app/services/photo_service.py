import base64
import logging
from io import BytesIO
from typing import Optional

from fastapi import HTTPException
from PIL import Image
from pydantic import ValidationError

from app.core.config import settings
from app.schemas.photo import PhotoPayload

logger = logging.getLogger(__name__)

PHOTO_FIELDS = ("photo_building", "photo_gate", "photo_door")
MAX_PIXELS = 50_000_000


def normalize_photo(data_url: Optional[str], field: str = "photo") -> Optional[str]:
    """Validate a data URL photo and return it re-encoded as a compressed JPEG data URL."""
    if data_url is None or not data_url.strip():
        return None

    try:
        photo = PhotoPayload.model_validate(
            {
                "data_url": data_url,
                "max_size": settings.MAX_UPLOAD_SIZE,
                "allowed_extensions": set(settings.ALLOWED_EXTENSIONS),
            }
        )
    except ValidationError as exc:
        error_message = exc.errors()[0].get("msg", "Invalid photo")
        raise HTTPException(
            status_code=400,
            detail={"message": f"Invalid {field}", "errors": [{"field": field, "message": error_message}]},
        ) from exc

    try:
        with Image.open(BytesIO(photo.data)) as img:
            width, height = img.size
            # Prevent decompression bomb by limiting pixel count
            if width * height > MAX_PIXELS:
                raise HTTPException(status_code=400, detail=f"{field} is too large")
            return _compress(img)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Invalid photo upload field=%s: %s", field, e)
        raise HTTPException(status_code=400, detail=f"Invalid {field}")


def _compress(img: Image.Image) -> str:
    """Resize to PHOTO_MAX_WIDTH and re-encode as JPEG."""
    max_width = settings.PHOTO_MAX_WIDTH
    if img.width > max_width:
        ratio = max_width / img.width
        img = img.resize((max_width, int(img.height * ratio)), Image.LANCZOS)
    if img.mode != "RGB":
        img = img.convert("RGB")

    out = BytesIO()
    img.save(out, "JPEG", quality=settings.PHOTO_JPEG_QUALITY, optimize=True)
    encoded = base64.b64encode(out.getvalue()).decode("ascii")
    return f"data:image/jpeg;base64,{encoded}"


def normalize_photo_fields(values: dict) -> dict:
    """Normalize any photo fields present in an update/create payload in place."""
    for field in PHOTO_FIELDS:
        if field in values:
            values[field] = normalize_photo(values[field], field=field)
    return values
