"""Normalization of uploaded photos into square JPEG images."""

from io import BytesIO

from PIL import Image, ImageOps, UnidentifiedImageError


class ImageRejectedError(ValueError):
    """Raised when an uploaded file cannot be used as an image."""


def prepare_image(raw: bytes, quality: int = 85, max_side: int = 1024) -> bytes:
    """Center-crop an upload to a square and re-encode it as JPEG."""
    if not raw:
        raise ImageRejectedError("The uploaded image is empty.")
    try:
        with Image.open(BytesIO(raw)) as opened:
            image = ImageOps.exif_transpose(opened).convert("RGB")
    except (UnidentifiedImageError, OSError) as exc:
        raise ImageRejectedError("The uploaded file is not a readable image.") from exc

    side = min(image.width, image.height, max_side)
    square = ImageOps.fit(image, (side, side), method=Image.Resampling.LANCZOS)
    output = BytesIO()
    square.save(output, format="JPEG", quality=quality, optimize=True)
    return output.getvalue()


def detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"
