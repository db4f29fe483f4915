import base64
import binascii
import re
import uuid

import boto3
from botocore.config import Config
from django.conf import settings

from core.exceptions import ValidationFailed

ALLOWED_IMAGE_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}
_DATA_URI_RE = re.compile(r"^data:(?P<content_type>[\w/+.-]+);base64,(?P<data>.*)$", re.DOTALL)


def _client():
    cfg = Config(
        signature_version="s3v4",
        s3={"addressing_style": "path" if settings.AWS_S3_FORCE_PATH_STYLE else "auto"},
    )
    return boto3.client(
        "s3",
        region_name=settings.AWS_S3_REGION_NAME,
        endpoint_url=settings.AWS_S3_ENDPOINT_URL,
        config=cfg,
    )


def object_key(prefix: str, extension: str) -> str:
    base = (getattr(settings, "S3_UPLOADS_PREFIX", "") or "").strip("/")
    parts = [base, prefix.strip("/"), f"{uuid.uuid4()}.{extension}"]
    return "/".join(part for part in parts if part)


def public_url(key: str) -> str:
    base_url = getattr(settings, "MEDIA_BASE_URL", "") or ""
    if base_url:
        return f"{base_url.rstrip('/')}/{key}"
    bucket = settings.AWS_STORAGE_BUCKET_NAME
    region = settings.AWS_S3_REGION_NAME
    return f"https://{bucket}.s3.{region}.amazonaws.com/{key}"


def decode_base64_image(raw: str, *, default_type: str = "image/jpeg") -> tuple[bytes, str]:
    """Accept a data URI or a bare base64 string and return ``(bytes, content_type)``."""
    if not raw or not isinstance(raw, str):
        raise ValidationFailed("Image data is required.")

    content_type = default_type
    payload = raw.strip()
    match = _DATA_URI_RE.match(payload)
    if match:
        content_type = match.group("content_type").lower()
        payload = match.group("data")

    if content_type not in ALLOWED_IMAGE_TYPES:
        raise ValidationFailed(f"Unsupported image type: {content_type}.")

    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationFailed("Image data is not valid base64.") from exc

    if not data:
        raise ValidationFailed("Image data is empty.")
    max_size = getattr(settings, "S3_MAX_UPLOAD_BYTES", None)
    if max_size is not None and len(data) > max_size:
        raise ValidationFailed("Upload exceeds the maximum allowed size.")
    return data, content_type


def upload_base64_image(raw: str, *, prefix: str) -> str:
    """Upload a base64 encoded image and return its public URL."""
    data, content_type = decode_base64_image(raw)
    key = object_key(prefix, ALLOWED_IMAGE_TYPES[content_type])
    _client().put_object(
        Bucket=settings.AWS_STORAGE_BUCKET_NAME,
        Key=key,
        Body=data,
        ContentType=content_type,
    )
    return public_url(key)
