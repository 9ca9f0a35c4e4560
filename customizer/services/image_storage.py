"""Where shopper photos go: a GCS bucket via signed PUT URLs, or a local folder in mock mode."""
import logging
import secrets
import time
from io import BytesIO
from pathlib import Path
from urllib.parse import urlencode

import boto3
from botocore.config import Config as BotoConfig
from PIL import Image, UnidentifiedImageError
from werkzeug.utils import secure_filename

from ..errors import ConfigurationError, ValidationError

log = logging.getLogger(__name__)

ALLOWED_EXTS = {".png", ".jpg", ".jpeg", ".webp"}
GCS_ENDPOINT = "https://storage.googleapis.com"


def unique_file_name(file_name: str) -> str:
    """Prefix with a timestamp and random token so uploads never collide."""
    safe = secure_filename(file_name or "")
    if not safe:
        raise ValidationError("Missing fileName or contentType", fields=["fileName"])
    if Path(safe).suffix.lower() not in ALLOWED_EXTS:
        raise ValidationError(f"fileName must end with one of {sorted(ALLOWED_EXTS)}", fields=["fileName"])
    return f"{int(time.time() * 1000)}-{secrets.token_hex(6)}-{safe}"


class LocalImageStorage:
    is_mock = True

    def __init__(self, upload_dir: Path, public_prefix: str = "/uploads"):
        self.upload_dir = Path(upload_dir)
        self.public_prefix = public_prefix.rstrip("/")

    def signed_upload(self, file_name: str, content_type: str) -> dict:
        log.info("[MOCK] Generating upload URL for %s (%s)", file_name, content_type)
        query = urlencode({"fileName": file_name, "contentType": content_type})
        return {
            "uploadUrl": f"/api/mock-upload?{query}",
            "fileUrl": f"{self.public_prefix}/{file_name}",
        }

    def save(self, file_name: str, data: bytes) -> str:
        """Store an uploaded image and return its public URL. Rejects anything Pillow can't read."""
        safe = secure_filename(file_name or "")
        if not safe or Path(safe).suffix.lower() not in ALLOWED_EXTS:
            raise ValidationError("Unsupported file name", fields=["fileName"])
        try:
            with Image.open(BytesIO(data)) as img:
                img.verify()
        except (UnidentifiedImageError, OSError) as e:
            raise ValidationError("Uploaded file is not a readable image", fields=["file"]) from e

        self.upload_dir.mkdir(parents=True, exist_ok=True)
        (self.upload_dir / safe).write_bytes(data)
        log.info("[MOCK] Stored upload %s (%d bytes)", safe, len(data))
        return f"{self.public_prefix}/{safe}"


class GcsImageStorage:
    """GCS through its S3-compatible XML API, authenticated with HMAC keys."""

    is_mock = False

    def __init__(self, bucket: str, access_key: str, secret_key: str, expires_in: int = 15 * 60):
        if not bucket:
            raise ConfigurationError("GCS_BUCKET_NAME is required")
        if not access_key or not secret_key:
            raise ConfigurationError("GCS_HMAC_ACCESS_KEY and GCS_HMAC_SECRET are required")
        self.bucket = bucket
        self.expires_in = expires_in
        session = boto3.session.Session()
        self.client = session.client(
            "s3",
            endpoint_url=GCS_ENDPOINT,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name="auto",
            config=BotoConfig(s3={"addressing_style": "path"}, signature_version="s3v4"),
        )

    def public_url(self, file_name: str) -> str:
        return f"{GCS_ENDPOINT}/{self.bucket}/{file_name}"

    def signed_upload(self, file_name: str, content_type: str) -> dict:
        upload_url = self.client.generate_presigned_url(
            ClientMethod="put_object",
            Params={"Bucket": self.bucket, "Key": file_name, "ContentType": content_type},
            ExpiresIn=self.expires_in,
        )
        return {"uploadUrl": upload_url, "fileUrl": self.public_url(file_name)}


def build_image_storage(config) -> LocalImageStorage | GcsImageStorage:
    """Pick the storage backend from app config; mock unless GCS is fully configured."""
    use_mock = config.get("USE_MOCK_STORAGE") or not config.get("GCS_BUCKET_NAME")
    if not use_mock:
        try:
            return GcsImageStorage(
                config["GCS_BUCKET_NAME"],
                config.get("GCS_HMAC_ACCESS_KEY"),
                config.get("GCS_HMAC_SECRET"),
            )
        except ConfigurationError:
            log.exception("Failed to initialize GCS storage; falling back to local uploads")
    return LocalImageStorage(config["UPLOADS_DIR"])
