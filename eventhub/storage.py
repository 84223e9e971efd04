"""
S3 image storage for profile and event pictures.
"""
import logging
import os
import uuid
from dataclasses import dataclass
from typing import Optional

import boto3

from . import config

logger = logging.getLogger(__name__)


@dataclass
class ImageFile:
    filename: str
    body: bytes
    content_type: Optional[str] = None


class ImageStorage:
    """Uploads images to an S3 bucket and hands back their public URL."""

    def __init__(self, bucket: str, region: str, client=None):
        self.bucket = bucket
        self.region = region
        self.client = client or boto3.client("s3", region_name=region)

    def upload_image(self, image: ImageFile, folder: str = "profiles") -> str:
        """
        Store `image` under `<folder>/<uuid><ext>`.

        Args:
            image: File name, raw bytes and content type
            folder: Key prefix ("profiles" or "events")

        Returns:
            Public URL of the stored object
        """
        extension = os.path.splitext(image.filename or "")[1]
        key = f"{folder}/{uuid.uuid4()}{extension}"

        params = {"Bucket": self.bucket, "Key": key, "Body": image.body}
        if image.content_type:
            params["ContentType"] = image.content_type
        self.client.put_object(**params)
        logger.info("Uploaded image to s3://%s/%s", self.bucket, key)

        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"


def build_storage_from_env() -> Optional[ImageStorage]:
    """ImageStorage from environment variables, or None if no bucket is configured."""
    if not config.AWS_S3_BUCKET_NAME:
        return None
    return ImageStorage(config.AWS_S3_BUCKET_NAME, config.AWS_REGION)
