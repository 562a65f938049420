from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import boto3
from botocore.config import Config

from hlspack.config import DEFAULT_S3_MAX_ATTEMPTS

CONTENT_TYPES: Dict[str, str] = {
    ".m3u8": "application/vnd.apple.mpegurl",
    ".m4s": "video/iso.segment",
    ".mp4": "video/mp4",
}

DOWNLOAD_CHUNK_SIZE = 1024 * 1024


def create_s3_client(region: Optional[str], max_attempts: int = DEFAULT_S3_MAX_ATTEMPTS) -> Any:
    config = Config(retries={"max_attempts": max_attempts, "mode": "standard"})
    return boto3.client("s3", region_name=region, config=config)


class S3ObjectStore:
    """Bucket-scoped S3 access.

    Each call builds its own client, so no connection pool is shared between
    concurrent uploads.
    """

    def __init__(self, bucket: str, region: Optional[str] = None, max_attempts: int = DEFAULT_S3_MAX_ATTEMPTS) -> None:
        self.bucket = bucket
        self.region = region
        self.max_attempts = max_attempts

    def _client(self) -> Any:
        return create_s3_client(self.region, self.max_attempts)

    def get(self, key: str) -> Any:
        """Return the streaming body of ``key``."""
        response = self._client().get_object(Bucket=self.bucket, Key=key)
        return response["Body"]

    def download(self, key: str, dest: Path) -> Path:
        logging.info("Starting download from s3://%s/%s to %s", self.bucket, key, dest)
        body = self.get(key)
        try:
            with open(dest, "wb") as fh:
                for chunk in body.iter_chunks(chunk_size=DOWNLOAD_CHUNK_SIZE):
                    fh.write(chunk)
        finally:
            body.close()
        logging.info("Successfully downloaded file to %s", dest)
        return dest

    def upload(self, local_path: Path, key: str) -> None:
        extra_args = {}
        content_type = CONTENT_TYPES.get(Path(local_path).suffix.lower())
        if content_type:
            extra_args["ContentType"] = content_type
        self._client().upload_file(str(local_path), self.bucket, key, ExtraArgs=extra_args or None)
        logging.debug("Uploaded %s to s3://%s/%s", local_path, self.bucket, key)

    def delete(self, key: str) -> None:
        self._client().delete_object(Bucket=self.bucket, Key=key)
        logging.info("Deleted s3://%s/%s", self.bucket, key)
