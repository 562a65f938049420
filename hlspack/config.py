from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from hlspack.errors import ConfigurationError

DEFAULT_CDN_BASE_URL = "https://d198g8637lsfvs.cloudfront.net"
DEFAULT_WORKSPACE = Path("/tmp/output")
DEFAULT_UPLOAD_BATCH_SIZE = 40
DEFAULT_S3_MAX_ATTEMPTS = 5
MANIFEST_EXT = "m3u8"


@dataclass(frozen=True)
class PipelineConfig:
    bucket: str
    region: str
    cdn_base_url: str = DEFAULT_CDN_BASE_URL
    workspace_dir: Path = DEFAULT_WORKSPACE
    upload_batch_size: int = DEFAULT_UPLOAD_BATCH_SIZE
    s3_max_attempts: int = DEFAULT_S3_MAX_ATTEMPTS
    manifest_ext: str = MANIFEST_EXT

    def __post_init__(self) -> None:
        if not self.bucket:
            raise ConfigurationError("bucket name is required")
        if not self.region:
            raise ConfigurationError("region is required")
        if self.upload_batch_size < 1:
            raise ConfigurationError("upload batch size must be positive")
        if self.s3_max_attempts < 1:
            raise ConfigurationError("s3 max attempts must be positive")

    def output_prefix(self, source_key: str) -> str:
        return f"{source_key}/hls"

    def manifest_url(self, source_key: str) -> str:
        base = self.cdn_base_url.rstrip("/")
        return f"{base}/{self.output_prefix(source_key)}/master.{self.manifest_ext}"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "PipelineConfig":
        """Build the configuration from process environment variables."""
        env = os.environ if environ is None else environ
        bucket = env.get("MY_S3_BUCKET")
        if not bucket:
            raise ConfigurationError("MY_S3_BUCKET environment variable is required")
        region = env.get("MY_AWS_REGION") or env.get("AWS_REGION")
        if not region:
            raise ConfigurationError("MY_AWS_REGION environment variable is required")
        return cls(
            bucket=bucket,
            region=region,
            cdn_base_url=env.get("CDN_BASE_URL") or DEFAULT_CDN_BASE_URL,
            workspace_dir=Path(env.get("HLS_WORKSPACE") or DEFAULT_WORKSPACE),
            upload_batch_size=_int_setting(env, "UPLOAD_BATCH_SIZE", DEFAULT_UPLOAD_BATCH_SIZE),
            s3_max_attempts=_int_setting(env, "S3_MAX_ATTEMPTS", DEFAULT_S3_MAX_ATTEMPTS),
        )


def _int_setting(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None
