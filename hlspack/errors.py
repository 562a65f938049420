from __future__ import annotations

from pathlib import Path
from typing import Optional


class PackagerError(Exception):
    """Base class for every failure raised by the packaging pipeline."""


class ConfigurationError(PackagerError):
    pass


class SourceFetchError(PackagerError):
    pass


class ProbeError(PackagerError):
    pass


class EncodeError(PackagerError):
    def __init__(self, rendition: str, message: str, stderr: Optional[str] = None) -> None:
        super().__init__(f"{rendition}: {message}")
        self.rendition = rendition
        self.stderr = stderr


class ManifestWriteError(PackagerError):
    pass


class PublishError(PackagerError):
    def __init__(self, local_path: Path, remote_key: str, message: str) -> None:
        super().__init__(f"upload of {local_path} to {remote_key} failed: {message}")
        self.local_path = local_path
        self.remote_key = remote_key


class CleanupError(PackagerError):
    """Raised for workspace housekeeping failures; callers log it and carry on."""
