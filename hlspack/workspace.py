from __future__ import annotations

import logging
import shutil
from pathlib import Path

from hlspack.errors import CleanupError

INPUT_NAME = "input.mp4"


class Workspace:
    """Local scratch directory for one pipeline run.

    Holds the downloaded source, one directory per rendition and the two
    top-level playlists.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    @property
    def input_path(self) -> Path:
        return self.root / INPUT_NAME

    def rendition_dir(self, name: str) -> Path:
        return self.root / name

    def prepare(self) -> None:
        self.clear()
        self.root.mkdir(parents=True, exist_ok=True)

    def remove_input(self) -> None:
        try:
            self.input_path.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            raise CleanupError(f"could not delete {self.input_path}: {e}") from e

    def clear(self) -> None:
        """Delete everything under the root; a missing root is fine."""
        if not self.root.exists():
            return
        failures = []
        for entry in self.root.iterdir():
            try:
                if entry.is_dir() and not entry.is_symlink():
                    shutil.rmtree(entry)
                else:
                    entry.unlink()
            except OSError as e:
                failures.append(f"{entry}: {e}")
        if failures:
            raise CleanupError("could not empty workspace: " + "; ".join(failures))
        logging.info("Emptied directory: %s", self.root)
