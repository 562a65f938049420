from __future__ import annotations

import logging
from collections import deque
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Deque, List, Optional, Tuple

from hlspack.config import DEFAULT_UPLOAD_BATCH_SIZE, MANIFEST_EXT
from hlspack.errors import PublishError
from hlspack.monitoring import metrics

DIRECTORY = "directory"
MANIFEST = "manifest"
SEGMENT = "segment"


@dataclass(frozen=True)
class PublishTask:
    local_path: Path
    remote_key: str
    kind: str


# Tasks in one step may run together; steps run one after another.
PublishStep = Tuple[PublishTask, ...]


class PublishWalker:
    """Uploads a directory tree in a fixed order with bounded concurrency.

    For every directory: each subdirectory is published completely, one at a
    time, then the directory's playlists one by one, then its remaining files
    in batches of ``batch_size`` concurrent uploads.
    """

    def __init__(
        self,
        upload: Callable[[Path, str], None],
        batch_size: int = DEFAULT_UPLOAD_BATCH_SIZE,
        manifest_ext: str = MANIFEST_EXT,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self._upload = upload
        self.batch_size = batch_size
        self.manifest_suffix = f".{manifest_ext}"

    def _expand(self, task: PublishTask) -> List[PublishStep]:
        entries = sorted(task.local_path.iterdir(), key=lambda p: p.name)
        directories = [p for p in entries if p.is_dir() and not p.is_symlink()]
        files = [p for p in entries if p not in directories]
        manifests = [p for p in files if p.name.endswith(self.manifest_suffix)]
        segments = [p for p in files if not p.name.endswith(self.manifest_suffix)]
        logging.info(
            "Uploading directory %s with %d subdirs, %d playlists, and %d segments",
            task.local_path,
            len(directories),
            len(manifests),
            len(segments),
        )

        steps: List[PublishStep] = []
        for d in directories:
            steps.append((PublishTask(d, f"{task.remote_key}/{d.name}", DIRECTORY),))
        for m in manifests:
            steps.append((PublishTask(m, f"{task.remote_key}/{m.name}", MANIFEST),))
        for i in range(0, len(segments), self.batch_size):
            steps.append(tuple(
                PublishTask(s, f"{task.remote_key}/{s.name}", SEGMENT)
                for s in segments[i:i + self.batch_size]
            ))
        return steps

    def plan(self, local_root: Path, remote_prefix: str) -> List[PublishStep]:
        """Flatten the tree into the ordered upload steps, without uploading."""
        local_root = Path(local_root)
        if not local_root.is_dir():
            return [(PublishTask(local_root, remote_prefix, SEGMENT),)]

        steps: List[PublishStep] = []
        worklist: Deque[PublishStep] = deque([(PublishTask(local_root, remote_prefix, DIRECTORY),)])
        while worklist:
            step = worklist.popleft()
            if step[0].kind == DIRECTORY:
                # Children go in front of whatever the parent still has queued
                worklist.extendleft(reversed(self._expand(step[0])))
            else:
                steps.append(step)
        return steps

    def _upload_one(self, task: PublishTask) -> None:
        try:
            self._upload(task.local_path, task.remote_key)
        except Exception as e:
            logging.error("Error uploading %s to %s: %s", task.local_path, task.remote_key, e)
            raise PublishError(task.local_path, task.remote_key, str(e)) from e

    def _run_batch(self, pool: ThreadPoolExecutor, batch: PublishStep) -> None:
        futures = [pool.submit(self._upload_one, task) for task in batch]
        first_error: Optional[BaseException] = None
        # Let the whole batch settle before reporting
        for future in as_completed(futures):
            error = future.exception()
            if error is not None and first_error is None:
                first_error = error
        if first_error is not None:
            raise first_error

    def publish(self, local_root: Path, remote_prefix: str) -> int:
        """Upload ``local_root`` under ``remote_prefix``; return the number of files uploaded."""
        steps = self.plan(local_root, remote_prefix)
        segment_batches = sum(1 for s in steps if s[0].kind == SEGMENT)
        uploaded = 0
        batch_no = 0
        with ThreadPoolExecutor(max_workers=self.batch_size) as pool:
            for step in steps:
                if step[0].kind == SEGMENT:
                    batch_no += 1
                    logging.info("Uploading segment batch %d/%d (%d files)", batch_no, segment_batches, len(step))
                    self._run_batch(pool, step)
                else:
                    self._upload_one(step[0])
                uploaded += len(step)
                metrics.inc_uploads(len(step))
        logging.info("Uploaded %d files from %s to %s", uploaded, local_root, remote_prefix)
        return uploaded
