from __future__ import annotations

import json
import logging
import traceback
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from hlspack.config import PipelineConfig
from hlspack.encoder import EncodeJob, RenditionEncoder, RenditionOutput
from hlspack.errors import CleanupError, ConfigurationError, EncodeError, PackagerError, SourceFetchError
from hlspack.ladder import RenditionSpec, plan_ladder
from hlspack.monitoring import metrics
from hlspack.playlist import write_playlists
from hlspack.probe import SourceGeometry, probe_geometry
from hlspack.publisher import PublishWalker
from hlspack.storage import S3ObjectStore
from hlspack.workspace import Workspace

SUCCESS = "success"
ERROR = "error"


class PipelineState(Enum):
    INIT = "init"
    DOWNLOADED = "downloaded"
    PROBED = "probed"
    PLANNED = "planned"
    ENCODING = "encoding"
    MANIFESTED = "manifested"
    INPUT_CLEANED = "input_cleaned"
    PUBLISHED = "published"
    DONE = "done"
    FAILED = "failed"


@dataclass
class PipelineResult:
    status: str
    message: str
    manifest_url: Optional[str] = None
    error: Optional[str] = None
    trace: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == SUCCESS

    def to_response(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"message": self.message}
        if self.ok:
            body["masterManifestUrl"] = self.manifest_url
        else:
            body["error"] = self.error
            body["trace"] = self.trace
        return {"statusCode": 200 if self.ok else 500, "body": json.dumps(body)}


class PipelineOrchestrator:
    """Turns one source object into a published HLS package.

    download -> probe -> plan -> encode (all renditions at once) -> playlists
    -> drop input -> publish. The workspace is emptied on every exit path.
    """

    def __init__(
        self,
        config: PipelineConfig,
        store: Optional[Any] = None,
        probe: Callable[..., SourceGeometry] = probe_geometry,
        encoder: Optional[RenditionEncoder] = None,
    ) -> None:
        self.config = config
        self.store = store or S3ObjectStore(config.bucket, config.region, config.s3_max_attempts)
        self.probe = probe
        self.encoder = encoder or RenditionEncoder()
        self.walker = PublishWalker(self.store.upload, config.upload_batch_size, config.manifest_ext)
        self.workspace = Workspace(config.workspace_dir)
        self.state = PipelineState.INIT
        self.outputs: List[RenditionOutput] = []

    def _advance(self, state: PipelineState) -> None:
        logging.debug("Pipeline state %s -> %s", self.state.value, state.value)
        self.state = state

    def run(self, source_key: str) -> PipelineResult:
        if not source_key:
            raise ConfigurationError("source object key not provided")

        self.state = PipelineState.INIT
        self.outputs = []
        logging.info("Starting video processing for s3://%s/%s", self.config.bucket, source_key)
        try:
            result = self._run(source_key)
        except Exception as e:
            self._advance(PipelineState.FAILED)
            if isinstance(e, PackagerError):
                logging.error("Error processing video (%s): %s", type(e).__name__, e)
            else:
                logging.exception("Unexpected error processing video")
            metrics.inc_failures()
            result = PipelineResult(ERROR, "Error processing video", error=str(e), trace=traceback.format_exc())
        finally:
            logging.info("Cleaning up temporary files")
            self._clear_workspace()
        return result

    def _run(self, source_key: str) -> PipelineResult:
        self.workspace.prepare()
        try:
            self.store.download(source_key, self.workspace.input_path)
        except Exception as e:
            raise SourceFetchError(f"could not download {source_key}: {e}") from e
        self._advance(PipelineState.DOWNLOADED)

        geometry = self.probe(self.workspace.input_path)
        logging.info(
            "Original video resolution: %dx%d, rotation: %d", geometry.width, geometry.height, geometry.rotation
        )
        self._advance(PipelineState.PROBED)

        plan = plan_ladder(geometry.width, geometry.height)
        self._advance(PipelineState.PLANNED)

        self._advance(PipelineState.ENCODING)
        self.outputs = self.encode_all(plan, geometry)
        self.check_outputs(plan, self.outputs)
        write_playlists(plan, self.workspace.root, self.config.manifest_ext)
        self._advance(PipelineState.MANIFESTED)

        try:
            self.workspace.remove_input()
        except CleanupError as e:
            logging.warning("Continuing without deleting input file: %s", e)
        self._advance(PipelineState.INPUT_CLEANED)

        prefix = self.config.output_prefix(source_key)
        self.walker.publish(self.workspace.root, prefix)
        self._advance(PipelineState.PUBLISHED)

        manifest_url = self.config.manifest_url(source_key)
        self._advance(PipelineState.DONE)
        metrics.inc_videos()
        logging.info("Video processing completed successfully: %s", manifest_url)
        return PipelineResult(SUCCESS, "Video processing completed successfully", manifest_url=manifest_url)

    def encode_all(self, plan: List[RenditionSpec], geometry: SourceGeometry) -> List[RenditionOutput]:
        """Encode every rendition concurrently; the first failure to finish is raised once all settle."""
        jobs = [
            EncodeJob(r, self.workspace.input_path, self.workspace.rendition_dir(r.name), geometry)
            for r in plan
        ]
        outputs: List[RenditionOutput] = []
        first_error: Optional[BaseException] = None
        failed_name = ""
        with ThreadPoolExecutor(max_workers=len(jobs)) as executor:
            futures = {executor.submit(self.encoder.encode, job): job for job in jobs}
            for future in as_completed(futures):
                name = futures[future].rendition.name
                error = future.exception()
                if error is None:
                    outputs.append(future.result())
                    logging.info("✓ Completed %s", name)
                    continue
                logging.error("✗ Failed %s: %s", name, error)
                if first_error is None:
                    first_error, failed_name = error, name
        if first_error is not None:
            if isinstance(first_error, PackagerError):
                raise first_error
            raise EncodeError(failed_name, str(first_error)) from first_error
        return outputs

    def check_outputs(self, plan: List[RenditionSpec], outputs: List[RenditionOutput]) -> None:
        """Every planned rendition must have produced segments before anything is published."""
        by_name = {o.name: o for o in outputs}
        for rendition in plan:
            output = by_name.get(rendition.name)
            if output is None:
                raise EncodeError(rendition.name, "no output was produced")
            if not output.segment_file_paths:
                raise EncodeError(rendition.name, f"{output.manifest_relative_path} has no segment files")
            logging.info("%s: %d segment files", rendition.name, len(output.segment_file_paths))

    def _clear_workspace(self) -> None:
        try:
            self.workspace.clear()
        except CleanupError as e:
            logging.warning("%s", e)
