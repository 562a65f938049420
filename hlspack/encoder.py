from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

import ffmpeg

from hlspack.errors import EncodeError
from hlspack.filters import build_encode_parameters
from hlspack.ladder import RenditionSpec
from hlspack.monitoring import metrics
from hlspack.probe import SourceGeometry

PLAYLIST_NAME = "index.m3u8"
SEGMENT_PATTERN = "segment_%03d.m4s"


@dataclass(frozen=True)
class EncodeJob:
    rendition: RenditionSpec
    source_path: Path
    output_dir: Path
    geometry: SourceGeometry


@dataclass
class RenditionOutput:
    name: str
    manifest_relative_path: str
    segment_file_paths: List[Path] = field(default_factory=list)


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


class RenditionEncoder:
    """Runs ffmpeg once per rendition, writing an fMP4 HLS stream into the job's directory."""

    def build(self, job: EncodeJob):
        params = build_encode_parameters(
            job.rendition,
            job.geometry.rotation,
            str(job.output_dir / SEGMENT_PATTERN),
        )
        input_stream = ffmpeg.input(str(job.source_path))
        video_stream = input_stream["v:0"]
        for step in params.filters:
            video_stream = video_stream.filter(step.name, *step.args, **dict(step.kwargs))

        streams_to_output = [video_stream]
        if job.geometry.has_audio:
            streams_to_output.append(input_stream["a:0"])

        playlist_path = job.output_dir / PLAYLIST_NAME
        output_stream = ffmpeg.output(*streams_to_output, str(playlist_path), **params.output_args)
        return ffmpeg.overwrite_output(output_stream)

    def encode(self, job: EncodeJob) -> RenditionOutput:
        name = job.rendition.name
        ensure_dir(job.output_dir)
        logging.info(
            "Generating HLS stream for %s at %dx%d (%dk) in %s",
            name,
            job.rendition.width,
            job.rendition.height,
            job.rendition.bitrate_kbps,
            job.output_dir,
        )
        output_stream = self.build(job)
        logging.debug("Spawning ffmpeg: %s", " ".join(ffmpeg.compile(output_stream)))

        start = time.time()
        try:
            ffmpeg.run(output_stream, quiet=True)
        except ffmpeg.Error as e:
            stderr = e.stderr.decode(errors="replace") if e.stderr else None
            logging.error("HLS generation failed for %s: %s", name, stderr or e)
            raise EncodeError(name, "ffmpeg exited with an error", stderr) from e
        metrics.observe_encode_time(time.time() - start)

        playlist_path = job.output_dir / PLAYLIST_NAME
        if not playlist_path.exists():
            raise EncodeError(name, f"ffmpeg did not write {playlist_path}")

        segments = sorted(p for p in job.output_dir.iterdir() if p.is_file() and p.name != PLAYLIST_NAME)
        logging.info("HLS stream generation complete for %s (%d files)", name, len(segments))
        return RenditionOutput(name, f"{name}/{PLAYLIST_NAME}", segments)
