from __future__ import annotations

from prometheus_client import Counter, Histogram, start_http_server


class Metrics:
    def __init__(self) -> None:
        self.videos_processed = Counter("hls_videos_processed", "Number of videos packaged and published")
        self.videos_failed = Counter("hls_videos_failed", "Number of videos whose pipeline failed")
        self.encode_time_seconds = Histogram("hls_encode_time_seconds", "Per-rendition encode time (s)")
        self.files_uploaded = Counter("hls_files_uploaded", "Number of files uploaded to the object store")

    def start_server(self, port: int = 8000) -> None:
        start_http_server(port)

    def inc_videos(self) -> None:
        self.videos_processed.inc()

    def inc_failures(self) -> None:
        self.videos_failed.inc()

    def observe_encode_time(self, duration: float) -> None:
        self.encode_time_seconds.observe(duration)

    def inc_uploads(self, count: int = 1) -> None:
        self.files_uploaded.inc(count)


metrics = Metrics()
