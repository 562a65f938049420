import json

import hls_packager
from hlspack.orchestrator import PipelineResult


class FakeOrchestrator:
    calls = []
    result = PipelineResult("success", "ok", manifest_url="https://cdn/x/hls/master.m3u8")

    def __init__(self, config):
        self.config = config

    def run(self, key):
        FakeOrchestrator.calls.append((key, self.config))
        return FakeOrchestrator.result


def _env(monkeypatch, **extra):
    monkeypatch.setenv("MY_S3_BUCKET", "media")
    monkeypatch.setenv("MY_AWS_REGION", "us-east-1")
    for k, v in extra.items():
        monkeypatch.setenv(k, v)


def test_main_runs_event(monkeypatch, tmp_path):
    _env(monkeypatch, EVENT=json.dumps({"s3Key": "videos/clip.mp4"}))
    monkeypatch.setattr(hls_packager, "PipelineOrchestrator", FakeOrchestrator)
    FakeOrchestrator.calls = []

    code = hls_packager.main(["--workspace", str(tmp_path), "--batch-size", "8"])

    assert code == 0
    key, config = FakeOrchestrator.calls[0]
    assert key == "videos/clip.mp4"
    assert config.upload_batch_size == 8
    assert config.workspace_dir == tmp_path.resolve()


def test_main_reports_failure(monkeypatch):
    _env(monkeypatch)
    monkeypatch.setattr(hls_packager, "PipelineOrchestrator", FakeOrchestrator)
    monkeypatch.setattr(FakeOrchestrator, "result", PipelineResult("error", "Error processing video", error="x"))
    assert hls_packager.main(["--s3-key", "a.mp4"]) == 1


def test_main_without_event(monkeypatch):
    _env(monkeypatch)
    monkeypatch.delenv("EVENT", raising=False)
    assert hls_packager.main([]) == 1


def test_main_without_bucket(monkeypatch):
    monkeypatch.delenv("MY_S3_BUCKET", raising=False)
    assert hls_packager.main(["--s3-key", "a.mp4"]) == 1
