from unittest import mock

from hlspack.storage import S3ObjectStore, create_s3_client


class FakeBody:
    def __init__(self, data):
        self.data = data
        self.closed = False

    def iter_chunks(self, chunk_size=1024):
        for i in range(0, len(self.data), chunk_size):
            yield self.data[i:i + chunk_size]

    def close(self):
        self.closed = True


def test_client_gets_retry_config():
    with mock.patch("boto3.client") as client:
        create_s3_client("eu-west-1", max_attempts=5)
    _, kwargs = client.call_args
    assert kwargs["region_name"] == "eu-west-1"
    assert kwargs["config"].retries == {"max_attempts": 5, "mode": "standard"}


def test_download_streams_to_disk(tmp_path):
    body = FakeBody(b"abc" * 1000)
    s3 = mock.MagicMock()
    s3.get_object.return_value = {"Body": body}
    store = S3ObjectStore("bucket", "us-east-1")
    with mock.patch("boto3.client", return_value=s3):
        dest = store.download("videos/in.mp4", tmp_path / "input.mp4")
    s3.get_object.assert_called_once_with(Bucket="bucket", Key="videos/in.mp4")
    assert dest.read_bytes() == b"abc" * 1000
    assert body.closed


def test_upload_sets_content_type(tmp_path):
    playlist = tmp_path / "index.m3u8"
    playlist.write_text("#EXTM3U")
    s3 = mock.MagicMock()
    with mock.patch("boto3.client", return_value=s3):
        S3ObjectStore("bucket").upload(playlist, "k/index.m3u8")
    s3.upload_file.assert_called_once_with(
        str(playlist), "bucket", "k/index.m3u8",
        ExtraArgs={"ContentType": "application/vnd.apple.mpegurl"},
    )


def test_each_operation_uses_fresh_client(tmp_path):
    segment = tmp_path / "segment_000.m4s"
    segment.write_bytes(b"\x00")
    with mock.patch("boto3.client") as client:
        store = S3ObjectStore("bucket")
        store.upload(segment, "a")
        store.upload(segment, "b")
        store.delete("a")
    assert client.call_count == 3
    client.return_value.delete_object.assert_called_once_with(Bucket="bucket", Key="a")
