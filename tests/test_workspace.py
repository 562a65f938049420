from hlspack.workspace import Workspace


def test_clear_is_idempotent(tmp_path):
    ws = Workspace(tmp_path / "output")
    ws.clear()
    ws.prepare()
    (ws.rendition_dir("low")).mkdir()
    (ws.rendition_dir("low") / "index.m3u8").write_text("x")
    ws.input_path.write_bytes(b"\x00")
    ws.clear()
    ws.clear()
    assert list(ws.root.iterdir()) == []


def test_remove_input_keeps_renditions(tmp_path):
    ws = Workspace(tmp_path)
    ws.prepare()
    ws.input_path.write_bytes(b"\x00")
    ws.rendition_dir("lower").mkdir()
    ws.remove_input()
    ws.remove_input()
    assert [p.name for p in ws.root.iterdir()] == ["lower"]
