from colorbox.paths import ensure_directories, get_data_root


def test_ensure_directories(tmp_path):
    dirs = ensure_directories(tmp_path)
    assert (tmp_path / "exports").exists()
    assert dirs["exports"] == tmp_path / "exports"


def test_get_data_root_expands_user(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    assert get_data_root({"data_root": "~/art"}) == (tmp_path / "art").resolve()
