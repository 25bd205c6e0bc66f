from colorbox.config import DEFAULT_CONFIG, load_config


def test_load_config_overrides(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        "data_root: /tmp/data\ncoloring:\n  tool: fill\n  opacity: 0.5\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("COLORBOX_CONFIG", str(config_path))

    config = load_config()
    assert config["data_root"] == "/tmp/data"
    assert config["coloring"]["tool"] == "fill"
    assert config["coloring"]["opacity"] == 0.5
    assert config["coloring"]["palette"] == DEFAULT_CONFIG["coloring"]["palette"]


def test_load_config_defaults_without_files(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("COLORBOX_CONFIG", str(tmp_path / "missing.yaml"))

    config = load_config()
    assert config["coloring"]["max_undo"] == 40
