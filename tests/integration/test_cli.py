import json
from pathlib import Path

import pytest

from cli.main import main


def test_cli_synthetic_preset(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    main(["--preset", "synthetic-min", "--iterations", "100"])
    run_dir = Path("runs/synthetic-min")
    assert (run_dir / "metrics.jsonl").exists()
    assert (run_dir / "manifest.json").exists()
    out = capsys.readouterr().out.splitlines()
    assert "[train 100]" in out[-2]
    assert out[-1].startswith("[t10k] ")


def test_cli_missing_mnist_files_exits(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(SystemExit) as excinfo:
        main(["--preset", "mnist", "--data-dir", str(tmp_path / "empty")])
    assert "failed to load mnist images and labels" in str(excinfo.value.code)


def test_cli_overrides_and_dump_config(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    override = tmp_path / "override.json"
    override.write_text(json.dumps({"model": {"hidden": [6]}}))
    dump = tmp_path / "resolved.json"
    main([
        "--preset", "synthetic-min",
        "--config", str(override),
        "--seed", "3",
        "--lr", "0.1",
        "--run-dir", str(tmp_path / "custom"),
        "--dump-config", str(dump),
    ])
    resolved = json.loads(dump.read_text())
    assert resolved["model"]["hidden"] == [6]
    assert resolved["train"]["seed"] == 3
    assert resolved["train"]["lr"] == 0.1
    manifest = json.loads((tmp_path / "custom" / "manifest.json").read_text())
    assert manifest["config"]["model"]["dims"] == [4, 6, 2]


def test_cli_list_presets(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["--list-presets"])
    assert excinfo.value.code == 0
    names = capsys.readouterr().out.split()
    assert "mnist" in names and "synthetic-min" in names
