import json
from pathlib import Path

import pytest

from mnistnet.training import pipelines


def _synthetic_config(run_dir: Path) -> dict:
    config = json.loads(json.dumps(pipelines.load_preset("synthetic-min")))
    config["train"]["run_dir"] = str(run_dir)
    return config


def test_pipeline_produces_artifacts(tmp_path, capsys):
    config = _synthetic_config(tmp_path / "run")
    result = pipelines.run_pipeline(config)

    assert result.steps == 200
    assert Path(result.metrics_path).exists()
    manifest = json.loads(Path(result.manifest_path).read_text())
    assert manifest["config"]["train"]["seed"] == 7
    assert manifest["config"]["model"]["dims"] == [4, 8, 2]
    assert manifest["dataset"]["source"] == "synthetic"
    assert manifest["results"]["test_accuracy"] == result.test_accuracy

    records = [
        json.loads(line)
        for line in Path(result.metrics_path).read_text().splitlines()
        if line
    ]
    assert [r["step"] for r in records] == [50, 100, 150, 200, 200]
    assert [r["split"] for r in records] == ["train"] * 4 + ["test"]
    assert all("accuracy" in r and "loss" in r and "sha" in r for r in records)

    csv_path = Path(config["train"]["run_dir"]) / "metrics.csv"
    assert csv_path.exists()
    assert (Path(config["train"]["run_dir"]) / "config.json").exists()

    out = capsys.readouterr().out
    assert "=== mnistnet run ===" in out
    assert "[train 200]" in out
    assert "[t10k]" in out


def test_pipeline_determinism(tmp_path):
    first = pipelines.run_pipeline(_synthetic_config(tmp_path / "run1"))
    second = pipelines.run_pipeline(_synthetic_config(tmp_path / "run2"))
    assert Path(first.metrics_path).read_text() == Path(second.metrics_path).read_text()


def test_presets_include_builtin_and_file_presets():
    names = set(pipelines.presets())
    assert {"mnist", "synthetic-min", "mnist-quick"} <= names
    mnist = pipelines.load_preset("mnist")
    assert mnist["model"]["hidden"] == [50, 50, 50]
    assert mnist["train"]["iterations"] == 1000
    assert mnist["train"]["batch_size"] == 100
    assert mnist["train"]["lr"] == 0.2


def test_unknown_preset_raises():
    with pytest.raises(KeyError):
        pipelines.load_preset("does-not-exist")


def test_config_dims_must_match_dataset(tmp_path):
    config = _synthetic_config(tmp_path / "run")
    config["model"]["d_in"] = 9
    with pytest.raises(ValueError):
        pipelines.run_pipeline(config)


def test_read_and_merge_yaml_override(tmp_path):
    override_path = tmp_path / "override.yaml"
    override_path.write_text("train:\n  lr: 0.05\n  iterations: 10\n")
    override = pipelines.read_config_file(override_path)
    merged = pipelines.merge_config(
        json.loads(json.dumps(pipelines.load_preset("mnist"))), override
    )
    assert merged["train"]["lr"] == 0.05
    assert merged["train"]["iterations"] == 10
    assert merged["train"]["batch_size"] == 100
    assert merged["model"]["hidden"] == [50, 50, 50]
