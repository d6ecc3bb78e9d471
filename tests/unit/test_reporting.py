import csv
import json

from mnistnet.reporting.artifacts import write_manifest
from mnistnet.reporting.metrics import CsvSink, JsonlSink
from mnistnet.reporting.plots import PlotAdapter


def test_jsonl_sink_records_steps_and_holdout(tmp_path):
    sink = JsonlSink(tmp_path / "m.jsonl", seed=4, sha="abc")
    sink.on_step(100, {"accuracy": 0.5, "loss": 1.25})
    sink.on_epoch(100, {"accuracy": 0.75, "loss": 0.5})
    records = [json.loads(line) for line in sink.path.read_text().splitlines()]
    assert records[0] == {
        "step": 100,
        "split": "train",
        "seed": 4,
        "sha": "abc",
        "accuracy": 0.5,
        "loss": 1.25,
    }
    assert records[1]["split"] == "test"


def test_csv_sink_writes_header_once(tmp_path):
    sink = CsvSink(tmp_path / "m.csv")
    sink.on_step(1, {"accuracy": 0.1, "loss": 2.0})
    sink.on_step(2, {"accuracy": 0.2, "loss": 1.0})
    with sink.path.open() as handle:
        rows = list(csv.DictReader(handle))
    assert [row["step"] for row in rows] == ["1", "2"]
    assert rows[1]["accuracy"] == "0.2"


def test_manifest_contents(tmp_path):
    path = write_manifest(
        tmp_path / "manifest.json",
        config={"train": {"seed": 1}},
        dataset_provenance={"source": "synthetic"},
        results={"test_accuracy": 0.9},
    )
    manifest = json.loads((tmp_path / "manifest.json").read_text())
    assert path.endswith("manifest.json")
    assert manifest["config"]["train"]["seed"] == 1
    assert manifest["dataset"]["source"] == "synthetic"
    assert manifest["results"]["test_accuracy"] == 0.9
    assert "numpy" in manifest["environment"]


def test_plot_adapter_headless(tmp_path):
    adapter = PlotAdapter(tmp_path, enable_plots=True)
    adapter.on_step(100, {"accuracy": 0.3, "loss": 1.0})
    adapter.on_step(200, {"accuracy": 0.6, "loss": 0.5})
    adapter.close()
    assert (tmp_path / "training.png").exists()


def test_plot_adapter_disabled_writes_nothing(tmp_path):
    adapter = PlotAdapter(tmp_path / "plots")
    adapter.on_step(1, {"accuracy": 0.3})
    adapter.close()
    assert not (tmp_path / "plots").exists()


def test_non_finite_metrics_are_written_as_null(tmp_path):
    sink = JsonlSink(tmp_path / "m.jsonl", seed=0, sha="abc")
    sink.on_step(1, {"accuracy": float("nan"), "loss": float("inf")})
    line = sink.path.read_text().strip()
    assert "NaN" not in line and "Infinity" not in line
    record = json.loads(line)
    assert record["accuracy"] is None
    assert record["loss"] is None

    csv_sink = CsvSink(tmp_path / "m.csv")
    csv_sink.on_step(1, {"accuracy": float("nan")})
    with csv_sink.path.open() as handle:
        rows = list(csv.DictReader(handle))
    assert rows[0]["accuracy"] == ""


def test_manifest_stores_missing_results_as_null(tmp_path):
    write_manifest(
        tmp_path / "manifest.json",
        config={},
        dataset_provenance={},
        results={"train_accuracy": float("nan"), "test_accuracy": 0.5},
    )
    text = (tmp_path / "manifest.json").read_text()
    assert "NaN" not in text
    manifest = json.loads(text)
    assert manifest["results"] == {"train_accuracy": None, "test_accuracy": 0.5}
