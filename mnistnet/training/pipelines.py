"""Config-driven assembly of dataset, network and trainer."""

from __future__ import annotations

import json
from copy import deepcopy
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Mapping, Sequence

from ..core.types import RunResult
from ..data import registry
from ..data.utils import seed_everything
from ..reporting.artifacts import write_manifest
from ..reporting.metrics import CsvSink, JsonlSink
from ..reporting.plots import PlotAdapter
from .network import Network
from .trainer import Trainer

_PRESETS: Dict[str, Mapping[str, object]] = {
    "mnist": {
        "data": {"name": "mnist", "options": {"data_dir": "."}},
        "model": {"hidden": [50, 50, 50], "activation": "sigmoid", "init_scale": 0.1},
        "train": {
            "iterations": 1000,
            "batch_size": 100,
            "lr": 0.2,
            "eval_every": 100,
            "seed": 0,
            "run_dir": "runs/mnist",
            "enable_plots": False,
        },
    },
    "synthetic-min": {
        "data": {
            "name": "synthetic",
            "options": {"n_samples": 20, "n_features": 4, "num_classes": 2, "seed": 0},
        },
        "model": {"hidden": [8], "activation": "sigmoid", "init_scale": 1.0},
        "train": {
            "iterations": 200,
            "batch_size": 10,
            "lr": 0.5,
            "eval_every": 50,
            "seed": 7,
            "run_dir": "runs/synthetic-min",
            "enable_plots": False,
        },
    },
}

_PRESET_DIR = Path(__file__).resolve().parents[2] / "configs" / "presets"
_FILE_PRESETS_CACHE: Dict[str, Mapping[str, object]] | None = None


def read_config_file(path: Path) -> Mapping[str, object]:
    """Decode a JSON or YAML mapping from ``path``."""

    text = path.read_text()
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        import yaml

        data = yaml.safe_load(text) or {}
    elif suffix == ".json":
        data = json.loads(text or "{}")
    else:
        raise ValueError(f"Unsupported config file type: {path.suffix}")

    if not isinstance(data, Mapping):
        raise TypeError(f"Config {path.name} must decode to a mapping")
    return data


def _file_presets() -> Dict[str, Mapping[str, object]]:
    global _FILE_PRESETS_CACHE
    if _FILE_PRESETS_CACHE is None:
        found: Dict[str, Mapping[str, object]] = {}
        if _PRESET_DIR.exists():
            for file in sorted(_PRESET_DIR.iterdir()):
                if file.suffix.lower() not in {".yaml", ".yml", ".json"}:
                    continue
                data = read_config_file(file)
                missing = {"data", "model", "train"} - set(data)
                if missing:
                    missing_str = ", ".join(sorted(missing))
                    raise KeyError(
                        f"Preset {file.name} is missing required sections: {missing_str}"
                    )
                found[file.stem] = json.loads(json.dumps(data))
        _FILE_PRESETS_CACHE = found
    return {name: deepcopy(cfg) for name, cfg in _FILE_PRESETS_CACHE.items()}


def presets() -> Mapping[str, Mapping[str, object]]:
    combined: Dict[str, Mapping[str, object]] = {}
    combined.update({name: deepcopy(cfg) for name, cfg in _PRESETS.items()})
    combined.update(_file_presets())
    return combined


def load_preset(name: str) -> Mapping[str, object]:
    file_overrides = _file_presets()
    if name in file_overrides:
        return file_overrides[name]
    try:
        return deepcopy(_PRESETS[name])
    except KeyError as exc:
        available = ", ".join(sorted(presets()))
        raise KeyError(f"Unknown preset {name!r}. Available presets: {available}") from exc


def merge_config(base: dict, override: Mapping[str, object]) -> dict:
    """Recursively merge ``override`` into ``base`` and return ``base``."""

    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(base.get(key), dict):
            base[key] = merge_config(dict(base[key]), value)
        else:
            base[key] = deepcopy(value)
    return base


def build_dims(model_cfg: Mapping[str, object], d_in: int, d_out: int) -> List[int]:
    dims = [int(model_cfg.get("d_in", d_in))]
    dims.extend(int(h) for h in model_cfg.get("hidden", []))
    dims.append(int(model_cfg.get("d_out", d_out)))
    if dims[0] != d_in:
        raise ValueError(f"Configured d_in={dims[0]} but dataset has {d_in} features")
    if dims[-1] != d_out:
        raise ValueError(f"Configured d_out={dims[-1]} but dataset has {d_out} classes")
    return dims


def run_pipeline(config: Mapping[str, object]) -> RunResult:
    data_cfg = dict(config["data"])
    model_cfg = dict(config.get("model", {}))
    train_cfg = dict(config.get("train", {}))

    dataset = registry.get_dataset(str(data_cfg["name"]), **dict(data_cfg.get("options", {})))

    seed = int(train_cfg.get("seed", 0))
    dims = build_dims(model_cfg, dataset.d_in, dataset.d_out)
    network = Network.build(
        dims,
        seed_everything(seed),
        activation=str(model_cfg.get("activation", "sigmoid")),
        init_scale=float(model_cfg.get("init_scale", 0.1)),
    )

    run_dir = Path(str(train_cfg.get("run_dir", f"runs/{dataset.name}")))
    run_dir.mkdir(parents=True, exist_ok=True)

    iterations = int(train_cfg.get("iterations", 1000))
    batch_size = int(train_cfg.get("batch_size", 100))
    lr = float(train_cfg.get("lr", 0.2))

    _print_startup_summary(
        dataset_name=dataset.name,
        dims=dims,
        iterations=iterations,
        batch_size=batch_size,
        lr=lr,
        param_count=network.parameter_count(),
    )

    jsonl = JsonlSink(run_dir / "metrics.jsonl", split="train", seed=seed)
    csv_sink = CsvSink(run_dir / "metrics.csv", split="train")
    plots = PlotAdapter(run_dir, enable_plots=bool(train_cfg.get("enable_plots", False)))

    trainer = Trainer(
        network,
        iterations=iterations,
        batch_size=batch_size,
        lr=lr,
        eval_every=int(train_cfg.get("eval_every", 100)),
        seed=seed,
        callbacks=[jsonl, csv_sink, plots],
        test_label=str(train_cfg.get("test_label", "t10k")),
    )
    result = trainer.run(dataset.train, dataset.test)

    resolved = json.loads(json.dumps(config))
    resolved.setdefault("model", {})["dims"] = dims
    manifest = write_manifest(
        run_dir / "manifest.json",
        config=resolved,
        dataset_provenance=dataset.provenance,
        results={
            "train_accuracy": result.train_accuracy,
            "test_accuracy": result.test_accuracy,
        },
    )
    (run_dir / "config.json").write_text(json.dumps(resolved, indent=2))

    return replace(result, metrics_path=str(jsonl.path), manifest_path=manifest)


def _print_startup_summary(
    *,
    dataset_name: str,
    dims: Sequence[int],
    iterations: int,
    batch_size: int,
    lr: float,
    param_count: int,
) -> None:
    print("=== mnistnet run ===")
    print(f"Dataset       : {dataset_name}")
    print(f"Dimensions    : {list(dims)}")
    print(f"Iterations    : {iterations}")
    print(f"Batch size    : {batch_size}")
    print(f"Learning rate : {lr}")
    print(f"Parameters    : {param_count}")
    print("====================")


__all__ = [
    "build_dims",
    "load_preset",
    "merge_config",
    "presets",
    "read_config_file",
    "run_pipeline",
]
