"""Command line entry point for mnistnet training runs."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Iterable

from mnistnet.data.rwfile import DatasetLoadError
from mnistnet.training import pipelines


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    preset_names = sorted(pipelines.presets().keys())
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--preset",
        choices=preset_names,
        default="mnist",
        help="Preset configuration to execute",
    )
    parser.add_argument(
        "--config", type=Path, help="Optional JSON/YAML config override"
    )
    parser.add_argument(
        "--data-dir",
        help="Directory holding the IDX files (mnist dataset only)",
    )
    parser.add_argument("--seed", type=int, help="Seed for initialisation and sampling")
    parser.add_argument("--iterations", type=int, help="Number of SGD iterations")
    parser.add_argument("--batch-size", type=int, help="Minibatch size")
    parser.add_argument("--lr", type=float, help="Learning rate")
    parser.add_argument("--run-dir", help="Directory for metrics and manifest")
    parser.add_argument(
        "--enable-plots", action="store_true", help="Write a training curve plot"
    )
    parser.add_argument(
        "--list-presets", action="store_true", help="List available presets and exit"
    )
    parser.add_argument(
        "--dump-config", type=Path, help="Dump the resolved config to a JSON file"
    )
    return parser.parse_args(argv)


def resolve_config(args: argparse.Namespace) -> dict:
    config = json.loads(json.dumps(pipelines.load_preset(args.preset)))

    if args.config:
        override = pipelines.read_config_file(args.config)
        if {"data", "model", "train"} <= set(override.keys()):
            config = json.loads(json.dumps(override))
        else:
            config = pipelines.merge_config(config, override)

    train_cfg = config.setdefault("train", {})
    for key in ("seed", "iterations", "batch_size", "lr", "run_dir"):
        value = getattr(args, key)
        if value is not None:
            train_cfg[key] = value
    if args.enable_plots:
        train_cfg["enable_plots"] = True
    if args.data_dir is not None:
        config["data"].setdefault("options", {})["data_dir"] = args.data_dir
    return config


def main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(argv)

    if args.list_presets:
        for name in sorted(pipelines.presets().keys()):
            print(name)
        raise SystemExit(0)

    config = resolve_config(args)

    if args.dump_config:
        args.dump_config.parent.mkdir(parents=True, exist_ok=True)
        args.dump_config.write_text(json.dumps(config, indent=2))

    try:
        pipelines.run_pipeline(config)
    except DatasetLoadError as exc:
        raise SystemExit(f"failed to load mnist images and labels: {exc}") from None


if __name__ == "__main__":
    main()
