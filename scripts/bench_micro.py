from __future__ import annotations

import argparse
import csv
import json
import sys
import time
from pathlib import Path
from statistics import mean, pstdev


def _fmt_mu_sigma(vals):
    mu = mean(vals)
    sd = pstdev(vals) if len(vals) > 1 else 0.0
    return f"{mu:.4f} ± {sd:.4f}"


def _run_once(seed: int, iterations: int, batch: int, lr: float, hidden: list[int]):
    import numpy as np

    from mnistnet.data.synthetic import SyntheticDataSet
    from mnistnet.data.utils import full_batch
    from mnistnet.training.network import Network
    from mnistnet.training.trainer import Trainer

    train = SyntheticDataSet(n_samples=200, n_features=16, num_classes=4, seed=seed)
    test = SyntheticDataSet(n_samples=200, n_features=16, num_classes=4, seed=seed + 1)
    net = Network.build([16, *hidden, 4], np.random.default_rng(seed), init_scale=1.0)
    trainer = Trainer(
        net,
        iterations=iterations,
        batch_size=batch,
        lr=lr,
        eval_every=max(1, iterations),
        seed=seed,
        verbose=False,
    )
    start = time.perf_counter()
    result = trainer.run(train, test)
    elapsed = time.perf_counter() - start
    x, t = full_batch(train)
    return {
        "seed": seed,
        "train_acc": net.accuracy(x, t),
        "test_acc": result.test_accuracy,
        "ms_per_iter": 1000.0 * elapsed / max(1, iterations),
    }


def main():
    root = Path(__file__).resolve().parents[1]
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))

    ap = argparse.ArgumentParser()
    ap.add_argument("--seeds", nargs="+", type=int, default=[123, 124, 125])
    ap.add_argument("--iterations", type=int, default=200)
    ap.add_argument("--lr", type=float, default=0.5)
    ap.add_argument("--batch", type=int, default=32)
    ap.add_argument("--hidden", nargs="+", type=int, default=[16])
    ap.add_argument("--out", type=str, default=".artifacts/bench")
    args = ap.parse_args()

    out = Path(args.out)
    out.mkdir(parents=True, exist_ok=True)
    runs = [
        _run_once(s, args.iterations, args.batch, args.lr, args.hidden)
        for s in args.seeds
    ]
    (out / "results.jsonl").write_text(
        "\n".join(json.dumps(x) for x in runs), encoding="utf-8"
    )

    csv_path = out / "bench_micro.csv"
    with csv_path.open("w", newline="", encoding="utf-8") as f:
        w = csv.writer(f)
        w.writerow(["seed", "iterations", "train_acc", "test_acc", "ms_per_iter"])
        for r in runs:
            w.writerow(
                [
                    r["seed"],
                    args.iterations,
                    f"{r['train_acc']:.4f}",
                    f"{r['test_acc']:.4f}",
                    f"{r['ms_per_iter']:.3f}",
                ]
            )

    md_path = out / "bench_micro.md"
    lines = []
    lines.append("### Micro-Benchmark: synthetic 4-class SGD")
    lines.append("")
    lines.append(
        f"- Seeds: `{args.seeds}`; Iterations: `{args.iterations}`; "
        f"LR: `{args.lr}`; Batch: `{args.batch}`; Hidden: `{args.hidden}`"
    )
    lines.append("")
    lines.append("| Train Acc (μ±σ) | Test Acc (μ±σ) | ms/iter (μ±σ) | Seeds |")
    lines.append("|---:|---:|---:|---:|")
    lines.append(
        f"| {_fmt_mu_sigma([r['train_acc'] for r in runs])} "
        f"| {_fmt_mu_sigma([r['test_acc'] for r in runs])} "
        f"| {_fmt_mu_sigma([r['ms_per_iter'] for r in runs])} | {len(runs)} |"
    )
    md_path.write_text("\n".join(lines), encoding="utf-8")
    print("Wrote:", csv_path, md_path)


if __name__ == "__main__":
    main()
