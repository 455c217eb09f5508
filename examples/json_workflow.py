#!/usr/bin/env python3
"""Example: JSON workflow - export scenario configs, reload them, save metrics."""

import argparse
import json
from pathlib import Path

from kv_estimator import KVCacheEstimator, export_config
from kv_estimator.config_store import parse_document
from kv_estimator.models import Configuration
from kv_estimator.presets import SCENARIOS, get_gpu_profile


def main():
    """Run JSON workflow example."""

    parser = argparse.ArgumentParser(
        description="JSON workflow for KV cache estimates"
    )
    parser.add_argument(
        "--no-summary",
        action="store_true",
        help="Disable printing the summary (enabled by default)",
    )
    args = parser.parse_args()

    print("=" * 80)
    print("JSON Workflow Example")
    print("=" * 80)

    examples_dir = Path(__file__).parent
    configs_dir = examples_dir / "configs"
    output_file = examples_dir / "output_metrics.json"
    configs_dir.mkdir(exist_ok=True)

    # Export one configuration document per scenario
    for key, scenario in SCENARIOS.items():
        gpu = get_gpu_profile(scenario.gpu)
        config = Configuration().with_scenario(scenario, monthly_rate=gpu.monthly_rate)
        path = configs_dir / f"{key}.json"
        path.write_text(export_config(config))
        print(f"Exported {scenario.name} to: {path}")

    # Reload the documents and estimate each one
    print("\nEstimating...")
    estimator = KVCacheEstimator()
    results = {}
    for path in sorted(configs_dir.glob("*.json")):
        config = parse_document(path.read_text())
        metrics = estimator.estimate_or_raise(config)
        results[path.stem] = {
            "configuration": config.to_dict(),
            "metrics": metrics.to_dict(json_safe=True),
        }

    print(f"\nSaving metrics to: {output_file}")
    with open(output_file, "w") as f:
        json.dump(results, f, indent=2)

    if not args.no_summary:
        print("\n" + "=" * 80)
        print("Summary")
        print("=" * 80)

        for key, result in results.items():
            metrics = result["metrics"]
            status = "offload" if metrics["is_offloading"] else "fits"
            print(
                f"{key:<18} {status:<8} nodes {metrics['nodes_without_offload']} -> "
                f"{metrics['nodes_with_offload']}"
            )

        print(f"\nFull results available in: {output_file}")
        print("=" * 80)


if __name__ == "__main__":
    main()
