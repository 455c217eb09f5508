"""Command-line interface for the KV cache estimator."""

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path

from .config_store import ConfigDocumentError, parse_document
from .estimator import InvalidConfigurationError, KVCacheEstimator
from .formatting import format_duration, format_gb, format_pct, format_usd
from .models import Configuration
from .presets import (
    get_gpu_profile,
    get_gpu_profiles,
    get_scenario,
    list_framework_profiles,
    list_model_profiles,
    list_scenarios,
)

# CLI option -> Configuration field
OVERRIDES = {
    "gpu": "gpu",
    "llm": "llm",
    "framework": "framework",
    "input_tokens": "input_tokens",
    "output_tokens": "output_tokens",
    "sessions": "concurrent_sessions",
    "fabric_bandwidth": "fabric_bandwidth_gb_s",
    "nas_bandwidth": "nas_bandwidth_gb_s",
    "monthly_rate": "monthly_rate",
    "contract_months": "contract_months",
}


def load_config_from_json(filepath: str) -> Configuration:
    """Load a configuration document from a JSON file, merged over the defaults."""
    return parse_document(Path(filepath).read_text(encoding="utf-8"))


def build_configuration(args: argparse.Namespace) -> Configuration:
    """Assemble a configuration from a document, a scenario and field overrides.

    Raises:
        ValueError: If the scenario is unknown or an override is malformed
    """
    config = load_config_from_json(args.config) if args.config else Configuration()

    if args.scenario:
        scenario = get_scenario(args.scenario)
        if scenario is None:
            raise ValueError(
                f"Scenario '{args.scenario}' not found. "
                f"Available scenarios: {', '.join(list_scenarios())}"
            )
        gpu = get_gpu_profile(scenario.gpu)
        config = config.with_scenario(scenario, monthly_rate=gpu.monthly_rate if gpu else None)

    overrides = {
        field: getattr(args, option)
        for option, field in OVERRIDES.items()
        if getattr(args, option) is not None
    }
    if overrides:
        config = Configuration.from_dict(overrides, base=config)
    return config


def print_presets():
    print("GPU nodes:")
    for gpu in get_gpu_profiles():
        print(f"  {gpu.key}: {gpu.name} ({gpu.vram_gb}GB, ${gpu.monthly_rate:,.0f}/month)")
    print("Models:", ", ".join(list_model_profiles()))
    print("Frameworks:", ", ".join(list_framework_profiles()))
    print("Scenarios:")
    for key in list_scenarios():
        print(f"  {key}: {get_scenario(key).name}")


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="KV cache offload estimator for LLM inference",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # List available presets
  kv-estimator --list-presets

  # Evaluate a named scenario
  kv-estimator --scenario longContext

  # Start from an exported configuration and override a field
  kv-estimator --config kv-cache-config.json --sessions 400

  # Output to file
  kv-estimator --scenario agentic --output metrics.json
        """,
    )

    parser.add_argument(
        "--list-presets",
        action="store_true",
        help="List GPU, model, framework and scenario keys and exit",
    )
    parser.add_argument("--config", help="Path to a configuration JSON document")
    parser.add_argument("--scenario", help="Apply a named workload scenario")
    parser.add_argument("--output", help="Path to output JSON file (default: stdout)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    overrides = parser.add_argument_group("configuration overrides")
    overrides.add_argument("--gpu", help="GPU preset key")
    overrides.add_argument("--llm", help="Model preset key")
    overrides.add_argument("--framework", help="Framework preset key")
    overrides.add_argument("--input-tokens", type=int, help="Input tokens per session")
    overrides.add_argument("--output-tokens", type=int, help="Output tokens per session")
    overrides.add_argument("--sessions", type=int, help="Concurrent sessions")
    overrides.add_argument("--fabric-bandwidth", type=float, help="Storage fabric bandwidth (GB/s)")
    overrides.add_argument("--nas-bandwidth", type=float, help="Standard NAS bandwidth (GB/s)")
    overrides.add_argument("--monthly-rate", type=float, help="Rental price per node per month (USD)")
    overrides.add_argument("--contract-months", type=int, help="Contract length in months")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.list_presets:
        print_presets()
        sys.exit(0)

    try:
        config = build_configuration(args)
        metrics = KVCacheEstimator().estimate_or_raise(config)
    except FileNotFoundError as e:
        print(f"Error: File not found - {e}", file=sys.stderr)
        sys.exit(1)
    except ConfigDocumentError as e:
        print(f"Error: Invalid configuration document - {e}", file=sys.stderr)
        sys.exit(1)
    except InvalidConfigurationError as e:
        print(f"Error: Invalid configuration - {e}", file=sys.stderr)
        sys.exit(1)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    output_data = {
        "configuration": config.to_dict(),
        "metrics": metrics.to_dict(json_safe=True),
        "unbounded_fields": metrics.unbounded_fields(),
    }
    json_output = json.dumps(output_data, indent=2)

    if args.output:
        with open(args.output, "w") as f:
            f.write(json_output)
        print(f"Metrics written to {args.output}")
    else:
        print(json_output)

    # Print summary to stderr
    print("\n=== Summary ===", file=sys.stderr)
    print(
        f"{metrics.model.name} on {metrics.gpu.name} ({metrics.framework.name}), "
        f"{config.concurrent_sessions} sessions x {metrics.total_tokens} tokens",
        file=sys.stderr,
    )
    print(
        f"  VRAM needed: {format_gb(metrics.total_vram_needed_gb)} of "
        f"{format_gb(metrics.physical_vram_gb)} ({format_pct(metrics.utilization_pct)})",
        file=sys.stderr,
    )
    if metrics.is_offloading:
        print(
            f"  Offloading {format_gb(metrics.kv_overflow_gb)}; restore "
            f"{format_duration(metrics.restore_time_fabric_s)} (fabric) vs "
            f"{format_duration(metrics.restore_time_nas_s)} (NAS)",
            file=sys.stderr,
        )
    else:
        print("  KV cache fits in VRAM", file=sys.stderr)
    print(
        f"  Nodes: {metrics.nodes_without_offload} -> {metrics.nodes_with_offload}, "
        f"saving {format_usd(metrics.contract_savings)} over {config.contract_months} months",
        file=sys.stderr,
    )
    if metrics.is_system_overload:
        print("  WARNING: NAS restore time exceeds the SLO threshold", file=sys.stderr)


if __name__ == "__main__":
    main()
