#!/usr/bin/env python3
"""Example: Basic KV cache estimate using the Python API."""

from kv_estimator import Configuration, KVCacheEstimator
from kv_estimator.formatting import format_duration, format_gb, format_pct, format_usd


def main():
    """Run basic KV cache estimate example."""

    # 32 long-context analyst sessions on an 8x H100 node
    config = Configuration(
        gpu="H100_SXM5",
        llm="llama3_70b",
        framework="vllm",
        input_tokens=32000,
        output_tokens=2000,
        concurrent_sessions=32,
    )

    print("=" * 60)
    print("KV Cache Estimate Example")
    print("=" * 60)

    metrics = KVCacheEstimator().estimate_or_raise(config)

    print(f"\nModel: {metrics.model.name}")
    print(f"Node: {metrics.gpu.name}")
    print(f"Framework: {metrics.framework.name}")

    print("\nVRAM:")
    print(f"  Weights: {format_gb(metrics.model_weights_gb)}")
    print(f"  Engine overhead: {format_gb(metrics.engine_overhead_gb)}")
    print(f"  KV cache per session: {format_gb(metrics.kv_per_session_gb)}")
    print(f"  KV cache total: {format_gb(metrics.kv_total_gb)}")
    print(f"  Utilization: {format_pct(metrics.utilization_pct)}")

    if metrics.is_offloading:
        print(f"\nOffloading {format_gb(metrics.kv_overflow_gb)} of KV cache")
        print(f"  Restore (fabric): {format_duration(metrics.restore_time_fabric_s)}")
        print(f"  Restore (NAS): {format_duration(metrics.restore_time_nas_s)}")
    else:
        print("\nKV cache fits in VRAM")

    print("\nEconomics:")
    print(f"  Nodes without offload: {metrics.nodes_without_offload}")
    print(f"  Nodes with offload: {metrics.nodes_with_offload}")
    print(f"  Contract savings: {format_usd(metrics.contract_savings)}")


if __name__ == "__main__":
    main()
