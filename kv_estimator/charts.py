"""Tabular chart data for the dashboard, built as pandas DataFrames."""

import pandas as pd

from .estimator import DerivedMetrics
from .formatting import round_half_up
from .models import Configuration

# Estimated monthly cost of the storage fabric, for the payback chart
FABRIC_MONTHLY_COST = 8000


def vram_breakdown_frame(metrics: DerivedMetrics) -> pd.DataFrame:
    """Single-row breakdown of node VRAM for a stacked bar chart.

    KV cache is split into the part that fits and the overflow; the remaining
    headroom is reported as "Available".
    """
    kv_fits = max(0.0, min(metrics.kv_total_gb, metrics.available_for_kv_gb))
    row = {
        "Model Weights": metrics.model_weights_gb,
        "Engine Overhead": metrics.engine_overhead_gb,
        "KV Cache (fits)": kv_fits,
        "KV Overflow": metrics.kv_overflow_gb,
        "Available": max(0.0, metrics.physical_vram_gb - metrics.total_vram_needed_gb),
    }
    return pd.DataFrame([row], index=["Current Config"]).round(1)


def swap_rate_frame(metrics: DerivedMetrics, config: Configuration) -> pd.DataFrame:
    """Sustainable swaps/hour for each storage tier."""
    return pd.DataFrame(
        {
            "Swaps/hour": [
                round_half_up(metrics.swaps_per_hour_nas),
                round_half_up(metrics.swaps_per_hour_fabric),
            ],
            "Bandwidth (GB/s)": [config.nas_bandwidth_gb_s, config.fabric_bandwidth_gb_s],
        },
        index=[
            f"Standard NAS ({config.nas_bandwidth_gb_s:g} GB/s)",
            f"Storage Fabric ({config.fabric_bandwidth_gb_s:g} GB/s)",
        ],
    )


def session_scale_frame(
    metrics: DerivedMetrics, config: Configuration, points: int = 10
) -> pd.DataFrame:
    """KV cache demand as concurrency ramps from 10% to 100% of the configured sessions.

    Args:
        metrics: Estimate for the configuration
        config: Configuration the estimate was computed for
        points: Number of evenly spaced steps

    Returns:
        DataFrame indexed by session count with KV cache, VRAM ceiling and
        overflow columns
    """
    rows = []
    for step in range(1, points + 1):
        sessions = round_half_up(config.concurrent_sessions * step / points)
        kv_gb = metrics.kv_per_session_gb * sessions
        rows.append(
            {
                "Sessions": sessions,
                "KV Cache (GB)": kv_gb,
                "VRAM Ceiling": metrics.physical_vram_gb,
                "Overflow (offloaded)": max(0.0, kv_gb - metrics.available_for_kv_gb),
            }
        )
    return pd.DataFrame(rows).set_index("Sessions").round(1)


def savings_timeline_frame(
    metrics: DerivedMetrics, months: int = 12, fabric_monthly_cost: float = FABRIC_MONTHLY_COST
) -> pd.DataFrame:
    """Cumulative rental savings against the estimated cumulative fabric cost."""
    month_numbers = range(1, months + 1)
    return pd.DataFrame(
        {
            "Cumulative Rental Savings": [
                round_half_up(metrics.monthly_rental_savings * m) for m in month_numbers
            ],
            "Cumulative Fabric Cost (est.)": [round_half_up(fabric_monthly_cost * m) for m in month_numbers],
        },
        index=[f"M{m}" for m in month_numbers],
    )
