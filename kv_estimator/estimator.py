"""Closed-form KV cache and storage offload estimator.

Converts a Configuration into GPU memory composition, KV cache overflow,
restore latency for the two storage tiers, sustainable swap rate, node
counts and rental savings. The estimator performs no I/O and keeps no state
between calls, so it can be re-run on every configuration change.

Memory model (FP16, 2 bytes per element):

- weights = params * 2 bytes
- engine overhead = weights * (framework multiplier - 1)
- KV cache per session = 2 (K+V) * layers * kv_heads * head_dim * tokens * 2 bytes

The swap-rate and node-count formulas are sales heuristics, not measurements:
when nothing overflows a flat per-session rate is reported for each tier;
when the cache overflows, each offloaded session is assumed to cycle through
a fixed-length session plus one restore.
"""

import logging
import math
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .formatting import round_half_up
from .models import Configuration, FrameworkProfile, GPUProfile, ModelProfile
from .presets import FRAMEWORK_PRESETS, GPU_PRESETS, MODEL_PRESETS

logger = logging.getLogger(__name__)

BYTES_PER_PARAM = 2  # FP16
BILLION = 1e9

# Average active time of a session between swaps, in seconds
AVG_SESSION_SECONDS = 30.0

# Share of sessions kept resident in VRAM when offloading is available
RESIDENT_SESSION_FRACTION = 0.3

# Restore latency on the NAS tier above which the system counts as overloaded
OVERLOAD_THRESHOLD_S = 5.0

# Swaps/hour per session reported when nothing needs to be offloaded
FABRIC_IDLE_SWAPS_PER_SESSION = 120
NAS_IDLE_SWAPS_PER_SESSION = 10


class InvalidConfigurationError(ValueError):
    """Raised when a configuration has invalid fields or references presets that do not exist."""


@dataclass(frozen=True)
class DerivedMetrics:
    """Estimator output for one configuration.

    Sizes are in GB, times in seconds and money in USD. Quantities that have
    no finite value for the given input (e.g. restore time over a tier with
    zero bandwidth) are ``math.inf``; see ``unbounded_fields``.

    Attributes:
        model_weights_gb: Memory for model weights
        engine_overhead_gb: Framework runtime memory above the weights
        total_tokens: Input plus output tokens per session
        kv_per_session_gb: KV cache for one session
        kv_total_gb: KV cache for all concurrent sessions
        total_vram_needed_gb: Weights + overhead + KV cache
        physical_vram_gb: Total VRAM of one node
        available_for_kv_gb: VRAM left for KV cache (negative if weights overflow)
        kv_overflow_gb: KV cache that does not fit in VRAM
        is_offloading: Whether any KV cache must be offloaded
        utilization_pct: VRAM demand as a share of the node, capped at 100
        sessions_in_vram: Sessions whose cache fits without offloading
        restore_time_fabric_s: Time to reload one session from the fabric
        restore_time_nas_s: Time to reload one session from NAS
        swaps_per_hour_fabric: Sustainable session swaps per hour on the fabric
        swaps_per_hour_nas: Sustainable session swaps per hour on NAS
        nodes_without_offload: Nodes needed to hold everything in VRAM
        nodes_with_offload: Nodes needed when the cache can be offloaded
        nodes_avoided: Nodes saved by offloading
        monthly_rental_savings: Rental saved per month
        contract_savings: Rental saved over the contract
        capex_avoidance: Purchase cost avoided
        annual_opex_savings: Hourly-rate cost avoided per year
        throughput_gain_pct: Fabric bandwidth advantage over NAS while offloading
        is_system_overload: Offloading to NAS would breach the restore SLO
    """

    model_weights_gb: float
    engine_overhead_gb: float
    total_tokens: int
    kv_per_session_gb: float
    kv_total_gb: float
    total_vram_needed_gb: float
    physical_vram_gb: float
    available_for_kv_gb: float
    kv_overflow_gb: float
    is_offloading: bool
    utilization_pct: float
    sessions_in_vram: float
    restore_time_fabric_s: float
    restore_time_nas_s: float
    swaps_per_hour_fabric: float
    swaps_per_hour_nas: float
    nodes_without_offload: int
    nodes_with_offload: int
    nodes_avoided: int
    monthly_rental_savings: float
    contract_savings: float
    capex_avoidance: float
    annual_opex_savings: float
    throughput_gain_pct: float
    is_system_overload: bool
    gpu: GPUProfile
    model: ModelProfile
    framework: FrameworkProfile

    def unbounded_fields(self) -> List[str]:
        """Names of numeric fields whose value is infinite."""
        return [
            name
            for name, value in self._numeric_items()
            if isinstance(value, float) and math.isinf(value)
        ]

    def to_dict(self, json_safe: bool = False) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization.

        Args:
            json_safe: Replace infinite values with None so the result can be
                written as strict JSON

        Returns:
            Dictionary of every field, with nested profiles as dictionaries
        """
        result = asdict(self)
        if json_safe:
            for name in self.unbounded_fields():
                result[name] = None
        return result

    def _numeric_items(self) -> List[Tuple[str, Any]]:
        return [
            (name, value)
            for name, value in vars(self).items()
            if isinstance(value, (int, float)) and not isinstance(value, bool)
        ]


class KVCacheEstimator:
    """Estimates VRAM pressure and offload economics for a configuration.

    The constants of the heuristic parts of the model are constructor
    parameters; the defaults reproduce the reference figures.
    """

    def __init__(
        self,
        bytes_per_param: int = BYTES_PER_PARAM,
        avg_session_seconds: float = AVG_SESSION_SECONDS,
        resident_session_fraction: float = RESIDENT_SESSION_FRACTION,
        overload_threshold_s: float = OVERLOAD_THRESHOLD_S,
        fabric_idle_swaps_per_session: int = FABRIC_IDLE_SWAPS_PER_SESSION,
        nas_idle_swaps_per_session: int = NAS_IDLE_SWAPS_PER_SESSION,
        gpus: Optional[Mapping[str, GPUProfile]] = None,
        models: Optional[Mapping[str, ModelProfile]] = None,
        frameworks: Optional[Mapping[str, FrameworkProfile]] = None,
    ):
        """Initialize the estimator.

        Args:
            bytes_per_param: Bytes per weight and per KV element (2 for FP16)
            avg_session_seconds: Average session time used by the swap-rate formula
            resident_session_fraction: Cap on the share of sessions kept in VRAM
                when sizing nodes with offload
            overload_threshold_s: NAS restore time above which the system is overloaded
            fabric_idle_swaps_per_session: Swaps/hour per session on the fabric
                when nothing is offloaded
            nas_idle_swaps_per_session: Swaps/hour per session on NAS when
                nothing is offloaded
            gpus: GPU catalog (defaults to the preloaded presets)
            models: Model catalog (defaults to the preloaded presets)
            frameworks: Framework catalog (defaults to the preloaded presets)
        """
        if avg_session_seconds <= 0:
            raise ValueError("avg_session_seconds must be positive")
        if not 0 <= resident_session_fraction <= 1:
            raise ValueError("resident_session_fraction must be between 0 and 1")

        self.bytes_per_param = bytes_per_param
        self.avg_session_seconds = avg_session_seconds
        self.resident_session_fraction = resident_session_fraction
        self.overload_threshold_s = overload_threshold_s
        self.fabric_idle_swaps_per_session = fabric_idle_swaps_per_session
        self.nas_idle_swaps_per_session = nas_idle_swaps_per_session
        self.gpus = GPU_PRESETS if gpus is None else gpus
        self.models = MODEL_PRESETS if models is None else models
        self.frameworks = FRAMEWORK_PRESETS if frameworks is None else frameworks

    def resolve(
        self, config: Configuration
    ) -> Tuple[Optional[GPUProfile], Optional[ModelProfile], Optional[FrameworkProfile]]:
        """Look up the presets a configuration refers to (None when missing)."""
        gpu = self.gpus.get(config.gpu)
        if gpu is not None and gpu.vram_gb <= 0:
            logger.warning("GPU profile %s has no VRAM; treating it as unresolved", gpu.key)
            gpu = None
        return gpu, self.models.get(config.llm), self.frameworks.get(config.framework)

    def estimate_memory_weights(self, model: ModelProfile) -> float:
        """Estimate memory required for model weights in GB."""
        return model.num_parameters * BILLION * self.bytes_per_param / 1e9

    def estimate_memory_kv_cache(self, model: ModelProfile, total_tokens: int) -> float:
        """Estimate KV cache for a single session in GB.

        Uses ``num_kv_heads`` rather than the attention head count, so
        grouped-query attention models get the smaller cache they actually need.
        """
        kv_bytes = (
            2 * model.num_layers * model.num_kv_heads * model.head_dim
            * total_tokens * self.bytes_per_param
        )
        return kv_bytes / 1e9

    def estimate(self, config: Configuration) -> Optional[DerivedMetrics]:
        """Compute derived metrics for a configuration.

        Args:
            config: Configuration to evaluate

        Returns:
            DerivedMetrics, or None if the configuration fails validation or
            the GPU, model or framework key does not resolve in the catalog
        """
        problems = config.validate()
        if problems:
            logger.warning("Invalid configuration: %s", "; ".join(problems))
            return None

        gpu, model, framework = self.resolve(config)
        if gpu is None or model is None or framework is None:
            return None

        sessions = config.concurrent_sessions

        # VRAM components
        model_weights_gb = self.estimate_memory_weights(model)
        engine_overhead_gb = model_weights_gb * (framework.overhead - 1)
        fixed_gb = model_weights_gb + engine_overhead_gb

        total_tokens = config.input_tokens + config.output_tokens
        kv_per_session_gb = self.estimate_memory_kv_cache(model, total_tokens)
        kv_total_gb = kv_per_session_gb * sessions
        total_vram_needed_gb = fixed_gb + kv_total_gb

        physical_vram_gb = gpu.vram_gb
        available_for_kv_gb = physical_vram_gb - fixed_gb
        kv_overflow_gb = max(0.0, kv_total_gb - available_for_kv_gb)
        is_offloading = kv_overflow_gb > 0
        utilization_pct = min(100.0, total_vram_needed_gb / physical_vram_gb * 100)

        sessions_in_vram = self._sessions_in_vram(available_for_kv_gb, kv_per_session_gb)

        # Restore latency for one session
        restore_time_fabric_s = _transfer_seconds(kv_per_session_gb, config.fabric_bandwidth_gb_s)
        restore_time_nas_s = _transfer_seconds(kv_per_session_gb, config.nas_bandwidth_gb_s)

        if is_offloading:
            offloaded_sessions = sessions - sessions_in_vram
            swaps_per_hour_fabric = self._swaps_per_hour(restore_time_fabric_s) * offloaded_sessions
            swaps_per_hour_nas = self._swaps_per_hour(restore_time_nas_s) * offloaded_sessions
        else:
            swaps_per_hour_fabric = sessions * self.fabric_idle_swaps_per_session
            swaps_per_hour_nas = sessions * self.nas_idle_swaps_per_session

        # Node counts
        nodes_without_offload = math.ceil(total_vram_needed_gb / physical_vram_gb)
        resident_sessions = min(sessions_in_vram, sessions * self.resident_session_fraction)
        nodes_with_offload = math.ceil(
            (fixed_gb + kv_per_session_gb * resident_sessions) / physical_vram_gb
        )
        nodes_avoided = max(0, nodes_without_offload - nodes_with_offload)

        # Economics
        monthly_rental_savings = nodes_avoided * config.monthly_rate
        contract_savings = monthly_rental_savings * config.contract_months
        capex_avoidance = nodes_avoided * gpu.capex
        annual_opex_savings = nodes_avoided * gpu.hourly_rate * 24 * 365

        is_system_overload = is_offloading and restore_time_nas_s > self.overload_threshold_s
        throughput_gain_pct = (
            _bandwidth_gain_pct(config.fabric_bandwidth_gb_s, config.nas_bandwidth_gb_s)
            if is_offloading
            else 0
        )

        metrics = DerivedMetrics(
            model_weights_gb=model_weights_gb,
            engine_overhead_gb=engine_overhead_gb,
            total_tokens=total_tokens,
            kv_per_session_gb=kv_per_session_gb,
            kv_total_gb=kv_total_gb,
            total_vram_needed_gb=total_vram_needed_gb,
            physical_vram_gb=physical_vram_gb,
            available_for_kv_gb=available_for_kv_gb,
            kv_overflow_gb=kv_overflow_gb,
            is_offloading=is_offloading,
            utilization_pct=utilization_pct,
            sessions_in_vram=sessions_in_vram,
            restore_time_fabric_s=restore_time_fabric_s,
            restore_time_nas_s=restore_time_nas_s,
            swaps_per_hour_fabric=swaps_per_hour_fabric,
            swaps_per_hour_nas=swaps_per_hour_nas,
            nodes_without_offload=nodes_without_offload,
            nodes_with_offload=nodes_with_offload,
            nodes_avoided=nodes_avoided,
            monthly_rental_savings=monthly_rental_savings,
            contract_savings=contract_savings,
            capex_avoidance=capex_avoidance,
            annual_opex_savings=annual_opex_savings,
            throughput_gain_pct=throughput_gain_pct,
            is_system_overload=is_system_overload,
            gpu=gpu,
            model=model,
            framework=framework,
        )

        unbounded = metrics.unbounded_fields()
        if unbounded:
            logger.warning("Unbounded estimates for %s: %s", config, ", ".join(unbounded))
        return metrics

    def estimate_or_raise(self, config: Configuration) -> DerivedMetrics:
        """Like ``estimate``, but raise InvalidConfigurationError instead of returning None."""
        problems = config.validate()
        if problems:
            raise InvalidConfigurationError(f"Invalid field(s): {'; '.join(problems)}")
        metrics = self.estimate(config)
        if metrics is None:
            gpu, model, framework = self.resolve(config)
            missing = [
                f"{field} '{key}'"
                for field, key, found in (
                    ("gpu", config.gpu, gpu),
                    ("llm", config.llm, model),
                    ("framework", config.framework, framework),
                )
                if found is None
            ]
            raise InvalidConfigurationError(f"Unknown preset(s): {', '.join(missing)}")
        return metrics

    def _sessions_in_vram(self, available_for_kv_gb: float, kv_per_session_gb: float) -> float:
        if kv_per_session_gb <= 0:
            # Empty sessions: unlimited if any room is left, none otherwise
            return math.inf if available_for_kv_gb >= 0 else 0
        return max(0, math.floor(available_for_kv_gb / kv_per_session_gb))

    def _swaps_per_hour(self, restore_time_s: float) -> int:
        return math.floor(3600 / (self.avg_session_seconds + restore_time_s))


def _transfer_seconds(size_gb: float, bandwidth_gb_s: float) -> float:
    if size_gb <= 0:
        return 0.0
    if bandwidth_gb_s <= 0:
        return math.inf
    return size_gb / bandwidth_gb_s


def _bandwidth_gain_pct(fabric_gb_s: float, nas_gb_s: float) -> float:
    if nas_gb_s > 0:
        return round_half_up((fabric_gb_s / nas_gb_s - 1) * 100)
    # Any fabric bandwidth is infinitely better than none; two dead tiers gain nothing
    return math.inf if fabric_gb_s > 0 else 0


_default_estimator = KVCacheEstimator()


def compute_physics(config: Configuration) -> Optional[DerivedMetrics]:
    """Estimate a configuration against the preloaded catalog with default constants."""
    return _default_estimator.estimate(config)
