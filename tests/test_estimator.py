"""Unit tests for the KV cache estimator."""

import math

import pytest

from kv_estimator.estimator import (
    InvalidConfigurationError,
    KVCacheEstimator,
    compute_physics,
)
from kv_estimator.models import Configuration, FrameworkProfile
from kv_estimator.presets import SCENARIOS, get_gpu_profile, get_model_profile, get_scenario


@pytest.fixture
def estimator():
    return KVCacheEstimator()


@pytest.fixture
def long_context_config():
    """Long-context scenario on the default configuration."""
    return Configuration().with_scenario(get_scenario("longContext"), monthly_rate=85000)


@pytest.fixture
def bare_estimator():
    """Estimator with a zero-overhead framework added to the catalog."""
    return KVCacheEstimator(
        frameworks={"bare": FrameworkProfile("bare", "Bare runtime", 1.0)},
    )


def test_estimator_initialization():
    """Test estimator defaults."""
    estimator = KVCacheEstimator()
    assert estimator.bytes_per_param == 2
    assert estimator.avg_session_seconds == 30
    assert estimator.resident_session_fraction == 0.3
    assert estimator.overload_threshold_s == 5.0


def test_estimator_rejects_bad_constants():
    with pytest.raises(ValueError):
        KVCacheEstimator(avg_session_seconds=0)
    with pytest.raises(ValueError):
        KVCacheEstimator(resident_session_fraction=1.5)


def test_estimate_memory_weights(estimator):
    """70B parameters * 2 bytes = 140 GB."""
    assert estimator.estimate_memory_weights(get_model_profile("llama3_70b")) == pytest.approx(140.0)


def test_estimate_memory_kv_cache_uses_kv_heads(estimator):
    """Test KV cache with Grouped Query Attention (8 KV heads, not 64)."""
    model = get_model_profile("llama3_70b")
    kv_gb = estimator.estimate_memory_kv_cache(model, 34000)

    # 2 * 80 layers * 8 kv heads * 128 dim * 34000 tokens * 2 bytes
    assert kv_gb == pytest.approx(2 * 80 * 8 * 128 * 34000 * 2 / 1e9)
    assert kv_gb == pytest.approx(11.14112)


def test_long_context_scenario(estimator, long_context_config):
    """Test the long-context scenario end to end."""
    metrics = estimator.estimate(long_context_config)

    assert metrics is not None
    assert metrics.gpu.key == "H100_SXM5"
    assert metrics.model.key == "llama3_70b"
    assert metrics.framework.key == "vllm"

    assert metrics.model_weights_gb == pytest.approx(140.0)
    assert metrics.engine_overhead_gb == pytest.approx(21.0)
    assert metrics.total_tokens == 34000
    assert metrics.kv_per_session_gb == pytest.approx(11.14112)
    assert metrics.kv_total_gb == pytest.approx(557.056)
    assert metrics.total_vram_needed_gb == pytest.approx(718.056)
    assert metrics.available_for_kv_gb == pytest.approx(479.0)
    assert metrics.kv_overflow_gb == pytest.approx(78.056)
    assert metrics.is_offloading is True
    assert metrics.utilization_pct == 100.0
    assert metrics.sessions_in_vram == 42

    assert metrics.restore_time_fabric_s == pytest.approx(0.0557056)
    assert metrics.restore_time_nas_s == pytest.approx(1.114112)
    # floor(3600 / 30.0557) * 8 offloaded sessions
    assert metrics.swaps_per_hour_fabric == 119 * 8
    assert metrics.swaps_per_hour_nas == 115 * 8

    assert metrics.nodes_without_offload == 2
    assert metrics.nodes_with_offload == 1
    assert metrics.nodes_avoided == 1
    assert metrics.monthly_rental_savings == 85000
    assert metrics.contract_savings == 85000 * 12
    assert metrics.capex_avoidance == 400000
    assert metrics.annual_opex_savings == 32 * 24 * 365

    assert metrics.is_system_overload is False
    assert metrics.throughput_gain_pct == 1900


def test_small_model_fits_in_single_gpu(bare_estimator):
    """8B model, 10 sessions of 5000 tokens on one 80GB GPU."""
    config = Configuration(
        gpu="H100_SXM5_single",
        llm="llama3_8b",
        framework="bare",
        input_tokens=4000,
        output_tokens=1000,
        concurrent_sessions=10,
    )
    metrics = bare_estimator.estimate(config)

    assert metrics.model_weights_gb == pytest.approx(16.0)
    assert metrics.engine_overhead_gb == 0
    assert metrics.kv_per_session_gb == pytest.approx(2 * 32 * 8 * 128 * 5000 * 2 / 1e9)
    assert metrics.kv_total_gb == pytest.approx(6.5536)
    assert metrics.total_vram_needed_gb == pytest.approx(22.5536)
    assert metrics.is_offloading is False
    assert metrics.kv_overflow_gb == 0
    assert metrics.sessions_in_vram == 97

    # Flat per-session rates when nothing is offloaded
    assert metrics.swaps_per_hour_fabric == 10 * 120
    assert metrics.swaps_per_hour_nas == 10 * 10
    assert metrics.throughput_gain_pct == 0
    assert metrics.nodes_avoided == 0
    assert metrics.monthly_rental_savings == 0


def test_unknown_preset_returns_none(estimator):
    """Test that an unresolved key yields no result."""
    assert estimator.estimate(Configuration(gpu="B200")) is None
    assert estimator.estimate(Configuration(llm="gpt-5")) is None
    assert estimator.estimate(Configuration(framework="sglang")) is None


def test_estimate_or_raise_names_missing_keys(estimator):
    with pytest.raises(InvalidConfigurationError) as exc_info:
        estimator.estimate_or_raise(Configuration(gpu="B200", framework="sglang"))

    message = str(exc_info.value)
    assert "gpu 'B200'" in message
    assert "framework 'sglang'" in message
    assert "llm" not in message


def test_gpu_without_vram_is_invalid():
    from kv_estimator.models import GPUProfile

    estimator = KVCacheEstimator(gpus={"empty": GPUProfile("empty", "Empty", 0, 1, 1, 1, "none")})
    assert estimator.estimate(Configuration(gpu="empty")) is None


def test_compute_physics_uses_default_catalog(long_context_config):
    metrics = compute_physics(long_context_config)
    assert metrics is not None
    assert metrics.kv_per_session_gb == pytest.approx(11.14112)


def test_weights_exceed_vram():
    """A model larger than the node overflows for any session count."""
    config = Configuration(gpu="H100_SXM5_single", llm="llama3_405b", concurrent_sessions=1)
    metrics = KVCacheEstimator().estimate(config)

    assert metrics.available_for_kv_gb < 0
    assert metrics.sessions_in_vram == 0
    assert metrics.is_offloading is True
    assert metrics.utilization_pct == 100.0


def test_system_overload_on_slow_nas(estimator, long_context_config):
    """Restore over 5 s on NAS flags an overload."""
    config = Configuration.from_dict({"nas_bandwidth_gb_s": 1.0}, base=long_context_config)
    metrics = estimator.estimate(config)

    assert metrics.restore_time_nas_s == pytest.approx(11.14112)
    assert metrics.is_system_overload is True


def test_overload_threshold_is_configurable(long_context_config):
    metrics = KVCacheEstimator(overload_threshold_s=1.0).estimate(long_context_config)
    assert metrics.is_system_overload is True


def test_zero_bandwidth_is_unbounded(estimator, long_context_config):
    """Zero NAS bandwidth yields infinite restore time instead of an error."""
    config = Configuration.from_dict({"nas_bandwidth_gb_s": 0}, base=long_context_config)
    metrics = estimator.estimate(config)

    assert math.isinf(metrics.restore_time_nas_s)
    assert math.isinf(metrics.throughput_gain_pct)
    assert metrics.swaps_per_hour_nas == 0
    assert metrics.is_system_overload is True
    assert "restore_time_nas_s" in metrics.unbounded_fields()
    assert "restore_time_fabric_s" not in metrics.unbounded_fields()

    as_json = metrics.to_dict(json_safe=True)
    assert as_json["restore_time_nas_s"] is None
    assert as_json["restore_time_fabric_s"] == pytest.approx(0.0557056)


def test_zero_tokens(estimator):
    """Empty sessions need no cache and never offload."""
    config = Configuration(input_tokens=0, output_tokens=0)
    metrics = estimator.estimate(config)

    assert metrics.kv_per_session_gb == 0
    assert metrics.restore_time_fabric_s == 0
    assert metrics.is_offloading is False
    assert math.isinf(metrics.sessions_in_vram)
    assert metrics.unbounded_fields() == ["sessions_in_vram"]
    assert metrics.nodes_with_offload == 1


@pytest.mark.parametrize("fraction", [0.0, 0.3, 1.0])
def test_resident_session_fraction(fraction):
    """Nodes with offload hold weights plus a capped share of resident sessions."""
    config = Configuration().with_scenario(get_scenario("highConcurrency"))
    metrics = KVCacheEstimator(resident_session_fraction=fraction).estimate(config)

    assert metrics.sessions_in_vram == 283
    resident = min(283, 500 * fraction)
    expected = math.ceil((175 + metrics.kv_per_session_gb * resident) / 640)
    assert metrics.nodes_with_offload == expected


@pytest.mark.parametrize("key", list(SCENARIOS))
def test_scenario_replay(estimator, key):
    """Each scenario resolves to its own presets and keeps the invariants."""
    scenario = SCENARIOS[key]
    config = Configuration().with_scenario(
        scenario, monthly_rate=get_gpu_profile(scenario.gpu).monthly_rate
    )
    metrics = estimator.estimate(config)

    assert metrics.gpu.key == scenario.gpu
    assert metrics.model.key == scenario.llm
    assert metrics.framework.key == scenario.framework
    assert metrics.total_tokens == scenario.input_tokens + scenario.output_tokens
    assert metrics.kv_total_gb == metrics.kv_per_session_gb * scenario.concurrent_sessions
    assert metrics.is_offloading == (metrics.kv_overflow_gb > 0)
    assert 0 <= metrics.utilization_pct <= 100
    assert metrics.nodes_avoided == max(0, metrics.nodes_without_offload - metrics.nodes_with_offload)


@pytest.mark.parametrize("sessions", [1, 10, 43, 200, 2000, 100000])
def test_invariants_hold_across_sessions(estimator, sessions):
    config = Configuration(concurrent_sessions=sessions)
    metrics = estimator.estimate(config)

    assert metrics.kv_total_gb == metrics.kv_per_session_gb * sessions
    assert 0 <= metrics.utilization_pct <= 100
    assert metrics.is_offloading == (metrics.kv_overflow_gb > 0)
    if metrics.kv_total_gb <= metrics.available_for_kv_gb:
        assert metrics.kv_overflow_gb == 0
    assert metrics.nodes_avoided >= 0


def test_monotonic_in_sessions(estimator):
    """More sessions never reduce cache, overflow or node count."""
    previous = None
    for sessions in range(1, 1001, 25):
        metrics = estimator.estimate(Configuration(concurrent_sessions=sessions))
        if previous is not None:
            assert metrics.kv_total_gb >= previous.kv_total_gb
            assert metrics.kv_overflow_gb >= previous.kv_overflow_gb
            assert metrics.nodes_without_offload >= previous.nodes_without_offload
        previous = metrics


def test_estimate_has_no_memory_of_previous_calls(estimator, long_context_config):
    first = estimator.estimate(long_context_config)
    estimator.estimate(Configuration(concurrent_sessions=5))
    assert estimator.estimate(long_context_config) == first


def test_invalid_configuration_returns_none(estimator, caplog):
    """Negative fields are rejected rather than producing a misleading estimate."""
    config = Configuration(input_tokens=-20000)

    with caplog.at_level("WARNING"):
        assert estimator.estimate(config) is None
    assert "input_tokens must be non-negative" in caplog.text


def test_estimate_or_raise_reports_invalid_fields(estimator):
    with pytest.raises(InvalidConfigurationError) as exc_info:
        estimator.estimate_or_raise(Configuration(input_tokens=-20000, monthly_rate=-1.0))

    message = str(exc_info.value)
    assert "input_tokens must be non-negative" in message
    assert "monthly_rate must be non-negative" in message
