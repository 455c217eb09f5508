"""Unit tests for data models."""

import dataclasses

import pytest

from kv_estimator.models import Configuration, GPUProfile
from kv_estimator.presets import get_scenario


def test_configuration_defaults():
    """Test the default configuration."""
    config = Configuration()

    assert config.gpu == "H100_SXM5"
    assert config.llm == "llama3_70b"
    assert config.framework == "vllm"
    assert config.input_tokens == 8000
    assert config.output_tokens == 1500
    assert config.concurrent_sessions == 200
    assert config.fabric_bandwidth_gb_s == 200.0
    assert config.nas_bandwidth_gb_s == 10.0
    assert config.monthly_rate == 85000.0
    assert config.contract_months == 12
    assert config.validate() == []


def test_validate_reports_negative_fields():
    config = Configuration(concurrent_sessions=-1, nas_bandwidth_gb_s=-5.0)
    problems = config.validate()

    assert len(problems) == 2
    assert any("concurrent_sessions" in p for p in problems)
    assert any("nas_bandwidth_gb_s" in p for p in problems)


def test_from_dict_merges_over_base():
    """Test shallow merge keeps base fields that the document omits."""
    base = Configuration(concurrent_sessions=50)
    config = Configuration.from_dict({"input_tokens": 32000, "gpu": "H200_SXM5"}, base=base)

    assert config.input_tokens == 32000
    assert config.gpu == "H200_SXM5"
    assert config.concurrent_sessions == 50
    # Base is not mutated
    assert base.input_tokens == 8000
    assert base.gpu == "H100_SXM5"


def test_from_dict_ignores_unknown_fields():
    config = Configuration.from_dict({"configMode": "node", "theme": "dark"})
    assert config == Configuration()


def test_from_dict_accepts_browser_field_names():
    """Documents exported by the browser tool use camelCase names."""
    config = Configuration.from_dict(
        {
            "inputTokens": 16000,
            "outputTokens": 4000,
            "concurrentSessions": 100,
            "ddnBandwidth": 250,
            "nasBandwidth": 20,
            "monthlyRate": 130000,
            "contractMonths": 24,
            "llm": "llama3_405b",
        }
    )

    assert config.input_tokens == 16000
    assert config.output_tokens == 4000
    assert config.concurrent_sessions == 100
    assert config.fabric_bandwidth_gb_s == 250.0
    assert config.nas_bandwidth_gb_s == 20.0
    assert config.monthly_rate == 130000.0
    assert config.contract_months == 24
    assert config.llm == "llama3_405b"


def test_from_dict_coerces_integral_floats():
    config = Configuration.from_dict({"concurrent_sessions": 300.0, "monthly_rate": 5000})

    assert config.concurrent_sessions == 300
    assert isinstance(config.concurrent_sessions, int)
    assert isinstance(config.monthly_rate, float)


@pytest.mark.parametrize(
    "document",
    [
        {"concurrent_sessions": "many"},
        {"concurrent_sessions": True},
        {"concurrent_sessions": -10},
        {"input_tokens": 12.5},
        {"nas_bandwidth_gb_s": float("inf")},
        {"gpu": 7},
        {"monthly_rate": None},
    ],
)
def test_from_dict_rejects_malformed_fields(document):
    with pytest.raises(ValueError):
        Configuration.from_dict(document)


def test_from_dict_rejects_non_mapping():
    with pytest.raises(ValueError) as exc_info:
        Configuration.from_dict(["gpu", "H100_SXM5"])
    assert "must be an object" in str(exc_info.value)


def test_to_dict_round_trip():
    config = Configuration(gpu="L40S_8x", concurrent_sessions=42, fabric_bandwidth_gb_s=150.0)
    assert Configuration.from_dict(config.to_dict()) == config


def test_with_scenario():
    """Test applying a scenario populates workload and presets."""
    base = Configuration(fabric_bandwidth_gb_s=300.0, contract_months=36)
    config = base.with_scenario(get_scenario("agentic"), monthly_rate=130000)

    assert config.input_tokens == 16000
    assert config.output_tokens == 4000
    assert config.concurrent_sessions == 100
    assert config.gpu == "H200_SXM5"
    assert config.llm == "llama3_405b"
    assert config.framework == "vllm"
    assert config.monthly_rate == 130000
    # Storage and contract settings are kept
    assert config.fabric_bandwidth_gb_s == 300.0
    assert config.contract_months == 36
    assert base.gpu == "H100_SXM5"


def test_with_scenario_keeps_rate_when_not_given():
    config = Configuration(monthly_rate=1234.0).with_scenario(get_scenario("longContext"))
    assert config.monthly_rate == 1234.0


def test_profiles_are_immutable():
    gpu = GPUProfile("X", "Test node", 80, 1.0, 1000, 500, "X")
    with pytest.raises(dataclasses.FrozenInstanceError):
        gpu.vram_gb = 160


def test_from_dict_rejects_integer_beyond_float_range():
    with pytest.raises(ValueError) as exc_info:
        Configuration.from_dict({"concurrent_sessions": 10**400})
    assert "finite" in str(exc_info.value)


def test_validate_reports_non_finite_fields():
    problems = Configuration(fabric_bandwidth_gb_s=float("nan")).validate()
    assert problems == ["fabric_bandwidth_gb_s must be finite, got nan"]
