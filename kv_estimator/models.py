"""Data models for hardware presets, model architectures and configurations."""

from __future__ import annotations

import math
import numbers
from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Dict, List, Mapping, Optional


@dataclass(frozen=True)
class GPUProfile:
    """Represents a rentable GPU server node.

    Attributes:
        key: Stable catalog identifier (e.g., "H100_SXM5")
        name: Display name of the node
        vram_gb: Total GPU memory across the node in GB
        hourly_rate: Rental cost per node-hour in USD
        capex: Purchase cost of the node in USD
        monthly_rate: Rental cost per node-month in USD
        label: Short device-type label
    """
    key: str
    name: str
    vram_gb: float
    hourly_rate: float
    capex: float
    monthly_rate: float
    label: str


@dataclass(frozen=True)
class ModelProfile:
    """Represents a language model's architecture.

    Only ``num_layers``, ``num_kv_heads`` and ``head_dim`` feed the KV cache
    size; ``num_parameters`` feeds the weight footprint.

    Attributes:
        key: Stable catalog identifier (e.g., "llama3_70b")
        name: Display name
        num_parameters: Total number of parameters in billions
        num_layers: Number of transformer layers
        num_attention_heads: Number of attention (query) heads
        num_kv_heads: Number of key-value heads (GQA/MQA)
        head_dim: Dimension of each attention head
    """
    key: str
    name: str
    num_parameters: float
    num_layers: int
    num_attention_heads: int
    num_kv_heads: int
    head_dim: int


@dataclass(frozen=True)
class FrameworkProfile:
    """Represents an inference-serving framework.

    Attributes:
        key: Stable catalog identifier (e.g., "vllm")
        name: Display name
        overhead: Runtime memory multiplier over model weights (>= 1.0)
        description: Short description
    """
    key: str
    name: str
    overhead: float
    description: str = ""


@dataclass(frozen=True)
class Scenario:
    """A named workload bundle used to populate a configuration."""
    key: str
    name: str
    icon: str
    description: str
    input_tokens: int
    output_tokens: int
    concurrent_sessions: int
    gpu: str
    llm: str
    framework: str


# Field names written by the original browser tool, mapped to ours
FIELD_ALIASES = {
    "inputTokens": "input_tokens",
    "outputTokens": "output_tokens",
    "concurrentSessions": "concurrent_sessions",
    "ddnBandwidth": "fabric_bandwidth_gb_s",
    "fabricBandwidth": "fabric_bandwidth_gb_s",
    "nasBandwidth": "nas_bandwidth_gb_s",
    "monthlyRate": "monthly_rate",
    "contractMonths": "contract_months",
}

_KEY_FIELDS = ("gpu", "llm", "framework")
_INT_FIELDS = ("input_tokens", "output_tokens", "concurrent_sessions", "contract_months")
_FLOAT_FIELDS = ("fabric_bandwidth_gb_s", "nas_bandwidth_gb_s", "monthly_rate")


@dataclass
class Configuration:
    """User-tunable input to the estimator.

    Attributes:
        gpu: GPU preset key
        llm: Model preset key
        framework: Framework preset key
        input_tokens: Prompt/context tokens per session
        output_tokens: Generated tokens per session
        concurrent_sessions: Number of simultaneous sessions
        fabric_bandwidth_gb_s: Read bandwidth of the fast storage fabric (GB/s)
        nas_bandwidth_gb_s: Read bandwidth of the baseline NAS (GB/s)
        monthly_rate: Quoted rental price per node per month (USD)
        contract_months: Contract length in months
    """
    gpu: str = "H100_SXM5"
    llm: str = "llama3_70b"
    framework: str = "vllm"
    input_tokens: int = 8000
    output_tokens: int = 1500
    concurrent_sessions: int = 200
    fabric_bandwidth_gb_s: float = 200.0
    nas_bandwidth_gb_s: float = 10.0
    monthly_rate: float = 85000.0
    contract_months: int = 12

    def validate(self) -> List[str]:
        """Return a list of invariant violations (empty when valid)."""
        problems = []
        for name in _KEY_FIELDS:
            if not isinstance(getattr(self, name), str):
                problems.append(f"{name} must be a string preset key")
        for name in _INT_FIELDS + _FLOAT_FIELDS:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, numbers.Real):
                problems.append(f"{name} must be a number, got {value!r}")
            elif isinstance(value, float) and not math.isfinite(value):
                problems.append(f"{name} must be finite, got {value}")
            elif value < 0:
                problems.append(f"{name} must be non-negative, got {value}")
        return problems

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)

    @classmethod
    def field_names(cls) -> List[str]:
        return [f.name for f in fields(cls)]

    @classmethod
    def from_dict(
        cls, data: Mapping[str, Any], base: Optional[Configuration] = None
    ) -> Configuration:
        """Shallow-merge a document over a base configuration.

        Unknown fields are ignored. Numeric fields accept ints, floats and
        integral floats; anything else (or a negative value) is rejected.

        Args:
            data: Parsed document
            base: Configuration to merge over (defaults if None)

        Returns:
            A new Configuration; ``base`` is left untouched

        Raises:
            ValueError: If the document is not a mapping or a field is malformed
        """
        if not isinstance(data, Mapping):
            raise ValueError(f"Configuration document must be an object, got {type(data).__name__}")

        known = set(cls.field_names())
        updates: Dict[str, Any] = {}
        for raw_key, value in data.items():
            key = FIELD_ALIASES.get(raw_key, raw_key)
            if key not in known:
                continue
            updates[key] = _coerce_field(key, value)

        return replace(base if base is not None else cls(), **updates)

    def with_scenario(self, scenario: Scenario, monthly_rate: Optional[float] = None) -> Configuration:
        """Return a copy populated from a scenario.

        Bandwidths and contract length are kept. ``monthly_rate`` should be the
        scenario GPU's rate; the current rate is kept if it is None.
        """
        return replace(
            self,
            input_tokens=scenario.input_tokens,
            output_tokens=scenario.output_tokens,
            concurrent_sessions=scenario.concurrent_sessions,
            gpu=scenario.gpu,
            llm=scenario.llm,
            framework=scenario.framework,
            monthly_rate=self.monthly_rate if monthly_rate is None else monthly_rate,
        )


def _coerce_field(name: str, value: Any) -> Any:
    if name in _KEY_FIELDS:
        if not isinstance(value, str):
            raise ValueError(f"{name} must be a string, got {value!r}")
        return value

    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise ValueError(f"{name} must be a number, got {value!r}")
    try:
        finite = math.isfinite(value)
    except OverflowError:
        finite = False
    if not finite:
        raise ValueError(f"{name} must be a finite number in floating-point range")
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")

    if name in _INT_FIELDS:
        if float(value) != int(value):
            raise ValueError(f"{name} must be a whole number, got {value}")
        return int(value)
    return float(value)
