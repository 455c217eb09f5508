"""Preloaded catalog of GPU nodes, model architectures, frameworks and scenarios.

Every table is a read-only mapping keyed by a stable identifier. Lookups
return ``None`` for an unknown key so callers can treat a missing preset as
an invalid configuration rather than a crash.
"""

from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional

from .models import FrameworkProfile, GPUProfile, ModelProfile, Scenario


def _index(items) -> Mapping:
    return MappingProxyType({item.key: item for item in items})


GPU_PRESETS: Mapping[str, GPUProfile] = _index([
    GPUProfile("H100_SXM5", "H100 SXM5 (8× node)", 640, 32, 400000, 85000, "H100 SXM5 8×GPU"),
    GPUProfile("H200_SXM5", "H200 SXM5 (8× node)", 1128, 48, 600000, 130000, "H200 SXM5 8×GPU"),
    GPUProfile("A100_SXM4", "A100 SXM4 (8× node)", 640, 20, 280000, 55000, "A100 SXM4 8×GPU"),
    GPUProfile("L40S_8x", "L40S (8× node)", 384, 12, 160000, 32000, "L40S 8×GPU"),
    GPUProfile("H100_SXM5_single", "H100 SXM5 (single GPU)", 80, 4, 50000, 10625, "H100 SXM5"),
    GPUProfile("A100_SXM4_single", "A100 SXM4 (single GPU)", 80, 2.5, 35000, 6875, "A100 SXM4"),
    GPUProfile("L40S_single", "L40S (single GPU)", 48, 1.5, 20000, 4000, "L40S"),
])

MODEL_PRESETS: Mapping[str, ModelProfile] = _index([
    ModelProfile("llama3_8b", "Llama 3 8B", 8, 32, 32, 8, 128),
    ModelProfile("llama3_70b", "Llama 3 70B", 70, 80, 64, 8, 128),
    ModelProfile("llama3_405b", "Llama 3 405B", 405, 126, 128, 8, 128),
    ModelProfile("mixtral_8x7b", "Mixtral 8×7B", 47, 32, 32, 8, 128),
    ModelProfile("mixtral_8x22b", "Mixtral 8×22B", 141, 56, 48, 8, 128),
])

FRAMEWORK_PRESETS: Mapping[str, FrameworkProfile] = _index([
    FrameworkProfile("vllm", "vLLM", 1.15, "PagedAttention, open source"),
    FrameworkProfile("tensorrt", "TensorRT-LLM", 1.25, "NVIDIA optimized, lower latency"),
])

SCENARIOS: Mapping[str, Scenario] = _index([
    Scenario(
        key="longContext",
        name="Long-Context Document Processing",
        icon="📄",
        description="Extended-context inference over large documents: legal, medical, financial filings",
        input_tokens=32000,
        output_tokens=2000,
        concurrent_sessions=50,
        gpu="H100_SXM5",
        llm="llama3_70b",
        framework="vllm",
    ),
    Scenario(
        key="highConcurrency",
        name="High-Concurrency Enterprise AI",
        icon="🏢",
        description="Customer-facing production deployments: chatbots, copilots, service automation",
        input_tokens=4000,
        output_tokens=1000,
        concurrent_sessions=500,
        gpu="H100_SXM5",
        llm="llama3_70b",
        framework="tensorrt",
    ),
    Scenario(
        key="capitalMarkets",
        name="Capital Markets & Quant Research",
        icon="📈",
        description="News and earnings summarization, RAG over filings, analyst copilots; latency SLO critical",
        input_tokens=8000,
        output_tokens=1500,
        concurrent_sessions=200,
        gpu="H100_SXM5",
        llm="llama3_70b",
        framework="tensorrt",
    ),
    Scenario(
        key="agentic",
        name="Agentic & Multi-Step Reasoning",
        icon="🤖",
        description="Multi-turn reasoning chains and RAG pipelines with high KV cache reuse across turns",
        input_tokens=16000,
        output_tokens=4000,
        concurrent_sessions=100,
        gpu="H200_SXM5",
        llm="llama3_405b",
        framework="vllm",
    ),
])


def get_gpu_profile(key: str) -> Optional[GPUProfile]:
    """Get a GPU node profile by key, or None if it is not in the catalog."""
    return GPU_PRESETS.get(key)


def get_model_profile(key: str) -> Optional[ModelProfile]:
    """Get a model architecture by key, or None if it is not in the catalog."""
    return MODEL_PRESETS.get(key)


def get_framework_profile(key: str) -> Optional[FrameworkProfile]:
    """Get a serving framework by key, or None if it is not in the catalog."""
    return FRAMEWORK_PRESETS.get(key)


def get_scenario(key: str) -> Optional[Scenario]:
    """Get a workload scenario by key, or None if it is not in the catalog."""
    return SCENARIOS.get(key)


def list_gpu_profiles() -> List[str]:
    return list(GPU_PRESETS)


def list_model_profiles() -> List[str]:
    return list(MODEL_PRESETS)


def list_framework_profiles() -> List[str]:
    return list(FRAMEWORK_PRESETS)


def list_scenarios() -> List[str]:
    return list(SCENARIOS)


def get_gpu_profiles(keys: Optional[Iterable[str]] = None) -> List[GPUProfile]:
    """Get GPU node profiles for the given keys.

    Args:
        keys: Catalog keys to fetch (all profiles if None)

    Returns:
        List of GPUProfile objects in the requested order

    Raises:
        ValueError: If any key is not in the catalog
    """
    if keys is None:
        return list(GPU_PRESETS.values())

    profiles = []
    for key in keys:
        profile = get_gpu_profile(key)
        if profile is None:
            raise ValueError(
                f"GPU '{key}' not found in library. "
                f"Available GPUs: {', '.join(list_gpu_profiles())}"
            )
        profiles.append(profile)
    return profiles
