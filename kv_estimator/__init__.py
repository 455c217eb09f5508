"""KV Cache Estimator - GPU memory and storage offload calculator for LLM inference."""

from .config_store import ConfigDocumentError, ConfigStore, export_config, import_config
from .estimator import (
    DerivedMetrics,
    InvalidConfigurationError,
    KVCacheEstimator,
    compute_physics,
)
from .models import Configuration, FrameworkProfile, GPUProfile, ModelProfile, Scenario
from .presets import (
    get_framework_profile,
    get_gpu_profile,
    get_gpu_profiles,
    get_model_profile,
    get_scenario,
    list_framework_profiles,
    list_gpu_profiles,
    list_model_profiles,
    list_scenarios,
)

__version__ = "0.1.0"

__all__ = [
    "Configuration",
    "GPUProfile",
    "ModelProfile",
    "FrameworkProfile",
    "Scenario",
    "KVCacheEstimator",
    "DerivedMetrics",
    "InvalidConfigurationError",
    "compute_physics",
    "ConfigStore",
    "ConfigDocumentError",
    "export_config",
    "import_config",
    "get_gpu_profile",
    "get_gpu_profiles",
    "get_model_profile",
    "get_framework_profile",
    "get_scenario",
    "list_gpu_profiles",
    "list_model_profiles",
    "list_framework_profiles",
    "list_scenarios",
]
