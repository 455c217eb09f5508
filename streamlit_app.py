#!/usr/bin/env python3
"""Streamlit UI for the KV Cache Estimator.

This application lets a seller pick a workload scenario or tune GPU, model,
framework and storage parameters, then shows VRAM pressure, KV cache offload
behavior and the resulting node and rental savings.
"""

from typing import List

import streamlit as st

from kv_estimator import (
    ConfigDocumentError,
    ConfigStore,
    Configuration,
    KVCacheEstimator,
    export_config,
)
from kv_estimator.charts import (
    FABRIC_MONTHLY_COST,
    savings_timeline_frame,
    session_scale_frame,
    swap_rate_frame,
    vram_breakdown_frame,
)
from kv_estimator.config_store import EXPORT_FILE_NAME, parse_document
from kv_estimator.formatting import (
    format_count,
    format_duration,
    format_gb,
    format_pct,
    format_usd,
)
from kv_estimator.playbook import PLAYBOOK_SECTIONS
from kv_estimator.presets import (
    FRAMEWORK_PRESETS,
    GPU_PRESETS,
    MODEL_PRESETS,
    SCENARIOS,
    get_gpu_profile,
)

# Page configuration
st.set_page_config(
    page_title="KV Cache Estimator",
    page_icon="🧮",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown(
    """
    <style>
    .main-header {
        font-size: 2.5rem;
        font-weight: bold;
        color: #06b6d4;
    }
    .section-header {
        font-size: 1.5rem;
        font-weight: bold;
        margin-top: 1rem;
        margin-bottom: 0.5rem;
    }
    </style>
    """,
    unsafe_allow_html=True,
)

FIELDS = Configuration.field_names()


def init_state(store: ConfigStore):
    """Load the persisted configuration into widget state on first run."""
    if "config" in st.session_state:
        return
    config = store.load()
    st.session_state.config = config
    write_widgets(config)


def write_widgets(config: Configuration):
    for field in FIELDS:
        st.session_state[field] = getattr(config, field)


def read_widgets() -> Configuration:
    return Configuration.from_dict({field: st.session_state[field] for field in FIELDS})


def apply_scenario(key: str):
    scenario = SCENARIOS[key]
    gpu = get_gpu_profile(scenario.gpu)
    rate = float(gpu.monthly_rate) if gpu else None
    write_widgets(read_widgets().with_scenario(scenario, monthly_rate=rate))


def on_gpu_change():
    gpu = get_gpu_profile(st.session_state.gpu)
    if gpu is not None:
        st.session_state.monthly_rate = float(gpu.monthly_rate)


def on_import():
    uploaded = st.session_state.get("import_file")
    if uploaded is None:
        return
    try:
        config = parse_document(uploaded.getvalue(), base=read_widgets())
    except ConfigDocumentError as e:
        st.session_state.import_error = str(e)
        return
    st.session_state.import_error = None
    write_widgets(config)


def preset_options(catalog, current: str) -> List[str]:
    """Catalog keys, plus the current key if it is not in the catalog."""
    options = list(catalog)
    if current not in catalog:
        options.append(current)
    return options


def preset_label(catalog, key: str, describe) -> str:
    profile = catalog.get(key)
    return describe(profile) if profile is not None else f"⚠️ Unknown preset: {key}"


def main():
    """Main Streamlit application."""
    store = ConfigStore()
    init_state(store)

    st.markdown('<h1 class="main-header">🧮 KV Cache Estimator</h1>', unsafe_allow_html=True)
    st.markdown(
        "**GPU memory, KV cache offload and storage economics for LLM inference**"
    )

    with st.sidebar:
        render_sidebar()

    config = read_widgets()
    if config != st.session_state.config:
        st.session_state.config = config
        store.save(config)

    metrics = KVCacheEstimator().estimate(config)
    if metrics is None:
        st.error(
            "❌ The configuration references a GPU, model or framework that is not "
            "in the catalog. Pick valid presets in the sidebar to see results."
        )
        return

    tab1, tab2, tab3, tab4 = st.tabs(
        ["⚡ VRAM Physics", "💾 Storage Performance", "💰 Economics", "📘 Playbook"]
    )

    with tab1:
        render_physics_tab(config, metrics)

    with tab2:
        render_storage_tab(config, metrics)

    with tab3:
        render_economics_tab(config, metrics)

    with tab4:
        render_playbook_tab()


def render_sidebar():
    """Render scenario shortcuts, parameters and import/export."""
    st.header("⚙️ Configuration")

    st.subheader("Scenarios")
    for key, scenario in SCENARIOS.items():
        st.button(
            f"{scenario.icon} {scenario.name}",
            key=f"scenario_{key}",
            help=scenario.description,
            on_click=apply_scenario,
            args=(key,),
            use_container_width=True,
        )

    st.divider()

    st.selectbox(
        "GPU Configuration",
        options=preset_options(GPU_PRESETS, st.session_state.gpu),
        format_func=lambda k: preset_label(GPU_PRESETS, k, lambda g: f"{g.name} ({g.vram_gb}GB)"),
        key="gpu",
        on_change=on_gpu_change,
        help="A server node; total VRAM is the sum of all GPU memory in the node.",
    )
    st.selectbox(
        "LLM Model",
        options=preset_options(MODEL_PRESETS, st.session_state.llm),
        format_func=lambda k: preset_label(
            MODEL_PRESETS, k, lambda m: f"{m.name} ({m.num_parameters:g}B params)"
        ),
        key="llm",
        help="Parameter count sets the weight footprint; layers and KV heads set the cache size.",
    )
    st.radio(
        "Inference Framework",
        options=preset_options(FRAMEWORK_PRESETS, st.session_state.framework),
        format_func=lambda k: preset_label(
            FRAMEWORK_PRESETS, k, lambda f: f"{f.name} ({f.overhead:.2f}x)"
        ),
        key="framework",
        horizontal=True,
    )

    st.subheader("Workload")
    st.slider(
        "Input Tokens",
        min_value=min(128, st.session_state.input_tokens),
        max_value=max(128000, st.session_state.input_tokens),
        step=128,
        key="input_tokens",
        help="Tokens in the prompt/context. 1 token ≈ 0.75 words.",
    )
    st.slider(
        "Output Tokens",
        min_value=min(64, st.session_state.output_tokens),
        max_value=max(8192, st.session_state.output_tokens),
        step=64,
        key="output_tokens",
        help="Tokens generated per response.",
    )
    st.slider(
        "Concurrent Sessions",
        min_value=min(1, st.session_state.concurrent_sessions),
        max_value=max(2000, st.session_state.concurrent_sessions),
        step=1,
        key="concurrent_sessions",
        help="Simultaneous sessions the cluster must support; the main multiplier of cache demand.",
    )

    st.subheader("Storage Bandwidth")
    st.slider(
        "Standard NAS (GB/s)",
        min_value=0.0,
        max_value=max(100.0, st.session_state.nas_bandwidth_gb_s),
        step=1.0,
        key="nas_bandwidth_gb_s",
    )
    st.slider(
        "Storage Fabric (GB/s)",
        min_value=0.0,
        max_value=max(400.0, st.session_state.fabric_bandwidth_gb_s),
        step=5.0,
        key="fabric_bandwidth_gb_s",
    )

    st.subheader("Rental Economics")
    st.number_input("Monthly Rate / Node ($)", min_value=0.0, step=1000.0, key="monthly_rate")
    st.number_input("Contract Term (months)", min_value=0, step=1, key="contract_months")

    st.divider()

    st.download_button(
        label="📥 Export",
        data=export_config(read_widgets()),
        file_name=EXPORT_FILE_NAME,
        mime="application/json",
        use_container_width=True,
    )
    st.file_uploader("Import configuration", type=["json"], key="import_file")
    st.button("📤 Load Imported Config", on_click=on_import, use_container_width=True)
    if st.session_state.get("import_error"):
        st.error(f"❌ Error parsing JSON: {st.session_state.import_error}")


def render_physics_tab(config: Configuration, metrics):
    st.markdown('<h2 class="section-header">VRAM Physics</h2>', unsafe_allow_html=True)

    if metrics.is_system_overload:
        st.error(
            f"🚨 **System overload on standard NAS.** Restoring one session takes "
            f"{format_duration(metrics.restore_time_nas_s)}, beyond the SLO threshold. "
            f"The storage fabric restores it in {format_duration(metrics.restore_time_fabric_s)}."
        )
    elif metrics.is_offloading:
        st.warning(
            f"⚠️ **KV cache offloading required:** {format_gb(metrics.kv_overflow_gb)} exceeds VRAM. "
            f"The fabric at {config.fabric_bandwidth_gb_s:g} GB/s restores a session in "
            f"{format_duration(metrics.restore_time_fabric_s)}; NAS at "
            f"{config.nas_bandwidth_gb_s:g} GB/s takes {format_duration(metrics.restore_time_nas_s)}."
        )
    else:
        st.success(
            f"✅ Current config fits within {format_gb(metrics.physical_vram_gb)} of physical VRAM. "
            "Increase sessions or context length to see offload behavior."
        )

    col1, col2, col3, col4 = st.columns(4)
    with col1:
        st.metric(
            "Total VRAM Needed",
            format_gb(metrics.total_vram_needed_gb),
            help=f"Physical: {format_gb(metrics.physical_vram_gb)}",
        )
    with col2:
        st.metric(
            "KV Cache Size",
            format_gb(metrics.kv_total_gb),
            help=f"{format_gb(metrics.kv_per_session_gb)} per session",
        )
    with col3:
        st.metric(
            "Context Restore (Fabric)",
            format_duration(metrics.restore_time_fabric_s),
            help=f"NAS: {format_duration(metrics.restore_time_nas_s)}",
        )
    with col4:
        st.metric(
            "VRAM Utilization",
            format_pct(metrics.utilization_pct),
            help=f"{format_gb(metrics.kv_overflow_gb)} overflow" if metrics.is_offloading else "Within budget",
        )

    st.subheader(f"VRAM Composition: {metrics.gpu.name}")
    st.bar_chart(vram_breakdown_frame(metrics), horizontal=True, stack=True)

    st.subheader("KV Cache vs Concurrency")
    st.line_chart(session_scale_frame(metrics, config))

    render_unbounded_note(metrics.unbounded_fields())


def render_storage_tab(config: Configuration, metrics):
    st.markdown('<h2 class="section-header">Storage Performance</h2>', unsafe_allow_html=True)

    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("Sessions Resident in VRAM", format_count(metrics.sessions_in_vram))
    with col2:
        st.metric("Swaps/hour (Fabric)", format_count(metrics.swaps_per_hour_fabric))
    with col3:
        st.metric("Swaps/hour (NAS)", format_count(metrics.swaps_per_hour_nas))

    st.markdown("**Restore time per session:**")
    st.write(f"- Standard NAS ({config.nas_bandwidth_gb_s:g} GB/s): {format_duration(metrics.restore_time_nas_s)}")
    st.write(f"- Storage Fabric ({config.fabric_bandwidth_gb_s:g} GB/s): {format_duration(metrics.restore_time_fabric_s)}")
    if metrics.is_offloading:
        st.info(f"⚡ Throughput gain while offloading: {format_pct(metrics.throughput_gain_pct)}")

    st.subheader("Sustainable Swap Rate")
    st.bar_chart(swap_rate_frame(metrics, config)[["Swaps/hour"]])


def render_economics_tab(config: Configuration, metrics):
    st.markdown('<h2 class="section-header">Economics</h2>', unsafe_allow_html=True)

    col1, col2, col3, col4 = st.columns(4)
    with col1:
        st.metric(
            "Nodes Avoided",
            metrics.nodes_avoided,
            help=f"{metrics.nodes_without_offload} without offload → {metrics.nodes_with_offload} with offload",
        )
    with col2:
        st.metric("Monthly Rental Savings", format_usd(metrics.monthly_rental_savings))
    with col3:
        st.metric(f"Contract Savings ({config.contract_months} mo)", format_usd(metrics.contract_savings))
    with col4:
        st.metric("CAPEX Avoidance", format_usd(metrics.capex_avoidance))

    st.write(f"- Annual OPEX savings at hourly rates: {format_usd(metrics.annual_opex_savings)}")

    st.subheader("Cumulative Savings vs Fabric Cost")
    st.caption(f"Fabric cost estimated at {format_usd(FABRIC_MONTHLY_COST)} per month")
    st.line_chart(savings_timeline_frame(metrics))


def render_playbook_tab():
    st.markdown('<h2 class="section-header">Seller\'s Playbook</h2>', unsafe_allow_html=True)
    for section in PLAYBOOK_SECTIONS:
        with st.expander(f"**{section.title}**"):
            st.markdown(section.body)


def render_unbounded_note(fields: List[str]):
    if fields:
        st.caption(f"∞ marks values with no finite bound for this input: {', '.join(fields)}")


if __name__ == "__main__":
    main()
