"""Static sales playbook shown alongside the estimator."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class PlaybookSection:
    key: str
    title: str
    body: str


PLAYBOOK_SECTIONS = (
    PlaybookSection(
        key="inference",
        title="AI Inference 101",
        body="""
Production LLM serving is **inference**: the model reads a prompt and
generates output tokens one at a time, continuously and for many users at
once. GPU memory goes to three things:

| Component | What it is |
| --- | --- |
| Model weights | Static parameters. A 70B model in FP16 needs ~140 GB. Fixed at runtime. |
| Engine overhead | Runtime state, kernels and paged memory of the serving framework, typically 15–25% above the weights. |
| KV cache | Per-session attention state. Grows with context length and concurrency: 2 × layers × KV heads × head dim × tokens × 2 bytes. |

Weights and overhead are fixed. The KV cache is the variable that breaks
GPU memory budgets as context windows and session counts grow.
""",
    ),
    PlaybookSection(
        key="kvcache",
        title="The KV Cache Bottleneck",
        body="""
Caching key/value tensors avoids recomputing the whole context on every
generated token; without it inference is 10–100× slower. With it, memory
fills up fast.

**Failure mode:** when the cache exceeds VRAM the scheduler caps concurrency,
utilization drops, throughput falls, and operators buy more GPUs to
compensate. It looks like "we need more GPUs".

**Virtual VRAM:** a storage fabric sustaining 200+ GB/s lets cache state be
offloaded and recalled between generation steps. Standard NAS at ~10 GB/s
needs seconds to restore a single long-context session.
""",
    ),
    PlaybookSection(
        key="capitalmarkets",
        title="Capital Markets Use Case",
        body="""
- **News and earnings summarization:** tight P99 latency, high concurrency;
  cache eviction turns into latency spikes at the worst moment.
- **RAG over filings:** 16K–128K token contexts; context length drives cache size.
- **Multi-turn analyst copilots:** cache reuse across turns is the efficiency
  mechanism; without fast offload every turn repeats the prefill.
- **Risk narrative generation:** batch-friendly but volume-sensitive.

LLM inference runs at millisecond-to-second latency, not the microsecond
latency of HFT execution. Position the offer for the inference workloads
that sit next to trading systems.
""",
    ),
    PlaybookSection(
        key="salesplays",
        title="Sales Plays",
        body="""
**Over-provisioning play.** Trigger: "we need more GPU servers". Run the
estimator on their config, show overflow rather than compute is capping
concurrency, and quantify nodes avoided against the fabric cost.
Target: VP Infrastructure, CTO.

**Latency SLO play.** Trigger: P99 spikes under load. Compare restore
times per tier. Target: platform engineering, ML Ops.

**Cluster sizing play.** Trigger: a new cluster is being specified. Size the
compute, then show the node count with and without the fabric and quote them
together. Target: infrastructure architects, procurement.

**Compliance boundary play.** Trigger: regulated industry. Cache spilled to
generic NAS or local swap leaves the audited storage boundary.
Target: CISO, compliance.
""",
    ),
    PlaybookSection(
        key="objections",
        title="Objection Handling",
        body="""
**"We'll just add more GPUs."** More GPUs defer the cache problem; the next
cluster hits the same wall as contexts and concurrency grow.

**"Our NAS is fast enough."** A 32K-token Llama 70B session holds roughly
11 GB of cache. At 10 GB/s that is over a second of restore before the first
output token, for every offloaded session.

**"The framework evicts the cache for us."** Eviction is a concurrency cap;
the evicted session pays a full prefill on its next request.

**"Fast storage is expensive."** Compare it with the rental or capex of the
nodes it removes; the Economics tab shows the numbers.

**"We're in the cloud."** Cloud instances have the same VRAM limits, and the
over-provisioning tax is paid every month.
""",
    ),
    PlaybookSection(
        key="discovery",
        title="Discovery Questions",
        body="""
**Workload:** Which models and sizes? Typical input and output lengths? Peak
concurrent sessions? Which framework? Multi-turn or single-turn?

**Symptoms:** GPU utilization at peak? Concurrency capped to hold latency?
P99 time-to-first-token? How far over the original sizing are you? Where
does the cache go when VRAM fills?

**Economics:** Current node count and monthly spend? Buy or rent, and on
what term? Expected scale in 12 months?

**Compliance:** Where does the framework write cache on overflow? Are
inference data flows documented for auditors? What happens to cache data
when a node is reprovisioned?
""",
    ),
    PlaybookSection(
        key="compliance",
        title="Compliance Angle",
        body="""
- **HIPAA:** cache in a medical assistant holds live patient context; spilling
  it to uncontrolled storage takes PHI outside the certified boundary.
- **SOC 2 / ISO 27001:** access control and audit trails apply to data at
  rest, including offloaded inference state.
- **Federal / FedRAMP:** residency and boundary rules cover ephemeral state too.
- **SEC / FINRA:** AI-assisted analyst workflows may fall under
  recordkeeping rules; know where the context lives.
""",
    ),
)


def get_section(key: str) -> Optional[PlaybookSection]:
    for section in PLAYBOOK_SECTIONS:
        if section.key == key:
            return section
    return None
