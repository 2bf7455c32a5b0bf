"""
Prometheus metrics definition for OAE.
"""

from prometheus_client import Counter, Histogram


# ============================================================================
# Metrics Definitions
# ============================================================================

# Counters
emissions_counter = Counter(
    "oae_emissions_total",
    "Total number of dispatched emissions",
    ["mode"]
)

listener_calls_counter = Counter(
    "oae_listener_calls_total",
    "Total number of listener invocations",
    ["mode"]
)

listener_failures_counter = Counter(
    "oae_listener_failures_total",
    "Total number of listener invocations that raised",
    ["mode"]
)

# Histograms
dispatch_duration = Histogram(
    "oae_dispatch_duration_seconds",
    "Time from first listener issued until the dispatch settled",
    ["mode"]
)
