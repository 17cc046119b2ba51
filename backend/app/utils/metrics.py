"""Prometheus metrics for verdicts and change planning."""

from prometheus_client import Counter, Histogram

verdicts_total = Counter(
    "verdicts_total",
    "Total verdicts computed",
    ["verdict"],
)

change_plans_total = Counter(
    "change_plans_total",
    "Total change plans by source and outcome",
    ["source", "outcome"],
)

replan_latency_ms = Histogram(
    "replan_latency_ms",
    "Replanning latency in milliseconds",
    ["outcome"],
    buckets=[10, 50, 100, 200, 500, 1000, 2000, 4000, 8000],
)

stale_plans_discarded_total = Counter(
    "stale_plans_discarded_total",
    "Plans discarded because a newer generation was already adopted",
)

fix_applications_total = Counter(
    "fix_applications_total",
    "Suggested fixes dispatched, by outcome",
    ["outcome"],
)


class PrometheusPlannerMetrics:
    """Prometheus-based planner metrics implementation."""

    def inc_verdict(self, verdict: str) -> None:
        verdicts_total.labels(verdict=verdict).inc()

    def inc_plan(self, source: str, outcome: str) -> None:
        change_plans_total.labels(source=source, outcome=outcome).inc()

    def record_replan_latency(self, outcome: str, latency_ms: float) -> None:
        replan_latency_ms.labels(outcome=outcome).observe(latency_ms)

    def inc_stale_discard(self) -> None:
        stale_plans_discarded_total.inc()

    def inc_fix_application(self, outcome: str) -> None:
        fix_applications_total.labels(outcome=outcome).inc()
