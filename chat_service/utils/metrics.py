"""
Metrics collection for the chat pipeline.

Prometheus counters kept in a per-collector registry so that several
application instances (and tests) never collide on metric names.
"""

from typing import Optional

from prometheus_client import CollectorRegistry, Counter, generate_latest, CONTENT_TYPE_LATEST


class MetricsCollector:
    """Counters for chat submissions, provider fallbacks, streams and cache use."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry if registry is not None else CollectorRegistry()

        self.chat_requests = Counter(
            "chat_requests_total",
            "Chat submissions by pre-stream outcome",
            ["outcome"],
            registry=self.registry,
        )
        self.provider_fallbacks = Counter(
            "chat_provider_fallbacks_total",
            "Times the fallback provider was invoked",
            registry=self.registry,
        )
        self.stream_outcomes = Counter(
            "chat_stream_outcomes_total",
            "Streaming sessions by terminal state",
            ["outcome"],
            registry=self.registry,
        )
        self.cache_lookups = Counter(
            "chat_history_cache_lookups_total",
            "History cache lookups by result",
            ["result"],
            registry=self.registry,
        )
        self.rate_limit_denials = Counter(
            "chat_rate_limit_denials_total",
            "Chat submissions denied by the rate governor",
            registry=self.registry,
        )

    def record_request(self, outcome: str) -> None:
        self.chat_requests.labels(outcome=outcome).inc()

    def record_fallback(self) -> None:
        self.provider_fallbacks.inc()

    def record_stream(self, outcome: str) -> None:
        self.stream_outcomes.labels(outcome=outcome).inc()

    def record_cache(self, hit: bool) -> None:
        self.cache_lookups.labels(result="hit" if hit else "miss").inc()

    def record_denial(self) -> None:
        self.rate_limit_denials.inc()

    def export(self) -> bytes:
        """Prometheus text exposition of this collector's registry."""
        return generate_latest(self.registry)

    content_type = CONTENT_TYPE_LATEST
