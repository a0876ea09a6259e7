"""Сбор метрик приложения в формате Prometheus.

MetricsCollector создаётся фабрикой приложения, хранится в app.state
и явно передаётся в middleware и PaymentService. У каждого сборщика свой
CollectorRegistry: глобального реестра prometheus_client не используем,
поэтому в тестах экземпляры приложения не делят счётчики.

Метрики:
- http_requests_total{method, endpoint, status}
- http_request_duration_seconds{method, endpoint}
- payment_events_total{event, provider}

Отдаются на GET /metrics в текстовом формате экспозиции.
"""

from enum import StrEnum

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

__all__ = ["METRICS_CONTENT_TYPE", "MetricsCollector", "PaymentEvent"]

METRICS_CONTENT_TYPE = CONTENT_TYPE_LATEST


class PaymentEvent(StrEnum):
    """Платёжные события для счётчиков."""

    PAYMENT_CREATED = "payments_created"
    WEBHOOK_PROCESSED = "webhooks_processed"
    WEBHOOK_DUPLICATE = "webhooks_duplicate"
    WEBHOOK_REJECTED = "webhooks_rejected"
    PROVIDER_ERROR = "provider_errors"
    NOTIFICATION_SENT = "notifications_sent"
    NOTIFICATION_FAILED = "notifications_failed"


class MetricsCollector:
    """Счётчики HTTP-запросов, длительность запросов и платёжные события.

    Attributes:
        registry: Собственный реестр метрик этого экземпляра.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or CollectorRegistry()
        self._http_requests = Counter(
            "http_requests_total",
            "Total number of HTTP requests",
            ["method", "endpoint", "status"],
            registry=self.registry,
        )
        self._http_duration = Histogram(
            "http_request_duration_seconds",
            "Duration of HTTP requests in seconds",
            ["method", "endpoint"],
            registry=self.registry,
        )
        self._payment_events = Counter(
            "payment_events_total",
            "Payment events by provider",
            ["event", "provider"],
            registry=self.registry,
        )

    def record_request(
        self, method: str, route: str, status_code: int, duration: float = 0.0
    ) -> None:
        """Учесть обработанный HTTP-запрос и его длительность в секундах."""
        self._http_requests.labels(method, route, str(status_code)).inc()
        self._http_duration.labels(method, route).observe(duration)

    def record_payment_event(self, event: PaymentEvent, provider: str = "-") -> None:
        """Учесть платёжное событие."""
        self._payment_events.labels(str(event), provider).inc()

    def request_count(self, method: str, route: str, status_code: int) -> int:
        """Количество запросов с данным методом, маршрутом и статусом."""
        value = self.registry.get_sample_value(
            "http_requests_total",
            {"method": method, "endpoint": route, "status": str(status_code)},
        )
        return int(value or 0)

    def count(self, event: PaymentEvent, provider: str | None = None) -> int:
        """Значение счётчика события (по всем провайдерам, если provider не указан)."""
        total = 0.0
        for metric in self._payment_events.collect():
            for sample in metric.samples:
                if not sample.name.endswith("_total"):
                    continue
                if sample.labels["event"] != event:
                    continue
                if provider is not None and sample.labels["provider"] != provider:
                    continue
                total += sample.value
        return int(total)

    def export(self) -> bytes:
        """Метрики в текстовом формате Prometheus."""
        return generate_latest(self.registry)
