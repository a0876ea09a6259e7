"""Тесты для MetricsCollector."""

from gastroshop.services.metrics import MetricsCollector, PaymentEvent


class TestMetricsCollector:
    """Тесты счётчиков."""

    def test_count_by_provider(self) -> None:
        """Счётчик по провайдеру и сумма по всем провайдерам."""
        metrics = MetricsCollector()

        metrics.record_payment_event(PaymentEvent.WEBHOOK_PROCESSED, "mock")
        metrics.record_payment_event(PaymentEvent.WEBHOOK_PROCESSED, "mock")
        metrics.record_payment_event(PaymentEvent.WEBHOOK_PROCESSED, "yookassa")

        assert metrics.count(PaymentEvent.WEBHOOK_PROCESSED, "mock") == 2
        assert metrics.count(PaymentEvent.WEBHOOK_PROCESSED) == 3
        assert metrics.count(PaymentEvent.WEBHOOK_REJECTED) == 0

    def test_request_count_and_duration(self) -> None:
        """Запрос учитывается в счётчике и в гистограмме длительности."""
        metrics = MetricsCollector()

        metrics.record_request("POST", "/api/payments/webhook", 200, 0.2)
        metrics.record_request("POST", "/api/payments/webhook", 200, 0.3)

        assert metrics.request_count("POST", "/api/payments/webhook", 200) == 2
        assert metrics.request_count("GET", "/health", 200) == 0
        duration_count = metrics.registry.get_sample_value(
            "http_request_duration_seconds_count",
            {"method": "POST", "endpoint": "/api/payments/webhook"},
        )
        duration_sum = metrics.registry.get_sample_value(
            "http_request_duration_seconds_sum",
            {"method": "POST", "endpoint": "/api/payments/webhook"},
        )
        assert duration_count == 2
        assert duration_sum is not None
        assert abs(duration_sum - 0.5) < 1e-9

    def test_export_text_format(self) -> None:
        """Экспорт в текстовом формате Prometheus."""
        metrics = MetricsCollector()
        metrics.record_request("GET", "/health", 200, 0.01)
        metrics.record_payment_event(PaymentEvent.NOTIFICATION_SENT)

        text = metrics.export().decode()

        assert "# TYPE http_requests_total counter" in text
        assert 'http_requests_total{endpoint="/health",method="GET",status="200"} 1.0' in text
        assert "# TYPE http_request_duration_seconds histogram" in text
        assert 'payment_events_total{event="notifications_sent",provider="-"} 1.0' in text

    def test_instances_are_independent(self) -> None:
        """У каждого сборщика свой реестр."""
        first = MetricsCollector()
        second = MetricsCollector()

        first.record_payment_event(PaymentEvent.PAYMENT_CREATED, "mock")

        assert second.count(PaymentEvent.PAYMENT_CREATED) == 0
        assert first.registry is not second.registry
