"""
Prometheus metrics for the merchant demo.

Tracks:
- Checkout sessions created / failed
- Order status transitions
- Webhook events by type and outcome
- Stripe API calls and errors
- Ledger size
"""
from prometheus_client import Counter, Gauge, Histogram

# Checkout metrics
checkout_sessions_total = Counter(
    "checkout_sessions_total",
    "Total checkout session requests",
    ["status"],  # created, failed
)

# Order metrics
order_transitions_total = Counter(
    "order_transitions_total",
    "Total order status transitions",
    ["status"],
)

orders_in_ledger = Gauge(
    "orders_in_ledger",
    "Number of orders held in the in-memory ledger",
)

# Stripe API metrics
stripe_api_requests_total = Counter(
    "stripe_api_requests_total",
    "Total Stripe API requests",
    ["operation", "status"],  # operation: create_checkout_session, create_refund
)

stripe_api_errors_total = Counter(
    "stripe_api_errors_total",
    "Total Stripe API errors",
    ["error_type"],  # transient, permanent, rate_limit
)

stripe_api_duration_seconds = Histogram(
    "stripe_api_duration_seconds",
    "Stripe API call duration in seconds",
    ["operation"],
    buckets=(0.1, 0.25, 0.5, 0.75, 1.0, 2.5, 5.0, 7.5, 10.0),
)

# Circuit breaker metrics
stripe_circuit_breaker_state = Gauge(
    "stripe_circuit_breaker_state",
    "Stripe circuit breaker state (0=closed, 1=open, 2=half_open)",
)

# Webhook metrics
webhook_events_received_total = Counter(
    "webhook_events_received_total",
    "Total webhook events received",
    ["event_type", "source"],  # source: verified, unverified
)

webhook_events_processed_total = Counter(
    "webhook_events_processed_total",
    "Total webhook events processed",
    ["event_type", "outcome"],  # applied, replayed, unknown_order, ignored
)

webhook_rejections_total = Counter(
    "webhook_rejections_total",
    "Webhook requests rejected before processing",
    ["reason"],
)

webhook_processing_duration_seconds = Histogram(
    "webhook_processing_duration_seconds",
    "Webhook processing duration in seconds",
    ["event_type"],
    buckets=(0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0),
)


class MetricsCollector:
    """Helper class for collecting metrics."""

    @staticmethod
    def record_checkout_session(status: str) -> None:
        """Record a checkout session attempt."""
        checkout_sessions_total.labels(status=status).inc()

    @staticmethod
    def record_order_transition(status: str) -> None:
        """Record an order entering `status`."""
        order_transitions_total.labels(status=status).inc()

    @staticmethod
    def set_ledger_size(size: int) -> None:
        orders_in_ledger.set(size)

    @staticmethod
    def record_stripe_api_call(
        operation: str, status: str, duration_seconds: float
    ) -> None:
        """Record Stripe API call."""
        stripe_api_requests_total.labels(operation=operation, status=status).inc()
        stripe_api_duration_seconds.labels(operation=operation).observe(duration_seconds)

    @staticmethod
    def record_stripe_api_error(error_type: str) -> None:
        """Record Stripe API error."""
        stripe_api_errors_total.labels(error_type=error_type).inc()

    @staticmethod
    def set_circuit_breaker_state(state: str) -> None:
        """Set circuit breaker state."""
        state_map = {"closed": 0, "open": 1, "half_open": 2}
        stripe_circuit_breaker_state.set(state_map.get(state, 0))

    @staticmethod
    def record_webhook_event(
        event_type: str, source: str, outcome: str, duration_seconds: float
    ) -> None:
        """Record webhook event processing."""
        webhook_events_received_total.labels(event_type=event_type, source=source).inc()
        webhook_events_processed_total.labels(event_type=event_type, outcome=outcome).inc()
        webhook_processing_duration_seconds.labels(event_type=event_type).observe(
            duration_seconds
        )

    @staticmethod
    def record_webhook_rejection(reason: str) -> None:
        webhook_rejections_total.labels(reason=reason).inc()


# Export singleton instance
metrics = MetricsCollector()
