"""Custom metrics for the ordering API."""

from opentelemetry import metrics

meter = metrics.get_meter("nook-api")

cart_operation_counter = meter.create_counter(
    name="cart_operations_total",
    description="Total number of cart operations by action",
    unit="1",
)

order_submitted_counter = meter.create_counter(
    name="orders_submitted_total",
    description="Total number of carts converted into pending orders",
    unit="1",
)

order_value_histogram = meter.create_histogram(
    name="order_value",
    description="Total amount of submitted orders",
    unit="GBP",
)

email_failure_counter = meter.create_counter(
    name="email_delivery_failures_total",
    description="Total number of outbound emails that could not be sent, by template",
    unit="1",
)


def record_cart_operation(action: str) -> None:
    """Record a completed cart operation.

    Args:
        action: The cart action performed (e.g. "add", "delete")
    """
    cart_operation_counter.add(1, {"action": action})


def record_order_submitted(delivery_type: str, total_amount: float) -> None:
    """Record a submitted order and its value.

    Args:
        delivery_type: "delivery" or "collection"
        total_amount: Recomputed order total
    """
    order_submitted_counter.add(1, {"delivery_type": delivery_type})
    order_value_histogram.record(total_amount, {"delivery_type": delivery_type})


def record_email_failure(template: str) -> None:
    """Record an outbound email that could not be sent.

    Args:
        template: Which email failed (e.g. "verification", "order_confirmation")
    """
    email_failure_counter.add(1, {"template": template})
