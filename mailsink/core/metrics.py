"""
Prometheus Metrics

Defines sink metrics for monitoring:
- Connection and session counters
- Message and attachment counters
- The accepted-connection stats read by the periodic reporter
"""

from prometheus_client import Counter, Gauge, Info, start_http_server

from mailsink import __version__


# ===================================
# SMTP Metrics
# ===================================

smtp_connections_total = Counter(
    "mailsink_connections_total",
    "Total number of accepted SMTP connections",
)

smtp_sessions_active = Gauge(
    "mailsink_sessions_active",
    "Number of currently open SMTP sessions",
)

smtp_messages_received = Counter(
    "mailsink_messages_received_total",
    "Total number of message bodies received",
)


# ===================================
# Attachment Metrics
# ===================================

attachments_saved = Counter(
    "mailsink_attachments_saved_total",
    "Total number of attachments written to disk",
)

attachment_errors = Counter(
    "mailsink_attachment_errors_total",
    "Total number of attachments dropped",
    ["reason"],  # decode, write
)


# ===================================
# Application Info
# ===================================

app_info = Info(
    "mailsink_app",
    "Application information",
)

app_info.info({
    "version": __version__,
    "name": "mail-sink",
})


class SinkStats:
    """
    Process-wide connection statistics.

    Owned by the event loop running the acceptor: it is only mutated from
    the accept callback and read by the stats reporter on the same loop.
    """

    def __init__(self):
        self.accepted_connections = 0

    def record_connection(self):
        """Record an accepted connection."""
        self.accepted_connections += 1
        smtp_connections_total.inc()


# ===================================
# Helper Functions
# ===================================

def record_message_received():
    """Record a completed message body."""
    smtp_messages_received.inc()


def record_attachment_saved():
    """Record a saved attachment."""
    attachments_saved.inc()


def record_attachment_error(reason: str):
    """
    Record a dropped attachment.

    Args:
        reason: Failure reason (decode, write)
    """
    attachment_errors.labels(reason=reason).inc()


def start_metrics_server(port: int):
    """
    Expose the default registry over HTTP.

    Args:
        port: Port to serve /metrics on
    """
    start_http_server(port)
