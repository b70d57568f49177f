"""
Stats Reporter

Background worker that periodically logs how many connections the sink
has accepted.
"""

import asyncio

from mailsink.core.logging import get_logger
from mailsink.core.metrics import SinkStats

logger = get_logger(__name__)


class StatsReporter:
    """
    Periodic connection stats logger.
    """

    def __init__(self, stats: SinkStats, interval: float = 5.0):
        self.stats = stats
        self.interval = interval
        self.running = False

    def report(self):
        """Log the current stats once."""
        count = self.stats.accepted_connections
        logger.info(f"Stats: {count} connections", extra={"accepted_connections": count})

    async def start(self):
        """
        Run the reporter.

        Runs until stopped or cancelled.
        """
        self.running = True
        while self.running:
            try:
                await asyncio.sleep(self.interval)
                self.report()
            except asyncio.CancelledError:
                logger.debug("Stats reporter cancelled")
                self.running = False
                raise

    async def stop(self):
        """Stop the reporter after the current interval."""
        self.running = False
