"""
SMTP Server

Connection acceptor and process entry point for the mail sink.

Run with:
    python -m mailsink.smtp.server [-i interface] [-p port] [-H hostname] [-v] [-s]
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from mailsink.config import Settings, get_settings
from mailsink.core.logging import get_logger, setup_logging
from mailsink.core.metrics import SinkStats, start_metrics_server
from mailsink.smtp.handler import SinkSession
from mailsink.workers.attachments import AttachmentWorkerPool, create_attachment_pool
from mailsink.workers.stats_reporter import StatsReporter

logger = get_logger(__name__)


class SinkServer:
    """
    Accepts connections and runs one session per connection.

    There is no connection limit; every accepted client gets its own task.
    """

    def __init__(
        self,
        settings: Settings,
        stats: Optional[SinkStats] = None,
        attachment_pool: Optional[AttachmentWorkerPool] = None,
    ):
        self.settings = settings
        self.stats = stats or SinkStats()
        self.attachment_pool = attachment_pool
        self._server: Optional[asyncio.Server] = None
        self._sessions = set()

    @property
    def port(self) -> Optional[int]:
        """Port the listener is bound to."""
        if self._server is None or not self._server.sockets:
            return None
        return self._server.sockets[0].getsockname()[1]

    async def start(self):
        """Bind the listener and start accepting connections."""
        self._server = await asyncio.start_server(
            self._handle_client,
            host=self.settings.SINK_HOST,
            port=self.settings.SINK_PORT,
            limit=self.settings.LINE_LIMIT,
        )
        logger.info(f"Listening on {self.settings.SINK_HOST}:{self.port}")

    async def serve_forever(self):
        """Accept connections until cancelled."""
        if self._server is None:
            await self.start()
        await self._server.serve_forever()

    async def stop(self):
        """Stop accepting connections."""
        if self._server is None:
            return
        self._server.close()
        # Idle clients would otherwise keep wait_closed() pending
        for session in list(self._sessions):
            session.writer.close()
        await self._server.wait_closed()
        self._server = None
        logger.info("Listener closed")

    async def _handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        self.stats.record_connection()
        session = SinkSession(reader, writer, self.settings, self.attachment_pool)
        self._sessions.add(session)
        try:
            await session.run()
        finally:
            self._sessions.discard(session)


def parse_args(argv: Optional[List[str]] = None) -> dict:
    """
    Parse command line flags into settings overrides.

    Only flags that were given override the environment.

    Returns:
        dict: Settings field overrides
    """
    parser = argparse.ArgumentParser(
        prog="mailsink",
        description="Very simple server that mimics an SMTP server and agrees with almost everything.",
    )
    parser.add_argument("-p", "--port", type=int, dest="SINK_PORT", help="listen port")
    parser.add_argument("-i", "--interface", dest="SINK_HOST", help="listen on interface")
    parser.add_argument("-H", "--hostname", dest="SINK_HOSTNAME", help="hostname to greet with")
    parser.add_argument("-v", "--verbose", action="store_true", default=None, dest="LOG_BODY",
                        help="log the mail body")
    parser.add_argument("-s", "--save", action="store_true", default=None, dest="SAVE_ATTACHMENTS",
                        help="save attached files to the attachment directory")
    parser.add_argument("-d", "--directory", dest="ATTACHMENT_DIR",
                        help="directory to save attachments to (default: current dir)")
    args = parser.parse_args(argv)
    return {key: value for key, value in vars(args).items() if value is not None}


def load_settings(argv: Optional[List[str]] = None) -> Settings:
    """Build settings from the environment plus command line flags."""
    overrides = parse_args(argv)
    if not overrides:
        return get_settings()
    return Settings(**overrides)


async def start_mail_sink(settings: Settings):
    """
    Start the mail sink.

    Initializes:
    - Metrics endpoint (optional)
    - Attachment worker pool (when saving is enabled)
    - Connection acceptor
    - Stats reporter
    """
    logger.info(f"Starting mail-sink on {settings.listen_address}")
    logger.info(f"Greeting: 220 {settings.greeting}")
    logger.info(f"Save attachments: {settings.SAVE_ATTACHMENTS}, log body: {settings.LOG_BODY}")

    if settings.ENABLE_METRICS:
        start_metrics_server(settings.METRICS_PORT)
        logger.info(f"Metrics exposed on port {settings.METRICS_PORT}")

    stats = SinkStats()
    pool = create_attachment_pool(settings)
    server = SinkServer(settings, stats=stats, attachment_pool=pool)
    reporter = StatsReporter(stats, interval=settings.STATS_INTERVAL_SECONDS)

    if pool is not None:
        await pool.start()
    await server.start()
    reporter_task = asyncio.create_task(reporter.start(), name="stats-reporter")

    try:
        await server.serve_forever()
    finally:
        logger.info("Shutting down mail-sink...")
        reporter_task.cancel()
        await asyncio.gather(reporter_task, return_exceptions=True)
        await server.stop()
        if pool is not None:
            await pool.stop()
        logger.info("mail-sink stopped")


def main(argv: Optional[List[str]] = None):
    settings = load_settings(argv)
    setup_logging(settings)
    try:
        asyncio.run(start_mail_sink(settings))
    except KeyboardInterrupt:
        logger.info("mail-sink stopped by user")
    except OSError as e:
        logger.error(f"mail-sink failed to start: {str(e)}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
