"""
SMTP Handler

Runs the per-connection protocol loop.

The sink agrees with everything: unknown commands get 250, DATA always
switches to body capture, and only QUIT or a dropped connection ends the
session.
"""

import asyncio
import enum
import json
from typing import List, Optional, Tuple

from mailsink.config import Settings
from mailsink.core.logging import SessionLogger, get_logger
from mailsink.core.metrics import record_message_received, smtp_sessions_active

logger = get_logger(__name__)

# Errors that mean the peer is gone
TRANSPORT_ERRORS = (
    ConnectionError,
    asyncio.IncompleteReadError,
)


class SessionMode(enum.Enum):
    COMMAND = "command"
    BODY_CAPTURE = "body_capture"


def printable(raw_line: str) -> str:
    """Undo surrogate escapes so undecodable bytes can be logged."""
    return raw_line.encode("utf-8", errors="surrogateescape").decode("utf-8", errors="replace")


async def respond(writer: asyncio.StreamWriter, code: int, message: str):
    """
    Write a single reply line.

    Args:
        writer: Connection stream
        code: SMTP status code
        message: Reply text
    """
    writer.write(f"{code} {message}\r\n".encode("utf-8"))
    await writer.drain()


class SinkSession:
    """
    State for one client connection.

    Owns the stream pair exclusively for the lifetime of the connection.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        settings: Settings,
        attachment_pool=None,
    ):
        self.reader = reader
        self.writer = writer
        self.settings = settings
        self.attachment_pool = attachment_pool
        self.mode = SessionMode.COMMAND
        self.body_lines: List[str] = []
        self.completed_body: Optional[List[str]] = None

        peer = writer.get_extra_info("peername")
        if isinstance(peer, tuple) and len(peer) >= 2:
            self.remote = f"{peer[0]}:{peer[1]}"
        else:
            self.remote = str(peer)
        self.log = SessionLogger(logger, remote=self.remote)

    async def run(self):
        """
        Greet the client and serve lines until QUIT or disconnect.
        """
        smtp_sessions_active.inc()
        try:
            await respond(self.writer, 220, self.settings.greeting)
            while True:
                line = await self._read_line()
                if line is None:
                    return
                if not await self.handle_line(line):
                    return
        except TRANSPORT_ERRORS as e:
            self.log.error(f"connection error: {self.remote} {e!r}")
        finally:
            smtp_sessions_active.dec()
            self.log.info(f"Closing connection to {self.remote}")
            await self._close()

    async def handle_line(self, raw_line: str) -> bool:
        """
        Process one received line.

        Args:
            raw_line: Line without its terminator, untransformed

        Returns:
            bool: False once the session should end
        """
        # Normalized form is for matching only, body lines keep their case
        line = raw_line.strip().lower()

        if self.mode is SessionMode.COMMAND:
            self.log.info(f"{self.remote}: {json.dumps(line)}")
        elif self.settings.LOG_BODY:
            self.log.info(f"{self.remote}: {printable(raw_line)}")

        if line == "quit":
            await respond(self.writer, 221, "Bye")
            return False

        reply = self.dispatch(line, raw_line)
        if reply is not None:
            await respond(self.writer, *reply)

        # Handed off only after the client has its 250
        if self.completed_body is not None:
            body_lines, self.completed_body = self.completed_body, None
            await self._hand_off(body_lines)
        return True

    def dispatch(self, line: str, raw_line: str) -> Optional[Tuple[int, str]]:
        """
        Apply a line to the session state.

        Returns:
            tuple: (code, message) to send, or None for no reply
        """
        if self.mode is SessionMode.COMMAND:
            if line.startswith("data"):
                self.mode = SessionMode.BODY_CAPTURE
                self.body_lines = []
                return 354, "End data with <CR><LF>.<CR><LF>."
            return 250, "Ok"

        if line == ".":
            self.mode = SessionMode.COMMAND
            self.completed_body, self.body_lines = self.body_lines, []
            record_message_received()
            return 250, f"Ok, queued as {self.settings.QUEUE_ID}"

        self.body_lines.append(raw_line)
        return None

    async def _hand_off(self, body_lines: List[str]):
        if not self.settings.SAVE_ATTACHMENTS or self.attachment_pool is None:
            return
        await self.attachment_pool.submit(body_lines)

    async def _read_line(self) -> Optional[str]:
        try:
            data = await self.reader.readline()
        except (asyncio.LimitOverrunError, ValueError) as e:
            # Line longer than LINE_LIMIT, framing is lost
            self.log.error(f"error ReadLine: {self.remote} {e!r}")
            return None
        if not data:
            self.log.info(f"error ReadLine: {self.remote} EOF")
            return None
        return data.rstrip(b"\r\n").decode("utf-8", errors="surrogateescape")

    async def _close(self):
        self.writer.close()
        try:
            await self.writer.wait_closed()
        except ConnectionError as e:
            logger.debug(f"Connection to {self.remote} closed uncleanly: {e!r}")
