"""
Attachment Processor

Heuristically pulls base64 attachments out of a captured message body:
- Detect filename markers
- Detect base64 transfer-encoding markers
- Collect encoded lines up to the next boundary
- Decode and write each attachment to disk

This is deliberately not a MIME parser. Bodies that a real parser would
reject still yield whatever attachments the markers point at.
"""

import base64
import binascii
import enum
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Union

from mailsink.core.exceptions import AttachmentDecodeException, AttachmentWriteException
from mailsink.core.logging import get_logger
from mailsink.core.metrics import record_attachment_error, record_attachment_saved

logger = get_logger(__name__)

FILENAME_PATTERN = re.compile(r'filename="([^"]+)"')
ENCODING_PATTERN = re.compile(r"Content-Transfer-Encoding:\s*base64", re.IGNORECASE)
BOUNDARY_PREFIX = "--"


class ScanState(enum.Enum):
    SEEKING = "seeking"
    CAPTURING = "capturing"


@dataclass
class AttachmentCandidate:
    """An encoded attachment found in a body, not yet decoded."""

    filename: Optional[str]
    encoded_lines: List[str] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return bool(self.filename) and bool(self.encoded_lines)


class AttachmentExtractor:
    """
    Extract attachments from captured body lines.

    Attachments are written to ``output_dir`` under the filename found in
    the body, overwriting any existing file of that name.
    """

    def __init__(self, output_dir: Union[str, Path] = "."):
        self.output_dir = Path(output_dir)

    def find_attachments(self, body_lines: Sequence[str]) -> List[AttachmentCandidate]:
        """
        Scan body lines for encoded attachments.

        Args:
            body_lines: Raw body lines, in the order received

        Returns:
            list: Candidates in body order, including incomplete ones
        """
        candidates = []
        state = ScanState.SEEKING
        filename = None
        encoded_lines: List[str] = []

        for line in body_lines:
            match = FILENAME_PATTERN.search(line)
            if match:
                filename = match.group(1)
                continue

            if ENCODING_PATTERN.search(line):
                state = ScanState.CAPTURING
                encoded_lines = []
                continue

            if state is ScanState.CAPTURING:
                if line.startswith(BOUNDARY_PREFIX):
                    # The boundary line closes the part and is not payload
                    candidate = AttachmentCandidate(filename, encoded_lines)
                    candidates.append(candidate)
                    state = ScanState.SEEKING
                    # Sticky until an attachment actually uses it
                    if candidate.is_complete:
                        filename = None
                    encoded_lines = []
                    continue
                encoded_lines.append(line.strip())

        # Body ended without a closing boundary
        if state is ScanState.CAPTURING and filename:
            logger.info(f"Saving last attachment {filename} ({len(encoded_lines)} lines)")
            candidates.append(AttachmentCandidate(filename, encoded_lines))

        return candidates

    def decode(self, candidate: AttachmentCandidate) -> bytes:
        """
        Decode a candidate's payload.

        Raises:
            AttachmentDecodeException: payload is not valid base64
        """
        payload = "".join(candidate.encoded_lines)
        try:
            return base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise AttachmentDecodeException(candidate.filename, detail=str(e)) from e

    def write(self, filename: str, data: bytes) -> Path:
        """
        Write decoded bytes to the output directory.

        Raises:
            AttachmentWriteException: file could not be written
        """
        path = self.output_dir / filename
        if not path.resolve().is_relative_to(self.output_dir.resolve()):
            raise AttachmentWriteException(filename, detail=f"path escapes {self.output_dir}")
        try:
            path.write_bytes(data)
        except OSError as e:
            raise AttachmentWriteException(filename, detail=str(e)) from e
        return path

    def save_attachment(self, candidate: AttachmentCandidate) -> Optional[Path]:
        """
        Decode and persist a single candidate.

        Failures are logged and swallowed; the message has already been
        acknowledged to the client.

        Returns:
            Path: written file, or None if nothing was written
        """
        if not candidate.is_complete:
            return None

        try:
            data = self.decode(candidate)
        except AttachmentDecodeException as e:
            logger.warning(f"{e.message}: {e.detail}")
            record_attachment_error("decode")
            return None

        try:
            path = self.write(candidate.filename, data)
        except AttachmentWriteException as e:
            logger.error(f"{e.message}: {e.detail}")
            record_attachment_error("write")
            return None

        record_attachment_saved()
        logger.info(f"Saved attachment: {candidate.filename}")
        return path

    def process_body(self, body_lines: Sequence[str]) -> List[Path]:
        """
        Extract and save every attachment in a body.

        Args:
            body_lines: Raw body lines

        Returns:
            list: Paths of the files written
        """
        saved = []
        for candidate in self.find_attachments(body_lines):
            path = self.save_attachment(candidate)
            if path is not None:
                saved.append(path)
        return saved
