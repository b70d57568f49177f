"""
Custom Exceptions

Sink-specific exceptions with error codes and messages.
"""

from typing import Optional, Any


class MailSinkException(Exception):
    """
    Base exception for all mail sink errors.
    """

    def __init__(
        self,
        message: str,
        error_code: str = "internal_error",
        detail: Optional[Any] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.detail = detail
        super().__init__(self.message)


class AttachmentDecodeException(MailSinkException):
    """
    Raised when an attachment payload is not valid base64.
    """

    def __init__(self, filename: str, detail: Optional[Any] = None):
        super().__init__(
            message=f"Error decoding base64 for {filename}",
            error_code="attachment_decode_error",
            detail=detail,
        )


class AttachmentWriteException(MailSinkException):
    """
    Raised when a decoded attachment cannot be written to disk.
    """

    def __init__(self, filename: str, detail: Optional[Any] = None):
        super().__init__(
            message=f"Error saving attachment {filename}",
            error_code="attachment_write_error",
            detail=detail,
        )
