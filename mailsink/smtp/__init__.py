"""
SMTP Module

Permissive SMTP responder and attachment extraction.

The acceptor lives in mailsink.smtp.server.
"""

from mailsink.smtp.processor import AttachmentExtractor
from mailsink.smtp.handler import SinkSession

__all__ = [
    "SinkSession",
    "AttachmentExtractor",
]
