"""
mail-sink - Permissive SMTP Test Double

A forgiving SMTP responder that agrees with almost everything a client
sends, captures message bodies and saves base64 attachments to disk.

License: MIT
Version: 1.0.0
"""

__version__ = "1.0.0"
__license__ = "MIT"

# Package metadata
__all__ = [
    "__version__",
    "__license__",
]
