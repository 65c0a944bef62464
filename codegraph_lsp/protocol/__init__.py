"""
JSON-RPC protocol layer

Message envelope, Content-Length framing, and request correlation.
"""

from .correlator import PendingRequest, RequestCorrelator
from .framer import MessageFramer
from .message import CONTENT_TYPE, JSONRPC_VERSION, Message, ResponseError

__all__ = [
    "CONTENT_TYPE",
    "JSONRPC_VERSION",
    "Message",
    "MessageFramer",
    "PendingRequest",
    "RequestCorrelator",
    "ResponseError",
]
