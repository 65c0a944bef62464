"""Transport: JSON-RPC session over the server pipes, and the process launcher."""

from .launcher import JdtLauncher, ServerProcess, platform_config_name
from .session import IGNORED_NOTIFICATIONS, TransportSession

__all__ = [
    "IGNORED_NOTIFICATIONS",
    "JdtLauncher",
    "ServerProcess",
    "TransportSession",
    "platform_config_name",
]
