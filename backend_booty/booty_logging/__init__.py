"""
Structured logging for Backend Booty.

Use get_logger() in every module; event names carry a component prefix
(poller_, classifier_, payload_, dispatch_, webhook_, store_, repo_, monitor_, api_).
"""

from backend_booty.booty_logging.logger import bind_signature, get_logger

__all__ = ["bind_signature", "get_logger"]
