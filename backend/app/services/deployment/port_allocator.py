"""
Port allocation service for local deployments.

Asks the OS for a free ephemeral port by binding a loopback listener to
port 0 and reading back the assigned number.

The allocation is advisory: nothing reserves the port between this call and
the engine binding it, so another process can take it first. No port table
is kept.
"""
import logging
import random
import socket

from app.core.config import settings

logger = logging.getLogger(__name__)


class PortAllocator:
    """Picks a currently unused host port."""

    def __init__(
        self,
        fallback_range_start: int = None,
        fallback_range_end: int = None,
        bind_host: str = "127.0.0.1",
    ):
        """
        Initialize the port allocator.

        Args:
            fallback_range_start: Start of the pseudo-random fallback range
            fallback_range_end: End of the pseudo-random fallback range
            bind_host: Address the probe listener binds to
        """
        self.fallback_range_start = fallback_range_start or settings.DEPLOYMENT_PORT_FALLBACK_START
        self.fallback_range_end = fallback_range_end or settings.DEPLOYMENT_PORT_FALLBACK_END
        self.bind_host = bind_host

    def allocate(self) -> int:
        """
        Allocate a free host port.

        Falls back to a pseudo-random port in the fallback range when the
        probe listener cannot be opened (e.g. descriptor exhaustion).

        Returns:
            Port number
        """
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
                sock.bind((self.bind_host, 0))
                sock.listen(1)
                port = sock.getsockname()[1]
        except OSError as e:
            port = random.randint(self.fallback_range_start, self.fallback_range_end)
            logger.warning(f"Failed to get available port ({e}), using random port {port}")
            return port

        logger.info(f"Allocated port {port}")
        return port


# Singleton instance
port_allocator = PortAllocator()
