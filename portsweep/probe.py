"""
Probe - a single TCP connect attempt against one port.

The handshake is the whole test: the connection is closed as soon as it
is established, nothing is sent or read. Every connect failure is a
normal outcome and is classified rather than raised; running out of
local file descriptors is not a port outcome and is raised.
"""

import asyncio
import errno
import logging
from enum import Enum
from typing import Optional

from .errors import DescriptorExhaustedError

logger = logging.getLogger(__name__)

UNREACHABLE_ERRNOS = {
    errno.EHOSTUNREACH,
    errno.ENETUNREACH,
    errno.EHOSTDOWN,
    errno.ENETDOWN,
}

# Local resource exhaustion, says nothing about the remote port
DESCRIPTOR_ERRNOS = {errno.EMFILE, errno.ENFILE}


class PortState(Enum):
    OPEN = "open"
    CLOSED = "closed"            # refused, definitely closed
    TIMEOUT = "timeout"
    UNREACHABLE = "unreachable"
    ERROR = "error"

    @property
    def inconclusive(self) -> bool:
        return self not in (PortState.OPEN, PortState.CLOSED)


async def probe_port(address, port: int, timeout: Optional[float] = None) -> PortState:
    """
    Attempt one TCP connection to address:port and classify the outcome.
    With timeout=None the platform's connect timeout applies.
    """
    host = str(address)
    try:
        conn = asyncio.open_connection(host, port)
        if timeout is None:
            _, writer = await conn
        else:
            _, writer = await asyncio.wait_for(conn, timeout=timeout)
    # Must come before OSError: asyncio.TimeoutError is an OSError on 3.11+
    except asyncio.TimeoutError:
        logger.debug("%s:%d timed out", host, port)
        return PortState.TIMEOUT
    except ConnectionRefusedError:
        logger.debug("%s:%d refused", host, port)
        return PortState.CLOSED
    except OSError as e:
        if e.errno in DESCRIPTOR_ERRNOS:
            raise DescriptorExhaustedError(
                f"Out of file descriptors while connecting to {host}:{port}"
            ) from e
        if e.errno == errno.ETIMEDOUT:
            logger.debug("%s:%d timed out", host, port)
            return PortState.TIMEOUT
        if e.errno in UNREACHABLE_ERRNOS:
            logger.debug("%s:%d unreachable: %s", host, port, e)
            return PortState.UNREACHABLE
        logger.debug("%s:%d connect error: %s", host, port, e)
        return PortState.ERROR

    writer.close()
    try:
        await writer.wait_closed()
    except OSError:
        # Peer reset during teardown, the port was still open
        pass
    logger.debug("%s:%d open", host, port)
    return PortState.OPEN


async def probe(address, port: int, timeout: Optional[float] = None) -> bool:
    """True if a TCP connection to address:port could be established."""
    return await probe_port(address, port, timeout) is PortState.OPEN
