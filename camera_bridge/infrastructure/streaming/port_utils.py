"""Stream-port availability checks used to hand a port from one session to the next."""
import asyncio
import socket


def is_port_available(port: int, host: str = "0.0.0.0") -> bool:
    """
    Try to bind the port. Any bind failure (address in use, permission)
    means unavailable.
    """
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        # Same reuse semantics as the stream server, so TIME_WAIT leftovers
        # from closed viewer connections do not count as "in use"
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
    except OSError:
        return False
    finally:
        sock.close()
    return True


async def wait_for_port_release(
    port: int,
    timeout: float,
    interval: float = 0.2,
    host: str = "0.0.0.0",
) -> bool:
    """
    Poll until the port can be bound or the timeout elapses.

    Returns:
        True if the port became available, False if it is still bound
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while True:
        if is_port_available(port, host):
            return True
        if loop.time() >= deadline:
            return False
        await asyncio.sleep(interval)
