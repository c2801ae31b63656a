"""Cancel a run when the HTTP client hangs up.

The bastion tears its connection down when it gives up on a dispatch
(deadline or cancel). The daemon notices the EOF on the request socket
and cancels the token, so the script's process group is killed instead of
finishing in the background.
"""

from contextlib import contextmanager
import logging
import select
import socket
import threading

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.1


def _watch(sock, token, stopped):
    while not stopped.is_set():
        try:
            readable, _, _ = select.select([sock], [], [], POLL_INTERVAL)
            if readable and sock.recv(1, socket.MSG_PEEK) == b"":
                break
        except ValueError:
            # TLS sockets refuse MSG_PEEK; nothing to watch
            return
        except OSError:
            break
        if readable:
            # Pipelined bytes, not a hang-up
            stopped.wait(POLL_INTERVAL)
    else:
        return

    logger.warning("Client disconnected, cancelling run")
    token.cancel("client disconnected")


@contextmanager
def cancel_on_disconnect(sock, token):
    """Cancel ``token`` if the peer of ``sock`` closes while the block runs.

    ``sock`` may be None (servers that do not expose the socket); the token
    is then left alone.
    """
    if sock is None:
        yield token
        return

    stopped = threading.Event()
    watcher = threading.Thread(
        target=_watch,
        args=(sock, token, stopped),
        name="disconnect-watcher",
        daemon=True,
    )
    watcher.start()
    try:
        yield token
    finally:
        stopped.set()
        watcher.join(timeout=1)
