import json
import logging
import socket
import threading

import requests
from requests.adapters import HTTPAdapter
from urllib3.connection import HTTPConnection, HTTPSConnection
from urllib3.connectionpool import HTTPConnectionPool, HTTPSConnectionPool

from bastion.cancellation import CancellationToken
from bastion.errors import DispatchError
from bastion.models.entities import RunResult

logger = logging.getLogger(__name__)

EXEC_PATH = "/api/v1/exec"
# Ceiling for a dispatch whose caller set no deadline
DEFAULT_DEADLINE_SECONDS = 600


class CancellableAdapter(HTTPAdapter):
    """HTTPAdapter that remembers the sockets it opens.

    ``abort()`` shuts them down, so a read blocked inside ``Session.send``
    fails at once instead of waiting for the daemon to answer.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._sockets = []
        self._aborted = False
        super().__init__(max_retries=0)

    def init_poolmanager(self, *args, **kwargs):
        super().init_poolmanager(*args, **kwargs)
        adapter = self

        class TrackedHTTPConnection(HTTPConnection):
            def connect(self):
                super().connect()
                adapter._track(self.sock)

        class TrackedHTTPSConnection(HTTPSConnection):
            def connect(self):
                super().connect()
                adapter._track(self.sock)

        class TrackedHTTPConnectionPool(HTTPConnectionPool):
            ConnectionCls = TrackedHTTPConnection

        class TrackedHTTPSConnectionPool(HTTPSConnectionPool):
            ConnectionCls = TrackedHTTPSConnection

        self.poolmanager.pool_classes_by_scheme = {
            "http": TrackedHTTPConnectionPool,
            "https": TrackedHTTPSConnectionPool,
        }

    def _track(self, sock):
        with self._lock:
            self._sockets.append(sock)
            aborted = self._aborted
        if aborted:
            _shutdown(sock)

    def abort(self):
        with self._lock:
            self._aborted = True
            sockets = list(self._sockets)
        for sock in sockets:
            _shutdown(sock)


def _shutdown(sock):
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError:
        # Already closed by the pool
        pass


class RunnerClient:
    """HTTP client for a daemon's exec endpoint.

    One session per call and no retries: each dispatch is a single
    attempt. Every failure is raised as DispatchError whose message names
    the stage that broke. Cancelling the token tears down the connection.
    """

    def __init__(self, connect_timeout=10.0, read_timeout=DEFAULT_DEADLINE_SECONDS):
        self.connect_timeout = connect_timeout
        self.read_timeout = read_timeout

    @staticmethod
    def exec_url(address):
        return address.rstrip("/") + EXEC_PATH

    def _read_timeout(self, token):
        remaining = token.remaining()
        if remaining is None:
            return self.read_timeout
        return min(remaining, self.read_timeout)

    def run(self, address, run_request, token=None):
        token = token or CancellationToken(timeout=self.read_timeout)

        try:
            payload = json.dumps(run_request.to_dict())
        except (TypeError, ValueError) as e:
            raise DispatchError(f"marshal request: {e}") from e

        try:
            prepared = requests.Request(
                "POST",
                self.exec_url(address),
                data=payload,
                headers={"Content-Type": "application/json"},
            ).prepare()
        except (requests.RequestException, ValueError) as e:
            raise DispatchError(f"build request: {e}") from e

        adapter = CancellableAdapter()
        session = requests.Session()
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        token.register(adapter.abort)
        try:
            if token.cancelled:
                raise DispatchError(f"request failed: {token.describe()}")
            try:
                response = session.send(
                    prepared,
                    timeout=(self.connect_timeout, self._read_timeout(token)),
                    allow_redirects=False,
                )
            except requests.RequestException as e:
                reason = token.describe() or e
                raise DispatchError(f"request failed: {reason}") from e

            if not 200 <= response.status_code < 300:
                body = response.text.strip()[:200]
                raise DispatchError(f"unexpected status {response.status_code}: {body}")

            try:
                return RunResult.from_dict(response.json())
            except ValueError as e:
                # requests' JSONDecodeError is a ValueError too
                raise DispatchError(f"decode response: {e}") from e
        finally:
            token.unregister(adapter.abort)
            session.close()
