"""Minimal HTTP endpoint serving metrics text."""

from __future__ import annotations

import ipaddress
import logging
import select
import socket
import threading
from typing import Callable, Optional

_log = logging.getLogger(__name__)

_POLL_SECONDS = 0.5
_REQUEST_LIMIT = 4095
_CLIENT_TIMEOUT = 5.0


def _no_metrics() -> str:
    return ""


class MetricsServer:
    """Serves the text returned by ``render`` at ``GET <path>``.

    Any other request gets ``404 Not Found``. Each connection handles one
    request and is closed. ``render`` is typically a metrics registry's
    Prometheus exposition function.
    """

    def __init__(
        self,
        bind_address: str,
        port: int,
        path: str,
        render: Callable[[], str] = _no_metrics,
    ) -> None:
        self._bind_address = bind_address
        self._port = port
        self._path = path
        self._render = render
        self._running = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._listener: Optional[socket.socket] = None

    @property
    def port(self) -> int:
        """The listening port, as actually bound once started."""
        if self._listener is not None:
            return self._listener.getsockname()[1]
        return self._port

    def __enter__(self) -> "MetricsServer":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def start(self) -> None:
        """Bind, listen and serve in a background thread.

        Does nothing if already running; raises ``OSError`` if the address
        cannot be bound.
        """
        if self._running.is_set():
            return
        try:
            ipaddress.IPv4Address(self._bind_address)
            host = self._bind_address
        except ValueError:
            host = "0.0.0.0"
        listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            listener.bind((host, self._port))
            listener.listen(16)
        except OSError:
            _log.error("MetricsServer failed to bind %s:%d", self._bind_address, self._port)
            listener.close()
            raise
        self._listener = listener
        self._running.set()
        self._thread = threading.Thread(
            target=self._serve_loop, args=(listener,), name="metrics-server", daemon=True
        )
        self._thread.start()
        _log.info("MetricsServer started on %s:%d%s", self._bind_address, self.port, self._path)

    def stop(self) -> None:
        """Stop serving and wait for the background thread to exit."""
        if not self._running.is_set():
            return
        self._running.clear()
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        if self._listener is not None:
            self._listener.close()
            self._listener = None
        _log.info("MetricsServer stopped")

    def _serve_loop(self, listener: socket.socket) -> None:
        while self._running.is_set():
            try:
                ready, _, _ = select.select([listener], [], [], _POLL_SECONDS)
            except (OSError, ValueError):
                break
            if not ready:
                continue
            try:
                client, _ = listener.accept()
            except OSError:
                continue
            with client:
                try:
                    self._handle(client)
                except OSError as exc:
                    _log.debug("MetricsServer client error: %s", exc)

    def _handle(self, client: socket.socket) -> None:
        client.settimeout(_CLIENT_TIMEOUT)
        request = client.recv(_REQUEST_LIMIT)
        status_line = "HTTP/1.1 404 Not Found\r\n"
        body = "not found\n"
        if request:
            text = request.decode("latin-1")
            if text.startswith(f"GET {self._path} "):
                body = self._render()
                status_line = "HTTP/1.1 200 OK\r\n"
        payload = body.encode("utf-8")
        head = (
            status_line
            + "Content-Type: text/plain; version=0.0.4; charset=utf-8\r\n"
            + f"Content-Length: {len(payload)}\r\n"
            + "Connection: close\r\n\r\n"
        )
        client.sendall(head.encode("latin-1") + payload)