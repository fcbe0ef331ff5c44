"""
Output side channel.

The simulator is told a port number over the command pipe and connects
back to it; everything the target program prints then arrives here as raw
bytes. Exactly one connection is accepted, by one background thread, and
the handle is only read from the foreground thread after that thread joins.
"""

from __future__ import annotations

import select
import socket
import threading
from typing import Optional

from lc3spec.config import OUTPUT_HOST, debug_enabled


class OutputSocket:
    def __init__(self, host: Optional[str] = None, *, chunk_size: int = 1024) -> None:
        self.host = host or OUTPUT_HOST
        self.chunk_size = max(1, int(chunk_size))
        self.port: Optional[int] = None
        self._server: Optional[socket.socket] = None
        self._conn: Optional[socket.socket] = None
        self._accept_thread: Optional[threading.Thread] = None
        self._accept_error: Optional[BaseException] = None
        self._eof = False

    # --------- Lifecycle ---------
    def listen(self) -> int:
        """Bind a free local port, start the acceptor thread, return the port."""
        if self._server is not None and self.port is not None:
            return self.port
        srv = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            srv.bind((self.host, 0))
            srv.listen(1)
        except OSError:
            srv.close()
            raise
        self._server = srv
        self.port = int(srv.getsockname()[1])

        def _acceptor():
            try:
                conn, peer = srv.accept()
            except OSError as ex:
                # listening socket closed before the simulator connected
                self._accept_error = ex
                return
            self._conn = conn
            if debug_enabled():
                print(f"[OUT] accepted {peer[0]}:{peer[1]} on port {self.port}")

        th = threading.Thread(target=_acceptor, name=f"lc3-output-{self.port}", daemon=True)
        th.start()
        self._accept_thread = th
        return self.port

    def wait_connected(self, timeout: Optional[float] = None) -> bool:
        th = self._accept_thread
        if th is None:
            return self._conn is not None
        th.join(timeout)
        return self._conn is not None

    def is_connected(self) -> bool:
        return self._conn is not None and not self._eof

    def close(self) -> None:
        if self._server is not None:
            # wakes an acceptor still blocked in accept()
            try:
                self._server.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
        th = self._accept_thread
        if th is not None and th is not threading.current_thread():
            # a connection accepted during shutdown lands in _conn before the close below
            th.join(timeout=1.0)
        for sock in (self._conn, self._server):
            if sock is None:
                continue
            try:
                sock.close()
            except OSError:
                pass
        self._conn = None
        self._server = None

    # --------- Reading ---------
    def ready(self, timeout: float = 0.0) -> bool:
        conn = self._conn
        if conn is None or self._eof:
            return False
        readable, _, _ = select.select([conn], [], [], max(0.0, float(timeout)))
        return bool(readable)

    def read_available(self) -> bytes:
        """Drain every byte currently buffered without blocking."""
        buf = bytearray()
        while self.ready():
            chunk = self._conn.recv(self.chunk_size)  # type: ignore[union-attr]
            if not chunk:
                # peer closed; stop select() from reporting readable forever
                self._eof = True
                break
            buf.extend(chunk)
        return bytes(buf)
