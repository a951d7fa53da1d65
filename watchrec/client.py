import socket
from typing import List, Optional

from .errors import CommandError
from .protocol import RECOMMEND_FOR_VIDEO, WATCH, parse_list, parse_watch_updated


class WatchClient:
    """Blocking client for the newline-delimited watch protocol."""

    def __init__(self, host: str = "127.0.0.1", port: int = 5555, timeout: Optional[float] = 10):
        self.host = host
        self.port = port
        self.timeout = timeout
        self._sock: Optional[socket.socket] = None
        self._reader = None

    def connect(self) -> "WatchClient":
        if self._sock is None:
            self._sock = socket.create_connection((self.host, self.port), timeout=self.timeout)
            self._reader = self._sock.makefile("rb")
        return self

    def close(self) -> None:
        if self._reader is not None:
            self._reader.close()
            self._reader = None
        if self._sock is not None:
            self._sock.close()
            self._sock = None

    def __enter__(self) -> "WatchClient":
        return self.connect()

    def __exit__(self, *exc) -> None:
        self.close()

    def send(self, line: str) -> str:
        """Send one command line and return the raw response line."""
        self.connect()
        self._sock.sendall(line.encode("utf-8") + b"\n")
        reply = self._reader.readline()
        if not reply:
            raise ConnectionError("server closed the connection")
        return reply.decode("utf-8").rstrip("\r\n")

    def watch(self, user_id: str, video_id: str) -> List[str]:
        return parse_watch_updated(self._request(f"{WATCH} {user_id} {video_id}"))

    def recommend(self, video_id: str) -> List[str]:
        return parse_list(self._request(f"{RECOMMEND_FOR_VIDEO} {video_id}"))

    def _request(self, line: str) -> str:
        reply = self.send(line)
        if reply.startswith("ERROR:"):
            raise CommandError(reply)
        return reply
