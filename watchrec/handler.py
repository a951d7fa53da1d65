import logging
import socketserver

from .engine import Recommender
from .errors import CommandError, StoreBusyError
from .protocol import (
    BUSY,
    TOO_LONG,
    Watch,
    format_list,
    format_watch_updated,
    parse_command,
)

logger = logging.getLogger(__name__)


def handle_line(recommender: Recommender, line: str) -> str:
    """Run one command line against the store and return the response line."""
    try:
        command = parse_command(line)
        if isinstance(command, Watch):
            ranked = recommender.watch_and_recommend(command.user_id, command.video_id)
            return format_watch_updated(ranked)
        return format_list(recommender.recommend(command.video_id))
    except CommandError as exc:
        return exc.message
    except StoreBusyError as exc:
        logger.warning("store busy: %s", exc)
        return BUSY


class RequestHandler(socketserver.StreamRequestHandler):
    """Per-connection loop: read a line, answer a line, until the peer goes away.

    Expects ``self.server`` to provide ``recommender`` and ``max_line_bytes``
    (see :class:`watchrec.server.WatchServer`).
    """

    def handle(self) -> None:
        peer = "%s:%s" % self.client_address[:2]
        logger.debug("connection opened: %s", peer)
        limit = self.server.max_line_bytes
        while True:
            try:
                raw = self.rfile.readline(limit + 1)
                if not raw:
                    break
                if len(raw) > limit and not raw.endswith(b"\n"):
                    self._discard_line(limit)
                    response = TOO_LONG
                else:
                    line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
                    response = handle_line(self.server.recommender, line)
                self.wfile.write(response.encode("utf-8") + b"\n")
            except OSError as exc:
                logger.debug("connection %s dropped: %s", peer, exc)
                break
        logger.debug("connection closed: %s", peer)

    def _discard_line(self, limit: int) -> None:
        while True:
            chunk = self.rfile.readline(limit + 1)
            if not chunk or chunk.endswith(b"\n"):
                return
