import argparse
import logging
import socketserver
import threading
from typing import List, Optional, Tuple

from dotenv import load_dotenv

from .config import Settings, get_settings
from .engine import Recommender
from .handler import RequestHandler
from .protocol import BUSY
from .store import WatchStore

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # basicConfig is a no-op once handlers exist; the level still applies
    logging.getLogger().setLevel(level.upper())


class WatchServer(socketserver.ThreadingTCPServer):
    """Thread-per-connection TCP server sharing one recommender.

    ``max_connections`` of 0 admits every connection. Above the limit a
    client gets a single busy line and is disconnected.
    """

    daemon_threads = True
    allow_reuse_address = True

    def __init__(
        self,
        server_address: Tuple[str, int],
        recommender: Recommender,
        max_connections: int = 0,
        max_line_bytes: int = 4096,
    ):
        self.recommender = recommender
        self.max_line_bytes = max_line_bytes
        self.max_connections = max_connections
        self._slots = threading.BoundedSemaphore(max_connections) if max_connections > 0 else None
        super().__init__(server_address, RequestHandler)

    @property
    def port(self) -> int:
        return self.server_address[1]

    def process_request(self, request, client_address):
        if self._slots is not None and not self._slots.acquire(blocking=False):
            logger.warning(
                "connection from %s rejected: %d concurrent connections reached",
                client_address[0],
                self.max_connections,
            )
            try:
                request.sendall(BUSY.encode("utf-8") + b"\n")
            except OSError:
                pass
            self.shutdown_request(request)
            return
        try:
            super().process_request(request, client_address)
        except Exception:
            if self._slots is not None:
                self._slots.release()
            raise

    def process_request_thread(self, request, client_address):
        try:
            super().process_request_thread(request, client_address)
        finally:
            if self._slots is not None:
                self._slots.release()

    def serve_in_background(self) -> threading.Thread:
        thread = threading.Thread(target=self.serve_forever, name="watchrec-tcp", daemon=True)
        thread.start()
        logger.info("watch server listening on %s:%d", self.server_address[0], self.port)
        return thread


def build_server(settings: Settings, recommender: Optional[Recommender] = None) -> WatchServer:
    if recommender is None:
        store = WatchStore(lock_timeout=settings.lock_timeout_seconds)
        recommender = Recommender(store, limit=settings.recommendation_limit)
    return WatchServer(
        (settings.host, settings.port),
        recommender,
        max_connections=settings.max_connections,
        max_line_bytes=settings.max_line_bytes,
    )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    settings = get_settings()
    ap = argparse.ArgumentParser(prog="watchrec-server", description="Co-watch video recommendation server")
    ap.add_argument("--host", default=settings.host)
    ap.add_argument("--port", type=int, default=settings.port)
    ap.add_argument("--max-connections", type=int, default=settings.max_connections)
    ap.add_argument("--lock-timeout", type=float, default=settings.lock_timeout_seconds)
    ap.add_argument("--limit", type=int, default=settings.recommendation_limit)
    ap.add_argument("--log-level", default=settings.log_level)
    ap.add_argument("--http", action="store_true", help="also serve the HTTP API (runs the TCP server alongside)")
    ap.add_argument("--http-host", default=settings.http_host)
    ap.add_argument("--http-port", type=int, default=settings.http_port)
    return ap.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    load_dotenv()
    args = parse_args(argv)
    configure_logging(args.log_level)
    settings = get_settings().model_copy(
        update={
            "host": args.host,
            "port": args.port,
            "max_connections": args.max_connections,
            "lock_timeout_seconds": args.lock_timeout,
            "recommendation_limit": args.limit,
            "log_level": args.log_level,
        }
    )

    if args.http:
        import uvicorn
        from .main import create_app

        uvicorn.run(create_app(settings), host=args.http_host, port=args.http_port)
        return

    with build_server(settings) as server:
        logger.info("watch server listening on %s:%d", settings.host, server.port)
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            logger.info("shutting down")


if __name__ == "__main__":
    main()
