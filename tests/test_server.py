import socket
import time

import pytest

from watchrec.client import WatchClient
from watchrec.errors import CommandError
from watchrec.protocol import BUSY, TOO_LONG


def _connect(server):
    sock = socket.create_connection(("127.0.0.1", server.port), timeout=5)
    return sock, sock.makefile("rb")


def test_watch_and_recommend_over_tcp(tcp_server):
    with WatchClient("127.0.0.1", tcp_server.port, timeout=5) as client:
        assert client.watch("u1", "A") == []
        assert client.watch("u2", "A") == []
        assert client.watch("u2", "B") == ["A"]
        assert client.watch("u1", "C") == ["A"]
        assert sorted(client.recommend("A")) == ["B", "C"]
        assert client.recommend("zzz") == []
        assert client.send("RECOMMEND_FOR_VIDEO zzz") == "[]"


def test_bad_commands_keep_connection_open(tcp_server, store):
    with WatchClient("127.0.0.1", tcp_server.port, timeout=5) as client:
        assert client.send("WATCH") == "ERROR: Invalid WATCH command format"
        assert client.send("RECOMMEND_FOR_VIDEO") == "ERROR: Invalid RECOMMEND_FOR_VIDEO command format"
        assert client.send("FOO bar") == "ERROR: Unrecognized command"
        with pytest.raises(CommandError):
            client.recommend("")
        assert client.send("WATCH u1 A") == "WATCH_UPDATED, Recommendations: []"
    assert store.popularity("A") == 1
    assert store.stats().watch_events == 1


def test_two_commands_in_one_send(tcp_server):
    sock, reader = _connect(tcp_server)
    with sock, reader:
        sock.sendall(b"WATCH u1 A\r\nWATCH u1 B\nRECOMMEND_FOR_VIDEO A\n")
        assert reader.readline() == b"WATCH_UPDATED, Recommendations: []\n"
        assert reader.readline() == b'WATCH_UPDATED, Recommendations: ["A"]\n'
        assert reader.readline() == b'["B"]\n'


def test_command_split_across_sends(tcp_server):
    sock, reader = _connect(tcp_server)
    with sock, reader:
        sock.sendall(b"RECOMMEND_FOR_")
        time.sleep(0.05)
        sock.sendall(b"VIDEO zzz\n")
        assert reader.readline() == b"[]\n"


def test_unterminated_last_command_is_answered(tcp_server):
    sock, reader = _connect(tcp_server)
    with sock, reader:
        sock.sendall(b"RECOMMEND_FOR_VIDEO zzz")
        sock.shutdown(socket.SHUT_WR)
        assert reader.readline() == b"[]\n"
        assert reader.readline() == b""


def test_overlong_line_is_rejected(server_factory):
    server = server_factory(max_line_bytes=32)
    sock, reader = _connect(server)
    with sock, reader:
        sock.sendall(b"X" * 100 + b"\nRECOMMEND_FOR_VIDEO zzz\n")
        assert reader.readline().decode().rstrip("\n") == TOO_LONG
        assert reader.readline() == b"[]\n"


def test_connection_limit(server_factory):
    server = server_factory(max_connections=1)
    with WatchClient("127.0.0.1", server.port, timeout=5) as first:
        assert first.send("RECOMMEND_FOR_VIDEO zzz") == "[]"
        sock, reader = _connect(server)
        with sock, reader:
            assert reader.readline().decode().rstrip("\n") == BUSY
            assert reader.readline() == b""
        assert first.send("RECOMMEND_FOR_VIDEO zzz") == "[]"


def test_many_clients_share_one_store(tcp_server, store):
    clients = [WatchClient("127.0.0.1", tcp_server.port, timeout=5).connect() for _ in range(8)]
    try:
        for n, client in enumerate(clients):
            client.watch(f"u{n}", "shared")
            client.watch(f"u{n}", f"own{n}")
        ranked = clients[0].recommend("shared")
    finally:
        for client in clients:
            client.close()
    assert len(ranked) == 8
    assert store.popularity("shared") == 8
