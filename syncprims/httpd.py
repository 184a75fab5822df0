"""Minimal static HTTP/1.0 and HTTP/1.1 server with a pool of worker threads.

One accepting thread puts new connections on a shared queue. Worker threads
take connections off it, answer one request each time, and put keep-alive
connections back. Only ``GET`` and ``HEAD`` of ``/`` or ``/index.html`` are
served, from ``index.html`` in the document root. Request headers are read
but ignored.
"""

from __future__ import annotations

import argparse
import enum
import logging
import os
import queue
import re
import socket
import sys
import threading
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from email.utils import formatdate

DEFAULT_PORT = 9000
BACKLOG = 1024
MAXMSG = 1024
_MIN_TIMEOUT = 10
_CONNECTIONS_PER_SECOND = 50
_WHITESPACE = re.compile(r"[ \t]")

logger = logging.getLogger(__name__)


class Status(enum.IntEnum):
    """Response status codes the server can send."""

    OK = 200
    BAD_REQUEST = 400
    FORBIDDEN = 403
    NOT_FOUND = 404
    REQUEST_TIMEOUT = 408
    REQUEST_TOO_LARGE = 413
    SERVER_ERROR = 500

    @property
    def reason(self) -> str:
        """The reason phrase sent after the code."""
        return _REASONS[self]


_REASONS = {
    Status.OK: "OK",
    Status.BAD_REQUEST: "Bad Request",
    Status.FORBIDDEN: "Forbidden",
    Status.NOT_FOUND: "Not Found",
    Status.REQUEST_TIMEOUT: "Request Timeout",
    Status.REQUEST_TOO_LARGE: "Request Entity Too Large",
    Status.SERVER_ERROR: "Internal Server Error",
}


class Method(enum.Enum):
    """Supported request methods."""

    GET = "GET"
    HEAD = "HEAD"


class ContentType(enum.Enum):
    """Top-level media types."""

    APPLICATION = "application"
    AUDIO = "audio"
    IMAGE = "image"
    MESSAGE = "message"
    MULTIPART = "multipart"
    TEXT = "text"
    VIDEO = "video"


_VERSIONS = {"HTTP/1.0": 0, "HTTP/1.1": 1}


@dataclass
class HttpRequest:
    """A parsed request line."""

    method: Method
    path: str
    type: ContentType
    protocol_version: int


class RequestError(Exception):
    """A request could not be received or answered normally."""

    def __init__(self, status: Status, message: str | None = None) -> None:
        super().__init__(message or f"{status.value} {status.reason}")
        self.status = status


def _lines(msg: str) -> Iterator[str]:
    """Split on LF or CRLF line ends, whichever the next line uses."""
    rest: str | None = msg
    while rest is not None:
        cr = rest.find("\r")
        lf = rest.find("\n")
        if cr < 0 or lf < 0 or lf < cr:
            if lf < 0:
                yield rest
                rest = None
            else:
                yield rest[:lf]
                rest = rest[lf + 1 :]
        else:
            yield rest[:cr]
            rest = rest[cr + 2 :]


def _tokens(line: str) -> Iterator[str]:
    """Split on the first blank, then skip any further blanks."""
    rest: str | None = line
    while rest is not None:
        match = _WHITESPACE.search(rest)
        if match is None:
            yield rest
            rest = None
        else:
            yield rest[: match.start()]
            rest = rest[match.start() + 1 :].lstrip(" \t")


def _parse_initial_line(line: str, document_root: str) -> HttpRequest:
    tokens = _tokens(line)

    token = next(tokens, None)
    if token is None:
        raise RequestError(Status.BAD_REQUEST)
    try:
        method = Method(token)
    except ValueError:
        raise RequestError(Status.BAD_REQUEST) from None

    token = next(tokens, None)
    if token is None:
        raise RequestError(Status.BAD_REQUEST)
    if token not in ("/", "/index.html"):
        raise RequestError(Status.NOT_FOUND)
    path = os.path.join(document_root, "index.html")

    token = next(tokens, None)
    if token is None or token not in _VERSIONS:
        raise RequestError(Status.BAD_REQUEST)

    return HttpRequest(method, path, ContentType.TEXT, _VERSIONS[token])


def parse_request(msg: str | bytes, document_root: str) -> HttpRequest:
    """Parse a request message; raise :class:`RequestError` if it cannot be served."""
    if isinstance(msg, (bytes, bytearray)):
        msg = bytes(msg).decode("latin-1")
    msg = msg.split("\0", 1)[0]
    lines = _lines(msg)
    request = _parse_initial_line(next(lines), str(document_root))
    for line in lines:
        if not line:
            break
        # Request headers are accepted and ignored.
    return request


def response_head(
    status: Status,
    request: HttpRequest | None,
    content_length: int | None = None,
    now: float | None = None,
) -> bytes:
    """Build the status line and headers, ending with the blank line."""
    status = Status(status)
    version = request.protocol_version if request is not None else 0
    lines = [
        f"HTTP/1.{version} {status.value} {status.reason}",
        f"Date: {formatdate(now, usegmt=True)}",
    ]
    if status is Status.OK and request is not None and request.method is Method.GET:
        if content_length is None:
            content_length = os.stat(request.path).st_size
        lines.append(f"Content-Length: {content_length}")
        lines.append(f"Content-Type: {request.type.value}")
    return ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1")


def receive_request(conn: socket.socket) -> bytes | None:
    """Read until a blank line ends the head or ``MAXMSG`` bytes arrive.

    Returns ``None`` when the client closes the connection first.
    """
    data = bytearray()
    while b"\r\n\r\n" not in data and b"\n\n" not in data and len(data) < MAXMSG:
        try:
            chunk = conn.recv(MAXMSG - len(data))
        except (TimeoutError, BlockingIOError):
            raise RequestError(Status.REQUEST_TIMEOUT) from None
        except OSError as exc:
            raise RequestError(Status.SERVER_ERROR, str(exc)) from exc
        if not chunk:
            return None
        data += chunk
    return bytes(data)


def handle_connection(conn: socket.socket, document_root: str) -> bool:
    """Answer one request on ``conn``.

    Returns True if the connection stays open for another request; otherwise
    the connection has been closed.
    """
    request: HttpRequest | None = None
    try:
        msg = receive_request(conn)
        if msg is None:
            conn.close()
            return False
        request = parse_request(msg, document_root)
        status = Status.OK
    except RequestError as err:
        status = err.status
        if status is Status.SERVER_ERROR:
            logger.warning("recv: %s", err)

    body = b""
    if status is Status.OK and request is not None and request.method is Method.GET:
        try:
            with open(request.path, "rb") as file:
                body = file.read()
        except OSError as exc:
            logger.warning("open: %s", exc)
            status = Status.SERVER_ERROR

    try:
        conn.sendall(response_head(status, request, len(body)) + body)
    except OSError as exc:
        logger.warning("send: %s", exc)
        conn.close()
        return False

    if request is None or request.protocol_version == 0 or status is not Status.OK:
        conn.close()
        return False
    return True


def receive_timeout(queued: int) -> int:
    """Receive timeout in seconds: ten, plus one for every 50 queued connections."""
    timeout = _MIN_TIMEOUT
    if queued > 0:
        timeout += queued // _CONNECTIONS_PER_SECOND
    return timeout


def serve(
    host: str = "",
    port: int = DEFAULT_PORT,
    document_root: str | None = None,
    workers: int | None = None,
) -> None:
    """Accept connections forever and answer them with a pool of worker threads."""
    root = document_root or os.path.join(os.getcwd(), "resources")
    n_workers = workers or 12 * (os.cpu_count() or 1)
    connections: queue.Queue[socket.socket] = queue.Queue()

    def work() -> None:
        while True:
            conn = connections.get()
            try:
                keep = handle_connection(conn, root)
            except Exception:
                logger.exception("connection failed")
                conn.close()
                keep = False
            if keep:
                connections.put(conn)

    for _ in range(n_workers):
        threading.Thread(target=work, daemon=True).start()

    with socket.create_server((host, port), backlog=BACKLOG) as listener:
        while True:
            try:
                conn, _ = listener.accept()
            except OSError as exc:
                logger.warning("accept: %s", exc)
                continue
            conn.settimeout(receive_timeout(connections.qsize()))
            connections.put(conn)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the server from the command line."""
    parser = argparse.ArgumentParser(description="Serve index.html over HTTP.")
    parser.add_argument("--host", default="", help="address to listen on")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument(
        "--root", default=None, help="document root (default: ./resources)"
    )
    parser.add_argument("--workers", type=int, default=None)
    args = parser.parse_args(argv)
    try:
        serve(args.host, args.port, args.root, args.workers)
    except KeyboardInterrupt:
        return 0
    except OSError as exc:
        print(f"{parser.prog}: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())