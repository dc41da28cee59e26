"""HTTP server exposing the task API."""

from __future__ import annotations

import argparse
import sys
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Optional, Sequence
from urllib.parse import parse_qs, unquote, urlsplit

from taskapi.handlers import Response, TaskHandler
from taskapi.storage import MemoryStorage

ALLOWED_ORIGINS = frozenset({"https://etrex.tw", "https://etrex.github.io"})
DEFAULT_PORT = 8080
_JSON_TYPE = "application/json; charset=utf-8"
_TEXT_TYPE = "text/plain"
_NOT_FOUND_BODY = b"404 page not found"


def cors_headers(origin: Optional[str]) -> dict[str, str]:
    """CORS response headers for a request from the given origin.

    Only the front-end origins are allowed; any other origin gets none.
    """
    if origin not in ALLOWED_ORIGINS:
        return {}
    return {
        "Access-Control-Allow-Origin": origin,
        "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type",
    }


class _TaskServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, address: tuple[str, int], task_handler: TaskHandler) -> None:
        self.task_handler = task_handler
        super().__init__(address, _RequestHandler)


class _RequestHandler(BaseHTTPRequestHandler):
    protocol_version = "HTTP/1.1"
    server: _TaskServer

    def do_GET(self) -> None:
        self._dispatch()

    def do_HEAD(self) -> None:
        self._dispatch()

    def do_POST(self) -> None:
        self._dispatch()

    def do_PUT(self) -> None:
        self._dispatch()

    def do_PATCH(self) -> None:
        self._dispatch()

    def do_DELETE(self) -> None:
        self._dispatch()

    def do_OPTIONS(self) -> None:
        self._dispatch()

    def _read_body(self) -> bytes:
        try:
            length = int(self.headers.get("Content-Length") or 0)
        except ValueError:
            length = 0
        return self.rfile.read(length) if length > 0 else b""

    def _dispatch(self) -> None:
        body = self._read_body()
        extra = cors_headers(self.headers.get("Origin"))
        if self.command == "OPTIONS":
            self._send(HTTPStatus.NO_CONTENT, b"", None, extra)
            return
        url = urlsplit(self.path)
        page = parse_qs(url.query, keep_blank_values=True).get("page", [None])[0]
        response = self._route(unquote(url.path), page, body)
        if response is None:
            self._send(HTTPStatus.NOT_FOUND, _NOT_FOUND_BODY, _TEXT_TYPE, extra)
        else:
            self._send(response.status, response.body().encode("utf-8"), _JSON_TYPE, extra)

    def _route(self, path: str, page: Optional[str], body: bytes) -> Optional[Response]:
        handler = self.server.task_handler
        method = self.command
        if path == "/health":
            return Response(HTTPStatus.OK, {"status": "ok"}) if method == "GET" else None
        if path == "/tasks":
            if method == "GET":
                return handler.list_tasks(page)
            if method == "POST":
                return handler.create_task(body)
            if method == "DELETE":
                return handler.delete_all_tasks()
            return None
        if path.startswith("/tasks/"):
            task_id = path[len("/tasks/"):]
            if not task_id or "/" in task_id:
                return None
            if method == "GET":
                return handler.get_task(task_id)
            if method == "PUT":
                return handler.update_task(task_id, body)
            if method == "DELETE":
                return handler.delete_task(task_id)
        return None

    def _send(
        self,
        status: int,
        payload: bytes,
        content_type: Optional[str],
        extra: dict[str, str],
    ) -> None:
        self.send_response(int(status))
        for name, value in extra.items():
            self.send_header(name, value)
        if content_type is not None:
            self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        if payload and self.command != "HEAD":
            self.wfile.write(payload)


def create_server(
    handler: TaskHandler, address: tuple[str, int] = ("", DEFAULT_PORT)
) -> ThreadingHTTPServer:
    """Build a threaded HTTP server that routes task requests to the handler."""
    return _TaskServer(address, handler)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the task API server until interrupted."""
    parser = argparse.ArgumentParser(description="Task management HTTP API.")
    parser.add_argument("--host", default="", help="address to bind (default: all)")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="port to listen on")
    args = parser.parse_args(argv)

    server = create_server(TaskHandler(MemoryStorage()), (args.host, args.port))
    print(f"Listening and serving HTTP on {args.host}:{args.port}", file=sys.stderr)
    with server:
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            pass
    return 0


if __name__ == "__main__":
    sys.exit(main())