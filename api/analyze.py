"""Vercel serverless entrypoint for POST /api/analyze.

Thin transport shell around healthrelay.services.analysis; settings, the
service and the limiter are built once per warm instance.
"""

from http.server import BaseHTTPRequestHandler
import json

from healthrelay.core.errors import PayloadTooLargeError, RequestError
from healthrelay.core.logging import configure_logging
from healthrelay.core.settings import get_settings
from healthrelay.services.analysis import AnalysisService, handle_analyze_request, resolve_client_ip
from healthrelay.services.rate_limiter import RateLimiter

settings = get_settings()
configure_logging(settings.log_level)
service = AnalysisService(settings)
limiter = RateLimiter(points=settings.rate_limit_points, duration=settings.rate_limit_duration_seconds)


class handler(BaseHTTPRequestHandler):
    def _client_ip(self) -> str:
        peer = self.client_address[0] if self.client_address else None
        return resolve_client_ip(peer, self.headers.get("x-forwarded-for"), settings.trust_forwarded_for)

    def _send_json(self, status: int, body: dict) -> None:
        payload = json.dumps(body).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(payload)))
        self.send_header("X-Content-Type-Options", "nosniff")
        if status == 405:
            self.send_header("Allow", "POST")
        self.end_headers()
        if self.command != "HEAD":
            self.wfile.write(payload)

    def _reject_method(self) -> None:
        status, body = handle_analyze_request(self.command, None, self._client_ip(), service)
        self._send_json(status, body)

    def _discard_body(self, length: int) -> None:
        # unread request bytes make the socket close with a reset
        while length > 0:
            chunk = self.rfile.read(min(length, 65536))
            if not chunk:
                break
            length -= len(chunk)

    def do_POST(self):
        try:
            length = max(int(self.headers.get("content-length") or 0), 0)
        except ValueError:
            err = RequestError(detail="Invalid Content-Length header")
            self._send_json(err.status_code, err.to_envelope())
            return
        if length > settings.max_body_bytes:
            self._discard_body(length)
            err = PayloadTooLargeError()
            self._send_json(err.status_code, err.to_envelope())
            return
        raw = self.rfile.read(length) if length else b""
        status, body = handle_analyze_request("POST", raw, self._client_ip(), service, limiter)
        self._send_json(status, body)

    do_GET = _reject_method
    do_PUT = _reject_method
    do_PATCH = _reject_method
    do_DELETE = _reject_method
    do_HEAD = _reject_method
    do_OPTIONS = _reject_method

    def log_message(self, format, *args):
        pass
