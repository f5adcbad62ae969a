from __future__ import annotations

import json
import logging
import time
import uuid
from typing import Any, Dict, Iterable, Optional, Tuple

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from intake_wizard.config import _env_bool, _env_int

logger = logging.getLogger("intake_wizard.http")

# Submitted answers carry contact details; never log them verbatim.
_SENSITIVE_KEYS = {
    "authorization",
    "cookie",
    "set-cookie",
    "openai_api_key",
    "email",
    "phone",
    "address",
    "firstname",
    "lastname",
}


def _redact(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: ("***" if str(k).lower() in _SENSITIVE_KEYS else _redact(v)) for k, v in value.items()}
    if isinstance(value, list):
        return [_redact(v) for v in value]
    return value


def _header(headers: Iterable[Tuple[bytes, bytes]], name: bytes) -> str:
    for k, v in headers:
        if k.lower() == name:
            return v.decode("latin-1", errors="replace")
    return ""


def _parse_body(content_type: str, body: bytes) -> Any:
    if not body:
        return ""
    if "application/json" in (content_type or "").lower():
        try:
            return _redact(json.loads(body.decode("utf-8", errors="replace")))
        except ValueError:
            pass
    if (content_type or "").lower().startswith(("text/", "application/json")):
        return body.decode("utf-8", errors="replace")
    return "<binary>"


class HttpLoggingMiddleware:
    """One JSON line per HTTP request: method, path, status, duration, capped bodies."""

    def __init__(self, app: ASGIApp, *, max_body_bytes: int) -> None:
        self.app = app
        self.max_body_bytes = max(0, max_body_bytes)

    def _capture(self, buf: bytearray, chunk: bytes) -> bool:
        remaining = self.max_body_bytes - len(buf)
        if remaining > 0:
            buf.extend(chunk[:remaining])
        return len(chunk) > remaining

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        started_at = time.perf_counter()
        req_headers = list(scope.get("headers") or [])
        request_id = _header(req_headers, b"x-request-id") or uuid.uuid4().hex[:12]
        req_buf, res_buf = bytearray(), bytearray()
        res: Dict[str, Any] = {"status": None, "content_type": "", "truncated": False}
        req_truncated = False

        async def receive_wrapped() -> Message:
            nonlocal req_truncated
            message = await receive()
            if message.get("type") == "http.request" and self.max_body_bytes:
                req_truncated = self._capture(req_buf, message.get("body") or b"") or req_truncated
            return message

        async def send_wrapped(message: Message) -> None:
            if message.get("type") == "http.response.start":
                res["status"] = int(message.get("status") or 0)
                res["content_type"] = _header(message.get("headers") or [], b"content-type")
            elif message.get("type") == "http.response.body" and self.max_body_bytes:
                res["truncated"] = self._capture(res_buf, message.get("body") or b"") or res["truncated"]
            await send(message)

        err: Optional[BaseException] = None
        try:
            await self.app(scope, receive_wrapped, send_wrapped)
        except BaseException as e:  # noqa: BLE001 - log then re-raise
            err = e
            raise
        finally:
            record: Dict[str, Any] = {
                "id": request_id,
                "method": str(scope.get("method") or "").upper(),
                "path": str(scope.get("path") or ""),
                "status": res["status"],
                "dur_ms": int((time.perf_counter() - started_at) * 1000),
                "request": {
                    "body": _parse_body(_header(req_headers, b"content-type"), bytes(req_buf)),
                    "body_truncated": req_truncated,
                },
                "response": {
                    "body": _parse_body(res["content_type"], bytes(res_buf)),
                    "body_truncated": res["truncated"],
                },
            }
            if err is not None:
                record["error"] = {"type": type(err).__name__, "message": str(err)}
            logger.info(json.dumps(record, ensure_ascii=False, separators=(",", ":"), default=str))


def install_http_logging(app: Any) -> bool:
    """
    Enable request/response logging via env vars.

    - `INTAKE_HTTP_LOG=1` enables the middleware
    - `INTAKE_HTTP_LOG_BODY_MAX_BYTES=4096` caps body bytes captured per request/response
    """
    if not _env_bool("INTAKE_HTTP_LOG", default=False):
        return False
    max_body_bytes = _env_int("INTAKE_HTTP_LOG_BODY_MAX_BYTES", default=4096)
    app.add_middleware(HttpLoggingMiddleware, max_body_bytes=max_body_bytes)
    return True
