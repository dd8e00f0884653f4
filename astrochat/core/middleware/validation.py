from __future__ import annotations

import json
from typing import Any, Dict, List, Tuple


def _first_problem(body: bytes) -> str:
    try:
        errors = json.loads(body or b"{}").get("detail") or []
    except (ValueError, AttributeError):
        return "Invalid input."
    if not isinstance(errors, list) or not errors:
        return "Invalid input."
    first = errors[0]
    loc = ".".join(str(part) for part in first.get("loc", []) if part != "body")
    msg = first.get("msg") or "invalid value"
    return f"{loc}: {msg}" if loc else msg


class ValidationNormalizeMiddleware:
    """Normalize FastAPI 422 validation responses into 400 with the domain error body."""

    def __init__(self, app: Any) -> None:
        self.app = app

    async def __call__(self, scope: Dict[str, Any], receive: Any, send: Any) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        status_code = 500
        headers: List[Tuple[bytes, bytes]] = []
        body_chunks: List[bytes] = []

        async def send_wrapper(message: Dict[str, Any]) -> None:
            nonlocal status_code, headers
            if message["type"] == "http.response.start":
                status_code = message.get("status", 500)
                headers = list(message.get("headers", []))
                if status_code != 422:
                    await send(message)
                return
            if status_code != 422:
                await send(message)
                return

            body_chunks.append(message.get("body", b"") or b"")
            if message.get("more_body"):
                return

            payload = json.dumps(
                {
                    "error": {
                        "kind": "validation",
                        "code": "invalid_request",
                        "detail": _first_problem(b"".join(body_chunks)),
                    }
                }
            ).encode("utf-8")
            filtered = [
                (key, value)
                for key, value in headers
                if key.lower() not in {b"content-length", b"content-type"}
            ]
            filtered.append((b"content-type", b"application/json"))
            filtered.append((b"content-length", str(len(payload)).encode("latin-1")))
            await send({"type": "http.response.start", "status": 400, "headers": filtered})
            await send({"type": "http.response.body", "body": payload})

        await self.app(scope, receive, send_wrapper)


__all__ = ["ValidationNormalizeMiddleware"]
