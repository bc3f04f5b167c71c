"""
ASGI middleware binding a request ID to every log record of a request.

Written against raw ASGI so streamed bodies pass through untouched.
"""
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from memo.core.logging import RequestIDContext

REQUEST_ID_HEADER = "x-request-id"


class RequestIDMiddleware:
    """Reuse the caller's X-Request-ID or mint one, and echo it back."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        incoming = None
        for name, value in scope.get("headers", []):
            if name.decode("latin-1").lower() == REQUEST_ID_HEADER:
                incoming = value.decode("latin-1")
                break

        with RequestIDContext(incoming) as request_id:

            async def send_with_request_id(message: Message) -> None:
                if message["type"] == "http.response.start":
                    headers = list(message.get("headers", []))
                    headers.append((REQUEST_ID_HEADER.encode("latin-1"), request_id.encode("latin-1")))
                    message["headers"] = headers
                await send(message)

            await self.app(scope, receive, send_with_request_id)
