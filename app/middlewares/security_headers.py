from starlette.types import ASGIApp, Message, Receive, Scope, Send

HSTS_VALUE = b"max-age=63072000; includeSubDomains"

BASE_HEADERS: tuple[tuple[bytes, bytes], ...] = (
    (b"x-content-type-options", b"nosniff"),
    (b"x-frame-options", b"DENY"),
    (b"referrer-policy", b"strict-origin-when-cross-origin"),
    (b"permissions-policy", b"camera=(), microphone=(), geolocation=()"),
    (b"cache-control", b"no-store"),
)


class SecurityHeadersMiddleware:
    """Add default security headers unless the route already set them.

    API responses carry applicant PII, so they are never cached.
    """

    def __init__(
        self,
        app: ASGIApp,
        enable_hsts: bool = True,
        content_security_policy: str | None = None,
        csp_report_only: bool = False,
    ) -> None:
        self.app = app
        self.headers = list(BASE_HEADERS)
        if enable_hsts:
            self.headers.append((b"strict-transport-security", HSTS_VALUE))
        if content_security_policy:
            name = (
                b"content-security-policy-report-only"
                if csp_report_only
                else b"content-security-policy"
            )
            self.headers.append((name, content_security_policy.encode()))

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                current = list(message.get("headers", []))
                present = {key.lower() for key, _ in current}
                current.extend((key, value) for key, value in self.headers if key not in present)
                message["headers"] = current
            await send(message)

        await self.app(scope, receive, send_with_headers)
