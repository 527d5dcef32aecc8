"""Response header middleware: anti-crawl and cache control."""
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


class SecurityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response: Response = await call_next(request)

        # The dashboard is a private back office
        response.headers["X-Robots-Tag"] = "noindex, nofollow"

        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type:
            # Calendar and analysis data change under the user; always revalidate
            response.headers["Cache-Control"] = "private, no-cache"
        elif request.url.path.startswith("/uploads/"):
            # Upload names are random and never rewritten
            response.headers["Cache-Control"] = "public, max-age=86400"

        return response
