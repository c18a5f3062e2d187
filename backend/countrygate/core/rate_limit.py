"""Rate limiting middleware — per API key or bearer user, falling back to client IP."""

from jose import JWTError
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from fastapi import Request, FastAPI
from fastapi.responses import JSONResponse

from countrygate.core.config import settings
from countrygate.core.errors import error_body
from countrygate.core.security import decode_access_token, hash_api_key


def _key_func(request: Request) -> str:
    """Rate limit key: the presented API key (hashed), then the bearer user, then IP."""
    raw = request.headers.get("x-api-key") or request.query_params.get("api_key")
    if raw:
        return f"key:{hash_api_key(raw)[:16]}"

    auth = request.headers.get("authorization", "")
    if auth.startswith("Bearer "):
        try:
            sub = decode_access_token(auth[7:]).get("sub")
        except JWTError:
            sub = None
        if sub:
            return f"user:{sub}"

    return get_remote_address(request)


limiter = Limiter(
    key_func=_key_func,
    default_limits=[settings.rate_limit_default],
    enabled=settings.rate_limit_enabled,
)


def setup_rate_limiting(app: FastAPI):
    """Attach SlowAPI rate limiting to the FastAPI app."""
    app.state.limiter = limiter

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        return JSONResponse(
            status_code=429,
            content=error_body("Rate limit exceeded", retry_after=str(exc.detail)),
        )

    app.add_middleware(SlowAPIMiddleware)
