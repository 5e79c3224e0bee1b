"""Supabase JWT auth middleware.

A request without a bearer token passes through with ``request.state.user``
set to None; handlers that mutate data reject it. A token that is present but
fails verification is rejected here with 401.
"""

from __future__ import annotations

import logging
import os
import time
from typing import Any, Dict, Optional

import httpx
from jose import jwt
from jose.exceptions import JWTError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse


_JWKS_CACHE: Dict[str, Any] = {"keys": None, "fetched_at": 0.0, "ttl": 600.0}
_logger = logging.getLogger("storefront.auth")


def _fetch_jwks(jwks_url: str, force: bool = False) -> dict:
    now = time.time()
    if not force and _JWKS_CACHE["keys"] and now - _JWKS_CACHE["fetched_at"] < _JWKS_CACHE["ttl"]:
        return _JWKS_CACHE["keys"]
    resp = httpx.get(jwks_url, timeout=10.0)
    resp.raise_for_status()
    data = resp.json()
    _JWKS_CACHE["keys"] = data
    _JWKS_CACHE["fetched_at"] = now
    return data


def _get_bearer_token(request: Request) -> Optional[str]:
    auth = request.headers.get("Authorization", "")
    if not auth.startswith("Bearer "):
        return None
    return auth.split(" ", 1)[1].strip() or None


def _find_jwk(jwks: dict, kid: str | None) -> dict | None:
    for jwk in jwks.get("keys", []):
        if jwk.get("kid") == kid:
            return jwk
    return None


def verify_jwt(token: str, jwks_url: str, issuer: str, audience: Optional[str], secret: Optional[str] = None) -> dict:
    options = {"verify_aud": audience is not None}
    if secret:
        return jwt.decode(token, secret, algorithms=["HS256"], issuer=issuer, audience=audience, options=options)
    headers = jwt.get_unverified_header(token)
    kid = headers.get("kid")
    key = _find_jwk(_fetch_jwks(jwks_url), kid)
    if key is None:
        key = _find_jwk(_fetch_jwks(jwks_url, force=True), kid)
    if key is None:
        raise JWTError("Unknown kid")
    return jwt.decode(token, key, algorithms=[headers.get("alg", "RS256")], issuer=issuer, audience=audience, options=options)


def _invalid_token_response() -> JSONResponse:
    return JSONResponse(
        {
            "ok": False,
            "errors": [
                {
                    "code": "AUTH_INVALID_TOKEN",
                    "message": "Invalid bearer token",
                    "path": "Authorization",
                    "detail": None,
                }
            ],
            "warnings": [],
        },
        status_code=401,
    )


class SupabaseAuthMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, supabase_url: str, audience: Optional[str] = None, jwt_secret: Optional[str] = None) -> None:
        super().__init__(app)
        self._supabase_url = supabase_url.rstrip("/")
        self._audience = audience
        self._jwt_secret = jwt_secret
        self._jwks_url = f"{self._supabase_url}/auth/v1/.well-known/jwks.json"
        self._issuer = f"{self._supabase_url}/auth/v1"

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        request.state.user = None
        if request.method == "OPTIONS" or request.url.path in {"/health"}:
            return await call_next(request)

        token = _get_bearer_token(request)
        if not token:
            return await call_next(request)

        try:
            claims = verify_jwt(token, self._jwks_url, self._issuer, self._audience, self._jwt_secret)
        except Exception as exc:
            _logger.warning(
                "auth_invalid_token path=%s issuer=%s audience=%s error=%s",
                request.url.path,
                self._issuer,
                self._audience,
                exc,
            )
            return _invalid_token_response()

        request.state.user = {
            "id": claims.get("sub"),
            "email": claims.get("email"),
            "role": claims.get("role"),
            "claims": claims,
        }
        request.state.auth_ms = (time.perf_counter() - start) * 1000
        return await call_next(request)


def dev_user_from_env() -> dict | None:
    """Fixed identity used when auth is disabled for local development."""
    user_id = os.getenv("STOREFRONT_DEV_USER_ID", "").strip()
    if not user_id:
        return None
    return {"id": user_id, "email": os.getenv("STOREFRONT_DEV_USER_EMAIL") or None, "role": "authenticated", "claims": {}}
