"""Minimal JWT-guarded HTTP endpoint.

Accepts a POST with ``Authorization: Bearer <jwt>`` and echoes the verified
claims; any credential problem is a 401. Useful for checking that a secret
file and a client agree before pointing them at an execution node.
"""

from __future__ import annotations

from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Request
from loguru import logger

from blockproducer import __version__
from blockproducer.auth.credentials import Claims, JwtCredential
from blockproducer.utils.exceptions import AuthError


def create_app(credential: JwtCredential) -> FastAPI:
    """Build the app around one shared-secret credential."""
    app = FastAPI(title="blockproducer auth", version=__version__)
    app.state.credential = credential

    async def require_bearer(request: Request) -> Claims:
        """Dependency: verified claims or 401."""
        cred: JwtCredential = request.app.state.credential
        try:
            return cred.authorize(request.headers.get("Authorization"))
        except AuthError as e:
            logger.info(f"Rejected request from {request.client.host if request.client else '?'}: {e.code}")
            raise HTTPException(
                status_code=401,
                detail={"error": e.code, "message": e.message},
                headers={"WWW-Authenticate": "Bearer"},
            ) from e

    @app.post("/")
    async def handle_request(claims: Claims = Depends(require_bearer)) -> dict[str, Any]:
        logger.debug(f"JWT accepted: iat={claims.issued_at} exp={claims.expires_at}")
        return {
            "message": "JWT validation successful",
            "jwt_issued_at": claims.issued_at,
            "jwt_expires_at": claims.expires_at,
        }

    return app
