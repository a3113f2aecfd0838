"""Shared-key guard for the session endpoints (x-api-key header)."""

import logging

from fastapi import HTTPException, Request, Security, status
from fastapi.security import APIKeyHeader

from sentinel import config

logger = logging.getLogger(__name__)

api_key_header = APIKeyHeader(name="x-api-key", auto_error=False)


async def verify_api_key(request: Request, api_key: str = Security(api_key_header)) -> str:
    """401 unless x-api-key matches SENTINEL_API_KEY. Rejections are logged
    against the session named in the path."""
    if api_key is not None and api_key == config.API_KEY:
        return api_key

    session_id = request.path_params.get("session_id", "")
    tag = f"[{session_id[:8]}]" if session_id else "[-]"
    reason = "missing" if api_key is None else "invalid"
    logger.warning(f"{tag} Rejected request to {request.url.path}: {reason} API key")
    detail = f"{reason.capitalize()} API key."
    if session_id:
        detail = f"{reason.capitalize()} API key for session '{session_id}'."
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)
