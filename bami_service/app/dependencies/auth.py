# Request guards: service API key and admin bearer token
import logging
import secrets
from typing import Optional

from fastapi import Header, HTTPException

from bami_service.app.config import settings

logger = logging.getLogger(__name__)


async def require_api_key(x_api_key: Optional[str] = Header(None)):
    """Lets every request through when BAMI_API_KEY is unset."""
    required = settings.BAMI_API_KEY
    if not required:
        return
    if x_api_key and secrets.compare_digest(x_api_key.encode(), required.encode()):
        return
    logger.warning("Request rejected: missing or invalid X-API-Key header.")
    raise HTTPException(status_code=401, detail="Unauthorized")


async def require_admin_token(authorization: Optional[str] = Header(None)):
    header = authorization or ""
    token = header[len("Bearer "):] if header.startswith("Bearer ") else ""
    if token and secrets.compare_digest(token.encode(), settings.ADMIN_TOKEN.encode()):
        return
    logger.warning("Admin request rejected: missing or invalid bearer token.")
    raise HTTPException(status_code=401, detail="Unauthorized")
