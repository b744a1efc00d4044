"""API key verification for tracker endpoints."""

from fastapi import HTTPException, Header

from app.config import settings


async def verify_api_key(
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
    authorization: str | None = Header(default=None),
) -> str:
    """Validate the host's key via X-API-Key or Authorization: Bearer.

    With TRACKER_API_KEY unset every caller is let through.
    """
    if settings.tracker_api_key is None:
        return ""

    key = x_api_key
    if key is None and authorization and authorization.startswith("Bearer "):
        key = authorization[len("Bearer "):].strip()

    if key != settings.tracker_api_key:
        raise HTTPException(status_code=401, detail="Invalid or missing API key")

    return key
