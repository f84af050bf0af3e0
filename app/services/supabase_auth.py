from fastapi import HTTPException
import httpx
from jose import jwt, JWTError
from app.config import settings

JWKS_CACHE = None


async def get_jwks():
    global JWKS_CACHE
    if JWKS_CACHE:
        return JWKS_CACHE

    async with httpx.AsyncClient() as client:
        r = await client.get(settings.SUPABASE_JWKS_URL, timeout=10)
        r.raise_for_status()
        JWKS_CACHE = r.json()
        return JWKS_CACHE


async def validate_token(token: str):
    """
    Validates a Supabase access token (RS256) against the project JWKS.

    Returns:
        Decoded claims ("sub", "email", ...)
    """
    try:
        unverified = jwt.get_unverified_header(token)
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token")

    jwks = await get_jwks()
    for key in jwks.get("keys", []):
        if key.get("kid") == unverified.get("kid"):
            try:
                return jwt.decode(
                    token,
                    key,
                    audience=settings.SUPABASE_AUDIENCE,
                    algorithms=["RS256"]
                )
            except JWTError:
                raise HTTPException(status_code=401, detail="Invalid token")

    raise HTTPException(status_code=401, detail="Invalid token")
