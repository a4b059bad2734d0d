import os
import logging

import jwt
from dotenv import load_dotenv
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from supabase import Client

from huddle.core.supabase_client import get_supabase

load_dotenv()
logger = logging.getLogger(__name__)

# auto_error=False so a missing header maps to our own 401 instead of FastAPI's 403
security = HTTPBearer(auto_error=False)

PROFILE_COLUMNS = "id, username, email, image_url, created_at"


def verify_token(credentials: HTTPAuthorizationCredentials = Depends(security)) -> dict:
    """Decode the Supabase access token and return its payload."""
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    token = credentials.credentials

    try:
        payload = jwt.decode(
            token,
            os.getenv("SUPABASE_JWT_SECRET"),
            algorithms=["HS256"],
            issuer=f"{os.getenv('PUBLIC_SUPABASE_URL')}/auth/v1",
            options={"verify_aud": False},
            leeway=60,
        )
        return payload

    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")

    except jwt.InvalidTokenError as e:
        logger.warning(f"jwt_verification_failed error={e}")
        raise HTTPException(status_code=401, detail="Invalid token")


def get_current_user(
    payload: dict = Depends(verify_token),
    supabase: Client = Depends(get_supabase),
) -> dict:
    """
    Resolve the caller's profile row from the token subject.

    Raises 401 when the token carries no subject and 404 when no profile
    exists for it. Every other endpoint builds on this dependency.
    """
    subject = payload.get("sub")
    if not subject:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    profile = (
        supabase.table("profiles")
        .select(PROFILE_COLUMNS)
        .eq("id", str(subject))
        .limit(1)
        .execute()
    )

    if not profile.data:
        raise HTTPException(status_code=404, detail="User not found")

    return profile.data[0]
