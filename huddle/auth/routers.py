import os
import logging
from dotenv import load_dotenv

from fastapi.responses import JSONResponse
from fastapi import APIRouter, status, HTTPException, Request, Response, Depends

from supabase import AuthApiError, Client

from huddle.core.supabase_client import get_supabase
from huddle.core.dependencies import get_current_user
from huddle.friendship.models import PENDING
from huddle.friendship.usernames import normalize_username
from huddle.utils.env_helper import env_bool, env_none_or_str
from .schemas import (
    UserRegistrationModel,
    UserRegistrationResponseModel,
    UserLoginModel,
    UserLoginResponseModel,
    AccessTokenResponseModel,
    MeResponseModel,
)


load_dotenv()
logger = logging.getLogger(__name__)
router = APIRouter()

REFRESH_COOKIE = "refresh_token"
REFRESH_COOKIE_PATH = "/auth/access"


def set_refresh_cookie(response: Response, refresh_token: str):
    response.set_cookie(
        key=REFRESH_COOKIE,
        value=refresh_token,
        httponly=env_bool("HTTPONLY", default=True),
        secure=env_bool("SECURE", default=False),
        samesite=os.getenv("SAMESITE", "Lax"),
        domain=env_none_or_str("COOKIE_DOMAIN", None),
        max_age=60 * 60 * 24 * 7,  # 7 days
        path=REFRESH_COOKIE_PATH,
    )


@router.post("/register", response_model=UserRegistrationResponseModel, status_code=201)
def register_user(data: UserRegistrationModel, supabase: Client = Depends(get_supabase)):
    """
    Register a new user.

    Creates a Supabase Auth user and the matching profile row. The profile
    stores the email and the normalized username so friend requests can look
    users up with an indexed equality query.

    **Input Fields**
    - **email**: A valid user email. Must not already exist in Supabase Auth.
    - **username**: 3-20 characters: letters, numbers, underscores, periods, hyphens,
      optionally decorated with badges or emoji (ignored for uniqueness and lookup).
    - **password**: Minimum 8 characters with lower, upper, digit and special character.
    - **image_url**: Optional avatar.

    **Errors**
    - 400: Invalid input or failed to create user
    - 409: Email or Username already registered
    - 500: Profile could not be stored (the auth user is removed again)
    """
    username_normalized = normalize_username(data.username)

    # Check if username already exists
    username_check = (
        supabase.table("profiles")
        .select("id")
        .eq("username_normalized", username_normalized)
        .execute()
    )

    if username_check.data:
        raise HTTPException(status_code=409, detail="Username already taken.")

    # Create Supabase Auth user
    try:
        res = supabase.auth.sign_up(
            {
                "email": data.email,
                "password": data.password.get_secret_value(),
            }
        )
    except AuthApiError as error:
        logger.error(f"supabase_error={error}")
        raise HTTPException(status_code=409, detail=str(error))

    if not res.user:
        raise HTTPException(status_code=400, detail="Failed to create user")

    user_id = res.user.id

    try:
        supabase.table("profiles").insert(
            {
                "id": user_id,
                "username": data.username,
                "username_normalized": username_normalized,
                "email": data.email,
                "image_url": data.image_url,
            }
        ).execute()
    except Exception:
        logger.exception(f"profile_insert_failed user_id={user_id}")
        try:
            # remove the auth user created above
            supabase.auth.admin.delete_user(user_id)
        except Exception:
            logger.exception(f"auth_user_cleanup_failed user_id={user_id}")
        raise HTTPException(status_code=500, detail="Failed to create user")

    logger.info(f"user_registered email={data.email}, username={data.username}")

    return {
        "id": user_id,
        "email": res.user.email,
        "username": data.username,
    }


@router.post("/login", response_model=UserLoginResponseModel, status_code=200)
def login_user(
    user_data: UserLoginModel,
    response: Response,
    supabase: Client = Depends(get_supabase),
):
    """
    Authenticate a user with email and password.

    Returns a short-lived access token and sets the refresh token in an
    HttpOnly cookie scoped to `/auth/access`.

    **Errors**
    - 401: Invalid email or password
    - 500: Supabase or internal server error
    """

    try:
        res = supabase.auth.sign_in_with_password(
            {
                "email": user_data.email,
                "password": user_data.password.get_secret_value(),
            }
        )
    except AuthApiError as error:
        raise HTTPException(status_code=401, detail=error.message)
    except Exception:
        logger.exception(f"user_login_failed email={user_data.email}")
        raise HTTPException(
            status_code=500, detail="An internal server error occurred during login."
        )

    if not res.session:
        raise HTTPException(
            status_code=500,
            detail="Supabase authentication returned an unexpected response.",
        )

    set_refresh_cookie(response, res.session.refresh_token)
    logger.info(f"user_login_success email={user_data.email}")

    return {
        "access_token": res.session.access_token,
        "expires_in": res.session.expires_in,
        "user_id": res.user.id,
        "email": res.user.email,
    }


@router.get("/access", response_model=AccessTokenResponseModel, status_code=200)
def get_new_access(
    request: Request,
    response: Response,
    supabase: Client = Depends(get_supabase),
):
    """
    Issue a new access token using the refresh token stored in an HttpOnly cookie.

    **Errors**
    - 401: Missing, expired, revoked, or invalid refresh token
    """
    refresh_token = request.cookies.get(REFRESH_COOKIE)

    if not refresh_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No refresh token provided.",
        )

    try:
        session = supabase.auth.refresh_session(refresh_token)

        new_refresh_token = session.session.refresh_token
        new_access_token = session.session.access_token
    except Exception as e:
        logger.info(f"refresh_failed error={e}")
        response.delete_cookie(
            key=REFRESH_COOKIE,
            domain=env_none_or_str("COOKIE_DOMAIN", None),
            path=REFRESH_COOKIE_PATH,
        )

        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token invalid or expired. Please log in again.",
        )

    set_refresh_cookie(response, new_refresh_token)
    return {"access_token": new_access_token}


@router.get("/me", response_model=MeResponseModel, status_code=200)
def get_me(
    user=Depends(get_current_user),
    supabase: Client = Depends(get_supabase),
):
    """
    The caller's profile plus the number of pending friend requests they received.

    **Errors**
    - `401`: Invalid or expired token
    - `404`: Profile not found
    """
    pending = (
        supabase.table("friend_requests")
        .select("id", count="exact")
        .eq("receiver_id", str(user["id"]))
        .eq("status", PENDING)
        .execute()
    )

    return {
        "profile": user,
        "pending_requests": pending.count if pending.count is not None else len(pending.data or []),
    }


@router.post("/logout")
def logout(supabase: Client = Depends(get_supabase)):
    """
    Logs out the user by clearing the refresh_token cookie. Supabase itself
    cannot invalidate JWTs early, so logout consists of deleting the refresh
    token stored in cookies.
    """

    try:
        supabase.auth.sign_out()
    except Exception as e:
        logger.info(f"sign_out_failed error={e}")

    response = JSONResponse({"logged_out": True})

    response.delete_cookie(
        key=REFRESH_COOKIE,
        path=REFRESH_COOKIE_PATH,  # must match set_cookie()
        domain=env_none_or_str("COOKIE_DOMAIN", None),
    )

    return response
