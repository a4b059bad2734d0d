import re
from pydantic import BaseModel, SecretStr, field_validator
from typing import Optional
from datetime import datetime

from huddle.friendship.usernames import normalize_username, is_valid_lookup_username


"""
auth/register
"""


class UserRegistrationModel(BaseModel):
    email: str
    username: str
    password: SecretStr
    image_url: Optional[str] = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, email: str) -> str:
        email = email.strip().lower()
        if not re.match(r"^[^@\s]+@[^@\s]+\.[^@\s]+$", email):
            raise ValueError("Email address is not valid.")
        return email

    @field_validator("username")
    @classmethod
    def validate_username(cls, username: str) -> str:
        username = username.strip()

        # Badges and emoji are decoration; the rules apply to what remains
        core = normalize_username(username)

        # Length check (min 3, max 20)
        if not (3 <= len(core) <= 20):
            raise ValueError(
                f"Username must be between 3 and 20 characters long (got {len(core)})."
            )

        # Same alphabet the username lookup accepts
        if not is_valid_lookup_username(core):
            raise ValueError(
                "Username must only contain letters, numbers, underscores, periods, and hyphens."
            )

        return username

    @field_validator("password")
    @classmethod
    def validate_password(cls, password: SecretStr) -> SecretStr:
        password_str = password.get_secret_value()

        # Minimum length of 8 characters (no maximum)
        if len(password_str) < 8:
            raise ValueError("Password must be at least 8 characters long.")

        password_regex = r"^(?=.*[a-z])(?=.*[A-Z])(?=.*[0-9])(?=.*[!@#$%^&*()_+={}\[\]|\\;:'\",.<>?/~`]).{8,}$"

        if not re.match(password_regex, password_str):
            raise ValueError(
                "Password must contain at least one uppercase letter, one lowercase letter, one number, and one special character."
            )

        return password


class UserRegistrationResponseModel(BaseModel):
    id: str
    email: str
    username: str


"""
auth/login
"""


class UserLoginModel(BaseModel):
    email: str
    password: SecretStr


class UserLoginResponseModel(BaseModel):
    access_token: str
    expires_in: int
    user_id: str
    email: str


"""
auth/access
"""


class AccessTokenResponseModel(BaseModel):
    access_token: str


"""
auth/me
"""


class ProfileInfo(BaseModel):
    id: str
    username: str
    email: Optional[str] = None
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None


class MeResponseModel(BaseModel):
    profile: ProfileInfo
    pending_requests: int
