"""
Auth endpoints:
- POST /signup
- POST /login
- POST /verifyAccessToken
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from companion_api.auth import create_access_token, hash_password, verify_access_token, verify_password
from companion_api.db import get_db_session
from companion_api.errors import ConflictError, NotFoundError, UnauthorizedError
from companion_api.models import User
from companion_api.schemas import LoginRequest, LoginResponse, MessageResponse, SignupRequest, UserDetails

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])


def _user_details(user: User) -> UserDetails:
    return UserDetails(
        id=user.id,
        username=user.username,
        email=user.email,
        gender=user.gender,
        age=user.age,
        listeningActivity=[event.track_id for event in user.listening_history],
    )


@router.post(
    "/signup",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
    description="Creates a user with an empty listening history. 409 if the email is taken.",
    operation_id="signup",
)
def signup(req: SignupRequest) -> MessageResponse:
    """Register a new user."""
    email = req.user.email.lower().strip()

    with get_db_session() as db:
        existing = db.execute(select(User).where(User.email == email)).scalar_one_or_none()
        if existing:
            raise ConflictError("User already exists. Please Login")

        db.add(
            User(
                username=req.user.username.strip(),
                email=email,
                password_hash=hash_password(req.user.password),
                gender=req.user.gender,
                age=req.user.age,
            )
        )
        try:
            db.flush()
        except IntegrityError:
            # Lost a race with a concurrent signup for the same email.
            raise ConflictError("User already exists. Please Login")

    logger.info("signup: email=%s", email)
    return MessageResponse(message="User details stored successfully")


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Login",
    description="Validates credentials and returns the user record with a JWT access token.",
    operation_id="login",
)
def login(req: LoginRequest) -> LoginResponse:
    """Login an existing user."""
    email = req.userLogin.email.lower().strip()

    with get_db_session() as db:
        user = db.execute(select(User).where(User.email == email)).scalar_one_or_none()
        if not user:
            raise NotFoundError("User not found")
        if not verify_password(req.userLogin.password, user.password_hash):
            raise UnauthorizedError("Invalid password")

        details = _user_details(user)

    token = create_access_token(user_id=details.id, email=details.email)
    return LoginResponse(message="Login Success", userDeets=details, accessToken=token)


@router.post(
    "/verifyAccessToken",
    summary="Verify an access token",
    description="Returns the decoded claims of the bearer token. 401 if missing, 403 if invalid or expired.",
    operation_id="verify_access_token",
)
def verify_token(claims: Dict[str, Any] = Depends(verify_access_token)) -> JSONResponse:
    """Echo the verified token claims."""
    return JSONResponse(content=claims)
