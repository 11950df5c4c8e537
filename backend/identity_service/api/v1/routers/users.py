# identity_service/api/v1/routers/users.py
from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile, status
from identity_service.api.v1.deps import get_current_user, get_optional_user
from identity_service.models.user import User
from identity_service.schemas.user import LoginIn, LoginOut, RefreshIn, UserOut
from identity_service.services import sessions
from identity_service.services.uploader import AssetUploader, get_uploader
from identity_service.services.user_flows import (
    get_public_user,
    login_user,
    logout_user,
    refresh_session,
    register_user,
)
from identity_service.services.validation import RegistrationInput

router = APIRouter(prefix="/users", tags=["users"])

@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    username: str | None = Form(default=None),
    email: str | None = Form(default=None),
    password: str | None = Form(default=None),
    fullName: str | None = Form(default=None),
    avatar: UploadFile | None = File(default=None),
    coverImage: UploadFile | None = File(default=None),
    uploader: AssetUploader = Depends(get_uploader),
):
    """
    Register a new user account (multipart/form-data).

    Form fields: username, email, password, fullName
    Files: avatar (required), coverImage (optional)

    Returns:
        201 with the sanitized user (no password hash, no refresh token)

    Errors (see identity_service.core.errors):
        - 400 VALIDATION_ERROR: invalid/missing fields, duplicate user, missing avatar
        - 500 UPLOAD_ERROR: avatar upload failed
        - 500 PERSISTENCE_ERROR: user could not be stored
    """
    data = RegistrationInput.from_raw(username, email, password, fullName)
    user = await register_user(data, avatar, coverImage, uploader)
    return {"success": True, "message": "User registered successfully", "data": UserOut(**user)}

@router.post("/login")
async def login(payload: LoginIn, response: Response):
    """
    Authenticate by email or username and password.

    On success both tokens are returned in the body and set as HttpOnly,
    Secure cookies ("accessToken", "refreshToken").

    Errors:
        - 400 VALIDATION_ERROR: missing identifier/password, unknown user
        - 401 AUTH_INVALID_CREDENTIALS: wrong password
    """
    user, tokens = await login_user(payload.email, payload.username, payload.password)
    sessions.attach(response, tokens.access_token, tokens.refresh_token)
    return {"success": True, "message": "User logged in successfully",
            "data": LoginOut(user=UserOut(**user), accessToken=tokens.access_token, refreshToken=tokens.refresh_token)}

@router.post("/logout")
async def logout(request: Request, response: Response, user: User | None = Depends(get_optional_user)):
    """
    Log out: forget the stored refresh token and clear both session cookies.

    The session is found from the access token, or from the "refreshToken"
    cookie once the access token has expired. Always succeeds, including when
    the caller has no active session.
    """
    await logout_user(user, request.cookies.get(sessions.REFRESH_COOKIE))
    sessions.clear(response)
    return {"success": True, "message": "User logged out successfully", "data": None}

@router.post("/refresh-token")
async def refresh_token(request: Request, response: Response, body: RefreshIn | None = None):
    """
    Exchange the refresh token (cookie "refreshToken" or JSON body) for a new pair.

    Errors:
        - 401 AUTH_INVALID_CREDENTIALS: missing, invalid, expired or already rotated token
    """
    token = request.cookies.get(sessions.REFRESH_COOKIE) or (body.refreshToken if body else None)
    user, tokens = await refresh_session(token)
    sessions.attach(response, tokens.access_token, tokens.refresh_token)
    return {"success": True, "message": "Access token refreshed",
            "data": LoginOut(user=UserOut(**user), accessToken=tokens.access_token, refreshToken=tokens.refresh_token)}

@router.get("/current-user")
async def current_user(user: User = Depends(get_current_user)):
    """
    Get the currently authenticated user (sanitized).

    Raises:
        HTTPException (401): If user is not authenticated
    """
    return {"success": True, "message": "Current user fetched", "data": await get_public_user(user.id)}
