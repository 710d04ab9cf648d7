# Pydantic schemas
from erplay.schemas.auth import (
    LoginRequest,
    RefreshTokenRequest,
    ForgotPasswordRequest,
    ResetPasswordRequest,
)
from erplay.schemas.user import (
    UserResponse,
    UpdateMeRequest,
    ChangePasswordRequest,
    BatchCreateRequest,
    UpdateUserRequest,
)
