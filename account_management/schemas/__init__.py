from account_management.schemas.auth import (
    StartAttemptRequest, StartAttemptResponse, CompleteAttemptRequest,
    ResendCodeResponse, RefreshTokenRequest, TokenResponse,
    AuthenticatedResponse,
)
from account_management.schemas.user import (
    UserOut, UserUpdateRequest, UserAuthResponse,
    CreateUserRequest, ChangeUserRoleRequest, UserListResponse,
)
from account_management.schemas.tenant import TenantOut, TenantUpdateRequest
