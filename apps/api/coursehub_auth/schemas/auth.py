"""Authentication schemas."""

from pydantic import BaseModel, ConfigDict, Field

from coursehub_auth.domain.roles import Role


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class AuthPrincipal(BaseModel):
    """Normalized authenticated principal resolved from a bearer access token."""

    user_id: str = Field(min_length=1)
    login_id: str = Field(min_length=1)
    role: Role = Role.USER


class RegisterRequest(_CamelModel):
    login_id: str = Field(alias="loginId", min_length=1, max_length=320)
    password: str = Field(min_length=1, max_length=1024)
    first_name: str = Field(alias="firstName", max_length=255)
    last_name: str = Field(alias="lastName", max_length=255)


class LoginRequest(_CamelModel):
    login_id: str = Field(alias="loginId", max_length=320)
    password: str = Field(max_length=1024)


class FederatedLoginRequest(_CamelModel):
    assertion_token: str | None = Field(default=None, alias="assertionToken")


class UserProfile(_CamelModel):
    id: str
    login_id: str = Field(alias="loginId")
    first_name: str = Field(alias="firstName")
    last_name: str = Field(alias="lastName")
    display_name: str = Field(alias="displayName")
    role: Role


class AuthenticationResponse(_CamelModel):
    access_token: str = Field(alias="accessToken")
    refresh_token: str = Field(alias="refreshToken")
    profile: UserProfile


class FederatedLoginResponse(_CamelModel):
    access_token: str = Field(alias="accessToken")
    profile: UserProfile


class RevokeSessionsResponse(BaseModel):
    revoked: int
