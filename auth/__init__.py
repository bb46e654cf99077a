from .utils import (
    authenticate_user,
    create_access_token,
    create_user_token,
    decode_token,
    get_current_user,
    get_current_active_user,
    get_password_hash,
    require_roles,
    verify_password
)

__all__ = [
    "authenticate_user",
    "create_access_token",
    "create_user_token",
    "decode_token",
    "get_current_user",
    "get_current_active_user",
    "get_password_hash",
    "require_roles",
    "verify_password"
]
