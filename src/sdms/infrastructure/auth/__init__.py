"""Authentication infrastructure: hashing, bearer tokens and identity providers."""

from sdms.infrastructure.auth.jwt_service import IssuedToken, JWTService, extract_bearer_token
from sdms.infrastructure.auth.password_hasher import (
    PasswordDigest,
    SecretHasher,
    generate_random_password,
)

__all__ = [
    "IssuedToken",
    "JWTService",
    "PasswordDigest",
    "SecretHasher",
    "extract_bearer_token",
    "generate_random_password",
]
