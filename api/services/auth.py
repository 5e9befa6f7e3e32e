# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Authentication service for JWT token issuing and validation.

Tokens are issued by the login service and shared with this API through a
symmetric secret. Each access token carries the user id (``sub``) and the
role name (``role``) the report workflow authorizes against.
"""

import os
import jwt
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from opentelemetry import trace
import logging

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

DEV_SECRET = "dev-secret-change-me"
REQUIRED_CLAIMS = ("sub", "role")


class TokenValidationError(Exception):
    """Raised when token validation fails."""
    pass


class AuthService:
    """JWT authentication service with HMAC signing."""

    def __init__(self, secret: Optional[str] = None, algorithm: Optional[str] = None):
        """
        Initialize the authentication service.

        Args:
            secret: Shared signing secret, read from JWT_SECRET when omitted
            algorithm: HMAC algorithm, read from JWT_ALGORITHM when omitted
        """
        self.secret = secret or self._get_secret()
        self.algorithm = algorithm or os.getenv("JWT_ALGORITHM", "HS256")
        self.access_token_expire_minutes = int(os.getenv("JWT_ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

    def _get_secret(self) -> str:
        secret = os.getenv("JWT_SECRET")
        if secret:
            return secret

        logger.warning("No JWT_SECRET found, using development secret")
        return DEV_SECRET

    def generate_access_token(
        self,
        user_id: str,
        role: str,
        username: Optional[str] = None,
        email: Optional[str] = None
    ) -> str:
        """
        Issue an access token.

        Used by seeding scripts and tests; production tokens come from the
        login service.
        """
        with tracer.start_as_current_span("auth.generate_access_token") as span:
            span.set_attributes({"auth.operation": "generate_access_token", "user.id": user_id})

            now = datetime.now(timezone.utc)
            payload = {
                "sub": user_id,
                "role": role,
                "iat": now,
                "exp": now + timedelta(minutes=self.access_token_expire_minutes),
                "type": "access"
            }
            if username:
                payload["username"] = username
            if email:
                payload["email"] = email

            return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def validate_token(self, token: str, token_type: str = "access") -> Dict[str, Any]:
        """
        Validate and decode a JWT token.

        Args:
            token: JWT token string to validate
            token_type: Expected token type

        Returns:
            Decoded token payload

        Raises:
            TokenValidationError: If token is invalid, expired or lacks a claim
        """
        with tracer.start_as_current_span("auth.validate_token") as span:
            span.set_attributes({
                "auth.operation": "validate_token",
                "auth.token_type": token_type
            })

            try:
                payload = jwt.decode(
                    token,
                    self.secret,
                    algorithms=[self.algorithm],
                    options={"verify_exp": True, "require": list(REQUIRED_CLAIMS)}
                )
            except jwt.ExpiredSignatureError:
                span.set_attribute("auth.validation_result", "expired")
                logger.warning("Token validation failed: token expired")
                raise TokenValidationError("Token has expired")
            except jwt.InvalidTokenError as e:
                span.set_attribute("auth.validation_result", "invalid")
                logger.warning(f"Token validation failed: {str(e)}")
                raise TokenValidationError(f"Invalid token: {str(e)}")

            if payload.get("type", token_type) != token_type:
                span.set_attribute("auth.validation_result", "wrong_type")
                raise TokenValidationError(f"Invalid token type. Expected {token_type}")

            payload["sub"] = str(payload["sub"])

            span.set_attributes({
                "auth.validation_result": "success",
                "user.id": payload["sub"]
            })
            logger.debug(
                "Token validated successfully",
                extra={"user_id": payload["sub"], "role": payload["role"]}
            )
            return payload
