# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Authentication middleware for JWT token validation and actor extraction.

This module provides the Flask middleware that validates bearer tokens and
builds the actor context handed to report endpoints.
"""

from functools import wraps
from flask import request, g, current_app
from typing import Optional, Dict, Any, Callable
from opentelemetry import trace
import logging

from models.entities import ActorContext
from middleware.error_handler import AuthenticationException
from services.auth import TokenValidationError

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class AuthMiddleware:
    """
    JWT authentication middleware for Flask applications.

    Handles token extraction, validation and actor context building for
    protected endpoints.
    """

    def __init__(self, auth_service):
        """
        Initialize the authentication middleware.

        Args:
            auth_service: JWT authentication service
        """
        self.auth_service = auth_service

    def extract_token_from_request(self) -> Optional[str]:
        """
        Extract JWT token from request headers.

        Returns:
            JWT token string or None if not found
        """
        auth_header = request.headers.get('Authorization', '')

        if not auth_header:
            return None

        if auth_header.startswith('Bearer '):
            return auth_header[7:].strip() or None

        return auth_header

    def build_actor_context(self, token_payload: Dict[str, Any], request_info: Dict[str, Any]) -> ActorContext:
        """Build the actor from a validated token payload and request metadata."""
        return ActorContext(
            user_id=token_payload["sub"],
            role=token_payload["role"],
            username=token_payload.get("username"),
            email=token_payload.get("email"),
            ip_address=request_info.get("ip_address"),
            user_agent=request_info.get("user_agent")
        )

    def get_request_info(self) -> Dict[str, Any]:
        """
        Extract request metadata for the actor context.

        Returns:
            Dictionary with request information
        """
        return {
            "ip_address": request.remote_addr,
            "user_agent": request.headers.get('User-Agent', ''),
            "request_id": request.headers.get('X-Request-ID')
        }

    def authenticate(self) -> ActorContext:
        """
        Validate the request token and store the actor in ``g``.

        Raises:
            AuthenticationException: Missing or invalid token
        """
        with tracer.start_as_current_span("auth.middleware.validate_request") as span:
            span.set_attribute("auth.operation", "validate_request")

            token = self.extract_token_from_request()
            if not token:
                span.set_attribute("auth.result", "missing_token")
                logger.warning("Authentication failed: missing token")
                raise AuthenticationException("Missing authorization token")

            try:
                token_payload = self.auth_service.validate_token(token, "access")
            except TokenValidationError as e:
                span.set_attribute("auth.result", "invalid_token")
                logger.warning(f"Authentication failed: {str(e)}")
                raise AuthenticationException(str(e))

            actor = self.build_actor_context(token_payload, self.get_request_info())
            g.actor = actor

            span.set_attributes({
                "auth.result": "success",
                "user.id": actor.user_id,
                "user.role": actor.role
            })
            logger.debug(
                "Authentication successful",
                extra={
                    "user_id": actor.user_id,
                    "role": actor.role,
                    "ip_address": actor.ip_address
                }
            )
            return actor


def require_auth(f: Callable) -> Callable:
    """
    Decorator to require JWT authentication for Flask routes.

    Uses the AuthMiddleware installed on the application; the wrapped view
    receives the ActorContext as its first argument.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        actor = current_app.auth_middleware.authenticate()
        return f(actor, *args, **kwargs)

    return decorated_function
