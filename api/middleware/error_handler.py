# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Error handling middleware with structured HAL responses.
Provides centralized error handling and formatting for Flask applications.
"""

from flask import Flask, request, jsonify
from werkzeug.exceptions import HTTPException
from typing import Dict, Any, List, Optional, Tuple
from opentelemetry import trace
import logging
import traceback

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class CustomException(Exception):
    """Base class for custom application exceptions."""

    def __init__(self, message: str, status_code: int = 500, error_type: str = "application-error"):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_type = error_type


class ValidationException(CustomException):
    """Malformed or missing input, raised before any mutation."""

    def __init__(self, message: str, validation_errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message, 400, "validation-error")
        self.validation_errors = validation_errors or []


class AuthenticationException(CustomException):
    """Exception for authentication errors."""

    def __init__(self, message: str):
        super().__init__(message, 401, "authentication-required")


class AuthorizationException(CustomException):
    """Role or ownership guard failed."""

    def __init__(self, message: str):
        super().__init__(message, 403, "insufficient-permissions")


class NotFoundException(CustomException):
    """Exception for resource not found errors."""

    def __init__(self, message: str):
        super().__init__(message, 404, "resource-not-found")


class InvalidTransitionException(CustomException):
    """The state machine rejected the event for the current status."""

    def __init__(self, message: str, current_status: Optional[str] = None, event: Optional[str] = None):
        super().__init__(message, 409, "invalid-transition")
        self.current_status = current_status
        self.event = event


class ConflictException(CustomException):
    """Concurrent write detected on the same resource."""

    def __init__(self, message: str):
        super().__init__(message, 409, "resource-conflict")


class ServiceUnavailableException(CustomException):
    """Upstream data (boundary, geocoding) not available."""

    def __init__(self, message: str):
        super().__init__(message, 503, "service-unavailable")


class ErrorHandlerMiddleware:
    """Centralized error handling middleware with HAL response formatting."""

    def __init__(self, app: Flask, hal_formatter):
        self.app = app
        self.hal_formatter = hal_formatter
        self.register_error_handlers()

    def register_error_handlers(self):
        """Register error handlers with Flask application."""

        @self.app.errorhandler(HTTPException)
        def handle_http_exception(error: HTTPException):
            if error.code is not None and error.code >= 500:
                return self.handle_server_error(error)
            return self.handle_client_error(error)

        @self.app.errorhandler(CustomException)
        def handle_custom_exception(error: CustomException):
            return self.handle_custom_exception(error)

        # Handle generic exceptions
        @self.app.errorhandler(Exception)
        def handle_generic_exception(error):
            return self.handle_unexpected_error(error)

    def handle_client_error(self, error: HTTPException) -> Tuple[Any, int]:
        """
        Handle werkzeug client errors (4xx status codes).

        Args:
            error: HTTP exception

        Returns:
            Tuple of (error response, status code)
        """
        detail = str(error.description) if error.description else error.name

        logger.warning(
            f"Client error: {error.name}",
            extra={
                "status_code": error.code,
                "detail": detail,
                "path": request.path,
                "method": request.method
            }
        )

        error_type = error.name.lower().replace(' ', '-')
        error_response = self.hal_formatter.builder.build_error_response(
            error_type,
            error.name,
            error.code,
            detail,
            request.path
        )
        return jsonify(error_response), error.code

    def handle_server_error(self, error: HTTPException) -> Tuple[Any, int]:
        """Handle werkzeug server errors (5xx status codes)."""
        with tracer.start_as_current_span("error_handler.server_error") as span:
            span.set_attributes({
                "error.status": error.code,
                "http.method": request.method,
                "http.path": request.path
            })

            detail = str(error.description) if error.description else error.name

            logger.error(
                f"Server error: {error.name}",
                extra={
                    "status_code": error.code,
                    "detail": detail,
                    "path": request.path,
                    "method": request.method
                },
                exc_info=True
            )

            # Don't expose internal error details in production
            if self.app.config.get('ENVIRONMENT') == 'production':
                detail = "An internal server error occurred"

            error_response = self.hal_formatter.format_server_error(detail, request.path)
            return jsonify(error_response), error.code

    def handle_custom_exception(self, error: CustomException) -> Tuple[Any, int]:
        """
        Handle application exceptions raised by domain and service code.

        Args:
            error: Application exception

        Returns:
            Tuple of (error response, status code)
        """
        with tracer.start_as_current_span("error_handler.custom_exception") as span:
            span.set_attributes({
                "error.type": error.error_type,
                "error.status": error.status_code,
                "http.method": request.method,
                "http.path": request.path
            })

            logger.warning(
                f"Custom exception: {error.error_type}",
                extra={
                    "error_type": error.error_type,
                    "status_code": error.status_code,
                    "detail": error.message,
                    "path": request.path,
                    "method": request.method
                }
            )

            # Use appropriate formatter method based on error type
            if isinstance(error, ValidationException):
                error_response = self.hal_formatter.format_validation_error(
                    error.message,
                    request.path,
                    error.validation_errors
                )
            elif isinstance(error, AuthenticationException):
                error_response = self.hal_formatter.format_authentication_error(error.message, request.path)
            elif isinstance(error, AuthorizationException):
                error_response = self.hal_formatter.format_authorization_error(error.message, request.path)
            elif isinstance(error, NotFoundException):
                error_response = self.hal_formatter.format_not_found_error(error.message, request.path)
            elif isinstance(error, InvalidTransitionException):
                error_response = self.hal_formatter.format_invalid_transition_error(
                    error.message,
                    request.path,
                    error.current_status,
                    error.event
                )
            elif isinstance(error, ConflictException):
                error_response = self.hal_formatter.format_conflict_error(error.message, request.path)
            elif isinstance(error, ServiceUnavailableException):
                error_response = self.hal_formatter.builder.build_error_response(
                    error.error_type,
                    "Service Unavailable",
                    error.status_code,
                    error.message,
                    request.path
                )
            else:
                error_response = self.hal_formatter.format_server_error(error.message, request.path)

            return jsonify(error_response), error.status_code

    def handle_unexpected_error(self, error: Exception) -> Tuple[Any, int]:
        """
        Handle unexpected exceptions not caught by specific handlers.

        Args:
            error: Unexpected exception

        Returns:
            Tuple of (error response, status code)
        """
        with tracer.start_as_current_span("error_handler.unexpected_error") as span:
            span.set_attributes({
                "error.type": "unexpected-error",
                "error.class": error.__class__.__name__,
                "http.method": request.method,
                "http.path": request.path
            })

            # Record exception in span
            span.record_exception(error)

            logger.error(
                f"Unexpected error: {error.__class__.__name__}",
                extra={
                    "error_class": error.__class__.__name__,
                    "error_message": str(error),
                    "path": request.path,
                    "method": request.method,
                    "traceback": traceback.format_exc()
                },
                exc_info=True
            )

            # Don't expose internal error details
            detail = "An unexpected error occurred"
            if self.app.config.get('ENVIRONMENT') != 'production':
                detail = f"{error.__class__.__name__}: {str(error)}"

            error_response = self.hal_formatter.format_server_error(detail, request.path)
            return jsonify(error_response), 500


def register_custom_error_handlers(app: Flask, hal_formatter) -> ErrorHandlerMiddleware:
    """
    Install the application error handlers.

    Args:
        app: Flask application
        hal_formatter: Formatter producing RFC 7807 problem documents

    Returns:
        The installed middleware
    """
    middleware = ErrorHandlerMiddleware(app, hal_formatter)
    app.error_handler_middleware = middleware
    return middleware
