# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request validation middleware using Pydantic models.
Parses request bodies and query strings and raises ValidationException with
field-level errors when they do not match the model.
"""

from flask import request
from typing import Type, Dict, Any, List
from pydantic import BaseModel, ValidationError
from opentelemetry import trace
import logging

from middleware.error_handler import ValidationException

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


def format_validation_errors(validation_error: ValidationError) -> List[Dict[str, Any]]:
    """
    Format Pydantic validation errors for API response.

    Args:
        validation_error: Pydantic ValidationError

    Returns:
        List of formatted error dictionaries
    """
    errors = []

    for error in validation_error.errors():
        field_path = ".".join(str(loc) for loc in error["loc"]) or "body"
        errors.append({
            "field": field_path,
            "message": error["msg"],
            "type": error["type"]
        })

    return errors


def parse_model(model_class: Type[BaseModel], data: Dict[str, Any], source: str = "body") -> BaseModel:
    """
    Validate a mapping against a model.

    Raises:
        ValidationException: With one entry per failing field
    """
    try:
        return model_class.model_validate(data)
    except ValidationError as e:
        validation_errors = format_validation_errors(e)
        logger.warning(
            "Request validation failed",
            extra={
                "model": model_class.__name__,
                "source": source,
                "path": request.path,
                "method": request.method,
                "errors": validation_errors
            }
        )
        raise ValidationException(f"Invalid request {source}", validation_errors)


def parse_json_body(model_class: Type[BaseModel]) -> BaseModel:
    """Parse and validate the JSON body of the current request."""
    with tracer.start_as_current_span("validation.validate_json_body") as span:
        span.set_attributes({
            "validation.model": model_class.__name__,
            "http.method": request.method,
            "http.path": request.path
        })

        json_data = request.get_json(silent=True)
        if not isinstance(json_data, dict):
            span.set_attribute("validation.result", "invalid_json")
            raise ValidationException(
                "Request body must be a JSON object",
                [{"field": "body", "message": "Expected a JSON object", "type": "json_error"}]
            )

        validated = parse_model(model_class, json_data, "body")
        span.set_attribute("validation.result", "success")
        return validated


def parse_query_params(model_class: Type[BaseModel]) -> BaseModel:
    """Parse and validate the query string of the current request."""
    with tracer.start_as_current_span("validation.validate_query_params") as span:
        span.set_attributes({
            "validation.model": model_class.__name__,
            "http.method": request.method,
            "http.path": request.path
        })

        # Empty values mean "no filter"
        query_data = {key: value for key, value in request.args.items() if value != ""}

        validated = parse_model(model_class, query_data, "query")
        span.set_attribute("validation.result", "success")
        return validated

