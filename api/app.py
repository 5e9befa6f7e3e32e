# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Civic Reports API - Flask Application Entry Point

This module builds the Flask application with OpenAPI 3.0 support,
configures middleware, and wires the report lifecycle services.
"""

import os
import logging
from datetime import datetime
from typing import Any, Dict, Optional
from flask import jsonify
from flask_openapi3 import OpenAPI, Info, Tag
from pymongo.errors import PyMongoError

from observability.config import setup_observability
from observability.middleware import add_observability_middleware
from middleware.error_handler import register_custom_error_handlers
from middleware.auth import AuthMiddleware
from domain.routing import CategoryRouter, RoutingConfig, departments_from_config, load_routing_config
from services.hal import create_hal_formatter
from services.mongodb import MongoDBService
from services.directory import DirectoryService
from services.boundary import BoundaryService
from services.reports import ReportRepository, ReportService
from services.auth import AuthService

logger = logging.getLogger(__name__)

API_DIR = os.path.dirname(os.path.abspath(__file__))
SERVICE_VERSION = "1.0.0"

info = Info(
    title="Civic Reports API",
    version=SERVICE_VERSION,
    description="Municipal issue reporting: geofenced submission, routing and status workflow"
)

tags = [
    Tag(name="Reports", description="Civic issue reports and their workflow"),
    Tag(name="Health", description="System health and status")
]


def load_config(overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Read configuration from the environment, then apply overrides."""
    environment = os.getenv('ENVIRONMENT', 'development')
    config = {
        'ENVIRONMENT': environment,
        'DEBUG': environment == 'development',
        'DOCS_ENABLED': os.getenv('DOCS_ENABLED', 'true').lower() == 'true',
        'OTEL_ENABLED': os.getenv('OTEL_ENABLED', 'true').lower() == 'true',
        'MONGODB_URI': os.getenv('MONGODB_URI', 'mongodb://localhost:27017/civic_reports_dev'),
        'MONGODB_DATABASE': os.getenv('MONGODB_DATABASE', 'civic_reports_dev'),
        'JWT_SECRET': os.getenv('JWT_SECRET'),
        'JWT_ALGORITHM': os.getenv('JWT_ALGORITHM', 'HS256'),
        'BASE_URL': os.getenv('BASE_URL', 'http://localhost:5000'),
        'BOUNDARY_PATH': os.getenv('BOUNDARY_PATH', os.path.join(API_DIR, 'data', 'boundaries_turin_city.geojson')),
        'ROUTING_CONFIG_PATH': os.getenv('ROUTING_CONFIG_PATH', os.path.join(API_DIR, 'data', 'routing.json')),
        'PORT': int(os.getenv('PORT', '5000')),
    }
    config.update(overrides or {})
    return config


def build_router(routing_config: RoutingConfig, directory) -> CategoryRouter:
    """Router over stored departments, or departments synthesized from configuration."""
    try:
        departments = directory.list_departments()
        roles = directory.list_roles()
        department_roles = directory.list_department_roles()
    except PyMongoError as e:
        logger.warning(f"Could not read departments, using configured table: {e}")
        departments, roles, department_roles = [], [], []

    if not departments:
        departments = departments_from_config(routing_config)

    return CategoryRouter(routing_config.role_categories, departments, roles, department_roles)


def create_app(
    config: Optional[Dict[str, Any]] = None,
    mongodb_service: Optional[MongoDBService] = None,
    directory=None,
    report_repository: Optional[ReportRepository] = None,
    boundary_service: Optional[BoundaryService] = None,
    router: Optional[CategoryRouter] = None,
    auth_service: Optional[AuthService] = None
) -> OpenAPI:
    """
    Build the Flask application.

    Args:
        config: Overrides for the environment configuration
        mongodb_service: Database service, created from MONGODB_URI when omitted
        directory: User/company/department lookups
        report_repository: Report persistence
        boundary_service: Municipal boundary, loaded from BOUNDARY_PATH when omitted
        router: Category router, built from ROUTING_CONFIG_PATH when omitted
        auth_service: Token validation, using JWT_SECRET when omitted

    Returns:
        Configured application
    """
    settings = load_config(config)
    setup_observability(settings['ENVIRONMENT'], settings['OTEL_ENABLED'])

    app = OpenAPI(__name__, info=info)
    app.config.update(settings)

    add_observability_middleware(app)

    # Initialize services
    if mongodb_service is None and (directory is None or report_repository is None):
        mongodb_service = MongoDBService(settings['MONGODB_URI'], settings['MONGODB_DATABASE'])

    directory = directory or DirectoryService(mongodb_service)
    report_repository = report_repository or ReportRepository(mongodb_service)
    boundary_service = boundary_service or BoundaryService.from_file(settings['BOUNDARY_PATH'])
    if router is None:
        router = build_router(load_routing_config(settings['ROUTING_CONFIG_PATH']), directory)
    auth_service = auth_service or AuthService(settings['JWT_SECRET'], settings['JWT_ALGORITHM'])

    report_service = ReportService(report_repository, directory, router, boundary_service)

    # Initialize middleware
    hal_formatter = create_hal_formatter(settings['BASE_URL'])
    auth_middleware = AuthMiddleware(auth_service)
    register_custom_error_handlers(app, hal_formatter)

    # Make services available to routes
    app.mongodb_service = mongodb_service
    app.boundary_service = boundary_service
    app.auth_service = auth_service
    app.report_service = report_service
    app.hal_formatter = hal_formatter
    app.auth_middleware = auth_middleware

    from routes.reports import reports_bp
    app.register_api(reports_bp)

    @app.get('/api/healthz', tags=[tags[1]])
    def health_check():
        """Health check with database and boundary status."""
        dependencies = {'boundary': boundary_service.health_check()}
        if mongodb_service is not None:
            dependencies['mongodb'] = mongodb_service.health_check()

        unhealthy = any(dep.get('status') == 'unhealthy' for dep in dependencies.values())
        degraded = any(dep.get('status') == 'degraded' for dep in dependencies.values())
        status = 'unhealthy' if unhealthy else 'degraded' if degraded else 'healthy'

        health_data = {
            'status': status,
            'service': 'civic-reports-api',
            'version': SERVICE_VERSION,
            'environment': settings['ENVIRONMENT'],
            'timestamp': datetime.utcnow().isoformat() + "Z",
            'dependencies': dependencies
        }
        links = {'self': hal_formatter.builder.link_builder.build_self_link('/api/healthz')}
        return jsonify(hal_formatter.builder.build_resource_response(health_data, links)), 503 if unhealthy else 200

    logger.info(
        "Application created",
        extra={"environment": settings['ENVIRONMENT'], "base_url": settings['BASE_URL']}
    )
    return app


if __name__ == '__main__':
    # Development server
    application = create_app()
    application.run(
        host='0.0.0.0',
        port=application.config['PORT'],
        debug=application.config['DEBUG']
    )
