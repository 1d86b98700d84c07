# tpl_app/routes/__init__.py
"""
Application routes package
"""

from .api import register_api_routes
from .health import register_health_routes


def init_routes(app):
    """Initialize all application routes"""
    register_health_routes(app)
    register_api_routes(app)
