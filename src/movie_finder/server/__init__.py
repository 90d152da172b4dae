"""SPA host for the built front end."""

from .app import HEALTH_PATH, create_app, run_http_server

__all__ = ["HEALTH_PATH", "create_app", "run_http_server"]
