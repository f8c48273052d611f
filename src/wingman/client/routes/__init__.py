"""Flask route blueprints for the wingman client application."""

from wingman.client.routes.chat import chat_bp
from wingman.client.routes.config import RouteConfig, get_config, init_config
from wingman.client.routes.health import health_bp
from wingman.client.routes.repositories import repositories_bp

__all__ = [
    "chat_bp",
    "health_bp",
    "repositories_bp",
    "RouteConfig",
    "init_config",
    "get_config",
]
