"""Configuration package for the interview session engine."""
from .registry import EVAL_KEY, QUESTION_KEY, bind_model, get_model, is_bound
from .routes import AppConfig, ServiceRoute, load_config, resolve_route
from .settings import Settings, settings

__all__ = [
    "AppConfig",
    "ServiceRoute",
    "load_config",
    "resolve_route",
    "EVAL_KEY",
    "QUESTION_KEY",
    "bind_model",
    "get_model",
    "is_bound",
    "Settings",
    "settings",
]
