"""Evaluation Service endpoint configuration."""
from __future__ import annotations

from pathlib import Path
from typing import Dict

from pydantic import BaseModel, Field


class ServiceRoute(BaseModel):
    """HTTP endpoint of one Evaluation Service operation."""

    name: str
    base_url: str
    endpoint: str
    model: str = ""
    timeout_s: float = Field(default=30.0, ge=0.1)
    max_retries: int = Field(default=2, ge=0)
    api_key_env: str | None = None
    extra_headers: Dict[str, str] = Field(default_factory=dict)


class AppConfig(BaseModel):
    """Application configuration root."""

    routes: Dict[str, ServiceRoute]
    registry: Dict[str, str]


def load_config(path: Path) -> AppConfig:
    """Load configuration from disk."""

    data = path.read_text(encoding="utf-8")
    return AppConfig.model_validate_json(data)


def resolve_route(cfg: AppConfig, target: str) -> ServiceRoute:
    """Return the route bound to a registry key."""

    if target not in cfg.registry:
        raise KeyError(f"Registry entry missing for '{target}'")
    route_id = cfg.registry[target]
    if route_id not in cfg.routes:
        raise KeyError(f"Route '{route_id}' missing for '{target}'")
    return cfg.routes[route_id]
