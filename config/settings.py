"""Application settings and configuration management."""
from __future__ import annotations

from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or defaults."""

    DB_PATH: str = Field(default="data/interview.db")
    APP_CONFIG_PATH: str = Field(default="app_config.json")

    DEFAULT_TOTAL_QUESTIONS: int = 10
    MAX_QUESTIONS_PER_SESSION: int = 20
    DEFAULT_TIME_PER_QUESTION: float = 120.0

    DIFFICULTY_WINDOW: int = 3
    DIFFICULTY_MIN_SAMPLES: int = 2
    DIFFICULTY_INCREASE_AT: float = 85.0
    DIFFICULTY_DECREASE_BELOW: float = 50.0

    MISBEHAVIOR_WINDOW_SECONDS: float = 4.0
    MISBEHAVIOR_TERMINATE_AT: int = 4
    TAB_SWITCH_WARNING_CAP: int = 3
    FIDGET_MOVEMENT_THRESHOLD: float = 0.05
    FIDGET_FRAME_RATIO: float = 0.2

    RATE_LIMIT_RETRY_AFTER: int = 60
    STALE_SESSION_MINUTES: int = 60
    REAPER_INTERVAL_SECONDS: float = 60.0

    TELEMETRY_QUEUE_SIZE: int = 256
    TELEMETRY_NOISY_PATTERNS: List[str] = Field(
        default_factory=lambda: [
            "FaceBlendshapesGraph",
            "OpenGL error checking",
            "gl_context",
            "face_landmarker_graph",
            "XNNPACK delegate",
            "Created TensorFlow Lite",
            "Graph successfully started",
            "Graph finished",
            "GL_INVALID_FRAMEBUFFER_OPERATION",
            "Framebuffer is incomplete",
            ".WebGL",
        ]
    )

    ANSWER_PREVIEW_CHARS: int = 200

    model_config = SettingsConfigDict(env_file=".env", validate_assignment=True)


settings = Settings()
