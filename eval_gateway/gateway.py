from __future__ import annotations  # Evaluation Service HTTP gateway

import json
import logging
import os
from typing import Any, Dict, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from agents.types import EvaluationResult, GeneratedQuestion
from config.routes import ServiceRoute
from config.settings import settings


logger = logging.getLogger(__name__)  # Module logger setup


class EvaluationServiceError(RuntimeError):  # Base gateway error
    pass


class EvaluationRateLimited(EvaluationServiceError):  # Upstream asked us to back off
    def __init__(self, message: str, retry_after: int):
        super().__init__(message)
        self.retry_after = retry_after


T = TypeVar("T", bound=BaseModel)


async def request(
    payload: Dict[str, Any],
    schema: Type[T],
    *,
    cfg: ServiceRoute,
    client: Optional[httpx.AsyncClient] = None,
) -> T:  # POST to a configured route and validate the reply
    attempts = cfg.max_retries + 1
    last_error: Optional[Exception] = None
    url = f"{cfg.base_url}{cfg.endpoint}"
    body = dict(payload)
    if cfg.model:
        body.setdefault("model", cfg.model)
    headers = _headers(cfg)
    logger.info("Evaluation request start route=%s attempts=%d", cfg.name, attempts)

    owns_client = client is None
    http = client or httpx.AsyncClient(timeout=cfg.timeout_s)
    try:
        for attempt in range(attempts):
            logger.info("Evaluation request send route=%s attempt=%d/%d", cfg.name, attempt + 1, attempts)
            try:
                response = await http.post(url, json=body, headers=headers, timeout=cfg.timeout_s)
            except httpx.TransportError as exc:
                logger.warning("Evaluation transport failure: %s", exc)
                last_error = exc
                continue
            if response.status_code == 429:
                retry_after = _retry_after(response)
                logger.warning("Evaluation rate limited route=%s retry_after=%d", cfg.name, retry_after)
                raise EvaluationRateLimited("Evaluation service is rate limited", retry_after)
            if response.status_code >= 500:
                logger.warning("Evaluation error status: %s", response.status_code)
                last_error = EvaluationServiceError(f"Evaluation service returned status {response.status_code}")
                continue
            if response.status_code >= 400:
                logger.error("Evaluation error status: %s", response.status_code)
                raise EvaluationServiceError(f"Evaluation service returned status {response.status_code}")
            try:
                parsed = _validate(schema, response.json())
            except (json.JSONDecodeError, ValidationError) as exc:
                logger.warning("Evaluation output validation failed: %s", exc)
                last_error = exc
                continue
            logger.info("Evaluation request done route=%s attempt=%d", cfg.name, attempt + 1)
            return parsed
    finally:
        if owns_client:
            await http.aclose()
    raise EvaluationServiceError("Evaluation service request failed") from last_error


async def evaluate_answer(*, cfg: ServiceRoute, client: Optional[httpx.AsyncClient] = None, **inputs: Any) -> EvaluationResult:
    return await request(inputs, EvaluationResult, cfg=cfg, client=client)


async def generate_question(*, cfg: ServiceRoute, client: Optional[httpx.AsyncClient] = None, **inputs: Any) -> GeneratedQuestion:
    return await request(inputs, GeneratedQuestion, cfg=cfg, client=client)


def _headers(cfg: ServiceRoute) -> Dict[str, str]:  # Build request headers including auth
    headers = {"Content-Type": "application/json"}
    if cfg.api_key_env:
        api_key = os.getenv(cfg.api_key_env)
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
    headers.update(cfg.extra_headers)
    return headers


def _retry_after(response: httpx.Response) -> int:  # Parse Retry-After seconds, falling back to the configured default
    raw = response.headers.get("Retry-After")
    try:
        return max(1, int(raw)) if raw is not None else settings.RATE_LIMIT_RETRY_AFTER
    except ValueError:
        return settings.RATE_LIMIT_RETRY_AFTER


def _validate(schema: Type[T], data: Any) -> T:  # Accept a bare object or a {"content": "<json>"} envelope
    if isinstance(data, dict) and isinstance(data.get("content"), str):
        return schema.model_validate_json(_strip_code_fences(data["content"]))
    return schema.model_validate(data)


def _strip_code_fences(content: str) -> str:  # Remove common markdown fences from model output
    text = content.strip()
    if text.startswith("```"):
        lines = text.splitlines()[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        text = "\n".join(lines).strip()
    return text
