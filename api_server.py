from __future__ import annotations  # FastAPI server hosting the interview session engine

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from functools import partial
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import router as interviews_router
from api.ws import router as ws_router
from config import AppConfig, EVAL_KEY, QUESTION_KEY, bind_model, load_config, resolve_route, settings
from engine.hub import engine
from eval_gateway import evaluate_answer, generate_question
from storage.migrate import migrate


logger = logging.getLogger(__name__)


def bind_gateway(cfg: AppConfig) -> None:
    """Bind the Evaluation Service routes into the model registry."""

    bind_model(EVAL_KEY, partial(evaluate_answer, cfg=resolve_route(cfg, EVAL_KEY)))
    if QUESTION_KEY in cfg.registry:
        bind_model(QUESTION_KEY, partial(generate_question, cfg=resolve_route(cfg, QUESTION_KEY)))
    else:
        logger.info("No question route configured; using the fallback question pool")


@asynccontextmanager
async def lifespan(app: FastAPI):
    migrate(settings.DB_PATH)
    config_path = Path(settings.APP_CONFIG_PATH)
    if config_path.exists():
        bind_gateway(load_config(config_path))
    else:
        logger.warning("Config %s not found; Evaluation Service is unbound", config_path)
    reaper = asyncio.create_task(engine.run_reaper())
    try:
        yield
    finally:
        reaper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await reaper
        await engine.shutdown()


app = FastAPI(title="Interview Session API", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"]
)
app.include_router(interviews_router)
app.include_router(ws_router)


@app.get("/health")
def health() -> dict:
    return {"status": "ok", "live_sessions": len(engine)}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api_server:app", host="0.0.0.0", port=8000, reload=False)
