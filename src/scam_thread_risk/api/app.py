"""FastAPI entrypoint for thread analysis."""

from __future__ import annotations

from functools import lru_cache
import logging
from typing import Any

from fastapi import FastAPI, HTTPException
from pydantic import ValidationError

from scam_thread_risk.core.log import configure_logging
from scam_thread_risk.orchestrator.build import ThreadAnalyzer, create_analyzer
from scam_thread_risk.orchestrator.prefilter import PrefilterContext

logger = logging.getLogger(__name__)

app = FastAPI(title="scam-thread-risk")


@lru_cache(maxsize=1)
def get_analyzer() -> tuple[ThreadAnalyzer, dict[str, object]]:
    analyzer, runtime = create_analyzer()
    configure_logging(analyzer.config.log_level)
    return analyzer, runtime


def _prefilter_context(raw: Any) -> PrefilterContext | None:
    if raw is None:
        return None
    return PrefilterContext.model_validate(raw)


def _query_vec(raw: Any) -> list[float] | None:
    if raw is None:
        return None
    if not isinstance(raw, list):
        raise HTTPException(status_code=422, detail="semQueryVec must be a list of numbers")
    try:
        return [float(item) for item in raw]
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=422, detail="semQueryVec must be a list of numbers") from exc


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/analyze")
async def analyze(payload: dict[str, Any]) -> dict[str, object]:
    analyzer, runtime = get_analyzer()
    await analyzer.load_pools()
    body = dict(payload)
    query_vec = _query_vec(body.pop("semQueryVec", None))
    try:
        context = _prefilter_context(body.pop("prefilterContext", None))
        result = analyzer.analyze(body, sem_query_vec=query_vec, prefilter_context=context)
    except ValidationError as exc:
        logger.info("rejected analyze payload: %s", exc.error_count())
        raise HTTPException(status_code=422, detail=exc.errors(include_url=False, include_context=False)) from exc
    out = result.to_payload()
    out["runtime"] = runtime
    return out


@app.post("/prefilter")
def prefilter(payload: dict[str, Any]) -> dict[str, object]:
    analyzer, _ = get_analyzer()
    text = payload.get("text", payload.get("threadText", ""))
    if not isinstance(text, str):
        raise HTTPException(status_code=422, detail="text must be a string")
    try:
        context = _prefilter_context(payload.get("context"))
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors(include_url=False, include_context=False)) from exc
    return analyzer.prefilter(text, context).to_payload()
