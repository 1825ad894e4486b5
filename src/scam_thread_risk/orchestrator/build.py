"""Build and wire the thread analyzer from configuration."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from scam_thread_risk.config.settings import AppConfig, load_config
from scam_thread_risk.domain.evidence import AnalysisResult, PrefilterResult
from scam_thread_risk.domain.thread.models import AnalysisInput
from scam_thread_risk.infra.pool_loader import PoolLoader
from scam_thread_risk.orchestrator.pipeline import AnalyzeOptions, analyze_thread
from scam_thread_risk.orchestrator.prefilter import PrefilterContext, prefilter_thread
from scam_thread_risk.rules.catalog import CATALOG_VERSION


@dataclass
class ThreadAnalyzer:
    config: AppConfig
    options: AnalyzeOptions
    loader: PoolLoader = field(default_factory=PoolLoader)

    async def load_pools(self) -> AnalyzeOptions:
        sim_items: list[Any] = []
        sem_items: list[Any] = []
        if self.config.sim_index_path:
            sim_items = await self.loader.load_once(
                self.config.sim_index_path, "sim", timeout_s=self.config.sim_load_timeout_s
            )
        if self.config.sem_index_path:
            sem_items = await self.loader.load_once(
                self.config.sem_index_path, "sem", timeout_s=self.config.sem_load_timeout_s
            )
        self.options = self.options.with_pools(sim_items=sim_items, sem_items=sem_items)
        return self.options

    def analyze(
        self,
        payload: AnalysisInput | Mapping[str, Any] | str | None,
        *,
        sem_query_vec: Sequence[float] | None = None,
        prefilter_context: PrefilterContext | None = None,
    ) -> AnalysisResult:
        options = self.options.with_pools(sem_query_vec=sem_query_vec)
        if prefilter_context is not None:
            options = replace(options, prefilter_context=prefilter_context)
        return analyze_thread(payload, options)

    def prefilter(self, text: str, context: PrefilterContext | None = None) -> PrefilterResult:
        return prefilter_thread(text, self.options.prefilter, context)


def create_analyzer(
    *,
    config_path: str | Path | None = None,
    profile_override: str | None = None,
    sim_index: str | None = None,
    sem_index: str | None = None,
    loader: PoolLoader | None = None,
) -> tuple[ThreadAnalyzer, dict[str, object]]:
    config, merged = load_config(config_path, profile_override=profile_override)
    updates: dict[str, object] = {}
    if sim_index is not None:
        updates["sim_index_path"] = sim_index.strip()
    if sem_index is not None:
        updates["sem_index_path"] = sem_index.strip()
    if updates:
        config = config.model_copy(update=updates)

    profiles = merged.get("profiles")
    profile_map = profiles if isinstance(profiles, dict) else {}
    analyzer = ThreadAnalyzer(
        config=config,
        options=AnalyzeOptions.from_config(config),
        loader=loader or PoolLoader(timeout_s=config.sim_load_timeout_s),
    )
    runtime: dict[str, object] = {
        "profile": config.profile,
        "profile_choices": [str(item) for item in profile_map if str(item).strip()],
        "config_path": config.default_config_path,
        "catalog_version": CATALOG_VERSION,
        "sim_index": config.sim_index_path,
        "sem_index": config.sem_index_path,
    }
    return analyzer, runtime


__all__ = ["ThreadAnalyzer", "create_analyzer"]
