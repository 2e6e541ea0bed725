# src/graph_extract/service.py

from __future__ import annotations
from typing import Any, Dict, List
import asyncio
import threading

from .config import RunConfiguration, settings
from .exceptions import RunInProgress
from .export import export_filename, to_csv
from .graph_store import GraphStore
from .llm import LLMClient, ModelCache, list_models
from .pipeline import ExtractionPipeline
from .schemas import RunResult


class GraphExtractionService:
    def __init__(self, client_factory=LLMClient):
        self.model_cache = ModelCache(factory=client_factory)
        self.pipeline = ExtractionPipeline()
        self._run_lock = threading.Lock()
        # One loop for every run: cached clients keep async connection pools
        # bound to the loop that opened them.
        self._runner = asyncio.Runner()

    def resolve_config(self, **overrides) :
        return RunConfiguration.from_settings(settings, **overrides)

    def list_models(self, base_url: str | None = None) -> List[Dict[str, str]]:
        return list_models(base_url)

    def run(self, text: str, **overrides) -> RunResult:
        """
        Run the pipeline over text with the configured model.
        Raises PreconditionNotMet / InvalidConfiguration / RunInProgress;
        model failures come back on the result instead.
        """
        # API handlers run in worker threads; one run at a time per service.
        if not self._run_lock.acquire(blocking=False):
            raise RunInProgress("A run is already in progress")
        try:
            config = self.resolve_config(**overrides)
            client = self.model_cache.get(config.base_url, config.model, config.temperature)
            return self._runner.run(self.pipeline.run(text, config, client=client))
        finally:
            self._run_lock.release()

    def close(self) :
        with self._run_lock:
            self._runner.close()
            self.model_cache.clear()

    def extract(self, text: str, **overrides) -> Dict[str, Any]:
        result = self.run(text, **overrides)
        return self.to_response(result)

    @staticmethod
    def to_response(result: RunResult) -> Dict[str, Any]:
        state = result.graph_state
        return {
            "status": result.status.value,
            "error": result.error,
            "logs": result.logs,
            "graph": result.graph_data(),
            "table": result.table_rows(),
            "num_nodes": len(state.nodes),
            "num_edges": len(state.edges),
            "top_entities": GraphStore.from_state(state).top_entities(limit=5),
        }

    @staticmethod
    def export_csv(rows: List[Dict[str, str]]) -> Dict[str, str]:
        return {"filename": export_filename(), "content": to_csv(rows)}
