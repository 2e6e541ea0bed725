from __future__ import annotations
from contextlib import aclosing
from typing import AsyncIterator, List
import asyncio
import time

from .aggregator import apply_candidates
from .config import RunConfiguration, settings
from .exceptions import (
    InvalidConfiguration,
    ModelError,
    ModelUnavailable,
    PreconditionNotMet,
    RunInProgress,
)
from .ingestion import segment_text, validate_bound
from .parser import parse_response
from .prompts import build_request, validate_template
from .schemas import GraphState, RunResult, RunStatus, Segment


def _debug(msg: str) :
    if settings.debug_pipeline:
        print(f"[PIPELINE] {msg}", flush=True)


class ExtractionPipeline:
    """
    Runs text -> segments -> prompt -> model -> parser -> aggregation,
    one segment at a time.

    Status goes IDLE -> RUNNING -> COMPLETED / FAILED / CANCELLED. A model
    failure stops the run but keeps what earlier segments produced.
    Cancellation is checked between segments only, so a request made while
    the model is answering takes effect once that answer has arrived.
    """

    def __init__(self, client=None):
        self.client = client
        self.status = RunStatus.IDLE
        self.graph_state = GraphState()
        self.logs: List[str] = []
        # refused run requests; kept apart so they never touch a run's log
        self.rejections: List[str] = []
        self.last_result: RunResult | None = None
        self._cancel_requested = False

    def _log(self, msg: str) :
        self.logs.append(msg)
        _debug(msg)

    def _reject(self, msg: str) :
        self.rejections.append(msg)
        _debug(msg)

    def cancel(self) :
        if self.status == RunStatus.RUNNING:
            self._cancel_requested = True

    # Run start

    def _check_preconditions(self, text: str, config: RunConfiguration, client) :
        if self.status == RunStatus.RUNNING:
            self._reject("Error: A run is already in progress.")
            raise RunInProgress("A run is already in progress")
        if not text or not text.strip():
            self._reject("Error: Input text is empty.")
            raise PreconditionNotMet("Input text is empty")
        if client is None:
            self._reject(
                "Error: Model is not initialized. Check the Ollama URL and select a model."
            )
            raise PreconditionNotMet("Model client is not initialized")
        if not config.model:
            self._reject("Error: No model selected. Please select a model from the list.")
            raise PreconditionNotMet("No model selected")
        try:
            validate_bound(config.chunk_size)
            validate_template(config.user_prompt_template)
        except InvalidConfiguration as e:
            self._reject(f"Error: Invalid configuration: {e}")
            raise

    def _begin(self, config: RunConfiguration, client) :
        self.client = client
        self.status = RunStatus.RUNNING
        self.graph_state = GraphState()
        self.logs = []
        self.last_result = None
        self._cancel_requested = False
        self._log(f"Starting graph generation with model {config.model} at {config.base_url}...")
        self._log(f"Parameters: Temp={config.temperature}, ChunkSize={config.chunk_size}")

    def _finish(self, status: RunStatus, error: str | None = None) :
        self.status = status
        self.last_result = RunResult(
            status=status,
            graph_state=self.graph_state,
            logs=list(self.logs),
            error=error,
        )
        return self.last_result

    # Segments

    def _segment(self, text: str, chunk_size: int) -> List[Segment]:
        segments = segment_text(text, chunk_size)
        if len(segments) > 1:
            self._log(f"Text length ({len(text)}) > chunk size ({chunk_size}). Splitting...")
            self._log(f"Text split into {len(segments)} segments.")
        else:
            self._log(
                f"Text length ({len(text)}) <= chunk size ({chunk_size}). Processing as 1 segment."
            )
        return segments

    async def _process_segment(
        self, segment: Segment, total: int, config: RunConfiguration
    ) :
        number = segment.index + 1
        self._log(f"--- Processing Segment {number} of {total} ---")
        preview_len = settings.log_preview_chars
        self._log(f"Segment content (first {preview_len} chars): {segment.text[:preview_len]}...")

        request = build_request(segment, config)
        started = time.perf_counter()
        raw = await self.client.ainvoke(request)
        _debug(f"Segment {number} answered in {time.perf_counter() - started:.2f}s")
        self._log(f"Raw model response (Segment {number}): {raw}")

        candidates = parse_response(raw)
        before = len(self.graph_state.edges)
        new_state, events = apply_candidates(self.graph_state, candidates, segment_number=number)
        for event in events:
            self._log(event)
        self.graph_state = new_state
        self._log(
            f"Extracted {len(new_state.edges) - before} valid edges from Segment {number}. "
            f"Total edges so far: {len(new_state.edges)}"
        )

    async def _execute(self, text: str, config: RunConfiguration) -> AsyncIterator[None]:
        number = 0
        try:
            segments = self._segment(text, config.chunk_size)
            yield
            for segment in segments:
                number = segment.index + 1
                if self._cancel_requested:
                    self._log(f"Run cancelled before segment {number} of {len(segments)}.")
                    self._finish(RunStatus.CANCELLED, "cancelled")
                    return
                await self._process_segment(segment, len(segments), config)
                yield
        except (ModelUnavailable, ModelError) as e:
            self._log(f"Error processing segment {number}: {e}. Stopping run.")
            self._finish(RunStatus.FAILED, str(e))
            return
        except asyncio.CancelledError:
            self._log(f"Run interrupted while processing segment {number}.")
            self._finish(RunStatus.CANCELLED, "interrupted")
            raise
        except Exception as e:
            self._log(f"Error during generation at segment {number}: {type(e).__name__}: {e}")
            self._finish(RunStatus.FAILED, f"{type(e).__name__}: {e}")
            return

        self._log("--- Aggregating results ---")
        self._log(f"Total unique nodes found: {len(self.graph_state.nodes)}")
        self._log(f"Total valid edges found: {len(self.graph_state.edges)}")
        self._log("Graph data processed. Generation complete!")
        self._finish(RunStatus.COMPLETED)

    # Public API

    async def stream(
        self, text: str, config: RunConfiguration, client=None
    ) -> AsyncIterator[str]:
        """
        Start a run and yield every log line as it is recorded.
        The outcome is available on last_result once the iterator is exhausted.
        """
        client = client if client is not None else self.client
        self._check_preconditions(text, config, client)
        self._begin(config, client)

        cursor = 0
        try:
            async with aclosing(self._execute(text, config)) as steps:
                async for _ in steps:
                    while cursor < len(self.logs):
                        yield self.logs[cursor]
                        cursor += 1
            while cursor < len(self.logs):
                yield self.logs[cursor]
                cursor += 1
        finally:
            if self.status == RunStatus.RUNNING:
                # consumer stopped iterating before the run ended
                self._log("Run abandoned by caller.")
                self._finish(RunStatus.CANCELLED, "abandoned")

    async def run(self, text: str, config: RunConfiguration, client=None) -> RunResult:
        async for _ in self.stream(text, config, client=client):
            pass
        return self.last_result

    def run_sync(self, text: str, config: RunConfiguration, client=None) -> RunResult:
        return asyncio.run(self.run(text, config, client=client))
