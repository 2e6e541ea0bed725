"""Tests for the extraction pipeline state machine."""

import asyncio

import pytest

from graph_extract.config import RunConfiguration
from graph_extract.exceptions import (
    InvalidConfiguration,
    ModelError,
    ModelUnavailable,
    PreconditionNotMet,
    RunInProgress,
)
from graph_extract.pipeline import ExtractionPipeline
from graph_extract.schemas import GraphState, RunStatus

from conftest import FakeClient, node_xml, nodes_xml


def _answer(source, relation, target):
    return nodes_xml(node_xml(source, relation, target), node_xml(source, "is", source))


class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_two_segments_with_self_loops(self, run_config):
        client = FakeClient([_answer("A", "knows", "B"), _answer("C", "owns", "D")])
        pipeline = ExtractionPipeline(client)

        result = await pipeline.run("x" * 2000, run_config)

        assert result.status == RunStatus.COMPLETED
        assert pipeline.status == RunStatus.COMPLETED
        assert len(client.requests) == 2
        assert result.graph_state.nodes == ("A", "B", "C", "D")
        assert len(result.graph_state.edges) == 2
        skips = [line for line in result.logs if line.startswith("Skipping self-loop")]
        assert len(skips) == 2
        assert result.error is None
        assert "Graph data processed. Generation complete!" in result.logs

    @pytest.mark.asyncio
    async def test_requests_follow_segment_order(self, run_config):
        client = FakeClient(["", ""])
        text = "a" * 1024 + "b" * 10

        await ExtractionPipeline(client).run(text, run_config)

        assert client.requests[0].user_prompt.endswith("a" * 1024)
        assert client.requests[1].user_prompt.endswith("b" * 10)
        assert client.requests[0].system_prompt == run_config.system_prompt

    @pytest.mark.asyncio
    async def test_malformed_answer_does_not_stop_run(self, run_config):
        client = FakeClient(["I could not find anything", _answer("A", "r", "B")])

        result = await ExtractionPipeline(client).run("y" * 1500, run_config)

        assert result.status == RunStatus.COMPLETED
        assert len(result.graph_state.edges) == 1

    @pytest.mark.asyncio
    async def test_stream_yields_logs_in_order(self, run_config):
        pipeline = ExtractionPipeline(FakeClient([_answer("A", "r", "B")]))

        lines = [line async for line in pipeline.stream("short text", run_config)]

        assert lines == pipeline.last_result.logs
        assert lines[0].startswith("Starting graph generation with model llama3")
        assert "--- Processing Segment 1 of 1 ---" in lines

    def test_run_sync(self, run_config):
        pipeline = ExtractionPipeline(FakeClient([_answer("A", "r", "B")]))

        result = pipeline.run_sync("short text", run_config)

        assert result.status == RunStatus.COMPLETED


class TestPreconditions:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   \n"])
    async def test_empty_text(self, run_config, text):
        client = FakeClient([])
        pipeline = ExtractionPipeline(client)

        with pytest.raises(PreconditionNotMet):
            await pipeline.run(text, run_config)

        assert pipeline.status == RunStatus.IDLE
        assert pipeline.graph_state == GraphState()
        assert pipeline.logs == []
        assert pipeline.rejections == ["Error: Input text is empty."]
        assert client.requests == []

    @pytest.mark.asyncio
    async def test_missing_client(self, run_config):
        pipeline = ExtractionPipeline()

        with pytest.raises(PreconditionNotMet):
            await pipeline.run("text", run_config)

        assert pipeline.status == RunStatus.IDLE

    @pytest.mark.asyncio
    async def test_missing_model_name(self):
        config = RunConfiguration.from_settings(model="")
        pipeline = ExtractionPipeline(FakeClient([]))

        with pytest.raises(PreconditionNotMet):
            await pipeline.run("text", config)

        assert pipeline.status == RunStatus.IDLE

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "overrides",
        [{"chunk_size": 0}, {"user_prompt_template": "no placeholder"}],
    )
    async def test_invalid_configuration(self, overrides):
        config = RunConfiguration.from_settings(model="llama3", **overrides)
        client = FakeClient([])
        pipeline = ExtractionPipeline(client)

        with pytest.raises(InvalidConfiguration):
            await pipeline.run("text", config)

        assert pipeline.status == RunStatus.IDLE
        assert client.requests == []

    @pytest.mark.asyncio
    async def test_rejected_request_leaves_finished_run_untouched(self, run_config):
        pipeline = ExtractionPipeline(FakeClient([_answer("A", "r", "B")]))
        finished = await pipeline.run("text", run_config)
        logs_before = list(pipeline.logs)

        with pytest.raises(PreconditionNotMet):
            await pipeline.run("   ", run_config)

        assert pipeline.status == RunStatus.COMPLETED
        assert pipeline.logs == logs_before
        assert pipeline.last_result is finished
        assert finished.logs == logs_before
        assert pipeline.graph_state.nodes == ("A", "B")
        assert pipeline.rejections == ["Error: Input text is empty."]


class TestFailures:
    @pytest.mark.asyncio
    async def test_model_unavailable_keeps_earlier_segments(self, run_config):
        client = FakeClient(
            [
                _answer("A", "knows", "B"),
                ModelUnavailable("connection refused"),
                _answer("C", "r", "D"),
            ]
        )
        pipeline = ExtractionPipeline(client)

        result = await pipeline.run("z" * 3000, run_config)

        assert result.status == RunStatus.FAILED
        assert pipeline.status == RunStatus.FAILED
        assert len(client.requests) == 2
        assert result.graph_state.nodes == ("A", "B")
        assert len(result.graph_state.edges) == 1
        assert result.error == "connection refused"
        assert result.logs[-1] == "Error processing segment 2: connection refused. Stopping run."

    @pytest.mark.asyncio
    async def test_model_error_fails_run(self, run_config):
        client = FakeClient([ModelError("model 'nope' not found", status_code=404)])

        result = await ExtractionPipeline(client).run("text", run_config)

        assert result.status == RunStatus.FAILED
        assert result.graph_state == GraphState()

    @pytest.mark.asyncio
    async def test_unexpected_error_fails_run(self, run_config):
        client = FakeClient([RuntimeError("boom")])

        result = await ExtractionPipeline(client).run("text", run_config)

        assert result.status == RunStatus.FAILED
        assert result.error == "RuntimeError: boom"

    @pytest.mark.asyncio
    async def test_new_run_after_failure_starts_fresh(self, run_config):
        pipeline = ExtractionPipeline(FakeClient([_answer("A", "r", "B"), ModelUnavailable("down")]))
        await pipeline.run("q" * 2000, run_config)

        result = await pipeline.run(
            "text", run_config, client=FakeClient([_answer("X", "r", "Y")])
        )

        assert result.status == RunStatus.COMPLETED
        assert result.graph_state.nodes == ("X", "Y")
        assert not any("Error" in line for line in result.logs)


class TestConcurrencyAndCancellation:
    @pytest.mark.asyncio
    async def test_second_run_is_rejected_while_running(self, run_config):
        gate = asyncio.Event()

        class SlowClient:
            async def ainvoke(self, request):
                await gate.wait()
                return _answer("A", "r", "B")

        pipeline = ExtractionPipeline(SlowClient())
        first = asyncio.create_task(pipeline.run("text", run_config))
        await asyncio.sleep(0)
        assert pipeline.status == RunStatus.RUNNING

        with pytest.raises(RunInProgress):
            await pipeline.run("other", run_config)

        assert pipeline.rejections == ["Error: A run is already in progress."]
        gate.set()
        result = await first
        assert result.status == RunStatus.COMPLETED
        assert len(result.graph_state.edges) == 1
        assert not any("already in progress" in line for line in result.logs)

    @pytest.mark.asyncio
    async def test_cancel_between_segments(self, run_config):
        pipeline = ExtractionPipeline()

        def cancel_after_first(call_number):
            if call_number == 1:
                pipeline.cancel()

        client = FakeClient(
            [_answer("A", "r", "B"), _answer("C", "r", "D")], on_call=cancel_after_first
        )

        result = await pipeline.run("c" * 2000, run_config, client=client)

        assert result.status == RunStatus.CANCELLED
        assert len(client.requests) == 1
        assert result.graph_state.nodes == ("A", "B")

    def test_cancel_when_idle_is_noop(self):
        pipeline = ExtractionPipeline()

        pipeline.cancel()

        assert pipeline.status == RunStatus.IDLE
