from __future__ import annotations

from typing import List

import pytest

from graph_extract.config import RunConfiguration, settings


def node_xml(source: str | None, relation: str | None, target: str | None) -> str:
    parts = ["<node>"]
    if source is not None:
        parts.append(f"<from_node>{source}</from_node>")
    if relation is not None:
        parts.append(f"<relationship>{relation}</relationship>")
    if target is not None:
        parts.append(f"<to_node>{target}</to_node>")
    parts.append("</node>")
    return "".join(parts)


def nodes_xml(*blocks: str) -> str:
    return "<nodes>" + "".join(blocks) + "</nodes>"


class FakeClient:
    """Stands in for LLMClient: returns canned answers or raises them, in order."""

    def __init__(self, responses: List[object], on_call=None):
        self.responses = list(responses)
        self.requests = []
        self.on_call = on_call

    async def ainvoke(self, request):
        self.requests.append(request)
        if self.on_call is not None:
            self.on_call(len(self.requests))
        item = self.responses[len(self.requests) - 1]
        if isinstance(item, BaseException):
            raise item
        return item


@pytest.fixture(autouse=True)
def quiet_debug(monkeypatch):
    monkeypatch.setattr(settings, "debug_pipeline", False)


@pytest.fixture
def run_config() -> RunConfiguration:
    return RunConfiguration.from_settings(model="llama3", chunk_size=1024)
