from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple


DEFAULT_RELATION = "related"


@dataclass(frozen=True)
class Segment:
    index: int
    text: str
    start: int = 0


@dataclass(frozen=True)
class ExtractionRequest:
    system_prompt: str
    user_prompt: str


@dataclass(frozen=True)
class TripleCandidate:
    source: Optional[str]
    relation: str = DEFAULT_RELATION
    target: Optional[str] = None

    @property
    def is_complete(self) :
        return bool(self.source) and bool(self.target)

    @property
    def is_self_loop(self) :
        return self.is_complete and self.source == self.target


@dataclass(frozen=True)
class Edge:
    id: str
    source: str
    relation: str
    target: str


@dataclass(frozen=True)
class GraphState:
    """
    Running result of one extraction run.
    nodes: unique entity ids in first-seen order
    edges: accepted triples in extraction order
    """

    nodes: Tuple[str, ...] = ()
    edges: Tuple[Edge, ...] = ()


class RunStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class RunResult:
    status: RunStatus
    graph_state: GraphState = field(default_factory=GraphState)
    logs: List[str] = field(default_factory=list)
    error: Optional[str] = None

    def graph_data(self) -> Dict[str, List[Dict[str, str]]]:
        from .aggregator import to_graph_data

        return to_graph_data(self.graph_state)

    def table_rows(self) -> List[Dict[str, str]]:
        from .aggregator import to_table_rows

        return to_table_rows(self.graph_state)
