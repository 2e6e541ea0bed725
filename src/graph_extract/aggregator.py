from __future__ import annotations
from typing import Dict, Iterable, List, Tuple
import uuid

from .schemas import Edge, GraphState, TripleCandidate


def new_edge_id() :
    return f"e-{uuid.uuid4()}"


def apply_candidates(
    state: GraphState,
    candidates: Iterable[TripleCandidate],
    segment_number: int | None = None,
) -> Tuple[GraphState, List[str]]:
    """
    Fold one segment's candidates into the running state.
    Returns the new state and the skip events; the given state is left as is.
    Nodes are unique by exact id, edges are never deduplicated.
    """
    nodes = list(state.nodes)
    seen = set(nodes)
    edges = list(state.edges)
    events: List[str] = []
    where = f" from segment {segment_number}" if segment_number is not None else ""

    for cand in candidates:
        if not cand.is_complete:
            events.append(
                f"Skipping incomplete edge{where}: "
                f"Source='{cand.source}', Target='{cand.target}'"
            )
            continue
        if cand.is_self_loop:
            events.append(
                f"Skipping self-loop edge: {cand.source} --({cand.relation})--> {cand.target}"
            )
            continue

        edges.append(
            Edge(
                id=new_edge_id(),
                source=cand.source,
                relation=cand.relation,
                target=cand.target,
            )
        )
        for name in (cand.source, cand.target):
            if name not in seen:
                seen.add(name)
                nodes.append(name)

    return GraphState(nodes=tuple(nodes), edges=tuple(edges)), events


# Projections

def to_graph_data(state: GraphState) -> Dict[str, List[Dict[str, str]]]:
    return {
        "nodes": [{"id": node_id, "label": node_id} for node_id in state.nodes],
        "edges": [
            {
                "id": edge.id,
                "source": edge.source,
                "target": edge.target,
                "label": edge.relation,
            }
            for edge in state.edges
        ],
    }


def to_table_rows(state: GraphState) -> List[Dict[str, str]]:
    return [
        {"node1": edge.source, "connection": edge.relation, "node2": edge.target}
        for edge in state.edges
    ]
