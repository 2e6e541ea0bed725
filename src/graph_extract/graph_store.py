from __future__ import annotations
import json
from pathlib import Path
import networkx as nx
from networkx.readwrite import json_graph

from .schemas import Edge, GraphState


class GraphStore:
    """
    Directed multigraph view of an extraction result.
    Nodes: entity id with its label
    Edges: edge id as key + relation label
    """

    def __init__(self):
        self.graph = nx.MultiDiGraph()

    @classmethod
    def from_state(cls, state: GraphState) :
        inst = cls()
        for node_id in state.nodes:
            inst.graph.add_node(node_id, label=node_id)
        for edge in state.edges:
            inst.add_edge(edge)
        return inst

    def add_edge(self, edge: Edge) :
        self.graph.add_edge(
            edge.source,
            edge.target,
            key=edge.id,
            label=edge.relation,
        )

    # Export

    def to_dict(self) :
        return json_graph.node_link_data(self.graph, edges="links")

    def save(self, path: Path) :
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(self.to_dict(), ensure_ascii=False, indent=2),
            encoding="utf-8",
        )

    # Stats

    def top_entities(self, limit: int = 10) :
        """Entities ordered by degree, highest first."""
        ranked = sorted(
            self.graph.nodes,
            key=lambda n: self.graph.degree(n),
            reverse=True,
        )
        return [{"id": n, "degree": self.graph.degree(n)} for n in ranked[:limit]]
