"""Directed call graph over helper functions."""

import networkx as nx
from typing import Iterable, Set
from ..store.entity_store import EntityStore
from ..store.models import HelperFunction
from ..utils.logging import get_logger

logger = get_logger("graph.helper_graph")


class HelperGraph:
    """Directed helper graph: nodes=helper ids, edges=resolved helper-to-helper calls."""

    def __init__(self):
        self.graph = nx.DiGraph()

    def add_helper(self, helper: HelperFunction) -> None:
        """Add a helper node."""
        self.graph.add_node(helper.id, name=helper.name, file_id=helper.file_id)

    def add_call(self, source_id: int, target_id: int, edge_id: int) -> None:
        """Add a call edge; parallel calls between the same pair collapse to one edge."""
        if self.graph.has_edge(source_id, target_id):
            self.graph[source_id][target_id]["edge_ids"].append(edge_id)
            return
        self.graph.add_edge(source_id, target_id, edge_ids=[edge_id])
        logger.debug(f"Added call edge: {source_id} -> {target_id}")

    def build_from_store(self, store: EntityStore) -> None:
        """Build the complete graph from the store's helpers and resolved edges."""
        for helper in store.rows("helper_functions"):
            self.add_helper(helper)

        for edge in store.rows("helper_call_edges"):
            if edge.target_helper_id is not None:
                self.add_call(edge.helper_function_id, edge.target_helper_id, edge.id)

        logger.info(
            f"Built helper graph with {self.graph.number_of_nodes()} nodes "
            f"and {self.graph.number_of_edges()} edges"
        )

    def get_callers(self, helper_id: int) -> Set[int]:
        """All helpers that call the given helper, directly or transitively."""
        if helper_id not in self.graph:
            return set()
        return set(nx.ancestors(self.graph, helper_id))

    def get_callees(self, helper_id: int) -> Set[int]:
        """All helpers the given helper calls, directly or transitively."""
        if helper_id not in self.graph:
            return set()
        return set(nx.descendants(self.graph, helper_id))

    def helpers_reaching(self, target_ids: Iterable[int]) -> Set[int]:
        """Targets plus every helper with a call path to one of them."""
        reaching = set()
        for target_id in target_ids:
            reaching.add(target_id)
            reaching.update(self.get_callers(target_id))
        return reaching

