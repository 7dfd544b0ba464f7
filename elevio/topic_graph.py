"""
Topic Graph - Hierarchy tree plus prerequisite DAG over one topic snapshot.

Uses networkx for graph operations:
    - Validation (dangling references, parent and dependency cycles)
    - Descendant walks with hierarchy depth (evidence roll-up)
    - Prerequisite closure and topological order
    - Root cause tracing for weak points
"""

from typing import Dict, Iterable, List, Optional, Set

import networkx as nx

from .errors import InvalidInput
from .models import Topic


class TopicGraph:
    """
    Two overlaid graphs on the same nodes.

    hierarchy:    parent -> child (a forest, each topic has at most one parent)
    dependencies: prerequisite -> dependent (must be acyclic)
    """

    def __init__(self, topics: Iterable[Topic], strict: bool = True):
        """
        Build and validate the graphs.

        With strict=False, references to topics outside the snapshot are
        dropped instead of rejected. Cycles are always rejected.
        """
        self.topics: Dict[str, Topic] = {}
        self.hierarchy = nx.DiGraph()
        self.dependencies = nx.DiGraph()

        for topic in topics:
            if topic.id in self.topics:
                raise InvalidInput(f"Duplicate topic id: {topic.id}")
            self.topics[topic.id] = topic
            self.hierarchy.add_node(topic.id)
            self.dependencies.add_node(topic.id)

        if not self.topics:
            raise InvalidInput("Topic graph needs at least one topic")

        for topic in self.topics.values():
            self._add_edges(topic, strict)

        self._check_acyclic(self.hierarchy, "Parent")
        self._check_acyclic(self.dependencies, "Dependency")

        self._topo_order = list(nx.lexicographical_topological_sort(self.dependencies))
        self._topo_index = {tid: i for i, tid in enumerate(self._topo_order)}

    @classmethod
    def from_topics(cls, topics: Iterable[Topic]) -> "TopicGraph":
        """Build a graph from a complete, self-consistent snapshot."""
        return cls(topics, strict=True)

    @classmethod
    def dependency_view(cls, topics: Iterable[Topic]) -> "TopicGraph":
        """Build a graph over a possibly partial snapshot."""
        return cls(topics, strict=False)

    def _add_edges(self, topic: Topic, strict: bool):
        if topic.parent_id is not None:
            if topic.parent_id in self.topics:
                self.hierarchy.add_edge(topic.parent_id, topic.id)
            elif strict:
                raise InvalidInput(
                    f"Topic {topic.id} references unknown parent {topic.parent_id}"
                )

        for prereq in topic.dependency_ids:
            if prereq == topic.id:
                raise InvalidInput(f"Topic {topic.id} depends on itself")
            if prereq in self.topics:
                self.dependencies.add_edge(prereq, topic.id)
            elif strict:
                raise InvalidInput(
                    f"Topic {topic.id} references unknown dependency {prereq}"
                )

    @staticmethod
    def _check_acyclic(graph: nx.DiGraph, label: str):
        if nx.is_directed_acyclic_graph(graph):
            return
        cycle = nx.find_cycle(graph)
        path = " -> ".join([u for u, _ in cycle] + [cycle[0][0]])
        raise InvalidInput(f"{label} cycle detected: {path}")

    def __contains__(self, topic_id: str) -> bool:
        return topic_id in self.topics

    def __len__(self) -> int:
        return len(self.topics)

    # ==================== Hierarchy ====================

    def get_topic(self, topic_id: str) -> Optional[Topic]:
        return self.topics.get(topic_id)

    def get_parent(self, topic_id: str) -> Optional[Topic]:
        parents = list(self.hierarchy.predecessors(topic_id))
        return self.topics[parents[0]] if parents else None

    def get_children(self, topic_id: str) -> Optional[List[Topic]]:
        """
        Child topics sorted by id.

        None when the provider did not load this topic's children, so that
        "not loaded" is never mistaken for "no children".
        """
        if not self.topics[topic_id].children_loaded:
            return None
        return [self.topics[c] for c in sorted(self.hierarchy.successors(topic_id))]

    def get_ancestors(self, topic_id: str) -> List[str]:
        """Parent chain, nearest first."""
        chain = []
        parent = self.get_parent(topic_id)
        while parent is not None:
            chain.append(parent.id)
            parent = self.get_parent(parent.id)
        return chain

    def get_descendants(self, topic_id: str) -> Dict[str, int]:
        """
        Map every topic in the subtree rooted at topic_id to its depth.

        The topic itself is included at depth 0.
        """
        return nx.single_source_shortest_path_length(self.hierarchy, topic_id)

    def roots(self) -> List[str]:
        """Top-level topics (no parent), sorted by id."""
        return sorted(t for t in self.hierarchy.nodes if self.hierarchy.in_degree(t) == 0)

    def subtrees(self) -> Dict[str, Set[str]]:
        """Top-level topic -> all topic ids in its subtree."""
        return {root: set(self.get_descendants(root)) for root in self.roots()}

    # ==================== Prerequisites ====================

    def get_prerequisites(self, topic_id: str) -> List[str]:
        """Immediate prerequisites (one level up)."""
        return sorted(self.dependencies.predecessors(topic_id))

    def get_all_prerequisites(self, topic_id: str) -> Set[str]:
        """ALL prerequisites, recursively."""
        return nx.ancestors(self.dependencies, topic_id)

    def get_dependents(self, topic_id: str) -> List[str]:
        """Topics that depend on this one (one level down)."""
        return sorted(self.dependencies.successors(topic_id))

    def get_all_dependents(self, topic_id: str) -> Set[str]:
        return nx.descendants(self.dependencies, topic_id)

    def topological_order(self) -> List[str]:
        """All topic ids, prerequisites first, ties broken by id."""
        return list(self._topo_order)

    def sort_topologically(self, topic_ids: Iterable[str]) -> List[str]:
        return sorted(topic_ids, key=self._topo_index.__getitem__)

    # ==================== Root Cause Analysis ====================

    def trace_root_cause(self, topic_id: str, weak_ids: Set[str]) -> str:
        """
        Find the root cause of a weak topic by tracing back through prerequisites.

        Returns the EARLIEST weak topic in the prerequisite chain, or
        topic_id itself when none of its prerequisites is weak.
        """
        weak_prereqs = self.weak_prerequisites(topic_id, weak_ids)
        return weak_prereqs[0] if weak_prereqs else topic_id

    def weak_prerequisites(self, topic_id: str, weak_ids: Set[str]) -> List[str]:
        """Weak transitive prerequisites of topic_id, in topological order."""
        ancestors = self.get_all_prerequisites(topic_id)
        return self.sort_topologically(ancestors & weak_ids)

    # ==================== Statistics ====================

    def get_stats(self) -> dict:
        return {
            "total_topics": len(self.topics),
            "roots": len(self.roots()),
            "dependency_edges": self.dependencies.number_of_edges(),
            "max_dependency_depth": nx.dag_longest_path_length(self.dependencies),
            "max_hierarchy_depth": nx.dag_longest_path_length(self.hierarchy),
        }
