"""
Connection graph built from past coffee pairings.

Nodes are the currently active participants.  An edge joins two participants who have met at
least once and carries ``count`` (number of meetings) and ``meetings`` (the list of meeting
dates, with None standing in for a date that could not be read).  Communities are the connected
components of that graph, a rough proxy for organizational silos.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Optional

import networkx as nx

from models import MeetingRecord, Participant

logger = logging.getLogger(__name__)


def build_connection_graph(
    roster: Iterable[Optional[Participant]],
    history: Iterable[Optional[MeetingRecord]],
) -> nx.Graph:
    """Build the undirected connection graph for one round.

    Inactive participants never become nodes, and any history row touching someone who is not an
    active node is dropped.  Repeated meetings of the same pair are merged into one edge.
    """
    graph = nx.Graph()

    for p in roster or []:
        if p is None or not p.identity or not p.active:
            continue
        graph.add_node(p.identity, may_pair_twice=bool(p.may_pair_twice), meeting_count=0)

    for rec in history or []:
        if rec is None or not rec.identity_a or not rec.identity_b:
            continue
        a, b = rec.identity_a, rec.identity_b
        if a == b:
            continue
        if not graph.has_node(a) or not graph.has_node(b):
            continue

        if graph.has_edge(a, b):
            data = graph.edges[a, b]
            data["count"] += 1
            data["meetings"].append(rec.date)
        else:
            graph.add_edge(a, b, count=1, meetings=[rec.date])

        graph.nodes[a]["meeting_count"] += 1
        graph.nodes[b]["meeting_count"] += 1

    return graph


def detect_communities(graph: nx.Graph) -> Dict[str, int]:
    """Assign each node the integer id of its connected component.

    Isolated nodes end up alone in their own community.  Id values only mean anything relative to
    each other.
    """
    communities: Dict[str, int] = {}
    for community_id, component in enumerate(nx.connected_components(graph)):
        for node in component:
            communities[node] = community_id
    return communities


def average_degree(graph: nx.Graph) -> float:
    """Mean distinct partners per node: 2 * edges / nodes (0 for an empty graph)."""
    nodes = graph.number_of_nodes()
    if nodes == 0:
        return 0.0
    return 2 * graph.number_of_edges() / nodes


def have_met(graph: nx.Graph, a: str, b: str) -> bool:
    return a != b and graph.has_edge(a, b)
