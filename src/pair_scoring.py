"""
Pair scoring and cost matrix construction.

Three independent signals feed the matrix:

* **Diversity**: participants with fewer mutual past partners are more likely to come from
  different corners of the organization.
* **Network structure**: a bonus for pairing across communities and another for pairing a
  well-connected participant with a poorly connected one.
* **Hard constraint**: self pairings and pairs that already met get a flat penalty instead of a
  score, so they are only chosen when nothing else is left.

Scores are "higher is better"; the matrix holds costs ("lower is better"), i.e. negated scores.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, List, Optional, Sequence

import networkx as nx

from connection_graph import have_met
from models import PairingConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = PairingConfig()


def diversity_score(a: str, b: str, graph: nx.Graph, config: PairingConfig = DEFAULT_CONFIG) -> float:
    """Base score plus ``base - |common neighbors|``, never below 0.

    Unknown participants get the base score unchanged.
    """
    score = config.diversity_base
    try:
        if not graph.has_node(a) or not graph.has_node(b):
            return score
        common = len(list(nx.common_neighbors(graph, a, b)))
        score += config.diversity_base - common
    except (nx.NetworkXError, TypeError) as e:
        logger.warning("diversity_score lookup failed for %s/%s: %s", a, b, e)
    return max(0.0, score)


def network_score(
    a: str,
    b: str,
    graph: nx.Graph,
    communities: Dict[str, int],
    config: PairingConfig = DEFAULT_CONFIG,
) -> float:
    """Cross-community bonus plus bridge-building bonus; the two are independent."""
    score = 0.0
    try:
        ca = communities.get(a)
        cb = communities.get(b)
        if ca is not None and cb is not None and ca != cb:
            score += config.cross_community_bonus

        if graph.has_node(a) and graph.has_node(b):
            if abs(graph.degree(a) - graph.degree(b)) > config.bridge_degree_gap:
                score += config.bridge_building_bonus
    except (nx.NetworkXError, TypeError, AttributeError) as e:
        logger.warning("network_score lookup failed for %s/%s: %s", a, b, e)
    return score


def pair_score(
    a: str,
    b: str,
    graph: nx.Graph,
    communities: Dict[str, int],
    config: PairingConfig = DEFAULT_CONFIG,
) -> float:
    """Weighted desirability of a never-met pair (higher is better)."""
    return (
        config.diversity_weight * diversity_score(a, b, graph, config)
        + config.network_weight * network_score(a, b, graph, communities, config)
    )


def pair_cost(
    a: str,
    b: str,
    graph: nx.Graph,
    communities: Dict[str, int],
    config: PairingConfig = DEFAULT_CONFIG,
) -> float:
    """Cost of pairing two distinct list entries; the caller handles the diagonal."""
    if a == b or have_met(graph, a, b):
        return config.hard_constraint_penalty
    cost = -pair_score(a, b, graph, communities, config)
    if not math.isfinite(cost):
        return 0.0
    return cost


def build_cost_matrix(
    participants: Sequence[str],
    graph: nx.Graph,
    communities: Dict[str, int],
    config: PairingConfig = DEFAULT_CONFIG,
) -> List[List[float]]:
    """Square cost matrix indexed like ``participants``.

    ``participants`` may hold the twice participant two times; both copies get their own row
    and column, and the copy-against-copy cell carries the penalty like the diagonal.
    """
    n = len(participants)
    matrix = [[0.0] * n for _ in range(n)]
    for i in range(n):
        matrix[i][i] = config.hard_constraint_penalty
        for j in range(i + 1, n):
            cost = pair_cost(participants[i], participants[j], graph, communities, config)
            matrix[i][j] = cost
            matrix[j][i] = cost
    return matrix


def is_penalized(cost: Optional[float], config: PairingConfig = DEFAULT_CONFIG) -> bool:
    return cost is None or cost >= config.hard_constraint_penalty
