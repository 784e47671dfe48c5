"""
pairing_algorithm.py
--------------------

This module runs one round of coffee pairings.  Given the roster and every past pairing it
returns who meets whom this round, plus a few numbers describing how good the round is.

The steps are:

* **Connection graph**: active participants become nodes, past meetings become edges
  (see ``connection_graph``).
* **Communities**: connected clusters of people who keep meeting each other.
* **Odd population**: when the active count is odd, one volunteer flagged ``twice`` is picked at
  random and listed a second time so they can meet two different people.  Without a volunteer
  one person simply sits the round out.
* **Cost matrix**: never-met pairs are scored on diversity and network structure; repeats and
  self pairings get the hard-constraint penalty (see ``pair_scoring``).
* **Assignment**: exact branch-and-bound for small rounds, a stranding-aware greedy pass for
  larger ones (see ``pair_solver``).

Example usage::

    from models import Participant, MeetingRecord
    from pairing_algorithm import generate_optimal_pairs

    roster = [Participant("a@example.com"), Participant("b@example.com")]
    history = [MeetingRecord("a@example.com", "c@example.com")]
    result = generate_optimal_pairs(roster, history)
    print(result.pairs)

Nothing here raises for well-typed input: too few people, an empty history or a history where
everyone has already met everyone all produce a (possibly empty) result.
"""

from __future__ import annotations

import logging
import random
from typing import Dict, Iterable, List, Optional, Sequence

import networkx as nx

from connection_graph import average_degree, build_connection_graph, detect_communities, have_met
from models import MeetingRecord, Pair, PairingConfig, PairingResult, Participant
from pair_scoring import DEFAULT_CONFIG, build_cost_matrix
from pair_solver import solve, solver_mode

logger = logging.getLogger(__name__)


def select_twice_participant(
    participants: Sequence[str],
    graph: nx.Graph,
    rng: Optional[random.Random] = None,
) -> Optional[str]:
    """Pick one participant allowed to pair twice, or None if nobody volunteered.

    ``rng`` only needs a ``choice`` method; pass a seeded ``random.Random`` for repeatable runs.
    """
    volunteers = [p for p in participants if graph.nodes[p].get("may_pair_twice")]
    if not volunteers:
        return None
    rng = rng or random.Random()
    return rng.choice(volunteers)


def expand_for_odd_population(
    participants: List[str],
    graph: nx.Graph,
    rng: Optional[random.Random] = None,
):
    """Return ``(participants, twice_participant)`` with the volunteer listed twice if needed."""
    if len(participants) % 2 == 0:
        return participants, None

    twice = select_twice_participant(participants, graph, rng)
    if twice is None:
        logger.warning(
            "Odd number of participants (%s) and nobody marked twice; one person will remain unpaired",
            len(participants),
        )
        return participants, None

    logger.info("Odd number detected: %s will be paired twice", twice)
    return participants + [twice], twice


def _pct(part: int, whole: int) -> float:
    return 100.0 * part / whole if whole else 0.0


def summarize_pairs(
    pairs: Sequence[Pair],
    participants: Iterable[str],
    graph: nx.Graph,
    communities: Dict[str, int],
) -> Dict[str, object]:
    """Quality numbers re-derived from the final pairs and the graph only."""
    cross = 0
    new = 0
    seen = set()
    for a, b in pairs:
        if communities.get(a) != communities.get(b):
            cross += 1
        if not have_met(graph, a, b):
            new += 1
        seen.add(a)
        seen.add(b)

    unpaired = []
    for p in participants:
        if p not in seen and p not in unpaired:
            unpaired.append(p)

    return {
        "community_count": len(set(communities.values())),
        "average_degree": average_degree(graph),
        "cross_community_pct": _pct(cross, len(pairs)),
        "new_pair_pct": _pct(new, len(pairs)),
        "repeated_pairs": len(pairs) - new,
        "unpaired": unpaired,
    }


def generate_optimal_pairs(
    roster: Iterable[Optional[Participant]],
    history: Iterable[Optional[MeetingRecord]],
    config: PairingConfig = DEFAULT_CONFIG,
    rng: Optional[random.Random] = None,
) -> PairingResult:
    """Compute this round's pairs from the roster and the full pairing history."""
    graph = build_connection_graph(roster, history)
    participants = list(graph.nodes)
    logger.info(
        "Connection graph: %s active participants, %s historical connections",
        graph.number_of_nodes(),
        graph.number_of_edges(),
    )

    if len(participants) < 2:
        logger.info("Not enough active participants for pairing")
        return PairingResult(unpaired=participants, community_count=len(participants))

    expanded, twice = expand_for_odd_population(participants, graph, rng)

    communities = detect_communities(graph)
    logger.info(
        "Found %s communities, average connections per participant %.2f",
        len(set(communities.values())),
        average_degree(graph),
    )

    matrix = build_cost_matrix(expanded, graph, communities, config)
    pairs = solve(expanded, matrix, config)

    stats = summarize_pairs(pairs, participants, graph, communities)
    logger.info(
        "Generated %s pairs: %.1f%% cross-community, %.1f%% brand new, %s repeated",
        len(pairs),
        stats["cross_community_pct"],
        stats["new_pair_pct"],
        stats["repeated_pairs"],
    )
    if stats["unpaired"]:
        logger.warning("%s participant(s) not paired: %s", len(stats["unpaired"]), ", ".join(stats["unpaired"]))

    return PairingResult(
        pairs=pairs,
        twice_participant=twice,
        unpaired=stats["unpaired"],
        community_count=stats["community_count"],
        average_degree=stats["average_degree"],
        cross_community_pct=stats["cross_community_pct"],
        new_pair_pct=stats["new_pair_pct"],
        solver_mode=solver_mode(len(expanded), config),
    )
