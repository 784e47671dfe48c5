"""
One-to-one assignment over a cost matrix.

Small populations (up to ``config.exact_solver_max_size`` list entries) are solved exactly with
a branch-and-bound search over the candidate pairs sorted by cost.  Larger populations use a
global greedy pass that refuses to walk into a dead end too eagerly: a choice that would leave
someone with only penalized partners gets a surcharge before the cheapest effective choice is
committed, and a choice that would leave someone with no candidate partner at all (the two
copies of the twice participant, for instance) is only taken when nothing else is left.

Both modes maximize the number of pairs first (``len(participants) // 2``) and minimize total
cost second.  Neither ever pairs an identity with itself.
"""

from __future__ import annotations

import logging
import math
from typing import List, Optional, Sequence, Tuple

from models import Pair, PairingConfig
from pair_scoring import DEFAULT_CONFIG, is_penalized

logger = logging.getLogger(__name__)

# (cost, i, j) with i < j
Candidate = Tuple[float, int, int]


def _valid_matrix(matrix, n: int) -> bool:
    if not matrix or len(matrix) < n:
        return False
    for row in matrix[:n]:
        if not row or len(row) < n:
            return False
    return True


def _cell(matrix, i: int, j: int) -> float:
    try:
        value = float(matrix[i][j])
    except (TypeError, ValueError):
        return 0.0
    return value if math.isfinite(value) else 0.0


def candidate_pairs(participants: Sequence[Optional[str]], matrix) -> List[Candidate]:
    """Every usable unordered index pair, cheapest first.

    Placeholder entries (None) and two copies of the same identity are left out.
    """
    n = len(participants)
    out: List[Candidate] = []
    for i in range(n):
        if participants[i] is None:
            continue
        for j in range(i + 1, n):
            if participants[j] is None or participants[i] == participants[j]:
                continue
            out.append((_cell(matrix, i, j), i, j))
    out.sort()
    return out


def _solve_exact(candidates: List[Candidate], target: int) -> List[Candidate]:
    best_cost = math.inf
    best: List[Candidate] = []

    def branch(pool: List[Candidate], chosen: List[Candidate], cost: float) -> None:
        nonlocal best_cost, best
        remaining = target - len(chosen)
        if remaining == 0:
            if cost < best_cost:
                best_cost = cost
                best = list(chosen)
            return
        if len(pool) < remaining:
            return

        for k, cand in enumerate(pool):
            if len(pool) - k < remaining:
                break
            c, i, j = cand
            # the pool is sorted, so every later pair costs at least c
            if cost + c * remaining >= best_cost:
                break
            rest = [p for p in pool[k + 1:] if p[1] not in (i, j) and p[2] not in (i, j)]
            chosen.append(cand)
            branch(rest, chosen, cost + c)
            chosen.pop()

    branch(candidates, [], 0.0)
    return best


def _solve_greedy(candidates: List[Candidate], target: int, config: PairingConfig) -> List[Candidate]:
    free = set(i for c in candidates for i in c[1:])
    # partners each index still has among the free ones: any candidate, and non-penalized only
    any_options = {i: 0 for i in free}
    open_options = {i: 0 for i in free}
    is_open = {}
    for c, i, j in candidates:
        ok = not is_penalized(c, config)
        is_open[(i, j)] = ok
        is_open[(j, i)] = ok
        any_options[i] += 1
        any_options[j] += 1
        if ok:
            open_options[i] += 1
            open_options[j] += 1

    def lookahead(i: int, j: int) -> Tuple[bool, bool]:
        """(dead_end, strands) for committing i-j.

        A dead end leaves more free indices without any candidate than an odd remainder can
        absorb; stranding leaves someone with only penalized partners.
        """
        left = free - {i, j}
        if len(left) < 2:
            return False, False
        no_partner = 0
        stranded = False
        for k in left:
            gone = ((k, i) in is_open) + ((k, j) in is_open)
            if any_options[k] - gone <= 0:
                no_partner += 1
            if open_options[k] - is_open.get((k, i), False) - is_open.get((k, j), False) <= 0:
                stranded = True
        return no_partner > len(left) % 2, stranded

    chosen: List[Candidate] = []
    pool = list(candidates)
    while len(chosen) < target:
        pool = [p for p in pool if p[1] in free and p[2] in free]
        if not pool:
            break

        # dead ends rank after every other choice, whatever their cost
        pick: Optional[Candidate] = None
        pick_key: Optional[Tuple[bool, float]] = None
        for cand in pool:
            c, i, j = cand
            if pick_key is not None and not pick_key[0] and c >= pick_key[1]:
                break
            dead, stranded = lookahead(i, j)
            key = (dead, c + config.stranding_surcharge if stranded else c)
            if pick_key is None or key < pick_key:
                pick, pick_key = cand, key

        c, i, j = pick
        chosen.append(pick)
        free.discard(i)
        free.discard(j)
        for k in free:
            any_options[k] -= ((k, i) in is_open) + ((k, j) in is_open)
            open_options[k] -= is_open.get((k, i), False) + is_open.get((k, j), False)

    return chosen


def solve(
    participants: Sequence[Optional[str]],
    cost_matrix,
    config: PairingConfig = DEFAULT_CONFIG,
) -> List[Pair]:
    """Pick pairs from ``participants`` minimizing total cost.

    Returns an empty list for an empty or malformed matrix rather than raising.
    """
    n = len(participants) if participants else 0
    if n < 2 or not _valid_matrix(cost_matrix, n):
        if n >= 2:
            logger.warning("solve: cost matrix is empty or malformed for %s participants", n)
        return []

    candidates = candidate_pairs(participants, cost_matrix)
    usable = sum(1 for p in participants if p is not None)
    target = usable // 2

    if n <= config.exact_solver_max_size:
        logger.info("solve: exact search over %sx%s matrix", n, n)
        chosen: List[Candidate] = []
        while target > 0 and not chosen:
            chosen = _solve_exact(candidates, target)
            target -= 1
    else:
        logger.info("solve: heuristic search over %sx%s matrix", n, n)
        chosen = _solve_greedy(candidates, target, config)

    pairs: List[Pair] = []
    for _, i, j in chosen:
        a, b = participants[i], participants[j]
        if a is None or b is None or a == b:
            continue
        pairs.append((a, b))
    return pairs


def solver_mode(size: int, config: PairingConfig = DEFAULT_CONFIG) -> str:
    if size < 2:
        return "none"
    return "exact" if size <= config.exact_solver_max_size else "heuristic"
