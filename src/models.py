"""
Data models for the coffee pairing service.

This module defines lightweight data classes for roster participants, historical meetings, the
engine configuration and the result of one pairing round.  It also owns the ingestion boundary:
roster and history rows arrive in whatever shape storage hands back (booleans, numbers,
case-varied text), and the helpers here turn them into strictly typed records before the engine
ever sees them.
"""

from __future__ import annotations

import math
import numbers
import os
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

Pair = Tuple[str, str]

_ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")


def parse_active_flag(value: Any) -> bool:
    """Return True for the truthy encodings a roster may use for "active".

    Accepts boolean ``True``, the number ``1`` and the text ``"true"`` / ``"1"`` in any case.
    Everything else (including ``False``, ``0``, blanks and ``None``) is inactive.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, numbers.Number):
        # DynamoDB hands numbers back as Decimal
        return value == 1
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1")
    return False


def parse_twice_flag(value: Any) -> bool:
    """A participant may pair twice iff the flag text is ``twice`` (trimmed, any case)."""
    if value is None:
        return False
    return str(value).strip().lower() == "twice"


def parse_iso_date(value: Any) -> Optional[date]:
    """Parse an already-normalized ``yyyy-mm-dd`` value; anything else yields None."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    m = _ISO_DATE_RE.match(value.strip())
    if not m:
        return None
    try:
        return date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    except ValueError:
        return None


def _row_value(row: Any, index: int, *keys: str) -> Any:
    """Read a column from either a positional row or a dict-shaped item."""
    if isinstance(row, Mapping):
        for k in keys:
            if k in row:
                return row[k]
        return None
    if isinstance(row, (list, tuple)):
        return row[index] if index < len(row) else None
    return None


@dataclass(frozen=True)
class Participant:
    """
    One person on the roster.

    Attributes:
        identity: Unique key for the participant (an email address).
        active: Whether the participant takes part in the coming round.
        may_pair_twice: Whether the participant volunteered to meet two people when the active
            population is odd.
    """

    identity: str
    active: bool = True
    may_pair_twice: bool = False

    @classmethod
    def from_row(cls, row: Any) -> Optional["Participant"]:
        """Build a participant from a roster row, or None if the row has no identity."""
        if not row:
            return None
        identity = _row_value(row, 0, "identity", "email")
        if not identity or not str(identity).strip():
            return None
        return cls(
            identity=str(identity).strip(),
            active=parse_active_flag(_row_value(row, 1, "active")),
            may_pair_twice=parse_twice_flag(_row_value(row, 2, "twice", "may_pair_twice")),
        )


@dataclass(frozen=True)
class MeetingRecord:
    """
    One historical pairing event.

    Attributes:
        identity_a: First participant of the pair.
        identity_b: Second participant of the pair.
        date: Day the pair met, or None when the stored date could not be read.
    """

    identity_a: str
    identity_b: str
    date: Optional[date] = None

    @classmethod
    def from_row(cls, row: Any) -> Optional["MeetingRecord"]:
        """Build a meeting record from a history row, or None if either identity is missing."""
        if not row:
            return None
        a = _row_value(row, 0, "identity_a", "user_a", "email1")
        b = _row_value(row, 1, "identity_b", "user_b", "email2")
        if not a or not b:
            return None
        return cls(
            identity_a=str(a).strip(),
            identity_b=str(b).strip(),
            date=parse_iso_date(_row_value(row, 2, "date")),
        )


def parse_roster(rows: Optional[Sequence[Any]]) -> List[Participant]:
    """Turn raw roster rows into participants, silently skipping blank or malformed rows."""
    out: List[Participant] = []
    for row in rows or []:
        p = Participant.from_row(row)
        if p is not None:
            out.append(p)
    return out


def parse_history(rows: Optional[Sequence[Any]]) -> List[MeetingRecord]:
    """Turn raw history rows into meeting records, silently skipping blank or malformed rows."""
    out: List[MeetingRecord] = []
    for row in rows or []:
        m = MeetingRecord.from_row(row)
        if m is not None:
            out.append(m)
    return out


@dataclass(frozen=True)
class PairingConfig:
    """
    Tuning parameters for scoring and solving.

    The weights must sum to 1.  ``hard_constraint_penalty`` has to dominate any composite score
    so that a repeat or self pairing is only ever chosen when nothing else is left.
    """

    diversity_weight: float = 0.6
    network_weight: float = 0.4
    diversity_base: float = 10.0
    cross_community_bonus: float = 50.0
    bridge_building_bonus: float = 30.0
    bridge_degree_gap: int = 2
    hard_constraint_penalty: float = 10000.0
    stranding_surcharge: float = 1000.0
    exact_solver_max_size: int = 12

    def __post_init__(self) -> None:
        if self.diversity_weight < 0 or self.network_weight < 0:
            raise ValueError("scoring weights must be non-negative")
        if not math.isclose(self.diversity_weight + self.network_weight, 1.0, abs_tol=1e-9):
            raise ValueError(
                f"scoring weights must sum to 1 (got {self.diversity_weight} + {self.network_weight})"
            )
        if self.hard_constraint_penalty <= 0:
            raise ValueError("hard_constraint_penalty must be positive")
        if self.exact_solver_max_size < 0:
            raise ValueError("exact_solver_max_size must be >= 0")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "PairingConfig":
        """Read overrides from environment variables, keeping defaults for unset keys."""
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            diversity_weight=float(env.get("DIVERSITY_WEIGHT", defaults.diversity_weight)),
            network_weight=float(env.get("NETWORK_WEIGHT", defaults.network_weight)),
            diversity_base=float(env.get("DIVERSITY_BASE", defaults.diversity_base)),
            cross_community_bonus=float(env.get("CROSS_COMMUNITY_BONUS", defaults.cross_community_bonus)),
            bridge_building_bonus=float(env.get("BRIDGE_BUILDING_BONUS", defaults.bridge_building_bonus)),
            bridge_degree_gap=int(env.get("BRIDGE_DEGREE_GAP", defaults.bridge_degree_gap)),
            hard_constraint_penalty=float(env.get("HARD_CONSTRAINT_PENALTY", defaults.hard_constraint_penalty)),
            stranding_surcharge=float(env.get("STRANDING_SURCHARGE", defaults.stranding_surcharge)),
            exact_solver_max_size=int(env.get("EXACT_SOLVER_MAX_SIZE", defaults.exact_solver_max_size)),
        )


@dataclass
class PairingResult:
    """
    Output of one pairing round.

    Attributes:
        pairs: Ordered list of (identity, identity) tuples.
        twice_participant: Identity that was allowed to appear in two pairs, if any.
        unpaired: Active identities that did not make it into any pair.
        community_count: Number of connected clusters in the history graph.
        average_degree: Mean number of distinct past partners per active participant.
        cross_community_pct: Share of pairs (0-100) whose members sit in different communities.
        new_pair_pct: Share of pairs (0-100) that have never met before.
        solver_mode: ``"exact"``, ``"heuristic"`` or ``"none"`` when nothing was solved.
    """

    pairs: List[Pair] = field(default_factory=list)
    twice_participant: Optional[str] = None
    unpaired: List[str] = field(default_factory=list)
    community_count: int = 0
    average_degree: float = 0.0
    cross_community_pct: float = 0.0
    new_pair_pct: float = 0.0
    solver_mode: str = "none"

    def to_dict(self) -> Dict[str, Any]:
        """Plain-dict view for logging and handler responses."""
        return {
            "pairs": [list(p) for p in self.pairs],
            "twice_participant": self.twice_participant,
            "unpaired": list(self.unpaired),
            "community_count": self.community_count,
            "average_degree": round(self.average_degree, 2),
            "cross_community_pct": round(self.cross_community_pct, 1),
            "new_pair_pct": round(self.new_pair_pct, 1),
            "solver_mode": self.solver_mode,
        }
