"""
DynamoDB repositories for the roster and the pairing history.

The roster table is keyed by participant email (``pk``) and stores the ``active`` and ``twice``
columns as entered by the organizers.  The history table holds one item per pair per round,
keyed by round label (``pk``) and the canonical pair (``sk``), so that retrying a round under the
same label never writes the same meeting twice.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

import boto3
from botocore.exceptions import ClientError


def canonical_pair(a: str, b: str) -> Tuple[str, str]:
    lo, hi = sorted([a.strip().lower(), b.strip().lower()])
    return lo, hi


def _scan_all(table) -> List[Dict[str, Any]]:
    resp = table.scan()
    items = resp.get("Items", [])
    while "LastEvaluatedKey" in resp:
        resp = table.scan(ExclusiveStartKey=resp["LastEvaluatedKey"])
        items.extend(resp.get("Items", []))
    return items


def _put_if_absent(table, item: Dict[str, Any]) -> bool:
    try:
        table.put_item(
            Item=item,
            ConditionExpression="attribute_not_exists(pk)",
        )
        return True
    except ClientError as e:
        if e.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
            # Already there; do not overwrite
            return False
        raise


class RosterRepo:
    """Repository for roster participants stored in DynamoDB."""

    def __init__(self, table_name: str, region_name: Optional[str] = None, table=None) -> None:
        self.table_name = table_name
        self.table = table if table is not None else boto3.resource("dynamodb", region_name=region_name).Table(table_name)

    def scan_all(self) -> List[Dict[str, Any]]:
        """Every roster item, following scan pagination."""
        return _scan_all(self.table)

    def put_participant_if_new(self, item: Dict[str, Any]) -> bool:
        """
        Insert a roster item if the email is not on the roster yet.

        Args:
            item: Roster item; must carry ``email``.  ``pk`` is derived from it.
        Returns:
            True if the item was inserted, False if the participant already existed.
        Raises:
            ClientError: For DynamoDB errors other than conditional check failures.
        """
        email = item["email"].strip().lower()
        return _put_if_absent(self.table, {**item, "pk": email, "email": email})


class HistoryRepo:
    """Repository for pairing history stored in DynamoDB."""

    def __init__(self, table_name: str, region_name: Optional[str] = None, table=None) -> None:
        self.table_name = table_name
        self.table = table if table is not None else boto3.resource("dynamodb", region_name=region_name).Table(table_name)

    def scan_all(self) -> List[Dict[str, Any]]:
        """Every history item, following scan pagination."""
        return _scan_all(self.table)

    def put_meeting_if_new(self, row: Dict[str, Any]) -> bool:
        """
        Write one meeting of a round, idempotently.

        Args:
            row: History row with ``user_a``, ``user_b``, ``date`` and ``round_label``.
        Returns:
            True if written, False if this pair was already recorded for the round.
        Raises:
            ClientError: For DynamoDB errors other than conditional check failures.
        """
        lo, hi = canonical_pair(row["user_a"], row["user_b"])
        item = {
            "pk": f"ROUND#{row['round_label']}",
            "sk": f"PAIR#{lo}#{hi}",
            "user_a": row["user_a"],
            "user_b": row["user_b"],
            "date": row.get("date"),
            "round_label": row["round_label"],
        }
        return _put_if_absent(self.table, item)
