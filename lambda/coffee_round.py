import os
import logging
import random
from datetime import datetime, timezone
from typing import Any, Dict, List

from botocore.exceptions import ClientError

from ddb_repo import HistoryRepo, RosterRepo
from models import PairingConfig, parse_history, parse_roster
from pairing_algorithm import generate_optimal_pairs
from round_history import (
    build_history_rows,
    detect_next_round_number,
    normalize_history_dates,
    remove_empty_rows,
    round_label,
)


# ============================================================
# Random Coffee round runner
# - Reads the roster and the full pairing history (DynamoDB)
# - Normalizes history dates, drops blank rows
# - Computes this round's pairs (avoids repeats unless forced)
# - Writes one history row per pair under the next round label,
#   or under a pinned round number to retry a round
#   (a retry with the same seed skips rows already written)
# ============================================================

# -----------------------
# Env / clients
# -----------------------
REGION = os.environ.get("AWS_REGION", "us-east-1")

ROSTER_TABLE = os.environ.get("ROSTER_TABLE", "coffee_roster")
HISTORY_TABLE = os.environ.get("HISTORY_TABLE", "coffee_history")

PAIRING_TEXT = os.environ.get("PAIRING_TEXT", "Random Coffee")
RANDOM_SEED = os.environ.get("RANDOM_SEED")

PAIRING_CONFIG = PairingConfig.from_env()

logger = logging.getLogger()
logger.setLevel(logging.INFO)

roster_repo = RosterRepo(ROSTER_TABLE, region_name=REGION)
history_repo = HistoryRepo(HISTORY_TABLE, region_name=REGION)


# -----------------------
# Time helpers
# -----------------------
def today_utc():
    return datetime.now(timezone.utc).date()


def make_rng(seed):
    if seed is None or seed == "":
        return random.Random()
    return random.Random(int(seed))


# -----------------------
# Round computation
# -----------------------
def load_round_inputs():
    """Roster and cleaned, date-normalized history rows straight from storage."""
    roster_rows = roster_repo.scan_all()
    history_rows = remove_empty_rows(history_repo.scan_all()) or []
    normalize_history_dates(history_rows)
    return roster_rows, history_rows


def write_round(rows: List[Dict[str, Any]]):
    written = 0
    skipped = 0
    errors = 0
    for row in rows:
        try:
            if history_repo.put_meeting_if_new(row):
                written += 1
            else:
                skipped += 1
        except ClientError:
            errors += 1
            logger.exception("history_write_failed: user_a=%s user_b=%s round=%s",
                             row.get("user_a"), row.get("user_b"), row.get("round_label"))
    return written, skipped, errors


# -----------------------
# Main handler
# -----------------------
def lambda_handler(event, context):
    """
    event options:
      - {"dry_run": true}              compute pairs, write nothing
      - {"seed": 42}                   deterministic choice of the twice participant
      - {"pairing_text": "Coffee"}     base text for the round label
      - {"round_number": 7}            redo round #7 instead of starting the next one
    """
    event = event or {}
    dry_run = bool(event.get("dry_run"))
    seed = event.get("seed", RANDOM_SEED)
    pairing_text = event.get("pairing_text") or PAIRING_TEXT
    round_number = event.get("round_number")

    roster_rows, history_rows = load_round_inputs()

    if round_number:
        label = round_label(pairing_text, int(round_number))
        # the round's own rows must not count as history when it is computed again
        history_rows = [r for r in history_rows if str(r.get("round_label", "")).strip().lower() != label.lower()]
    else:
        label = round_label(pairing_text, detect_next_round_number(history_rows, pairing_text))

    result = generate_optimal_pairs(
        parse_roster(roster_rows),
        parse_history(history_rows),
        config=PAIRING_CONFIG,
        rng=make_rng(seed),
    )

    rows = build_history_rows(result.pairs, label, today_utc())

    written = skipped = errors = 0
    if rows and not dry_run:
        written, skipped, errors = write_round(rows)

    for row in rows:
        logger.info("pair: %s - %s (%s)", row["user_a"], row["user_b"], label)

    return {
        "ok": errors == 0,
        "round_label": label,
        "dry_run": dry_run,
        "pair_count": len(rows),
        "written": written,
        "skipped": skipped,
        "errors": errors,
        "history_records": len(history_rows),
        **result.to_dict(),
    }
