import pytest
from botocore.exceptions import ClientError

from ddb_repo import HistoryRepo, RosterRepo, canonical_pair


def _client_error(code):
    return ClientError({"Error": {"Code": code, "Message": code}}, "PutItem")


class FakeTable:
    """Keeps items in memory and pages scans two items at a time."""

    def __init__(self, items=None, fail_with=None):
        self.items = list(items or [])
        self.fail_with = fail_with
        self.scan_calls = []

    def scan(self, **kwargs):
        self.scan_calls.append(kwargs)
        start = kwargs.get("ExclusiveStartKey", {}).get("offset", 0)
        resp = {"Items": self.items[start:start + 2]}
        if start + 2 < len(self.items):
            resp["LastEvaluatedKey"] = {"offset": start + 2}
        return resp

    def put_item(self, Item, ConditionExpression=None):
        if self.fail_with:
            raise _client_error(self.fail_with)
        key = (Item["pk"], Item.get("sk"))
        if ConditionExpression and any((i["pk"], i.get("sk")) == key for i in self.items):
            raise _client_error("ConditionalCheckFailedException")
        self.items.append(Item)


def test_canonical_pair_orders_lowercase():
    assert canonical_pair("B@EXAMPLE.COM", " a@example.com") == ("a@example.com", "b@example.com")


def test_scan_all_follows_pagination():
    table = FakeTable([{"pk": f"user{i}@test.com"} for i in range(5)])
    repo = RosterRepo("coffee_roster", table=table)
    items = repo.scan_all()
    assert len(items) == 5
    assert len(table.scan_calls) == 3
    assert table.scan_calls[1] == {"ExclusiveStartKey": {"offset": 2}}


def test_put_participant_if_new():
    table = FakeTable()
    repo = RosterRepo("coffee_roster", table=table)
    assert repo.put_participant_if_new({"email": " Alice@Test.com ", "active": True, "twice": ""}) is True
    assert repo.put_participant_if_new({"email": "alice@test.com", "active": False}) is False
    assert len(table.items) == 1
    assert table.items[0]["pk"] == "alice@test.com"
    assert table.items[0]["active"] is True


def test_put_meeting_if_new_is_idempotent_per_round():
    table = FakeTable()
    repo = HistoryRepo("coffee_history", table=table)
    row = {"user_a": "b@test.com", "user_b": "a@test.com", "date": "2024-03-15", "round_label": "Random Coffee #4"}
    assert repo.put_meeting_if_new(row) is True
    assert repo.put_meeting_if_new({**row, "user_a": "a@test.com", "user_b": "b@test.com"}) is False
    assert repo.put_meeting_if_new({**row, "round_label": "Random Coffee #5"}) is True
    assert table.items[0]["pk"] == "ROUND#Random Coffee #4"
    assert table.items[0]["sk"] == "PAIR#a@test.com#b@test.com"
    assert table.items[0]["user_a"] == "b@test.com"


def test_other_client_errors_propagate():
    repo = HistoryRepo("coffee_history", table=FakeTable(fail_with="ProvisionedThroughputExceededException"))
    with pytest.raises(ClientError):
        repo.put_meeting_if_new({"user_a": "a", "user_b": "b", "date": None, "round_label": "Random Coffee #1"})
