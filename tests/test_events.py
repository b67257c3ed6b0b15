import pytest

from commandrelay.events import EventPayloadError, parse_issue_comment_event


def _payload(action: str = "created", *, pull_request: bool = True) -> dict:
    issue: dict = {"number": 12, "title": "Speed up parser"}
    if pull_request:
        issue["pull_request"] = {"url": "https://api.github.com/repos/o/r/pulls/12"}
    return {
        "action": action,
        "issue": issue,
        "comment": {
            "id": 19250981251,
            "body": "@bot do something",
            "author_association": "member",
            "user": {"login": "alice"},
        },
    }


def test_created_comment_becomes_trigger() -> None:
    trigger = parse_issue_comment_event(_payload())

    assert trigger is not None
    assert trigger.issue_number == 12
    assert trigger.comment_id == 19250981251
    assert trigger.body == "@bot do something"
    assert trigger.requester.login == "alice"
    assert trigger.requester.role == "MEMBER"
    assert trigger.requester.is_pull_request is True


def test_plain_issue_is_not_a_pull_request() -> None:
    trigger = parse_issue_comment_event(_payload(pull_request=False))

    assert trigger is not None
    assert trigger.requester.is_pull_request is False


def test_edits_and_deletions_are_ignored() -> None:
    assert parse_issue_comment_event(_payload("edited")) is None
    assert parse_issue_comment_event(_payload("deleted")) is None


def test_payload_without_comment_is_rejected() -> None:
    with pytest.raises(EventPayloadError):
        parse_issue_comment_event({"action": "created", "issue": {"number": 1}})


def test_payload_without_ids_is_rejected() -> None:
    payload = _payload()
    del payload["comment"]["id"]

    with pytest.raises(EventPayloadError):
        parse_issue_comment_event(payload)
