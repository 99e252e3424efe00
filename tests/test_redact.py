from __future__ import annotations

from querykit._redact import summarize_for_log


def test_summarize_for_log_redacts_credentials() -> None:
    payload = {
        "url": "/todos/1",
        "headers": {"Authorization": "Bearer abc", "X-Api-Key": "k", "Accept": "application/json"},
        "body": {"access_token": "t", "text": "b"},
    }

    summary = summarize_for_log(payload)

    assert summary["url"] == "/todos/1"
    assert summary["headers"]["Authorization"] == "<redacted>"
    assert summary["headers"]["X-Api-Key"] == "<redacted>"
    assert summary["headers"]["Accept"] == "application/json"
    assert summary["body"] == {"access_token": "<redacted>", "text": "b"}


def test_summarize_for_log_bounds_size() -> None:
    summary = summarize_for_log({"text": "x" * 50, "items": list(range(25)), "blob": b"\x00" * 8}, max_string=10)

    assert summary["text"] == "x" * 10 + "…<+40 chars>"
    assert summary["items"][:20] == list(range(20))
    assert summary["items"][-1] == "<+5 items>"
    assert summary["blob"] == "<bytes:8b>"


def test_summarize_for_log_reprs_unknown_objects() -> None:
    class _Opaque:
        def __repr__(self) -> str:
            return "<opaque>"

    assert summarize_for_log({"obj": _Opaque()}) == {"obj": "<opaque>"}
