"""Unit tests for payload tagging."""

from typing import Any

import pytest

from saltpipe.errors import ProtocolError
from saltpipe.payload import PayloadKind, ResourcePayload, response_rounds


@pytest.mark.parametrize(
    "value,kind",
    [
        (None, PayloadKind.EMPTY),
        ("", PayloadKind.EMPTY),
        ("text", PayloadKind.SCALAR),
        (0, PayloadKind.SCALAR),
        (False, PayloadKind.SCALAR),
        ([1, 2], PayloadKind.SEQUENCE),
        ({}, PayloadKind.FIELDS),
        ({"result": True}, PayloadKind.FIELDS),
    ],
)
def test_wrap(value: Any, kind: PayloadKind) -> None:
    assert ResourcePayload.wrap(value).kind is kind


def test_entries_keep_service_order() -> None:
    payload = ResourcePayload.wrap({"z": 1, "a": "x", "m": None})
    assert [(key, entry.kind) for key, entry in payload.entries()] == [
        ("z", PayloadKind.SCALAR),
        ("a", PayloadKind.SCALAR),
        ("m", PayloadKind.EMPTY),
    ]


def test_sequence_entries_indexed() -> None:
    payload = ResourcePayload.wrap(["a", {"b": 1}])
    assert [key for key, _ in payload.entries()] == [0, 1]


def test_scalar_has_no_entries() -> None:
    assert list(ResourcePayload.wrap("text").entries()) == []


def test_result_and_changes() -> None:
    payload = ResourcePayload.wrap({"result": None, "changes": {"a": 1}})
    assert payload.has_result()
    assert payload.result is None
    assert payload.changes == {"a": 1}
    assert not ResourcePayload.wrap({"changes": {}}).has_result()
    assert ResourcePayload.wrap("x").result is None


def test_stripped_leaves_original_untouched() -> None:
    value = {"result": True, "__run_num__": 1, "__id__": "x", "pchanges": {}, "nested": {"a": 1}}
    payload = ResourcePayload.wrap(value)

    stripped = payload.stripped()
    stripped.value["nested"]["a"] = 2

    assert stripped.value.keys() == {"result", "nested"}
    assert value["__run_num__"] == 1
    assert value["nested"] == {"a": 1}


class TestResponseRounds:
    """Tests for extracting rounds from a response."""

    def test_rounds(self) -> None:
        assert response_rounds({"return": [{"a": 1}]}) == [{"a": 1}]

    def test_empty_rounds_allowed(self) -> None:
        assert response_rounds({"return": []}) == []

    @pytest.mark.parametrize("response", [None, {}, {"return": None}, "text", [1]])
    def test_missing_return(self, response: Any) -> None:
        with pytest.raises(ProtocolError):
            response_rounds(response)

    def test_return_not_a_list(self) -> None:
        with pytest.raises(ProtocolError):
            response_rounds({"return": {"node1": True}})
