"""Unit tests for Salt result checking."""

import copy
from typing import Any, Dict, List, Tuple

import pytest

from saltpipe.errors import EmptyResponseError, ProtocolError, StateFailure
from saltpipe.escalation import Decision
from saltpipe.payload import ResourcePayload
from saltpipe.reporter import Classification, CollectingReporter
from saltpipe.walker import check_result, classify, is_failure

GREEN = "\x1b[32m"
RED = "\x1b[31m"
YELLOW = "\x1b[33m"
CYAN = "\x1b[36m"


def state_response(*nodes: Tuple[str, Dict[str, Any]]) -> Dict[str, Any]:
    """Build a single-round response from (node id, resources) pairs."""
    return {"return": [dict(nodes)]}


def walk(response: Any, **kwargs: Any) -> Tuple[Any, CollectingReporter]:
    reporter = CollectingReporter()
    result = check_result(response, reporter=reporter, **kwargs)
    return result, reporter


class TestClassify:
    """Tests for per-resource classification."""

    @pytest.mark.parametrize(
        "resource,expected",
        [
            ({"result": True, "changes": {"a": 1}}, Classification.SUCCESS),
            ({"result": True, "changes": {}}, Classification.SUCCESS_NO_CHANGE),
            ({"result": True}, Classification.SUCCESS_NO_CHANGE),
            ({"result": "true", "changes": {"a": 1}}, Classification.SUCCESS),
            ({"result": False, "changes": {}}, Classification.FAILURE),
            ({"result": "false"}, Classification.FAILURE),
            ({"result": "maybe"}, Classification.FAILURE),
            ({"result": None, "comment": "would change"}, Classification.INFO),
            ({"comment": "no result field"}, Classification.RAW),
            (["a", "b"], Classification.RAW),
            ("plain string", Classification.RAW),
        ],
    )
    def test_classification(self, resource: Any, expected: Classification) -> None:
        assert classify(ResourcePayload.wrap(resource)) is expected

    def test_unchanged_success_shown_when_not_filtering(self) -> None:
        resource = ResourcePayload.wrap({"result": True, "changes": {}})
        assert classify(resource, print_only_changes=False) is Classification.SUCCESS


class TestIsFailure:
    """Tests for the failure trigger."""

    @pytest.mark.parametrize(
        "resource",
        [
            {"result": False},
            {"result": "false"},
            "Rendering SLS 'base:nginx' failed",
            "",
        ],
    )
    def test_failures(self, resource: Any) -> None:
        assert is_failure(ResourcePayload.wrap(resource))

    @pytest.mark.parametrize(
        "resource",
        [
            {"result": True},
            {"result": None},
            {"comment": "failed badly", "changes": {"error": "everything"}},
            [{"result": False}],
            {"result": "maybe"},
        ],
    )
    def test_not_failures(self, resource: Any) -> None:
        assert not is_failure(ResourcePayload.wrap(resource))


class TestCheckResult:
    """Tests for walking whole responses."""

    @pytest.mark.parametrize("fail_on_error", [True, False])
    def test_missing_return_raises_protocol_error(self, fail_on_error: bool) -> None:
        with pytest.raises(ProtocolError):
            check_result({"jid": "123"}, fail_on_error=fail_on_error)

    @pytest.mark.parametrize("fail_on_error", [True, False])
    def test_null_response_raises_protocol_error(self, fail_on_error: bool) -> None:
        with pytest.raises(ProtocolError):
            check_result(None, fail_on_error=fail_on_error)

    def test_empty_return_raises_empty_response(self) -> None:
        with pytest.raises(EmptyResponseError):
            check_result({"return": []})

    def test_empty_round_raises_empty_response(self) -> None:
        with pytest.raises(EmptyResponseError):
            check_result({"return": [{}]})

    def test_empty_round_reported_without_fail_on_error(self, capsys: Any) -> None:
        result, _ = walk({"return": [{}]}, fail_on_error=False)
        assert result.ok
        assert "Salt API returned empty response" in capsys.readouterr().err

    def test_changed_resource_printed_in_green(self) -> None:
        response = state_response(("node1", {"resource1": {"result": True, "changes": {"a": 1}}}))
        result, reporter = walk(response, print_only_changes=True)

        assert result.ok
        output = reporter.render()
        assert "Node node1 changes:" in output
        assert "Resource: resource1" in output
        assert GREEN in output

    def test_false_result_raises_state_failure(self, capsys: Any) -> None:
        response = state_response(("node1", {"resource1": {"result": False, "changes": {}}}))

        with pytest.raises(StateFailure) as exc_info:
            walk(response, fail_on_error=True)

        assert exc_info.value.node_id == "node1"
        assert exc_info.value.resource_id == "resource1"
        assert "node1" in str(exc_info.value)
        assert "resource1" in str(exc_info.value)
        assert "Resource: resource1" in capsys.readouterr().err

    def test_failure_stops_the_walk(self) -> None:
        response = {
            "return": [
                {
                    "node1": {
                        "first": {"result": True, "changes": {"a": 1}},
                        "broken": {"result": "false"},
                        "after": {"result": False},
                    },
                    "node2": {"other": {"result": False}},
                }
            ]
        }
        reporter = CollectingReporter()

        with pytest.raises(StateFailure) as exc_info:
            check_result(response, reporter=reporter)

        assert exc_info.value.resource_id == "broken"
        assert reporter.reports == []

    def test_without_fail_on_error_every_failure_is_reported(self, capsys: Any) -> None:
        response = {
            "return": [
                {
                    "node1": {"a": {"result": False}, "b": {"result": True, "changes": {"x": 1}}},
                    "node2": {"c": {"result": "false"}},
                }
            ]
        }
        result, reporter = walk(response, fail_on_error=False)

        assert [(node, res) for node, res, _ in result.failures] == [("node1", "a"), ("node2", "c")]
        assert not result.ok
        assert [report.node_id for report in reporter.reports] == ["node1", "node2"]
        err = capsys.readouterr().err
        assert "Salt state on node node1 failed" in err
        assert "Salt state on node node2 failed" in err

    def test_null_result_is_info_and_never_fails(self) -> None:
        response = state_response(("node1", {"pkg": {"result": None, "comment": "would install"}}))
        result, reporter = walk(response)

        assert result.ok
        resource = result.reports[0].resources[0]
        assert resource.classification is Classification.INFO
        assert YELLOW in reporter.render()

    def test_unchanged_success_hidden_but_still_success(self) -> None:
        response = state_response(
            ("node1", {"quiet": {"result": True, "changes": {}}, "loud": {"result": True, "changes": {"x": 1}}})
        )
        result, reporter = walk(response, print_only_changes=True)

        assert result.ok
        output = reporter.render()
        assert "Resource: loud" in output
        assert "Resource: quiet" not in output

    def test_node_without_visible_resources_is_not_emitted(self) -> None:
        response = state_response(("node1", {"quiet": {"result": True, "changes": {}}}))
        result, reporter = walk(response)

        assert result.ok
        assert reporter.reports == []

    def test_print_results_disabled_emits_nothing(self) -> None:
        response = state_response(("node1", {"loud": {"result": True, "changes": {"x": 1}}}))
        _, reporter = walk(response, print_results=False)
        assert reporter.reports == []

    def test_bookkeeping_keys_never_printed(self) -> None:
        resource = {
            "result": True,
            "changes": {"diff": "new file"},
            "__run_num__": 3,
            "__id__": "/etc/motd",
            "pchanges": {"diff": "new file"},
        }
        response = state_response(("node1", {"file_|-motd": resource}))
        _, reporter = walk(response)

        output = reporter.render()
        for key in ("__run_num__", "__id__", "pchanges"):
            assert key not in output

    def test_input_is_not_mutated_and_walk_is_repeatable(self) -> None:
        response = state_response(
            (
                "node1",
                {
                    "a": {"result": False, "__run_num__": 0, "changes": {}},
                    "b": {"result": True, "changes": {"x": 1}, "__id__": "b"},
                },
            )
        )
        original = copy.deepcopy(response)

        _, first = walk(response, fail_on_error=False)
        _, second = walk(response, fail_on_error=False)

        assert response == original
        assert first.render() == second.render()

    def test_scalar_node_output_is_raw(self) -> None:
        result, reporter = walk({"return": [{"node1": "Linux node1 5.15.0"}]})

        assert result.ok
        assert "Resource: node1" in reporter.render()
        assert CYAN in reporter.render()

    def test_empty_scalar_node_shows_nothing(self) -> None:
        result, reporter = walk({"return": [{"node1": ""}]})
        assert result.ok
        assert reporter.reports == []

    def test_list_node_resources_keyed_by_index(self) -> None:
        response = {"return": [{"node1": [{"comment": "one"}, {"comment": "two"}]}]}
        result, reporter = walk(response)

        assert result.ok
        assert [res.resource_id for res in result.reports[0].resources] == [0, 1]
        assert "Resource: 1" in reporter.render()

    def test_string_resource_in_mapping_fails(self) -> None:
        response = {"return": [{"node1": {"error": "Pillar failed to render"}}]}
        with pytest.raises(StateFailure):
            walk(response)

    def test_resource_without_result_never_fails(self) -> None:
        response = state_response(
            ("node1", {"weird": {"changes": {"retcode": 1}, "comment": "Command failed"}})
        )
        result, reporter = walk(response)
        assert result.ok
        assert CYAN in reporter.render()

    def test_failure_text_in_red(self) -> None:
        response = state_response(("node1", {"svc": {"result": False, "comment": "not running"}}))
        result, reporter = walk(response, fail_on_error=False)
        assert len(result.failures) == 1
        assert RED in reporter.render()

    def test_multiple_rounds_walked_in_order(self) -> None:
        response = {
            "return": [
                {"node1": {"a": {"result": True, "changes": {"x": 1}}}},
                {"node2": {"b": {"result": True, "changes": {"y": 1}}}},
            ]
        }
        result, _ = walk(response)
        assert [report.node_id for report in result.reports] == ["node1", "node2"]

    def test_default_reporter_writes_to_stdout(self, capsys: Any) -> None:
        response = state_response(("node1", {"resource1": {"result": True, "changes": {"a": 1}}}))
        check_result(response)
        out = capsys.readouterr().out
        assert "Node node1 changes:" in out
        assert "Resource: resource1" in out

    def test_default_reporter_keeps_colors_off_terminal(self, capsys: Any) -> None:
        """Colors survive when stdout is captured, as on a build console."""
        response = state_response(("node1", {"resource1": {"result": True, "changes": {"a": 1}}}))
        check_result(response)
        assert GREEN in capsys.readouterr().out


class TestEscalation:
    """Tests for operator escalation on failures."""

    def _response(self) -> Dict[str, Any]:
        return state_response(
            ("node1", {"a": {"result": False}, "b": {"result": True, "changes": {"x": 1}}}),
            ("node2", {"c": {"result": False}}),
        )

    def test_continue_keeps_walking(self) -> None:
        asked: List[str] = []

        def prompt(message: str, timeout: float) -> Decision:
            asked.append(message)
            return Decision.CONTINUE

        result, _ = walk(self._response(), escalate_on_failure=True, prompt=prompt)

        assert len(asked) == 2
        assert "False result on node1 found" in asked[0]
        assert [node for node, _, _ in result.failures] == ["node1", "node2"]

    @pytest.mark.parametrize("decision", [Decision.ABORT, Decision.TIMED_OUT])
    def test_abort_and_timeout_fail_closed(self, decision: Decision) -> None:
        with pytest.raises(StateFailure) as exc_info:
            walk(
                self._response(),
                fail_on_error=False,
                escalate_on_failure=True,
                prompt=lambda message, timeout: decision,
            )
        assert exc_info.value.node_id == "node1"

    @pytest.mark.parametrize("decision", [Decision.ABORT, Decision.TIMED_OUT])
    def test_abort_prints_resource(self, decision: Decision, capsys: Any) -> None:
        with pytest.raises(StateFailure):
            walk(
                self._response(),
                escalate_on_failure=True,
                prompt=lambda message, timeout: decision,
            )
        err = capsys.readouterr().err
        assert "Resource: a" in err
        assert '"result": false' in err

    def test_timeout_passed_to_prompt(self) -> None:
        seen: List[float] = []

        def prompt(message: str, timeout: float) -> Decision:
            seen.append(timeout)
            return Decision.CONTINUE

        walk(self._response(), escalate_on_failure=True, prompt=prompt, escalation_timeout=5)
        assert seen == [5, 5]

    def test_prompt_not_used_without_escalation(self) -> None:
        def prompt(message: str, timeout: float) -> Decision:
            raise AssertionError("prompt must not be called")

        with pytest.raises(StateFailure):
            walk(self._response(), prompt=prompt)
