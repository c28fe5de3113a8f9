"""Interpretation of Salt API results.

``check_result`` walks a raw response node by node and resource by resource,
classifies every resource, reports what changed and decides whether a failure
aborts the run. Iteration follows the order the service returned, so the first
failure reported is the first one in the response.
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

from .errors import EmptyResponseError, ProtocolError, StateFailure
from .escalation import DEFAULT_ESCALATION_TIMEOUT, Decision, Prompt, ask_operator
from .payload import PayloadKind, ResourceKey, ResourcePayload, response_rounds
from .reporter import (
    ClassifiedResource,
    Classification,
    ClickReporter,
    NodeReport,
    Reporter,
)
from .utils import debug_msg, error_msg, pretty_print

# (node id, resource id, formatted resource)
Failure = Tuple[str, ResourceKey, str]


@dataclass
class WalkResult:
    """Everything the walk classified, plus the failures it tolerated."""

    reports: List[NodeReport] = field(default_factory=list)
    failures: List[Failure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True when no resource failed."""
        return not self.failures


def classify(resource: ResourcePayload, print_only_changes: bool = True) -> Classification:
    """Classify a resource that has already been stripped of bookkeeping keys."""
    if not resource.has_result():
        return Classification.RAW

    result = resource.result
    if not result or (isinstance(result, str) and result != "true"):
        if result is None:
            return Classification.INFO
        return Classification.FAILURE

    if print_only_changes and not resource.changes:
        return Classification.SUCCESS_NO_CHANGE
    return Classification.SUCCESS


def is_failure(resource: ResourcePayload) -> bool:
    """Return True when a resource must be treated as failed.

    Plain strings in a state result are error messages. Mappings fail only on
    an explicit false ``result``; a missing ``result`` never fails.
    """
    if resource.is_string:
        return True
    if resource.kind is not PayloadKind.FIELDS:
        return False
    result = resource.result
    if result is not None and not result:
        return True
    return isinstance(result, str) and result == "false"


class _Walk:
    """State of one ``check_result`` call."""

    def __init__(
        self,
        fail_on_error: bool,
        print_results: bool,
        print_only_changes: bool,
        escalate_on_failure: bool,
        reporter: Reporter,
        prompt: Prompt,
        escalation_timeout: float,
    ) -> None:
        self.fail_on_error = fail_on_error
        self.print_results = print_results
        self.print_only_changes = print_only_changes
        self.escalate_on_failure = escalate_on_failure
        self.reporter = reporter
        self.prompt = prompt
        self.escalation_timeout = escalation_timeout
        self.result = WalkResult()

    def run(self, rounds: List[Any], response: Any) -> WalkResult:
        if not rounds:
            self.on_empty(response)
        for entry in rounds:
            if not entry:
                self.on_empty(response)
                continue
            if not isinstance(entry, dict):
                raise ProtocolError(f"Unexpected Salt API round: {entry}")
            for node_id, node in entry.items():
                self.walk_node(str(node_id), ResourcePayload.wrap(node))
        return self.result

    def on_empty(self, response: Any) -> None:
        message = f"Salt API returned empty response: {response}"
        if self.fail_on_error:
            raise EmptyResponseError(message)
        error_msg(message)

    def walk_node(self, node_id: str, node: ResourcePayload) -> None:
        report = NodeReport(node_id)
        self.result.reports.append(report)

        if node.kind in (PayloadKind.FIELDS, PayloadKind.SEQUENCE):
            for res_key, resource in node.entries():
                self.walk_resource(report, res_key, resource)
        elif node.kind is PayloadKind.SCALAR:
            report.resources.append(
                ClassifiedResource(node_id, Classification.RAW, pretty_print(node.value))
            )

        if self.print_results and report.visible_resources():
            self.reporter.emit(report)

    def walk_resource(self, report: NodeReport, res_key: ResourceKey, raw: ResourcePayload) -> None:
        resource = raw.stripped()
        text = pretty_print(resource.value)
        classification = classify(resource, self.print_only_changes)
        failed = is_failure(resource)
        debug_msg(f"checkResult: checking resource {res_key}: {resource.value}")
        report.resources.append(ClassifiedResource(res_key, classification, text, failed))

        if failed:
            self.on_failure(report.node_id, res_key, text)

    def on_failure(self, node_id: str, res_key: ResourceKey, text: str) -> None:
        self.result.failures.append((node_id, res_key, text))

        if self.escalate_on_failure:
            decision = self.prompt(
                f"False result on {node_id} found, resource {text}. \nDo you want to continue?",
                self.escalation_timeout,
            )
            if decision is not Decision.CONTINUE:
                error_msg(f"Resource: {res_key}\n{text}")
                raise StateFailure(node_id, res_key, text)
            return

        error_msg(f"Resource: {res_key}\n{text}")
        if self.fail_on_error:
            raise StateFailure(node_id, res_key, text)
        error_msg(f"Salt state on node {node_id} failed: {text}.")


def check_result(
    response: Any,
    fail_on_error: bool = True,
    print_results: bool = True,
    print_only_changes: bool = True,
    escalate_on_failure: bool = False,
    reporter: Optional[Reporter] = None,
    prompt: Optional[Prompt] = None,
    escalation_timeout: float = DEFAULT_ESCALATION_TIMEOUT,
) -> WalkResult:
    """Check a Salt API response for failed resources.

    Args:
        response: Parsed response of the Salt API
        fail_on_error: Raise on the first failed resource; otherwise report and go on
        print_results: Emit a report block per node with visible resources
        print_only_changes: Hide successful resources without changes
        escalate_on_failure: Ask an operator instead of failing outright
        reporter: Receiver of node reports; writes to the terminal by default
        prompt: Escalation prompt; asks on the terminal by default
        escalation_timeout: Seconds to wait for the operator

    Returns:
        The classified reports and the failures that did not abort the walk

    Raises:
        ProtocolError: If the response is null or has no ``return`` entry
        EmptyResponseError: If a round is empty and ``fail_on_error`` is set
        StateFailure: If a resource failed and the walk may not continue
    """
    rounds = response_rounds(response)
    walk = _Walk(
        fail_on_error=fail_on_error,
        print_results=print_results,
        print_only_changes=print_only_changes,
        escalate_on_failure=escalate_on_failure,
        reporter=reporter or ClickReporter(),
        prompt=prompt or ask_operator,
        escalation_timeout=escalation_timeout,
    )
    return walk.run(rounds, response)
