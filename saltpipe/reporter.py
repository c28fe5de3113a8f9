"""Human-readable reports of Salt results."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol

import click

from .payload import ResourceKey, response_rounds
from .utils import info_msg, pretty_print


class Classification(Enum):
    """Outcome of a single resource."""

    SUCCESS = "success"
    SUCCESS_NO_CHANGE = "success_no_change"
    FAILURE = "failure"
    INFO = "info"
    RAW = "raw"


# Colors per classification; unchanged successes are never shown
CLASSIFICATION_COLORS: Dict[Classification, str] = {
    Classification.FAILURE: "red",
    Classification.INFO: "yellow",
    Classification.SUCCESS: "green",
    Classification.RAW: "cyan",
}


@dataclass(frozen=True)
class ClassifiedResource:
    """A resource of a node with its classification and printable text."""

    resource_id: ResourceKey
    classification: Classification
    text: str
    failed: bool = False

    @property
    def visible(self) -> bool:
        """Unchanged successes are left out of reports."""
        return self.classification is not Classification.SUCCESS_NO_CHANGE


@dataclass
class NodeReport:
    """All classified resources of one node."""

    node_id: str
    resources: List[ClassifiedResource] = field(default_factory=list)

    def visible_resources(self) -> List[ClassifiedResource]:
        """Return resources that belong in the printed report."""
        return [resource for resource in self.resources if resource.visible]

    def render(self) -> str:
        """Return the node block: a header followed by every visible resource."""
        blocks = [
            format_resource(res.resource_id, res.text, res.classification)
            for res in self.visible_resources()
        ]
        return "\n".join([f"Node {self.node_id} changes:"] + blocks)


def format_resource(resource_id: Any, text: str, classification: Classification) -> str:
    """Return ``Resource: <id>`` followed by the colored resource text."""
    color = CLASSIFICATION_COLORS.get(classification)
    body = click.style(text, fg=color) if color else text
    return f"Resource: {resource_id}\n{body}"


class Reporter(Protocol):
    """Receiver of node reports."""

    def emit(self, report: NodeReport) -> None:
        """Publish one node report."""
        ...


class ClickReporter:
    """Reporter writing each node block with a single ``click.echo`` call."""

    def __init__(self, err: bool = False, color: Optional[bool] = True) -> None:
        """Initialize the reporter.

        Args:
            err: Write to stderr instead of stdout
            color: Keep ANSI colors even when the output is not a terminal;
                click decides when None
        """
        self.err = err
        self.color = color

    def emit(self, report: NodeReport) -> None:
        """Write the node block in one piece."""
        click.echo(report.render(), err=self.err, color=self.color)


class CollectingReporter:
    """Reporter keeping every emitted report in memory."""

    def __init__(self) -> None:
        """Initialize with no reports."""
        self.reports: List[NodeReport] = []

    def emit(self, report: NodeReport) -> None:
        """Store the report."""
        self.reports.append(report)

    def render(self) -> str:
        """Return all stored node blocks joined by newlines."""
        return "\n".join(report.render() for report in self.reports)


def print_command_result(response: Any) -> None:
    """Print every node's payload of a Salt API response.

    Raises:
        ProtocolError: If the response is null or has no ``return`` entry
    """
    for entry in response_rounds(response):
        for node_id, node in (entry or {}).items():
            info_msg(f"Node {node_id} changes:\n{pretty_print(node)}")
