"""Tagged representation of the payloads found in Salt API results.

Salt returns per-node results as strings, lists or mappings depending on the
function. ``ResourcePayload.wrap`` inspects a decoded JSON value once and tags
it, so the rest of the code can dispatch on ``kind``.
"""

import copy
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator, List, Tuple, Union

from .errors import ProtocolError
from .utils import error_msg

# Keys Salt adds to state results for its own bookkeeping
BOOKKEEPING_KEYS = ("__run_num__", "__id__", "pchanges")

ResourceKey = Union[str, int]


class PayloadKind(Enum):
    """Shape of a payload."""

    EMPTY = "empty"
    SCALAR = "scalar"
    SEQUENCE = "sequence"
    FIELDS = "fields"


@dataclass(frozen=True)
class ResourcePayload:
    """A decoded JSON value together with its shape."""

    kind: PayloadKind
    value: Any

    @classmethod
    def wrap(cls, value: Any) -> "ResourcePayload":
        """Tag a decoded JSON value."""
        if value is None or value == "":
            return cls(PayloadKind.EMPTY, value)
        if isinstance(value, dict):
            return cls(PayloadKind.FIELDS, value)
        if isinstance(value, (list, tuple)):
            return cls(PayloadKind.SEQUENCE, value)
        return cls(PayloadKind.SCALAR, value)

    def entries(self) -> Iterator[Tuple[ResourceKey, "ResourcePayload"]]:
        """Yield ``(key, payload)`` pairs in the order the service returned them.

        Keys are field names for mappings and indexes for sequences. Scalars and
        empty payloads have no entries.
        """
        if self.kind is PayloadKind.FIELDS:
            for key, value in self.value.items():
                yield key, ResourcePayload.wrap(value)
        elif self.kind is PayloadKind.SEQUENCE:
            for index, value in enumerate(self.value):
                yield index, ResourcePayload.wrap(value)

    @property
    def is_string(self) -> bool:
        """Return True for plain string payloads, including the empty string."""
        return isinstance(self.value, str)

    def has_result(self) -> bool:
        """Return True for a mapping carrying a ``result`` field."""
        return self.kind is PayloadKind.FIELDS and "result" in self.value

    @property
    def result(self) -> Any:
        """The ``result`` field of a mapping, or None."""
        if self.kind is PayloadKind.FIELDS:
            return self.value.get("result")
        return None

    @property
    def changes(self) -> Any:
        """The ``changes`` field of a mapping, or None."""
        if self.kind is PayloadKind.FIELDS:
            return self.value.get("changes")
        return None

    def stripped(self) -> "ResourcePayload":
        """Return a deep copy without Salt bookkeeping keys."""
        value = copy.deepcopy(self.value)
        if self.kind is PayloadKind.FIELDS:
            for key in BOOKKEEPING_KEYS:
                value.pop(key, None)
        return ResourcePayload(self.kind, value)


def response_rounds(response: Any) -> List[Any]:
    """Return the rounds of a Salt API response.

    Raises:
        ProtocolError: If the response is null or has no ``return`` entry
    """
    if response is None:
        error_msg("Cannot check salt result, given result is null")
        raise ProtocolError("Cannot check salt result, given result is null")
    if not isinstance(response, dict) or response.get("return") is None:
        error_msg(f"Salt result hasn't return attribute! Result: {response}")
        raise ProtocolError(f"Salt result hasn't return attribute! Result: {response}")
    rounds = response["return"]
    if not isinstance(rounds, list):
        raise ProtocolError(f"Salt result return attribute is not a list: {rounds}")
    return rounds
