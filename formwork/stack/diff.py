"""Structural comparison of two stacks.

Resources are matched by resource id, the name the user chose, because synthesized ids differ
between synthesis runs for the same logical resource. Property changes are not detected: a
resource whose resource id is present in both stacks is reported as unchanged.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, final

if TYPE_CHECKING:
    from formwork.stack.stack import Stack

type IdPair = tuple[str, str]


@final
@dataclass(frozen=True)
class StackDiff:
    """Pairs of (resource id, synthesized id).

    ``introduced`` carries the ids of the current stack, ``removed`` and ``unchanged`` the
    ids of the previous one (those are the ids that stay deployed).
    """

    introduced: tuple[IdPair, ...] = ()
    removed: tuple[IdPair, ...] = ()
    unchanged: tuple[IdPair, ...] = ()

    @property
    def has_changes(self) -> bool:
        return bool(self.introduced or self.removed)


def diff(current: "Stack", previous: "Stack") -> StackDiff:
    current_ids = current.metadata
    previous_ids = previous.metadata

    introduced = tuple(
        (resource_id, synthesized_id)
        for resource_id, synthesized_id in current_ids.items()
        if resource_id not in previous_ids
    )
    unchanged = tuple(
        (resource_id, previous_ids[resource_id])
        for resource_id in current_ids
        if resource_id in previous_ids
    )
    removed = tuple(
        (resource_id, synthesized_id)
        for resource_id, synthesized_id in previous_ids.items()
        if resource_id not in current_ids
    )
    return StackDiff(introduced=introduced, removed=removed, unchanged=unchanged)


def format_diff(stack_diff: StackDiff) -> str:
    return (
        f"- added ids: {_format_ids(stack_diff.introduced)}\n"
        f"- removed ids: {_format_ids(stack_diff.removed)}\n"
        f"- ids that stay: {_format_ids(stack_diff.unchanged)}"
    )


def _format_ids(ids: tuple[IdPair, ...]) -> str:
    if not ids:
        return "(none)"
    return ", ".join(
        f"{resource_id} (resource {synthesized_id})" for resource_id, synthesized_id in ids
    )
