"""Reconcile checkbox directives against the labels applied to an issue.

Given the directives extracted from a description, the labels currently on
the issue and the labels registered in the repository, compute the labels to
add and the labels to remove:

* directives naming unregistered labels are ignored entirely
* a name repeated in the description takes its last ``checked`` value
* ``to_add``    - checked and not applied yet
* ``to_remove`` - explicitly unchecked and currently applied

A label that is simply absent from the description is never removed. The two
lists are disjoint because every name carries a single state after
de-duplication. Ordering follows the first appearance of each name in the
description.

Result shape for JSON tooling (``ReconciliationResult.as_dict``)::

    {"to_add": [str], "to_remove": [str], "checked": [str], "considered": [str]}
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from .models import Directive


@dataclass(frozen=True)
class ReconciliationResult:
    to_add: tuple[str, ...] = ()
    to_remove: tuple[str, ...] = ()
    checked: tuple[str, ...] = ()
    considered: tuple[str, ...] = ()

    @property
    def has_directives(self) -> bool:
        """False when no directive named a registered label."""
        return bool(self.considered)

    @property
    def is_noop(self) -> bool:
        return not self.to_add and not self.to_remove

    def as_dict(self) -> dict[str, Any]:
        return {
            "to_add": list(self.to_add),
            "to_remove": list(self.to_remove),
            "checked": list(self.checked),
            "considered": list(self.considered),
        }


def _latest_states(directives: Sequence[Directive], registered: set[str]) -> dict[str, bool]:
    states: dict[str, bool] = {}
    for directive in directives:
        if directive.name in registered:
            states[directive.name] = directive.checked
    return states


def reconcile(
    directives: Sequence[Directive],
    current_labels: Iterable[str],
    registered_labels: Iterable[str],
) -> ReconciliationResult:
    """Compute the add/remove operations for one description."""
    registered = set(registered_labels)
    states = _latest_states(directives, registered)
    if not states:
        return ReconciliationResult()

    current = set(current_labels)
    to_add = tuple(name for name, checked in states.items() if checked and name not in current)
    to_remove = tuple(name for name, checked in states.items() if not checked and name in current)
    return ReconciliationResult(
        to_add=to_add,
        to_remove=to_remove,
        checked=tuple(name for name, checked in states.items() if checked),
        considered=tuple(states),
    )


def apply_result(current_labels: Iterable[str], result: ReconciliationResult) -> set[str]:
    """Label set expected on the issue once ``result`` has been applied."""
    return (set(current_labels) - set(result.to_remove)) | set(result.to_add)


__all__ = ["ReconciliationResult", "reconcile", "apply_result"]
