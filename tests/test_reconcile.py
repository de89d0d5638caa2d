from __future__ import annotations

import itertools

from labelsync.extractor import extract_labels
from labelsync.models import Directive
from labelsync.patterns import BACKTICK
from labelsync.reconcile import ReconciliationResult, apply_result, reconcile

REGISTERED = {"bug", "wontfix", "docs"}


def test_end_to_end_scenario():
    body = "Please triage.\n\n- [x] `bug`\n- [ ] `wontfix`\n"
    result = reconcile(extract_labels(body, BACKTICK), {"wontfix"}, REGISTERED)
    assert result.to_add == ("bug",)
    assert result.to_remove == ("wontfix",)
    assert result.checked == ("bug",)
    assert result.considered == ("bug", "wontfix")


def test_unregistered_directives_are_ignored():
    directives = [Directive("unknown", True), Directive("ghost", False)]
    result = reconcile(directives, {"ghost"}, REGISTERED)
    assert result == ReconciliationResult()
    assert result.has_directives is False
    assert result.is_noop is True


def test_absent_labels_are_never_removed():
    result = reconcile([Directive("bug", True)], {"bug", "docs"}, REGISTERED)
    assert result.to_remove == ()
    assert result.to_add == ()
    assert result.has_directives is True
    assert result.is_noop is True


def test_unchecked_label_not_applied_is_noop():
    result = reconcile([Directive("docs", False)], set(), REGISTERED)
    assert result.is_noop
    assert result.considered == ("docs",)


def test_last_occurrence_wins():
    directives = [Directive("bug", True), Directive("docs", True), Directive("bug", False)]
    result = reconcile(directives, {"bug"}, REGISTERED)
    assert result.to_remove == ("bug",)
    assert result.to_add == ("docs",)
    # order follows first appearance
    assert result.considered == ("bug", "docs")


def test_label_names_are_case_sensitive():
    result = reconcile([Directive("Bug", True)], set(), REGISTERED)
    assert result.has_directives is False


def test_as_dict_shape():
    result = reconcile([Directive("bug", True)], set(), REGISTERED)
    assert result.as_dict() == {
        "to_add": ["bug"],
        "to_remove": [],
        "checked": ["bug"],
        "considered": ["bug"],
    }


def _all_cases():
    names = ["bug", "docs", "stray"]
    registered_options = [set(), {"bug"}, {"bug", "docs"}]
    for states in itertools.product([None, True, False], repeat=len(names)):
        directives = [Directive(n, s) for n, s in zip(names, states) if s is not None]
        for current_bits in itertools.product([False, True], repeat=len(names)):
            current = {n for n, bit in zip(names, current_bits) if bit}
            for registered in registered_options:
                yield directives, current, registered


def test_laws_hold_for_every_small_input():
    for directives, current, registered in _all_cases():
        result = reconcile(directives, current, registered)
        assert not set(result.to_add) & set(result.to_remove)
        assert set(result.to_add) <= registered
        assert set(result.to_remove) <= registered
        assert not set(result.to_add) & current
        assert set(result.to_remove) <= current
        unchecked = {d.name for d in directives if not d.checked}
        assert set(result.to_remove) <= unchecked

        # applying the result reaches a fixed point
        after = apply_result(current, result)
        again = reconcile(directives, after, registered)
        assert again.is_noop


def test_apply_result():
    result = ReconciliationResult(to_add=("bug",), to_remove=("wontfix",))
    assert apply_result({"wontfix", "docs"}, result) == {"bug", "docs"}
