from datetime import datetime

import pytest

from rotativos.models import RotativoTipo
from rotativos.rules import (
    CUPO_RULE_ID,
    EventData,
    RuleCatalog,
    RuleConfigValue,
    SuggestedAction,
    ValidationContext,
    ValidationEngine,
    build_default_catalog,
    merge_suggestion,
)
from rotativos.rules.base import Rule
from rotativos.rules.configs import RuleConfigBase
from rotativos.rules.types import RuleCategory


class FakeStore:
    def __init__(self, configs=None):
        self.configs = configs or {}

    def load_all(self):
        return dict(self.configs)

    def get(self, key):
        return self.configs.get(key)


def make_rule(rule_id, priority=10, *, passed=True, blocking=False, action=None, calls=None):
    class StubRule(Rule):
        id = rule_id
        name = rule_id
        category = RuleCategory.RESTRICCION
        config_key = rule_id
        config_class = RuleConfigBase

        def validate(self, context, config):
            if calls is not None:
                calls.append(rule_id)
            return self.result(passed, rule_id, blocking=blocking, suggested_action=action)

    StubRule.priority = priority
    return StubRule()


def make_context(**kwargs):
    values = dict(
        user_id="u1",
        event_id="e1",
        season_id="s1",
        request_type=RotativoTipo.voluntario,
        request_date=datetime(2026, 3, 2, 10),
        event_date=datetime(2026, 3, 10, 20),
        event_type="OPERA",
    )
    values.update(kwargs)
    return ValidationContext(**values)


def run(rules, configs=None, **kwargs):
    engine = ValidationEngine(RuleCatalog(rules), FakeStore(configs))
    return engine.validate_request(make_context(), **kwargs)


@pytest.mark.parametrize(
    "current, suggested, expected",
    [
        (SuggestedAction.APPROVE, None, SuggestedAction.APPROVE),
        (SuggestedAction.APPROVE, SuggestedAction.WAITING_LIST, SuggestedAction.WAITING_LIST),
        (SuggestedAction.WAITING_LIST, SuggestedAction.PENDING_ADMIN, SuggestedAction.PENDING_ADMIN),
        (SuggestedAction.PENDING_ADMIN, SuggestedAction.WAITING_LIST, SuggestedAction.PENDING_ADMIN),
        (SuggestedAction.REJECT, SuggestedAction.PENDING_ADMIN, SuggestedAction.REJECT),
        (SuggestedAction.PENDING_ADMIN, SuggestedAction.REJECT, SuggestedAction.REJECT),
        (SuggestedAction.REJECT, SuggestedAction.APPROVE, SuggestedAction.REJECT),
    ],
)
def test_merge_suggestion_ladder(current, suggested, expected):
    assert merge_suggestion(current, suggested) == expected


def test_all_rules_passing_approves():
    summary = run([make_rule("A"), make_rule("B", 20)])

    assert summary.can_proceed is True
    assert summary.suggested_action == SuggestedAction.APPROVE
    assert [r.rule_id for r in summary.results] == ["A", "B"]


@pytest.mark.parametrize(
    "first, second",
    [
        (SuggestedAction.WAITING_LIST, SuggestedAction.PENDING_ADMIN),
        (SuggestedAction.PENDING_ADMIN, SuggestedAction.WAITING_LIST),
    ],
)
def test_pending_admin_wins_over_waiting_list_in_any_order(first, second):
    summary = run([
        make_rule("A", 10, passed=False, action=first),
        make_rule("B", 20, passed=False, action=second),
    ])

    assert summary.can_proceed is True
    assert summary.suggested_action == SuggestedAction.PENDING_ADMIN


def test_soft_reject_anywhere_wins():
    summary = run([
        make_rule("A", 10, passed=False, action=SuggestedAction.REJECT),
        make_rule("B", 20, passed=False, action=SuggestedAction.PENDING_ADMIN),
        make_rule("C", 30, passed=False, action=SuggestedAction.WAITING_LIST),
    ])

    assert summary.suggested_action == SuggestedAction.REJECT


def test_passed_results_do_not_move_the_ladder():
    summary = run([make_rule("A", passed=True, action=SuggestedAction.WAITING_LIST)])

    assert summary.suggested_action == SuggestedAction.APPROVE


def test_blocking_failure_stops_evaluation():
    calls = []
    summary = run([
        make_rule("A", 10, calls=calls),
        make_rule("B", 20, passed=False, blocking=True, action=SuggestedAction.WAITING_LIST, calls=calls),
        make_rule("C", 30, calls=calls),
    ])

    assert calls == ["A", "B"]
    assert summary.can_proceed is False
    assert summary.blocking_rule == "B"
    assert summary.suggested_action == SuggestedAction.WAITING_LIST


def test_blocking_failure_without_suggestion_rejects():
    summary = run([make_rule("A", passed=False, blocking=True)])

    assert summary.suggested_action == SuggestedAction.REJECT


def test_config_priority_and_enabled_overrides():
    calls = []
    rules = [
        make_rule("A", 10, calls=calls),
        make_rule("B", 20, calls=calls),
        make_rule("C", 30, calls=calls),
    ]
    configs = {
        "A": RuleConfigValue(enabled=True, value=None, priority=40),
        "B": RuleConfigValue(enabled=False, value=None, priority=20),
    }

    run(rules, configs)

    assert calls == ["C", "A"]


def test_equal_priorities_keep_registration_order():
    calls = []
    run([make_rule("Z", 15, calls=calls), make_rule("A", 15, calls=calls)])

    assert calls == ["Z", "A"]


def test_excluded_rules_are_skipped():
    calls = []
    run([make_rule("A", calls=calls), make_rule("B", calls=calls)], exclude=["A"])

    assert calls == ["B"]


def test_validate_cupo_only_uses_capacity_rule():
    engine = ValidationEngine(build_default_catalog(), FakeStore())
    context = make_context(event_data=EventData(current_approved=4, cupo_total=4))

    result = engine.validate_cupo_only(context)

    assert result.rule_id == CUPO_RULE_ID
    assert result.passed is False
    assert result.blocking is True
    assert result.suggested_action == SuggestedAction.WAITING_LIST


def test_validate_cupo_only_without_capacity_rule_allows():
    engine = ValidationEngine(RuleCatalog([make_rule("A")]), FakeStore())

    result = engine.validate_cupo_only(make_context())

    assert result.passed is True


def test_default_catalog_registers_every_rule():
    catalog = build_default_catalog()

    assert len(catalog) == 13
    assert catalog.ids()[0] == CUPO_RULE_ID
    assert "R13_FUNCIONES_POR_TITULO" in catalog


def test_catalog_register_replaces_in_place():
    catalog = RuleCatalog([make_rule("A"), make_rule("B")])
    catalog.register(make_rule("A", 99))

    assert catalog.ids() == ["A", "B"]
    assert catalog.get("A").priority == 99
