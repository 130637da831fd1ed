"""
Unit Tests for the Risk Rule Engine

Tests cover:
1. Condition operators
2. Escalation never downgrades
3. Rule ordering and inactive rules
4. Rule serialization
"""

import json
import pytest
from decimal import Decimal

from risk.rule_engine import (
    Condition,
    ConditionGroup,
    ConditionOperator,
    EscalationRule,
    LogicalOperator,
    RiskEngine,
    RiskLevel,
    default_engine,
    default_rules,
)


def context(days=10, billed="5000000", received="0", status="Confirmed") -> dict:
    return {
        "days_overdue": days,
        "billed_amount": Decimal(billed),
        "amount_received": Decimal(received),
        "confirmation_status": status,
    }


class TestConditions:
    """Tests for single conditions."""

    def test_multiple_of(self):
        """Test exact-multiple checks on money amounts."""
        cond = Condition(field="amount_received", operator=ConditionOperator.MULTIPLE_OF, value=1_000_000)

        assert cond.evaluate(context(received="3000000"))
        assert cond.evaluate(context(received="3000000.00"))
        assert not cond.evaluate(context(received="3000000.50"))
        assert cond.evaluate(context(received="1E+40"))

    def test_missing_field_never_matches(self):
        """Test that a condition on an absent field is false."""
        cond = Condition(field="credit_limit", operator=ConditionOperator.GREATER_THAN, value=0)

        assert not cond.evaluate(context())

    def test_group_operators(self):
        """Test AND and OR groups."""
        conditions = [
            Condition(field="days_overdue", operator=ConditionOperator.GREATER_THAN, value=45),
            Condition(field="confirmation_status", operator=ConditionOperator.IN, value=["No Reply", "Disputed"]),
        ]

        assert not ConditionGroup(operator=LogicalOperator.AND, conditions=conditions).evaluate(context(days=50))
        assert ConditionGroup(operator=LogicalOperator.OR, conditions=conditions).evaluate(context(days=50))
        assert ConditionGroup(operator=LogicalOperator.AND, conditions=conditions).evaluate(context(days=50, status="Disputed"))


class TestClassification:
    """Tests for escalation through the engine."""

    def test_no_rule_fires_is_low(self):
        """Test that a clean row stays Low."""
        assert default_engine().classify(context()) == RiskLevel.LOW

    def test_each_default_rule_escalates(self):
        """Test the three escalation rules independently."""
        engine = default_engine()

        assert engine.classify(context(days=61)) == RiskLevel.MEDIUM
        assert engine.classify(context(days=91)) == RiskLevel.HIGH
        assert engine.classify(context(days=46, received="2000000")) == RiskLevel.HIGH
        assert engine.classify(context(billed="10000001", status="No Reply")) == RiskLevel.HIGH

    def test_lower_rule_cannot_downgrade(self):
        """Test that a Low or Medium rule firing after a High rule changes nothing."""
        engine = RiskEngine([
            EscalationRule(
                id="always-high", name="Always high", level=RiskLevel.HIGH, priority=10,
                conditions=Condition(field="days_overdue", operator=ConditionOperator.GREATER_THAN_OR_EQUAL, value=0),
            ),
            EscalationRule(
                id="always-medium", name="Always medium", level=RiskLevel.MEDIUM, priority=1,
                conditions=Condition(field="days_overdue", operator=ConditionOperator.GREATER_THAN_OR_EQUAL, value=0),
            ),
        ])

        assert [r.id for r in engine.evaluate(context())] == ["always-high", "always-medium"]
        assert engine.classify(context()) == RiskLevel.HIGH

    def test_inactive_rule_ignored(self):
        """Test that deactivated rules do not fire."""
        engine = default_engine()
        engine.get_rule("aging-high").is_active = False

        assert engine.classify(context(days=120)) == RiskLevel.MEDIUM

    def test_remove_rule(self):
        """Test removing a rule from the engine."""
        engine = default_engine()
        engine.remove_rule("unconfirmed-large-balance")

        assert engine.get_rule("unconfirmed-large-balance") is None
        assert engine.classify(context(billed="20000000", status="No Reply")) == RiskLevel.LOW


class TestSerialization:
    """Tests for rule dict/JSON forms."""

    def test_default_rules_survive_json(self):
        """Test that rules loaded back from JSON classify identically."""
        payload = json.dumps([json.loads(rule.to_json()) for rule in default_rules()])
        engine = RiskEngine([EscalationRule.from_dict(d) for d in json.loads(payload)])

        assert [r.id for r in engine.list_rules()] == [r.id for r in default_engine().list_rules()]
        for ctx in (context(days=61), context(days=46, received="1000000"), context(billed="10000001", status="No Reply")):
            assert engine.classify(ctx) == default_engine().classify(ctx)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
