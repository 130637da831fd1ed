"""
Risk Rules Package

Expresses the receivable risk escalation rules as data and evaluates them
against a parsed ledger row.
"""

from .rule_engine import (
    RiskEngine,
    RiskLevel,
    EscalationRule,
    Condition,
    ConditionGroup,
    ConditionOperator,
    LogicalOperator,
    default_engine,
    default_rules,
)

__all__ = [
    "RiskEngine",
    "RiskLevel",
    "EscalationRule",
    "Condition",
    "ConditionGroup",
    "ConditionOperator",
    "LogicalOperator",
    "default_engine",
    "default_rules",
]
