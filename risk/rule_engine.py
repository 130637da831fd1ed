from dataclasses import dataclass, field
from decimal import Decimal, localcontext
from enum import Enum
from typing import Any, Union, Optional
import json


class RiskLevel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    @property
    def rank(self) -> int:
        return _RISK_RANK[self]


_RISK_RANK = {RiskLevel.LOW: 0, RiskLevel.MEDIUM: 1, RiskLevel.HIGH: 2}


class ConditionOperator(str, Enum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    GREATER_THAN_OR_EQUAL = "greater_than_or_equal"
    LESS_THAN_OR_EQUAL = "less_than_or_equal"
    MULTIPLE_OF = "multiple_of"
    IN = "in"
    NOT_IN = "not_in"


class LogicalOperator(str, Enum):
    AND = "AND"
    OR = "OR"


def _as_number(value: Any) -> Any:
    # Rule values arrive from JSON as int/float; compare money as Decimal.
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, int) and not isinstance(value, bool):
        return Decimal(value)
    return value


def _is_multiple(value: Any, base: Any) -> bool:
    if not base:
        return False
    with localcontext() as ctx:
        # remainder needs every digit of the integer quotient
        ctx.prec = max(ctx.prec, value.adjusted() - base.adjusted() + ctx.prec)
        return value % base == 0


@dataclass
class Condition:
    field: str
    operator: ConditionOperator
    value: Any = None

    def evaluate(self, context: dict) -> bool:
        field_value = context.get(self.field)
        if field_value is None:
            return False
        return self._apply_operator(_as_number(field_value), _as_number(self.value))

    def _apply_operator(self, field_value: Any, compare_value: Any) -> bool:
        op = self.operator
        if op == ConditionOperator.EQUALS: return field_value == compare_value
        if op == ConditionOperator.NOT_EQUALS: return field_value != compare_value
        if op == ConditionOperator.GREATER_THAN: return field_value > compare_value
        if op == ConditionOperator.LESS_THAN: return field_value < compare_value
        if op == ConditionOperator.GREATER_THAN_OR_EQUAL: return field_value >= compare_value
        if op == ConditionOperator.LESS_THAN_OR_EQUAL: return field_value <= compare_value
        if op == ConditionOperator.MULTIPLE_OF: return _is_multiple(field_value, compare_value)
        if op == ConditionOperator.IN: return field_value in compare_value if compare_value else False
        if op == ConditionOperator.NOT_IN: return field_value not in compare_value if compare_value else True
        return False

    def to_dict(self) -> dict:
        return {"field": self.field, "operator": self.operator.value, "value": self.value}

    @classmethod
    def from_dict(cls, data: dict) -> "Condition":
        return cls(field=data["field"], operator=ConditionOperator(data["operator"]), value=data.get("value"))


@dataclass
class ConditionGroup:
    operator: LogicalOperator
    conditions: list[Union[Condition, "ConditionGroup"]]

    def evaluate(self, context: dict) -> bool:
        if not self.conditions:
            return True
        results = [cond.evaluate(context) for cond in self.conditions]
        return all(results) if self.operator == LogicalOperator.AND else any(results)

    def to_dict(self) -> dict:
        return {"operator": self.operator.value, "conditions": [c.to_dict() for c in self.conditions]}

    @classmethod
    def from_dict(cls, data: dict) -> "ConditionGroup":
        conditions = []
        for c in data["conditions"]:
            if "operator" in c and "conditions" in c:
                conditions.append(ConditionGroup.from_dict(c))
            else:
                conditions.append(Condition.from_dict(c))
        return cls(operator=LogicalOperator(data["operator"]), conditions=conditions)


@dataclass
class EscalationRule:
    id: str
    name: str
    conditions: Union[Condition, ConditionGroup]
    level: RiskLevel
    description: str = ""
    is_active: bool = True
    priority: int = 0
    metadata: dict = field(default_factory=dict)

    def evaluate(self, context: dict) -> bool:
        if not self.is_active:
            return False
        return self.conditions.evaluate(context)

    def to_dict(self) -> dict:
        return {
            "id": self.id, "name": self.name, "description": self.description,
            "is_active": self.is_active, "priority": self.priority,
            "level": self.level.value, "conditions": self.conditions.to_dict(),
            "metadata": self.metadata
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: dict) -> "EscalationRule":
        cond_data = data["conditions"]
        conditions = ConditionGroup.from_dict(cond_data) if "operator" in cond_data and "conditions" in cond_data else Condition.from_dict(cond_data)
        return cls(
            id=data["id"], name=data["name"], description=data.get("description", ""),
            is_active=data.get("is_active", True), priority=data.get("priority", 0),
            level=RiskLevel(data["level"]), conditions=conditions, metadata=data.get("metadata", {})
        )


class RiskEngine:
    """Classifies a ledger row by escalating through the registered rules.

    Classification starts at Low and only ever moves up: every rule that fires
    can raise the level to its own, none can lower it.
    """

    def __init__(self, rules: Optional[list[EscalationRule]] = None):
        self.rules: dict[str, EscalationRule] = {}
        for rule in rules or []:
            self.add_rule(rule)

    def add_rule(self, rule: EscalationRule) -> None:
        self.rules[rule.id] = rule

    def remove_rule(self, rule_id: str) -> None:
        self.rules.pop(rule_id, None)

    def get_rule(self, rule_id: str) -> Optional[EscalationRule]:
        return self.rules.get(rule_id)

    def list_rules(self) -> list[EscalationRule]:
        rules = list(self.rules.values())
        rules.sort(key=lambda r: r.priority, reverse=True)
        return rules

    def evaluate(self, context: dict) -> list[EscalationRule]:
        return [rule for rule in self.list_rules() if rule.evaluate(context)]

    def classify(self, context: dict) -> RiskLevel:
        level = RiskLevel.LOW
        for rule in self.evaluate(context):
            if rule.level.rank > level.rank:
                level = rule.level
        return level


def default_rules() -> list[EscalationRule]:
    return [
        EscalationRule(
            id="aging-medium", name="Overdue more than 60 days",
            conditions=Condition(field="days_overdue", operator=ConditionOperator.GREATER_THAN, value=60),
            level=RiskLevel.MEDIUM, priority=40
        ),
        EscalationRule(
            id="aging-high", name="Overdue more than 90 days",
            conditions=Condition(field="days_overdue", operator=ConditionOperator.GREATER_THAN, value=90),
            level=RiskLevel.HIGH, priority=30
        ),
        EscalationRule(
            id="lapping-round-payment", name="Round payment received late",
            description="Round-million receipts on aged invoices, a proxy for lapping.",
            conditions=ConditionGroup(operator=LogicalOperator.AND, conditions=[
                Condition(field="amount_received", operator=ConditionOperator.GREATER_THAN, value=0),
                Condition(field="amount_received", operator=ConditionOperator.MULTIPLE_OF, value=1_000_000),
                Condition(field="days_overdue", operator=ConditionOperator.GREATER_THAN, value=45),
            ]),
            level=RiskLevel.HIGH, priority=20
        ),
        EscalationRule(
            id="unconfirmed-large-balance", name="Large balance without confirmation reply",
            conditions=ConditionGroup(operator=LogicalOperator.AND, conditions=[
                Condition(field="confirmation_status", operator=ConditionOperator.EQUALS, value="No Reply"),
                Condition(field="billed_amount", operator=ConditionOperator.GREATER_THAN, value=10_000_000),
            ]),
            level=RiskLevel.HIGH, priority=10
        ),
    ]


def default_engine() -> RiskEngine:
    return RiskEngine(default_rules())
