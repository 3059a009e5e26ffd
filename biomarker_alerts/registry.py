"""Registry for discovering and executing alert rules."""
from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Dict, Type

from .models import AlertContext, BiomarkerAlert, BiomarkerSeries
from .rule_base import AlertRule


class RuleRegistry:
    """Keeps track of available rules by id, in registration order."""

    def __init__(self) -> None:
        self._rules: Dict[str, AlertRule] = {}

    def register(self, rule_cls: Type[AlertRule]) -> Type[AlertRule]:
        if rule_cls.id in self._rules:
            raise ValueError(f"Rule '{rule_cls.id}' already registered")
        self._rules[rule_cls.id] = rule_cls()
        return rule_cls

    def clear(self) -> None:
        """Remove all registered rules."""

        self._rules.clear()

    def get(self, rule_id: str) -> AlertRule:
        return self._rules[rule_id]

    def values(self) -> Iterable[AlertRule]:
        return self._rules.values()

    def evaluate_all(
        self,
        series: BiomarkerSeries,
        context: AlertContext,
        predicate: Callable[[AlertRule], bool] | None = None,
    ) -> list[BiomarkerAlert]:
        """Run every registered rule against one series, optionally filtering."""

        outputs: list[BiomarkerAlert] = []
        for rule in self._rules.values():
            if predicate is not None and not predicate(rule):
                continue
            alerts = rule.evaluate(series, context)
            if alerts:
                logging.debug(f"Rule {rule.id} raised {len(alerts)} alert(s) for biomarker {series.biomarker_id}")
            outputs.extend(alerts)
        return outputs


registry = RuleRegistry()


def register_rule(rule_cls: Type[AlertRule]) -> Type[AlertRule]:
    """Decorator for registering a rule at definition time."""

    return registry.register(rule_cls)
