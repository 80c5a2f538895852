"""Errors raised while translating a cargo build plan into a ninja file."""

from __future__ import annotations


class CargoNinjaError(Exception):
    """Base class for every terminal translation failure."""


class PlanParseError(CargoNinjaError):
    """The cargo output is not a well-formed, schema-conforming build plan."""


class InvalidDependencyIndexError(CargoNinjaError):
    def __init__(self, referrer: int, index: int, plan_size: int) -> None:
        self.referrer = referrer
        self.index = index
        self.plan_size = plan_size
        if index == referrer:
            reason = "an invocation cannot depend on itself"
        else:
            reason = f"valid indices are 0..{plan_size - 1}" if plan_size else "the plan is empty"
        super().__init__(
            f"Invocation {referrer} declares dependency index {index}, which is invalid: {reason}."
        )


class ConflictingOutputError(CargoNinjaError):
    def __init__(self, output: str, existing_rule: str, new_rule: str) -> None:
        self.output = output
        self.existing_rule = existing_rule
        self.new_rule = new_rule
        super().__init__(
            f"Output `{output}` is declared by two different build statements: "
            f"`{existing_rule}` and `{new_rule}`."
        )


class ConflictingRuleError(CargoNinjaError):
    def __init__(self, rule_id: str) -> None:
        self.rule_id = rule_id
        super().__init__(f"Rule `{rule_id}` is declared twice with different definitions.")


class SerializationError(CargoNinjaError):
    """The ninja writer could not render the assembled build graph."""
