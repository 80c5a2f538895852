"""Mergeable in-memory model of a ninja build file."""

from __future__ import annotations

from dataclasses import dataclass, field

from pants.util.frozendict import FrozenDict

from cargo_ninja.errors import ConflictingOutputError, ConflictingRuleError


@dataclass(frozen=True)
class NinjaRule:
    command: str
    description: str | None = None
    generator: bool = False


@dataclass(frozen=True)
class NinjaBuild:
    """A build statement: `rule` produces `outputs` from explicit and implicit inputs."""

    rule: str
    outputs: tuple[str, ...]
    explicit: tuple[str, ...] = ()
    implicit: tuple[str, ...] = ()


@dataclass(frozen=True)
class NinjaFile:
    """Rules keyed by id and build statements keyed by output path.

    A statement with several outputs is stored once per output. Files are never
    mutated; `merge` returns a new file.
    """

    rules: FrozenDict[str, NinjaRule] = field(default_factory=FrozenDict)
    builds: FrozenDict[str, NinjaBuild] = field(default_factory=FrozenDict)

    def with_rule(self, rule_id: str, rule: NinjaRule) -> NinjaFile:
        return self.merge(NinjaFile(rules=FrozenDict({rule_id: rule})))

    def with_build(self, build: NinjaBuild) -> NinjaFile:
        return self.merge(NinjaFile(builds=FrozenDict({output: build for output in build.outputs})))

    def merge(self, other: NinjaFile) -> NinjaFile:
        """Union two files.

        Identical re-declarations of a rule or an output collapse into one entry.
        Anything else sharing a key is a conflict.
        """
        rules = dict(self.rules)
        for rule_id, rule in other.rules.items():
            existing_rule = rules.setdefault(rule_id, rule)
            if existing_rule != rule:
                raise ConflictingRuleError(rule_id)

        builds = dict(self.builds)
        for output, build in other.builds.items():
            existing_build = builds.setdefault(output, build)
            if existing_build != build:
                raise ConflictingOutputError(output, existing_build.rule, build.rule)

        return NinjaFile(rules=FrozenDict(rules), builds=FrozenDict(builds))

    def statements(self) -> tuple[NinjaBuild, ...]:
        seen: set[NinjaBuild] = set()
        out: list[NinjaBuild] = []
        for build in self.builds.values():
            if build not in seen:
                seen.add(build)
                out.append(build)
        return tuple(out)

    def outputs_of(self, rule_id: str) -> tuple[str, ...]:
        return tuple(output for output, build in self.builds.items() if build.rule == rule_id)
