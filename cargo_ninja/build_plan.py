"""In-memory model of the build plan printed by `cargo build --build-plan`."""

from __future__ import annotations

import json
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import PurePosixPath
from typing import Any, Iterator

from cargo_ninja.errors import InvalidDependencyIndexError, PlanParseError

NINJA_DIR_MARKER = ".ninja_dir"
CUSTOM_BUILD_MARKER = ".ninja_run_custom_build"

_RULE_ID_UNSAFE = re.compile(r"[^A-Za-z0-9_.-]")


class CompileMode(Enum):
    TEST = "test"
    BUILD = "build"
    CHECK = "check"
    BENCH = "bench"
    DOC = "doc"
    DOCTEST = "doctest"
    DOCSCRAPE = "docscrape"
    RUN_CUSTOM_BUILD = "run-custom-build"


def ninja_dir(path: str) -> str | None:
    """Return the directory-ensure marker for `path`, or None if it has no directory part."""
    parent = PurePosixPath(path).parent
    if str(parent) == ".":
        return None
    return str(parent / NINJA_DIR_MARKER)


@dataclass(frozen=True)
class Invocation(ABC):
    """One rustc or build-script step of the plan."""

    program: str
    args: tuple[str, ...]
    cwd: str
    env: tuple[tuple[str, str], ...]
    package_name: str
    package_version: str
    target_kind: tuple[str, ...]
    compile_mode: CompileMode
    deps: tuple[int, ...] = ()
    declared_outputs: tuple[str, ...] = ()
    declared_links: tuple[tuple[str, str], ...] = ()

    @staticmethod
    def create(**fields: Any) -> Invocation:
        if fields["compile_mode"] is CompileMode.RUN_CUSTOM_BUILD:
            return CustomBuildInvocation(**fields)
        return CompileInvocation(**fields)

    @abstractmethod
    def outputs(self) -> tuple[str, ...]: ...

    @abstractmethod
    def directories(self) -> tuple[str, ...]: ...

    @abstractmethod
    def completion_steps(self) -> tuple[tuple[str, ...], ...]:
        """Commands run after the real command succeeds, as argv tuples."""

    def links(self) -> tuple[tuple[str, str], ...]:
        return tuple(sorted(self.declared_links))

    def directory_for(self, path: str) -> str | None:
        """Return the directory-ensure path this invocation declares for `path`, if any."""
        candidate = ninja_dir(path)
        if candidate is None or candidate not in self.directories():
            return None
        return candidate

    def rule_id(self, position: int) -> str:
        raw = "-".join(
            (
                str(position),
                self.package_name,
                self.package_version,
                self.target_kind[0],
                self.compile_mode.value,
            )
        )
        return _RULE_ID_UNSAFE.sub("_", raw)


@dataclass(frozen=True)
class CompileInvocation(Invocation):
    """A rustc invocation with outputs declared upfront."""

    def outputs(self) -> tuple[str, ...]:
        return self.declared_outputs

    def directories(self) -> tuple[str, ...]:
        dirs = {ninja_dir(output) for output in self.outputs()}
        return tuple(sorted(d for d in dirs if d is not None))

    def completion_steps(self) -> tuple[tuple[str, ...], ...]:
        return ()


@dataclass(frozen=True)
class CustomBuildInvocation(Invocation):
    """A build script run. It declares no outputs, so completion is tracked by a marker file."""

    def marker(self) -> str:
        return str(PurePosixPath(self.cwd) / CUSTOM_BUILD_MARKER)

    def outputs(self) -> tuple[str, ...]:
        return (self.marker(),)

    def directories(self) -> tuple[str, ...]:
        # The build script sets up its own directories.
        return ()

    def completion_steps(self) -> tuple[tuple[str, ...], ...]:
        return (("cd", "-"), ("touch", self.marker()))


@dataclass(frozen=True)
class BuildPlan:
    """Ordered invocations; dependency indices point into `invocations`."""

    invocations: tuple[Invocation, ...]
    inputs: tuple[str, ...] = ()

    def __len__(self) -> int:
        return len(self.invocations)

    def __iter__(self) -> Iterator[Invocation]:
        return iter(self.invocations)

    def invocation(self, index: int, referrer: int) -> Invocation:
        if index == referrer or not 0 <= index < len(self.invocations):
            raise InvalidDependencyIndexError(referrer, index, len(self.invocations))
        return self.invocations[index]

    def check_dependency_indices(self) -> None:
        for position, invocation in enumerate(self.invocations):
            for index in invocation.deps:
                self.invocation(index, referrer=position)

    @classmethod
    def from_cargo_output(cls, raw: bytes | str) -> BuildPlan:
        try:
            document = json.loads(raw)
        except ValueError as e:
            raise PlanParseError(f"Cargo build plan is not valid JSON: {e}") from e

        if not isinstance(document, dict) or not isinstance(document.get("invocations"), list):
            raise PlanParseError("Cargo build plan must be a JSON object with an `invocations` list.")

        invocations = tuple(
            _parse_invocation(position, record)
            for position, record in enumerate(document["invocations"])
        )
        inputs = _string_list(document.get("inputs", []), "the build plan", "inputs")
        return cls(invocations=invocations, inputs=inputs)


def _require(record: dict, where: str, name: str) -> Any:
    if name not in record:
        raise PlanParseError(f"{where} is missing required field `{name}`.")
    return record[name]


def _string(value: Any, where: str, name: str) -> str:
    if not isinstance(value, str):
        raise PlanParseError(f"{where} field `{name}` must be a string, got {type(value).__name__}.")
    return value


def _string_list(value: Any, where: str, name: str) -> tuple[str, ...]:
    if not isinstance(value, list):
        raise PlanParseError(f"{where} field `{name}` must be a list, got {type(value).__name__}.")
    return tuple(_string(item, where, name) for item in value)


def _string_pairs(value: Any, where: str, name: str) -> list[tuple[str, str]]:
    if isinstance(value, dict):
        items = list(value.items())
    elif isinstance(value, list):
        items = []
        for item in value:
            if not isinstance(item, list) or len(item) != 2:
                raise PlanParseError(f"{where} field `{name}` must contain `[key, value]` pairs.")
            items.append((item[0], item[1]))
    else:
        raise PlanParseError(
            f"{where} field `{name}` must be an object or a list of pairs, got {type(value).__name__}."
        )
    return [(_string(k, where, name), _string(v, where, name)) for k, v in items]


def _env(value: Any, where: str) -> tuple[tuple[str, str], ...]:
    pairs = _string_pairs(value, where, "env")
    seen: set[str] = set()
    for key, _ in pairs:
        if key in seen:
            raise PlanParseError(f"{where} declares environment variable `{key}` more than once.")
        seen.add(key)
    return tuple(sorted(pairs))


def _deps(value: Any, where: str) -> tuple[int, ...]:
    if not isinstance(value, list):
        raise PlanParseError(f"{where} field `deps` must be a list, got {type(value).__name__}.")
    for index in value:
        # bool is an int subclass; `true` is not a dependency index.
        if isinstance(index, bool) or not isinstance(index, int):
            raise PlanParseError(f"{where} field `deps` must contain integers, got {index!r}.")
    return tuple(sorted(set(value)))


def _compile_mode(record: dict, where: str) -> CompileMode:
    field = "compile_mode" if "compile_mode" in record else "kind"
    raw = _string(_require(record, where, field), where, field)
    try:
        return CompileMode(raw)
    except ValueError:
        known = ", ".join(mode.value for mode in CompileMode)
        raise PlanParseError(f"{where} has unknown compile mode `{raw}`. Known modes: {known}") from None


def _parse_invocation(position: int, record: Any) -> Invocation:
    where = f"Invocation {position}"
    if not isinstance(record, dict):
        raise PlanParseError(f"{where} must be a JSON object, got {type(record).__name__}.")

    compile_mode = _compile_mode(record, where)

    target_kind = _string_list(_require(record, where, "target_kind"), where, "target_kind")
    if not target_kind:
        raise PlanParseError(f"{where} field `target_kind` must not be empty.")

    if "outputs" in record:
        outputs = _string_list(record["outputs"], where, "outputs")
    elif compile_mode is CompileMode.RUN_CUSTOM_BUILD:
        outputs = ()
    else:
        raise PlanParseError(f"{where} is missing required field `outputs`.")
    if not outputs and compile_mode is not CompileMode.RUN_CUSTOM_BUILD:
        raise PlanParseError(f"{where} must declare at least one output.")

    return Invocation.create(
        program=_string(_require(record, where, "program"), where, "program"),
        args=_string_list(_require(record, where, "args"), where, "args"),
        cwd=_string(_require(record, where, "cwd"), where, "cwd"),
        env=_env(_require(record, where, "env"), where),
        package_name=_string(_require(record, where, "package_name"), where, "package_name"),
        package_version=_string(_require(record, where, "package_version"), where, "package_version"),
        target_kind=target_kind,
        compile_mode=compile_mode,
        deps=_deps(_require(record, where, "deps"), where),
        declared_outputs=outputs,
        declared_links=tuple(sorted(set(_string_pairs(record.get("links", {}), where, "links")))),
    )
