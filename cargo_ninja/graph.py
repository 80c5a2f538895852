"""Translate a cargo `BuildPlan` into a `NinjaFile`."""

from __future__ import annotations

import shlex
from functools import reduce

from ninja_syntax import escape

from cargo_ninja.build_plan import BuildPlan, Invocation, ninja_dir
from cargo_ninja.errors import SerializationError
from cargo_ninja.ninja_file import NinjaBuild, NinjaFile, NinjaRule

LINK_RULE_ID = "link"
ENSURE_DIR_ALL_RULE_ID = "ensure_dir_all"

ERROR_FORMAT_JSON = "--error-format=json"
ERROR_FORMAT_HUMAN = "--error-format=human"
JSON_FLAG_PREFIX = "--json="

LINK_RULE = NinjaRule(command="ln -f $in $out", description="LINK $out")
# $ mkdir -p "$(dirname $FILE)" && touch "$FILE"
ENSURE_DIR_ALL_RULE = NinjaRule(
    command="mkdir -p $$(dirname $out) && touch $out",
    description="MKDIR $out",
)


def _dedupe(items: tuple[str, ...] | list[str]) -> tuple[str, ...]:
    seen: set[str] = set()
    out: list[str] = []
    for item in items:
        if item not in seen:
            seen.add(item)
            out.append(item)
    return tuple(out)


def _join_shell(parts: list[str]) -> str:
    return " ".join(p for p in parts if p)


def _quote(value: str) -> str:
    """Quote for the shell, then escape for ninja."""
    if "\n" in value:
        raise SerializationError(f"Command word {value!r} contains a newline, which ninja cannot express.")
    return escape(shlex.quote(value))


def command_arguments(args: tuple[str, ...]) -> tuple[str, ...]:
    """Drop machine-readable diagnostic flags and request human-readable output once."""
    kept = [
        arg
        for arg in args
        if arg not in (ERROR_FORMAT_JSON, ERROR_FORMAT_HUMAN) and not arg.startswith(JSON_FLAG_PREFIX)
    ]
    return (*kept, ERROR_FORMAT_HUMAN)


def invocation_command(invocation: Invocation) -> str:
    parts = ["cd", _quote(invocation.cwd), "&&"]
    parts.extend(f"{escape(name)}={_quote(value)}" for name, value in invocation.env)
    parts.append(_quote(invocation.program))
    parts.extend(_quote(arg) for arg in command_arguments(invocation.args))
    for step in invocation.completion_steps():
        parts.append("&&")
        parts.extend(_quote(word) for word in step)
    return _join_shell(parts)


def _invocation_description(invocation: Invocation) -> str:
    return escape(
        f"{invocation.compile_mode.value.upper()} {invocation.package_name} "
        f"v{invocation.package_version} ({invocation.target_kind[0]})"
    )


def dependency_paths(plan: BuildPlan, position: int) -> tuple[str, ...]:
    """Outputs and alias targets of every invocation that `position` depends on."""
    paths: set[str] = set()
    for index in plan.invocations[position].deps:
        dep = plan.invocation(index, referrer=position)
        paths.update(dep.outputs())
        paths.update(target for _, target in dep.links())
    return tuple(sorted(paths))


def _primary_ninja_file(plan: BuildPlan, position: int) -> NinjaFile:
    invocation = plan.invocations[position]
    rule_id = invocation.rule_id(position)
    outputs = _dedupe(invocation.outputs())
    implicit = {invocation.directory_for(output) for output in outputs}

    rule = NinjaRule(
        command=invocation_command(invocation),
        description=_invocation_description(invocation),
    )
    build = NinjaBuild(
        rule=rule_id,
        outputs=outputs,
        explicit=dependency_paths(plan, position),
        implicit=tuple(sorted(d for d in implicit if d is not None)),
    )
    return NinjaFile().with_rule(rule_id, rule).with_build(build)


def _directories_ninja_file(invocation: Invocation) -> NinjaFile:
    ninja_file = NinjaFile()
    for directory in invocation.directories():
        ninja_file = ninja_file.with_rule(ENSURE_DIR_ALL_RULE_ID, ENSURE_DIR_ALL_RULE).with_build(
            NinjaBuild(rule=ENSURE_DIR_ALL_RULE_ID, outputs=(directory,))
        )
    return ninja_file


def _links_ninja_file(invocation: Invocation) -> NinjaFile:
    ninja_file = NinjaFile()
    for link, target in invocation.links():
        target_dir = ninja_dir(target)
        if target_dir is not None:
            ninja_file = ninja_file.with_rule(ENSURE_DIR_ALL_RULE_ID, ENSURE_DIR_ALL_RULE).with_build(
                NinjaBuild(rule=ENSURE_DIR_ALL_RULE_ID, outputs=(target_dir,))
            )
        ninja_file = ninja_file.with_rule(LINK_RULE_ID, LINK_RULE).with_build(
            NinjaBuild(
                rule=LINK_RULE_ID,
                outputs=(link,),
                explicit=(target,),
                implicit=(target_dir,) if target_dir else (),
            )
        )
    return ninja_file


def invocation_ninja_file(plan: BuildPlan, position: int) -> NinjaFile:
    """The partial file contributed by one invocation: its own rule, directories and links."""
    invocation = plan.invocations[position]
    return (
        _primary_ninja_file(plan, position)
        .merge(_directories_ninja_file(invocation))
        .merge(_links_ninja_file(invocation))
    )


def build_ninja_file(plan: BuildPlan) -> NinjaFile:
    plan.check_dependency_indices()
    return reduce(
        NinjaFile.merge,
        (invocation_ninja_file(plan, position) for position in range(len(plan))),
        NinjaFile(),
    )
