"""Rules for querying cargo's build plan and writing it out as a ninja file."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import logging
import os
import shlex

from pants.base.build_root import BuildRoot
from pants.engine.console import Console
from pants.engine.fs import CreateDigest, Digest, FileContent, Workspace
from pants.engine.goal import Goal, GoalSubsystem
from pants.engine.internals.selectors import Get
from pants.engine.process import FallibleProcessResult, Process, ProcessCacheScope
from pants.engine.rules import collect_rules, goal_rule, rule
from pants.option.option_types import ArgsListOption, StrOption

from cargo_ninja.build_plan import BuildPlan
from cargo_ninja.errors import CargoNinjaError
from cargo_ninja.graph import build_ninja_file
from cargo_ninja.providers import CargoBuildPlanOutput
from cargo_ninja.subsystem import CargoToolSubsystem
from cargo_ninja.writer import render_ninja_file

logger = logging.getLogger(__name__)


class CargoNinjaSubsystem(GoalSubsystem):
    name = "cargo-ninja"
    help = "Generate a ninja build file from cargo's build plan."

    output_file = StrOption(
        default="build.ninja",
        help="Path of the generated ninja file, relative to the build root.",
    )
    args = ArgsListOption(
        example="--release --target x86_64-unknown-linux-gnu",
        tool_name="cargo",
        passthrough=True,
    )


class CargoNinja(Goal):
    subsystem_cls = CargoNinjaSubsystem
    environment_behavior = Goal.EnvironmentBehavior.LOCAL_ONLY


@dataclass(frozen=True)
class CargoBuildPlanRequest:
    extra_args: tuple[str, ...] = ()


def _split_command(command: str) -> tuple[str, ...]:
    parts = tuple(shlex.split(command))
    if not parts:
        raise ValueError("Tool command cannot be empty.")
    return parts


def _cargo_process_env(cargo_tool: CargoToolSubsystem) -> dict[str, str]:
    env: dict[str, str] = {}
    for name in cargo_tool.env_vars:
        value = os.environ.get(name)
        if value is not None:
            env[name] = value

    binary = _split_command(cargo_tool.binary)[0]
    if os.path.isabs(binary):
        path_parts = [str(Path(binary).parent)]
        if env.get("PATH"):
            path_parts.append(env["PATH"])
        env["PATH"] = ":".join(path_parts)

    return env


def _cargo_argv(
    cargo_tool: CargoToolSubsystem,
    build_root: str,
    extra_args: tuple[str, ...],
) -> tuple[str, ...]:
    # The process runs in a sandbox, so cargo is pointed at the real workspace.
    manifest_path = os.path.join(build_root, cargo_tool.manifest_path)
    return (
        *_split_command(cargo_tool.binary),
        *cargo_tool.build_plan_args,
        "--manifest-path",
        manifest_path,
        *extra_args,
    )


def _ninja_header(plan: BuildPlan) -> tuple[str, ...]:
    header = ["Generated by `pants cargo-ninja` from cargo's build plan. Do not edit."]
    if plan.inputs:
        header.append("Cargo inputs:")
        header.extend(f"  {path}" for path in plan.inputs)
    return tuple(header)


def translate_build_plan(raw: bytes | str) -> str:
    """Parse cargo's build plan output and render the equivalent ninja file."""
    plan = BuildPlan.from_cargo_output(raw)
    logger.debug(f"Parsed cargo build plan with {len(plan)} invocations")
    ninja_file = build_ninja_file(plan)
    logger.debug(
        f"Assembled ninja file with {len(ninja_file.rules)} rules and "
        f"{len(ninja_file.statements())} build statements"
    )
    return render_ninja_file(ninja_file, header=_ninja_header(plan))


@rule(desc="Query cargo build plan")
async def run_cargo_build_plan(
    request: CargoBuildPlanRequest,
    cargo_tool: CargoToolSubsystem,
    build_root: BuildRoot,
) -> CargoBuildPlanOutput:
    process = Process(
        argv=_cargo_argv(cargo_tool, build_root.path, request.extra_args),
        env=_cargo_process_env(cargo_tool),
        description="Query cargo build plan",
        cache_scope=ProcessCacheScope.PER_SESSION,
    )
    result = await Get(FallibleProcessResult, Process, process)
    return CargoBuildPlanOutput(
        exit_code=result.exit_code,
        stdout=result.stdout,
        stderr=result.stderr,
    )


@goal_rule
async def cargo_ninja(
    console: Console,
    workspace: Workspace,
    cargo_ninja_subsystem: CargoNinjaSubsystem,
) -> CargoNinja:
    output = await Get(
        CargoBuildPlanOutput,
        CargoBuildPlanRequest(tuple(cargo_ninja_subsystem.args)),
    )

    # Cargo's diagnostics are forwarded unchanged, warnings included.
    if output.stderr:
        console.print_stderr(output.stderr.decode(errors="replace"), end="")

    if not output.succeeded:
        logger.debug(f"cargo exited with {output.exit_code}; not writing a ninja file")
        return CargoNinja(exit_code=output.exit_code)

    try:
        content = translate_build_plan(output.stdout)
    except CargoNinjaError as e:
        console.print_stderr(f"cargo-ninja: {e}")
        return CargoNinja(exit_code=1)

    output_file = cargo_ninja_subsystem.output_file
    digest = await Get(Digest, CreateDigest([FileContent(output_file, content.encode())]))
    workspace.write_digest(digest)
    logger.info(f"Wrote {output_file}")
    return CargoNinja(exit_code=0)


def rules() -> list:
    return [
        *collect_rules(),
    ]
