"""Render a `NinjaFile` as ninja syntax."""

from __future__ import annotations

import io
from typing import Iterable, TextIO

from ninja_syntax import Writer

from cargo_ninja.errors import SerializationError
from cargo_ninja.ninja_file import NinjaFile

# Implicit dependencies (`|`) need ninja 1.3.
NINJA_REQUIRED_VERSION = "1.3"


def _check_renderable(ninja_file: NinjaFile) -> None:
    for rule_id, rule in ninja_file.rules.items():
        if "\n" in rule_id or "\n" in rule.command:
            raise SerializationError(f"Rule `{rule_id!r}` contains a newline, which ninja cannot express.")

    for build in ninja_file.statements():
        if build.rule not in ninja_file.rules:
            raise SerializationError(
                f"Build statement for {', '.join(build.outputs)} uses undeclared rule `{build.rule}`."
            )
        for path in (*build.outputs, *build.explicit, *build.implicit):
            if "\n" in path:
                raise SerializationError(f"Path {path!r} contains a newline, which ninja cannot express.")


def write_ninja_file(ninja_file: NinjaFile, output: TextIO, header: Iterable[str] = ()) -> None:
    _check_renderable(ninja_file)

    writer = Writer(output)
    try:
        header_lines = tuple(header)
        for line in header_lines:
            writer.comment(line)
        if header_lines:
            writer.newline()

        writer.variable("ninja_required_version", NINJA_REQUIRED_VERSION)
        writer.newline()

        for rule_id, rule in ninja_file.rules.items():
            writer.rule(
                rule_id,
                rule.command,
                description=rule.description,
                generator=rule.generator,
            )
            writer.newline()

        for build in ninja_file.statements():
            writer.build(
                list(build.outputs),
                build.rule,
                inputs=list(build.explicit),
                implicit=list(build.implicit),
            )
    except (TypeError, ValueError, OSError) as e:
        raise SerializationError(f"Failed to write ninja file: {e}") from e


def render_ninja_file(ninja_file: NinjaFile, header: Iterable[str] = ()) -> str:
    buffer = io.StringIO()
    write_ninja_file(ninja_file, buffer, header=header)
    return buffer.getvalue()
