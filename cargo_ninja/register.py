"""Registration entrypoint for the cargo-ninja Pants backend."""

from __future__ import annotations

from cargo_ninja import rules as cargo_ninja_rules


def target_types() -> list[type]:
    return []


def rules() -> list:
    return [
        *cargo_ninja_rules.rules(),
    ]
