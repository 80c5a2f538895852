"""Shared pytest fixtures for cargo-ninja tests."""

from __future__ import annotations

import json
from typing import Any, Callable

import pytest
from pants.testutil.rule_runner import RuleRunner

from cargo_ninja import register


def invocation_record(**overrides: Any) -> dict[str, Any]:
    """A build-plan invocation record as cargo prints it, with overridable fields."""
    record: dict[str, Any] = {
        "package_name": "demo",
        "package_version": "0.1.0",
        "target_kind": ["lib"],
        "kind": None,
        "compile_mode": "build",
        "deps": [],
        "outputs": ["/work/target/debug/deps/libdemo-1a2b.rlib"],
        "links": {},
        "program": "rustc",
        "args": ["--crate-name", "demo", "src/lib.rs", "--error-format=json"],
        "env": {"CARGO_PKG_NAME": "demo"},
        "cwd": "/work/demo",
    }
    record.update(overrides)
    return record


def build_plan_json(*records: dict[str, Any], inputs: list[str] | None = None) -> str:
    return json.dumps({"invocations": list(records), "inputs": inputs or []})


@pytest.fixture
def make_record() -> Callable[..., dict[str, Any]]:
    return invocation_record


@pytest.fixture
def make_plan_json() -> Callable[..., str]:
    return build_plan_json


@pytest.fixture
def two_step_plan_json() -> str:
    """A library and a binary that links against it."""
    return build_plan_json(
        invocation_record(
            package_name="liba",
            outputs=["liba.rlib"],
            env={},
            cwd="/work/liba",
        ),
        invocation_record(
            package_name="app",
            target_kind=["bin"],
            deps=[0],
            outputs=["bin/app"],
            env={},
            cwd="/work/app",
        ),
        inputs=["/work/Cargo.toml"],
    )


def create_cargo_ninja_rule_runner() -> RuleRunner:
    """Create a RuleRunner instance configured for cargo-ninja testing."""
    return RuleRunner(
        target_types=register.target_types(),
        rules=[
            *register.rules(),
        ],
    )


@pytest.fixture
def cargo_ninja_rule_runner() -> RuleRunner:
    return create_cargo_ninja_rule_runner()
