"""Subsystem options for the cargo binary used to produce build plans."""

from __future__ import annotations

from pants.option.option_types import StrListOption, StrOption
from pants.option.subsystem import Subsystem


class CargoToolSubsystem(Subsystem):
    options_scope = "cargo-tool"
    help = "Configuration for the cargo binary queried for its build plan."

    binary = StrOption(default="cargo", help="Command used to invoke cargo.")
    manifest_path = StrOption(
        default="Cargo.toml",
        help="Path to the workspace manifest, relative to the build root.",
    )
    build_plan_args = StrListOption(
        default=["-Z", "unstable-options", "build", "--build-plan"],
        help="Arguments that make cargo print its build plan instead of building.",
    )
    env_vars = StrListOption(
        default=[
            "PATH",
            "HOME",
            "CARGO_HOME",
            "RUSTUP_HOME",
            "RUSTUP_TOOLCHAIN",
            "RUSTFLAGS",
            "CARGO_TARGET_DIR",
        ],
        help="Environment variables passed through from the invoking environment to cargo.",
    )
