"""Provider data structures for cargo-ninja rules."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CargoBuildPlanOutput:
    """Captured result of running cargo in build-plan mode."""

    exit_code: int
    stdout: bytes
    stderr: bytes

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0
