"""Protocol definitions for sitefactory.

These protocols describe the seams the build orchestrator depends on, so tests
and alternative generators can be swapped in without touching the pipeline.
"""

from __future__ import annotations

from abc import abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .generator import GeneratorOutcome
    from .models import BuildRequest


@runtime_checkable
class SiteGenerator(Protocol):
    """Protocol for the external static site generator.

    Implementations run the generator rooted at a working directory that is
    passed explicitly, never by changing the process working directory.
    """

    @abstractmethod
    def run(self, cwd: Path, request: BuildRequest) -> GeneratorOutcome:
        """Run the generator.

        Args:
            cwd: Directory the generator runs in (the materialized site).
            request: Build request carrying generator flags and timeout.

        Returns:
            GeneratorOutcome for a successful run.

        Raises:
            ExternalToolError: If the generator is missing, fails, times out,
                or is interrupted.
        """
        ...
