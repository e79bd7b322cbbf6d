"""Paced hand-off of finalized artifacts to an export sink."""

import asyncio
from dataclasses import dataclass
from typing import Protocol

from inspection_camera.domain.artifacts import (
    InspectionBatch,
    StampedArtifact,
    artifact_filename,
)
from inspection_camera.domain.errors import ExportFailed


class PacingPolicy(Protocol):
    """Decides how long to wait between two exported artifacts."""

    async def wait(self) -> None:
        """Pause before the next export."""


@dataclass(frozen=True)
class FixedDelayPacing(PacingPolicy):
    """Waits a fixed number of seconds between exports."""

    seconds: float = 0.5

    async def wait(self) -> None:
        """Sleep for the configured delay."""
        if self.seconds > 0:
            await asyncio.sleep(self.seconds)


@dataclass(frozen=True)
class NoPacing(PacingPolicy):
    """Exports back to back."""

    async def wait(self) -> None:
        """Return immediately."""
        return None


class ExportSink(Protocol):
    """Receives finalized artifacts (save, share or download)."""

    async def deliver(self, filename: str, artifact: StampedArtifact) -> None:
        """Hand one artifact to the consumer."""


@dataclass
class ExportQueue:
    """Delivers the artifacts of a batch one at a time."""

    sink: ExportSink
    pacing: PacingPolicy

    async def export(self, batch: InspectionBatch) -> list[str]:
        """Deliver every artifact in order and return the filenames used.

        A sink failure is raised as `ExportFailed`, naming the batch and the
        files delivered before it.
        """
        filenames: list[str] = []
        for index, artifact in enumerate(batch.artifacts, start=1):
            if index > 1:
                await self.pacing.wait()
            filename = artifact_filename(batch.identification, index)
            try:
                await self.sink.deliver(filename, artifact)
            except Exception as exc:
                raise ExportFailed(batch.id, filenames) from exc
            filenames.append(filename)
        return filenames
