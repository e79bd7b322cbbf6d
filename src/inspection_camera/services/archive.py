"""Archive of finalized inspection batches."""

from dataclasses import dataclass, field
from typing import Protocol
from uuid import UUID

from inspection_camera.domain.artifacts import InspectionBatch


class ArchiveStore(Protocol):
    """Storage interface for finalized batches."""

    def archive(self, batch: InspectionBatch) -> None:
        """Store a finalized batch."""

    def list(self) -> list[InspectionBatch]:
        """Return batches, most recent first."""

    def get(self, batch_id: UUID) -> InspectionBatch | None:
        """Return a batch by id, if present."""

    def remove(self, batch_id: UUID) -> None:
        """Delete a batch; removing an unknown id does nothing."""


@dataclass
class InMemoryArchiveStore(ArchiveStore):
    """Archive held in process memory."""

    _batches: dict[UUID, InspectionBatch] = field(default_factory=dict)

    def archive(self, batch: InspectionBatch) -> None:
        """Store a finalized batch."""
        if batch.id in self._batches:
            raise ValueError(f"Batch {batch.id} is already archived")
        self._batches[batch.id] = batch

    def list(self) -> list[InspectionBatch]:
        """Return batches ordered by creation time, newest first."""
        return sorted(
            self._batches.values(), key=lambda batch: batch.created_at, reverse=True
        )

    def get(self, batch_id: UUID) -> InspectionBatch | None:
        """Return a batch by id, if present."""
        return self._batches.get(batch_id)

    def remove(self, batch_id: UUID) -> None:
        """Delete a batch if it exists."""
        self._batches.pop(batch_id, None)
