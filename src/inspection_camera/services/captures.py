"""Ordered buffer of captured, not yet finalized artifacts."""

from dataclasses import dataclass, field
from uuid import UUID

from PIL import Image

from inspection_camera.domain.artifacts import StampedArtifact


@dataclass(eq=False)
class CaptureRecord:
    """A stamped artifact paired with the undecorated frame it came from."""

    artifact: StampedArtifact
    source: Image.Image


@dataclass
class CaptureRecordStore:
    """Keeps capture records in capture order for the active session."""

    _records: list[CaptureRecord] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self._records)

    def append(self, record: CaptureRecord) -> None:
        """Add a record at the end of the buffer."""
        self._records.append(record)

    def records(self) -> list[CaptureRecord]:
        """Return a snapshot of the records in capture order."""
        return list(self._records)

    def artifacts(self) -> list[StampedArtifact]:
        """Return the stamped artifacts in capture order."""
        return [record.artifact for record in self._records]

    def get(self, artifact_id: UUID) -> CaptureRecord | None:
        """Return the record for an artifact id, if present."""
        for record in self._records:
            if record.artifact.id == artifact_id:
                return record
        return None

    def remove(self, artifact_id: UUID) -> bool:
        """Remove one record, keeping the order of the rest."""
        for index, record in enumerate(self._records):
            if record.artifact.id == artifact_id:
                break
        else:
            return False
        del self._records[index]
        record.source.close()
        return True

    def clear(self) -> None:
        """Drop every record and release the retained source frames."""
        for record in self._records:
            record.source.close()
        self._records.clear()
