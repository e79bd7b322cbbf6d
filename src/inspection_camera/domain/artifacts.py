"""Domain models for stamped photos and inspection batches."""

import re
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from inspection_camera.domain.errors import IncompleteIdentification
from inspection_camera.domain.location import LocationSample

JPEG_MIME_TYPE = "image/jpeg"

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-z0-9]")


@dataclass(frozen=True)
class Identification:
    """Asset and client naming the inspected equipment."""

    asset_id: str
    client_name: str

    @classmethod
    def build(
        cls, asset_id: str | None, client_name: str | None
    ) -> "Identification":
        """Return a trimmed identification, failing if a field is blank."""
        asset = (asset_id or "").strip()
        client = (client_name or "").strip()
        missing = []
        if not asset:
            missing.append("asset_id")
        if not client:
            missing.append("client_name")
        if missing:
            raise IncompleteIdentification(missing)
        return cls(asset_id=asset, client_name=client)


@dataclass(frozen=True)
class StampedArtifact:
    """One stamped photograph of an in-progress session."""

    id: UUID
    image_bytes: bytes
    captured_at: datetime
    location: LocationSample
    asset_id: str | None = None
    client_name: str | None = None
    mime_type: str = JPEG_MIME_TYPE

    @property
    def is_identified(self) -> bool:
        """Return whether the artifact carries its finalization stamp."""
        return self.asset_id is not None and self.client_name is not None


@dataclass(frozen=True)
class InspectionBatch:
    """Finalized, immutable group of artifacts sharing one identification."""

    id: UUID
    identification: Identification
    artifacts: tuple[StampedArtifact, ...]
    created_at: datetime

    def __post_init__(self) -> None:
        if not self.artifacts:
            raise ValueError("An inspection batch needs at least one artifact")

    def filenames(self) -> list[str]:
        """Return export filenames in artifact order."""
        return [
            artifact_filename(self.identification, index)
            for index in range(1, len(self.artifacts) + 1)
        ]


def sanitize_client_name(client_name: str) -> str:
    """Lowercase and replace every non-alphanumeric character with `_`."""
    return _UNSAFE_FILENAME_CHARS.sub("_", client_name.lower())


def artifact_filename(identification: Identification, index: int) -> str:
    """Build `{ASSET_ID}_{client}_{index}.jpg` for a 1-based index."""
    client = sanitize_client_name(identification.client_name)
    return f"{identification.asset_id}_{client}_{index}.jpg"
