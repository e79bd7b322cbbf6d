"""Request and response models for the HTTP API."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from inspection_camera.domain.artifacts import InspectionBatch, StampedArtifact
from inspection_camera.domain.location import LocationSample
from inspection_camera.services.sessions import SessionLifecycle


class IdentificationPayload(BaseModel):
    """Asset and client as typed by the technician."""

    asset_id: str = ""
    client_name: str = ""


class BeginRequest(BaseModel):
    """Starts capturing, optionally with identification."""

    identification: IdentificationPayload | None = None


class FinalizeRequest(BaseModel):
    """Identification supplied at finalize time (deferred mode)."""

    identification: IdentificationPayload | None = None


class LocationPayload(BaseModel):
    """Location fix or failure reported by the consumer."""

    latitude: float | None = Field(default=None, ge=-90.0, le=90.0)
    longitude: float | None = Field(default=None, ge=-180.0, le=180.0)
    accuracy: float | None = Field(default=None, ge=0.0)
    captured_at: datetime | None = None
    error_reason: str | None = None

    def to_sample(self) -> LocationSample:
        """Convert into a domain sample (raises ValueError when malformed)."""
        return LocationSample(
            latitude=self.latitude,
            longitude=self.longitude,
            accuracy=self.accuracy,
            captured_at=self.captured_at,
            error_reason=self.error_reason,
        )


class ArtifactSummary(BaseModel):
    """Metadata of one stamped photo."""

    id: UUID
    captured_at: datetime
    latitude: float | None
    longitude: float | None
    location_error: str | None
    asset_id: str | None
    client_name: str | None
    size_bytes: int

    @classmethod
    def from_artifact(cls, artifact: StampedArtifact) -> "ArtifactSummary":
        return cls(
            id=artifact.id,
            captured_at=artifact.captured_at,
            latitude=artifact.location.latitude,
            longitude=artifact.location.longitude,
            location_error=artifact.location.error_reason,
            asset_id=artifact.asset_id,
            client_name=artifact.client_name,
            size_bytes=len(artifact.image_bytes),
        )


class SessionView(BaseModel):
    """Current session state and buffered photos."""

    state: str
    mode: str
    asset_id: str | None
    client_name: str | None
    artifacts: list[ArtifactSummary]

    @classmethod
    def from_lifecycle(cls, session: SessionLifecycle) -> "SessionView":
        identification = session.identification
        return cls(
            state=session.state.value,
            mode=session.mode.value,
            asset_id=identification.asset_id if identification else None,
            client_name=identification.client_name if identification else None,
            artifacts=[
                ArtifactSummary.from_artifact(artifact)
                for artifact in session.artifacts
            ],
        )


class BatchSummary(BaseModel):
    """Archived batch listing entry."""

    id: UUID
    asset_id: str
    client_name: str
    created_at: datetime
    artifact_count: int
    filenames: list[str]

    @classmethod
    def from_batch(cls, batch: InspectionBatch) -> "BatchSummary":
        return cls(
            id=batch.id,
            asset_id=batch.identification.asset_id,
            client_name=batch.identification.client_name,
            created_at=batch.created_at,
            artifact_count=len(batch.artifacts),
            filenames=batch.filenames(),
        )
