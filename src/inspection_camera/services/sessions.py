"""Session state machine for inspection photo batches."""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID, uuid4

from PIL import Image

from inspection_camera.domain.artifacts import (
    Identification,
    InspectionBatch,
    StampedArtifact,
)
from inspection_camera.domain.errors import (
    FinalizationAborted,
    IncompleteIdentification,
    InvalidTransition,
)
from inspection_camera.domain.location import LocationSample
from inspection_camera.domain.sessions import IdentificationMode, SessionState
from inspection_camera.services.archive import ArchiveStore
from inspection_camera.services.captures import CaptureRecord, CaptureRecordStore
from inspection_camera.services.export import ExportQueue
from inspection_camera.services.stamping import StampService


class FrameSource(Protocol):
    """Interface for pulling the latest decoded camera frame."""

    async def latest_frame(self) -> Image.Image:
        """Return the most recent frame."""


class LocationSource(Protocol):
    """Interface for pulling the latest location sample."""

    def latest(self) -> LocationSample:
        """Return the most recent sample, possibly an unavailable one."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class SessionLifecycle:
    """Coordinates capture, review, finalization and archiving of a batch.

    States move SETUP -> CAPTURING -> REVIEW -> FINALIZED and settle back in
    SETUP once the batch is archived. Discarding from CAPTURING or REVIEW
    passes through DISCARDED and also lands in SETUP.

    Finalization is all-or-nothing: artifacts are re-stamped into a scratch
    list and the batch is only archived once every one of them succeeded.
    """

    stamp_service: StampService
    archive: ArchiveStore
    location_source: LocationSource
    frame_source: FrameSource | None = None
    export_queue: ExportQueue | None = None
    mode: IdentificationMode = IdentificationMode.UPFRONT
    clock: Callable[[], datetime] = _utcnow
    id_factory: Callable[[], UUID] = uuid4
    _state: SessionState = field(default=SessionState.SETUP, init=False)
    _identification: Identification | None = field(default=None, init=False)
    _captures: CaptureRecordStore = field(
        default_factory=CaptureRecordStore, init=False
    )
    _operation_lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def identification(self) -> Identification | None:
        return self._identification

    @property
    def artifacts(self) -> list[StampedArtifact]:
        """Return buffered artifacts in capture order."""
        return self._captures.artifacts()

    def get_artifact(self, artifact_id: UUID) -> StampedArtifact | None:
        """Return a buffered artifact by id, if present."""
        record = self._captures.get(artifact_id)
        return record.artifact if record else None

    async def begin(self, identification: Identification | None = None) -> None:
        """Leave SETUP and start capturing.

        Upfront mode requires complete identification here; deferred mode
        accepts it optionally and asks again at finalize time.
        """
        async with self._operation_lock:
            self._require({SessionState.SETUP}, "begin capturing")
            if identification is None:
                if self.mode is IdentificationMode.UPFRONT:
                    raise IncompleteIdentification(["asset_id", "client_name"])
            else:
                identification = Identification.build(
                    identification.asset_id, identification.client_name
                )
            self._identification = identification
            self._state = SessionState.CAPTURING

    async def capture(self) -> StampedArtifact:
        """Stamp the latest frame from the frame source."""
        if self.frame_source is None:
            raise RuntimeError("No frame source configured")
        frame = await self.frame_source.latest_frame()
        return await self.capture_frame(frame)

    async def capture_frame(
        self, frame: Image.Image, location: LocationSample | None = None
    ) -> StampedArtifact:
        """Stamp a frame and append it to the capture buffer."""
        async with self._operation_lock:
            self._require({SessionState.CAPTURING}, "capture")
            sample = location if location is not None else self.location_source.latest()
            captured_at = self.clock()
            source = frame.copy()
            try:
                image_bytes = await self.stamp_service.stamp(
                    source, sample, captured_at, self._identification
                )
            except Exception:
                source.close()
                raise
            artifact = StampedArtifact(
                id=self.id_factory(),
                image_bytes=image_bytes,
                captured_at=captured_at,
                location=sample,
            )
            self._captures.append(CaptureRecord(artifact=artifact, source=source))
            return artifact

    async def finish_capture(self) -> bool:
        """Move to REVIEW; does nothing while no photo has been captured."""
        async with self._operation_lock:
            self._require({SessionState.CAPTURING}, "finish capturing")
            if not len(self._captures):
                return False
            self._state = SessionState.REVIEW
            return True

    async def resume_capture(self) -> None:
        """Go back from REVIEW to CAPTURING to take more photos."""
        async with self._operation_lock:
            self._require({SessionState.REVIEW}, "resume capturing")
            self._state = SessionState.CAPTURING

    async def delete_artifact(self, artifact_id: UUID) -> bool:
        """Remove one buffered artifact, keeping the others in order."""
        async with self._operation_lock:
            self._require(
                {SessionState.CAPTURING, SessionState.REVIEW}, "delete a photo"
            )
            return self._captures.remove(artifact_id)

    async def clear(self) -> None:
        """Empty the buffer from REVIEW and return to SETUP."""
        async with self._operation_lock:
            self._require({SessionState.REVIEW}, "clear the buffer")
            self._reset()

    async def discard(self) -> None:
        """Drop the session without archiving.

        Waits for any in-flight capture or finalization to settle first.
        """
        async with self._operation_lock:
            self._require(
                {SessionState.CAPTURING, SessionState.REVIEW}, "discard the session"
            )
            self._state = SessionState.DISCARDED
            self._reset()

    async def finalize(
        self, identification: Identification | None = None
    ) -> InspectionBatch:
        """Re-stamp every artifact with identification and archive the batch.

        Until the batch is archived any failure returns the session to REVIEW
        with its buffer intact. An `ExportFailed` raised afterwards means the
        batch is already archived and only the hand-off needs repeating.
        """
        async with self._operation_lock:
            self._require({SessionState.REVIEW}, "finalize")
            resolved = self._resolve_identification(identification)
            records = self._captures.records()
            if not records:
                raise InvalidTransition("finalize an empty session", self._state)

            self._state = SessionState.FINALIZED
            committed = False
            try:
                finalized: list[StampedArtifact] = []
                try:
                    for record in records:
                        finalized.append(await self._restamp(record, resolved))
                except Exception as exc:
                    raise FinalizationAborted(len(finalized), len(records)) from exc

                batch = InspectionBatch(
                    id=self.id_factory(),
                    identification=resolved,
                    artifacts=tuple(finalized),
                    created_at=self.clock(),
                )
                self.archive.archive(batch)
                committed = True
            finally:
                if not committed:
                    self._state = SessionState.REVIEW
            self._reset()

        if self.export_queue is not None:
            await self.export_queue.export(batch)
        return batch

    async def _restamp(
        self, record: CaptureRecord, identification: Identification
    ) -> StampedArtifact:
        artifact = record.artifact
        image_bytes = await self.stamp_service.stamp(
            record.source, artifact.location, artifact.captured_at, identification
        )
        return replace(
            artifact,
            image_bytes=image_bytes,
            asset_id=identification.asset_id,
            client_name=identification.client_name,
        )

    def _resolve_identification(
        self, identification: Identification | None
    ) -> Identification:
        candidate = identification or self._identification
        if candidate is None:
            raise IncompleteIdentification(["asset_id", "client_name"])
        return Identification.build(candidate.asset_id, candidate.client_name)

    def _require(self, allowed: set[SessionState], operation: str) -> None:
        if self._state not in allowed:
            raise InvalidTransition(operation, self._state)

    def _reset(self) -> None:
        self._captures.clear()
        self._identification = None
        self._state = SessionState.SETUP
