"""Shared test fixtures."""

import io
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest
from PIL import Image

from inspection_camera.config import Settings
from inspection_camera.containers import AppContainer
from inspection_camera.domain.artifacts import Identification, StampedArtifact
from inspection_camera.domain.location import LocationSample
from inspection_camera.domain.sessions import IdentificationMode
from inspection_camera.services.archive import InMemoryArchiveStore
from inspection_camera.services.export import ExportQueue, ExportSink, NoPacing
from inspection_camera.services.location import LocationTracker
from inspection_camera.services.sessions import (
    FrameSource,
    LocationSource,
    SessionLifecycle,
)
from inspection_camera.services.stamping import Renderer, StampRenderer, StampService

COMPANY = "NORDESTE LOCAÇÕES"
FORTALEZA = LocationSample.fix(latitude=-3.73, longitude=-38.52, accuracy=12.0)


def make_frame(
    width: int = 320, height: int = 240, color: tuple[int, int, int] = (90, 120, 150)
) -> Image.Image:
    """Return a flat-colour RGB frame."""
    return Image.new("RGB", (width, height), color)


def jpeg_bytes(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG")
    return buffer.getvalue()


@dataclass
class FixedClock:
    """Clock returning a start time advanced by `step` on every call."""

    start: datetime = datetime(2026, 3, 1, 15, 4, 5, tzinfo=UTC)
    step: timedelta = timedelta(seconds=1)
    calls: int = 0

    def __call__(self) -> datetime:
        now = self.start + self.step * self.calls
        self.calls += 1
        return now


@dataclass
class FakeFrameSource(FrameSource):
    """Frame source returning copies of a fixed frame."""

    frame: Image.Image = field(default_factory=make_frame)
    pulls: int = 0

    async def latest_frame(self) -> Image.Image:
        self.pulls += 1
        return self.frame.copy()


@dataclass
class FixedLocationSource(LocationSource):
    """Location source always returning the same sample."""

    sample: LocationSample = FORTALEZA

    def latest(self) -> LocationSample:
        return self.sample


@dataclass
class RecordingExportSink(ExportSink):
    """Export sink that keeps delivered files in memory."""

    delivered: list[tuple[str, StampedArtifact]] = field(default_factory=list)

    async def deliver(self, filename: str, artifact: StampedArtifact) -> None:
        self.delivered.append((filename, artifact))


@dataclass
class FailingExportSink(ExportSink):
    """Export sink that accepts `accept` files and then fails like a full disk."""

    accept: int = 0
    delivered: list[str] = field(default_factory=list)

    async def deliver(self, filename: str, artifact: StampedArtifact) -> None:
        if len(self.delivered) >= self.accept:
            raise OSError("No space left on device")
        self.delivered.append(filename)


@dataclass
class RecordingRenderer(Renderer):
    """Renderer delegating to a real one and remembering each call."""

    inner: Renderer
    calls: list[Identification | None] = field(default_factory=list)
    fail_on_call: int | None = None

    def render(
        self,
        source: Image.Image,
        location: LocationSample | None,
        captured_at: datetime,
        identification: Identification | None = None,
    ) -> bytes:
        self.calls.append(identification)
        if self.fail_on_call is not None and len(self.calls) == self.fail_on_call:
            raise RuntimeError("surface lost")
        return self.inner.render(source, location, captured_at, identification)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        company_label=COMPANY,
        timezone="UTC",
        export_delay_seconds=0,
    )


@pytest.fixture
def renderer() -> StampRenderer:
    return StampRenderer(company_label=COMPANY, timezone=ZoneInfo("UTC"))


@pytest.fixture
def recording_renderer(renderer: StampRenderer) -> RecordingRenderer:
    return RecordingRenderer(inner=renderer)


@pytest.fixture
def archive() -> InMemoryArchiveStore:
    return InMemoryArchiveStore()


@pytest.fixture
def export_sink() -> RecordingExportSink:
    return RecordingExportSink()


def build_lifecycle(  # noqa: PLR0913
    renderer: Renderer,
    archive: InMemoryArchiveStore,
    *,
    mode: IdentificationMode = IdentificationMode.UPFRONT,
    location_source: LocationSource | None = None,
    frame_source: FrameSource | None = None,
    export_sink: ExportSink | None = None,
) -> SessionLifecycle:
    export_queue = None
    if export_sink is not None:
        export_queue = ExportQueue(sink=export_sink, pacing=NoPacing())
    return SessionLifecycle(
        stamp_service=StampService(renderer),
        archive=archive,
        location_source=location_source or FixedLocationSource(),
        frame_source=frame_source,
        export_queue=export_queue,
        mode=mode,
        clock=FixedClock(),
    )


@pytest.fixture
def lifecycle(
    recording_renderer: RecordingRenderer,
    archive: InMemoryArchiveStore,
    export_sink: RecordingExportSink,
) -> SessionLifecycle:
    return build_lifecycle(
        recording_renderer,
        archive,
        frame_source=FakeFrameSource(),
        export_sink=export_sink,
    )


@pytest.fixture
def container(settings: Settings, renderer: StampRenderer) -> AppContainer:
    tracker = LocationTracker(max_age=None)
    stamp_service = StampService(renderer)
    archive = InMemoryArchiveStore()
    export_queue = ExportQueue(sink=RecordingExportSink(), pacing=NoPacing())
    session = SessionLifecycle(
        stamp_service=stamp_service,
        archive=archive,
        location_source=tracker,
        frame_source=FakeFrameSource(),
        export_queue=export_queue,
        mode=settings.identification_mode,
        clock=FixedClock(),
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        location_tracker=tracker,
        stamp_service=stamp_service,
        archive=archive,
        session=session,
        export_queue=export_queue,
        location_poller=None,
        close_resources=close_resources,
    )
