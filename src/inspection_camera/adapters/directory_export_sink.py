"""Export sink writing stamped photos into a local directory."""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path

from inspection_camera.domain.artifacts import StampedArtifact
from inspection_camera.services.export import ExportSink

logger = logging.getLogger(__name__)


@dataclass
class DirectoryExportSink(ExportSink):
    """Saves each delivered artifact as a file under `directory`."""

    directory: Path

    async def deliver(self, filename: str, artifact: StampedArtifact) -> None:
        """Write the artifact bytes, replacing any file with the same name."""
        path = self.directory / filename
        await asyncio.to_thread(self._write, path, artifact.image_bytes)
        logger.info("Exported %s (%d bytes)", path, len(artifact.image_bytes))

    def _write(self, path: Path, data: bytes) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
