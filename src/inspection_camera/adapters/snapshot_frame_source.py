"""IP camera snapshot frame source."""

from dataclasses import dataclass

import httpx
from PIL import Image

from inspection_camera.domain.errors import InvalidImage
from inspection_camera.services.sessions import FrameSource
from inspection_camera.services.stamping import decode_image


@dataclass
class HttpxSnapshotFrameSource(FrameSource):
    """Pulls still frames from a camera's HTTP snapshot endpoint."""

    snapshot_url: str
    http_client: httpx.AsyncClient
    timeout: float = 10.0

    @classmethod
    def create(cls, snapshot_url: str) -> "HttpxSnapshotFrameSource":
        """Create a frame source with a managed httpx session."""
        return cls(snapshot_url=snapshot_url, http_client=httpx.AsyncClient())

    async def latest_frame(self) -> Image.Image:
        """Download and decode the current snapshot."""
        response = await self.http_client.get(self.snapshot_url, timeout=self.timeout)
        response.raise_for_status()
        try:
            return decode_image(response.content)
        except InvalidImage as exc:
            raise RuntimeError("Camera snapshot is not a decodable image") from exc

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
