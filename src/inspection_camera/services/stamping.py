"""Provenance stamp rendering onto raster images."""

import asyncio
import io
from dataclasses import dataclass, field
from datetime import datetime
from functools import lru_cache
from typing import Protocol
from zoneinfo import ZoneInfo

from PIL import Image, ImageDraw, ImageFont

from inspection_camera.domain.artifacts import Identification
from inspection_camera.domain.errors import (
    EncodingFailed,
    InvalidDimensions,
    InvalidImage,
)
from inspection_camera.domain.location import LocationSample

DEFAULT_JPEG_QUALITY = 92
DEFAULT_UNAVAILABLE_LABEL = "GPS INDISPONÍVEL"

# Layout is expressed for a 1000px wide frame and scaled to the source width.
_REFERENCE_WIDTH = 1000
_MARGIN = 30
_FONT_SIZE = 24
_MIN_FONT_PX = 6
_BAND_RATIO = 0.22
_BAND_MID_STOP = (0.3, 0.7)
_BAND_MAX_OPACITY = 0.92
_LOGO_WIDTH_RATIO = 0.18
_LOGO_OPACITY = 0.6

_COMPANY_COLOR = (255, 255, 255)
_TIMESTAMP_COLOR = (226, 232, 240)
_GPS_COLOR = (250, 204, 21)
_ASSET_COLOR = (239, 68, 68)
_CLIENT_COLOR = (148, 163, 184)

FontType = ImageFont.FreeTypeFont | ImageFont.ImageFont


@dataclass(frozen=True)
class StampLines:
    """Text drawn by a stamp pass, top to bottom on each side."""

    company: str
    timestamp: str
    gps: str
    asset: str | None = None
    client: str | None = None

    @property
    def left(self) -> list[str]:
        return [self.company, self.timestamp, self.gps]

    @property
    def right(self) -> list[str]:
        return [line for line in (self.asset, self.client) if line is not None]


def format_gps_line(
    location: LocationSample | None,
    unavailable_label: str = DEFAULT_UNAVAILABLE_LABEL,
) -> str:
    """Return the coordinates line, or the reason coordinates are missing."""
    if location is None:
        return unavailable_label
    if location.has_coordinates:
        return f"LAT: {location.latitude:.6f} | LON: {location.longitude:.6f}"
    return location.error_reason or unavailable_label


def stamp_lines(  # noqa: PLR0913
    location: LocationSample | None,
    company_label: str,
    captured_at: datetime,
    identification: Identification | None = None,
    *,
    timezone: ZoneInfo | None = None,
    date_format: str = "%d/%m/%Y",
    time_format: str = "%H:%M:%S",
    unavailable_label: str = DEFAULT_UNAVAILABLE_LABEL,
) -> StampLines:
    """Build the text content of a stamp without drawing it."""
    local_time = captured_at.astimezone(timezone) if timezone else captured_at
    timestamp = (
        f"{local_time.strftime(date_format)} - {local_time.strftime(time_format)}"
    )
    asset = client = None
    if identification is not None:
        asset = f"PATRIMÔNIO: {identification.asset_id.upper()}"
        client = f"CLIENTE: {identification.client_name.upper()}"
    return StampLines(
        company=company_label,
        timestamp=timestamp,
        gps=format_gps_line(location, unavailable_label),
        asset=asset,
        client=client,
    )


class Renderer(Protocol):
    """Interface for a synchronous stamp renderer."""

    def render(
        self,
        source: Image.Image,
        location: LocationSample | None,
        captured_at: datetime,
        identification: Identification | None = None,
    ) -> bytes:
        """Return encoded JPEG bytes of the stamped source."""


@dataclass
class StampRenderer(Renderer):
    """Draws the provenance overlay and encodes the result as JPEG.

    The renderer is pure: the source image is never modified and the output
    always has the source dimensions. Rendering the same source, location,
    timestamp and identification twice yields identical bytes.
    """

    company_label: str
    quality: int = DEFAULT_JPEG_QUALITY
    timezone: ZoneInfo | None = None
    date_format: str = "%d/%m/%Y"
    time_format: str = "%H:%M:%S"
    unavailable_label: str = DEFAULT_UNAVAILABLE_LABEL
    font_path: str | None = None
    bold_font_path: str | None = None
    logo_path: str | None = None

    def render(
        self,
        source: Image.Image,
        location: LocationSample | None,
        captured_at: datetime,
        identification: Identification | None = None,
    ) -> bytes:
        """Stamp a copy of the source and return JPEG bytes."""
        width, height = source.size
        if width <= 0 or height <= 0:
            raise InvalidDimensions(width, height)

        lines = stamp_lines(
            location,
            self.company_label,
            captured_at,
            identification,
            timezone=self.timezone,
            date_format=self.date_format,
            time_format=self.time_format,
            unavailable_label=self.unavailable_label,
        )
        surface = source.convert("RGB")
        try:
            _darken_bottom_band(surface)
            self._draw_lines(surface, lines)
            if self.logo_path and not lines.right:
                self._draw_logo(surface, self.logo_path)
            return encode_jpeg(surface, self.quality)
        finally:
            surface.close()

    def _draw_lines(self, surface: Image.Image, lines: StampLines) -> None:
        width, height = surface.size
        scale = width / _REFERENCE_WIDTH
        margin = _MARGIN * scale
        size = _FONT_SIZE * scale
        left_x = margin
        right_x = width - margin
        draw = ImageDraw.Draw(surface)

        self._text(
            draw, (left_x, height - margin * 2.8), lines.company,
            size * 1.2, _COMPANY_COLOR, anchor="ld", bold=True,
        )
        self._text(
            draw, (left_x, height - margin * 1.7), lines.timestamp,
            size * 0.85, _TIMESTAMP_COLOR, anchor="ld",
        )
        self._text(
            draw, (left_x, height - margin * 0.8), lines.gps,
            size * 0.75, _GPS_COLOR, anchor="ld",
        )
        if lines.asset is not None:
            self._text(
                draw, (right_x, height - margin * 1.7), lines.asset,
                size * 1.1, _ASSET_COLOR, anchor="rd", bold=True,
            )
        if lines.client is not None:
            self._text(
                draw, (right_x, height - margin * 0.8), lines.client,
                size * 0.8, _CLIENT_COLOR, anchor="rd",
            )

    def _draw_logo(self, surface: Image.Image, logo_path: str) -> None:
        width, height = surface.size
        margin = round(_MARGIN * width / _REFERENCE_WIDTH)
        logo = _load_logo(logo_path)
        logo_width = max(1, round(width * _LOGO_WIDTH_RATIO))
        logo_height = max(1, round(logo_width * logo.height / logo.width))
        mark = logo.resize((logo_width, logo_height))
        alpha = mark.getchannel("A").point(lambda value: round(value * _LOGO_OPACITY))
        surface.paste(
            mark.convert("RGB"),
            (width - logo_width - margin, height - logo_height - margin),
            alpha,
        )

    def _text(  # noqa: PLR0913
        self,
        draw: ImageDraw.ImageDraw,
        position: tuple[float, float],
        text: str,
        size: float,
        color: tuple[int, int, int],
        *,
        anchor: str,
        bold: bool = False,
    ) -> None:
        pixel_size = max(_MIN_FONT_PX, round(size))
        path = self.bold_font_path if bold and self.bold_font_path else self.font_path
        font = _load_font(path, pixel_size)
        # Without a dedicated bold face, thicken glyphs with a same-colour stroke.
        stroke = 0
        if bold and not self.bold_font_path:
            stroke = max(1, pixel_size // 24)
        draw.text(
            position,
            text,
            font=font,
            fill=color,
            anchor=anchor,
            stroke_width=stroke,
            stroke_fill=color,
        )


@dataclass
class StampService:
    """Serialises access to the single rendering surface.

    At most one render is in flight; concurrent callers wait their turn.
    """

    renderer: Renderer
    _surface_lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False)

    async def stamp(
        self,
        source: Image.Image,
        location: LocationSample | None,
        captured_at: datetime,
        identification: Identification | None = None,
    ) -> bytes:
        """Render a stamp once the surface is free."""
        async with self._surface_lock:
            return await asyncio.to_thread(
                self.renderer.render, source, location, captured_at, identification
            )


def encode_jpeg(surface: Image.Image, quality: int = DEFAULT_JPEG_QUALITY) -> bytes:
    """Encode a surface as JPEG, retrying with a baseline encode on failure."""
    try:
        return _save_jpeg(surface, quality, optimize=True, progressive=True)
    except (OSError, ValueError):
        return _encode_baseline(surface, quality)


def _encode_baseline(surface: Image.Image, quality: int) -> bytes:
    try:
        return _save_jpeg(surface.convert("RGB"), quality)
    except (OSError, ValueError) as exc:
        raise EncodingFailed(f"Could not encode stamped image: {exc}") from exc


def _save_jpeg(image: Image.Image, quality: int, **options: bool) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=quality, **options)
    return buffer.getvalue()


def decode_image(data: bytes) -> Image.Image:
    """Decode image bytes into a fully loaded Pillow image.

    Unrecognised, truncated and oversized images raise `InvalidImage`.
    """
    try:
        with Image.open(io.BytesIO(data)) as image:
            image.load()
            return image.copy()
    except (OSError, Image.DecompressionBombError) as exc:
        raise InvalidImage(f"Frame is not a decodable image: {exc}") from exc


def _darken_bottom_band(surface: Image.Image) -> None:
    width, height = surface.size
    band_height = max(1, round(height * _BAND_RATIO))
    mask = Image.linear_gradient("L").resize((width, band_height))
    mask = mask.point(_band_opacity)
    shade = Image.new("RGB", (width, band_height), (0, 0, 0))
    surface.paste(shade, (0, height - band_height), mask)


def _band_opacity(value: int) -> int:
    position = value / 255
    stop, stop_opacity = _BAND_MID_STOP
    if position <= stop:
        opacity = position / stop * stop_opacity
    else:
        opacity = stop_opacity + (position - stop) / (1 - stop) * (
            _BAND_MAX_OPACITY - stop_opacity
        )
    return round(opacity * 255)


@lru_cache(maxsize=4)
def _load_logo(path: str) -> Image.Image:
    with Image.open(path) as logo:
        return logo.convert("RGBA")


@lru_cache(maxsize=64)
def _load_font(path: str | None, size: int) -> FontType:
    if path:
        return ImageFont.truetype(path, size)
    return ImageFont.load_default(size=size)
