"""
Honeycomb Pixel Art

A single-file Python CLI tool that converts a raster image into a honeycomb
mosaic. The image plane is tiled with vertex-up hexagons in an offset-row
layout, each hexagon takes the average colour of the visible pixels beneath
it, and the result is exported as SVG (via svg.py) or as a PNG/JPEG raster
(via Pillow).

Usage:
    python honeycomb.py photo.png
    python honeycomb.py photo.png --hex_size 8 --format png --debug
    python honeycomb.py photo.png --stroke false --mask hexagon --file out.svg
    python honeycomb.py photo.png --export_settings settings.json
    python honeycomb.py photo.png --import_settings settings.json
"""

import argparse
import json
import math
import os
import re
import sys
from dataclasses import dataclass, replace
from typing import Dict, Iterator, List, Optional, Tuple

import numpy as np
import svg
from PIL import Image, ImageDraw, UnidentifiedImageError


RGB = Tuple[int, int, int]
RGBA = Tuple[int, int, int, int]


def _require_hex_size(hex_size: float) -> float:
    """Reject hex sizes that cannot describe a hexagon."""
    if not isinstance(hex_size, (int, float)) or isinstance(hex_size, bool):
        raise ValueError(f"Hex size must be a number, got {hex_size!r}")
    if not math.isfinite(hex_size) or hex_size <= 0:
        raise ValueError(f"Hex size must be a positive finite number, got {hex_size}")
    return float(hex_size)


def _to_bool(value) -> bool:
    """Interpret a bool or a 'true'/'false'/'1'/'0'/'yes'/'no' string."""
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("true", "1", "yes"):
        return True
    if text in ("false", "0", "no"):
        return False
    raise ValueError(f"Boolean value expected, got '{value}'")


def _to_int(value) -> int:
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValueError(f"Integer value expected, got {value!r}")
    return int(value)


def _to_float(value) -> float:
    if isinstance(value, bool):
        raise ValueError(f"Number expected, got {value!r}")
    return float(value)


def _to_optional_str(value) -> Optional[str]:
    return None if value is None else str(value)


# ---------------------------------------------------------------------------
# PixelBuffer
# ---------------------------------------------------------------------------
class PixelBuffer:
    """Immutable RGBA pixel grid read by the tiling pipeline.

    Pixels live in a read-only ``uint8`` array of shape (height, width, 4).
    A buffer whose width or height is not positive holds no pixels at all.

    Attributes:
        width: Buffer width in pixels.
        height: Buffer height in pixels.
    """

    def __init__(self, width: int, height: int, data) -> None:
        """Wrap RGBA pixel data.

        Args:
            width: Width in pixels.
            height: Height in pixels.
            data: Row-major RGBA bytes or an array holding
                ``4 * width * height`` values.

        Raises:
            ValueError: If the data size does not match the dimensions.
        """
        self._width: int = int(width)
        self._height: int = int(height)
        if isinstance(data, np.ndarray):
            flat = data.astype(np.uint8).ravel()
        else:
            flat = np.frombuffer(bytes(data), dtype=np.uint8)
        rows, cols = max(self._height, 0), max(self._width, 0)
        expected = 4 * rows * cols
        if flat.size != expected:
            raise ValueError(
                f"Pixel data holds {flat.size} values, expected {expected} "
                f"for a {width} x {height} RGBA buffer"
            )
        pixels = flat.reshape(rows, cols, 4).copy()
        pixels.setflags(write=False)
        self._pixels: np.ndarray = pixels

    @classmethod
    def from_image(cls, image: Image.Image) -> "PixelBuffer":
        """Build a buffer from a Pillow image (converted to RGBA if needed)."""
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        return cls(image.width, image.height, np.asarray(image))

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def pixels(self) -> np.ndarray:
        return self._pixels

    def pixel(self, x: int, y: int) -> Optional[RGBA]:
        """Return the (R, G, B, A) pixel at integer (x, y), or None outside."""
        if x < 0 or x >= self._width or y < 0 or y >= self._height:
            return None
        r, g, b, a = self._pixels[y, x]
        return (int(r), int(g), int(b), int(a))


# ---------------------------------------------------------------------------
# HexCell / TilingResult
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class HexCell:
    """A kept hexagon: offset-row grid position, pixel centre and colour."""

    col: int
    row: int
    x: float
    y: float
    color: RGB

    @property
    def rgb(self) -> str:
        """CSS colour string, e.g. ``rgb(255, 0, 0)``."""
        r, g, b = self.color
        return f"rgb({r}, {g}, {b})"


@dataclass(frozen=True)
class TilingResult:
    """Ordered kept cells plus the output frame that contains them.

    ``cells`` are already translated into the output frame. When nothing was
    kept the frame is ``0 x 0`` and ``is_empty`` is True; callers must treat
    that as "no content".
    """

    cells: Tuple[HexCell, ...]
    hex_size: float
    source_width: int
    source_height: int
    width: int = 0
    height: int = 0
    offset_x: float = 0.0
    offset_y: float = 0.0

    @property
    def is_empty(self) -> bool:
        return not self.cells


# ---------------------------------------------------------------------------
# HexagonGeometry
# ---------------------------------------------------------------------------
class HexagonGeometry:
    """Measurements and vertices for vertex-up regular hexagons.

    Vertices sit at angles ``60*i - 30`` degrees, so the hexagon has a point
    at the top and bottom and flat vertical sides.

    Attributes:
        circumradius: The circumradius (centre-to-vertex distance) in pixels.
    """

    def __init__(self, circumradius: float) -> None:
        """Initialise hexagon geometry with a given circumradius.

        Args:
            circumradius: The circumradius R of the hexagon in pixels.

        Raises:
            ValueError: If the circumradius is not a positive finite number.
        """
        self._circumradius: float = _require_hex_size(circumradius)

    @property
    def circumradius(self) -> float:
        """Return the circumradius R."""
        return self._circumradius

    @property
    def width(self) -> float:
        """Flat-side to flat-side width, sqrt(3) * R."""
        return math.sqrt(3) * self._circumradius

    @property
    def height(self) -> float:
        """Vertex to vertex height, 2 * R."""
        return 2.0 * self._circumradius

    @property
    def horizontal_pitch(self) -> float:
        """Distance between column neighbours in the same row."""
        return self.width

    @property
    def vertical_pitch(self) -> float:
        """Distance between adjacent rows, 3/4 of the height."""
        return 0.75 * self.height

    def vertices(self, cx: float, cy: float) -> List[Tuple[float, float]]:
        """Compute the 6 vertices of a hexagon centred at (cx, cy).

        Args:
            cx: X coordinate of the hexagon centre.
            cy: Y coordinate of the hexagon centre.

        Returns:
            A list of 6 (x, y) tuples starting at -30 degrees and advancing
            by 60 degrees.
        """
        R = self._circumradius
        points = []
        for i in range(6):
            angle = math.radians(60 * i - 30)
            points.append((cx + R * math.cos(angle), cy + R * math.sin(angle)))
        return points

    def contains(self, dx: float, dy: float) -> bool:
        """Return True if offset (dx, dy) from the centre lies inside the hexagon."""
        R = self._circumradius
        ax, ay = abs(dx), abs(dy)
        if ax > self.width / 2.0 + 1e-9:
            return False
        return ay <= R - ax / math.sqrt(3) + 1e-9

    def offset_mask(self, radius: int) -> np.ndarray:
        """Boolean (2r+1, 2r+1) mask of the integer offsets inside the hexagon.

        Entry ``[dy + radius, dx + radius]`` is True when ``contains(dx, dy)``.
        """
        offsets = np.arange(-radius, radius + 1)
        ax = np.abs(offsets)[np.newaxis, :]
        ay = np.abs(offsets)[:, np.newaxis]
        R = self._circumradius
        return (ax <= self.width / 2.0 + 1e-9) & (ay <= R - ax / math.sqrt(3) + 1e-9)


# ---------------------------------------------------------------------------
# OffsetGrid
# ---------------------------------------------------------------------------
class OffsetGrid:
    """Offset-row hexagonal grid covering an image rectangle.

    Odd rows are shifted right by half a hexagon width so that neighbouring
    rows interlock. The enumeration is padded on every side so that edge
    hexagons whose centres fall just outside the image are not missed.
    """

    PADDING: int = 3

    def __init__(self, hex_size: float) -> None:
        """Initialise the grid for a given hex size.

        Args:
            hex_size: Hexagon circumradius in pixels.
        """
        self._geometry = HexagonGeometry(hex_size)

    @property
    def geometry(self) -> HexagonGeometry:
        return self._geometry

    def center(self, col: int, row: int) -> Tuple[float, float]:
        """Convert offset coordinates (col, row) to an image-space centre.

        Args:
            col: Column index (may be negative inside the padding).
            row: Row index (may be negative inside the padding).

        Returns:
            An (x, y) tuple of pixel coordinates.
        """
        g = self._geometry
        x_offset = g.width / 2.0 if row % 2 else 0.0
        x = col * g.horizontal_pitch + x_offset + g.circumradius
        y = row * g.vertical_pitch + g.circumradius
        return (x, y)

    def candidates(self, width: int, height: int) -> Iterator[Tuple[int, int, float, float]]:
        """Yield (col, row, x, y) for every cell near the image, row-major.

        A cell is kept when its centre lies within one hex size of the image
        rectangle on every side. Width or height <= 0 yields nothing.

        Args:
            width: Image width in pixels.
            height: Image height in pixels.

        Yields:
            Tuples of (col, row, centre x, centre y).
        """
        if width <= 0 or height <= 0:
            return
        g = self._geometry
        size = g.circumradius
        pad = self.PADDING
        cols = math.ceil(width / g.horizontal_pitch) + pad * 2
        rows = math.ceil(height / g.vertical_pitch) + pad * 2

        for row in range(-pad, rows):
            for col in range(-pad, cols):
                x, y = self.center(col, row)
                if -size <= x < width + size and -size <= y < height + size:
                    yield (col, row, x, y)


# ---------------------------------------------------------------------------
# ColorSampler
# ---------------------------------------------------------------------------
class ColorSampler:
    """Averages the visible source pixels around a hexagon centre.

    Two masks are available. ``square`` (the default) samples a square of
    half-width ``floor(0.7 * hex_size)``, a cheap stand-in for the hexagon
    footprint. ``hexagon`` samples only the offsets that fall inside the
    hexagon itself.
    """

    MASKS: Tuple[str, ...] = ("square", "hexagon")
    SQUARE_RADIUS_FACTOR: float = 0.7

    def __init__(self, mask: str = "square") -> None:
        """Initialise the sampler.

        Args:
            mask: Sampling mask, ``square`` or ``hexagon``.

        Raises:
            ValueError: If the mask name is unknown.
        """
        if mask not in self.MASKS:
            raise ValueError(
                f"Invalid sampling mask '{mask}'. Must be one of: {', '.join(self.MASKS)}"
            )
        self._mask: str = mask
        self._offset_masks: Dict[float, np.ndarray] = {}

    @property
    def mask(self) -> str:
        return self._mask

    def radius(self, hex_size: float) -> int:
        """Integer half-width of the sampling window for a hex size."""
        if self._mask == "square":
            return math.floor(hex_size * self.SQUARE_RADIUS_FACTOR)
        return math.floor(hex_size)

    def sample(self, buffer: PixelBuffer, cx: float, cy: float, hex_size: float) -> Optional[RGB]:
        """Return the representative colour of the cell centred at (cx, cy).

        Args:
            buffer: Source pixels.
            cx: Sample centre x, already clamped into the image.
            cy: Sample centre y, already clamped into the image.
            hex_size: Hexagon circumradius in pixels.

        Returns:
            An opaque (R, G, B) tuple, or None when no visible pixel was found.
        """
        radius = self.radius(hex_size)
        offset_mask = None
        if self._mask == "hexagon":
            offset_mask = self._offset_masks.get(hex_size)
            if offset_mask is None:
                offset_mask = HexagonGeometry(hex_size).offset_mask(radius)
                self._offset_masks[hex_size] = offset_mask
        return self.average(buffer, cx, cy, radius, offset_mask)

    @staticmethod
    def average(
        buffer: PixelBuffer,
        cx: float,
        cy: float,
        radius: int,
        offset_mask: Optional[np.ndarray] = None,
    ) -> Optional[RGB]:
        """Average the non-transparent pixels in a window around (cx, cy).

        Every integer offset ``-radius <= dx, dy <= radius`` is visited. A
        sample is read at ``floor(cx + dx), floor(cy + dy)`` when that point
        lies inside the buffer and, if ``offset_mask`` is given, where the
        mask is True. Pixels with alpha 0 are skipped.

        Args:
            buffer: Source pixels.
            cx: Window centre x.
            cy: Window centre y.
            radius: Half-width of the square window.
            offset_mask: Optional (2r+1, 2r+1) boolean mask over the offsets.

        Returns:
            Channel means rounded half up, or None when nothing was sampled.
        """
        fx, fy = math.floor(cx), math.floor(cy)
        x0, x1 = max(fx - radius, 0), min(fx + radius + 1, buffer.width)
        y0, y1 = max(fy - radius, 0), min(fy + radius + 1, buffer.height)
        if x0 >= x1 or y0 >= y1:
            return None

        window = buffer.pixels[y0:y1, x0:x1]
        visible = window[..., 3] > 0
        if offset_mask is not None:
            visible &= offset_mask[y0 - fy + radius:y1 - fy + radius,
                                   x0 - fx + radius:x1 - fx + radius]

        count = int(np.count_nonzero(visible))
        if count == 0:
            return None
        totals = window[visible][:, :3].sum(axis=0, dtype=np.int64)
        means = np.floor(totals / count + 0.5).astype(int)
        return (int(means[0]), int(means[1]), int(means[2]))


# ---------------------------------------------------------------------------
# OutputFrame
# ---------------------------------------------------------------------------
class OutputFrame:
    """Tight output canvas around a set of cells with a one-hex-size margin."""

    @staticmethod
    def fit(cells: List[HexCell], hex_size: float) -> Tuple[int, int, float, float]:
        """Compute the frame for cells given in image space.

        Each cell is bounded by a box of half-size ``hex_size`` around its
        centre. The frame adds ``hex_size`` of margin on every side.

        Args:
            cells: Kept cells with image-space centres.
            hex_size: Hexagon circumradius in pixels.

        Returns:
            (width, height, offset_x, offset_y); all zero for no cells.
        """
        if not cells:
            return (0, 0, 0.0, 0.0)
        min_x = min(c.x for c in cells) - hex_size
        max_x = max(c.x for c in cells) + hex_size
        min_y = min(c.y for c in cells) - hex_size
        max_y = max(c.y for c in cells) + hex_size

        width = math.ceil(max_x - min_x + hex_size * 2)
        height = math.ceil(max_y - min_y + hex_size * 2)
        return (width, height, -min_x + hex_size, -min_y + hex_size)

    @staticmethod
    def translate(cells: List[HexCell], offset_x: float, offset_y: float) -> Tuple[HexCell, ...]:
        """Shift every cell centre by (offset_x, offset_y), keeping order."""
        return tuple(replace(c, x=c.x + offset_x, y=c.y + offset_y) for c in cells)


# ---------------------------------------------------------------------------
# Tiling pipeline
# ---------------------------------------------------------------------------
def tile(buffer: PixelBuffer, hex_size: float, mask: str = "square") -> TilingResult:
    """Tile a pixel buffer with coloured hexagons.

    Candidates come from the offset-row grid in row-major order. Each centre
    is clamped into the image before sampling; candidates without a visible
    sample are dropped. Kept cells are translated into the output frame.

    Args:
        buffer: Source pixels.
        hex_size: Hexagon circumradius in pixels (any positive value).
        mask: Sampling mask, ``square`` or ``hexagon``.

    Returns:
        The TilingResult for this buffer and hex size.

    Raises:
        ValueError: If hex_size is not positive or the mask is unknown.
    """
    hex_size = _require_hex_size(hex_size)
    grid = OffsetGrid(hex_size)
    sampler = ColorSampler(mask)
    width, height = buffer.width, buffer.height

    kept: List[HexCell] = []
    for col, row, x, y in grid.candidates(width, height):
        sample_x = max(0.0, min(width - 1, x))
        sample_y = max(0.0, min(height - 1, y))
        color = sampler.sample(buffer, sample_x, sample_y, hex_size)
        if color is not None:
            kept.append(HexCell(col=col, row=row, x=x, y=y, color=color))

    out_w, out_h, off_x, off_y = OutputFrame.fit(kept, hex_size)
    return TilingResult(
        cells=OutputFrame.translate(kept, off_x, off_y),
        hex_size=hex_size,
        source_width=width,
        source_height=height,
        width=out_w,
        height=out_h,
        offset_x=off_x,
        offset_y=off_y,
    )


# ---------------------------------------------------------------------------
# ImageLoader
# ---------------------------------------------------------------------------
class ImageLoader:
    """Decodes image files into pixel buffers that fit a maximum size."""

    def __init__(self, max_width: int = 800, max_height: int = 600) -> None:
        """Initialise the loader.

        Args:
            max_width: Largest allowed buffer width.
            max_height: Largest allowed buffer height.

        Raises:
            ValueError: If either bound is not positive.
        """
        if max_width <= 0 or max_height <= 0:
            raise ValueError(f"Maximum size must be positive, got {max_width} x {max_height}")
        self._max_width: int = max_width
        self._max_height: int = max_height

    def fit_size(self, width: int, height: int) -> Tuple[int, int]:
        """Scale (width, height) down to the bounds, keeping the aspect ratio.

        Width is fitted first, then height; both are truncated to integers.
        """
        w, h = float(width), float(height)
        if w > self._max_width:
            h = (self._max_width / w) * h
            w = float(self._max_width)
        if h > self._max_height:
            w = (self._max_height / h) * w
            h = float(self._max_height)
        return (max(int(w), 1), max(int(h), 1))

    def load(self, path: str) -> PixelBuffer:
        """Open an image file and return its (possibly downscaled) RGBA pixels.

        Args:
            path: Path to any image format Pillow can read.

        Returns:
            A PixelBuffer no larger than the configured bounds.

        Raises:
            ValueError: If the file is missing or is not a readable image.
        """
        try:
            with Image.open(path) as img:
                img = img.convert("RGBA")
        except FileNotFoundError:
            raise ValueError(f"Image file not found: '{path}'") from None
        except (UnidentifiedImageError, OSError) as e:
            raise ValueError(f"Unable to read image file '{path}': {e}") from e

        size = self.fit_size(img.width, img.height)
        if size != img.size:
            img = img.resize(size, Image.LANCZOS)
        return PixelBuffer.from_image(img)


# ---------------------------------------------------------------------------
# HoneycombRenderer
# ---------------------------------------------------------------------------
class HoneycombRenderer:
    """Draws a TilingResult as SVG markup or as a Pillow raster image.

    Cells are painted in generation order, each as a hexagon of circumradius
    ``hex_size`` with an optional faint outline.
    """

    STROKE_SVG: str = "rgba(0,0,0,0.15)"
    STROKE_RGBA: RGBA = (0, 0, 0, 38)
    STROKE_WIDTH: float = 0.5

    # Anti-alias scale factors.
    AA_SCALES: Dict[str, int] = {
        "off": 1,
        "low": 2,
        "medium": 4,
        "high": 8,
    }

    def supersample_factor(self, scale: int, antialias: str) -> int:
        """Extra drawing factor on top of the export scale.

        The anti-alias level bounds the total drawing factor, so the canvas
        is at most ``max(scale, AA_SCALES[antialias])`` times the frame.
        """
        return max(1, self.AA_SCALES[antialias] // scale)

    @staticmethod
    def _require_content(result: TilingResult) -> None:
        if result.is_empty:
            raise ValueError("No content: no hexagon has a visible colour")

    def render_svg(self, result: TilingResult, stroke: bool = True) -> str:
        """Render the tiling as an SVG document.

        Args:
            result: The tiling to draw.
            stroke: Whether to outline each hexagon.

        Returns:
            The SVG markup as a string.

        Raises:
            ValueError: If the tiling is empty.
        """
        self._require_content(result)
        geom = HexagonGeometry(result.hex_size)
        elements: List[svg.Element] = []
        for cell in result.cells:
            points: List[float] = []
            for vx, vy in geom.vertices(cell.x, cell.y):
                points.extend((round(vx, 3), round(vy, 3)))
            elements.append(
                svg.Polygon(
                    points=points,  # type: ignore[arg-type]
                    fill=cell.rgb,
                    stroke=self.STROKE_SVG if stroke else "none",
                    stroke_width=self.STROKE_WIDTH,
                )
            )
        canvas = svg.SVG(
            width=result.width,
            height=result.height,
            viewBox=svg.ViewBoxSpec(0, 0, result.width, result.height),
            elements=elements,
        )
        return canvas.as_str()

    def render_raster(
        self,
        result: TilingResult,
        scale: int = 2,
        stroke: bool = True,
        background: Optional[RGB] = None,
        antialias: str = "medium",
    ) -> Image.Image:
        """Rasterise the tiling.

        Args:
            result: The tiling to draw.
            scale: Integer upscaling factor applied to the output frame.
            stroke: Whether to outline each hexagon.
            background: Opaque fill colour, or None for a transparent canvas.
            antialias: Anti-alias level ('off', 'low', 'medium', 'high').

        Returns:
            A Pillow image of size ``(width * scale, height * scale)``; RGBA
            when transparent, RGB when a background is given.

        Raises:
            ValueError: If the tiling is empty or a parameter is invalid.
        """
        self._require_content(result)
        if scale < 1:
            raise ValueError(f"Scale must be a positive integer, got {scale}")
        if antialias not in self.AA_SCALES:
            raise ValueError(
                f"Invalid antialias level '{antialias}'. "
                f"Must be one of: {', '.join(self.AA_SCALES)}"
            )
        k = self.supersample_factor(scale, antialias)
        f = scale * k
        sw, sh = result.width * f, result.height * f

        if background is None:
            img = Image.new("RGBA", (sw, sh), (0, 0, 0, 0))
        else:
            img = Image.new("RGB", (sw, sh), background)
        draw = ImageDraw.Draw(img, "RGBA")

        geom = HexagonGeometry(result.hex_size * f)
        line_width = max(int(round(self.STROKE_WIDTH * f)), 1)
        for cell in result.cells:
            verts = geom.vertices(cell.x * f, cell.y * f)
            draw.polygon(verts, fill=cell.color + (255,))
            if stroke:
                draw.line(verts + [verts[0]], fill=self.STROKE_RGBA, width=line_width)

        # Downsample if supersampled
        if k > 1:
            img = img.resize((result.width * scale, result.height * scale), Image.LANCZOS)

        return img


# ---------------------------------------------------------------------------
# Exporter
# ---------------------------------------------------------------------------
class Exporter:
    """Writes a TilingResult to disk as SVG, PNG or JPEG."""

    FORMATS: Tuple[str, ...] = ("svg", "png", "jpeg")
    DEFAULT_BASE_NAME: str = "honeycomb-pixelart"
    JPEG_BACKGROUND: RGB = (255, 255, 255)
    JPEG_QUALITY: int = 95

    def __init__(self, renderer: Optional[HoneycombRenderer] = None) -> None:
        self._renderer = renderer or HoneycombRenderer()

    @classmethod
    def default_filename(cls, input_path: Optional[str], fmt: str) -> str:
        """Derive the output name from the input file name.

        SVG uses ``<base>-honeycomb.svg``; rasters use ``<base>_honeycomb.<fmt>``.
        The result sits next to the input file.
        """
        directory = ""
        base = cls.DEFAULT_BASE_NAME
        if input_path:
            directory = os.path.dirname(input_path)
            base = os.path.splitext(os.path.basename(input_path))[0] or base
        name = f"{base}-honeycomb.svg" if fmt == "svg" else f"{base}_honeycomb.{fmt}"
        return os.path.join(directory, name)

    @staticmethod
    def with_extension(path: str, fmt: str) -> str:
        """Append ``.<fmt>`` unless the path already ends with it."""
        if not path.lower().endswith(f".{fmt}"):
            path += f".{fmt}"
        return path

    def export(
        self,
        result: TilingResult,
        path: str,
        fmt: str = "svg",
        stroke: bool = True,
        scale: int = 2,
        antialias: str = "medium",
    ) -> str:
        """Render and save the tiling.

        Args:
            result: The tiling to export.
            path: Output file path; the format extension is appended if missing.
            fmt: One of 'svg', 'png', 'jpeg'.
            stroke: Whether to outline each hexagon.
            scale: Raster upscaling factor (ignored for SVG).
            antialias: Raster anti-alias level (ignored for SVG).

        Returns:
            The path actually written.

        Raises:
            ValueError: If the format is unknown or the tiling is empty.
        """
        if fmt not in self.FORMATS:
            raise ValueError(f"Invalid format '{fmt}'. Must be one of: {', '.join(self.FORMATS)}")
        path = self.with_extension(path, fmt)

        if fmt == "svg":
            markup = self._renderer.render_svg(result, stroke=stroke)
            with open(path, "w", encoding="utf-8") as f:
                f.write(markup)
        elif fmt == "png":
            img = self._renderer.render_raster(result, scale=scale, stroke=stroke,
                                               antialias=antialias)
            img.save(path, "PNG")
        else:
            img = self._renderer.render_raster(result, scale=scale, stroke=stroke,
                                               background=self.JPEG_BACKGROUND,
                                               antialias=antialias)
            img.save(path, "JPEG", quality=self.JPEG_QUALITY)
        return path


# ---------------------------------------------------------------------------
# SettingsManager
# ---------------------------------------------------------------------------
class SettingsManager:
    """JSON import/export of parameter sets with CLI-precedence logic.

    JSON overrides defaults, explicit CLI args override JSON.
    """

    # Keys that are persisted to JSON.
    _PERSISTED_KEYS: List[str] = [
        "hex_size", "stroke", "format", "file", "scale", "antialias",
        "mask", "max_width", "max_height", "debug",
    ]

    # Converters applied to imported values, matching the CLI argument types.
    _CONVERTERS: Dict = {
        "hex_size": _to_float,
        "stroke": _to_bool,
        "format": str,
        "file": _to_optional_str,
        "scale": _to_int,
        "antialias": str,
        "mask": str,
        "max_width": _to_int,
        "max_height": _to_int,
        "debug": _to_bool,
    }

    def export_settings(self, params: argparse.Namespace, path: str) -> None:
        """Export current parameters to a JSON file.

        Args:
            params: The resolved argparse Namespace.
            path: Output JSON file path.

        Raises:
            OSError: If the file cannot be written.
        """
        data: Dict = {}
        for key in self._PERSISTED_KEYS:
            data[key] = getattr(params, key, None)
        with open(path, "w") as f:
            json.dump(data, f, indent=2)

    def import_settings(self, path: str) -> Dict:
        """Import settings from a JSON file.

        Raises:
            FileNotFoundError: If the file does not exist.
            json.JSONDecodeError: If the file is not valid JSON.
            ValueError: If the JSON document is not an object.
        """
        with open(path, "r") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Settings file must contain a JSON object: '{path}'")
        return data

    def merge_settings(
        self,
        defaults: argparse.Namespace,
        json_settings: Dict,
        explicit_keys: set,
    ) -> argparse.Namespace:
        """Merge JSON settings with CLI args, respecting precedence.

        Args:
            defaults: The argparse Namespace with default/CLI values.
            json_settings: Dictionary loaded from JSON.
            explicit_keys: Set of parameter names explicitly provided on CLI.

        Returns:
            The merged Namespace.

        Raises:
            ValueError: If a JSON value cannot be converted to the option's type.
        """
        for key in self._PERSISTED_KEYS:
            if key in json_settings and key not in explicit_keys:
                setattr(defaults, key, self._convert(key, json_settings[key]))
        return defaults

    def _convert(self, key: str, value):
        try:
            return self._CONVERTERS[key](value)
        except (TypeError, ValueError):
            raise ValueError(f"Invalid value for '{key}' in settings file: {value!r}") from None


# ---------------------------------------------------------------------------
# Version helper
# ---------------------------------------------------------------------------
def _changelog_version(fallback: str = "0.0.0") -> str:
    """Read the highest version from CHANGELOG.md next to this script.

    Scans for ``## [X.Y.Z]`` headings (skipping ``[Unreleased]``) and returns
    the first match. Returns *fallback* when the file is missing or has no
    versioned headings.
    """
    changelog = os.path.join(os.path.dirname(os.path.abspath(__file__)), "CHANGELOG.md")
    try:
        with open(changelog, "r", encoding="utf-8") as fh:
            for line in fh:
                m = re.match(r"^##\s+\[(\d+\.\d+\.\d+)\]", line)
                if m:
                    return m.group(1)
    except OSError:
        pass
    return fallback


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------
class Application:
    """Top-level entry point for Honeycomb Pixel Art.

    Orchestrates CLI argument parsing, settings loading, image decoding,
    tiling, export, and debug reporting.
    """

    VERSION:      str = _changelog_version("1.0.0")
    BUILD_DATE:   str = "2026-10-19"
    TITLE:        str = "Honeycomb Pixel Art"
    BANNER_WIDTH: int = 60

    def run(self, argv: Optional[List[str]] = None) -> None:
        """Execute the full application pipeline.

        Args:
            argv: Argument list; defaults to ``sys.argv[1:]``.
        """
        # Step 1: Parse CLI arguments and detect explicit keys
        args, explicit_keys = self._parse_args(argv)

        # Step 2: Import settings if requested
        if args.import_settings:
            import_path = self._json_path(args.import_settings)
            try:
                manager = SettingsManager()
                json_data = manager.import_settings(import_path)
                args = manager.merge_settings(args, json_data, explicit_keys)
            except FileNotFoundError:
                self._fail(f"Settings file not found: '{import_path}'")
            except json.JSONDecodeError as e:
                self._fail(f"Malformed JSON in settings file: {e}")
            except ValueError as e:
                self._fail(str(e))

        # Step 3: Validate parameters
        if args.format not in Exporter.FORMATS:
            self._fail(f"Invalid format '{args.format}'. "
                       f"Must be one of: {', '.join(Exporter.FORMATS)}")
        if args.antialias not in HoneycombRenderer.AA_SCALES:
            self._fail(f"Invalid antialias level '{args.antialias}'. "
                       f"Must be one of: {', '.join(HoneycombRenderer.AA_SCALES)}")
        if args.scale < 1:
            self._fail(f"Scale must be a positive integer, got {args.scale}")

        # Step 4: Export settings if requested
        export_path = None
        if args.export_settings:
            export_path = self._json_path(args.export_settings)
            try:
                SettingsManager().export_settings(args, export_path)
            except OSError as e:
                self._fail(f"Cannot write settings file: {e}")

        # Step 5: Decode and tile
        try:
            buffer = ImageLoader(args.max_width, args.max_height).load(args.input)
            result = tile(buffer, args.hex_size, mask=args.mask)
        except ValueError as e:
            self._fail(str(e))

        if result.is_empty:
            self._fail(f"No content: every pixel of '{args.input}' is fully transparent")

        # Step 6: Export
        out_file = args.file or Exporter.default_filename(args.input, args.format)
        try:
            out_file = Exporter().export(
                result,
                out_file,
                fmt=args.format,
                stroke=args.stroke,
                scale=args.scale,
                antialias=args.antialias,
            )
        except (ValueError, OSError) as e:
            self._fail(f"Cannot write output file: {e}")

        file_size = os.path.getsize(out_file)

        # Banner (always shown)
        self._print_banner()

        # Save confirmation (always shown, right after banner)
        print(f"  Saved: {out_file} ({self._format_file_size(file_size)})")
        if export_path:
            export_size_str = self._format_file_size(os.path.getsize(export_path))
            print(f"  Saved: {export_path} ({export_size_str})")

        # Step 7: Debug output
        if args.debug:
            self._print_debug(args, result, buffer)
        print()

    def _parse_args(self, argv: Optional[List[str]] = None) -> Tuple[argparse.Namespace, set]:
        """Parse CLI arguments and detect which were explicitly provided.

        Returns:
            A tuple of (parsed Namespace, set of explicitly-provided key names).
        """
        parser = self._build_parser()
        args = parser.parse_args(argv)

        # Second parse with SUPPRESS defaults to detect explicit keys
        suppress_parser = self._build_parser(suppress_defaults=True)
        explicit_args = suppress_parser.parse_args(argv)
        explicit_keys = set(vars(explicit_args).keys())

        return args, explicit_keys

    def _build_parser(self, suppress_defaults: bool = False) -> argparse.ArgumentParser:
        """Build the argparse ArgumentParser.

        Args:
            suppress_defaults: If True, set all defaults to SUPPRESS to
                detect explicitly-provided CLI args.
        """
        d = argparse.SUPPRESS if suppress_defaults else None

        banner = self._banner_text()

        class _BannerParser(argparse.ArgumentParser):
            """ArgumentParser that prints the banner before help text."""

            def print_help(self, file=None):
                if file is None:
                    file = sys.stdout
                file.write(banner + "\n\n")
                super().print_help(file)

        parser = _BannerParser(
            description="Honeycomb Pixel Art: turn an image into a hexagon mosaic.",
        )

        parser.add_argument("input", help="Path to the input image")
        parser.add_argument("--hex_size", type=float, default=d if d else 12.0,
                            help="Hexagon circumradius in pixels (default: 12)")
        parser.add_argument("--stroke", nargs="?", const=True, default=d if d else True,
                            type=self._parse_bool_flag,
                            help="Outline each hexagon (default: true)")
        parser.add_argument("--format", type=str, default=d if d else "svg",
                            help="Output format: svg, png, jpeg (default: svg)")
        parser.add_argument("--file", type=str, default=d if d else None,
                            help="Output filename (default: derived from the input name)")
        parser.add_argument("--scale", type=int, default=d if d else 2,
                            help="Raster upscaling factor for png/jpeg (default: 2)")
        parser.add_argument("--antialias", type=str, default=d if d else "medium",
                            help="Raster anti-alias level: off, low, medium, high (default: medium)")
        parser.add_argument("--mask", type=str, choices=ColorSampler.MASKS,
                            default=d if d else "square",
                            help="Colour sampling mask: square, hexagon (default: square)")
        parser.add_argument("--max_width", type=int, default=d if d else 800,
                            help="Downscale images wider than this (default: 800)")
        parser.add_argument("--max_height", type=int, default=d if d else 600,
                            help="Downscale images taller than this (default: 600)")
        parser.add_argument("--debug", nargs="?", const=True, default=d if d else False,
                            type=self._parse_bool_flag,
                            help="Enable debug output")
        parser.add_argument("--export_settings", type=str, default=None,
                            help="Export parameters to a JSON file")
        parser.add_argument("--import_settings", type=str, default=None,
                            help="Import parameters from a JSON file")

        return parser

    def _parse_bool_flag(self, value: str) -> bool:
        """Parse a boolean flag value ('true'/'false' or bare flag)."""
        try:
            return _to_bool(value)
        except ValueError as e:
            raise argparse.ArgumentTypeError(str(e))

    @staticmethod
    def _json_path(path: str) -> str:
        if not path.lower().endswith(".json"):
            path += ".json"
        return path

    @staticmethod
    def _fail(message: str) -> None:
        print(f"Error: {message}", file=sys.stderr)
        sys.exit(1)

    def _banner_text(self) -> str:
        """Build the application banner as a string."""
        w = self.BANNER_WIDTH
        inner = w - 2  # space between │ and │
        lines = [
            "┌" + "─" * inner + "┐",
            f"│{'  Program:    ' + self.TITLE:<{inner}}│",
            f"│{'  Version:    ' + self.VERSION:<{inner}}│",
            f"│{'  Build Date: ' + self.BUILD_DATE:<{inner}}│",
            "└" + "─" * inner + "┘",
        ]
        return "\n".join(lines)

    def _print_banner(self) -> None:
        print(self._banner_text())

    def _print_debug(
        self,
        args: argparse.Namespace,
        result: TilingResult,
        buffer: PixelBuffer,
    ) -> None:
        """Print resolved parameters and tiling statistics to stdout."""
        print(f"\n  Input:            {args.input}")
        print(f"  Total hexagons:   {len(result.cells):,}")
        print(f"  Hex size:         {args.hex_size:g}px")
        print(f"  Original size:    {buffer.width} x {buffer.height}")
        print(f"  Output size:      {result.width} x {result.height}")
        print(f"  Mask:             {args.mask}")
        print(f"  Stroke:           {args.stroke}")
        print(f"  Format:           {args.format}")
        if args.format != "svg":
            print(f"  Scale:            {args.scale}x")
            print(f"  Anti-alias:       {args.antialias}")

    def _format_file_size(self, size_bytes: int) -> str:
        """Format a file size in human-readable form (e.g. '1.23 MB')."""
        if size_bytes < 1024:
            return f"{size_bytes} B"
        elif size_bytes < 1024 * 1024:
            return f"{size_bytes / 1024:.2f} KB"
        else:
            return f"{size_bytes / (1024 * 1024):.2f} MB"


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------
def main() -> None:
    """Main entry point for Honeycomb Pixel Art."""
    if sys.stdout and hasattr(sys.stdout, "reconfigure"):
        sys.stdout.reconfigure(encoding="utf-8", errors="replace")
    app = Application()
    app.run()


if __name__ == "__main__":
    main()
