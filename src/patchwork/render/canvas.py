"""
Immediate-mode drawing of a composition.

`draw_composition` speaks only the small path API of DrawSurface, so any
canvas-like target can be plugged in. RasterSurface is the bundled
OpenCV implementation used for previews.
"""

from typing import Protocol

import cv2
import numpy as np

from patchwork.tracer import get_tracer

# RGB
COLORS = {
    "black": (0, 0, 0),
    "white": (255, 255, 255),
    "red": (255, 0, 0),
    "green": (0, 160, 0),
    "blue": (0, 0, 255),
}


class DrawSurface(Protocol):
    """Path-construction primitives a renderer needs."""

    def begin_path(self) -> None:
        ...

    def move_to(self, x: float, y: float) -> None:
        ...

    def line_to(self, x: float, y: float) -> None:
        ...

    def circle(self, x: float, y: float, radius: float) -> None:
        ...

    def stroke(self, color: str = "black", width: float = 1.0) -> None:
        ...


class RasterSurface:
    """
    DrawSurface backed by an RGB numpy image.

    Drawing units are scaled by `pixels_per_unit`. Like an HTML canvas, a
    `line_to` on an empty path starts the path at that point.
    """

    def __init__(self, width, height, pixels_per_unit=20.0, background="white"):
        self.pixels_per_unit = pixels_per_unit
        w_px = max(1, int(round(width * pixels_per_unit)))
        h_px = max(1, int(round(height * pixels_per_unit)))
        self.image = np.empty((h_px, w_px, 3), dtype=np.uint8)
        self.image[:] = COLORS[background]
        self._subpaths = []
        self._circles = []

    def _px(self, x, y):
        return int(round(x * self.pixels_per_unit)), int(round(y * self.pixels_per_unit))

    def begin_path(self):
        self._subpaths = []
        self._circles = []

    def move_to(self, x, y):
        self._subpaths.append([self._px(x, y)])

    def line_to(self, x, y):
        if not self._subpaths:
            self.move_to(x, y)
            return
        self._subpaths[-1].append(self._px(x, y))

    def circle(self, x, y, radius):
        self._circles.append((self._px(x, y), max(1, int(round(radius * self.pixels_per_unit)))))

    def stroke(self, color="black", width=1.0):
        rgb = COLORS.get(color, COLORS["black"])
        thickness = max(1, int(round(width * self.pixels_per_unit)))

        for subpath in self._subpaths:
            if len(subpath) < 2:
                continue
            pts = np.array(subpath, dtype=np.int32)
            cv2.polylines(self.image, [pts], isClosed=False, color=rgb, thickness=thickness)

        for center, radius in self._circles:
            cv2.circle(self.image, center, radius, rgb, thickness)

    def to_image(self):
        """Copy of the rendered RGB image."""
        return self.image.copy()


def draw_composition(surface, patches, points=None, debug=False,
                     stroke_width=0.03, point_radius=0.2):
    """
    Paint every patch, in accumulation order, onto `surface`.

    Patches are stroked black, or blue when debugging. In debug mode the
    remaining cloud `points` are drawn as small red circles so the
    unconsumed area is visible.
    """
    color = "blue" if debug else "black"

    for patch in patches:
        polyline = getattr(patch, "polyline", patch)
        surface.begin_path()
        for x, y in polyline:
            surface.line_to(x, y)
        surface.stroke(color, stroke_width)

    if debug and points is not None:
        for x, y in points:
            surface.begin_path()
            surface.circle(x, y, point_radius)
            surface.stroke("red", stroke_width)

    get_tracer().event(f"Drew {len(patches)} patches", level="DEBUG")
    return surface


def render_preview(width, height, patches, points=None, debug=False, stroke_width=0.03,
                   point_radius=0.2, pixels_per_unit=20.0):
    """Rasterize a composition and return the RGB image."""
    surface = RasterSurface(width, height, pixels_per_unit=pixels_per_unit)
    draw_composition(surface, patches, points=points, debug=debug,
                     stroke_width=stroke_width, point_radius=point_radius)
    return surface.to_image()
