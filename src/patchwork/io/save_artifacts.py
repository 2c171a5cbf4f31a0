"""
Artifact saving utilities for patchwork.

Handles writing preview images, JSON files, SVG documents and rendering
SVG to PNG.
"""

import json
import os

import cv2

from patchwork.tracer import get_tracer


def ensure_dir(path):
    """Create directory if it does not exist."""
    if path:
        os.makedirs(path, exist_ok=True)


def save_image(img, path, max_edge=None):
    """
    Save an RGB image to disk.

    Optionally downscales to max_edge while preserving aspect ratio.
    """
    tracer = get_tracer()

    if max_edge and max(img.shape[:2]) > max_edge:
        scale = max_edge / max(img.shape[:2])
        new_size = (int(img.shape[1] * scale), int(img.shape[0] * scale))
        img = cv2.resize(img, new_size, interpolation=cv2.INTER_AREA)

    # OpenCV writes BGR
    if len(img.shape) == 3 and img.shape[2] == 3:
        img_bgr = cv2.cvtColor(img, cv2.COLOR_RGB2BGR)
    else:
        img_bgr = img

    ensure_dir(os.path.dirname(path))
    cv2.imwrite(path, img_bgr)
    tracer.event(f"Saved image: {path}")


def save_json(data, path, indent=2):
    """
    Save a dictionary or Pydantic model to JSON.
    """
    tracer = get_tracer()

    ensure_dir(os.path.dirname(path))

    if hasattr(data, "model_dump"):
        data = data.model_dump(mode="json")

    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=indent, default=str)

    tracer.event(f"Saved JSON: {path}")


def save_svg(svg_content, path):
    """
    Save an svgwrite Drawing or SVG string to file.
    """
    tracer = get_tracer()

    ensure_dir(os.path.dirname(path))

    if hasattr(svg_content, "tostring"):
        content = svg_content.tostring()
    else:
        content = str(svg_content)

    with open(path, "w", encoding="utf-8") as f:
        f.write(content)

    tracer.event(f"Saved SVG: {path}")


def render_svg_to_png(svg_path, png_path, dpi=150):
    """
    Render an SVG file to PNG using cairosvg.

    Returns the PNG path, or None when rendering is unavailable.
    """
    tracer = get_tracer()

    try:
        import cairosvg
    except (ImportError, OSError):
        # cairosvg needs the native cairo library at import time
        tracer.event("cairosvg not available, skipping PNG render", level="WARN")
        return None

    try:
        ensure_dir(os.path.dirname(png_path))
        cairosvg.svg2png(url=svg_path, write_to=png_path, dpi=dpi)
        tracer.event(f"Rendered SVG to PNG: {png_path}")
    except Exception as e:
        tracer.event(f"Failed to render SVG: {str(e)}", level="WARN")
        return None

    return png_path


class DebugArtifactWriter:
    """
    Writes debug artifacts under `<out_dir>/debug/<stage>/`.

    Every method is a no-op when the writer is disabled.
    """

    def __init__(self, out_dir, enabled=True, max_edge=1600):
        self.out_dir = out_dir
        self.enabled = enabled
        self.max_edge = max_edge

    def get_stage_dir(self, stage_name):
        """Get the debug directory for a stage, creating it."""
        stage_dir = os.path.join(self.out_dir, "debug", stage_name)
        ensure_dir(stage_dir)
        return stage_dir

    def save_image(self, img, stage_name, filename):
        if not self.enabled:
            return
        path = os.path.join(self.get_stage_dir(stage_name), filename)
        save_image(img, path, max_edge=self.max_edge)

    def save_json(self, data, stage_name, filename):
        if not self.enabled:
            return
        path = os.path.join(self.get_stage_dir(stage_name), filename)
        save_json(data, path)

