"""
SVG export for patchwork compositions.

Writes one closed path per patch in accumulation order, sized in physical
drawing units so the file plots at the intended paper size.
"""

import svgwrite

from patchwork.tracer import get_tracer, trace


def polyline_to_path_data(polyline, precision=4):
    """Build SVG path data ("M x y L x y ...") for a polyline."""
    if not polyline:
        return ""
    commands = []
    for i, (x, y) in enumerate(polyline):
        op = "M" if i == 0 else "L"
        commands.append(f"{op}{x:.{precision}f} {y:.{precision}f}")
    return " ".join(commands)


@trace(label="polylines_to_svg")
def polylines_to_svg(patches, width, height, units="cm", stroke_color="black",
                     stroke_width=0.03, background=None):
    """
    Create an SVG document for a sequence of patches.

    Args:
        patches: Patch objects or raw closed polylines
        width: drawing width in `units`
        height: drawing height in `units`
        units: physical unit of the document size (viewBox is unitless)
        stroke_color: line colour
        stroke_width: line width in drawing units
        background: optional fill colour for a full-size background rect

    Returns:
        svgwrite.Drawing object; valid (and empty) when there are no patches
    """
    tracer = get_tracer()

    dwg = svgwrite.Drawing(size=(f"{width}{units}", f"{height}{units}"))
    dwg.viewbox(0, 0, width, height)

    if background:
        dwg.add(dwg.rect(insert=(0, 0), size=(width, height), fill=background))

    patch_group = dwg.g(id="patches", fill="none", stroke=stroke_color,
                        stroke_width=stroke_width, stroke_linejoin="round",
                        stroke_linecap="round")

    for index, patch in enumerate(patches):
        polyline = getattr(patch, "polyline", patch)
        patch_id = getattr(patch, "patch_id", f"patch_{index}")
        data = polyline_to_path_data(polyline)
        if data:
            patch_group.add(dwg.path(d=data, id=patch_id))

    dwg.add(patch_group)

    tracer.event(f"SVG emitted with {len(patches)} patches")

    return dwg


def composition_to_svg(composition, config):
    """Create the final SVG for a finished composition."""
    return polylines_to_svg(
        composition.patches,
        composition.width,
        composition.height,
        units=composition.units,
        stroke_color=config.stroke.color,
        stroke_width=config.stroke.width,
    )
