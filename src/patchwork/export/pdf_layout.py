"""
PDF export for patchwork.

Converts the final SVG to a single-page PDF at the drawing's physical size.
"""

import os

from patchwork.io.save_artifacts import ensure_dir
from patchwork.tracer import get_tracer, trace


@trace(label="generate_pdf")
def generate_pdf(svg_path, pdf_path):
    """
    Convert an SVG file to PDF with cairosvg.

    The SVG carries its size in physical units, so no extra scaling is
    applied. Returns the PDF path, or None if the conversion was skipped.
    """
    tracer = get_tracer()

    try:
        import cairosvg
    except (ImportError, OSError):
        tracer.event("cairosvg not available, skipping PDF generation", level="WARN")
        return None

    if not os.path.exists(svg_path):
        tracer.event(f"{svg_path} not found, cannot create PDF", level="WARN")
        return None

    try:
        ensure_dir(os.path.dirname(pdf_path))
        cairosvg.svg2pdf(url=svg_path, write_to=pdf_path)
        tracer.event(f"PDF saved: {pdf_path}")
    except Exception as e:
        tracer.event(f"PDF generation failed: {str(e)}", level="ERROR")
        return None

    return pdf_path
