"""
Run orchestrator for patchwork.

Seeds the point cloud, drives the extractor until the cloud is used up (or
a tick cap is hit), then validates and exports the composition.
"""

import os

from patchwork.cloud.point_cloud import PointCloud
from patchwork.cluster.oracles import ConvexHullOracle, KMeansClusterer
from patchwork.config import load_config, validate_config
from patchwork.export.pdf_layout import generate_pdf
from patchwork.export.svg_export import composition_to_svg
from patchwork.extract.accumulator import PolylineAccumulator
from patchwork.extract.extractor import PatchExtractor
from patchwork.io.save_artifacts import DebugArtifactWriter, ensure_dir, render_svg_to_png, save_json, save_svg
from patchwork.models import Composition, TickOutcome
from patchwork.render.canvas import render_preview
from patchwork.scheduler import TickScheduler
from patchwork.tracer import get_tracer, trace
from patchwork.validate.report import generate_report
from patchwork.validate.rules import run_validation


def build_extractor(config, width, height, clusterer=None, hull=None):
    """
    Create the cloud, accumulator and extractor for a configuration.

    Oracles default to k-means and scipy's convex hull; both can be swapped
    for stubs in tests.
    """
    cloud = PointCloud.random(
        config.cloud.point_count, width, height, config.canvas.margin,
        seed=config.cloud.seed,
    )

    if clusterer is None:
        clusterer = KMeansClusterer(
            max_iter=config.extraction.kmeans_max_iter,
            n_init=config.extraction.kmeans_n_init,
            seed=config.cloud.seed,
        )
    if hull is None:
        hull = ConvexHullOracle()

    return PatchExtractor(
        cloud,
        PolylineAccumulator(),
        clusterer,
        hull,
        cluster_count=config.extraction.cluster_count,
        min_cluster_size=config.extraction.min_cluster_size,
    )


@trace(label="run_composition")
def run_composition(out_dir, config=None, config_path=None, clusterer=None, hull=None,
                    debug=False, realtime=False):
    """
    Generate a full composition and write its artifacts.

    Args:
        out_dir: output directory
        config: PatchworkConfig object (optional)
        config_path: path to YAML config file (optional)
        clusterer: ClusteringOracle override (optional)
        hull: HullOracle override (optional)
        debug: enable debug artifact generation
        realtime: tick at the configured period instead of as fast as possible

    Returns:
        Composition object with all patches and the validation report

    Raises:
        ConfigurationError: if the canvas or counts are unusable
    """
    tracer = get_tracer()

    if config is None:
        config = load_config(config_path)
    if debug:
        config.debug.enabled = True

    width, height = validate_config(config)

    ensure_dir(out_dir)
    debug_writer = DebugArtifactWriter(out_dir, enabled=config.debug.enabled)

    with tracer.span("seed_cloud", module="pipeline", points=config.cloud.point_count):
        extractor = build_extractor(config, width, height, clusterer, hull)

    def on_tick(result):
        if result.outcome != TickOutcome.EXTRACTED or not config.debug.enabled:
            return
        every = config.debug.snapshot_every
        count = len(extractor.accumulator)
        if every and count % every == 0:
            image = render_preview(
                width, height, extractor.accumulator.snapshot(),
                points=extractor.cloud.coordinates() if config.debug.show_points else None,
                debug=True,
                stroke_width=config.stroke.width,
                point_radius=config.debug.point_radius,
                pixels_per_unit=config.debug.pixels_per_unit,
            )
            debug_writer.save_image(image, "ticks", f"patch_{count:05d}.png")

    scheduler = TickScheduler(
        extractor,
        period=config.scheduler.tick_period if realtime else 0.0,
        max_ticks=config.scheduler.max_ticks,
        max_idle_ticks=config.scheduler.max_idle_ticks,
        stop_when_exhausted=config.scheduler.stop_when_exhausted,
        on_tick=on_tick,
    )

    with tracer.span("extract", module="pipeline"):
        results = scheduler.run()

    composition = Composition(
        width=width,
        height=height,
        margin=config.canvas.margin,
        units=config.canvas.units,
        seed=config.cloud.seed,
        initial_point_count=extractor.cloud.initial_size,
        remaining_point_count=extractor.cloud.size(),
        cluster_count=extractor.cluster_count,
        ticks_run=extractor.ticks_run,
        exhausted=extractor.is_exhausted(),
        patches=list(extractor.accumulator.snapshot()),
    )

    with tracer.span("validate_export", module="pipeline"):
        composition.validation = run_validation(composition)

        svg_path = os.path.join(out_dir, "final.svg")
        save_svg(composition_to_svg(composition, config), svg_path)
        generate_pdf(svg_path, os.path.join(out_dir, "final.pdf"))
        generate_report(composition, out_dir)

        if config.debug.enabled:
            render_svg_to_png(svg_path, os.path.join(debug_writer.get_stage_dir("final"), "final_svg.png"))
            image = render_preview(
                width, height, composition.patches,
                points=extractor.cloud.coordinates() if config.debug.show_points else None,
                debug=True,
                stroke_width=config.stroke.width,
                point_radius=config.debug.point_radius,
                pixels_per_unit=config.debug.pixels_per_unit,
            )
            debug_writer.save_image(image, "final", "preview.png")
            debug_writer.save_json(
                [r.model_dump(mode="json") for r in results], "final", "tick_log.json"
            )
            debug_writer.save_json(outcome_counts(results), "final", "tick_metrics.json")

    save_json(composition, os.path.join(out_dir, "scene.json"))

    tracer.event(
        f"Composition complete: {len(composition.patches)} patches, "
        f"{composition.remaining_point_count} points left"
    )

    return composition


def outcome_counts(results):
    """Count tick results per outcome."""
    counts = {outcome.value: 0 for outcome in TickOutcome}
    for result in results:
        counts[result.outcome.value] += 1
    return counts


def load_composition(scene_path):
    """Load a Composition previously written to scene.json."""
    with open(scene_path, "r", encoding="utf-8") as f:
        return Composition.model_validate_json(f.read())
