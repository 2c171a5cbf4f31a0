"""
Command-line interface for patchwork.

Provides commands for generating a composition, re-exporting a saved scene
and writing a default config file.
"""

import argparse
import os
import sys

from patchwork.config import ConfigurationError, load_config, save_default_config
from patchwork.tracer import configure_tracer, get_tracer


def main(argv=None):
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Patchwork: carve a random point cloud into convex-hull line art",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Run command
    run_parser = subparsers.add_parser("run", help="Generate a composition")
    run_parser.add_argument("--out", "-o", required=True, help="Output directory")
    run_parser.add_argument("--config", "-c", default=None, help="Path to YAML configuration file")
    run_parser.add_argument("--points", type=int, default=None, help="Initial point count")
    run_parser.add_argument("--clusters", type=int, default=None, help="k for k-means clustering")
    run_parser.add_argument("--seed", type=int, default=None, help="Random seed for a reproducible run")
    run_parser.add_argument("--max-ticks", type=int, default=None, help="Stop after this many ticks")
    run_parser.add_argument(
        "--realtime",
        action="store_true",
        help="Tick at the configured period instead of as fast as possible",
    )
    run_parser.add_argument("--debug", action="store_true", help="Enable debug artifact generation")
    _add_trace_arguments(run_parser)

    # Export command
    export_parser = subparsers.add_parser("export", help="Re-export SVG/PDF from a saved scene.json")
    export_parser.add_argument("--scene", required=True, help="Path to scene.json from a previous run")
    export_parser.add_argument("--out", "-o", required=True, help="Output directory")
    export_parser.add_argument("--config", "-c", default=None, help="Path to YAML configuration file")
    _add_trace_arguments(export_parser)

    # Init config command
    init_parser = subparsers.add_parser("init-config", help="Create default config file")
    init_parser.add_argument(
        "--out", "-o",
        default="patchwork_config.yaml",
        help="Output path for config file",
    )

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "run":
        return handle_run(args)
    elif args.command == "export":
        return handle_export(args)
    elif args.command == "init-config":
        return handle_init_config(args)

    return 0


def _add_trace_arguments(parser):
    parser.add_argument("--trace", action="store_true", help="Enable runtime tracing")
    parser.add_argument(
        "--trace-level",
        default="INFO",
        choices=["ERROR", "WARN", "INFO", "DEBUG"],
        help="Trace log level",
    )
    parser.add_argument("--trace-file", default=None, help="Path to write trace logs")
    parser.add_argument("--trace-json", action="store_true", help="Enable JSON trace output")


def _configure_tracing(args, config):
    if args.trace:
        configure_tracer(
            enabled=True,
            level=args.trace_level,
            file_path=args.trace_file,
            json_output=args.trace_json,
        )
    else:
        configure_tracer(
            enabled=config.tracing.enabled,
            level=config.tracing.level,
            file_path=config.tracing.file_path,
            json_output=config.tracing.json_output,
        )


def handle_run(args):
    """Handle the run command."""
    config = load_config(args.config)

    if args.points is not None:
        config.cloud.point_count = args.points
    if args.clusters is not None:
        config.extraction.cluster_count = args.clusters
    if args.seed is not None:
        config.cloud.seed = args.seed
    if args.max_ticks is not None:
        config.scheduler.max_ticks = args.max_ticks

    _configure_tracing(args, config)
    tracer = get_tracer()

    try:
        from patchwork.pipeline import run_composition

        with tracer.span("cli_run", module="cli"):
            composition = run_composition(
                out_dir=args.out,
                config=config,
                debug=args.debug,
                realtime=args.realtime,
            )

        print("\nComposition completed.")
        print(f"  Patches: {len(composition.patches)}")
        print(f"  Points remaining: {composition.remaining_point_count} / {composition.initial_point_count}")
        print(f"  Ticks: {composition.ticks_run}")
        print(f"  Validation errors: {composition.validation.error_count}")
        print(f"\nOutputs saved to: {args.out}/")
        print("  - final.svg")
        print("  - final.pdf")
        print("  - scene.json")
        print("  - validation_report.json")

        if composition.validation.has_errors:
            print("\n[!] Validation errors detected. Review validation_report.json")
            return 1

        return 0

    except ConfigurationError as e:
        tracer.event(f"Invalid configuration: {str(e)}", level="ERROR")
        print(f"\nConfiguration error: {str(e)}", file=sys.stderr)
        return 2
    except Exception as e:
        tracer.event(f"Run failed: {str(e)}", level="ERROR")
        print(f"\nError: {str(e)}", file=sys.stderr)
        return 1


def handle_export(args):
    """Handle the export command."""
    config = load_config(args.config)
    _configure_tracing(args, config)
    tracer = get_tracer()

    try:
        from patchwork.export.pdf_layout import generate_pdf
        from patchwork.export.svg_export import composition_to_svg
        from patchwork.io.save_artifacts import ensure_dir, save_svg
        from patchwork.pipeline import load_composition

        with tracer.span("cli_export", module="cli"):
            composition = load_composition(args.scene)
            ensure_dir(args.out)
            svg_path = os.path.join(args.out, "final.svg")
            save_svg(composition_to_svg(composition, config), svg_path)
            generate_pdf(svg_path, os.path.join(args.out, "final.pdf"))

        print(f"\nExported {len(composition.patches)} patches to: {args.out}/")
        return 0

    except Exception as e:
        tracer.event(f"Export failed: {str(e)}", level="ERROR")
        print(f"\nError: {str(e)}", file=sys.stderr)
        return 1


def handle_init_config(args):
    """Handle the init-config command."""
    save_default_config(args.out)
    print(f"Default configuration saved to: {args.out}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
