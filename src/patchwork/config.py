"""
Configuration management for patchwork.

Loads YAML configuration with sensible defaults for every stage of a run,
and validates the drawable area before any points are generated.
"""

import os
from dataclasses import dataclass, field, fields

import yaml


class ConfigurationError(ValueError):
    """Raised when the configuration describes an impossible composition."""


# Paper sizes in centimetres, portrait (width, height)
PAPER_SIZES = {
    "letter": (21.59, 27.94),
    "legal": (21.59, 35.56),
    "a4": (21.0, 29.7),
    "a3": (29.7, 42.0),
    "square_poster": (30.0, 30.0),
    "portrait_poster": (45.0, 61.0),
}

ORIENTATIONS = ("landscape", "portrait")


@dataclass
class CanvasConfig:
    """Configuration for the drawing area."""
    paper: str = "square_poster"
    orientation: str = "landscape"
    width: float = None  # overrides paper when set
    height: float = None
    margin: float = 2.0
    units: str = "cm"


@dataclass
class CloudConfig:
    """Configuration for the initial point cloud."""
    point_count: int = 50000  # more points give more defined patches
    seed: int = None


@dataclass
class ExtractionConfig:
    """Configuration for per-tick cluster extraction."""
    cluster_count: int = 3  # lower values carve bigger patches
    min_cluster_size: int = 3
    kmeans_max_iter: int = 300
    kmeans_n_init: int = 1


@dataclass
class SchedulerConfig:
    """Configuration for the tick loop."""
    tick_period: float = 1.0 / 30.0
    max_ticks: int = None
    max_idle_ticks: int = 500  # consecutive ticks without a patch before giving up
    stop_when_exhausted: bool = True


@dataclass
class StrokeConfig:
    """Configuration for patch rendering."""
    width: float = 0.03
    color: str = "black"


@dataclass
class TracingConfig:
    """Configuration for runtime tracing."""
    enabled: bool = False
    level: str = "INFO"
    file_path: str = None
    json_output: bool = False


@dataclass
class DebugConfig:
    """Configuration for debug artifact generation."""
    enabled: bool = False
    show_points: bool = True
    point_radius: float = 0.2
    pixels_per_unit: float = 20.0
    snapshot_every: int = 0  # 0 disables intermediate previews


@dataclass
class PatchworkConfig:
    """Complete run configuration."""
    canvas: CanvasConfig = field(default_factory=CanvasConfig)
    cloud: CloudConfig = field(default_factory=CloudConfig)
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    stroke: StrokeConfig = field(default_factory=StrokeConfig)
    tracing: TracingConfig = field(default_factory=TracingConfig)
    debug: DebugConfig = field(default_factory=DebugConfig)


def resolve_dimensions(canvas):
    """
    Resolve the drawing (width, height) from paper size and orientation.

    Explicit width/height on the canvas take precedence over the paper.
    Landscape puts the longer side horizontally.
    """
    if canvas.paper not in PAPER_SIZES:
        raise ConfigurationError(f"Unknown paper size: {canvas.paper!r}")
    if canvas.orientation not in ORIENTATIONS:
        raise ConfigurationError(f"Unknown orientation: {canvas.orientation!r}")

    short_side, long_side = sorted(PAPER_SIZES[canvas.paper])
    if canvas.orientation == "landscape":
        width, height = long_side, short_side
    else:
        width, height = short_side, long_side

    if canvas.width is not None:
        width = float(canvas.width)
    if canvas.height is not None:
        height = float(canvas.height)

    return width, height


def validate_config(config):
    """
    Check a configuration for impossible values.

    Raises ConfigurationError on the first problem found. Returns the
    resolved (width, height).
    """
    width, height = resolve_dimensions(config.canvas)
    margin = config.canvas.margin

    if width <= 0 or height <= 0:
        raise ConfigurationError(f"Canvas must have positive size, got {width}x{height}")
    if margin < 0:
        raise ConfigurationError(f"Margin must be non-negative, got {margin}")
    if margin * 2 >= width or margin * 2 >= height:
        raise ConfigurationError(
            f"Margin {margin} leaves no drawable area on a {width}x{height} canvas"
        )
    if config.cloud.point_count < 1:
        raise ConfigurationError(f"point_count must be positive, got {config.cloud.point_count}")
    if config.extraction.cluster_count < 1:
        raise ConfigurationError(f"cluster_count must be >= 1, got {config.extraction.cluster_count}")
    if config.extraction.min_cluster_size < 3:
        raise ConfigurationError("min_cluster_size must be at least 3 to form a polygon")
    if config.scheduler.tick_period < 0:
        raise ConfigurationError(f"tick_period must be non-negative, got {config.scheduler.tick_period}")
    if config.scheduler.max_idle_ticks is not None and config.scheduler.max_idle_ticks < 1:
        raise ConfigurationError("max_idle_ticks must be positive when set")

    return width, height


def load_config(config_path=None):
    """
    Load configuration from YAML file.

    Falls back to defaults for any missing values.
    """
    config = PatchworkConfig()

    if config_path and os.path.exists(config_path):
        with open(config_path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f) or {}

        config = _merge_config(config, yaml_data)

    return config


def _merge_config(config, yaml_data):
    """Merge YAML data into config dataclass, ignoring unknown keys."""
    for section in fields(config):
        values = yaml_data.get(section.name)
        if not isinstance(values, dict):
            continue
        target = getattr(config, section.name)
        for key, value in values.items():
            if hasattr(target, key):
                setattr(target, key, value)

    return config


def config_to_dict(config):
    """Flatten a config into plain nested dicts for YAML/JSON output."""
    return {
        section.name: {
            f.name: getattr(getattr(config, section.name), f.name)
            for f in fields(getattr(config, section.name))
        }
        for section in fields(config)
    }


def save_default_config(path):
    """Save default configuration to YAML file for reference."""
    yaml_data = config_to_dict(PatchworkConfig())

    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(yaml_data, f, default_flow_style=False, sort_keys=False)
