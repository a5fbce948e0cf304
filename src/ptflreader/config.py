"""
Configuration management for PTFL Reader.

Loads YAML configuration with sensible defaults for rendering, the live
previewer, batch output and tracing.
"""

import os
import tempfile
from dataclasses import dataclass, field

import yaml


@dataclass
class RenderConfig:
    """Defaults for the output command."""
    scale: float = 1000.0  # pixels (or vector units) per meter
    clip: float = 2.0  # half canvas extent, meters
    lightness: float = 50.0
    backend: str = "png"  # "png" or "svg"


@dataclass
class PreviewConfig:
    """Configuration for the live previewer."""
    executable: str = "tev"
    scale: float = 200.0
    clip: float = 2.0
    lightness: float = 60.0
    hue: float = 180.0
    temp_dir: str = None


@dataclass
class OutputConfig:
    """Configuration for written images."""
    out_dir: str = "."
    workers: int = 4


@dataclass
class TracingConfig:
    """Configuration for runtime tracing."""
    enabled: bool = False
    level: str = "INFO"
    file_path: str = None
    json_output: bool = False


@dataclass
class AppConfig:
    """Complete application configuration."""
    render: RenderConfig = field(default_factory=RenderConfig)
    preview: PreviewConfig = field(default_factory=PreviewConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    tracing: TracingConfig = field(default_factory=TracingConfig)

    def preview_dir(self):
        """Directory that receives previewer images."""
        return self.preview.temp_dir or tempfile.gettempdir()


SECTIONS = ("render", "preview", "output", "tracing")


def load_config(config_path=None):
    """
    Load configuration from YAML file.

    Falls back to defaults for any missing values.
    """
    config = AppConfig()

    if config_path and os.path.exists(config_path):
        with open(config_path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f) or {}

        config = _merge_config(config, yaml_data)

    return config


def _merge_config(config, yaml_data):
    """Merge YAML data into config dataclass, ignoring unknown keys."""
    for section_name in SECTIONS:
        values = yaml_data.get(section_name)
        if not isinstance(values, dict):
            continue
        section = getattr(config, section_name)
        for key, value in values.items():
            if hasattr(section, key):
                setattr(section, key, value)

    return config


def save_default_config(path):
    """Save default configuration to YAML file for reference."""
    config = AppConfig()

    yaml_data = {
        "render": {
            "scale": config.render.scale,
            "clip": config.render.clip,
            "lightness": config.render.lightness,
            "backend": config.render.backend,
        },
        "preview": {
            "executable": config.preview.executable,
            "scale": config.preview.scale,
            "clip": config.preview.clip,
            "lightness": config.preview.lightness,
            "hue": config.preview.hue,
            "temp_dir": config.preview.temp_dir,
        },
        "output": {
            "out_dir": config.output.out_dir,
            "workers": config.output.workers,
        },
        "tracing": {
            "enabled": config.tracing.enabled,
            "level": config.tracing.level,
        },
    }

    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(yaml_data, f, default_flow_style=False, sort_keys=False)
