# degenerate/config.py
"""
Layered configuration loaded with OmegaConf.

Precedence, lowest first: packaged defaults (conf/degenerate.yaml), an optional user
YAML file, then dotted `key=value` overrides. Command-line flags are applied on top
by the entry point.
"""
from pathlib import Path
from typing import Optional, Sequence

from omegaconf import DictConfig, OmegaConf
from omegaconf.errors import OmegaConfBaseException

from .core import ConfigError

DEFAULTS_PATH = Path(__file__).parent / "conf" / "degenerate.yaml"


def load_config(path: Optional[str] = None, overrides: Sequence[str] = ()) -> DictConfig:
    """
    Builds the effective configuration.

    Args:
        path: Optional YAML file merged over the defaults
        overrides: Dotted overrides such as "canvas.width=40"

    Returns:
        Validated DictConfig

    Raises:
        FileNotFoundError: If `path` does not exist
        ConfigError: If a file or override is malformed, or a value is invalid
    """
    try:
        cfg = OmegaConf.load(DEFAULTS_PATH)
        if path is not None:
            if not Path(path).exists():
                raise FileNotFoundError(f"Config file not found: {path}")
            cfg = OmegaConf.merge(cfg, OmegaConf.load(path))
        if overrides:
            cfg = OmegaConf.merge(cfg, OmegaConf.from_dotlist(list(overrides)))
    except OmegaConfBaseException as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
    validate_config(cfg)
    return cfg


def validate_config(cfg: DictConfig) -> None:
    """Checks the values the renderer depends on, raising ConfigError on the first bad one."""
    for key in ("canvas.width", "canvas.height", "animation.frames", "animation.fps",
                "repl.history_length"):
        value = OmegaConf.select(cfg, key)
        if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
            raise ConfigError(f"{key} must be a positive integer, got {value!r}")
    seed = cfg.get("seed")
    if seed is not None and (not isinstance(seed, int) or isinstance(seed, bool) or seed < 0):
        raise ConfigError(f"seed must be null or a non-negative integer, got {seed!r}")
    if not isinstance(OmegaConf.select(cfg, "output.print_result"), bool):
        raise ConfigError("output.print_result must be a boolean")
    for key in ("io.default_path", "repl.history_file", "repl.prompt", "logging.level",
                "batch.output_dir", "batch.program_col"):
        if not isinstance(OmegaConf.select(cfg, key), str):
            raise ConfigError(f"{key} must be a string")
