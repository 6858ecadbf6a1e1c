# dungeon/config.py
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

import structlog
import yaml

from dungeon.errors import ConfigError
from dungeon.world.builder import MapGenerator
from dungeon.world.procgen import create_generator, standard_stages

log = structlog.get_logger(__name__)

DEFAULT_CONFIG_FILE = Path(__file__).resolve().parent.parent / "config" / "config.yaml"


def load_yaml_config(config_path: Path, config_name: str) -> Dict[str, Any]:
    """Loads a generic YAML configuration file."""
    if not config_path.is_file():
        log.error(f"{config_name} config file not found", path=str(config_path))
        raise FileNotFoundError(f"{config_name} configuration file not found: {config_path}")
    try:
        with config_path.open("r", encoding="utf-8") as f:
            config_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        log.error(f"Error parsing YAML for {config_name}", path=str(config_path), error=str(e))
        raise
    if config_data is None:
        log.warning(f"{config_name} config file is empty.", path=str(config_path))
        return {}
    if not isinstance(config_data, dict):
        raise ConfigError(f"{config_name} config must be a mapping, got {type(config_data).__name__}")
    log.info(f"{config_name} config loaded", path=str(config_path))
    return config_data


@dataclass
class GenerationConfig:
    width: int = 80
    height: int = 50
    seed: int | None = 10
    fov_radius: int = 8
    log_level: str = "info"
    stages: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GenerationConfig":
        stages = data.get("stages") or []
        seed = data.get("seed", cls.seed)
        if not isinstance(stages, list) or not all(isinstance(s, dict) for s in stages):
            raise ConfigError("'stages' must be a list of mappings")
        try:
            return cls(
                width=int(data.get("map_width", cls.width)),
                height=int(data.get("map_height", cls.height)),
                seed=None if seed is None else int(seed),
                fov_radius=int(data.get("fov_radius", cls.fov_radius)),
                log_level=str(data.get("log_level", cls.log_level)),
                stages=stages,
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid generation config: {e}") from e

    def build_stages(self) -> List[MapGenerator]:
        """Stage objects for this config; the standard pipeline if none are listed."""
        if not self.stages:
            return standard_stages()
        return [create_generator(stage_config) for stage_config in self.stages]


def load_generation_config(config_path: Path = DEFAULT_CONFIG_FILE) -> GenerationConfig:
    return GenerationConfig.from_dict(load_yaml_config(config_path, "Generation"))
