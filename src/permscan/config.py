import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from permscan.conventions import DEFAULT_VERB_ACTIONS
from permscan.errors import ConfigError

log = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "permscan.yaml"
REVIEW_MODES = ("interactive", "skip", "ai")


@dataclass
class ScanConfig:
    default_scan_path: Optional[str] = None
    default_output_path: Optional[str] = None
    verbose: bool = False
    accept_all: bool = False
    review: str = "interactive"
    max_workers: int = 4
    model: str = "claude-haiku-4-5"


@dataclass
class ConstantsConfig:
    generate: bool = False
    file_name: str = "AppPermissions.cs"
    namespace: str = "Application.Constants"


@dataclass
class ConventionsConfig:
    http_method_actions: dict[str, str] = field(
        default_factory=lambda: {verb.value: action for verb, action in DEFAULT_VERB_ACTIONS.items()}
    )


@dataclass
class AppConfig:
    scan: ScanConfig = field(default_factory=ScanConfig)
    constants: ConstantsConfig = field(default_factory=ConstantsConfig)
    conventions: ConventionsConfig = field(default_factory=ConventionsConfig)


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load the YAML config; a missing file yields the defaults."""
    config_path = config_path or Path.cwd() / DEFAULT_CONFIG_NAME
    if not config_path.is_file():
        log.debug("No config file at %s, using defaults", config_path)
        return AppConfig()

    log.info("Loading configuration from %s", config_path)
    try:
        with config_path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Could not read config {config_path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Config {config_path} must contain a mapping")

    try:
        config = AppConfig(
            scan=ScanConfig(**(data.get("scan") or {})),
            constants=ConstantsConfig(**(data.get("constants") or {})),
            conventions=ConventionsConfig(**(data.get("conventions") or {})),
        )
    except TypeError as exc:
        raise ConfigError(f"Unknown setting in {config_path}: {exc}") from exc

    if config.scan.review not in REVIEW_MODES:
        raise ConfigError(f"scan.review must be one of {', '.join(REVIEW_MODES)}, got {config.scan.review!r}")
    return config


def write_config(config: AppConfig, config_path: Path | None = None) -> Path:
    config_path = config_path or Path.cwd() / DEFAULT_CONFIG_NAME
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with config_path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(asdict(config), f, sort_keys=False)
    log.info("Wrote configuration to %s", config_path)
    return config_path
