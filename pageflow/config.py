"""Configuration loader for pageflow runs."""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional


DEFAULTS: Dict[str, Any] = {
    "poll_interval": 0.1,
    "navigation_timeout_ms": 30000,
    "script_timeout_ms": 10000,
    "download_timeout_ms": 30000,
    "headless": True,
    "log_level": "INFO",
    "log_root": "runs",
    "script_dir": ".",
}

ENV_PREFIX = "PAGEFLOW_"


@dataclass(slots=True)
class RunnerConfig:
    poll_interval: float = DEFAULTS["poll_interval"]
    navigation_timeout_ms: int = DEFAULTS["navigation_timeout_ms"]
    script_timeout_ms: int = DEFAULTS["script_timeout_ms"]
    download_timeout_ms: int = DEFAULTS["download_timeout_ms"]
    headless: bool = DEFAULTS["headless"]
    log_level: str = DEFAULTS["log_level"]
    log_root: Path = field(default_factory=lambda: Path(DEFAULTS["log_root"]))
    script_dir: Path = field(default_factory=lambda: Path(DEFAULTS["script_dir"]))

    @classmethod
    def from_mapping(cls, mapping: Dict[str, Any]) -> "RunnerConfig":
        data = dict(DEFAULTS)
        data.update(mapping)
        poll_interval = float(data["poll_interval"])
        if poll_interval <= 0:
            raise ValueError("poll_interval must be > 0")
        return cls(
            poll_interval=poll_interval,
            navigation_timeout_ms=int(data["navigation_timeout_ms"]),
            script_timeout_ms=int(data["script_timeout_ms"]),
            download_timeout_ms=int(data["download_timeout_ms"]),
            headless=str(data["headless"]).lower() in {"true", "1", "yes"},
            log_level=str(data["log_level"]).upper(),
            log_root=Path(data["log_root"]),
            script_dir=Path(data["script_dir"]),
        )


def _load_toml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("rb") as fh:
        return tomllib.load(fh)


def load_config(config_path: Optional[Path] = None) -> RunnerConfig:
    """Load configuration from environment, optional TOML file, and defaults."""

    env_map: Dict[str, Any] = {}
    for key, value in os.environ.items():
        if key.startswith(ENV_PREFIX):
            env_map[key[len(ENV_PREFIX):].lower()] = value

    path = config_path or Path("pageflow.toml")
    file_map = _load_toml(path).get("pageflow", {})

    merged = {**file_map, **env_map}
    known = {key: value for key, value in merged.items() if key in DEFAULTS}
    return RunnerConfig.from_mapping(known)


def ensure_run_directory(run_id: str, config: RunnerConfig) -> Path:
    base = config.log_root / run_id
    base.mkdir(parents=True, exist_ok=True)
    return base
