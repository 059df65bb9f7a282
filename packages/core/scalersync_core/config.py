"""Persistent settings schema and load/save helpers."""

from __future__ import annotations

import json
import os
import platform
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from scalersync_protocol import SUPPORTED_BAUD_RATES, CenteringCalculator, Resolution
from scalersync_protocol.centering import DEFAULT_ORIGIN


CONFIG_VERSION = 2


class ConfigError(ValueError):
    """Configuration cannot drive a session."""


@dataclass
class SerialConfig:
    port: str | None = None
    baud: int = 9600
    read_timeout_ms: int = 100


@dataclass
class OutputConfig:
    h: int = 1920
    v: int = 1080


@dataclass
class CenteringConfig:
    h_origin: int = DEFAULT_ORIGIN
    v_origin: int = DEFAULT_ORIGIN
    h_units_per_pixel: int = 1
    v_units_per_line: int = 1


@dataclass
class WatchdogConfig:
    idle_timeout_s: float = 0.0
    ack_timeout_s: float = 0.0


@dataclass
class DiagnosticsConfig:
    keep_log_files: int = 7
    console_log: bool = True


@dataclass
class AppConfig:
    config_version: int = CONFIG_VERSION
    serial: SerialConfig = field(default_factory=SerialConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    centering: CenteringConfig = field(default_factory=CenteringConfig)
    watchdog: WatchdogConfig = field(default_factory=WatchdogConfig)
    diagnostics: DiagnosticsConfig = field(default_factory=DiagnosticsConfig)

    @property
    def output_resolution(self) -> Resolution:
        return Resolution(self.output.h, self.output.v)

    def calculator(self) -> CenteringCalculator:
        return CenteringCalculator(
            h_origin=self.centering.h_origin,
            v_origin=self.centering.v_origin,
            h_units_per_pixel=self.centering.h_units_per_pixel,
            v_units_per_line=self.centering.v_units_per_line,
        )


def config_root() -> Path:
    system = platform.system()
    if system == "Windows":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
        return base / "ScalerSync"
    if system == "Darwin":
        return Path.home() / "Library" / "Application Support" / "ScalerSync"
    return Path.home() / ".config" / "scalersync"


def config_path() -> Path:
    return config_root() / "config.json"


def _merge(dataclass_type, raw: dict[str, Any]):
    defaults = dataclass_type()  # type: ignore[misc]
    for k, v in (raw or {}).items():
        if hasattr(defaults, k):
            setattr(defaults, k, v)
    return defaults


def _normalize_serial(cfg: AppConfig) -> None:
    cfg.serial.baud = int(cfg.serial.baud)
    cfg.serial.read_timeout_ms = max(10, min(2000, int(cfg.serial.read_timeout_ms)))


def _normalize_watchdog(cfg: AppConfig) -> None:
    cfg.watchdog.idle_timeout_s = float(max(0.0, cfg.watchdog.idle_timeout_s))
    cfg.watchdog.ack_timeout_s = float(max(0.0, cfg.watchdog.ack_timeout_s))


def _migrate(raw: dict[str, Any]) -> dict[str, Any]:
    version = int(raw.get("config_version", 1))
    data = dict(raw)

    if version < 2:
        # v1 kept port/baud/output size flat at the top level.
        serial = dict(data.get("serial", {}) or {})
        if "port" in data:
            serial.setdefault("port", data.pop("port"))
        if "baud" in data:
            serial.setdefault("baud", data.pop("baud"))
        output = dict(data.get("output", {}) or {})
        if "output_h" in data:
            output.setdefault("h", data.pop("output_h"))
        if "output_v" in data:
            output.setdefault("v", data.pop("output_v"))
        data["serial"] = serial
        data["output"] = output
        data.setdefault("centering", {})
        data.setdefault("watchdog", {})
        data["config_version"] = 2

    return data


def load_config(path: Path | None = None) -> AppConfig:
    path = path or config_path()
    if not path.exists():
        return AppConfig()

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return AppConfig()

    data = _migrate(raw)
    cfg = AppConfig(
        config_version=int(data.get("config_version", CONFIG_VERSION)),
        serial=_merge(SerialConfig, data.get("serial", {})),
        output=_merge(OutputConfig, data.get("output", {})),
        centering=_merge(CenteringConfig, data.get("centering", {})),
        watchdog=_merge(WatchdogConfig, data.get("watchdog", {})),
        diagnostics=_merge(DiagnosticsConfig, data.get("diagnostics", {})),
    )

    _normalize_serial(cfg)
    _normalize_watchdog(cfg)
    return cfg


def validate_config(cfg: AppConfig, require_port: bool = False) -> AppConfig:
    if require_port and not cfg.serial.port:
        raise ConfigError("No serial port configured")
    if cfg.serial.baud not in SUPPORTED_BAUD_RATES:
        raise ConfigError(f"Unsupported baud rate {cfg.serial.baud}")
    if int(cfg.output.h) <= 0 or int(cfg.output.v) <= 0:
        raise ConfigError("Resolution can't be zero")
    if cfg.centering.h_units_per_pixel <= 0 or cfg.centering.v_units_per_line <= 0:
        raise ConfigError("Centering scale factors must be positive")
    return cfg


def save_config(cfg: AppConfig, path: Path | None = None) -> Path:
    cfg.config_version = CONFIG_VERSION
    path = path or config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(asdict(cfg), indent=2, sort_keys=True), encoding="utf-8")
    return path
