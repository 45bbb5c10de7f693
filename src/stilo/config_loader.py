"""Load StiloConfig from stilo.yaml / stilo.toml if present.

Merges file config, the port environment variable, and CLI kwargs.
CLI overrides environment, environment overrides file.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path

import yaml

from stilo._errors import ConfigError
from stilo.config import StiloConfig

# Environment variables consulted for the listen port, in priority order.
PORT_ENV_VARS = ("STILO_PORT", "PORT")

_KNOWN_KEYS = frozenset({
    "host", "port", "samples_dir", "public_dir", "fonts_dir", "readme",
    "extensions", "style_sources", "build_command", "debounce_ms",
    "queue_size", "stall_limit", "compile_on_start",
})

_TUPLE_KEYS = ("extensions", "style_sources")


def load_config(root: Path, **overrides: object) -> StiloConfig:
    """Load StiloConfig from root, merging stilo.yaml/stilo.toml and the environment.

    Raises:
        ConfigError: If a config file is malformed or a value has the wrong type.

    """
    merged: dict[str, object] = {**_read_stilo_config(root)}

    env_port = _port_from_env()
    if env_port is not None:
        merged["port"] = env_port

    merged.update({k: v for k, v in overrides.items() if v is not None})

    for key in _TUPLE_KEYS:
        if key in merged and isinstance(merged[key], (list, str)):
            value = merged[key]
            merged[key] = (value,) if isinstance(value, str) else tuple(value)

    if "port" in merged:
        merged["port"] = _coerce_port(merged["port"])

    try:
        return StiloConfig(root=root, **merged)  # type: ignore[arg-type]
    except TypeError as exc:
        msg = f"Invalid stilo configuration: {exc}"
        raise ConfigError(msg) from exc


def _port_from_env() -> int | None:
    for name in PORT_ENV_VARS:
        raw = os.environ.get(name)
        if raw:
            return _coerce_port(raw)
    return None


def _coerce_port(value: object) -> int:
    try:
        port = int(value)  # type: ignore[call-overload]
    except (TypeError, ValueError) as exc:
        msg = f"Invalid port: {value!r}"
        raise ConfigError(msg) from exc
    if not 0 < port < 65536:
        msg = f"Port out of range: {port}"
        raise ConfigError(msg)
    return port


def _read_stilo_config(root: Path) -> dict[str, object]:
    """Read stilo config from yaml/toml if present. Returns empty dict otherwise."""
    for name in ("stilo.yaml", "stilo.yml"):
        path = root / name
        if path.is_file():
            return _parse_yaml(path)
    toml_path = root / "stilo.toml"
    if toml_path.is_file():
        return _parse_toml(toml_path)
    return {}


def _parse_yaml(path: Path) -> dict[str, object]:
    try:
        data = yaml.safe_load(path.read_text()) or {}
    except (OSError, yaml.YAMLError) as exc:
        msg = f"Failed to read {path.name}: {exc}"
        raise ConfigError(msg) from exc
    if not isinstance(data, dict):
        msg = f"{path.name} must contain a mapping"
        raise ConfigError(msg)
    return _flatten_stilo_section(data)


def _parse_toml(path: Path) -> dict[str, object]:
    try:
        data = tomllib.loads(path.read_text())
    except (OSError, tomllib.TOMLDecodeError) as exc:
        msg = f"Failed to read {path.name}: {exc}"
        raise ConfigError(msg) from exc
    return _flatten_stilo_section(data)


def _flatten_stilo_section(data: dict[str, object]) -> dict[str, object]:
    """Extract stilo.* keys and known top-level keys into a flat config."""
    result: dict[str, object] = {}
    for k, v in data.items():
        if k in _KNOWN_KEYS:
            result[k] = v
    stilo = data.get("stilo")
    if isinstance(stilo, dict):
        for k, v in stilo.items():
            if k in _KNOWN_KEYS:
                result[k] = v
    return result
