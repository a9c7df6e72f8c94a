"""Layered configuration: overrides, environment, config file and defaults."""

from __future__ import annotations

import concurrent.futures
import copy
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Iterator

import yaml

__all__ = [
    "CacheConfig",
    "Config",
    "ConfigError",
    "ConfigManager",
    "GitConfig",
    "HistoryConfig",
    "ProviderConfig",
    "SecurityConfig",
    "UIConfig",
    "mask_api_key",
]

ENV_PREFIX = "GITSAGE"
CONFIG_LOAD_TIMEOUT = 0.1

DEFAULT_EXCLUDE_PATTERNS = (
    "*.lock",
    "go.sum",
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
    "Cargo.lock",
)


def mask_api_key(key: str) -> str:
    """Mask an API key, keeping only its last four characters."""
    if len(key) <= 4:
        return "****"
    return "*" * (len(key) - 4) + key[-4:]


def _home_dir() -> str:
    try:
        return str(Path.home())
    except (RuntimeError, KeyError):
        return ""


def _default_history_path() -> str:
    return os.path.join(_home_dir(), ".gitsage", "history.json")


@dataclass
class ProviderConfig:
    """AI provider settings."""

    name: str = "openai"
    api_key: str = ""
    model: str = "gpt-4o-mini"
    endpoint: str = ""
    temperature: float = 0.2
    max_tokens: int = 500


@dataclass
class GitConfig:
    """Git-related settings."""

    diff_size_threshold: int = 10240
    exclude_patterns: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS))


@dataclass
class UIConfig:
    """User-interface settings."""

    editor: str = ""
    color_enabled: bool = True
    spinner_style: str = "dots"


@dataclass
class HistoryConfig:
    """Commit message history settings."""

    enabled: bool = True
    max_entries: int = 1000
    file_path: str = field(default_factory=_default_history_path)


@dataclass
class SecurityConfig:
    """First-run security flags."""

    warning_acknowledged: bool = False
    path_check_done: bool = False


@dataclass
class CacheConfig:
    """Response cache settings."""

    enabled: bool = True
    max_entries: int = 100
    ttl_minutes: int = 60


@dataclass
class Config:
    """The complete configuration."""

    provider: ProviderConfig = field(default_factory=ProviderConfig)
    git: GitConfig = field(default_factory=GitConfig)
    ui: UIConfig = field(default_factory=UIConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    security: SecurityConfig = field(default_factory=SecurityConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)


class ConfigError(Exception):
    """Raised when configuration cannot be read, converted or written."""


_TRUE_WORDS = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE_WORDS = {"0", "f", "F", "FALSE", "false", "False"}


def _parse_bool(text: str) -> bool:
    if text in _TRUE_WORDS:
        return True
    if text in _FALSE_WORDS:
        return False
    raise ValueError(f"invalid boolean: {text!r}")


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        try:
            return _parse_bool(value)
        except ValueError:
            return False
    return False


def _coerce(value: Any, kind: type, name: str) -> Any:
    try:
        if kind is bool:
            if isinstance(value, str):
                return _parse_bool(value) if value else False
            if value is None:
                return False
            if isinstance(value, (bool, int, float)):
                return bool(value)
        elif kind is int:
            if isinstance(value, str):
                return int(value.strip(), 0) if value else 0
            if isinstance(value, (bool, int, float)):
                return int(value)
            if value is None:
                return 0
        elif kind is float:
            if isinstance(value, str):
                return float(value) if value else 0.0
            if isinstance(value, (bool, int, float)):
                return float(value)
            if value is None:
                return 0.0
        elif kind is list:
            if isinstance(value, (list, tuple)):
                return [str(item) for item in value]
            if isinstance(value, str):
                return value.split(",") if value else []
            if value is None:
                return []
        elif kind is str:
            if isinstance(value, bool):
                return "1" if value else "0"
            if value is None:
                return ""
            if isinstance(value, (str, int, float)):
                return str(value)
    except ValueError as exc:
        raise ConfigError(f"failed to unmarshal config: {name}: {exc}") from exc
    raise ConfigError(f"failed to unmarshal config: cannot decode {name} from {value!r}")


def _section_from(cls: type, data: Any, section: str) -> Any:
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"failed to unmarshal config: {section} is not a mapping")
    defaults = cls()
    values = {
        f.name: _coerce(data[f.name], type(getattr(defaults, f.name)), f"{section}.{f.name}")
        for f in fields(cls)
        if f.name in data
    }
    return cls(**values)


def _config_from_settings(settings: dict[str, Any]) -> Config:
    sections = {
        "provider": ProviderConfig,
        "git": GitConfig,
        "ui": UIConfig,
        "history": HistoryConfig,
        "security": SecurityConfig,
        "cache": CacheConfig,
    }
    return Config(
        **{name: _section_from(cls, settings.get(name), name) for name, cls in sections.items()}
    )


def _lower_keys(data: Any) -> Any:
    if isinstance(data, dict):
        return {str(key).lower(): _lower_keys(value) for key, value in data.items()}
    return data


def _deep_merge(target: dict[str, Any], source: dict[str, Any]) -> None:
    for key, value in source.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _deep_merge(target[key], value)
        else:
            target[key] = copy.deepcopy(value)


def _leaf_paths(data: dict[str, Any], prefix: tuple[str, ...] = ()) -> Iterator[tuple[str, ...]]:
    for key, value in data.items():
        path = prefix + (key,)
        if isinstance(value, dict):
            yield from _leaf_paths(value, path)
        else:
            yield path


def _set_path(target: dict[str, Any], key: str, value: Any) -> None:
    *parents, last = key.split(".")
    node = target
    for part in parents:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[last] = value


def _env_name(key: str) -> str:
    return f"{ENV_PREFIX}_{key.upper().replace('.', '_')}"


def _convert_value(value: str, existing: Any) -> Any:
    """Convert a string to the type of the value it replaces."""
    if existing is None:
        return value
    if isinstance(existing, bool):
        return _parse_bool(value)
    if isinstance(existing, int):
        return int(value, 10)
    if isinstance(existing, float):
        return float(value)
    if isinstance(existing, (list, tuple)):
        return value.split(",")
    return value


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        text = repr(value)
        return text[:-2] if text.endswith(".0") else text
    if isinstance(value, (list, tuple)):
        return "[" + " ".join(_format_value(item) for item in value) + "]"
    if isinstance(value, dict):
        items = " ".join(f"{key}:{_format_value(value[key])}" for key in sorted(value))
        return "map[" + items + "]"
    return str(value)


class ConfigManager:
    """Reads and writes configuration from a YAML file.

    Values resolve in the order: overrides, GITSAGE_* environment
    variables, the config file, then built-in defaults.
    """

    def __init__(self, config_path: str | os.PathLike[str] | None = None) -> None:
        if not config_path:
            try:
                home = Path.home()
            except (RuntimeError, KeyError) as exc:
                raise ConfigError(f"failed to get home directory: {exc}") from exc
            config_path = home / ".gitsage" / "config.yaml"
        self._path = Path(config_path)
        self._defaults: dict[str, Any] = asdict(Config())
        self._file: dict[str, Any] = {}
        self._overrides: dict[str, Any] = {}

    @property
    def config_path(self) -> Path:
        """Path of the configuration file."""
        return self._path

    def _read_file(self) -> None:
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return
        except OSError as exc:
            raise ConfigError(f"failed to read config file: {exc}") from exc
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigError(f"failed to read config file: {exc}") from exc
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError("failed to read config file: top level is not a mapping")
        self._file = _lower_keys(data)

    def _settings(self) -> dict[str, Any]:
        merged = copy.deepcopy(self._defaults)
        _deep_merge(merged, self._file)
        for path in list(_leaf_paths(merged)):
            env_value = os.environ.get(_env_name(".".join(path)))
            if env_value is not None:
                _set_path(merged, ".".join(path), env_value)
        _deep_merge(merged, self._overrides)
        return merged

    def _lookup(self, settings: dict[str, Any], key: str) -> Any:
        node: Any = settings
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return os.environ.get(_env_name(key))
            node = node[part]
        return node

    def _write(self, settings: dict[str, Any]) -> None:
        try:
            text = yaml.safe_dump(settings, default_flow_style=False, sort_keys=True)
        except yaml.YAMLError as exc:
            raise ConfigError(f"failed to write config file: {exc}") from exc
        try:
            self._path.write_text(text, encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"failed to write config file: {exc}") from exc

    def _ensure_dir(self) -> None:
        try:
            self._path.parent.mkdir(mode=0o755, parents=True, exist_ok=True)
        except OSError as exc:
            raise ConfigError(f"failed to create config directory: {exc}") from exc

    def load(self) -> Config:
        """Resolve every layer into a Config."""
        self._read_file()
        return _config_from_settings(self._settings())

    def load_with_timeout(self, timeout: float = CONFIG_LOAD_TIMEOUT) -> Config:
        """Load, raising ConfigError if it takes longer than timeout seconds."""
        executor = concurrent.futures.ThreadPoolExecutor(max_workers=1)
        future = executor.submit(self.load)
        try:
            return future.result(timeout=timeout)
        except concurrent.futures.TimeoutError as exc:
            raise ConfigError(f"config loading timed out after {timeout:g}s") from exc
        finally:
            executor.shutdown(wait=False)

    def init(self) -> None:
        """Create the config file with default values, readable by the owner only."""
        if self._path.exists():
            raise ConfigError(f"config file already exists at {self._path}")
        self._ensure_dir()
        self._write(self._settings())
        try:
            os.chmod(self._path, 0o600)
        except OSError as exc:
            raise ConfigError(f"failed to set config file permissions: {exc}") from exc

    def save(self, config: Config) -> None:
        """Write a complete Config to the file."""
        for section, values in asdict(config).items():
            self._overrides[section] = values
        self._write(self._settings())

    def set(self, key: str, value: str) -> None:
        """Persist a dotted key, converting value to the type already held there."""
        self._read_file()
        key = key.lower()
        existing = self._lookup(self._settings(), key)
        try:
            converted = _convert_value(value, existing)
        except ValueError as exc:
            raise ConfigError(f"failed to convert value for key {key}: {exc}") from exc
        self.set_override(key, converted)
        self._write(self._settings())

    def get(self, key: str) -> str:
        """Return the resolved value of a dotted key as text."""
        self._read_file()
        value = self._lookup(self._settings(), key.lower())
        if value is None:
            raise ConfigError(f"key not found: {key}")
        return _format_value(value)

    def list_settings(self) -> dict[str, Any]:
        """All resolved settings as a nested dict; file errors fall back to defaults."""
        try:
            self._read_file()
        except ConfigError:
            pass
        return self._settings()

    def set_override(self, key: str, value: Any) -> None:
        """Override a key for this manager only; the file is not touched."""
        _set_path(self._overrides, key.lower(), value)

    def config_exists(self) -> bool:
        return self._path.exists()

    def acknowledge_security_warning(self) -> None:
        self.set("security.warning_acknowledged", "true")

    def _flag(self, key: str) -> bool:
        try:
            self._read_file()
        except ConfigError:
            pass
        return _to_bool(self._lookup(self._settings(), key))

    def is_security_warning_acknowledged(self) -> bool:
        return self._flag("security.warning_acknowledged")

    def set_path_check_done(self) -> None:
        """Record that the PATH check ran, creating the config file if needed."""
        self._ensure_dir()
        if not self._path.exists():
            try:
                fd = os.open(self._path, os.O_CREAT | os.O_WRONLY, 0o600)
            except OSError as exc:
                raise ConfigError(f"failed to create config file: {exc}") from exc
            os.close(fd)
        self.set("security.path_check_done", "true")

    def is_path_check_done(self) -> bool:
        return self._flag("security.path_check_done")