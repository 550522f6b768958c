"""Configuration system for texthooker."""

from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path
from urllib.parse import urlsplit

import tomlkit

from texthooker.errors import ConfigurationError

VALID_SCHEMES = {"ws", "wss"}


@dataclass
class ConnectionConfig:
    """WebSocket connection configuration.

    Two target slots are supported; an empty URL disables a slot.
    """

    websocket_url: str = "ws://localhost:6677"
    websocket_url_2: str = ""
    continuous_reconnect: bool = True  # Retry dropped connections automatically
    reconnect_interval: float = 1.0  # Seconds between reconnect triggers
    open_timeout: float = 10.0  # Handshake timeout (seconds)
    # Backoff applied on top of the reconnect trigger
    reconnect_initial_delay: float = 1.0
    reconnect_max_delay: float = 30.0
    reconnect_multiplier: float = 2.0

    @property
    def targets(self) -> list[str]:
        """URLs for every slot, empty string meaning "no target"."""
        return [self.websocket_url, self.websocket_url_2]


@dataclass
class DisplayConfig:
    """Line display configuration."""

    window_title: str = "texthooker"
    max_lines: int = 1000  # Lines kept in the scrollback
    preserve_whitespace: bool = False  # Keep leading/trailing whitespace


@dataclass
class SystemConfig:
    """Log file configuration."""

    log_max_bytes: int = 5 * 1024 * 1024  # Max log file size (5MB)
    log_backup_count: int = 3  # Number of backup log files to keep


def _dataclass_to_table(obj: object) -> tomlkit.items.Table:
    """Convert a dataclass instance to a tomlkit Table recursively."""
    table = tomlkit.table()
    for f in fields(obj):  # type: ignore[arg-type]
        value = getattr(obj, f.name)
        if is_dataclass(value) and not isinstance(value, type):
            table.add(f.name, _dataclass_to_table(value))
        else:
            table.add(f.name, value)
    return table


@dataclass
class Config:
    """Main configuration container."""

    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    system: SystemConfig = field(default_factory=SystemConfig)

    @property
    def config_dir(self) -> Path:
        """Configuration directory."""
        return Path.home() / ".config" / "texthooker"

    @property
    def config_path(self) -> Path:
        """Path to config file."""
        return self.config_dir / "config.toml"

    @property
    def state_dir(self) -> Path:
        """State directory for logs."""
        return Path.home() / ".local" / "state" / "texthooker"

    @property
    def log_path(self) -> Path:
        """JSON log path."""
        return self.state_dir / "texthooker.log"

    def save(self, path: Path | None = None) -> None:
        """Save config to TOML file."""
        path = path or self.config_path
        path.parent.mkdir(parents=True, exist_ok=True)

        doc = tomlkit.document()
        for name in ["connection", "display", "system"]:
            doc.add(name, _dataclass_to_table(getattr(self, name)))
            doc.add(tomlkit.nl())

        path.write_text(tomlkit.dumps(doc))

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """Load config from TOML file, returning defaults for missing values.

        Raises:
            ConfigurationError: If the file can't be parsed or holds invalid values.
        """
        defaults = cls()
        path = path or defaults.config_path
        if not path.exists():
            return defaults

        try:
            with open(path) as f:
                data = tomlkit.load(f)
        except tomlkit.exceptions.TOMLKitError as e:
            raise ConfigurationError(f"Failed to parse config file {path}: {e}") from e

        sys_data = data.get("system", {})
        sys_defaults = defaults.system

        return cls(
            connection=_load_connection_config(data.get("connection", {})),
            display=_load_display_config(data.get("display", {})),
            system=SystemConfig(
                log_max_bytes=sys_data.get("log_max_bytes", sys_defaults.log_max_bytes),
                log_backup_count=sys_data.get("log_backup_count", sys_defaults.log_backup_count),
            ),
        )


def validate_websocket_url(url: str) -> str:
    """Return url stripped, or raise if it isn't an empty or ws/wss URL."""
    url = url.strip()
    if not url:
        return url
    scheme = urlsplit(url).scheme.lower()
    if scheme not in VALID_SCHEMES:
        raise ConfigurationError(
            f"Invalid WebSocket URL: {url!r}. Scheme must be one of {sorted(VALID_SCHEMES)}"
        )
    return url


def _load_connection_config(data: dict) -> ConnectionConfig:
    """Load connection config from TOML data, using dataclass defaults for missing fields."""
    d = ConnectionConfig()

    websocket_url = validate_websocket_url(str(data.get("websocket_url", d.websocket_url)))
    websocket_url_2 = validate_websocket_url(str(data.get("websocket_url_2", d.websocket_url_2)))

    reconnect_interval = data.get("reconnect_interval", d.reconnect_interval)
    open_timeout = data.get("open_timeout", d.open_timeout)
    initial_delay = data.get("reconnect_initial_delay", d.reconnect_initial_delay)
    max_delay = data.get("reconnect_max_delay", d.reconnect_max_delay)
    multiplier = data.get("reconnect_multiplier", d.reconnect_multiplier)

    if reconnect_interval <= 0:
        raise ConfigurationError(f"reconnect_interval must be > 0, got {reconnect_interval}")
    if open_timeout <= 0:
        raise ConfigurationError(f"open_timeout must be > 0, got {open_timeout}")
    if initial_delay < 0:
        raise ConfigurationError(f"reconnect_initial_delay must be >= 0, got {initial_delay}")
    if max_delay < initial_delay:
        raise ConfigurationError(
            f"reconnect_max_delay ({max_delay}) must be >= reconnect_initial_delay ({initial_delay})"
        )
    if multiplier < 1:
        raise ConfigurationError(f"reconnect_multiplier must be >= 1, got {multiplier}")

    return ConnectionConfig(
        websocket_url=websocket_url,
        websocket_url_2=websocket_url_2,
        continuous_reconnect=data.get("continuous_reconnect", d.continuous_reconnect),
        reconnect_interval=reconnect_interval,
        open_timeout=open_timeout,
        reconnect_initial_delay=initial_delay,
        reconnect_max_delay=max_delay,
        reconnect_multiplier=multiplier,
    )


def _load_display_config(data: dict) -> DisplayConfig:
    """Load display config from TOML data."""
    d = DisplayConfig()
    max_lines = data.get("max_lines", d.max_lines)
    if max_lines < 1:
        raise ConfigurationError(f"max_lines must be >= 1, got {max_lines}")
    return DisplayConfig(
        window_title=data.get("window_title", d.window_title),
        max_lines=max_lines,
        preserve_whitespace=data.get("preserve_whitespace", d.preserve_whitespace),
    )
