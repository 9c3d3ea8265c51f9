"""Daemon layer: configuration and process supervision."""

from remindd.daemon.config import ConfigError, ConfigLoader, DaemonConfig, load_config
from remindd.daemon.supervisor import ExitCode, HealthStatus, StartupError, Supervisor, run_stdio

__all__ = [
    "ConfigError",
    "ConfigLoader",
    "DaemonConfig",
    "ExitCode",
    "HealthStatus",
    "StartupError",
    "Supervisor",
    "load_config",
    "run_stdio",
]
