"""
comfyfetch Configuration Module

Central configuration for the scanner, resolver, validator, script
generator and history store.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)


def _default_data_path() -> Path:
    return Path(os.environ.get("COMFYFETCH_HOME", Path.home() / ".comfyfetch")).expanduser()


@dataclass
class ScanConfig:
    """Extra core-node knowledge on top of the built-in denylist."""
    extra_core_nodes: List[str] = field(default_factory=list)
    extra_core_prefixes: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "extra_core_nodes": self.extra_core_nodes,
            "extra_core_prefixes": self.extra_core_prefixes,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'ScanConfig':
        return cls(
            extra_core_nodes=list(data.get("extra_core_nodes", [])),
            extra_core_prefixes=list(data.get("extra_core_prefixes", [])),
        )


@dataclass
class ResolveConfig:
    """Enrichment batching and validation settings."""
    batch_size: int = 20
    max_workers: int = 1
    confidence: float = 0.9
    extra_model_hosts: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "batch_size": self.batch_size,
            "max_workers": self.max_workers,
            "confidence": self.confidence,
            "extra_model_hosts": self.extra_model_hosts,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'ResolveConfig':
        return cls(
            batch_size=int(data.get("batch_size", 20)),
            max_workers=int(data.get("max_workers", 1)),
            confidence=float(data.get("confidence", 0.9)),
            extra_model_hosts=list(data.get("extra_model_hosts", [])),
        )


@dataclass
class ComfyFetchConfig:
    """Main comfyfetch configuration container."""
    scan: ScanConfig = field(default_factory=ScanConfig)
    resolve: ResolveConfig = field(default_factory=ResolveConfig)
    default_dialect: str = "bash"
    history_filename: str = "history.json"

    data_path: Path = field(default_factory=_default_data_path)

    @property
    def config_file(self) -> Path:
        return self.data_path / "config.json"

    @property
    def history_file(self) -> Path:
        return self.data_path / self.history_filename

    @property
    def ai_settings_file(self) -> Path:
        return self.data_path / "ai_settings.json"

    def ensure_directories(self) -> None:
        """Create the data directory."""
        self.data_path.mkdir(parents=True, exist_ok=True)

    def to_dict(self) -> dict:
        return {
            "scan": self.scan.to_dict(),
            "resolve": self.resolve.to_dict(),
            "default_dialect": self.default_dialect,
            "history_filename": self.history_filename,
        }

    def save(self) -> None:
        """Save configuration to file."""
        self.ensure_directories()
        with open(self.config_file, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, data_path: Optional[Path] = None) -> 'ComfyFetchConfig':
        """Load configuration from file or fall back to defaults."""
        config = cls(data_path=Path(data_path).expanduser()) if data_path else cls()
        if config.config_file.exists():
            try:
                with open(config.config_file) as f:
                    data = json.load(f)

                if "scan" in data:
                    config.scan = ScanConfig.from_dict(data["scan"])
                if "resolve" in data:
                    config.resolve = ResolveConfig.from_dict(data["resolve"])
                config.default_dialect = data.get("default_dialect", config.default_dialect)
                config.history_filename = data.get("history_filename", config.history_filename)
            except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
                logger.warning(f"[config] Could not load {config.config_file}, using defaults: {e}")

        return config


# Global configuration instance
_config: Optional[ComfyFetchConfig] = None


def get_config() -> ComfyFetchConfig:
    """Get or create the global configuration instance."""
    global _config
    if _config is None:
        _config = ComfyFetchConfig.load()
    return _config


def reset_config() -> None:
    """Reset global configuration (useful for testing)."""
    global _config
    _config = None
