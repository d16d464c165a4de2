"""
blobkzg Configuration Module - Centralized configuration management.

Configuration Hierarchy (highest to lowest priority):
1. Environment variables (BLOBKZG_<SECTION>_<FIELD>; BLOBKZG_LOG_<FIELD> for logging)
2. Config file (JSON, TOML or YAML)
3. Default values

Example:
    config = BlobKZGConfig.load("bench.toml")
    print(config.workload.iterations)

    # Override with environment
    # BLOBKZG_WORKLOAD_CONFLICT_RATE=0.5
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from blobkzg.verifier.point_evaluation import (
    CAPABILITY_EIP4844,
    CAPABILITY_MOCK_OK,
    KNOWN_CAPABILITIES,
)
from blobkzg.verifier.workload import MAX_ITERATIONS

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Sections
# =============================================================================

@dataclass
class VerifierConfig:
    """Point-evaluation capability binding."""
    capability: str = CAPABILITY_MOCK_OK
    trusted_setup: Optional[str] = None
    precompute: int = 0


@dataclass
class WorkloadConfig:
    """Stress workload and harness shaping."""
    iterations: int = 1000
    tx_count: int = 10
    conflict_rate: float = 0.0
    batch_size: int = 2
    max_workers: int = 1


@dataclass
class StorageConfig:
    """Run state persistence."""
    state_file: Optional[str] = None


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    format: str = "text"  # "json" or "text"
    file: Optional[str] = None
    redact: bool = True
    max_size_mb: int = 10
    backup_count: int = 3


_SECTIONS = {
    "verifier": VerifierConfig,
    "workload": WorkloadConfig,
    "storage": StorageConfig,
    "logging": LoggingConfig,
}

_SECTION_ALIASES = {"log": "logging"}


# =============================================================================
# Main Configuration
# =============================================================================

@dataclass
class BlobKZGConfig:
    """
    Main blobkzg configuration.

    Combines all configuration sections into a single object.
    """
    verifier: VerifierConfig = field(default_factory=VerifierConfig)
    workload: WorkloadConfig = field(default_factory=WorkloadConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def load(
        cls,
        config_file: Optional[Union[str, Path]] = None,
        env_prefix: str = "BLOBKZG",
    ) -> "BlobKZGConfig":
        """
        Load configuration with hierarchy: env vars > config file > defaults.

        Args:
            config_file: Path to config file (JSON, TOML or YAML)
            env_prefix: Prefix for environment variables

        Returns:
            Loaded and validated configuration
        """
        config_dict: Dict[str, Any] = {}

        if config_file:
            config_dict = cls._load_file(Path(config_file))

        config_dict = cls._apply_env_overrides(config_dict, env_prefix)

        config = cls._from_dict(config_dict)
        config.validate()
        return config

    @classmethod
    def _load_file(cls, path: Path) -> Dict[str, Any]:
        """Load configuration from file."""
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        content = path.read_text(encoding="utf-8")

        if path.suffix == ".json":
            parsed = json.loads(content)
        elif path.suffix == ".toml":
            import tomllib
            parsed = tomllib.loads(content)
        elif path.suffix in {".yaml", ".yml"}:
            parsed = yaml.safe_load(content) or {}
        else:
            raise ValueError(f"Unknown config file format: {path.suffix}")

        if not isinstance(parsed, dict):
            raise ValueError("Config must be a mapping at top level")
        return parsed

    @classmethod
    def _apply_env_overrides(cls, config: Dict[str, Any], prefix: str) -> Dict[str, Any]:
        """Apply environment variable overrides.

        ``<PREFIX>_LOG_<FIELD>`` is accepted for the logging section;
        ``<PREFIX>_LOGGING_<FIELD>`` wins when both are set.
        """
        overrides = []
        for key, value in os.environ.items():
            if not key.startswith(f"{prefix}_"):
                continue

            # BLOBKZG_WORKLOAD_CONFLICT_RATE -> workload.conflict_rate
            parts = key[len(prefix) + 1:].lower().split("_")

            if len(parts) < 2:
                continue

            section = _SECTION_ALIASES.get(parts[0], parts[0])
            field_name = "_".join(parts[1:])

            section_cls = _SECTIONS.get(section)
            if section_cls is None:
                continue
            types = {f.name: f.type for f in fields(section_cls)}
            if field_name not in types:
                logger.warning(f"Ignoring unknown config override {key}")
                continue

            aliased = section != parts[0]
            overrides.append((aliased, section, field_name, cls._parse_env_value(value, types[field_name])))

        # Aliases first so canonical names overwrite them.
        for _, section, field_name, parsed in sorted(overrides, key=lambda o: not o[0]):
            config.setdefault(section, {})
            config[section][field_name] = parsed

        return config

    @staticmethod
    def _parse_env_value(value: str, annotation: Any) -> Any:
        """Parse environment variable value to the field's declared type."""
        kind = str(annotation)
        if kind == "bool":
            return value.strip().lower() in ("true", "yes", "1")
        if kind == "int":
            return int(value)
        if kind == "float":
            return float(value)
        if kind.startswith("Optional") and value == "":
            return None
        return value

    @classmethod
    def _from_dict(cls, config_dict: Dict[str, Any]) -> "BlobKZGConfig":
        """Build config object from dictionary."""
        unknown = set(config_dict) - set(_SECTIONS)
        if unknown:
            raise ValueError(f"Unknown config sections: {sorted(unknown)}")
        return cls(
            verifier=VerifierConfig(**config_dict.get("verifier", {})),
            workload=WorkloadConfig(**config_dict.get("workload", {})),
            storage=StorageConfig(**config_dict.get("storage", {})),
            logging=LoggingConfig(**config_dict.get("logging", {})),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    def validate(self) -> None:
        """Validate configuration."""
        if self.verifier.capability not in KNOWN_CAPABILITIES:
            raise ValueError(f"Invalid capability: {self.verifier.capability}")
        if self.verifier.capability == CAPABILITY_EIP4844 and not self.verifier.trusted_setup:
            raise ValueError("eip4844 capability requires verifier.trusted_setup")
        if self.verifier.precompute < 0:
            raise ValueError("precompute must be non-negative")

        if not 0 <= self.workload.iterations <= MAX_ITERATIONS:
            raise ValueError("iterations must be in [0, 2**64)")
        if self.workload.tx_count < 0:
            raise ValueError("tx_count must be non-negative")
        if not 0.0 <= self.workload.conflict_rate <= 1.0:
            raise ValueError("conflict_rate must be in [0, 1]")
        if self.workload.batch_size < 0:
            raise ValueError("batch_size must be non-negative")
        if self.workload.max_workers < 1:
            raise ValueError("max_workers must be at least 1")

        if self.logging.level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid logging level: {self.logging.level}")
        if self.logging.format not in ("json", "text"):
            raise ValueError(f"Invalid logging format: {self.logging.format}")
