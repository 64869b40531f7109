"""
NCN Vote Verifier Configuration
"""

from __future__ import annotations
import json
import logging
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import List, Optional

from ncnvote.constants import (
    DEFAULT_DB_NAME,
    DEFAULT_HASH_SCHEME,
    MAX_OPERATORS,
)
from ncnvote.crypto.hash_to_curve import SCHEMES

logger = logging.getLogger(__name__)


@dataclass
class ConsensusConfig:
    """Vote verification configuration."""
    max_operators: int = MAX_OPERATORS
    minimum_stake: int = 0
    hash_scheme: str = DEFAULT_HASH_SCHEME
    max_history: int = 100


@dataclass
class StorageConfig:
    """Storage configuration."""
    data_dir: str = "./data"
    db_name: str = DEFAULT_DB_NAME
    enabled: bool = True


@dataclass
class LogConfig:
    """Logging configuration."""
    level: str = "INFO"
    file: Optional[str] = None
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    max_size_mb: int = 100
    backup_count: int = 5


@dataclass
class VerifierConfig:
    """
    Complete verifier configuration.

    All settings for running a vote verifier.
    """
    name: str = "ncn-verifier"

    # Sub-configurations
    consensus: ConsensusConfig = field(default_factory=ConsensusConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    log: LogConfig = field(default_factory=LogConfig)

    @property
    def data_path(self) -> Path:
        """Get data directory path."""
        return Path(self.storage.data_dir)

    @property
    def db_path(self) -> Path:
        """Get database file path."""
        return self.data_path / self.storage.db_name

    def validate(self) -> List[str]:
        """
        Validate configuration.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        # Consensus validation
        if not 1 <= self.consensus.max_operators <= MAX_OPERATORS:
            errors.append(
                f"max_operators must be between 1 and {MAX_OPERATORS}: "
                f"{self.consensus.max_operators}"
            )

        if self.consensus.minimum_stake < 0:
            errors.append("minimum_stake cannot be negative")

        if self.consensus.hash_scheme not in SCHEMES:
            errors.append(f"Unknown hash scheme: {self.consensus.hash_scheme}")

        if self.consensus.max_history < 1:
            errors.append("max_history must be at least 1")

        # Storage validation
        if self.storage.enabled and not self.storage.data_dir:
            errors.append("data_dir cannot be empty")

        # Log validation
        if not isinstance(getattr(logging, self.log.level.upper(), None), int):
            errors.append(f"Invalid log level: {self.log.level}")

        return errors

    def save(self, path: str) -> None:
        """Save configuration to file."""
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

        logger.info(f"Configuration saved to {path}")

    @classmethod
    def load(cls, path: str) -> "VerifierConfig":
        """Load configuration from file."""
        with open(path, 'r') as f:
            data = json.load(f)

        config = cls(name=data.get("name", "ncn-verifier"))

        if "consensus" in data:
            config.consensus = ConsensusConfig(**data["consensus"])

        if "storage" in data:
            config.storage = StorageConfig(**data["storage"])

        if "log" in data:
            config.log = LogConfig(**data["log"])

        logger.info(f"Configuration loaded from {path}")
        return config

    @classmethod
    def default_testing(cls) -> "VerifierConfig":
        """Create in-memory configuration without durable storage."""
        config = cls(name="ncn-verifier-test")
        config.storage.enabled = False
        config.log.level = "DEBUG"
        return config

    def to_dict(self) -> dict:
        """Export configuration as dictionary."""
        return {
            "name": self.name,
            "consensus": asdict(self.consensus),
            "storage": asdict(self.storage),
            "log": asdict(self.log),
        }


def setup_logging(config: LogConfig) -> None:
    """Configure logging based on config."""
    level = getattr(logging, config.level.upper(), logging.INFO)

    handlers = [logging.StreamHandler()]

    if config.file:
        from logging.handlers import RotatingFileHandler
        file_handler = RotatingFileHandler(
            config.file,
            maxBytes=config.max_size_mb * 1024 * 1024,
            backupCount=config.backup_count,
        )
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        format=config.format,
        handlers=handlers,
    )
