"""Configuration management for content-history."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


class PolicyConfig(BaseModel):
    """Publishing policy enforced by the pre-receive hook.

    Patterns are regular expressions searched anywhere in the
    repository-relative path; anchor them with ``^`` to match prefixes.
    """

    require_signing: bool = Field(
        default=False, description="Reject commits without a valid signature"
    )
    no_deletion: bool = Field(default=False, description="Reject deleting paths")
    no_creation: bool = Field(default=False, description="Reject creating paths")
    allow_patterns: List[str] = Field(
        default_factory=lambda: [".*"],
        description="A changed path must match at least one of these",
    )
    protect_patterns: List[str] = Field(
        default_factory=list,
        description="A changed path must match none of these",
    )


class HistoryConfig(BaseModel):
    """Configuration for provenance aggregation."""

    revision: str = Field(default="HEAD", description="Revision to walk from")
    workers: int = Field(
        default=1, description="Threads used to shard the history walk"
    )

    @field_validator("workers")
    @classmethod
    def validate_workers(cls, v: int) -> int:
        if v < 1:
            raise ValueError("workers must be at least 1")
        return v


class Config(BaseModel):
    """Root configuration model."""

    policy: PolicyConfig = Field(default_factory=PolicyConfig)
    history: HistoryConfig = Field(default_factory=HistoryConfig)


class ConfigManager:
    """Manages configuration loading and saving."""

    DEFAULT_CONFIG_PATH = Path(".content-history/config.json")

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = Path(config_path or self.DEFAULT_CONFIG_PATH)
        self._config: Optional[Config] = None

    def load(self) -> Config:
        """Load configuration from file, or defaults if there is none."""
        if self.config_path.exists():
            try:
                with open(self.config_path, "r") as f:
                    data = json.load(f)
                self._config = Config(**data)
            except Exception as e:
                raise ValueError(f"Failed to load config from {self.config_path}: {e}")
        else:
            logger.debug(f"No config at {self.config_path}, using defaults")
            self._config = Config()

        return self._config

    def get_config(self) -> Config:
        if self._config is None:
            return self.load()
        return self._config

    def save(self, config: Optional[Config] = None) -> None:
        if config is None:
            config = self._config

        if config is None:
            raise ValueError("No configuration to save")

        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, "w") as f:
            json.dump(config.model_dump(), f, indent=2)


def apply_policy_overrides(
    policy: PolicyConfig,
    require_signing: bool = False,
    no_deletion: bool = False,
    no_creation: bool = False,
    allow_patterns: Optional[List[str]] = None,
    protect_patterns: Optional[List[str]] = None,
) -> PolicyConfig:
    """
    Layer command-line flags on top of the configured policy.

    Boolean flags can only tighten the policy. Patterns given on the
    command line replace the configured lists.
    """
    updates: Dict[str, Any] = {}
    if require_signing:
        updates["require_signing"] = True
    if no_deletion:
        updates["no_deletion"] = True
    if no_creation:
        updates["no_creation"] = True
    if allow_patterns:
        updates["allow_patterns"] = list(allow_patterns)
    if protect_patterns:
        updates["protect_patterns"] = list(protect_patterns)
    return policy.model_copy(update=updates)
