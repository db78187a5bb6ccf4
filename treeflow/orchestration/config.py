"""
YAML configuration for the executor.

Example file:

    executor:
      max_workers: 4
      parallel: true
      verbose: false
"""
from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional, Union

import yaml

from ..shared.defaults import DEFAULT_MAX_WORKERS, DEFAULT_PARALLEL, DEFAULT_VERBOSE


@dataclass
class ExecutorConfig:
    """Settings for an Executor run."""

    max_workers: Optional[int] = DEFAULT_MAX_WORKERS
    parallel: bool = DEFAULT_PARALLEL
    verbose: bool = DEFAULT_VERBOSE

    def __post_init__(self):
        if self.max_workers is not None and (
            isinstance(self.max_workers, bool)
            or not isinstance(self.max_workers, int)
            or self.max_workers < 1
        ):
            raise ValueError(f"max_workers must be a positive integer, got {self.max_workers!r}")
        for name in ("parallel", "verbose"):
            value = getattr(self, name)
            if not isinstance(value, bool):
                raise ValueError(f"{name} must be true or false, got {value!r}")

    def resolved_workers(self) -> int:
        """Effective pool size: the configured value, else the CPU count."""
        if self.max_workers is not None:
            return self.max_workers
        return max(1, os.cpu_count() or 1)


def load_config_from_yaml(yaml_path: Union[str, Path]) -> ExecutorConfig:
    """
    Load executor configuration from a YAML file.

    Args:
        yaml_path: Path to YAML configuration file

    Returns:
        ExecutorConfig object

    Raises:
        FileNotFoundError: If YAML file doesn't exist
        ValueError: If YAML is empty, malformed or has unknown keys
    """
    yaml_path = Path(yaml_path)

    if not yaml_path.exists():
        raise FileNotFoundError(f"Config file not found: {yaml_path}")

    with open(yaml_path, 'r') as f:
        config_dict = yaml.safe_load(f)

    if not config_dict:
        raise ValueError(f"Empty config file: {yaml_path}")
    if not isinstance(config_dict, dict):
        raise ValueError(f"Config file must contain a mapping: {yaml_path}")

    executor = config_dict.get('executor', {})
    if not isinstance(executor, dict):
        raise ValueError(f"'executor' section must be a mapping: {yaml_path}")

    known = {f.name for f in fields(ExecutorConfig)}
    unknown = sorted(set(executor) - known)
    if unknown:
        raise ValueError(f"Unknown executor setting(s) in {yaml_path}: {', '.join(unknown)}")

    return ExecutorConfig(
        max_workers=executor.get('max_workers', DEFAULT_MAX_WORKERS),
        parallel=executor.get('parallel', DEFAULT_PARALLEL),
        verbose=executor.get('verbose', DEFAULT_VERBOSE),
    )
