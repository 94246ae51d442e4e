"""solrange configuration: project-level .solrangerc.yml support.

Loads configuration from .solrangerc.yml (or .solrangerc.yaml,
.solrangerc.json) found by walking up from a start directory.

Example .solrangerc.yml:
    eval_bounds: true        # show concretized bounds instead of expressions
    show_tmps: false         # include temporaries in bound reports
    solver_timeout_ms: 2000  # z3 timeout for feasibility checks
    log_level: warning
    format: pretty           # "pretty" or "json"
"""

from __future__ import annotations

import json
import logging
import os
import sys
from dataclasses import dataclass
from typing import Any, Dict, Optional

import yaml


@dataclass
class SolrangeConfig:
    """Project-level solrange configuration."""
    eval_bounds: bool = True
    show_tmps: bool = False
    solver_timeout_ms: int = 2000
    log_level: str = "warning"
    # Output: "pretty" or "json"
    format: str = "pretty"

    def report_config(self):
        from solrange.bounds import ReportConfig
        return ReportConfig(eval_bounds=self.eval_bounds, show_tmps=self.show_tmps,
                            solver_timeout_ms=self.solver_timeout_ms)


# ---------------------------------------------------------------------------
# Config file names (in priority order)
# ---------------------------------------------------------------------------

_CONFIG_FILES = [
    ".solrangerc.yml",
    ".solrangerc.yaml",
    ".solrangerc.json",
]


def find_config(start_dir: str = ".") -> Optional[str]:
    """Find the nearest config file by walking up from start_dir."""
    current = os.path.abspath(start_dir)
    while True:
        for name in _CONFIG_FILES:
            path = os.path.join(current, name)
            if os.path.isfile(path):
                return path
        parent = os.path.dirname(current)
        if parent == current:
            break
        current = parent
    return None


def load_config(path: Optional[str] = None, start_dir: str = ".") -> SolrangeConfig:
    """Load configuration from a file.

    If no path is given, searches for a config file starting from start_dir.
    If no config file is found, or it cannot be parsed, returns defaults.
    """
    if path is None:
        path = find_config(start_dir)

    if path is None:
        return SolrangeConfig()

    try:
        with open(path, "r") as f:
            content = f.read()
    except (IOError, OSError):
        return SolrangeConfig()

    try:
        if path.endswith(".json"):
            data = json.loads(content)
        else:
            data = yaml.safe_load(content) or {}
    except (json.JSONDecodeError, yaml.YAMLError):
        return SolrangeConfig()

    if not isinstance(data, dict):
        return SolrangeConfig()
    return _dict_to_config(data)


def _dict_to_config(data: Dict[str, Any]) -> SolrangeConfig:
    """Convert a parsed dict to SolrangeConfig."""
    config = SolrangeConfig()

    if "eval_bounds" in data:
        config.eval_bounds = bool(data["eval_bounds"])
    if "show_tmps" in data:
        config.show_tmps = bool(data["show_tmps"])
    if "solver_timeout_ms" in data:
        config.solver_timeout_ms = int(data["solver_timeout_ms"])
    if "log_level" in data:
        config.log_level = str(data["log_level"])
    if "format" in data:
        config.format = str(data["format"])

    return config


def configure_logging(level: str = "warning") -> None:
    """Send solrange's log records to stderr at ``level``."""
    logger = logging.getLogger("solrange")
    logger.setLevel(getattr(logging, level.upper(), logging.WARNING))
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
        logger.addHandler(handler)
