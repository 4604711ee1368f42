"""Configuration management for TaxonAlign.

This module provides a centralized configuration object. Defaults can be
overridden with TAXONALIGN_* environment variables and, for a single run,
with command-line arguments via ``update_from_args``.
"""

import os
from pathlib import Path
from typing import Any, Dict

from taxonalign.constants import DEFAULT_REFERENCE_TABLE

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env(name: str, default: str) -> str:
    return os.environ.get(f"TAXONALIGN_{name}", default)


class Config:
    """Runtime settings for TaxonAlign."""

    def __init__(self):
        # Output settings
        self.output_dir = _env("OUTPUT_DIR", str(Path.cwd() / "taxonalign_output"))
        self.output_format = _env("OUTPUT_FORMAT", "csv")

        # Reference settings
        self.reference_table = _env("REFERENCE_TABLE", DEFAULT_REFERENCE_TABLE)

        # Ladder labels used in reports
        self.query_label = _env("QUERY_LABEL", "IUCN")
        self.reference_label = _env("REFERENCE_LABEL", "COL")
        self.lineage_label = _env("LINEAGE_LABEL", "COL lineage")

        # Crosscheck settings
        self.max_samples = int(_env("MAX_SAMPLES", "10"))
        self.show_progress = _env("SHOW_PROGRESS", "true").lower() in _TRUE_VALUES

        # Logging
        self.log_level = _env("LOG_LEVEL", "INFO")

    def update_from_args(self, args: Dict[str, Any]) -> None:
        """Update settings from parsed command-line arguments.

        Only known settings with a non-None value are applied; other keys
        (subcommand name, file paths) are ignored.

        Args:
            args: Dictionary of argument names and values, e.g. ``vars(namespace)``
        """
        for key, value in args.items():
            if value is None:
                continue
            if key == "no_progress":
                if value:
                    self.show_progress = False
                continue
            if key == "table":
                key = "reference_table"
            if hasattr(self, key) and not callable(getattr(self, key)):
                setattr(self, key, value)

    def ensure_directories(self) -> None:
        """Create the output directory if it does not exist."""
        Path(self.output_dir).mkdir(parents=True, exist_ok=True)

    def get_config_summary(self) -> str:
        """Return a human-readable summary of the current settings."""
        return "\n".join(
            [
                "TaxonAlign Configuration:",
                f"  Output directory: {self.output_dir}",
                f"  Output format: {self.output_format}",
                f"  Reference table: {self.reference_table}",
                f"  Query label: {self.query_label}",
                f"  Reference label: {self.reference_label}",
                f"  Lineage label: {self.lineage_label}",
                f"  Max samples per finding: {self.max_samples}",
                f"  Show progress: {self.show_progress}",
                f"  Log level: {self.log_level}",
            ]
        )


# Global configuration instance
config = Config()
