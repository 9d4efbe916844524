"""
Loader Configuration Management
===============================

Centralized configuration for the loader packages using Python dataclasses
and TOML-based persistence.

A configuration file looks like::

    [global]
    log_level = "DEBUG"
    log_file = "mclf.log"
    output_dir = "reports"

    [mclf]
    max_file_size = 16777216
    text_header_overlay = false

References:
    - TOML v1.0.0 Specification. https://toml.io/en/v1.0.0
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib


# ---------------------------------------------------------------------------
# Default configuration file path relative to the project root
# ---------------------------------------------------------------------------
_DEFAULT_CONFIG_PATH: Path = Path(__file__).resolve().parent.parent / "config.toml"


# ========================== Tool-Specific Configs ==========================


@dataclass(frozen=False, slots=True)
class MclfConfig:
    """Configuration for the MCLF loader.

    Controls input size limits and which optional overlays are projected
    into the constructed image.
    """

    max_file_size: int = 16_777_216  # 16 MiB
    header_overlay: bool = True
    text_header_overlay: bool = True


# =========================== Global Settings ===============================


@dataclass(frozen=False, slots=True)
class GlobalConfig:
    """Global settings shared across the loader packages.

    Controls logging verbosity, log destination and where reports given
    as bare file names are written.
    """

    log_level: str = "INFO"
    log_file: str = ""
    log_json: bool = False
    output_dir: str = ""


# =========================== Master Config =================================


@dataclass(frozen=False, slots=True)
class LoaderConfig:
    """Master configuration aggregating tool-specific and global settings.

    Usage:
        >>> config = LoaderConfig.load()                  # from default path
        >>> config = LoaderConfig.load("custom.toml")     # from custom path
        >>> config.mclf.text_header_overlay
        True
    """

    global_settings: GlobalConfig = field(default_factory=GlobalConfig)
    mclf: MclfConfig = field(default_factory=MclfConfig)

    # ------------------------------------------------------------------ #
    #  TOML Loading
    # ------------------------------------------------------------------ #

    @classmethod
    def load(cls, path: str | Path | None = None) -> LoaderConfig:
        """Load configuration from a TOML file.

        If *path* is ``None`` the loader looks for ``config.toml`` in the
        project root.  Missing keys fall back to dataclass defaults.

        Args:
            path: Filesystem path to a TOML configuration file.
                  Defaults to ``<project_root>/config.toml``.

        Returns:
            A fully-populated :class:`LoaderConfig` instance.

        Raises:
            FileNotFoundError: If the specified path does not exist
                *and* was explicitly provided by the caller.
            tomllib.TOMLDecodeError: If the file is not valid TOML.
        """
        config_path = Path(path) if path is not None else _DEFAULT_CONFIG_PATH

        if not config_path.exists():
            if path is not None:
                raise FileNotFoundError(
                    f"Configuration file not found: {config_path}"
                )
            return cls()

        with open(config_path, "rb") as fh:
            raw: dict[str, Any] = tomllib.load(fh)

        return cls(
            global_settings=cls._build_section(GlobalConfig, raw.get("global", {})),
            mclf=cls._build_section(MclfConfig, raw.get("mclf", {})),
        )

    # ------------------------------------------------------------------ #
    #  Serialisation helpers
    # ------------------------------------------------------------------ #

    def to_dict(self) -> dict[str, Any]:
        """Serialise the entire configuration tree to a plain dictionary."""
        return asdict(self)

    # ------------------------------------------------------------------ #
    #  Internal helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _build_section(cls: type, data: dict[str, Any]) -> Any:
        """Instantiate a dataclass *cls* using only the keys it declares.

        Unknown keys in the TOML source are ignored so that newer config
        files still load.
        """
        valid_keys = {f.name for f in cls.__dataclass_fields__.values()}  # type: ignore[attr-defined]
        filtered = {k: v for k, v in data.items() if k in valid_keys}
        return cls(**filtered)
