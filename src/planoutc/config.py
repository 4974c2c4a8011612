"""TOML config loading for planout.toml."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from planoutc.wire import CASE_CONDITION_KEY

CONFIG_NAME = "planout.toml"


@dataclass
class ParserConfig:
    strict_embedded_scalars: bool = True


@dataclass
class OutputConfig:
    indent: int = 2
    case_condition_key: str = CASE_CONDITION_KEY


@dataclass
class FormatConfig:
    indent: int = 4


@dataclass
class PlanOutConfig:
    parser: ParserConfig = field(default_factory=ParserConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    format: FormatConfig = field(default_factory=FormatConfig)


def find_config(start_path: Path | None = None) -> Path:
    """Walk up directories to find planout.toml. Raises FileNotFoundError."""
    path = (start_path or Path.cwd()).resolve()
    if path.is_file():
        path = path.parent
    while True:
        candidate = path / CONFIG_NAME
        if candidate.exists():
            return candidate
        parent = path.parent
        if parent == path:
            raise FileNotFoundError(f"No {CONFIG_NAME} found in any parent directory")
        path = parent


def load_config(path: Path) -> PlanOutConfig:
    """Parse a planout.toml file into a PlanOutConfig."""
    with open(path, "rb") as f:
        data = tomllib.load(f)

    config = PlanOutConfig()

    if "parser" in data:
        prs = data["parser"]
        config.parser = ParserConfig(
            strict_embedded_scalars=prs.get("strict_embedded_scalars", True),
        )

    if "output" in data:
        out = data["output"]
        config.output = OutputConfig(
            indent=out.get("indent", 2),
            case_condition_key=out.get("case_condition_key", CASE_CONDITION_KEY),
        )

    if "format" in data:
        fmt = data["format"]
        config.format = FormatConfig(
            indent=fmt.get("indent", 4),
        )

    return config


def resolve_config(start_path: Path | None = None) -> PlanOutConfig:
    """Load the nearest planout.toml, or defaults when there is none."""
    try:
        return load_config(find_config(start_path))
    except FileNotFoundError:
        return PlanOutConfig()
