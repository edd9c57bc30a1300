from __future__ import annotations

import argparse
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml  # type: ignore[import-untyped]

DEFAULT_NICKNAME_TABLE = Path(__file__).resolve().parent / "data" / "nickname_mapping.csv"


@dataclass
class OutputsConfig:
    dir: Path


@dataclass
class NicknameConfig:
    table_path: Path = DEFAULT_NICKNAME_TABLE


@dataclass
class ImporterConfig:
    default_drinks: bool = True


@dataclass
class LoggingConfig:
    level: str = "WARNING"
    format: str = "%(levelname)s %(name)s: %(message)s"


@dataclass
class MatchConfig:
    inputs: Dict[str, Optional[str]]
    outputs: OutputsConfig
    nicknames: NicknameConfig
    importer: ImporterConfig
    logging: LoggingConfig


def _load_yaml(path: Optional[str]) -> Dict[str, Any]:
    if not path:
        return {}
    with open(path, "r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def load_match_config(args: argparse.Namespace) -> MatchConfig:
    config_data = _load_yaml(getattr(args, "config", None))
    inputs = config_data.get("inputs", {}) or {}
    outputs_cfg = config_data.get("outputs", {}) or {}
    nicknames_cfg = config_data.get("nicknames", {}) or {}
    importer_cfg = config_data.get("importer", {}) or {}
    logging_cfg = config_data.get("logging", {}) or {}

    outputs_dir = Path(getattr(args, "out_dir", None) or outputs_cfg.get("dir") or os.getcwd())
    outputs = OutputsConfig(dir=outputs_dir)

    table_path = getattr(args, "nickname_table", None) or nicknames_cfg.get("table_path")
    nicknames = NicknameConfig(
        table_path=Path(table_path) if table_path else DEFAULT_NICKNAME_TABLE
    )

    importer = ImporterConfig(
        default_drinks=bool(importer_cfg.get("default_drinks", True)),
    )

    arg_level = getattr(args, "log_level", None)
    effective_level = (arg_level or logging_cfg.get("level") or "WARNING").upper()
    logging_config = LoggingConfig(
        level=effective_level,
        format=logging_cfg.get("format") or LoggingConfig.format,
    )

    resolved_inputs = {
        "contacts_csv": getattr(args, "contacts_csv", None) or inputs.get("contacts_csv"),
        "salespeople_csv": getattr(args, "salespeople_csv", None)
        or inputs.get("salespeople_csv"),
        "import_csv": getattr(args, "import_csv", None) or inputs.get("import_csv"),
    }

    return MatchConfig(
        inputs=resolved_inputs,
        outputs=outputs,
        nicknames=nicknames,
        importer=importer,
        logging=logging_config,
    )
