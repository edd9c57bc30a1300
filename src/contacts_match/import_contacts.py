from __future__ import annotations

import argparse
import csv
import logging
from typing import Optional, Tuple

import pandas as pd

from .common import load_config, load_store, warn_missing
from .config_loader import MatchConfig
from .importer import ContactImporter, CSVParseError
from .logging_utils import configure_logging
from .models import ImportResult

logger = logging.getLogger(__name__)


def _read_import_file(path: str) -> bytes:
    with open(path, "rb") as handle:
        return handle.read()


def _write_csv(df: pd.DataFrame, path: str) -> None:
    df.to_csv(path, index=False, encoding="utf-8", quoting=csv.QUOTE_ALL)
    logger.info("Saved: %s", path)


def build(
    args: argparse.Namespace, config: Optional[MatchConfig] = None
) -> Tuple[pd.DataFrame, Optional[ImportResult]]:
    config = config or load_config(args)
    import_csv = config.inputs.get("import_csv")
    if warn_missing(import_csv, "Import CSV"):
        raise FileNotFoundError(f"Import file not found: {import_csv}")

    importer = ContactImporter(default_drinks=config.importer.default_drinks)
    candidates = importer.preview(_read_import_file(import_csv))

    out_dir = config.outputs.dir
    preview_df = pd.DataFrame([candidate.to_dict() for candidate in candidates])
    _write_csv(preview_df, str(out_dir / "import_preview.csv"))

    if not getattr(args, "apply", False):
        print(f"Found {len(candidates)} contacts; review import_preview.csv and rerun with --apply")
        return preview_df, None

    store = load_store(config)
    result = importer.apply(candidates, store, user_id=getattr(args, "user_id", None))

    contacts_df = pd.DataFrame([candidate.to_dict() for candidate in store.candidates()])
    _write_csv(contacts_df, str(out_dir / "import_contacts.csv"))
    errors_df = pd.DataFrame({"error": result.errors}, columns=["error"])
    _write_csv(errors_df, str(out_dir / "import_errors.csv"))

    print(f"Imported {result.success} contact(s); {result.failed} failed")
    for error in result.errors:
        print(f"  {error}")
    return preview_df, result


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Preview and import contacts from a CSV with free-form headers."
    )
    parser.add_argument("--config", type=str, default=None, help="Path to YAML config.")
    parser.add_argument("--import-csv", type=str, default=None)
    parser.add_argument("--contacts-csv", type=str, default=None)
    parser.add_argument("--salespeople-csv", type=str, default=None)
    parser.add_argument("--out-dir", type=str, default=None)
    parser.add_argument("--user-id", type=str, default=None)
    parser.add_argument(
        "--apply", action="store_true", help="Write the previewed rows to the contact store."
    )
    parser.add_argument("--log-level", type=str, default=None, help="Override logging level")
    args = parser.parse_args()

    config = load_config(args)
    configure_logging(config, level_override=args.log_level)
    try:
        _, result = build(args, config=config)
    except (CSVParseError, FileNotFoundError) as exc:
        logger.error("%s", exc)
        return 2
    return 1 if result is not None and result.failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
