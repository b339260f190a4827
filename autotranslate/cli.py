"""
Command-line interface.

    autotranslate run --post-type post --lang de [--source-lang en] [--dry-run]
                      [--page-size 50] [--limit N] [--start-page N]
    autotranslate import catalog.json
    autotranslate config show
    autotranslate config set machine_translation.enabled true
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from tqdm import tqdm

from autotranslate import __version__
from autotranslate.config import (
    TRANSLATION_NUMBERS,
    check_translation_number,
    initialize_app,
    load_config,
    mask_api_key,
    set_config_value,
)
from autotranslate.core.importer import import_catalog_file
from autotranslate.logger import get_logger
from autotranslate.provider.exceptions import ConfigurationError
from autotranslate.translation.manager import RunParameters, TranslationManager
from autotranslate.translation.progress import RunProgress

logger = get_logger(__name__)


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return number


def _non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"must not be negative, got {value}")
    return number


def _parse_value(raw: str):
    """Interpret a config value as JSON when possible (true, 3, ["a"]), else as text."""
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="autotranslate",
        description="Machine-translate catalog documents and link them as translations.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Translate all documents of a type into a language")
    run_parser.add_argument("--post-type", default="post", help="Document type to translate (default: post)")
    run_parser.add_argument("--lang", required=True, help="Target language code, e.g. de or pt-br")
    run_parser.add_argument("--source-lang", default=None, help="Source language (default: configured default language)")
    run_parser.add_argument("--dry-run", action="store_true", help="Only report what would be translated")
    run_parser.add_argument("--page-size", type=_positive_int, default=None, help="Documents fetched per page")
    run_parser.add_argument("--limit", type=_non_negative_int, default=None, help="Maximum documents to work on")
    run_parser.add_argument("--start-page", type=_positive_int, default=1, help="Resume from this page")
    run_parser.add_argument("--status", default="publish", help="Document status to select (default: publish)")

    import_parser = subparsers.add_parser("import", help="Import a JSON catalog export")
    import_parser.add_argument("file", type=Path, help="Catalog JSON file")

    config_parser = subparsers.add_parser("config", help="Show or change configuration")
    config_sub = config_parser.add_subparsers(dest="config_command", required=True)
    config_sub.add_parser("show", help="Print the configuration (API key masked)")
    set_parser = config_sub.add_parser("set", help="Set a value by dotted key")
    set_parser.add_argument("key", help="Dotted key, e.g. machine_translation.services.deepl.api_key")
    set_parser.add_argument("value", help="Value (JSON literals are parsed)")

    return parser


def cmd_run(args) -> int:
    params = RunParameters(
        post_type=args.post_type,
        target_language=args.lang,
        source_language=args.source_lang,
        dry_run=args.dry_run,
        page_size=args.page_size,
        limit=args.limit,
        start_page=args.start_page,
        status=args.status,
    )
    manager = TranslationManager()
    bar: Optional[tqdm] = None

    def on_progress(progress: RunProgress):
        nonlocal bar
        if bar is None:
            bar = tqdm(total=progress.total_items, desc=f"{progress.post_type} -> {progress.target_language}", unit="doc")
        elif bar.total != progress.total_items:
            bar.total = progress.total_items
        bar.update(1)
        bar.set_postfix(ok=progress.translated_count, skip=progress.skipped_count, err=progress.error_count)
        if progress.outcome == "error":
            tqdm.write(f"[Error] #{progress.document_id} {progress.document_title}: {progress.message}")
        return False

    try:
        summary = manager.run(params, progress_callback=on_progress)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Interrupted.", file=sys.stderr)
        return 130
    finally:
        if bar is not None:
            bar.close()

    if summary.total_found == 0:
        print("No documents found for translation.")
    if summary.limit_reached:
        print(f"Limit of {params.limit} documents reached.")
    print(summary.as_line())
    if summary.log_path:
        print(f"Run log: {summary.log_path}")
    return 0


def cmd_import(args) -> int:
    if not args.file.exists():
        print(f"Error: file not found: {args.file}", file=sys.stderr)
        return 1
    try:
        result = import_catalog_file(args.file)
    except (ValueError, KeyError) as e:
        print(f"Error: invalid catalog: {e}", file=sys.stderr)
        return 1
    print(
        f"Imported {result.documents} documents, {result.terms} terms "
        f"({result.term_groups} term groups), {result.meta_entries} meta entries, "
        f"{result.document_groups} document translation groups."
    )
    return 0


def cmd_config(args) -> int:
    if args.config_command == "show":
        config = load_config()
        deepl = config.get("machine_translation", {}).get("services", {}).get("deepl", {})
        if "api_key" in deepl:
            deepl["api_key"] = mask_api_key(deepl["api_key"])
        print(json.dumps(config, indent=2, ensure_ascii=False))
        return 0

    value = _parse_value(args.value)
    section, _, field = args.key.partition(".")
    if section == "translation" and field in TRANSLATION_NUMBERS:
        error = check_translation_number(field, value)
        if error:
            print(f"Error: {error}", file=sys.stderr)
            return 1

    set_config_value(args.key, value)
    logger.info(f"Configuration key '{args.key}' updated from the command line")
    print(f"Set {args.key}.")
    return 0


COMMANDS = {
    "run": cmd_run,
    "import": cmd_import,
    "config": cmd_config,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    initialize_app()
    return COMMANDS[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
