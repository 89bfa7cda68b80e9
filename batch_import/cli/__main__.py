from __future__ import annotations

import argparse
import logging
import os
import sys
import time
from contextlib import ExitStack
from datetime import date
from pathlib import Path

import psycopg2

from ..config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from ..datasets import DATASETS, get_dataset
from ..db.catalog_source import CatalogSource, PostgresCatalogSource, YamlCatalogSource
from ..db.connection import db_connection, load_env_file
from ..db.record_store import InMemoryRecordStore, PostgresRecordStore, RecordStore
from ..errors import CatalogLoadError, FatalParseError
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import log_summary, setup_logging
from ..mapping.headers import map_headers, validate_headers
from ..models.config_models import ImportConfig
from ..models.validation import ValidationResult
from ..services.orchestrator import commit_session, parse_input, validate_file
from ..services.progress import TqdmProgressSink
from ..services.session import new_session
from ..services.summary import render_summary_line
from ..services.template import TEMPLATE_FORMATS, generate_template, template_file_name
from ..tabular.reader import InputKind, detect_kind

"""CLI entrypoint.

Subcommands:
    validate FILE            parse + validate, report issues (nothing written)
    import FILE [--dry-run]  validate, then commit the valid rows
    template OUT             write an import template (csv / xlsx)
    inspect FILE             show detected format, header mapping and first rows

Exit codes: 0 success, 1 fatal (config / parse / header / catalog),
2 row errors or records rejected by the store.
"""

EXIT_SUCCESS = 0
EXIT_FATAL = 1
EXIT_PARTIAL_FAILURE = 2

logger = logging.getLogger("batch_import.cli")


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="batch-import", description="Batch record importer (CSV / XLSX / XML)")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Config YAML path")
    p.add_argument("--dataset", choices=sorted(DATASETS), help="Dataset (default: from config, costs for XML)")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="command", required=True)

    v = sub.add_parser("validate", help="Validate a file without importing")
    v.add_argument("file", type=Path)

    i = sub.add_parser("import", help="Validate and import a file")
    i.add_argument("file", type=Path)
    i.add_argument("--dry-run", action="store_true", help="Commit into an in-memory store")

    t = sub.add_parser("template", help="Write an import template")
    t.add_argument("out", type=Path, help="Output file or directory")
    t.add_argument("--format", choices=TEMPLATE_FORMATS, default=None, help="Template format (default: from suffix)")
    t.add_argument("--sample", action="store_true", help="Include sample rows")

    s = sub.add_parser("inspect", help="Print detected structure and first rows then exit")
    s.add_argument("file", type=Path)
    s.add_argument("--rows", type=int, default=3, help="Number of rows to show")
    return p.parse_args(argv)


def _dataset_name(args: argparse.Namespace, kind: InputKind, default: str) -> str:
    if args.dataset:
        return args.dataset
    if kind is InputKind.MARKUP:
        return "costs"  # XML は請求書 / 経費のみ
    return default


def _offline_source(cfg: ImportConfig) -> CatalogSource | None:
    if not cfg.catalog_file:
        return None
    return YamlCatalogSource(Path(cfg.catalog_file))


def _open_collaborators(
    cfg: ImportConfig, stack: ExitStack, dry_run: bool
) -> tuple[CatalogSource | None, RecordStore, str]:
    """Catalog source + record store for this run, live when a connection is available."""
    if os.getenv("DISABLE_DB_CONNECT") == "1":
        logger.debug("DB connect disabled via DISABLE_DB_CONNECT=1 -> mock mode")
        return _offline_source(cfg), InMemoryRecordStore(), "mock"
    try:
        conn = stack.enter_context(db_connection(cfg.database))
    except psycopg2.Error as e:
        logger.info(f"DB connection failed -> fallback to mock mode: {e}")
        return _offline_source(cfg), InMemoryRecordStore(), "mock"
    store: RecordStore = InMemoryRecordStore() if dry_run else PostgresRecordStore(conn, cfg.tenant_id)
    return PostgresCatalogSource(conn.cursor()), store, "live"


def _report_issues(result: ValidationResult) -> None:
    for issue in result.issues:
        if issue.is_error:
            logger.error(f"row={issue.row} field={issue.field} {issue.message}")
        else:
            logger.warning(f"row={issue.row} field={issue.field} {issue.message}")


def _run_import(args: argparse.Namespace, cfg: ImportConfig) -> int:
    path: Path = args.file
    if not path.is_file():
        logger.error(f"file not found: {path}")
        return EXIT_FATAL
    data = path.read_bytes()
    dataset_name = _dataset_name(args, detect_kind(path.name, data), cfg.dataset)
    committing = args.command == "import"
    started = time.perf_counter()
    error_log = ErrorLogBuffer()
    session = new_session(cfg.tenant_id, dataset_name)

    with ExitStack() as stack:
        source, store, db_mode = _open_collaborators(cfg, stack, dry_run=getattr(args, "dry_run", False))
        logger.info(f"mode={db_mode} dataset={dataset_name} file={path.name}")
        if source is None:
            logger.error("catalog: no database connection and no catalog_file configured")
            return EXIT_FATAL
        try:
            catalog = source.load_catalog(cfg.tenant_id, dataset_name)
        except CatalogLoadError as e:
            logger.error(f"catalog: {e}")
            return EXIT_FATAL

        sink = stack.enter_context(TqdmProgressSink())
        session = validate_file(session, path.name, data, catalog, cfg, sink, error_log)
        if session.validation is not None:
            _report_issues(session.validation)
        if committing and session.validation is not None and session.validation.valid_count > 0:
            session = commit_session(
                session,
                store,
                cfg,
                on_progress=sink,
                on_complete=lambda: logger.debug("record store updated; catalog snapshot is now stale"),
                error_log=error_log,
            )

    log_path = error_log.flush()
    if log_path is not None:
        logger.info(f"error log written: {log_path}")

    summary_line = render_summary_line(path.name, session.validation, session.upload, time.perf_counter() - started)
    log_summary(summary_line[len("SUMMARY "):])  # log_summary が "SUMMARY " を付与する

    if session.error is not None:
        return EXIT_FATAL
    validation = session.validation
    if validation is not None and not validation.is_valid:
        return EXIT_PARTIAL_FAILURE
    if session.upload is not None and not session.upload.success:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS


def _write_template(args: argparse.Namespace) -> int:
    dataset = get_dataset(args.dataset or "services")
    out: Path = args.out
    fmt = args.format or (out.suffix.lstrip(".").lower() if out.suffix else "csv")
    if fmt not in TEMPLATE_FORMATS:
        logger.error(f"template: unsupported format {fmt!r}")
        return EXIT_FATAL
    if out.is_dir():
        out = out / template_file_name(dataset, fmt, date.today())
    out.write_bytes(generate_template(dataset, fmt, include_sample=args.sample))
    logger.info(f"template written: {out}")
    return EXIT_SUCCESS


def _inspect(args: argparse.Namespace) -> int:
    path: Path = args.file
    if not path.is_file():
        print(f"inspect: file not found: {path}")
        return EXIT_FATAL
    data = path.read_bytes()
    try:
        parsed = parse_input(path.name, data)
    except FatalParseError as e:
        print(f"inspect: parse error: {e}")
        return EXIT_FATAL
    dataset = get_dataset(_dataset_name(args, parsed.kind, "services"))
    mapping = validate_headers(parsed.headers, dataset)
    print(f"FILE: {path.name} kind={parsed.kind.value} dataset={dataset.name}")
    if parsed.structure:
        print(f"  structure={parsed.structure}")
    print(f"  headers={parsed.headers}")
    print(f"  mapped={map_headers(parsed.headers, dataset)}")
    print(f"  missing={mapping.missing} extra={mapping.extra}")
    for n, row in enumerate(parsed.rows):
        if n >= args.rows:
            break
        print(f"  row[{row.row_number}]=", dict(row.values))
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    # NOTE: 空リスト [] を渡されたときに sys.argv を読まないよう None のときだけ参照する
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    setup_logging(debug=args.debug)
    if args.debug:
        logger.debug("debug mode enabled")

    if args.command == "template":
        return _write_template(args)
    if args.command == "inspect":
        return _inspect(args)

    # .env を最優先で読み込む (DB 接続パラメータ優先順位保証)
    load_env_file(Path(".env"), override=True)
    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL
    return _run_import(args, cfg)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
