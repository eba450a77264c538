from __future__ import annotations

import argparse
import glob
import io
import os
import sys
from datetime import timedelta
from typing import List, Sequence

from ..config import Settings, load_settings
from ..enricher import CatalogError, CrawlCancelled, Enricher, MercadonaClient
from ..logging import get_logger, set_level
from ..paths import expand_abs
from ..store import PriceDatabase
from ..ticket import DuplicateFileError, MercadonaParser, PdfTextExtractor, TicketImporter, TicketImportError
from ..ticket.totals import check_total

LOG = get_logger("cli-main")


def _expand_paths(patterns: Sequence[str]) -> List[str]:
    out: List[str] = []
    for pattern in patterns:
        matches = sorted(glob.glob(expand_abs(pattern)))
        out.extend(matches or [expand_abs(pattern)])
    return out


def _read(path: str) -> bytes:
    with open(path, "rb") as fh:
        return fh.read()


def _build_enricher(settings: Settings, db: PriceDatabase) -> Enricher:
    return Enricher(
        db,
        MercadonaClient.from_settings(settings),
        index_ttl=timedelta(hours=settings.index_ttl_hours),
    )


def _handle_init(ns: argparse.Namespace) -> int:
    db = PriceDatabase(ns.settings.db_path)
    print(db.db_path)
    return 0


def _handle_import(ns: argparse.Namespace) -> int:
    db = PriceDatabase(ns.settings.db_path)
    importer = TicketImporter(db)
    failures = 0
    imported = 0
    for path in _expand_paths(ns.pdf):
        name = os.path.basename(path)
        try:
            result = importer.import_file(name, _read(path))
        except DuplicateFileError:
            LOG.info(f"Skipping {name}: already imported")
            continue
        except (OSError, TicketImportError) as e:
            LOG.error(f"Import of {name} failed: {e}")
            failures += 1
            continue
        imported += 1
        print(f"{name}: invoice {result.invoice_number or '-'}, {result.lines_imported} line(s)")
    LOG.info(f"Imported {imported} ticket(s), {failures} failure(s)")
    code = 1 if failures else 0
    if imported and ns.enrich:
        code = max(code, _run_enrich(ns.settings, db))
    return code


def _run_enrich(settings: Settings, db: PriceDatabase) -> int:
    enricher = _build_enricher(settings, db)
    try:
        res = enricher.run()
    except KeyboardInterrupt:
        LOG.info("Enrichment interrupted by user")
        return 130
    except CrawlCancelled:
        LOG.info("Enrichment cancelled")
        return 130
    except CatalogError as e:
        LOG.error(f"Enrichment failed: {e}")
        return 1
    print(f"total: {res.total}, updated: {res.updated}, skipped: {res.skipped}")
    return 0


def _handle_enrich(ns: argparse.Namespace) -> int:
    return _run_enrich(ns.settings, PriceDatabase(ns.settings.db_path))


def _handle_check_parse(ns: argparse.Namespace) -> int:
    extractor = PdfTextExtractor()
    parser = MercadonaParser()
    ok = 0
    problems: List[str] = []
    for path in _expand_paths(ns.pdf):
        name = os.path.basename(path)
        try:
            data = _read(path)
            text = extractor.extract(io.BytesIO(data), len(data))
            ticket = parser.parse(text)
        except Exception as e:
            print(f"{name}: {e}", file=sys.stderr)
            continue
        check = check_total(text, ticket)
        if check is None:
            LOG.debug(f"{name}: no printed total found")
            continue
        if check.ok:
            ok += 1
        else:
            problems.append(
                f"DIFF {check.diff:.2f}  declared={check.declared:.2f} "
                f"computed={check.computed:.2f} lines={check.lines}  {name}"
            )
    print(f"OK: {ok} ticket(s) match their printed total")
    for p in problems:
        print(p)
    if not problems:
        print("No differences.")
    return 1 if problems else 0


def _handle_serve(ns: argparse.Namespace) -> int:
    from ..api import create_app
    import uvicorn

    db = PriceDatabase(ns.settings.db_path)
    enricher = _build_enricher(ns.settings, db)
    allow_origins = ns.allow_origins
    if allow_origins and "*" in allow_origins:
        allow_origins = ["*"]
    app = create_app(db, enricher=enricher, allow_origins=allow_origins)

    enricher.start()
    try:
        uvicorn.run(app, host=ns.host, port=ns.port, log_level=ns.log_level)
    finally:
        enricher.stop(timeout=5)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    provided = list(argv) if argv is not None else sys.argv[1:]
    LOG.debug(f"CLI invoked with arguments: {provided}")

    parser = argparse.ArgumentParser(
        prog="basket-cost",
        description="Track grocery prices from Mercadona receipts.",
    )
    parser.add_argument("--db", help="SQLite database path (overrides BASKET_COST_DB)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    init = subparsers.add_parser("init", help="Create/ensure the database schema exists")
    init.set_defaults(handler=_handle_init)

    imp = subparsers.add_parser("import", help="Import receipt PDFs (files already imported are skipped)")
    imp.add_argument("pdf", nargs="+", help="PDF paths or glob patterns")
    imp.add_argument("--enrich", action="store_true", help="Run one enrichment pass afterwards")
    imp.set_defaults(handler=_handle_import)

    enrich = subparsers.add_parser("enrich", help="Fetch product images from the Mercadona catalog once")
    enrich.set_defaults(handler=_handle_enrich)

    check = subparsers.add_parser(
        "check-parse",
        help="Parse receipts and compare line sums with the printed total",
    )
    check.add_argument("pdf", nargs="+", help="PDF paths or glob patterns")
    check.set_defaults(handler=_handle_check_parse)

    serve = subparsers.add_parser("serve", help="Run the HTTP API and the background enrichment worker")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8080)
    serve.add_argument("--log-level", default="info")
    serve.add_argument(
        "--allow-origin",
        action="append",
        dest="allow_origins",
        help="Allowed CORS origin (can be provided multiple times, use '*' for any).",
    )
    serve.set_defaults(handler=_handle_serve)

    args = parser.parse_args(provided)
    if args.verbose:
        set_level("DEBUG")
    settings = load_settings()
    if args.db:
        settings.db_path = expand_abs(args.db)
    args.settings = settings
    code = args.handler(args)
    LOG.debug(f"Subcommand '{args.command}' finished with exit code {code}.")
    return code


if __name__ == "__main__":
    sys.exit(main())
