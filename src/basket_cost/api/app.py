from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from starlette.applications import Starlette
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from ..enricher.service import Enricher
from ..logging import get_logger
from ..store.db import PriceDatabase
from ..ticket.importer import DuplicateFileError, TicketImporter, TicketImportError


LOG = get_logger("api")

MAX_UPLOAD_BYTES = 10 * 1024 * 1024


def _parse_int(value: Optional[str], *, default: int, minimum: int, maximum: int) -> int:
    try:
        parsed = int(value) if value is not None else default
    except (TypeError, ValueError):
        parsed = default
    if parsed < minimum:
        return minimum
    if parsed > maximum:
        return maximum
    return parsed


def create_app(
    db: Optional[PriceDatabase] = None,
    *,
    importer: Optional[TicketImporter] = None,
    enricher: Optional[Enricher] = None,
    allow_origins: Optional[List[str]] = None,
) -> Starlette:
    """Create a Starlette app exposing price history search and ticket upload.

    The enrichment worker is owned by the caller; the app only schedules runs
    after successful imports.
    """

    db = db or PriceDatabase()
    importer = importer or TicketImporter(db)

    async def health(_: Request) -> JSONResponse:
        return JSONResponse({"status": "ok", "db_path": db.db_path})

    async def products(request: Request) -> JSONResponse:
        query = request.query_params.get("q") or ""
        results = await run_in_threadpool(db.search_products, query)
        return JSONResponse([r.to_json() for r in results])

    async def product_detail(request: Request) -> JSONResponse:
        product_id = request.path_params["product_id"]
        product = await run_in_threadpool(db.get_product, product_id)
        if product is None:
            raise HTTPException(status_code=404, detail="Product not found")
        return JSONResponse(product.to_json())

    async def analytics(request: Request) -> JSONResponse:
        limit = _parse_int(request.query_params.get("limit"), default=10, minimum=1, maximum=100)
        result = await run_in_threadpool(db.get_analytics, limit)
        return JSONResponse(result.to_json())

    async def _import_one(upload: UploadFile) -> Tuple[int, Dict[str, Any]]:
        filename = upload.filename or "upload.pdf"
        data = await upload.read()
        if len(data) > MAX_UPLOAD_BYTES:
            return 413, {"filename": filename, "error": "file too large"}
        try:
            result = await run_in_threadpool(importer.import_file, filename, data)
        except DuplicateFileError as exc:
            LOG.info(f"Rejected duplicate upload {filename}")
            return 409, {"filename": filename, "error": str(exc)}
        except TicketImportError as exc:
            LOG.warning(f"Import of {filename} failed: {exc}")
            return 422, {"filename": filename, "error": str(exc)}
        return 201, {"filename": filename, **result.to_json()}

    async def upload_tickets(request: Request) -> JSONResponse:
        try:
            form = await request.form()
        except Exception as exc:
            raise HTTPException(status_code=400, detail="could not parse form") from exc
        uploads = [f for f in form.getlist("file") if isinstance(f, UploadFile)]
        if not uploads:
            raise HTTPException(status_code=400, detail="missing 'file' field")

        outcomes = [await _import_one(u) for u in uploads]
        if any(status == 201 for status, _ in outcomes) and enricher is not None:
            enricher.schedule()

        if len(outcomes) == 1:
            status, body = outcomes[0]
            if status != 201:
                raise HTTPException(status_code=status, detail=body["error"])
            return JSONResponse(
                {"invoiceNumber": body["invoiceNumber"], "linesImported": body["linesImported"]},
                status_code=201,
            )

        results = [dict(body, status=status) for status, body in outcomes]
        overall = 201 if any(status == 201 for status, _ in outcomes) else 422
        return JSONResponse({"results": results}, status_code=overall)

    routes = [
        Route("/api/health", health, methods=["GET"]),
        Route("/api/products", products, methods=["GET"]),
        Route("/api/products/{product_id:str}", product_detail, methods=["GET"]),
        Route("/api/analytics", analytics, methods=["GET"]),
        Route("/api/tickets", upload_tickets, methods=["POST"]),
    ]

    app = Starlette(debug=False, routes=routes)

    origins = allow_origins or ["http://localhost:5173", "http://127.0.0.1:5173"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if "*" in origins else origins,
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    return app


__all__ = ["create_app"]
