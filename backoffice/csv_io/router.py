"""CSV router — bulk import, export and blank templates."""


from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.auth.dependencies import require_permission
from backoffice.common.rate_limit import IMPORT_RATE_LIMIT, limiter
from backoffice.config import settings
from backoffice.csv_io.exporter import CsvExportService, export_filename
from backoffice.csv_io.importer import CsvImportService
from backoffice.csv_io.schemas import ImportResult
from backoffice.csv_io.templates import template_csv
from backoffice.database import get_db
from backoffice.users.models import User

router = APIRouter(prefix="", tags=["csv"])

ALLOWED_CONTENT_TYPES = {
    "text/csv",
    "text/plain",
    "application/vnd.ms-excel",
    "application/octet-stream",
}
CSV_MEDIA_TYPE = "text/csv; charset=utf-8"


def _csv_response(text: str, filename: str) -> Response:
    return Response(
        content=text.encode("utf-8"),
        media_type=CSV_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ── POST /import/{dataset} ──────────────────────────────────────────

@router.post("/import/{dataset}", response_model=ImportResult)
@limiter.limit(IMPORT_RATE_LIMIT)
async def import_csv(
    dataset: str,
    request: Request,
    file: UploadFile = File(...),
    dry_run: bool = Query(True),
    user: User = Depends(require_permission("csv:import")),
    db: AsyncSession = Depends(get_db),
):
    """Validate an uploaded CSV; with ``dry_run=false`` an error-free file
    is applied as well."""
    if file.content_type not in ALLOWED_CONTENT_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"File type '{file.content_type}' not allowed. Upload a CSV file.",
        )

    contents = await file.read()
    max_size = settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024
    if len(contents) > max_size:
        raise HTTPException(
            status_code=400,
            detail=f"File too large. Maximum size is {settings.MAX_UPLOAD_SIZE_MB} MB.",
        )
    try:
        text = contents.decode("utf-8")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="File must be UTF-8 encoded.") from None

    return await CsvImportService.run_import(
        db, user.tenant_id, dataset, text, dry_run=dry_run, actor_id=user.id
    )


# ── GET /export/{dataset} ───────────────────────────────────────────

@router.get("/export/{dataset}")
async def export_csv(
    dataset: str,
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    year: Optional[int] = Query(None),
    user: User = Depends(require_permission("csv:export")),
    db: AsyncSession = Depends(get_db),
):
    text = await CsvExportService.export(
        db, user.tenant_id, dataset, start=start, end=end, year=year
    )
    return _csv_response(text, export_filename(dataset))


# ── GET /templates/{dataset} ────────────────────────────────────────

@router.get("/templates/{dataset}")
async def get_template(
    dataset: str,
    user: User = Depends(require_permission("csv:import")),
):
    return _csv_response(template_csv(dataset), f"{dataset}_template.csv")
