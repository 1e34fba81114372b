"""Worker payments (wages, cash advances, bonuses) and their printable PDF receipts."""
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from sitebook.config import settings
from sitebook.database import get_db
from sitebook import crud, schemas
from sitebook.branding import BrandingConfig
from sitebook.services.receipt_pdf import render_receipt, receipt_number
from sitebook.utils.http_headers import build_content_disposition

router = APIRouter(prefix="/api/payments", tags=["payments"])

RESPONSE_404 = {404: {"description": "Payment not found"}}


def payment_read(p) -> schemas.PaymentRead:
    read = schemas.PaymentRead.model_validate(p)
    read.worker_name = p.worker.full_name if p.worker else None
    return read


async def _get_or_404(db: AsyncSession, payment_id: int):
    p = await crud.get_payment(db, payment_id)
    if not p:
        raise HTTPException(status_code=404, detail="Payment not found")
    return p


@router.get("", response_model=List[schemas.PaymentRead])
async def list_payments(
    worker_id: Optional[int] = Query(None),
    start: Optional[schemas.DateType] = Query(None),
    end: Optional[schemas.DateType] = Query(None),
    project_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    payments = await crud.list_payments(db, worker_id=worker_id, start=start, end=end, project_id=project_id)
    return [payment_read(p) for p in payments]


@router.post("", response_model=schemas.PaymentRead, status_code=201)
async def create_payment(data: schemas.PaymentCreate, db: AsyncSession = Depends(get_db)):
    try:
        p = await crud.create_payment(db, data)
    except crud.WorkerNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return payment_read(p)


@router.get("/{payment_id}", response_model=schemas.PaymentRead, responses={**RESPONSE_404})
async def get_payment(payment_id: int, db: AsyncSession = Depends(get_db)):
    return payment_read(await _get_or_404(db, payment_id))


@router.delete("/{payment_id}", status_code=204, responses={**RESPONSE_404})
async def delete_payment(payment_id: int, db: AsyncSession = Depends(get_db)):
    await crud.delete_payment(db, await _get_or_404(db, payment_id))


@router.get("/{payment_id}/receipt.pdf", summary="Printable receipt", responses={**RESPONSE_404})
async def payment_receipt(
    payment_id: int,
    request: Request,
    download: bool = Query(False, description="attachment instead of inline"),
    db: AsyncSession = Depends(get_db),
):
    """Branding (name, address, footer) is the in-memory copy loaded at start-up."""
    p = await _get_or_404(db, payment_id)
    branding = getattr(request.app.state, "branding", None) or BrandingConfig()
    pdf = render_receipt(
        p, branding,
        payee_name=p.worker.full_name if p.worker else None,
        payee_phone=p.worker.phone_number if p.worker else None,
        currency=settings.currency_symbol,
    )
    filename = f"receipt_{receipt_number(p.id)}.pdf"
    return Response(
        content=pdf, media_type="application/pdf",
        headers={"Content-Disposition": build_content_disposition(filename, inline=not download)},
    )
