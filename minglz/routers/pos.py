from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from minglz.core.db import get_db
from minglz.schemas.coupons import ResolveStoreRequest, ResolveStoreResponse, StoreOut
from minglz.services.directory import get_store_by_slug
from minglz.services.qr import parse_store_identifier

router = APIRouter(prefix="/api/pos", tags=["POS"])


@router.post("/resolve-store", response_model=ResolveStoreResponse)
async def resolve_store(data: ResolveStoreRequest, db: AsyncSession = Depends(get_db)):
    identifier = parse_store_identifier(data.payload)
    if not identifier:
        raise HTTPException(status_code=400, detail="인식할 수 없는 QR 코드입니다.")

    store = await get_store_by_slug(db, identifier)
    if not store:
        raise HTTPException(status_code=404, detail="매장을 찾을 수 없습니다.")

    return ResolveStoreResponse(identifier=identifier, store=StoreOut.model_validate(store))
