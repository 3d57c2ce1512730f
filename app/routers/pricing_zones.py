from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException

from app.core.auth import STAFF_ROLES, require_roles
from app.core.deps import get_pricing
from app.models.user import User, UserRole
from app.schemas.pricing import PricingZoneCreate, PricingZoneOut, PricingZoneUpdate, QuoteOut, QuoteRequest
from app.services.pricing import PricingZoneCatalog

router = APIRouter(prefix="/tow-pricing-zones", tags=["pricing"])

ZONE_ADMINS = (UserRole.ADMIN, UserRole.MANAGER)


@router.get("", response_model=list[PricingZoneOut])
def list_pricing_zones(
    catalog: PricingZoneCatalog = Depends(get_pricing),
    _user: User = Depends(require_roles(*ZONE_ADMINS)),
):
    return catalog.list_zones()


@router.get("/active", response_model=list[PricingZoneOut])
def list_active_pricing_zones(
    catalog: PricingZoneCatalog = Depends(get_pricing),
    _user: User = Depends(require_roles(*STAFF_ROLES)),
):
    return catalog.list_active_zones()


@router.post("", response_model=PricingZoneOut, status_code=201)
def create_pricing_zone(
    payload: PricingZoneCreate,
    catalog: PricingZoneCatalog = Depends(get_pricing),
    _user: User = Depends(require_roles(*ZONE_ADMINS)),
):
    if catalog.get_zone_by_code(payload.zone_code):
        raise HTTPException(status_code=409, detail="A zone with this code already exists")
    return catalog.create_zone(**payload.model_dump())


@router.patch("/{zone_id}", response_model=PricingZoneOut)
def update_pricing_zone(
    zone_id: str,
    payload: PricingZoneUpdate,
    catalog: PricingZoneCatalog = Depends(get_pricing),
    _user: User = Depends(require_roles(*ZONE_ADMINS)),
):
    return catalog.update_zone(zone_id, **payload.model_dump(exclude_unset=True))


@router.post("/{zone_id}/quote", response_model=QuoteOut)
def quote_pricing_zone(
    zone_id: str,
    payload: QuoteRequest,
    catalog: PricingZoneCatalog = Depends(get_pricing),
    _user: User = Depends(require_roles(*STAFF_ROLES)),
):
    try:
        quote = catalog.quote(zone_id, payload.distance, vehicle_size=payload.vehicle_size.value, at=payload.at)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return QuoteOut(**asdict(quote))
