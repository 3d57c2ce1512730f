from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response

from app.core.auth import STAFF_ROLES, require_roles
from app.core.deps import get_fleet
from app.models.user import User, UserRole
from app.schemas.fleet import (
    ThirdPartyWreckerCreate,
    ThirdPartyWreckerOut,
    ThirdPartyWreckerUpdate,
    TowTruckCreate,
    TowTruckOut,
    TowTruckUpdate,
    WreckerDriverCreate,
    WreckerDriverOut,
    WreckerDriverUpdate,
)
from app.services.fleet import FleetRegistry

router = APIRouter(tags=["fleet"])

FLEET_ADMINS = (UserRole.ADMIN, UserRole.MANAGER)


# -------------------
# TOW TRUCKS
# -------------------
@router.get("/tow-trucks", response_model=list[TowTruckOut])
def list_tow_trucks(
    fleet: FleetRegistry = Depends(get_fleet),
    _user: User = Depends(require_roles(*STAFF_ROLES)),
):
    return fleet.list_trucks()


@router.get("/tow-trucks/available", response_model=list[TowTruckOut])
def list_available_tow_trucks(
    fleet: FleetRegistry = Depends(get_fleet),
    _user: User = Depends(require_roles(*STAFF_ROLES)),
):
    return fleet.list_available_trucks()


@router.post("/tow-trucks", response_model=TowTruckOut, status_code=201)
def create_tow_truck(
    payload: TowTruckCreate,
    fleet: FleetRegistry = Depends(get_fleet),
    _user: User = Depends(require_roles(*FLEET_ADMINS)),
):
    return fleet.create_truck(**payload.model_dump())


@router.patch("/tow-trucks/{truck_id}", response_model=TowTruckOut)
def update_tow_truck(
    truck_id: str,
    payload: TowTruckUpdate,
    fleet: FleetRegistry = Depends(get_fleet),
    _user: User = Depends(require_roles(*FLEET_ADMINS)),
):
    return fleet.update_truck(truck_id, **payload.model_dump(exclude_unset=True))


@router.delete("/tow-trucks/{truck_id}", status_code=204)
def delete_tow_truck(
    truck_id: str,
    fleet: FleetRegistry = Depends(get_fleet),
    _user: User = Depends(require_roles(UserRole.ADMIN)),
):
    fleet.retire_truck(truck_id)
    return Response(status_code=204)


# -------------------
# WRECKER DRIVERS
# -------------------
@router.get("/wrecker-drivers", response_model=list[WreckerDriverOut])
def list_wrecker_drivers(
    fleet: FleetRegistry = Depends(get_fleet),
    _user: User = Depends(require_roles(*STAFF_ROLES)),
):
    return fleet.list_drivers()


@router.get("/wrecker-drivers/available", response_model=list[WreckerDriverOut])
def list_available_wrecker_drivers(
    fleet: FleetRegistry = Depends(get_fleet),
    _user: User = Depends(require_roles(*STAFF_ROLES)),
):
    return fleet.list_available_drivers()


@router.post("/wrecker-drivers", response_model=WreckerDriverOut, status_code=201)
def create_wrecker_driver(
    payload: WreckerDriverCreate,
    fleet: FleetRegistry = Depends(get_fleet),
    _user: User = Depends(require_roles(*FLEET_ADMINS)),
):
    user = fleet.db.get(User, payload.user_id)
    if not user:
        raise HTTPException(status_code=400, detail="User not found")
    if user.role != UserRole.DRIVER:
        raise HTTPException(status_code=400, detail="User does not have the DRIVER role")
    if fleet.get_driver_by_user_id(user.id):
        raise HTTPException(status_code=409, detail="This user already has a driver record")
    return fleet.create_driver(**payload.model_dump())


@router.patch("/wrecker-drivers/{driver_id}", response_model=WreckerDriverOut)
def update_wrecker_driver(
    driver_id: str,
    payload: WreckerDriverUpdate,
    fleet: FleetRegistry = Depends(get_fleet),
    _user: User = Depends(require_roles(*FLEET_ADMINS)),
):
    return fleet.update_driver(driver_id, **payload.model_dump(exclude_unset=True))


@router.delete("/wrecker-drivers/{driver_id}", status_code=204)
def delete_wrecker_driver(
    driver_id: str,
    fleet: FleetRegistry = Depends(get_fleet),
    _user: User = Depends(require_roles(UserRole.ADMIN)),
):
    fleet.retire_driver(driver_id)
    return Response(status_code=204)


# -------------------
# THIRD-PARTY WRECKERS
# -------------------
@router.get("/third-party-wreckers", response_model=list[ThirdPartyWreckerOut])
def list_third_party_wreckers(
    fleet: FleetRegistry = Depends(get_fleet),
    _user: User = Depends(require_roles(*STAFF_ROLES)),
):
    return fleet.list_third_party_wreckers()


@router.get("/third-party-wreckers/active", response_model=list[ThirdPartyWreckerOut])
def list_active_third_party_wreckers(
    fleet: FleetRegistry = Depends(get_fleet),
    _user: User = Depends(require_roles(*STAFF_ROLES)),
):
    return fleet.list_active_third_party_wreckers()


@router.post("/third-party-wreckers", response_model=ThirdPartyWreckerOut, status_code=201)
def create_third_party_wrecker(
    payload: ThirdPartyWreckerCreate,
    fleet: FleetRegistry = Depends(get_fleet),
    _user: User = Depends(require_roles(*FLEET_ADMINS)),
):
    return fleet.create_third_party_wrecker(**payload.model_dump())


@router.patch("/third-party-wreckers/{wrecker_id}", response_model=ThirdPartyWreckerOut)
def update_third_party_wrecker(
    wrecker_id: str,
    payload: ThirdPartyWreckerUpdate,
    fleet: FleetRegistry = Depends(get_fleet),
    _user: User = Depends(require_roles(*FLEET_ADMINS)),
):
    return fleet.update_third_party_wrecker(wrecker_id, **payload.model_dump(exclude_unset=True))


@router.delete("/third-party-wreckers/{wrecker_id}", status_code=204)
def delete_third_party_wrecker(
    wrecker_id: str,
    fleet: FleetRegistry = Depends(get_fleet),
    _user: User = Depends(require_roles(UserRole.ADMIN)),
):
    fleet.retire_third_party_wrecker(wrecker_id)
    return Response(status_code=204)
