"""
Resúmenes de inventario, solo lectura.

Todo se recalcula desde los lotes en cada llamada: no hay cache. Las
cantidades salen de una única consulta (tanques + suma de saldos de sus
lotes), así una lectura concurrente con una operación ve el estado previo
o el posterior al commit, nunca uno intermedio.
"""
from collections import OrderedDict
from typing import List, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from fuel_ledger.core.constants import round_quantity
from fuel_ledger.crud import crud_lot, crud_tank
from fuel_ledger.models.lot import CustomsLot
from fuel_ledger.models.tank import Tank, TankKind
from fuel_ledger.schemas import lot as lot_schema
from fuel_ledger.schemas import summary as summary_schema
from fuel_ledger.schemas import tank as tank_schema


def _fill_percentage(quantity: float, capacity: float) -> float:
    if not capacity:
        return 0.0
    return round(quantity / capacity * 100, 2)


def _tank_snapshot(db: Session) -> List[Tuple[Tank, float]]:
    lot_totals = (
        db.query(
            CustomsLot.tank_id.label("tank_id"),
            func.sum(CustomsLot.remaining_liters).label("remaining"),
        )
        .group_by(CustomsLot.tank_id)
        .subquery()
    )
    rows = (
        db.query(Tank, func.coalesce(lot_totals.c.remaining, 0.0))
        .outerjoin(lot_totals, lot_totals.c.tank_id == Tank.id)
        .order_by(Tank.id)
        .all()
    )
    return [(tank, round_quantity(remaining or 0.0)) for tank, remaining in rows]


def _by_tank(snapshot) -> List[summary_schema.TankTotal]:
    return [
        summary_schema.TankTotal(
            tank_id=tank.id,
            identifier=tank.identifier,
            kind=tank.kind,
            fuel_type=tank.fuel_type,
            status=tank.status,
            capacity_liters=tank.capacity_liters,
            quantity_liters=quantity,
            fill_percentage=_fill_percentage(quantity, tank.capacity_liters),
        )
        for tank, quantity in snapshot
    ]


def _by_fuel_type(snapshot) -> List[summary_schema.FuelTypeTotal]:
    groups = OrderedDict()
    for tank, quantity in sorted(snapshot, key=lambda row: row[0].fuel_type):
        group = groups.setdefault(tank.fuel_type, {"tank_count": 0, "capacity_liters": 0.0, "quantity_liters": 0.0})
        group["tank_count"] += 1
        group["capacity_liters"] += tank.capacity_liters
        group["quantity_liters"] += quantity
    return [
        summary_schema.FuelTypeTotal(
            fuel_type=fuel_type,
            tank_count=g["tank_count"],
            capacity_liters=round_quantity(g["capacity_liters"]),
            quantity_liters=round_quantity(g["quantity_liters"]),
        )
        for fuel_type, g in groups.items()
    ]


def _by_tank_kind(snapshot) -> List[summary_schema.TankKindTotal]:
    totals = []
    for kind in TankKind:
        rows = [(tank, quantity) for tank, quantity in snapshot if tank.kind == kind]
        totals.append(summary_schema.TankKindTotal(
            kind=kind,
            tank_count=len(rows),
            capacity_liters=round_quantity(sum(tank.capacity_liters for tank, _ in rows)),
            quantity_liters=round_quantity(sum(quantity for _, quantity in rows)),
        ))
    return totals


def _grand_total(snapshot) -> summary_schema.GrandTotal:
    return summary_schema.GrandTotal(
        tank_count=len(snapshot),
        capacity_liters=round_quantity(sum(tank.capacity_liters for tank, _ in snapshot)),
        quantity_liters=round_quantity(sum(quantity for _, quantity in snapshot)),
    )


def total_by_tank(db: Session) -> List[summary_schema.TankTotal]:
    return _by_tank(_tank_snapshot(db))

def total_by_fuel_type(db: Session) -> List[summary_schema.FuelTypeTotal]:
    return _by_fuel_type(_tank_snapshot(db))

def total_by_tank_kind(db: Session) -> List[summary_schema.TankKindTotal]:
    return _by_tank_kind(_tank_snapshot(db))

def grand_total(db: Session) -> summary_schema.GrandTotal:
    return _grand_total(_tank_snapshot(db))


def get_summary(db: Session) -> summary_schema.FuelSummary:
    snapshot = _tank_snapshot(db)
    return summary_schema.FuelSummary(
        by_fuel_type=_by_fuel_type(snapshot),
        by_tank_kind=_by_tank_kind(snapshot),
        by_tank=_by_tank(snapshot),
        grand_total=_grand_total(snapshot),
    )


def customs_breakdown(db: Session, tank_id: int) -> List[lot_schema.CustomsLot]:
    return [lot_schema.CustomsLot.model_validate(l) for l in crud_lot.breakdown(db, tank_id)]


def get_tank_state(db: Session, tank_id: int) -> tank_schema.TankState:
    tank = crud_tank.get_tank(db, tank_id)
    lots = crud_lot.breakdown(db, tank_id)
    quantity = round_quantity(sum(l.remaining_liters for l in lots))
    return tank_schema.TankState(
        id=tank.id,
        identifier=tank.identifier,
        name=tank.name,
        kind=tank.kind,
        capacity_liters=tank.capacity_liters,
        fuel_type=tank.fuel_type,
        location=tank.location,
        status=tank.status,
        current_quantity_liters=tank.current_quantity_liters,
        free_capacity_liters=round_quantity(tank.free_capacity_liters),
        fill_percentage=_fill_percentage(quantity, tank.capacity_liters),
        lots=[lot_schema.CustomsLot.model_validate(l) for l in lots],
    )
