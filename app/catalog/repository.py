"""Persistence layer for services, sub-services and plans."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from app.storage.database import Database, dump_json, from_iso, load_json, to_iso

from .models import (
    ContentEntry,
    PlanRecord,
    PlanStatus,
    PricingTier,
    ServiceRecord,
    SubServiceRecord,
)


def _content_from_json(raw: list) -> List[ContentEntry]:
    return [ContentEntry(id=item["id"], key=item["key"]) for item in raw or []]


def _content_to_json(entries: List[ContentEntry]) -> list:
    return [{"id": entry.id, "key": entry.key} for entry in entries]


def _service_from_row(row: sqlite3.Row) -> ServiceRecord:
    sub_services = [
        SubServiceRecord(
            id=item["id"],
            heading=item["heading"],
            description=item["description"],
            logo=item.get("logo"),
            content=_content_from_json(item.get("content", [])),
        )
        for item in load_json(row["sub_services"], [])
    ]
    return ServiceRecord(
        id=row["id"],
        heading=row["heading"],
        description=row["description"],
        logo=row["logo"],
        content=_content_from_json(load_json(row["content"], [])),
        sub_services=sub_services,
        created_at=from_iso(row["created_at"]),
        updated_at=from_iso(row["updated_at"]),
    )


def _tier_from_json(item: dict) -> PricingTier:
    return PricingTier(
        id=item["id"],
        name=item["name"],
        price=item["price"],
        description=item.get("description", ""),
        features=list(item.get("features", [])),
        is_popular=bool(item.get("is_popular", False)),
    )


def _tier_to_json(tier: PricingTier) -> dict:
    return {
        "id": tier.id,
        "name": tier.name,
        "price": tier.price,
        "description": tier.description,
        "features": list(tier.features),
        "is_popular": tier.is_popular,
    }


def _plan_from_row(row: sqlite3.Row) -> PlanRecord:
    return PlanRecord(
        id=row["id"],
        service_id=row["service_id"],
        sub_service_id=row["sub_service_id"],
        name=row["name"],
        pricing=[_tier_from_json(item) for item in load_json(row["pricing"], [])],
        status=PlanStatus(row["status"]),
        duration_months=row["duration_months"],
        created_at=from_iso(row["created_at"]),
        updated_at=from_iso(row["updated_at"]),
    )


class CatalogRepository:
    """SQLite-backed repository for the service and plan catalog."""

    def __init__(self, database: Database) -> None:
        self._db = database

    # -- services ---------------------------------------------------------

    def save_service(self, service: ServiceRecord) -> ServiceRecord:
        sub_services = [
            {
                "id": sub.id,
                "heading": sub.heading,
                "description": sub.description,
                "logo": sub.logo,
                "content": _content_to_json(sub.content),
            }
            for sub in service.sub_services
        ]
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO services (id, heading, description, logo, content, sub_services, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    heading = excluded.heading,
                    description = excluded.description,
                    logo = excluded.logo,
                    content = excluded.content,
                    sub_services = excluded.sub_services,
                    updated_at = excluded.updated_at
                """,
                (
                    service.id,
                    service.heading,
                    service.description,
                    service.logo,
                    dump_json(_content_to_json(service.content)),
                    dump_json(sub_services),
                    to_iso(service.created_at),
                    to_iso(service.updated_at),
                ),
            )
        return service

    def get_service(self, service_id: str) -> Optional[ServiceRecord]:
        row = self._db.fetch_one("SELECT * FROM services WHERE id = ?", (service_id,))
        return _service_from_row(row) if row else None

    def list_services(self) -> List[ServiceRecord]:
        rows = self._db.fetch_all("SELECT * FROM services ORDER BY created_at DESC, id")
        return [_service_from_row(row) for row in rows]

    def sub_service_id_taken(self, sub_service_id: str) -> bool:
        return any(service.find_sub_service(sub_service_id) for service in self.list_services())

    def service_and_sub_service_exist(self, service_id: str, sub_service_id: str) -> bool:
        service = self.get_service(service_id)
        return bool(service and service.find_sub_service(sub_service_id))

    # -- plans ------------------------------------------------------------

    def insert_plan(self, plan: PlanRecord) -> PlanRecord:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO plans (
                    id, service_id, sub_service_id, name, pricing, status, duration_months, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    plan.id,
                    plan.service_id,
                    plan.sub_service_id,
                    plan.name,
                    dump_json([_tier_to_json(tier) for tier in plan.pricing]),
                    plan.status.value,
                    plan.duration_months,
                    to_iso(plan.created_at),
                    to_iso(plan.updated_at),
                ),
            )
        return plan

    def update_plan(self, plan: PlanRecord) -> PlanRecord:
        plan.updated_at = datetime.now(tz=timezone.utc)
        with self._db.transaction() as conn:
            conn.execute(
                """
                UPDATE plans
                SET name = ?, pricing = ?, status = ?, duration_months = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    plan.name,
                    dump_json([_tier_to_json(tier) for tier in plan.pricing]),
                    plan.status.value,
                    plan.duration_months,
                    to_iso(plan.updated_at),
                    plan.id,
                ),
            )
        return plan

    def delete_plan(self, plan_id: str) -> bool:
        with self._db.transaction() as conn:
            cursor = conn.execute("DELETE FROM plans WHERE id = ?", (plan_id,))
        return cursor.rowcount > 0

    def get_plan(self, plan_id: str, *, conn: Optional[sqlite3.Connection] = None) -> Optional[PlanRecord]:
        if conn is not None:
            row = conn.execute("SELECT * FROM plans WHERE id = ?", (plan_id,)).fetchone()
        else:
            row = self._db.fetch_one("SELECT * FROM plans WHERE id = ?", (plan_id,))
        return _plan_from_row(row) if row else None

    def get_plans(self, plan_ids: List[str]) -> dict[str, PlanRecord]:
        if not plan_ids:
            return {}
        placeholders = ",".join("?" for _ in plan_ids)
        rows = self._db.fetch_all(f"SELECT * FROM plans WHERE id IN ({placeholders})", tuple(plan_ids))
        return {row["id"]: _plan_from_row(row) for row in rows}

    def find_plan_by_name(self, name: str) -> Optional[PlanRecord]:
        row = self._db.fetch_one("SELECT * FROM plans WHERE lower(name) = lower(?)", (name.strip(),))
        return _plan_from_row(row) if row else None

    def find_plan_by_service_and_sub_service(self, service_id: str, sub_service_id: str) -> Optional[PlanRecord]:
        row = self._db.fetch_one(
            "SELECT * FROM plans WHERE service_id = ? AND sub_service_id = ?",
            (service_id, sub_service_id),
        )
        return _plan_from_row(row) if row else None

    def find_plan_by_sub_service(self, sub_service_id: str) -> Optional[PlanRecord]:
        row = self._db.fetch_one("SELECT * FROM plans WHERE sub_service_id = ?", (sub_service_id,))
        return _plan_from_row(row) if row else None

    def list_plans_for_service(self, service_id: str) -> List[PlanRecord]:
        rows = self._db.fetch_all(
            "SELECT * FROM plans WHERE service_id = ? ORDER BY created_at DESC, id",
            (service_id,),
        )
        return [_plan_from_row(row) for row in rows]

    def find_pricing_tier(self, plan_id: str, pricing_id: str) -> Optional[PricingTier]:
        plan = self.get_plan(plan_id)
        return plan.find_tier(pricing_id) if plan else None

    def find_plan_with_tier(self, pricing_id: str) -> Optional[PlanRecord]:
        for row in self._db.fetch_all("SELECT * FROM plans"):
            plan = _plan_from_row(row)
            if plan.find_tier(pricing_id):
                return plan
        return None

    def search_plans(self, *, search: str, offset: int, limit: int) -> Tuple[List[PlanRecord], int]:
        clause = ""
        params: tuple = ()
        if search:
            clause = "WHERE name LIKE ?"
            params = (f"%{search}%",)
        total = int(self._db.scalar(f"SELECT COUNT(*) FROM plans {clause}", params) or 0)
        rows = self._db.fetch_all(
            f"SELECT * FROM plans {clause} ORDER BY created_at, id LIMIT ? OFFSET ?",
            params + (limit, offset),
        )
        return [_plan_from_row(row) for row in rows], total
