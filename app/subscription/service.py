"""Post-activation subscription lifecycle: cancel, renew, reprice and admin workflow."""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List
from uuid import uuid4

from app.auth.dependencies import Principal
from app.catalog.repository import CatalogRepository
from app.errors import Forbidden, InvalidPlan, NotFoundError, ValidationError
from app.metrics import record_subscription_transition
from app.pricing import parse_display_price

from .models import (
    AdminStatus,
    AdminTaskQuery,
    SubscriptionRecord,
    SubscriptionStatus,
    SubscriptionUpsert,
    UserSubscriptionQuery,
)
from .periods import add_months, expiry_for
from .repository import SORTABLE_FIELDS, SubscriptionRepository

logger = logging.getLogger(__name__)


class SubscriptionLifecycle:
    def __init__(self, subscriptions: SubscriptionRepository, catalog: CatalogRepository) -> None:
        self._subscriptions = subscriptions
        self._catalog = catalog

    def _get_owned(self, subscription_id: str, requester: Principal) -> SubscriptionRecord:
        record = self._subscriptions.get(subscription_id)
        if record is None:
            raise NotFoundError("Subscription not found")
        if record.buyer_id != requester.id:
            raise Forbidden("Forbidden")
        return record

    def cancel(self, subscription_id: str, requester: Principal) -> SubscriptionRecord:
        record = self._get_owned(subscription_id, requester)
        now = datetime.now(tz=timezone.utc)
        record.status = SubscriptionStatus.cancelled
        record.cancelled_at = now
        record.updated_at = now
        self._subscriptions.update(record)
        record_subscription_transition("cancel")
        logger.info("Subscription cancelled", extra={"subscription_id": record.id, "buyer_id": record.buyer_id})
        return record

    def renew(self, subscription_id: str, requester: Principal) -> SubscriptionRecord:
        record = self._get_owned(subscription_id, requester)
        plan = self._catalog.get_plan(record.plan_id)
        if plan is None or not plan.duration_months:
            raise InvalidPlan("Plan has no configured duration")
        now = datetime.now(tz=timezone.utc)
        record.status = SubscriptionStatus.active
        record.started_at = now
        record.expires_at = add_months(now, plan.duration_months)
        record.cancelled_at = None
        record.updated_at = now
        self._subscriptions.update(record)
        record_subscription_transition("renew")
        logger.info(
            "Subscription renewed",
            extra={"subscription_id": record.id, "expires_at": record.expires_at.isoformat()},
        )
        return record

    def update_or_create(self, payload: SubscriptionUpsert, requester: Principal) -> tuple[SubscriptionRecord, bool]:
        """Reprice the buyer's latest subscription, or create one without an order.

        This path is not gated by a verified payment. Callers other than admins
        may only reprice a subscription they own; creating one requires admin
        rights. Returns the record and whether it was newly created.
        """

        if not requester.is_admin and payload.buyer_id != requester.id:
            raise Forbidden("Forbidden")

        existing = self._subscriptions.latest_for_buyer(payload.buyer_id)
        if existing is not None:
            return self._reprice(existing, payload), False

        if not requester.is_admin:
            raise Forbidden("Creating a subscription without a verified payment requires admin rights")
        return self._create_manual(payload), True

    def _reprice(self, record: SubscriptionRecord, payload: SubscriptionUpsert) -> SubscriptionRecord:
        plan_changed = bool(payload.plan_id) and payload.plan_id != record.plan_id
        if plan_changed or payload.pricing_id:
            plan = self._catalog.get_plan(payload.plan_id or record.plan_id)
            if plan is None:
                raise NotFoundError("Plan not found")
            pricing_id = payload.pricing_id or record.pricing_id
            if plan.find_tier(pricing_id) is None:
                raise ValidationError("Pricing tier not found in plan")
            record.plan_id = plan.id
            record.pricing_id = pricing_id
        if payload.currency:
            record.currency = payload.currency
        if payload.price is not None:
            record.amount = parse_display_price(payload.price)
        record.updated_at = datetime.now(tz=timezone.utc)
        self._subscriptions.update(record)
        record_subscription_transition("reprice")
        logger.info("Subscription repriced", extra={"subscription_id": record.id, "amount": record.amount})
        return record

    def _create_manual(self, payload: SubscriptionUpsert) -> SubscriptionRecord:
        if not payload.plan_id or not payload.pricing_id or not payload.currency:
            raise ValidationError("planId, pricingId and currency required to create new subscription")
        plan = self._catalog.get_plan(payload.plan_id)
        if plan is None:
            raise NotFoundError("Plan not found")

        if payload.price is not None:
            amount = parse_display_price(payload.price)
        else:
            tier = plan.find_tier(payload.pricing_id)
            if tier is None:
                raise ValidationError("Pricing tier not found in plan, and no price supplied")
            amount = parse_display_price(tier.price)

        now = datetime.now(tz=timezone.utc)
        record = SubscriptionRecord(
            id=str(uuid4()),
            buyer_id=payload.buyer_id,
            plan_id=plan.id,
            pricing_id=payload.pricing_id,
            plan_name=plan.name,
            delivery_target=payload.delivery_target or "",
            order_id=None,
            payment_id=None,
            amount=amount,
            currency=payload.currency,
            status=SubscriptionStatus.active,
            admin_status=AdminStatus.in_process,
            started_at=now,
            expires_at=expiry_for(now, plan.duration_months),
            cancelled_at=None,
            created_at=now,
            updated_at=now,
        )
        self._subscriptions.insert(record)
        record_subscription_transition("manual_create")
        logger.info("Subscription created manually", extra={"subscription_id": record.id, "buyer_id": record.buyer_id})
        return record

    def set_admin_status(self, subscription_id: str, admin_status: AdminStatus) -> SubscriptionRecord:
        record = self._subscriptions.get(subscription_id)
        if record is None:
            raise NotFoundError("Subscription not found")
        updated = replace(record, admin_status=AdminStatus(admin_status), updated_at=datetime.now(tz=timezone.utc))
        self._subscriptions.update(updated)
        record_subscription_transition("admin_status")
        return updated

    # -- listings ---------------------------------------------------------

    def _enrich(self, records: Iterable[SubscriptionRecord]) -> List[Dict[str, Any]]:
        records = list(records)
        plans = self._catalog.get_plans(sorted({record.plan_id for record in records}))
        enriched: List[Dict[str, Any]] = []
        for record in records:
            plan = plans.get(record.plan_id)
            tier = plan.find_tier(record.pricing_id) if plan else None
            payload = record.as_payload()
            payload["pricing"] = tier.as_payload() if tier else None
            enriched.append(payload)
        return enriched

    def list_for_user(self, buyer_id: str) -> Dict[str, Any]:
        records, total = self._subscriptions.list_for_buyer(buyer_id)
        return {"success": True, "total": total, "subscriptions": self._enrich(records)}

    def list_by_admin_status(self, query: UserSubscriptionQuery, admin_status: AdminStatus) -> Dict[str, Any]:
        records, total = self._subscriptions.list_for_buyer(
            query.buyer_id,
            admin_status=admin_status,
            offset=(query.page - 1) * query.limit,
            limit=query.limit,
        )
        return {
            "data": self._enrich(records),
            "meta": {
                "total": total,
                "page": query.page,
                "perPage": query.limit,
                "lastPage": math.ceil(total / query.limit),
            },
        }

    def admin_tasks(self, query: AdminTaskQuery) -> Dict[str, Any]:
        if query.sort_by not in SORTABLE_FIELDS:
            raise ValidationError(f"sortBy must be one of: {', '.join(SORTABLE_FIELDS)}")
        records, total = self._subscriptions.search(
            admin_status=query.admin_status,
            search=query.search.strip(),
            sort_by=query.sort_by,
            descending=query.sort_order == "desc",
            offset=(query.page - 1) * query.limit,
            limit=query.limit,
        )
        return {
            "data": self._enrich(records),
            "meta": {
                "total": total,
                "page": query.page,
                "perPage": query.limit,
                "lastPage": math.ceil(total / query.limit),
            },
        }

    def counts_for_user(self, buyer_id: str) -> Dict[str, int]:
        return self._subscriptions.count_for_buyer(buyer_id)
