import pytest

from app.catalog import service as catalog
from app.catalog.models import (
    PlanCatalogLookup,
    PlanCreate,
    PlanListQuery,
    PlanUpdate,
    PricingTierInput,
    PricingTierPatch,
    ServiceCreate,
    SubServiceCreate,
)
from app.errors import Conflict, NotFoundError, ValidationError


def test_duplicate_plan_for_sub_service_is_rejected(catalog_repo, plan):
    with pytest.raises(Conflict):
        catalog.create_plan(
            PlanCreate(
                service_id=plan.service_id,
                sub_service_id=plan.sub_service_id,
                name="Another",
                pricing=[PricingTierInput(name="Basic", price="$5")],
            ),
            catalog_repo,
        )


def test_plan_requires_existing_sub_service(catalog_repo):
    service = catalog.create_service(ServiceCreate(heading="Video", description="Editing"), catalog_repo)
    with pytest.raises(NotFoundError):
        catalog.create_plan(
            PlanCreate(
                service_id=service.id,
                sub_service_id="missing",
                name="Cut",
                pricing=[PricingTierInput(name="Basic", price="$5")],
            ),
            catalog_repo,
        )


def test_plan_rejects_unparseable_price(catalog_repo):
    service = catalog.create_service(ServiceCreate(heading="Video", description="Editing"), catalog_repo)
    sub = catalog.add_sub_service(service.id, SubServiceCreate(heading="Reels", description="Short"), catalog_repo)
    with pytest.raises(ValidationError):
        catalog.create_plan(
            PlanCreate(
                service_id=service.id,
                sub_service_id=sub.id,
                name="Reels",
                pricing=[PricingTierInput(name="Basic", price="contact us")],
            ),
            catalog_repo,
        )


def test_update_plan_merges_and_appends_tiers(catalog_repo, plan):
    updated = catalog.update_plan(
        PlanUpdate(
            plan_id=plan.id,
            pricing=[
                PricingTierPatch(pricing_id="tier-basic", price="$29.99"),
                PricingTierPatch(name="Enterprise", price="$499"),
            ],
        ),
        catalog_repo,
    )
    prices = {tier.name: tier.price for tier in updated.pricing}
    assert prices == {"Basic": "$29.99", "Premium": "$99.50", "Enterprise": "$499"}

    with pytest.raises(ValidationError):
        catalog.update_plan(PlanUpdate(plan_id=plan.id, pricing=[PricingTierPatch(name="NoPrice")]), catalog_repo)


def test_delete_pricing_tier(catalog_repo, plan):
    remaining = catalog.delete_pricing_tier("tier-premium", catalog_repo)
    assert [tier.id for tier in remaining.pricing] == ["tier-basic"]
    with pytest.raises(NotFoundError):
        catalog.delete_pricing_tier("tier-premium", catalog_repo)


def test_find_plans_for_catalog(catalog_repo, plan):
    by_pair = catalog.find_plans_for_catalog(
        PlanCatalogLookup(service_id=plan.service_id, sub_service_id=plan.sub_service_id), catalog_repo
    )
    assert [item.id for item in by_pair] == [plan.id]

    by_sub = catalog.find_plans_for_catalog(PlanCatalogLookup(sub_service_id=plan.sub_service_id), catalog_repo)
    assert [item.id for item in by_sub] == [plan.id]

    by_service = catalog.find_plans_for_catalog(PlanCatalogLookup(service_id=plan.service_id), catalog_repo)
    assert [item.id for item in by_service] == [plan.id]

    with pytest.raises(ValidationError):
        catalog.find_plans_for_catalog(PlanCatalogLookup(), catalog_repo)
    with pytest.raises(NotFoundError):
        catalog.find_plans_for_catalog(PlanCatalogLookup(service_id="unknown"), catalog_repo)


def test_list_plans_paginates(catalog_repo, plan):
    page = catalog.list_plans(PlanListQuery(page=1, limit=10, search="logo"), catalog_repo)
    assert page["total"] == 1
    assert page["pages"] == 1
    assert page["plans"][0]["plan_id"] == plan.id

    empty = catalog.list_plans(PlanListQuery(search="nothing-like-this"), catalog_repo)
    assert empty["total"] == 0
    assert empty["plans"] == []


def test_catalog_mutations_require_admin(client, buyer_headers):
    body = {"heading": "Audio", "description": "Mixing"}
    assert client.post("/services/create", json=body).status_code == 401
    assert client.post("/services/create", json=body, headers=buyer_headers).status_code == 401


def test_catalog_http_flow(client, admin_headers):
    created = client.post(
        "/services/create",
        json={"heading": "Audio", "description": "Mixing", "content": [{"key": "Stereo"}]},
        headers=admin_headers,
    )
    assert created.status_code == 201
    service_id = created.json()["service"]["service_id"]

    sub = client.post(
        f"/services/{service_id}/subservice/create",
        json={"heading": "Podcast", "description": "Episode mix"},
        headers=admin_headers,
    )
    assert sub.status_code == 201
    sub_service_id = sub.json()["sub_service"]["sub_service_id"]

    plan = client.post(
        "/plan/create",
        json={
            "service_id": service_id,
            "sub_service_id": sub_service_id,
            "name": "Podcast Mix",
            "pricing": [{"name": "Single", "price": "$15"}],
            "duration_months": 1,
        },
        headers=admin_headers,
    )
    assert plan.status_code == 201
    plan_id = plan.json()["plan"]["plan_id"]

    listing = client.get("/services/getAll")
    assert listing.json()["count"] == 1

    by_name = client.post("/plan/getByName", json={"name": "Podcast Mix"})
    assert by_name.json()["plan"]["plan_id"] == plan_id

    deleted = client.post("/plan/deletePlan", json={"plan_id": plan_id}, headers=admin_headers)
    assert deleted.status_code == 200
    missing = client.post("/plan/getByPlanId", json={"plan_id": plan_id})
    assert missing.status_code == 404
    assert missing.json()["error"] == "not_found"
