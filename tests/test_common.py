"""Tests for common utilities — filters, sorting, search, pagination,
audit trail and the problem-detail error shape."""

from __future__ import annotations

import uuid
from datetime import date, time
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.common.audit import _jsonable, create_audit_entry
from backoffice.common.constants import UserRole
from backoffice.common.filters import _get_column, apply_filters, apply_search, apply_sorting
from backoffice.common.pagination import PaginationParams, paginate
from backoffice.users.models import User
from tests.conftest import seed_user


# ── Helpers ─────────────────────────────────────────────────────────


async def _seed_people(db: AsyncSession, tenant_id) -> list[User]:
    people = [
        ("Charlie Ito", "charlie@sakura.example.com", UserRole.employee, date(2020, 4, 1)),
        ("Alice Mori", "alice@sakura.example.com", UserRole.manager, date(2023, 10, 1)),
        ("Bob Kato", "bob@sakura.example.com", UserRole.hr, date(2025, 4, 1)),
    ]
    users = []
    for name, email, role, hired in people:
        user = await seed_user(db, tenant_id, name=name, email=email, role=role)
        user.hire_date = hired
        users.append(user)
    await db.flush()
    return users


# ═════════════════════════════════════════════════════════════════════
# FILTER TESTS
# ═════════════════════════════════════════════════════════════════════


class TestApplyFilters:

    async def test_filter_by_equality(self, db: AsyncSession, tenant):
        await _seed_people(db, tenant.id)
        query = apply_filters(select(User), User, {"role": UserRole.manager})
        users = (await db.execute(query)).scalars().all()
        assert [u.name for u in users] == ["Alice Mori"]

    async def test_none_values_skipped(self, db: AsyncSession, tenant):
        await _seed_people(db, tenant.id)
        query = apply_filters(select(User), User, {"role": None, "unit_id": None})
        assert len((await db.execute(query)).scalars().all()) == 3

    async def test_ilike(self, db: AsyncSession, tenant):
        await _seed_people(db, tenant.id)
        query = apply_filters(select(User), User, {"name__ilike": "MORI"})
        assert [u.name for u in (await db.execute(query)).scalars().all()] == ["Alice Mori"]

    async def test_from_to_range(self, db: AsyncSession, tenant):
        await _seed_people(db, tenant.id)
        query = apply_filters(select(User), User, {
            "hire_date__from": date(2021, 1, 1),
            "hire_date__to": date(2024, 12, 31),
        })
        assert [u.name for u in (await db.execute(query)).scalars().all()] == ["Alice Mori"]

    async def test_in(self, db: AsyncSession, tenant):
        await _seed_people(db, tenant.id)
        query = apply_filters(select(User), User, {"role__in": [UserRole.hr, UserRole.employee]})
        names = {u.name for u in (await db.execute(query)).scalars().all()}
        assert names == {"Charlie Ito", "Bob Kato"}

    async def test_unknown_column_ignored(self, db: AsyncSession, tenant):
        await _seed_people(db, tenant.id)
        query = apply_filters(select(User), User, {"shoe_size": 27})
        assert len((await db.execute(query)).scalars().all()) == 3


class TestApplySorting:

    async def test_ascending(self, db: AsyncSession, tenant):
        await _seed_people(db, tenant.id)
        query = apply_sorting(select(User), User, "name")
        assert [u.name for u in (await db.execute(query)).scalars().all()] == [
            "Alice Mori", "Bob Kato", "Charlie Ito",
        ]

    async def test_descending(self, db: AsyncSession, tenant):
        await _seed_people(db, tenant.id)
        query = apply_sorting(select(User), User, "-hire_date")
        assert [u.name for u in (await db.execute(query)).scalars().all()] == [
            "Bob Kato", "Alice Mori", "Charlie Ito",
        ]

    async def test_multiple_keys(self, db: AsyncSession, tenant):
        await _seed_people(db, tenant.id)
        await seed_user(db, tenant.id, name="Aaron Abe", email="aaron@sakura.example.com")
        query = apply_sorting(select(User), User, "role,name")
        names = [u.name for u in (await db.execute(query)).scalars().all()]
        assert names.index("Aaron Abe") < names.index("Charlie Ito")

    def test_none_is_noop(self):
        query = select(User)
        assert apply_sorting(query, User, None) is query

    def test_unknown_column_ignored(self):
        query = select(User)
        assert str(apply_sorting(query, User, "-shoe_size")) == str(query)


class TestApplySearch:

    async def test_matches_any_column(self, db: AsyncSession, tenant):
        await _seed_people(db, tenant.id)
        query = apply_search(select(User), User, "bob@", ("name", "email"))
        assert [u.name for u in (await db.execute(query)).scalars().all()] == ["Bob Kato"]

    def test_blank_search_is_noop(self):
        query = select(User)
        assert apply_search(query, User, "   ", ("name",)) is query


class TestGetColumn:

    def test_existing(self):
        assert _get_column(User, "email") is not None

    def test_missing(self):
        assert _get_column(User, "totally_fake_column") is None


# ═════════════════════════════════════════════════════════════════════
# PAGINATION
# ═════════════════════════════════════════════════════════════════════


class TestPagination:

    async def test_first_page_sorted(self, db: AsyncSession, tenant):
        await _seed_people(db, tenant.id)
        params = PaginationParams(page=1, page_size=2, sort="-name")
        result = await paginate(db, select(User), params, model=User)
        assert [u.name for u in result.data] == ["Charlie Ito", "Bob Kato"]
        assert result.meta.total == 3
        assert result.meta.total_pages == 2
        assert result.meta.has_next is True

    async def test_default_sort_and_transform(self, db: AsyncSession, tenant):
        await _seed_people(db, tenant.id)
        params = PaginationParams(page=2, page_size=2, sort=None)
        result = await paginate(
            db, select(User), params, model=User, default_sort="name", transform=lambda u: u.email,
        )
        assert result.data == ["charlie@sakura.example.com"]
        assert result.meta.has_prev is True
        assert result.meta.has_next is False

    async def test_empty(self, db: AsyncSession, tenant):
        params = PaginationParams(page=1, page_size=10, sort=None)
        result = await paginate(db, select(User).where(User.name == "Nobody"), params, model=User)
        assert result.data == []
        assert result.meta.total_pages == 0


# ═════════════════════════════════════════════════════════════════════
# AUDIT TRAIL
# ═════════════════════════════════════════════════════════════════════


class TestAuditTrail:

    def test_jsonable_coerces_values(self):
        entity_id = uuid.uuid4()
        out = _jsonable({
            "role": UserRole.hr,
            "day": date(2026, 4, 1),
            "at": time(9, 30),
            "days": Decimal("1.5"),
            "id": entity_id,
            "note": "kept",
        })
        assert out == {
            "role": "hr",
            "day": "2026-04-01",
            "at": "09:30:00",
            "days": "1.5",
            "id": str(entity_id),
            "note": "kept",
        }

    def test_jsonable_none(self):
        assert _jsonable(None) is None

    async def test_hr_lists_tenant_entries(self, client, db, tenant, other_tenant, hr_user, hr_headers):
        for t in (tenant, other_tenant):
            await create_audit_entry(
                db, action="update", entity_type="user", entity_id=uuid.uuid4(), tenant_id=t.id,
            )
        await db.commit()

        resp = await client.get("/api/v1/tenants/audit?entity_type=user", headers=hr_headers)
        assert resp.status_code == 200
        assert resp.json()["meta"]["total"] == 1

    async def test_employee_cannot_read_audit(self, client, auth_headers):
        resp = await client.get("/api/v1/tenants/audit", headers=auth_headers)
        assert resp.status_code == 403


# ═════════════════════════════════════════════════════════════════════
# ERROR SHAPE
# ═════════════════════════════════════════════════════════════════════


class TestProblemDetails:

    async def test_not_found_shape(self, client, auth_headers):
        resp = await client.get(
            f"/api/v1/users/{uuid.uuid4()}", headers=auth_headers,
        )
        assert resp.status_code == 404
        assert resp.headers["content-type"].startswith("application/problem+json")
        body = resp.json()
        assert body["status"] == 404
        assert body["type"].endswith("/not-found")
        assert "title" in body and "detail" in body

    async def test_request_validation_shape(self, client, hr_headers):
        resp = await client.post("/api/v1/users", json={"name": ""}, headers=hr_headers)
        assert resp.status_code == 422
        assert "errors" in resp.json()

    async def test_health(self, client):
        resp = await client.get("/api/v1/health")
        assert resp.status_code == 200


# ═════════════════════════════════════════════════════════════════════
# PACKAGE EXPORTS
# ═════════════════════════════════════════════════════════════════════


class TestCommonExports:

    def test_every_export_resolves(self):
        import backoffice.common as common

        missing = [name for name in common.__all__ if not hasattr(common, name)]
        assert missing == []

    def test_no_unused_format_constants(self):
        from backoffice.common import constants

        for name in ("DATE_FORMAT", "MONTH_FORMAT", "TIMEZONE"):
            assert not hasattr(constants, name)
