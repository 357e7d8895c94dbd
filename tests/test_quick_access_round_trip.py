from __future__ import annotations

from datetime import date
from urllib.parse import parse_qsl, urlsplit

import pytest
from fastapi.testclient import TestClient

from solar_crm.models.entities import ProjectStatus, UserRole
from solar_crm.services.dashboard_composer import ROLE_QUICK_ACCESS


def _headers(email: str) -> dict[str, str]:
    return {"X-USER-EMAIL": email}


@pytest.fixture()
def seeded(make_user, make_project):
    rep = make_user("rep@test.local", UserRole.SALES)
    make_user("admin@test.local", UserRole.ADMIN)
    make_user("finance@test.local", UserRole.FINANCE)
    make_user("ops@test.local", UserRole.OPERATIONS)

    make_project(status=ProjectStatus.LEAD, salesperson=rep, confirmation_date=None, financial_year="2024-25")
    make_project(status=ProjectStatus.PROPOSAL, salesperson=rep, confirmation_date=date(2024, 7, 3))
    make_project(status=ProjectStatus.CONFIRMED, salesperson=rep, payment_status="PARTIAL")
    make_project(status=ProjectStatus.UNDER_INSTALLATION, confirmation_date=date(2024, 11, 2))
    make_project(status=ProjectStatus.SUBMITTED_FOR_SUBSIDY, payment_status="FULLY_PAID")
    make_project(
        status=ProjectStatus.COMPLETED_SUBSIDY_CREDITED,
        financial_year="2023-24",
        confirmation_date=date(2023, 6, 1),
    )
    make_project(status=ProjectStatus.LOST, salesperson=rep, payment_status=None, confirmation_date=date(2025, 1, 9))
    return rep


FILTERS = [
    [],
    [("fy", "2024-25")],
    [("fy", "2024-25"), ("quarter", "Q1")],
    [("fy", "2024-25"), ("quarter", "Q2"), ("quarter", "Q4")],
    [("fy", "2024-25"), ("month", "05"), ("month", "11")],
    [("fy", "2024-25"), ("fy", "2023-24"), ("quarter", "Q1")],
    [("fy", "2022-23")],
]


@pytest.mark.parametrize("email", ["admin@test.local", "rep@test.local", "finance@test.local", "ops@test.local"])
@pytest.mark.parametrize("filters", FILTERS)
def test_tile_counts_match_linked_list(client: TestClient, seeded, email: str, filters) -> None:
    response = client.get("/api/dashboard/quick-access", params=filters, headers=_headers(email))
    assert response.status_code == 200
    tiles = response.json()["tiles"]
    assert tiles

    for tile in tiles:
        href = urlsplit(tile["href"])
        assert href.path == "/projects"
        listed = client.get(f"/api{href.path}", params=parse_qsl(href.query), headers=_headers(email))
        assert listed.status_code == 200
        assert listed.json()["pagination"]["total"] == tile["count"], tile["key"]


def test_sales_tiles_only_count_own_projects(client: TestClient, seeded) -> None:
    tiles = client.get("/api/dashboard/quick-access", headers=_headers("rep@test.local")).json()["tiles"]
    counts = {tile["key"]: tile["count"] for tile in tiles}

    assert counts["all_projects"] == 4
    assert counts["leads"] == 1
    assert counts["lost"] == 1
    assert counts["confirmed_projects"] == 1


def test_tile_links_carry_period_filter(client: TestClient, seeded) -> None:
    tiles = client.get(
        "/api/dashboard/quick-access",
        params=[("fy", "2024-25"), ("quarter", "Q2")],
        headers=_headers("ops@test.local"),
    ).json()["tiles"]

    pending = next(tile for tile in tiles if tile["key"] == "pending_installation")
    assert pending["href"] == "/projects?status=CONFIRMED&status=UNDER_INSTALLATION&fy=2024-25&quarter=Q2"
    assert pending["filters"] == {"status": ["CONFIRMED", "UNDER_INSTALLATION"], "paymentStatus": []}


def test_dashboard_tiles_follow_viewed_layout(client: TestClient, seeded) -> None:
    for role, email in [
        (UserRole.ADMIN, "admin@test.local"),
        (UserRole.SALES, "admin@test.local"),
        (UserRole.FINANCE, "finance@test.local"),
        (UserRole.OPERATIONS, "ops@test.local"),
    ]:
        payload = client.get(f"/api/dashboard/{role.value.lower()}", headers=_headers(email)).json()
        quick_access = next(widget for widget in payload["widgets"] if widget["key"] == "quick_access")
        assert [tile["key"] for tile in quick_access["data"]["tiles"]] == list(ROLE_QUICK_ACCESS[role])
