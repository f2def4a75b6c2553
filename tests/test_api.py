from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from pydantic import ValidationError

from heartbeats.config import Settings
from heartbeats.database import get_db
from heartbeats.main import create_app

from conftest import ADMIN_TOKEN, CLIENT_TOKEN

CLIENT = {"X-Auth": CLIENT_TOKEN}
ADMIN = {"X-Auth": ADMIN_TOKEN}


def beat(client, headers=None, **params):
    return client.post("/heartbeat", params=params, headers={**CLIENT, **(headers or {})})


def get(client, path, **params):
    return client.get(path, params=params, headers=ADMIN)


def test_heartbeat_acknowledges(client) -> None:
    response = beat(client, uid="A", part="P1")

    assert response.status_code == 200
    assert response.json() == {"ok": True}
    assert response.headers["cache-control"] == "no-store, no-cache, must-revalidate"


def test_worked_example(client, clock) -> None:
    clock.now = 1000
    beat(client, uid="A", part="P1")
    clock.now = 2000
    beat(client, uid="A", part="P2", fw="1.2")

    clock.now = 2100
    devices = get(client, "/list", window=10000).json()["devices"]
    assert devices == [
        {
            "unique_id": "A",
            "first_seen": 1000,
            "last_seen": 2000,
            "part_num": "P2",
            "fw_version": "1.2",
            "sw_version": "Unknown",
            "country": "Unknown",
        }
    ]

    assert get(client, "/count", window=500).json() == {"since": 1600, "window": 500, "active": 1}
    assert get(client, "/count", window=50).json()["active"] == 0


@pytest.mark.parametrize(
    ("params", "message"),
    [
        ({"part": "P1"}, "uid is required"),
        ({"uid": "A"}, "part is required"),
        ({"uid": " ", "part": "P1"}, "uid is required"),
    ],
)
def test_heartbeat_requires_uid_and_part(client, params, message) -> None:
    response = beat(client, **params)

    assert response.status_code == 400
    assert response.json() == {"error": message}
    assert get(client, "/count").json()["active"] == 0


def test_heartbeat_constraint_violation(client) -> None:
    response = beat(client, uid="A", part="P1", fw="x" * 17)

    assert response.status_code == 400
    assert response.json() == {"error": "Bad Request (constraint violation)"}


def test_country_comes_from_proxy_header_and_null_is_display_only(client, clock) -> None:
    beat(client, uid="A", part="P1")
    device = get(client, "/list").json()["devices"][0]
    assert device["country"] == "Unknown"

    clock.now = 1100
    beat(client, headers={"CF-IPCountry": "DE"}, uid="A", part="P1")
    device = get(client, "/list").json()["devices"][0]
    assert device["country"] == "DE"


def test_count_csv(client, clock) -> None:
    beat(client, uid="A", part="P1")
    clock.now = 1200

    response = get(client, "/count", window=500, format="csv")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert response.text == "timestamp,window,active\n1200,500,1\n"


def test_list_csv_escapes_fields(client, clock) -> None:
    beat(client, uid="A", part="P,1", fw='v"2')
    clock.now = 1001
    beat(client, uid="B", part="P2", sw="1.0")

    response = get(client, "/list", format="CSV")

    assert response.text == (
        "unique_id,first_seen,last_seen,part_num,fw_version,sw_version,country\n"
        "B,1001,1001,P2,Unknown,1.0,Unknown\n"
        'A,1000,1000,"P,1","v""2",Unknown,Unknown'
    )


def test_list_json_shape(client) -> None:
    beat(client, uid="A", part="P1")

    body = get(client, "/list", window=60).json()

    assert body["windowSec"] == 60
    assert len(body["devices"]) == 1


def test_metrics_groups_nulls_as_unknown(client, clock) -> None:
    beat(client, uid="A", part="P2")
    beat(client, uid="B", part="P1", fw="1.0")
    clock.now = 1500

    body = get(client, "/metrics", group="fw_version", window=10000).json()

    assert body == {
        "window": 10000,
        "timestamp": 1500,
        "totalActive": 2,
        "results": [
            {"fw_version": "1.0", "count": 1},
            {"fw_version": "Unknown", "count": 1},
        ],
    }


def test_metrics_total_matches_count(client, clock) -> None:
    for index, part in enumerate(["P1", "P1", "P2", "P3", "P3", "P3"]):
        clock.now = 1000 + index * 100
        beat(client, uid=f"dev-{index}", part=part, fw=f"{index % 2}.0")

    for window in (1, 150, 350, 10000):
        metrics = get(client, "/metrics", groups="part_num,fw_version", window=window).json()
        count = get(client, "/count", window=window).json()
        assert metrics["totalActive"] == count["active"]


def test_metrics_csv_and_deduped_groups(client) -> None:
    beat(client, uid="A", part="P1", headers={"CF-IPCountry": "US"})
    beat(client, uid="B", part="P1", headers={"CF-IPCountry": "US"})

    response = get(client, "/metrics", groups="country, part_num,COUNTRY", format="csv")

    assert response.text == "country,part_num,count\nUS,P1,2"


def test_metrics_rejects_unknown_group(client) -> None:
    beat(client, uid="A", part="P1")

    response = get(client, "/metrics", groups="part_num,bogus")

    assert response.status_code == 400
    assert response.json() == {"error": "invalid groups"}


def test_invalid_format_is_rejected(client) -> None:
    response = get(client, "/count", format="xml")

    assert response.status_code == 400
    assert response.json() == {"error": "invalid format"}


def test_junk_window_falls_back_to_one_day(client) -> None:
    body = get(client, "/count", window="soon").json()

    assert body["window"] == 86400


@pytest.mark.parametrize("path", ["/count", "/list", "/metrics"])
def test_admin_routes_require_admin_token(client, path) -> None:
    assert client.get(path).status_code == 401
    assert client.get(path, headers=CLIENT).status_code == 401
    assert client.get(path, headers={"X-Auth": "nope"}).status_code == 401


def test_heartbeat_requires_client_token(client) -> None:
    assert client.post("/heartbeat", params={"uid": "A", "part": "P1"}).status_code == 401
    response = client.post("/heartbeat", params={"uid": "A", "part": "P1"}, headers=ADMIN)
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


@pytest.mark.parametrize(
    ("method", "path"),
    [("GET", "/heartbeat"), ("POST", "/count"), ("GET", "/"), ("DELETE", "/list"), ("GET", "/docs")],
)
def test_other_routes_are_bad_requests(client, method, path) -> None:
    response = client.request(method, path, headers=ADMIN)

    assert response.status_code == 400
    assert response.json() == {"error": "Bad Request"}


def test_blocked_origin_gets_empty_success(client) -> None:
    blocked = {"CF-Connecting-IP": "203.0.113.0"}

    response = client.post("/heartbeat", params={"uid": "A", "part": "P1"}, headers={**CLIENT, **blocked})
    assert response.status_code == 200
    assert response.json() == {"ok": True}

    # no auth, unknown path: still an indistinguishable success
    assert client.get("/nowhere", headers=blocked).json() == {"ok": True}

    assert get(client, "/count").json()["active"] == 0


def test_blocked_origin_is_not_logged(client, caplog) -> None:
    client.get("/count", headers={"CF-Connecting-IP": "255.255.255.255"})

    assert "255.255.255.255" not in caplog.text
    assert "Blocked" not in caplog.text


def test_unconfigured_secrets_fail_closed(settings) -> None:
    app = create_app(settings.model_copy(update={"admin_token": None}))

    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.post("/heartbeat", params={"uid": "A", "part": "P1"}, headers=CLIENT)

    assert response.status_code == 500
    assert response.json() == {"error": "Internal Server Error"}


async def _broken_db():
    raise RuntimeError("database exploded")


def test_internal_error_detail_only_for_admin(app, client) -> None:
    app.dependency_overrides[get_db] = _broken_db

    admin = get(client, "/count")
    assert admin.status_code == 500
    assert admin.json() == {"error": "Internal Server Error", "detail": "database exploded"}

    device = beat(client, uid="A", part="P1")
    assert device.status_code == 500
    assert device.json() == {"error": "Internal Server Error"}


def test_settings_are_frozen(settings) -> None:
    with pytest.raises(ValidationError):
        settings.admin_token = "changed"  # type: ignore[misc]

    assert isinstance(settings, Settings)
