import pytest
from fastapi.testclient import TestClient

from turnwork.main import create_app


@pytest.fixture
def client(db_path):
    with TestClient(create_app(db_path)) as client:
        yield client


def _add_shift(client, name, start, end, **extra) -> str:
    response = client.post(
        "/v1/shift-types", json={"name": name, "startTime": start, "endTime": end, **extra}
    )
    assert response.status_code == 201
    return response.json()["id"]


@pytest.fixture
def scenario(client):
    day = _add_shift(client, "Day", "08:00", "16:00", order=1)
    night = _add_shift(client, "Night", "20:00", "04:00", order=2)
    off = _add_shift(client, "Off", "00:00", "00:00", workHours=0, order=3)
    response = client.post(
        "/v1/cycles",
        json={
            "name": "Rotation",
            "length": 3,
            "startISO": "2024-01-01",
            "selections": [day, night, off],
        },
    )
    assert response.status_code == 201
    return {"day": day, "night": night, "off": off, "cycle": response.json()["cycle"]}


def test_health(client) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_first_cycle_is_active(client, scenario) -> None:
    cycle = scenario["cycle"]
    assert cycle["isActive"] is True
    assert cycle["pattern"] == [0, 1, 2]


def test_statistics_for_range(client, scenario) -> None:
    response = client.get("/v1/statistics", params={"start": "2024-01-01", "end": "2024-01-06"})
    assert response.status_code == 200
    body = response.json()
    assert body["totalDays"] == 6
    assert body["totalHours"] == 32.0
    assert body["shiftCounts"] == {"Day": 2, "Night": 2, "Off": 2}


def test_statistics_for_month(client, scenario) -> None:
    response = client.get("/v1/statistics", params={"period": "month", "year": 2024, "month": 2})
    assert response.json()["totalDays"] == 29


def test_calendar_applies_overrides(client, scenario) -> None:
    cycle_id = scenario["cycle"]["id"]
    response = client.put(
        f"/v1/cycles/{cycle_id}/overrides/2", json={"selectedShiftId": scenario["off"]}
    )
    assert response.status_code == 200
    days = client.get("/v1/calendar", params={"start": "2024-01-02", "end": "2024-01-02"}).json()
    assert days[0]["shift"]["name"] == "Night"
    assert days[0]["displayShift"]["name"] == "Off"


def test_active_cycle_cannot_be_deleted(client, scenario) -> None:
    cycle_id = scenario["cycle"]["id"]
    response = client.delete(f"/v1/cycles/{cycle_id}")
    assert response.status_code == 409
    assert "active" in response.json()["detail"]

    assert client.post(f"/v1/cycles/{cycle_id}/deactivate").status_code == 200
    assert client.delete(f"/v1/cycles/{cycle_id}").status_code == 204
    assert client.get(f"/v1/cycles/{cycle_id}").status_code == 404


def test_used_shift_type_cannot_be_deleted(client, scenario) -> None:
    response = client.delete(f"/v1/shift-types/{scenario['night']}")
    assert response.status_code == 409


def test_validation_errors_are_400(client, scenario) -> None:
    response = client.post(
        "/v1/cycles", json={"name": "Too long", "length": 31, "startISO": "2024-01-01"}
    )
    assert response.status_code == 400
    response = client.put(f"/v1/cycles/{scenario['cycle']['id']}/length", json={"length": 0})
    assert response.status_code == 400


def test_duplicate_cycle_name_is_409(client, scenario) -> None:
    response = client.post(
        "/v1/cycles", json={"name": "Rotation", "length": 1, "startISO": "2024-01-01"}
    )
    assert response.status_code == 409


def test_bad_date_parameter(client, scenario) -> None:
    response = client.get("/v1/statistics", params={"start": "yesterday", "end": "2024-01-06"})
    assert response.status_code == 400


def test_activation_switches_cycles(client, scenario) -> None:
    second = client.post(
        "/v1/cycles", json={"name": "Second", "length": 2, "startISO": "2024-01-01"}
    ).json()
    assert second["cycle"]["isActive"] is False
    assert second["defaultedDays"] == [1, 2]
    client.post(f"/v1/cycles/{second['cycle']['id']}/activate")
    active = [cycle["name"] for cycle in client.get("/v1/cycles").json() if cycle["isActive"]]
    assert active == ["Second"]


def test_no_active_cycle_is_404(client) -> None:
    assert client.get("/v1/calendar").status_code == 404


def test_alarms_and_events(client, scenario) -> None:
    alarm = client.post(
        "/v1/alarms",
        json={"time": "19:00", "repeatType": "shift", "shiftTypeId": scenario["night"]},
    )
    assert alarm.status_code == 201
    upcoming = client.get(
        "/v1/alarms/upcoming", params={"start": "2024-01-01", "end": "2024-01-06"}
    ).json()
    assert [item["at"] for item in upcoming] == ["2024-01-02T19:00", "2024-01-05T19:00"]

    event = client.post("/v1/events", json={"title": "Dentist", "dateISO": "05.01.2024"})
    assert event.json()["dateISO"] == "2024-01-05"
    listed = client.get("/v1/events", params={"start": "2024-01-01", "end": "2024-01-31"}).json()
    assert [item["title"] for item in listed] == ["Dentist"]

    ics = client.get("/v1/calendar.ics", params={"start": "2024-01-01", "end": "2024-01-06"})
    assert ics.headers["content-type"].startswith("text/calendar")
    assert ics.text.count("BEGIN:VEVENT") == 7


def test_state_survives_restart(db_path, client, scenario) -> None:
    with TestClient(create_app(db_path)) as second:
        cycles = second.get("/v1/cycles").json()
        assert [cycle["name"] for cycle in cycles] == ["Rotation"]
        assert cycles[0]["isActive"] is True


def test_oversized_length_is_rejected(client, scenario) -> None:
    response = client.post(
        "/v1/cycles", json={"name": "Huge", "length": 10_000_000_000, "startISO": "2024-01-01"}
    )
    assert response.status_code == 400


def test_year_out_of_range_is_rejected(client, scenario) -> None:
    response = client.get("/v1/statistics", params={"period": "year", "year": 0})
    assert response.status_code == 422


def test_hex_colours_are_accepted(client, scenario) -> None:
    response = client.post(
        "/v1/shift-types",
        json={"name": "Late", "startTime": "14:00", "endTime": "22:00", "color": "#FF0000"},
    )
    assert response.json()["color"] == 0xFF0000
    assert client.post("/v1/shift-types", json={"name": "Bad", "color": "red"}).status_code == 422

    cycle_id = scenario["cycle"]["id"]
    client.put(f"/v1/cycles/{cycle_id}/overrides/1", json={"customColor": "#00FF00"})
    days = client.get("/v1/calendar", params={"start": "2024-01-01", "end": "2024-01-01"}).json()
    assert days[0]["color"] == 0x00FF00


def test_short_times_are_padded(client, scenario) -> None:
    response = client.post(
        "/v1/shift-types", json={"name": "Early", "startTime": "6:00", "endTime": "9:00"}
    )
    assert response.json()["startTime"] == "06:00"
