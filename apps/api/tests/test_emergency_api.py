def test_emergency_session_lifecycle(client) -> None:
    started = client.post(
        "/emergency/start",
        json={"origin": {"lat": 12.9716, "lon": 77.5946}, "contacts": [{"name": "Asha", "phone": "+91-98450-00000"}]},
    )
    data = started.json()["data"]
    session_id = data["sessionId"]

    assert started.status_code == 200
    assert data["trackingUrl"] == f"https://safewalk.example.com/emergency/status/{session_id}"

    before = client.get(f"/emergency/status/{session_id}").json()["data"]
    ack = client.post(f"/emergency/ack/{session_id}")
    after = client.get(f"/emergency/status/{session_id}").json()["data"]

    assert before == {"ackCount": 0, "acknowledged": False}
    assert ack.status_code == 200
    assert ack.json()["data"] == {"ok": True}
    assert after == {"ackCount": 1, "acknowledged": True}


def test_emergency_start_requires_origin(client) -> None:
    response = client.post("/emergency/start", json={"contacts": []})

    assert response.status_code == 400


def test_unknown_emergency_session_is_not_found(client) -> None:
    status = client.get("/emergency/status/missing")
    ack = client.post("/emergency/ack/missing")

    assert status.status_code == 404
    assert status.json()["error"]["code"] == "NOT_FOUND"
    assert ack.status_code == 404
