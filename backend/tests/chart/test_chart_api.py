def _toggle(api_client, auth_headers, patient_id, tooth, kind):
    return api_client.post(
        f"/patients/{patient_id}/chart/teeth/{tooth}/conditions/{kind}/toggle", headers=auth_headers
    )


def test_new_patient_has_empty_chart(api_client, auth_headers, patient_factory):
    patient = patient_factory()
    response = api_client.get(f"/patients/{patient['id']}/chart", headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == {"patient_id": patient["id"], "read_only": False, "teeth": []}


def test_toggle_twice_restores_chart(api_client, auth_headers, patient_factory):
    patient = patient_factory()

    first = _toggle(api_client, auth_headers, patient["id"], 16, "cavity")
    assert first.status_code == 200, first.text
    assert first.json()["active"] is True
    assert first.json()["tooth"]["conditions"] == ["cavity"]

    chart = api_client.get(f"/patients/{patient['id']}/chart", headers=auth_headers).json()
    assert [tooth["number"] for tooth in chart["teeth"]] == [16]

    second = _toggle(api_client, auth_headers, patient["id"], 16, "cavity")
    assert second.json()["active"] is False
    chart = api_client.get(f"/patients/{patient['id']}/chart", headers=auth_headers).json()
    assert chart["teeth"] == []


def test_invalid_tooth_and_condition(api_client, auth_headers, patient_factory):
    patient = patient_factory()
    assert _toggle(api_client, auth_headers, patient["id"], 19, "cavity").status_code == 422
    assert _toggle(api_client, auth_headers, patient["id"], 11, "chipped").status_code == 422
    assert _toggle(api_client, auth_headers, 999999, 11, "cavity").status_code == 404


def test_treatment_history_and_status(api_client, auth_headers, patient_factory):
    patient = patient_factory()
    base = f"/patients/{patient['id']}/chart/teeth/36/treatments"

    created = api_client.post(
        base,
        json={"type": "crown", "date": "2025-01-10", "cost_cents": 250000, "description": "Molar"},
        headers=auth_headers,
    )
    assert created.status_code == 201, created.text
    treatment = created.json()
    assert treatment["status"] == "scheduled"
    assert treatment["id"]

    updated = api_client.patch(
        f"{base}/{treatment['id']}", json={"status": "completed"}, headers=auth_headers
    )
    assert updated.status_code == 200
    assert updated.json()["status"] == "completed"

    missing = api_client.patch(f"{base}/nope", json={"status": "completed"}, headers=auth_headers)
    assert missing.status_code == 404

    odontogram = api_client.get(
        f"/patients/{patient['id']}/odontogram", params={"selected": 36}, headers=auth_headers
    ).json()
    panel = odontogram["panel"]
    assert panel["number"] == 36
    assert [entry["id"] for entry in panel["history"]] == [treatment["id"]]
    lower = {view["number"]: view for view in odontogram["lower"]}
    assert lower[36]["has_treatments"] is True
    assert lower[36]["selected"] is True
    assert [(m["shape"], m["opacity"]) for m in lower[36]["markers"]] == [("crown", 1.0)]


def test_archived_patient_chart_is_read_only(api_client, auth_headers, patient_factory):
    patient = patient_factory()
    _toggle(api_client, auth_headers, patient["id"], 21, "trauma")
    archived = api_client.post(
        f"/patients/{patient['id']}/status", json={"status": "archived"}, headers=auth_headers
    )
    assert archived.status_code == 200, archived.text

    chart = api_client.get(f"/patients/{patient['id']}/chart", headers=auth_headers).json()
    assert chart["read_only"] is True
    assert chart["teeth"][0]["conditions"] == ["trauma"]

    assert _toggle(api_client, auth_headers, patient["id"], 21, "trauma").status_code == 409
    blocked = api_client.post(
        f"/patients/{patient['id']}/chart/teeth/21/treatments",
        json={"type": "crown", "date": "2025-01-10"},
        headers=auth_headers,
    )
    assert blocked.status_code == 409

    odontogram = api_client.get(
        f"/patients/{patient['id']}/odontogram", params={"selected": 21}, headers=auth_headers
    ).json()
    assert odontogram["read_only"] is True
    assert odontogram["selected"] is None
    assert odontogram["panel"] is None


def test_odontogram_layout_and_svg(api_client, auth_headers, patient_factory):
    patient = patient_factory()
    _toggle(api_client, auth_headers, patient["id"], 11, "cavity")
    _toggle(api_client, auth_headers, patient["id"], 11, "pain")

    body = api_client.get(f"/patients/{patient['id']}/odontogram", headers=auth_headers).json()
    assert len(body["upper"]) == 16
    assert len(body["lower"]) == 16
    assert body["panel"] is None
    upper = {view["number"]: view for view in body["upper"]}
    assert len(upper[11]["fill"]["gradient"]) == 2
    assert upper[12]["fill"]["gradient"] == []

    svg = api_client.get(f"/patients/{patient['id']}/odontogram.svg", headers=auth_headers)
    assert svg.status_code == 200
    assert svg.headers["content-type"].startswith("image/svg+xml")
    assert 'data-tooth="11"' in svg.text
    assert "gradient-11" in svg.text

    bad = api_client.get(
        f"/patients/{patient['id']}/odontogram", params={"selected": 99}, headers=auth_headers
    )
    assert bad.status_code == 422
