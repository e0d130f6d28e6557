# backend/tests/test_public.py
HDR = {"X-API-Key": "test-key"}

def _make_survey(client, **extra):
    body = {
        "title": "Public Flow",
        "period": {"type": "semester", "year": 2025, "value": "S1"},
        "indicators": [
            {"title": "Pelayanan", "questions": [
                {"text": "Ramah?", "order_index": 0, "type": "likert-4"},
                {"text": "Komentar", "order_index": 1, "type": "text", "required": False},
                {"text": "Layanan dipakai", "order_index": 2, "type": "checkbox", "required": False,
                 "options": ["Loket", "Online"]},
            ]},
        ],
        "demographic_fields": [
            {"label": "Usia", "type": "number", "required": True},
            {"label": "Pekerjaan", "type": "text", "required": False},
        ],
    }
    body.update(extra)
    sid = client.post("/admin/surveys", json=body, headers=HDR).json()["id"]
    d = client.get(f"/admin/surveys/{sid}/detail", headers=HDR).json()
    qids = [q["id"] for q in d["indicators"][0]["questions"]]
    fids = [f["id"] for f in d["demographic_fields"]]
    return sid, qids, fids

def test_public_load(client):
    sid, qids, _ = _make_survey(client)
    j = client.get(f"/public/surveys/{sid}").json()
    assert j["survey"]["id"] == sid
    assert j["period"]["canonical_value"] == "S1-2025"
    assert j["period"]["display_label"] == "Semester 1 2025"
    assert [q["id"] for q in j["indicators"][0]["questions"]] == qids

def test_submit_stores_canonical_period(client):
    sid, (q1, q2, q3), (f1, f2) = _make_survey(client)
    r = client.post(f"/public/surveys/{sid}/responses", json={
        "respondent": {"name": "Budi"},
        "demographics": [{"field_id": f1, "value": 34}],
        "answers": [
            {"question_id": q1, "value": 4},
            {"question_id": q2, "value": "cepat"},
            {"question_id": q3, "value": ["Loket", "Online"]},
        ],
    })
    assert r.status_code == 200, r.text
    assert r.json()["periode_survei"] == "S1-2025"

    rows = client.get(f"/admin/surveys/{sid}/responses", headers=HDR).json()
    by_q = {row["question_id"]: row for row in rows}
    assert by_q[q1]["score"] == 4.0
    assert by_q[q2]["value"] == "cepat"
    assert by_q[q3]["value"] == '["Loket", "Online"]'
    assert all(row["periode_survei"] == "S1-2025" for row in rows)
    assert all(row["respondent_name"] == "Budi" for row in rows)

def test_missing_required_demographic_rejected(client):
    sid, (q1, _, _), _ = _make_survey(client)
    r = client.post(f"/public/surveys/{sid}/responses", json={
        "answers": [{"question_id": q1, "value": 3}],
    })
    assert r.status_code == 400
    assert "demographic" in r.json()["detail"]

def test_missing_required_question_rejected(client):
    sid, _, (f1, _) = _make_survey(client)
    r = client.post(f"/public/surveys/{sid}/responses", json={
        "demographics": [{"field_id": f1, "value": 20}],
        "answers": [],
    })
    assert r.status_code == 400
    assert "unanswered" in r.json()["detail"]

def test_zero_likert_counts_as_unanswered(client):
    sid, (q1, _, _), (f1, _) = _make_survey(client)
    r = client.post(f"/public/surveys/{sid}/responses", json={
        "demographics": [{"field_id": f1, "value": 20}],
        "answers": [{"question_id": q1, "value": 0}],
    })
    assert r.status_code == 400

def test_out_of_scale_answer_rejected(client):
    sid, (q1, _, _), (f1, _) = _make_survey(client)
    r = client.post(f"/public/surveys/{sid}/responses", json={
        "demographics": [{"field_id": f1, "value": 20}],
        "answers": [{"question_id": q1, "value": 5}],
    })
    assert r.status_code == 400

def test_fractional_likert_answer_rejected(client):
    sid, (q1, _, _), (f1, _) = _make_survey(client)
    r = client.post(f"/public/surveys/{sid}/responses", json={
        "demographics": [{"field_id": f1, "value": 20}],
        "answers": [{"question_id": q1, "value": 2.5}],
    })
    assert r.status_code == 400
    assert "whole number" in r.json()["detail"]
    assert client.get(f"/admin/surveys/{sid}/responses", headers=HDR).json() == []

def test_unknown_question_rejected(client):
    sid, _, (f1, _) = _make_survey(client)
    r = client.post(f"/public/surveys/{sid}/responses", json={
        "demographics": [{"field_id": f1, "value": 20}],
        "answers": [{"question_id": 999999, "value": 3}],
    })
    assert r.status_code == 400

def test_unknown_or_inactive_survey(client):
    assert client.get("/public/surveys/999999").status_code == 404
    sid, _, _ = _make_survey(client, is_active=False)
    assert client.get(f"/public/surveys/{sid}").status_code == 404
    assert client.post(f"/public/surveys/{sid}/responses", json={}).status_code == 404
