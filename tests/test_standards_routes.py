"""
Test: standards library routes and the coverage report.
"""
import json

import pytest


@pytest.fixture
def tagged(fake_db, classes):
    standards = fake_db.seed('standards', [
        {"subject": "English", "grade_band": "9", "code": "9.3.R.1", "description": "Literary elements", "strand": "Reading"},
        {"subject": "English", "grade_band": "9", "code": "9.3.W.4", "description": "Argument", "strand": "Writing"},
        {"subject": "French", "grade_band": "1", "code": "FL.1.C.2", "description": "Greetings", "strand": "Communication"},
    ])
    acts = fake_db.seed('activities', [
        {"class_id": classes[0]["id"], "date": "2026-03-02", "title": "Gatsby ch. 1"},
        {"class_id": classes[0]["id"], "date": "2026-03-09", "title": "Gatsby ch. 2"},
        {"class_id": classes[1]["id"], "date": None, "title": "Someday"},
    ])
    fake_db.seed('activity_standards', [
        {"activity_id": acts[0]["id"], "standard_id": standards[0]["id"]},
        {"activity_id": acts[1]["id"], "standard_id": standards[0]["id"]},
        {"activity_id": acts[2]["id"], "standard_id": standards[0]["id"]},
    ])
    return standards


class TestSeed:
    def test_seed_then_reseed_updates(self, client, fake_db):
        first = client.post('/api/standards/seed').get_json()
        assert first["success"] is True
        assert first["inserted"] == first["count"] > 0
        assert first["updated"] == 0
        assert "English 9" in first["subjects"]

        second = client.post('/api/standards/seed').get_json()
        assert second["inserted"] == 0
        assert second["updated"] == first["count"]
        assert len(fake_db.rows('standards')) == first["count"]
        assert {r["subject"] for r in fake_db.rows('standards')} == {"English", "French"}


class TestLibrary:
    def test_list_counts_tags(self, client, tagged):
        standards = client.get('/api/standards').get_json()
        counts = {s["code"]: s["activity_count"] for s in standards}
        assert counts == {"9.3.R.1": 3, "9.3.W.4": 0, "FL.1.C.2": 0}

    def test_list_by_subject(self, client, tagged):
        assert [s["code"] for s in client.get('/api/standards?subject=french').get_json()] == ["FL.1.C.2"]

    def test_detail_orders_newest_then_undated(self, client, tagged):
        detail = client.get('/api/standards/detail?code=9.3.R.1').get_json()
        assert detail["hit_count"] == 3
        assert [a["title"] for a in detail["activities"]] == ["Gatsby ch. 2", "Gatsby ch. 1", "Someday"]
        assert detail["activities"][0]["className"] == "English-1"

    def test_detail_errors(self, client, tagged):
        assert client.get('/api/standards/detail').status_code == 400
        assert client.get('/api/standards/detail?code=nope').status_code == 404

    def test_delete_all(self, client, fake_db, tagged):
        assert client.delete('/api/standards').get_json() == {"success": True}
        assert fake_db.rows('standards') == []
        assert fake_db.rows('activity_standards') == []


class TestCoverage:
    def test_one_entry_per_class(self, client, tagged):
        body = client.get('/api/standards/coverage').get_json()
        names = [c["name"] for c in body["classes"]]
        assert names == ["English-1", "English-2", "French-1"]

        english_1 = body["classes"][0]
        reading = next(s for s in english_1["standards"] if s["code"] == "9.3.R.1")
        assert reading["hit_count"] == 2
        assert reading["last_hit_date"] == "2026-03-09"

    def test_tagging_an_activity_adds_one_hit(self, client, fake_db, fake_provider, classes, tagged):
        def argument_row():
            body = client.get('/api/standards/coverage').get_json()
            english_1 = next(c for c in body["classes"] if c["name"] == "English-1")
            return next(s for s in english_1["standards"] if s["code"] == "9.3.W.4")

        before = argument_row()
        assert before["hit_count"] == 0
        assert before["is_gap"] is True

        act = fake_db.seed('activities', [
            {"class_id": classes[0]["id"], "date": "2026-03-12", "title": "Argument essay"},
        ])[0]
        fake_provider.queue('{"codes": ["9.3.W.4"], "reasoning": "Argument writing"}')
        assert client.post(f'/api/activities/{act["id"]}/tag-standards').status_code == 200

        after = argument_row()
        assert after["hit_count"] == before["hit_count"] + 1
        assert after["last_hit_date"] == "2026-03-12"


class TestUpload:
    def test_parses_and_saves(self, client, fake_db, fake_provider, tagged):
        fake_provider.queue(json.dumps({"standards": [
            {"code": "9.3.R.1", "description": "Updated text", "strand": "Reading"},
            {"code": "9.3.V.1", "description": "Vocabulary", "strand": "Vocabulary"},
            {"description": "no code"},
        ]}))
        body = client.post('/api/standards/upload', json={
            "text": "9.3.R.1 ...", "subject": "English", "grade_band": "9",
        }).get_json()
        assert body["parsed"] == 2
        assert body["inserted"] == 1
        assert body["updated"] == 1
        updated = next(r for r in fake_db.rows('standards') if r["code"] == "9.3.R.1")
        assert updated["description"] == "Updated text"

    def test_requires_fields(self, client):
        assert client.post('/api/standards/upload', json={"text": "x", "subject": "English"}).status_code == 400

    def test_nothing_parsed(self, client, fake_provider):
        fake_provider.queue('{"standards": []}')
        resp = client.post('/api/standards/upload', json={"text": "x", "subject": "English", "grade_band": "9"})
        assert resp.status_code == 400
