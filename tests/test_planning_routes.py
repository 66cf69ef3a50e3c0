"""
Test: day view, classes, calendar and activity routes.
"""
import io
import json

import pytest


@pytest.fixture
def english_standards(fake_db):
    return fake_db.seed('standards', [
        {"subject": "English", "grade_band": "9", "code": "9.3.R.1", "description": "Literary elements", "strand": "Reading"},
        {"subject": "English", "grade_band": "9", "code": "9.3.W.4", "description": "Argument", "strand": "Writing"},
        {"subject": "French", "grade_band": "1", "code": "NM.IC.1", "description": "Greetings", "strand": "IC"},
    ])


class TestDayView:
    def test_collects_everything_for_the_date(self, client, fake_db, classes):
        fake_db.seed('calendar_events', [
            {"date": "2026-03-10", "event_type": "assembly", "title": "Pep rally"},
            {"date": "2026-03-11", "event_type": "custom", "title": "Other day"},
        ])
        fake_db.seed('tasks', [
            {"text": "due today", "due_date": "2026-03-10", "is_done": False},
            {"text": "someday", "due_date": None, "is_done": False},
            {"text": "finished someday", "due_date": None, "is_done": True},
        ])
        br = fake_db.seed('bellringers', [{"date": "2026-03-10"}])[0]
        fake_db.seed('bellringer_prompts', [{"bellringer_id": br["id"], "slot": 0, "journal_prompt": "p"}])
        fake_db.seed('activities', [
            {"class_id": classes[0]["id"], "date": "2026-03-10", "title": "Second", "sort_order": 1},
            {"class_id": classes[0]["id"], "date": "2026-03-10", "title": "First", "sort_order": 0},
        ])

        body = client.get('/api/day/2026-03-10').get_json()
        assert [e["title"] for e in body["events"]] == ["Pep rally"]
        assert [t["text"] for t in body["tasks"]] == ["due today"]
        assert [t["text"] for t in body["unscheduled_tasks"]] == ["someday"]
        assert len(body["bellringer"]["prompts"]) == 1
        assert [a["title"] for a in body["activities"]] == ["First", "Second"]
        assert body["activities"][0]["classes"]["name"] == "English-1"

    def test_empty_day(self, client):
        body = client.get('/api/day/2026-03-10').get_json()
        assert body["bellringer"] is None
        assert body["activities"] == []

    def test_bad_date(self, client):
        assert client.get('/api/day/tomorrow').status_code == 400


class TestClasses:
    def test_create_and_list(self, client):
        assert client.post('/api/classes', json={"name": "English-3", "color": "#fff"}).status_code == 201
        assert [c["name"] for c in client.get('/api/classes').get_json()] == ["English-3"]

    def test_name_required(self, client):
        assert client.post('/api/classes', json={}).status_code == 400

    def test_history_groups_by_week(self, client, fake_db, classes):
        cid = classes[0]["id"]
        fake_db.seed('activities', [
            {"class_id": cid, "date": "2026-03-09", "title": "Mon", "sort_order": 0, "is_done": True, "material_status": "ready"},
            {"class_id": cid, "date": "2026-03-13", "title": "Fri", "sort_order": 0, "material_status": "needs_material"},
            {"class_id": cid, "date": "2026-03-02", "title": "Last week", "sort_order": 0, "material_status": "not_needed"},
            {"class_id": cid, "date": None, "title": "Undated", "sort_order": 0},
            {"class_id": classes[1]["id"], "date": "2026-03-09", "title": "Other class", "sort_order": 0},
        ])
        body = client.get(f'/api/classes/{cid}/history').get_json()
        assert [a["title"] for a in body["activities"]] == ["Fri", "Mon", "Last week"]
        assert sorted(body["weeks"]) == ["2026-03-02", "2026-03-09"]
        assert len(body["weeks"]["2026-03-09"]) == 2
        assert body["stats"]["total"] == 3
        assert body["stats"]["done"] == 1
        assert body["stats"]["ready"] == 2

    def test_history_unknown_class(self, client):
        assert client.get('/api/classes/99/history').status_code == 404


class TestCalendar:
    def test_range_query(self, client, fake_db):
        fake_db.seed('calendar_events', [
            {"date": "2026-03-20", "event_type": "custom", "title": "B"},
            {"date": "2026-03-05", "event_type": "custom", "title": "A"},
            {"date": "2026-04-20", "event_type": "custom", "title": "C"},
        ])
        events = client.get('/api/calendar/events?start=2026-03-01&end=2026-03-31').get_json()
        assert [e["title"] for e in events] == ["A", "B"]

    def test_create_requires_fields(self, client):
        assert client.post('/api/calendar/events', json={"date": "2026-03-05"}).status_code == 400

    def test_import_csv(self, client, fake_db):
        csv_text = "Date,Type,Title,Notes\n2026-03-05,holiday,No School,\n,custom,Missing date,\n2026-03-06,testing,,\n"
        resp = client.post('/api/calendar/import-csv', data={
            "file": (io.BytesIO(csv_text.encode('utf-8-sig')), "events.csv"),
        }, content_type='multipart/form-data')
        assert resp.status_code == 201
        assert resp.get_json() == {"imported": 2}
        assert fake_db.rows('calendar_events')[0]["event_type"] == "holiday"

    def test_import_csv_without_events(self, client):
        resp = client.post('/api/calendar/import-csv', data={
            "file": (io.BytesIO(b"date,title\n"), "events.csv"),
        }, content_type='multipart/form-data')
        assert resp.status_code == 400

    def test_import_pdf(self, client, fake_db, fake_provider):
        fake_provider.queue(json.dumps([
            {"date": "2026-03-16", "event_type": "Spring Break", "title": "Spring Break"},
            {"date": "TBD", "event_type": "custom", "title": "Skip me"},
        ]))
        resp = client.post('/api/calendar/import-pdf', data={
            "file": (io.BytesIO(b"%PDF-1.4"), "calendar.pdf", "application/pdf"),
        }, content_type='multipart/form-data')
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["events_created"] == 1
        assert body["events"][0]["event_type"] == "break"
        assert fake_provider.calls[0]["mime_type"] == "application/pdf"

    def test_import_pdf_rejects_other_files(self, client):
        resp = client.post('/api/calendar/import-pdf', data={
            "file": (io.BytesIO(b"hello"), "notes.txt", "text/plain"),
        }, content_type='multipart/form-data')
        assert resp.status_code == 400

    def test_seed_is_idempotent(self, client, fake_db):
        first = client.post('/api/calendar/seed').get_json()
        assert first["inserted"] > 0
        second = client.post('/api/calendar/seed').get_json()
        assert second["inserted"] == 0
        assert len(fake_db.rows('calendar_events')) == first["inserted"]


class TestActivities:
    def test_create_defaults(self, client, classes):
        resp = client.post('/api/activities', json={"class_id": classes[0]["id"], "title": "Read ch. 3"})
        assert resp.status_code == 201
        act = resp.get_json()
        assert act["activity_type"] == "lesson"
        assert act["material_status"] == "not_needed"
        assert act["classes"]["name"] == "English-1"

    def test_create_requires_class_and_title(self, client):
        assert client.post('/api/activities', json={"title": "x"}).status_code == 400

    def test_list_includes_standards(self, client, fake_db, classes, english_standards):
        act = fake_db.seed('activities', [{"class_id": classes[0]["id"], "date": "2026-03-10", "title": "Essay", "sort_order": 0}])[0]
        fake_db.seed('activity_standards', [{"activity_id": act["id"], "standard_id": english_standards[1]["id"], "tagged_by": "ai"}])
        acts = client.get('/api/activities?date=2026-03-10').get_json()
        assert acts[0]["activity_standards"][0]["standards"]["code"] == "9.3.W.4"

    def test_bump_skips_weekend(self, client, fake_db, classes):
        act = fake_db.seed('activities', [{"class_id": classes[0]["id"], "date": "2026-03-13", "title": "Quiz"}])[0]
        body = client.post(f'/api/activities/{act["id"]}/bump').get_json()
        assert body["bumped_from"] == "2026-03-13"
        assert body["bumped_to"] == "2026-03-16"
        assert body["activity"]["moved_to_date"] == "2026-03-16"

    def test_bump_undated(self, client, fake_db, classes):
        act = fake_db.seed('activities', [{"class_id": classes[0]["id"], "date": None, "title": "Quiz"}])[0]
        assert client.post(f'/api/activities/{act["id"]}/bump').status_code == 400

    def test_delete_removes_tags(self, client, fake_db, classes, english_standards):
        act = fake_db.seed('activities', [{"class_id": classes[0]["id"], "title": "x"}])[0]
        fake_db.seed('activity_standards', [{"activity_id": act["id"], "standard_id": english_standards[0]["id"]}])
        assert client.delete(f'/api/activities/{act["id"]}').status_code == 200
        assert fake_db.rows('activity_standards') == []
        assert client.delete(f'/api/activities/{act["id"]}').status_code == 404

    def test_tag_standards_drops_invented_codes(self, client, fake_db, fake_provider, classes, english_standards):
        act = fake_db.seed('activities', [{"class_id": classes[0]["id"], "title": "Argument essay"}])[0]
        fake_provider.queue('{"codes": ["9.3.W.4", "9.9.Z.9"], "reasoning": "Argument writing"}')
        body = client.post(f'/api/activities/{act["id"]}/tag-standards').get_json()
        assert [s["code"] for s in body["tagged"]] == ["9.3.W.4"]
        assert body["reasoning"] == "Argument writing"
        assert len(fake_db.rows('activity_standards')) == 1

    def test_tag_standards_all_invented_is_error(self, client, fake_db, fake_provider, classes, english_standards):
        act = fake_db.seed('activities', [{"class_id": classes[0]["id"], "title": "x"}])[0]
        fake_provider.queue('{"codes": ["X.1"], "reasoning": ""}')
        assert client.post(f'/api/activities/{act["id"]}/tag-standards').status_code == 500

    def test_regenerate_replaces_and_retags(self, client, fake_db, fake_provider, classes, english_standards):
        act = fake_db.seed('activities', [{"class_id": classes[0]["id"], "date": "2026-03-10", "title": "Old"}])[0]
        fake_db.seed('activity_standards', [{"activity_id": act["id"], "standard_id": english_standards[1]["id"]}])
        fake_provider.queue(
            '{"title": "Symbolism gallery walk", "description": "Stations", "activity_type": "activity"}',
            '{"codes": ["9.3.R.1"], "reasoning": "Literary elements"}',
        )
        body = client.post(f'/api/activities/{act["id"]}/regenerate').get_json()
        assert body["title"] == "Symbolism gallery walk"
        assert [t["standards"]["code"] for t in body["activity_standards"]] == ["9.3.R.1"]

    def test_regenerate_keeps_tags_when_tagging_fails(self, client, fake_db, fake_provider, classes, english_standards):
        act = fake_db.seed('activities', [{"class_id": classes[0]["id"], "title": "Old"}])[0]
        fake_db.seed('activity_standards', [{"activity_id": act["id"], "standard_id": english_standards[1]["id"]}])
        fake_provider.queue('{"title": "New", "description": "", "activity_type": "lesson"}', "x", "x", "x")
        body = client.post(f'/api/activities/{act["id"]}/regenerate').get_json()
        assert body["title"] == "New"
        assert len(body["activity_standards"]) == 1
