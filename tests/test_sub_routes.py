"""
Test: substitute plans, the classroom profile, the media library and the
public SubDash view.
"""
import io
import json

import pytest

DATE = "2026-03-11"


@pytest.fixture
def day(fake_db, classes):
    fake_db.seed('classroom_profiles', [
        {"key": "room_number", "value": "214"},
        {"key": "schedule_json", "value": json.dumps([
            {"period": "1st", "time": "8:00", "class_name": "English-2", "class_id": classes[1]["id"]},
            {"period": "Plan", "time": "9:00", "class_name": "Planning"},
        ])},
        {"key": "default_backup_activities", "value": "not json"},
    ])
    fake_db.seed('settings', [{"key": "teacher_name", "value": "R. Shaw"}])
    fake_db.seed('activities', [
        {"class_id": classes[1]["id"], "date": DATE, "title": "Silent reading", "sort_order": 0},
        {"class_id": classes[0]["id"], "date": DATE, "title": "Not on the schedule", "sort_order": 0},
    ])
    br = fake_db.seed('bellringers', [{"date": DATE, "act_question": "Which is correct?",
                                       "act_choice_a": "A", "act_choice_b": "B", "act_correct_answer": "B"}])[0]
    fake_db.seed('bellringer_prompts', [
        {"bellringer_id": br["id"], "slot": 0, "journal_type": "quote", "journal_prompt": "Reflect on courage."},
        {"bellringer_id": br["id"], "slot": 1, "journal_type": "creative", "journal_prompt": ""},
    ])


class TestPlans:
    def test_emergency_plan_is_shared(self, client, fake_db, day):
        resp = client.post('/api/sub/plans', json={
            "date": DATE, "mode": "emergency", "sub_name": "Mr. Cole",
        }, headers={"Origin": "https://dash.example.com"})
        assert resp.status_code == 201
        plan = resp.get_json()
        assert plan["status"] == "shared"
        assert plan["share_url"] == f"https://dash.example.com/subdash/{plan['share_token']}"

        snapshot = client.get(f'/api/subdash/{plan["share_token"]}').get_json()
        assert snapshot["sub_name"] == "Mr. Cole"
        assert snapshot["teacher_name"] == "R. Shaw"
        assert snapshot["school_name"] == "School"
        assert snapshot["room_number"] == "214"
        assert snapshot["backup_activities"] == []
        assert snapshot["periods"][0]["instructions"][0]["title"] == "Silent reading"
        assert snapshot["periods"][1]["instructions"] == []
        assert snapshot["bellringer"]["display_url"] == f"https://dash.example.com/display/{DATE}"
        assert snapshot["bellringer"]["prompts"] == [{"type": "quote", "prompt": "Reflect on courage."}]
        assert snapshot["bellringer"]["act_choices"] == ["A", "B"]

    def test_draft_is_not_public_until_shared(self, client, day):
        plan = client.post('/api/sub/plans', json={"date": DATE}).get_json()
        assert plan["status"] == "draft"
        assert client.get(f'/api/subdash/{plan["share_token"]}').status_code == 404

        updated = client.patch(f'/api/sub/plans/{plan["id"]}', json={
            "status": "shared", "custom_notes": "Fire drill at 10",
        }).get_json()
        assert updated["snapshot"]["custom_notes"] == "Fire drill at 10"
        assert client.get(f'/api/subdash/{plan["share_token"]}').get_json()["custom_notes"] == "Fire drill at 10"

    def test_unknown_token(self, client):
        resp = client.get('/api/subdash/missing')
        assert resp.status_code == 404
        assert resp.get_json() == {"error": "SubDash not found or not shared"}

    def test_invalid_date(self, client):
        assert client.post('/api/sub/plans', json={"date": "03/11"}).status_code == 400

    def test_preview_does_not_save(self, client, fake_db, day):
        snapshot = client.post('/api/sub/plans/preview', json={"date": DATE}).get_json()
        assert snapshot["date"] == DATE
        assert fake_db.rows('subdash_plans') == []

    def test_media_attached_and_removed_with_plan(self, client, fake_db, day):
        media = fake_db.seed('media_library', [{"name": "Video", "url": "https://v.example", "media_type": "video"}])[0]
        plan = client.post('/api/sub/plans', json={"date": DATE, "media_ids": [media["id"]]}).get_json()
        assert plan["snapshot"]["media"][0]["name"] == "Video"
        assert len(fake_db.rows('subdash_media')) == 1

        assert client.delete(f'/api/sub/plans/{plan["id"]}').get_json() == {"success": True}
        assert fake_db.rows('subdash_media') == []
        assert client.get(f'/api/sub/plans/{plan["id"]}').status_code == 404

    def test_list_newest_first(self, client, day):
        client.post('/api/sub/plans', json={"date": DATE})
        client.post('/api/sub/plans', json={"date": "2026-03-12"})
        assert [p["date"] for p in client.get('/api/sub/plans').get_json()] == ["2026-03-12", DATE]


class TestProfile:
    def test_save_serializes_non_strings(self, client, fake_db):
        profile = client.post('/api/sub/profile', json={
            "room_number": "214", "default_backup_activities": ["Read", "Journal"],
        }).get_json()
        assert profile["room_number"] == "214"
        assert json.loads(profile["default_backup_activities"]) == ["Read", "Journal"]

        client.post('/api/sub/profile', json={"room_number": "215"})
        assert client.get('/api/sub/profile').get_json()["room_number"] == "215"
        assert len(fake_db.rows('classroom_profiles')) == 2

    def test_rejects_non_object(self, client):
        assert client.post('/api/sub/profile', json=["a"]).status_code == 400
        assert client.post('/api/sub/profile', json={}).status_code == 400

    def test_seating_chart_upload_and_remove(self, client, fake_db):
        body = client.post('/api/sub/profile/seating-chart', data={
            "image": (io.BytesIO(b"png-bytes"), "chart.png", "image/png"),
        }, content_type='multipart/form-data').get_json()
        assert body["urls"] == [body["url"]]
        assert "/uploads/sub-media/seating_chart_" in body["url"]

        removed = client.delete('/api/sub/profile/seating-chart', json={"url": body["url"]}).get_json()
        assert removed["urls"] == []
        assert fake_db.storage.removed[0].startswith("sub-media/seating_chart_")


class TestMedia:
    def test_file_upload(self, client, fake_db):
        resp = client.post('/api/sub/media', data={
            "file": (io.BytesIO(b"pdf"), "week 3 packet.pdf"),
            "tags": "reading, packet, ",
        }, content_type='multipart/form-data')
        assert resp.status_code == 201
        item = resp.get_json()
        assert item["media_type"] == "file"
        assert item["name"] == "week 3 packet.pdf"
        assert item["tags"] == ["reading", "packet"]
        assert item["file_path"].endswith("_week_3_packet.pdf")

        assert client.delete(f'/api/sub/media/{item["id"]}').get_json() == {"success": True}
        assert fake_db.storage.removed and fake_db.storage.removed[0].startswith("sub-media/")

    def test_link(self, client, fake_db):
        resp = client.post('/api/sub/media', json={"name": "Khan", "url": "https://k.example", "media_type": "link"})
        assert resp.status_code == 201
        assert client.get('/api/sub/media').get_json()[0]["name"] == "Khan"

        renamed = client.patch(f'/api/sub/media/{resp.get_json()["id"]}', json={"name": "Khan Academy"})
        assert renamed.get_json()["name"] == "Khan Academy"

    def test_link_validation(self, client):
        assert client.post('/api/sub/media', json={"name": "x", "url": "y", "media_type": "file"}).status_code == 400
        assert client.post('/api/sub/media', json={"name": "x", "media_type": "link"}).status_code == 400

    def test_missing_items(self, client):
        assert client.delete('/api/sub/media/5').status_code == 404
        assert client.patch('/api/sub/media/5', json={"name": "x"}).status_code == 404
