"""
Test: bellringer routes - generation, batch week fill, editing, display.
"""
import io
import json

FULL_RESPONSE = json.dumps({
    "prompts": [
        {"journal_type": "creative", "journal_prompt": "Prompt one", "journal_subprompt": "Write it!"},
        {"journal_type": "quote", "journal_prompt": "Prompt two"},
        {"journal_type": "reflective", "journal_prompt": "Prompt three"},
        {"journal_type": "list", "journal_prompt": "Prompt four"},
    ],
    "act_skill_category": "punctuation",
    "act_skill": "commas",
    "act_question": "Which choice is correct?",
    "act_choice_a": "A. NO CHANGE",
    "act_choice_b": "B. however,",
    "act_choice_c": "C. however;",
    "act_choice_d": "D. however",
    "act_correct_answer": "B",
    "act_explanation": "Set off the interrupter.",
    "act_rule": "Commas around interrupters.",
})

PROMPTS_ONLY_RESPONSE = json.dumps({
    "prompts": [{"journal_type": "creative", "journal_prompt": "Only prompts here"}],
})

ACT_RESPONSE = json.dumps({
    "act_skill": "Subject-Verb Agreement",
    "act_question": "Neither of the bridges <b>were</b> strong enough.",
    "act_choices": "A. have been\nB. was\nC. are\nD. No change",
    "act_answer": "B",
    "act_rule": "Neither is singular.",
})

EMPTY_REPLY = '{"foo": "bar"}'


class TestGetBellringer:
    def test_missing_date(self, client):
        assert client.get('/api/bellringers/2026-03-10').get_json() == {"bellringer": None, "prompts": []}

    def test_with_prompts(self, client, fake_db):
        br = fake_db.seed('bellringers', [{"date": "2026-03-10", "journal_prompt": "Hi"}])[0]
        fake_db.seed('bellringer_prompts', [
            {"bellringer_id": br["id"], "slot": 1, "journal_prompt": "second"},
            {"bellringer_id": br["id"], "slot": 0, "journal_prompt": "first"},
        ])
        body = client.get('/api/bellringers/2026-03-10').get_json()
        assert body["bellringer"]["id"] == br["id"]
        assert [p["slot"] for p in body["prompts"]] == [0, 1]


class TestGenerate:
    def test_creates_bellringer_and_four_slots(self, client, fake_db, fake_provider):
        fake_provider.queue(FULL_RESPONSE)
        body = client.post('/api/bellringers/generate', json={"date": "2026-03-10"}).get_json()

        assert body["bellringer"]["journal_prompt"] == "Prompt one"
        assert body["bellringer"]["act_skill"] == "commas"
        assert len(body["prompts"]) == 4
        assert body["prompts"][1]["journal_subprompt"] == "WRITE A PARAGRAPH IN YOUR JOURNAL!"

    def test_prompts_only_keeps_act(self, client, fake_db, fake_provider):
        fake_db.seed('bellringers', [{"date": "2026-03-10", "act_question": "Keep me"}])
        fake_provider.queue(FULL_RESPONSE)
        body = client.post('/api/bellringers/generate', json={"date": "2026-03-10", "promptsOnly": True}).get_json()
        assert body["bellringer"]["act_question"] == "Keep me"
        assert len(fake_db.rows('bellringers')) == 1

    def test_date_required(self, client):
        assert client.post('/api/bellringers/generate', json={}).status_code == 400

    def test_generation_failure_is_500(self, client, fake_provider):
        fake_provider.queue("nope", "nope", "nope")
        resp = client.post('/api/bellringers/generate', json={"date": "2026-03-10"})
        assert resp.status_code == 500
        assert "error" in resp.get_json()

    def test_reply_without_prompts_is_500(self, client, fake_db, fake_provider):
        fake_provider.queue(EMPTY_REPLY, EMPTY_REPLY, EMPTY_REPLY)
        resp = client.post('/api/bellringers/generate', json={"date": "2026-03-10"})
        assert resp.status_code == 500
        assert "missing prompts" in resp.get_json()["error"]
        assert fake_db.rows('bellringers') == []
        assert fake_db.rows('bellringer_prompts') == []

    def test_reply_without_act_is_retried(self, client, fake_provider):
        fake_provider.queue(PROMPTS_ONLY_RESPONSE, FULL_RESPONSE)
        body = client.post('/api/bellringers/generate', json={"date": "2026-03-10"}).get_json()
        assert body["bellringer"]["act_question"] == "Which choice is correct?"
        assert len(fake_provider.calls) == 2

    def test_prompts_only_does_not_need_act(self, client, fake_provider):
        fake_provider.queue(PROMPTS_ONLY_RESPONSE)
        body = client.post(
            '/api/bellringers/generate', json={"date": "2026-03-10", "promptsOnly": True}
        ).get_json()
        assert body["bellringer"]["journal_prompt"] == "Only prompts here"


class TestGenerateParts:
    def test_single_prompt(self, client, fake_provider):
        fake_provider.queue('{"journal_type": "poetry", "journal_prompt": "Write a haiku about rain."}')
        body = client.post('/api/bellringers/generate-prompt', json={"date": "2026-03-10", "slot": 3}).get_json()
        assert body["prompt"]["slot"] == 3
        assert body["prompt"]["journal_prompt"] == "Write a haiku about rain."

    def test_single_prompt_without_text_is_500(self, client, fake_db, fake_provider):
        fake_provider.queue(EMPTY_REPLY, '{"journal_prompt": "  "}', EMPTY_REPLY)
        resp = client.post('/api/bellringers/generate-prompt', json={"date": "2026-03-10", "slot": 0})
        assert resp.status_code == 500
        assert fake_db.rows('bellringer_prompts') == []

    def test_act_question(self, client, fake_provider):
        fake_provider.queue(ACT_RESPONSE)
        body = client.post('/api/bellringers/generate-act', json={"date": "2026-03-10"}).get_json()
        bellringer = body["bellringer"]
        assert bellringer["act_choice_b"] == "B. was"
        assert bellringer["act_correct_answer"] == "B"

    def test_act_without_choices_is_500(self, client, fake_db, fake_provider):
        no_choices = json.dumps({"act_question": "Pick one", "act_answer": "A"})
        fake_provider.queue(EMPTY_REPLY, no_choices, no_choices)
        resp = client.post('/api/bellringers/generate-act', json={"date": "2026-03-10"})
        assert resp.status_code == 500
        assert fake_db.rows('bellringers') == []


class TestGenerateBatch:
    def test_skips_existing_and_collects_failures(self, client, fake_db, fake_provider):
        fake_db.seed('bellringers', [{"date": "2026-03-10"}])
        # Mon ok, Tue skipped, Wed fails three times, Thu ok, Fri ok
        fake_provider.queue(FULL_RESPONSE, "bad", "bad", "bad", FULL_RESPONSE, FULL_RESPONSE)

        body = client.post('/api/bellringers/generate-batch', json={"week_of": "2026-03-09"}).get_json()

        assert body["week_of"] == "2026-03-09"
        assert [r["date"] for r in body["results"]] == [
            "2026-03-09", "2026-03-10", "2026-03-11", "2026-03-12", "2026-03-13",
        ]
        assert body["results"][1]["skipped"] is True
        assert body["results"][2]["success"] is False
        assert body["summary"] == {"generated": 3, "skipped": 1, "failed": 1}
        assert len(fake_db.rows('bellringer_prompts')) == 12

    def test_regenerates_when_not_skipping(self, client, fake_db, fake_provider):
        fake_db.seed('bellringers', [{"date": "2026-03-10"}])
        fake_provider.queue(*[FULL_RESPONSE] * 5)
        body = client.post(
            '/api/bellringers/generate-batch', json={"week_of": "2026-03-09", "skip_existing": False}
        ).get_json()
        assert body["summary"]["generated"] == 5

    def test_invalid_week(self, client):
        assert client.post('/api/bellringers/generate-batch', json={"week_of": "next week"}).status_code == 400


class TestEditing:
    def test_save_mirrors_slot_zero(self, client, fake_db):
        body = client.post('/api/bellringers/save', json={
            "date": "2026-03-10",
            "act_question": "Edited?",
            "prompts": [
                {"slot": 1, "journal_type": "quote", "journal_prompt": "second"},
                {"slot": 0, "journal_type": "creative", "journal_prompt": "first"},
            ],
        }).get_json()
        assert body["bellringer"]["journal_prompt"] == "first"
        assert body["bellringer"]["act_question"] == "Edited?"
        assert len(body["prompts"]) == 2

    def test_save_rejects_non_list_prompts(self, client):
        resp = client.post('/api/bellringers/save', json={"date": "2026-03-10", "prompts": "x"})
        assert resp.status_code == 400

    def test_approve(self, client, fake_db):
        fake_db.seed('bellringers', [{"date": "2026-03-10", "status": "draft", "is_approved": False}])
        body = client.post('/api/bellringers/approve', json={"date": "2026-03-10"}).get_json()
        assert body["bellringer"]["is_approved"] is True
        assert body["bellringer"]["status"] == "approved"

    def test_approve_missing(self, client):
        assert client.post('/api/bellringers/approve', json={"date": "2026-03-10"}).status_code == 404

    def test_reuse_copies_prompts_as_draft(self, client, fake_db):
        src = fake_db.seed('bellringers', [
            {"date": "2026-02-02", "journal_prompt": "old", "act_question": "Q", "is_approved": True, "status": "approved"}
        ])[0]
        fake_db.seed('bellringer_prompts', [{"bellringer_id": src["id"], "slot": 0, "journal_prompt": "old"}])

        body = client.post('/api/bellringers/reuse', json={"source_id": src["id"], "target_date": "2026-03-10"}).get_json()
        assert body["bellringer"]["date"] == "2026-03-10"
        assert body["bellringer"]["act_question"] == "Q"
        assert body["bellringer"]["is_approved"] is False
        assert body["prompts"][0]["journal_prompt"] == "old"

    def test_reuse_missing_source(self, client):
        resp = client.post('/api/bellringers/reuse', json={"source_id": 42, "target_date": "2026-03-10"})
        assert resp.status_code == 404

    def test_send_to_slot(self, client, fake_db):
        src = fake_db.seed('bellringers', [{"date": "2026-02-02"}])[0]
        prompt = fake_db.seed('bellringer_prompts', [
            {"bellringer_id": src["id"], "slot": 0, "journal_type": "poetry", "journal_prompt": "A haiku"}
        ])[0]
        body = client.post('/api/bellringers/send-to-slot', json={
            "prompt_id": prompt["id"], "target_date": "2026-03-10", "slot": 2,
        }).get_json()
        assert body["prompt"]["slot"] == 2
        assert body["prompt"]["journal_prompt"] == "A haiku"


class TestImages:
    def test_upload_stores_file_on_slot(self, client, fake_db):
        resp = client.post('/api/bellringers/upload-image', data={
            "image": (io.BytesIO(b"\x89PNG"), "pic.png", "image/png"),
            "date": "2026-03-10",
            "slot": "1",
        }, content_type='multipart/form-data')
        body = resp.get_json()
        assert "bellringers/bellringer_2026-03-10_slot1_" in body["path"]
        assert body["prompt"] is None
        assert fake_db.rows('bellringer_prompts')[0]["image_path"] == body["path"]

    def test_upload_keeps_image_when_prompt_reply_is_bad(self, client, fake_db, fake_provider):
        fake_provider.queue(EMPTY_REPLY, EMPTY_REPLY, EMPTY_REPLY)
        resp = client.post('/api/bellringers/upload-image', data={
            "image": (io.BytesIO(b"\x89PNG"), "pic.png", "image/png"),
            "date": "2026-03-10",
            "slot": "2",
            "generate_prompt": "true",
        }, content_type='multipart/form-data')
        assert resp.status_code == 200
        assert resp.get_json()["prompt"] is None
        stored = fake_db.rows('bellringer_prompts')[0]
        assert stored["image_path"] == resp.get_json()["path"]
        assert not stored.get("journal_prompt")

    def test_upload_requires_fields(self, client):
        resp = client.post('/api/bellringers/upload-image', data={"date": "2026-03-10"},
                           content_type='multipart/form-data')
        assert resp.status_code == 400

    def test_remove_image(self, client, fake_db):
        br = fake_db.seed('bellringers', [{"date": "2026-03-10"}])[0]
        fake_db.seed('bellringer_prompts', [{"bellringer_id": br["id"], "slot": 1, "image_path": "https://x/y.png"}])
        body = client.post('/api/bellringers/remove-image', json={"date": "2026-03-10", "slot": 1}).get_json()
        assert body["ok"] is True
        assert body["prompt"]["image_path"] is None


class TestLibraryAndDisplay:
    def test_library_flattens_with_parent_date(self, client, fake_db):
        br = fake_db.seed('bellringers', [{"date": "2026-03-10", "status": "draft"}])[0]
        fake_db.seed('bellringer_prompts', [
            {"bellringer_id": br["id"], "slot": 0, "journal_prompt": "a"},
            {"bellringer_id": br["id"], "slot": 1, "journal_prompt": "b"},
        ])
        prompts = client.get('/api/bellringers/library').get_json()["prompts"]
        assert [p["journal_prompt"] for p in prompts] == ["b", "a"]
        assert prompts[0]["date"] == "2026-03-10"
        assert prompts[0]["is_approved"] is False

    def test_display_tops_up_to_four_cards(self, client, fake_db):
        br = fake_db.seed('bellringers', [{
            "date": "2026-03-10", "act_question": "Which?",
            "act_choice_a": "A. one", "act_choice_b": "B. two", "act_correct_answer": "b",
        }])[0]
        fake_db.seed('bellringer_prompts', [
            {"bellringer_id": br["id"], "slot": 0, "journal_type": "creative", "journal_prompt": "Ours"},
        ])
        body = client.get('/api/display/2026-03-10').get_json()
        assert len(body["cards"]) == 4
        assert body["cards"][0]["text"] == "Ours"
        assert all(c["type"] != "creative" for c in body["cards"][1:])
        assert body["act"]["answer_text"] == "B. two"

    def test_display_missing(self, client):
        assert client.get('/api/display/2026-03-10').status_code == 404

    def test_display_bad_date(self, client):
        assert client.get('/api/display/March-10').status_code == 400
