import json

from conftest import onboard, register


def _create(client, headers, topic="photosynthesis"):
    resp = client.post("/explanations", json={"topic": topic}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_create_explanation_persists_and_counts(client, ready_headers, fake_ai, sample_explanation):
    body = _create(client, ready_headers)
    assert body["topic"] == "photosynthesis"
    assert body["explanation_data"] == sample_explanation
    assert [s["id"] for s in body["sections"]] == ["simple", "analogy", "steps", "visual", "deeper", "realworld", "practice", "quiz"]
    assert body["suggested_follow_ups"][0] == "How does this connect to real life?"

    # stored interests feed the prompt
    assert "Cooking" in fake_ai.payloads[0]["messages"][1]["content"]

    progress = client.get("/progress", headers=ready_headers).json()
    assert progress["total_explanations"] == 1
    assert progress["current_streak"] == 1
    assert [b["label"] for b in progress["badges"]] == ["First Explanation"]
    assert progress["recent_activity"][0]["id"] == body["id"]


def test_failed_generation_writes_nothing(client, ready_headers, fake_ai):
    fake_ai.fail(status=500)
    resp = client.post("/explanations", json={"topic": "gravity"}, headers=ready_headers)
    assert resp.status_code == 500
    assert resp.json() == {"error": "AI request failed: 500"}

    fake_ai.reply("not json at all")
    resp = client.post("/explanations", json={"topic": "gravity"}, headers=ready_headers)
    assert resp.status_code == 500

    assert client.get("/explanations", headers=ready_headers).json() == []
    assert client.get("/progress", headers=ready_headers).json()["total_explanations"] == 0


def test_empty_topic_is_400(client, ready_headers, fake_ai):
    resp = client.post("/explanations", json={"topic": "  "}, headers=ready_headers)
    assert resp.status_code == 400
    assert fake_ai.requests == []


def test_recent_explanations_respects_limit(client, ready_headers):
    for topic in ("a", "b", "c"):
        _create(client, ready_headers, topic)
    rows = client.get("/explanations?limit=2", headers=ready_headers).json()
    assert len(rows) == 2
    assert rows[0]["sections"] == []
    assert len(client.get("/explanations", headers=ready_headers).json()) == 3
    assert client.get("/explanations?limit=0", headers=ready_headers).status_code == 422


def test_explanations_are_private(client, ready_headers):
    mine = _create(client, ready_headers)
    other = register(client, email="other@example.com")
    onboard(client, other, interests=["Music"])
    assert client.get(f"/explanations/{mine['id']}", headers=other).status_code == 404
    assert client.get("/explanations", headers=other).json() == []
    resp = client.post("/follow-ups", json={"question": "Why?", "explanation_id": mine["id"]}, headers=other)
    assert resp.status_code == 404


def test_get_single_section_and_unknown_section(client, ready_headers, sample_explanation):
    created = _create(client, ready_headers)
    resp = client.get(f"/explanations/{created['id']}/sections/steps", headers=ready_headers)
    assert resp.status_code == 200
    assert resp.json() == {
        "id": "steps",
        "title": "Step-by-Step",
        "kind": "numbered",
        "content": sample_explanation["stepByStep"],
    }
    resp = client.get(f"/explanations/{created['id']}/sections/bogus", headers=ready_headers)
    assert resp.status_code == 404


def test_quiz_section_hides_the_answers(client, ready_headers, sample_explanation):
    created = _create(client, ready_headers)
    resp = client.get(f"/explanations/{created['id']}/sections/quiz", headers=ready_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert (body["title"], body["kind"]) == ("Mini Quiz", "quiz")
    assert body["content"] == [
        {"question": q["question"], "options": q["options"]} for q in sample_explanation["quiz"]
    ]
    assert "correctAnswer" not in resp.text


def test_follow_up_is_linked_and_listed(client, ready_headers, fake_ai):
    created = _create(client, ready_headers)
    fake_ai.reply("First answer")
    fake_ai.reply("Second answer")
    first = client.post("/follow-ups", json={"question": "Why?", "explanation_id": created["id"]}, headers=ready_headers)
    second = client.post("/follow-ups", json={"question": "How?", "explanation_id": created["id"]}, headers=ready_headers)
    assert first.status_code == 201
    assert first.json()["answer"] == {"content": "First answer"}
    assert first.json()["explanation_id"] == created["id"]

    prompt = fake_ai.payloads[1]["messages"][1]["content"]
    assert "Context from previous explanation: photosynthesis" in prompt

    listed = client.get(f"/explanations/{created['id']}/follow-ups", headers=ready_headers).json()
    assert {f["id"] for f in listed} == {first.json()["id"], second.json()["id"]}


def test_follow_up_without_explanation(client, ready_headers, fake_ai):
    fake_ai.reply("An answer without context")
    resp = client.post("/follow-ups", json={"question": "What should I learn next?"}, headers=ready_headers)
    assert resp.status_code == 201
    assert resp.json()["explanation_id"] is None
    assert resp.json()["answer"]["content"] == "An answer without context"
    assert "Context from previous explanation" not in fake_ai.payloads[0]["messages"][1]["content"]


def test_failed_follow_up_writes_nothing(client, ready_headers, fake_ai):
    created = _create(client, ready_headers)
    fake_ai.fail(status=503)
    resp = client.post("/follow-ups", json={"question": "Why?", "explanation_id": created["id"]}, headers=ready_headers)
    assert resp.status_code == 500
    assert client.get(f"/explanations/{created['id']}/follow-ups", headers=ready_headers).json() == []


def test_quiz_scoring_awards_stars_and_badge(client, ready_headers):
    created = _create(client, ready_headers)
    url = f"/explanations/{created['id']}/quiz"

    partial = client.post(url, json={"answers": [1, 0, None]}, headers=ready_headers).json()
    assert partial["score"] == 1
    assert partial["correct"] == [True, False, False]
    assert partial["correct_answers"] == [1, 2, 0]
    assert partial["stars_awarded"] == 1
    assert partial["badges_earned"] == []

    perfect = client.post(url, json={"answers": [1, 2, 0]}, headers=ready_headers).json()
    assert perfect["score"] == 3
    assert perfect["stars_awarded"] == 2
    assert perfect["badges_earned"] == ["Quiz Master"]

    progress = client.get("/progress", headers=ready_headers).json()
    assert progress["total_stars"] == 3
    assert "Quiz Master" in [b["label"] for b in progress["badges"]]


def test_resubmitting_a_perfect_quiz_earns_no_more_stars(client, ready_headers):
    created = _create(client, ready_headers)
    url = f"/explanations/{created['id']}/quiz"
    first = client.post(url, json={"answers": [1, 2, 0]}, headers=ready_headers).json()
    assert first["stars_awarded"] == 3

    for _ in range(4):
        again = client.post(url, json={"answers": [1, 2, 0]}, headers=ready_headers).json()
        assert again["score"] == 3
        assert again["stars_awarded"] == 0
        assert again["badges_earned"] == []

    assert client.get("/progress", headers=ready_headers).json()["total_stars"] == 3


def test_quiz_needs_one_answer_per_question(client, ready_headers):
    created = _create(client, ready_headers)
    resp = client.post(f"/explanations/{created['id']}/quiz", json={"answers": [1]}, headers=ready_headers)
    assert resp.status_code == 400


def test_learning_style_reaches_the_prompt(client, fake_ai):
    headers = register(client, email="styled@example.com")
    onboard(client, headers, interests=["Football"], learning_style="story")
    _create(client, headers, "gravity")
    content = fake_ai.payloads[0]["messages"][1]["content"]
    assert "Football" in content
    assert "Preferred learning style: story." in content


def test_stored_payload_is_camel_case_json(client, ready_headers, session_factory, sample_explanation):
    from relatify.models import Explanation

    created = _create(client, ready_headers)
    session = session_factory()
    try:
        row = session.get(Explanation, created["id"])
        assert json.loads(row.explanation_data) == sample_explanation
    finally:
        session.close()
