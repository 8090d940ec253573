from fastapi.testclient import TestClient

from katzai.main import app


client = TestClient(app)


def _authed(session_token):
    return TestClient(app, cookies={"token": session_token})


def test_assistant_requires_session():
    response = client.post("/api/assistant", json={"question": "Where are the hooks?"})

    assert response.status_code == 401
    payload = response.json()
    assert payload["error"] == "unauthorized"
    assert payload["redirect"] == "/login"


def test_assistant_missing_question_returns_400(session_token):
    response = _authed(session_token).post("/api/assistant", json={"question": "  "})

    assert response.status_code == 400
    assert response.json()["detail"] == "Question is required"


def test_assistant_non_object_body_returns_400(session_token):
    client = _authed(session_token)

    for body in ([], "where are the hooks", 42):
        response = client.post("/api/assistant", json=body)
        assert response.status_code == 400, body
        assert response.json()["detail"] == "Question is required"

    garbled = client.post(
        "/api/assistant",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )
    assert garbled.status_code == 400


def test_assistant_returns_grounded_products(monkeypatch, session_token, stub_adapter_factory):
    from katzai import main

    adapter = stub_adapter_factory(
        response_text="Monkey hooks are in Aisle A3.",
        recommended_skus=["MONKEY-HOOK-10", "MADE-UP-99"],
        product_reasons={"MONKEY-HOOK-10": "holds 35 lbs", "MADE-UP-99": "invented"},
        suggested_questions=["Do you need picture wire?"],
    )
    monkeypatch.setattr(main.pipeline, "adapter", adapter)

    response = _authed(session_token).post(
        "/api/assistant",
        json={
            "question": "I need to hang a 20lb picture with no drilling",
            "conversationHistory": [
                {"role": "user", "content": "Hi"},
                {"role": "assistant", "content": "Hello! What are you working on?"},
                {"role": "system", "content": "ignored"},
            ],
        },
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["response"] == "Monkey hooks are in Aisle A3."
    assert payload["suggestedQuestions"] == ["Do you need picture wire?"]
    assert [product["sku"] for product in payload["mentionedProducts"]] == ["MONKEY-HOOK-10"]
    assert payload["mentionedProducts"][0]["location"] == "Aisle A3, Bin 14"

    context = adapter.contexts[0]
    assert [turn.role for turn in context.history] == ["user", "assistant"]
    assert context.constraints.no_drilling is True

    metrics = client.get("/metrics").json()
    assert metrics["total_turns"] >= 1
    assert metrics["grounding_drops"] >= 1


def test_assistant_without_provider_key_uses_fallback(session_token):
    response = _authed(session_token).post("/api/assistant", json={"question": "Any hooks?"})

    assert response.status_code == 200
    payload = response.json()
    assert "trouble processing" in payload["response"]
    assert payload["mentionedProducts"] == []
    assert payload["followupQuestion"] == "What product are you looking for today?"


def test_inventory_lists_store_products(session_token):
    response = _authed(session_token).get("/api/inventory")

    assert response.status_code == 200
    skus = {product["sku"] for product in response.json()["products"]}
    assert {"CMD-STRIPS-LG", "MONKEY-HOOK-10", "DRYWALL-ANCHOR-50"} <= skus


def test_inventory_requires_session():
    assert client.get("/api/inventory").status_code == 401
