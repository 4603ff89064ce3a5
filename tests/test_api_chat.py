"""
Tests for the public chat endpoints and the widget round trip.
"""
import pytest

from storedesk.chat.escalation import DEFAULT_ESCALATION_MESSAGE
from storedesk.chat.handler import DEFAULT_AWAY_MESSAGE, MSG_CANCELLED
from storedesk.chat.state import read_state
from storedesk.models import Conversation, Customer, Message, Notification, Order, Product, ProductVariant, Store


@pytest.fixture
def shoes(db_session):
    product = Product(store_id="store-1", name="Арьсан гутал", category="shoes", base_price=120000)
    db_session.add(product)
    db_session.commit()
    return product


def _widget(client, message, sender_id="web_abc123", store_id="store-1"):
    resp = client.post("/chat/widget", json={"sender_id": sender_id, "store_id": store_id, "message": message})
    assert resp.status_code == 200, resp.text
    return resp.json()


# ---------- Health and request IDs ----------


def test_health_endpoint(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_request_id_in_response_header(client):
    """Test that X-Request-ID header is returned in responses."""
    resp = client.get("/health")
    request_id = resp.headers["X-Request-ID"]
    assert len(request_id) == 36
    assert request_id.count("-") == 4


def test_request_id_can_be_provided_by_client(client):
    """Test that client-provided X-Request-ID is used."""
    resp = client.get("/health", headers={"X-Request-ID": "test-request-id-12345"})
    assert resp.headers["X-Request-ID"] == "test-request-id-12345"


# ---------- History and stored messages ----------


def test_history_for_new_sender_creates_customer(client, db_session):
    resp = client.get("/chat", params={"sender_id": "web_new", "store_id": "store-1"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["messages"] == []

    customer = db_session.query(Customer).filter(Customer.messenger_id == "web_new").one()
    assert customer.channel == "web"
    conversation = db_session.get(Conversation, data["conversation_id"])
    assert conversation.customer_id == customer.id
    assert conversation.status == "active"
    assert db_session.query(Notification).filter(Notification.type == "new_customer").count() == 1


def test_history_unknown_store(client):
    resp = client.get("/chat", params={"sender_id": "web_new", "store_id": "nope"})
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Store not found"


def test_history_requires_sender(client):
    resp = client.get("/chat", params={"store_id": "store-1"})
    assert resp.status_code == 400
    assert "sender_id" in resp.json()["detail"]


def test_post_messages_then_read_history(client, db_session):
    user = client.post("/chat", json={"sender_id": "12345", "store_id": "store-1", "content": "Сайн байна уу"})
    assert user.status_code == 201
    bot = client.post("/chat", json={
        "sender_id": "12345", "store_id": "store-1", "role": "assistant", "content": "Сайн, юугаар туслах вэ?",
    })
    assert bot.json()["conversation_id"] == user.json()["conversation_id"]

    customer = db_session.query(Customer).filter(Customer.messenger_id == "12345").one()
    assert customer.channel == "messenger"
    conversation = db_session.get(Conversation, user.json()["conversation_id"])
    assert conversation.unread_count == 1
    assert db_session.query(Notification).filter(Notification.type == "new_message").one().body == "Сайн байна уу"

    history = client.get("/chat", params={"sender_id": "12345", "store_id": "store-1"}).json()
    assert [(m["role"], m["is_ai_response"]) for m in history["messages"]] == [
        ("user", False), ("assistant", True),
    ]


def test_history_limit(client):
    for i in range(3):
        client.post("/chat", json={"sender_id": "web_x", "store_id": "store-1", "content": f"мессеж {i}"})
    history = client.get("/chat", params={"sender_id": "web_x", "store_id": "store-1", "limit": "2"}).json()
    assert [m["content"] for m in history["messages"]] == ["мессеж 1", "мессеж 2"]


def test_empty_content_rejected(client):
    resp = client.post("/chat", json={"sender_id": "web_x", "store_id": "store-1", "content": ""})
    assert resp.status_code == 400
    assert "content" in resp.json()["detail"]


# ---------- /chat/ai ----------


def test_ai_reply_for_conversation(client, db_session):
    created = client.post("/chat", json={"sender_id": "web_ai", "store_id": "store-1", "content": "Сайн байна уу"}).json()
    resp = client.post("/chat/ai", json={
        "conversation_id": created["conversation_id"], "customer_message": "Сайн байна уу",
    })
    assert resp.status_code == 200
    data = resp.json()
    assert data["intent"] == "greeting"
    assert "Test Shop" in data["response"]
    assert data["metadata"]["intent"] == "greeting"

    saved = db_session.get(Message, data["message_id"])
    assert saved.is_ai_response is True
    assert saved.is_from_customer is False


def test_ai_unknown_conversation(client):
    resp = client.post("/chat/ai", json={"conversation_id": "missing", "customer_message": "hi"})
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Conversation not found"


def test_comment_reply_needs_store(client):
    resp = client.post("/chat/ai", json={"conversation_id": "post-1", "customer_message": "үнэ", "is_comment": True})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "store_id is required for comment replies"


def test_comment_reply_is_stateless(client, db_session, shoes):
    resp = client.post("/chat/ai", json={
        "conversation_id": "post-1",
        "customer_message": "Гутал байна уу",
        "store_id": "store-1",
        "is_comment": True,
    })
    assert resp.status_code == 200
    data = resp.json()
    assert data["intent"] == "product_search"
    assert data["metadata"] == {"products_found": 1, "is_comment_reply": True}
    assert "Арьсан гутал" in data["response"]
    assert db_session.query(Message).count() == 0


# ---------- Widget ----------


def test_widget_greeting(client):
    data = _widget(client, "Сайн байна уу")
    assert data["intent"] == "greeting"
    assert data["escalated"] is False
    assert data["response"].startswith("Сайн байна уу! 😊 Test Shop-д тавтай морил")


def test_widget_welcome_message_setting(client, db_session):
    db_session.get(Store, "store-1").chatbot_settings = {"welcome_message": "Тавтай морил!"}
    db_session.commit()
    assert _widget(client, "Сайн байна уу")["response"] == "Тавтай морил!"


def test_widget_unknown_store(client):
    resp = client.post("/chat/widget", json={"sender_id": "web_a", "store_id": "nope", "message": "hi"})
    assert resp.status_code == 404


def test_widget_reuses_conversation(client, db_session):
    first = _widget(client, "Сайн байна уу")
    second = _widget(client, "баярлалаа")
    assert first["conversation_id"] == second["conversation_id"]
    assert second["intent"] == "thanks"
    assert db_session.query(Message).filter(Message.conversation_id == first["conversation_id"]).count() == 4


def test_widget_product_search_and_number_reference(client, shoes):
    data = _widget(client, "Гутал байна уу")
    assert data["intent"] == "product_search"
    assert data["products"] == [{
        "name": "Арьсан гутал", "base_price": 120000, "description": None, "images": [],
    }]
    assert "120,000₮" in data["response"]

    data = _widget(client, "1")
    assert data["intent"] == "product_detail"
    assert data["response"].startswith("**Арьсан гутал**")


def test_widget_search_matches_capitalised_name(client, db_session, shoes):
    db_session.add(Product(store_id="store-1", name="Оймс ноосон", base_price=15000))
    db_session.commit()

    data = _widget(client, "оймс байгаа юу")
    assert data["intent"] == "product_search"
    assert [p["name"] for p in data["products"]] == ["Оймс ноосон"]


def test_widget_order_draft_creates_order(client, db_session, shoes):
    _widget(client, "Гутал байна уу")

    data = _widget(client, "авъя")
    assert data["intent"] == "order_collection"
    assert "Арьсан гутал" in data["response"]

    assert _widget(client, "тийм")["response"].startswith("📍")
    assert _widget(client, "БЗД 3-р хороо 5-р байр")["response"].startswith("📱")

    data = _widget(client, "99112233")
    assert data["intent"] == "order_created"

    order = db_session.query(Order).one()
    assert order.order_number in data["response"]
    assert order.total_amount == 120000
    assert order.customer_phone == "99112233"
    assert order.shipping_address == "БЗД 3-р хороо 5-р байр"
    assert db_session.query(Notification).filter(Notification.type == "new_order").count() == 1


def test_widget_declined_confirmation_cancels_draft(client, db_session, shoes):
    _widget(client, "Гутал байна уу")
    _widget(client, "авъя")
    data = _widget(client, "үгүй")
    assert data["response"].startswith("❌")
    assert db_session.query(Order).count() == 0


def test_widget_variant_step_cancels_when_product_archived(client, db_session, shoes):
    shoes.variants = [ProductVariant(size="38", stock_quantity=2), ProductVariant(size="40", stock_quantity=1)]
    db_session.commit()

    _widget(client, "Гутал байна уу")
    assert "Аль хувилбарыг сонгох вэ?" in _widget(client, "авъя")["response"]

    shoes.status = "archived"
    db_session.commit()

    data = _widget(client, "38")
    assert MSG_CANCELLED in data["response"]
    db_session.expire_all()
    assert read_state(db_session, data["conversation_id"]).order_draft is None
    assert db_session.query(Order).count() == 0


def test_widget_busy_mode_blocks_search(client, db_session, shoes):
    store = db_session.get(Store, "store-1")
    store.busy_mode = True
    store.busy_message = "Түр завсарлага"
    db_session.commit()

    data = _widget(client, "Гутал байна уу")
    assert data["intent"] == "busy_mode"
    assert data["response"] == "Түр завсарлага"


def test_widget_handoff_keyword(client, db_session):
    db_session.get(Store, "store-1").chatbot_settings = {"auto_handoff": True, "handoff_keywords": ["менежер"]}
    db_session.commit()

    data = _widget(client, "Менежертэй ярих уу")
    assert data["intent"] == "handoff"
    assert data["response"] == DEFAULT_AWAY_MESSAGE
    assert db_session.get(Conversation, data["conversation_id"]).status == "pending"

    # pending conversations stay open for the sender
    assert _widget(client, "Сайн байна уу")["conversation_id"] == data["conversation_id"]


def test_widget_escalation_short_circuits(client, db_session):
    data = _widget(client, "Гомдол байна, яагаад буцаах боломжгүй юм")
    assert data["escalated"] is True
    assert data["intent"] == "escalation"
    assert data["response"] == DEFAULT_ESCALATION_MESSAGE

    conversation = db_session.get(Conversation, data["conversation_id"])
    assert conversation.status == "escalated"
    bot_replies = (
        db_session.query(Message)
        .filter(Message.conversation_id == conversation.id, Message.is_from_customer.is_(False))
        .all()
    )
    assert [m.content for m in bot_replies] == [DEFAULT_ESCALATION_MESSAGE]
    assert bot_replies[0].extra_metadata["type"] == "escalation"

    # an escalated conversation is not reused
    assert _widget(client, "Сайн байна уу")["conversation_id"] != conversation.id


def test_widget_runs_welcome_flow(client, db_session, owner_auth):
    client.post("/flows", json={
        "name": "Welcome",
        "status": "active",
        "trigger_type": "new_conversation",
        "nodes": [
            {"id": "t", "type": "trigger"},
            {"id": "m", "type": "send_message", "data": {"config": {"text": "Тавтай морил!"}}},
            {"id": "b", "type": "button_choice", "data": {"config": {
                "question_text": "Юу сонирхож байна?",
                "variable_name": "topic",
                "buttons": [{"label": "Бараа", "value": "products"}, {"label": "Хүргэлт", "value": "delivery"}],
            }}},
            {"id": "e", "type": "end", "data": {"config": {"message": "Ойлголоо: {{topic}}"}}},
        ],
        "edges": [
            {"id": "e1", "source": "t", "target": "m"},
            {"id": "e2", "source": "m", "target": "b"},
            {"id": "e3", "source": "b", "target": "e"},
        ],
    }, auth=owner_auth)

    data = _widget(client, "Сайн байна уу")
    assert data["intent"] == "flow"
    assert data["response"] == "Тавтай морил!\n\nЮу сонирхож байна?"
    assert data["quick_replies"] == [
        {"title": "Бараа", "payload": "flow_btn_0_products"},
        {"title": "Хүргэлт", "payload": "flow_btn_1_delivery"},
    ]

    data = _widget(client, "flow_btn_1_delivery")
    assert data["intent"] == "flow"
    assert data["response"] == "Ойлголоо: delivery"

    conversation = db_session.get(Conversation, data["conversation_id"])
    assert "flow_state" not in (conversation.extra_metadata or {})


def test_widget_substantive_first_message_skips_welcome_flow(client, owner_auth, shoes):
    client.post("/flows", json={
        "name": "Welcome",
        "status": "active",
        "trigger_type": "new_conversation",
        "nodes": [
            {"id": "t", "type": "trigger"},
            {"id": "m", "type": "send_message", "data": {"config": {"text": "Тавтай морил!"}}},
        ],
        "edges": [{"id": "e1", "source": "t", "target": "m"}],
    }, auth=owner_auth)

    assert _widget(client, "Гутал байна уу")["intent"] == "product_search"
