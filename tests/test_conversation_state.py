"""
Tests for conversation memory and follow-up detection.
"""
from storedesk.chat.state import (
    ConversationState,
    read_state,
    resolve_follow_up,
    update_state,
    write_state,
)
from storedesk.models import Conversation

SHIRT = {"id": "p-1", "name": "Хар цамц", "base_price": 45000}
DRESS = {"id": "p-2", "name": "Цагаан даашинз", "base_price": 89000}


def _state(**overrides):
    values = {
        "last_intent": "product_search",
        "last_products": [SHIRT, DRESS],
        "last_query": "цамц",
        "turn_count": 1,
    }
    values.update(overrides)
    return ConversationState(**values)


class TestStateSerialization:
    def test_round_trip(self):
        state = _state(order_draft={"step": "confirm"})
        assert ConversationState.from_dict(state.to_dict()) == state

    def test_garbage_gives_empty_state(self):
        assert ConversationState.from_dict("nope") == ConversationState()
        assert ConversationState.from_dict(None) == ConversationState()

    def test_bad_fields_are_reset_and_products_capped(self):
        products = [{"id": str(i), "name": f"p{i}", "base_price": i} for i in range(15)]
        state = ConversationState.from_dict({
            "last_intent": 5,
            "last_products": products,
            "turn_count": "three",
            "order_draft": "draft",
        })
        assert state.last_intent == ""
        assert len(state.last_products) == 10
        assert state.turn_count == 0
        assert state.order_draft is None


class TestFollowUp:
    def test_first_turn_has_no_follow_up(self):
        assert resolve_follow_up("2", _state(turn_count=0)) is None

    def test_open_draft_takes_every_message(self):
        follow_up = resolve_follow_up("сайн байна уу", _state(order_draft={"step": "address"}))
        assert follow_up.type == "order_step_input"

    def test_number_reference(self):
        follow_up = resolve_follow_up("2", _state())
        assert follow_up.type == "number_reference"
        assert follow_up.product == DRESS

    def test_number_with_suffix(self):
        follow_up = resolve_follow_up("1 дугаарыг", _state())
        assert follow_up.product == SHIRT

    def test_out_of_range_number_is_ignored(self):
        follow_up = resolve_follow_up("7", _state())
        assert follow_up is None or follow_up.type != "number_reference"

    def test_price_selection_in_thousands(self):
        follow_up = resolve_follow_up("45к авъя", _state())
        assert follow_up.type == "number_reference"
        assert follow_up.product == SHIRT

    def test_order_words_after_search(self):
        follow_up = resolve_follow_up("авъя", _state())
        assert follow_up.type == "order_intent"
        assert follow_up.product == SHIRT

    def test_select_single_product(self):
        follow_up = resolve_follow_up("энийг", _state(last_products=[DRESS], last_intent="greeting"))
        assert follow_up.type == "select_single"
        assert follow_up.product == DRESS

    def test_body_measurement_is_size_question(self):
        follow_up = resolve_follow_up("60кг 170см", _state())
        assert follow_up.type == "size_question"
        assert follow_up.products == [SHIRT, DRESS]

    def test_delivery_question_beats_price_words(self):
        follow_up = resolve_follow_up("хүргэлт хэд хоног", _state())
        assert follow_up.type == "contextual_question"
        assert follow_up.topic == "delivery"

    def test_price_question(self):
        follow_up = resolve_follow_up("хэд вэ", _state())
        assert follow_up.type == "price_question"

    def test_refinement_of_last_search(self):
        follow_up = resolve_follow_up("улаан", _state())
        assert follow_up.type == "query_refinement"
        assert follow_up.refined_query == "цамц улаан"

    def test_emotional_message_prefers_llm(self):
        follow_up = resolve_follow_up("яагаад ингэж байгаа юм", _state(last_products=[], last_intent="greeting"))
        assert follow_up.type == "prefer_llm"
        assert follow_up.reason == "emotional"

    def test_repeated_low_confidence_prefers_llm(self):
        follow_up = resolve_follow_up("юм", _state(last_products=[], last_intent="low_confidence"))
        assert follow_up.type == "prefer_llm"
        assert follow_up.reason == "repeated_low_confidence"


class TestUpdateState:
    def test_search_saves_products_and_query(self):
        products = [dict(SHIRT, description="cotton", images=[])]
        next_state = update_state(ConversationState(), "product_search", products, "цамц")
        assert next_state.last_intent == "product_search"
        assert next_state.last_products == [SHIRT]
        assert next_state.last_query == "цамц"
        assert next_state.turn_count == 1

    def test_greeting_preserves_previous_turn(self):
        current = _state(turn_count=3)
        next_state = update_state(current, "greeting", [], "")
        assert next_state.last_intent == "product_search"
        assert next_state.last_products == current.last_products
        assert next_state.last_query == "цамц"
        assert next_state.turn_count == 4

    def test_other_intents_clear_products(self):
        next_state = update_state(_state(), "order_status", [], "")
        assert next_state.last_intent == "order_status"
        assert next_state.last_products == []
        assert next_state.last_query == ""

    def test_draft_is_carried(self):
        next_state = update_state(_state(order_draft={"step": "phone"}), "order_collection", [], "")
        assert next_state.order_draft == {"step": "phone"}


class TestStatePersistence:
    def test_missing_conversation_reads_empty(self, db_session):
        assert read_state(db_session, "missing") == ConversationState()

    def test_write_keeps_other_metadata(self, db_session):
        conversation = Conversation(store_id="store-1", extra_metadata={"flow_state": {"flow_id": "f"}})
        db_session.add(conversation)
        db_session.commit()

        write_state(db_session, conversation.id, _state())
        db_session.expire_all()

        stored = db_session.get(Conversation, conversation.id)
        assert stored.extra_metadata["flow_state"] == {"flow_id": "f"}
        assert read_state(db_session, conversation.id) == _state()
