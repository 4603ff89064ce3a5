"""
Tests for the flow builder: graph validation, trigger matching, the
executor walk and the /flows endpoints.
"""
import pytest
from unittest.mock import MagicMock

from storedesk.chat.flows import (
    FlowContext,
    FlowGraph,
    FlowState,
    evaluate_condition,
    execute_flow_step,
    interpolate_variables,
    intercept_with_flow,
    match_flow,
    start_flow,
    validate_input,
)
from storedesk.chat.flows import executor
from storedesk.chat.flows.types import ApiActionConfig, ConditionConfig
from storedesk.models import Conversation, Customer, Flow, FlowExecutionLog, Order, Product

LEAD_NODES = [
    {"id": "t", "type": "trigger"},
    {"id": "hello", "type": "send_message", "data": {"config": {"text": "Сайн байна уу!"}}},
    {"id": "phone", "type": "ask_question", "data": {"config": {
        "question_text": "Утасны дугаараа бичнэ үү", "variable_name": "phone", "validation": "phone",
    }}},
    {"id": "delivery", "type": "button_choice", "data": {"config": {
        "question_text": "Хүргэлт хэрэгтэй юу?",
        "variable_name": "delivery",
        "buttons": [{"label": "Тийм", "value": "yes"}, {"label": "Үгүй", "value": "no"}],
    }}},
    {"id": "done", "type": "end", "data": {"config": {"message": "Баярлалаа, {{phone}} руу залгана."}}},
    {"id": "human", "type": "handoff", "data": {"config": {"message": "Оператор холбогдоно."}}},
]
LEAD_EDGES = [
    {"id": "e1", "source": "t", "target": "hello"},
    {"id": "e2", "source": "hello", "target": "phone"},
    {"id": "e3", "source": "phone", "target": "delivery"},
    {"id": "e4", "source": "delivery", "target": "done", "sourceHandle": "button_0"},
    {"id": "e5", "source": "delivery", "target": "human", "sourceHandle": "button_1"},
]


def _flow(db_session, **overrides):
    values = {
        "store_id": "store-1",
        "name": "Lead",
        "status": "active",
        "trigger_type": "keyword",
        "trigger_config": {"keywords": ["захиалга"]},
        "nodes": LEAD_NODES,
        "edges": LEAD_EDGES,
        "priority": 0,
    }
    values.update(overrides)
    flow = Flow(**values)
    db_session.add(flow)
    db_session.commit()
    return flow


@pytest.fixture
def conversation(db_session):
    conversation = Conversation(store_id="store-1", status="active", extra_metadata={})
    db_session.add(conversation)
    db_session.commit()
    return conversation


class TestPureHelpers:
    def test_interpolation(self):
        assert interpolate_variables("Сайн уу {{name}}!", {"name": "Бат"}) == "Сайн уу Бат!"
        assert interpolate_variables("{{missing}} үлдэнэ", {}) == "{{missing}} үлдэнэ"
        assert interpolate_variables("{{n}}", {"n": 3}) == "3"

    @pytest.mark.parametrize("value,rule,ok", [
        ("99112233", "phone", True),
        ("+976 9911-2233", "phone", True),
        ("abc", "phone", False),
        ("bat@shop.mn", "email", True),
        ("bat@", "email", False),
        ("12,5", "number", True),
        ("арван", "number", False),
        ("2026-02-15", "date", True),
        ("маргааш", "date", True),
        ("хэзээ нэгэн цагт", "date", False),
        ("  ", "text", False),
        ("юу ч хамаагүй", None, True),
    ])
    def test_validate_input(self, value, rule, ok):
        assert validate_input(value, rule) is ok

    def test_condition_branches(self):
        graph = FlowGraph.model_validate({
            "id": "f",
            "nodes": [{"id": "c", "type": "condition"}],
            "edges": [
                {"id": "a", "source": "c", "target": "big", "sourceHandle": "condition_0"},
                {"id": "b", "source": "c", "target": "fallback", "sourceHandle": "default"},
            ],
        })
        cfg = ConditionConfig.model_validate({"conditions": [
            {"variable": "budget", "operator": "greater_than", "value": "100000"},
        ]})
        assert evaluate_condition(cfg, {"budget": "250000"}, graph, "c") == "big"
        assert evaluate_condition(cfg, {"budget": "5000"}, graph, "c") == "fallback"
        assert evaluate_condition(cfg, {"budget": "олон"}, graph, "c") == "fallback"

    def test_condition_explicit_targets(self):
        graph = FlowGraph(id="f")
        cfg = ConditionConfig.model_validate({
            "conditions": [{"variable": "city", "operator": "contains", "value": "улаан", "next_node_id": "ub"}],
            "default_node_id": "rural",
        })
        assert evaluate_condition(cfg, {"city": "Улаанбаатар"}, graph, "c") == "ub"
        assert evaluate_condition(cfg, {}, graph, "c") == "rural"


class TestTriggerMatching:
    def _flows(self):
        return [
            Flow(name="keyword", status="active", trigger_type="keyword",
                 trigger_config={"keywords": ["хямдрал"]}, priority=2),
            Flow(name="welcome", status="active", trigger_type="new_conversation", trigger_config={}, priority=5),
            Flow(name="complaints", status="active", trigger_type="intent_match",
                 trigger_config={"intents": ["complaint"]}, priority=1),
            Flow(name="button", status="active", trigger_type="button_click",
                 trigger_config={"payload": "MENU"}, priority=3),
            Flow(name="paused", status="paused", trigger_type="keyword",
                 trigger_config={"keywords": ["сайн"]}, priority=0),
        ]

    def test_keyword(self):
        assert match_flow(self._flows(), "Хямдрал хэзээ вэ").name == "keyword"

    def test_all_keywords_mode(self):
        flow = Flow(name="all", status="active", trigger_type="keyword",
                    trigger_config={"keywords": ["хүргэлт", "үнэ"], "match_mode": "all"}, priority=0)
        assert match_flow([flow], "хүргэлтийн үнэ хэд вэ") is flow
        assert match_flow([flow], "хүргэлт хэзээ") is None

    def test_new_conversation_only_for_small_talk(self):
        assert match_flow(self._flows(), "Сайн байна уу", is_new_conversation=True).name == "welcome"
        assert match_flow(self._flows(), "Сайн байна уу", is_new_conversation=False) is None
        assert match_flow(self._flows(), "захиалга хаана явсан", is_new_conversation=True) is None

    def test_intent_match_wins_by_priority(self):
        assert match_flow(self._flows(), "гомдол байна", is_new_conversation=True).name == "complaints"

    def test_button_payload(self):
        assert match_flow(self._flows(), "MENU", quick_reply_payload="MENU").name == "button"

    def test_paused_flows_never_match(self):
        assert match_flow(self._flows(), "сайн") is None


class TestExecutor:
    def test_full_walk(self, db_session, conversation):
        flow = _flow(db_session)

        result = start_flow(db_session, flow, "store-1", conversation.id, "захиалга")
        assert [m.text for m in result.messages] == ["Сайн байна уу!", "Утасны дугаараа бичнэ үү"]
        assert result.completed is False
        state = result.new_state
        assert state.current_node_id == "phone"
        assert state.waiting_for_input is True
        assert flow.times_triggered == 1

        ctx = FlowContext(db=db_session, store_id="store-1", conversation_id=conversation.id)
        graph = executor.flow_graph(flow)

        result = execute_flow_step(graph, state, "утас", ctx)
        assert result.messages[0].text == executor.VALIDATION_ERRORS["phone"]
        assert result.new_state.current_node_id == "phone"

        result = execute_flow_step(graph, state, "99112233", ctx)
        assert result.messages[0].quick_replies[1].payload == "flow_btn_1_no"
        state = result.new_state
        assert state.variables == {"phone": "99112233"}

        result = execute_flow_step(graph, state, "flow_btn_0_yes", ctx)
        assert result.completed is True
        assert result.exit_node_id == "done"
        assert result.messages[0].text == "Баярлалаа, 99112233 руу залгана."
        assert result.variables == {"phone": "99112233", "delivery": "yes"}

    def test_button_by_number_and_handoff(self, db_session, conversation):
        flow = _flow(db_session)
        ctx = FlowContext(db=db_session, store_id="store-1", conversation_id=conversation.id)
        state = FlowState(flow_id=flow.id, current_node_id="delivery", waiting_for_input=True, variables={})

        result = execute_flow_step(executor.flow_graph(flow), state, "2", ctx)
        assert result.completed is True
        assert result.messages[0].text == "Оператор холбогдоно."
        db_session.expire_all()
        assert db_session.get(Conversation, conversation.id).status == "pending"

    def test_unknown_button_reasks(self, db_session, conversation):
        flow = _flow(db_session)
        ctx = FlowContext(db=db_session, store_id="store-1", conversation_id=conversation.id)
        state = FlowState(flow_id=flow.id, current_node_id="delivery", waiting_for_input=True)

        result = execute_flow_step(executor.flow_graph(flow), state, "магадгүй", ctx)
        assert result.completed is False
        assert result.messages[0].text == "Дараах сонголтуудаас сонгоно уу:\n1. Тийм\n2. Үгүй"

    def test_cycle_stops_at_node_limit(self, db_session, conversation, monkeypatch):
        monkeypatch.setattr(executor.config, "FLOW_MAX_NODES", 5)
        flow = _flow(
            db_session,
            nodes=[
                {"id": "t", "type": "trigger"},
                {"id": "a", "type": "delay"},
                {"id": "b", "type": "delay"},
            ],
            edges=[
                {"id": "e1", "source": "t", "target": "a"},
                {"id": "e2", "source": "a", "target": "b"},
                {"id": "e3", "source": "b", "target": "a"},
            ],
        )
        result = start_flow(db_session, flow, "store-1", conversation.id, "")
        assert result.completed is False
        assert result.new_state.waiting_for_input is False

    def test_dead_end_completes_and_closes_log(self, db_session, conversation):
        flow = _flow(
            db_session,
            nodes=[{"id": "t", "type": "trigger"}, {"id": "m", "type": "send_message", "data": {"config": {"text": "ok"}}}],
            edges=[{"id": "e1", "source": "t", "target": "m"}],
        )
        result = start_flow(db_session, flow, "store-1", conversation.id, "hi")
        assert result.completed is True

        log = db_session.query(FlowExecutionLog).one()
        assert log.status == "completed"
        assert log.exit_node_id == "m"
        assert log.completed_at is not None
        db_session.refresh(flow)
        assert flow.times_completed == 1

    def test_show_items_selection(self, db_session, conversation):
        db_session.add(Product(store_id="store-1", name="Ноолууран цамц", category="clothing", base_price=150000))
        db_session.commit()
        flow = _flow(
            db_session,
            nodes=[
                {"id": "t", "type": "trigger"},
                {"id": "list", "type": "show_items", "data": {"config": {
                    "source": "products", "filter_category": "clothing", "selection_variable": "item",
                }}},
                {"id": "end", "type": "end", "data": {"config": {"message": "Сонголт: {{item}}"}}},
            ],
            edges=[
                {"id": "e1", "source": "t", "target": "list"},
                {"id": "e2", "source": "list", "target": "end"},
            ],
        )
        result = start_flow(db_session, flow, "store-1", conversation.id, "")
        assert result.messages[0].text == "1. Ноолууран цамц — 150,000₮"
        assert result.messages[1].text == executor.SELECT_PROMPT

        ctx = FlowContext(db=db_session, store_id="store-1", conversation_id=conversation.id)
        result = execute_flow_step(executor.flow_graph(flow), result.new_state, "1", ctx)
        assert result.messages[0].text == "Сонголт: Ноолууран цамц"

    def test_empty_list_message(self, db_session):
        ctx = FlowContext(db=db_session, store_id="store-1")
        cfg = executor.ShowItemsConfig(source="products", filter_category="nothing")
        messages = executor.show_items(cfg, {}, ctx)
        assert messages[0].text == executor.EMPTY_LIST_MESSAGE


class TestApiActions:
    def _run(self, db_session, action_type, variables, **action_config):
        cfg = ApiActionConfig(action_type=action_type, action_config=action_config)
        return executor.execute_api_action(cfg, variables, FlowContext(db=db_session, store_id="store-1"))

    def test_create_order_keeps_answers_in_notes(self, db_session):
        result = self._run(db_session, "create_order", {"phone": "99112233", "address": "БГД", "size": "M"})
        order = db_session.query(Order).one()
        assert result == {"order_id": order.id, "order_number": order.order_number}
        assert order.customer_phone == "99112233"
        assert order.notes == "phone: 99112233, address: БГД, size: M"

    def test_lookup_customer(self, db_session):
        customer = Customer(store_id="store-1", name="Сараа", phone="88001122", channel="web")
        db_session.add(customer)
        db_session.commit()
        assert self._run(db_session, "lookup_customer", {"phone": "88001122"}) == {
            "customer_id": customer.id, "customer_name": "Сараа",
        }
        assert self._run(db_session, "lookup_customer", {"phone": "00000000"}) == {}

    def test_webhook(self, db_session, monkeypatch):
        response = MagicMock()
        response.json.return_value = {"ok": True}
        post = MagicMock(return_value=response)
        monkeypatch.setattr(executor.requests, "post", post)

        result = self._run(db_session, "webhook", {"phone": "1"}, url="https://hooks.example.com/lead")
        assert result == {"webhook_response": {"ok": True}}
        assert post.call_args.kwargs["json"] == {"store_id": "store-1", "variables": {"phone": "1"}}

    def test_webhook_failure_sets_flag(self, db_session, monkeypatch):
        def boom(*args, **kwargs):
            raise executor.requests.ConnectionError("down")

        monkeypatch.setattr(executor.requests, "post", boom)
        assert self._run(db_session, "webhook", {}, url="https://hooks.example.com/lead") == {"webhook_error": True}

    def test_actions_without_tables_are_noops(self, db_session):
        assert self._run(db_session, "create_appointment", {}) == {}
        assert self._run(db_session, "search_services", {}) == {}


class TestIntercept:
    def test_no_flows_returns_none(self, db_session, conversation):
        assert intercept_with_flow(db_session, conversation.id, "store-1", "захиалга") is None

    def test_paused_flow_clears_state(self, db_session, conversation):
        flow = _flow(db_session)
        assert intercept_with_flow(db_session, conversation.id, "store-1", "захиалга өгөх")["intent"] == "flow"

        flow.status = "paused"
        db_session.commit()
        assert intercept_with_flow(db_session, conversation.id, "store-1", "99112233") is None
        db_session.expire_all()
        assert "flow_state" not in db_session.get(Conversation, conversation.id).extra_metadata


class TestFlowRoutes:
    def _create(self, client, auth, **overrides):
        body = {"name": "Lead", "trigger_type": "keyword", "trigger_config": {"keywords": ["захиалга"]},
                "nodes": LEAD_NODES, "edges": LEAD_EDGES}
        body.update(overrides)
        resp = client.post("/flows", json=body, auth=auth)
        assert resp.status_code == 201, resp.text
        return resp.json()

    def test_create_defaults_and_edge_handles(self, client, owner_auth):
        flow = self._create(client, owner_auth)
        assert flow["status"] == "draft"
        assert flow["times_triggered"] == 0
        assert flow["edges"][3]["sourceHandle"] == "button_0"
        assert len(flow["nodes"]) == 6

    def test_invalid_node_config_rejected(self, client, owner_auth):
        resp = client.post("/flows", json={
            "name": "Bad", "trigger_type": "keyword",
            "nodes": [{"id": "q", "type": "ask_question", "data": {"config": {"question_text": "?"}}}],
        }, auth=owner_auth)
        assert resp.status_code == 400

    def test_unknown_trigger_type(self, client, owner_auth):
        resp = client.post("/flows", json={"name": "Bad", "trigger_type": "cron"}, auth=owner_auth)
        assert resp.status_code == 400
        assert "trigger_type" in resp.json()["detail"]

    def test_list_ordered_by_priority(self, client, owner_auth, stranger_auth):
        self._create(client, owner_auth, name="late", priority=10)
        self._create(client, owner_auth, name="early", priority=1, status="active")

        data = client.get("/flows", auth=owner_auth).json()
        assert [f["name"] for f in data["data"]] == ["early", "late"]
        assert client.get("/flows?status=active", auth=owner_auth).json()["total"] == 1
        assert client.get("/flows", auth=stranger_auth).json()["total"] == 0

    def test_update(self, client, owner_auth):
        flow = self._create(client, owner_auth)
        url = f"/flows/{flow['id']}"
        assert client.patch(url, json={}, auth=owner_auth).status_code == 400

        resp = client.patch(url, json={"status": "active", "nodes": LEAD_NODES[:2], "edges": LEAD_EDGES[:1]}, auth=owner_auth)
        assert resp.status_code == 200
        assert resp.json()["status"] == "active"
        assert len(resp.json()["nodes"]) == 2

    def test_delete_keeps_logs(self, client, db_session, owner_auth, conversation):
        flow = self._create(client, owner_auth, status="active")
        intercept_with_flow(db_session, conversation.id, "store-1", "захиалга")

        assert client.delete(f"/flows/{flow['id']}", auth=owner_auth).json() == {"success": True}
        assert client.get(f"/flows/{flow['id']}", auth=owner_auth).json()["detail"] == "Flow not found"

        db_session.expire_all()
        log = db_session.query(FlowExecutionLog).one()
        assert log.flow_id is None
