"""
Tests for escalation scoring and compensation vouchers.
"""
import pytest

from storedesk.chat import escalation
from storedesk.chat.classifier import ComplaintClassification, classify_complaint
from storedesk.chat.escalation import (
    DEFAULT_ESCALATION_MESSAGE,
    compensation_label,
    count_trailing_customer_messages,
    detect_repeated_message,
    evaluate_escalation,
    process_escalation,
    score_to_level,
)
from storedesk.models import CompensationPolicy, Conversation, Customer, Message, Notification, Voucher

COMPLAINT = "Гомдол байна, яагаад буцаах боломжгүй юм"


def _customer_msg(content):
    return {"content": content, "is_from_customer": True, "is_ai_response": False}


def _bot_msg(content="ok"):
    return {"content": content, "is_from_customer": False, "is_ai_response": True}


class TestScoring:
    @pytest.mark.parametrize("score,level", [
        (0, "low"), (29, "low"), (30, "medium"), (59, "medium"),
        (60, "high"), (79, "high"), (80, "critical"), (100, "critical"),
    ])
    def test_levels(self, score, level):
        assert score_to_level(score) == level

    def test_keyword_signals_add_up(self):
        result = evaluate_escalation(0, COMPLAINT, [_customer_msg(COMPLAINT)], threshold=60)
        assert result.signals == ["complaint", "frustration", "return_exchange"]
        assert result.score == 65
        assert result.level == "high"
        assert result.should_escalate is True

    def test_calm_message_adds_nothing(self):
        result = evaluate_escalation(10, "Сайн байна уу", [_customer_msg("Сайн байна уу")], threshold=60)
        assert result.score == 10
        assert result.signals == []
        assert result.should_escalate is False

    def test_score_is_capped(self):
        result = evaluate_escalation(90, COMPLAINT, [_customer_msg(COMPLAINT)], threshold=60)
        assert result.score == 100

    def test_fires_only_when_crossing(self):
        result = evaluate_escalation(70, COMPLAINT, [_customer_msg(COMPLAINT)], threshold=60)
        assert result.should_escalate is False

    def test_disabled_returns_current_score(self):
        result = evaluate_escalation(40, COMPLAINT, [], threshold=60, enabled=False)
        assert result.score == 40
        assert result.level == "medium"
        assert result.should_escalate is False

    def test_repeated_message_signal(self):
        recent = [_customer_msg("захиалга хаана явж байна"), _bot_msg(), _customer_msg("захиалга хаана явж байна")]
        result = evaluate_escalation(0, "захиалга хаана явж байна", recent, threshold=60)
        assert "repeated_message" in result.signals

    def test_unanswered_streak_and_long_thread(self):
        recent = [_customer_msg(f"мессеж {i}") for i in range(6)]
        result = evaluate_escalation(0, "мессеж 5", recent, threshold=60)
        assert "ai_fail_to_resolve" in result.signals
        assert "long_unresolved" in result.signals

    def test_human_reply_prevents_long_unresolved(self):
        human = {"content": "Сайн байна уу", "is_from_customer": False, "is_ai_response": False}
        recent = [_customer_msg(f"асуулт {i}") for i in range(3)] + [human] + [_customer_msg(f"асуулт {i}") for i in range(3, 6)]
        result = evaluate_escalation(0, "асуулт 5", recent, threshold=60)
        assert "long_unresolved" not in result.signals


class TestHelpers:
    def test_repeated_detection_uses_word_overlap(self):
        assert detect_repeated_message("Хэзээ ирэх вэ?", ["хэзээ ирэх вэ"])
        assert not detect_repeated_message("Хэзээ ирэх вэ?", ["өнөөдөр хүргэх үү"])
        assert not detect_repeated_message("!!!", ["!!!"])

    def test_trailing_customer_messages(self):
        messages = [_customer_msg("a"), _bot_msg(), _customer_msg("b"), _customer_msg("c")]
        assert count_trailing_customer_messages(messages) == 2
        assert count_trailing_customer_messages([]) == 0

    @pytest.mark.parametrize("kind,value,label", [
        ("percent_discount", 10, "10% хөнгөлөлт"),
        ("fixed_discount", 5000, "5,000₮ хөнгөлөлт"),
        ("free_shipping", 0, "Үнэгүй хүргэлт"),
        ("free_item", 0, "Үнэгүй бараа"),
    ])
    def test_compensation_labels(self, kind, value, label):
        assert compensation_label(kind, value) == label

    def test_classifier_is_off_without_openai(self):
        assert classify_complaint("гомдол байна") is None


@pytest.fixture
def complaint_conversation(db_session):
    customer = Customer(store_id="store-1", channel="web", messenger_id="web_angry")
    db_session.add(customer)
    db_session.flush()
    conversation = Conversation(store_id="store-1", customer_id=customer.id, status="active", extra_metadata={})
    db_session.add(conversation)
    db_session.flush()
    db_session.add(Message(conversation_id=conversation.id, content=COMPLAINT, is_from_customer=True))
    db_session.commit()
    return conversation


class TestProcessEscalation:
    def test_escalates_and_notifies(self, db_session, complaint_conversation):
        result = process_escalation(db_session, complaint_conversation.id, COMPLAINT, "store-1", {})

        assert result.escalated is True
        assert result.score == 65
        assert result.level == "high"
        assert result.escalation_message == DEFAULT_ESCALATION_MESSAGE
        assert result.voucher_code is None

        db_session.expire_all()
        conversation = db_session.get(Conversation, complaint_conversation.id)
        assert conversation.status == "escalated"
        assert conversation.escalation_score == 65
        assert conversation.escalated_at is not None

        notification = db_session.query(Notification).filter(Notification.type == "escalation").one()
        assert notification.body.startswith("Түвшин: Яаралтай")

    def test_custom_threshold_and_message(self, db_session, complaint_conversation):
        settings = {"escalation_threshold": 90, "escalation_message": "Түр хүлээнэ үү"}
        result = process_escalation(db_session, complaint_conversation.id, COMPLAINT, "store-1", settings)
        assert result.escalated is False
        assert result.score == 65

        settings["escalation_threshold"] = 50
        complaint_conversation.escalation_score = 0
        db_session.commit()
        result = process_escalation(db_session, complaint_conversation.id, COMPLAINT, "store-1", settings)
        assert result.escalated is True
        assert result.escalation_message == "Түр хүлээнэ үү"

    def test_disabled_by_store(self, db_session, complaint_conversation):
        result = process_escalation(
            db_session, complaint_conversation.id, COMPLAINT, "store-1", {"escalation_enabled": False},
        )
        assert result.escalated is False
        assert result.score == 0

    def test_unknown_conversation(self, db_session):
        result = process_escalation(db_session, "missing", COMPLAINT, "store-1", {})
        assert result.escalated is False

    def test_auto_approved_voucher_is_announced(self, db_session, complaint_conversation, monkeypatch):
        db_session.add(CompensationPolicy(
            store_id="store-1",
            complaint_category="damaged_item",
            compensation_type="percent_discount",
            compensation_value=10,
            valid_days=14,
            auto_approve=True,
        ))
        db_session.commit()
        monkeypatch.setattr(escalation, "classify_complaint", lambda text: ComplaintClassification(
            category="damaged_item", confidence=0.9, suggested_response="Уучлаарай",
        ))

        result = process_escalation(db_session, complaint_conversation.id, COMPLAINT, "store-1", {})

        assert result.voucher_code.startswith("COMP-")
        voucher = db_session.query(Voucher).one()
        assert voucher.status == "approved"
        assert voucher.complaint_summary == "Уучлаарай"
        assert voucher.customer_id == complaint_conversation.customer_id
        assert (voucher.valid_until - voucher.created_at).days in (13, 14)

        announced = (
            db_session.query(Message)
            .filter(Message.conversation_id == complaint_conversation.id)
            .all()
        )
        assert any("10% хөнгөлөлт" in m.content and voucher.voucher_code in m.content for m in announced)
        assert db_session.query(Notification).filter(Notification.type == "compensation_suggested").count() == 1

    def test_pending_voucher_waits_for_owner(self, db_session, complaint_conversation, monkeypatch):
        db_session.add(CompensationPolicy(
            store_id="store-1",
            complaint_category="delivery_delay",
            compensation_type="free_shipping",
            compensation_value=0,
            auto_approve=False,
        ))
        db_session.commit()
        monkeypatch.setattr(escalation, "classify_complaint", lambda text: ComplaintClassification(
            category="delivery_delay", confidence=0.7, suggested_response="Уучлаарай",
        ))

        process_escalation(db_session, complaint_conversation.id, COMPLAINT, "store-1", {})

        voucher = db_session.query(Voucher).one()
        assert voucher.status == "pending_approval"
        assert voucher.approved_at is None
        messages = db_session.query(Message).filter(Message.conversation_id == complaint_conversation.id).all()
        assert not any("Код:" in m.content for m in messages)

    def test_low_confidence_classification_issues_nothing(self, db_session, complaint_conversation, monkeypatch):
        db_session.add(CompensationPolicy(
            store_id="store-1", complaint_category="other", compensation_type="free_item", auto_approve=True,
        ))
        db_session.commit()
        monkeypatch.setattr(escalation, "classify_complaint", lambda text: ComplaintClassification(
            category="other", confidence=0.3, suggested_response="",
        ))

        result = process_escalation(db_session, complaint_conversation.id, COMPLAINT, "store-1", {})
        assert result.escalated is True
        assert result.voucher_code is None
        assert db_session.query(Voucher).count() == 0
