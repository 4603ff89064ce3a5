"""
Tests for shared helpers and the status transition tables.
"""
import re

import pytest

from storedesk.services.helpers import format_price, generate_number, parse_pagination, round2, valid_choice
from storedesk.services.status_machine import (
    DEAL_TRANSITIONS,
    ORDER_TRANSITIONS,
    VOUCHER_TRANSITIONS,
    validate_transition,
)


class TestFormatPrice:
    @pytest.mark.parametrize("value,expected", [
        (25000, "25,000₮"),
        (1500000, "1,500,000₮"),
        (12.5, "12.5₮"),
        (1234.5, "1,234.5₮"),
        (0, "0₮"),
        (None, "0₮"),
    ])
    def test_formats(self, value, expected):
        assert format_price(value) == expected


class TestPagination:
    def test_defaults(self):
        page = parse_pagination()
        assert (page.limit, page.offset) == (20, 0)

    @pytest.mark.parametrize("limit,expected", [
        ("5", 5),
        ("500", 100),
        ("-5", 1),
        ("0", 20),
        ("abc", 20),
    ])
    def test_limit_is_clamped(self, limit, expected):
        assert parse_pagination(limit=limit).limit == expected

    def test_negative_or_garbage_offset(self):
        assert parse_pagination(offset="-3").offset == 0
        assert parse_pagination(offset="x").offset == 0
        assert parse_pagination(offset="40").offset == 40

    def test_list_endpoint_tolerates_bad_paging(self, client, owner_auth):
        resp = client.get("/deals?limit=abc&offset=-1", auth=owner_auth)
        assert resp.status_code == 200
        assert resp.json() == {"data": [], "total": 0}


def test_valid_choice():
    assert valid_choice("open", ["open", "closed"]) == "open"
    assert valid_choice("weird", ["open", "closed"]) is None
    assert valid_choice(None, ["open"]) is None
    assert valid_choice("", ["open"]) is None


def test_round2():
    assert round2(10.126) == 10.13
    assert round2(3.3333) == 3.33
    assert round2(100) == 100


def test_round2_halves_go_up():
    assert round2(0.125) == 0.13
    assert round2(-0.125) == -0.12


def test_generate_number():
    assert re.match(r"^ORD-\d{13}$", generate_number("ORD"))


class TestTransitions:
    def test_allowed(self):
        assert validate_transition(ORDER_TRANSITIONS, "pending", "confirmed") is None
        assert validate_transition(DEAL_TRANSITIONS, "contract", "closed") is None
        assert validate_transition(VOUCHER_TRANSITIONS, "approved", "redeemed") is None

    def test_same_status_is_allowed(self):
        assert validate_transition(ORDER_TRANSITIONS, "delivered", "delivered") is None

    def test_rejected(self):
        assert validate_transition(ORDER_TRANSITIONS, "pending", "shipped") == "Cannot transition from pending to shipped"
        assert validate_transition(DEAL_TRANSITIONS, "lead", "closed") == "Cannot transition from lead to closed"

    @pytest.mark.parametrize("machine", [DEAL_TRANSITIONS, ORDER_TRANSITIONS, VOUCHER_TRANSITIONS])
    def test_every_target_is_a_known_status(self, machine):
        for targets in machine.values():
            assert set(targets) <= set(machine)

    def test_unknown_current_status(self):
        assert validate_transition(ORDER_TRANSITIONS, "lost", "pending") == "Cannot transition from lost to pending"
