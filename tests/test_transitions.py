"""Tests for the order status transition policy."""

import pytest

from orders import TransitionDecision, can_transition, releases_stock
from schemas import OrderStatus

S = OrderStatus
ALLOW = TransitionDecision.ALLOW
FORBIDDEN = TransitionDecision.FORBIDDEN
ILLEGAL = TransitionDecision.ILLEGAL


class TestAdminTransitions:
    @pytest.mark.parametrize(
        "current,target",
        [
            (S.PLACED, S.ACCEPTED),
            (S.PLACED, S.REJECTED),
            (S.PLACED, S.CANCELLED),
            (S.ACCEPTED, S.OUT_FOR_DELIVERY),
            (S.OUT_FOR_DELIVERY, S.DELIVERED),
        ],
    )
    def test_table_edges_allowed(self, current, target):
        assert can_transition("admin", False, current, target) is ALLOW

    @pytest.mark.parametrize(
        "current,target",
        [
            (S.PLACED, S.OUT_FOR_DELIVERY),
            (S.PLACED, S.DELIVERED),
            (S.ACCEPTED, S.DELIVERED),
            (S.ACCEPTED, S.REJECTED),
            (S.ACCEPTED, S.CANCELLED),
            (S.OUT_FOR_DELIVERY, S.ACCEPTED),
        ],
    )
    def test_skipping_or_going_back_is_illegal(self, current, target):
        assert can_transition("admin", False, current, target) is ILLEGAL

    @pytest.mark.parametrize("terminal", [S.REJECTED, S.DELIVERED, S.CANCELLED])
    @pytest.mark.parametrize("target", [S.ACCEPTED, S.REJECTED, S.OUT_FOR_DELIVERY, S.DELIVERED, S.CANCELLED])
    def test_terminal_states_accept_nothing(self, terminal, target):
        assert can_transition("admin", True, terminal, target) is ILLEGAL

    def test_nobody_moves_back_to_placed(self):
        assert can_transition("admin", True, S.ACCEPTED, S.PLACED) is FORBIDDEN


class TestUserTransitions:
    def test_owner_cancels_placed_order(self):
        assert can_transition("user", True, S.PLACED, S.CANCELLED) is ALLOW

    def test_owner_cannot_cancel_after_acceptance(self):
        assert can_transition("user", True, S.ACCEPTED, S.CANCELLED) is ILLEGAL

    def test_non_owner_cannot_cancel(self):
        assert can_transition("user", False, S.PLACED, S.CANCELLED) is FORBIDDEN

    @pytest.mark.parametrize("target", [S.ACCEPTED, S.REJECTED, S.OUT_FOR_DELIVERY, S.DELIVERED])
    def test_admin_only_targets_forbidden_even_for_owner(self, target):
        assert can_transition("user", True, S.PLACED, target) is FORBIDDEN

    def test_missing_role_treated_as_user(self):
        assert can_transition(None, False, S.PLACED, S.ACCEPTED) is FORBIDDEN


class TestReleaseEdges:
    def test_release_only_from_placed(self):
        assert releases_stock(S.PLACED, S.REJECTED)
        assert releases_stock(S.PLACED, S.CANCELLED)
        assert not releases_stock(S.PLACED, S.ACCEPTED)
        assert not releases_stock(S.ACCEPTED, S.OUT_FOR_DELIVERY)
        assert not releases_stock(S.OUT_FOR_DELIVERY, S.DELIVERED)
