"""Tests for return recording and credit calculation."""

import uuid
from decimal import Decimal
from types import SimpleNamespace

import pytest

from orderflow.core.errors import InvalidAmount, NotFound, OverReturn
from orderflow.models.order_return import ItemCondition, ReturnType
from orderflow.schemas.order import OrderItemCreate
from orderflow.schemas.order_return import OrderReturnCreate, ReturnLineItemCreate
from orderflow.services.returns_service import (
    ReturnLine,
    ReturnsService,
    adjusted_order_total,
    compute_credit,
)


@pytest.fixture
def returns(db_session):
    return ReturnsService(db_session)


@pytest.fixture
def order(client_row, make_order):
    return make_order(
        client_row,
        items=[
            OrderItemCreate(product_name="Baguette", quantity=4, unit_price=Decimal("15")),
            OrderItemCreate(product_name="Croissant", quantity=10, unit_price=Decimal("2.50")),
        ],
    )


def return_of(*lines, return_type=ReturnType.UNSOLD_RETURN):
    return OrderReturnCreate(return_type=return_type, items=list(lines), processed_by="driver-1")


class TestComputeCredit:
    def test_sums_quantity_times_price(self):
        lines = [
            ReturnLine("Baguette", 2, Decimal("15")),
            ReturnLine("Croissant", 3, Decimal("2.50")),
        ]
        assert compute_credit(lines) == Decimal("37.50")

    def test_empty(self):
        assert compute_credit([]) == Decimal("0")

    def test_negative_line_rejected(self):
        with pytest.raises(InvalidAmount):
            compute_credit([ReturnLine("Baguette", -1, Decimal("15"))])


class TestAdjustedOrderTotal:
    def test_subtracts_credit(self):
        returns = [SimpleNamespace(total_credit=Decimal("30")), SimpleNamespace(total_credit=Decimal("5"))]
        assert adjusted_order_total(Decimal("100"), returns) == Decimal("65")

    def test_floors_at_zero(self):
        returns = [SimpleNamespace(total_credit=Decimal("120"))]
        assert adjusted_order_total(Decimal("100"), returns) == Decimal("0")

    def test_no_returns(self):
        assert adjusted_order_total(Decimal("100"), []) == Decimal("100")


class TestRecordReturn:
    def test_records_lines_and_credit(self, returns, order):
        order_return = returns.record_return(
            order.id,
            return_of(
                ReturnLineItemCreate(product_name="Baguette", quantity_returned=2),
                ReturnLineItemCreate(
                    product_name="Croissant", quantity_returned=4, unit_price=Decimal("2")
                ),
            ),
        )

        assert order_return.total_credit == Decimal("38")
        assert order_return.client_id == order.client_id
        assert order_return.credit_applied_at is None

        lines = {line.product_name: line for line in returns.get_line_items(order_return.id)}
        # Unit price defaults to the price on the order
        assert lines["Baguette"].unit_price == Decimal("15")
        assert lines["Baguette"].credit_amount == Decimal("30")
        assert lines["Croissant"].credit_amount == Decimal("8")

    def test_pending_credit(self, returns, order):
        returns.record_return(
            order.id, return_of(ReturnLineItemCreate(product_name="Baguette", quantity_returned=1))
        )
        returns.record_return(
            order.id, return_of(ReturnLineItemCreate(product_name="Croissant", quantity_returned=2))
        )
        assert returns.pending_credit(order.id) == Decimal("20")

    def test_restockable_follows_condition(self, returns, order):
        order_return = returns.record_return(
            order.id,
            return_of(
                ReturnLineItemCreate(product_name="Baguette", quantity_returned=1),
                ReturnLineItemCreate(
                    product_name="Croissant", quantity_returned=1, condition=ItemCondition.EXPIRED
                ),
            ),
        )
        lines = {line.product_name: line for line in returns.get_line_items(order_return.id)}
        assert lines["Baguette"].restockable is True
        assert lines["Croissant"].restockable is False

    def test_explicit_restockable_wins(self, returns, order):
        order_return = returns.record_return(
            order.id,
            return_of(
                ReturnLineItemCreate(
                    product_name="Baguette",
                    quantity_returned=1,
                    condition=ItemCondition.DAMAGED,
                    restockable=True,
                )
            ),
        )
        [line] = returns.get_line_items(order_return.id)
        assert line.restockable is True

    def test_over_return_rejected(self, returns, order):
        with pytest.raises(OverReturn):
            returns.record_return(
                order.id, return_of(ReturnLineItemCreate(product_name="Baguette", quantity_returned=5))
            )
        assert returns.get_returns(order.id) == []

    def test_over_return_is_cumulative(self, returns, order):
        returns.record_return(
            order.id, return_of(ReturnLineItemCreate(product_name="Baguette", quantity_returned=3))
        )
        with pytest.raises(OverReturn):
            returns.record_return(
                order.id, return_of(ReturnLineItemCreate(product_name="Baguette", quantity_returned=2))
            )

    def test_over_return_within_one_request(self, returns, order):
        with pytest.raises(OverReturn):
            returns.record_return(
                order.id,
                return_of(
                    ReturnLineItemCreate(product_name="Baguette", quantity_returned=3),
                    ReturnLineItemCreate(product_name="Baguette", quantity_returned=2),
                ),
            )

    def test_unknown_product_rejected(self, returns, order):
        with pytest.raises(OverReturn):
            returns.record_return(
                order.id, return_of(ReturnLineItemCreate(product_name="Muffin", quantity_returned=1))
            )

    def test_missing_order(self, returns):
        with pytest.raises(NotFound):
            returns.record_return(
                uuid.uuid4(), return_of(ReturnLineItemCreate(product_name="Baguette", quantity_returned=1))
            )


class TestAdjustedTotal:
    def test_adjusted_total(self, returns, order):
        returns.record_return(
            order.id, return_of(ReturnLineItemCreate(product_name="Baguette", quantity_returned=2))
        )
        total, credit, adjusted = returns.adjusted_total(order.id)
        assert total == Decimal("85")
        assert credit == Decimal("30")
        assert adjusted == Decimal("55")

    def test_missing_order(self, returns):
        with pytest.raises(NotFound):
            returns.adjusted_total(uuid.uuid4())
