"""Unit tests for PaymentRepository statements."""

import uuid
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from sqlalchemy.dialects import postgresql

from app.models.enums import PaymentProvider, PaymentPurpose, PaymentStatus
from app.repositories.payment_repository import PaymentRepository


def _result(value):
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    return result


def _order_values():
    return {
        "profile_id": uuid.uuid4(),
        "project_id": None,
        "purpose": PaymentPurpose.WALLET_TOP_UP.value,
        "provider": PaymentProvider.RAZORPAY.value,
        "amount": Decimal("250.00"),
        "currency": "INR",
        "status": PaymentStatus.INITIATED.value,
        "gateway_order_id": "order_1",
        "idempotency_key": "wallet_top_up_order_abc",
    }


class TestCreateForOrder:
    """Tests for the conflict-tolerant order insert."""

    @pytest.mark.asyncio
    async def test_insert_skips_stored_order(self, mock_session):
        stored = SimpleNamespace(id=uuid.uuid4(), gateway_order_id="order_1")
        mock_session.execute.side_effect = [_result(None), _result(stored)]

        payment, inserted = await PaymentRepository(mock_session).create_for_order(
            **_order_values()
        )

        assert payment is stored
        assert inserted is False
        stmt = mock_session.execute.await_args_list[0].args[0]
        sql = str(stmt.compile(dialect=postgresql.dialect()))
        assert "ON CONFLICT (gateway_order_id) DO NOTHING" in sql
        assert "RETURNING" in sql

    @pytest.mark.asyncio
    async def test_first_insert_reports_inserted(self, mock_session):
        new_id = uuid.uuid4()
        stored = SimpleNamespace(id=new_id, gateway_order_id="order_1")
        mock_session.execute.side_effect = [_result(new_id), _result(stored)]

        payment, inserted = await PaymentRepository(mock_session).create_for_order(
            **_order_values()
        )

        assert payment is stored
        assert inserted is True
        mock_session.add.assert_not_called()
