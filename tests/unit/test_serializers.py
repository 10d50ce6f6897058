"""Unit tests for API JSON helpers."""

import json
import uuid
from datetime import UTC, datetime
from decimal import Decimal

import pytest

from api.serializers import dumps, json_response, model_to_dict
from app.models import PaymentMethod
from app.models.enums import ModerationSeverity
from app.services.moderation import ModerationResult


class TestModelToDict:
    def test_wallet_columns(self, make_wallet):
        wallet = make_wallet(balance="120.50")

        data = model_to_dict(wallet)

        assert data["balance"] == Decimal("120.50")
        assert data["profile_id"] == wallet.profile_id
        assert "profile" not in data

    def test_hidden_columns_are_dropped(self):
        method = PaymentMethod(
            id=uuid.uuid4(),
            profile_id=uuid.uuid4(),
            method_type="card",
            display_name="Priya",
            card_last_four="4242",
            card_token_encrypted="ciphertext",
        )

        data = model_to_dict(method)

        assert data["card_last_four"] == "4242"
        assert "card_token_encrypted" not in data


class TestDumps:
    """Tests for the JSON encoder."""

    def test_encodes_domain_types(self):
        row_id = uuid.uuid4()
        payload = {
            "id": row_id,
            "amount": Decimal("10.50"),
            "at": datetime(2026, 1, 1, tzinfo=UTC),
            "severity": ModerationSeverity.HIGH,
            "result": ModerationResult(allowed=True),
        }

        decoded = json.loads(dumps(payload))

        assert decoded["id"] == str(row_id)
        assert decoded["amount"] == "10.50"
        assert decoded["at"] == "2026-01-01T00:00:00+00:00"
        assert decoded["severity"] == "high"
        assert decoded["result"]["allowed"] is True

    def test_nested_model(self, make_wallet):
        wallet = make_wallet(balance="5")

        decoded = json.loads(dumps({"wallet": wallet}))

        assert decoded["wallet"]["balance"] == "5"

    def test_unknown_type(self):
        with pytest.raises(TypeError):
            dumps({"value": object()})

    def test_json_response(self):
        response = json_response({"ok": True}, status=201, headers={"X-Test": "1"})

        assert response.status == 201
        assert response.headers["X-Test"] == "1"
        assert json.loads(response.text) == {"ok": True}
