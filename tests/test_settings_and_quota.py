"""Tests for the settings store validation, pricing policy and quota ledger."""

from __future__ import annotations

import uuid
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import postgresql

from scrapquote.config import QuoteSettings
from scrapquote.errors import InvalidInput, UserNotFound
from scrapquote.models.app_settings import DEFAULT_CHECKS, AppSettings
from scrapquote.models.user import User
from scrapquote.quotes.pricing import PricingPolicy
from scrapquote.quotes.quota import QuotaLedger
from scrapquote.quotes.settings_store import SettingsStore, validate_settings_update

# ── Helpers ──────────────────────────────────────────────────────────


def _make_result(value) -> MagicMock:
    """Build a mock SQLAlchemy Result whose scalar accessors return `value`."""
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    result.scalar_one.return_value = value
    return result


def _make_db(*values) -> AsyncMock:
    db = AsyncMock()
    db.execute = AsyncMock(side_effect=[_make_result(v) for v in values])
    return db


# ── Settings validation ──────────────────────────────────────────────


class TestValidateSettingsUpdate:
    def test_requires_a_field(self):
        with pytest.raises(InvalidInput, match="at least one field"):
            validate_settings_update()

    def test_both_fields(self):
        assert validate_settings_update(5, "0.30") == {
            "default_checks": 5,
            "scrap_rate_per_kg": Decimal("0.30"),
        }

    def test_integral_float_checks_accepted(self):
        assert validate_settings_update(default_checks=3.0) == {"default_checks": 3}

    @pytest.mark.parametrize("checks", [-1, 2.5, "abc", True, "NaN"])
    def test_bad_checks(self, checks):
        with pytest.raises(InvalidInput, match="defaultChecks"):
            validate_settings_update(default_checks=checks)

    @pytest.mark.parametrize("rate", [-0.1, "abc", False, "Infinity"])
    def test_bad_rate(self, rate):
        with pytest.raises(InvalidInput, match="scrapRatePerKg"):
            validate_settings_update(scrap_rate_per_kg=rate)

    def test_zero_is_allowed(self):
        assert validate_settings_update(0, 0) == {"default_checks": 0, "scrap_rate_per_kg": Decimal("0")}


class TestSettingsStore:
    @pytest.mark.asyncio()
    async def test_invalid_update_never_touches_db(self):
        db = AsyncMock()
        store = SettingsStore(db, QuoteSettings())

        with pytest.raises(InvalidInput):
            await store.update(default_checks=-3)
        db.execute.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_update_returns_row(self):
        row = MagicMock(default_checks=7, scrap_rate_per_kg=Decimal("0.30"))
        store = SettingsStore(_make_db(row), QuoteSettings())

        assert await store.update(default_checks=7) is row


# ── Pricing policy ───────────────────────────────────────────────────


class TestPricingPolicy:
    @pytest.mark.asyncio()
    async def test_reads_saved_rate(self):
        store = AsyncMock()
        store.get_current = AsyncMock(return_value=MagicMock(scrap_rate_per_kg=Decimal("0.3100")))

        assert await PricingPolicy(store, Decimal("0.25")).current_rate() == Decimal("0.31")

    @pytest.mark.asyncio()
    async def test_falls_back_without_row(self):
        store = AsyncMock()
        store.get_current = AsyncMock(return_value=None)

        assert await PricingPolicy(store, Decimal("0.25")).current_rate() == Decimal("0.25")

    @pytest.mark.asyncio()
    async def test_reads_fresh_each_time(self):
        store = AsyncMock()
        store.get_current = AsyncMock(side_effect=[
            MagicMock(scrap_rate_per_kg=Decimal("0.25")),
            MagicMock(scrap_rate_per_kg=Decimal("0.40")),
        ])
        policy = PricingPolicy(store, Decimal("0.10"))

        assert await policy.current_rate() == Decimal("0.25")
        assert await policy.current_rate() == Decimal("0.40")


# ── Quota ledger ─────────────────────────────────────────────────────


class TestQuotaLedger:
    @pytest.mark.asyncio()
    async def test_remaining(self):
        assert await QuotaLedger(_make_db(3)).remaining(uuid.uuid4()) == 3

    @pytest.mark.asyncio()
    async def test_remaining_unknown_user(self):
        with pytest.raises(UserNotFound):
            await QuotaLedger(_make_db(None)).remaining(uuid.uuid4())

    @pytest.mark.asyncio()
    async def test_decrement(self):
        assert await QuotaLedger(_make_db(2)).decrement(uuid.uuid4()) is True

    @pytest.mark.asyncio()
    async def test_decrement_with_nothing_left(self):
        assert await QuotaLedger(_make_db(None)).decrement(uuid.uuid4()) is False

    @pytest.mark.asyncio()
    async def test_refill_is_one_capped_update(self):
        db = _make_db(7)
        user_id = uuid.uuid4()

        assert await QuotaLedger(db).refill(user_id, 5, 10) == 7

        db.execute.assert_awaited_once()
        compiled = db.execute.await_args.args[0].compile(dialect=postgresql.dialect())
        sql = str(compiled)
        assert sql.startswith("UPDATE users SET")
        assert "checks_left=greatest(users.checks_left, least(users.checks_left + " in sql
        assert "WHERE users.id = %(id_1)s RETURNING users.checks_left" in sql
        assert sorted(v for v in compiled.params.values() if isinstance(v, int)) == [5, 10]
        db.flush.assert_not_awaited()

    @pytest.mark.parametrize("amount", [-1, True, 1.5])
    @pytest.mark.asyncio()
    async def test_refill_rejects_bad_amount(self, amount):
        with pytest.raises(InvalidInput):
            await QuotaLedger(AsyncMock()).refill(uuid.uuid4(), amount, 10)

    @pytest.mark.asyncio()
    async def test_refill_unknown_user(self):
        with pytest.raises(UserNotFound):
            await QuotaLedger(_make_db(None)).refill(uuid.uuid4(), 1, 10)


def test_starting_allowance_has_one_source():
    assert QuoteSettings.model_fields["default_checks"].default == DEFAULT_CHECKS
    assert User.__table__.c.checks_left.default.arg == DEFAULT_CHECKS
    assert AppSettings.__table__.c.default_checks.default.arg == DEFAULT_CHECKS
