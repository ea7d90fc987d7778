"""Tests for checkout configuration loading."""

import os
from decimal import Decimal
from pathlib import Path

import pytest
from pydantic import ValidationError

from checkout.config import CheckoutConfig, get_database_url, load_config
from checkout.models import Channel


def _checkout_keys():
    return {key for key in os.environ if key.startswith("CHECKOUT_") or key == "DATABASE_URL"}


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Strip CHECKOUT_* variables and run from an empty directory so no .env is picked up."""
    for key in _checkout_keys():
        monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    yield
    # load_dotenv writes straight into os.environ
    for key in _checkout_keys():
        os.environ.pop(key, None)


class TestDefaults:

    def test_defaults(self):
        config = load_config()
        assert config.tax_percent == Decimal("0")
        assert config.max_cash_tender == Decimal("100000")
        assert config.max_line_quantity == 10000
        assert config.default_channel == Channel.POS
        assert config.bill_number_prefix == "POS"
        assert config.receipt_dir == Path("receipts")


class TestEnvironmentOverrides:

    def test_reads_prefixed_variables(self, monkeypatch):
        monkeypatch.setenv("CHECKOUT_TAX_PERCENT", "8.25")
        monkeypatch.setenv("CHECKOUT_DEFAULT_CHANNEL", "ONLINE")
        monkeypatch.setenv("CHECKOUT_MAX_LINE_QUANTITY", "50")

        config = load_config()

        assert config.tax_percent == Decimal("8.25")
        assert config.default_channel == Channel.ONLINE
        assert config.max_line_quantity == 50

    def test_empty_value_keeps_default(self, monkeypatch):
        monkeypatch.setenv("CHECKOUT_TAX_PERCENT", "")
        assert load_config().tax_percent == Decimal("0")

    def test_env_file(self, tmp_path):
        env_file = tmp_path / "checkout.env"
        env_file.write_text("CHECKOUT_BILL_NUMBER_PREFIX=WEB\n")
        assert load_config(env_file).bill_number_prefix == "WEB"

    def test_env_wins_over_file(self, monkeypatch, tmp_path):
        env_file = tmp_path / "checkout.env"
        env_file.write_text("CHECKOUT_RECEIPT_TIMEZONE=Europe/Paris\n")
        monkeypatch.setenv("CHECKOUT_RECEIPT_TIMEZONE", "Asia/Tokyo")
        assert load_config(env_file).receipt_timezone == "Asia/Tokyo"


class TestValidation:

    @pytest.mark.parametrize("field,value", [
        ("tax_percent", "-1"),
        ("tax_percent", "101"),
        ("max_cash_tender", "0"),
        ("max_line_quantity", "0"),
        ("bill_number_prefix", "pos-1"),
    ])
    def test_rejects_bad_values(self, field, value):
        with pytest.raises(ValidationError):
            CheckoutConfig(**{field: value})


class TestDatabaseUrl:

    def test_required(self):
        with pytest.raises(RuntimeError, match="DATABASE_URL"):
            get_database_url()

    def test_reads_env(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://localhost/checkout")
        assert get_database_url() == "postgresql://localhost/checkout"
