"""Checkout configuration."""

import logging
import os
from decimal import Decimal
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from checkout.models import Channel, DEFAULT_RESTOCK_LEVEL

logger = logging.getLogger(__name__)

_ENV_PREFIX = "CHECKOUT_"


class CheckoutConfig(BaseModel):
    """
    Checkout configuration.

    Every field can be overridden from the environment as CHECKOUT_<FIELD>,
    e.g. CHECKOUT_TAX_PERCENT=8.
    """

    # Pricing
    tax_percent: Decimal = Field(
        default=Decimal("0"),
        description="Flat tax applied to the discounted subtotal",
        ge=0,
        le=100,
    )

    # Payments
    max_cash_tender: Decimal = Field(
        default=Decimal("100000"),
        description="Largest cash amount a single tender may carry",
        gt=0,
    )

    # Lines
    max_line_quantity: int = Field(
        default=10000,
        description="Largest quantity accepted for one add-item call",
        ge=1,
    )

    # Stock
    default_restock_level: int = Field(
        default=DEFAULT_RESTOCK_LEVEL,
        description="Restock level for items that do not set one",
        ge=0,
    )
    restock_threshold_floor: int = Field(
        default=DEFAULT_RESTOCK_LEVEL,
        description="Lowest sellable-stock threshold that triggers a restock event",
        ge=0,
    )

    # Terminal
    default_channel: Channel = Field(
        default=Channel.POS,
        description="Channel new transactions sell on",
    )
    default_operator: str = Field(
        default="operator",
        description="Operator name recorded when nobody is logged in",
        min_length=1,
    )
    bill_number_prefix: str = Field(
        default="POS",
        description="Prefix for generated bill numbers",
        pattern=r"^[A-Z0-9]+$",
    )

    # Receipts
    receipt_dir: Path = Field(
        default=Path("receipts"),
        description="Directory text receipts are written to",
    )
    receipt_timezone: str = Field(
        default="UTC",
        description="Timezone used for dates printed on receipts",
    )


def load_config(env_file: str | Path | None = None) -> CheckoutConfig:
    """
    Build configuration from CHECKOUT_* environment variables.

    A .env file is loaded first if present; real environment variables win.

    Raises:
        pydantic.ValidationError: If a variable holds an invalid value
    """
    load_dotenv(env_file)

    values = {}
    for name in CheckoutConfig.model_fields:
        raw = os.getenv(f"{_ENV_PREFIX}{name.upper()}")
        if raw is not None and raw != "":
            values[name] = raw

    config = CheckoutConfig(**values)
    logger.debug("Loaded checkout config with overrides: %s", sorted(values))
    return config


def get_database_url() -> str:
    """PostgreSQL connection URL from DATABASE_URL."""
    load_dotenv()
    url = os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL environment variable is required")
    return url
