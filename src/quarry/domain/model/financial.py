"""Financial accounts, batches, the transactions recorded in them and pledges."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar

from quarry.domain.model.entity import ExternallyKeyedEntity
from quarry.domain.model.enums import BatchStatus, Category, CurrencyType, PledgeFrequency

DEFAULT_BATCH_KEY = "0"
OPEN_START = date(1, 1, 1)
OPEN_END = date(9999, 12, 31)


@dataclass(eq=False, kw_only=True)
class FinancialAccount(ExternallyKeyedEntity):
    """A fund, or a sub-fund under its parent fund.

    The external key is the account path: the fund name for a top-level
    account, ``"<fund>/<sub-fund>"`` for a child.
    """

    CATEGORY: ClassVar[Category] = Category.ACCOUNT

    name: str
    public_name: str | None = None
    gl_code: str | None = None
    is_tax_deductible: bool = True
    is_active: bool = True
    campus_id: int | None = None
    parent_account_id: int | None = None
    created_by_id: int | None = None


@dataclass(eq=False, kw_only=True)
class FinancialBatch(ExternallyKeyedEntity):
    CATEGORY: ClassVar[Category] = Category.BATCH

    name: str
    status: BatchStatus = BatchStatus.CLOSED
    campus_id: int | None = None
    started_at: datetime | None = None
    control_amount: Decimal = Decimal(0)
    created_by_id: int | None = None

    @property
    def is_default(self) -> bool:
        return self.external_key == DEFAULT_BATCH_KEY


@dataclass(eq=False, kw_only=True)
class FinancialTransaction(ExternallyKeyedEntity):
    CATEGORY: ClassVar[Category] = Category.CONTRIBUTION

    amount: Decimal
    received_at: datetime | None = None
    batch_id: int | None = None
    person_id: int | None = None
    account_id: int | None = None
    check_number: str | None = None
    summary: str | None = None
    currency: CurrencyType = CurrencyType.UNKNOWN
    created_by_id: int | None = None


@dataclass(eq=False, kw_only=True)
class FinancialPledge(ExternallyKeyedEntity):
    CATEGORY: ClassVar[Category] = Category.PLEDGE

    total_amount: Decimal
    start_date: date = OPEN_START
    end_date: date = OPEN_END
    frequency: PledgeFrequency | None = None
    person_id: int | None = None
    account_id: int | None = None
    created_at: datetime | None = None
    created_by_id: int | None = None
