"""SQLAlchemy mapping metadata for the quarry domain model."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING, Final

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Dialect,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    orm,
)
from sqlalchemy.orm import configure_mappers

from quarry.domain.model import (
    Attribute,
    AttributeValue,
    BatchStatus,
    Campus,
    Category,
    ConnectionStatus,
    CurrencyType,
    Entity,
    Family,
    FamilyMember,
    FamilyRole,
    FinancialAccount,
    FinancialBatch,
    FinancialPledge,
    FinancialTransaction,
    Gender,
    KnownRelationship,
    Location,
    LocationKind,
    MaritalStatus,
    Metric,
    MetricValue,
    Note,
    NoteKind,
    Person,
    PhoneKind,
    PhoneNumber,
    PledgeFrequency,
    RecordStatus,
    RelationshipRole,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def _id() -> Column[int]:
    return Column("id", Integer, primary_key=True, autoincrement=True)


def _external_key(length: int = 64) -> Column[str]:
    return Column("external_key", String(length), nullable=True)


def _fk(name: str, target: str, *, nullable: bool = True) -> Column[int]:
    return Column(name, Integer, ForeignKey(f"{target}.id"), nullable=nullable, index=True)


# Reference -------------------------------------------------------------------

campus_table = Table(
    "campus",
    mapper_registry.metadata,
    _id(),
    _external_key(),
    Column("name", String, nullable=False),
    Column("short_code", String(16), nullable=True),
    UniqueConstraint("external_key"),
)

# People ----------------------------------------------------------------------

family_table = Table(
    "family",
    mapper_registry.metadata,
    _id(),
    _external_key(),
    Column("name", String, nullable=False),
    _fk("campus_id", "campus"),
    Column("is_visitor_family", Boolean, nullable=False, default=False),
    Column("created_at", UTCDateTime(), nullable=True),
    Column("created_by_id", Integer, nullable=True),
    UniqueConstraint("external_key"),
)

person_table = Table(
    "person",
    mapper_registry.metadata,
    _id(),
    _external_key(),
    Column("first_name", String, nullable=False),
    Column("nick_name", String, nullable=True),
    Column("middle_name", String, nullable=True),
    Column("last_name", String, nullable=False),
    Column("title", String(32), nullable=True),
    Column("suffix", String(32), nullable=True),
    Column("gender", Enum(Gender, native_enum=False), nullable=False),
    Column("birth_date", Date, nullable=True),
    Column("graduation_year", Integer, nullable=True),
    Column("anniversary_date", Date, nullable=True),
    Column("email", String, nullable=True),
    Column("email_active", Boolean, nullable=False, default=True),
    Column("allow_bulk_email", Boolean, nullable=False, default=True),
    Column("marital_status", Enum(MaritalStatus, native_enum=False), nullable=True),
    Column("connection_status", Enum(ConnectionStatus, native_enum=False), nullable=True),
    Column("record_status", Enum(RecordStatus, native_enum=False), nullable=False),
    Column("is_deceased", Boolean, nullable=False, default=False),
    Column("system_note", Text, nullable=True),
    _fk("giving_family_id", "family"),
    Column("created_at", UTCDateTime(), nullable=True),
    Column("created_by_id", Integer, nullable=True),
    UniqueConstraint("external_key"),
)

phone_number_table = Table(
    "phone_number",
    mapper_registry.metadata,
    _id(),
    _fk("person_id", "person", nullable=False),
    Column("number", String(32), nullable=False),
    Column("kind", Enum(PhoneKind, native_enum=False), nullable=False),
    Column("sms_enabled", Boolean, nullable=False, default=False),
)

family_member_table = Table(
    "family_member",
    mapper_registry.metadata,
    _id(),
    _fk("family_id", "family", nullable=False),
    _fk("person_id", "person", nullable=False),
    Column("role", Enum(FamilyRole, native_enum=False), nullable=False),
    UniqueConstraint("family_id", "person_id"),
)

location_table = Table(
    "location",
    mapper_registry.metadata,
    _id(),
    _fk("family_id", "family", nullable=False),
    Column("kind", Enum(LocationKind, native_enum=False), nullable=False),
    Column("street1", String, nullable=False),
    Column("street2", String, nullable=True),
    Column("city", String, nullable=True),
    Column("state", String, nullable=True),
    Column("postal_code", String(16), nullable=True),
    Column("country", String, nullable=True),
    Column("name", String, nullable=True),
)

note_table = Table(
    "note",
    mapper_registry.metadata,
    _id(),
    _fk("person_id", "person", nullable=False),
    Column("kind", Enum(NoteKind, native_enum=False), nullable=False),
    Column("text", Text, nullable=False),
    Column("created_at", UTCDateTime(), nullable=True),
)

known_relationship_table = Table(
    "known_relationship",
    mapper_registry.metadata,
    _id(),
    _fk("owner_person_id", "person", nullable=False),
    _fk("related_person_id", "person", nullable=False),
    Column("role", Enum(RelationshipRole, native_enum=False), nullable=False),
)

attribute_table = Table(
    "attribute",
    mapper_registry.metadata,
    _id(),
    _external_key(),
    Column("name", String, nullable=False),
    Column("description", Text, nullable=True),
    Column("created_by_id", Integer, nullable=True),
    UniqueConstraint("external_key"),
)

attribute_value_table = Table(
    "attribute_value",
    mapper_registry.metadata,
    _id(),
    _fk("attribute_id", "attribute", nullable=False),
    _fk("person_id", "person", nullable=False),
    Column("value", Text, nullable=False),
    UniqueConstraint("attribute_id", "person_id"),
)

# Financial -------------------------------------------------------------------

financial_account_table = Table(
    "financial_account",
    mapper_registry.metadata,
    _id(),
    _external_key(128),
    Column("name", String(50), nullable=False),
    Column("public_name", String(50), nullable=True),
    Column("gl_code", String(50), nullable=True),
    Column("is_tax_deductible", Boolean, nullable=False, default=True),
    Column("is_active", Boolean, nullable=False, default=True),
    _fk("campus_id", "campus"),
    _fk("parent_account_id", "financial_account"),
    Column("created_by_id", Integer, nullable=True),
    UniqueConstraint("external_key"),
)

financial_batch_table = Table(
    "financial_batch",
    mapper_registry.metadata,
    _id(),
    _external_key(),
    Column("name", String, nullable=False),
    Column("status", Enum(BatchStatus, native_enum=False), nullable=False),
    _fk("campus_id", "campus"),
    Column("started_at", UTCDateTime(), nullable=True),
    Column("control_amount", Numeric(12, 2), nullable=False),
    Column("created_by_id", Integer, nullable=True),
    UniqueConstraint("external_key"),
)

financial_transaction_table = Table(
    "financial_transaction",
    mapper_registry.metadata,
    _id(),
    _external_key(),
    Column("amount", Numeric(12, 2), nullable=False),
    Column("received_at", UTCDateTime(), nullable=True),
    _fk("batch_id", "financial_batch", nullable=False),
    _fk("person_id", "person"),
    Column("check_number", String(32), nullable=True),
    Column("summary", Text, nullable=True),
    _fk("account_id", "financial_account"),
    Column("currency", Enum(CurrencyType, native_enum=False), nullable=False),
    Column("created_by_id", Integer, nullable=True),
    UniqueConstraint("external_key"),
)

financial_pledge_table = Table(
    "financial_pledge",
    mapper_registry.metadata,
    _id(),
    _external_key(),
    Column("total_amount", Numeric(12, 2), nullable=False),
    Column("start_date", Date, nullable=False),
    Column("end_date", Date, nullable=False),
    Column("frequency", Enum(PledgeFrequency, native_enum=False), nullable=True),
    _fk("person_id", "person", nullable=False),
    _fk("account_id", "financial_account"),
    Column("created_at", UTCDateTime(), nullable=True),
    Column("created_by_id", Integer, nullable=True),
    UniqueConstraint("external_key"),
)

# Metrics ---------------------------------------------------------------------

metric_table = Table(
    "metric",
    mapper_registry.metadata,
    _id(),
    _external_key(255),
    Column("title", String, nullable=False),
    Column("subtitle", String, nullable=True),
    Column("created_at", UTCDateTime(), nullable=True),
    Column("created_by_id", Integer, nullable=True),
    UniqueConstraint("external_key"),
)

metric_value_table = Table(
    "metric_value",
    mapper_registry.metadata,
    _id(),
    _external_key(512),
    _fk("metric_id", "metric", nullable=False),
    Column("value", Numeric(18, 4), nullable=True),
    Column("value_date", Date, nullable=True),
    Column("label", String, nullable=True),
    _fk("campus_id", "campus"),
    Column("created_at", UTCDateTime(), nullable=True),
    Column("created_by_id", Integer, nullable=True),
    UniqueConstraint("external_key"),
)


CLASS_BY_CATEGORY: Final[dict[Category, type[Entity]]] = {
    Category.CAMPUS: Campus,
    Category.FAMILY: Family,
    Category.PERSON: Person,
    Category.PHONE_NUMBER: PhoneNumber,
    Category.FAMILY_MEMBER: FamilyMember,
    Category.LOCATION: Location,
    Category.NOTE: Note,
    Category.KNOWN_RELATIONSHIP: KnownRelationship,
    Category.ATTRIBUTE: Attribute,
    Category.ATTRIBUTE_VALUE: AttributeValue,
    Category.ACCOUNT: FinancialAccount,
    Category.BATCH: FinancialBatch,
    Category.CONTRIBUTION: FinancialTransaction,
    Category.PLEDGE: FinancialPledge,
    Category.METRIC: Metric,
    Category.METRIC_VALUE: MetricValue,
}

TABLE_BY_CATEGORY: Final[dict[Category, Table]] = {
    Category.CAMPUS: campus_table,
    Category.FAMILY: family_table,
    Category.PERSON: person_table,
    Category.PHONE_NUMBER: phone_number_table,
    Category.FAMILY_MEMBER: family_member_table,
    Category.LOCATION: location_table,
    Category.NOTE: note_table,
    Category.KNOWN_RELATIONSHIP: known_relationship_table,
    Category.ATTRIBUTE: attribute_table,
    Category.ATTRIBUTE_VALUE: attribute_value_table,
    Category.ACCOUNT: financial_account_table,
    Category.BATCH: financial_batch_table,
    Category.CONTRIBUTION: financial_transaction_table,
    Category.PLEDGE: financial_pledge_table,
    Category.METRIC: metric_table,
    Category.METRIC_VALUE: metric_value_table,
}


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model.

    Relationships are plain foreign key columns; the commit pipeline resolves
    them itself, so no ``relationship()`` properties are mapped.
    """

    log.info("Starting SQLAlchemy mappers")
    for category, entity_cls in CLASS_BY_CATEGORY.items():
        mapper_registry.map_imperatively(entity_cls, TABLE_BY_CATEGORY[category])
    configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
