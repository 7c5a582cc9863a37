"""Public domain model surface."""

from __future__ import annotations

from quarry.domain.model.attributes import Attribute, AttributeValue
from quarry.domain.model.entity import Entity, ExternallyKeyedEntity
from quarry.domain.model.enums import (
    BatchStatus,
    Category,
    ConnectionStatus,
    CurrencyType,
    FamilyRole,
    Gender,
    LocationKind,
    MaritalStatus,
    NoteKind,
    PhoneKind,
    PledgeFrequency,
    RecordStatus,
    RelationshipRole,
)
from quarry.domain.model.financial import (
    DEFAULT_BATCH_KEY,
    OPEN_END,
    OPEN_START,
    FinancialAccount,
    FinancialBatch,
    FinancialPledge,
    FinancialTransaction,
)
from quarry.domain.model.metrics import Metric, MetricValue
from quarry.domain.model.people import (
    Family,
    FamilyMember,
    KnownRelationship,
    Location,
    Note,
    Person,
    PhoneNumber,
)
from quarry.domain.model.reference import Campus

__all__ = [  # noqa: RUF022
    # base
    "Entity",
    "ExternallyKeyedEntity",
    # reference
    "Campus",
    # people
    "Family",
    "FamilyMember",
    "KnownRelationship",
    "Location",
    "Note",
    "Person",
    "PhoneNumber",
    # attributes
    "Attribute",
    "AttributeValue",
    # financial
    "DEFAULT_BATCH_KEY",
    "OPEN_END",
    "OPEN_START",
    "FinancialAccount",
    "FinancialBatch",
    "FinancialPledge",
    "FinancialTransaction",
    # metrics
    "Metric",
    "MetricValue",
    # enums
    "BatchStatus",
    "Category",
    "ConnectionStatus",
    "CurrencyType",
    "FamilyRole",
    "Gender",
    "LocationKind",
    "MaritalStatus",
    "NoteKind",
    "PhoneKind",
    "PledgeFrequency",
    "RecordStatus",
    "RelationshipRole",
]
