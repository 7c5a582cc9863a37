"""Families, people and the records hanging off them."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import ClassVar

from quarry.domain.model.entity import Entity, ExternallyKeyedEntity
from quarry.domain.model.enums import (
    Category,
    ConnectionStatus,
    FamilyRole,
    Gender,
    LocationKind,
    MaritalStatus,
    NoteKind,
    PhoneKind,
    RecordStatus,
    RelationshipRole,
)


@dataclass(eq=False, kw_only=True)
class Family(ExternallyKeyedEntity):
    CATEGORY: ClassVar[Category] = Category.FAMILY

    name: str
    campus_id: int | None = None
    is_visitor_family: bool = False
    created_at: datetime | None = None
    created_by_id: int | None = None


@dataclass(eq=False, kw_only=True)
class Person(ExternallyKeyedEntity):
    CATEGORY: ClassVar[Category] = Category.PERSON

    first_name: str
    last_name: str
    nick_name: str | None = None
    middle_name: str | None = None
    title: str | None = None
    suffix: str | None = None
    gender: Gender = Gender.UNKNOWN
    birth_date: date | None = None
    graduation_year: int | None = None
    anniversary_date: date | None = None
    email: str | None = None
    email_active: bool = True
    allow_bulk_email: bool = True
    marital_status: MaritalStatus | None = None
    connection_status: ConnectionStatus | None = None
    record_status: RecordStatus = RecordStatus.ACTIVE
    is_deceased: bool = False
    system_note: str | None = None
    giving_family_id: int | None = None
    created_at: datetime | None = None
    created_by_id: int | None = None

    @property
    def full_name(self) -> str:
        return f"{self.nick_name or self.first_name} {self.last_name}".strip()

    def age_on(self, when: date) -> int | None:
        """Return the age in whole years on ``when``, ``None`` if unknown."""

        if self.birth_date is None:
            return None
        born = self.birth_date
        had_birthday = (when.month, when.day) >= (born.month, born.day)
        return when.year - born.year - (0 if had_birthday else 1)


@dataclass(eq=False, kw_only=True)
class PhoneNumber(Entity):
    CATEGORY: ClassVar[Category] = Category.PHONE_NUMBER

    number: str
    kind: PhoneKind
    person_id: int | None = None
    sms_enabled: bool = False


@dataclass(eq=False, kw_only=True)
class FamilyMember(Entity):
    CATEGORY: ClassVar[Category] = Category.FAMILY_MEMBER

    role: FamilyRole
    family_id: int | None = None
    person_id: int | None = None


@dataclass(eq=False, kw_only=True)
class Location(Entity):
    CATEGORY: ClassVar[Category] = Category.LOCATION

    kind: LocationKind
    street1: str
    street2: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str | None = None
    name: str | None = None
    family_id: int | None = None


@dataclass(eq=False, kw_only=True)
class Note(Entity):
    CATEGORY: ClassVar[Category] = Category.NOTE

    kind: NoteKind
    text: str
    person_id: int | None = None
    created_at: datetime | None = None


@dataclass(eq=False, kw_only=True)
class KnownRelationship(Entity):
    CATEGORY: ClassVar[Category] = Category.KNOWN_RELATIONSHIP

    role: RelationshipRole
    owner_person_id: int | None = None
    related_person_id: int | None = None
