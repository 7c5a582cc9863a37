"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class Category(StrEnum):
    """Entity categories tracked by the identity index and the store."""

    CAMPUS = "campus"
    FAMILY = "family"
    PERSON = "person"
    PHONE_NUMBER = "phone_number"
    FAMILY_MEMBER = "family_member"
    LOCATION = "location"
    NOTE = "note"
    KNOWN_RELATIONSHIP = "known_relationship"
    ATTRIBUTE = "attribute"
    ATTRIBUTE_VALUE = "attribute_value"
    ACCOUNT = "account"
    BATCH = "batch"
    CONTRIBUTION = "contribution"
    PLEDGE = "pledge"
    METRIC = "metric"
    METRIC_VALUE = "metric_value"


class FamilyRole(StrEnum):
    ADULT = "adult"
    CHILD = "child"


class Gender(StrEnum):
    UNKNOWN = "unknown"
    MALE = "male"
    FEMALE = "female"


class MaritalStatus(StrEnum):
    SINGLE = "single"
    MARRIED = "married"
    DIVORCED = "divorced"
    WIDOWED = "widowed"
    UNKNOWN = "unknown"


class ConnectionStatus(StrEnum):
    MEMBER = "member"
    ATTENDEE = "attendee"
    VISITOR = "visitor"
    PROSPECT = "prospect"


class RecordStatus(StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    PENDING = "pending"


class PhoneKind(StrEnum):
    HOME = "home"
    MOBILE = "mobile"
    WORK = "work"


class LocationKind(StrEnum):
    HOME = "home"
    WORK = "work"


class NoteKind(StrEnum):
    GENERAL = "general"
    MEDICAL = "medical"
    SECURITY = "security"


class RelationshipRole(StrEnum):
    """Role of ``related_person`` from the point of view of ``owner_person``."""

    INVITED = "invited"
    INVITED_BY = "invited_by"
    CAN_CHECK_IN = "can_check_in"
    ALLOW_CHECK_IN_BY = "allow_check_in_by"


class BatchStatus(StrEnum):
    OPEN = "open"
    CLOSED = "closed"


class CurrencyType(StrEnum):
    CASH = "cash"
    CHECK = "check"
    ACH = "ach"
    CREDIT_CARD = "credit_card"
    NON_CASH = "non_cash"
    UNKNOWN = "unknown"


class PledgeFrequency(StrEnum):
    ONE_TIME = "one time"
    WEEKLY = "weekly"
    BI_WEEKLY = "bi-weekly"
    TWICE_A_MONTH = "twice a month"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    TWICE_A_YEAR = "twice a year"
    YEARLY = "yearly"
