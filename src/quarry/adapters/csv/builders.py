"""Entity builders for the delimited import file layouts."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from datetime import UTC, date, datetime, time
from decimal import Decimal
from logging import getLogger
from typing import TYPE_CHECKING, ClassVar, Final, cast

from pydantic import ValidationError

from quarry.adapters.csv.schema import (
    BatchRow,
    ContributionRow,
    CsvRowModel,
    FamilyRow,
    FundFields,
    IndividualRow,
    PledgeRow,
    describe_validation_error,
)
from quarry.domain.model import (
    DEFAULT_BATCH_KEY,
    OPEN_END,
    OPEN_START,
    Attribute,
    AttributeValue,
    BatchStatus,
    Campus,
    Category,
    ConnectionStatus,
    CurrencyType,
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
from quarry.domain.pipeline import (
    ALREADY_IMPORTED,
    BuildResult,
    CandidateEntity,
    DurableRef,
    link,
    parse_date,
)

if TYPE_CHECKING:
    from quarry.domain.pipeline import (
        AnyCandidate,
        EntityRef,
        Lookups,
        RawRow,
        RelationshipEdge,
    )


log = getLogger(__name__)

NAME_LIMIT: Final[int] = 50
METRIC_TITLE_LIMIT: Final[int] = 100
PHONE_LIMIT: Final[int] = 20
ADULT_AGE: Final[int] = 18
CHECK_IN_GUARDIAN_MIN_AGE: Final[int] = 15

_YES: Final[frozenset[str]] = frozenset({"y", "yes", "true", "1", "active"})
_NO: Final[frozenset[str]] = frozenset({"n", "no", "false", "0", "inactive"})
_EMAIL_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_SPECIAL_CHARACTERS: Final[re.Pattern[str]] = re.compile(r"[^\w\s]")

_CURRENCY_BY_TYPE: Final[dict[str, CurrencyType]] = {
    "cash": CurrencyType.CASH,
    "check": CurrencyType.CHECK,
    "ach": CurrencyType.ACH,
    "credit card": CurrencyType.CREDIT_CARD,
}

_ONE_TIME_FREQUENCIES: Final[frozenset[str]] = frozenset({"one time", "one-time", "as can"})


class CsvEntityBuilder(ABC):
    """Validates a row against ``row_model`` and hands the parsed row to ``build_row``."""

    tag: ClassVar[str]
    seed_categories: ClassVar[tuple[Category, ...]]
    row_model: ClassVar[type[CsvRowModel]]

    def build(self, row: RawRow, lookups: Lookups) -> BuildResult:
        try:
            data = self.row_model.model_validate(row.as_mapping())
        except ValidationError as exc:
            return BuildResult.skipped(describe_validation_error(exc))
        return self.build_row(data, lookups)

    @abstractmethod
    def build_row(self, data: CsvRowModel, lookups: Lookups) -> BuildResult: ...

    def finish(self, lookups: Lookups) -> BuildResult | None:
        _ = lookups
        return None


class FamilyBuilder(CsvEntityBuilder):
    """One family per family id, with its campus and home and work addresses.

    Later rows repeating a family id in the same group are skipped; the first
    row wins.
    """

    tag = "family"
    seed_categories = (Category.FAMILY, Category.CAMPUS)
    row_model = FamilyRow

    def build_row(self, data: CsvRowModel, lookups: Lookups) -> BuildResult:
        row = cast(FamilyRow, data)
        key = row.family_id
        if key is None:
            return BuildResult.skipped("missing FamilyId")
        if lookups.is_imported(Category.FAMILY, key):
            return BuildResult.skipped(ALREADY_IMPORTED, group_key=key)
        if lookups.is_buffered(Category.FAMILY, key):
            return BuildResult.skipped(
                f"family {key} already read from an earlier row", group_key=key
            )

        name = _truncate(row.family_name) or f"Family {key}"
        family = CandidateEntity(
            Family(
                external_key=key,
                name=name,
                created_at=_at_midnight(row.created_date) or lookups.started_at,
                created_by_id=lookups.actor_id,
            )
        )
        candidates: list[AnyCandidate] = [family]
        edges: list[RelationshipEdge] = []

        campus_ref, new_campus = _resolve_campus(row.campus, lookups)
        if new_campus is not None:
            candidates.insert(0, new_campus)
        edges.extend(link(family, "campus_id", campus_ref))

        addresses = (
            (
                LocationKind.HOME,
                "Home",
                (row.address, row.address2, row.city, row.state, row.zip, row.country),
            ),
            (
                LocationKind.WORK,
                "Work",
                (
                    row.secondary_address,
                    row.secondary_address2,
                    row.secondary_city,
                    row.secondary_state,
                    row.secondary_zip,
                    row.secondary_country,
                ),
            ),
        )
        for kind, label, (street1, street2, city, state, postal_code, country) in addresses:
            if street1 is None:
                continue
            location = CandidateEntity(
                Location(
                    kind=kind,
                    street1=street1,
                    street2=street2,
                    city=city,
                    state=state,
                    postal_code=postal_code,
                    country=country,
                    name=f"{name} {label}",
                ),
                register=False,
            )
            candidates.append(location)
            edges.extend(link(location, "family_id", family))

        return BuildResult(candidates=tuple(candidates), edges=tuple(edges), group_key=key)


class IndividualBuilder(CsvEntityBuilder):
    """One person per row, linked into their family.

    A row with family role ``Visitor`` that is not the first of its family
    group gets a family of its own, and known relationships pair it with the
    other people of the group. ``School`` and every column past the standard
    layout become person attribute values; attributes are created on first use.
    """

    tag = "individual"
    seed_categories = (Category.PERSON, Category.FAMILY, Category.ATTRIBUTE)
    row_model = IndividualRow

    def build_row(self, data: CsvRowModel, lookups: Lookups) -> BuildResult:
        row = cast(IndividualRow, data)
        person_key = row.person_id
        family_key = row.family_id
        if person_key is None:
            return BuildResult.skipped("missing PersonId", group_key=family_key)
        if family_key is None:
            return BuildResult.skipped("missing FamilyId")
        if lookups.is_imported(Category.PERSON, person_key):
            return BuildResult.skipped(ALREADY_IMPORTED, group_key=family_key)
        if lookups.is_buffered(Category.PERSON, person_key):
            return BuildResult.skipped(
                f"person {person_key} already read from an earlier row", group_key=family_key
            )
        if row.first_name is None and row.last_name is None:
            return BuildResult.skipped("missing FirstName and LastName", group_key=family_key)

        person = _person(row, person_key, lookups)
        person_candidate = CandidateEntity(person)
        candidates: list[AnyCandidate] = [person_candidate]
        edges: list[RelationshipEdge] = []

        earlier_units = lookups.group_units(family_key)
        is_visitor = _matches(row.family_role, "visitor") and bool(earlier_units)
        family_ref: EntityRef | None
        if is_visitor:
            visitor_family = CandidateEntity(
                Family(
                    name=f"{person.last_name} Family",
                    is_visitor_family=True,
                    created_at=lookups.started_at,
                    created_by_id=lookups.actor_id,
                ),
                register=False,
            )
            candidates.append(visitor_family)
            family_ref = visitor_family
        else:
            family_ref = lookups.resolve(Category.FAMILY, family_key)
            if family_ref is None:
                new_family = CandidateEntity(
                    Family(
                        external_key=family_key,
                        name=_truncate(row.family_name) or f"{person.last_name} Family",
                        created_at=_at_midnight(row.created_date) or lookups.started_at,
                        created_by_id=lookups.actor_id,
                    )
                )
                candidates.append(new_family)
                family_ref = new_family

        today = lookups.started_at.date()
        age = person.age_on(today)
        is_child = row.family_role is not None and (
            _matches(row.family_role, "child") or (age is not None and age < ADULT_AGE)
        )
        member = CandidateEntity(
            FamilyMember(role=FamilyRole.CHILD if is_child else FamilyRole.ADULT), register=False
        )
        candidates.append(member)
        edges.extend(link(member, "family_id", family_ref))
        edges.extend(link(member, "person_id", person_candidate))
        edges.extend(link(person_candidate, "giving_family_id", family_ref))

        for phone in _phones(row):
            candidates.append(phone)
            edges.extend(link(phone, "person_id", person_candidate))
        for note in _notes(row, lookups):
            candidates.append(note)
            edges.extend(link(note, "person_id", person_candidate))
        for name, value in _attribute_values(row):
            attribute_ref, new_attribute = _resolve_attribute(name, lookups)
            if new_attribute is not None:
                candidates.append(new_attribute)
            attribute_value = CandidateEntity(AttributeValue(value=value), register=False)
            candidates.append(attribute_value)
            edges.extend(link(attribute_value, "attribute_id", attribute_ref))
            edges.extend(link(attribute_value, "person_id", person_candidate))

        for unit in earlier_units:
            other = _unit_person(unit)
            if other is None:
                continue
            other_is_visitor = _is_visitor_unit(unit)
            if is_visitor and not other_is_visitor:
                pairs = _visitor_relationships(person_candidate, other, today)
            elif other_is_visitor and not is_visitor:
                pairs = _visitor_relationships(other, person_candidate, today)
            else:
                continue
            for relationship, relationship_edges in pairs:
                candidates.append(relationship)
                edges.extend(relationship_edges)

        return BuildResult(candidates=tuple(candidates), edges=tuple(edges), group_key=family_key)


class BatchBuilder(CsvEntityBuilder):
    """One closed financial batch per row; the default batch is added at the end."""

    tag = "batch"
    seed_categories = (Category.BATCH,)
    row_model = BatchRow

    def build_row(self, data: CsvRowModel, lookups: Lookups) -> BuildResult:
        row = cast(BatchRow, data)
        key = row.batch_id
        if key is None:
            return BuildResult.skipped("missing BatchID")
        if lookups.is_imported(Category.BATCH, key):
            return BuildResult.skipped(ALREADY_IMPORTED)
        if lookups.is_buffered(Category.BATCH, key):
            return BuildResult.skipped(f"batch {key} already read from an earlier row")

        batch = FinancialBatch(
            external_key=key,
            name=_truncate(row.batch_name) or f"Batch {key}",
            status=BatchStatus.CLOSED,
            campus_id=lookups.references.campus_id_by_prefix(row.batch_name),
            started_at=_at_midnight(row.batch_date),
            control_amount=row.batch_amount if row.batch_amount is not None else Decimal(0),
            created_by_id=lookups.actor_id,
        )
        return BuildResult(candidates=(CandidateEntity(batch),))

    def finish(self, lookups: Lookups) -> BuildResult | None:
        if lookups.resolve(Category.BATCH, DEFAULT_BATCH_KEY) is not None:
            return None
        return BuildResult(candidates=(CandidateEntity(default_batch(lookups)),))


class ContributionBuilder(CsvEntityBuilder):
    """One transaction per row, filed under its batch or the default batch.

    The transaction is credited to the account of its fund, or of its sub-fund
    when one is given; accounts are created on first use.
    """

    tag = "contribution"
    seed_categories = (Category.CONTRIBUTION, Category.BATCH, Category.PERSON, Category.ACCOUNT)
    row_model = ContributionRow

    def build_row(self, data: CsvRowModel, lookups: Lookups) -> BuildResult:
        row = cast(ContributionRow, data)
        key = row.contribution_id
        group_key = row.contribution_batch_id
        if key is None:
            return BuildResult.skipped("missing ContributionID", group_key=group_key)
        if lookups.is_imported(Category.CONTRIBUTION, key):
            return BuildResult.skipped(ALREADY_IMPORTED, group_key=group_key)
        if lookups.is_buffered(Category.CONTRIBUTION, key):
            return BuildResult.skipped(
                f"contribution {key} already read from an earlier row", group_key=group_key
            )

        candidates: list[AnyCandidate] = []
        batch_ref = lookups.resolve(Category.BATCH, group_key)
        if batch_ref is None:
            batch_ref = lookups.resolve(Category.BATCH, DEFAULT_BATCH_KEY)
        if batch_ref is None:
            fallback = CandidateEntity(default_batch(lookups))
            candidates.append(fallback)
            batch_ref = fallback

        amount = row.amount
        if amount == 0 and row.stated_value:
            amount = row.stated_value
        check_number = row.check_number if row.check_number and row.check_number.isdigit() else None
        transaction = CandidateEntity(
            FinancialTransaction(
                external_key=key,
                amount=amount,
                received_at=_at_midnight(row.received_date),
                check_number=check_number,
                summary=row.memo,
                currency=_currency(row.contribution_type_name),
                created_by_id=lookups.actor_id,
            )
        )
        account_ref, accounts, account_edges = _resolve_account(row, lookups, with_gl_codes=True)
        candidates.extend(accounts)
        candidates.append(transaction)
        edges = (
            *account_edges,
            *link(transaction, "batch_id", batch_ref),
            *link(transaction, "person_id", lookups.resolve(Category.PERSON, row.individual_id)),
            *link(transaction, "account_id", account_ref),
        )
        return BuildResult(candidates=tuple(candidates), edges=edges, group_key=group_key)


class PledgeBuilder(CsvEntityBuilder):
    """One pledge per row for a person imported earlier."""

    tag = "pledge"
    seed_categories = (Category.PLEDGE, Category.PERSON, Category.ACCOUNT)
    row_model = PledgeRow

    def build_row(self, data: CsvRowModel, lookups: Lookups) -> BuildResult:
        row = cast(PledgeRow, data)
        key = row.pledge_id
        if key is None:
            return BuildResult.skipped("missing PledgeId")
        if lookups.is_imported(Category.PLEDGE, key):
            return BuildResult.skipped(ALREADY_IMPORTED)
        if lookups.is_buffered(Category.PLEDGE, key):
            return BuildResult.skipped(f"pledge {key} already read from an earlier row")
        if row.total_pledge is None:
            return BuildResult.skipped("missing TotalPledge")
        if row.individual_id is None:
            return BuildResult.skipped("missing IndividualID")
        person_ref = lookups.resolve(Category.PERSON, row.individual_id)
        if person_ref is None:
            return BuildResult.skipped(f"person {row.individual_id} has not been imported")

        pledge = CandidateEntity(
            FinancialPledge(
                external_key=key,
                total_amount=row.total_pledge,
                start_date=row.start_date or OPEN_START,
                end_date=row.end_date or OPEN_END,
                frequency=pledge_frequency(row.pledge_frequency_name),
                created_at=lookups.started_at,
                created_by_id=lookups.actor_id,
            )
        )
        account_ref, accounts, account_edges = _resolve_account(row, lookups, with_gl_codes=False)
        edges = (
            *account_edges,
            *link(pledge, "person_id", person_ref),
            *link(pledge, "account_id", account_ref),
        )
        return BuildResult(candidates=(*accounts, pledge), edges=edges)


class MetricsBuilder:
    """One metric value per row; metrics are created by title on first use.

    The layout has no id column, so a value is keyed by its metric, service
    date, campus and label. Columns are read with the typed ``RawRow``
    getters; a value that does not convert skips the row.
    """

    tag: ClassVar[str] = "metrics"
    seed_categories: ClassVar[tuple[Category, ...]] = (Category.METRIC_VALUE, Category.METRIC)

    def build(self, row: RawRow, lookups: Lookups) -> BuildResult:
        title = _truncate(row.text("MetricName"), METRIC_TITLE_LIMIT)
        if title is None:
            return BuildResult.skipped("missing MetricName")
        value = row.decimal("MetricValue")
        service_date = row.date("MetricService")
        campus_name = _truncate(row.text("MetricCampus"))
        label = _truncate(row.text("MetricCategory"))
        service = service_date.isoformat() if service_date else ""
        key = "|".join((title, service, campus_name or "", label or ""))
        if lookups.is_imported(Category.METRIC_VALUE, key):
            return BuildResult.skipped(ALREADY_IMPORTED)
        if lookups.is_buffered(Category.METRIC_VALUE, key):
            return BuildResult.skipped(f"metric value {key!r} already read from an earlier row")

        candidates: list[AnyCandidate] = []
        metric_ref = lookups.resolve(Category.METRIC, title)
        if metric_ref is None:
            metric = CandidateEntity(
                Metric(
                    external_key=title,
                    title=title,
                    subtitle=f"{title} imported on {lookups.started_at:%Y-%m-%d %H:%M}",
                    created_at=lookups.started_at,
                    created_by_id=lookups.actor_id,
                )
            )
            candidates.append(metric)
            metric_ref = metric
        metric_value = CandidateEntity(
            MetricValue(
                external_key=key,
                value=value,
                value_date=service_date,
                label=label,
                campus_id=lookups.references.campus_id(campus_name),
                created_at=lookups.started_at,
                created_by_id=lookups.actor_id,
            )
        )
        candidates.append(metric_value)
        return BuildResult(
            candidates=tuple(candidates), edges=link(metric_value, "metric_id", metric_ref)
        )

    def finish(self, lookups: Lookups) -> BuildResult | None:
        _ = lookups
        return None


def default_batch(lookups: Lookups) -> FinancialBatch:
    return FinancialBatch(
        external_key=DEFAULT_BATCH_KEY,
        name=f"Default Batch (Imported {lookups.started_at:%Y-%m-%d %H:%M})",
        status=BatchStatus.CLOSED,
        started_at=lookups.started_at,
        created_by_id=lookups.actor_id,
    )


# Field mapping helpers -------------------------------------------------------


def _truncate(value: str | None, limit: int = NAME_LIMIT) -> str | None:
    if value is None:
        return None
    return value[:limit].strip() or None


def _matches(value: str | None, expected: str) -> bool:
    return value is not None and value.strip().casefold() == expected


def _flag(value: str | None, *, default: bool) -> bool:
    if value is None:
        return default
    lowered = value.strip().casefold()
    if lowered in _YES:
        return True
    if lowered in _NO:
        return False
    return default


def _at_midnight(value: date | None) -> datetime | None:
    if value is None:
        return None
    return datetime.combine(value, time(), tzinfo=UTC)


def _strip_special(value: str | None) -> str | None:
    if value is None:
        return None
    return _SPECIAL_CHARACTERS.sub("", value).strip() or None


def _resolve_campus(
    name: str | None, lookups: Lookups
) -> tuple[EntityRef | None, AnyCandidate | None]:
    """Return the campus reference and, when the campus is unknown, its new candidate.

    Reference campuses match by name or short code. Campuses created by an
    import are keyed by their lower-cased name.
    """

    if name is None:
        return None, None
    campus_id = lookups.references.campus_id(name)
    if campus_id is not None:
        return DurableRef(Category.CAMPUS, campus_id), None
    key = name.strip().casefold()
    existing = lookups.resolve(Category.CAMPUS, key)
    if existing is not None:
        return existing, None
    log.info("Creating campus %r", name)
    campus = CandidateEntity(Campus(external_key=key, name=name.strip()))
    return campus, campus


def _person(row: IndividualRow, person_key: str, lookups: Lookups) -> Person:
    first_name = _truncate(row.first_name) or ""
    is_deceased = _flag(row.is_deceased, default=False)
    email = row.email.strip()[:75] if row.email else None
    if email is not None and not _EMAIL_PATTERN.match(email):
        log.warning("Person %s has an invalid email %r; not imported", person_key, email)
        email = None
    return Person(
        external_key=person_key,
        first_name=first_name,
        nick_name=_truncate(row.nick_name) or first_name or None,
        middle_name=_truncate(row.middle_name),
        last_name=_truncate(row.last_name) or "",
        title=_strip_special(row.prefix),
        suffix=_strip_special(row.suffix),
        gender=_gender(row.gender),
        birth_date=row.date_of_birth,
        graduation_year=row.graduation_date.year if row.graduation_date else None,
        anniversary_date=row.anniversary,
        email=email,
        email_active=_flag(row.is_email_active, default=True),
        allow_bulk_email=_flag(row.allow_bulk_email, default=True),
        marital_status=_marital_status(row.marital_status),
        connection_status=_connection_status(row.connection_status),
        record_status=RecordStatus.INACTIVE if is_deceased else _record_status(row.record_status),
        is_deceased=is_deceased,
        system_note=f"Imported on {lookups.started_at:%Y-%m-%d %H:%M:%S}",
        created_at=_at_midnight(row.created_date) or lookups.started_at,
        created_by_id=lookups.actor_id,
    )


def _gender(value: str | None) -> Gender:
    lowered = (value or "").strip().casefold()
    if lowered in {"m", "male"}:
        return Gender.MALE
    if lowered in {"f", "female"}:
        return Gender.FEMALE
    return Gender.UNKNOWN


def _marital_status(value: str | None) -> MaritalStatus | None:
    if value is None:
        return MaritalStatus.UNKNOWN
    try:
        return MaritalStatus(value.strip().casefold())
    except ValueError:
        return None


def _connection_status(value: str | None) -> ConnectionStatus | None:
    if value is None:
        return None
    try:
        return ConnectionStatus(value.strip().casefold())
    except ValueError:
        return ConnectionStatus.ATTENDEE


def _record_status(value: str | None) -> RecordStatus:
    if value is None:
        return RecordStatus.ACTIVE
    lowered = value.strip().casefold()
    if lowered == "active":
        return RecordStatus.ACTIVE
    if lowered == "inactive":
        return RecordStatus.INACTIVE
    return RecordStatus.PENDING


def normalize_phone(raw: str) -> str | None:
    """Digits of ``raw`` without extension or leading zeros, ``None`` if nothing is left."""

    extension_at = raw.casefold().rfind("x")
    number = raw[:extension_at] if extension_at > 0 else raw
    digits = "".join(character for character in number if character.isdigit()).lstrip("0")
    return digits[:PHONE_LIMIT] or None


def _phones(row: IndividualRow) -> list[AnyCandidate]:
    phones: list[AnyCandidate] = []
    sms_allowed = _flag(row.allow_sms, default=False)
    for kind, raw in (
        (PhoneKind.HOME, row.home_phone),
        (PhoneKind.MOBILE, row.mobile_phone),
        (PhoneKind.WORK, row.work_phone),
    ):
        number = normalize_phone(raw) if raw else None
        if number is None:
            continue
        phone = PhoneNumber(
            number=number, kind=kind, sms_enabled=kind is PhoneKind.MOBILE and sms_allowed
        )
        phones.append(CandidateEntity(phone, register=False))
    return phones


def _notes(row: IndividualRow, lookups: Lookups) -> list[AnyCandidate]:
    notes: list[AnyCandidate] = []
    for kind, text in (
        (NoteKind.GENERAL, row.general_note),
        (NoteKind.MEDICAL, row.medical_note),
        (NoteKind.SECURITY, row.security_note),
    ):
        if text is None:
            continue
        note = Note(kind=kind, text=text, created_at=lookups.started_at)
        notes.append(CandidateEntity(note, register=False))
    return notes


def _unit_person(unit: tuple[AnyCandidate, ...]) -> CandidateEntity[Person] | None:
    for candidate in unit:
        if isinstance(candidate.entity, Person):
            return cast(CandidateEntity[Person], candidate)
    return None


def _is_visitor_unit(unit: tuple[AnyCandidate, ...]) -> bool:
    return any(
        isinstance(candidate.entity, Family) and candidate.entity.is_visitor_family
        for candidate in unit
    )


def _visitor_relationships(
    visitor: CandidateEntity[Person],
    member: CandidateEntity[Person],
    today: date,
) -> list[tuple[AnyCandidate, tuple[RelationshipEdge, ...]]]:
    """Known relationships between a visitor and a member of the family they visited."""

    roles = [
        (visitor, member, RelationshipRole.INVITED_BY),
        (member, visitor, RelationshipRole.INVITED),
    ]
    visitor_age = visitor.entity.age_on(today)
    member_age = member.entity.age_on(today)
    if (
        visitor_age is not None
        and member_age is not None
        and visitor_age < ADULT_AGE
        and member_age > CHECK_IN_GUARDIAN_MIN_AGE
    ):
        roles.append((visitor, member, RelationshipRole.ALLOW_CHECK_IN_BY))
        roles.append((member, visitor, RelationshipRole.CAN_CHECK_IN))

    relationships: list[tuple[AnyCandidate, tuple[RelationshipEdge, ...]]] = []
    for owner, related, role in roles:
        relationship = CandidateEntity(KnownRelationship(role=role), register=False)
        edges = (
            *link(relationship, "owner_person_id", owner),
            *link(relationship, "related_person_id", related),
        )
        relationships.append((relationship, edges))
    return relationships


def _currency(type_name: str | None) -> CurrencyType:
    if type_name is None:
        return CurrencyType.UNKNOWN
    return _CURRENCY_BY_TYPE.get(type_name.strip().casefold(), CurrencyType.NON_CASH)


def _resolve_account(
    row: FundFields, lookups: Lookups, *, with_gl_codes: bool
) -> tuple[EntityRef | None, list[AnyCandidate], list[RelationshipEdge]]:
    """Return the account a row credits, with any accounts it has to create.

    A sub-fund that starts with a campus name or short code is renamed after
    the campus and assigned to it. Sub-fund accounts are named
    ``"<sub-fund> <fund>"`` and hang under the fund's account.
    """

    fund = _truncate(row.fund_name)
    if fund is None:
        return None, [], []
    candidates: list[AnyCandidate] = []
    edges: list[RelationshipEdge] = []

    parent_ref = lookups.resolve(Category.ACCOUNT, fund)
    if parent_ref is None:
        parent = CandidateEntity(
            FinancialAccount(
                external_key=fund,
                name=fund,
                public_name=fund,
                gl_code=_truncate(row.fund_gl_account) if with_gl_codes else None,
                is_active=_flag(row.fund_is_active, default=True),
                created_by_id=lookups.actor_id,
            )
        )
        candidates.append(parent)
        parent_ref = parent
    if row.sub_fund_name is None:
        return parent_ref, candidates, edges

    sub_fund = row.sub_fund_name
    campus = lookups.references.campus_by_prefix(sub_fund)
    if campus is not None:
        sub_fund = campus.name
    name = f"{sub_fund} {row.fund_name}"[:NAME_LIMIT].strip()
    key = f"{fund}/{name}"
    child_ref = lookups.resolve(Category.ACCOUNT, key)
    if child_ref is None:
        child = CandidateEntity(
            FinancialAccount(
                external_key=key,
                name=name,
                public_name=name,
                gl_code=_truncate(row.sub_fund_gl_account) if with_gl_codes else None,
                is_active=_flag(row.sub_fund_is_active, default=True),
                campus_id=campus.id if campus is not None else None,
                created_by_id=lookups.actor_id,
            )
        )
        candidates.append(child)
        edges.extend(link(child, "parent_account_id", parent_ref))
        child_ref = child
    return child_ref, candidates, edges


def pledge_frequency(value: str | None) -> PledgeFrequency | None:
    """Map a frequency name, or the start of one, to a ``PledgeFrequency``."""

    if value is None:
        return None
    lowered = value.strip().casefold()
    if not lowered:
        return None
    if lowered in _ONE_TIME_FREQUENCIES:
        return PledgeFrequency.ONE_TIME
    return next((f for f in PledgeFrequency if f.value.startswith(lowered)), None)


def _attribute_values(row: IndividualRow) -> list[tuple[str, str]]:
    """``(attribute name, value)`` pairs of a row, one per attribute key."""

    pairs: list[tuple[str, str]] = []
    if row.school is not None:
        pairs.append(("School", row.school))
    for name, value in row.custom_columns.items():
        parsed = parse_date(value)
        pairs.append((name.strip(), parsed.isoformat() if parsed is not None else value))
    seen: set[str] = set()
    unique: list[tuple[str, str]] = []
    for name, value in pairs:
        key = attribute_key(name)
        if key and key not in seen:
            seen.add(key)
            unique.append((name, value))
    return unique


def attribute_key(name: str) -> str:
    return "".join(name.split())


def _resolve_attribute(
    name: str, lookups: Lookups
) -> tuple[EntityRef | None, AnyCandidate | None]:
    key = attribute_key(name)
    existing = lookups.resolve(Category.ATTRIBUTE, key)
    if existing is not None:
        return existing, None
    log.info("Creating person attribute %r", key)
    attribute = CandidateEntity(
        Attribute(
            external_key=key,
            name=name,
            description=f"{name} created by import",
            created_by_id=lookups.actor_id,
        )
    )
    return attribute, attribute
