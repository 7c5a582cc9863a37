"""Pydantic models describing the delimited import file layouts."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from quarry.domain.pipeline import normalize_external_key, parse_date


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def _to_key(value: object) -> str | None:
    return normalize_external_key(_blank_to_none(value))


def _to_date(value: object) -> object:
    value = _blank_to_none(value)
    if isinstance(value, str):
        parsed = parse_date(value)
        if parsed is None:
            raise ValueError(f"cannot read {value!r} as a date")
        return parsed
    return value


def _to_amount(value: object) -> object:
    value = _blank_to_none(value)
    if isinstance(value, str):
        return value.replace(",", "").lstrip("$")
    return value


class CsvRowModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)


class PersonFields(CsvRowModel):
    """Columns shared by the family and individual layouts."""

    family_id: str | None = Field(default=None, alias="FamilyId")
    family_name: str | None = Field(default=None, alias="FamilyName")
    created_date: date | None = Field(default=None, alias="CreatedDate")

    _normalize_key = field_validator("family_id", mode="before")(_to_key)
    _normalize_text = field_validator("family_name", mode="before")(_blank_to_none)
    _normalize_date = field_validator("created_date", mode="before")(_to_date)


class FamilyRow(PersonFields):
    campus: str | None = Field(default=None, alias="Campus")
    address: str | None = Field(default=None, alias="Address")
    address2: str | None = Field(default=None, alias="Address2")
    city: str | None = Field(default=None, alias="City")
    state: str | None = Field(default=None, alias="State")
    zip: str | None = Field(default=None, alias="Zip")
    country: str | None = Field(default=None, alias="Country")
    secondary_address: str | None = Field(default=None, alias="SecondaryAddress")
    secondary_address2: str | None = Field(default=None, alias="SecondaryAddress2")
    secondary_city: str | None = Field(default=None, alias="SecondaryCity")
    secondary_state: str | None = Field(default=None, alias="SecondaryState")
    secondary_zip: str | None = Field(default=None, alias="SecondaryZip")
    secondary_country: str | None = Field(default=None, alias="SecondaryCountry")

    _normalize_fields = field_validator(
        "campus",
        "address",
        "address2",
        "city",
        "state",
        "zip",
        "country",
        "secondary_address",
        "secondary_address2",
        "secondary_city",
        "secondary_state",
        "secondary_zip",
        "secondary_country",
        mode="before",
    )(_blank_to_none)


class IndividualRow(PersonFields):
    """Columns past the standard layout are kept as custom person attributes."""

    model_config = ConfigDict(extra="allow")

    person_id: str | None = Field(default=None, alias="PersonId")
    prefix: str | None = Field(default=None, alias="Prefix")
    first_name: str | None = Field(default=None, alias="FirstName")
    nick_name: str | None = Field(default=None, alias="NickName")
    middle_name: str | None = Field(default=None, alias="MiddleName")
    last_name: str | None = Field(default=None, alias="LastName")
    suffix: str | None = Field(default=None, alias="Suffix")
    family_role: str | None = Field(default=None, alias="FamilyRole")
    marital_status: str | None = Field(default=None, alias="MaritalStatus")
    connection_status: str | None = Field(default=None, alias="ConnectionStatus")
    record_status: str | None = Field(default=None, alias="RecordStatus")
    is_deceased: str | None = Field(default=None, alias="IsDeceased")
    home_phone: str | None = Field(default=None, alias="HomePhone")
    mobile_phone: str | None = Field(default=None, alias="MobilePhone")
    work_phone: str | None = Field(default=None, alias="WorkPhone")
    allow_sms: str | None = Field(default=None, alias="AllowSMS")
    email: str | None = Field(default=None, alias="Email")
    is_email_active: str | None = Field(default=None, alias="IsEmailActive")
    allow_bulk_email: str | None = Field(default=None, alias="AllowBulkEmail")
    gender: str | None = Field(default=None, alias="Gender")
    date_of_birth: date | None = Field(default=None, alias="DateOfBirth")
    school: str | None = Field(default=None, alias="School")
    graduation_date: date | None = Field(default=None, alias="GraduationDate")
    anniversary: date | None = Field(default=None, alias="Anniversary")
    general_note: str | None = Field(default=None, alias="GeneralNote")
    medical_note: str | None = Field(default=None, alias="MedicalNote")
    security_note: str | None = Field(default=None, alias="SecurityNote")

    _normalize_person_key = field_validator("person_id", mode="before")(_to_key)
    _normalize_dates = field_validator(
        "date_of_birth", "graduation_date", "anniversary", mode="before"
    )(_to_date)
    _normalize_fields = field_validator(
        "prefix",
        "first_name",
        "nick_name",
        "middle_name",
        "last_name",
        "suffix",
        "family_role",
        "marital_status",
        "connection_status",
        "record_status",
        "is_deceased",
        "home_phone",
        "mobile_phone",
        "work_phone",
        "allow_sms",
        "email",
        "is_email_active",
        "allow_bulk_email",
        "gender",
        "school",
        "general_note",
        "medical_note",
        "security_note",
        mode="before",
    )(_blank_to_none)

    @property
    def custom_columns(self) -> dict[str, str]:
        """Non-blank values of the columns the standard layout does not name."""

        columns: dict[str, str] = {}
        for name, value in (self.model_extra or {}).items():
            text = _blank_to_none(value)
            if text is not None:
                columns[name] = str(text)
        return columns


class BatchRow(CsvRowModel):
    batch_id: str | None = Field(default=None, alias="BatchID")
    batch_name: str | None = Field(default=None, alias="BatchName")
    batch_date: date | None = Field(default=None, alias="BatchDate")
    batch_amount: Decimal | None = Field(default=None, alias="BatchAmount")

    _normalize_key = field_validator("batch_id", mode="before")(_to_key)
    _normalize_name = field_validator("batch_name", mode="before")(_blank_to_none)
    _normalize_date = field_validator("batch_date", mode="before")(_to_date)
    _normalize_amount = field_validator("batch_amount", mode="before")(_to_amount)


class FundFields(CsvRowModel):
    """Fund columns shared by the contribution and pledge layouts."""

    individual_id: str | None = Field(default=None, alias="IndividualID")
    fund_name: str | None = Field(default=None, alias="FundName")
    sub_fund_name: str | None = Field(default=None, alias="SubFundName")
    fund_gl_account: str | None = Field(default=None, alias="FundGLAccount")
    sub_fund_gl_account: str | None = Field(default=None, alias="SubFundGLAccount")
    fund_is_active: str | None = Field(default=None, alias="FundIsActive")
    sub_fund_is_active: str | None = Field(default=None, alias="SubFundIsActive")

    _normalize_individual = field_validator("individual_id", mode="before")(_to_key)
    _normalize_funds = field_validator(
        "fund_name",
        "sub_fund_name",
        "fund_gl_account",
        "sub_fund_gl_account",
        "fund_is_active",
        "sub_fund_is_active",
        mode="before",
    )(_blank_to_none)


class ContributionRow(FundFields):
    received_date: date | None = Field(default=None, alias="ReceivedDate")
    check_number: str | None = Field(default=None, alias="CheckNumber")
    memo: str | None = Field(default=None, alias="Memo")
    contribution_type_name: str | None = Field(default=None, alias="ContributionTypeName")
    amount: Decimal = Field(alias="Amount")
    stated_value: Decimal | None = Field(default=None, alias="StatedValue")
    contribution_id: str | None = Field(default=None, alias="ContributionID")
    contribution_batch_id: str | None = Field(default=None, alias="ContributionBatchID")

    _normalize_keys = field_validator("contribution_id", "contribution_batch_id", mode="before")(
        _to_key
    )
    _normalize_fields = field_validator(
        "check_number",
        "memo",
        "contribution_type_name",
        mode="before",
    )(_blank_to_none)
    _normalize_date = field_validator("received_date", mode="before")(_to_date)
    _normalize_amounts = field_validator("amount", "stated_value", mode="before")(_to_amount)


class PledgeRow(FundFields):
    pledge_frequency_name: str | None = Field(default=None, alias="PledgeFrequencyName")
    total_pledge: Decimal | None = Field(default=None, alias="TotalPledge")
    start_date: date | None = Field(default=None, alias="StartDate")
    end_date: date | None = Field(default=None, alias="EndDate")
    pledge_id: str | None = Field(default=None, alias="PledgeId")

    _normalize_key = field_validator("pledge_id", mode="before")(_to_key)
    _normalize_frequency = field_validator("pledge_frequency_name", mode="before")(
        _blank_to_none
    )
    _normalize_dates = field_validator("start_date", "end_date", mode="before")(_to_date)
    _normalize_amount = field_validator("total_pledge", mode="before")(_to_amount)


def describe_validation_error(exc: ValidationError) -> str:
    """Flatten a pydantic error into one line naming the offending columns."""

    parts: list[str] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "row"
        parts.append(f"{location}: {error['msg']}")
    return "; ".join(parts)
