"""
Request payloads for the Evoliz API.

The provider's JSON schemas are treated as an external contract: these
dataclasses only cover the fields this library sends, and each one
serialises itself with ``to_api_dict()``, leaving out optional values
that were not set.  Anywhere a dataclass is accepted, a plain mapping
in the provider's wire format is accepted as well.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union


class ClientType(str, Enum):
    """Client categories accepted by the provider."""

    PARTICULIER = "Particulier"
    PROFESSIONNEL = "Professionnel"
    ADMINISTRATION_PUBLIQUE = "Administration publique"


class PayTerm(IntEnum):
    """Payment term identifiers (``paytermid``)."""

    WHEN_RECEIVED = 1
    END_OF_MONTH = 2
    DAYS_15 = 3
    DAYS_20 = 4
    DAYS_30 = 5
    DAYS_45 = 6
    DAYS_60 = 7
    DAYS_90 = 8
    DAYS_30_END_OF_MONTH = 9
    DAYS_45_END_OF_MONTH = 10
    DAYS_60_END_OF_MONTH = 11
    DAYS_90_END_OF_MONTH = 12
    DAYS_30_END_OF_MONTH_ON_10TH = 13
    DAYS_45_END_OF_MONTH_ON_1ST = 14
    # requires paydelay, endmonth and payday
    OTHER = 16
    WHEN_ORDERED = 17
    # requires duedate
    GIVEN_DATE = 18


def _compact(values: Mapping[str, Any]) -> Dict[str, Any]:
    """Drop ``None`` values so the provider applies its own defaults."""
    result: Dict[str, Any] = {}
    for key, value in values.items():
        if value is None:
            continue
        if isinstance(value, Enum):
            value = value.value
        result[key] = value
    return result


def to_payload(value: Any) -> Any:
    """Serialise a dataclass with ``to_api_dict`` or pass a mapping through."""
    if hasattr(value, "to_api_dict"):
        return value.to_api_dict()
    if isinstance(value, Mapping):
        return dict(value)
    if isinstance(value, (list, tuple)):
        return [to_payload(item) for item in value]
    return value


@dataclass(frozen=True)
class Address:
    """Postal address of a client."""

    postcode: str
    town: str
    iso2: str = "FR"
    addr: Optional[str] = None
    addr2: Optional[str] = None

    def to_api_dict(self) -> Dict[str, Any]:
        return _compact(
            {
                "addr": self.addr,
                "addr2": self.addr2,
                "postcode": self.postcode,
                "town": self.town,
                "iso2": self.iso2.upper(),
            }
        )


@dataclass(frozen=True)
class ClientRequest:
    """Body of ``POST clients``.

    Only ``name``, ``type`` and ``address`` are required by the provider;
    ``extra`` is merged last and can carry any other documented field
    (``legalform``, ``bank_information``, ``term`` ...).
    """

    name: str
    address: Union[Address, Mapping[str, Any]]
    type: ClientType = ClientType.PARTICULIER
    code: Optional[str] = None
    phone: Optional[str] = None
    mobile: Optional[str] = None
    website: Optional[str] = None
    vat_number: Optional[str] = None
    business_number: Optional[str] = None
    comment: Optional[str] = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    def to_api_dict(self) -> Dict[str, Any]:
        payload = _compact(
            {
                "name": self.name,
                "type": ClientType(self.type),
                "code": self.code,
                "address": to_payload(self.address),
                "phone": self.phone,
                "mobile": self.mobile,
                "website": self.website,
                "vat_number": self.vat_number,
                "business_number": self.business_number,
                "comment": self.comment,
            }
        )
        payload.update(self.extra)
        return payload


@dataclass(frozen=True)
class InvoiceItem:
    """One invoice line.

    Without ``articleid`` the provider requires ``designation``,
    ``quantity`` and ``unit_price_vat_exclude``.  With ``articleid`` the
    line is built from the article and the other fields act as overrides.
    """

    designation: Optional[str] = None
    quantity: Optional[float] = None
    unit_price_vat_exclude: Optional[float] = None
    articleid: Optional[int] = None
    reference: Optional[str] = None
    unit: Optional[str] = None
    vat_rate: Optional[float] = None
    rebate: Optional[Union[float, str]] = None
    sale_classificationid: Optional[int] = None
    purchase_unit_price_vat_exclude: Optional[float] = None

    def __post_init__(self) -> None:
        if self.articleid is None:
            missing = [
                name
                for name in ("designation", "quantity", "unit_price_vat_exclude")
                if getattr(self, name) is None
            ]
            if missing:
                raise ValueError(
                    "invoice items without articleid require: %s" % ", ".join(missing)
                )

    def to_api_dict(self) -> Dict[str, Any]:
        return _compact(
            {
                "articleid": self.articleid,
                "reference": self.reference,
                "designation": self.designation,
                "quantity": self.quantity,
                "unit": self.unit,
                "unit_price_vat_exclude": self.unit_price_vat_exclude,
                "vat_rate": self.vat_rate,
                "rebate": self.rebate,
                "sale_classificationid": self.sale_classificationid,
                "purchase_unit_price_vat_exclude": self.purchase_unit_price_vat_exclude,
            }
        )


@dataclass(frozen=True)
class InvoiceTerm:
    """Payment conditions of an invoice (``term`` object)."""

    paytermid: Union[PayTerm, int]
    paytypeid: Optional[int] = None
    penalty: Optional[float] = None
    nopenalty: Optional[bool] = None
    recovery_indemnity: Optional[bool] = None
    discount_term: Optional[float] = None
    no_discount_term: Optional[bool] = None
    duedate: Optional[str] = None
    paydelay: Optional[int] = None
    endmonth: Optional[bool] = None
    payday: Optional[int] = None

    def to_api_dict(self) -> Dict[str, Any]:
        return _compact(
            {
                "paytermid": int(self.paytermid),
                "paytypeid": self.paytypeid,
                "penalty": self.penalty,
                "nopenalty": self.nopenalty,
                "recovery_indemnity": self.recovery_indemnity,
                "discount_term": self.discount_term,
                "no_discount_term": self.no_discount_term,
                "duedate": self.duedate,
                "paydelay": self.paydelay,
                "endmonth": self.endmonth,
                "payday": self.payday,
            }
        )


@dataclass(frozen=True)
class EmailOptions:
    """Optional settings of ``POST invoices/{id}/send``."""

    copy: Optional[bool] = None
    subject: Optional[str] = None
    body: Optional[str] = None
    signature: Optional[bool] = None
    links: Optional[bool] = None

    def to_api_dict(self) -> Dict[str, Any]:
        return _compact(
            {
                "copy": self.copy,
                "subject": self.subject,
                "body": self.body,
                "signature": self.signature,
                "links": self.links,
            }
        )


@dataclass(frozen=True)
class InvoiceRegistrationRequest:
    """Everything needed to register, pay, save and email one invoice.

    ``external_document_number`` must be unique on the provider side; it
    also keys the registration checkpoints.
    """

    external_document_number: str
    client_id: int
    client_email: str
    label: str
    term: Union[InvoiceTerm, Mapping[str, Any]]
    items: Sequence[Union[InvoiceItem, Mapping[str, Any]]]

    def __post_init__(self) -> None:
        if not self.external_document_number:
            raise ValueError("external_document_number must be provided")
        if not self.items:
            raise ValueError("at least one invoice item is required")

    def items_payload(self) -> List[Dict[str, Any]]:
        return [to_payload(item) for item in self.items]


@dataclass(frozen=True)
class PaymentDetails:
    """Payment recorded against a freshly created invoice.

    ``label`` falls back to the registration request's label.
    """

    amount: float
    paytype_id: int
    label: Optional[str] = None
