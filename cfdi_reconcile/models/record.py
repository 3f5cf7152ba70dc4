from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, StrictBool, StrictStr
from pydantic.alias_generators import to_camel

"""CFDI record model.

One ``CfdiRecord`` is one line item of a fiscal document as exported to JSON.
Payload keys are camelCase (``cfdiId``, ``subTotal``, ``base16Iva``) and map
onto the snake_case attributes through the alias generator.

Decoding rules:
- unknown payload keys are rejected (``extra="forbid"``)
- every field may be missing or null; the validator decides what is required
- string fields do not accept numbers, ``isValid`` does not accept strings
- amounts are ``Decimal``; callers must parse JSON numbers with
  ``parse_float=Decimal`` so no binary float is ever involved
"""

__all__ = [
    "CfdiRecord",
    "RECORD_FIELDS",
    "UUID_FIELDS",
]

Text = StrictStr | None
Amount = Decimal | None


class CfdiRecord(BaseModel):
    """Flat CFDI line-item record (53 fields)."""

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=False,
    )

    # Identifiers
    cfdi_id: Text = None
    uuid: UUID | None = None
    related_cfdi: list[UUID] | None = None

    # Classification
    status: Text = None
    cfdi_relation_type: Text = None
    type: Text = None
    series: Text = None
    reference: Text = None
    emitter_rfc: Text = None
    emitter_company_name: Text = None
    emitter_postal_code: Text = None
    cfdi_usage: Text = None
    receiver_rfc: Text = None
    receiver_company_name: Text = None
    receptor_postal_code: Text = None
    origin: Text = None
    currency: Text = None
    stamped_date: Text = None
    invoice_date: Text = None
    grouping: Text = None
    cancelled: Text = None
    way_of_payment: Text = None
    payment_method: Text = None
    certificate_number: Text = None

    # Concept (line item)
    concept_product_service_key: Text = None
    concept_product_service_key_description: Text = None
    concepts: Text = None
    concept_identification_number: Text = None
    unit: Text = None
    concept_quantity: Amount = None
    concept_amount: Amount = None
    concept_unit_value: Amount = None

    # Document amounts
    iva: Amount = None
    sub_total: Amount = None
    total: Amount = None
    exchange_rate: Amount = None
    discount: Amount = None

    # Taxes
    transferred_iva: Amount = None
    transferred_ieps: Amount = None
    transferred_base: Amount = None
    transferred_tax: Amount = None
    withholding_tax: Amount = None
    withholding_isr: Amount = None
    base0_iva: Amount = None
    base8_iva: Amount = None
    base16_iva: Amount = None
    base_exempt_iva: Amount = None
    base_ieps: Amount = None
    ieps_rate_or_fee: Amount = None
    ieps: Amount = None
    vat_rate_or_fee: Amount = None

    # Provenance
    file_name: Text = None
    is_valid: StrictBool | None = None


RECORD_FIELDS: frozenset[str] = frozenset(CfdiRecord.model_fields)
# Scalar UUID fields; their text form is compared case-insensitively
UUID_FIELDS: frozenset[str] = frozenset({"uuid"})
