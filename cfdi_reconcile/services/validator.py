from __future__ import annotations

from collections.abc import Callable
from uuid import UUID

from ..models.record import CfdiRecord

"""Structural record validation.

Only the two identifiers are required. Rules are small pure functions
returning a failure reason (or None), applied in ``RULES`` order.
"""

__all__ = [
    "RULES",
    "validate_record",
]

NIL_UUID = UUID(int=0)

Rule = Callable[[CfdiRecord], "str | None"]


def _uuid_present(record: CfdiRecord) -> str | None:
    if record.uuid is None or record.uuid == NIL_UUID:
        return "uuid is empty"
    return None


def _cfdi_id_present(record: CfdiRecord) -> str | None:
    if not record.cfdi_id:
        return "cfdiId is empty"
    return None


RULES: tuple[Rule, ...] = (
    _uuid_present,
    _cfdi_id_present,
)


def validate_record(record: CfdiRecord, rules: tuple[Rule, ...] = RULES) -> tuple[bool, str]:
    """Apply ``rules`` in order.

    Returns:
        ``(True, "")`` when every rule passes, otherwise ``(False, reason)`` of
        the first failing rule.
    """
    for rule in rules:
        reason = rule(record)
        if reason is not None:
            return False, reason
    return True, ""
