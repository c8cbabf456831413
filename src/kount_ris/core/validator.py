"""Client-side RIS request validation.

Rules are declared in FIELD_RULES, keyed by RIS field name (indexed fields
such as PROD_TYPE[0] or UDF[label] are keyed by their base name). Validation
is total: every outcome is reported in the returned list, nothing is raised.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from .models import ALL_MODES, INQUIRY_MODES, UPDATE_MODES, RequestMode, ValidationError

logger = logging.getLogger(__name__)

_INDEXED_FIELD = re.compile(r"^(?P<base>[A-Z0-9_]+)\[(?P<index>[^\]]*)\]$")
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


class FieldRule(BaseModel):
    """Constraints for one RIS field."""

    model_config = ConfigDict(frozen=True)

    required_in: frozenset[RequestMode] = frozenset()
    allowed_in: frozenset[RequestMode] = ALL_MODES
    max_length: Optional[int] = None
    pattern: Optional[str] = None
    choices: Optional[frozenset[str]] = None
    indexed: bool = False


PAYMENT_TYPES = frozenset({
    "APAY", "BLML", "BPAY", "CARD", "CARTE_BLEUE", "CHEK", "ELV", "GDMP",
    "GIFT", "GOOG", "INTERAC", "NONE", "PYPL", "SKRILL", "SOFORT", "TOKEN",
})

# Catalog order is the order errors are reported in.
FIELD_RULES: dict[str, FieldRule] = {
    "VERS": FieldRule(required_in=ALL_MODES, pattern=r"\d{4}"),
    "MODE": FieldRule(required_in=ALL_MODES, choices=frozenset(m.value for m in RequestMode)),
    "MERC": FieldRule(required_in=ALL_MODES, pattern=r"\d{6}"),
    "SESS": FieldRule(required_in=ALL_MODES, max_length=32, pattern=r"[\w-]+"),
    "SITE": FieldRule(required_in=INQUIRY_MODES, allowed_in=INQUIRY_MODES, max_length=8),
    "ORDR": FieldRule(max_length=32),
    "CURR": FieldRule(required_in=INQUIRY_MODES, allowed_in=INQUIRY_MODES, pattern=r"[A-Z]{3}"),
    "TOTL": FieldRule(required_in=INQUIRY_MODES, allowed_in=INQUIRY_MODES, pattern=r"\d{1,15}"),
    "PTYP": FieldRule(required_in=INQUIRY_MODES, choices=PAYMENT_TYPES),
    "PTOK": FieldRule(max_length=64),
    "LAST4": FieldRule(pattern=r"\d{4}"),
    "IPAD": FieldRule(
        required_in=frozenset({RequestMode.INQUIRY}),
        allowed_in=INQUIRY_MODES,
        max_length=16,
        pattern=r"(\d{1,3}\.){3}\d{1,3}",
    ),
    "MACK": FieldRule(required_in=INQUIRY_MODES, choices=frozenset({"Y", "N"})),
    "AUTH": FieldRule(choices=frozenset({"A", "D"})),
    "EMAL": FieldRule(max_length=64, pattern=r"[^@\s]+@[^@\s]+\.[^@\s]+"),
    "NAME": FieldRule(max_length=64),
    "UNIQ": FieldRule(max_length=32),
    "EPOC": FieldRule(pattern=r"\d+"),
    "ANID": FieldRule(
        required_in=frozenset({RequestMode.PHONE_ORDER}),
        allowed_in=frozenset({RequestMode.PHONE_ORDER}),
        max_length=64,
    ),
    "TRAN": FieldRule(required_in=UPDATE_MODES, allowed_in=UPDATE_MODES, max_length=12, pattern=r"[A-Z0-9]+"),
    "RFCB": FieldRule(allowed_in=UPDATE_MODES, choices=frozenset({"R", "C"})),
    "PROD_TYPE": FieldRule(allowed_in=INQUIRY_MODES, max_length=255, indexed=True),
    "PROD_ITEM": FieldRule(allowed_in=INQUIRY_MODES, max_length=255, indexed=True),
    "PROD_DESC": FieldRule(allowed_in=INQUIRY_MODES, max_length=255, indexed=True),
    "PROD_QUANT": FieldRule(allowed_in=INQUIRY_MODES, pattern=r"\d{1,10}", indexed=True),
    "PROD_PRICE": FieldRule(allowed_in=INQUIRY_MODES, pattern=r"\d{1,15}", indexed=True),
    "UDF": FieldRule(max_length=255, indexed=True),
}

# Every cart index present must carry these fields.
CART_FIELDS = ("PROD_TYPE", "PROD_ITEM", "PROD_QUANT", "PROD_PRICE")
UDF_LABEL_MAX_LENGTH = 28


def _split_indexed(name: str) -> tuple[str, Optional[str]]:
    match = _INDEXED_FIELD.match(name) if isinstance(name, str) else None
    if match:
        return match.group("base"), match.group("index")
    return name, None


class RisValidator:
    """Applies a field rule catalog to a RIS parameter mapping."""

    def __init__(self, rules: Optional[Mapping[str, FieldRule]] = None):
        self.rules = dict(FIELD_RULES if rules is None else rules)

    def validate(self, params: Mapping[str, Any], mode: RequestMode) -> list[ValidationError]:
        """Check params against every rule for the given mode.

        Returns an empty list if and only if all rules hold. Each broken rule
        contributes exactly one ValidationError.
        """
        errors: list[ValidationError] = []
        try:
            mode = RequestMode(mode)
        except ValueError:
            errors.append(ValidationError(field="MODE", message=f"unknown request mode {mode!r}"))
            return errors

        indexed_present: dict[str, list[str]] = {}
        for name in params:
            base, index = _split_indexed(name)
            if index is not None:
                indexed_present.setdefault(base, []).append(name)

        for base, rule in self.rules.items():
            if rule.indexed:
                for name in indexed_present.get(base, []):
                    self._check_value(errors, name, params[name], rule, mode)
                continue
            if base not in params:
                if mode in rule.required_in:
                    errors.append(ValidationError(field=base, message=f"required in mode {mode.value}"))
                continue
            self._check_value(errors, base, params[base], rule, mode)

        self._check_udf_labels(errors, indexed_present.get("UDF", []))
        self._check_cart(errors, params, indexed_present, mode)
        self._check_exclusive(errors, params)
        self._check_declared_mode(errors, params, mode)

        if errors:
            logger.debug("Request failed %d validation rule(s) in mode %s", len(errors), mode.value)
        return errors

    def _check_value(
        self,
        errors: list[ValidationError],
        name: str,
        value: Any,
        rule: FieldRule,
        mode: RequestMode,
    ) -> None:
        if mode not in rule.allowed_in:
            errors.append(ValidationError(field=name, message=f"not permitted in mode {mode.value}"))
            return
        if not isinstance(value, str):
            errors.append(ValidationError(field=name, message=f"value must be a string, got {type(value).__name__}"))
            return
        if _CONTROL_CHARS.search(value):
            errors.append(ValidationError(field=name, message="value contains control characters"))
        if rule.max_length is not None and len(value) > rule.max_length:
            errors.append(ValidationError(
                field=name,
                message=f"value exceeds maximum length of {rule.max_length} ({len(value)})",
            ))
        if rule.choices is not None and value not in rule.choices:
            errors.append(ValidationError(
                field=name,
                message=f"value {value!r} is not one of {', '.join(sorted(rule.choices))}",
            ))
        if rule.pattern is not None and not re.fullmatch(rule.pattern, value):
            errors.append(ValidationError(field=name, message=f"value {value!r} has an invalid format"))

    def _check_udf_labels(self, errors: list[ValidationError], names: list[str]) -> None:
        for name in names:
            _, label = _split_indexed(name)
            if not label or len(label) > UDF_LABEL_MAX_LENGTH:
                errors.append(ValidationError(
                    field=name,
                    message=f"label must be 1 to {UDF_LABEL_MAX_LENGTH} characters",
                ))

    def _check_cart(
        self,
        errors: list[ValidationError],
        params: Mapping[str, Any],
        indexed_present: dict[str, list[str]],
        mode: RequestMode,
    ) -> None:
        if mode not in INQUIRY_MODES:
            return
        indexes: list[str] = []
        for base in ("PROD_TYPE", "PROD_ITEM", "PROD_DESC", "PROD_QUANT", "PROD_PRICE"):
            for name in indexed_present.get(base, []):
                _, index = _split_indexed(name)
                if index not in indexes:
                    indexes.append(index)
        if not indexes:
            errors.append(ValidationError(field="PROD_TYPE", message="cart must contain at least one item"))
            return
        for index in indexes:
            missing = [base for base in CART_FIELDS if f"{base}[{index}]" not in params]
            if missing:
                errors.append(ValidationError(
                    field=f"PROD_TYPE[{index}]",
                    message=f"cart item {index} is missing {', '.join(missing)}",
                ))

    def _check_exclusive(self, errors: list[ValidationError], params: Mapping[str, Any]) -> None:
        if params.get("PTYP") == "NONE" and "PTOK" in params:
            errors.append(ValidationError(field="PTOK", message="must not be set when PTYP is NONE"))

    def _check_declared_mode(
        self,
        errors: list[ValidationError],
        params: Mapping[str, Any],
        mode: RequestMode,
    ) -> None:
        wire_mode = params.get("MODE")
        if wire_mode is not None and wire_mode != mode.value:
            errors.append(ValidationError(
                field="MODE",
                message=f"value {wire_mode!r} does not match the declared mode {mode.value}",
            ))
