"""RIS response model and key/value reply parser.

RIS answers with one ``KEY=VALUE`` pair per line. Lines are split at the first
``=``; the value is kept verbatim and may itself contain ``=``. Empty lines are
skipped. When a key repeats, the last occurrence wins.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType
from typing import Optional

from .errors import RisResponseError
from .models import Decision

logger = logging.getLogger(__name__)

_MAX_INDEX_DIGITS = 9


class Response(Mapping[str, str]):
    """Read-only view of a parsed RIS reply.

    Raw values are available through the mapping interface; the properties
    below decode well-known keys and return None when a key is absent or its
    value cannot be decoded.
    """

    def __init__(self, fields: Mapping[str, str]):
        self._fields = MappingProxyType(dict(fields))

    def __getitem__(self, key: str) -> str:
        return self._fields[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"Response({dict(self._fields)!r})"

    def to_dict(self) -> dict[str, str]:
        return dict(self._fields)

    def _int(self, key: str) -> Optional[int]:
        value = self._fields.get(key)
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            logger.debug("RIS field %s is not an integer: %r", key, value)
            return None

    def _float(self, key: str) -> Optional[float]:
        value = self._fields.get(key)
        if value is None:
            return None
        try:
            return float(value)
        except ValueError:
            logger.debug("RIS field %s is not a number: %r", key, value)
            return None

    def _indexes(self, count_key: str, item_key: str) -> list[str]:
        """Suffixes ``n`` of the ``<item_key>_<n>`` keys present, below the reported count.

        Only keys that exist are scanned. Suffixes come back in numeric order.
        """
        count = self._int(count_key) or 0
        prefix = f"{item_key}_"
        found = []
        for key in self._fields:
            suffix = key[len(prefix):] if key.startswith(prefix) else ""
            if not (suffix.isascii() and suffix.isdigit()) or len(suffix) > _MAX_INDEX_DIGITS:
                continue
            if int(suffix) < count:
                found.append((int(suffix), suffix))
        return [suffix for _, suffix in sorted(found)]

    def _indexed(self, count_key: str, item_key: str) -> list[str]:
        return [self._fields[f"{item_key}_{n}"] for n in self._indexes(count_key, item_key)]

    @property
    def version(self) -> Optional[str]:
        return self._fields.get("VERS")

    @property
    def mode(self) -> Optional[str]:
        return self._fields.get("MODE")

    @property
    def merchant_id(self) -> Optional[str]:
        return self._fields.get("MERC")

    @property
    def session_id(self) -> Optional[str]:
        return self._fields.get("SESS")

    @property
    def order_number(self) -> Optional[str]:
        return self._fields.get("ORDR")

    @property
    def transaction_id(self) -> Optional[str]:
        return self._fields.get("TRAN")

    @property
    def decision(self) -> Optional[Decision]:
        """RIS auto-decision (AUTO): approve, decline, review or escalate."""
        value = self._fields.get("AUTO")
        if value is None:
            return None
        try:
            return Decision(value)
        except ValueError:
            logger.debug("Unknown RIS decision code %r", value)
            return None

    @property
    def score(self) -> Optional[int]:
        return self._int("SCOR")

    @property
    def omniscore(self) -> Optional[float]:
        return self._float("OMNISCORE")

    @property
    def geox(self) -> Optional[str]:
        return self._fields.get("GEOX")

    @property
    def card_brand(self) -> Optional[str]:
        return self._fields.get("BRND")

    @property
    def velocity(self) -> Optional[int]:
        return self._int("VELO")

    @property
    def max_velocity(self) -> Optional[int]:
        return self._int("VMAX")

    @property
    def network(self) -> Optional[str]:
        return self._fields.get("NETW")

    @property
    def kaptcha(self) -> Optional[str]:
        return self._fields.get("KAPT")

    @property
    def reason_code(self) -> Optional[str]:
        return self._fields.get("REAS")

    @property
    def error_code(self) -> Optional[str]:
        return self._fields.get("ERRO")

    @property
    def errors(self) -> list[str]:
        return self._indexed("ERROR_COUNT", "ERROR")

    @property
    def warnings(self) -> list[str]:
        return self._indexed("WARNING_COUNT", "WARNING")

    @property
    def has_errors(self) -> bool:
        return bool(self.errors) or "ERRO" in self._fields

    @property
    def rules_triggered(self) -> dict[str, str]:
        """Map of triggered rule id to rule description."""
        return {
            self._fields[f"RULE_ID_{n}"]: self._fields.get(f"RULE_DESCRIPTION_{n}", "")
            for n in self._indexes("RULES_TRIGGERED", "RULE_ID")
        }

    @property
    def counters_triggered(self) -> dict[str, int]:
        """Map of triggered counter name to its value."""
        counters = {}
        for n in self._indexes("COUNTERS_TRIGGERED", "COUNTER_NAME"):
            value = self._int(f"COUNTER_VALUE_{n}")
            if value is not None:
                counters[self._fields[f"COUNTER_NAME_{n}"]] = value
        return counters


def parse_response(stream: Iterable[str]) -> Response:
    """Parse a RIS reply stream into a Response.

    Args:
        stream: Any iterable of text lines, e.g. an open text file, an
            io.StringIO or a ResponseStream from a transport.

    Raises:
        RisResponseError: on a line without ``=`` or when reading the stream
            fails. Nothing is returned in that case.
    """
    fields: dict[str, str] = {}
    line_number = 0
    try:
        for raw in stream:
            line_number += 1
            line = raw.rstrip("\r\n")
            if not line:
                continue
            key, sep, value = line.partition("=")
            if not sep:
                raise RisResponseError(
                    f"Malformed RIS response line {line_number}: {line!r}",
                    line_number=line_number,
                    line=line,
                )
            if key in fields:
                logger.debug("Duplicate RIS response key %s on line %d, keeping last value", key, line_number)
            fields[key] = value
    except (OSError, UnicodeDecodeError) as exc:
        raise RisResponseError(
            f"Unable to read RIS response after line {line_number}: {exc}",
            line_number=line_number,
            cause=exc,
        ) from exc

    logger.debug("Parsed RIS response with %d field(s)", len(fields))
    return Response(fields)
