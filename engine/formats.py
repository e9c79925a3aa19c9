"""Baseline ``format`` assertions and regular expression handling.

Unknown formats always pass. Each checker receives a string instance.
"""

from __future__ import annotations

import re
from datetime import datetime
from functools import lru_cache
from typing import Callable, Optional
from urllib.parse import urlparse


@lru_cache(maxsize=1024)
def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a schema regular expression; raises ``re.error`` when invalid."""
    return re.compile(pattern)


def is_valid_regex(pattern: str) -> bool:
    try:
        compile_pattern(pattern)
        return True
    except re.error:
        return False


_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_TIME_RE = re.compile(r"^(\d{2}):(\d{2}):(\d{2})(\.\d+)?([Zz]|[+-]\d{2}:\d{2})?$")
_DATE_TIME_RE = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})[Tt](\d{2}):(\d{2}):(\d{2})"
    r"(\.\d+)?([Zz]|[+-]\d{2}:\d{2})$"
)
_DURATION_RE = re.compile(
    r"^P(?:(\d+)Y)?(?:(\d+)M)?(?:(\d+)D)?"
    r"(?:T(?:(\d+)H)?(?:(\d+)M)?(?:(\d+(?:\.\d+)?)S)?)?$"
    r"|^P(\d+)W$"
)
_HOST_LABEL_RE = re.compile(r"^[a-zA-Z0-9]([a-zA-Z0-9-]*[a-zA-Z0-9])?$")
_IPV4_PART_RE = re.compile(r"^\d{1,3}$")
_IPV6_RE = re.compile(
    r"^(?:(?:[0-9a-fA-F]{1,4}:){7}[0-9a-fA-F]{1,4}"
    r"|(?:[0-9a-fA-F]{1,4}:){1,7}:"
    r"|(?:[0-9a-fA-F]{1,4}:){1,6}:[0-9a-fA-F]{1,4}"
    r"|(?:[0-9a-fA-F]{1,4}:){1,5}(?::[0-9a-fA-F]{1,4}){1,2}"
    r"|(?:[0-9a-fA-F]{1,4}:){1,4}(?::[0-9a-fA-F]{1,4}){1,3}"
    r"|(?:[0-9a-fA-F]{1,4}:){1,3}(?::[0-9a-fA-F]{1,4}){1,4}"
    r"|(?:[0-9a-fA-F]{1,4}:){1,2}(?::[0-9a-fA-F]{1,4}){1,5}"
    r"|[0-9a-fA-F]{1,4}:(?::[0-9a-fA-F]{1,4}){1,6}"
    r"|:(?:(?::[0-9a-fA-F]{1,4}){1,7}|:)"
    r"|::(?:ffff(?::0{1,4})?:)?(?:(?:25[0-5]|(?:2[0-4]|1?[0-9])?[0-9])\.){3}"
    r"(?:25[0-5]|(?:2[0-4]|1?[0-9])?[0-9])"
    r"|(?:[0-9a-fA-F]{1,4}:){1,4}:(?:(?:25[0-5]|(?:2[0-4]|1?[0-9])?[0-9])\.){3}"
    r"(?:25[0-5]|(?:2[0-4]|1?[0-9])?[0-9]))$"
)
_UUID_RE = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)
_URI_TEMPLATE_VAR_RE = re.compile(
    r"\{[+#./;?&]?[a-zA-Z0-9_]+"
    r"(?::[1-9][0-9]*|\*)?"
    r"(?:,[a-zA-Z0-9_]+(?::[1-9][0-9]*|\*)?)*\}"
)
_RELATIVE_POINTER_RE = re.compile(r"^(0|[1-9][0-9]*)(#|/.*)?\Z")
_BAD_POINTER_ESCAPE_RE = re.compile(r"~(?![01])")


def _is_date(value: str) -> bool:
    m = _DATE_RE.match(value)
    if not m:
        return False
    try:
        datetime(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    except ValueError:
        return False
    return True


def _is_time(value: str) -> bool:
    m = _TIME_RE.match(value)
    if not m:
        return False
    h, mn, sec = int(m.group(1)), int(m.group(2)), int(m.group(3))
    return h <= 23 and mn <= 59 and sec <= 60


def _is_date_time(value: str) -> bool:
    m = _DATE_TIME_RE.match(value)
    if not m:
        return False
    date_part = f"{m.group(1)}-{m.group(2)}-{m.group(3)}"
    h, mn, sec = int(m.group(4)), int(m.group(5)), int(m.group(6))
    return _is_date(date_part) and h <= 23 and mn <= 59 and sec <= 60


def _is_duration(value: str) -> bool:
    if value in ("P", "PT") or value.endswith("T"):
        return False
    return bool(_DURATION_RE.match(value))


def _is_email(value: str) -> bool:
    return bool(_EMAIL_RE.match(value))


def _is_hostname(value: str) -> bool:
    if not value or len(value) > 253:
        return False
    return all(
        0 < len(label) <= 63 and _HOST_LABEL_RE.match(label)
        for label in value.split(".")
    )


def _is_idn_hostname(value: str) -> bool:
    if not value or len(value) > 253:
        return False
    return all(
        0 < len(label) <= 63 and not label.startswith("-") and not label.endswith("-")
        for label in value.split(".")
    )


def _is_ipv4(value: str) -> bool:
    parts = value.split(".")
    if len(parts) != 4:
        return False
    for part in parts:
        if not _IPV4_PART_RE.match(part):
            return False
        if int(part) > 255:
            return False
        if len(part) > 1 and part.startswith("0"):
            return False
    return True


def _is_ipv6(value: str) -> bool:
    return bool(_IPV6_RE.match(value))


def _is_uri(value: str) -> bool:
    if any(c.isspace() for c in value):
        return False
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return bool(parsed.scheme)


def _is_uri_reference(value: str) -> bool:
    if any(c.isspace() for c in value):
        return False
    try:
        urlparse(value)
    except ValueError:
        return False
    return True


def _is_uri_template(value: str) -> bool:
    if re.search(r"\{[^}]*\{|\}[^{]*\}", value):
        return False
    return not re.search(r"[{}]", _URI_TEMPLATE_VAR_RE.sub("", value))


def _is_uuid(value: str) -> bool:
    return bool(_UUID_RE.match(value))


def _is_json_pointer(value: str) -> bool:
    if value == "":
        return True
    if not value.startswith("/"):
        return False
    return not _BAD_POINTER_ESCAPE_RE.search(value)


def _is_relative_json_pointer(value: str) -> bool:
    m = _RELATIVE_POINTER_RE.match(value)
    if not m:
        return False
    suffix = m.group(2) or ""
    if suffix.startswith("/"):
        return not _BAD_POINTER_ESCAPE_RE.search(suffix)
    return True


FORMAT_CHECKERS: dict[str, Callable[[str], bool]] = {
    "date": _is_date,
    "time": _is_time,
    "date-time": _is_date_time,
    "duration": _is_duration,
    "email": _is_email,
    "idn-email": _is_email,
    "hostname": _is_hostname,
    "idn-hostname": _is_idn_hostname,
    "ipv4": _is_ipv4,
    "ipv6": _is_ipv6,
    "uri": _is_uri,
    "uri-reference": _is_uri_reference,
    "iri": _is_uri,
    "iri-reference": _is_uri_reference,
    "uri-template": _is_uri_template,
    "uuid": _is_uuid,
    "json-pointer": _is_json_pointer,
    "relative-json-pointer": _is_relative_json_pointer,
    "regex": is_valid_regex,
}


def get_format_checker(fmt: str) -> Optional[Callable[[str], bool]]:
    return FORMAT_CHECKERS.get(fmt)

