"""OData V2/V4 helpers for S/4HANA payloads.

Covers the conversions the proxy needs at its edges: ``/Date(ms)/``
literals, result unwrapping, query option assembly and service-root
derivation for CSRF token keys.
"""

from __future__ import annotations

import re
from datetime import UTC, date, datetime
from typing import Any

SERVICE_PREFIX = "/sap/opu/odata/sap/"

_ODATA_DATE_RE = re.compile(r"/Date\((-?\d+)(?:[+-]\d+)?\)/")


def quote_literal(value: Any) -> str:
    """Render ``value`` as a single-quoted OData string literal."""
    return "'" + str(value).replace("'", "''") + "'"


def to_odata_date(value: str | date | datetime | None) -> str | None:
    """Convert an ISO date/datetime (string or object) to ``/Date(ms)/``.

    Naive values are read as UTC. Returns None for empty or unparseable input.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, date):
        moment = datetime(value.year, value.month, value.day)
    else:
        try:
            moment = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return f"/Date({int(moment.timestamp() * 1000)})/"


def odata_date_to_iso(value: Any) -> str:
    """Convert ``/Date(ms)/`` to ``YYYY-MM-DDTHH:MM:SS.000`` (UTC).

    Returns an empty string for missing, null or unrecognised values.
    """
    if not value or not isinstance(value, str) or "null" in value:
        return ""
    match = _ODATA_DATE_RE.search(value)
    if not match:
        return ""
    moment = datetime.fromtimestamp(int(match.group(1)) / 1000, tz=UTC)
    return moment.strftime("%Y-%m-%dT%H:%M:%S") + ".000"


def unwrap_results(payload: Any) -> Any:
    """Return the record list from a V2 ``d.results`` or V4 ``value`` body.

    Bodies without either wrapper are returned as-is.
    """
    if isinstance(payload, dict):
        inner = payload.get("d")
        if isinstance(inner, dict) and isinstance(inner.get("results"), list):
            return inner["results"]
        if isinstance(payload.get("value"), list):
            return payload["value"]
    return payload


def unwrap_entity(payload: Any) -> Any:
    """Return the single entity from a V2 ``d`` wrapper, else the body."""
    if isinstance(payload, dict) and isinstance(payload.get("d"), dict):
        return payload["d"]
    return payload


def first_result(payload: Any) -> dict[str, Any] | None:
    """Return the first record of a collection body, or None."""
    records = unwrap_results(payload)
    if isinstance(records, list) and records and isinstance(records[0], dict):
        return records[0]
    return None


def build_query(
    *,
    filter_expr: str | None = None,
    top: int | str | None = None,
    skip: int | str | None = None,
    select: str | None = None,
    expand: str | None = None,
) -> dict[str, str]:
    """Assemble OData system query options, skipping empty ones."""
    params: dict[str, str] = {}
    if filter_expr:
        params["$filter"] = filter_expr
    if top not in (None, ""):
        params["$top"] = str(top)
    if skip not in (None, ""):
        params["$skip"] = str(skip)
    if select:
        params["$select"] = select
    if expand:
        params["$expand"] = expand
    return params


def service_root(path: str) -> str:
    """Return ``/sap/opu/odata/sap/<SERVICE>`` for any path inside a service.

    Paths outside the standard gateway prefix are returned without their
    query string and entity key predicate.
    """
    bare = path.split("?", 1)[0]
    if bare.startswith(SERVICE_PREFIX):
        service = bare[len(SERVICE_PREFIX):].split("/", 1)[0]
        return SERVICE_PREFIX + service
    return bare.split("(", 1)[0].rstrip("/")
