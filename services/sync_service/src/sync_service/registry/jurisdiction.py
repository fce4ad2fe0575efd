"""
Jurisdiction codes and their translation into registry list filters.

The mapping is closed: a two-letter US state code, the federal sentinel, or an
explicit `native:` passthrough. Anything else is rejected.
"""

from __future__ import annotations

from dataclasses import dataclass

from sync_service.errors import UnsupportedJurisdiction

FEDERAL = "US"
FEDERAL_SENTINELS = frozenset({"US", "FED", "FEDERAL"})
NATIVE_PREFIX = "native:"

# Registry court-level jurisdiction codes.
FEDERAL_COURT_CODES = ("F", "FD", "FB", "FBP", "FS")
STATE_COURT_CODES = ("S", "SA", "ST", "SS", "SAG")


@dataclass(frozen=True)
class State:
    code: str
    name: str
    court_prefix: str


_STATES = (
    State("AL", "Alabama", "ala"),
    State("AK", "Alaska", "alaska"),
    State("AZ", "Arizona", "ariz"),
    State("AR", "Arkansas", "ark"),
    State("CA", "California", "cal"),
    State("CO", "Colorado", "colo"),
    State("CT", "Connecticut", "conn"),
    State("DE", "Delaware", "del"),
    State("DC", "District of Columbia", "dc"),
    State("FL", "Florida", "fla"),
    State("GA", "Georgia", "ga"),
    State("HI", "Hawaii", "haw"),
    State("ID", "Idaho", "idaho"),
    State("IL", "Illinois", "ill"),
    State("IN", "Indiana", "ind"),
    State("IA", "Iowa", "iowa"),
    State("KS", "Kansas", "kan"),
    State("KY", "Kentucky", "ky"),
    State("LA", "Louisiana", "la"),
    State("ME", "Maine", "me"),
    State("MD", "Maryland", "md"),
    State("MA", "Massachusetts", "mass"),
    State("MI", "Michigan", "mich"),
    State("MN", "Minnesota", "minn"),
    State("MS", "Mississippi", "miss"),
    State("MO", "Missouri", "mo"),
    State("MT", "Montana", "mont"),
    State("NE", "Nebraska", "neb"),
    State("NV", "Nevada", "nev"),
    State("NH", "New Hampshire", "nh"),
    State("NJ", "New Jersey", "nj"),
    State("NM", "New Mexico", "nm"),
    State("NY", "New York", "ny"),
    State("NC", "North Carolina", "nc"),
    State("ND", "North Dakota", "nd"),
    State("OH", "Ohio", "ohio"),
    State("OK", "Oklahoma", "okla"),
    State("OR", "Oregon", "or"),
    State("PA", "Pennsylvania", "pa"),
    State("RI", "Rhode Island", "ri"),
    State("SC", "South Carolina", "sc"),
    State("SD", "South Dakota", "sd"),
    State("TN", "Tennessee", "tenn"),
    State("TX", "Texas", "tex"),
    State("UT", "Utah", "utah"),
    State("VT", "Vermont", "vt"),
    State("VA", "Virginia", "va"),
    State("WA", "Washington", "wash"),
    State("WV", "West Virginia", "wva"),
    State("WI", "Wisconsin", "wis"),
    State("WY", "Wyoming", "wyo"),
)

STATES_BY_CODE: dict[str, State] = {s.code: s for s in _STATES}

# Longest prefix first so "alaska" wins over "ala" and "wva" over "va".
_STATES_BY_PREFIX = sorted(_STATES, key=lambda s: len(s.court_prefix), reverse=True)
# Longest name first so "West Virginia" wins over "Virginia".
_STATES_BY_NAME = sorted(_STATES, key=lambda s: len(s.name), reverse=True)


def normalize_code(code: str) -> str:
    """Canonical form of a user-supplied jurisdiction (upper-cased; federal sentinels collapse to US)."""
    value = code.strip()
    if value.lower().startswith(NATIVE_PREFIX):
        return value
    value = value.upper()
    if value in FEDERAL_SENTINELS:
        return FEDERAL
    return value


def registry_filter(code: str) -> dict[str, str]:
    """
    Translate a jurisdiction into registry list-endpoint query parameters.

    Args:
        code: Two-letter state code, a federal sentinel (US/FED/FEDERAL), or
            `native:<param>=<value>[&<param>=<value>...]`

    Returns:
        Query parameters to merge into the list request

    Raises:
        UnsupportedJurisdiction: for anything outside the closed mapping
    """
    value = normalize_code(code)

    if value.lower().startswith(NATIVE_PREFIX):
        return _parse_native(value[len(NATIVE_PREFIX) :], original=code)

    if value == FEDERAL:
        return {"positions__court__jurisdiction__in": ",".join(FEDERAL_COURT_CODES)}

    state = STATES_BY_CODE.get(value)
    if state is None:
        raise UnsupportedJurisdiction(code)
    return {
        "positions__court__id__startswith": state.court_prefix,
        "positions__court__jurisdiction__in": ",".join(STATE_COURT_CODES),
    }


def state_for_court_id(court_id: str | None) -> State | None:
    if not court_id:
        return None
    court_id = court_id.lower()
    for state in _STATES_BY_PREFIX:
        if court_id.startswith(state.court_prefix):
            return state
    return None


def state_for_court_name(name: str | None) -> State | None:
    if not name:
        return None
    for state in _STATES_BY_NAME:
        if state.name in name:
            return state
    return None


def _parse_native(expr: str, *, original: str) -> dict[str, str]:
    out: dict[str, str] = {}
    for part in expr.split("&"):
        key, sep, val = part.partition("=")
        if not sep or not key.strip() or not val.strip():
            raise UnsupportedJurisdiction(original)
        out[key.strip()] = val.strip()
    if not out:
        raise UnsupportedJurisdiction(original)
    return out
