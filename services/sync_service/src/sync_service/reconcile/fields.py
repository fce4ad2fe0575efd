"""Field derivation from registry person payloads."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any
from urllib.parse import urlparse

from sync_service.registry.jurisdiction import (
    FEDERAL,
    FEDERAL_COURT_CODES,
    STATE_COURT_CODES,
    STATES_BY_CODE,
    state_for_court_id,
    state_for_court_name,
)

POSITION_TYPE_LABELS = {
    "jud": "Judge",
    "c-jud": "Chief Judge",
    "s-jud": "Senior Judge",
    "pj": "Presiding Judge",
    "aj": "Associate Judge",
    "mag-jud": "Magistrate Judge",
    "ref-jud": "Referee Judge",
    "ret-jud": "Retired Judge",
    "act-jud": "Acting Judge",
    "spec-jud": "Special Judge",
}

_FEDERAL_NAME_MARKERS = ("Federal", "U.S.", "United States")


@dataclass(frozen=True)
class DerivedFields:
    display_name: str
    court_name: str | None
    external_court_id: str | None
    jurisdiction_code: str
    appointed_date: date | None


def current_position(positions: list[dict[str, Any]] | None) -> dict[str, Any] | None:
    """
    Pick the position that describes the judge's current assignment.

    Policy: the first position without a termination date; otherwise the first
    position listed; None when there are no positions.
    """
    candidates = [p for p in positions or [] if isinstance(p, dict)]
    if not candidates:
        return None
    for position in candidates:
        if not position.get("date_termination"):
            return position
    return candidates[0]


def derive_fields(payload: dict[str, Any], *, home_jurisdiction: str) -> DerivedFields:
    position = current_position(payload.get("positions"))
    court = court_of(position)
    name = court_display_name(court)
    return DerivedFields(
        display_name=display_name(payload),
        court_name=name,
        external_court_id=court.get("id"),
        jurisdiction_code=normalize_jurisdiction(court, home=home_jurisdiction),
        appointed_date=parse_date(position.get("date_start")) if position else None,
    )


def display_name(payload: dict[str, Any]) -> str:
    for key in ("name_full", "name"):
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    parts = [
        payload.get(key)
        for key in ("name_first", "name_middle", "name_last", "name_suffix")
        if isinstance(payload.get(key), str) and payload.get(key).strip()
    ]
    return " ".join(p.strip() for p in parts) or "Unknown Judge"


def court_of(position: dict[str, Any] | None) -> dict[str, Any]:
    """Normalize a position's court reference (nested object, id string or resource URL) to a dict."""
    if not position:
        return {}
    court = position.get("court")
    if isinstance(court, dict):
        out = dict(court)
        if out.get("id") is not None:
            out["id"] = str(out["id"])
        return out
    if isinstance(court, str) and court.strip():
        return {"id": _court_id_from_ref(court.strip())}
    return {}


def court_display_name(court: dict[str, Any]) -> str | None:
    for key in ("full_name", "name", "short_name"):
        value = court.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def normalize_jurisdiction(court: dict[str, Any], *, home: str) -> str:
    code = str(court.get("jurisdiction") or "").strip().upper()
    if code in FEDERAL_COURT_CODES:
        return FEDERAL
    if code in STATES_BY_CODE:
        return code
    if code in STATE_COURT_CODES:
        state = state_for_court_id(court.get("id"))
        if state is not None:
            return state.code
    return jurisdiction_from_name(court_display_name(court), home=home)


def jurisdiction_from_name(name: str | None, *, home: str) -> str:
    if name:
        if any(marker in name for marker in _FEDERAL_NAME_MARKERS):
            return FEDERAL
        state = state_for_court_name(name)
        if state is not None:
            return state.code
        if "CA " in name:
            return "CA"
    return home.strip().upper()


def education_summary(educations: list[dict[str, Any]] | None) -> str | None:
    entries = []
    for edu in educations or []:
        if not isinstance(edu, dict):
            continue
        school = edu.get("school")
        school_name = school.get("name") if isinstance(school, dict) else school
        degree = edu.get("degree_detail") or edu.get("degree_level") or edu.get("degree")
        label = f"{school_name or 'Unknown'} ({degree or 'Unknown degree'}"
        if edu.get("degree_year"):
            label += f", {edu['degree_year']}"
        entries.append(label + ")")
    return "; ".join(entries) or None


def biography_summary(positions: list[dict[str, Any]] | None) -> str | None:
    entries = []
    for pos in positions or []:
        if not isinstance(pos, dict):
            continue
        ptype = pos.get("position_type")
        title = POSITION_TYPE_LABELS.get(ptype) or pos.get("job_title") or ptype or "Judge"
        court = court_display_name(court_of(pos)) or "Unknown Court"
        entries.append(f"{title} at {court}")
    return "; ".join(entries) or None


def parse_date(value: Any) -> date | None:
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def _court_id_from_ref(ref: str) -> str:
    if "://" not in ref:
        return ref
    segments = [s for s in urlparse(ref).path.split("/") if s]
    return segments[-1] if segments else ref
