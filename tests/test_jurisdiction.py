from __future__ import annotations

import pytest

from sync_service.errors import UnsupportedJurisdiction
from sync_service.registry.jurisdiction import (
    normalize_code,
    registry_filter,
    state_for_court_id,
    state_for_court_name,
)


def test_state_code_maps_to_court_prefix_filter():
    assert registry_filter("ca") == {
        "positions__court__id__startswith": "cal",
        "positions__court__jurisdiction__in": "S,SA,ST,SS,SAG",
    }


@pytest.mark.parametrize("code", ["US", "fed", "Federal"])
def test_federal_sentinels(code):
    assert normalize_code(code) == "US"
    assert registry_filter(code) == {"positions__court__jurisdiction__in": "F,FD,FB,FBP,FS"}


def test_native_passthrough():
    assert registry_filter("native:court=scotus&position_type=jud") == {
        "court": "scotus",
        "position_type": "jud",
    }


@pytest.mark.parametrize("code", ["ZZ", "California", "", "native:", "native:court"])
def test_unsupported_codes_raise(code):
    with pytest.raises(UnsupportedJurisdiction):
        registry_filter(code)


def test_unsupported_jurisdiction_is_a_value_error():
    with pytest.raises(ValueError):
        registry_filter("XX")


def test_court_id_prefix_prefers_longest_match():
    assert state_for_court_id("alaskactapp").code == "AK"
    assert state_for_court_id("alacivapp").code == "AL"
    assert state_for_court_id("wva").code == "WV"
    assert state_for_court_id("calctapp").code == "CA"
    assert state_for_court_id(None) is None


def test_court_name_prefers_longest_state_name():
    assert state_for_court_name("Supreme Court of Appeals of West Virginia").code == "WV"
    assert state_for_court_name("Court of Appeals of Virginia").code == "VA"
    assert state_for_court_name("Some Tribal Court") is None
