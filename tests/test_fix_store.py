from __future__ import annotations

import pytest

from pylocator.models.fix import FixSource, LocationFix
from pylocator.state.policy import intent_priority, should_accept_fix
from pylocator.state.store import FixStore


def _fix(source: FixSource, lat: float = 10.0, accuracy: float | None = 50.0) -> LocationFix:
    if source in (FixSource.MANUAL, FixSource.MOBILE):
        accuracy = None
    return LocationFix(latitude=lat, longitude=20.0, source=source, accuracy_meters=accuracy)


def test_intent_priority_order() -> None:
    assert intent_priority(FixSource.MANUAL) > intent_priority(FixSource.MOBILE) > intent_priority(FixSource.GPS)
    assert intent_priority(FixSource.GPS) == intent_priority(FixSource.IP)
    assert intent_priority(None) == intent_priority(FixSource.MANUAL)


def test_policy_accepts_when_nothing_written_since_ticket() -> None:
    assert should_accept_fix(
        ticket=5,
        current_written_at=3,
        current_source=FixSource.MANUAL,
        incoming_source=FixSource.IP,
    )


def test_late_automatic_result_does_not_replace_manual() -> None:
    store = FixStore()
    ticket = store.issue(FixSource.GPS, FixSource.IP)
    manual = _fix(FixSource.MANUAL, lat=1.0)
    store.put(manual)

    assert store.offer(ticket, _fix(FixSource.GPS, lat=2.0)) is False
    assert store.current == manual


def test_late_mobile_result_outranks_automatic_write() -> None:
    store = FixStore()
    mobile_ticket = store.issue(FixSource.MOBILE)
    auto_ticket = store.issue(FixSource.GPS, FixSource.IP)
    assert store.offer(auto_ticket, _fix(FixSource.IP, lat=3.0)) is True

    mobile = _fix(FixSource.MOBILE, lat=4.0)
    assert store.offer(mobile_ticket, mobile) is True
    assert store.current == mobile


def test_fresh_result_replaces_even_if_less_accurate() -> None:
    store = FixStore()
    store.put(_fix(FixSource.GPS, accuracy=5.0))
    ticket = store.issue(FixSource.GPS, FixSource.IP)
    worse = _fix(FixSource.IP, lat=7.0, accuracy=5000.0)

    assert store.offer(ticket, worse) is True
    assert store.current == worse


def test_clear_supersedes_in_flight_requests() -> None:
    store = FixStore()
    ticket = store.issue(FixSource.MOBILE)
    store.put(_fix(FixSource.GPS))
    store.clear()

    assert store.current is None
    assert store.is_superseded(ticket) is True
    assert store.offer(ticket, _fix(FixSource.MOBILE)) is False


def test_offer_rejects_source_not_on_ticket() -> None:
    store = FixStore()
    ticket = store.issue(FixSource.GPS, FixSource.IP)
    with pytest.raises(ValueError):
        store.offer(ticket, _fix(FixSource.MANUAL))


def test_issue_requires_a_source() -> None:
    with pytest.raises(ValueError):
        FixStore().issue()
