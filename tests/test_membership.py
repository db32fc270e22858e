"""
Tests for the bounded, self-expiring membership set.
"""
import pytest

from mcast_discovery.membership import MembershipSet
from mcast_discovery.models.common import Endpoint
from mcast_discovery.models.service import Service


def service(port: int, last_seen: float, name: str = "svc") -> Service:
    return Service(
        service_name=name,
        computer_name="host",
        endpoint=Endpoint(host="10.0.0.1", port=port),
        last_seen=last_seen,
    )

@pytest.fixture
def members():
    return MembershipSet(max_idle=30.0, max_services=3)


def test_invalid_limits():
    with pytest.raises(ValueError):
        MembershipSet(max_idle=30.0, max_services=0)
    with pytest.raises(ValueError):
        MembershipSet(max_idle=0, max_services=1)

def test_upsert_refreshes_without_duplicating(members):
    members.upsert(service(1, last_seen=10.0))
    members.upsert(service(1, last_seen=20.0))

    assert len(members) == 1
    assert members.snapshot()[0].last_seen == 20.0
    assert service(1, last_seen=0.0) in members
    assert service(2, last_seen=0.0) not in members
    assert "svc" not in members

def test_remove_idle_is_strict(members):
    members.upsert(service(1, last_seen=100.0))
    members.upsert(service(2, last_seen=110.0))

    # Exactly max_idle old is not idle yet
    assert members.remove_idle(now=130.0) is False
    assert len(members) == 2

    assert members.remove_idle(now=130.5) is True
    assert [s.endpoint.port for s in members] == [2]

def test_remove_idle_sweeps_all_expired(members):
    for port, seen in [(1, 100.0), (2, 101.0), (3, 150.0)]:
        members.upsert(service(port, last_seen=seen))
    assert members.remove_idle(now=175.0) is True
    assert [s.endpoint.port for s in members] == [3]

def test_remove_idle_on_empty_set(members):
    assert members.remove_idle(now=1e9) is False

def test_evict_oldest_over_capacity(members):
    members.upsert(service(1, last_seen=5.0))
    members.upsert(service(2, last_seen=1.0))
    members.upsert(service(3, last_seen=3.0))
    assert members.evict_oldest_over_capacity() is None

    members.upsert(service(4, last_seen=7.0))
    dropped = members.evict_oldest_over_capacity()

    assert dropped is not None and dropped.endpoint.port == 2
    assert len(members) == 3
    assert sorted(s.endpoint.port for s in members) == [1, 3, 4]

def test_oldest_and_next_deadline(members):
    assert members.oldest() is None
    assert members.next_deadline() is None

    members.upsert(service(1, last_seen=12.0))
    members.upsert(service(2, last_seen=10.0))

    assert members.oldest().endpoint.port == 2
    assert members.next_deadline() == pytest.approx(40.0)

def test_snapshot_is_ordered_by_identity(members):
    members.upsert(service(3, last_seen=1.0))
    members.upsert(service(1, last_seen=2.0))
    members.upsert(service(2, last_seen=3.0))

    snapshot = members.snapshot()
    assert isinstance(snapshot, tuple)
    assert [s.endpoint.port for s in snapshot] == [1, 2, 3]
