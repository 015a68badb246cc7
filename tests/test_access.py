"""
Tests for access gates and identifier generation.
"""

import threading

import pytest

from series_catalog.domain.access import (
    Action,
    AdminFlagAccessGate,
    FixedAdminAccessGate,
    UserRecord,
    build_access_gate,
)
from series_catalog.domain.identity import SequentialIdGenerator, UuidIdGenerator


class TestAccessGates:
    """Test the administrator policies."""

    def test_admin_flag_gate(self):
        gate = AdminFlagAccessGate([UserRecord("root", is_admin=True), UserRecord("bob")])

        assert gate.is_authorized("root", Action.DELETE_SERIES, None)
        assert not gate.is_authorized("bob", Action.DELETE_SERIES, None)
        assert not gate.is_authorized("stranger", Action.DELETE_EPISODE, None)

    def test_admin_flag_gate_allows_several_admins(self):
        gate = AdminFlagAccessGate()
        gate.add_user(UserRecord("a", is_admin=True))
        gate.add_user(UserRecord("b", is_admin=True))

        assert gate.is_authorized("a", Action.DELETE_EPISODE, None)
        assert gate.is_authorized("b", Action.DELETE_EPISODE, None)

    def test_fixed_admin_gate(self):
        gate = FixedAdminAccessGate("admin")

        assert gate.is_authorized("admin", Action.DELETE_SERIES, None)
        assert not gate.is_authorized("Admin", Action.DELETE_SERIES, None)

    def test_build_access_gate(self):
        flag_gate = build_access_gate("admin_flag", admins=["ops"])
        assert isinstance(flag_gate, AdminFlagAccessGate)
        assert flag_gate.is_authorized("ops", Action.DELETE_SERIES, None)

        fixed_gate = build_access_gate("fixed_admin", admin_handle="boss")
        assert isinstance(fixed_gate, FixedAdminAccessGate)
        assert fixed_gate.admin_handle == "boss"

        with pytest.raises(ValueError):
            build_access_gate("everyone")


class TestIdGenerators:
    """Test identifier generators."""

    def test_uuid_ids_are_unique(self):
        generator = UuidIdGenerator()
        assert len({generator.new_id() for _ in range(100)}) == 100

    def test_sequential_ids(self):
        generator = SequentialIdGenerator(salt="abc")
        assert [generator.new_id() for _ in range(3)] == ["abc-1", "abc-2", "abc-3"]

    def test_sequential_ids_without_salt(self):
        generator = SequentialIdGenerator(salt="", start=10)
        assert generator.new_id() == "10"

    def test_sequential_ids_unique_across_threads(self):
        generator = SequentialIdGenerator()
        ids = []
        lock = threading.Lock()

        def worker():
            for _ in range(100):
                value = generator.new_id()
                with lock:
                    ids.append(value)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(set(ids)) == 400
