"""Tests for role assignment in the device registry."""

import threading
from unittest.mock import Mock

import pytest

from arcadelink.devices import DeviceRegistry
from arcadelink.models import Role

BUTTON_2 = Role.button(2)


@pytest.fixture
def registry():
    reg = DeviceRegistry()
    for port in ["P1", "P2", "P3"]:
        reg.attach(port)
    return reg


@pytest.mark.unit
class TestClaims:
    def test_claim_assigns_role(self, registry):
        assert registry.on_ready("P1", BUTTON_2)
        assert registry.port_for(BUTTON_2) == "P1"
        assert registry.role_for("P1") == BUTTON_2

    def test_claim_from_detached_port_rejected(self, registry):
        registry.on_disconnect("P1")
        assert not registry.on_ready("P1", BUTTON_2)
        assert registry.port_for(BUTTON_2) is None

    def test_unknown_port_rejected(self, registry):
        assert not registry.on_ready("P9", BUTTON_2)

    def test_unassigned_role_rejected(self, registry):
        assert not registry.on_ready("P1", Role.unassigned())

    def test_last_identification_wins(self, registry):
        registry.on_ready("P1", BUTTON_2)
        registry.on_ready("P2", BUTTON_2)
        assert registry.port_for(BUTTON_2) == "P2"
        assert registry.role_for("P1") is None

    def test_exactly_one_live_entry_per_role(self, registry):
        registry.on_ready("P1", BUTTON_2)
        registry.on_ready("P2", BUTTON_2)
        registry.on_ready("P3", Role.button(3))
        holders = [port for role, port in registry.mappings().items() if role == BUTTON_2]
        assert holders == ["P2"]

    def test_reidentify_with_new_role_releases_old(self, registry):
        registry.on_ready("P1", Role.button(1))
        registry.on_ready("P1", Role.button(3))
        assert registry.port_for(Role.button(1)) is None
        assert registry.port_for(Role.button(3)) == "P1"

    def test_reidentify_same_role_is_idempotent(self, registry):
        registry.on_ready("P1", BUTTON_2)
        assert registry.on_ready("P1", BUTTON_2)
        assert registry.mappings() == {BUTTON_2: "P1"}

    def test_claimed_callback(self, registry):
        callback = Mock()
        registry.on_role_claimed(callback)
        registry.on_ready("P1", Role.cadence())
        callback.assert_called_once_with("P1", Role.cadence())

    def test_callback_error_does_not_undo_claim(self, registry):
        registry.on_role_claimed(Mock(side_effect=RuntimeError("boom")))
        assert registry.on_ready("P1", BUTTON_2)
        assert registry.port_for(BUTTON_2) == "P1"


@pytest.mark.unit
class TestRelease:
    def test_disconnect_frees_role(self, registry):
        registry.on_ready("P1", BUTTON_2)
        assert registry.on_disconnect("P1") == BUTTON_2
        assert registry.port_for(BUTTON_2) is None
        assert registry.on_ready("P2", BUTTON_2)

    def test_orphan_disconnect_keeps_winner(self, registry):
        registry.on_ready("P1", BUTTON_2)
        registry.on_ready("P2", BUTTON_2)
        assert registry.on_disconnect("P1") is None
        assert registry.port_for(BUTTON_2) == "P2"

    def test_released_callback(self, registry):
        callback = Mock()
        registry.on_role_released(callback)
        registry.on_ready("P1", BUTTON_2)
        registry.on_disconnect("P1")
        callback.assert_called_once_with("P1", BUTTON_2)

    def test_unidentified_disconnect_fires_nothing(self, registry):
        callback = Mock()
        registry.on_role_released(callback)
        registry.on_disconnect("P3")
        callback.assert_not_called()


@pytest.mark.unit
class TestManagerBackReferences:
    def test_registry_updates_device_records(self):
        manager = Mock()
        registry = DeviceRegistry(manager)
        registry.attach("P1")
        registry.attach("P2")

        registry.on_ready("P1", BUTTON_2)
        manager.mark_identified.assert_called_once_with("P1", BUTTON_2)

        registry.on_ready("P2", BUTTON_2)
        manager.clear_role.assert_called_with("P1")

        registry.on_disconnect("P2")
        manager.clear_role.assert_called_with("P2")


@pytest.mark.integration
class TestConcurrency:
    def test_claims_racing_disconnects_never_leave_dead_holder(self):
        """Whatever the interleaving, a detached port never ends up holding a role."""
        for _ in range(50):
            registry = DeviceRegistry()
            registry.attach("P1")
            barrier = threading.Barrier(2)

            def claim():
                barrier.wait()
                registry.on_ready("P1", BUTTON_2)

            def drop():
                barrier.wait()
                registry.on_disconnect("P1")

            threads = [threading.Thread(target=claim), threading.Thread(target=drop)]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

            assert registry.port_for(BUTTON_2) is None
            assert not registry.is_live("P1")
