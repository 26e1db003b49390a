"""Device registry: which open port currently holds which role."""

import logging
import threading
from collections.abc import Callable

from arcadelink.exceptions import DeviceStateError
from arcadelink.models import Role

from .manager import ConnectionManager

logger = logging.getLogger(__name__)


class DeviceRegistry:
    """
    Maps roles (button 1-4, cadence sensor) to live ports.

    Handshake messages and disconnect events arrive from different reader
    threads. One lock covers both the role map and the set of live ports,
    so a role can never be assigned to a port that is being torn down and
    a dead port can never keep a role.

    Conflict policy is last-identification-wins: a second port claiming a
    held role takes it over and the previous holder is orphaned (left open,
    role cleared).
    """

    def __init__(self, manager: ConnectionManager | None = None):
        """
        Initialize the registry.

        Args:
            manager: Connection manager whose device records receive the role
                     back-references (optional for standalone use)
        """
        self._manager = manager
        self._lock = threading.Lock()
        self._live: set[str] = set()
        self._port_by_role: dict[Role, str] = {}
        self._role_by_port: dict[str, Role] = {}

        self._claimed_callback: Callable[[str, Role], None] | None = None
        self._released_callback: Callable[[str, Role], None] | None = None

    def on_role_claimed(self, callback: Callable[[str, Role], None]) -> None:
        """
        Register callback fired after a successful claim.

        Args:
            callback: Function that receives (port, role)
        """
        self._claimed_callback = callback

    def on_role_released(self, callback: Callable[[str, Role], None]) -> None:
        """
        Register callback fired when a disconnect frees a role.

        Args:
            callback: Function that receives (port, role)
        """
        self._released_callback = callback

    # ================================================================
    # LIFECYCLE TRIGGERS
    # ================================================================

    def attach(self, port: str) -> None:
        """Mark a port as live so it may claim a role."""
        with self._lock:
            self._live.add(port)

    def on_ready(self, port: str, role: Role) -> bool:
        """
        Handle an identification message.

        Args:
            port: Port the message arrived on
            role: Role the device announced

        Returns:
            True if the port now holds the role, False if the port is no
            longer live or the role is not assignable
        """
        if not role.is_assigned:
            logger.warning(f"{port} tried to claim an unassigned role")
            return False

        with self._lock:
            if port not in self._live:
                logger.warning(f"Ignoring {role} claim from {port}: connection is closed")
                return False

            previous_holder = self._port_by_role.get(role)
            if previous_holder is not None and previous_holder != port:
                logger.warning(
                    f"{role} claimed by {port} while held by {previous_holder}; "
                    f"{previous_holder} is now orphaned"
                )
                del self._role_by_port[previous_holder]
                if self._manager:
                    self._manager.clear_role(previous_holder)

            old_role = self._role_by_port.get(port)
            if old_role is not None and old_role != role:
                logger.info(f"{port} re-identified: releasing {old_role}")
                del self._port_by_role[old_role]

            self._port_by_role[role] = port
            self._role_by_port[port] = role

            if self._manager:
                try:
                    self._manager.mark_identified(port, role)
                except DeviceStateError as e:
                    logger.error(f"Cannot record {role} on {port}: {e}")

        logger.info(f"{role} connected on {port}")
        if self._claimed_callback:
            try:
                self._claimed_callback(port, role)
            except Exception as e:
                logger.error(f"Error in role claimed callback: {e}", exc_info=True)
        return True

    def on_disconnect(self, port: str) -> Role | None:
        """
        Forget a port and free its role if it still holds one.

        An orphaned port disconnecting never frees the role its successor holds.

        Returns:
            The released role, or None
        """
        with self._lock:
            self._live.discard(port)
            role = self._role_by_port.pop(port, None)
            if role is not None and self._port_by_role.get(role) == port:
                del self._port_by_role[role]
            if self._manager:
                self._manager.clear_role(port)

        if role is None:
            return None

        logger.info(f"{role} released by {port}")
        if self._released_callback:
            try:
                self._released_callback(port, role)
            except Exception as e:
                logger.error(f"Error in role released callback: {e}", exc_info=True)
        return role

    detach = on_disconnect

    # ================================================================
    # QUERIES
    # ================================================================

    def port_for(self, role: Role) -> str | None:
        with self._lock:
            return self._port_by_role.get(role)

    def port_for_button(self, role_id: int) -> str | None:
        return self.port_for(Role.button(role_id))

    def role_for(self, port: str) -> Role | None:
        with self._lock:
            return self._role_by_port.get(port)

    def is_live(self, port: str) -> bool:
        with self._lock:
            return port in self._live

    def is_claimed(self, role: Role) -> bool:
        return self.port_for(role) is not None

    def mappings(self) -> dict[Role, str]:
        """Snapshot of role -> port for every claimed role."""
        with self._lock:
            return dict(self._port_by_role)

    def clear(self) -> None:
        with self._lock:
            self._live.clear()
            self._port_by_role.clear()
            self._role_by_port.clear()
