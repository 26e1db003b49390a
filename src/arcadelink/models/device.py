"""Serial device record owned by the connection manager."""

import logging
import time

from pydantic import BaseModel, Field

from arcadelink.exceptions import DeviceStateError

from .enums import ConnectionState
from .roles import Role

logger = logging.getLogger(__name__)

# Legal lifecycle moves; IDENTIFIED -> IDENTIFIED covers re-identification
_TRANSITIONS: dict[ConnectionState, frozenset[ConnectionState]] = {
    ConnectionState.DISCOVERED: frozenset({ConnectionState.OPENING, ConnectionState.CLOSED}),
    ConnectionState.OPENING: frozenset({ConnectionState.OPEN, ConnectionState.CLOSED}),
    ConnectionState.OPEN: frozenset({ConnectionState.IDENTIFIED, ConnectionState.CLOSED}),
    ConnectionState.IDENTIFIED: frozenset({ConnectionState.IDENTIFIED, ConnectionState.CLOSED}),
    ConnectionState.CLOSED: frozenset(),
}


class SerialDevice(BaseModel):
    """
    One physical device behind one serial port.

    The role is a back-reference kept in sync by the device registry; the
    device never decides its own role. A device that identified but lost its
    role to a later claimant is "orphaned": still open, unusable for
    role-addressed commands.
    """

    port: str
    description: str = ""
    state: ConnectionState = ConnectionState.DISCOVERED
    role: Role = Field(default_factory=Role.unassigned)
    last_activity: float = Field(default_factory=time.monotonic)
    last_pong: float | None = None

    def transition(self, new_state: ConnectionState) -> None:
        """
        Move to a new lifecycle state.

        Raises:
            DeviceStateError: If the move is not allowed (CLOSED is terminal)
        """
        if new_state not in _TRANSITIONS[self.state]:
            raise DeviceStateError(self.port, self.state.value, new_state.value)
        logger.debug(f"{self.port}: {self.state.value} -> {new_state.value}")
        self.state = new_state

    def touch(self) -> None:
        self.last_activity = time.monotonic()

    @property
    def is_live(self) -> bool:
        return self.state in (ConnectionState.OPEN, ConnectionState.IDENTIFIED)

    @property
    def is_orphaned(self) -> bool:
        return self.state == ConnectionState.IDENTIFIED and not self.role.is_assigned
