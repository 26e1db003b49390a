"""Discovery of candidate micro:bit serial ports."""

import logging
from dataclasses import dataclass

from serial.tools import list_ports

from arcadelink.models import ScannerConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PortCandidate:
    """One OS serial port, as reported by pyserial."""

    port: str
    description: str = ""
    manufacturer: str | None = None
    vendor_id: str | None = None
    product_id: str | None = None

    @classmethod
    def from_port_info(cls, info) -> "PortCandidate":
        """Build a candidate from a ``serial.tools.list_ports`` entry."""
        return cls(
            port=info.device,
            description=info.description or "",
            manufacturer=info.manufacturer,
            vendor_id=f"{info.vid:04x}" if info.vid is not None else None,
            product_id=f"{info.pid:04x}" if info.pid is not None else None,
        )


class PortScanner:
    """
    Lists OS serial ports and keeps the ones that look like micro:bits.

    A port is a candidate if any one heuristic matches: manufacturer
    substring, path substring, or USB vendor/product id. Scanning never
    opens a port.
    """

    def __init__(self, config: ScannerConfig | None = None, lister=None):
        """
        Initialize the scanner.

        Args:
            config: Matching heuristics (defaults to ScannerConfig())
            lister: Callable returning port info objects; defaults to
                    ``serial.tools.list_ports.comports``
        """
        self.config = config or ScannerConfig()
        self._lister = lister or list_ports.comports

    def list_all(self) -> list[PortCandidate]:
        """Return every serial port the OS reports, sorted by path."""
        ports = [PortCandidate.from_port_info(info) for info in self._lister()]
        return sorted(ports, key=lambda p: p.port)

    def is_candidate(self, candidate: PortCandidate) -> bool:
        manufacturer = candidate.manufacturer or ""
        if any(marker in manufacturer for marker in self.config.manufacturer_markers):
            return True
        if any(pattern in candidate.port for pattern in self.config.path_patterns):
            return True
        vid = (candidate.vendor_id or "").lower()
        pid = (candidate.product_id or "").lower()
        if vid and vid in self.config.vendor_ids:
            return True
        return bool(pid) and pid in self.config.product_ids

    def scan(self) -> list[PortCandidate]:
        """
        Return the ports that match the micro:bit heuristics.

        An empty result is not an error; it is logged and returned.
        """
        all_ports = self.list_all()
        candidates = [p for p in all_ports if self.is_candidate(p)]

        logger.info(f"Found {len(all_ports)} serial ports, {len(candidates)} candidate devices")
        for candidate in candidates:
            logger.debug(f"Candidate: {candidate.port} ({candidate.manufacturer or 'unknown'})")
        if not candidates:
            logger.warning("No micro:bit devices found")
        return candidates
