"""
portsweep - concurrent TCP connect scanner.
"""

from .config import ScanConfig, ScanRequest
from .probe import PortState, probe, probe_port
from .scanner import PortScanner, ScanResult, ScanState, scan

__all__ = [
    "PortScanner",
    "PortState",
    "ScanConfig",
    "ScanRequest",
    "ScanResult",
    "ScanState",
    "probe",
    "probe_port",
    "scan",
]
