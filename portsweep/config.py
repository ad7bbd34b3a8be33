from ipaddress import IPv4Address
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, IPvAnyAddress, field_validator

MAX_PORT = 65535

# Ranges up to this size get one in-flight probe per port
SMALL_RANGE = 512
DEFAULT_CONCURRENCY = 500

# File descriptors kept free for stdio, the event loop and logging
FD_HEADROOM = 64


def fd_budget() -> Optional[int]:
    """
    How many sockets this process can hold open at once, from the soft
    RLIMIT_NOFILE minus FD_HEADROOM. None when the platform sets no limit.
    """
    try:
        import resource
    except ImportError:
        # Windows has no per-process descriptor rlimit
        return None
    soft, _ = resource.getrlimit(resource.RLIMIT_NOFILE)
    if soft == resource.RLIM_INFINITY:
        return None
    return max(1, soft - FD_HEADROOM)


class ScanRequest(BaseModel):
    """
    Target and half-open port range [start_port, end_port).
    A request with start_port >= end_port is valid and scans nothing.
    """
    model_config = ConfigDict(frozen=True)

    address: IPvAnyAddress = IPv4Address("127.0.0.1")
    start_port: int = 1
    end_port: int = MAX_PORT

    @field_validator('start_port')
    @classmethod
    def validate_start(cls, v):
        if v <= 0:
            raise ValueError("Must be greater than 0")
        if v > MAX_PORT:
            raise ValueError(f"Must be less than or equal to {MAX_PORT}")
        return v

    @field_validator('end_port')
    @classmethod
    def validate_end(cls, v):
        if v > MAX_PORT:
            raise ValueError(f"Must be less than or equal to {MAX_PORT}")
        if v < 0:
            raise ValueError("Must not be negative")
        return v

    @property
    def ports(self) -> range:
        return range(self.start_port, self.end_port)


class ScanConfig(BaseModel):
    """
    Tuning knobs for a scan.

    timeout: per-connect limit in seconds, None leaves it to the OS.
    concurrency: max in-flight probes, None picks one from the range size
    and the process's open-file limit.
    """
    timeout: Optional[float] = Field(1.5, gt=0, le=60.0)
    concurrency: Optional[int] = Field(None, ge=1, le=MAX_PORT)
    verbose: bool = False

    def limit_for(self, port_count: int) -> Optional[int]:
        """Concurrency ceiling for a range of port_count ports (None = unbounded)."""
        if self.concurrency is not None:
            return self.concurrency
        limit = None if port_count <= SMALL_RANGE else DEFAULT_CONCURRENCY
        budget = fd_budget()
        if budget is not None and (limit is None or limit > budget) and port_count > budget:
            return budget
        return limit
