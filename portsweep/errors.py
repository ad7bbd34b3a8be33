class ScanError(Exception):
    """Base class for failures of the scan engine itself."""


class AggregationError(ScanError):
    """
    A launched probe failed to report back to the scanner.

    Connect failures never end up here; this signals a broken result
    pipeline and is not meant to be handled gracefully.
    """


class DescriptorExhaustedError(ScanError):
    """
    The process ran out of file descriptors mid-scan.

    Raised instead of reporting a port outcome: the port was never
    actually tested. Lower the concurrency or raise the open-file limit.
    """
