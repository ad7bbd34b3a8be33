import argparse
import logging

from pydantic import ValidationError
from rich.logging import RichHandler

from .config import ScanConfig, ScanRequest
from .errors import ScanError
from .scanner import scan
from .ui import ScannerUI

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_USAGE = 2
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="portsweep",
        description="portsweep - concurrent TCP connect scanner",
    )
    parser.add_argument("-a", "--address", default="127.0.0.1",
                        help="The address to scan, IPv4 or IPv6 (Default: 127.0.0.1)")
    parser.add_argument("-s", "--start", type=int, default=1,
                        help="First port to scan, must be greater than 0 (Default: 1)")
    parser.add_argument("-e", "--end", type=int, default=65535,
                        help="Port to stop at, not itself scanned; "
                             "must be less than or equal to 65535 (Default: 65535)")
    parser.add_argument("-t", "--timeout", type=float, default=1.5,
                        help="Per-port connect timeout in seconds (Default: 1.5)")
    parser.add_argument("--no-timeout", action="store_true",
                        help="Use the operating system's connect timeout instead")
    parser.add_argument("-c", "--concurrency", type=int, default=None,
                        help="Max in-flight probes (Default: unbounded up to 512 ports, else 500; "
                             "kept under the open-file limit)")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Log every probe outcome and print a summary to stderr")
    return parser


def setup_logging(verbose: bool, ui: ScannerUI):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=ui.err_console, show_path=False)],
        force=True,
    )


def _describe(error: ValidationError) -> str:
    lines = []
    for err in error.errors():
        # Only the field name; deeper loc entries are pydantic schema internals
        field = str(err["loc"][0]) if err["loc"] else "input"
        lines.append(f"{field}: {err['msg']}")
    return "; ".join(lines)


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    ui = ScannerUI()
    setup_logging(args.verbose, ui)

    # Everything is validated before the scanner sees it
    try:
        request = ScanRequest(address=args.address, start_port=args.start, end_port=args.end)
        config = ScanConfig(
            timeout=None if args.no_timeout else args.timeout,
            concurrency=args.concurrency,
            verbose=args.verbose,
        )
    except ValidationError as e:
        ui.show_message(f"Error: {_describe(e)}")
        return EXIT_USAGE

    try:
        result = scan(request, config, on_open=ui.show_progress)
    except KeyboardInterrupt:
        ui.show_message("\nScan interrupted by user.", style="yellow")
        return EXIT_INTERRUPTED
    except ScanError as e:
        ui.show_message(f"\nFatal Error: {e}")
        return EXIT_FATAL

    ui.display_results(result)
    if config.verbose:
        ui.display_summary(request, result)
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
