from rich.console import Console

console = Console(highlight=False)
err_console = Console(stderr=True, highlight=False)


class ScannerUI:
    """
    Terminal output for a scan.

    Results go to stdout as plain lines so they stay pipeable; anything
    diagnostic goes to stderr.
    """

    PROGRESS_MARK = "."

    def __init__(self, out: Console = None, err: Console = None):
        self.console = out or console
        self.err_console = err or err_console

    def show_progress(self, port: int):
        # One mark per open port, written as soon as it is found
        self.console.print(self.PROGRESS_MARK, end="", markup=False)
        self.console.file.flush()

    def display_results(self, result):
        self.console.print()
        for port in result:
            self.console.print(f"{port} is open", markup=False)

    def display_summary(self, request, result):
        """Verbose-only breakdown of what the non-open ports did."""
        scanned = len(request.ports)
        self.err_console.print(
            f"[dim]Scanned {scanned} ports on {request.address} "
            f"in {result.duration:.2f} seconds.[/dim]"
        )
        self.err_console.print(
            f"[dim]Open: {len(result)}, closed: {result.closed}, "
            f"inconclusive (timeout/unreachable/error): {result.inconclusive}[/dim]"
        )

    def show_message(self, msg, style="bold red"):
        # Messages may quote user input, never treat it as markup
        self.err_console.print(msg, style=style, markup=False, soft_wrap=True)
