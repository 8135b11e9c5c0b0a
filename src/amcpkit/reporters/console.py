
from typing import Dict, Hashable, Optional
from rich.console import Console
from ..runners.sequence import SequenceResult

class ConsoleReporter:
    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def emit(self, result: SequenceResult) -> None:
        mode = "best-effort" if result.best_effort else "fail-fast"
        self.console.print(f"Sequence: {result.name} ({mode})")
        for s in result.steps:
            status = "[green]OK[/green]" if s.ok else "[red]FAIL[/red]"
            self.console.print(f" {s.index}. {s.name}: {status} ({s.describe()})", highlight=False)

    def emit_all(self, results: Dict[Hashable, SequenceResult]) -> None:
        for r in results.values():
            self.emit(r)
        failed = sum(1 for r in results.values() if not r.ok)
        self.console.print(f"Cleanup attempted on {len(results)} target(s), {failed} reported errors.")
