from typing import Callable, Optional

ProgressSink = Callable[[int], None]


class ProgressTracker:
    """Turns processed byte counts into whole percentages for a sink.

    The sink is called synchronously, only when the percentage changes, so
    the reported values are strictly increasing and never exceed 100.
    """

    def __init__(self, total: int, sink: Optional[ProgressSink] = None):
        self.total = total
        self.sink = sink
        self.processed = 0
        self.last_reported = 0

    def advance(self, n: int) -> None:
        self.processed += n

    @property
    def percent(self) -> int:
        if self.total <= 0:
            return 0
        return min(100, self.processed * 100 // self.total)

    def report(self) -> None:
        percent = self.percent
        if percent == self.last_reported:
            return
        self.last_reported = percent
        if self.sink is not None:
            self.sink(percent)
