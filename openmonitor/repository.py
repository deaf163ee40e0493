"""
Design (repository.py)
- Purpose: Keep the per-run watch state behind a tiny API, so the orchestrator can
           report progress and print an end-of-run summary.
- Inputs: Resolved targets and state transitions.
- Outputs: Snapshots (copies) of slots, states, and last-change timestamps.
- Side effects: Updates internal lists; timestamps changes. Nothing is written to disk.
- Thread-safety: Owned by the orchestrator's event loop; not shared across threads.
"""

from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from .models import ResolvedTarget, TargetState


class WatchRepo:
    """
    Design (WatchRepo)
    - State (indexed by watch-list position, so a repeated name gets its own slot):
        _targets: [ResolvedTarget]
        _states: [TargetState]
        _last_change: [str | None] timestamp of the latest transition
    """

    def __init__(self) -> None:
        self._targets: List[ResolvedTarget] = []
        self._states: List[TargetState] = []
        self._last_change: List[Optional[str]] = []

    def load(self, targets: Sequence[ResolvedTarget]) -> None:
        """
        Purpose: Replace the slots with a fresh watch list, all PENDING.
        """
        self._targets = list(targets)
        self._states = [TargetState.PENDING] * len(self._targets)
        self._last_change = [None] * len(self._targets)

    def set_state(self, index: int, state: TargetState) -> None:
        if self._states[index] != state:
            self._states[index] = state
            self._last_change[index] = datetime.now().strftime("%Y-%m-%d %H:%M:%S")

    def state(self, index: int) -> TargetState:
        return self._states[index]

    def count(self, state: TargetState) -> int:
        return sum(1 for s in self._states if s is state)

    def snapshot(self) -> Tuple[List[ResolvedTarget], List[TargetState], List[Optional[str]]]:
        """
        Purpose: Return copies of targets/states/last_change for safe iteration.
        """
        return list(self._targets), list(self._states), list(self._last_change)

    def summary_lines(self) -> List[str]:
        """One line per slot: position, name, endpoint, state and when it last changed."""
        targets, states, last_change = self.snapshot()
        total = len(targets)
        return [
            f"[{i}/{total}] {t.name} ({t.endpoint}) {s.value} at {stamp or '-'}"
            for i, (t, s, stamp) in enumerate(zip(targets, states, last_change), start=1)
        ]
