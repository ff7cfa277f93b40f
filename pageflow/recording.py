"""JSONL recording of runner state transitions."""

from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Any, Dict, Optional

from .config import RunnerConfig, ensure_run_directory
from .state import StepRunnerState


class StateRecorder:
    """State observer writing one JSON line per transition.

    Register it with ``runner.add_observer(recorder)``.
    """

    def __init__(self, run_id: str, events_path: Path) -> None:
        self.run_id = run_id
        self.events_path = events_path
        self._seq = 0
        self._events_file = events_path.open("a", encoding="utf-8")

    @classmethod
    def for_run(cls, run_id: str, config: RunnerConfig) -> "StateRecorder":
        """Open ``<log_root>/<run_id>/events.jsonl`` for appending."""

        return cls(run_id, prepare_record_path(ensure_run_directory(run_id, config)))

    @property
    def count(self) -> int:
        return self._seq

    def __call__(self, state: StepRunnerState) -> None:
        self.record(state)

    def record(self, state: StepRunnerState, *, metadata: Optional[Dict[str, Any]] = None) -> int:
        self._seq += 1
        payload: Dict[str, Any] = {
            "ts": time.time(),
            "run_id": self.run_id,
            "seq": self._seq,
            "status": state.status.value,
            "index": state.index,
            "error": str(state.error) if state.error is not None else None,
            "metadata": metadata or {},
        }
        self._events_file.write(json.dumps(payload, ensure_ascii=False) + "\n")
        self._events_file.flush()
        return self._seq

    def close(self) -> None:
        if not self._events_file.closed:
            self._events_file.close()

    def __enter__(self) -> "StateRecorder":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


def prepare_record_path(base_dir: Path) -> Path:
    base_dir.mkdir(parents=True, exist_ok=True)
    return base_dir / "events.jsonl"
