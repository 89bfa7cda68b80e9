from __future__ import annotations

import sys
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Progress events and the tqdm progress display (TTY only).

Every pipeline stage reports through a plain callback (ProgressSink) so the
core stays independent of any display. TqdmProgressSink renders the events
as one progress bar per stage; in non-TTY environments (CI) it stays silent
to avoid ANSI control sequence spam.
"""

__all__ = [
    "Stage",
    "ProgressEvent",
    "ProgressSink",
    "make_event",
    "emit",
    "TqdmProgressSink",
    "is_tty_enabled",
]


class Stage(Enum):
    PARSING = "parsing"
    VALIDATING = "validating"
    UPLOADING = "uploading"


@dataclass(frozen=True)
class ProgressEvent:
    processed: int
    total: int
    percentage: int  # 0..100
    stage: Stage
    current_batch: int = 1
    total_batches: int = 1


ProgressSink = Callable[[ProgressEvent], None]


def make_event(
    processed: int,
    total: int,
    stage: Stage,
    *,
    current_batch: int = 1,
    total_batches: int = 1,
) -> ProgressEvent:
    percentage = round(processed / total * 100) if total > 0 else 100
    return ProgressEvent(
        processed=processed,
        total=total,
        percentage=percentage,
        stage=stage,
        current_batch=current_batch,
        total_batches=total_batches,
    )


def emit(sink: ProgressSink | None, event: ProgressEvent) -> None:
    if sink is not None:
        sink(event)


def is_tty_enabled() -> bool:
    """True if stdout is a TTY and progress should be displayed."""
    return sys.stdout.isatty()


class TqdmProgressSink:
    """ProgressSink rendering events with tqdm.

    A new bar is opened whenever the stage changes; the previous one is
    closed. Usable as a context manager.
    """

    DESCRIPTIONS = {
        Stage.PARSING: "Parsing",
        Stage.VALIDATING: "Validating",
        Stage.UPLOADING: "Importing",
    }

    def __init__(self, *, enabled: bool | None = None) -> None:
        self.enabled = is_tty_enabled() if enabled is None else enabled
        self.stage: Stage | None = None
        self.pbar: TqdmType[Any] | None = None

    def __call__(self, event: ProgressEvent) -> None:
        if not self.enabled:
            return
        pbar = self.pbar
        if pbar is None or self.stage is not event.stage:
            pbar = self._open(event)
        if event.stage is Stage.PARSING:
            pbar.n = event.percentage
        else:
            pbar.n = event.processed
        if event.total_batches > 1:
            pbar.set_postfix(batch=f"{event.current_batch}/{event.total_batches}")
        pbar.refresh()

    def _open(self, event: ProgressEvent) -> TqdmType[Any]:
        self.close()
        self.stage = event.stage
        total = 100 if event.stage is Stage.PARSING else event.total
        pbar = tqdm(
            total=total,
            desc=self.DESCRIPTIONS[event.stage],
            unit="%" if event.stage is Stage.PARSING else "row",
            leave=True,
            ncols=80,  # Standard width for consistency
            ascii=True,  # ASCII chars for better compatibility
        )
        self.pbar = pbar
        return pbar

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> TqdmProgressSink:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
