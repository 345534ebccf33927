from __future__ import annotations
from pathlib import Path
from typing import Optional, Tuple
from rich.console import Console
from torch.utils.tensorboard import SummaryWriter

RUN_LOG = "run.log"


def get_logger(save_dir: Path, use_tb: bool = True, record: bool = False) -> Tuple[Console, Optional[SummaryWriter]]:
    """Console for progress lines plus an optional TensorBoard writer under save_dir.

    With record=True the console keeps what it prints so save_run_log can dump it.
    """
    save_dir.mkdir(parents=True, exist_ok=True)
    console = Console(record=record)
    writer: Optional[SummaryWriter] = SummaryWriter(str(save_dir)) if use_tb else None
    return console, writer


def save_run_log(console: Console, save_dir: Path) -> Optional[Path]:
    if not console.record:
        return None
    path = save_dir / RUN_LOG
    console.save_text(str(path))
    return path


def log_scalars(writer: Optional[SummaryWriter], prefix: str, values: dict, step: int) -> None:
    if writer is None:
        return
    for name, v in values.items():
        # bools are ints too; None marks an undefined score
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            writer.add_scalar(f"{prefix}/{name}", float(v), step)
