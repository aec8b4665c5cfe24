"""Runtime configuration.

Settings are read from the environment after loading an optional
``.env`` file:

    RATIFY_DATA_PATH        data document (default data/data.json)
    RATIFY_EVENT_LOG_PATH   audit log, JSONL (default data/events.jsonl)
    RATIFY_ADMIN_PIN        if set, required for admin actions
    RATIFY_PIN_ITERATIONS   PBKDF2 rounds for new PINs (default 200000)
    RATIFY_LOG_LEVEL        logging level for the CLI (default WARNING)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import find_dotenv, load_dotenv

from ratify.identity.credentials import DEFAULT_ITERATIONS


DEFAULT_DATA_PATH = Path("data") / "data.json"
DEFAULT_EVENT_LOG_PATH = Path("data") / "events.jsonl"


@dataclass(frozen=True)
class Settings:
    data_path: Path = DEFAULT_DATA_PATH
    event_log_path: Optional[Path] = DEFAULT_EVENT_LOG_PATH
    admin_pin: Optional[str] = None
    pin_iterations: int = DEFAULT_ITERATIONS
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None, load_file: bool = True) -> Settings:
        """Build settings from the process environment.

        An empty RATIFY_EVENT_LOG_PATH disables the audit log.

        Raises ValueError if RATIFY_PIN_ITERATIONS is not a positive
        integer.
        """
        if load_file:
            load_dotenv(env_file or find_dotenv(usecwd=True))

        iterations_raw = os.getenv("RATIFY_PIN_ITERATIONS")
        iterations = DEFAULT_ITERATIONS
        if iterations_raw:
            try:
                iterations = int(iterations_raw)
            except ValueError:
                raise ValueError(
                    f"RATIFY_PIN_ITERATIONS must be an integer, got {iterations_raw!r}"
                ) from None
            if iterations < 1:
                raise ValueError(
                    f"RATIFY_PIN_ITERATIONS must be >= 1, got {iterations}"
                )

        event_log_raw = os.getenv("RATIFY_EVENT_LOG_PATH")
        if event_log_raw is None:
            event_log_path: Optional[Path] = DEFAULT_EVENT_LOG_PATH
        elif event_log_raw.strip():
            event_log_path = Path(event_log_raw)
        else:
            event_log_path = None

        return cls(
            data_path=Path(os.getenv("RATIFY_DATA_PATH") or DEFAULT_DATA_PATH),
            event_log_path=event_log_path,
            admin_pin=os.getenv("RATIFY_ADMIN_PIN") or None,
            pin_iterations=iterations,
            log_level=(os.getenv("RATIFY_LOG_LEVEL") or "WARNING").upper(),
        )
