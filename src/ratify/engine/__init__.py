"""Ratify engine — status resolution and tally rules."""

from ratify.engine.status_resolver import StatusResolver
from ratify.engine.tally import TallyMode, TallyOutcome, tally

__all__ = ["StatusResolver", "TallyMode", "TallyOutcome", "tally"]
