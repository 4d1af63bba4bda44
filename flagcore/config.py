"""Configuration classes for flagcore."""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional


@dataclass
class EvaluatorConfig:
    """Configuration for LocalEvaluator."""

    raise_on_inconclusive: bool = False
    """Raise InconclusiveMatchError instead of returning the Inconclusive marker."""

    clock: Optional[Callable[[], datetime]] = None
    """Source of "now" for relative date conditions (default: current UTC time)."""

    log_inconclusive: bool = True
    """Log a debug line whenever a flag can't be decided locally."""


DEFAULT_EVALUATOR_CONFIG = EvaluatorConfig()
