"""Generation orchestration for one play session.

  controller — GenerationController: the per-session state machine
  state      — SessionGenerationState: guards, dedupe sets, liveness
  parsing    — choice and ending-analysis parsers
  choices    — fallback decisions
  errors     — GenerationError taxonomy
"""

from .choices import fallback_decision  # noqa: F401
from .controller import GenerationController  # noqa: F401
from .errors import (  # noqa: F401
    GenerationError,
    GenerationFailure,
    GenerationTimeout,
    ParseFailure,
    ValidationFailure,
)
from .state import SessionGenerationState  # noqa: F401
