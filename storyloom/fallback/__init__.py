"""Static fallback content used when generated output cannot be trusted.

  content   — the pre-authored repository (FALLBACK_CONTENT)
  selector  — ContentSelector: filtering, tag scoring, weighted draw
  manager   — FallbackContentManager: selector plus recently-used window
"""

from .content import FALLBACK_CONTENT  # noqa: F401
from .manager import FallbackContentManager, UsageHistory  # noqa: F401
from .selector import ContentSelector  # noqa: F401
