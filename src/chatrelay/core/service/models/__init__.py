"""Domain models for the chat service layer.

Re-exports every public symbol so imports like
``from chatrelay.core.service.models import ChatRequest`` work.
"""

from .constants import *  # noqa: F401, F403
from .context import *  # noqa: F401, F403
from .results import *  # noqa: F401, F403
