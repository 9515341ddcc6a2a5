"""
Notification permission capability.

    query()   -> PermissionState   (never prompts)
    request() -> PermissionState   (may prompt the user)
"""
import logging
import sys
from typing import Callable, Optional

from .errors import PersistenceFailure
from .medium import PERMISSION_KEY
from .schema import PermissionState

logger = logging.getLogger(__name__)


def terminal_prompt() -> Optional[bool]:
    """Ask on the terminal. Returns None when there is no one to ask."""
    if not sys.stdin or not sys.stdin.isatty():
        return None
    answer = input("Allow chronozen to show reminder notifications? [y/N] ")
    return answer.strip().lower() in ("y", "yes")


class StoredPermission:
    """Permission remembered in the store medium across sessions."""

    def __init__(self, medium, prompt: Callable[[], Optional[bool]] = terminal_prompt):
        self.medium = medium
        self.prompt = prompt

    def query(self) -> PermissionState:
        try:
            return PermissionState.from_str(self.medium.read(PERMISSION_KEY))
        except PersistenceFailure as e:
            logger.error(f"Cannot read notification permission: {e}")
            return PermissionState.UNKNOWN

    def request(self) -> PermissionState:
        current = self.query()
        if current != PermissionState.UNKNOWN:
            return current

        answer = self.prompt() if self.prompt else None
        if answer is None:
            # Non-interactive: no answer is not consent
            logger.info("No one to ask for notification permission; treating as denied")
            return PermissionState.DENIED

        state = PermissionState.GRANTED if answer else PermissionState.DENIED
        if not self.store(state):
            logger.warning("Could not persist notification permission; it applies to this session only")
        return state

    def store(self, state: PermissionState) -> bool:
        """Remember an answer, e.g. one given with `chronozen permission grant`."""
        return self.medium.write(PERMISSION_KEY, state.value)


class StaticPermission:
    """Fixed answer, e.g. from config (``permission: granted``)."""

    def __init__(self, state: PermissionState):
        self.state = state

    def query(self) -> PermissionState:
        return self.state

    def request(self) -> PermissionState:
        return self.state
