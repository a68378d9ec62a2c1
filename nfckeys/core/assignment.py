"""Interactive assignment of an action to a previously unseen tag.

Invoked by the engine only when the store has no mapping for a tag. The
operator's answer is normalized, validated against the action registry,
persisted, and handed back for immediate dispatch so the tag does not have
to be tapped again.

Per event:
    LOOKUP_MISS -> AWAITING_ASSIGNMENT -> ASSIGNED | DECLINED | REJECTED
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from .events import normalize_action_name
from .exceptions import PersistenceError, ValidationError

if TYPE_CHECKING:
    from nfckeys.prompts.base import AssignmentPrompt

    from .registry import ActionRegistry
    from .store import MappingStore


logger = logging.getLogger(__name__)


class AssignmentFlow:
    """Resolve an unmapped tag by asking the operator.

    Example:
        >>> flow = AssignmentFlow(store, registry, ConsolePrompt())
        >>> flow.request_assignment("04A224B2")  # operator types "right"
        'right'
    """

    def __init__(
        self,
        store: MappingStore,
        registry: ActionRegistry,
        prompt: AssignmentPrompt,
    ) -> None:
        self._store = store
        self._registry = registry
        self._prompt = prompt

    @property
    def prompt(self) -> AssignmentPrompt:
        return self._prompt

    def request_assignment(self, tag_id: str) -> Optional[str]:
        """Ask for, validate and store an action for ``tag_id``.

        Blocks until the prompt answers.

        Args:
            tag_id: Identifier of the unmapped tag.

        Returns:
            The assigned action name, or None if the operator declined.

        Raises:
            ValidationError: If the answer is not a known action. Nothing is
                stored in that case.
        """
        answer = self._prompt.ask(tag_id, self._registry.primary_action_names())
        action = normalize_action_name(answer)

        if not action:
            logger.info("Skipped assignment for tag %s", tag_id)
            return None

        if not self._registry.is_valid(action):
            raise ValidationError(
                action,
                tag_id=tag_id,
                valid_actions=self._registry.primary_action_names(),
            )

        try:
            self._store.set(tag_id, action)
        except PersistenceError as e:
            # Kept in memory; the next successful write persists it too
            logger.error(
                "Assigned key '%s' to tag %s in memory only: %s", action, tag_id, e
            )
        else:
            logger.info("Assigned key '%s' to tag %s", action, tag_id)
            logger.info("Saved to %s", self._store.path)

        return action
