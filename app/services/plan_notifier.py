"""
Plan state notifier - pushes plan changes to the user's connected sessions.

Messages are advisory; the entitlement gate always re-reads storage.
"""
import asyncio
import logging
from collections import defaultdict
from typing import Dict, Set, Any
from uuid import UUID
from app.services.plan_resolver import PlanState

logger = logging.getLogger(__name__)


class PlanStateNotifier:
    """In-process fan-out of plan changes, one queue per connected session."""

    def __init__(self, queue_size: int = 16):
        self.queue_size = queue_size
        self._subscribers: Dict[UUID, Set[asyncio.Queue]] = defaultdict(set)

    def subscribe(self, user_id: UUID) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        self._subscribers[user_id].add(queue)
        logger.debug(f"Plan subscriber added for user {user_id} ({len(self._subscribers[user_id])} active)")
        return queue

    def unsubscribe(self, user_id: UUID, queue: asyncio.Queue) -> None:
        queues = self._subscribers.get(user_id)
        if not queues:
            return
        queues.discard(queue)
        if not queues:
            del self._subscribers[user_id]

    def subscriber_count(self, user_id: UUID) -> int:
        return len(self._subscribers.get(user_id, ()))

    def publish(self, user_id: UUID, state: PlanState) -> int:
        """
        Pushes the new plan state to every session of the user.

        Returns:
            Number of sessions notified
        """
        payload: Dict[str, Any] = state.to_payload()
        queues = list(self._subscribers.get(user_id, ()))
        for queue in queues:
            if queue.full():
                # Slow consumer: keep the newest state
                queue.get_nowait()
            queue.put_nowait(payload)

        if queues:
            logger.info(f"Plan change pushed to {len(queues)} session(s) of user {user_id}: {payload}")
        return len(queues)
