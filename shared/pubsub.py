import logging
from typing import Iterable, List, Optional

import redis

from .events import Event

logger = logging.getLogger(__name__)


class PubSubClient:
    """
    Broadcasts tournament events to Redis channels.

    Without a Redis URL the client runs in local mode and only logs events,
    which is what development and the test suite use.
    """

    def __init__(self, redis_url: Optional[str] = None):
        self.redis_url = redis_url
        if redis_url:
            self.redis = redis.from_url(
                redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5
            )
        else:
            self.redis = None
            logger.info("PubSubClient running in local mode (no Redis configured)")

    @property
    def is_local(self) -> bool:
        return self.redis is None

    def publish(self, channel: str, event: Event):
        if self.is_local:
            logger.info(f"Local mode: {event.type.value} on {channel}: {event.data}")
            return
        self.redis.publish(channel, event.to_json())

    def publish_tournament_event(self, tournament_id: str, event: Event):
        self.publish(event.channel, event)
        self.log_event(tournament_id, event)

    def publish_all(self, events: Iterable[Event]):
        for event in events:
            self.publish_tournament_event(event.tournament_id, event)

    def log_event(self, tournament_id: str, event: Event):
        if self.is_local:
            return
        key = f"tournament:{tournament_id}:event_log"
        self.redis.lpush(key, event.to_json())
        self.redis.ltrim(key, 0, 999)

    def get_recent_events(self, tournament_id: str, count: int = 50) -> List[Event]:
        if self.is_local:
            return []
        key = f"tournament:{tournament_id}:event_log"
        events_json = self.redis.lrange(key, 0, count - 1)
        return [Event.from_json(e) for e in events_json]
