"""
Unit tests for domain events, the pub/sub client and the error taxonomy.
"""
import json

import pytest
from shared.errors import (
    ErrorKind,
    HTTP_STATUS,
    LockedStateError,
    NotFoundError,
    SchedulerError,
    SequenceError,
    ValidationError,
)
from shared.events import (
    Event,
    EventType,
    bracket_created_event,
    game_scored_event,
    match_result_event,
    round_generated_event,
)
from shared.pubsub import PubSubClient


class TestErrors:
    """Tests for tagged scheduler errors."""

    def test_kinds(self):
        assert ValidationError("x").kind is ErrorKind.VALIDATION
        assert SequenceError("x").kind is ErrorKind.SEQUENCE
        assert LockedStateError("x").kind is ErrorKind.LOCKED_STATE
        assert NotFoundError('team', 'team_1').kind is ErrorKind.NOT_FOUND

    def test_context_and_dict(self):
        error = SequenceError("Complete round 2 first", round_number=3)
        assert isinstance(error, SchedulerError)
        assert error.to_dict() == {
            'error': "Complete round 2 first",
            'kind': 'sequence',
            'context': {'round_number': 3},
        }

    def test_not_found_message(self):
        error = NotFoundError('match', 'm_123')
        assert str(error) == "Match m_123 not found"
        assert error.context == {'entity': 'match', 'entity_id': 'm_123'}

    def test_http_status_per_kind(self):
        assert HTTP_STATUS[ErrorKind.VALIDATION] == 400
        assert HTTP_STATUS[ErrorKind.SEQUENCE] == 409
        assert HTTP_STATUS[ErrorKind.LOCKED_STATE] == 423
        assert HTTP_STATUS[ErrorKind.NOT_FOUND] == 404


class TestEvent:
    """Tests for Event serialization."""

    def test_timestamp_defaults(self):
        event = round_generated_event('t_1', 2, 4)
        assert event.timestamp.endswith('Z')
        assert event.data == {'round': 2, 'games_count': 4}
        assert event.channel == 'tournament:t_1:events'

    def test_json_round_trip(self):
        event = match_result_event('t_1', 'm_1', 'team_a', 1)
        restored = Event.from_json(event.to_json())
        assert restored.type is EventType.MATCH_RESULT
        assert restored.data == event.data

    def test_consolante_flag_changes_type(self):
        assert bracket_created_event('t_1', 'A', 8).type is EventType.BRACKET_CREATED
        assert bracket_created_event('t_1', 'AA', 4, is_consolante=True).type is EventType.CONSOLANTE_CREATED

    def test_unknown_type_kept_as_string(self):
        event = Event.from_dict({'type': 'custom.thing', 'tournament_id': 't_1'})
        assert event.type == 'custom.thing'


class TestPubSubClient:
    """Tests for PubSubClient."""

    def test_local_mode_without_url(self):
        client = PubSubClient()
        assert client.is_local
        client.publish_tournament_event('t_1', game_scored_event('t_1', 'g_1', 13, 4))
        assert client.get_recent_events('t_1') == []

    def test_publishes_to_tournament_channel(self, mocker):
        fake_redis = mocker.MagicMock()
        from_url = mocker.patch('shared.pubsub.redis.from_url', return_value=fake_redis)

        client = PubSubClient('redis://localhost:6379/0')
        event = round_generated_event('t_1', 1, 8)
        client.publish_tournament_event('t_1', event)

        from_url.assert_called_once()
        fake_redis.publish.assert_called_once_with('tournament:t_1:events', event.to_json())
        fake_redis.lpush.assert_called_once_with('tournament:t_1:event_log', event.to_json())
        fake_redis.ltrim.assert_called_once_with('tournament:t_1:event_log', 0, 999)

    def test_recent_events(self, mocker):
        fake_redis = mocker.MagicMock()
        fake_redis.lrange.return_value = [round_generated_event('t_1', 1, 8).to_json()]
        mocker.patch('shared.pubsub.redis.from_url', return_value=fake_redis)

        events = PubSubClient('redis://localhost').get_recent_events('t_1', count=10)

        fake_redis.lrange.assert_called_once_with('tournament:t_1:event_log', 0, 9)
        assert events[0].type is EventType.ROUND_GENERATED
        assert json.loads(events[0].to_json())['data']['games_count'] == 8

    def test_publish_all(self, mocker):
        client = PubSubClient()
        spy = mocker.spy(client, 'publish_tournament_event')
        client.publish_all([round_generated_event('t_1', 1, 2), round_generated_event('t_2', 1, 2)])
        assert [c.args[0] for c in spy.call_args_list] == ['t_1', 't_2']
