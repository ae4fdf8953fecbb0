from enum import Enum
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
import json


class EventType(str, Enum):
    # Qualifying
    ROUND_GENERATED = "round.generated"
    ROUND_COMPLETED = "round.completed"
    GAME_SCORED = "game.scored"

    # Brackets
    BRACKET_CREATED = "bracket.created"
    MATCH_RESULT = "match.result"
    BRACKET_COMPLETED = "bracket.completed"
    CONSOLANTE_CREATED = "consolante.created"


@dataclass
class Event:
    type: EventType
    tournament_id: str
    timestamp: str = None
    data: dict = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.utcnow().isoformat() + "Z"
        if self.data is None:
            self.data = {}

    @property
    def channel(self) -> str:
        return f"tournament:{self.tournament_id}:events"

    def to_dict(self) -> dict:
        return {
            "type": self.type.value if isinstance(self.type, EventType) else self.type,
            "tournament_id": self.tournament_id,
            "timestamp": self.timestamp,
            "data": self.data
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict) -> "Event":
        return cls(
            type=EventType(data["type"]) if data["type"] in [e.value for e in EventType] else data["type"],
            tournament_id=data["tournament_id"],
            timestamp=data.get("timestamp"),
            data=data.get("data", {})
        )

    @classmethod
    def from_json(cls, json_str: str) -> "Event":
        return cls.from_dict(json.loads(json_str))


def round_generated_event(tournament_id: str, round_number: int, games_count: int) -> Event:
    return Event(
        type=EventType.ROUND_GENERATED,
        tournament_id=tournament_id,
        data={
            "round": round_number,
            "games_count": games_count
        }
    )


def round_completed_event(tournament_id: str, round_number: int) -> Event:
    return Event(
        type=EventType.ROUND_COMPLETED,
        tournament_id=tournament_id,
        data={"round": round_number}
    )


def game_scored_event(tournament_id: str, game_id: str, team1_score: int, team2_score: int) -> Event:
    return Event(
        type=EventType.GAME_SCORED,
        tournament_id=tournament_id,
        data={
            "game_id": game_id,
            "team1_score": team1_score,
            "team2_score": team2_score
        }
    )


def bracket_created_event(tournament_id: str, bracket_name: str, size: int,
                          is_consolante: bool = False) -> Event:
    return Event(
        type=EventType.CONSOLANTE_CREATED if is_consolante else EventType.BRACKET_CREATED,
        tournament_id=tournament_id,
        data={
            "bracket": bracket_name,
            "size": size
        }
    )


def match_result_event(tournament_id: str, match_id: str, winner: str, round_num: int) -> Event:
    return Event(
        type=EventType.MATCH_RESULT,
        tournament_id=tournament_id,
        data={
            "match_id": match_id,
            "winner": winner,
            "round": round_num
        }
    )


def bracket_completed_event(tournament_id: str, bracket_name: str, winner: Optional[str]) -> Event:
    return Event(
        type=EventType.BRACKET_COMPLETED,
        tournament_id=tournament_id,
        data={
            "bracket": bracket_name,
            "winner": winner
        }
    )
