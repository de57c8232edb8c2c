from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal


GamePhase = Literal["lobby", "prompt", "vote", "results", "finished"]
RoundStatus = Literal["collecting", "voting", "closed"]
ThemeName = Literal["neon", "gold", "retro", "spooky"]
ReactionEmoji = Literal["👏", "😂", "🔥", "😮"]
StageMessageKind = Literal["teleprompter", "intermission"]
PromptCategory = Literal["silly", "popCulture", "darkHumor", "workplace", "relationships", "absurd"]
AchievementType = Literal[
    "first-answer",
    "crowd-favorite",
    "underdog",
    "streak-2",
    "streak-3",
    "unanimous",
]

PHASES: tuple[GamePhase, ...] = ("lobby", "prompt", "vote", "results", "finished")
ROUND_STATUSES: tuple[RoundStatus, ...] = ("collecting", "voting", "closed")
THEMES: tuple[ThemeName, ...] = ("neon", "gold", "retro", "spooky")
REACTIONS: tuple[ReactionEmoji, ...] = ("👏", "😂", "🔥", "😮")
STAGE_MESSAGE_KINDS: tuple[StageMessageKind, ...] = ("teleprompter", "intermission")
ACHIEVEMENTS: tuple[AchievementType, ...] = (
    "first-answer",
    "crowd-favorite",
    "underdog",
    "streak-2",
    "streak-3",
    "unanimous",
)

# Round status each room phase requires of the current round (None: no active round).
PHASE_ROUND_STATUS: dict[str, RoundStatus | None] = {
    "lobby": None,
    "prompt": "collecting",
    "vote": "voting",
    "results": "closed",
    "finished": "closed",
}

DEFAULT_THEME: ThemeName = "neon"
DEFAULT_AVATAR = "🎤"
SCHEMA_VERSION = 2


def empty_reactions() -> dict[str, int]:
    return {emoji: 0 for emoji in REACTIONS}


@dataclass
class Player:
    id: str
    name: str
    avatar: str = DEFAULT_AVATAR
    score: int = 0
    streak: int = 0
    achievements: list[str] = field(default_factory=list)
    joined_at_ms: int = 0
    last_action_at_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "avatar": self.avatar,
            "score": self.score,
            "streak": self.streak,
            "achievements": list(self.achievements),
            "joinedAt": self.joined_at_ms,
            "lastActionAt": self.last_action_at_ms,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Player:
        return cls(
            id=data["id"],
            name=data["name"],
            avatar=data.get("avatar") or DEFAULT_AVATAR,
            score=int(data.get("score", 0)),
            streak=int(data.get("streak", 0)),
            achievements=list(data.get("achievements") or []),
            joined_at_ms=int(data.get("joinedAt", 0)),
            last_action_at_ms=int(data.get("lastActionAt", 0)),
        )


@dataclass
class Submission:
    id: str
    player_id: str
    text: str
    voters: list[str] = field(default_factory=list)
    created_at_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "playerId": self.player_id,
            "text": self.text,
            "voters": list(self.voters),
            "createdAt": self.created_at_ms,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Submission:
        return cls(
            id=data["id"],
            player_id=data["playerId"],
            text=data["text"],
            voters=list(data.get("voters") or []),
            created_at_ms=int(data.get("createdAt", 0)),
        )


@dataclass
class Vote:
    player_id: str
    submission_id: str
    created_at_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "playerId": self.player_id,
            "submissionId": self.submission_id,
            "createdAt": self.created_at_ms,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Vote:
        return cls(
            player_id=data["playerId"],
            submission_id=data["submissionId"],
            created_at_ms=int(data.get("createdAt", 0)),
        )


@dataclass
class RoundState:
    id: str
    prompt: str
    submissions: list[Submission] = field(default_factory=list)
    votes: list[Vote] = field(default_factory=list)
    status: RoundStatus = "collecting"
    started_at_ms: int = 0
    # Advisory only; enforced solely by the optional deadline sweep.
    deadline_ms: int | None = None
    first_submitter_id: str | None = None

    def submission_by(self, player_id: str) -> Submission | None:
        return next((s for s in self.submissions if s.player_id == player_id), None)

    def find_submission(self, submission_id: str) -> Submission | None:
        return next((s for s in self.submissions if s.id == submission_id), None)

    def has_voted(self, player_id: str) -> bool:
        return any(v.player_id == player_id for v in self.votes)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "prompt": self.prompt,
            "submissions": [s.to_dict() for s in self.submissions],
            "votes": [v.to_dict() for v in self.votes],
            "status": self.status,
            "startedAt": self.started_at_ms,
            "deadline": self.deadline_ms,
            "firstSubmitterId": self.first_submitter_id,
        }
        return payload

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RoundState:
        status = data.get("status", "collecting")
        if status not in ROUND_STATUSES:
            raise ValueError(f"unknown round status: {status!r}")
        deadline = data.get("deadline")
        return cls(
            id=data["id"],
            prompt=data["prompt"],
            submissions=[Submission.from_dict(s) for s in data.get("submissions") or []],
            votes=[Vote.from_dict(v) for v in data.get("votes") or []],
            status=status,
            started_at_ms=int(data.get("startedAt", 0)),
            deadline_ms=int(deadline) if deadline is not None else None,
            first_submitter_id=data.get("firstSubmitterId"),
        )


@dataclass
class StageMessage:
    id: str
    kind: StageMessageKind
    text: str
    expires_at_ms: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            "text": self.text,
            "expiresAt": self.expires_at_ms,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StageMessage:
        return cls(
            id=data["id"],
            kind=data.get("kind", "teleprompter"),
            text=data.get("text", ""),
            expires_at_ms=int(data.get("expiresAt", 0)),
        )


@dataclass
class GameSettings:
    prompt_duration: int = 60
    vote_duration: int = 30
    speed_mode: bool = False
    auto_advance: bool = False
    categories: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "promptDuration": self.prompt_duration,
            "voteDuration": self.vote_duration,
            "speedMode": self.speed_mode,
            "autoAdvance": self.auto_advance,
            "categories": list(self.categories),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GameSettings:
        return cls(
            prompt_duration=int(data.get("promptDuration", 60)),
            vote_duration=int(data.get("voteDuration", 30)),
            speed_mode=bool(data.get("speedMode", False)),
            auto_advance=bool(data.get("autoAdvance", False)),
            categories=list(data.get("categories") or []),
        )


@dataclass
class Room:
    code: str
    host_id: str
    phase: GamePhase = "lobby"
    rounds_to_play: int = 3
    current_round_index: int = -1
    players: list[Player] = field(default_factory=list)
    rounds: list[RoundState] = field(default_factory=list)
    created_at_ms: int = 0
    updated_at_ms: int = 0
    theme: ThemeName = DEFAULT_THEME
    reactions: dict[str, int] = field(default_factory=empty_reactions)
    stage_message: StageMessage | None = None
    settings: GameSettings = field(default_factory=GameSettings)
    custom_prompts: list[str] = field(default_factory=list)
    schema_version: int = SCHEMA_VERSION

    def find_player(self, player_id: str) -> Player | None:
        return next((p for p in self.players if p.id == player_id), None)

    def current_round(self) -> RoundState | None:
        if 0 <= self.current_round_index < len(self.rounds):
            return self.rounds[self.current_round_index]
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "schemaVersion": self.schema_version,
            "code": self.code,
            "hostId": self.host_id,
            "phase": self.phase,
            "roundsToPlay": self.rounds_to_play,
            "currentRoundIndex": self.current_round_index,
            "players": [p.to_dict() for p in self.players],
            "rounds": [r.to_dict() for r in self.rounds],
            "createdAt": self.created_at_ms,
            "updatedAt": self.updated_at_ms,
            "theme": self.theme,
            "reactions": dict(self.reactions),
            "stageMessage": self.stage_message.to_dict() if self.stage_message else None,
            "settings": self.settings.to_dict(),
            "customPrompts": list(self.custom_prompts),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Room:
        """Build a room from a current-version document (see ``schema.upgrade_document``)."""
        phase = data.get("phase", "lobby")
        if phase not in PHASES:
            raise ValueError(f"unknown phase: {phase!r}")
        stage_message = data.get("stageMessage")
        room = cls(
            code=data["code"],
            host_id=data["hostId"],
            phase=phase,
            rounds_to_play=int(data.get("roundsToPlay", 3)),
            current_round_index=int(data.get("currentRoundIndex", -1)),
            players=[Player.from_dict(p) for p in data.get("players") or []],
            rounds=[RoundState.from_dict(r) for r in data.get("rounds") or []],
            created_at_ms=int(data.get("createdAt", 0)),
            updated_at_ms=int(data.get("updatedAt", 0)),
            theme=data.get("theme", DEFAULT_THEME),
            reactions={**empty_reactions(), **(data.get("reactions") or {})},
            stage_message=StageMessage.from_dict(stage_message) if stage_message else None,
            settings=GameSettings.from_dict(data.get("settings") or {}),
            custom_prompts=list(data.get("customPrompts") or []),
            schema_version=int(data.get("schemaVersion", SCHEMA_VERSION)),
        )
        room.check_consistency()
        return room

    def check_consistency(self) -> None:
        """Raise ``ValueError`` when phase, round index and round status disagree."""
        expected = PHASE_ROUND_STATUS[self.phase]
        rnd = self.current_round()
        if expected is None:
            if self.current_round_index != -1:
                raise ValueError(f"{self.phase} room has current round index {self.current_round_index}")
        elif rnd is None:
            raise ValueError(
                f"{self.phase} room points at round {self.current_round_index} of {len(self.rounds)}"
            )
        elif rnd.status != expected:
            raise ValueError(f"{self.phase} room has a {rnd.status} round, expected {expected}")
        for player in self.players:
            unknown = [a for a in player.achievements if a not in ACHIEVEMENTS]
            if unknown:
                raise ValueError(f"player {player.id} has unknown achievements {unknown}")
