"""Room state machine.

Every operation takes the working copy of a room, validates first and only
then mutates it. Nothing here touches storage; ``service.RoomService`` loads
the document, calls one of these and persists the result.

Phase flow::

    lobby -> prompt -> vote -> results -> prompt ... -> finished -> lobby
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Iterable

from . import codes
from .errors import ConflictError, ForbiddenError, NotFoundError, UnprocessableError, ValidationError
from .models import (
    DEFAULT_THEME,
    REACTIONS,
    STAGE_MESSAGE_KINDS,
    THEMES,
    GamePhase,
    Player,
    Room,
    RoundState,
    StageMessage,
    Submission,
    Vote,
    empty_reactions,
)
from .prompts import PROMPT_CATEGORIES, get_random_safety_quip, pick_prompts_with_custom

logger = logging.getLogger(__name__)

MIN_ROUNDS = 1
MAX_ROUNDS = 5
POINTS_PER_VOTE = 100
STAGE_TEXT_MAX_LENGTH = 140
STAGE_DURATION_MIN_MS = 1_000
STAGE_DURATION_MAX_MS = 120_000
PROMPT_DURATION_RANGE = (15, 180)
VOTE_DURATION_RANGE = (10, 120)

PromptPicker = Callable[[int, Iterable[str], Iterable[str]], list[str]]
QuipPicker = Callable[[], str]


def now_ms() -> int:
    return int(time.time() * 1000)


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class GameRules:
    default_rounds: int = 3
    min_players: int = 3
    prompt_duration: int = 60
    vote_duration: int = 30
    speed_prompt_duration: int = 30
    speed_vote_duration: int = 20
    stage_message_duration_ms: int = 10_000

    @classmethod
    def from_config(cls, config: Any) -> GameRules:
        return cls(
            default_rounds=int(config.get("DEFAULT_ROUNDS", cls.default_rounds)),
            min_players=int(config.get("MIN_PLAYERS", cls.min_players)),
            prompt_duration=int(config.get("PROMPT_DURATION_SEC", cls.prompt_duration)),
            vote_duration=int(config.get("VOTE_DURATION_SEC", cls.vote_duration)),
            speed_prompt_duration=int(config.get("SPEED_PROMPT_DURATION_SEC", cls.speed_prompt_duration)),
            speed_vote_duration=int(config.get("SPEED_VOTE_DURATION_SEC", cls.speed_vote_duration)),
            stage_message_duration_ms=int(
                config.get("STAGE_MESSAGE_DURATION_MS", cls.stage_message_duration_ms)
            ),
        )


DEFAULT_RULES = GameRules()


# --- guards -----------------------------------------------------------------


def clamp_rounds(rounds: Any, default: int = DEFAULT_RULES.default_rounds) -> int:
    if isinstance(rounds, bool) or not isinstance(rounds, (int, float)) or rounds != rounds:
        return default
    return min(MAX_ROUNDS, max(MIN_ROUNDS, int(rounds)))


def ensure_host(room: Room, player_id: str) -> None:
    if room.host_id != player_id:
        raise ForbiddenError("Only the host can do that")


def require_phase(room: Room, phase: GamePhase) -> None:
    if room.phase != phase:
        raise ConflictError(f"Room is not in the {phase} phase")


def require_player(room: Room, player_id: str) -> Player:
    player = room.find_player(player_id)
    if player is None:
        raise NotFoundError("Player not found")
    return player


def require_round(room: Room) -> RoundState:
    rnd = room.current_round()
    if rnd is None:
        raise ConflictError("No active round")
    return rnd


def effective_durations(room: Room, rules: GameRules = DEFAULT_RULES) -> tuple[int, int]:
    """(prompt, vote) seconds; speed mode overrides whatever is configured."""
    if room.settings.speed_mode:
        return rules.speed_prompt_duration, rules.speed_vote_duration
    return room.settings.prompt_duration, room.settings.vote_duration


def grant(player: Player, achievement: str) -> bool:
    if achievement in player.achievements:
        return False
    player.achievements.append(achievement)
    return True


def _reset_player_progress(room: Room) -> None:
    for p in room.players:
        p.score = 0
        p.streak = 0
        p.achievements = []


# --- lobby ------------------------------------------------------------------


def create_room(
    code: str,
    host_name: str,
    rounds: Any = None,
    avatar: str | None = None,
    rules: GameRules = DEFAULT_RULES,
) -> Room:
    name = codes.normalize_name(host_name)
    now = now_ms()
    host = Player(
        id=new_id(),
        name=name,
        avatar=codes.normalize_avatar(avatar),
        joined_at_ms=now,
        last_action_at_ms=now,
    )
    room = Room(
        code=code,
        host_id=host.id,
        rounds_to_play=clamp_rounds(rounds, rules.default_rounds),
        players=[host],
        created_at_ms=now,
        updated_at_ms=now,
    )
    room.settings.prompt_duration = rules.prompt_duration
    room.settings.vote_duration = rules.vote_duration
    return room


def join_room(room: Room, name: str, avatar: str | None = None) -> Player:
    if room.phase != "lobby":
        raise ConflictError("The game already started")

    normalized = codes.normalize_name(name)
    if any(p.name == normalized for p in room.players):
        raise ValidationError("That name is already taken in this room")

    now = now_ms()
    player = Player(
        id=new_id(),
        name=normalized,
        avatar=codes.normalize_avatar(avatar),
        joined_at_ms=now,
        last_action_at_ms=now,
    )
    room.players.append(player)
    return player


def start_game(
    room: Room,
    host_id: str,
    rounds: Any = None,
    rules: GameRules = DEFAULT_RULES,
    prompt_picker: PromptPicker = pick_prompts_with_custom,
) -> None:
    ensure_host(room, host_id)
    require_phase(room, "lobby")
    if len(room.players) < rules.min_players:
        raise UnprocessableError(f"You need at least {rules.min_players} players to start")

    rounds_to_play = clamp_rounds(rounds if rounds is not None else room.rounds_to_play, rules.default_rounds)
    prompts = prompt_picker(rounds_to_play, room.custom_prompts, room.settings.categories)
    now = now_ms()
    prompt_sec, _ = effective_durations(room, rules)

    room.rounds = [
        RoundState(
            id=new_id(),
            prompt=prompt,
            status="collecting",
            started_at_ms=now,
            deadline_ms=now + prompt_sec * 1000,
        )
        for prompt in prompts[:rounds_to_play]
    ]
    room.rounds_to_play = rounds_to_play
    room.current_round_index = 0
    room.phase = "prompt"
    _reset_player_progress(room)
    logger.info("Room %s started with %s rounds", room.code, rounds_to_play)


def update_settings(
    room: Room,
    host_id: str,
    partial: dict[str, Any],
    rules: GameRules = DEFAULT_RULES,
) -> None:
    ensure_host(room, host_id)
    if room.phase != "lobby":
        raise ConflictError("Settings can only change in the lobby")
    if not isinstance(partial, dict):
        raise ValidationError("settings must be an object")

    settings = room.settings
    prompt_duration = settings.prompt_duration
    vote_duration = settings.vote_duration
    speed_mode = settings.speed_mode
    auto_advance = settings.auto_advance
    categories = list(settings.categories)

    if "promptDuration" in partial:
        prompt_duration = _clamp_duration(partial["promptDuration"], PROMPT_DURATION_RANGE, "promptDuration")
    if "voteDuration" in partial:
        vote_duration = _clamp_duration(partial["voteDuration"], VOTE_DURATION_RANGE, "voteDuration")
    if "speedMode" in partial:
        speed_mode = bool(partial["speedMode"])
    if "autoAdvance" in partial:
        auto_advance = bool(partial["autoAdvance"])
    if "categories" in partial:
        raw = partial["categories"]
        if not isinstance(raw, list):
            raise ValidationError("categories must be a list")
        categories = [c for c in dict.fromkeys(raw) if c in PROMPT_CATEGORIES]

    if speed_mode:
        prompt_duration = rules.speed_prompt_duration
        vote_duration = rules.speed_vote_duration

    settings.prompt_duration = prompt_duration
    settings.vote_duration = vote_duration
    settings.speed_mode = speed_mode
    settings.auto_advance = auto_advance
    settings.categories = categories


def _clamp_duration(value: Any, bounds: tuple[int, int], field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{field_name} must be a number of seconds")
    low, high = bounds
    return min(high, max(low, int(value)))


def add_custom_prompt(room: Room, host_id: str, text: str) -> None:
    ensure_host(room, host_id)
    if room.phase != "lobby":
        raise ConflictError("Prompts can only be added in the lobby")
    prompt = codes.sanitize_custom_prompt(text)
    if prompt not in room.custom_prompts:
        room.custom_prompts.append(prompt)


def clear_custom_prompts(room: Room, host_id: str) -> None:
    ensure_host(room, host_id)
    if room.phase != "lobby":
        raise ConflictError("Prompts can only be cleared in the lobby")
    room.custom_prompts = []


# --- any phase --------------------------------------------------------------


def set_theme(room: Room, host_id: str, theme: str) -> None:
    ensure_host(room, host_id)
    room.theme = theme if theme in THEMES else DEFAULT_THEME


def submit_reaction(room: Room, emoji: str) -> dict[str, int]:
    if emoji not in REACTIONS:
        raise ValidationError("Unknown reaction")
    room.reactions[emoji] = room.reactions.get(emoji, 0) + 1
    return dict(room.reactions)


def send_stage_message(
    room: Room,
    host_id: str,
    text: str,
    kind: str = "teleprompter",
    duration_ms: Any = None,
    rules: GameRules = DEFAULT_RULES,
) -> StageMessage:
    ensure_host(room, host_id)
    body = (text or "").strip()
    if not body:
        raise ValidationError("Stage message cannot be empty")
    if len(body) > STAGE_TEXT_MAX_LENGTH:
        raise ValidationError(f"Stage message must be at most {STAGE_TEXT_MAX_LENGTH} characters")
    if kind not in STAGE_MESSAGE_KINDS:
        kind = "teleprompter"

    if isinstance(duration_ms, bool) or not isinstance(duration_ms, (int, float)):
        duration_ms = rules.stage_message_duration_ms
    duration_ms = min(STAGE_DURATION_MAX_MS, max(STAGE_DURATION_MIN_MS, int(duration_ms)))

    message = StageMessage(id=new_id(), kind=kind, text=body, expires_at_ms=now_ms() + duration_ms)
    room.stage_message = message
    return message


# --- rounds -----------------------------------------------------------------


def submit_response(room: Room, player_id: str, text: str, rules: GameRules = DEFAULT_RULES) -> Submission:
    require_phase(room, "prompt")
    player = require_player(room, player_id)
    rnd = require_round(room)

    if rnd.submission_by(player.id) is not None:
        raise ConflictError("You already submitted an answer")

    body = codes.sanitize_response(text)
    now = now_ms()
    submission = Submission(id=new_id(), player_id=player.id, text=body, created_at_ms=now)
    rnd.submissions.append(submission)
    player.last_action_at_ms = now

    if rnd.first_submitter_id is None:
        rnd.first_submitter_id = player.id
        grant(player, "first-answer")

    if len(rnd.submissions) >= len(room.players):
        _open_voting(room, rnd, rules)
    return submission


def submit_vote(room: Room, player_id: str, submission_id: str) -> Vote:
    require_phase(room, "vote")
    player = require_player(room, player_id)
    rnd = require_round(room)

    if rnd.has_voted(player.id):
        raise ConflictError("You already voted")

    submission = rnd.find_submission(submission_id)
    if submission is None:
        raise NotFoundError("Submission not found")
    if submission.player_id == player.id:
        raise ValidationError("You cannot vote for yourself")

    now = now_ms()
    vote = Vote(player_id=player.id, submission_id=submission.id, created_at_ms=now)
    rnd.votes.append(vote)
    submission.voters.append(player.id)
    player.last_action_at_ms = now

    if len(rnd.votes) >= max(2, len(room.players) - 1):
        finalize_round(room)
    return vote


def advance_phase(
    room: Room,
    host_id: str,
    rules: GameRules = DEFAULT_RULES,
    quip_picker: QuipPicker = get_random_safety_quip,
) -> None:
    ensure_host(room, host_id)

    phase = room.phase
    if phase == "prompt":
        rnd = require_round(room)
        missing = [p for p in room.players if rnd.submission_by(p.id) is None]
        if len(rnd.submissions) + len(missing) < 2:
            raise UnprocessableError("Need at least two answers before voting can start")
        now = now_ms()
        for p in missing:
            rnd.submissions.append(
                Submission(id=new_id(), player_id=p.id, text=quip_picker(), created_at_ms=now)
            )
        _open_voting(room, rnd, rules)
    elif phase == "vote":
        finalize_round(room)
    elif phase == "results":
        if room.current_round_index + 1 < len(room.rounds):
            room.current_round_index += 1
            rnd = room.rounds[room.current_round_index]
            prompt_sec, _ = effective_durations(room, rules)
            now = now_ms()
            rnd.status = "collecting"
            rnd.started_at_ms = now
            rnd.deadline_ms = now + prompt_sec * 1000
            room.phase = "prompt"
        else:
            room.phase = "finished"
    elif phase == "finished":
        room.phase = "lobby"
        room.current_round_index = -1
        room.rounds = []
        room.reactions = empty_reactions()
        _reset_player_progress(room)
    elif phase == "lobby":
        raise UnprocessableError("There is nothing to advance right now")
    else:  # pragma: no cover
        raise AssertionError(f"unhandled phase {phase!r}")

    logger.info("Room %s advanced %s -> %s", room.code, phase, room.phase)


def _open_voting(room: Room, rnd: RoundState, rules: GameRules) -> None:
    _, vote_sec = effective_durations(room, rules)
    rnd.status = "voting"
    rnd.deadline_ms = now_ms() + vote_sec * 1000
    room.phase = "vote"


def finalize_round(room: Room) -> None:
    """Close the current round, score it and hand out streaks and badges."""
    rnd = require_round(room)
    rnd.status = "closed"
    room.phase = "results"

    scores_before = {p.id: p.score for p in room.players}

    for submission in rnd.submissions:
        votes = len(submission.voters)
        author = room.find_player(submission.player_id)
        if author is not None and votes > 0:
            author.score += votes * POINTS_PER_VOTE

    # Strictly greater: on a tie the earlier submission keeps the win.
    winning: Submission | None = None
    for submission in rnd.submissions:
        if submission.voters and (winning is None or len(submission.voters) > len(winning.voters)):
            winning = submission

    winner = room.find_player(winning.player_id) if winning is not None else None
    for p in room.players:
        if p is not winner:
            p.streak = 0

    if winner is None:
        logger.info("Room %s round %s closed without votes", room.code, room.current_round_index)
        return

    winner.streak += 1
    awarded = []
    if winner.streak >= 2 and grant(winner, "streak-2"):
        awarded.append("streak-2")
    if winner.streak >= 3 and grant(winner, "streak-3"):
        awarded.append("streak-3")
    if grant(winner, "crowd-favorite"):
        awarded.append("crowd-favorite")
    if len(winning.voters) >= len(room.players) - 1 and grant(winner, "unanimous"):
        awarded.append("unanimous")

    if len(room.players) > 2:
        lowest = min(scores_before.values())
        highest = max(scores_before.values())
        if scores_before[winner.id] == lowest and lowest < highest and grant(winner, "underdog"):
            awarded.append("underdog")

    logger.info(
        "Room %s round %s won by %s with %s votes; awarded %s",
        room.code,
        room.current_round_index,
        winner.id,
        len(winning.voters),
        awarded or "nothing new",
    )
