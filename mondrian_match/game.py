from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

from .clock import Clock, TickTimer
from .game_core import SeededRng
from .generator import LevelGenerator
from .partition import Axis, DrawRect, MondrianColor, PartitionNode
from .persistence import LeaderboardEntry
from .scoring import SimilarityScorer

logger = logging.getLogger(__name__)


class TargetGenerator(Protocol):
    def generate_target(self, level: int) -> PartitionNode: ...


class MatchScorer(Protocol):
    def check_match(self, player: PartitionNode, target: PartitionNode) -> int:
        """Return an integer similarity percentage in [0, 100]."""
        ...


class AudioCues(Protocol):
    def play_click(self) -> None: ...
    def play_success(self) -> None: ...
    def play_fail(self) -> None: ...


class ScoreStore(Protocol):
    def record(self, score: int) -> Sequence[LeaderboardEntry]: ...


class GamePhase(StrEnum):
    NOT_STARTED = "not_started"
    PLAYING = "playing"
    LEVEL_ADVANCING = "level_advancing"
    GAME_OVER = "game_over"


class Tool(StrEnum):
    PAINT = "paint"
    SPLIT_HORIZONTAL = "split-horizontal"
    SPLIT_VERTICAL = "split-vertical"


class LevelTrigger(StrEnum):
    TIMEOUT = "timeout"
    CHECK = "check"


@dataclass(frozen=True, slots=True)
class GameConfig:
    level_duration_ticks: int = 30
    tick_period_s: float = 1.0
    pass_threshold: int = 60
    sample_count: int = 150
    player_split_ratio: float = 0.5
    leaderboard_size: int = 5


@dataclass(frozen=True, slots=True)
class LevelOutcome:
    level: int
    score: int
    passed: bool
    trigger: LevelTrigger


@dataclass(frozen=True, slots=True)
class GameSnapshot:
    """View model for the UI (pure data)."""

    phase: GamePhase
    level: int
    total_score: int
    time_remaining: int
    selected_tool: Tool
    selected_color: MondrianColor
    preview_score: int
    last_level_score: int | None
    player_rects: tuple[DrawRect, ...]
    target_rects: tuple[DrawRect, ...]
    leaderboard: tuple[LeaderboardEntry, ...]


class MondrianEngine:
    """Level/timer state machine for the two-panel matching puzzle.

    NOT_STARTED -> PLAYING on start. Each tick counts the level clock down; at
    zero the level is scored: a pass goes through LEVEL_ADVANCING straight into
    the next PLAYING level, a fail ends in GAME_OVER. A manual check that
    passes advances immediately; one that fails changes nothing.

    - Deterministic: target and scoring streams derive from the seed.
    - Time is entirely via the injected Clock (``update``) or direct ``tick`` calls.
    """

    def __init__(
        self,
        *,
        clock: Clock,
        seed: int,
        config: GameConfig | None = None,
        generator: TargetGenerator | None = None,
        scorer: MatchScorer | None = None,
        audio: AudioCues | None = None,
        scores: ScoreStore | None = None,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        cfg = config or GameConfig()
        if cfg.level_duration_ticks <= 0:
            raise ValueError("level_duration_ticks must be > 0")
        if cfg.tick_period_s <= 0.0:
            raise ValueError("tick_period_s must be > 0")
        if not (0 <= cfg.pass_threshold <= 100):
            raise ValueError("pass_threshold must be in [0, 100]")
        if cfg.sample_count <= 0:
            raise ValueError("sample_count must be > 0")
        if not (0.0 < cfg.player_split_ratio < 1.0):
            raise ValueError("player_split_ratio must be in (0.0, 1.0)")

        self._clock = clock
        self._seed = int(seed)
        self._cfg = cfg

        rng = SeededRng(self._seed)
        self._generator: TargetGenerator = generator or LevelGenerator(rng=rng.spawn())
        self._scorer: MatchScorer = scorer or SimilarityScorer(rng=rng.spawn(), samples=cfg.sample_count)
        self._audio = audio
        self._scores = scores
        self._on_change = on_change
        self._timer = TickTimer(clock=clock, period_s=cfg.tick_period_s)

        self._phase = GamePhase.NOT_STARTED
        self._level = 1
        self._total_score = 0
        self._time_remaining = cfg.level_duration_ticks
        self._player = PartitionNode.root()
        self._target = PartitionNode.root()
        self._selected_color = MondrianColor.RED
        self._selected_tool = Tool.PAINT
        self._preview_score = 0
        self._last_level_score: int | None = None
        self._leaderboard: tuple[LeaderboardEntry, ...] = ()
        self._outcomes: list[LevelOutcome] = []

    @property
    def seed(self) -> int:
        return self._seed

    @property
    def config(self) -> GameConfig:
        return self._cfg

    @property
    def phase(self) -> GamePhase:
        return self._phase

    @property
    def level(self) -> int:
        return self._level

    @property
    def total_score(self) -> int:
        return self._total_score

    @property
    def time_remaining(self) -> int:
        return self._time_remaining

    @property
    def player_tree(self) -> PartitionNode:
        return self._player

    @property
    def target_tree(self) -> PartitionNode:
        return self._target

    @property
    def selected_tool(self) -> Tool:
        return self._selected_tool

    @property
    def selected_color(self) -> MondrianColor:
        return self._selected_color

    @property
    def preview_score(self) -> int:
        return self._preview_score

    @property
    def last_level_score(self) -> int | None:
        return self._last_level_score

    @property
    def leaderboard(self) -> tuple[LeaderboardEntry, ...]:
        return self._leaderboard

    @property
    def timer_running(self) -> bool:
        return self._timer.running

    @property
    def timer_starts(self) -> int:
        return self._timer.starts

    def outcomes(self) -> list[LevelOutcome]:
        return list(self._outcomes)

    def start(self) -> None:
        """Begin a new game at level 1. Also serves as restart after GAME_OVER."""

        if self._phase is GamePhase.PLAYING:
            return
        self._total_score = 0
        self._last_level_score = None
        self._outcomes.clear()
        self._begin_level(1)
        self._notify()

    def update(self) -> None:
        """Deliver every tick that is due on the injected clock."""

        while self._phase is GamePhase.PLAYING and self._timer.consume():
            self.tick()

    def tick(self) -> None:
        if self._phase is not GamePhase.PLAYING:
            return
        self._time_remaining = max(0, self._time_remaining - 1)
        if self._time_remaining == 0:
            logger.debug("level %d timed out", self._level)
            score = self._scorer.check_match(self._player, self._target)
            self._finish_level(score, trigger=LevelTrigger.TIMEOUT)
        self._notify()

    def check(self) -> int | None:
        """Score the player canvas now. Returns None when not playing."""

        if self._phase is not GamePhase.PLAYING:
            return None
        score = self._scorer.check_match(self._player, self._target)
        self._preview_score = score
        if score >= self._cfg.pass_threshold:
            self._finish_level(score, trigger=LevelTrigger.CHECK)
        elif self._audio is not None:
            self._audio.play_fail()
        self._notify()
        return score

    def click(self, x: float, y: float) -> bool:
        """Apply the selected tool at a normalized point on the player canvas.

        Returns True if the canvas changed; rejected clicks are silent no-ops.
        """

        if self._phase is not GamePhase.PLAYING:
            return False
        block = self._player.find_block_at(x, y)
        if block is None:
            return False

        if self._selected_tool is Tool.PAINT:
            applied = block.set_color(self._selected_color)
        elif self._selected_tool is Tool.SPLIT_HORIZONTAL:
            applied = block.split(Axis.HORIZONTAL, self._cfg.player_split_ratio)
        else:
            applied = block.split(Axis.VERTICAL, self._cfg.player_split_ratio)

        if applied:
            self._preview_score = self._scorer.check_match(self._player, self._target)
            self._notify()
        return applied

    def select_tool(self, tool: Tool | str) -> None:
        self._selected_tool = Tool(tool)
        if self._audio is not None:
            self._audio.play_click()
        self._notify()

    def select_color(self, color: MondrianColor | str) -> None:
        # Picking a swatch also switches to the paint tool.
        self._selected_color = MondrianColor(color)
        self._selected_tool = Tool.PAINT
        if self._audio is not None:
            self._audio.play_click()
        self._notify()

    def reset_player(self) -> bool:
        if self._phase is not GamePhase.PLAYING:
            return False
        self._player = PartitionNode.root()
        self._preview_score = 0
        self._notify()
        return True

    def snapshot(self) -> GameSnapshot:
        return GameSnapshot(
            phase=self._phase,
            level=self._level,
            total_score=self._total_score,
            time_remaining=self._time_remaining,
            selected_tool=self._selected_tool,
            selected_color=self._selected_color,
            preview_score=self._preview_score,
            last_level_score=self._last_level_score,
            player_rects=tuple(self._player.draw_rects()),
            target_rects=tuple(self._target.draw_rects()),
            leaderboard=self._leaderboard,
        )

    def _begin_level(self, level: int) -> None:
        self._level = int(level)
        self._target = self._generator.generate_target(self._level)
        self._player = PartitionNode.root()
        self._time_remaining = self._cfg.level_duration_ticks
        self._preview_score = 0
        self._phase = GamePhase.PLAYING
        self._timer.start()
        logger.debug("level %d started", self._level)

    def _finish_level(self, score: int, *, trigger: LevelTrigger) -> None:
        self._timer.stop()
        self._last_level_score = int(score)
        passed = score >= self._cfg.pass_threshold
        self._outcomes.append(LevelOutcome(level=self._level, score=int(score), passed=passed, trigger=trigger))
        if passed:
            self._advance(score)
        else:
            self._game_over()

    def _advance(self, score: int) -> None:
        self._phase = GamePhase.LEVEL_ADVANCING
        self._total_score += int(score)
        logger.debug("level %d cleared with %d%%", self._level, score)
        self._begin_level(self._level + 1)
        if self._audio is not None:
            self._audio.play_success()

    def _game_over(self) -> None:
        self._phase = GamePhase.GAME_OVER
        logger.info(
            "game over at level %d: level score %s, final score %d",
            self._level,
            self._last_level_score,
            self._total_score,
        )
        if self._scores is not None:
            self._leaderboard = tuple(self._scores.record(self._total_score))

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change()


def build_mondrian_game(
    *,
    clock: Clock,
    seed: int,
    config: GameConfig | None = None,
    audio: AudioCues | None = None,
    scores: ScoreStore | None = None,
    on_change: Callable[[], None] | None = None,
) -> MondrianEngine:
    return MondrianEngine(
        clock=clock,
        seed=seed,
        config=config,
        audio=audio,
        scores=scores,
        on_change=on_change,
    )
