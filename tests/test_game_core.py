from __future__ import annotations

import random
from dataclasses import dataclass, field

import pytest

from mondrian_match.game import (
    GameConfig,
    GamePhase,
    LevelOutcome,
    LevelTrigger,
    MondrianEngine,
    Tool,
    build_mondrian_game,
)
from mondrian_match.generator import LevelGenerator
from mondrian_match.partition import Axis, MondrianColor, PartitionNode
from mondrian_match.persistence import LeaderboardEntry
from mondrian_match.scoring import SimilarityScorer


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += float(dt)


@dataclass
class FixedScorer:
    score: int
    calls: int = 0

    def check_match(self, player: PartitionNode, target: PartitionNode) -> int:
        self.calls += 1
        return self.score


@dataclass
class RecordingAudio:
    cues: list[str] = field(default_factory=list)

    def play_click(self) -> None:
        self.cues.append("click")

    def play_success(self) -> None:
        self.cues.append("success")

    def play_fail(self) -> None:
        self.cues.append("fail")


@dataclass
class MemoryScoreStore:
    recorded: list[int] = field(default_factory=list)

    def record(self, score: int) -> list[LeaderboardEntry]:
        self.recorded.append(score)
        ordered = sorted(self.recorded, reverse=True)[:5]
        return [LeaderboardEntry(score=s, date="2026-01-01") for s in ordered]


def _engine(score: int) -> tuple[MondrianEngine, FakeClock, FixedScorer, RecordingAudio, MemoryScoreStore]:
    clock = FakeClock()
    scorer = FixedScorer(score)
    audio = RecordingAudio()
    store = MemoryScoreStore()
    engine = MondrianEngine(clock=clock, seed=123, scorer=scorer, audio=audio, scores=store)
    return engine, clock, scorer, audio, store


def _run_out_clock(engine: MondrianEngine) -> None:
    for _ in range(engine.config.level_duration_ticks):
        engine.tick()


def test_initial_state_is_not_started_and_inert() -> None:
    engine, _, scorer, _, _ = _engine(90)

    assert engine.phase is GamePhase.NOT_STARTED
    assert engine.level == 1
    assert engine.total_score == 0
    assert engine.time_remaining == 30
    assert engine.selected_tool is Tool.PAINT
    assert engine.selected_color is MondrianColor.RED
    assert not engine.timer_running

    engine.tick()
    assert engine.time_remaining == 30
    assert engine.click(0.5, 0.5) is False
    assert engine.check() is None
    assert engine.reset_player() is False
    assert scorer.calls == 0


def test_start_enters_playing_with_fresh_trees() -> None:
    engine, _, _, _, _ = _engine(10)
    engine.start()

    assert engine.phase is GamePhase.PLAYING
    assert engine.level == 1
    assert engine.total_score == 0
    assert engine.time_remaining == 30
    assert engine.timer_running
    assert not engine.target_tree.is_leaf
    assert engine.player_tree.is_leaf
    assert engine.player_tree.color is MondrianColor.WHITE


def test_start_is_ignored_while_playing() -> None:
    engine, _, _, _, _ = _engine(10)
    engine.start()
    target = engine.target_tree
    engine.tick()

    engine.start()
    assert engine.target_tree is target
    assert engine.time_remaining == 29


def test_timeout_below_threshold_ends_game_and_persists_total() -> None:
    engine, _, scorer, audio, store = _engine(45)
    engine.start()

    for _ in range(29):
        engine.tick()
    assert engine.phase is GamePhase.PLAYING
    assert engine.time_remaining == 1
    assert scorer.calls == 0

    engine.tick()
    assert engine.phase is GamePhase.GAME_OVER
    assert engine.time_remaining == 0
    assert engine.level == 1
    assert engine.total_score == 0
    assert engine.last_level_score == 45
    assert not engine.timer_running
    assert store.recorded == [0]
    assert engine.leaderboard == (LeaderboardEntry(score=0, date="2026-01-01"),)
    assert engine.outcomes() == [LevelOutcome(level=1, score=45, passed=False, trigger=LevelTrigger.TIMEOUT)]
    assert "success" not in audio.cues


def test_timeout_at_or_above_threshold_advances_level() -> None:
    engine, _, _, audio, store = _engine(75)
    engine.start()
    old_target = engine.target_tree
    engine.player_tree.split(Axis.VERTICAL, 0.5)
    old_player = engine.player_tree

    _run_out_clock(engine)

    assert engine.phase is GamePhase.PLAYING
    assert engine.level == 2
    assert engine.total_score == 75
    assert engine.time_remaining == 30
    assert engine.timer_running
    assert engine.target_tree is not old_target
    assert not engine.target_tree.is_leaf
    assert engine.player_tree is not old_player
    assert engine.player_tree.is_leaf
    assert audio.cues == ["success"]
    assert store.recorded == []
    assert engine.outcomes() == [LevelOutcome(level=1, score=75, passed=True, trigger=LevelTrigger.TIMEOUT)]


def test_score_equal_to_threshold_passes() -> None:
    engine, _, _, _, _ = _engine(60)
    engine.start()
    _run_out_clock(engine)
    assert engine.phase is GamePhase.PLAYING
    assert engine.level == 2


def test_scores_accumulate_across_levels_until_failure() -> None:
    engine, _, scorer, _, store = _engine(80)
    engine.start()
    _run_out_clock(engine)
    _run_out_clock(engine)
    assert engine.level == 3
    assert engine.total_score == 160

    scorer.score = 20
    _run_out_clock(engine)
    assert engine.phase is GamePhase.GAME_OVER
    assert engine.level == 3
    assert engine.total_score == 160
    assert store.recorded == [160]


def test_manual_check_pass_advances_without_waiting() -> None:
    engine, _, _, audio, _ = _engine(88)
    engine.start()
    engine.tick()
    engine.tick()

    assert engine.check() == 88
    assert engine.phase is GamePhase.PLAYING
    assert engine.level == 2
    assert engine.total_score == 88
    assert engine.time_remaining == 30
    assert audio.cues == ["success"]
    assert engine.outcomes()[-1].trigger is LevelTrigger.CHECK


def test_manual_check_fail_changes_nothing_but_plays_fail_cue() -> None:
    engine, _, _, audio, store = _engine(41)
    engine.start()
    engine.tick()
    target = engine.target_tree

    assert engine.check() == 41
    assert engine.phase is GamePhase.PLAYING
    assert engine.level == 1
    assert engine.total_score == 0
    assert engine.time_remaining == 29
    assert engine.target_tree is target
    assert engine.timer_running
    assert audio.cues == ["fail"]
    assert engine.outcomes() == []
    assert store.recorded == []


def test_click_applies_selected_tool_to_leaf_under_point() -> None:
    engine, _, _, _, _ = _engine(10)
    engine.start()

    engine.select_tool(Tool.SPLIT_VERTICAL)
    assert engine.click(0.3, 0.3) is True
    left, right = engine.player_tree.children
    assert engine.player_tree.axis is Axis.VERTICAL
    assert left.rect.width == pytest.approx(0.5)

    engine.select_tool(Tool.SPLIT_HORIZONTAL)
    assert engine.click(0.75, 0.8) is True
    assert right.axis is Axis.HORIZONTAL
    assert left.is_leaf

    engine.select_color(MondrianColor.BLUE)
    assert engine.click(0.75, 0.9) is True
    assert right.children[1].color is MondrianColor.BLUE
    assert right.children[0].color is MondrianColor.WHITE


def test_click_outside_resolvable_area_is_a_silent_noop() -> None:
    engine, _, _, _, _ = _engine(10)
    engine.start()
    engine.select_tool("split-horizontal")
    assert engine.click(0.5, 0.5) is True

    before = engine.player_tree.to_dict()
    assert engine.click(1.5, 0.5) is False
    assert engine.player_tree.to_dict() == before


def test_click_updates_preview_score() -> None:
    engine, _, scorer, _, _ = _engine(33)
    engine.start()
    assert engine.preview_score == 0
    engine.click(0.5, 0.5)
    assert engine.preview_score == 33
    assert scorer.calls == 1
    assert engine.phase is GamePhase.PLAYING


def test_select_color_switches_to_paint_tool_and_clicks() -> None:
    engine, _, _, audio, _ = _engine(10)
    engine.select_tool(Tool.SPLIT_HORIZONTAL)
    engine.select_color("#FFD100")

    assert engine.selected_color is MondrianColor.YELLOW
    assert engine.selected_tool is Tool.PAINT
    assert audio.cues == ["click", "click"]


def test_unknown_tool_or_color_is_rejected() -> None:
    engine, _, _, _, _ = _engine(10)
    with pytest.raises(ValueError):
        engine.select_tool("erase")
    with pytest.raises(ValueError):
        engine.select_color("#00FF00")


def test_reset_player_replaces_canvas_only() -> None:
    engine, _, _, _, _ = _engine(10)
    engine.start()
    engine.tick()
    target = engine.target_tree
    engine.select_tool(Tool.SPLIT_VERTICAL)
    engine.click(0.2, 0.2)

    assert engine.reset_player() is True
    assert engine.player_tree.is_leaf
    assert engine.target_tree is target
    assert engine.time_remaining == 29
    assert engine.preview_score == 0


def test_interaction_is_ignored_after_game_over() -> None:
    engine, _, _, _, _ = _engine(5)
    engine.start()
    _run_out_clock(engine)
    assert engine.phase is GamePhase.GAME_OVER

    player = engine.player_tree.to_dict()
    assert engine.click(0.5, 0.5) is False
    assert engine.check() is None
    engine.tick()
    assert engine.player_tree.to_dict() == player
    assert engine.phase is GamePhase.GAME_OVER


def test_restart_after_game_over_resets_to_level_one() -> None:
    engine, _, scorer, _, _ = _engine(70)
    engine.start()
    _run_out_clock(engine)
    scorer.score = 10
    _run_out_clock(engine)
    assert engine.phase is GamePhase.GAME_OVER
    assert engine.total_score == 70

    engine.start()
    assert engine.phase is GamePhase.PLAYING
    assert engine.level == 1
    assert engine.total_score == 0
    assert engine.time_remaining == 30
    assert engine.last_level_score is None
    assert engine.outcomes() == []
    assert engine.timer_running


def test_update_delivers_due_ticks_from_clock() -> None:
    engine, clock, _, _, _ = _engine(10)
    engine.start()

    clock.advance(0.5)
    engine.update()
    assert engine.time_remaining == 30

    clock.advance(0.5)
    engine.update()
    assert engine.time_remaining == 29

    clock.advance(5.0)
    engine.update()
    assert engine.time_remaining == 24


def test_level_transition_restarts_timer_without_stale_ticks() -> None:
    engine, clock, _, _, _ = _engine(90)
    engine.start()

    clock.advance(30.0)
    engine.update()
    assert engine.level == 2
    assert engine.time_remaining == 30

    clock.advance(40.0)
    engine.update()
    assert engine.level == 3
    assert engine.time_remaining == 30


def test_timer_restarts_once_per_entry_into_playing() -> None:
    engine, clock, scorer, _, _ = _engine(90)
    assert engine.timer_starts == 0

    engine.start()
    assert engine.timer_starts == 1
    engine.start()
    assert engine.timer_starts == 1

    assert engine.check() == 90
    assert engine.level == 2
    assert engine.timer_starts == 2

    scorer.score = 10
    clock.advance(30.0)
    engine.update()
    assert engine.phase is GamePhase.GAME_OVER
    assert engine.timer_starts == 2

    engine.start()
    assert engine.level == 1
    assert engine.timer_starts == 3


@pytest.mark.parametrize("seed", [3, 17, 29, 101, 2024])
def test_seeded_level_one_target_against_blank_canvas(seed: int) -> None:
    engine = MondrianEngine(
        clock=FakeClock(),
        seed=seed,
        generator=LevelGenerator(rng=random.Random(seed)),
        scorer=SimilarityScorer(rng=random.Random(seed + 1)),
    )
    engine.start()

    target = engine.target_tree
    assert engine.level == 1
    assert not target.is_leaf
    first, second = target.children
    if target.axis is Axis.VERTICAL:
        assert 0.3 <= first.rect.width <= 0.7
    else:
        assert 0.3 <= first.rect.height <= 0.7
    assert first.rect.area + second.rect.area == pytest.approx(1.0)
    assert max(leaf.depth for leaf in target.iter_leaves()) <= 2

    assert engine.player_tree.is_leaf
    score = engine.check()
    assert score is not None
    if all(leaf.color is MondrianColor.WHITE for leaf in target.iter_leaves()):
        assert score == 100
    else:
        assert score < 100


def test_on_change_fires_after_mutations() -> None:
    changes: list[GamePhase] = []
    engine: MondrianEngine | None = None

    def on_change() -> None:
        assert engine is not None
        changes.append(engine.phase)

    engine = MondrianEngine(clock=FakeClock(), seed=1, scorer=FixedScorer(0), on_change=on_change)
    engine.start()
    engine.tick()
    assert changes == [GamePhase.PLAYING, GamePhase.PLAYING]


def test_snapshot_exposes_drawable_panels() -> None:
    engine, _, _, _, _ = _engine(10)
    engine.start()
    snap = engine.snapshot()

    assert snap.phase is GamePhase.PLAYING
    assert snap.level == 1
    assert len(snap.player_rects) == 1
    assert len(snap.target_rects) == len(list(engine.target_tree.iter_leaves()))
    assert sum(r.width * r.height for r in snap.target_rects) == pytest.approx(1.0)


def test_same_seed_same_targets_and_scores() -> None:
    e1 = build_mondrian_game(clock=FakeClock(), seed=777)
    e2 = build_mondrian_game(clock=FakeClock(), seed=777)
    e1.start()
    e2.start()

    assert e1.target_tree.to_dict() == e2.target_tree.to_dict()
    assert e1.check() == e2.check()


@pytest.mark.parametrize(
    "config",
    [
        GameConfig(level_duration_ticks=0),
        GameConfig(tick_period_s=0.0),
        GameConfig(pass_threshold=101),
        GameConfig(sample_count=0),
        GameConfig(player_split_ratio=1.0),
    ],
)
def test_invalid_config_is_rejected(config: GameConfig) -> None:
    with pytest.raises(ValueError):
        MondrianEngine(clock=FakeClock(), seed=1, config=config)
