from __future__ import annotations

from dataclasses import dataclass

from .game import LevelOutcome, MondrianEngine


@dataclass(frozen=True, slots=True)
class GameSummary:
    """End-of-game summary derived from the engine's level history."""

    seed: int
    final_score: int
    level_reached: int
    levels_cleared: int
    best_level_score: int | None
    mean_level_score: float | None

    outcomes: list[LevelOutcome]


def game_summary_from_engine(engine: MondrianEngine) -> GameSummary:
    outcomes = engine.outcomes()
    scores = [o.score for o in outcomes]

    best: int | None
    mean: float | None
    if not scores:
        best = None
        mean = None
    else:
        best = max(scores)
        mean = float(sum(scores)) / float(len(scores))

    return GameSummary(
        seed=int(engine.seed),
        final_score=int(engine.total_score),
        level_reached=int(engine.level),
        levels_cleared=sum(1 for o in outcomes if o.passed),
        best_level_score=best,
        mean_level_score=mean,
        outcomes=outcomes,
    )
