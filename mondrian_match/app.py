"""Pygame UI shell for Mondrian Match.

Two panels side by side: the generated target on the left, the player's
canvas on the right. Split and paint the canvas until it matches, before the
level clock runs out.

Deterministic timing/scoring/RNG/state lives in mondrian_match/* (core modules).
"""

from __future__ import annotations

import logging
import random
import sqlite3
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import pygame

from .audio import MondrianAudio
from .clock import RealClock
from .game import GameConfig, GamePhase, GameSnapshot, MondrianEngine, Tool, build_mondrian_game
from .partition import DrawRect, MondrianColor
from .persistence import LeaderboardEntry, LeaderboardStore, default_db_path
from .results import game_summary_from_engine

logger = logging.getLogger(__name__)

WINDOW_SIZE = (960, 540)
TARGET_FPS = 60
MESSAGE_MS = 2500

SWATCHES: tuple[MondrianColor, ...] = (
    MondrianColor.RED,
    MondrianColor.BLUE,
    MondrianColor.YELLOW,
    MondrianColor.BLACK,
    MondrianColor.WHITE,
)
TOOLS: tuple[tuple[Tool, str], ...] = (
    (Tool.SPLIT_HORIZONTAL, "Split H"),
    (Tool.SPLIT_VERTICAL, "Split V"),
    (Tool.PAINT, "Paint"),
)

_BG = (236, 232, 222)
_INK = (17, 17, 17)
_TEXT_MUTED = (92, 92, 92)
_BUTTON_BG = (250, 248, 242)
_BUTTON_ACTIVE = (17, 17, 17)
_LINE_W = 3


class Screen(Protocol):
    def handle_event(self, event: pygame.event.Event) -> None: ...
    def render(self, surface: pygame.Surface) -> None: ...


class App:
    def __init__(self, surface: pygame.Surface, font: pygame.font.Font) -> None:
        self._surface = surface
        self._font = font
        self._screens: list[Screen] = []
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    @property
    def font(self) -> pygame.font.Font:
        return self._font

    def push(self, screen: Screen) -> None:
        self._screens.append(screen)

    def quit(self) -> None:
        self._running = False

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.QUIT:
            self.quit()
            return
        if not self._screens:
            return
        self._screens[-1].handle_event(event)

    def render(self) -> None:
        if not self._screens:
            return
        self._screens[-1].render(self._surface)


class _SafeScoreStore:
    """Leaderboard access that never ends a session on a storage error."""

    def __init__(self, store: LeaderboardStore) -> None:
        self._store = store

    def entries(self) -> list[LeaderboardEntry]:
        try:
            return self._store.entries()
        except (sqlite3.Error, OSError) as exc:
            logger.warning("could not read leaderboard at %s: %s", self._store.path, exc)
            return []

    def record(self, score: int) -> Sequence[LeaderboardEntry]:
        try:
            return self._store.record(score)
        except (sqlite3.Error, OSError) as exc:
            logger.warning("could not write leaderboard at %s: %s", self._store.path, exc)
            return []


@dataclass(frozen=True, slots=True)
class Layout:
    header: pygame.Rect
    target_panel: pygame.Rect
    player_panel: pygame.Rect
    tool_buttons: tuple[tuple[Tool, pygame.Rect], ...]
    swatches: tuple[tuple[MondrianColor, pygame.Rect], ...]
    check_button: pygame.Rect
    reset_button: pygame.Rect
    modal: pygame.Rect
    modal_button: pygame.Rect


def compute_layout(size: tuple[int, int]) -> Layout:
    """Screen geometry for a surface of ``size``; shared by rendering and hit-testing."""

    w, h = size
    margin = max(12, min(28, w // 36))
    header = pygame.Rect(margin, margin, w - margin * 2, max(36, h // 11))

    toolbar_h = max(44, h // 9)
    panel_top = header.bottom + margin
    panel_side = max(80, min((w - margin * 3) // 2, h - panel_top - toolbar_h - margin * 2))
    gap = w - margin * 2 - panel_side * 2
    target_panel = pygame.Rect(margin, panel_top, panel_side, panel_side)
    player_panel = pygame.Rect(margin + panel_side + gap, panel_top, panel_side, panel_side)

    bar_y = target_panel.bottom + margin
    btn_h = toolbar_h - 8
    btn_w = max(60, min(110, w // 10))
    x = margin
    tools: list[tuple[Tool, pygame.Rect]] = []
    for tool, _ in TOOLS:
        tools.append((tool, pygame.Rect(x, bar_y, btn_w, btn_h)))
        x += btn_w + 8

    x += 12
    swatches: list[tuple[MondrianColor, pygame.Rect]] = []
    for color in SWATCHES:
        swatches.append((color, pygame.Rect(x, bar_y, btn_h, btn_h)))
        x += btn_h + 6

    reset_button = pygame.Rect(w - margin - btn_w, bar_y, btn_w, btn_h)
    check_button = pygame.Rect(reset_button.x - btn_w - 8, bar_y, btn_w, btn_h)

    modal_w = min(w - margin * 4, 520)
    modal_h = min(h - margin * 4, 400)
    modal = pygame.Rect(0, 0, modal_w, modal_h)
    modal.center = (w // 2, h // 2)
    modal_button = pygame.Rect(0, 0, min(modal_w - 40, 280), 46)
    modal_button.midbottom = (modal.centerx, modal.bottom - 20)

    return Layout(
        header=header,
        target_panel=target_panel,
        player_panel=player_panel,
        tool_buttons=tuple(tools),
        swatches=tuple(swatches),
        check_button=check_button,
        reset_button=reset_button,
        modal=modal,
        modal_button=modal_button,
    )


def draw_partition(surface: pygame.Surface, panel: pygame.Rect, rects: Sequence[DrawRect]) -> None:
    """Map unit-square leaf rectangles onto ``panel`` and draw them with Mondrian lines."""

    for r in rects:
        px, py, pw, ph = r.to_percent()
        left = panel.x + int(round(px * panel.w / 100.0))
        top = panel.y + int(round(py * panel.h / 100.0))
        right = panel.x + int(round((px + pw) * panel.w / 100.0))
        bottom = panel.y + int(round((py + ph) * panel.h / 100.0))
        cell = pygame.Rect(left, top, max(1, right - left), max(1, bottom - top))
        pygame.draw.rect(surface, r.color.rgb, cell)
        pygame.draw.rect(surface, _INK, cell, _LINE_W)
    pygame.draw.rect(surface, _INK, panel, _LINE_W + 1)


class MondrianScreen:
    def __init__(
        self,
        app: App,
        *,
        engine_factory: Callable[[], MondrianEngine],
        scores: _SafeScoreStore,
    ) -> None:
        self._app = app
        self._engine = engine_factory()
        self._start_board: tuple[LeaderboardEntry, ...] = tuple(scores.entries())

        self._title_font = pygame.font.Font(None, 48)
        self._mid_font = pygame.font.Font(None, 32)
        self._small_font = pygame.font.Font(None, 24)

        self._message: str | None = None
        self._message_until_ms = 0

    @property
    def engine(self) -> MondrianEngine:
        return self._engine

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.KEYDOWN:
            self._handle_key(event.key)
            return
        if event.type == pygame.MOUSEBUTTONDOWN and getattr(event, "button", 0) == 1:
            pos = getattr(event, "pos", None)
            if pos is not None:
                self._handle_click(pos)

    def _handle_key(self, key: int) -> None:
        phase = self._engine.phase
        if key == pygame.K_ESCAPE:
            self._app.quit()
            return
        if key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
            if phase is not GamePhase.PLAYING:
                self._engine.start()
            return
        if key == pygame.K_h:
            self._engine.select_tool(Tool.SPLIT_HORIZONTAL)
        elif key == pygame.K_v:
            self._engine.select_tool(Tool.SPLIT_VERTICAL)
        elif key == pygame.K_p:
            self._engine.select_tool(Tool.PAINT)
        elif pygame.K_1 <= key <= pygame.K_5:
            self._engine.select_color(SWATCHES[key - pygame.K_1])
        elif key == pygame.K_c:
            self._check()
        elif key == pygame.K_r:
            self._engine.reset_player()

    def _handle_click(self, pos: tuple[int, int]) -> None:
        layout = compute_layout(pygame.display.get_surface().get_size())
        if self._engine.phase is not GamePhase.PLAYING:
            if layout.modal_button.collidepoint(pos):
                self._engine.start()
            return

        if layout.player_panel.collidepoint(pos):
            panel = layout.player_panel
            x = (pos[0] - panel.x) / float(panel.w)
            y = (pos[1] - panel.y) / float(panel.h)
            self._engine.click(x, y)
            return
        for tool, rect in layout.tool_buttons:
            if rect.collidepoint(pos):
                self._engine.select_tool(tool)
                return
        for color, rect in layout.swatches:
            if rect.collidepoint(pos):
                self._engine.select_color(color)
                return
        if layout.check_button.collidepoint(pos):
            self._check()
        elif layout.reset_button.collidepoint(pos):
            self._engine.reset_player()

    def _check(self) -> None:
        level = self._engine.level
        score = self._engine.check()
        if score is None:
            return
        if self._engine.level > level:
            self._flash(f"Level {level} cleared with {score}%!")
        else:
            threshold = self._engine.config.pass_threshold
            self._flash(f"Score: {score}%. You need at least {threshold}% to pass.")

    def _flash(self, message: str) -> None:
        self._message = message
        self._message_until_ms = pygame.time.get_ticks() + MESSAGE_MS

    def render(self, surface: pygame.Surface) -> None:
        self._engine.update()
        snap = self._engine.snapshot()
        layout = compute_layout(surface.get_size())

        surface.fill(_BG)
        self._render_header(surface, layout, snap)

        draw_partition(surface, layout.target_panel, snap.target_rects)
        draw_partition(surface, layout.player_panel, snap.player_rects)
        self._render_panel_label(surface, layout.target_panel, "Target")
        self._render_panel_label(surface, layout.player_panel, "Your canvas")
        self._render_toolbar(surface, layout, snap)

        if snap.phase is GamePhase.NOT_STARTED:
            self._render_start(surface, layout)
        elif snap.phase is GamePhase.GAME_OVER:
            self._render_game_over(surface, layout, snap)
        elif self._message is not None and pygame.time.get_ticks() < self._message_until_ms:
            text = self._mid_font.render(self._message, True, _INK)
            box = text.get_rect(midtop=(surface.get_width() // 2, layout.target_panel.y + 8))
            pygame.draw.rect(surface, _BUTTON_BG, box.inflate(20, 12))
            pygame.draw.rect(surface, _INK, box.inflate(20, 12), 2)
            surface.blit(text, box)

    def _render_header(self, surface: pygame.Surface, layout: Layout, snap: GameSnapshot) -> None:
        header = layout.header
        pygame.draw.rect(surface, _BUTTON_BG, header)
        pygame.draw.rect(surface, _INK, header, 2)

        title = self._app.font.render("MONDRIAN MATCH", True, _INK)
        surface.blit(title, (header.x + 12, header.y + (header.h - title.get_height()) // 2))

        stats = (
            f"Level {snap.level}   Time {snap.time_remaining}s   "
            f"Total {snap.total_score}   Match {snap.preview_score}%"
        )
        text = self._small_font.render(stats, True, _INK)
        surface.blit(text, text.get_rect(midright=(header.right - 12, header.centery)))

    def _render_panel_label(self, surface: pygame.Surface, panel: pygame.Rect, label: str) -> None:
        text = self._small_font.render(label, True, _TEXT_MUTED)
        surface.blit(text, text.get_rect(bottomleft=(panel.x, panel.y - 2)))

    def _render_toolbar(self, surface: pygame.Surface, layout: Layout, snap: GameSnapshot) -> None:
        labels = dict(TOOLS)
        for tool, rect in layout.tool_buttons:
            self._render_button(surface, rect, labels[tool], active=tool is snap.selected_tool)

        for color, rect in layout.swatches:
            pygame.draw.rect(surface, color.rgb, rect)
            width = 4 if color is snap.selected_color else 1
            pygame.draw.rect(surface, _INK, rect, width)

        self._render_button(surface, layout.check_button, "Check", active=False)
        self._render_button(surface, layout.reset_button, "Reset", active=False)

    def _render_button(self, surface: pygame.Surface, rect: pygame.Rect, label: str, *, active: bool) -> None:
        bg = _BUTTON_ACTIVE if active else _BUTTON_BG
        fg = _BUTTON_BG if active else _INK
        pygame.draw.rect(surface, bg, rect)
        pygame.draw.rect(surface, _INK, rect, 2)
        text = self._small_font.render(label, True, fg)
        surface.blit(text, text.get_rect(center=rect.center))

    def _render_modal(self, surface: pygame.Surface, layout: Layout, title: str, lines: list[str], button: str) -> None:
        shade = pygame.Surface(surface.get_size(), pygame.SRCALPHA)
        shade.fill((0, 0, 0, 140))
        surface.blit(shade, (0, 0))

        pygame.draw.rect(surface, _BUTTON_BG, layout.modal)
        pygame.draw.rect(surface, _INK, layout.modal, 3)

        head = self._title_font.render(title, True, _INK)
        surface.blit(head, head.get_rect(midtop=(layout.modal.centerx, layout.modal.y + 18)))

        y = layout.modal.y + 30 + head.get_height()
        for line in lines:
            text = self._small_font.render(line, True, _INK)
            surface.blit(text, text.get_rect(midtop=(layout.modal.centerx, y)))
            y += text.get_height() + 6

        self._render_button(surface, layout.modal_button, button, active=True)

    def _render_start(self, surface: pygame.Surface, layout: Layout) -> None:
        threshold = self._engine.config.pass_threshold
        seconds = self._engine.config.level_duration_ticks
        lines = [
            "Recreate the target on your canvas.",
            "Split blocks (H / V) and paint them (1-5).",
            f"Reach {threshold}% before the {seconds}s clock runs out.",
            "C: check now   R: reset canvas",
        ]
        lines.extend(self._leaderboard_lines(self._start_board))
        self._render_modal(surface, layout, "Mondrian Match", lines, "Start (Enter)")

    def _render_game_over(self, surface: pygame.Surface, layout: Layout, snap: GameSnapshot) -> None:
        summary = game_summary_from_engine(self._engine)
        level_score = "-" if snap.last_level_score is None else f"{snap.last_level_score}%"
        lines = [
            f"Level Score: {level_score} (Failed)",
            f"Final Total Score: {summary.final_score}",
            f"Levels cleared: {summary.levels_cleared}",
        ]
        lines.extend(self._leaderboard_lines(snap.leaderboard))
        self._render_modal(surface, layout, "Game Over", lines, "Continue Challenge")

    @staticmethod
    def _leaderboard_lines(board: Sequence[LeaderboardEntry]) -> list[str]:
        if not board:
            return []
        lines = ["", "Leaderboard"]
        for idx, entry in enumerate(board):
            lines.append(f"#{idx + 1}  {entry.score} pts  {entry.date}")
        return lines


def _new_seed() -> int:
    return random.SystemRandom().randint(1, 2**31 - 1)


def run(
    *,
    max_frames: int | None = None,
    event_injector: Callable[[int], None] | None = None,
    db_path: Path | None = None,
) -> int:
    pygame.mixer.pre_init(frequency=22050, size=-16, channels=1, buffer=512)
    pygame.init()

    pygame.display.set_caption("Mondrian Match")
    surface = pygame.display.set_mode(WINDOW_SIZE, pygame.RESIZABLE)

    font = pygame.font.Font(None, 36)
    clock = pygame.time.Clock()

    app = App(surface=surface, font=font)

    config = GameConfig()
    scores = _SafeScoreStore(
        LeaderboardStore(db_path or default_db_path(), size=config.leaderboard_size)
    )
    audio = MondrianAudio()
    real_clock = RealClock()

    app.push(
        MondrianScreen(
            app,
            engine_factory=lambda: build_mondrian_game(
                clock=real_clock,
                seed=_new_seed(),
                config=config,
                audio=audio,
                scores=scores,
            ),
            scores=scores,
        )
    )

    frame = 0
    try:
        while app.running:
            if event_injector is not None:
                event_injector(frame)

            for event in pygame.event.get():
                app.handle_event(event)

            app.render()

            pygame.display.flip()

            frame += 1
            if max_frames is not None and frame >= max_frames:
                break

            clock.tick(TARGET_FPS)
    finally:
        audio.stop()
        pygame.quit()

    return 0
