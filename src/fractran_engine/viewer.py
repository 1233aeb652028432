"""Optional pygame board: one column of beads per prime register.

Keys: space play/pause, right step, left scrub back, r reset, up/down speed,
+/- on the selected column edits the initial state (step 0 only), tab selects
the next editable column.
"""

from __future__ import annotations

import time
from typing import Optional, Tuple

from .animation import AnimationPhase
from .engine import FractranEngine

Color = Tuple[int, int, int]

BG: Color = (0, 0, 0)
COLUMN_BG: Color = (26, 26, 26)
COLUMN_EDITABLE: Color = (40, 40, 70)
BEAD: Color = (230, 230, 230)
CONSUME: Color = (255, 80, 80)
PRODUCE: Color = (120, 255, 120)
SCAN: Color = (255, 220, 80)
ACTIVE: Color = (0, 255, 255)
TEXT: Color = (245, 245, 245)
HALT: Color = (255, 80, 80)

PANEL_WIDTH = 180
MAX_BEADS = 12


class BoardViewer:
    def __init__(
        self,
        engine: FractranEngine,
        *,
        cell_size: int = 24,
        render_fps: float = 60.0,
        columns: int = 8,
    ) -> None:
        import pygame

        self.engine = engine
        self.cell_size = cell_size
        self.render_fps = render_fps
        self.selected = 0
        self.closed = False
        self._last_render_wall = time.perf_counter()

        pygame.init()
        self._pygame = pygame
        self.width = columns * cell_size * 2 + PANEL_WIDTH
        self.height = (MAX_BEADS + 4) * cell_size
        self._screen = pygame.display.set_mode((self.width, self.height))
        pygame.display.set_caption("FRACTRAN")
        self._font = pygame.font.SysFont(None, 18)

    # ---------- input ----------
    def _pump_events(self) -> None:
        pg = self._pygame
        for event in pg.event.get():
            if event.type == pg.QUIT:
                self.closed = True
            elif event.type == pg.KEYDOWN:
                self.handle_key(event.key)

    def handle_key(self, key: int) -> None:
        pg = self._pygame
        eng = self.engine
        if key == pg.K_SPACE:
            eng.set_playing(not eng.playing)
        elif key == pg.K_RIGHT:
            eng.step()
        elif key == pg.K_LEFT:
            eng.scrub(eng.cursor - 1)
        elif key == pg.K_r:
            eng.reset()
        elif key == pg.K_UP:
            eng.set_speed(eng.speed + 10)
        elif key == pg.K_DOWN:
            eng.set_speed(eng.speed - 10)
        elif key == pg.K_TAB and eng.editable_primes:
            self.selected = (self.selected + 1) % len(eng.editable_primes)
        elif key in (pg.K_PLUS, pg.K_EQUALS, pg.K_KP_PLUS) and eng.editable_primes:
            eng.edit_register(eng.editable_primes[self.selected], 1)
        elif key in (pg.K_MINUS, pg.K_KP_MINUS) and eng.editable_primes:
            eng.edit_register(eng.editable_primes[self.selected], -1)
        elif key in (pg.K_ESCAPE, pg.K_q):
            self.closed = True

    # ---------- rendering ----------
    def _maybe_render(self, force: bool = False) -> None:
        now = time.perf_counter()
        if force or self.render_fps <= 0 or now - self._last_render_wall >= 1.0 / self.render_fps:
            self.draw_frame()
            self._last_render_wall = now

    def _column_tint(self, prime: int) -> Optional[Color]:
        rule = self.engine.active_rule
        phase = self.engine.phase
        if rule is None:
            return None
        if phase is AnimationPhase.CONSUMING and prime in rule.denominator_factors:
            return CONSUME
        if phase is AnimationPhase.PRODUCING and prime in rule.numerator_factors:
            return PRODUCE
        return None

    def _draw_columns(self) -> None:
        pg = self._pygame
        eng = self.engine
        primes = eng.used_primes
        if not primes:
            return
        area = self.width - PANEL_WIDTH
        col_w = max(8, area // len(primes))
        cs = self.cell_size
        top = 2 * cs
        editable = eng.editable_primes
        selected = editable[self.selected] if editable else None

        for i, prime in enumerate(primes):
            x = i * col_w
            bg = COLUMN_EDITABLE if prime in editable else COLUMN_BG
            rect = pg.Rect(x + 2, top, col_w - 4, MAX_BEADS * cs)
            pg.draw.rect(self._screen, bg, rect)
            tint = self._column_tint(prime)
            if tint is not None:
                pg.draw.rect(self._screen, tint, rect, width=2)
            if prime == selected and eng.state.step == 0:
                pg.draw.rect(self._screen, ACTIVE, rect, width=1)

            count = eng.state.exponent(prime)
            r = max(2, min(col_w, cs) // 3)
            for k in range(min(count, MAX_BEADS)):
                cy = top + MAX_BEADS * cs - k * cs - cs // 2
                pg.draw.circle(self._screen, BEAD, (x + col_w // 2, cy), r)

            label = self._font.render(f"{prime}:{count}", True, TEXT)
            self._screen.blit(label, (x + 4, top + MAX_BEADS * cs + 4))

    def _draw_program(self) -> None:
        pg = self._pygame
        eng = self.engine
        x0 = self.width - PANEL_WIDTH + 8
        line_h = 20
        scanning = eng.scanning_index if eng.phase is AnimationPhase.SCANNING else None
        active = eng.active_rule_index
        if active is None and eng.phase is AnimationPhase.IDLE:
            active = eng.state.last_rule_index

        for i, rule in enumerate(eng.program):
            y = 2 * self.cell_size + i * line_h
            if y + line_h > self.height:
                break
            color = TEXT
            if i == scanning:
                color = SCAN
                pg.draw.rect(self._screen, SCAN, pg.Rect(x0 - 4, y - 2, PANEL_WIDTH - 12, line_h), width=1)
            elif i == active:
                color = ACTIVE
                pg.draw.rect(self._screen, ACTIVE, pg.Rect(x0 - 4, y - 2, PANEL_WIDTH - 12, line_h), width=1)
            self._screen.blit(self._font.render(f"{i:2d}  {rule}", True, color), (x0, y))

    def draw_frame(self) -> None:
        eng = self.engine
        self._screen.fill(BG)
        self._draw_columns()
        self._draw_program()

        forecast = "?" if eng.total_steps is None else str(eng.total_steps)
        status = (
            f"step={eng.state.step}/{forecast} n={eng.value_text} "
            f"phase={eng.phase.value} speed={eng.speed:g} "
            f"hist={eng.cursor + 1}/{len(eng.history)}"
        )
        txt = self._font.render(status, True, HALT if eng.state.halted else TEXT)
        self._screen.blit(txt, (6, 6))
        if eng.events:
            last = list(eng.events)[-1]
            self._screen.blit(self._font.render(f"[{last.step}] {last.message}", True, TEXT), (6, 22))

        self._pygame.display.flip()

    # ---------- loop ----------
    def _on_idle(self) -> None:
        self._pump_events()
        self._maybe_render()

    def run(self) -> None:
        self.engine.scheduler.run_until(lambda: self.closed, on_idle=self._on_idle)

    def close(self) -> None:
        self.engine.stop()
        self._pygame.quit()
