from __future__ import annotations

import math
import random
from dataclasses import dataclass

import pygame

from .session import Celebration

# canvas-confetti style burst.
PARTICLE_COUNT = 100
SPREAD_DEG = 70.0
ORIGIN_Y = 0.6
COLORS: tuple[tuple[int, int, int], ...] = (
    (0xFF, 0x6B, 0x6B),
    (0x4E, 0xCD, 0xC4),
    (0xFF, 0xE6, 0x6D),
)

GRAVITY = 1.1  # normalized units / s^2
DRAG = 0.90  # velocity kept per second
LIFETIME_S = 2.4

SUSTAINED_DURATION_S = 3.0
SUSTAINED_INTERVAL_S = 0.25
SUSTAINED_PARTICLES = 40


@dataclass(slots=True)
class Particle:
    x: float
    y: float
    vx: float
    vy: float
    color: tuple[int, int, int]
    size: float
    age_s: float = 0.0

    @property
    def alpha(self) -> float:
        return max(0.0, 1.0 - (self.age_s / LIFETIME_S))


class Confetti:
    """Particle bursts in normalized screen space (0..1 on both axes).

    ``trigger`` is handed to the session as its celebration callback; it only
    schedules particles. ``update`` advances them and ``draw`` paints them.
    """

    def __init__(self, *, seed: int = 0xC0F) -> None:
        self._rng = random.Random(seed)
        self._particles: list[Particle] = []
        self._sustain_left_s = 0.0
        self._next_sustain_s = 0.0

    @property
    def particles(self) -> list[Particle]:
        return list(self._particles)

    @property
    def active(self) -> bool:
        return bool(self._particles) or self._sustain_left_s > 0.0

    def trigger(self, celebration: Celebration) -> None:
        if celebration is Celebration.BURST:
            self._burst(origin_x=0.5, origin_y=ORIGIN_Y, count=PARTICLE_COUNT, angle_deg=90.0)
        elif celebration is Celebration.SUSTAINED:
            self._burst(origin_x=0.5, origin_y=ORIGIN_Y, count=PARTICLE_COUNT, angle_deg=90.0)
            self._sustain_left_s = SUSTAINED_DURATION_S
            self._next_sustain_s = SUSTAINED_INTERVAL_S

    def clear(self) -> None:
        self._particles.clear()
        self._sustain_left_s = 0.0
        self._next_sustain_s = 0.0

    def update(self, dt: float) -> None:
        dt = max(0.0, float(dt))
        if self._sustain_left_s > 0.0:
            self._sustain_left_s = max(0.0, self._sustain_left_s - dt)
            self._next_sustain_s -= dt
            while self._next_sustain_s <= 0.0 and self._sustain_left_s > 0.0:
                # Alternate side cannons, angled inward.
                left = self._rng.random() < 0.5
                self._burst(
                    origin_x=0.0 if left else 1.0,
                    origin_y=0.65,
                    count=SUSTAINED_PARTICLES,
                    angle_deg=60.0 if left else 120.0,
                )
                self._next_sustain_s += SUSTAINED_INTERVAL_S

        drag = DRAG**dt
        alive: list[Particle] = []
        for p in self._particles:
            p.age_s += dt
            if p.age_s >= LIFETIME_S or p.y > 1.2:
                continue
            p.vx *= drag
            p.vy = (p.vy * drag) + (GRAVITY * dt)
            p.x += p.vx * dt
            p.y += p.vy * dt
            alive.append(p)
        self._particles = alive

    def draw(self, surface: pygame.Surface) -> None:
        if not self._particles:
            return
        w, h = surface.get_size()
        for p in self._particles:
            side = max(2, int(round(p.size * min(w, h))))
            shade = p.alpha
            color = tuple(int(c * shade + 247 * (1.0 - shade)) for c in p.color)
            pygame.draw.rect(surface, color, pygame.Rect(int(p.x * w), int(p.y * h), side, side))

    def _burst(self, *, origin_x: float, origin_y: float, count: int, angle_deg: float) -> None:
        half = SPREAD_DEG / 2.0
        for _ in range(count):
            theta = math.radians(angle_deg + self._rng.uniform(-half, half))
            speed = self._rng.uniform(0.55, 1.05)
            self._particles.append(
                Particle(
                    x=origin_x,
                    y=origin_y,
                    vx=math.cos(theta) * speed,
                    vy=-math.sin(theta) * speed,
                    color=self._rng.choice(COLORS),
                    size=self._rng.uniform(0.008, 0.014),
                )
            )
