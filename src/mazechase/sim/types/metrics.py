from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple


@dataclass(slots=True)
class GenerationSummary:
    generation: int
    ticks: int
    escapers: int
    escapers_alive: int
    escapers_escaped: int
    pursuers: int
    best_escaper_fitness: float
    best_pursuer_fitness: float
    average_escaper_fitness: float
    average_pursuer_fitness: float
    orbs_collected: int
    reseeded: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(slots=True)
class TickMetrics:
    tick: int
    generation: int
    escapers_alive: int
    pursuers_alive: int
    doors_open: int
    doors_toggled: int
    combat_hits: int
    evolved: bool = False
    summary: Optional[GenerationSummary] = None
    tick_duration_ms: float = 0.0
