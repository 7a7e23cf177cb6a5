"""
Stat Allocation Optimizer

Finds the stat vector that maximizes an objective (AR, spell power or skill
damage) when a fixed number of points can be spread over the free stats.

The main search is a greedy hill-climb over +1 steps:
  1. Start every stat at its minimum
  2. Try +1 on each free stat below its max and measure the gain
  3. Commit the best gain (ties go to str, dex, int, fai, arc in that order)
  4. Stop when the budget is spent, every stat is at max, or no step helps

Scaling curves make the objective non-convex, so the greedy result can be a
local optimum. solve_two_stat_exact, find_optimal_stats_multistart and
find_optimal_stats_dp trade time for better answers.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np

from models import (
    GameData, PlayerStats, StatConfig, CalculatorOptions, Stat, ALL_STATS,
)
from weapon_resolver import resolve_weapon
from ar_calculator import calculate_ar
from skill_calculator import compute_skill_damage


Objective = Callable[[PlayerStats], float]

# Stat levels where common curves change segment
CURVE_BREAKPOINTS = [15, 16, 18, 20, 25, 30, 40, 43, 45, 50, 58, 60, 80, 99]

OPTIMIZATION_METHODS = ('greedy', 'exact2d', 'multistart', 'dp')


@dataclass
class OptimizationResult:
    stats: PlayerStats
    objective_value: float
    points_spent: int = 0
    path: List[Stat] = field(default_factory=list)
    evaluations: int = 0
    method: str = 'greedy'


# =============================================================================
# Helpers
# =============================================================================

def _check_configs(stat_configs: Dict[Stat, StatConfig]) -> Dict[Stat, StatConfig]:
    missing = [stat.value for stat in ALL_STATS if stat not in stat_configs]
    if missing:
        raise ValueError(f"Missing stat bounds for: {missing}")
    for stat, config in stat_configs.items():
        if config.min > config.max:
            raise ValueError(f"{stat.value}: min {config.min} > max {config.max}")
    return stat_configs


def min_stats(stat_configs: Dict[Stat, StatConfig]) -> PlayerStats:
    return PlayerStats(**{stat.value: stat_configs[stat].min for stat in ALL_STATS})


def free_stats(stat_configs: Dict[Stat, StatConfig]) -> List[Stat]:
    return [stat for stat in ALL_STATS if not stat_configs[stat].is_pinned]


def points_spent(stats: PlayerStats, stat_configs: Dict[Stat, StatConfig]) -> int:
    return sum(stats.get(stat) - stat_configs[stat].min for stat in ALL_STATS)


class _CountingObjective:
    """Memoizes objective calls and counts distinct evaluations."""

    def __init__(self, objective: Objective):
        self.objective = objective
        self.cache: Dict[PlayerStats, float] = {}

    def __call__(self, stats: PlayerStats) -> float:
        value = self.cache.get(stats)
        if value is None:
            value = self.objective(stats)
            self.cache[stats] = value
        return value

    @property
    def evaluations(self) -> int:
        return len(self.cache)


# =============================================================================
# Greedy
# =============================================================================

def _greedy_from(objective: _CountingObjective, stat_configs: Dict[Stat, StatConfig],
                 budget: int, start: PlayerStats) -> Tuple[PlayerStats, float, List[Stat]]:
    current = start
    current_value = objective(current)
    remaining = budget - points_spent(current, stat_configs)
    candidates = free_stats(stat_configs)
    path: List[Stat] = []

    # Bound iterations even if the objective keeps reporting gains
    max_iterations = max(budget, 0) * len(ALL_STATS)
    iterations = 0
    while remaining > 0 and iterations < max_iterations:
        iterations += 1
        best_stat = None
        best_gain = 0.0
        best_value = current_value
        for stat in candidates:
            level = current.get(stat)
            if level >= stat_configs[stat].max:
                continue
            value = objective(current.with_stat(stat, level + 1))
            gain = value - current_value
            if best_stat is None or gain > best_gain:
                best_stat, best_gain, best_value = stat, gain, value
        if best_stat is None or best_gain <= 0:
            break
        current = current.with_stat(best_stat, current.get(best_stat) + 1)
        current_value = best_value
        remaining -= 1
        path.append(best_stat)

    return current, current_value, path


def find_optimal_stats(objective: Objective, stat_configs: Dict[Stat, StatConfig],
                       budget: int, verbose: bool = False) -> OptimizationResult:
    """
    Greedy marginal-gain allocation of `budget` points.

    Args:
        objective: Function of PlayerStats to maximize
        stat_configs: Bounds for all five stats; min == max pins a stat
        budget: Points available above the minimums

    Returns:
        OptimizationResult; a budget <= 0 returns the minimum vector
    """
    _check_configs(stat_configs)
    counted = _CountingObjective(objective)
    start = min_stats(stat_configs)

    if budget <= 0:
        return OptimizationResult(stats=start, objective_value=counted(start),
                                  evaluations=counted.evaluations)

    stats, value, path = _greedy_from(counted, stat_configs, budget, start)
    if verbose:
        print(f"  Greedy: spent {len(path)}/{budget} points, value {value:.2f} "
              f"({counted.evaluations} evaluations)")
    return OptimizationResult(
        stats=stats,
        objective_value=value,
        points_spent=points_spent(stats, stat_configs),
        path=path,
        evaluations=counted.evaluations,
    )


# =============================================================================
# Alternatives
# =============================================================================

def solve_two_stat_exact(objective: Objective, stat_configs: Dict[Stat, StatConfig],
                         budget: int) -> OptimizationResult:
    """
    Enumerate every split of the budget between exactly two free stats.

    Each split spends as much of the budget as the bounds allow, so the
    result is exact for objectives that never decrease with investment.

    Raises:
        ValueError: the number of free stats is not two
    """
    _check_configs(stat_configs)
    free = free_stats(stat_configs)
    if len(free) != 2:
        raise ValueError(f"Exact 2D solver needs exactly 2 free stats, got {len(free)}")

    counted = _CountingObjective(objective)
    base = min_stats(stat_configs)
    if budget <= 0:
        return OptimizationResult(stats=base, objective_value=counted(base),
                                  evaluations=counted.evaluations, method='exact2d')

    first, second = free
    range_first = stat_configs[first].max - stat_configs[first].min
    range_second = stat_configs[second].max - stat_configs[second].min

    best_stats = base
    best_value = counted(base)
    for a in range(min(budget, range_first) + 1):
        b = min(budget - a, range_second)
        candidate = base.with_stat(first, base.get(first) + a).with_stat(second, base.get(second) + b)
        value = counted(candidate)
        if value > best_value:
            best_stats, best_value = candidate, value

    return OptimizationResult(
        stats=best_stats,
        objective_value=best_value,
        points_spent=points_spent(best_stats, stat_configs),
        evaluations=counted.evaluations,
        method='exact2d',
    )


def find_optimal_stats_multistart(objective: Objective, stat_configs: Dict[Stat, StatConfig],
                                  budget: int, verbose: bool = False) -> OptimizationResult:
    """
    Greedy search restarted with one free stat pre-raised to each curve
    breakpoint; the best result wins (plain greedy on ties).
    """
    _check_configs(stat_configs)
    plain = find_optimal_stats(objective, stat_configs, budget)
    if budget <= 0:
        plain.method = 'multistart'
        return plain

    counted = _CountingObjective(objective)
    base = min_stats(stat_configs)
    best = (plain.stats, plain.objective_value, plain.path)

    for stat in free_stats(stat_configs):
        config = stat_configs[stat]
        for breakpoint in CURVE_BREAKPOINTS:
            level = min(max(breakpoint, config.min), config.max)
            cost = level - config.min
            if cost <= 0 or cost > budget:
                continue
            start = base.with_stat(stat, level)
            stats, value, path = _greedy_from(counted, stat_configs, budget, start)
            if value > best[1]:
                best = (stats, value, [stat] * cost + path)

    if verbose:
        print(f"  Multi-start: value {best[1]:.2f} (greedy {plain.objective_value:.2f})")
    return OptimizationResult(
        stats=best[0],
        objective_value=best[1],
        points_spent=points_spent(best[0], stat_configs),
        path=best[2],
        evaluations=plain.evaluations + counted.evaluations,
        method='multistart',
    )


def find_optimal_stats_dp(objective: Objective, stat_configs: Dict[Stat, StatConfig],
                          budget: int) -> OptimizationResult:
    """
    Dynamic programming over the budget, treating the objective as a sum of
    independent per-stat gains.

    Per-stat gain tables are measured by raising one stat at a time from the
    minimum vector. The allocation is exact when stats contribute
    independently, which holds for AR totals; the reported value is the true
    objective at the chosen stats.
    """
    _check_configs(stat_configs)
    counted = _CountingObjective(objective)
    base = min_stats(stat_configs)
    base_value = counted(base)
    if budget <= 0:
        return OptimizationResult(stats=base, objective_value=base_value,
                                  evaluations=counted.evaluations, method='dp')

    free = free_stats(stat_configs)
    # best[b]: best summed gain spending exactly b points so far
    best = np.full(budget + 1, -np.inf)
    best[0] = 0.0
    choices = []
    for stat in free:
        config = stat_configs[stat]
        max_points = min(config.max - config.min, budget)
        gains = np.array([
            counted(base.with_stat(stat, config.min + k)) - base_value
            for k in range(max_points + 1)
        ])
        new_best = np.full(budget + 1, -np.inf)
        choice = np.zeros(budget + 1, dtype=np.int64)
        for k in range(max_points + 1):
            shifted = np.full(budget + 1, -np.inf)
            shifted[k:] = best[:budget + 1 - k] + gains[k]
            improved = shifted > new_best
            new_best[improved] = shifted[improved]
            choice[improved] = k
        best = new_best
        choices.append(choice)

    spend = int(np.argmax(best))
    stats = base
    for stat, choice in zip(reversed(free), reversed(choices)):
        k = int(choice[spend])
        stats = stats.with_stat(stat, stat_configs[stat].min + k)
        spend -= k

    return OptimizationResult(
        stats=stats,
        objective_value=counted(stats),
        points_spent=points_spent(stats, stat_configs),
        evaluations=counted.evaluations,
        method='dp',
    )


def optimize_stats(objective: Objective, stat_configs: Dict[Stat, StatConfig],
                   budget: int, method: str = 'greedy', verbose: bool = False) -> OptimizationResult:
    """Run one of OPTIMIZATION_METHODS."""
    if method == 'greedy':
        return find_optimal_stats(objective, stat_configs, budget, verbose=verbose)
    if method == 'exact2d':
        return solve_two_stat_exact(objective, stat_configs, budget)
    if method == 'multistart':
        return find_optimal_stats_multistart(objective, stat_configs, budget, verbose=verbose)
    if method == 'dp':
        return find_optimal_stats_dp(objective, stat_configs, budget)
    raise ValueError(f"Unknown optimization method: {method}")


# =============================================================================
# Objectives
# =============================================================================

def ar_objective(game_data: GameData, weapon_name: str, affinity: str, upgrade_level: int,
                 options: Optional[CalculatorOptions] = None) -> Objective:
    """Total AR. A weapon that cannot be resolved scores 0 everywhere."""
    resolved = resolve_weapon(game_data, weapon_name, affinity, upgrade_level)
    if resolved is None:
        return lambda stats: 0.0
    return lambda stats: calculate_ar(game_data, resolved, stats, options).total


def spell_power_objective(game_data: GameData, weapon_name: str, affinity: str,
                          upgrade_level: int,
                          options: Optional[CalculatorOptions] = None) -> Objective:
    """Best of sorcery and incantation scaling."""
    resolved = resolve_weapon(game_data, weapon_name, affinity, upgrade_level)
    if resolved is None:
        return lambda stats: 0.0
    return lambda stats: calculate_ar(game_data, resolved, stats, options).spell_power()


def skill_objective(game_data: GameData, skill_id: Optional[int], weapon_name: str,
                    affinity: str, upgrade_level: int,
                    options: Optional[CalculatorOptions] = None) -> Objective:
    """Summed damage of all skill attacks, falling back to AR without attacks."""
    fallback = ar_objective(game_data, weapon_name, affinity, upgrade_level, options)
    if skill_id is None:
        return fallback

    def objective(stats: PlayerStats) -> float:
        attacks = compute_skill_damage(game_data, skill_id, weapon_name, affinity,
                                       upgrade_level, stats, options)
        if not attacks:
            return fallback(stats)
        return sum(attack.total for attack in attacks)

    return objective


def make_objective(kind: str, game_data: GameData, weapon_name: str, affinity: str,
                   upgrade_level: int, options: Optional[CalculatorOptions] = None,
                   skill_id: Optional[int] = None) -> Objective:
    if kind == 'ar':
        return ar_objective(game_data, weapon_name, affinity, upgrade_level, options)
    if kind == 'spell':
        return spell_power_objective(game_data, weapon_name, affinity, upgrade_level, options)
    if kind == 'skill':
        return skill_objective(game_data, skill_id, weapon_name, affinity, upgrade_level, options)
    raise ValueError(f"Unknown objective: {kind}")
