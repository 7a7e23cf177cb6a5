"""
Stat Scaling Curve Formulas

Evaluates the game's CalcCorrectGraph curves: five ascending stat breakpoints,
the growth value reached at each breakpoint, and a signed exponent shaping
the interpolation inside each segment.

    segment 0: (0, stage_max_val[0]]
    segment s: (stage_max_val[s-1], stage_max_val[s]]

The exponent used inside segment s is adj_pt[s-1] (adj_pt[0] for segment 0).
Growth values are percentages; saturation is growth / 100.
"""

from typing import Dict, Optional

import numpy as np

from models import CurveDefinition, DataIntegrityError, GameData


# Levels precomputed by CurveCache (inclusive)
CACHE_MAX_LEVEL = 150


def calculate_curve_value(curve: CurveDefinition, stat_level: float) -> float:
    """
    Evaluate a scaling curve at a stat level.

    Args:
        curve: Curve definition
        stat_level: Stat level (may be outside 1-99)

    Returns:
        Growth value (percentage, typically 0-100+)
    """
    max_vals = curve.stage_max_val
    grow_vals = curve.stage_max_grow_val

    segment = 0
    for i in range(4):
        if stat_level > max_vals[i]:
            segment = i + 1

    if segment == 0:
        min_stat = 0.0
        min_grow = 0.0
    else:
        min_stat = max_vals[segment - 1]
        min_grow = grow_vals[segment - 1]
    max_stat = max_vals[segment]
    max_grow = grow_vals[segment]
    adj = curve.adj_pt[0 if segment == 0 else segment - 1]

    if stat_level <= min_stat:
        return min_grow
    if stat_level >= max_stat:
        return max_grow

    ratio = (stat_level - min_stat) / (max_stat - min_stat)
    if adj > 0:
        shaped = ratio ** adj
    elif adj < 0:
        shaped = 1 - (1 - ratio) ** abs(adj)
    else:
        shaped = 0.0

    return min_grow + (max_grow - min_grow) * shaped


def validate_curve(curve: CurveDefinition) -> None:
    """
    Check a curve for structural problems.

    Raises:
        DataIntegrityError: wrong array lengths, non-ascending breakpoints
            or decreasing growth values
    """
    for name in ('stage_max_val', 'stage_max_grow_val', 'adj_pt'):
        if len(getattr(curve, name)) != 5:
            raise DataIntegrityError(
                f"Curve {curve.id}: {name} must have 5 entries, got {len(getattr(curve, name))}"
            )
    vals = curve.stage_max_val
    for i in range(1, 5):
        if vals[i] <= vals[i - 1]:
            raise DataIntegrityError(
                f"Curve {curve.id}: breakpoints not ascending at index {i} ({vals[i - 1]} -> {vals[i]})"
            )
    grows = curve.stage_max_grow_val
    for i in range(1, 5):
        if grows[i] < grows[i - 1]:
            raise DataIntegrityError(
                f"Curve {curve.id}: growth values decrease at index {i} ({grows[i - 1]} -> {grows[i]})"
            )


def get_stat_saturation(curves: Dict[int, CurveDefinition], curve_id: int,
                        stat_level: float) -> float:
    """Saturation (growth / 100) for a stat level. Unknown curve ids give 0."""
    curve = curves.get(curve_id)
    if curve is None:
        return 0.0
    return calculate_curve_value(curve, stat_level) / 100.0


# =============================================================================
# Precomputed lookups
# =============================================================================

class CurveCache:
    """
    Precomputed saturation tables for levels 0..CACHE_MAX_LEVEL.

    Values are produced by calculate_curve_value itself, so cached and
    direct lookups are identical. Non-integer or out-of-range levels fall
    back to direct evaluation.
    """

    def __init__(self, curves: Dict[int, CurveDefinition]):
        self.curves = curves
        self._tables: Dict[int, np.ndarray] = {}

    def _table(self, curve_id: int) -> Optional[np.ndarray]:
        table = self._tables.get(curve_id)
        if table is None:
            curve = self.curves.get(curve_id)
            if curve is None:
                return None
            table = np.array(
                [calculate_curve_value(curve, level) / 100.0 for level in range(CACHE_MAX_LEVEL + 1)],
                dtype=np.float64,
            )
            self._tables[curve_id] = table
        return table

    def saturation(self, curve_id: int, stat_level: float) -> float:
        table = self._table(curve_id)
        if table is None:
            return 0.0
        if isinstance(stat_level, int) and 0 <= stat_level <= CACHE_MAX_LEVEL:
            return float(table[stat_level])
        return calculate_curve_value(self.curves[curve_id], stat_level) / 100.0

    def saturation_array(self, curve_id: int) -> np.ndarray:
        """Full saturation table for a curve (zeros for unknown ids)."""
        table = self._table(curve_id)
        if table is None:
            return np.zeros(CACHE_MAX_LEVEL + 1, dtype=np.float64)
        return table

    def __call__(self, curve_id: int, stat_level: float) -> float:
        return self.saturation(curve_id, stat_level)


def cached_saturation(game_data: GameData, curve_id: int, stat_level: float) -> float:
    """
    Saturation through the CurveCache attached to game_data.

    The cache is built on first use and rebuilt if the curve table was
    replaced. Results equal get_stat_saturation.
    """
    cache = game_data.curve_cache
    if cache is None or cache.curves is not game_data.curves:
        cache = CurveCache(game_data.curves)
        game_data.curve_cache = cache
    return cache.saturation(curve_id, stat_level)
