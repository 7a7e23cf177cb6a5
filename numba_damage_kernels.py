"""
Numba-Accelerated Enemy Damage Grid

Computes the damage of many attacks against many enemies in one JIT-compiled
pass, for tables that compare a weapon or skill against every boss.
Dict-based records are converted to dense float arrays once; the kernel
works purely on arrays.

Matches enemy_damage.calculate_enemy_damage within float tolerance.
"""

from typing import Dict, List, Sequence, Union

import numpy as np
import numba

from models import DamageType, EnemyDefenseData, PhysicalDefenseType, ALL_DAMAGE_TYPES
from defense_formulas import get_physical_defense_type


# =============================================================================
# DEFENSE INDEXING
# =============================================================================

DEFENSE_ORDER = list(PhysicalDefenseType)
DEFENSE_TO_IDX = {key: i for i, key in enumerate(DEFENSE_ORDER)}
N_DEFENSE = len(DEFENSE_ORDER)
N_TYPES = len(ALL_DAMAGE_TYPES)

# Column of each non-physical damage type in the defense arrays
_ELEMENT_COLUMNS = np.array(
    [DEFENSE_TO_IDX[PhysicalDefenseType(t.value)] for t in ALL_DAMAGE_TYPES[1:]],
    dtype=np.int64,
)


# =============================================================================
# KERNELS
# =============================================================================

@numba.jit(nopython=True, cache=True)
def _defense_reduction(attack, defense):
    if attack <= 0.0:
        return 0.0
    if defense <= 0.0:
        return attack * 0.9
    ratio = attack / defense
    if defense < 0.125 * attack:
        multiplier = 0.9
    elif defense <= 0.4 * attack:
        multiplier = (-0.8 / 121) * (ratio - 8) ** 2 + 0.9
    elif defense <= attack:
        multiplier = (-0.4 / 3) * (ratio - 2.5) ** 2 + 0.7
    elif defense <= 8 * attack:
        multiplier = (19.2 / 49) * (ratio - 0.125) ** 2 + 0.1
    else:
        multiplier = 0.1
    return attack * multiplier


@numba.jit(nopython=True, cache=True, parallel=True)
def _enemy_damage_grid_kernel(base_ar, motion, physical_columns, element_columns,
                              defense, negation, out):
    """
    base_ar, motion: (n_attacks, 5); motion as percentages
    physical_columns: (n_attacks,) defense column for physical damage
    element_columns: (4,) defense columns for magic..holy
    defense, negation: (n_enemies, 8)
    out: (n_attacks, n_enemies) totals
    """
    n_attacks = base_ar.shape[0]
    n_enemies = defense.shape[0]
    for e in numba.prange(n_enemies):
        for a in range(n_attacks):
            total = 0.0
            for t in range(5):
                base = base_ar[a, t]
                if base <= 0.0:
                    continue
                if t == 0:
                    col = physical_columns[a]
                else:
                    col = element_columns[t - 1]
                attack = base * (motion[a, t] / 100.0)
                dmg = _defense_reduction(attack, defense[e, col])
                dmg = dmg * (1.0 - negation[e, col] / 100.0)
                if dmg > 0.0:
                    total += dmg
            out[a, e] = total


# =============================================================================
# GRID
# =============================================================================

class EnemyDamageGrid:
    """
    Dense defense/negation arrays for a fixed list of enemies.

    Build once per enemy list, then call compute() for any batch of attacks.
    """

    def __init__(self, enemies: Sequence[EnemyDefenseData]):
        self.enemy_names = [enemy.name for enemy in enemies]
        self.defense = np.zeros((len(enemies), N_DEFENSE), dtype=np.float64)
        self.negation = np.zeros((len(enemies), N_DEFENSE), dtype=np.float64)
        for i, enemy in enumerate(enemies):
            for key, col in DEFENSE_TO_IDX.items():
                self.defense[i, col] = enemy.defense.get(key, 0.0)
                self.negation[i, col] = enemy.negation.get(key, 0.0)

    @staticmethod
    def _to_matrix(rows: Sequence[Dict[DamageType, float]], default: float) -> np.ndarray:
        matrix = np.full((len(rows), N_TYPES), default, dtype=np.float64)
        for i, row in enumerate(rows):
            for j, damage_type in enumerate(ALL_DAMAGE_TYPES):
                if damage_type in row:
                    matrix[i, j] = row[damage_type]
        return matrix

    def compute(self, base_ars: Sequence[Dict[DamageType, float]],
                motion_values: Sequence[Dict[DamageType, float]],
                attack_attributes: Sequence[Union[int, str]]) -> np.ndarray:
        """
        Damage totals of every attack against every enemy.

        Args:
            base_ars: AR per damage type for each attack
            motion_values: Motion values (percent) per attack; missing types use 100
            attack_attributes: Physical attribute of each attack

        Returns:
            (n_attacks, n_enemies) float array of unrounded totals
        """
        if not (len(base_ars) == len(motion_values) == len(attack_attributes)):
            raise ValueError("base_ars, motion_values and attack_attributes must have equal length")

        base = self._to_matrix(base_ars, 0.0)
        motion = self._to_matrix(motion_values, 100.0)
        physical_columns = np.array(
            [DEFENSE_TO_IDX[get_physical_defense_type(attr)] for attr in attack_attributes],
            dtype=np.int64,
        )
        out = np.zeros((len(base_ars), len(self.enemy_names)), dtype=np.float64)
        if len(base_ars) and len(self.enemy_names):
            _enemy_damage_grid_kernel(base, motion, physical_columns, _ELEMENT_COLUMNS,
                                      self.defense, self.negation, out)
        return out

    def compute_rounded(self, base_ars, motion_values, attack_attributes) -> np.ndarray:
        """Same as compute(), rounded up to integers."""
        return np.ceil(self.compute(base_ars, motion_values, attack_attributes)).astype(np.int64)

    def best_enemy_order(self, totals: np.ndarray, attack_index: int = 0) -> List[str]:
        """Enemy names sorted by damage taken from one attack, highest first."""
        order = np.argsort(-totals[attack_index], kind='stable')
        return [self.enemy_names[i] for i in order]
