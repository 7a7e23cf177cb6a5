"""
Enemy Damage Pipeline

Per damage type: AR x motion value, then enemy defense, then negation,
clamped at 0. Types are summed and the total rounds up.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, Optional, Union

from models import DamageType, EnemyDefenseData, GameData, ALL_DAMAGE_TYPES
from defense_formulas import (
    calculate_single_type_damage, get_physical_defense_type, defense_key_for,
)
from skill_calculator import AttackResult


@dataclass
class EnemyDamageResult:
    by_type: Dict[DamageType, float] = field(default_factory=dict)
    total: float = 0.0
    rounded: int = 0


def calculate_enemy_damage(base_ar: Dict[DamageType, float],
                           motion_values: Dict[DamageType, float],
                           attack_attribute: Union[int, str],
                           enemy: EnemyDefenseData) -> EnemyDamageResult:
    """
    Damage an attack deals to an enemy.

    Args:
        base_ar: AR per damage type (missing types count as 0)
        motion_values: Motion value per type as a percentage (100 = 1.0x);
            missing types use 100
        attack_attribute: Physical attribute id or name, selects the
            physical defense sub-type
        enemy: Enemy defenses and negations

    Returns:
        EnemyDamageResult with per-type damage, total and ceiling-rounded total
    """
    physical_key = get_physical_defense_type(attack_attribute)

    by_type = {}
    for damage_type in ALL_DAMAGE_TYPES:
        key = defense_key_for(damage_type, physical_key)
        by_type[damage_type] = calculate_single_type_damage(
            base_ar.get(damage_type, 0.0),
            motion_values.get(damage_type, 100.0),
            enemy.defense.get(key, 0.0),
            enemy.negation.get(key, 0.0),
        )

    total = sum(by_type.values())
    return EnemyDamageResult(by_type=by_type, total=total, rounded=math.ceil(total))


def calculate_simple_enemy_damage(base_ar: Dict[DamageType, float],
                                  attack_attribute: Union[int, str],
                                  enemy: EnemyDefenseData) -> EnemyDamageResult:
    """Damage of a 100 MV hit."""
    return calculate_enemy_damage(base_ar, {}, attack_attribute, enemy)


def calculate_attack_enemy_damage(attack: AttackResult, enemy: EnemyDefenseData) -> EnemyDamageResult:
    """Damage of a skill attack whose values already include motion values."""
    return calculate_enemy_damage(attack.damage_by_type(), {}, attack.attack_attribute, enemy)


def get_enemy(game_data: GameData, enemy_key: str) -> Optional[EnemyDefenseData]:
    return game_data.enemies.get(enemy_key)
