"""
Ash of War Damage Formulas

Pure formula functions used by the skill calculator.

Motion attacks:
    damage = weapon_AR[type] x motion_value

Bullet attacks (flat damage added on top of the weapon):
    damage = flat x (1 + 3 x PWU) x (1 + sum(scaling / 100 x saturation))
    PWU    = upgrade_level / max_upgrade_level

Stat point bonus (War Cry style buffs):
    bonus AR = damage_type_base x saturation x bonus_points / 100
"""

from typing import Dict, Optional

from models import Stat


def compute_pwu(upgrade_level: int, max_upgrade_level: int) -> float:
    """Percent weapon upgrade, 0.0 at +0 and 1.0 at max."""
    if max_upgrade_level <= 0:
        return 0.0
    return upgrade_level / max_upgrade_level


def compute_pwu_multiplier(upgrade_level: int, max_upgrade_level: int) -> float:
    """1.0 at +0, 4.0 at max upgrade."""
    return 1 + 3 * compute_pwu(upgrade_level, max_upgrade_level)


def compute_scaling_contribution(scaling_value: float, saturation: float) -> float:
    return (scaling_value / 100) * saturation


def compute_bullet_damage(flat_damage: float, pwu_multiplier: float,
                          total_scaling: Optional[float] = None) -> float:
    """Bullet damage; without scaling the flat value only grows with upgrades."""
    if total_scaling is None:
        return flat_damage * pwu_multiplier
    return flat_damage * pwu_multiplier * (1 + total_scaling)


def compute_motion_damage(ar_total: float, motion_value: float) -> float:
    """Motion value is a multiplier here (1.0 = 100 MV)."""
    return ar_total * motion_value


def compute_stat_point_bonus(base: float, saturation: float, bonus_points: int) -> float:
    if saturation <= 0 or bonus_points <= 0:
        return 0.0
    return base * saturation * (bonus_points / 100)


def compute_total_stat_point_bonus(base: float, saturations: Dict[Stat, float],
                                   bonus: Dict[Stat, int]) -> float:
    """Sum of stat point bonuses for one damage type."""
    if not bonus:
        return 0.0
    return sum(
        compute_stat_point_bonus(base, saturations.get(stat, 0.0), points)
        for stat, points in bonus.items()
    )


def compute_shield_chip(guard_cut_cancel_rate: float) -> float:
    return 1 - (1 + guard_cut_cancel_rate / 100)


def compute_stamina_damage(weapon_stamina: float, stamina_rate: float,
                           motion_stamina: float, flat_stamina: float) -> float:
    return weapon_stamina * stamina_rate * motion_stamina + flat_stamina


def compute_poise_damage(weapon_poise: float, poise_rate: float,
                         motion_poise: float, flat_poise: float) -> float:
    return weapon_poise * poise_rate * motion_poise + flat_poise
