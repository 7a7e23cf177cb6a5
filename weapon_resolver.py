"""
Weapon Resolution

Applies reinforce rates for an upgrade level to a weapon's affinity data.
Both the AR composer and the skill composer consume ResolvedWeapon, so the
scaled attack base for a weapon/affinity/level is computed in one place.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, Optional

from models import (
    GameData, WeaponEntry, AffinityData, ReinforceRates, Stat, DamageType,
    StatusType, SpellType, StatScaling, ALL_STATS, ALL_DAMAGE_TYPES,
)


# =============================================================================
# Resolved records
# =============================================================================

@dataclass
class ResolvedStatScaling:
    value: float      # scaling percentage after reinforcement
    curve_id: int


@dataclass
class ResolvedDamageType:
    base: float
    scaling: Dict[Stat, ResolvedStatScaling] = field(default_factory=dict)


@dataclass
class ResolvedStatusEffect:
    base: float
    arcane_scaling: Optional[ResolvedStatScaling] = None


@dataclass
class ResolvedGuard:
    negation: Dict[DamageType, float]
    guard_boost: int
    resistance: Dict[StatusType, float]


@dataclass
class ResolvedWeapon:
    """A weapon/affinity at one upgrade level with rates applied."""
    weapon: WeaponEntry
    affinity: AffinityData
    upgrade_level: int
    rates: ReinforceRates
    damage: Dict[DamageType, ResolvedDamageType]
    status: Dict[StatusType, ResolvedStatusEffect]
    spells: Dict[SpellType, Dict[Stat, ResolvedStatScaling]]
    weapon_scaling: Dict[Stat, float]

    @property
    def name(self) -> str:
        return self.weapon.name

    @property
    def requirements(self) -> Dict[Stat, int]:
        return self.weapon.requirements


# =============================================================================
# Resolution
# =============================================================================

def get_reinforce_rates(game_data: GameData, affinity: AffinityData,
                        upgrade_level: int) -> Optional[ReinforceRates]:
    """Rates are keyed by reinforce type id + upgrade level."""
    return game_data.reinforce_rates.get(affinity.reinforce_type_id + upgrade_level)


def _resolve_stat_scaling(scaling: StatScaling, rate: float) -> ResolvedStatScaling:
    # Override values are already final
    value = scaling.base if scaling.is_override else scaling.base * rate
    return ResolvedStatScaling(value=value, curve_id=scaling.curve_id)


def _resolve_status(game_data: GameData, affinity: AffinityData, status_type: StatusType,
                    rates: ReinforceRates) -> Optional[ResolvedStatusEffect]:
    status = affinity.status.get(status_type)
    if status is None:
        return None

    offset = rates.sp_effect_id1 if status.sp_effect_slot == 0 else rates.sp_effect_id2
    sp_effect = game_data.sp_effects.get(status.sp_effect_behavior_id + offset)
    if sp_effect is None:
        return None

    base = sp_effect.attack_power.get(status_type, 0.0)
    if base <= 0:
        return None

    arcane = status.arcane_scaling * rates.correct_luck_rate
    arcane_scaling = ResolvedStatScaling(arcane, status.arcane_curve_id) if arcane > 0 else None
    return ResolvedStatusEffect(base=base, arcane_scaling=arcane_scaling)


def resolve_weapon(game_data: GameData, weapon_name: str, affinity_name: str,
                   upgrade_level: int) -> Optional[ResolvedWeapon]:
    """
    Resolve a weapon at an upgrade level.

    Args:
        game_data: Loaded tables
        weapon_name: Weapon table key
        affinity_name: Affinity key ("Standard", "Heavy", ...)
        upgrade_level: 0..max_upgrade_level

    Returns:
        ResolvedWeapon, or None when the weapon, affinity or rate row is missing

    Raises:
        ValueError: upgrade level outside 0..max_upgrade_level
    """
    weapon = game_data.weapons.get(weapon_name)
    if weapon is None:
        return None
    affinity = weapon.affinities.get(affinity_name)
    if affinity is None:
        return None
    if upgrade_level < 0 or upgrade_level > weapon.max_upgrade_level:
        raise ValueError(
            f"Upgrade level {upgrade_level} outside 0..{weapon.max_upgrade_level} for {weapon_name}"
        )

    rates = get_reinforce_rates(game_data, affinity, upgrade_level)
    if rates is None:
        return None

    damage = {}
    for damage_type in ALL_DAMAGE_TYPES:
        data = affinity.damage.get(damage_type)
        if data is None:
            continue
        damage[damage_type] = ResolvedDamageType(
            base=data.attack_base * rates.attack_rate(damage_type),
            scaling={
                stat: _resolve_stat_scaling(scaling, rates.correct_rate(stat))
                for stat, scaling in data.scaling.items()
            },
        )

    status = {}
    for status_type in StatusType:
        resolved = _resolve_status(game_data, affinity, status_type, rates)
        if resolved is not None:
            status[status_type] = resolved

    spells = {}
    for spell_type in SpellType:
        spell = affinity.spell_scaling(spell_type)
        if spell is None:
            continue
        spells[spell_type] = {
            stat: _resolve_stat_scaling(scaling, rates.correct_rate(stat))
            for stat, scaling in spell.scaling.items()
        }

    weapon_scaling = {
        stat: affinity.weapon_scaling.get(stat, 0.0) * rates.correct_rate(stat)
        for stat in ALL_STATS
    }

    return ResolvedWeapon(
        weapon=weapon,
        affinity=affinity,
        upgrade_level=upgrade_level,
        rates=rates,
        damage=damage,
        status=status,
        spells=spells,
        weapon_scaling=weapon_scaling,
    )


# =============================================================================
# Guard stats / display helpers
# =============================================================================

_GUARD_RATE_FIELDS = {
    DamageType.PHYSICAL: 'physics_guard_cut_rate',
    DamageType.MAGIC: 'magic_guard_cut_rate',
    DamageType.FIRE: 'fire_guard_cut_rate',
    DamageType.LIGHTNING: 'thunder_guard_cut_rate',
    DamageType.HOLY: 'dark_guard_cut_rate',
}


def resolve_guard_stats(resolved: ResolvedWeapon) -> Optional[ResolvedGuard]:
    """Guard negation (capped at 100), guard boost and status resistance."""
    guard = resolved.weapon.guard
    if guard is None:
        return None
    rates = resolved.rates
    negation = {
        damage_type: min(guard.negation.get(damage_type, 0.0) * getattr(rates, field_name), 100.0)
        for damage_type, field_name in _GUARD_RATE_FIELDS.items()
    }
    return ResolvedGuard(
        negation=negation,
        guard_boost=math.trunc(guard.guard_boost * rates.stamina_guard_def_rate),
        resistance=dict(guard.resistance),
    )


def get_scaling_grade(value: float) -> str:
    """Letter grade shown for a scaling value."""
    if value <= 0:
        return '-'
    if value >= 175:
        return 'S'
    if value >= 140:
        return 'A'
    if value >= 90:
        return 'B'
    if value >= 60:
        return 'C'
    if value >= 25:
        return 'D'
    return 'E'


def get_scaling_grades(resolved: ResolvedWeapon) -> Dict[Stat, str]:
    return {stat: get_scaling_grade(value) for stat, value in resolved.weapon_scaling.items()}
