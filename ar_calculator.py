"""
Attack Rating (AR) Calculator

Computes per-damage-type, per-status-effect and per-spell-type totals for a
resolved weapon and a set of player stats, with a per-stat breakdown.

    stat contribution = base x saturation(stat) x scaling_value / 100
    damage type total = base + sum(contributions)
    status total      = base + base x arcane_value / 100 x saturation(arcane)
    spell power       = 100 + sum(100 x value / 100 x saturation)
"""

import math
from dataclasses import dataclass, field
from typing import Dict, Optional

from models import (
    GameData, PlayerStats, CalculatorOptions, Stat, DamageType, StatusType,
    SpellType, ALL_STATS, ALL_DAMAGE_TYPES, WEP_TYPE_FIST, WEP_TYPES_BOW,
    WEP_TYPE_BALLISTA, MAX_EFFECTIVE_STRENGTH, TWO_HAND_MULTIPLIER,
)
from curve_formulas import cached_saturation
from weapon_resolver import (
    ResolvedWeapon, ResolvedDamageType, ResolvedStatusEffect, ResolvedStatScaling,
    resolve_weapon,
)


SPELL_BASE = 100.0

# Requirement penalties (only with CalculatorOptions.apply_requirement_penalty)
UNMET_SCALING_PENALTY = -0.4
UNMET_STATUS_MULTIPLIER = 0.6
UNMET_SPELL_MULTIPLIER = 0.6


# =============================================================================
# Results
# =============================================================================

@dataclass
class StatScalingResult:
    saturation: float = 0.0
    scaling: float = 0.0
    raw_scaling: float = 0.0


@dataclass
class DamageTypeResult:
    base: float
    scaling: float
    total: float
    rounded: int
    per_stat: Dict[Stat, StatScalingResult] = field(default_factory=dict)
    requirements_met: bool = True


@dataclass
class StatusEffectResult:
    base: float
    scaling: float
    total: float
    rounded: int


@dataclass
class SpellScalingResult:
    base: float
    scaling: float
    total: float
    rounded: int
    per_stat: Dict[Stat, StatScalingResult] = field(default_factory=dict)


@dataclass
class ARResult:
    """AR breakdown. Damage types, statuses and spells the weapon lacks map to None."""
    damage: Dict[DamageType, Optional[DamageTypeResult]]
    total: float
    rounded: int
    status: Dict[StatusType, Optional[StatusEffectResult]]
    spells: Dict[SpellType, Optional[SpellScalingResult]]
    requirements_met: bool
    effective_stats: PlayerStats

    def damage_total(self, damage_type: DamageType) -> float:
        result = self.damage.get(damage_type)
        return result.total if result is not None else 0.0

    def spell_power(self) -> float:
        """Best catalyst spell scaling, 0 for non-catalysts."""
        totals = [r.total for r in self.spells.values() if r is not None]
        return max(totals) if totals else 0.0


# =============================================================================
# Effective stats / requirements
# =============================================================================

def applies_two_hand_bonus(wep_type: int, is_dual_blade: bool, two_handing: bool) -> bool:
    """Fist and paired weapons never get the bonus; bows and ballistae always do."""
    if wep_type in WEP_TYPES_BOW or wep_type == WEP_TYPE_BALLISTA:
        return True
    if wep_type == WEP_TYPE_FIST or is_dual_blade:
        return False
    return two_handing


def calculate_effective_stats(stats: PlayerStats, wep_type: int, is_dual_blade: bool,
                              two_handing: bool) -> PlayerStats:
    """Apply the two-handing strength multiplier (capped) where it applies."""
    if not applies_two_hand_bonus(wep_type, is_dual_blade, two_handing):
        return stats
    strength = min(math.floor(stats.strength * TWO_HAND_MULTIPLIER), MAX_EFFECTIVE_STRENGTH)
    return stats.with_stat(Stat.STR, strength)


def check_requirements(effective_stats: PlayerStats, requirements: Dict[Stat, int]) -> bool:
    return all(effective_stats.get(stat) >= requirements.get(stat, 0) for stat in ALL_STATS)


def _scaled_stats_meet_requirements(scaling: Dict[Stat, ResolvedStatScaling],
                                    effective_stats: PlayerStats,
                                    requirements: Dict[Stat, int]) -> bool:
    return all(effective_stats.get(stat) >= requirements.get(stat, 0) for stat in scaling)


# =============================================================================
# Per-type calculations
# =============================================================================

def calculate_stat_scaling(game_data: GameData, base: float,
                           scaling: Optional[ResolvedStatScaling],
                           stat_level: int) -> StatScalingResult:
    if scaling is None:
        return StatScalingResult()
    saturation = cached_saturation(game_data, scaling.curve_id, stat_level)
    return StatScalingResult(
        saturation=saturation,
        scaling=base * saturation * (scaling.value / 100),
        raw_scaling=scaling.value,
    )


def calculate_damage_type(game_data: GameData, damage_type: ResolvedDamageType,
                          effective_stats: PlayerStats, requirements: Dict[Stat, int],
                          options: CalculatorOptions) -> DamageTypeResult:
    base = damage_type.base
    per_stat = {
        stat: calculate_stat_scaling(game_data, base, damage_type.scaling.get(stat),
                                     effective_stats.get(stat))
        for stat in ALL_STATS
    }
    scaling = sum(per_stat[stat].scaling for stat in ALL_STATS)

    met = options.ignore_requirements or _scaled_stats_meet_requirements(
        damage_type.scaling, effective_stats, requirements)
    if not met and options.apply_requirement_penalty:
        scaling = base * UNMET_SCALING_PENALTY

    total = base + scaling
    return DamageTypeResult(
        base=base,
        scaling=scaling,
        total=total,
        rounded=math.trunc(total),
        per_stat=per_stat,
        requirements_met=met,
    )


def calculate_status_effect(game_data: GameData, status: ResolvedStatusEffect,
                            effective_stats: PlayerStats, requirements: Dict[Stat, int],
                            options: CalculatorOptions) -> StatusEffectResult:
    base = status.base
    scaling = 0.0
    if status.arcane_scaling is not None:
        saturation = cached_saturation(game_data, status.arcane_scaling.curve_id,
                                         effective_stats.arcane)
        scaling = base * (status.arcane_scaling.value / 100) * saturation

    total = base + scaling
    if options.apply_requirement_penalty and not options.ignore_requirements:
        if status.arcane_scaling is not None and effective_stats.arcane < requirements.get(Stat.ARC, 0):
            total *= UNMET_STATUS_MULTIPLIER

    return StatusEffectResult(base=base, scaling=scaling, total=total, rounded=math.trunc(total))


def calculate_spell_scaling(game_data: GameData, spell: Dict[Stat, ResolvedStatScaling],
                            effective_stats: PlayerStats, requirements: Dict[Stat, int],
                            options: CalculatorOptions) -> SpellScalingResult:
    per_stat = {
        stat: calculate_stat_scaling(game_data, SPELL_BASE, spell.get(stat), effective_stats.get(stat))
        for stat in ALL_STATS
    }
    scaling = sum(per_stat[stat].scaling for stat in ALL_STATS)

    if options.apply_requirement_penalty and not options.ignore_requirements:
        if not _scaled_stats_meet_requirements(spell, effective_stats, requirements):
            base = SPELL_BASE * UNMET_SPELL_MULTIPLIER
            empty = {stat: StatScalingResult(raw_scaling=per_stat[stat].raw_scaling) for stat in ALL_STATS}
            return SpellScalingResult(base=base, scaling=0.0, total=base,
                                      rounded=math.trunc(base), per_stat=empty)

    total = SPELL_BASE + scaling
    return SpellScalingResult(base=SPELL_BASE, scaling=scaling, total=total,
                              rounded=math.trunc(total), per_stat=per_stat)


# =============================================================================
# AR
# =============================================================================

def calculate_ar(game_data: GameData, resolved: ResolvedWeapon, stats: PlayerStats,
                 options: Optional[CalculatorOptions] = None) -> ARResult:
    """
    Calculate AR for a resolved weapon.

    Args:
        game_data: Loaded tables (curves are read from here)
        resolved: Weapon at an upgrade level
        stats: Player stats (raw, before the two-handing bonus)
        options: Two-handing / requirement options

    Returns:
        ARResult with per-type breakdowns; the grand total rounds up
    """
    options = options or CalculatorOptions()
    weapon = resolved.weapon
    effective = calculate_effective_stats(stats, weapon.wep_type, weapon.is_dual_blade,
                                          options.two_handing)
    requirements = weapon.requirements

    damage = {}
    for damage_type in ALL_DAMAGE_TYPES:
        data = resolved.damage.get(damage_type)
        damage[damage_type] = (
            calculate_damage_type(game_data, data, effective, requirements, options)
            if data is not None else None
        )

    total = sum(result.total for result in damage.values() if result is not None)

    status = {}
    for status_type in StatusType:
        data = resolved.status.get(status_type)
        status[status_type] = (
            calculate_status_effect(game_data, data, effective, requirements, options)
            if data is not None else None
        )

    spells = {}
    for spell_type in SpellType:
        data = resolved.spells.get(spell_type)
        spells[spell_type] = (
            calculate_spell_scaling(game_data, data, effective, requirements, options)
            if data is not None else None
        )

    requirements_met = options.ignore_requirements or check_requirements(effective, requirements)

    return ARResult(
        damage=damage,
        total=total,
        rounded=math.ceil(total),
        status=status,
        spells=spells,
        requirements_met=requirements_met,
        effective_stats=effective,
    )


def calculate_weapon_ar(game_data: GameData, weapon_name: str, affinity: str,
                        upgrade_level: int, stats: PlayerStats,
                        options: Optional[CalculatorOptions] = None) -> Optional[ARResult]:
    """Resolve and calculate in one call. None when the weapon is not applicable."""
    resolved = resolve_weapon(game_data, weapon_name, affinity, upgrade_level)
    if resolved is None:
        return None
    return calculate_ar(game_data, resolved, stats, options)


# =============================================================================
# Critical hits
# =============================================================================

# wepType -> critical damage multiplier. Types missing here cannot crit.
CRITICAL_MULTIPLIERS: Dict[int, float] = {
    1: 4.0, 3: 3.0, 5: 2.5, 7: 2.5, 9: 3.0, 11: 2.5, 13: 3.0, 14: 3.0,
    15: 3.3, 16: 2.4, 17: 3.25, 19: 2.5, 21: 3.25, 23: 2.5, 24: 3.25,
    25: 2.8, 28: 2.4, 29: 2.8, 31: 2.4, 35: 3.5, 37: 3.5, 41: 2.5,
    65: 3.0, 67: 3.0, 69: 3.0, 87: 3.0, 88: 3.5, 89: 3.0, 90: 3.0,
    91: 3.0, 92: 4.0, 93: 2.5, 94: 3.0, 95: 3.5,
}


def calculate_critical_damage(ar_total: float, wep_type: int,
                              critical: float = 100.0) -> Optional[int]:
    """Critical (riposte/backstab) damage, None for weapon types that cannot crit."""
    multiplier = CRITICAL_MULTIPLIERS.get(wep_type)
    if multiplier is None:
        return None
    # half rounds up
    return math.floor(ar_total * critical / 100 * multiplier + 0.5)
