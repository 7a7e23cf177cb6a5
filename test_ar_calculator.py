"""
Tests for the AR composer.
"""

import pytest

from models import PlayerStats, CalculatorOptions, Stat, DamageType, StatusType, SpellType
from weapon_resolver import resolve_weapon
from ar_calculator import (
    calculate_ar, calculate_weapon_ar, calculate_effective_stats, applies_two_hand_bonus,
    check_requirements, calculate_critical_damage,
)


def stats(**kwargs):
    return PlayerStats(**kwargs)


# =============================================================================
# Effective stats
# =============================================================================

class TestTwoHanding:

    def test_regular_weapon_two_handed(self):
        effective = calculate_effective_stats(stats(strength=12), 3, False, True)
        assert effective.strength == 18

    def test_regular_weapon_one_handed(self):
        effective = calculate_effective_stats(stats(strength=12), 3, False, False)
        assert effective.strength == 12

    def test_fist_and_dual_blade_never_get_bonus(self):
        assert calculate_effective_stats(stats(strength=12), 35, False, True).strength == 12
        assert calculate_effective_stats(stats(strength=12), 3, True, True).strength == 12

    def test_bows_always_get_bonus(self):
        assert applies_two_hand_bonus(51, False, False)
        assert applies_two_hand_bonus(56, False, False)
        assert calculate_effective_stats(stats(strength=13), 50, False, False).strength == 19

    def test_strength_cap(self):
        assert calculate_effective_stats(stats(strength=99), 3, False, True).strength == 148

    def test_other_stats_untouched(self):
        effective = calculate_effective_stats(stats(strength=20, dexterity=30), 3, False, True)
        assert effective.dexterity == 30


def test_check_requirements():
    requirements = {Stat.STR: 12, Stat.DEX: 10}
    assert check_requirements(stats(strength=12, dexterity=10), requirements)
    assert not check_requirements(stats(strength=11, dexterity=10), requirements)


# =============================================================================
# AR
# =============================================================================

class TestLinearWeapon:
    """Hand-checkable values: saturation == level / 100."""

    def test_ar_at_zero(self, linear_game_data):
        resolved = resolve_weapon(linear_game_data, 'Test Sword', 'Standard', 0)
        ar = calculate_ar(linear_game_data, resolved, stats(strength=30, faith=50))
        assert ar.damage[DamageType.PHYSICAL].total == pytest.approx(115)
        assert ar.damage[DamageType.FIRE].total == pytest.approx(44)
        assert ar.damage[DamageType.MAGIC] is None
        assert ar.total == pytest.approx(159)

    def test_ar_upgraded(self, linear_game_data):
        resolved = resolve_weapon(linear_game_data, 'Test Sword', 'Standard', 10)
        ar = calculate_ar(linear_game_data, resolved, stats(strength=30, faith=50))
        assert ar.damage[DamageType.PHYSICAL].total == pytest.approx(245)
        assert ar.damage[DamageType.FIRE].total == pytest.approx(92)

    def test_per_stat_breakdown(self, linear_game_data):
        resolved = resolve_weapon(linear_game_data, 'Test Sword', 'Standard', 0)
        ar = calculate_ar(linear_game_data, resolved, stats(strength=30))
        per_stat = ar.damage[DamageType.PHYSICAL].per_stat
        assert per_stat[Stat.STR].saturation == pytest.approx(0.3)
        assert per_stat[Stat.STR].scaling == pytest.approx(15)
        assert per_stat[Stat.STR].raw_scaling == 50
        assert per_stat[Stat.DEX].scaling == 0

    def test_requirements_checked_per_damage_type(self, linear_game_data):
        resolved = resolve_weapon(linear_game_data, 'Test Sword', 'Standard', 0)
        ar = calculate_ar(linear_game_data, resolved, stats(strength=11, faith=50))
        assert not ar.requirements_met
        assert not ar.damage[DamageType.PHYSICAL].requirements_met
        assert ar.damage[DamageType.FIRE].requirements_met
        # No penalty by default
        assert ar.damage[DamageType.PHYSICAL].total == pytest.approx(105.5)

    def test_requirement_penalty(self, linear_game_data):
        resolved = resolve_weapon(linear_game_data, 'Test Sword', 'Standard', 0)
        options = CalculatorOptions(apply_requirement_penalty=True)
        ar = calculate_ar(linear_game_data, resolved, stats(strength=11, faith=50), options)
        assert ar.damage[DamageType.PHYSICAL].scaling == pytest.approx(-40)
        assert ar.damage[DamageType.PHYSICAL].total == pytest.approx(60)
        assert ar.damage[DamageType.FIRE].total == pytest.approx(44)

    def test_ignore_requirements(self, linear_game_data):
        resolved = resolve_weapon(linear_game_data, 'Test Sword', 'Standard', 0)
        options = CalculatorOptions(ignore_requirements=True, apply_requirement_penalty=True)
        ar = calculate_ar(linear_game_data, resolved, stats(strength=11), options)
        assert ar.requirements_met
        assert ar.damage[DamageType.PHYSICAL].total == pytest.approx(105.5)

    def test_two_handing_meets_requirement(self, linear_game_data):
        resolved = resolve_weapon(linear_game_data, 'Test Sword', 'Standard', 0)
        ar = calculate_ar(linear_game_data, resolved, stats(strength=8),
                          CalculatorOptions(two_handing=True))
        assert ar.requirements_met
        assert ar.effective_stats.strength == 12
        assert ar.damage[DamageType.PHYSICAL].total == pytest.approx(106)

    def test_spell_scaling_with_override(self, linear_game_data):
        resolved = resolve_weapon(linear_game_data, 'Test Staff', 'Standard', 10)
        ar = calculate_ar(linear_game_data, resolved, stats(intelligence=50, faith=30))
        sorcery = ar.spells[SpellType.SORCERY]
        assert sorcery.total == pytest.approx(187)
        assert ar.spells[SpellType.INCANTATION] is None
        assert ar.spell_power() == pytest.approx(187)

    def test_spell_requirement_penalty(self, linear_game_data):
        resolved = resolve_weapon(linear_game_data, 'Test Staff', 'Standard', 0)
        options = CalculatorOptions(apply_requirement_penalty=True)
        ar = calculate_ar(linear_game_data, resolved, stats(intelligence=19), options)
        assert ar.spells[SpellType.SORCERY].total == pytest.approx(60)


class TestSampleWeapons:

    def test_longsword_at_breakpoints(self, game_data):
        ar = calculate_weapon_ar(game_data, 'Longsword', 'Standard', 0,
                                 stats(strength=18, dexterity=18))
        physical = ar.damage[DamageType.PHYSICAL]
        assert physical.total == pytest.approx(132.825)
        assert physical.rounded == 132
        assert ar.rounded == 133
        assert ar.requirements_met

    def test_longsword_upgraded(self, game_data):
        ar = calculate_weapon_ar(game_data, 'Longsword', 'Standard', 25,
                                 stats(strength=18, dexterity=18))
        assert ar.total == pytest.approx(339.3915625)
        assert ar.rounded == 340

    def test_two_handing_matches_raised_strength(self, game_data):
        two_handed = calculate_weapon_ar(game_data, 'Longsword', 'Standard', 0,
                                         stats(strength=12, dexterity=18),
                                         CalculatorOptions(two_handing=True))
        raised = calculate_weapon_ar(game_data, 'Longsword', 'Standard', 0,
                                     stats(strength=18, dexterity=18))
        assert two_handed.total == pytest.approx(raised.total)

    def test_dual_blade_ignores_two_handing(self, game_data):
        base = stats(strength=20, dexterity=20)
        one = calculate_weapon_ar(game_data, 'Twinned Knight Swords', 'Standard', 0, base)
        two = calculate_weapon_ar(game_data, 'Twinned Knight Swords', 'Standard', 0, base,
                                  CalculatorOptions(two_handing=True))
        assert one.total == two.total

    def test_bleed_scales_with_arcane(self, game_data):
        ar = calculate_weapon_ar(game_data, 'Longsword', 'Blood', 0,
                                 stats(strength=18, dexterity=18, arcane=45))
        bleed = ar.status[StatusType.BLEED]
        assert bleed.base == 45
        assert bleed.total == pytest.approx(65.25)
        assert bleed.rounded == 65
        assert ar.status[StatusType.POISON] is None

    def test_bleed_upgraded(self, game_data):
        ar = calculate_weapon_ar(game_data, 'Longsword', 'Blood', 25,
                                 stats(strength=18, dexterity=18, arcane=45))
        assert ar.status[StatusType.BLEED].total == pytest.approx(103.025)

    def test_staff_sorcery_scaling(self, game_data):
        ar = calculate_weapon_ar(game_data, 'Meteorite Staff', 'Standard', 10,
                                 stats(strength=10, intelligence=50))
        assert ar.spells[SpellType.SORCERY].total == pytest.approx(200)

    def test_seal_incantation_scaling(self, game_data):
        ar = calculate_weapon_ar(game_data, 'Finger Seal', 'Standard', 0,
                                 stats(strength=10, faith=50))
        assert ar.spells[SpellType.INCANTATION].total == pytest.approx(164)
        assert ar.spells[SpellType.SORCERY] is None

    def test_non_catalyst_has_no_spell_power(self, game_data):
        ar = calculate_weapon_ar(game_data, 'Longsword', 'Standard', 0, stats())
        assert ar.spell_power() == 0.0

    def test_unknown_weapon(self, game_data):
        assert calculate_weapon_ar(game_data, 'Nonexistent', 'Standard', 0, stats()) is None


def test_critical_damage():
    assert calculate_critical_damage(132.825, 3) == 398
    assert calculate_critical_damage(100, 3, critical=110) == 330
    assert calculate_critical_damage(100, 51) is None


def test_critical_damage_rounds_half_up():
    assert calculate_critical_damage(100.5, 1) == 402
    assert calculate_critical_damage(100.125, 1) == 401


# =============================================================================
# Investment
# =============================================================================

@pytest.mark.parametrize('two_handing', [False, True])
def test_more_investment_never_lowers_ar(game_data, two_handing):
    options = CalculatorOptions(two_handing=two_handing)
    low = PlayerStats(strength=8, dexterity=8, intelligence=8, faith=8, arcane=8)
    high = PlayerStats(strength=99, dexterity=99, intelligence=99, faith=99, arcane=99)
    checked = 0
    for name, weapon in game_data.weapons.items():
        for affinity in weapon.affinities:
            for level in (0, weapon.max_upgrade_level):
                weak = calculate_weapon_ar(game_data, name, affinity, level, low, options)
                strong = calculate_weapon_ar(game_data, name, affinity, level, high, options)
                if weak is None:
                    continue
                checked += 1
                assert weak.total <= strong.total
                for damage_type, result in weak.damage.items():
                    if result is not None:
                        assert result.total <= strong.damage[damage_type].total
                for status, result in weak.status.items():
                    if result is not None:
                        assert result.total <= strong.status[status].total
                for spell, result in weak.spells.items():
                    if result is not None:
                        assert result.total <= strong.spells[spell].total
    assert checked == 18


def test_ar_rises_with_each_point_of_strength(game_data):
    previous = 0.0
    for strength in range(1, 100):
        ar = calculate_weapon_ar(game_data, 'Longsword', 'Heavy', 25, stats(strength=strength))
        assert ar.total >= previous
        previous = ar.total
