"""
Tests for Ash of War compatibility and skill damage.
"""

import pytest

from models import (
    PlayerStats, CalculatorOptions, DamageType, GemEntry, Skill, SkillAttack,
    DataIntegrityError,
)
from ar_calculator import calculate_weapon_ar
from skill_formulas import (
    compute_pwu, compute_pwu_multiplier, compute_bullet_damage, compute_motion_damage,
    compute_stat_point_bonus, compute_total_stat_point_bonus, compute_shield_chip,
    compute_stamina_damage, compute_poise_damage,
)
from skill_calculator import (
    AFFINITY_INDEX, is_affinity_supported, is_skill_compatible, get_available_skills,
    get_weapon_skill, get_unique_skill_names, attack_weapon_class, filter_attacks,
    resolve_attack_attribute, compute_skill_damage,
)

BREAKPOINT_STATS = PlayerStats(strength=18, dexterity=18)


# =============================================================================
# Formulas
# =============================================================================

def test_pwu():
    assert compute_pwu(0, 25) == 0.0
    assert compute_pwu(25, 25) == 1.0
    assert compute_pwu(5, 10) == 0.5
    assert compute_pwu(3, 0) == 0.0
    assert compute_pwu_multiplier(25, 25) == 4.0
    assert compute_pwu_multiplier(0, 10) == 1.0


def test_bullet_and_motion_formulas():
    assert compute_bullet_damage(60, 4.0) == 240
    assert compute_bullet_damage(60, 1.0, 0.8) == pytest.approx(108)
    assert compute_motion_damage(200, 1.5) == 300


def test_stat_point_bonus():
    assert compute_stat_point_bonus(110, 0.25, 5) == pytest.approx(1.375)
    assert compute_stat_point_bonus(110, 0.0, 5) == 0.0
    assert compute_total_stat_point_bonus(110, {}, {}) == 0.0


def test_stamina_poise_and_chip():
    assert compute_stamina_damage(70, 1.25, 1.2, 5) == pytest.approx(110)
    assert compute_poise_damage(12, 1.0, 1.5, 0) == pytest.approx(18)
    assert compute_shield_chip(-20) == pytest.approx(0.2)


# =============================================================================
# Compatibility
# =============================================================================

class TestAffinitySupport:

    def test_basic_affinities_always_allowed(self):
        gem = GemEntry(default_affinity=8, affinity_flags={i: False for i in range(13)})
        for index in range(4):
            assert is_affinity_supported(gem, index)

    def test_default_affinity_allowed(self):
        gem = GemEntry(default_affinity=8, affinity_flags={8: False})
        assert is_affinity_supported(gem, 8)

    def test_explicit_flags(self):
        gem = GemEntry(default_affinity=0, affinity_flags={4: False, 9: True})
        assert not is_affinity_supported(gem, 4)
        assert is_affinity_supported(gem, 9)

    def test_unflagged_allowed_without_special_restriction(self):
        gem = GemEntry(default_affinity=0, affinity_flags={})
        assert is_affinity_supported(gem, 11)
        assert is_affinity_supported(gem, 12)

    def test_unflagged_rejected_when_a_special_affinity_is_disallowed(self):
        gem = GemEntry(default_affinity=0, affinity_flags={5: False})
        assert not is_affinity_supported(gem, 11)
        assert not is_affinity_supported(gem, 12)

    def test_false_flag_outside_special_range_is_ignored(self):
        gem = GemEntry(default_affinity=0, affinity_flags={12: False})
        assert is_affinity_supported(gem, 11)


def test_skill_compatibility(game_data):
    longsword = game_data.weapons['Longsword']
    phalanx = game_data.skills[200]
    assert is_skill_compatible(phalanx, longsword, 'Magic')
    assert is_skill_compatible(phalanx, longsword, 'Heavy')
    assert not is_skill_compatible(phalanx, longsword, 'Blood')
    assert not is_skill_compatible(phalanx, longsword, 'Unknown Affinity')
    assert not is_skill_compatible(phalanx, game_data.weapons['Caestus'], 'Standard')
    # Unique skills carry no gem and are never rejected
    assert is_skill_compatible(game_data.skills[500], game_data.weapons['Caestus'], 'Standard')


def test_available_skills(game_data):
    assert get_available_skills(game_data, 'Longsword', 'Standard') == [
        'Glintblade Phalanx', 'Kick', 'Square Off', 'War Cry']
    assert get_available_skills(game_data, 'Longsword', 'Blood') == ['Kick', 'Square Off', 'War Cry']
    assert get_available_skills(game_data, 'Caestus', 'Standard') == ['Kick']
    assert get_available_skills(game_data, 'Meteorite Staff', 'Standard') == []
    assert get_available_skills(game_data, 'Nonexistent', 'Standard') == []


def test_weapon_and_unique_skills(game_data):
    assert get_weapon_skill(game_data, 'Longsword').name == 'Square Off'
    assert get_weapon_skill(game_data, 'Caestus') is None
    assert get_unique_skill_names(game_data) == ['Transient Moonlight']
    assert len(AFFINITY_INDEX) == 13


# =============================================================================
# Attack filtering / attributes
# =============================================================================

def test_attack_weapon_class():
    assert attack_weapon_class('[Greatsword] Square Off') == 'Greatsword'
    assert attack_weapon_class('Square Off') is None


class TestFilterAttacks:

    def test_generic_attacks_without_explicit_class(self, game_data):
        names = [a.name for a in filter_attacks(game_data.skills[100], 'Straight Sword')]
        assert names == ['Square Off']

    def test_explicit_attack_replaces_generic(self, game_data):
        names = [a.name for a in filter_attacks(game_data.skills[100], 'Greatsword')]
        assert names == ['[Greatsword] Square Off']

    def test_lacking_fp_hidden_by_default(self, game_data):
        names = [a.name for a in filter_attacks(game_data.skills[100], 'Straight Sword', True)]
        assert 'Square Off (lacking FP)' in names

    def test_variant_attacks_only_for_classes_without_explicit(self, game_data):
        war_cry = game_data.skills[300]
        names = [a.name for a in filter_attacks(war_cry, 'Straight Sword')]
        assert names == ['War Cry - Roar', '[Straight Sword] War Cry 1h R2']
        names = [a.name for a in filter_attacks(war_cry, 'Colossal Sword')]
        assert names == ['War Cry - Roar', '[Var1] War Cry 1h R2']


def test_resolve_attack_attribute(game_data):
    longsword = game_data.weapons['Longsword']
    caestus = game_data.weapons['Caestus']
    assert resolve_attack_attribute(252, longsword) == 'Slash'
    assert resolve_attack_attribute(252, caestus) == 'Strike'
    # Slash wins over thrust for the secondary attribute
    assert resolve_attack_attribute(253, longsword) == 'Slash'
    assert resolve_attack_attribute(253, game_data.weapons['Longbow']) == 'Pierce'
    assert resolve_attack_attribute(3, longsword) == 'Pierce'
    assert resolve_attack_attribute(7, longsword) == '-'


# =============================================================================
# Skill damage
# =============================================================================

class TestSkillDamage:

    def test_motion_attack(self, game_data):
        attacks = compute_skill_damage(game_data, 100, 'Longsword', 'Standard', 0, BREAKPOINT_STATS)
        assert len(attacks) == 1
        attack = attacks[0]
        assert attack.damage(DamageType.PHYSICAL) == pytest.approx(132.825 * 1.5)
        assert attack.damage(DamageType.MAGIC) is None
        assert attack.bullet_damage == 0
        assert attack.attack_attribute == 'Slash'
        assert attack.stamina == pytest.approx(84)
        assert attack.poise == pytest.approx(18)
        assert attack.has_stat_scaling
        assert not attack.is_bullet
        assert attack.shield_chip is None
        assert attack.pvp_multiplier is None

    def test_bullet_attack_with_scaling_override(self, game_data):
        stats = PlayerStats(strength=18, dexterity=18, intelligence=50)
        attacks = compute_skill_damage(game_data, 200, 'Longsword', 'Magic', 0, stats)
        assert len(attacks) == 1
        attack = attacks[0]
        assert attack.bullet[DamageType.MAGIC] == pytest.approx(108)
        assert attack.motion_damage == 0
        assert attack.is_bullet
        assert attack.has_stat_scaling
        assert attack.attack_attribute == 'Pierce'
        assert attack.shield_chip == pytest.approx(0.2)
        assert attack.poise == pytest.approx(5)
        assert attack.stamina is None

    def test_bullet_attack_upgraded(self, game_data):
        stats = PlayerStats(strength=18, dexterity=18, intelligence=50)
        attack = compute_skill_damage(game_data, 200, 'Longsword', 'Magic', 25, stats)[0]
        assert attack.bullet[DamageType.MAGIC] == pytest.approx(60 * 4 * (1 + 1.3 * 0.8))

    def test_override_of_minus_one_uses_weapon_scaling(self, game_data):
        attacks = compute_skill_damage(game_data, 500, 'Longsword', 'Standard', 0, BREAKPOINT_STATS)
        slash, wave = attacks
        assert slash.damage(DamageType.PHYSICAL) == pytest.approx(132.825 * 1.1)
        assert wave.bullet[DamageType.PHYSICAL] == pytest.approx(40 * (1 + 0.5 * 0.25 + 0.33 * 0.25))
        # Pairs the override entry does not list get no scaling
        assert wave.bullet[DamageType.MAGIC] == pytest.approx(80)
        assert wave.total == pytest.approx(40 * 1.2075 + 80)

    def test_stat_point_bonus(self, game_data):
        attacks = compute_skill_damage(game_data, 300, 'Longsword', 'Standard', 0, BREAKPOINT_STATS)
        roar, r2 = attacks
        assert roar.total == 0
        assert roar.poise == pytest.approx(16)
        assert not roar.has_stat_scaling
        assert r2.damage(DamageType.PHYSICAL) == pytest.approx((132.825 + 1.375) * 1.55)
        assert r2.attack_attribute == 'Slash'

    def test_weapon_class_option_selects_variant(self, game_data):
        options = CalculatorOptions(weapon_class='Colossal Sword')
        attacks = compute_skill_damage(game_data, 300, 'Longsword', 'Standard', 0,
                                       BREAKPOINT_STATS, options)
        assert [a.name for a in attacks] == ['War Cry - Roar', '[Var1] War Cry 1h R2']

    def test_two_hand_bonus_disabled_per_attack(self, game_data):
        stats = PlayerStats(strength=12, dexterity=18)
        options = CalculatorOptions(two_handing=True, pvp_mode=True)
        kick = compute_skill_damage(game_data, 400, 'Longsword', 'Standard', 0, stats, options)[0]
        one_handed = calculate_weapon_ar(game_data, 'Longsword', 'Standard', 0, stats)
        assert kick.damage(DamageType.PHYSICAL) == pytest.approx(one_handed.total * 0.8)
        assert kick.attack_attribute == 'Strike'
        assert kick.pvp_multiplier == 0.8

        square_off = compute_skill_damage(game_data, 100, 'Longsword', 'Standard', 0, stats, options)[0]
        assert square_off.damage(DamageType.PHYSICAL) == pytest.approx(132.825 * 1.5)

    def test_not_applicable_returns_empty(self, game_data):
        assert compute_skill_damage(game_data, 999, 'Longsword', 'Standard', 0, BREAKPOINT_STATS) == []
        assert compute_skill_damage(game_data, 100, 'Nonexistent', 'Standard', 0, BREAKPOINT_STATS) == []
        assert compute_skill_damage(game_data, 200, 'Longsword', 'Blood', 0, BREAKPOINT_STATS) == []
        assert compute_skill_damage(game_data, 100, 'Caestus', 'Standard', 0, BREAKPOINT_STATS) == []

    def test_unknown_scaling_override_raises(self, game_data):
        broken = Skill(
            id=900,
            name='Broken',
            attacks=(SkillAttack(atk_id=1, name='Broken', flat={DamageType.MAGIC: 10},
                                 is_add_base_atk=True, overwrite_attack_element_correct_id=4242),),
        )
        game_data.skills[900] = broken
        try:
            with pytest.raises(DataIntegrityError):
                compute_skill_damage(game_data, 900, 'Longsword', 'Standard', 0, BREAKPOINT_STATS)
        finally:
            del game_data.skills[900]
