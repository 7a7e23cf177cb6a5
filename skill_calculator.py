"""
Ash of War (Skill) Damage Calculator

Resolves every attack of a skill mounted on a weapon into motion damage
(scaled off the weapon's AR) and bullet damage (flat damage scaled by
upgrade level and stats), after checking that the skill can be mounted on
the weapon's class and affinity.

Compatibility of an affinity with a mountable skill is the union of:
  - the basic affinities (Standard, Heavy, Keen, Quality)
  - the skill's default affinity
  - affinities explicitly flagged as allowed
  - every affinity without a flag, unless some special affinity
    (Fire .. Poison) is explicitly disallowed
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from models import (
    GameData, PlayerStats, CalculatorOptions, Stat, DamageType, Skill,
    SkillAttack, GemEntry, WeaponEntry, AttackElementCorrect, AttackAttribute,
    DataIntegrityError, ALL_STATS, ALL_DAMAGE_TYPES,
)
from curve_formulas import cached_saturation
from weapon_resolver import ResolvedWeapon, resolve_weapon
from ar_calculator import ARResult, calculate_ar, calculate_effective_stats
from skill_formulas import (
    compute_pwu_multiplier, compute_scaling_contribution, compute_bullet_damage,
    compute_motion_damage, compute_total_stat_point_bonus, compute_shield_chip,
    compute_stamina_damage, compute_poise_damage,
)


# =============================================================================
# Constants
# =============================================================================

AFFINITY_INDEX: Dict[str, int] = {
    'Standard': 0,
    'Heavy': 1,
    'Keen': 2,
    'Quality': 3,
    'Fire': 4,
    'Flame Art': 5,
    'Lightning': 6,
    'Sacred': 7,
    'Magic': 8,
    'Cold': 9,
    'Poison': 10,
    'Blood': 11,
    'Occult': 12,
}

LAST_BASIC_AFFINITY = 3
SPECIAL_AFFINITIES = range(4, 11)

# swordArtsParamId meaning "no skill"
NO_SKILL_ID = 10
# gemMountType for weapons that accept Ashes of War
GEM_MOUNT_TYPE_MOUNTABLE = 2

ATTACK_ATTRIBUTE_NAMES = {
    AttackAttribute.STANDARD: 'Standard',
    AttackAttribute.STRIKE: 'Strike',
    AttackAttribute.SLASH: 'Slash',
    AttackAttribute.PIERCE: 'Pierce',
}

_CLASS_PREFIX = re.compile(r'^\[([^\]]+)\]\s*')
_ATTACK_NUMBER = re.compile(r'\s*#\d+$')
_VARIANT_CLASS = re.compile(r'^Var\d+$', re.IGNORECASE)


# =============================================================================
# Results
# =============================================================================

@dataclass
class AttackResult:
    """Damage of one skill attack, split into motion and bullet parts per type."""
    name: str
    atk_id: int
    motion: Dict[DamageType, float] = field(default_factory=dict)
    bullet: Dict[DamageType, float] = field(default_factory=dict)
    stamina: Optional[float] = None
    poise: Optional[float] = None
    attack_attribute: str = 'Standard'
    pvp_multiplier: Optional[float] = None
    shield_chip: Optional[float] = None
    has_stat_scaling: bool = False
    is_bullet: bool = False

    def damage(self, damage_type: DamageType) -> Optional[float]:
        """Combined damage of a type, None when the attack deals none of it."""
        value = self.motion.get(damage_type, 0.0) + self.bullet.get(damage_type, 0.0)
        return value if value > 0 else None

    @property
    def motion_damage(self) -> float:
        return sum(self.motion.values())

    @property
    def bullet_damage(self) -> float:
        return sum(self.bullet.values())

    @property
    def total(self) -> float:
        return self.motion_damage + self.bullet_damage

    def damage_by_type(self) -> Dict[DamageType, float]:
        return {t: self.motion.get(t, 0.0) + self.bullet.get(t, 0.0) for t in ALL_DAMAGE_TYPES}


# =============================================================================
# Compatibility
# =============================================================================

def is_affinity_supported(gem: GemEntry, affinity_index: int) -> bool:
    if affinity_index <= LAST_BASIC_AFFINITY:
        return True
    if affinity_index == gem.default_affinity:
        return True
    flag = gem.affinity_flags.get(affinity_index)
    if flag is not None:
        return flag
    has_explicit_false = any(gem.affinity_flags.get(i) is False for i in SPECIAL_AFFINITIES)
    return not has_explicit_false


def is_skill_compatible(skill: Skill, weapon: WeaponEntry, affinity_name: str) -> bool:
    """Skills without a gem entry are unique weapon skills and are not checked."""
    gem = skill.gem
    if gem is None:
        return True
    affinity_index = AFFINITY_INDEX.get(affinity_name)
    if affinity_index is None or not is_affinity_supported(gem, affinity_index):
        return False
    weapon_class = weapon.weapon_class
    return weapon_class is not None and weapon_class in gem.mountable_classes


def can_mount_skills(weapon: WeaponEntry) -> bool:
    return weapon.gem_mount_type == GEM_MOUNT_TYPE_MOUNTABLE


def get_available_skills(game_data: GameData, weapon_name: str, affinity_name: str) -> List[str]:
    """Names of mountable skills compatible with a weapon and affinity, sorted."""
    weapon = game_data.weapons.get(weapon_name)
    if weapon is None or not can_mount_skills(weapon):
        return []
    return sorted(
        skill.name for skill in game_data.skills.values()
        if skill.gem is not None and is_skill_compatible(skill, weapon, affinity_name)
    )


def get_weapon_skill(game_data: GameData, weapon_name: str) -> Optional[Skill]:
    """The skill a weapon comes with, if any."""
    weapon = game_data.weapons.get(weapon_name)
    if weapon is None or weapon.sword_art_id == NO_SKILL_ID:
        return None
    return game_data.skills.get(weapon.sword_art_id)


def get_unique_skill_names(game_data: GameData) -> List[str]:
    return sorted(skill.name for skill in game_data.skills.values() if skill.gem is None)


# =============================================================================
# Attack filtering / attributes
# =============================================================================

def attack_weapon_class(attack_name: str) -> Optional[str]:
    """'[Greatsword] Bloody Slash' -> 'Greatsword'; generic attacks give None."""
    match = _CLASS_PREFIX.match(attack_name)
    return match.group(1) if match else None


def _base_name(attack_name: str) -> str:
    name = _CLASS_PREFIX.sub('', attack_name)
    return _ATTACK_NUMBER.sub('', name).strip().lower()


def filter_attacks(skill: Skill, weapon_class: Optional[str],
                   show_lacking_fp: bool = False) -> List[SkillAttack]:
    """
    Attacks of a skill that apply to a weapon class.

    [Class] attacks apply only to that class. [VarN] attacks apply only to
    classes without any explicit attacks. A generic attack is replaced by an
    explicit attack with the same base name.
    """
    wanted = (weapon_class or '').lower()
    explicit_classes: Set[str] = set()
    explicit_names: Set[str] = set()
    for attack in skill.attacks:
        cls = attack_weapon_class(attack.name)
        if cls is None or _VARIANT_CLASS.match(cls):
            continue
        explicit_classes.add(cls.lower())
        if cls.lower() == wanted:
            explicit_names.add(_base_name(attack.name))
    has_explicit = wanted in explicit_classes

    selected = []
    for attack in skill.attacks:
        if not show_lacking_fp and 'lacking fp' in attack.name.lower():
            continue
        cls = attack_weapon_class(attack.name)
        if cls is None:
            if _base_name(attack.name) in explicit_names:
                continue
        elif _VARIANT_CLASS.match(cls):
            if has_explicit:
                continue
        elif cls.lower() != wanted:
            continue
        selected.append(attack)
    return selected


def resolve_attack_attribute(atk_attribute: int, weapon: WeaponEntry) -> str:
    """Physical attribute name of an attack (252/253 defer to the weapon)."""
    if atk_attribute == AttackAttribute.WEAPON_PRIMARY:
        try:
            return ATTACK_ATTRIBUTE_NAMES[AttackAttribute(weapon.atk_attribute)]
        except (ValueError, KeyError):
            return 'Standard'
    if atk_attribute == AttackAttribute.WEAPON_SECONDARY:
        if weapon.is_normal_attack:
            return 'Standard'
        if weapon.is_slash_attack:
            return 'Slash'
        if weapon.is_blow_attack:
            return 'Strike'
        if weapon.is_thrust_attack:
            return 'Pierce'
        return 'Standard'
    try:
        return ATTACK_ATTRIBUTE_NAMES[AttackAttribute(atk_attribute)]
    except (ValueError, KeyError):
        return '-'


# =============================================================================
# Bullet damage
# =============================================================================

def _weapon_type_has_scaling(resolved: ResolvedWeapon, damage_type: DamageType) -> bool:
    data = resolved.damage.get(damage_type)
    return data is not None and any(s.value > 0 for s in data.scaling.values())


def calculate_bullet_damage(game_data: GameData, flat_damage: float, resolved: ResolvedWeapon,
                            element_correct: Optional[AttackElementCorrect],
                            effective_stats: PlayerStats, damage_type: DamageType,
                            use_weapon_scaling: bool) -> float:
    """
    Bullet damage for one damage type.

    Args:
        flat_damage: Flat damage of the attack for this type
        resolved: Wielding weapon at its upgrade level
        element_correct: Scaling override entry, if the attack has one
        effective_stats: Stats with the two-handing bonus applied
        damage_type: Damage type of the flat damage
        use_weapon_scaling: Scale with the weapon's own scaling instead
    """
    if flat_damage == 0:
        return 0.0
    weapon = resolved.weapon
    pwu_multiplier = compute_pwu_multiplier(resolved.upgrade_level, weapon.max_upgrade_level)

    if element_correct is None and not use_weapon_scaling:
        return compute_bullet_damage(flat_damage, pwu_multiplier)

    weapon_type = resolved.damage.get(damage_type)
    weapon_scaling = weapon_type.scaling if weapon_type is not None else {}

    total_scaling = 0.0
    for stat in ALL_STATS:
        own = weapon_scaling.get(stat)
        if element_correct is not None:
            if not element_correct.affects(stat, damage_type):
                continue
            override = element_correct.overrides[(stat, damage_type)]
            if override >= 0:
                value = override * resolved.rates.correct_rate(stat)
            else:
                value = own.value if own is not None else 0.0
        else:
            if own is None or own.value <= 0:
                continue
            value = own.value

        if value == 0:
            continue
        curve_id = own.curve_id if own is not None else 0
        saturation = cached_saturation(game_data, curve_id, effective_stats.get(stat))
        total_scaling += compute_scaling_contribution(value, saturation)

    return compute_bullet_damage(flat_damage, pwu_multiplier, total_scaling)


# =============================================================================
# Skill damage
# =============================================================================

def _stat_point_bonuses(ar: ARResult, bonus: Dict[Stat, int]) -> Dict[DamageType, float]:
    bonuses = {}
    for damage_type in ALL_DAMAGE_TYPES:
        result = ar.damage.get(damage_type)
        if result is None or not bonus:
            bonuses[damage_type] = 0.0
            continue
        saturations = {stat: r.saturation for stat, r in result.per_stat.items()}
        bonuses[damage_type] = compute_total_stat_point_bonus(result.base, saturations, bonus)
    return bonuses


def _lookup_element_correct(game_data: GameData, attack: SkillAttack) -> Optional[AttackElementCorrect]:
    correct_id = attack.overwrite_attack_element_correct_id
    if correct_id < 0:
        return None
    entry = game_data.attack_element_correct.get(correct_id)
    if entry is None:
        raise DataIntegrityError(
            f"Attack {attack.atk_id} ({attack.name}) references unknown AttackElementCorrect {correct_id}"
        )
    return entry


def compute_skill_damage(game_data: GameData, skill_id: int, weapon_name: str,
                         affinity: str, upgrade_level: int, stats: PlayerStats,
                         options: Optional[CalculatorOptions] = None) -> List[AttackResult]:
    """
    Damage of every applicable attack of a skill on a weapon.

    Returns an empty list when the skill, weapon or affinity is unknown or
    the skill cannot be mounted on the weapon.

    Raises:
        DataIntegrityError: an attack references an unknown scaling override
    """
    options = options or CalculatorOptions()
    skill = game_data.skills.get(skill_id)
    if skill is None or not skill.attacks:
        return []
    resolved = resolve_weapon(game_data, weapon_name, affinity, upgrade_level)
    if resolved is None:
        return []
    weapon = resolved.weapon
    if not is_skill_compatible(skill, weapon, affinity):
        return []

    ar = calculate_ar(game_data, resolved, stats, options)
    ar_one_hand = None
    if options.two_handing and any(a.disable_two_hand_bonus for a in skill.attacks):
        one_hand = CalculatorOptions(
            two_handing=False,
            ignore_requirements=options.ignore_requirements,
            apply_requirement_penalty=options.apply_requirement_penalty,
        )
        ar_one_hand = calculate_ar(game_data, resolved, stats, one_hand)

    bonus = _stat_point_bonuses(ar, skill.stat_point_bonus)
    bonus_one_hand = _stat_point_bonuses(ar_one_hand, skill.stat_point_bonus) if ar_one_hand else None

    effective = calculate_effective_stats(stats, weapon.wep_type, weapon.is_dual_blade,
                                          options.two_handing)
    weapon_class = options.weapon_class or weapon.weapon_class

    results = []
    for attack in filter_attacks(skill, weapon_class, options.show_lacking_fp):
        element_correct = _lookup_element_correct(game_data, attack)
        use_weapon_scaling = attack.overwrite_attack_element_correct_id == -1

        if attack.disable_two_hand_bonus and ar_one_hand is not None:
            use_ar, use_bonus = ar_one_hand, bonus_one_hand
        else:
            use_ar, use_bonus = ar, bonus

        motion = {}
        bullet = {}
        for damage_type in ALL_DAMAGE_TYPES:
            mv = attack.motion.get(damage_type, 0.0)
            if mv > 0:
                motion[damage_type] = compute_motion_damage(
                    use_ar.damage_total(damage_type) + use_bonus[damage_type], mv)
            flat = attack.flat.get(damage_type, 0.0)
            if flat > 0 and attack.is_add_base_atk:
                bullet[damage_type] = calculate_bullet_damage(
                    game_data, flat, resolved, element_correct, effective, damage_type,
                    use_weapon_scaling)

        has_bullet_scaling = attack.is_add_base_atk and (
            element_correct is not None or (
                use_weapon_scaling and any(
                    attack.flat.get(t, 0.0) > 0 and _weapon_type_has_scaling(resolved, t)
                    for t in ALL_DAMAGE_TYPES
                )
            )
        )

        stamina = None
        if attack.motion_stamina > 0 or attack.flat_stamina > 0:
            value = compute_stamina_damage(weapon.attack_base_stamina, resolved.rates.stamina_atk_rate,
                                           attack.motion_stamina, attack.flat_stamina)
            stamina = value if value > 0 else None

        poise = None
        if attack.motion_poise > 0 or attack.flat_poise > 0:
            value = compute_poise_damage(weapon.sa_weapon_damage, 1.0, attack.motion_poise,
                                         attack.flat_poise)
            poise = value if value > 0 else None

        results.append(AttackResult(
            name=attack.name,
            atk_id=attack.atk_id,
            motion=motion,
            bullet=bullet,
            stamina=stamina,
            poise=poise,
            attack_attribute=resolve_attack_attribute(attack.atk_attribute, weapon),
            pvp_multiplier=attack.pvp_multiplier if options.pvp_mode else None,
            shield_chip=(compute_shield_chip(attack.guard_cut_cancel_rate)
                         if attack.guard_cut_cancel_rate != 0 else None),
            has_stat_scaling=any(v > 0 for v in attack.motion.values()) or has_bullet_scaling,
            is_bullet=attack.is_add_base_atk,
        ))
    return results
