"""
Game Data Loader

Loads a JSON data bundle (curves, reinforce rates, spEffects, weapons,
skills, scaling overrides, enemies) into a GameData instance. Field names
follow the game's param names (camelCase) so bundles exported by the param
parser load unchanged.

Usage:
    game_data = load_game_data('data/sample_data.json')
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional, Union

from models import (
    GameData, CurveDefinition, ReinforceRates, SpEffectEntry, StatScaling,
    DamageTypeData, StatusEffectData, SpellScalingData, AffinityData, GuardData,
    WeaponEntry, AttackElementCorrect, SkillAttack, GemEntry, Skill,
    EnemyDefenseData, Stat, DamageType, StatusType, PhysicalDefenseType,
    DataIntegrityError, ALL_STATS, ALL_DAMAGE_TYPES,
)
from curve_formulas import validate_curve


# Bundle key -> model field for ReinforceRates
REINFORCE_FIELDS = {
    'physicsAtkRate': 'physics_atk_rate',
    'magicAtkRate': 'magic_atk_rate',
    'fireAtkRate': 'fire_atk_rate',
    'thunderAtkRate': 'thunder_atk_rate',
    'darkAtkRate': 'dark_atk_rate',
    'staminaAtkRate': 'stamina_atk_rate',
    'correctStrengthRate': 'correct_strength_rate',
    'correctAgilityRate': 'correct_agility_rate',
    'correctMagicRate': 'correct_magic_rate',
    'correctFaithRate': 'correct_faith_rate',
    'correctLuckRate': 'correct_luck_rate',
    'physicsGuardCutRate': 'physics_guard_cut_rate',
    'magicGuardCutRate': 'magic_guard_cut_rate',
    'fireGuardCutRate': 'fire_guard_cut_rate',
    'thunderGuardCutRate': 'thunder_guard_cut_rate',
    'darkGuardCutRate': 'dark_guard_cut_rate',
    'staminaGuardDefRate': 'stamina_guard_def_rate',
    'spEffectId1': 'sp_effect_id1',
    'spEffectId2': 'sp_effect_id2',
}

# Bundle key for each status type on affinities and in SpEffectParam rows
STATUS_KEYS = {
    StatusType.POISON: 'poison',
    StatusType.SCARLET_ROT: 'scarletRot',
    StatusType.BLEED: 'bleed',
    StatusType.FROST: 'frost',
    StatusType.SLEEP: 'sleep',
    StatusType.MADNESS: 'madness',
}

SP_EFFECT_FIELDS = {
    StatusType.POISON: 'poizonAttackPower',
    StatusType.SCARLET_ROT: 'diseaseAttackPower',
    StatusType.BLEED: 'bloodAttackPower',
    StatusType.FROST: 'freezeAttackPower',
    StatusType.SLEEP: 'sleepAttackPower',
    StatusType.MADNESS: 'madnessAttackPower',
}


# =============================================================================
# Record parsers
# =============================================================================

def _parse_curve(key: str, raw: Dict[str, Any]) -> CurveDefinition:
    return CurveDefinition(
        id=int(raw.get('id', key)),
        stage_max_val=tuple(float(v) for v in raw['stageMaxVal']),
        stage_max_grow_val=tuple(float(v) for v in raw['stageMaxGrowVal']),
        adj_pt=tuple(float(v) for v in raw['adjPt_maxGrowVal']),
    )


def _parse_reinforce(raw: Dict[str, Any]) -> ReinforceRates:
    kwargs = {field: raw[key] for key, field in REINFORCE_FIELDS.items() if key in raw}
    return ReinforceRates(**kwargs)


def _parse_sp_effect(key: str, raw: Dict[str, Any]) -> SpEffectEntry:
    return SpEffectEntry(
        id=int(key),
        attack_power={
            status: float(raw[field])
            for status, field in SP_EFFECT_FIELDS.items()
            if raw.get(field)
        },
    )


def _parse_stat_scaling_map(raw: Optional[Dict[str, Any]]) -> Dict[Stat, StatScaling]:
    if not raw:
        return {}
    scaling = {}
    for stat in ALL_STATS:
        entry = raw.get(stat.value)
        if entry is None:
            continue
        scaling[stat] = StatScaling(
            base=float(entry['base']),
            curve_id=int(entry['curveId']),
            is_override=bool(entry.get('isOverride', False)),
        )
    return scaling


def _parse_affinity(name: str, raw: Dict[str, Any]) -> AffinityData:
    damage = {}
    for damage_type in ALL_DAMAGE_TYPES:
        entry = raw.get(damage_type.value)
        if entry is None:
            continue
        damage[damage_type] = DamageTypeData(
            attack_base=float(entry['attackBase']),
            scaling=_parse_stat_scaling_map(entry.get('scaling')),
        )

    status = {}
    for status_type, key in STATUS_KEYS.items():
        entry = raw.get(key)
        if entry is None:
            continue
        status[status_type] = StatusEffectData(
            sp_effect_behavior_id=int(entry['spEffectBehaviorId']),
            sp_effect_slot=int(entry.get('spEffectSlot', 0)),
            arcane_scaling=float(entry.get('arcaneScaling', 0)),
            arcane_curve_id=int(entry.get('curveId', 6)),
        )

    def spell(key):
        entry = raw.get(key)
        return SpellScalingData(_parse_stat_scaling_map(entry)) if entry else None

    return AffinityData(
        name=name,
        reinforce_type_id=int(raw['reinforceTypeId']),
        damage=damage,
        status=status,
        sorcery_scaling=spell('sorceryScaling'),
        incantation_scaling=spell('incantationScaling'),
        weapon_scaling={
            stat: float(raw.get('weaponScaling', {}).get(stat.value, 0))
            for stat in ALL_STATS
        },
    )


def _parse_guard(raw: Optional[Dict[str, Any]]) -> Optional[GuardData]:
    if not raw:
        return None
    return GuardData(
        negation={t: float(raw.get(t.value, 0)) for t in ALL_DAMAGE_TYPES},
        guard_boost=float(raw.get('guardBoost', 0)),
        resistance={
            status: float(raw.get('resistance', {}).get(key, 0))
            for status, key in STATUS_KEYS.items()
        },
    )


def _parse_weapon(name: str, raw: Dict[str, Any]) -> WeaponEntry:
    requirements = raw.get('requirements', {})
    return WeaponEntry(
        name=name,
        wep_type=int(raw['wepType']),
        max_upgrade_level=int(raw['maxUpgradeLevel']),
        requirements={stat: int(requirements.get(stat.value, 0)) for stat in ALL_STATS},
        affinities={
            affinity: _parse_affinity(affinity, data)
            for affinity, data in raw['affinities'].items()
        },
        is_dual_blade=bool(raw.get('isDualBlade', False)),
        attack_base_stamina=float(raw.get('attackBaseStamina', 0)),
        sa_weapon_damage=float(raw.get('saWeaponDamage', 0)),
        atk_attribute=int(raw.get('atkAttribute', 0)),
        is_normal_attack=bool(raw.get('isNormalAttackType', False)),
        is_slash_attack=bool(raw.get('isSlashAttackType', False)),
        is_blow_attack=bool(raw.get('isBlowAttackType', False)),
        is_thrust_attack=bool(raw.get('isThrustAttackType', False)),
        critical=float(raw.get('critical', 100)),
        guard=_parse_guard(raw.get('guard')),
        gem_mount_type=int(raw.get('gemMountType', 0)),
        sword_art_id=int(raw.get('swordArtsParamId', 10)),
    )


def _parse_element_correct(key: str, raw: Dict[str, Any]) -> AttackElementCorrect:
    overrides = {}
    for damage_type in ALL_DAMAGE_TYPES:
        for stat_name, rate in raw.get(damage_type.value, {}).items():
            overrides[(Stat(stat_name), damage_type)] = float(rate)
    return AttackElementCorrect(id=int(key), overrides=overrides)


def _damage_map(raw: Optional[Dict[str, Any]]) -> Dict[DamageType, float]:
    return {DamageType(k): float(v) for k, v in (raw or {}).items() if v}


def _parse_attack(raw: Dict[str, Any]) -> SkillAttack:
    return SkillAttack(
        atk_id=int(raw['atkId']),
        name=raw['name'],
        motion=_damage_map(raw.get('motion')),
        flat=_damage_map(raw.get('flat')),
        motion_stamina=float(raw.get('motionStamina', 0)),
        flat_stamina=float(raw.get('flatStamina', 0)),
        motion_poise=float(raw.get('motionPoise', 0)),
        flat_poise=float(raw.get('flatPoise', 0)),
        atk_attribute=int(raw.get('atkAttribute', 252)),
        guard_cut_cancel_rate=float(raw.get('guardCutCancelRate', 0)),
        is_add_base_atk=bool(raw.get('isAddBaseAtk', False)),
        overwrite_attack_element_correct_id=int(raw.get('overwriteAttackElementCorrectId', -1)),
        disable_two_hand_bonus=bool(raw.get('isDisableBothHandsAtkBonus', False)),
        pvp_multiplier=float(raw.get('pvpMultiplier', 1.0)),
    )


def _parse_gem(raw: Optional[Dict[str, Any]]) -> Optional[GemEntry]:
    if raw is None:
        return None
    return GemEntry(
        default_affinity=int(raw.get('defaultWepAttr', -1)),
        affinity_flags={int(k): bool(v) for k, v in raw.get('affinities', {}).items()},
        mountable_classes=frozenset(raw.get('mountableClasses', [])),
    )


def _parse_skill(key: str, raw: Dict[str, Any]) -> Skill:
    return Skill(
        id=int(key),
        name=raw['name'],
        attacks=tuple(_parse_attack(a) for a in raw.get('attacks', [])),
        gem=_parse_gem(raw.get('gem')),
        stat_point_bonus={Stat(k): int(v) for k, v in raw.get('statPointBonus', {}).items()},
    )


def _parse_enemy(key: str, raw: Dict[str, Any]) -> EnemyDefenseData:
    return EnemyDefenseData(
        name=raw.get('name', key),
        defense={PhysicalDefenseType(k): float(v) for k, v in raw['defense'].items()},
        negation={PhysicalDefenseType(k): float(v) for k, v in raw.get('negation', {}).items()},
    )


# =============================================================================
# Bundle
# =============================================================================

def validate_game_data(game_data: GameData) -> None:
    """
    Check cross-table integrity.

    Raises:
        DataIntegrityError: bad curve, or a skill attack pointing at an
            unknown AttackElementCorrect entry
    """
    for curve in game_data.curves.values():
        validate_curve(curve)
    for skill in game_data.skills.values():
        for attack in skill.attacks:
            correct_id = attack.overwrite_attack_element_correct_id
            if correct_id >= 0 and correct_id not in game_data.attack_element_correct:
                raise DataIntegrityError(
                    f"Skill {skill.name}: attack {attack.atk_id} references unknown "
                    f"AttackElementCorrect {correct_id}"
                )


def parse_game_data(raw: Dict[str, Any], validate: bool = True) -> GameData:
    """
    Build GameData from a decoded bundle.

    Raises:
        DataIntegrityError: missing required fields, bad values, or failed validation
    """
    try:
        game_data = GameData(
            curves={int(k): _parse_curve(k, v) for k, v in raw.get('curves', {}).items()},
            reinforce_rates={int(k): _parse_reinforce(v) for k, v in raw.get('reinforceRates', {}).items()},
            sp_effects={int(k): _parse_sp_effect(k, v) for k, v in raw.get('spEffects', {}).items()},
            weapons={k: _parse_weapon(k, v) for k, v in raw.get('weapons', {}).items()},
            attack_element_correct={
                int(k): _parse_element_correct(k, v)
                for k, v in raw.get('attackElementCorrect', {}).items()
            },
            skills={int(k): _parse_skill(k, v) for k, v in raw.get('skills', {}).items()},
            enemies={k: _parse_enemy(k, v) for k, v in raw.get('enemies', {}).items()},
        )
    except (KeyError, TypeError, ValueError) as e:
        if isinstance(e, DataIntegrityError):
            raise
        raise DataIntegrityError(f"Malformed data bundle: {type(e).__name__}: {e}") from e

    if validate:
        validate_game_data(game_data)
    return game_data


def load_game_data(path: Union[str, Path], validate: bool = True,
                   verbose: bool = False) -> GameData:
    """Read and parse a JSON bundle from disk."""
    path = Path(path)
    with open(path, 'r', encoding='utf-8') as f:
        raw = json.load(f)
    game_data = parse_game_data(raw, validate=validate)
    if verbose:
        counts = ', '.join(f"{v} {k}" for k, v in game_data.summary().items())
        print(f"Loaded {path.name}: {counts}")
    return game_data
