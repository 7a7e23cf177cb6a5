"""
Data models for the Elden Ring damage calculator

Defines the read-only lookup-table records (curves, weapons, reinforce rates,
skills, enemies), player stats and the option structs passed to the
calculators.
"""

from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum
from typing import Any, Optional, Dict, List, Tuple, FrozenSet


class DataIntegrityError(ValueError):
    """Raised when loaded game data is internally inconsistent.

    Signals a bug in whatever produced the data bundle (bad curve breakpoints,
    dangling override ids), as opposed to a normal "not applicable" result.
    """


# =============================================================================
# ENUMS
# =============================================================================

class Stat(Enum):
    """Damage scaling attributes, in tie-break precedence order."""
    STR = 'strength'
    DEX = 'dexterity'
    INT = 'intelligence'
    FAI = 'faith'
    ARC = 'arcane'


class DamageType(Enum):
    """Attack damage types, in fixed enumeration order."""
    PHYSICAL = 'physical'
    MAGIC = 'magic'
    FIRE = 'fire'
    LIGHTNING = 'lightning'
    HOLY = 'holy'


class StatusType(Enum):
    """Status buildup effects carried by weapons."""
    POISON = 'poison'
    SCARLET_ROT = 'scarlet_rot'
    BLEED = 'bleed'
    FROST = 'frost'
    SLEEP = 'sleep'
    MADNESS = 'madness'


class SpellType(Enum):
    SORCERY = 'sorcery'
    INCANTATION = 'incantation'


class PhysicalDefenseType(Enum):
    """Enemy defense keys; physical splits into attribute sub-types."""
    PHYSICAL = 'physical'
    STRIKE = 'strike'
    SLASH = 'slash'
    PIERCE = 'pierce'
    MAGIC = 'magic'
    FIRE = 'fire'
    LIGHTNING = 'lightning'
    HOLY = 'holy'


class AttackAttribute(IntEnum):
    """Weapon/attack physical attribute ids."""
    STANDARD = 0
    STRIKE = 1
    SLASH = 2
    PIERCE = 3
    WEAPON_PRIMARY = 252
    WEAPON_SECONDARY = 253


ALL_STATS: Tuple[Stat, ...] = tuple(Stat)
ALL_DAMAGE_TYPES: Tuple[DamageType, ...] = tuple(DamageType)


# Reinforce-rate field per damage type and per stat
ATTACK_RATE_FIELDS = {
    DamageType.PHYSICAL: 'physics_atk_rate',
    DamageType.MAGIC: 'magic_atk_rate',
    DamageType.FIRE: 'fire_atk_rate',
    DamageType.LIGHTNING: 'thunder_atk_rate',
    DamageType.HOLY: 'dark_atk_rate',
}

CORRECT_RATE_FIELDS = {
    Stat.STR: 'correct_strength_rate',
    Stat.DEX: 'correct_agility_rate',
    Stat.INT: 'correct_magic_rate',
    Stat.FAI: 'correct_faith_rate',
    Stat.ARC: 'correct_luck_rate',
}


# =============================================================================
# WEAPON TYPE CONSTANTS
# =============================================================================

WEP_TYPE_FIST = 35
WEP_TYPES_BOW = frozenset({50, 51, 53})
WEP_TYPE_BALLISTA = 56

# Strength cap after the two-handing multiplier
MAX_EFFECTIVE_STRENGTH = 148
TWO_HAND_MULTIPLIER = 1.5

# wepType -> weapon class name (the names skill data uses)
WEAPON_CLASS_MAP: Dict[int, str] = {
    1: 'Dagger',
    3: 'Straight Sword',
    5: 'Greatsword',
    7: 'Colossal Sword',
    9: 'Curved Sword',
    11: 'Curved Greatsword',
    13: 'Katana',
    14: 'Twinblade',
    15: 'Thrusting Sword',
    16: 'Heavy Thrusting Sword',
    17: 'Axe',
    19: 'Greataxe',
    21: 'Hammer',
    23: 'Great Hammer',
    24: 'Flail',
    25: 'Spear',
    28: 'Great Spear',
    29: 'Halberd',
    31: 'Reaper',
    35: 'Fist',
    37: 'Claw',
    39: 'Whip',
    41: 'Colossal Weapon',
    50: 'Light Bow',
    51: 'Bow',
    53: 'Greatbow',
    55: 'Crossbow',
    56: 'Ballista',
    57: 'Glintstone Staff',
    61: 'Sacred Seal',
    65: 'Small Shield',
    67: 'Medium Shield',
    69: 'Greatshield',
    87: 'Torch',
    88: 'Hand-to-Hand',
    89: 'Perfume Bottle',
    90: 'Thrusting Shield',
    91: 'Throwing Blade',
    92: 'Backhand Blade',
    93: 'Light Greatsword',
    94: 'Great Katana',
    95: 'Beast Claw',
}


# =============================================================================
# TABLE RECORDS
# =============================================================================

@dataclass(frozen=True)
class CurveDefinition:
    """CalcCorrectGraph row: five breakpoints, growth values and exponents."""
    id: int
    stage_max_val: Tuple[float, ...]
    stage_max_grow_val: Tuple[float, ...]
    adj_pt: Tuple[float, ...]


@dataclass(frozen=True)
class ReinforceRates:
    """Upgrade-level multipliers for one reinforce type at one level."""
    physics_atk_rate: float = 1.0
    magic_atk_rate: float = 1.0
    fire_atk_rate: float = 1.0
    thunder_atk_rate: float = 1.0
    dark_atk_rate: float = 1.0
    stamina_atk_rate: float = 1.0
    correct_strength_rate: float = 1.0
    correct_agility_rate: float = 1.0
    correct_magic_rate: float = 1.0
    correct_faith_rate: float = 1.0
    correct_luck_rate: float = 1.0
    physics_guard_cut_rate: float = 1.0
    magic_guard_cut_rate: float = 1.0
    fire_guard_cut_rate: float = 1.0
    thunder_guard_cut_rate: float = 1.0
    dark_guard_cut_rate: float = 1.0
    stamina_guard_def_rate: float = 1.0
    sp_effect_id1: int = 0
    sp_effect_id2: int = 0

    def attack_rate(self, damage_type: DamageType) -> float:
        return getattr(self, ATTACK_RATE_FIELDS[damage_type])

    def correct_rate(self, stat: Stat) -> float:
        return getattr(self, CORRECT_RATE_FIELDS[stat])


@dataclass(frozen=True)
class SpEffectEntry:
    """Status buildup magnitudes of one SpEffect row."""
    id: int
    attack_power: Dict[StatusType, float] = field(default_factory=dict)


@dataclass(frozen=True)
class StatScaling:
    """Scaling of one stat for one damage type."""
    base: float
    curve_id: int
    is_override: bool = False


@dataclass(frozen=True)
class DamageTypeData:
    attack_base: float
    scaling: Dict[Stat, StatScaling] = field(default_factory=dict)


@dataclass(frozen=True)
class StatusEffectData:
    """Status effect slot on an affinity (spEffect behaviour id + arcane scaling)."""
    sp_effect_behavior_id: int
    sp_effect_slot: int = 0
    arcane_scaling: float = 0.0
    arcane_curve_id: int = 6


@dataclass(frozen=True)
class SpellScalingData:
    scaling: Dict[Stat, StatScaling] = field(default_factory=dict)


@dataclass(frozen=True)
class AffinityData:
    """One affinity variant of a weapon."""
    name: str
    reinforce_type_id: int
    damage: Dict[DamageType, DamageTypeData] = field(default_factory=dict)
    status: Dict[StatusType, StatusEffectData] = field(default_factory=dict)
    sorcery_scaling: Optional[SpellScalingData] = None
    incantation_scaling: Optional[SpellScalingData] = None
    weapon_scaling: Dict[Stat, float] = field(default_factory=dict)

    def spell_scaling(self, spell_type: SpellType) -> Optional[SpellScalingData]:
        if spell_type == SpellType.SORCERY:
            return self.sorcery_scaling
        return self.incantation_scaling


@dataclass(frozen=True)
class GuardData:
    """Base guard values before reinforcement."""
    negation: Dict[DamageType, float] = field(default_factory=dict)
    guard_boost: float = 0.0
    resistance: Dict[StatusType, float] = field(default_factory=dict)


@dataclass(frozen=True)
class WeaponEntry:
    """A named weapon with its affinity variants and affinity-invariant fields."""
    name: str
    wep_type: int
    max_upgrade_level: int
    requirements: Dict[Stat, int]
    affinities: Dict[str, AffinityData]
    is_dual_blade: bool = False
    attack_base_stamina: float = 0.0
    sa_weapon_damage: float = 0.0
    atk_attribute: int = 0
    is_normal_attack: bool = False
    is_slash_attack: bool = False
    is_blow_attack: bool = False
    is_thrust_attack: bool = False
    critical: float = 100.0
    guard: Optional[GuardData] = None
    gem_mount_type: int = 0
    sword_art_id: int = 10

    @property
    def weapon_class(self) -> Optional[str]:
        return WEAPON_CLASS_MAP.get(self.wep_type)

    @property
    def is_somber(self) -> bool:
        return self.max_upgrade_level == 10


# =============================================================================
# SKILLS (ASHES OF WAR)
# =============================================================================

@dataclass(frozen=True)
class AttackElementCorrect:
    """Per-(stat, damage type) scaling override for skill bullets.

    `overrides` holds every pair whose correct flag is set; a rate of -1 means
    "use the weapon's own scaling value for that stat".
    """
    id: int
    overrides: Dict[Tuple[Stat, DamageType], float] = field(default_factory=dict)

    def affects(self, stat: Stat, damage_type: DamageType) -> bool:
        return (stat, damage_type) in self.overrides


@dataclass(frozen=True)
class SkillAttack:
    """One hit of a skill."""
    atk_id: int
    name: str
    motion: Dict[DamageType, float] = field(default_factory=dict)  # multipliers, 1.0 = 100 MV
    flat: Dict[DamageType, float] = field(default_factory=dict)
    motion_stamina: float = 0.0
    flat_stamina: float = 0.0
    motion_poise: float = 0.0
    flat_poise: float = 0.0
    atk_attribute: int = AttackAttribute.WEAPON_PRIMARY
    guard_cut_cancel_rate: float = 0.0
    is_add_base_atk: bool = False
    overwrite_attack_element_correct_id: int = -1
    disable_two_hand_bonus: bool = False
    pvp_multiplier: float = 1.0


@dataclass(frozen=True)
class GemEntry:
    """Ash-of-War gem mount rules.

    `affinity_flags` maps affinity index (0-12) to an explicit True/False;
    indices missing from the map carry no explicit flag.
    """
    default_affinity: int = 0
    affinity_flags: Dict[int, bool] = field(default_factory=dict)
    mountable_classes: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class Skill:
    id: int
    name: str
    attacks: Tuple[SkillAttack, ...] = ()
    gem: Optional[GemEntry] = None
    stat_point_bonus: Dict[Stat, int] = field(default_factory=dict)


# =============================================================================
# ENEMIES
# =============================================================================

@dataclass(frozen=True)
class EnemyDefenseData:
    """Defense and negation per defense key. Negation may be negative."""
    name: str
    defense: Dict[PhysicalDefenseType, float]
    negation: Dict[PhysicalDefenseType, float]


# =============================================================================
# PLAYER / OPTIONS
# =============================================================================

@dataclass(frozen=True)
class PlayerStats:
    """Five damage attributes."""
    strength: int = 10
    dexterity: int = 10
    intelligence: int = 10
    faith: int = 10
    arcane: int = 10

    def get(self, stat: Stat) -> int:
        return getattr(self, stat.value)

    def with_stat(self, stat: Stat, value: int) -> 'PlayerStats':
        return replace(self, **{stat.value: value})

    def to_dict(self) -> Dict[str, int]:
        return {s.value: self.get(s) for s in ALL_STATS}


@dataclass(frozen=True)
class StatConfig:
    """Optimizer bounds for one stat. min == max pins it."""
    min: int
    max: int

    @property
    def is_pinned(self) -> bool:
        return self.min == self.max


@dataclass
class CalculatorOptions:
    two_handing: bool = False
    ignore_requirements: bool = False
    apply_requirement_penalty: bool = False
    pvp_mode: bool = False
    show_lacking_fp: bool = False
    weapon_class: Optional[str] = None


# =============================================================================
# GAME DATA
# =============================================================================

@dataclass
class GameData:
    """All lookup tables, built once at load time and never mutated."""
    curves: Dict[int, CurveDefinition] = field(default_factory=dict)
    weapons: Dict[str, WeaponEntry] = field(default_factory=dict)
    reinforce_rates: Dict[int, ReinforceRates] = field(default_factory=dict)
    sp_effects: Dict[int, SpEffectEntry] = field(default_factory=dict)
    skills: Dict[int, Skill] = field(default_factory=dict)
    attack_element_correct: Dict[int, AttackElementCorrect] = field(default_factory=dict)
    enemies: Dict[str, EnemyDefenseData] = field(default_factory=dict)
    # curve_formulas.CurveCache over `curves`, built on first saturation lookup
    curve_cache: Optional[Any] = field(default=None, repr=False, compare=False)

    def get_skill_by_name(self, name: str) -> Optional[Skill]:
        for skill in self.skills.values():
            if skill.name == name:
                return skill
        return None

    def summary(self) -> Dict[str, int]:
        return {
            'curves': len(self.curves),
            'weapons': len(self.weapons),
            'reinforce_rates': len(self.reinforce_rates),
            'sp_effects': len(self.sp_effects),
            'skills': len(self.skills),
            'attack_element_correct': len(self.attack_element_correct),
            'enemies': len(self.enemies),
        }
