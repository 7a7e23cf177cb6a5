"""
Enemy Defense Formulas

Defense is a step function of the attack/defense ratio with five tiers,
each a quadratic in the ratio between a 0.1x floor and a 0.9x cap:

    defense <  0.125 x attack  ->  0.9
    defense <= 0.4   x attack  ->  (-0.8/121)(r - 8)^2   + 0.9
    defense <= 1     x attack  ->  (-0.4/3)  (r - 2.5)^2 + 0.7
    defense <= 8     x attack  ->  (19.2/49) (r - 0.125)^2 + 0.1
    otherwise                  ->  0.1

Negation is applied afterwards as a percentage.
"""

from typing import Optional

from models import DamageType, PhysicalDefenseType, AttackAttribute


def calculate_defense_reduction(attack: float, defense: float) -> float:
    """
    Damage remaining after enemy defense.

    Args:
        attack: Incoming attack value for one damage type
        defense: Enemy defense for that damage type

    Returns:
        Damage after defense (between 0.1x and 0.9x attack)
    """
    if attack <= 0:
        return 0.0
    if defense <= 0:
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


def apply_negation(damage: float, negation: float) -> float:
    """Apply percentage negation. Negative negation amplifies; no clamping."""
    return damage * (1 - negation / 100)


def calculate_single_type_damage(base_damage: float, motion_value: float,
                                 defense: float, negation: float) -> float:
    """
    Damage of one damage type against an enemy.

    Args:
        base_damage: AR of this damage type
        motion_value: Motion value as a percentage (100 = 1.0x)
        defense: Enemy defense for the type
        negation: Enemy negation percentage for the type

    Returns:
        Damage, clamped at 0
    """
    if base_damage <= 0:
        return 0.0
    attack = base_damage * (motion_value / 100)
    after_defense = calculate_defense_reduction(attack, defense)
    return max(0.0, apply_negation(after_defense, negation))


_ATTRIBUTE_TO_DEFENSE = {
    AttackAttribute.STANDARD: PhysicalDefenseType.PHYSICAL,
    AttackAttribute.STRIKE: PhysicalDefenseType.STRIKE,
    AttackAttribute.SLASH: PhysicalDefenseType.SLASH,
    AttackAttribute.PIERCE: PhysicalDefenseType.PIERCE,
}

_NAME_TO_DEFENSE = {
    'standard': PhysicalDefenseType.PHYSICAL,
    'strike': PhysicalDefenseType.STRIKE,
    'slash': PhysicalDefenseType.SLASH,
    'pierce': PhysicalDefenseType.PIERCE,
}


def get_physical_defense_type(attack_attribute) -> PhysicalDefenseType:
    """
    Defense key used for physical damage of an attack.

    Accepts an attribute id (0-3) or a name ("Slash", "strike", ...).
    Anything unrecognised uses the generic physical key.
    """
    if isinstance(attack_attribute, str):
        return _NAME_TO_DEFENSE.get(attack_attribute.strip().lower(), PhysicalDefenseType.PHYSICAL)
    try:
        return _ATTRIBUTE_TO_DEFENSE[AttackAttribute(attack_attribute)]
    except (ValueError, KeyError):
        return PhysicalDefenseType.PHYSICAL


def defense_key_for(damage_type: DamageType,
                    physical_key: Optional[PhysicalDefenseType] = None) -> PhysicalDefenseType:
    """Enemy defense key for a damage type."""
    if damage_type == DamageType.PHYSICAL:
        return physical_key or PhysicalDefenseType.PHYSICAL
    return PhysicalDefenseType(damage_type.value)
