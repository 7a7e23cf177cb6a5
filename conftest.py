"""
Shared pytest fixtures.

`game_data` is the bundled sample data; `linear_game_data` is a tiny
hand-built table set whose curve makes saturation equal level / 100, so
expected values can be worked out by hand.
"""

import sys
from pathlib import Path

import pytest

SCRIPT_DIR = Path(__file__).parent
sys.path.insert(0, str(SCRIPT_DIR))

from models import (
    GameData, CurveDefinition, ReinforceRates, WeaponEntry, AffinityData,
    DamageTypeData, StatScaling, SpellScalingData, EnemyDefenseData,
    PhysicalDefenseType, Stat, DamageType,
)
from data_loader import load_game_data


SAMPLE_DATA_PATH = SCRIPT_DIR / 'data' / 'sample_data.json'


@pytest.fixture(scope='session')
def sample_data_path():
    return SAMPLE_DATA_PATH


@pytest.fixture(scope='session')
def game_data():
    return load_game_data(SAMPLE_DATA_PATH)


@pytest.fixture
def linear_curve():
    """growth == level for 0..100, saturation == level / 100."""
    return CurveDefinition(
        id=0,
        stage_max_val=(20.0, 40.0, 60.0, 80.0, 100.0),
        stage_max_grow_val=(20.0, 40.0, 60.0, 80.0, 100.0),
        adj_pt=(1.0, 1.0, 1.0, 1.0, 1.0),
    )


@pytest.fixture
def linear_game_data(linear_curve):
    """
    One straight sword and one staff on a linear curve.

    Rates: +0 is all 1.0; +10 doubles attack and scales correction by 1.5.
    """
    sword = WeaponEntry(
        name='Test Sword',
        wep_type=3,
        max_upgrade_level=10,
        requirements={Stat.STR: 12, Stat.DEX: 0, Stat.INT: 0, Stat.FAI: 0, Stat.ARC: 0},
        affinities={
            'Standard': AffinityData(
                name='Standard',
                reinforce_type_id=0,
                damage={
                    DamageType.PHYSICAL: DamageTypeData(100.0, {Stat.STR: StatScaling(50.0, 0)}),
                    DamageType.FIRE: DamageTypeData(40.0, {Stat.FAI: StatScaling(20.0, 0)}),
                },
                weapon_scaling={Stat.STR: 50.0, Stat.FAI: 20.0},
            ),
        },
        atk_attribute=2,
    )
    staff = WeaponEntry(
        name='Test Staff',
        wep_type=57,
        max_upgrade_level=10,
        requirements={Stat.INT: 20},
        affinities={
            'Standard': AffinityData(
                name='Standard',
                reinforce_type_id=0,
                damage={DamageType.PHYSICAL: DamageTypeData(20.0)},
                sorcery_scaling=SpellScalingData({
                    Stat.INT: StatScaling(100.0, 0),
                    Stat.FAI: StatScaling(40.0, 0, is_override=True),
                }),
            ),
        },
    )
    return GameData(
        curves={0: linear_curve},
        weapons={sword.name: sword, staff.name: staff},
        reinforce_rates={
            0: ReinforceRates(),
            10: ReinforceRates(
                physics_atk_rate=2.0, magic_atk_rate=2.0, fire_atk_rate=2.0,
                thunder_atk_rate=2.0, dark_atk_rate=2.0,
                **{f: 1.5 for f in ('correct_strength_rate', 'correct_agility_rate',
                                    'correct_magic_rate', 'correct_faith_rate',
                                    'correct_luck_rate')}
            ),
        },
        enemies={
            'Dummy': EnemyDefenseData(
                name='Dummy',
                defense={key: 117.0 for key in PhysicalDefenseType},
                negation={key: 20.0 for key in PhysicalDefenseType},
            ),
        },
    )
