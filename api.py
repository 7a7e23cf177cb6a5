#!/usr/bin/env python3
"""
Elden Ring Damage Calculator - FastAPI Backend

Provides REST API endpoints for weapon AR, Ash of War damage, enemy damage
and stat optimization over a loaded game data bundle.
"""

import os
import sys
from pathlib import Path
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.responses import HTMLResponse
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
import uvicorn

# =============================================================================
# PATH SETUP
# =============================================================================

SCRIPT_DIR = Path(__file__).parent
DATA_DIR = SCRIPT_DIR / 'data'
DEFAULT_DATA_PATH = DATA_DIR / 'sample_data.json'
DATA_PATH_ENV = 'ER_CALC_DATA'

sys.path.insert(0, str(SCRIPT_DIR))

# =============================================================================
# IMPORTS FROM CALCULATOR
# =============================================================================

from models import (
    GameData, PlayerStats, StatConfig, CalculatorOptions, Stat, DamageType,
    DataIntegrityError, ALL_STATS, ALL_DAMAGE_TYPES,
)
from data_loader import load_game_data
from weapon_resolver import resolve_weapon, resolve_guard_stats, get_scaling_grades
from ar_calculator import ARResult, calculate_ar, calculate_critical_damage
from skill_calculator import (
    AttackResult, compute_skill_damage, get_available_skills, get_unique_skill_names,
)
from enemy_damage import calculate_enemy_damage
from stat_optimizer import make_objective, optimize_stats, OPTIMIZATION_METHODS
from batch_calculator import BatchRunner, build_jobs


# =============================================================================
# FastAPI App Setup
# =============================================================================

app = FastAPI(
    title="Elden Ring Damage Calculator",
    description="Weapon AR, Ash of War damage, enemy damage and stat optimization",
    version="1.0.0"
)

# CORS middleware for development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# =============================================================================
# Global State
# =============================================================================

class AppState:
    """Global application state."""
    def __init__(self):
        self.game_data: Optional[GameData] = None
        self.data_path: Path = Path(os.environ.get(DATA_PATH_ENV, str(DEFAULT_DATA_PATH)))
        self.batch_runner: Optional[BatchRunner] = None

    def load(self, path: Optional[Path] = None) -> GameData:
        if path is not None:
            self.data_path = Path(path)
        self.game_data = load_game_data(self.data_path, verbose=True)
        self.batch_runner = BatchRunner(self.game_data)
        return self.game_data

    def load_or_fail(self) -> GameData:
        """load() with bundle errors mapped to HTTP errors."""
        try:
            return self.load()
        except FileNotFoundError:
            raise HTTPException(status_code=503, detail=f"Data bundle not found: {self.data_path}")
        except DataIntegrityError as e:
            raise HTTPException(status_code=500, detail=f"Data integrity error: {e}")

    def require_data(self) -> GameData:
        if self.game_data is None:
            return self.load_or_fail()
        return self.game_data

    def require_runner(self) -> BatchRunner:
        game_data = self.require_data()
        if self.batch_runner is None or self.batch_runner.game_data is not game_data:
            self.batch_runner = BatchRunner(game_data)
        return self.batch_runner

state = AppState()

# =============================================================================
# Pydantic Models for API
# =============================================================================

class StatsModel(BaseModel):
    strength: int = 10
    dexterity: int = 10
    intelligence: int = 10
    faith: int = 10
    arcane: int = 10

    def to_player_stats(self) -> PlayerStats:
        return PlayerStats(self.strength, self.dexterity, self.intelligence, self.faith, self.arcane)

class StatusResponse(BaseModel):
    status: str
    data_loaded: bool
    data_path: str
    counts: Dict[str, int]

class WeaponSummary(BaseModel):
    name: str
    weapon_class: Optional[str]
    max_upgrade_level: int
    affinities: List[str]
    requirements: Dict[str, int]
    can_mount_skills: bool

class AffinityDetail(BaseModel):
    base: Dict[str, float]
    scaling_grades: Dict[str, str]
    guard_negation: Optional[Dict[str, float]] = None
    guard_boost: Optional[float] = None

class WeaponDetail(BaseModel):
    weapon: WeaponSummary
    upgrade_level: int
    affinities: Dict[str, AffinityDetail]

class CalcRequest(BaseModel):
    weapon: str
    affinity: str = "Standard"
    upgrade_level: int = 0
    stats: StatsModel = Field(default_factory=StatsModel)
    two_handing: bool = False
    ignore_requirements: bool = False
    apply_requirement_penalty: bool = False

    def options(self) -> CalculatorOptions:
        return CalculatorOptions(
            two_handing=self.two_handing,
            ignore_requirements=self.ignore_requirements,
            apply_requirement_penalty=self.apply_requirement_penalty,
        )

class StatBreakdown(BaseModel):
    saturation: float
    scaling: float
    raw_scaling: float

class DamageTypeResponse(BaseModel):
    base: float
    scaling: float
    total: float
    rounded: int
    per_stat: Dict[str, StatBreakdown]

class StatusEffectResponse(BaseModel):
    base: float
    scaling: float
    total: float
    rounded: int

class ARResponse(BaseModel):
    weapon: str
    affinity: str
    upgrade_level: int
    damage: Dict[str, Optional[DamageTypeResponse]]
    total: float
    rounded: int
    status: Dict[str, Optional[StatusEffectResponse]]
    spells: Dict[str, Optional[StatusEffectResponse]]
    requirements_met: bool
    effective_stats: Dict[str, int]
    critical_damage: Optional[int] = None

class SkillRequest(CalcRequest):
    skill: str
    pvp_mode: bool = False
    show_lacking_fp: bool = False

class AttackResponse(BaseModel):
    name: str
    atk_id: int
    damage: Dict[str, Optional[float]]
    motion_damage: float
    bullet_damage: float
    total: float
    stamina: Optional[float] = None
    poise: Optional[float] = None
    attack_attribute: str
    pvp_multiplier: Optional[float] = None
    shield_chip: Optional[float] = None
    has_stat_scaling: bool
    is_bullet: bool

class SkillResponse(BaseModel):
    skill: str
    applicable: bool
    attacks: List[AttackResponse]

class EnemyDamageRequest(CalcRequest):
    enemy: str
    motion_values: Dict[str, float] = Field(default_factory=dict)
    attack_attribute: Optional[int] = None

class EnemyDamageResponse(BaseModel):
    enemy: str
    by_type: Dict[str, float]
    total: float
    rounded: int

class BoundsModel(BaseModel):
    min: int
    max: int

class OptimizeRequest(CalcRequest):
    budget: int
    bounds: Dict[str, BoundsModel]
    objective: str = "ar"
    skill: Optional[str] = None
    method: str = "greedy"

class OptimizeResponse(BaseModel):
    stats: Dict[str, int]
    objective_value: float
    points_spent: int
    path: List[str]
    evaluations: int
    method: str

class BatchRequest(BaseModel):
    upgrade_level: int = 25
    stats: StatsModel = Field(default_factory=StatsModel)
    weapons: Optional[List[str]] = None
    two_handing: bool = False
    ignore_requirements: bool = False
    parallel: bool = False

class BatchRow(BaseModel):
    weapon: str
    affinity: str
    upgrade_level: int
    total: Optional[float] = None
    rounded: Optional[int] = None
    requirements_met: Optional[bool] = None
    error: Optional[str] = None

class BatchResponse(BaseModel):
    superseded: bool
    rows: List[BatchRow]


# =============================================================================
# Helper Functions
# =============================================================================

def _weapon_summary(game_data: GameData, name: str) -> WeaponSummary:
    weapon = game_data.weapons[name]
    return WeaponSummary(
        name=name,
        weapon_class=weapon.weapon_class,
        max_upgrade_level=weapon.max_upgrade_level,
        affinities=list(weapon.affinities),
        requirements={stat.value: weapon.requirements.get(stat, 0) for stat in ALL_STATS},
        can_mount_skills=weapon.gem_mount_type == 2,
    )


def _ar_response(request: CalcRequest, ar: ARResult, critical: Optional[int]) -> ARResponse:
    damage = {}
    for damage_type, result in ar.damage.items():
        damage[damage_type.value] = None if result is None else DamageTypeResponse(
            base=result.base,
            scaling=result.scaling,
            total=result.total,
            rounded=result.rounded,
            per_stat={
                stat.value: StatBreakdown(saturation=r.saturation, scaling=r.scaling,
                                          raw_scaling=r.raw_scaling)
                for stat, r in result.per_stat.items()
            },
        )

    def simple(result):
        if result is None:
            return None
        return StatusEffectResponse(base=result.base, scaling=result.scaling,
                                    total=result.total, rounded=result.rounded)

    return ARResponse(
        weapon=request.weapon,
        affinity=request.affinity,
        upgrade_level=request.upgrade_level,
        damage=damage,
        total=ar.total,
        rounded=ar.rounded,
        status={status.value: simple(r) for status, r in ar.status.items()},
        spells={spell.value: simple(r) for spell, r in ar.spells.items()},
        requirements_met=ar.requirements_met,
        effective_stats=ar.effective_stats.to_dict(),
        critical_damage=critical,
    )


def _attack_response(attack: AttackResult) -> AttackResponse:
    def r3(value):
        return None if value is None else round(value, 3)
    return AttackResponse(
        name=attack.name,
        atk_id=attack.atk_id,
        damage={t.value: r3(attack.damage(t)) for t in ALL_DAMAGE_TYPES},
        motion_damage=round(attack.motion_damage, 3),
        bullet_damage=round(attack.bullet_damage, 3),
        total=round(attack.total, 3),
        stamina=r3(attack.stamina),
        poise=None if attack.poise is None else round(attack.poise, 2),
        attack_attribute=attack.attack_attribute,
        pvp_multiplier=attack.pvp_multiplier,
        shield_chip=None if attack.shield_chip is None else round(attack.shield_chip, 4),
        has_stat_scaling=attack.has_stat_scaling,
        is_bullet=attack.is_bullet,
    )


def _parse_stat(name: str) -> Stat:
    try:
        return Stat(name)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown stat: {name}")


def _resolve_or_404(game_data: GameData, request: CalcRequest):
    try:
        resolved = resolve_weapon(game_data, request.weapon, request.affinity, request.upgrade_level)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if resolved is None:
        raise HTTPException(
            status_code=404,
            detail=f"Weapon not found: {request.weapon} ({request.affinity} +{request.upgrade_level})"
        )
    return resolved


def _skill_id_or_404(game_data: GameData, name: str) -> int:
    skill = game_data.get_skill_by_name(name)
    if skill is None:
        raise HTTPException(status_code=404, detail=f"Skill not found: {name}")
    return skill.id


# =============================================================================
# API Routes
# =============================================================================

@app.get("/", response_class=HTMLResponse)
async def root():
    """Landing page."""
    return HTMLResponse("<h1>Elden Ring Damage Calculator API</h1><p>See <a href='/docs'>/docs</a></p>")


@app.get("/api/status", response_model=StatusResponse)
async def get_status():
    """Get the current application status."""
    loaded = state.game_data is not None
    return StatusResponse(
        status="ready" if loaded else "no_data",
        data_loaded=loaded,
        data_path=str(state.data_path),
        counts=state.game_data.summary() if loaded else {},
    )


@app.post("/api/data/reload", response_model=StatusResponse)
async def reload_data():
    """Reload the data bundle from disk."""
    state.load_or_fail()
    return await get_status()


@app.get("/api/weapons", response_model=List[WeaponSummary])
async def list_weapons():
    game_data = state.require_data()
    return [_weapon_summary(game_data, name) for name in sorted(game_data.weapons)]


@app.get("/api/weapons/{name}", response_model=WeaponDetail)
async def get_weapon(name: str, upgrade_level: int = 0):
    """Weapon details with per-affinity base damage and scaling grades."""
    game_data = state.require_data()
    if name not in game_data.weapons:
        raise HTTPException(status_code=404, detail=f"Weapon not found: {name}")

    affinities = {}
    for affinity in game_data.weapons[name].affinities:
        try:
            resolved = resolve_weapon(game_data, name, affinity, upgrade_level)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        if resolved is None:
            continue
        guard = resolve_guard_stats(resolved)
        affinities[affinity] = AffinityDetail(
            base={t.value: d.base for t, d in resolved.damage.items()},
            scaling_grades={s.value: g for s, g in get_scaling_grades(resolved).items()},
            guard_negation={t.value: v for t, v in guard.negation.items()} if guard else None,
            guard_boost=guard.guard_boost if guard else None,
        )

    return WeaponDetail(
        weapon=_weapon_summary(game_data, name),
        upgrade_level=upgrade_level,
        affinities=affinities,
    )


@app.post("/api/ar", response_model=ARResponse)
async def post_ar(request: CalcRequest):
    """Calculate weapon AR."""
    game_data = state.require_data()
    resolved = _resolve_or_404(game_data, request)
    ar = calculate_ar(game_data, resolved, request.stats.to_player_stats(), request.options())
    critical = calculate_critical_damage(ar.total, resolved.weapon.wep_type, resolved.weapon.critical)
    return _ar_response(request, ar, critical)


@app.post("/api/skill", response_model=SkillResponse)
async def post_skill(request: SkillRequest):
    """Calculate Ash of War damage for every attack of a skill."""
    game_data = state.require_data()
    skill_id = _skill_id_or_404(game_data, request.skill)
    _resolve_or_404(game_data, request)

    options = request.options()
    options.pvp_mode = request.pvp_mode
    options.show_lacking_fp = request.show_lacking_fp
    try:
        attacks = compute_skill_damage(game_data, skill_id, request.weapon, request.affinity,
                                       request.upgrade_level, request.stats.to_player_stats(),
                                       options)
    except DataIntegrityError as e:
        raise HTTPException(status_code=500, detail=f"Data integrity error: {e}")

    return SkillResponse(
        skill=request.skill,
        applicable=bool(attacks),
        attacks=[_attack_response(a) for a in attacks],
    )


@app.get("/api/skills/{weapon}/{affinity}", response_model=List[str])
async def list_skills(weapon: str, affinity: str):
    """Mountable skills for a weapon and affinity."""
    game_data = state.require_data()
    if weapon not in game_data.weapons:
        raise HTTPException(status_code=404, detail=f"Weapon not found: {weapon}")
    return get_available_skills(game_data, weapon, affinity)


@app.get("/api/skills", response_model=Dict[str, List[str]])
async def list_all_skills():
    game_data = state.require_data()
    return {
        "mountable": sorted(s.name for s in game_data.skills.values() if s.gem is not None),
        "unique": get_unique_skill_names(game_data),
    }


@app.get("/api/enemies", response_model=Dict[str, str])
async def list_enemies():
    game_data = state.require_data()
    return {key: enemy.name for key, enemy in sorted(game_data.enemies.items())}


@app.post("/api/enemy-damage", response_model=EnemyDamageResponse)
async def post_enemy_damage(request: EnemyDamageRequest):
    """Damage of a weapon hit against an enemy."""
    game_data = state.require_data()
    enemy = game_data.enemies.get(request.enemy)
    if enemy is None:
        raise HTTPException(status_code=404, detail=f"Enemy not found: {request.enemy}")
    resolved = _resolve_or_404(game_data, request)
    ar = calculate_ar(game_data, resolved, request.stats.to_player_stats(), request.options())

    try:
        motion_values = {DamageType(k): v for k, v in request.motion_values.items()}
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown damage type in {list(request.motion_values)}")
    attribute = request.attack_attribute
    if attribute is None:
        attribute = resolved.weapon.atk_attribute

    result = calculate_enemy_damage(
        {t: ar.damage_total(t) for t in ALL_DAMAGE_TYPES}, motion_values, attribute, enemy)
    return EnemyDamageResponse(
        enemy=request.enemy,
        by_type={t.value: v for t, v in result.by_type.items()},
        total=result.total,
        rounded=result.rounded,
    )


@app.post("/api/optimize", response_model=OptimizeResponse)
async def post_optimize(request: OptimizeRequest):
    """Find the best stat allocation for a point budget."""
    game_data = state.require_data()
    _resolve_or_404(game_data, request)
    if request.method not in OPTIMIZATION_METHODS:
        raise HTTPException(status_code=400, detail=f"Unknown method: {request.method}")

    configs = {}
    for name, bounds in request.bounds.items():
        configs[_parse_stat(name)] = StatConfig(bounds.min, bounds.max)
    stats = request.stats.to_player_stats()
    for stat in ALL_STATS:
        # Unbounded stats stay where the request has them
        configs.setdefault(stat, StatConfig(stats.get(stat), stats.get(stat)))

    skill_id = _skill_id_or_404(game_data, request.skill) if request.skill else None
    try:
        objective = make_objective(request.objective, game_data, request.weapon, request.affinity,
                                   request.upgrade_level, request.options(), skill_id)
        result = optimize_stats(objective, configs, request.budget, method=request.method)
    except DataIntegrityError as e:
        raise HTTPException(status_code=500, detail=f"Data integrity error: {e}")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return OptimizeResponse(
        stats=result.stats.to_dict(),
        objective_value=result.objective_value,
        points_spent=result.points_spent,
        path=[stat.value for stat in result.path],
        evaluations=result.evaluations,
        method=result.method,
    )


@app.post("/api/batch-ar", response_model=BatchResponse)
def post_batch_ar(request: BatchRequest):
    """
    AR for every weapon/affinity. A newer request supersedes an older one.

    Plain def so FastAPI runs it in its threadpool and a second request can
    start while the first is still calculating.
    """
    runner = state.require_runner()
    jobs = build_jobs(runner.game_data, request.upgrade_level, request.weapons)
    options = CalculatorOptions(two_handing=request.two_handing,
                                ignore_requirements=request.ignore_requirements)
    entries = runner.run(jobs, request.stats.to_player_stats(), options, parallel=request.parallel)
    if entries is None:
        return BatchResponse(superseded=True, rows=[])

    rows = []
    for entry in entries:
        row = BatchRow(weapon=entry.job.weapon_name, affinity=entry.job.affinity,
                       upgrade_level=entry.job.upgrade_level, error=entry.error)
        if entry.ar is not None:
            row.total = entry.ar.total
            row.rounded = entry.ar.rounded
            row.requirements_met = entry.ar.requirements_met
        rows.append(row)
    return BatchResponse(superseded=False, rows=rows)


# =============================================================================
# Main Entry Point
# =============================================================================

if __name__ == "__main__":
    print("=" * 60)
    print("Elden Ring Damage Calculator - Web Server")
    print("=" * 60)
    print(f"Data bundle: {state.data_path}")
    print()
    print("Starting server at http://localhost:8000")
    print("API docs available at http://localhost:8000/docs")
    print("=" * 60)

    uvicorn.run(app, host="0.0.0.0", port=8000)
