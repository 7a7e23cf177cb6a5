"""
Batch AR Calculator

Evaluates AR across many weapon/affinity/level combinations, in parallel
with ProcessPoolExecutor when there is more than one job, sequentially
otherwise.

Weapon entries are independent, so jobs share nothing but read-only tables,
which reach each worker once through the executor initializer.
BatchRunner numbers every run; a newer run or cancel() makes the previous
run stale and its remaining results are dropped.
"""

import itertools
import multiprocessing
import threading
from concurrent.futures import Executor, ProcessPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Type

from models import GameData, PlayerStats, CalculatorOptions
from ar_calculator import ARResult, calculate_weapon_ar


@dataclass(frozen=True)
class WeaponJob:
    weapon_name: str
    affinity: str
    upgrade_level: int


@dataclass
class BatchEntry:
    job: WeaponJob
    ar: Optional[ARResult]
    error: Optional[str] = None


def default_worker_count() -> int:
    return max(1, multiprocessing.cpu_count() - 1)


def build_jobs(game_data: GameData, upgrade_level: int,
               weapon_names: Optional[Iterable[str]] = None) -> List[WeaponJob]:
    """
    One job per weapon/affinity. Levels above a weapon's max clamp to the max.
    """
    names = list(weapon_names) if weapon_names is not None else sorted(game_data.weapons)
    jobs = []
    for name in names:
        weapon = game_data.weapons.get(name)
        if weapon is None:
            continue
        level = min(upgrade_level, weapon.max_upgrade_level)
        for affinity in weapon.affinities:
            jobs.append(WeaponJob(name, affinity, level))
    return jobs


# =============================================================================
# Worker
# =============================================================================

# Tables installed once per worker by the executor initializer, keyed by batch
_worker_tables: Dict[int, GameData] = {}
_batch_tokens = itertools.count(1)


def _init_worker(token: int, game_data: GameData):
    _worker_tables[token] = game_data


def _compute_job(game_data: GameData, job: WeaponJob, stats: PlayerStats,
                 options: Optional[CalculatorOptions]) -> Tuple[Optional[ARResult], Optional[str]]:
    try:
        ar = calculate_weapon_ar(game_data, job.weapon_name, job.affinity,
                                 job.upgrade_level, stats, options)
        return ar, None
    except ValueError as e:
        return None, str(e)


def _ar_worker(args):
    """Runs in a worker. Returns (index, ARResult or None, error)."""
    idx, token, job, stats, options = args
    ar, error = _compute_job(_worker_tables[token], job, stats, options)
    return idx, ar, error


def _run_jobs(game_data: GameData, jobs: List[WeaponJob], stats: PlayerStats,
              options: Optional[CalculatorOptions], parallel: bool,
              max_workers: Optional[int], executor_cls: Type[Executor],
              still_wanted: Callable[[], bool], verbose: bool) -> Optional[List[BatchEntry]]:
    results: List[Optional[BatchEntry]] = [None] * len(jobs)
    errors = []

    if parallel and len(jobs) > 1:
        if max_workers is None:
            max_workers = default_worker_count()
        if verbose:
            print(f"  Calculating {len(jobs)} weapons with {max_workers} workers...")

        token = next(_batch_tokens)
        work_items = [(idx, token, job, stats, options) for idx, job in enumerate(jobs)]
        try:
            with executor_cls(max_workers=max_workers, initializer=_init_worker,
                              initargs=(token, game_data)) as executor:
                futures = {executor.submit(_ar_worker, args): args[0] for args in work_items}
                for future in as_completed(futures):
                    if not still_wanted():
                        for pending in futures:
                            pending.cancel()
                        return None
                    idx, ar, error = future.result()
                    if error:
                        errors.append(f"{jobs[idx].weapon_name} ({jobs[idx].affinity}): {error}")
                    results[idx] = BatchEntry(jobs[idx], ar, error)
        finally:
            # Thread pools share this module's dict
            _worker_tables.pop(token, None)
    else:
        if verbose:
            print(f"  Calculating {len(jobs)} weapons sequentially...")
        for idx, job in enumerate(jobs):
            if not still_wanted():
                return None
            ar, error = _compute_job(game_data, job, stats, options)
            if error:
                errors.append(f"{job.weapon_name} ({job.affinity}): {error}")
            results[idx] = BatchEntry(job, ar, error)

    if not still_wanted():
        return None
    if verbose:
        for err in errors:
            print(f"  Error: {err}")
    return results


def compute_ar_batch(game_data: GameData, jobs: List[WeaponJob], stats: PlayerStats,
                     options: Optional[CalculatorOptions] = None, parallel: bool = True,
                     max_workers: Optional[int] = None,
                     executor_cls: Type[Executor] = ProcessPoolExecutor,
                     verbose: bool = False) -> List[BatchEntry]:
    """
    AR for every job, in job order.

    Args:
        game_data: Loaded tables
        jobs: Weapon/affinity/level combinations
        stats: Player stats
        options: Calculator options shared by all jobs
        parallel: Use an executor when there is more than one job
        max_workers: Worker count (default: CPU count - 1)
        executor_cls: Executor class (ProcessPoolExecutor or ThreadPoolExecutor)

    Returns:
        One BatchEntry per job; ar is None for combinations that do not exist
    """
    return _run_jobs(game_data, jobs, stats, options, parallel, max_workers,
                     executor_cls, lambda: True, verbose)


class BatchRunner:
    """
    Runs batches where a newer request supersedes an older one.

    run() returns None when its batch went stale before finishing, either
    because cancel() was called or another run() started.
    """

    def __init__(self, game_data: GameData, max_workers: Optional[int] = None,
                 executor_cls: Type[Executor] = ProcessPoolExecutor, verbose: bool = False):
        self.game_data = game_data
        self.max_workers = max_workers
        self.executor_cls = executor_cls
        self.verbose = verbose
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def _next_generation(self) -> int:
        with self._lock:
            self._generation += 1
            return self._generation

    def cancel(self):
        """Make any in-flight run stale."""
        self._next_generation()

    def is_current(self, generation: int) -> bool:
        return self.generation == generation

    def run(self, jobs: List[WeaponJob], stats: PlayerStats,
            options: Optional[CalculatorOptions] = None,
            parallel: bool = True) -> Optional[List[BatchEntry]]:
        generation = self._next_generation()
        return _run_jobs(self.game_data, jobs, stats, options, parallel, self.max_workers,
                         self.executor_cls, lambda: self.is_current(generation), self.verbose)
