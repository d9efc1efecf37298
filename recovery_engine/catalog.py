"""
Exercise library and baseline capacity catalog.

The catalog is read from two static JSON files shipped in ``recovery_engine/data``
and is immutable once constructed. Computations receive a ``Catalog`` explicitly;
``get_default_catalog`` exists so a long-running process (the Flask app) can load
it once at start-up and hand the same instance to every request.
"""
from __future__ import annotations

import json
import logging
import os
import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Generic, Iterable, List, Mapping, Optional, Tuple, TypeVar

from recovery_engine.constants import MUSCLE_NAME_MAP

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'data')
EXERCISES_FILE = 'exercises.json'
BASELINES_FILE = 'baselines.json'

T = TypeVar('T')


def normalize_muscle(muscle_name: str) -> str:
    """Map a muscle name from exercise format to baseline format."""
    return MUSCLE_NAME_MAP.get(muscle_name, muscle_name)


@dataclass(frozen=True)
class Lookup(Generic[T]):
    """Result of a catalog lookup: either found (with a value) or not found."""
    found: bool
    value: Optional[T] = None

    @classmethod
    def hit(cls, value: T) -> 'Lookup[T]':
        return cls(True, value)

    @classmethod
    def miss(cls) -> 'Lookup[T]':
        return cls(False, None)


@dataclass(frozen=True)
class MuscleEngagement:
    muscle: str
    percentage: float
    primary: bool = False

    @property
    def canonical_muscle(self) -> str:
        return normalize_muscle(self.muscle)


@dataclass(frozen=True)
class Exercise:
    id: str
    name: str
    equipment: Optional[str] = None
    category: Optional[str] = None
    muscles: Tuple[MuscleEngagement, ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Exercise':
        raw_muscles = data.get('muscles') or []
        if not isinstance(raw_muscles, (list, tuple)):
            raw_muscles = []
        muscles = tuple(
            MuscleEngagement(
                muscle=m['muscle'],
                percentage=float(m.get('percentage', 0)),
                primary=bool(m.get('primary', False)),
            )
            for m in raw_muscles
            if isinstance(m, Mapping) and m.get('muscle')
        )
        return cls(
            id=data.get('id'),
            name=data.get('name') or data.get('id'),
            equipment=data.get('equipment'),
            category=data.get('category'),
            muscles=muscles,
        )

    def engagements(self) -> Dict[str, Tuple[float, bool]]:
        """
        Engagement per canonical muscle as ``{muscle: (percentage, primary)}``.

        Several raw names can map onto the same canonical muscle (e.g. Rectus
        Abdominis and Obliques both count towards Core); their percentages are
        summed and the muscle is primary if any contributor is.
        """
        folded: Dict[str, Tuple[float, bool]] = {}
        for engagement in self.muscles:
            muscle = engagement.canonical_muscle
            pct, primary = folded.get(muscle, (0.0, False))
            folded[muscle] = (pct + engagement.percentage, primary or engagement.primary)
        return folded

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'equipment': self.equipment,
            'category': self.category,
            'muscles': [
                {'muscle': m.muscle, 'percentage': m.percentage, 'primary': m.primary}
                for m in self.muscles
            ],
        }


class ExerciseLibrary:
    """Read-only index of exercises by id."""

    def __init__(self, exercises: Iterable[Exercise]) -> None:
        self._exercises: Tuple[Exercise, ...] = tuple(exercises)
        self._by_id: Mapping[str, Exercise] = MappingProxyType({ex.id: ex for ex in self._exercises})

    @classmethod
    def coerce(cls, library: Any) -> 'ExerciseLibrary':
        """
        Build a library from any of the accepted shapes: an ``ExerciseLibrary``,
        a ``Catalog``, a list of ``Exercise`` objects or dicts, or a mapping
        wrapping such a list under ``'exercises'``.
        """
        if isinstance(library, ExerciseLibrary):
            return library
        if isinstance(library, Catalog):
            return library.exercises
        if isinstance(library, Mapping):
            wrapped = library.get('exercises')
            if not isinstance(wrapped, (list, tuple)):
                raise ValueError("Exercise library must be a list or an object with an 'exercises' list")
            library = wrapped
        if not isinstance(library, (list, tuple)):
            raise ValueError("Exercise library must be a list or an object with an 'exercises' list")
        return cls(ex if isinstance(ex, Exercise) else Exercise.from_dict(ex) for ex in library)

    def __iter__(self):
        return iter(self._exercises)

    def __len__(self) -> int:
        return len(self._exercises)

    def find(self, exercise_id: Any) -> Lookup[Exercise]:
        exercise = self._by_id.get(exercise_id) if isinstance(exercise_id, str) else None
        return Lookup.hit(exercise) if exercise is not None else Lookup.miss()

    def find_by_id_or_name(self, key: Any) -> Lookup[Exercise]:
        by_id = self.find(key)
        if by_id.found:
            return by_id
        for exercise in self._exercises:
            if exercise.name == key:
                return Lookup.hit(exercise)
        return Lookup.miss()


@dataclass(frozen=True)
class Catalog:
    """Immutable exercise library plus baseline table (canonical muscle -> capacity)."""
    exercises: ExerciseLibrary
    baselines: Mapping[str, float]

    @classmethod
    def build(cls, exercises: Iterable[Exercise], baseline_rows: Iterable[Mapping[str, Any]]) -> 'Catalog':
        baselines = {row['muscle']: row['baseline_capacity'] for row in baseline_rows}
        return cls(ExerciseLibrary(exercises), MappingProxyType(baselines))

    @property
    def muscles(self) -> List[str]:
        return sorted(self.baselines)

    def find_exercise(self, exercise_id: Any) -> Lookup[Exercise]:
        return self.exercises.find(exercise_id)

    def find_baseline(self, muscle_name: str) -> Lookup[float]:
        muscle = normalize_muscle(muscle_name)
        if muscle in self.baselines:
            return Lookup.hit(self.baselines[muscle])
        return Lookup.miss()

    def baseline_map(self) -> Dict[str, float]:
        return dict(self.baselines)


def _read_json(path: str) -> Dict[str, Any]:
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def load_exercise_library(path: str | None = None) -> Tuple[Exercise, ...]:
    """
    Load the exercise library from ``exercises.json``.

    Raises:
        RuntimeError: If the file is missing or malformed.
    """
    path = path or os.path.join(DEFAULT_DATA_DIR, EXERCISES_FILE)
    try:
        data = _read_json(path)
        return tuple(Exercise.from_dict(ex) for ex in data['exercises'])
    except (OSError, ValueError, KeyError, TypeError) as e:
        raise RuntimeError(f"Failed to load exercise library: {e}") from e


def load_baseline_data(path: str | None = None) -> List[Dict[str, Any]]:
    """
    Load baseline capacities from ``baselines.json``.

    Returns:
        A list of ``{'muscle': str, 'baseline_capacity': float}`` rows.

    Raises:
        RuntimeError: If the file is missing or malformed.
    """
    path = path or os.path.join(DEFAULT_DATA_DIR, BASELINES_FILE)
    try:
        data = _read_json(path)
        return [
            {'muscle': row['muscle'], 'baseline_capacity': row['baselineCapacity']}
            for row in data['baselines']
        ]
    except (OSError, ValueError, KeyError, TypeError) as e:
        raise RuntimeError(f"Failed to load baseline data: {e}") from e


def load_catalog(data_dir: str | None = None) -> Catalog:
    data_dir = data_dir or DEFAULT_DATA_DIR
    exercises = load_exercise_library(os.path.join(data_dir, EXERCISES_FILE))
    baselines = load_baseline_data(os.path.join(data_dir, BASELINES_FILE))
    logger.info(f"Loaded catalog from {data_dir}: {len(exercises)} exercises, {len(baselines)} muscles.")
    return Catalog.build(exercises, baselines)


_default_catalog: Catalog | None = None
_default_catalog_lock = threading.Lock()


def get_default_catalog(data_dir: str | None = None) -> Catalog:
    """Return the process-wide catalog, loading it on first access."""
    global _default_catalog
    if _default_catalog is None:
        with _default_catalog_lock:
            if _default_catalog is None:
                _default_catalog = load_catalog(data_dir)
    return _default_catalog


__all__ = [
    "Catalog",
    "Exercise",
    "ExerciseLibrary",
    "Lookup",
    "MuscleEngagement",
    "get_default_catalog",
    "load_baseline_data",
    "load_catalog",
    "load_exercise_library",
    "normalize_muscle",
]
