"""
Per-muscle fatigue from a completed workout.

Each exercise's total volume (weight x reps summed over its sets, or an explicit
``total_volume``) is split across the muscles it engages by engagement
percentage and accumulated over the whole workout. Fatigue is that accumulated
volume relative to the muscle's baseline capacity.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping

from recovery_engine.catalog import ExerciseLibrary
from recovery_engine.constants import APPROACHING_CAPACITY_PERCENT, EXCEEDED_CAPACITY_PERCENT

logger = logging.getLogger(__name__)

# Type alias for a single muscle entry in the result
MuscleState = Dict[str, Any]


def exercise_total_volume(workout_exercise: Mapping[str, Any]) -> float | None:
    """
    Total volume for one workout exercise.

    Prefers a pre-computed ``total_volume``; otherwise sums ``weight * reps``
    across ``sets``. Returns None when neither is present.
    """
    total_volume = workout_exercise.get('total_volume')
    if total_volume is not None:
        return max(0.0, float(total_volume))

    sets = workout_exercise.get('sets')
    if isinstance(sets, list):
        total = sum(float(s.get('weight', 0) or 0) * float(s.get('reps', 0) or 0) for s in sets)
        return max(0.0, total)
    return None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _validate_workout_exercises(workout_exercises: List[Any]) -> None:
    for index, workout_ex in enumerate(workout_exercises):
        if not isinstance(workout_ex, Mapping):
            raise ValueError(f"Workout exercise at index {index} must be an object")
        total_volume = workout_ex.get('total_volume')
        if total_volume is not None and not _is_number(total_volume):
            raise ValueError(f"Workout exercise at index {index} has a non-numeric total_volume")
        sets = workout_ex.get('sets')
        if sets is None:
            continue
        if not isinstance(sets, list):
            raise ValueError(f"Workout exercise at index {index} must have a sets list")
        for s in sets:
            if not isinstance(s, Mapping):
                raise ValueError(f"Each set must be an object (index {index})")
            for key in ('weight', 'reps'):
                if s.get(key) is not None and not _is_number(s[key]):
                    raise ValueError(f"Set {key} must be a number (index {index})")


def _validate_baselines(baselines: Mapping[str, Any]) -> None:
    for muscle, baseline in baselines.items():
        if not _is_number(baseline):
            raise ValueError(f"Invalid baseline: {muscle} baseline must be a number")


def accumulate_muscle_volumes(workout_exercises: List[Mapping[str, Any]], library: ExerciseLibrary) -> Dict[str, float]:
    """Sum the volume each canonical muscle received across all workout exercises."""
    muscle_volumes: Dict[str, float] = {}

    for workout_ex in workout_exercises:
        exercise_id = workout_ex.get('exercise_id')
        lookup = library.find(exercise_id)
        if not lookup.found:
            logger.warning(f"Exercise {exercise_id} not found in exercise library; skipping.")
            continue

        engagements = lookup.value.engagements()
        if not engagements:
            logger.warning(f"Exercise {exercise_id} has no muscle engagement data; skipping.")
            continue

        total_volume = exercise_total_volume(workout_ex)
        if total_volume is None:
            logger.warning(f"Exercise {exercise_id} has no total_volume or sets data; skipping.")
            continue

        for muscle, (percentage, _primary) in engagements.items():
            muscle_volumes[muscle] = muscle_volumes.get(muscle, 0.0) + total_volume * (percentage / 100.0)

    return muscle_volumes


def _muscle_state(muscle: str, volume: float, baseline: float) -> MuscleState:
    fatigue_percent = (volume / baseline) * 100.0
    return {
        'muscle': muscle,
        'volume': round(volume, 1),
        'baseline': baseline,
        'fatigue_percent': round(fatigue_percent, 1),
        'display_fatigue': round(min(100.0, fatigue_percent), 1),
        'exceeded_baseline': fatigue_percent > EXCEEDED_CAPACITY_PERCENT,
    }


def calculate_fatigue(workout: Mapping[str, Any], exercise_library: Any, baselines: Mapping[str, float]) -> Dict[str, Any]:
    """
    Calculates muscle-specific fatigue for a completed workout.

    Args:
        workout: ``{'exercises': [...]}`` where each entry has an ``exercise_id``
                 and either ``total_volume`` or a list of ``sets``
                 (``{'weight': float, 'reps': int}``).
        exercise_library: A ``Catalog``, ``ExerciseLibrary``, list of exercises,
                          or a mapping wrapping one under ``'exercises'``.
        baselines: Canonical muscle name -> baseline capacity.

    Returns:
        A dictionary containing:
            'muscle_states': list - one entry per muscle in ``baselines``,
                             sorted by muscle name.
            'warnings': list[str] - muscles approaching (>80%) or exceeding
                        (>100%) their baseline.
            'timestamp': str - ISO 8601 UTC time of the calculation.

    Raises:
        ValueError: On missing/malformed inputs or a zero baseline for a muscle
                    that received volume.
    """
    if not workout:
        raise ValueError("Workout is required")
    exercises = workout.get('exercises') if isinstance(workout, Mapping) else None
    if not isinstance(exercises, list):
        raise ValueError("Workout must contain an exercises list")
    if len(exercises) == 0:
        raise ValueError("Workout exercises list cannot be empty")
    if not exercise_library:
        raise ValueError("Exercise library is required")
    if not isinstance(baselines, Mapping) or not baselines:
        raise ValueError("Baselines are required and must be a mapping of muscle to capacity")
    _validate_workout_exercises(exercises)
    _validate_baselines(baselines)

    library = ExerciseLibrary.coerce(exercise_library)
    muscle_volumes = accumulate_muscle_volumes(exercises, library)

    muscle_states: List[MuscleState] = []
    warnings: List[str] = []

    for muscle in sorted(muscle_volumes):
        volume = muscle_volumes[muscle]
        baseline = baselines.get(muscle)

        if baseline is None:
            logger.warning(f"No baseline found for muscle {muscle}; dropping it from the result.")
            continue
        if baseline == 0:
            raise ValueError(f"Invalid baseline: {muscle} baseline cannot be zero")

        state = _muscle_state(muscle, volume, baseline)
        muscle_states.append(state)

        fatigue_percent = (volume / baseline) * 100.0
        if state['exceeded_baseline']:
            warnings.append(
                f"{muscle}: EXCEEDED baseline by {fatigue_percent - 100.0:.1f}% "
                f"({volume:.0f}/{baseline} lbs)"
            )
        elif fatigue_percent > APPROACHING_CAPACITY_PERCENT:
            warnings.append(f"{muscle}: Approaching capacity at {fatigue_percent:.1f}%")

    # Every muscle in the baseline table is reported, worked or not
    seen = {state['muscle'] for state in muscle_states}
    for muscle, baseline in baselines.items():
        if muscle in seen:
            continue
        muscle_states.append({
            'muscle': muscle,
            'volume': 0.0,
            'baseline': baseline,
            'fatigue_percent': 0.0,
            'display_fatigue': 0.0,
            'exceeded_baseline': False,
        })

    muscle_states.sort(key=lambda s: s['muscle'])

    logger.info(
        f"Fatigue calculated for {len(exercises)} exercises: "
        f"{sum(1 for s in muscle_states if s['volume'] > 0)} muscles worked, {len(warnings)} warnings."
    )

    return {
        'muscle_states': muscle_states,
        'warnings': warnings,
        'timestamp': datetime.now(timezone.utc).isoformat(),
    }


__all__ = [
    "accumulate_muscle_volumes",
    "calculate_fatigue",
    "exercise_total_volume",
]
