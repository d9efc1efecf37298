"""
Adaptive baseline capacity learning.

Only sets performed to failure are treated as proof of capacity. For every such
set the volume is split across the engaged muscles and the single best set per
muscle is kept; a muscle whose best set beat its current baseline gets a
suggestion to raise the baseline to exactly that volume.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Sequence

from recovery_engine.catalog import Catalog
from recovery_engine.constants import MAX_BASELINE_INCREASE_PERCENT

logger = logging.getLogger(__name__)

BaselineSuggestion = Dict[str, Any]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _validate_workout_exercises(workout_exercises: Any, workout_date: Any) -> None:
    if not isinstance(workout_exercises, list):
        raise ValueError("Workout exercises must be a list")
    if not workout_date:
        raise ValueError("Workout date is required")

    for index, workout_ex in enumerate(workout_exercises):
        if not isinstance(workout_ex, Mapping) or workout_ex.get('exercise_id') is None:
            raise ValueError(f"Each workout exercise must have an exercise_id (index {index})")
        if not isinstance(workout_ex['exercise_id'], str):
            raise ValueError(f"Exercise ID must be a string (index {index})")
        if not isinstance(workout_ex.get('sets'), list):
            raise ValueError(f"Each workout exercise must have a sets list (index {index})")
        for s in workout_ex['sets']:
            if not isinstance(s, Mapping) or not _is_number(s.get('weight')) or not _is_number(s.get('reps')):
                raise ValueError(
                    f"Each set must have weight and reps as numbers "
                    f"(exercise {workout_ex['exercise_id']})"
                )


def find_peak_muscle_volumes(workout_exercises: List[Mapping[str, Any]], catalog: Catalog) -> Dict[str, Dict[str, Any]]:
    """
    Best single to-failure set volume per canonical muscle.

    Returns:
        ``{muscle: {'volume': float, 'exercise': str}}`` where ``exercise`` is the
        name of the exercise whose set produced the maximum.
    """
    peaks: Dict[str, Dict[str, Any]] = {}

    for workout_ex in workout_exercises:
        lookup = catalog.find_exercise(workout_ex['exercise_id'])
        if not lookup.found:
            continue
        exercise = lookup.value
        engagements = exercise.engagements()

        for s in workout_ex['sets']:
            if s.get('to_failure') is not True:
                continue
            set_volume = max(0.0, float(s['weight']) * float(s['reps']))
            for muscle, (percentage, _primary) in engagements.items():
                muscle_volume = set_volume * (percentage / 100.0)
                best = peaks.get(muscle)
                if best is None or muscle_volume > best['volume']:
                    peaks[muscle] = {'volume': muscle_volume, 'exercise': exercise.name}

    return peaks


def check_for_baseline_updates(workout_exercises: List[Mapping[str, Any]], workout_date: str, catalog: Catalog) -> List[BaselineSuggestion]:
    """
    Suggests baseline increases for muscles whose best to-failure set exceeded
    their current baseline.

    Args:
        workout_exercises: ``[{'exercise_id': str, 'sets': [{'weight', 'reps', 'to_failure'}]}]``.
        workout_date: Date of the workout, carried into each suggestion.
        catalog: Exercise library and current baselines.

    Returns:
        A list of suggestions sorted by muscle name, each with ``muscle``,
        ``current_baseline``, ``suggested_baseline`` (equal to the achieved
        volume), ``achieved_volume``, ``exercise``, ``date`` and
        ``percent_increase``.

    Raises:
        ValueError: If the input is malformed. Unknown exercise ids are not errors.
    """
    _validate_workout_exercises(workout_exercises, workout_date)

    suggestions: List[BaselineSuggestion] = []
    for muscle, peak in sorted(find_peak_muscle_volumes(workout_exercises, catalog).items()):
        baseline_lookup = catalog.find_baseline(muscle)
        if not baseline_lookup.found:
            continue
        current_baseline = baseline_lookup.value
        if peak['volume'] > current_baseline:
            achieved_volume = round(peak['volume'], 1)
            suggestions.append({
                'muscle': muscle,
                'current_baseline': current_baseline,
                'suggested_baseline': achieved_volume,
                'achieved_volume': achieved_volume,
                'exercise': peak['exercise'],
                'date': workout_date,
                'percent_increase': round(calculate_increase_percent(current_baseline, achieved_volume), 1),
            })

    if suggestions:
        logger.info(
            f"Baseline updates suggested for workout on {workout_date}: "
            f"{', '.join(s['muscle'] for s in suggestions)}"
        )
    return suggestions


def calculate_increase_percent(current_baseline: float, suggested_baseline: float) -> float:
    if current_baseline == 0:
        raise ValueError("Current baseline cannot be zero")
    return ((suggested_baseline - current_baseline) / current_baseline) * 100.0


def validate_baseline_update(
    current_baseline: float,
    suggested_baseline: float,
    max_increase_percent: float = MAX_BASELINE_INCREASE_PERCENT
) -> Dict[str, Any]:
    """
    Sanity check for a suggested baseline before it is persisted.

    Baselines only ever increase, and an implausibly large jump usually means a
    logging mistake (e.g. a typo in the weight) rather than a real gain.
    """
    increase_percent = calculate_increase_percent(current_baseline, suggested_baseline)

    if increase_percent <= 0:
        return {
            'is_valid': False,
            'reason': "Suggested baseline must be higher than current baseline",
            'increase_percent': round(increase_percent, 1),
        }
    if increase_percent > max_increase_percent:
        return {
            'is_valid': False,
            'reason': (
                f"Increase of {increase_percent:.1f}% exceeds maximum allowed "
                f"({max_increase_percent:g}%). This might be an error."
            ),
            'increase_percent': round(increase_percent, 1),
        }
    return {
        'is_valid': True,
        'reason': "Baseline update is reasonable",
        'increase_percent': round(increase_percent, 1),
    }


def format_suggestions_for_ui(suggestions: Sequence[BaselineSuggestion]) -> List[Dict[str, Any]]:
    return [
        {
            'muscle': s['muscle'],
            'current': s['current_baseline'],
            'suggested': s['suggested_baseline'],
            'increase': round(s['suggested_baseline'] - s['current_baseline'], 1),
            'increase_percent': s['percent_increase'],
            'message': (
                f"{s['muscle']}: {s['current_baseline']:g} -> {s['suggested_baseline']:g} lbs "
                f"(+{s['percent_increase']:.1f}%)"
            ),
        }
        for s in suggestions
    ]


def get_update_message(suggestions: Sequence[BaselineSuggestion]) -> str:
    """One-line summary of the suggestions for the user."""
    if not suggestions:
        return "No baseline updates needed. Great workout!"

    if len(suggestions) == 1:
        s = suggestions[0]
        return (
            f"You exceeded your {s['muscle']} baseline by {s['percent_increase']:.1f}%! "
            f"Consider updating from {s['current_baseline']:g} to {s['suggested_baseline']:g} lbs."
        )

    ranked = sorted(suggestions, key=lambda s: s['percent_increase'], reverse=True)
    muscle_list = ', '.join(s['muscle'] for s in ranked[:3])
    remaining = len(ranked) - 3
    if remaining > 0:
        return f"You exceeded baselines for {muscle_list} and {remaining} more muscle{'s' if remaining > 1 else ''}!"
    return f"You exceeded baselines for {muscle_list}!"


__all__ = [
    "calculate_increase_percent",
    "check_for_baseline_updates",
    "find_peak_muscle_volumes",
    "format_suggestions_for_ui",
    "get_update_message",
    "validate_baseline_update",
]
