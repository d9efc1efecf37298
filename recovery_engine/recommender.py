"""
Exercise recommendations for a target muscle.

Candidates are filtered for eligibility, checked for bottlenecks (a supporting
muscle that would be pushed past its baseline) and scored with five weighted
factors:

- Target match (40): how much of the exercise's volume lands on the target
- Freshness (25): engagement-weighted fatigue of every muscle involved
- Variety (15): fewer same-category exercises already in the session is better
- Preference (10): user's favorite exercises
- Primary/secondary balance (10): target is a prime mover vs. a helper
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Mapping, Optional, Sequence

from recovery_engine.catalog import Catalog, Exercise, normalize_muscle
from recovery_engine.constants import (
    BOTTLENECK_CRITICAL_THRESHOLD,
    BOTTLENECK_WARNING_THRESHOLD,
    DEFAULT_ESTIMATED_REPS,
    DEFAULT_ESTIMATED_SETS,
    DEFAULT_TOP_N,
    EQUIPMENT_DEFAULT_WEIGHTS,
    FALLBACK_ESTIMATED_WEIGHT,
    MIN_ENGAGEMENT_THRESHOLD,
    SCORING_WEIGHTS,
    SECONDARY_MOVER_SCORE,
    VARIETY_SATURATION_COUNT,
)

logger = logging.getLogger(__name__)

Recommendation = Dict[str, Any]


@dataclass
class RecommendationOptions:
    """
    Every option ``recommend_exercises`` understands.

    Attributes:
        available_equipment: Equipment the user has; None or empty means no filter.
        current_workout: Exercise ids already in the session (variety scoring
                         and duplicate exclusion).
        muscle_volumes: Volume already accumulated per muscle this session. When
                        absent, volume is derived from fatigue x baseline.
        baselines: Baseline capacities; defaults to the catalog's table.
        workout_history: Past sets as ``{'exercise_id': str, 'weight': float}``,
                         used to estimate a working weight.
        user_preferences: ``{'favorites': [ids], 'avoid': [ids]}``.
        estimated_sets: Sets assumed for the bottleneck projection.
        estimated_reps: Reps per set assumed for the bottleneck projection.
        estimated_weight: Fixed working weight; overrides history and equipment
                          defaults when set.
        top_n: Maximum number of safe recommendations returned.
    """
    available_equipment: Optional[List[str]] = None
    current_workout: List[str] = field(default_factory=list)
    muscle_volumes: Optional[Dict[str, float]] = None
    baselines: Optional[Dict[str, float]] = None
    workout_history: List[Dict[str, Any]] = field(default_factory=list)
    user_preferences: Dict[str, List[str]] = field(default_factory=lambda: {'favorites': [], 'avoid': []})
    estimated_sets: int = DEFAULT_ESTIMATED_SETS
    estimated_reps: int = DEFAULT_ESTIMATED_REPS
    estimated_weight: Optional[float] = None
    top_n: int = DEFAULT_TOP_N

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> 'RecommendationOptions':
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise ValueError("Recommendation options must be an object")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unrecognized recommendation options: {', '.join(unknown)}")

        values = {k: v for k, v in data.items() if v is not None}
        return cls(**values)

    @property
    def favorites(self) -> List[str]:
        return list((self.user_preferences or {}).get('favorites') or [])

    @property
    def avoid(self) -> List[str]:
        return list((self.user_preferences or {}).get('avoid') or [])


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _validate_inputs(target_muscle: Any, muscle_states: Any, options: RecommendationOptions) -> None:
    if not target_muscle or not isinstance(target_muscle, str):
        raise ValueError("Target muscle is required and must be a string")
    if not isinstance(muscle_states, list):
        raise ValueError("Muscle states list is required")

    for index, state in enumerate(muscle_states):
        if not isinstance(state, Mapping) or not state.get('muscle'):
            raise ValueError(f"Muscle state at index {index} must have a muscle name")
        has_current = _is_number(state.get('current_fatigue'))
        has_percent = _is_number(state.get('fatigue_percent'))
        if not has_current and not has_percent:
            raise ValueError(f"Muscle state at index {index} must have current_fatigue or fatigue_percent")

    if options.available_equipment is not None and not isinstance(options.available_equipment, list):
        raise ValueError("available_equipment must be a list")
    if not isinstance(options.current_workout, list):
        raise ValueError("current_workout must be a list")
    if not isinstance(options.workout_history, list):
        raise ValueError("workout_history must be a list")
    if options.muscle_volumes is not None and not isinstance(options.muscle_volumes, Mapping):
        raise ValueError("muscle_volumes must be a mapping of muscle to volume")
    if options.baselines is not None and not isinstance(options.baselines, Mapping):
        raise ValueError("baselines must be a mapping of muscle to capacity")
    for name in ('muscle_volumes', 'baselines'):
        for muscle, value in (getattr(options, name) or {}).items():
            if not _is_number(value):
                raise ValueError(f"{name} value for {muscle} must be a number")
    if not isinstance(options.user_preferences, Mapping):
        raise ValueError("user_preferences must be an object with favorites/avoid lists")
    for name in ('estimated_sets', 'estimated_reps'):
        value = getattr(options, name)
        if not _is_number(value) or value < 0:
            raise ValueError(f"{name} must be a non-negative number")
    if options.estimated_weight is not None and (not _is_number(options.estimated_weight) or options.estimated_weight < 0):
        raise ValueError("estimated_weight must be a non-negative number")
    if not isinstance(options.top_n, int) or isinstance(options.top_n, bool) or options.top_n < 1:
        raise ValueError("top_n must be a positive integer")


def build_fatigue_map(muscle_states: Sequence[Mapping[str, Any]]) -> Dict[str, float]:
    """Canonical muscle -> current fatigue, preferring ``current_fatigue`` over ``fatigue_percent``."""
    fatigue_map: Dict[str, float] = {}
    for state in muscle_states:
        current = state.get('current_fatigue')
        if not _is_number(current):
            current = state.get('fatigue_percent')
        fatigue_map[normalize_muscle(state['muscle'])] = float(current)
    return fatigue_map


def filter_eligible_exercises(exercises: Sequence[Exercise], target_muscle: str, options: RecommendationOptions) -> List[Exercise]:
    """
    Drops exercises that need unavailable equipment, are on the avoid list, are
    already in the session, or work the target muscle less than 5%.
    """
    avoid = set(options.avoid)
    in_session = set(options.current_workout)
    eligible = []

    for exercise in exercises:
        if options.available_equipment and exercise.equipment not in options.available_equipment:
            continue
        if exercise.id in avoid or exercise.id in in_session:
            continue
        target = exercise.engagements().get(target_muscle)
        if target is None or target[0] < MIN_ENGAGEMENT_THRESHOLD:
            continue
        eligible.append(exercise)

    return eligible


def calculate_weighted_fatigue(exercise: Exercise, fatigue_map: Mapping[str, float]) -> float:
    total_weighted_fatigue = 0.0
    total_weight = 0.0
    for muscle, (percentage, _primary) in exercise.engagements().items():
        share = percentage / 100.0
        total_weighted_fatigue += fatigue_map.get(muscle, 0.0) * share
        total_weight += share
    return total_weighted_fatigue / total_weight if total_weight > 0 else 0.0


def count_similar_patterns(exercise: Exercise, current_workout: Sequence[str], catalog: Catalog) -> int:
    """Exercises already in the session that share this exercise's category."""
    count = 0
    for key in current_workout:
        lookup = catalog.exercises.find_by_id_or_name(key)
        if lookup.found and lookup.value.category == exercise.category:
            count += 1
    return count


def calculate_factor_breakdown(
    exercise: Exercise,
    target_muscle: str,
    fatigue_map: Mapping[str, float],
    options: RecommendationOptions,
    catalog: Catalog
) -> Dict[str, float]:
    target_percentage, target_is_primary = exercise.engagements()[target_muscle]

    target_match = (target_percentage / 100.0) * SCORING_WEIGHTS['target_match']
    # An exercise can't land more than its whole volume on one muscle
    target_match = min(target_match, SCORING_WEIGHTS['target_match'])

    weighted_fatigue = calculate_weighted_fatigue(exercise, fatigue_map)
    freshness = max(0.0, 100.0 - weighted_fatigue) / 100.0 * SCORING_WEIGHTS['freshness']
    freshness = min(freshness, SCORING_WEIGHTS['freshness'])

    same_pattern_count = count_similar_patterns(exercise, options.current_workout, catalog)
    variety = max(0.0, 1.0 - same_pattern_count / VARIETY_SATURATION_COUNT) * SCORING_WEIGHTS['variety']

    preference = SCORING_WEIGHTS['preference'] if exercise.id in options.favorites else 0.0
    primary = SCORING_WEIGHTS['primary'] if target_is_primary else SECONDARY_MOVER_SCORE

    return {
        'target_match': round(target_match, 1),
        'freshness': round(freshness, 1),
        'variety': round(variety, 1),
        'preference': round(preference, 1),
        'primary': round(primary, 1),
        'total': round(target_match + freshness + variety + preference + primary, 1),
    }


def estimate_working_weight(exercise: Exercise, options: RecommendationOptions) -> float:
    """
    Explicit ``estimated_weight`` first, then the user's average weight for this
    exercise, then the equipment default.
    """
    if options.estimated_weight is not None:
        return float(options.estimated_weight)

    weights = [
        float(entry['weight'])
        for entry in options.workout_history
        if isinstance(entry, Mapping)
        and entry.get('exercise_id') == exercise.id
        and isinstance(entry.get('weight'), (int, float))
        and entry['weight'] > 0
    ]
    if weights:
        return round(sum(weights) / len(weights), 1)

    return EQUIPMENT_DEFAULT_WEIGHTS.get(exercise.equipment, FALLBACK_ESTIMATED_WEIGHT)


def check_bottleneck_safety(
    exercise: Exercise,
    fatigue_map: Mapping[str, float],
    baselines: Mapping[str, float],
    muscle_volumes: Mapping[str, float] | None,
    estimated_volume: float
) -> Dict[str, Any]:
    """
    Projects each engaged muscle's fatigue after adding the candidate exercise.

    Returns:
        ``{'is_safe': bool, 'warnings': [...]}``. A warning is ``critical`` when
        the projection exceeds 100% and ``warning`` above 80%; only critical
        warnings make the exercise unsafe. Muscles without a baseline are
        skipped.
    """
    warnings = []

    for muscle, (percentage, _primary) in exercise.engagements().items():
        baseline = baselines.get(muscle)
        if baseline is None:
            continue
        if baseline == 0:
            raise ValueError(f"Invalid baseline: {muscle} baseline cannot be zero")

        current_fatigue = fatigue_map.get(muscle, 0.0)
        if muscle_volumes is not None and muscle in muscle_volumes:
            current_volume = float(muscle_volumes[muscle])
        else:
            current_volume = (current_fatigue / 100.0) * baseline

        added_volume = estimated_volume * (percentage / 100.0)
        projected_fatigue = ((current_volume + added_volume) / baseline) * 100.0

        if projected_fatigue > BOTTLENECK_CRITICAL_THRESHOLD:
            severity = 'critical'
            message = (
                f"{muscle} would reach {projected_fatigue:.1f}% fatigue "
                f"(exceeds baseline by {projected_fatigue - 100.0:.1f}%)"
            )
        elif projected_fatigue > BOTTLENECK_WARNING_THRESHOLD:
            severity = 'warning'
            message = f"{muscle} would reach {projected_fatigue:.1f}% fatigue (approaching baseline)"
        else:
            continue

        warnings.append({
            'muscle': muscle,
            'severity': severity,
            'current_fatigue': round(current_fatigue, 1),
            'projected_fatigue': round(projected_fatigue, 1),
            'engagement': percentage,
            'added_volume': round(added_volume, 1),
            'baseline': baseline,
            'message': message,
        })

    return {
        'is_safe': not any(w['severity'] == 'critical' for w in warnings),
        'warnings': warnings,
    }


def recommend_exercises(
    target_muscle: str,
    muscle_states: List[Mapping[str, Any]],
    catalog: Catalog,
    options: RecommendationOptions | Mapping[str, Any] | None = None
) -> Dict[str, Any]:
    """
    Ranks exercises for a target muscle.

    Args:
        target_muscle: Muscle to train (either naming convention).
        muscle_states: ``[{'muscle': str, 'current_fatigue' or 'fatigue_percent': float}]``.
        catalog: Exercise library and default baselines.
        options: ``RecommendationOptions`` or an equivalent mapping.

    Returns:
        A dictionary containing:
            'safe': list - safe recommendations, best score first, at most ``top_n``.
            'unsafe': list - exercises with a critical bottleneck; score is 0.
            'total_filtered': int - exercises that passed eligibility filtering.
            'total_safe': int - safe exercises before the ``top_n`` cut.
            'total_unsafe': int

    Raises:
        ValueError: On malformed inputs or unknown option keys.
    """
    if not isinstance(options, RecommendationOptions):
        options = RecommendationOptions.from_dict(options)
    _validate_inputs(target_muscle, muscle_states, options)

    target = normalize_muscle(target_muscle)
    fatigue_map = build_fatigue_map(muscle_states)
    baselines = {normalize_muscle(k): v for k, v in (options.baselines or catalog.baselines).items()}
    muscle_volumes = None
    if options.muscle_volumes is not None:
        muscle_volumes = {normalize_muscle(k): v for k, v in options.muscle_volumes.items()}

    eligible = filter_eligible_exercises(list(catalog.exercises), target, options)

    safe: List[Recommendation] = []
    unsafe: List[Recommendation] = []
    for exercise in eligible:
        estimated_weight = estimate_working_weight(exercise, options)
        estimated_volume = options.estimated_sets * options.estimated_reps * estimated_weight
        safety = check_bottleneck_safety(exercise, fatigue_map, baselines, muscle_volumes, estimated_volume)
        factors = calculate_factor_breakdown(exercise, target, fatigue_map, options, catalog)

        recommendation = {
            'exercise_id': exercise.id,
            'name': exercise.name,
            'equipment': exercise.equipment,
            'category': exercise.category,
            'target_engagement': exercise.engagements()[target][0],
            'score': factors['total'] if safety['is_safe'] else 0.0,
            'factors': factors,
            'is_safe': safety['is_safe'],
            'warnings': safety['warnings'],
            'estimated_sets': options.estimated_sets,
            'estimated_reps': options.estimated_reps,
            'estimated_weight': estimated_weight,
        }
        (safe if safety['is_safe'] else unsafe).append(recommendation)

    safe.sort(key=lambda r: (-r['score'], r['exercise_id']))
    unsafe.sort(key=lambda r: (r['name'], r['exercise_id']))

    logger.info(
        f"Recommendations for {target}: {len(eligible)} eligible, "
        f"{len(safe)} safe, {len(unsafe)} unsafe."
    )

    return {
        'safe': safe[:options.top_n],
        'unsafe': unsafe,
        'total_filtered': len(eligible),
        'total_safe': len(safe),
        'total_unsafe': len(unsafe),
    }


__all__ = [
    "RecommendationOptions",
    "build_fatigue_map",
    "calculate_factor_breakdown",
    "calculate_weighted_fatigue",
    "check_bottleneck_safety",
    "count_similar_patterns",
    "estimate_working_weight",
    "filter_eligible_exercises",
    "recommend_exercises",
]
