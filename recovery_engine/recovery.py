"""
Recovery projection using a linear decay model.

Formula: current_fatigue = max(0, initial_fatigue - days_elapsed * 15)

The decay rate is flat: 150% fatigue loses 15 points per day exactly like 50%
does.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping

from recovery_engine.constants import (
    CAUTION_THRESHOLD,
    PROJECTION_HOURS,
    READY_TO_TRAIN_THRESHOLD,
    RECOVERY_POINTS_PER_DAY,
)

logger = logging.getLogger(__name__)

RecoveryState = Dict[str, Any]


def parse_timestamp(value: Any, field_name: str) -> datetime:
    """Parse an ISO 8601 timestamp; naive values are taken as UTC."""
    if not value or not isinstance(value, str):
        raise ValueError(f"{field_name} is required and must be an ISO 8601 string")
    text = value.strip()
    if text.endswith('Z') or text.endswith('z'):
        text = text[:-1] + '+00:00'
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise ValueError(f"{field_name} is not a valid timestamp: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def recovery_status(fatigue: float) -> str:
    """'ready' below 40%, 'caution' below 80%, otherwise 'dont_train'."""
    if fatigue >= CAUTION_THRESHOLD:
        return 'dont_train'
    if fatigue >= READY_TO_TRAIN_THRESHOLD:
        return 'caution'
    return 'ready'


def decay_fatigue(initial_fatigue: float, hours_elapsed: float) -> float:
    recovered_percentage = (hours_elapsed / 24.0) * RECOVERY_POINTS_PER_DAY
    return max(0.0, initial_fatigue - recovered_percentage)


def calculate_full_recovery_time(fatigue: float) -> Dict[str, Any]:
    """Time until a muscle reaches 0% fatigue."""
    if fatigue <= 0:
        return {'days_needed': 0.0, 'hours_needed': 0.0, 'message': "Already recovered"}

    days_needed = fatigue / RECOVERY_POINTS_PER_DAY
    hours_needed = days_needed * 24.0
    return {
        'days_needed': days_needed,
        'hours_needed': hours_needed,
        'message': f"{days_needed:.1f} days ({hours_needed:.0f} hours)",
    }


def calculate_ready_to_train_time(fatigue: float) -> Dict[str, Any]:
    """Time until a muscle drops to the ready-to-train threshold (40%)."""
    if fatigue <= READY_TO_TRAIN_THRESHOLD:
        return {'days_needed': 0.0, 'hours_needed': 0.0, 'message': "Already ready"}

    days_needed = (fatigue - READY_TO_TRAIN_THRESHOLD) / RECOVERY_POINTS_PER_DAY
    hours_needed = days_needed * 24.0
    return {
        'days_needed': days_needed,
        'hours_needed': hours_needed,
        'message': f"{days_needed:.1f} days ({hours_needed:.0f} hours)",
    }


def _validate_muscle_states(muscle_states: Any) -> None:
    if not isinstance(muscle_states, list):
        raise ValueError("Muscle states must be a list")
    if len(muscle_states) == 0:
        raise ValueError("Muscle states list cannot be empty")

    for index, state in enumerate(muscle_states):
        if not isinstance(state, Mapping) or not state.get('muscle'):
            raise ValueError(f"Muscle state at index {index} must have a muscle name")
        if 'fatigue_percent' not in state or state['fatigue_percent'] is None:
            raise ValueError(f"Muscle state at index {index} must have a fatigue_percent")
        fatigue = state['fatigue_percent']
        if not isinstance(fatigue, (int, float)) or isinstance(fatigue, bool):
            raise ValueError(f"Muscle state at index {index} has a non-numeric fatigue_percent")
        if fatigue < 0:
            raise ValueError(f"Muscle state at index {index} has a negative fatigue_percent")


def project_muscle_recovery(muscle: str, initial_fatigue: float, hours_elapsed: float, evaluated_at: datetime) -> RecoveryState:
    current_fatigue = round(decay_fatigue(initial_fatigue, hours_elapsed), 1)

    # Projections are taken from the evaluation time, not the workout time
    projections = {
        f"{hours}h": round(max(0.0, current_fatigue - (hours / 24.0) * RECOVERY_POINTS_PER_DAY), 1)
        for hours in PROJECTION_HOURS
    }

    fully_recovered_at = None
    if current_fatigue > 0:
        hours_until_zero = calculate_full_recovery_time(current_fatigue)['hours_needed']
        fully_recovered_at = format_timestamp(evaluated_at + timedelta(hours=hours_until_zero))

    ready_to_train_at = None
    if current_fatigue > READY_TO_TRAIN_THRESHOLD:
        hours_until_ready = calculate_ready_to_train_time(current_fatigue)['hours_needed']
        ready_to_train_at = format_timestamp(evaluated_at + timedelta(hours=hours_until_ready))

    return {
        'muscle': muscle,
        'current_fatigue': current_fatigue,
        'projections': projections,
        'fully_recovered_at': fully_recovered_at,
        'status': recovery_status(current_fatigue),
        'ready_to_train_at': ready_to_train_at,
    }


def calculate_recovery(muscle_states: List[Mapping[str, Any]], workout_timestamp: str, current_timestamp: str) -> Dict[str, Any]:
    """
    Calculates the current recovery state of each muscle.

    Args:
        muscle_states: ``[{'muscle': str, 'fatigue_percent': float}]`` as
                       produced right after the workout.
        workout_timestamp: ISO 8601 time the workout was completed.
        current_timestamp: ISO 8601 time to evaluate recovery at. May precede
                           the workout, in which case fatigue goes up.

    Returns:
        A dictionary containing:
            'muscle_states': list - per muscle ``current_fatigue``,
                             ``projections`` (24h/48h/72h from now),
                             ``fully_recovered_at``, ``status`` and
                             ``ready_to_train_at``.
            'timestamp': str - the evaluation time.

    Raises:
        ValueError: On malformed muscle states or timestamps.
    """
    _validate_muscle_states(muscle_states)
    workout_time = parse_timestamp(workout_timestamp, "Workout timestamp")
    evaluated_at = parse_timestamp(current_timestamp, "Current timestamp")

    hours_elapsed = (evaluated_at - workout_time).total_seconds() / 3600.0
    if hours_elapsed < 0:
        logger.info(f"Evaluation time precedes workout by {-hours_elapsed:.1f}h; fatigue will increase.")

    results = [
        project_muscle_recovery(state['muscle'], float(state['fatigue_percent']), hours_elapsed, evaluated_at)
        for state in muscle_states
    ]

    return {
        'muscle_states': results,
        'timestamp': format_timestamp(evaluated_at),
    }


__all__ = [
    "calculate_full_recovery_time",
    "calculate_ready_to_train_time",
    "calculate_recovery",
    "decay_fatigue",
    "format_timestamp",
    "parse_timestamp",
    "project_muscle_recovery",
    "recovery_status",
]
