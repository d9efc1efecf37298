import pytest

from recovery_engine.baselines import (
    calculate_increase_percent,
    check_for_baseline_updates,
    find_peak_muscle_volumes,
    format_suggestions_for_ui,
    get_update_message,
    validate_baseline_update,
)
from recovery_engine.catalog import Catalog, Exercise, MuscleEngagement

WORKOUT_DATE = "2025-11-11"

# Push-up (ex03): Pectoralis 50%, Triceps 35%, Anterior Deltoids 10%, Core 5%
PUSH_UP_TO_FAILURE = [{"exercise_id": "ex03", "sets": [{"weight": 200, "reps": 40, "to_failure": True}]}]


# --- check_for_baseline_updates ---

def test_suggests_achieved_volume_as_new_baseline(catalog):
    suggestions = check_for_baseline_updates(PUSH_UP_TO_FAILURE, WORKOUT_DATE, catalog)

    assert len(suggestions) == 1
    pecs = suggestions[0]
    assert pecs["muscle"] == "Pectoralis"
    assert pecs["achieved_volume"] == 4000
    assert pecs["current_baseline"] == 3744
    assert pecs["suggested_baseline"] == 4000
    assert pecs["suggested_baseline"] == pecs["achieved_volume"]
    assert pecs["percent_increase"] == pytest.approx(6.8)
    assert pecs["exercise"] == "Push-up"
    assert pecs["date"] == WORKOUT_DATE

def test_tracks_best_set_not_sum(catalog):
    workout = [{"exercise_id": "ex03", "sets": [
        {"weight": 100, "reps": 30, "to_failure": True},  # 1500 Pectoralis
        {"weight": 200, "reps": 40, "to_failure": True},  # 4000 Pectoralis
        {"weight": 180, "reps": 30, "to_failure": True},  # 2700 Pectoralis
    ]}]
    peaks = find_peak_muscle_volumes(workout, catalog)
    assert peaks["Pectoralis"]["volume"] == pytest.approx(4000)

    suggestions = check_for_baseline_updates(workout, WORKOUT_DATE, catalog)
    assert suggestions[0]["achieved_volume"] == 4000

def test_ignores_sets_not_to_failure(catalog):
    workout = [{"exercise_id": "ex03", "sets": [
        {"weight": 1000, "reps": 100, "to_failure": False},
        {"weight": 1000, "reps": 100},
        {"weight": 50, "reps": 10, "to_failure": True},
    ]}]
    assert check_for_baseline_updates(workout, WORKOUT_DATE, catalog) == []

def test_no_suggestion_when_below_baseline(catalog):
    workout = [{"exercise_id": "ex03", "sets": [{"weight": 50, "reps": 10, "to_failure": True}]}]
    assert check_for_baseline_updates(workout, WORKOUT_DATE, catalog) == []

def test_unknown_exercise_contributes_nothing(catalog):
    workout = [{"exercise_id": "UNKNOWN_XYZ", "sets": [{"weight": 1000, "reps": 100, "to_failure": True}]}]
    assert check_for_baseline_updates(workout, WORKOUT_DATE, catalog) == []

def test_alternate_muscle_names_map_to_baseline_keys(catalog):
    # Plank: Rectus Abdominis 60% + Obliques 20% both land on Core
    workout = [{"exercise_id": "ex16", "sets": [{"weight": 100, "reps": 60, "to_failure": True}]}]
    suggestions = check_for_baseline_updates(workout, WORKOUT_DATE, catalog)

    assert [s["muscle"] for s in suggestions] == ["Core"]
    assert suggestions[0]["achieved_volume"] == 4800
    assert suggestions[0]["percent_increase"] == pytest.approx(18.3)

def test_best_set_attributed_to_its_exercise(catalog):
    workout = [
        {"exercise_id": "ex03", "sets": [{"weight": 200, "reps": 40, "to_failure": True}]},  # Pecs 4000
        {"exercise_id": "ex01", "sets": [{"weight": 225, "reps": 35, "to_failure": True}]},  # Pecs 4331.25
    ]
    suggestions = check_for_baseline_updates(workout, WORKOUT_DATE, catalog)
    pecs = next(s for s in suggestions if s["muscle"] == "Pectoralis")
    assert pecs["exercise"] == "Barbell Bench Press"
    assert pecs["achieved_volume"] == pytest.approx(4331.2, abs=0.1)

def test_suggestions_sorted_by_muscle(catalog):
    workout = [{"exercise_id": "ex03", "sets": [{"weight": 400, "reps": 40, "to_failure": True}]}]
    suggestions = check_for_baseline_updates(workout, WORKOUT_DATE, catalog)
    muscles = [s["muscle"] for s in suggestions]
    assert muscles == sorted(muscles)
    assert {"Pectoralis", "Triceps"} <= set(muscles)

def test_zero_current_baseline_is_an_error():
    exercise = Exercise("z1", "Zero", "Cable", "Push", (MuscleEngagement("Pectoralis", 100.0, True),))
    catalog = Catalog.build([exercise], [{"muscle": "Pectoralis", "baseline_capacity": 0}])
    workout = [{"exercise_id": "z1", "sets": [{"weight": 10, "reps": 10, "to_failure": True}]}]
    with pytest.raises(ValueError, match="cannot be zero"):
        check_for_baseline_updates(workout, WORKOUT_DATE, catalog)


@pytest.mark.parametrize("workout, date, message", [
    ({}, WORKOUT_DATE, "Workout exercises must be a list"),
    (None, WORKOUT_DATE, "Workout exercises must be a list"),
    (PUSH_UP_TO_FAILURE, None, "Workout date is required"),
    ([{"sets": [{"weight": 100, "reps": 10, "to_failure": True}]}], WORKOUT_DATE, "must have an exercise_id"),
    ([{"exercise_id": 123, "sets": []}], WORKOUT_DATE, "Exercise ID must be a string"),
    ([{"exercise_id": "ex03", "sets": {}}], WORKOUT_DATE, "must have a sets list"),
    ([{"exercise_id": "ex03", "sets": [{"reps": 10}]}], WORKOUT_DATE, "weight and reps as numbers"),
    ([{"exercise_id": "ex03", "sets": [{"weight": 100}]}], WORKOUT_DATE, "weight and reps as numbers"),
    ([{"exercise_id": "ex03", "sets": [{"weight": "100", "reps": 10}]}], WORKOUT_DATE, "weight and reps as numbers"),
    ([{"exercise_id": "ex03", "sets": [{"weight": 100, "reps": "10"}]}], WORKOUT_DATE, "weight and reps as numbers"),
])
def test_validation_errors(catalog, workout, date, message):
    with pytest.raises(ValueError, match=message):
        check_for_baseline_updates(workout, date, catalog)


# --- Helpers ---

def test_calculate_increase_percent():
    assert calculate_increase_percent(1000, 1100) == pytest.approx(10.0)
    with pytest.raises(ValueError):
        calculate_increase_percent(0, 100)

def test_validate_baseline_update():
    assert validate_baseline_update(3744, 4000)["is_valid"] is True

    lower = validate_baseline_update(3744, 3000)
    assert lower["is_valid"] is False
    assert "must be higher" in lower["reason"]

    jump = validate_baseline_update(1000, 2000)
    assert jump["is_valid"] is False
    assert jump["increase_percent"] == 100.0
    assert "exceeds maximum allowed (50%)" in jump["reason"]

    assert validate_baseline_update(1000, 2000, max_increase_percent=150)["is_valid"] is True

def test_format_suggestions_for_ui(catalog):
    suggestions = check_for_baseline_updates(PUSH_UP_TO_FAILURE, WORKOUT_DATE, catalog)
    rows = format_suggestions_for_ui(suggestions)
    assert rows == [{
        "muscle": "Pectoralis",
        "current": 3744,
        "suggested": 4000,
        "increase": 256,
        "increase_percent": 6.8,
        "message": "Pectoralis: 3744 -> 4000 lbs (+6.8%)",
    }]

def test_get_update_message():
    assert get_update_message([]) == "No baseline updates needed. Great workout!"

    one = [{"muscle": "Pectoralis", "current_baseline": 3744, "suggested_baseline": 4000, "percent_increase": 6.8}]
    assert get_update_message(one) == (
        "You exceeded your Pectoralis baseline by 6.8%! Consider updating from 3744 to 4000 lbs."
    )

    many = [
        {"muscle": m, "current_baseline": 100, "suggested_baseline": 100 + p, "percent_increase": p}
        for m, p in [("Biceps", 5.0), ("Core", 12.0), ("Lats", 8.0), ("Triceps", 1.0), ("Calves", 2.0)]
    ]
    assert get_update_message(many) == "You exceeded baselines for Core, Lats, Biceps and 2 more muscles!"
    assert get_update_message(many[:2]) == "You exceeded baselines for Core, Biceps!"


def test_volume_just_above_baseline_is_suggested():
    exercise = Exercise("p1", "Pec Deck", "Machine", "Push", (MuscleEngagement("Pectoralis", 100.0, True),))
    catalog = Catalog.build([exercise], [{"muscle": "Pectoralis", "baseline_capacity": 3744}])
    workout = [{"exercise_id": "p1", "sets": [{"weight": 3744.04, "reps": 1, "to_failure": True}]}]

    suggestions = check_for_baseline_updates(workout, WORKOUT_DATE, catalog)

    assert len(suggestions) == 1
    assert suggestions[0]["achieved_volume"] == 3744.0
    assert suggestions[0]["percent_increase"] == 0.0
