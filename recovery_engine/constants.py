# recovery_engine/constants.py

# Linear recovery model: fatigue percentage points removed per day
RECOVERY_RATE_PER_DAY = 0.15
RECOVERY_POINTS_PER_DAY = RECOVERY_RATE_PER_DAY * 100  # 15 points / 24h
PROJECTION_HOURS = (24, 48, 72)

READY_TO_TRAIN_THRESHOLD = 40.0  # <40% = ready to train
CAUTION_THRESHOLD = 80.0  # 40-79% = caution, 80%+ = don't train

# Fatigue warnings emitted by the fatigue calculator
APPROACHING_CAPACITY_PERCENT = 80.0
EXCEEDED_CAPACITY_PERCENT = 100.0

# Five-factor recommendation scoring, sums to 100
SCORING_WEIGHTS = {
    'target_match': 40.0,
    'freshness': 25.0,
    'variety': 15.0,
    'preference': 10.0,
    'primary': 10.0,
}
SECONDARY_MOVER_SCORE = 5.0
VARIETY_SATURATION_COUNT = 5  # same-category exercises before variety hits zero

MIN_ENGAGEMENT_THRESHOLD = 5.0  # Minimum % target muscle engagement to consider
BOTTLENECK_WARNING_THRESHOLD = 80.0
BOTTLENECK_CRITICAL_THRESHOLD = 100.0
DEFAULT_TOP_N = 15

DEFAULT_ESTIMATED_SETS = 3
DEFAULT_ESTIMATED_REPS = 10
FALLBACK_ESTIMATED_WEIGHT = 100.0  # lbs, when neither history nor equipment helps

# Working weight guesses (lbs) by equipment type, used when the user has no
# history for an exercise. Bodyweight entries approximate the load moved.
EQUIPMENT_DEFAULT_WEIGHTS = {
    'Barbell': 95.0,
    'Dumbbells': 40.0,
    'Kettlebell': 35.0,
    'Bodyweight': 130.0,
    'Pull-up Bar': 180.0,
    'TRX': 90.0,
    'Resistance Bands': 30.0,
    'Cable': 50.0,
    'Machine': 90.0,
}

# Baseline suggestions larger than this jump are flagged for review
MAX_BASELINE_INCREASE_PERCENT = 50.0

# Exercise data format -> baseline data format
MUSCLE_NAME_MAP = {
    'Deltoids (Anterior)': 'AnteriorDeltoids',
    'Deltoids (Posterior)': 'PosteriorDeltoids',
    'Latissimus Dorsi': 'Lats',
    'Erector Spinae': 'LowerBack',
    'Rectus Abdominis': 'Core',
    'Obliques': 'Core',
}
