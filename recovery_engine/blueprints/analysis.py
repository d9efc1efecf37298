from flask import Blueprint, request, jsonify, current_app

from recovery_engine.app import limiter, logger
from recovery_engine.baselines import (
    check_for_baseline_updates,
    format_suggestions_for_ui,
    get_update_message,
    validate_baseline_update,
)
from recovery_engine.fatigue import calculate_fatigue
from recovery_engine.recovery import calculate_recovery
from recovery_engine.recommender import recommend_exercises

analysis_bp = Blueprint('analysis', __name__, url_prefix='/v1')


def _catalog():
    return current_app.config['CATALOG']


@analysis_bp.route('/exercises', methods=['GET'])
def list_exercises():
    catalog = _catalog()
    return jsonify(exercises=[ex.to_dict() for ex in catalog.exercises]), 200


@analysis_bp.route('/baselines', methods=['GET'])
def list_baselines():
    catalog = _catalog()
    return jsonify(baselines=[
        {'muscle': muscle, 'baseline_capacity': catalog.baselines[muscle]}
        for muscle in catalog.muscles
    ]), 200


@analysis_bp.route('/fatigue', methods=['POST'])
@limiter.limit("120 per hour")
def fatigue():
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or 'workout' not in data:
        return jsonify(error="Missing 'workout' in request body"), 400

    catalog = _catalog()
    # Callers may pass the user's learned baselines; otherwise use the defaults
    baselines = data.get('baselines') or catalog.baseline_map()
    try:
        result = calculate_fatigue(data['workout'], catalog, baselines)
    except ValueError as e:
        logger.warning(f"Rejected fatigue calculation: {e}")
        return jsonify(error=str(e)), 400
    return jsonify(result), 200


@analysis_bp.route('/baselines/check', methods=['POST'])
@limiter.limit("120 per hour")
def check_baselines():
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        return jsonify(error="Request body must be a JSON object"), 400

    try:
        suggestions = check_for_baseline_updates(data.get('exercises'), data.get('workout_date'), _catalog())
    except ValueError as e:
        logger.warning(f"Rejected baseline check: {e}")
        return jsonify(error=str(e)), 400

    return jsonify(
        suggestions=suggestions,
        formatted=format_suggestions_for_ui(suggestions),
        validation={
            s['muscle']: validate_baseline_update(s['current_baseline'], s['suggested_baseline'])
            for s in suggestions
        },
        message=get_update_message(suggestions),
    ), 200


@analysis_bp.route('/recovery', methods=['POST'])
@limiter.limit("300 per hour")
def recovery():
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        return jsonify(error="Request body must be a JSON object"), 400

    try:
        result = calculate_recovery(
            data.get('muscle_states'),
            data.get('workout_timestamp'),
            data.get('current_timestamp'),
        )
    except ValueError as e:
        logger.warning(f"Rejected recovery calculation: {e}")
        return jsonify(error=str(e)), 400
    return jsonify(result), 200


@analysis_bp.route('/recommendations', methods=['POST'])
@limiter.limit("300 per hour")
def recommendations():
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        return jsonify(error="Request body must be a JSON object"), 400

    try:
        result = recommend_exercises(
            data.get('target_muscle'),
            data.get('muscle_states'),
            _catalog(),
            data.get('options'),
        )
    except ValueError as e:
        logger.warning(f"Rejected recommendation request: {e}")
        return jsonify(error=str(e)), 400
    return jsonify(result), 200
