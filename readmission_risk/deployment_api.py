"""
Hospital Readmission Risk API
Flask REST API serving readmission risk assessments

Patient records are posted as JSON; the API extracts features, scores
them and returns the assessment. Model metrics are passed through from
the configured metrics file for display.

Production: gunicorn -w 4 -b 0.0.0.0:5000 readmission_risk.deployment_api:app
"""

import hashlib
import logging
from datetime import datetime, timezone
from functools import wraps

from flask import Flask, jsonify, request
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from . import config
from .exceptions import ValidationError
from .pipeline import ReadmissionPredictor, load_model_metrics, summarize
from .rules import FEATURE_IMPORTANCES, SCORING_WEIGHTS

app = Flask(__name__)
app.config['SECRET_KEY'] = config.SECRET_KEY

# Rate limiting to prevent abuse (HIPAA security requirement)
limiter = Limiter(
    key_func=get_remote_address,
    app=app,
    default_limits=[limit.strip() for limit in config.RATELIMIT_DEFAULT.split(';') if limit.strip()],
    storage_uri='memory://',
)

logger = logging.getLogger(__name__)

predictor = ReadmissionPredictor()
model_metrics = load_model_metrics(config.MODEL_METRICS_PATH)
started_at = datetime.now(timezone.utc).isoformat()
logger.info(f"Readmission predictor ready (seed={predictor.random_state}, n_jobs={predictor.n_jobs})")


def require_api_key(f):
    """
    Decorator to enforce API key authentication.

    Keys come from the VALID_API_KEYS environment variable.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        api_key = request.headers.get('X-API-Key')

        if not api_key:
            logger.warning(f"Unauthorized access attempt from {request.remote_addr}")
            return jsonify({'error': 'API key required'}), 401

        if api_key not in config.valid_api_keys():
            logger.warning(f"Invalid API key from {request.remote_addr}")
            return jsonify({'error': 'Invalid API key'}), 403

        return f(*args, **kwargs)

    return decorated_function


def hash_patient_id(patient_id):
    return hashlib.sha256(str(patient_id).encode()).hexdigest()[:16]


def log_prediction(assessment, user_id=None):
    """
    Log prediction for audit trail (HIPAA compliance).

    Only a hash of the patient identifier is written.
    """
    log_entry = {
        'timestamp': assessment.prediction_date.isoformat(),
        'patient_hash': hash_patient_id(assessment.patient_id),
        'risk_score': round(assessment.risk_score, 3),
        'risk_category': assessment.risk_category,
        'user_id': user_id,
        'ip_address': request.remote_addr,
    }
    logger.info(f"Prediction logged: {log_entry}")
    return log_entry


@app.route('/health', methods=['GET'])
def health_check():
    """
    Health check endpoint for monitoring system availability.

    Returns:
        200: System healthy
    """
    return jsonify({
        'status': 'healthy',
        'started_at': started_at,
        'timestamp': datetime.now(timezone.utc).isoformat()
    }), 200


@app.route('/predict', methods=['POST'])
@require_api_key
@limiter.limit("30 per minute")
def predict_readmission():
    """
    Generate a readmission risk assessment for a patient.

    Request body (JSON):
    {
        "patient": {
            "id": "P001",
            "age": 78,
            "admission_date": "2024-01-15T08:30:00Z",
            ... (patient record fields)
        },
        "user_id": "provider_id_123"  (optional)
    }

    Returns:
        200: Successful prediction
        400: Invalid request or patient record
    """
    data = request.get_json(silent=True)

    if not data or not isinstance(data, dict):
        return jsonify({'error': 'No data provided'}), 400

    patient = data.get('patient')
    if not patient:
        return jsonify({'error': 'patient record required'}), 400

    try:
        assessment = predictor.predict_risk(patient)
    except ValidationError as e:
        logger.warning(f"Rejected patient record: {e}")
        return jsonify({
            'error': 'Invalid patient record',
            'message': str(e),
            'field': e.field
        }), 400

    log_prediction(assessment, data.get('user_id'))
    return jsonify(assessment.to_dict()), 200


@app.route('/predict/batch', methods=['POST'])
@require_api_key
@limiter.limit("10 per hour")
def predict_batch():
    """
    Batch prediction for multiple patients (e.g., daily discharge census).

    Request body (JSON):
    {
        "patients": [{...}, {...}],
        "user_id": "provider_id_123"
    }

    Returns:
        200: Predictions, per-record errors and a census summary
        400: Invalid request
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'Request body must be a JSON object'}), 400

    patients = data.get('patients', [])
    user_id = data.get('user_id')

    if not patients or not isinstance(patients, list):
        return jsonify({'error': 'No patients provided'}), 400

    if len(patients) > config.MAX_BATCH_SIZE:
        return jsonify({'error': f'Batch size limited to {config.MAX_BATCH_SIZE} patients'}), 400

    assessments, errors = predictor.predict_batch(patients)
    for assessment in assessments:
        log_prediction(assessment, user_id)

    summary = summarize(assessments)

    return jsonify({
        'predictions': [a.to_dict() for a in assessments],
        'errors': errors,
        'summary': {
            'total_requested': len(patients),
            'successful': len(assessments),
            'failed': len(errors),
            'high_risk_count': summary['high'],
            'medium_risk_count': summary['medium'],
            'low_risk_count': summary['low'],
            'average_risk_score': summary['average_risk_score'],
        }
    }), 200


@app.route('/model/info', methods=['GET'])
@require_api_key
def model_info():
    """
    Scoring configuration and the pass-through performance metrics.
    """
    return jsonify({
        'model_type': 'weighted-sum',
        'scoring_weights': SCORING_WEIGHTS,
        'feature_importances': FEATURE_IMPORTANCES,
        'performance_metrics': model_metrics.to_dict(),
        'started_at': started_at
    }), 200


@app.errorhandler(429)
def ratelimit_handler(e):
    """Handle rate limit exceeded."""
    logger.warning(f"Rate limit exceeded from {request.remote_addr}")
    return jsonify({
        'error': 'Rate limit exceeded',
        'message': 'Too many requests. Please try again later.'
    }), 429


@app.errorhandler(500)
def internal_error(e):
    """Handle internal server errors."""
    logger.error(f"Internal error: {e}", exc_info=True)
    return jsonify({
        'error': 'Internal server error',
        'message': 'An unexpected error occurred'
    }), 500


if __name__ == '__main__':
    # Development server (use Gunicorn/uWSGI in production)
    config.configure_logging()
    app.run(
        host='0.0.0.0',
        port=config.PORT,
        debug=config.DEBUG
    )
