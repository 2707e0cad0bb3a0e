"""
Readmission Risk Pipeline

Orchestrates feature extraction and scoring for single patients and for
batches (e.g. a daily discharge census), and summarizes the results for
reporting collaborators.
"""

import json
import logging
import threading

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from . import config
from .exceptions import ValidationError
from .features import FeatureExtractor
from .models import ModelMetrics, PatientRecord
from .scoring import RiskScorer

logger = logging.getLogger(__name__)

# Static validation figures shown next to predictions; not computed here
SIMULATED_MODEL_METRICS = {
    'accuracy': 0.847,
    'precision': 0.823,
    'recall': 0.789,
    'f1_score': 0.806,
    'auc_roc': 0.891,
    'confusion_matrix': [
        [1247, 89],   # TN, FP
        [156, 508],   # FN, TP
    ],
}

ASSESSMENT_COLUMNS = [
    'patient_id', 'risk_score', 'risk_category', 'confidence',
    'num_factors', 'top_factor', 'prediction_date',
]


class ReadmissionPredictor:
    """
    End-to-end readmission risk assessment.

    Each batch record gets its own random generator spawned from one
    SeedSequence, so a seeded batch gives the same scores no matter how
    the worker threads are scheduled.
    """

    def __init__(self, random_state=config.RANDOM_SEED, n_jobs=config.N_JOBS,
                 lab_prefix=config.LAB_PREFIX, clock=None, scorer=None):
        """
        Args:
            random_state (int or None): Seed for reproducible perturbations
            n_jobs (int): Worker threads for batch scoring (-1 for all cores)
            lab_prefix (str): Key prefix for lab-derived features
            clock (callable): Returns the prediction timestamp
            scorer (BaseScorer): Replacement scorer; shared by all batch
                workers, so it must be thread-safe when n_jobs != 1
        """
        self.random_state = random_state
        self.n_jobs = n_jobs
        self.clock = clock
        self.extractor = FeatureExtractor(lab_prefix=lab_prefix)
        self._seed_sequence = np.random.SeedSequence(random_state)
        self._spawn_lock = threading.Lock()
        self._custom_scorer = scorer is not None
        self.scorer = scorer or RiskScorer(
            random_state=np.random.default_rng(self._seed_sequence.spawn(1)[0]),
            clock=clock,
        )

    def predict_risk(self, patient, scorer=None):
        """
        Generate a readmission risk assessment for one patient.

        Args:
            patient (PatientRecord or dict): Patient encounter
            scorer (BaseScorer): Overrides the predictor's scorer

        Returns:
            RiskAssessment

        Raises:
            ValidationError: if the record is malformed
        """
        if not isinstance(patient, PatientRecord):
            patient = PatientRecord.from_dict(patient)

        features = self.extractor.extract(patient)
        return (scorer or self.scorer).score(features, patient.id)

    @staticmethod
    def _record_error(index, patient, error):
        if isinstance(patient, dict):
            patient_id = patient.get('id', patient.get('patient_id'))
        else:
            patient_id = getattr(patient, 'id', None)
        return {
            'patient_index': index,
            'patient_id': patient_id,
            'error': str(error),
        }

    def _predict_one(self, index, patient, seed):
        if self._custom_scorer:
            scorer = self.scorer
        else:
            scorer = RiskScorer(random_state=np.random.default_rng(seed), clock=self.clock)

        try:
            return self.predict_risk(patient, scorer=scorer), None
        except ValidationError as e:
            logger.warning(f"Skipping patient at index {index}: {e}")
            return None, self._record_error(index, patient, e)
        except Exception as e:
            # Reported per record, like validation failures
            logger.error(f"Prediction failed for patient at index {index}: {e}", exc_info=True)
            return None, self._record_error(index, patient, e)

    def predict_batch(self, patients):
        """
        Score many patients independently.

        A malformed record is reported in the error list and never stops
        the rest of the batch.

        Args:
            patients (list): PatientRecord objects or dicts

        Returns:
            tuple: (assessments, errors) with assessments in input order
        """
        patients = list(patients)
        with self._spawn_lock:
            seeds = self._seed_sequence.spawn(len(patients))

        results = Parallel(n_jobs=self.n_jobs, prefer='threads')(
            delayed(self._predict_one)(idx, patient, seed)
            for idx, (patient, seed) in enumerate(zip(patients, seeds))
        )

        assessments = [a for a, _ in results if a is not None]
        errors = [e for _, e in results if e is not None]
        logger.info(
            f"Scored {len(assessments)} of {len(patients)} patients "
            f"({len(errors)} failed)"
        )
        return assessments, errors


def assessments_to_frame(assessments):
    """One row per assessment, for tabular reports."""
    rows = [
        {
            'patient_id': a.patient_id,
            'risk_score': a.risk_score,
            'risk_category': a.risk_category,
            'confidence': a.confidence,
            'num_factors': len(a.contributing_factors),
            'top_factor': a.contributing_factors[0].factor if a.contributing_factors else None,
            'prediction_date': a.prediction_date.isoformat(),
        }
        for a in assessments
    ]
    return pd.DataFrame(rows, columns=ASSESSMENT_COLUMNS)


def summarize(assessments):
    """
    Census-level summary of a batch of assessments.

    Returns:
        dict: Risk counts, average risk score and high-risk patient ids
    """
    df = assessments_to_frame(assessments)
    counts = (
        df['risk_category']
        .value_counts()
        .reindex(['High', 'Medium', 'Low'], fill_value=0)
    )
    return {
        'total': int(len(df)),
        'high': int(counts['High']),
        'medium': int(counts['Medium']),
        'low': int(counts['Low']),
        'average_risk_score': float(df['risk_score'].mean()) if len(df) else 0.0,
        'high_risk_patients': df.loc[df['risk_category'] == 'High', 'patient_id'].tolist(),
    }


def load_patients(filepath):
    """
    Load patient records from a JSON file.

    Accepts either a list of records or an object with a 'patients' list.
    Records are returned as dicts; parsing happens at prediction time so
    one bad record does not prevent loading the rest.
    """
    logger.info(f"Loading patients from {filepath}")
    with open(filepath) as f:
        data = json.load(f)

    if isinstance(data, dict):
        data = data.get('patients', [])
    logger.info(f"Loaded {len(data)} patient records")
    return data


def load_model_metrics(filepath=None):
    """
    Model metrics to display next to predictions, passed through as-is.

    Args:
        filepath (str): JSON file with the metric fields; the static
            simulated metrics are used when omitted

    Returns:
        ModelMetrics
    """
    if not filepath:
        return ModelMetrics.from_dict(SIMULATED_MODEL_METRICS)

    with open(filepath) as f:
        return ModelMetrics.from_dict(json.load(f))
