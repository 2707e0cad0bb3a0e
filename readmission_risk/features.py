"""
Feature extraction for readmission risk scoring.

Turns one PatientRecord into a flat mapping of named numeric features.
Every step is deterministic and free of I/O so records can be processed
in any order, on any thread.
"""

import logging
import re

from .exceptions import ValidationError
from .models import VITAL_SIGN_FIELDS, PatientRecord, parse_timestamp
from .rules import (
    AGE_GROUP_BOUNDS,
    CHARLSON_WEIGHTS,
    DISCHARGE_DISPOSITIONS,
    HIGH_RISK_MEDICATIONS,
    INSURANCE_TYPES,
)

logger = logging.getLogger(__name__)

DEFAULT_LAB_PREFIX = 'lab_'


class FeatureExtractor:
    """
    Converts patient records into feature maps.

    Lab-derived features are keyed ``lab_prefix + test_name``. The default
    prefix keeps them apart from the fixed feature names; with an empty
    prefix a lab named like a fixed feature silently replaces it.
    """

    def __init__(self, lab_prefix=DEFAULT_LAB_PREFIX):
        self.lab_prefix = lab_prefix

    @staticmethod
    def normalize_condition(condition):
        return re.sub(r'\s+', '_', condition.strip().lower())

    @staticmethod
    def charlson_index(comorbidities):
        """
        Calculate the Charlson Comorbidity Index.

        Args:
            comorbidities (iterable of str): Condition tags, any case/spacing

        Returns:
            int: Sum of condition weights; unknown tags count as 0
        """
        total = 0
        for condition in comorbidities:
            key = FeatureExtractor.normalize_condition(condition)
            weight = CHARLSON_WEIGHTS.get(key)
            if weight is None:
                logger.debug(f"Unknown comorbidity tag {condition!r}, weight 0")
                continue
            total += weight
        return total

    @staticmethod
    def day_of_week(moment):
        # Sunday=0 ... Saturday=6
        return (moment.weekday() + 1) % 7

    @staticmethod
    def temporal_features(admission_date, discharge_date):
        """
        Extract calendar features from the admission and discharge times.

        Times are read in the timezone they were recorded in.

        Args:
            admission_date (datetime or str): Admission timestamp
            discharge_date (datetime or str): Discharge timestamp

        Returns:
            dict: Day of week, month and hour for both ends, weekend flags

        Raises:
            ValidationError: if discharge precedes admission
        """
        admission = parse_timestamp(admission_date, 'admission_date')
        discharge = parse_timestamp(discharge_date, 'discharge_date')

        if discharge < admission:
            raise ValidationError(
                f"discharge_date {discharge.isoformat()} precedes "
                f"admission_date {admission.isoformat()}",
                field='discharge_date',
            )

        admission_dow = FeatureExtractor.day_of_week(admission)
        discharge_dow = FeatureExtractor.day_of_week(discharge)

        return {
            'admission_day_of_week': admission_dow,
            'admission_month': admission.month,
            'admission_hour': admission.hour,
            'discharge_day_of_week': discharge_dow,
            'discharge_month': discharge.month,
            'discharge_hour': discharge.hour,
            'is_weekend_admission': int(admission_dow in (0, 6)),
            'is_weekend_discharge': int(discharge_dow in (0, 6)),
        }

    @staticmethod
    def parse_reference_range(reference_range):
        """Return (low, high) for a 'low-high' string, or None."""
        parts = (reference_range or '').split('-')
        if len(parts) != 2:
            return None
        try:
            low, high = float(parts[0].strip()), float(parts[1].strip())
        except ValueError:
            return None
        if high == low:
            return None
        return low, high

    @staticmethod
    def normalize_labs(lab_results, prefix=''):
        """
        Scale lab values against their reference ranges.

        Values outside the range land outside [0, 1], which is how the
        severity of an abnormal result shows up. Labs whose range cannot
        be parsed fall back to their abnormal flag.

        Args:
            lab_results (iterable of LabResult): Labs drawn during the stay
            prefix (str): Prepended to each test name to form the key

        Returns:
            dict: One feature per distinct test name
        """
        normalized = {}
        for lab in lab_results:
            bounds = FeatureExtractor.parse_reference_range(lab.reference_range)
            if bounds is None:
                logger.debug(
                    f"Unparseable reference range {lab.reference_range!r} for "
                    f"{lab.test_name}, using abnormal flag"
                )
                value = 1.0 if lab.abnormal else 0.0
            else:
                low, high = bounds
                value = (lab.value - low) / (high - low)
            normalized[f"{prefix}{lab.test_name}"] = value
        return normalized

    @staticmethod
    def medication_complexity(medications):
        """
        Medication count with extra weight for high-risk drugs.

        Each (medication, high-risk token) match adds 2, so a combination
        product naming two high-risk drugs is counted twice.

        Args:
            medications (iterable of str): Discharge medication names

        Returns:
            int: len(medications) + 2 * high-risk matches
        """
        medications = list(medications)
        high_risk_matches = sum(
            1
            for med in medications
            for token in HIGH_RISK_MEDICATIONS
            if token in med.lower()
        )
        return len(medications) + 2 * high_risk_matches

    @staticmethod
    def categorical_features(record):
        """One-hot encode gender, insurance, admission type and disposition."""
        features = {'gender_male': int(record.gender == 'M')}

        for name, insurance in INSURANCE_TYPES.items():
            features[name] = int(record.insurance_type == insurance)

        features['emergency_admission'] = int(record.emergency_admission)

        for name, disposition in DISCHARGE_DISPOSITIONS.items():
            features[name] = int(record.discharge_disposition == disposition)
        features['discharge_other'] = int(
            record.discharge_disposition not in DISCHARGE_DISPOSITIONS.values()
        )
        return features

    @staticmethod
    def age_group(age):
        """Bucket age into 0 (<30), 1 (30-49), 2 (50-69) or 3 (70+)."""
        for index, bound in enumerate(AGE_GROUP_BOUNDS):
            if age < bound:
                return index
        return len(AGE_GROUP_BOUNDS)

    @staticmethod
    def social_risk_score(social):
        """Count social barriers to post-discharge care (0-4)."""
        barriers = [
            not social.transportation_access,
            social.language_barrier,
            social.living_situation == 'Alone',
            social.support_system == 'None',
        ]
        return sum(1 for barrier in barriers if barrier)

    @staticmethod
    def length_of_stay(record):
        if record.length_of_stay is not None:
            return record.length_of_stay
        admission = parse_timestamp(record.admission_date, 'admission_date')
        discharge = parse_timestamp(record.discharge_date, 'discharge_date')
        return (discharge.date() - admission.date()).days

    def extract(self, record):
        """
        Build the complete feature map for one patient.

        Args:
            record (PatientRecord or dict): Patient encounter

        Returns:
            dict: Feature name -> numeric value

        Raises:
            ValidationError: if the record is malformed
        """
        if not isinstance(record, PatientRecord):
            record = PatientRecord.from_dict(record)

        # Validates date ordering before anything else is derived from them
        temporal = self.temporal_features(record.admission_date, record.discharge_date)

        features = {
            # Demographics
            'age': record.age,
            'age_group': self.age_group(record.age),

            # Clinical
            'length_of_stay': self.length_of_stay(record),
            'charlson_comorbidity_index': self.charlson_index(record.comorbidities),
            'previous_admissions': record.previous_admissions,
            'medication_complexity': self.medication_complexity(record.medications),
            'num_procedures': len(record.procedures),
            'num_diagnoses': len(record.secondary_diagnoses) + 1,

            'social_risk_score': self.social_risk_score(record.social_factors),
        }

        for name in VITAL_SIGN_FIELDS:
            features[name] = getattr(record.vital_signs, name)

        features.update(temporal)
        features.update(self.categorical_features(record))
        features.update(self.normalize_labs(record.lab_results, self.lab_prefix))
        return features


def extract_features(record, lab_prefix=DEFAULT_LAB_PREFIX):
    """Flatten a patient record into a feature map."""
    return FeatureExtractor(lab_prefix=lab_prefix).extract(record)
