"""
Data model for patient records and risk assessments.

Records arrive from the surrounding application as plain dicts (JSON
request bodies, fixture files) and are parsed into immutable dataclasses.
Only the fields the feature extractor cannot do without are validated;
everything else falls back to an empty value.
"""

import math
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from .exceptions import ValidationError

VITAL_SIGN_FIELDS = (
    'systolic_bp',
    'diastolic_bp',
    'heart_rate',
    'temperature',
    'respiratory_rate',
    'oxygen_saturation',
)


def parse_timestamp(value, field_name):
    """
    Parse an ISO-8601 timestamp into an aware datetime.

    A trailing 'Z' is accepted as UTC and naive values are assumed UTC.

    Raises:
        ValidationError: if the value is missing or not a timestamp
    """
    if value is None or value == '':
        raise ValidationError(f"Missing required field: {field_name}", field=field_name)

    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError(
                f"Invalid timestamp for {field_name}: {value!r}", field=field_name
            ) from None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _require_number(data, key, field_name=None):
    field_name = field_name or key
    value = data.get(key)
    if value is None:
        raise ValidationError(f"Missing required field: {field_name}", field=field_name)
    # bool is an int subclass but never a valid measurement
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(
            f"Field {field_name} must be numeric, got {value!r}", field=field_name
        )
    if isinstance(value, float) and math.isnan(value):
        raise ValidationError(f"Missing required field: {field_name}", field=field_name)
    if not math.isfinite(value):
        raise ValidationError(
            f"Field {field_name} must be finite, got {value!r}", field=field_name
        )
    return value


def _require_block(data, key):
    value = data.get(key)
    if value is not None and not isinstance(value, dict):
        raise ValidationError(
            f"Field {key} must be an object, got {type(value).__name__}", field=key
        )
    return value


def _string_list(data, key):
    values = data.get(key) or ()
    if isinstance(values, (str, dict)) or not isinstance(values, (list, tuple)):
        raise ValidationError(f"Field {key} must be a list", field=key)
    for value in values:
        if not isinstance(value, str):
            raise ValidationError(
                f"Field {key} must contain only strings, got {value!r}", field=key
            )
    return tuple(values)


def _require_count(data, key):
    value = _require_number(data, key)
    if value < 0 or int(value) != value:
        raise ValidationError(
            f"Field {key} must be a non-negative integer, got {value!r}", field=key
        )
    return int(value)


@dataclass(frozen=True)
class LabResult:
    test_name: str
    value: float
    unit: str = ''
    reference_range: str = ''
    abnormal: bool = False

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict) or 'test_name' not in data:
            raise ValidationError("Lab result missing test_name", field='lab_results')
        return cls(
            test_name=str(data['test_name']),
            value=_require_number(data, 'value', f"lab_results[{data['test_name']}].value"),
            unit=data.get('unit', ''),
            reference_range=data.get('reference_range') or '',
            abnormal=bool(data.get('abnormal', False)),
        )


@dataclass(frozen=True)
class VitalSigns:
    systolic_bp: float
    diastolic_bp: float
    heart_rate: float
    temperature: float
    respiratory_rate: float
    oxygen_saturation: float

    @classmethod
    def from_dict(cls, data):
        if not data:
            raise ValidationError("Missing required field: vital_signs", field='vital_signs')
        return cls(**{
            name: _require_number(data, name, f"vital_signs.{name}")
            for name in VITAL_SIGN_FIELDS
        })


@dataclass(frozen=True)
class SocialFactors:
    marital_status: str = ''
    living_situation: str = ''
    support_system: str = ''
    transportation_access: bool = True
    language_barrier: bool = False

    @classmethod
    def from_dict(cls, data):
        data = data or {}
        return cls(
            marital_status=data.get('marital_status', ''),
            living_situation=data.get('living_situation', ''),
            support_system=data.get('support_system', ''),
            transportation_access=bool(data.get('transportation_access', True)),
            language_barrier=bool(data.get('language_barrier', False)),
        )


@dataclass(frozen=True)
class PatientRecord:
    """A single inpatient encounter, as supplied by the EHR feed."""

    id: Optional[str]
    age: int
    admission_date: datetime
    discharge_date: datetime
    vital_signs: VitalSigns
    previous_admissions: int
    length_of_stay: Optional[float] = None
    gender: str = ''
    race: str = ''
    insurance_type: str = ''
    primary_diagnosis: str = ''
    secondary_diagnoses: Tuple[str, ...] = ()
    procedures: Tuple[str, ...] = ()
    medications: Tuple[str, ...] = ()
    lab_results: Tuple[LabResult, ...] = ()
    comorbidities: Tuple[str, ...] = ()
    emergency_admission: bool = False
    discharge_disposition: str = ''
    social_factors: SocialFactors = field(default_factory=SocialFactors)

    @classmethod
    def from_dict(cls, data):
        """
        Build a record from a JSON-style dict.

        Args:
            data (dict): Patient fields using the EHR export names

        Returns:
            PatientRecord: Parsed, immutable record

        Raises:
            ValidationError: if a required field is missing or malformed
        """
        if not isinstance(data, dict):
            raise ValidationError(f"Patient record must be an object, got {type(data).__name__}")

        length_of_stay = data.get('length_of_stay')
        if length_of_stay is not None:
            length_of_stay = _require_number(data, 'length_of_stay')

        patient_id = data.get('id', data.get('patient_id'))

        return cls(
            id=None if patient_id is None else str(patient_id),
            age=_require_count(data, 'age'),
            admission_date=parse_timestamp(data.get('admission_date'), 'admission_date'),
            discharge_date=parse_timestamp(data.get('discharge_date'), 'discharge_date'),
            vital_signs=VitalSigns.from_dict(_require_block(data, 'vital_signs')),
            previous_admissions=_require_count(data, 'previous_admissions'),
            length_of_stay=length_of_stay,
            gender=data.get('gender') or '',
            race=data.get('race') or '',
            insurance_type=data.get('insurance_type') or '',
            primary_diagnosis=data.get('primary_diagnosis') or '',
            secondary_diagnoses=_string_list(data, 'secondary_diagnoses'),
            procedures=_string_list(data, 'procedures'),
            medications=_string_list(data, 'medications'),
            lab_results=tuple(LabResult.from_dict(lab) for lab in data.get('lab_results') or ()),
            comorbidities=_string_list(data, 'comorbidities'),
            emergency_admission=bool(data.get('emergency_admission', False)),
            discharge_disposition=data.get('discharge_disposition') or '',
            social_factors=SocialFactors.from_dict(_require_block(data, 'social_factors')),
        )


@dataclass(frozen=True)
class ContributingFactor:
    factor: str
    importance: float
    description: str


@dataclass(frozen=True)
class RiskAssessment:
    patient_id: str
    risk_score: float
    risk_category: str
    confidence: float
    contributing_factors: Tuple[ContributingFactor, ...]
    recommendations: Tuple[str, ...]
    prediction_date: datetime

    def to_dict(self):
        """Serialize for JSON responses and report writers."""
        return {
            'patient_id': self.patient_id,
            'risk_score': float(self.risk_score),
            'risk_category': self.risk_category,
            'confidence': float(self.confidence),
            'contributing_factors': [asdict(f) for f in self.contributing_factors],
            'recommendations': list(self.recommendations),
            'prediction_date': self.prediction_date.isoformat(),
        }


@dataclass(frozen=True)
class ModelMetrics:
    """
    Validation metrics reported alongside predictions.

    Produced outside this package and carried through untouched.
    confusion_matrix cells are ordered [[TN, FP], [FN, TP]].
    """

    accuracy: float
    precision: float
    recall: float
    f1_score: float
    auc_roc: float
    confusion_matrix: List[List[int]]

    @classmethod
    def from_dict(cls, data):
        return cls(
            accuracy=data.get('accuracy'),
            precision=data.get('precision'),
            recall=data.get('recall'),
            f1_score=data.get('f1_score'),
            auc_roc=data.get('auc_roc'),
            confusion_matrix=data.get('confusion_matrix'),
        )

    def to_dict(self):
        return {
            'accuracy': self.accuracy,
            'precision': self.precision,
            'recall': self.recall,
            'f1_score': self.f1_score,
            'auc_roc': self.auc_roc,
            'confusion_matrix': self.confusion_matrix,
        }
