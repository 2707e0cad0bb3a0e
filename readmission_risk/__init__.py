"""
Hospital 30-Day Readmission Risk Assessment

Two-stage pipeline: a patient-encounter record is flattened into a
numeric feature map, which a transparent weighted scorer turns into a
risk assessment with ranked contributing factors and recommendations.
"""

from .exceptions import ValidationError
from .features import FeatureExtractor, extract_features
from .models import (
    ContributingFactor,
    LabResult,
    ModelMetrics,
    PatientRecord,
    RiskAssessment,
    SocialFactors,
    VitalSigns,
)
from .pipeline import ReadmissionPredictor
from .scoring import BaseScorer, RiskScorer, categorize_risk, score

__all__ = [
    "BaseScorer",
    "ContributingFactor",
    "FeatureExtractor",
    "LabResult",
    "ModelMetrics",
    "PatientRecord",
    "ReadmissionPredictor",
    "RiskAssessment",
    "RiskScorer",
    "SocialFactors",
    "ValidationError",
    "VitalSigns",
    "categorize_risk",
    "extract_features",
    "score",
]
