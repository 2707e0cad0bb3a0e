"""
Readmission risk scoring.

RiskScorer is a transparent stand-in for a trained classifier: a signed
linear combination of selected features plus a small random perturbation.
Anything implementing BaseScorer.score can replace it without changes to
callers.
"""

import abc
import math
from datetime import datetime, timezone

import numpy as np

from .models import ContributingFactor, RiskAssessment
from .rules import (
    BASE_OFFSET,
    CATEGORY_RECOMMENDATIONS,
    CONFIDENCE_BOUNDS,
    CONFIDENCE_JITTER,
    FACTOR_RECOMMENDATIONS,
    FACTOR_RULES,
    FEATURE_IMPORTANCES,
    MAX_CONTRIBUTING_FACTORS,
    PERTURBATION,
    RISK_CATEGORIES,
    SCORING_WEIGHTS,
)

UNKNOWN_PATIENT = 'unknown'


def utc_now():
    return datetime.now(timezone.utc)


def categorize_risk(risk_score):
    """
    Map a risk score to Low / Medium / High.

    Lower bounds are inclusive: 0.3 is Medium and 0.7 is High.
    """
    for lower_bound, category in RISK_CATEGORIES:
        if risk_score >= lower_bound:
            return category
    return RISK_CATEGORIES[-1][1]


def normalize_patient_id(patient_id):
    if patient_id is None:
        return UNKNOWN_PATIENT
    if isinstance(patient_id, float) and math.isnan(patient_id):
        return UNKNOWN_PATIENT
    patient_id = str(patient_id).strip()
    return patient_id or UNKNOWN_PATIENT


def _format_value(value):
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


class BaseScorer(abc.ABC):
    """Contract between feature extraction and whatever produces the risk."""

    @abc.abstractmethod
    def score(self, features, patient_id=None):
        """
        Args:
            features (dict): Feature name -> numeric value
            patient_id (str): Identifier echoed into the assessment

        Returns:
            RiskAssessment
        """


class RiskScorer(BaseScorer):
    """
    Weighted-sum readmission scorer.

    Randomness and the clock are injected so scores are reproducible:
    ``random_state`` is a seed for ``numpy.random.default_rng``, a
    ``numpy.random.Generator``, or any object with ``uniform(low, high)``.
    ``clock`` is a zero-argument callable returning an aware datetime.
    """

    def __init__(self, random_state=None, clock=None):
        if hasattr(random_state, 'uniform'):
            self.rng = random_state
        else:
            self.rng = np.random.default_rng(random_state)
        self.clock = clock or utc_now

    def score(self, features, patient_id=None):
        """
        Produce a complete risk assessment from a feature map.

        Args:
            features (dict): Output of FeatureExtractor.extract
            patient_id (str): Identifier; missing values become 'unknown'

        Returns:
            RiskAssessment: Score, category, confidence, factors and actions
        """
        risk_score = self.calculate_risk_score(features)
        risk_category = categorize_risk(risk_score)
        factors = self.contributing_factors(features)

        return RiskAssessment(
            patient_id=normalize_patient_id(patient_id),
            risk_score=risk_score,
            risk_category=risk_category,
            confidence=self.calculate_confidence(features),
            contributing_factors=tuple(factors),
            recommendations=tuple(self.recommendations(risk_category, factors)),
            prediction_date=self.clock(),
        )

    def calculate_risk_score(self, features):
        """Weighted sum + perturbation + base offset, clipped to [0, 1]."""
        total = 0.0
        for name, weight in SCORING_WEIGHTS.items():
            value = features.get(name)
            if value is not None:
                total += value * weight

        total += self.rng.uniform(-PERTURBATION, PERTURBATION)
        return float(np.clip(total + BASE_OFFSET, 0.0, 1.0))

    def calculate_confidence(self, features):
        """
        Data-completeness proxy, not a statistical confidence interval.

        Share of the reference feature table the map could cover, plus a
        small jitter, clipped to CONFIDENCE_BOUNDS.
        """
        available = sum(1 for value in features.values() if value is not None)
        completeness = available / len(FEATURE_IMPORTANCES)
        jitter = self.rng.uniform(0.0, CONFIDENCE_JITTER)
        low, high = CONFIDENCE_BOUNDS
        return float(np.clip(completeness + jitter, low, high))

    @staticmethod
    def contributing_factors(features):
        """
        Evaluate the threshold rules and rank the ones that fire.

        Returns:
            list of ContributingFactor: Descending importance, at most five
        """
        factors = []
        for rule in FACTOR_RULES:
            value = features.get(rule.feature)
            if value is None or not rule.compare(value, rule.threshold):
                continue
            factors.append(ContributingFactor(
                factor=rule.factor,
                importance=rule.importance,
                description=rule.template.format(value=_format_value(value)),
            ))

        # sorted() is stable, so equal importances keep rule order
        factors = sorted(factors, key=lambda f: f.importance, reverse=True)
        return factors[:MAX_CONTRIBUTING_FACTORS]

    @staticmethod
    def recommendations(risk_category, factors):
        """Category actions followed by factor-specific ones, deduplicated."""
        actions = list(CATEGORY_RECOMMENDATIONS[risk_category])
        for factor in factors:
            action = FACTOR_RECOMMENDATIONS.get(factor.factor)
            if action:
                actions.append(action)
        return list(dict.fromkeys(actions))


def score(features, patient_id=None, random_state=None, clock=None):
    """Score one feature map with a fresh RiskScorer."""
    return RiskScorer(random_state=random_state, clock=clock).score(features, patient_id)
