"""
Tests for the weighted risk scorer.

These tests verify:
1. Score arithmetic, clamping and seeded reproducibility
2. Category boundaries (lower bound inclusive)
3. Confidence stays within its bounds for any map size
4. Contributing factors fire on strict thresholds, sorted and capped
5. Recommendations are deduplicated and keyed by category and factor
"""

import numpy as np
import pytest

from readmission_risk.models import ContributingFactor
from readmission_risk.rules import FEATURE_IMPORTANCES, SCORING_WEIGHTS
from readmission_risk.scoring import (
    BaseScorer,
    RiskScorer,
    categorize_risk,
    normalize_patient_id,
    score,
)

from conftest import FIXED_TIME, MidpointRandom


def scorer():
    return RiskScorer(random_state=MidpointRandom(), clock=lambda: FIXED_TIME)


# =============================================================================
# Risk Score
# =============================================================================

class TestRiskScore:

    def test_empty_map_is_base_offset(self):
        assert scorer().calculate_risk_score({}) == pytest.approx(0.3)

    def test_weighted_sum(self):
        features = {'previous_admissions': 1, 'oxygen_saturation': 1, 'discharge_home': 1}
        expected = 0.3 + 0.15 - 0.03 - 0.05
        assert scorer().calculate_risk_score(features) == pytest.approx(expected)

    def test_unweighted_features_ignored(self):
        assert scorer().calculate_risk_score({'gender_male': 1, 'lab_BNP': 18.5}) == pytest.approx(0.3)

    def test_none_values_contribute_nothing(self):
        assert scorer().calculate_risk_score({'age': None}) == pytest.approx(0.3)

    @pytest.mark.parametrize("features", [
        {'previous_admissions': 1000},
        {'oxygen_saturation': 1000},
        {name: 1e6 for name in SCORING_WEIGHTS},
        {name: -1e6 for name in SCORING_WEIGHTS},
    ])
    def test_clamped_to_unit_interval(self, features):
        for seed in range(20):
            value = RiskScorer(random_state=seed).calculate_risk_score(features)
            assert 0.0 <= value <= 1.0

    def test_clamp_extremes(self):
        assert scorer().calculate_risk_score({'previous_admissions': 100}) == 1.0
        assert scorer().calculate_risk_score({'oxygen_saturation': 100}) == 0.0

    def test_perturbation_bounded(self):
        rng = np.random.default_rng(0)
        s = RiskScorer(random_state=rng)
        for _ in range(200):
            assert 0.25 <= s.calculate_risk_score({}) <= 0.35

    def test_seed_is_reproducible(self):
        features = {'age': 1, 'heart_rate': 1}
        first = RiskScorer(random_state=7).score(features, "P001")
        second = RiskScorer(random_state=7).score(features, "P001")
        assert first.risk_score == second.risk_score
        assert first.confidence == second.confidence

    def test_accepts_numpy_generator(self):
        rng = np.random.default_rng(3)
        assert RiskScorer(random_state=rng).rng is rng


# =============================================================================
# Categorization
# =============================================================================

class TestCategorizeRisk:

    @pytest.mark.parametrize("value,category", [
        (0.0, 'Low'),
        (0.2999999, 'Low'),
        (0.3, 'Medium'),
        (0.6999999, 'Medium'),
        (0.7, 'High'),
        (1.0, 'High'),
    ])
    def test_boundaries(self, value, category):
        assert categorize_risk(value) == category

    def test_zero_perturbation_boundary(self):
        # Empty map scores exactly the base offset
        assert scorer().score({}).risk_category == 'Medium'
        assert scorer().score({'oxygen_saturation': 1}).risk_category == 'Low'


# =============================================================================
# Confidence
# =============================================================================

class TestConfidence:

    @pytest.mark.parametrize("size", range(len(FEATURE_IMPORTANCES) + 1))
    def test_bounds_for_every_size(self, size):
        features = {name: 1 for name in list(FEATURE_IMPORTANCES)[:size]}
        for seed in range(10):
            value = RiskScorer(random_state=seed).calculate_confidence(features)
            assert 0.6 <= value <= 0.95

    def test_sparse_map_floors(self):
        assert scorer().calculate_confidence({}) == 0.6

    def test_complete_map_caps(self):
        features = {name: 1 for name in FEATURE_IMPORTANCES}
        assert scorer().calculate_confidence(features) == 0.95

    def test_completeness_ratio(self):
        features = {name: 1 for name in list(FEATURE_IMPORTANCES)[:12]}
        assert scorer().calculate_confidence(features) == pytest.approx(12 / 18 + 0.05)


# =============================================================================
# Contributing Factors
# =============================================================================

ALL_FACTORS = {
    'previous_admissions': 3,
    'charlson_comorbidity_index': 4,
    'length_of_stay': 8,
    'age': 76,
    'social_risk_score': 3,
    'emergency_admission': 1,
}


class TestContributingFactors:

    def test_all_rules_fire_truncated_to_five(self):
        factors = RiskScorer.contributing_factors(ALL_FACTORS)
        assert [f.factor for f in factors] == [
            'Previous Admissions',
            'Comorbidity Burden',
            'Extended Length of Stay',
            'Advanced Age',
            'Social Risk Factors',
        ]

    def test_thresholds_are_strict(self):
        at_threshold = {
            'previous_admissions': 2,
            'charlson_comorbidity_index': 3,
            'length_of_stay': 7,
            'age': 75,
            'social_risk_score': 2,
            'emergency_admission': 0,
        }
        assert RiskScorer.contributing_factors(at_threshold) == []

    def test_sorted_non_increasing(self):
        features = {'emergency_admission': 1, 'age': 90, 'previous_admissions': 5}
        importances = [f.importance for f in RiskScorer.contributing_factors(features)]
        assert importances == sorted(importances, reverse=True)
        assert importances == [0.85, 0.60, 0.50]

    def test_descriptions_reference_values(self):
        factors = RiskScorer.contributing_factors({'previous_admissions': 4, 'age': 81, 'length_of_stay': 9.5})
        descriptions = {f.factor: f.description for f in factors}
        assert descriptions['Previous Admissions'] == '4 previous admissions indicate high readmission risk'
        assert descriptions['Advanced Age'] == 'Age 81 associated with increased readmission risk'
        assert descriptions['Extended Length of Stay'] == '9.5 day stay suggests complex medical needs'

    def test_whole_float_values_print_as_integers(self):
        factors = RiskScorer.contributing_factors({'charlson_comorbidity_index': 5.0})
        assert factors[0].description == 'High comorbidity index (5) increases complexity'

    def test_missing_features_never_fire(self):
        assert RiskScorer.contributing_factors({}) == []


# =============================================================================
# Recommendations
# =============================================================================

class TestRecommendations:

    def test_high_risk_base(self):
        actions = RiskScorer.recommendations('High', [])
        assert actions[0] == 'Schedule follow-up appointment within 7 days'
        assert 'Consider transitional care management' in actions
        assert len(actions) == 4

    def test_medium_and_low_base(self):
        assert RiskScorer.recommendations('Medium', [])[0] == 'Schedule follow-up appointment within 14 days'
        assert len(RiskScorer.recommendations('Medium', [])) == 3
        assert len(RiskScorer.recommendations('Low', [])) == 2

    def test_factor_additions_in_factor_order(self):
        factors = RiskScorer.contributing_factors(ALL_FACTORS)
        actions = RiskScorer.recommendations('Low', factors)
        assert actions[2:] == [
            'Review previous admission patterns and causes',
            'Coordinate care with specialists',
            'Geriatric assessment and fall prevention',
            'Social work consultation for discharge planning',
        ]

    def test_duplicates_removed(self):
        repeated = [ContributingFactor('Advanced Age', 0.6, 'a'), ContributingFactor('Advanced Age', 0.6, 'b')]
        actions = RiskScorer.recommendations('High', repeated)
        assert len(actions) == len(set(actions))
        assert actions.count('Geriatric assessment and fall prevention') == 1

    def test_factor_without_action(self):
        factors = [ContributingFactor('Emergency Admission', 0.5, 'x')]
        assert RiskScorer.recommendations('Low', factors) == [
            'Standard discharge planning',
            'Follow-up as clinically indicated',
        ]


# =============================================================================
# Assessment
# =============================================================================

class TestScore:

    def test_assessment_fields(self):
        assessment = scorer().score(ALL_FACTORS, "P42")
        assert assessment.patient_id == "P42"
        assert assessment.risk_category == 'High'
        assert assessment.prediction_date == FIXED_TIME
        assert len(assessment.contributing_factors) == 5
        assert 'Schedule follow-up appointment within 7 days' in assessment.recommendations

    @pytest.mark.parametrize("patient_id", [None, "", "   ", float("nan")])
    def test_missing_patient_id_is_unknown(self, patient_id):
        assert scorer().score({}, patient_id).patient_id == "unknown"

    def test_numeric_patient_id(self):
        assert normalize_patient_id(0) == "0"

    def test_module_level_score(self):
        assessment = score({}, "P1", random_state=MidpointRandom(), clock=lambda: FIXED_TIME)
        assert assessment.risk_score == pytest.approx(0.3)

    def test_scorer_is_swappable(self):
        class ConstantScorer(BaseScorer):
            def score(self, features, patient_id=None):
                return scorer().score({}, patient_id)

        assert isinstance(ConstantScorer().score({'age': 90}, "P1").risk_score, float)

    def test_base_scorer_is_abstract(self):
        with pytest.raises(TypeError):
            BaseScorer()
