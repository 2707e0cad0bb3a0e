"""
Clinical lookup tables used by feature extraction and risk scoring.

Kept as plain data so they can be reviewed (e.g. for fairness audits)
or swapped without touching control flow.
"""

import operator
from collections import namedtuple

# Charlson Comorbidity Index weights, keyed by normalized condition tag
CHARLSON_WEIGHTS = {
    'myocardial_infarction': 1,
    'congestive_heart_failure': 1,
    'peripheral_vascular_disease': 1,
    'cerebrovascular_disease': 1,
    'dementia': 1,
    'chronic_pulmonary_disease': 1,
    'rheumatic_disease': 1,
    'peptic_ulcer_disease': 1,
    'mild_liver_disease': 1,
    'diabetes': 1,
    'diabetes_complications': 2,
    'hemiplegia': 2,
    'renal_disease': 2,
    'malignancy': 2,
    'moderate_liver_disease': 3,
    'metastatic_carcinoma': 6,
    'aids': 6,
}

# Narrow therapeutic index drugs; matched as case-insensitive substrings
HIGH_RISK_MEDICATIONS = (
    'warfarin',
    'insulin',
    'digoxin',
    'lithium',
    'phenytoin',
    'carbamazepine',
    'theophylline',
    'methotrexate',
)

INSURANCE_TYPES = {
    'insurance_medicare': 'Medicare',
    'insurance_medicaid': 'Medicaid',
    'insurance_private': 'Private',
    'insurance_uninsured': 'Uninsured',
}

DISCHARGE_DISPOSITIONS = {
    'discharge_home': 'Home',
    'discharge_snf': 'SNF',
    'discharge_rehab': 'Rehabilitation',
}

# Upper bounds are exclusive; the last bucket is open-ended
AGE_GROUP_BOUNDS = (30, 50, 70)

# Signed linear weights; negative weights are protective
SCORING_WEIGHTS = {
    'previous_admissions': 0.15,
    'charlson_comorbidity_index': 0.12,
    'length_of_stay': 0.10,
    'age': 0.08,
    'emergency_admission': 0.08,
    'medication_complexity': 0.07,
    'social_risk_score': 0.06,
    'discharge_home': -0.05,
    'num_diagnoses': 0.05,
    'systolic_bp': 0.04,
    'heart_rate': 0.04,
    'oxygen_saturation': -0.03,
    'is_weekend_discharge': 0.03,
    'insurance_uninsured': 0.03,
    'temperature': 0.02,
}

BASE_OFFSET = 0.3
PERTURBATION = 0.05
CONFIDENCE_JITTER = 0.1
CONFIDENCE_BOUNDS = (0.6, 0.95)

# Reference importances; its size is the denominator of the completeness ratio
FEATURE_IMPORTANCES = {
    'previous_admissions': 0.15,
    'charlson_comorbidity_index': 0.12,
    'length_of_stay': 0.10,
    'age': 0.08,
    'emergency_admission': 0.08,
    'medication_complexity': 0.07,
    'social_risk_score': 0.06,
    'discharge_home': 0.05,
    'num_diagnoses': 0.05,
    'systolic_bp': 0.04,
    'heart_rate': 0.04,
    'oxygen_saturation': 0.03,
    'is_weekend_discharge': 0.03,
    'insurance_uninsured': 0.03,
    'temperature': 0.02,
    'respiratory_rate': 0.02,
    'diastolic_bp': 0.02,
    'age_group': 0.01,
}

# (lower bound inclusive, category), checked from the top down
RISK_CATEGORIES = (
    (0.7, 'High'),
    (0.3, 'Medium'),
    (0.0, 'Low'),
)

MAX_CONTRIBUTING_FACTORS = 5

FactorRule = namedtuple(
    'FactorRule', ['feature', 'compare', 'threshold', 'factor', 'importance', 'template']
)

# Evaluated in order; ties in importance keep this order
FACTOR_RULES = (
    FactorRule('previous_admissions', operator.gt, 2, 'Previous Admissions', 0.85,
               '{value} previous admissions indicate high readmission risk'),
    FactorRule('charlson_comorbidity_index', operator.gt, 3, 'Comorbidity Burden', 0.78,
               'High comorbidity index ({value}) increases complexity'),
    FactorRule('length_of_stay', operator.gt, 7, 'Extended Length of Stay', 0.65,
               '{value} day stay suggests complex medical needs'),
    FactorRule('age', operator.gt, 75, 'Advanced Age', 0.60,
               'Age {value} associated with increased readmission risk'),
    FactorRule('social_risk_score', operator.gt, 2, 'Social Risk Factors', 0.55,
               'Multiple social barriers may impact post-discharge care'),
    FactorRule('emergency_admission', operator.eq, 1, 'Emergency Admission', 0.50,
               'Unplanned admission suggests unstable condition'),
)

CATEGORY_RECOMMENDATIONS = {
    'High': (
        'Schedule follow-up appointment within 7 days',
        'Arrange home health services',
        'Medication reconciliation and education',
        'Consider transitional care management',
    ),
    'Medium': (
        'Schedule follow-up appointment within 14 days',
        'Provide detailed discharge instructions',
        'Ensure medication adherence plan',
    ),
    'Low': (
        'Standard discharge planning',
        'Follow-up as clinically indicated',
    ),
}

FACTOR_RECOMMENDATIONS = {
    'Social Risk Factors': 'Social work consultation for discharge planning',
    'Comorbidity Burden': 'Coordinate care with specialists',
    'Previous Admissions': 'Review previous admission patterns and causes',
    'Advanced Age': 'Geriatric assessment and fall prevention',
}
