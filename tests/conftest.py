import copy
import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

FIXTURES = Path(__file__).parent / "fixtures"
SAMPLE_PATIENTS_PATH = FIXTURES / "sample_patients.json"


class MidpointRandom:
    """Random source that always returns the middle of the interval."""

    def uniform(self, low, high):
        return (low + high) / 2


FIXED_TIME = datetime(2024, 2, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_patients():
    with open(SAMPLE_PATIENTS_PATH) as f:
        return json.load(f)


@pytest.fixture
def p001(sample_patients):
    return copy.deepcopy(sample_patients[0])


@pytest.fixture
def midpoint_rng():
    return MidpointRandom()


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_TIME
