import asyncio
import numpy as np
import pytest
from typolink.ml.features import FEATURE_DIM, FEATURE_ORDER
from typolink.ml.kernels import LinearKernel
from typolink.ml.svm_model import SVMModel
from typolink.services.dictionaries import Dictionaries

WORDS = ['you', 'to', 'no', 'so', 'it', 'my', 'net', 'zip', 'hello', 'world', 'the', 'cat', 'go', 'thank']
TLDS = ['com', 'org', 'net', 'co', 'gov', 'it', 'my', 'no', 'so', 'you', 'to', 'zip', 'uk', 'co.uk', 'io']


class FakeLookup:
    """NS lookup double: answers from a dict, optionally slow or failing."""

    def __init__(self, answers=None, delay=0.0, fail=False):
        self.answers = answers or {}
        self.delay = delay
        self.fail = fail
        self.calls = []
        self.cancelled = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def lookup(self, domain):
        self.calls.append(domain)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.fail:
                raise RuntimeError('resolver unreachable')
            return self.answers.get(domain, ['ns1.example.net.'])
        except asyncio.CancelledError:
            self.cancelled.append(domain)
            raise
        finally:
            self.in_flight -= 1


@pytest.fixture
def dictionaries():
    return Dictionaries.from_iterables(WORDS, TLDS)


@pytest.fixture
def ns_prep_model():
    # typo iff both the NS-absent and the preposition flags are set
    w = np.zeros(FEATURE_DIM)
    w[FEATURE_ORDER.index('ns')] = 1.0
    w[FEATURE_ORDER.index('preposition')] = 1.0
    return SVMModel(kernel=LinearKernel(), bias=-1.5, dim=FEATURE_DIM, weights=w)
