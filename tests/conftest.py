from types import SimpleNamespace

import pytest

from finance_ingest.cli.common import default_pool


@pytest.fixture
def pool():
    return default_pool()


class FakeClock:
    def __init__(self, now=1_700_000_000_000):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


class FakeMessages:
    """Stands in for anthropic's `client.messages`"""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return SimpleNamespace(content=[SimpleNamespace(text=response)])


class FakeClient:
    def __init__(self, responses):
        self.messages = FakeMessages(responses)


class FakeCategorizer:
    """Records calls; returns canned labels"""

    def __init__(self, single=None, batch=None):
        self.single = single
        self.batch = list(batch or [])
        self.single_calls = []
        self.batch_calls = []

    def predict_category(self, description, amount, pool):
        self.single_calls.append((description, amount))
        return self.single

    def predict_categories_batch(self, transactions, pool):
        self.batch_calls.append(list(transactions))
        labels = self.batch[:len(transactions)]
        return labels + ['General'] * (len(transactions) - len(labels))
