import fnmatch
import os
import sys
import time

import pytest
import redis


def pytest_configure():
    # Ensure the project root is importable when the package is not installed
    root = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))
    if root not in sys.path:
        sys.path.insert(0, root)


class FakePubSub:
    def __init__(self, client):
        self.client = client
        self.channels = set()
        self.patterns = set()
        self.closed = False
        self.calls = []

    @property
    def subscribed(self):
        return bool(self.channels or self.patterns)

    def subscribe(self, *channels):
        self.channels.update(channels)

    def psubscribe(self, *patterns):
        self.patterns.update(patterns)

    def unsubscribe(self, *channels):
        self.calls.append("unsubscribe")
        self.channels.clear()

    def punsubscribe(self, *patterns):
        self.calls.append("punsubscribe")
        self.patterns.clear()

    def close(self):
        self.closed = True


class FakePipeline:
    def __init__(self, client, transaction):
        self.client = client
        self.transaction = transaction
        self.queued = []

    def eval(self, script, numkeys, *args):
        self.queued.append(("eval", (script, numkeys) + args))
        return self

    def delete(self, *names):
        self.queued.append(("delete", names))
        return self

    def execute(self):
        FakeRedis.executed.append([name for name, _ in self.queued])
        results = [getattr(self.client, name)(*args) for name, args in self.queued]
        self.queued = []
        return results


class FakeRedis:
    """In-memory stand-in for redis.Redis sharing one keyspace."""

    instances = []
    data = {}
    expiries = {}
    executed = []

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.closed = False
        FakeRedis.instances.append(self)

    @classmethod
    def reset(cls):
        cls.instances = []
        cls.data = {}
        cls.expiries = {}
        cls.executed = []

    def ping(self):
        return True

    def info(self):
        return {"redis_version": "7.2.0", "connected_clients": len(FakeRedis.instances)}

    def set(self, name, value, ex=None, px=None, nx=False, xx=False):
        if nx and name in self.data:
            return None
        if xx and name not in self.data:
            return None
        self.data[name] = value if isinstance(value, str) else str(value)
        if ex is not None:
            self.expiries[name] = time.time() + ex
        elif px is not None:
            self.expiries[name] = time.time() + px / 1000.0
        return True

    def get(self, name):
        value = self.data.get(name)
        return value if isinstance(value, str) else None

    def hset(self, name, key=None, value=None, mapping=None):
        if not mapping:
            raise redis.exceptions.DataError("'hset' with no key value pairs")
        fields = self.data.setdefault(name, {})
        added = len([field for field in mapping if field not in fields])
        fields.update({field: str(leaf) for field, leaf in mapping.items()})
        return added

    def hgetall(self, name):
        value = self.data.get(name)
        return dict(value) if isinstance(value, dict) else {}

    def keys(self, pattern="*"):
        return [key for key in self.data if fnmatch.fnmatchcase(key, pattern)]

    def scan_iter(self, match=None, count=None):
        return iter(self.keys(match or "*"))

    def delete(self, *names):
        deleted = 0
        for name in names:
            if self.data.pop(name, None) is not None:
                deleted += 1
        return deleted

    def eval(self, script, numkeys, *args):
        assert 'redis.pcall("keys", ARGV[1])' in script
        return len(self.keys(args[0]))

    def pipeline(self, transaction=True):
        return FakePipeline(self, transaction)

    def pubsub(self):
        return FakePubSub(self)

    def close(self):
        self.closed = True


@pytest.fixture
def fake_redis(monkeypatch):
    FakeRedis.reset()
    monkeypatch.setattr(redis, "Redis", FakeRedis)
    return FakeRedis


@pytest.fixture
def clients(fake_redis):
    from redis_clients import RedisClients

    clients = RedisClients()
    yield clients
    clients.quit()


@pytest.fixture
def commands(clients):
    from redis_clients import Commands

    return Commands(clients)
