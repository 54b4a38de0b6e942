import pytest

from cpm.infra.token_store import EMAIL_VERIFICATION, PASSWORD_RESET, OneTimeTokenStore


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def store(clock):
    return OneTimeTokenStore(clock=clock)


def test_consume_is_single_use(store):
    t = store.issue(PASSWORD_RESET, "ana@example.com", 3600)
    assert len(t) == 64
    assert store.peek(PASSWORD_RESET, t) == "ana@example.com"
    assert store.consume(PASSWORD_RESET, t) == "ana@example.com"
    assert store.consume(PASSWORD_RESET, t) is None
    assert store.peek(PASSWORD_RESET, t) is None


def test_expired_tokens_are_dead(store, clock):
    t = store.issue(PASSWORD_RESET, "ana@example.com", 60)
    clock.now += 60
    assert store.consume(PASSWORD_RESET, t) is None


def test_purposes_do_not_mix(store):
    t = store.issue(EMAIL_VERIFICATION, "ana@example.com", 60)
    assert store.consume(PASSWORD_RESET, t) is None
    assert store.consume(EMAIL_VERIFICATION, t) == "ana@example.com"


def test_reissue_replaces_previous_token(store):
    first = store.issue(PASSWORD_RESET, "ana@example.com", 60)
    second = store.issue(PASSWORD_RESET, "ana@example.com", 60)
    assert store.peek(PASSWORD_RESET, first) is None
    assert store.peek(PASSWORD_RESET, second) == "ana@example.com"


def test_purge_expired(store, clock):
    store.issue(PASSWORD_RESET, "a@example.com", 10)
    store.issue(PASSWORD_RESET, "b@example.com", 100)
    clock.now += 50
    assert store.purge_expired() == 1


def test_bad_input(store):
    assert store.consume(PASSWORD_RESET, "") is None
    with pytest.raises(ValueError):
        store.issue(PASSWORD_RESET, "a@example.com", 0)
