from deployflow.utils.retry import compute_backoff


def test_backoff_grows_and_is_capped():
    assert 1.5 <= compute_backoff(1, jitter=0) <= 1.5
    assert compute_backoff(3, base=2, jitter=0) == 8
    assert compute_backoff(20, base=2, jitter=0, max_delay=10) == 10


def test_backoff_disabled_with_zero_base():
    assert compute_backoff(5, base=0) == 0.0


def test_jitter_stays_in_range():
    for _ in range(20):
        assert 2.0 <= compute_backoff(1, base=2, jitter=0.5) <= 2.5
