import math
import pytest
import random
import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from errors import EmptyResultError
from metrics import Sample
from stats import _round_half_away, histogram, mean_and_stddev, median, percentile, summarize

MS = 1_000_000


def make_samples(latencies, statuses=None):
    statuses = statuses or [200] * len(latencies)
    return [Sample(status, took, 1_700_000_000_000_000_000 + i)
            for i, (status, took) in enumerate(zip(statuses, latencies))]


class TestPercentile:
    def test_interpolates_between_neighbours(self):
        times = [5 * MS, 10 * MS, 15 * MS, 20 * MS, 25 * MS]
        # rank 4.5 -> between the 4th and 5th values, halfway
        assert percentile(times, 0.90) == 22_500_000
        assert percentile(times, 0.95) == 23_750_000
        assert percentile(times, 0.99) == 24_750_000

    def test_small_rank_returns_smallest(self):
        assert percentile([7, 8, 9], 0.1) == 7

    def test_top_rank_returns_max(self):
        times = sorted(random.Random(3).randrange(1, 10**9) for _ in range(37))
        assert percentile(times, 1.0) == times[-1]
        assert percentile([4], 1.0) == 4

    def test_exact_rank_has_no_fraction(self):
        # n=10, p=0.5 -> rank 5.0, idx 4, frac 0
        assert percentile(list(range(10, 110, 10)), 0.5) == 50

    def test_rounds_half_away_from_zero(self):
        # n=4, p=0.625 -> rank 2.5, idx 1: 1*0.5 + 2*0.5 = 1.5 -> 2
        assert percentile([0, 1, 2, 3], 0.625) == 2
        # 2*0.5 + 3*0.5 = 2.5 -> 3
        assert percentile([0, 2, 3, 4], 0.625) == 3

    def test_rounding_helper_avoids_float_addition_error(self):
        assert _round_half_away(0.49999999999999994) == 0
        assert _round_half_away(0.5) == 1
        assert _round_half_away(2.5) == 3
        assert _round_half_away(float(2**52 + 1)) == 2**52 + 1
        assert _round_half_away(-2.5) == -3

    def test_non_decreasing_in_p(self):
        times = sorted(random.Random(11).randrange(1, 10**6) for _ in range(53))
        values = [percentile(times, p / 100) for p in range(1, 101)]
        assert values == sorted(values)

    def test_invalid_p(self):
        with pytest.raises(ValueError):
            percentile([1, 2, 3], 0)
        with pytest.raises(ValueError):
            percentile([1, 2, 3], 1.5)

    def test_empty(self):
        with pytest.raises(EmptyResultError):
            percentile([], 0.5)


class TestMedianAndSpread:
    def test_odd(self):
        assert median([1, 3, 9]) == 3

    def test_even(self):
        assert median([1, 3, 9, 10]) == 6
        assert median([1, 2]) == 1.5

    def test_matches_sorted_middle(self):
        rng = random.Random(8)
        for n in (1, 2, 7, 10, 31):
            times = sorted(rng.randrange(0, 1000) for _ in range(n))
            mid = n // 2
            expected = times[mid] if n % 2 else (times[mid - 1] + times[mid]) / 2
            assert median(times) == expected

    def test_population_stddev(self):
        mean, sd = mean_and_stddev([2, 4, 4, 4, 5, 5, 7, 9])
        assert mean == 5
        assert sd == 2  # divisor n, the sample variant would give ~2.138

    def test_constant_series(self):
        assert mean_and_stddev([10, 10, 10]) == (10, 0)


class TestHistogram:
    def test_counts_and_percentages(self):
        samples = make_samples([1] * 10, [200] * 7 + [500] * 2 + [404])
        buckets, width = histogram(samples)
        assert [(b.status, b.count) for b in buckets] == [(200, 7), (404, 1), (500, 2)]
        assert sum(b.count for b in buckets) == len(samples)
        assert math.isclose(sum(b.percent for b in buckets), 100.0)
        assert buckets[0].percent == pytest.approx(70.0)
        assert width == 1

    def test_width_is_digits_of_largest_count(self):
        samples = make_samples([1] * 120, [200] * 100 + [503] * 20)
        _, width = histogram(samples)
        assert width == 3


class TestSummarize:
    def test_five_samples(self):
        # completion order differs from latency order
        samples = make_samples([15 * MS, 5 * MS, 25 * MS, 10 * MS, 20 * MS])
        s = summarize(samples)
        assert s.count == 5
        assert s.mean == 15 * MS
        assert s.median == 15 * MS
        assert s.min.took_ns == 5 * MS
        assert s.max.took_ns == 25 * MS
        assert s.first.took_ns == 15 * MS  # first completed, not the fastest
        assert s.p90 == 22_500_000
        assert s.p95 == 23_750_000
        assert s.p99 == 24_750_000
        assert s.total == 75 * MS
        assert s.stddev == pytest.approx(math.sqrt(50) * MS)

    def test_does_not_reorder_input(self):
        samples = make_samples([3, 1, 2])
        before = list(samples)
        summarize(samples)
        assert samples == before

    def test_ties_keep_first_seen(self):
        samples = make_samples([4, 1, 1, 4], [201, 202, 203, 204])
        s = summarize(samples)
        assert s.min.status == 202
        assert s.max.status == 201

    def test_p100_equals_max(self):
        rng = random.Random(1)
        samples = make_samples([rng.randrange(1, 10**9) for _ in range(25)])
        s = summarize(samples)
        assert percentile(sorted(x.took_ns for x in samples), 1.0) == s.max.took_ns

    def test_empty(self):
        with pytest.raises(EmptyResultError) as exc:
            summarize([])
        assert str(exc.value) == "no result values"
