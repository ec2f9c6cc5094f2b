import logging
import unittest
from datetime import datetime, timezone

from app.services.errors import RateLimitError
from app.services.github_client import GitHubAPIError, _throttle_of
from app.services.rate_limit import RateLimitGuard, ThrottleInfo, compute_wait

logging.disable(logging.CRITICAL)

NOW = 1_700_000_000.0


def _throttled(headers, status_code=403, message="API rate limit exceeded"):
    return GitHubAPIError(f"HTTP {status_code}: {message}", status_code=status_code, headers=headers)


class _Calls:
    """Callable that raises the queued exceptions, then returns "ok"."""

    def __init__(self, *failures):
        self.failures = list(failures)
        self.count = 0

    def __call__(self):
        self.count += 1
        if self.failures:
            raise self.failures.pop(0)
        return "ok"


class RateLimitGuardTests(unittest.TestCase):
    def _guard(self):
        self.sleeps = []
        return RateLimitGuard(
            _throttle_of,
            max_wait_seconds=60,
            margin_seconds=1,
            sleep=self.sleeps.append,
            clock=lambda: NOW,
        )

    def test_short_reset_waits_then_retries_once(self):
        fn = _Calls(_throttled({"X-RateLimit-Remaining": "0", "X-RateLimit-Reset": str(int(NOW + 5))}))

        self.assertEqual(self._guard().call(fn), "ok")
        self.assertEqual(fn.count, 2)
        self.assertEqual(len(self.sleeps), 1)
        self.assertGreaterEqual(self.sleeps[0], 6)

    def test_long_reset_raises_without_retry(self):
        fn = _Calls(_throttled({"X-RateLimit-Remaining": "0", "X-RateLimit-Reset": str(int(NOW + 300))}))

        with self.assertRaises(RateLimitError) as ctx:
            self._guard().call(fn)

        self.assertEqual(fn.count, 1)
        self.assertEqual(self.sleeps, [])
        self.assertEqual(ctx.exception.wait_seconds, 300)
        expected = datetime.fromtimestamp(NOW + 300, tz=timezone.utc).replace(tzinfo=None)
        self.assertEqual(ctx.exception.reset_at, expected)

    def test_still_throttled_after_retry_is_fatal(self):
        fn = _Calls(
            _throttled({"Retry-After": "2"}, status_code=429),
            _throttled({"Retry-After": "2"}, status_code=429),
        )

        with self.assertRaises(RateLimitError):
            self._guard().call(fn)
        self.assertEqual(fn.count, 2)
        self.assertEqual(self.sleeps, [3])

    def test_retry_after_takes_precedence(self):
        fn = _Calls(_throttled({"Retry-After": "10", "X-RateLimit-Reset": str(int(NOW + 500))}, status_code=429))

        self.assertEqual(self._guard().call(fn), "ok")
        self.assertEqual(self.sleeps, [11])

    def test_reset_in_the_past_retries_after_margin(self):
        fn = _Calls(_throttled({"X-RateLimit-Remaining": "0", "X-RateLimit-Reset": str(int(NOW - 3))}))

        self.assertEqual(self._guard().call(fn), "ok")
        self.assertEqual(self.sleeps, [1])

    def test_plain_403_is_not_throttling(self):
        err = GitHubAPIError("HTTP 403: Resource not accessible", status_code=403, headers={})
        fn = _Calls(err)

        with self.assertRaises(GitHubAPIError):
            self._guard().call(fn)
        self.assertEqual(fn.count, 1)
        self.assertEqual(self.sleeps, [])

    def test_non_http_errors_pass_through(self):
        fn = _Calls(ValueError("boom"))

        with self.assertRaises(ValueError):
            self._guard().call(fn)
        self.assertEqual(self.sleeps, [])

    def test_retry_non_throttle_failure_propagates_as_is(self):
        fn = _Calls(
            _throttled({"Retry-After": "1"}, status_code=429),
            GitHubAPIError("HTTP 500", status_code=500),
        )

        with self.assertRaises(GitHubAPIError) as ctx:
            self._guard().call(fn)
        self.assertEqual(ctx.exception.status_code, 500)


class ComputeWaitTests(unittest.TestCase):
    def test_missing_metadata_defaults_to_one_minute(self):
        wait, reset = compute_wait(ThrottleInfo(429, {}), NOW)
        self.assertEqual(wait, 60)
        self.assertEqual(reset, NOW + 60)

    def test_header_names_are_case_insensitive(self):
        info = ThrottleInfo(403, {"x-ratelimit-remaining": "0", "X-RATELIMIT-RESET": str(int(NOW + 7))})
        self.assertTrue(info.is_throttled)
        self.assertEqual(compute_wait(info, NOW)[0], 7)


if __name__ == "__main__":
    unittest.main()
