import unittest

from vaultsync.errors.exceptions import (
    ApiError,
    AuthError,
    ConflictError,
    ForbiddenError,
    HttpErrorInfo,
    InvalidArgumentError,
    MetaCorruptionError,
    NotFoundError,
    QuotaExceededError,
    RateLimitError,
    ServiceUnavailableError,
    SyncInProgressError,
    InvalidStateError,
    TransportError,
    VaultSyncError,
    map_http_error,
    parse_error_reason,
)


class TestExceptions(unittest.TestCase):
    def test_base_error_keeps_details_and_cause(self) -> None:
        cause = RuntimeError("root")
        err = VaultSyncError("msg", details={"k": "v"}, cause=cause)
        self.assertEqual(str(err), "msg")
        self.assertEqual(err.details["k"], "v")
        self.assertIs(err.cause, cause)

    def test_transport_error_truncates_body(self) -> None:
        err = TransportError(500, "x" * 500)
        self.assertEqual(err.status_code, 500)
        self.assertEqual(len(err.body), 200)
        self.assertEqual(str(err), "Drive API error 500: " + "x" * 200)
        self.assertEqual(err.details["status_code"], 500)

    def test_map_http_error_basic(self) -> None:
        cases = {
            400: InvalidArgumentError,
            401: AuthError,
            403: ForbiddenError,
            404: NotFoundError,
            409: ConflictError,
            412: ConflictError,
            429: RateLimitError,
            503: ServiceUnavailableError,
            500: ApiError,
            418: ApiError,
        }
        for status, cls in cases.items():
            with self.subTest(status=status):
                err = map_http_error(HttpErrorInfo(status_code=status, body="b"))
                self.assertIsInstance(err, cls)
                self.assertIsInstance(err, TransportError)
                self.assertEqual(err.status_code, status)

    def test_map_http_error_quota_reason(self) -> None:
        err = map_http_error(HttpErrorInfo(status_code=403, reason="storageQuotaExceeded"))
        self.assertIsInstance(err, QuotaExceededError)
        self.assertEqual(err.details["reason"], "storageQuotaExceeded")

    def test_map_http_error_keeps_cause(self) -> None:
        cause = ValueError("x")
        err = map_http_error(HttpErrorInfo(status_code=404), cause=cause)
        self.assertIs(err.cause, cause)

    def test_parse_error_reason(self) -> None:
        body = '{"error": {"errors": [{"reason": "rateLimitExceeded"}], "code": 429}}'
        self.assertEqual(parse_error_reason(body), "rateLimitExceeded")
        self.assertIsNone(parse_error_reason("not json"))
        self.assertIsNone(parse_error_reason('{"error": "flat"}'))
        self.assertIsNone(parse_error_reason("[]"))

    def test_meta_corruption_error_source(self) -> None:
        cause = ValueError("bad json")
        err = MetaCorruptionError("remote", cause=cause)
        self.assertEqual(err.source, "remote")
        self.assertIn("remote", str(err))
        self.assertIs(err.cause, cause)

    def test_sync_in_progress_is_invalid_state(self) -> None:
        self.assertTrue(issubclass(SyncInProgressError, InvalidStateError))


if __name__ == "__main__":
    unittest.main()
