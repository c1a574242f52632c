import unittest

from drivemirror.errors.exceptions import (
    ApiError,
    AuthError,
    ConflictError,
    DriveMirrorError,
    HttpErrorInfo,
    InvalidArgumentError,
    InvalidStateError,
    NotFoundError,
    PermissionError,
    QuotaExceededError,
    RateLimitError,
    SyncInProgressError,
    map_http_error,
)


class TestExceptions(unittest.TestCase):
    def test_base_error_keeps_details_and_cause(self) -> None:
        cause = RuntimeError("root")
        err = DriveMirrorError("msg", details={"drive_id": "D1"}, cause=cause)
        self.assertEqual(str(err), "msg")
        self.assertEqual(err.details["drive_id"], "D1")
        self.assertIs(err.cause, cause)

    def test_details_default_to_empty_dict(self) -> None:
        self.assertEqual(DriveMirrorError("x").details, {})

    def test_sync_in_progress_is_invalid_state(self) -> None:
        err = SyncInProgressError("busy")
        self.assertIsInstance(err, InvalidStateError)
        self.assertIsInstance(err, DriveMirrorError)

    def test_map_http_error_basic(self) -> None:
        cases = {
            400: InvalidArgumentError,
            401: AuthError,
            404: NotFoundError,
            409: ConflictError,
            412: ConflictError,
            429: RateLimitError,
        }
        for status, expected in cases.items():
            with self.subTest(status=status):
                err = map_http_error(HttpErrorInfo(status_code=status, message="m"))
                self.assertIsInstance(err, expected)
                self.assertEqual(err.details["status_code"], status)

    def test_map_http_error_403_rate_limit_quota_permission(self) -> None:
        err = map_http_error(HttpErrorInfo(status_code=403, reason="userRateLimitExceeded"))
        self.assertIsInstance(err, RateLimitError)

        err = map_http_error(HttpErrorInfo(status_code=403, reason="rateLimitExceeded"))
        self.assertIsInstance(err, RateLimitError)

        err = map_http_error(HttpErrorInfo(status_code=403, reason="storageQuotaExceeded"))
        self.assertIsInstance(err, QuotaExceededError)

        err = map_http_error(HttpErrorInfo(status_code=403, reason="insufficientFilePermissions"))
        self.assertIsInstance(err, PermissionError)

    def test_map_http_error_5xx_and_other_are_api_errors(self) -> None:
        self.assertIsInstance(map_http_error(HttpErrorInfo(status_code=503)), ApiError)
        self.assertIsInstance(map_http_error(HttpErrorInfo(status_code=418)), ApiError)

    def test_message_falls_back_to_status(self) -> None:
        err = map_http_error(HttpErrorInfo(status_code=500))
        self.assertEqual(str(err), "HTTP error 500")

    def test_extra_details_are_merged(self) -> None:
        err = map_http_error(
            HttpErrorInfo(status_code=404, reason="notFound", details={"domain": "global"})
        )
        self.assertEqual(err.details["domain"], "global")
        self.assertEqual(err.details["reason"], "notFound")


if __name__ == "__main__":
    unittest.main()
