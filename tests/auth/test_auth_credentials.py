import threading
import unittest
from unittest.mock import Mock, patch

from drivemirror.auth import AuthInfo, CredentialsProvider
from drivemirror.errors import AuthError, InvalidArgumentError

SCOPES = ["https://www.googleapis.com/auth/drive"]


class TestCredentialsProvider(unittest.TestCase):
    def setUp(self) -> None:
        self.info = AuthInfo.service_account("/secrets/sa.json", "admin@example.com")

    def test_service_account_is_delegated_to_subject(self) -> None:
        base = Mock()
        with patch(
            "google.oauth2.service_account.Credentials.from_service_account_file",
            return_value=base,
        ) as load:
            creds = CredentialsProvider(self.info).get_credentials(SCOPES)

        load.assert_called_once_with("/secrets/sa.json", scopes=SCOPES)
        base.with_subject.assert_called_once_with("admin@example.com")
        self.assertIs(creds, base.with_subject.return_value)

    def test_project_credentials_are_not_delegated(self) -> None:
        base = Mock()
        with patch(
            "google.oauth2.service_account.Credentials.from_service_account_file",
            return_value=base,
        ):
            creds = CredentialsProvider(self.info).get_project_credentials(SCOPES)

        self.assertIs(creds, base)
        base.with_subject.assert_not_called()

    def test_unreadable_key_file_raises_auth_error(self) -> None:
        with patch(
            "google.oauth2.service_account.Credentials.from_service_account_file",
            side_effect=FileNotFoundError("missing"),
        ):
            with self.assertRaises(AuthError) as ctx:
                CredentialsProvider(self.info).get_credentials(SCOPES)
        self.assertEqual(ctx.exception.details["service_account_file"], "/secrets/sa.json")

    def test_empty_scopes_rejected(self) -> None:
        with self.assertRaises(InvalidArgumentError):
            CredentialsProvider(self.info).get_credentials([])
        with self.assertRaises(InvalidArgumentError):
            CredentialsProvider(self.info).get_project_credentials([])


class TestTransport(unittest.TestCase):
    def setUp(self) -> None:
        self.provider = CredentialsProvider(
            AuthInfo.service_account("/secrets/sa.json", "admin@example.com")
        )
        self.creds = Mock()

    def test_http_factory_builds_a_fresh_timed_transport_per_call(self) -> None:
        with patch.object(self.provider, "get_credentials", return_value=self.creds) as get:
            new_http = self.provider.http_factory(SCOPES, timeout_sec=30)

        first = new_http()
        second = new_http()

        get.assert_called_once_with(SCOPES)
        self.assertIsNot(first, second)
        self.assertIsNot(first.http, second.http)
        self.assertIs(first.credentials, self.creds)
        self.assertIs(second.credentials, self.creds)
        self.assertEqual(first.http.timeout, 30)

    def test_transports_built_in_different_threads_are_distinct(self) -> None:
        with patch.object(self.provider, "get_credentials", return_value=self.creds):
            new_http = self.provider.http_factory(SCOPES)

        built = []
        workers = [threading.Thread(target=lambda: built.append(new_http())) for _ in range(2)]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join()

        self.assertEqual(len({id(h.http) for h in built}), 2)
        self.assertIsNone(built[0].http.timeout)

    def test_build_drive_service_uses_given_transport(self) -> None:
        http = Mock()
        with patch("googleapiclient.discovery.build") as build:
            service = self.provider.build_drive_service(http)

        build.assert_called_once_with("drive", "v3", http=http, cache_discovery=False)
        self.assertIs(service, build.return_value)

    def test_build_failure_raises_auth_error(self) -> None:
        with patch("googleapiclient.discovery.build", side_effect=ValueError("bad")):
            with self.assertRaises(AuthError):
                self.provider.build_drive_service(Mock())


if __name__ == "__main__":
    unittest.main()
