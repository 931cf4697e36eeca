import unittest

from legalflow.errors import (
    GENERIC_ERROR_MESSAGE,
    UNKNOWN_ERROR_MESSAGE,
    BackendError,
    describe_error,
    http_status_for,
    is_missing_table,
)


class StorageError(Exception):
    def __init__(self, message, status):
        super().__init__(message)
        self.message = message
        self.status = status


class DescribeErrorTests(unittest.TestCase):
    def test_known_codes(self):
        self.assertEqual(
            describe_error(BackendError("dup", code="23505")),
            "Registro duplicado. Este documento ou registro já existe.",
        )
        self.assertEqual(
            describe_error(BackendError("col", code="42703")),
            describe_error(BackendError("col", code="PGRST204")),
        )
        self.assertEqual(
            describe_error(BackendError("denied", code="42501")),
            "Permissão negada (RLS). Verifique as políticas de acesso no banco.",
        )

    def test_storage_status_is_used_as_code(self):
        self.assertIn("Storage", describe_error(StorageError("forbidden", "403")))

    def test_unknown_code_keeps_message(self):
        self.assertEqual(
            describe_error(BackendError("boom", code="XX000")), "boom (Código: XX000)"
        )
        self.assertEqual(describe_error(BackendError("", code="XX000")), "Erro técnico: XX000")

    def test_fallbacks(self):
        self.assertEqual(describe_error(None), UNKNOWN_ERROR_MESSAGE)
        self.assertEqual(describe_error("Falha de rede"), "Falha de rede")
        self.assertEqual(describe_error(BackendError("só mensagem")), "só mensagem")
        self.assertEqual(describe_error(BackendError("")), GENERIC_ERROR_MESSAGE)

    def test_errors_are_logged(self):
        with self.assertLogs("legalflow.errors", level="ERROR") as logs:
            describe_error(BackendError("boom", code="23505", details="key (email)"))
        self.assertIn("key (email)", logs.output[0])


class ErrorClassificationTests(unittest.TestCase):
    def test_missing_table(self):
        self.assertTrue(is_missing_table(BackendError("x", code="42P01")))
        self.assertTrue(is_missing_table(BackendError("x", code="PGRST205")))
        self.assertFalse(is_missing_table(BackendError("x", code="23505")))

    def test_http_status(self):
        self.assertEqual(http_status_for(BackendError("x", code="23505")), 409)
        self.assertEqual(http_status_for(BackendError("x", code="invalid_credentials")), 401)
        self.assertEqual(http_status_for(BackendError("x", code="PGRST116")), 404)
        self.assertEqual(http_status_for(BackendError("x", code="23502")), 400)
        self.assertEqual(http_status_for(BackendError("x", code="42P01")), 503)
        self.assertEqual(http_status_for(BackendError("x")), 502)


if __name__ == "__main__":
    unittest.main()
