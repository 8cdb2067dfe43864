"""Tests for the mapping of catalog exceptions to HTTP status codes"""

import importlib
import warnings

import pytest

from shardcatalog.domain.exceptions import InvalidKeyError, ValidationException
from shardcatalog.infrastructure.exceptions import OperationTimeoutError, TransportError
from shardcatalog.presentation.api import errors


@pytest.mark.parametrize(
    "exc, expected",
    [
        (InvalidKeyError(-1, "negative"), 422),
        (ValidationException("blank", "tenant_name"), 422),
        (OperationTimeoutError("s1/acme", "execute", 5.0), 504),
        (TransportError("s1/acme", "execute", "connection reset"), 503),
    ],
)
def test_status_code_for(exc, expected):
    assert errors.status_code_for(exc) == expected


def test_module_import_emits_no_deprecation_warnings():
    """
    GIVEN a current Starlette release
    WHEN the error mapping module is loaded
    THEN no deprecation warning is raised for the status codes it uses
    """
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        importlib.reload(errors)

    assert not [w for w in caught if issubclass(w.category, DeprecationWarning)]
    assert errors.status_code_for(InvalidKeyError(-1, "negative")) == 422
