"""异常体系测试"""

import pytest

from pipelogs.core.exceptions import (
    AuthenticationError,
    ConfigError,
    NotFoundError,
    PipeLogsError,
    RemoteServiceError,
    TransientFetchError,
    ValidationError,
)


class TestExceptions:
    @pytest.mark.parametrize("cls,code", [
        (ConfigError, "CONFIG_ERROR"),
        (ValidationError, "VALIDATION_ERROR"),
        (NotFoundError, "NOT_FOUND"),
        (AuthenticationError, "AUTHENTICATION_ERROR"),
        (RemoteServiceError, "REMOTE_ERROR"),
        (TransientFetchError, "TRANSIENT_FETCH_ERROR"),
    ])
    def test_codes(self, cls: type, code: str) -> None:
        exc = cls("msg")
        assert isinstance(exc, PipeLogsError)
        assert exc.code == code
        assert str(exc) == "msg"

    def test_validation_details(self) -> None:
        assert ValidationError("x").details == []
        assert ValidationError("x", details=["limit"]).details == ["limit"]

    def test_transient_carries_status(self) -> None:
        exc = TransientFetchError("HTTP 500", log_id=3, status=500)
        assert exc.log_id == 3
        assert exc.status == 500
