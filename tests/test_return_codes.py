# tests/test_return_codes.py
"""
测试返回码表以及 "可接受返回码" 策略。
"""

import pytest

from irbis_core.exceptions import IrbisError, ServerError
from irbis_core.protocols.response import ServerResponse
from irbis_core.protocols.return_codes import (
    ERROR_DESCRIPTIONS,
    READ_RECORD_CODES,
    READ_TERMS_CODES,
    UNKNOWN_ERROR,
    describe_error,
)


@pytest.mark.parametrize(
    "code, expected",
    [
        (-600, "Запись логически удалена"),
        (-3337, "Клиент уже зарегистрирован"),
        (-4444, "Неверный пароль"),
        (-9999, UNKNOWN_ERROR),
        (0, "Нормальное завершение"),
        (15, "Нормальное завершение"),
    ],
)
def test_describe_error(code, expected):
    assert describe_error(code) == expected


def test_table_is_read_only():
    with pytest.raises(TypeError):
        ERROR_DESCRIPTIONS[-1] = "x"


def test_deleted_record_accepted_for_read(make_response):
    response = ServerResponse(make_response(["-600"], command="C"))
    assert response.check_return_code(READ_RECORD_CODES) == -600


def test_deleted_record_refused_without_acceptable_set(make_response):
    response = ServerResponse(make_response(["-600"], command="C"))

    with pytest.raises(ServerError) as exc_info:
        response.check_return_code()

    assert exc_info.value.return_code == -600
    assert exc_info.value.description == "Запись логически удалена"


def test_unmapped_code_uses_fallback(make_response):
    response = ServerResponse(make_response(["-9999"]))

    with pytest.raises(ServerError) as exc_info:
        response.check_return_code(READ_TERMS_CODES)

    assert exc_info.value.description == UNKNOWN_ERROR
    assert str(exc_info.value) == "[-9999] unknown error"


def test_server_error_custom_message():
    error = ServerError(-140, "MFN 999 超出范围")

    assert isinstance(error, IrbisError)
    assert error.description == "MFN вне пределов БД"
    assert str(error) == "[-140] MFN 999 超出范围"
