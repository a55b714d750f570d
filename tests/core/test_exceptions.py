import json

from sqlalchemy.exc import OperationalError
from starlette.requests import Request

from src.core.config import settings
from src.core.exceptions import DuplicateError, NotFoundError, ValidationError
from src.core.exceptions.handlers import app_exception_handler, sqlalchemy_db_error_handler


def _request() -> Request:
    return Request({"type": "http", "method": "POST", "path": "/api/students", "headers": []})


class TestAppExceptions:
    def test_status_codes(self):
        assert NotFoundError("Student", 5).status_code == 404
        assert ValidationError("bad").status_code == 400
        assert DuplicateError("Student", "email", "a@b.c").status_code == 400

    def test_messages(self):
        assert NotFoundError("Student", 5).message == "Student with id=5 not found"
        assert NotFoundError("Student").message == "Student not found"

    async def test_envelope(self):
        response = await app_exception_handler(_request(), ValidationError("Valid amount is required", field="amount"))
        body = json.loads(response.body)
        assert response.status_code == 400
        assert body == {
            "success": False,
            "data": None,
            "message": "Valid amount is required",
            "errors": [{"field": "amount", "message": "Valid amount is required"}],
        }


class TestDatabaseErrors:
    async def test_generic_message_outside_debug(self, monkeypatch):
        monkeypatch.setattr(settings, "debug", False)
        exc = OperationalError("INSERT ...", {}, Exception("connection refused"))

        response = await sqlalchemy_db_error_handler(_request(), exc)

        assert response.status_code == 500
        assert json.loads(response.body)["message"] == "Internal server error"

    async def test_raw_message_in_debug(self, monkeypatch):
        monkeypatch.setattr(settings, "debug", True)
        exc = OperationalError("INSERT ...", {}, Exception("connection refused"))

        response = await sqlalchemy_db_error_handler(_request(), exc)

        assert json.loads(response.body)["message"] == "connection refused"
