"""Tests for API error classes and their problem-details rendering.

Handlers are mounted on a throwaway FastAPI app so the rendering is
checked end to end without the real routers or a database.
"""

import httpx
import pytest
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from pydantic import Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.errors import (
    APIError,
    ConflictError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    RouteResolutionError,
    UnauthorizedError,
    ValidationError,
)
from app.core.responses import CamelModel
from app.main import (
    api_error_handler,
    http_exception_handler,
    internal_error_handler,
    problem_response,
    validation_error_handler,
)


class TestErrorClasses:
    """Status codes and messages of each error class."""

    def test_api_error_defaults_to_500(self):
        error = APIError(code="TEST", message="Test")
        assert error.status_code == 500
        assert error.errors is None
        assert str(error) == "Test"

    def test_validation_error_is_422(self):
        error = ValidationError()
        assert error.status_code == 422
        assert error.code == "VALIDATION_ERROR"

    def test_field_error_builds_single_field_dict(self):
        error = ValidationError.field_error("mileage", "Too low")
        assert error.errors == {"mileage": ["Too low"]}

    @pytest.mark.parametrize(
        ("error", "status"),
        [
            (UnauthorizedError(), 401),
            (ForbiddenError(), 403),
            (NotFoundError("Vehicle", 3), 404),
            (ConflictError("USERNAME_TAKEN", "taken"), 409),
            (RouteResolutionError("bad route"), 500),
            (InternalError(), 500),
        ],
    )
    def test_status_codes(self, error, status):
        assert error.status_code == status

    def test_not_found_message_includes_id(self):
        assert NotFoundError("Vehicle", 3).message == "Vehicle with id '3' not found"
        assert NotFoundError("Vehicle").message == "Vehicle not found"


class _VehicleBody(CamelModel):
    make: str
    current_mileage: int = Field(ge=0)


def _app() -> FastAPI:
    app = FastAPI()
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, internal_error_handler)

    @app.get("/not-found")
    async def not_found() -> None:
        raise NotFoundError("Vehicle", 9)

    @app.get("/bad-link")
    async def bad_link() -> None:
        raise RouteResolutionError("No route named 'get_spaceship'")

    @app.get("/field")
    async def field() -> None:
        raise ValidationError.field_error("mileage", "Must not decrease")

    @app.get("/boom")
    async def boom() -> None:
        raise RuntimeError("database password is hunter2")

    @app.post("/vehicles")
    async def create(body: _VehicleBody) -> dict:
        return body.model_dump(by_alias=True)

    return app


@pytest.fixture
async def http():
    transport = httpx.ASGITransport(app=_app(), raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


class TestProblemResponse:
    def test_known_status_gets_type_and_title(self):
        response = problem_response(404, "Vehicle not found")
        assert response.media_type == "application/problem+json"
        assert b'"title":"Not Found"' in response.body
        assert b"rfc9110#section-15.5.5" in response.body

    def test_unprocessable_uses_webdav_type(self):
        response = problem_response(422)
        assert b"rfc4918#section-11.2" in response.body
        assert b'"detail"' not in response.body


class TestHandlers:
    async def test_api_error_rendered_as_problem(self, http):
        response = await http.get("/not-found")

        assert response.status_code == 404
        assert response.headers["content-type"] == "application/problem+json"
        body = response.json()
        assert body["status"] == 404
        assert body["detail"] == "Vehicle with id '9' not found"
        assert "errors" not in body

    async def test_field_errors_are_carried(self, http):
        response = await http.get("/field")
        assert response.status_code == 422
        assert response.json()["errors"] == {"mileage": ["Must not decrease"]}

    async def test_route_resolution_error_is_generic_500(self, http):
        """The route name stays in the logs, not the response."""
        response = await http.get("/bad-link")

        assert response.status_code == 500
        assert "spaceship" not in response.text
        assert response.json()["detail"] == "An unexpected error occurred"

    async def test_unhandled_exception_does_not_leak(self, http):
        response = await http.get("/boom")

        assert response.status_code == 500
        assert "hunter2" not in response.text

    async def test_request_validation_keys_are_wire_names(self, http):
        response = await http.post("/vehicles", json={"currentMileage": -1})

        assert response.status_code == 422
        errors = response.json()["errors"]
        assert set(errors) == {"make", "currentMileage"}

    async def test_malformed_json_is_422(self, http):
        response = await http.post(
            "/vehicles",
            content=b"[1, 2",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 422

    async def test_unknown_route_is_problem_404(self, http):
        response = await http.get("/nowhere")

        assert response.status_code == 404
        assert response.headers["content-type"] == "application/problem+json"

    async def test_wrong_method_is_405(self, http):
        response = await http.delete("/vehicles")
        assert response.status_code == 405
        assert response.json()["title"] == "Method Not Allowed"
