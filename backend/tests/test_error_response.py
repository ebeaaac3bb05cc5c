import logging

from fastapi import HTTPException, status

from app.utils import error_body, error_response


def test_error_response_returns_structured_exception(caplog):
    with caplog.at_level(logging.ERROR):
        exc = error_response("Invalid input", {"title": "Title is required"}, status.HTTP_422_UNPROCESSABLE_ENTITY)
    assert isinstance(exc, HTTPException)
    assert exc.status_code == 422
    assert exc.detail == {"message": "Invalid input", "field_errors": {"title": "Title is required"}}
    assert "Invalid input" in caplog.text


def test_error_body_flattens_detail():
    assert error_body("Gig not found") == {"error": "Gig not found"}
    assert error_body({"message": "Bad", "field_errors": {}}) == {"error": "Bad"}
    assert error_body({"message": "Bad", "field_errors": {"end": "x"}}) == {
        "error": "Bad",
        "field_errors": {"end": "x"},
    }
    assert error_body({"error": "Upstream", "details": "timeout"}) == {"error": "Upstream", "details": "timeout"}
