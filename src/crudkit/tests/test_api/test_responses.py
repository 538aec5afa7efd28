import json

import pytest
from sqlalchemy.exc import IntegrityError

from crudkit.api.v1.error_handlers import normalize_error
from crudkit.api.v1.responses import error_envelope, success_envelope, write_success
from crudkit.exceptions.base import DuplicateError, NotFoundError, ValidationFailureError


def raised(exc: Exception) -> Exception:
    """Return `exc` with a real traceback attached."""
    try:
        raise exc
    except Exception as caught:
        return caught


class TestSuccessEnvelope:

    def test_shape_without_count(self):
        assert success_envelope("ok", {"a": 1}) == {"message": "ok", "data": {"a": 1}, "success": True}

    def test_doc_length_only_when_given(self):
        envelope = success_envelope("ok", [], doc_length=0)
        assert envelope["doc_length"] == 0
        assert envelope["data"] == []

    def test_write_success_status_and_body(self):
        response = write_success("created", {"id": 1}, status_code=201)
        assert response.status_code == 201
        assert json.loads(response.body)["success"] is True


class TestErrorEnvelope:

    def test_development_carries_stack(self):
        envelope = error_envelope(raised(NotFoundError("Article not found")), "development")

        assert envelope["message"] == "Article not found"
        assert envelope["error"] == "NotFound"
        assert envelope["success"] is False
        assert envelope["stack"]["type"] == "NotFoundError"
        assert any("NotFoundError" in line for line in envelope["stack"]["trace"])

    @pytest.mark.parametrize("environment", ["production", "staging", "testing"])
    def test_stack_key_absent_outside_development(self, environment):
        """
        Behavior:
                - The same failure outside development has no `stack` key at all (not null).
        """
        envelope = error_envelope(raised(NotFoundError("Article not found")), environment)
        assert "stack" not in envelope
        assert set(envelope) == {"message", "error", "success"}

    def test_raw_store_text_is_not_exposed(self):
        exc = IntegrityError("INSERT", {}, Exception("secret internals"))
        envelope = error_envelope(exc, "production")
        assert "secret internals" not in envelope["message"]
        assert envelope["error"] == "Unknown"

    def test_raw_duplicate_gets_generic_duplicate_message(self):
        exc = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: authors.email"))
        envelope = error_envelope(exc, "production")
        assert envelope == {"message": "Entity already exists", "error": "DuplicateEntity", "success": False}


@pytest.mark.parametrize("exc,status,kind", [
    (NotFoundError(), 404, "NotFound"),
    (DuplicateError("dup"), 409, "DuplicateEntity"),
    (ValidationFailureError("bad"), 400, "ValidationFailure"),
    (RuntimeError("boom"), 500, "Unknown"),
])
def test_normalize_error_status_mapping(exc, status, kind):
    response = normalize_error(exc, "production")
    body = json.loads(response.body)
    assert response.status_code == status
    assert body["error"] == kind
    assert set(body) == {"message", "error", "success"}
