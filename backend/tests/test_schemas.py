"""
NoteDigest Backend: Schema and Settings Tests
=============================================

What we test:
    ✅ NoteWrite trims title/content and enforces the title bound
    ✅ NoteResponse reads ORM rows
    ✅ Settings helpers: CORS list, log level validation, startup check
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from notedigest.config import Settings
from notedigest.schemas.note import NoteResponse, NoteWrite


class TestNoteWrite:

    def test_trims_fields(self):
        data = NoteWrite(title="  Shopping  ", content="\n Milk \n")
        assert data.title == "Shopping"
        assert data.content == "Milk"

    def test_title_at_limit_is_accepted(self):
        assert len(NoteWrite(title="x" * 100, content="c").title) == 100

    def test_title_limit_applies_after_trimming(self):
        assert NoteWrite(title=" " + "x" * 100 + " ", content="c").title == "x" * 100

    @pytest.mark.parametrize(
        "title, content, message",
        [
            ("", "body", "Title is required"),
            ("   ", "body", "Title is required"),
            ("x" * 101, "body", "Title must be less than 100 characters"),
            ("Title", "", "Content is required"),
            ("Title", " \t\n", "Content is required"),
        ],
    )
    def test_rejects_invalid_input(self, title, content, message):
        with pytest.raises(PydanticValidationError) as exc_info:
            NoteWrite(title=title, content=content)
        assert message in str(exc_info.value)

    def test_missing_field(self):
        with pytest.raises(PydanticValidationError):
            NoteWrite(title="Only a title")


class TestNoteResponse:

    def test_from_orm_row(self, make_note):
        note = make_note(owner_id="user-a")
        response = NoteResponse.model_validate(note)

        assert response.id == note.id
        assert "owner_id" not in response.model_dump()


class TestSettings:

    def test_cors_origins_list(self):
        source = Settings(cors_origins="http://a.test, http://b.test ,")
        assert source.cors_origins_list == ["http://a.test", "http://b.test"]

    def test_log_level_is_normalized(self):
        assert Settings(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(PydanticValidationError):
            Settings(log_level="chatty")

    def test_startup_check_lists_every_missing_credential(self):
        source = Settings(gemini_api_key="", auth_jwt_secret="", auth_jwt_public_key="")

        with pytest.raises(ValueError) as exc_info:
            source.validate_required_for_production()

        message = str(exc_info.value)
        assert "GEMINI_API_KEY" in message
        assert "AUTH_JWT_SECRET" in message

    def test_startup_check_passes_when_configured(self):
        Settings(gemini_api_key="k", auth_jwt_secret="s").validate_required_for_production()

    def test_is_production(self):
        assert Settings(environment="Production").is_production is True
        assert Settings(environment="development").is_production is False
