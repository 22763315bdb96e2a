"""
Unit tests for the ONLYOFFICE editor configuration builder.
"""
import pytest

from docgrant.models.grant import AccessLevel
from docgrant.utils.onlyoffice_config import (
    derive_document_key,
    document_type_for,
    file_name_from_url,
    file_type_from_url,
    get_onlyoffice_config,
)


class TestDocumentType:

    def test_known_types(self):
        assert document_type_for("docx") == "word"
        assert document_type_for("XLSX") == "cell"
        assert document_type_for(".pptx") == "slide"
        assert document_type_for("pdf") == "pdf"

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            document_type_for("exe")


class TestUrlHelpers:

    def test_file_name_is_unquoted(self):
        assert file_name_from_url("https://host/files/Q3%20report.docx?v=2") == "Q3 report.docx"

    def test_file_type_from_extension(self):
        assert file_type_from_url("https://host/sheet.XLSX") == "xlsx"

    def test_missing_extension_defaults_to_docx(self):
        assert file_type_from_url("https://host/download/42") == "docx"

    def test_document_key_is_stable_and_url_specific(self):
        key = derive_document_key("https://host/doc123.docx")
        assert key == derive_document_key("https://host/doc123.docx")
        assert key != derive_document_key("https://host/doc124.docx")
        assert len(key) == 32


class TestEditorConfig:

    def _config(self, level, **kwargs):
        return get_onlyoffice_config(
            file_url="https://host/doc123.docx",
            document_key="abc123",
            title="doc123.docx",
            file_type="docx",
            access_level=level,
            **kwargs
        )

    def test_document_section(self):
        config = self._config(AccessLevel.EDIT)
        assert config["document"] == {
            "fileType": "docx",
            "key": "abc123",
            "title": "doc123.docx",
            "url": "https://host/doc123.docx",
            "permissions": AccessLevel.EDIT.permissions(),
        }
        assert config["documentType"] == "word"

    def test_editor_section(self):
        config = self._config(
            AccessLevel.EDIT,
            callback_url="http://backend:8000/cb",
            user_id="u-7",
            user_name="Dana",
            lang="de",
            goback_url="http://frontend.test",
        )
        editor = config["editorConfig"]
        assert editor["mode"] == "edit"
        assert editor["lang"] == "de"
        assert editor["callbackUrl"] == "http://backend:8000/cb"
        assert editor["user"] == {"id": "u-7", "name": "Dana"}
        assert editor["customization"]["goback"] == {"url": "http://frontend.test"}

    def test_view_only_has_no_callback(self):
        config = self._config(AccessLevel.VIEW_ONLY, callback_url="http://backend:8000/cb")
        assert config["editorConfig"]["mode"] == "view"
        assert "callbackUrl" not in config["editorConfig"]

    def test_optional_sections_omitted(self):
        editor = self._config(AccessLevel.COMMENT)["editorConfig"]
        assert "user" not in editor
        assert "goback" not in editor["customization"]
