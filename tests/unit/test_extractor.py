"""Unit tests for form field extraction."""

import pytest

from autofill.dom.document import FIELD_MARKER_ATTR, FormDocument
from autofill.dom.extractor import (
    FieldExtractor,
    analyze_form,
    extract_job_posting,
    find_form_container,
    get_field_label,
)
from autofill.errors import NoFormFieldsError, NoFormFoundError
from autofill.models import FieldKind


def extract(html: str):
    document = FormDocument(html)
    return document, FieldExtractor(document).extract()


class TestFieldExtractor:
    """Tests for FieldExtractor."""

    def test_extracts_supported_fields_in_document_order(self, application_document):
        """Test every visible, enabled control is described once."""
        fields = FieldExtractor(application_document).extract()

        assert [f.id for f in fields] == [
            "full_name",
            "email",
            "phone",
            "years",
            "start_date",
            "portfolio",
            "cover_letter",
            "work_auth",
            "gender",
            "relocate",
            "terms",
            "job-app-field-11",
        ]

    def test_field_kinds(self, application_document):
        """Test kind classification."""
        fields = {f.id: f for f in FieldExtractor(application_document).extract()}

        assert fields["email"].kind == FieldKind.EMAIL
        assert fields["phone"].kind == FieldKind.TEL
        assert fields["years"].kind == FieldKind.NUMBER
        assert fields["start_date"].kind == FieldKind.DATE
        assert fields["cover_letter"].kind == FieldKind.TEXTAREA
        assert fields["work_auth"].kind == FieldKind.SELECT
        assert fields["relocate"].kind == FieldKind.RADIO
        assert fields["terms"].kind == FieldKind.CHECKBOX

    def test_excludes_hidden_disabled_and_unsupported(self, application_document):
        """Test password, hidden, disabled and display:none controls are left out."""
        ids = {f.id for f in FieldExtractor(application_document).extract()}

        assert "csrf" not in ids
        assert "password" not in ids
        assert "disabled_field" not in ids
        assert "honeypot" not in ids

    def test_ids_are_unique(self):
        """Test duplicate declared ids fall back to synthesized ones."""
        _, fields = extract(
            """
            <form>
              <input type="text" id="answer">
              <input type="text" id="answer">
              <input type="text" name="answer">
            </form>
            """
        )

        ids = [f.id for f in fields]
        assert ids == ["answer", "job-app-field-1", "job-app-field-2"]
        assert len(set(ids)) == len(ids)

    def test_synthesized_id_avoids_declared_ids(self):
        """Test a synthesized id never reuses an id declared on the page."""
        document, fields = extract(
            """
            <form>
              <input type="text" id="job-app-field-1">
              <input type="text">
            </form>
            """
        )

        ids = [f.id for f in fields]
        assert ids == ["job-app-field-1", "job-app-field-1-2"]
        second = document.find_control("job-app-field-1-2")
        assert second is not None and not second.has_attr("id")

    def test_stamps_marker_on_every_control(self):
        """Test the marker attribute resolves synthesized and declared ids."""
        document, fields = extract(
            """
            <form>
              <input type="text" id="first">
              <input type="text" placeholder="Anything else?">
            </form>
            """
        )

        assert fields[1].id == "job-app-field-1"
        assert document.find_control("job-app-field-1").get("placeholder") == "Anything else?"
        assert document.find_control("first")[FIELD_MARKER_ATTR] == "first"

    def test_clears_stale_markers(self):
        """Test a second pass does not keep markers from the first."""
        document = FormDocument('<form><input type="text" data-job-app-field-id="old"></form>')

        fields = FieldExtractor(document).extract()

        assert fields[0].id == "job-app-field-0"
        assert document.soup.find(attrs={FIELD_MARKER_ATTR: "old"}) is None

    def test_radio_group_is_one_field(self):
        """Test radios sharing a name produce a single field with distinct options."""
        _, fields = extract(
            """
            <form>
              <label><input type="radio" name="remote" value="yes" required> Yes</label>
              <label><input type="radio" name="remote" value="no"> No</label>
              <label><input type="radio" name="remote" value="no2"> No</label>
            </form>
            """
        )

        assert len(fields) == 1
        assert fields[0].id == "remote"
        assert fields[0].options == ["Yes", "No"]
        assert fields[0].required is True

    def test_nameless_radio_is_omitted(self):
        """Test a radio without a name cannot form a group."""
        _, fields = extract('<form><input type="radio" value="x"><input type="text" id="t"></form>')

        assert [f.id for f in fields] == ["t"]

    def test_select_options_and_required(self, application_document):
        """Test select options are the option texts."""
        fields = {f.id: f for f in FieldExtractor(application_document).extract()}

        assert fields["work_auth"].options == ["Select...", "U.S. Citizen", "Requires sponsorship"]
        assert fields["work_auth"].required is True

    def test_max_length_and_placeholder(self, application_document):
        """Test text metadata is captured."""
        fields = {f.id: f for f in FieldExtractor(application_document).extract()}

        assert fields["cover_letter"].max_length == 2000
        assert fields["phone"].placeholder == "Phone number"

    def test_hidden_attribute_on_ancestor(self):
        """Test the hidden attribute on a wrapper hides its controls."""
        _, fields = extract('<form><div hidden><input type="text" id="a"></div></form>')

        assert fields == []

    def test_disabled_fieldset(self):
        """Test controls inside a disabled fieldset are excluded."""
        _, fields = extract(
            '<form><fieldset disabled><input type="text" id="a"></fieldset>'
            '<input type="text" id="b"></form>'
        )

        assert [f.id for f in fields] == ["b"]


class TestFieldLabels:
    """Tests for label resolution order."""

    @pytest.mark.parametrize(
        "html,expected",
        [
            ('<label for="x">Label For</label><input id="x" aria-label="Aria">', "Label For"),
            ('<label>Wrapped <input id="x"></label>', "Wrapped"),
            ('<input id="x" aria-label="Aria" placeholder="Place">', "Aria"),
            ('<input id="x" placeholder="Place">', "Place"),
            ('<input name="first-name_field">', "first name field"),
            ("<input>", "Unlabeled field"),
        ],
    )
    def test_label_resolution(self, html, expected):
        """Test each resolution step in priority order."""
        document = FormDocument(f"<form>{html}</form>")
        control = document.soup.find("input")

        assert get_field_label(document, control) == expected


class TestAnalyzeForm:
    """Tests for the analyze entry point."""

    def test_analyze_returns_fields_job_and_url(self, application_document):
        """Test a complete extraction result."""
        form_data = analyze_form(application_document)

        assert len(form_data.fields) == 12
        assert form_data.job_posting.title == "Senior Python Engineer - Acme Corp"
        assert "data pipelines" in form_data.job_posting.description
        assert form_data.url == "https://jobs.example.com/acme/apply"

    def test_wire_format_uses_type_key(self, application_document):
        """Test the wire payload names the kind "type"."""
        wire = analyze_form(application_document).to_wire()

        assert wire["fields"][0]["type"] == "text"
        assert "jobPosting" in wire

    def test_no_form_raises(self):
        """Test a page with nothing form-like."""
        document = FormDocument("<html><body><p>Just an article</p></body></html>")

        with pytest.raises(NoFormFoundError):
            analyze_form(document)

    def test_form_without_fields_raises(self):
        """Test a form with only unsupported controls."""
        document = FormDocument('<form><input type="submit"></form>')

        with pytest.raises(NoFormFieldsError) as exc_info:
            analyze_form(document)

        assert "no fillable fields" in str(exc_info.value)

    def test_form_like_page_uses_body(self):
        """Test pages without a form tag fall back to the body."""
        document = FormDocument(
            '<body><div class="application-step"><input type="text" id="q1"></div></body>'
        )

        assert find_form_container(document).name == "body"
        assert [f.id for f in analyze_form(document).fields] == ["q1"]


class TestJobPosting:
    """Tests for job posting extraction."""

    def test_falls_back_to_body_text(self):
        """Test short pages use the whole body."""
        document = FormDocument(
            "<html><head><title>Apply</title></head><body><p>Short text</p></body></html>"
        )

        posting = extract_job_posting(document)

        assert posting.title == "Apply"
        assert posting.description == "Short text"

    def test_description_is_capped(self):
        """Test the description length limit."""
        document = FormDocument(f'<body><div class="job-description">{"x" * 600}</div></body>')

        posting = extract_job_posting(document, max_length=300)

        assert len(posting.description) == 300
