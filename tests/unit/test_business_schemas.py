import json

import pytest
from starlette.datastructures import FormData

from app.core.exceptions import OnboardingValidationError
from app.schemas.business import BusinessDraftOut, BusinessDraftPatch, parse_locations
from tests.fixtures.onboarding_fixtures import location_payload, locations_json


@pytest.mark.unit
class TestDraftPatchFromForm:
    def test_only_sent_keys_are_present(self):
        patch = BusinessDraftPatch.from_form(FormData([("businessName", "  Sharma  ")]))

        assert patch.business_name == "Sharma"
        assert patch.has("business_name")
        assert not patch.has("business_description")
        assert patch.document_fields() == {"businessName": "Sharma"}

    def test_empty_value_is_present(self):
        patch = BusinessDraftPatch.from_form(FormData([("website", "")]))
        assert patch.document_fields() == {"website": ""}

    def test_repeated_list_fields(self):
        form = FormData(
            [("brands", "exide"), ("brands", " amaron "), ("brands", ""), ("shopType", "local shop")]
        )
        patch = BusinessDraftPatch.from_form(form)
        assert patch.brands == ["exide", "amaron"]
        assert patch.shop_type == "local shop"

    def test_email_and_gst_are_normalised(self):
        form = FormData([("email", "Owner@Sharma.IN"), ("gstNumber", "29abcde1234f1z5")])
        patch = BusinessDraftPatch.from_form(form)
        assert patch.email == "owner@sharma.in"
        assert patch.gst_number == "29ABCDE1234F1Z5"

    def test_location_keys_stay_off_the_document(self):
        form = FormData(
            [
                ("status", "submitted"),
                ("businessLocations", locations_json("loc_a")),
                ("primaryBusinessLocationId", "loc_a"),
                ("shopImageLocationId", "loc_a"),
            ]
        )
        patch = BusinessDraftPatch.from_form(form)

        assert patch.status == "submitted"
        assert patch.has_locations
        assert patch.primary_location_id == "loc_a"
        assert patch.shop_image_location_id == "loc_a"
        assert [loc.id for loc in patch.business_locations] == ["loc_a"]
        assert patch.document_fields() == {}

    def test_no_locations_key(self):
        patch = BusinessDraftPatch.from_form(FormData([("name", "Ravi")]))
        assert not patch.has_locations
        assert patch.business_locations is None


@pytest.mark.unit
class TestParseLocations:
    def test_entries_without_id_are_skipped(self):
        raw = json.dumps([location_payload("a"), {"fullAddress": "no id"}, location_payload("  ")])
        assert [loc.id for loc in parse_locations(raw)] == ["a"]

    def test_blank_input_is_empty_list(self):
        assert parse_locations("") == []

    @pytest.mark.parametrize("raw", ["{not json", '{"id": "a"}'])
    def test_malformed_input(self, raw):
        with pytest.raises(OnboardingValidationError, match="Invalid business locations."):
            parse_locations(raw)

    def test_malformed_entry(self):
        raw = json.dumps([location_payload("a", geo={"latitude": "north"})])
        with pytest.raises(OnboardingValidationError, match="Invalid business locations."):
            parse_locations(raw)


@pytest.mark.unit
class TestBusinessDraftOut:
    def test_defaults_are_empty(self):
        data = BusinessDraftOut().model_dump(by_alias=True)
        assert data["status"] == "draft"
        assert data["businessName"] == ""
        assert data["brands"] == []
        assert data["businessLogo"] is None
        assert data["primaryLocationId"] == ""
