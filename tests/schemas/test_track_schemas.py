"""Tests for track request schemas."""
from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from schemas.track import (
    MAX_IMPORT_TRACKS,
    TrackCreate,
    TrackDelete,
    TrackImport,
    TrackUpdate,
    WebhookTrackCreate,
)


class TestTrackCreate:
    """Track creation payload."""

    def test__track_create__trims_name_and_defaults(self) -> None:
        """Name is trimmed; date and data are optional."""
        data = TrackCreate.model_validate({"trackName": "  CONSUMED_WATER "})
        assert data.track_name == "CONSUMED_WATER"
        assert data.date is None
        assert data.data is None

    def test__track_create__naive_date_is_utc(self) -> None:
        """Dates without offset are read as UTC."""
        data = TrackCreate.model_validate({"trackName": "x", "date": "2024-01-02T03:04:05"})
        assert data.date == datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)

    @pytest.mark.parametrize(
        "body",
        [
            {"trackName": ""},
            {"trackName": "   "},
            {"trackName": "x" * 101},
            {"trackName": 5},
            {"trackName": "x", "date": "yesterday"},
            {"trackName": "x", "data": [1, 2]},
            {"trackName": "x", "data": "text"},
            {},
        ],
    )
    def test__track_create__rejects_invalid_input(self, body: dict) -> None:
        """Empty, over-long or non-string names, bad dates and non-object data fail."""
        with pytest.raises(ValidationError):
            TrackCreate.model_validate(body)

    def test__track_create__name_at_max_length(self) -> None:
        """100 characters is still valid."""
        assert len(TrackCreate.model_validate({"trackName": "x" * 100}).track_name) == 100


class TestTrackUpdate:
    """Partial update payload."""

    def test__track_update__only_set_fields_dumped(self) -> None:
        """Omitted fields are not part of the update."""
        data = TrackUpdate.model_validate({"trackName": "NEW"})
        assert data.model_dump(exclude_unset=True) == {"track_name": "NEW"}

    @pytest.mark.parametrize("body", [{"trackName": None}, {"date": None}, {"trackName": " "}])
    def test__track_update__rejects_null_or_empty(self, body: dict) -> None:
        """Fields may be omitted but not nulled or blanked."""
        with pytest.raises(ValidationError):
            TrackUpdate.model_validate(body)


class TestTrackDelete:
    """Deletion confirmation."""

    @pytest.mark.parametrize("value", [False, "true", None])
    def test__track_delete__requires_true(self, value: object) -> None:
        """Only the boolean true confirms."""
        with pytest.raises(ValidationError):
            TrackDelete.model_validate({"confirmDeletion": value})


class TestTrackImport:
    """Bulk import payload."""

    def test__track_import__bounds(self) -> None:
        """At least one and at most MAX_IMPORT_TRACKS tracks."""
        with pytest.raises(ValidationError):
            TrackImport.model_validate({"tracks": []})
        with pytest.raises(ValidationError):
            TrackImport.model_validate(
                {"tracks": [{"trackName": "x"}] * (MAX_IMPORT_TRACKS + 1)},
            )

    def test__track_import__validates_each_item(self) -> None:
        """One invalid item invalidates the payload."""
        with pytest.raises(ValidationError):
            TrackImport.model_validate({"tracks": [{"trackName": "ok"}, {"trackName": ""}]})


class TestWebhookTrackCreate:
    """Webhook payload."""

    @pytest.mark.parametrize("offset", [0, -60_000, 1.5, None])
    def test__webhook__accepts_numeric_offsets(self, offset: object) -> None:
        """timeOffset is an optional int or float."""
        data = WebhookTrackCreate.model_validate(
            {"accessToken": "tok", "trackName": "x", "timeOffset": offset},
        )
        assert data.time_offset == offset

    @pytest.mark.parametrize("offset", ["100", True])
    def test__webhook__rejects_non_numeric_offsets(self, offset: object) -> None:
        """Strings and booleans are not coerced."""
        with pytest.raises(ValidationError):
            WebhookTrackCreate.model_validate(
                {"accessToken": "tok", "trackName": "x", "timeOffset": offset},
            )

    def test__webhook__requires_access_token(self) -> None:
        """An empty access token is rejected."""
        with pytest.raises(ValidationError):
            WebhookTrackCreate.model_validate({"accessToken": "", "trackName": "x"})
