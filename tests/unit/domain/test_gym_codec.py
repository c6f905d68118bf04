"""Unit tests for gym codecs and roster models."""

from datetime import datetime, timezone

import pytest

from cruxfeed.domain.gym.codec import (
    GymAdministratorCodec,
    GymCodec,
    GymFavoriteCodec,
    GymVisitRecordCodec,
)
from cruxfeed.domain.gym.models import (
    AdminRole,
    ClimbingType,
    Gym,
    GymAdministrator,
    GymFavorite,
    GymVisitRecord,
    VisitorRecord,
)

DAY = datetime(2025, 3, 1, tzinfo=timezone.utc)


class TestGymCodec:
    """Gym location and climbing-type migrations."""

    def test_round_trip(self, sample_gym: Gym) -> None:
        doc = GymCodec.encode(sample_gym)

        assert doc["location"] == "Sheffield"
        assert "locaiton" not in doc
        assert doc["climbingType"] == ["bouldering", "lead"]
        assert GymCodec.decode(doc) == sample_gym

    def test_reads_legacy_location_key(self, sample_gym: Gym) -> None:
        doc = GymCodec.encode(sample_gym)
        doc.pop("location")
        doc["locaiton"] = "Leeds"

        gym = GymCodec.decode(doc)

        assert gym is not None
        assert gym.location == "Leeds"
        assert GymCodec.encode(gym)["location"] == "Leeds"

    def test_canonical_location_wins_over_legacy(self, sample_gym: Gym) -> None:
        doc = GymCodec.encode(sample_gym)
        doc["locaiton"] = "Old place"

        gym = GymCodec.decode(doc)

        assert gym is not None
        assert gym.location == "Sheffield"

    def test_missing_location_is_unknown(self, sample_gym: Gym) -> None:
        doc = GymCodec.encode(sample_gym)
        doc.pop("location")

        gym = GymCodec.decode(doc)

        assert gym is not None
        assert gym.location == "Unknown"

    def test_single_string_climbing_type(self, sample_gym: Gym) -> None:
        doc = GymCodec.encode(sample_gym)
        doc["climbingType"] = "topRope"

        gym = GymCodec.decode(doc)

        assert gym is not None
        assert gym.climbing_types == frozenset({ClimbingType.TOP_ROPE})

    @pytest.mark.parametrize("raw", [None, [], ["sport"], 7])
    def test_empty_or_unknown_climbing_type_defaults_to_bouldering(
        self, sample_gym: Gym, raw: object
    ) -> None:
        doc = GymCodec.encode(sample_gym)
        doc["climbingType"] = raw

        gym = GymCodec.decode(doc)

        assert gym is not None
        assert gym.climbing_types == frozenset({ClimbingType.BOULDERING})

    def test_missing_name_returns_none(self, sample_gym: Gym) -> None:
        doc = GymCodec.encode(sample_gym)
        doc.pop("name")

        assert GymCodec.decode(doc) is None


class TestAdministratorAndFavoriteCodecs:
    def test_administrator_round_trip(self) -> None:
        admin = GymAdministrator(
            id="adm_1",
            user_id="user_2",
            gym_id="gym_1",
            role=AdminRole.MANAGER,
            added_at=DAY,
            added_by="user_1",
        )

        assert GymAdministratorCodec.decode(GymAdministratorCodec.encode(admin)) == admin

    def test_administrator_unknown_role_returns_none(self) -> None:
        doc = {"id": "a", "userId": "u", "gymId": "g", "role": "janitor", "addedBy": "u0"}

        assert GymAdministratorCodec.decode(doc) is None

    def test_favorite_round_trip_and_id(self) -> None:
        favorite = GymFavorite(user_id="user_1", gym_id="gym_1", created_at=DAY)

        assert favorite.id == "user_1_gym_1"
        assert GymFavoriteCodec.decode(GymFavoriteCodec.encode(favorite)) == favorite


class TestGymVisitRecord:
    def test_record_id_uses_utc_day(self) -> None:
        evening = datetime(2025, 3, 1, 23, 30, tzinfo=timezone.utc)

        assert GymVisitRecord.record_id("gym_1", evening) == "gym_1_20250301"

    def test_date_is_normalized_to_start_of_day(self) -> None:
        record = GymVisitRecord(
            id="gym_1_20250301",
            gym_id="gym_1",
            date=datetime(2025, 3, 1, 15, 45, tzinfo=timezone.utc),
        )

        assert record.date == DAY

    def test_round_trip(self) -> None:
        record = GymVisitRecord(
            id="gym_1_20250301",
            gym_id="gym_1",
            date=DAY,
            visitors=(
                VisitorRecord(user_id="u1", visit_time=DAY.replace(hour=18), visit_id="v1"),
                VisitorRecord(user_id="u2", visit_time=DAY.replace(hour=19)),
            ),
        )

        assert GymVisitRecordCodec.decode(GymVisitRecordCodec.encode(record)) == record

    def test_visit_time_keeps_millisecond_precision(self) -> None:
        visitor = VisitorRecord(user_id="u1", visit_time=DAY.replace(hour=18, microsecond=456789))

        assert visitor.visit_time == DAY.replace(hour=18, microsecond=456000)

    def test_decode_skips_malformed_and_duplicate_visitors(self) -> None:
        doc = {
            "id": "gym_1_20250301",
            "gymId": "gym_1",
            "date": DAY,
            "visitors": [
                {"userId": "u1", "visitTime": DAY},
                "garbage",
                {"userId": "u2"},
                {"userId": "u1", "visitTime": DAY.replace(hour=20)},
            ],
        }

        record = GymVisitRecordCodec.decode(doc)

        assert record is not None
        assert [v.user_id for v in record.visitors] == ["u1"]
        assert record.visitors[0].visit_time == DAY

    def test_without_removes_user(self) -> None:
        record = GymVisitRecord(
            id="r",
            gym_id="gym_1",
            date=DAY,
            visitors=(
                VisitorRecord(user_id="u1", visit_time=DAY),
                VisitorRecord(user_id="u2", visit_time=DAY),
            ),
        )

        remaining = record.without("u1")

        assert not remaining.has_visitor("u1")
        assert remaining.has_visitor("u2")
        assert record.has_visitor("u1")
