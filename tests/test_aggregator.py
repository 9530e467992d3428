"""Unit tests for per-cycle metric aggregation."""

from datetime import UTC, datetime

import pytest

from src.collector.aggregator import ZERO_TIME, MetricAggregator, timestamp_value

LABELS = ("incidentID", "userID", "time", "type")
T1 = datetime(2024, 1, 1, 13, 5, tzinfo=UTC)
T2 = datetime(2024, 1, 1, 13, 10, tzinfo=UTC)


def _labels(incident_id: str = "P1", user_id: str = "U1") -> dict[str, str]:
    return {"incidentID": incident_id, "userID": user_id, "time": "t", "type": "assignment"}


class TestMetricAggregator:
    def test_distinct_labels_are_kept(self) -> None:
        agg = MetricAggregator("pagerduty_incident_status", LABELS)
        agg.add_time(_labels("P1"), T1)
        agg.add_time(_labels("P2"), T1)
        assert len(agg.materialize()) == 2

    @pytest.mark.parametrize("order", [(T1, T2), (T2, T1)])
    def test_later_timestamp_wins_in_either_order(self, order: tuple[datetime, datetime]) -> None:
        agg = MetricAggregator("pagerduty_incident_status", LABELS)
        for ts in order:
            agg.add_time(_labels(), ts)

        snapshot = agg.materialize()
        assert len(snapshot) == 1
        assert snapshot.samples[0].observed_at == T2
        assert snapshot.samples[0].value == T2.timestamp()

    def test_equal_timestamps_later_addition_wins(self) -> None:
        agg = MetricAggregator("m", LABELS)
        agg.add(_labels(), 1.0, T1)
        agg.add(_labels(), 2.0, T1)
        assert agg.materialize().samples[0].value == 2.0

    def test_first_insertion_order_preserved(self) -> None:
        agg = MetricAggregator("m", LABELS)
        agg.add_time(_labels("P1"), T1)
        agg.add_time(_labels("P2"), T1)
        agg.add_time(_labels("P1"), T2)
        ids = [sample.label_dict["incidentID"] for sample in agg.materialize().samples]
        assert ids == ["P1", "P2"]

    def test_labels_ordered_by_schema(self) -> None:
        agg = MetricAggregator("m", LABELS)
        agg.add_time({"type": "assignment", "time": "t", "userID": "U1", "incidentID": "P1"}, T1)
        sample = agg.materialize().samples[0]
        assert [name for name, _ in sample.labels] == list(LABELS)

    def test_label_values_are_stringified(self) -> None:
        agg = MetricAggregator("m", ("incidentNumber", "title"))
        agg.add_time({"incidentNumber": 42, "title": None}, T1)
        assert agg.materialize().samples[0].label_dict == {"incidentNumber": "42", "title": ""}

    def test_missing_label_rejected(self) -> None:
        agg = MetricAggregator("m", LABELS)
        with pytest.raises(ValueError, match="missing"):
            agg.add_time({"incidentID": "P1"}, T1)

    def test_unexpected_label_rejected(self) -> None:
        agg = MetricAggregator("m", LABELS)
        with pytest.raises(ValueError, match="unexpected"):
            agg.add_time({**_labels(), "extra": "x"}, T1)

    def test_materialize_is_pure(self) -> None:
        agg = MetricAggregator("m", LABELS)
        agg.add_time(_labels(), T1)
        first = agg.materialize()
        second = agg.materialize()
        assert first == second
        assert len(agg) == 1

    def test_snapshot_not_affected_by_later_adds(self) -> None:
        agg = MetricAggregator("m", LABELS)
        agg.add_time(_labels("P1"), T1)
        snapshot = agg.materialize()
        agg.add_time(_labels("P2"), T1)
        assert len(snapshot) == 1

    def test_snapshot_carries_schema(self) -> None:
        snapshot = MetricAggregator("m", LABELS).materialize()
        assert snapshot.name == "m"
        assert snapshot.labelnames == LABELS
        assert snapshot.samples == ()


class TestTimestampValue:
    def test_unix_seconds(self) -> None:
        assert timestamp_value(datetime(1970, 1, 1, 0, 1, tzinfo=UTC)) == 60.0

    def test_zero_time_is_zero(self) -> None:
        assert timestamp_value(ZERO_TIME) == 0.0
