import logging

import pytest

from demographics import breakdown, breakdown_all, bucket_name
from entities import DemographicAnswer, DemographicField, ResponseRecord

def test_breakdown_counts_and_percentages():
    b = breakdown(7, ["L", "P", "P", "L", "P"], label="Jenis Kelamin")
    assert b.label == "Jenis Kelamin"
    assert b.total == 5
    assert [(s.name, s.count) for s in b.distribution] == [("P", 3), ("L", 2)]
    assert sum(s.percentage for s in b.distribution) == pytest.approx(100.0)

def test_ties_keep_encounter_order():
    b = breakdown(1, ["SMA", "S1", "D3", "S1", "SMA", "D3"])
    assert [s.name for s in b.distribution] == ["SMA", "S1", "D3"]

def test_multi_select_is_one_composite_bucket():
    # whole array tallied as one value, options are not counted individually
    b = breakdown(2, [["Loket", "Online"], ["Loket"], ["Loket", "Online"]])
    assert [(s.name, s.count) for s in b.distribution] == [("Loket,Online", 2), ("Loket", 1)]

def test_values_grouped_by_literal_string():
    assert bucket_name(30) == bucket_name(30.0) == bucket_name("30") == "30"
    assert bucket_name(True) == "true"

def test_blank_answers_are_not_counted():
    b = breakdown(3, ["A", None, "", "  ", [], "A"])
    assert b.total == 2
    assert b.distribution[0].percentage == 100.0

def test_empty_field():
    b = breakdown(4, [])
    assert b.total == 0 and b.distribution == []
    assert b.label == "Field 4"

def test_breakdown_all_covers_declared_and_stray_fields(caplog):
    fields = [DemographicField(id=1, label="Usia", type="number"),
              DemographicField(id=2, label="Kota", type="text")]
    responses = [
        ResponseRecord(id=1, survey_id=1, demographic_data=[DemographicAnswer(field_id=1, value=20)]),
        ResponseRecord(id=2, survey_id=1, demographic_data=[DemographicAnswer(field_id=1, value=20),
                                                            DemographicAnswer(field_id=9, value="x")]),
    ]
    with caplog.at_level(logging.WARNING, logger="demographics"):
        out = breakdown_all(fields, responses)
    by_id = {b.field_id: b for b in out}
    assert by_id[1].distribution[0].count == 2
    assert by_id[2].total == 0
    assert by_id[9].label == "Field 9"
    assert "undeclared field" in caplog.text
