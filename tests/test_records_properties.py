"""
Tests for MBS item parsing and batch validation.

**Feature: mbs-vector-sync, Property 8: Malformed Batch Rejection**
"""

import json

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from mbs_sync.core.records import (
    BATCH_ITEMS_KEY,
    FIELD_SPECS,
    InvalidBatchError,
    MBSItem,
    load_batch_file,
    parse_batch,
)

SAMPLE_ITEM = {
    "ItemNum": "23",
    "Description": "Professional attendance by a general practitioner",
    "NewItem": False,
    "FeeChange": True,
    "ItemStartDate": "01.11.2023",
    "ScheduleFee": 41.4,
    "Benefit75": 31.05,
    "Benefit100": 41.4,
    "BasicUnits": 0,
    "Category": "1",
    "Group": "A1",
    "ItemType": "S",
    "BenefitType": "C",
    "FeeType": "N",
    "ProviderType": "",
    "EMSNCap": 500,
}


def _raw_item(item_num: str, description: str = "Attendance") -> dict:
    return {"ItemNum": item_num, "Description": description}


class TestItemFromDict:
    """Test building an item from its source JSON object."""

    def test_full_item(self):
        item = MBSItem.from_dict(SAMPLE_ITEM)

        assert item.item_num == "23"
        assert item.fee_change is True
        assert item.schedule_fee == 41.4
        assert item.group == "A1"
        assert item.item_start_date == "01.11.2023"
        # Integral amounts become floats
        assert item.emsn_cap == 500.0
        assert isinstance(item.emsn_cap, float)

    def test_missing_optional_fields_take_zero_values(self):
        item = MBSItem.from_dict(_raw_item("104"))

        assert item.schedule_fee == 0.0
        assert item.category == ""
        assert item.anaes is False
        assert item.basic_units == 0

    def test_null_values_fall_back_to_defaults(self):
        item = MBSItem.from_dict({**_raw_item("104"), "Category": None, "Benefit100": None})

        assert item.category == ""
        assert item.benefit_100 == 0.0

    def test_unknown_keys_are_ignored(self):
        item = MBSItem.from_dict({**_raw_item("104"), "Unexpected": [1, 2]})

        assert item.item_num == "104"

    def test_numeric_item_num_is_converted(self):
        item = MBSItem.from_dict({"ItemNum": 3, "Description": "Brief attendance"})

        assert item.item_num == "3"

    def test_integral_basic_units_float_is_accepted(self):
        item = MBSItem.from_dict({**_raw_item("17610"), "BasicUnits": 4.0})

        assert item.basic_units == 4

    @pytest.mark.parametrize(
        "raw",
        [
            {"Description": "No item number"},
            {"ItemNum": "", "Description": "Empty item number"},
            {"ItemNum": "5"},
            {"ItemNum": "5", "Description": "   "},
        ],
    )
    def test_missing_required_field_is_rejected(self, raw):
        with pytest.raises(InvalidBatchError):
            MBSItem.from_dict(raw)

    @pytest.mark.parametrize(
        "key,value",
        [
            ("ScheduleFee", "41.40"),
            ("NewItem", 1),
            ("BasicUnits", 2.5),
            ("Category", 1),
            ("Description", ["a"]),
            ("Benefit100", True),
        ],
    )
    def test_wrongly_typed_field_is_rejected(self, key, value):
        with pytest.raises(InvalidBatchError, match=key):
            MBSItem.from_dict({**_raw_item("5"), key: value})

    @pytest.mark.parametrize("key", ["ItemNum", "Description", "Category"])
    def test_unencodable_string_is_rejected(self, key):
        raw = json.loads('{"ItemNum": "5", "Description": "x", "' + key + '": "bad \\ud800"}')

        with pytest.raises(InvalidBatchError, match=key):
            MBSItem.from_dict(raw)

    def test_non_object_is_rejected(self):
        with pytest.raises(InvalidBatchError):
            MBSItem.from_dict(["23", "Attendance"])

    def test_embedding_text(self):
        item = MBSItem.from_dict(_raw_item("23", "Level B consultation"))

        assert item.embedding_text() == "MBS Item 23: Level B consultation"

    def test_payload_holds_every_field(self):
        payload = MBSItem.from_dict(SAMPLE_ITEM).to_payload()

        assert set(payload) == {attr for _, attr, _ in FIELD_SPECS}
        assert payload["item_num"] == "23"
        assert payload["benefit_75"] == 31.05


class TestParseBatch:
    """Test whole-batch validation."""

    def test_items_keep_input_order(self):
        items = parse_batch({BATCH_ITEMS_KEY: [_raw_item("3"), _raw_item("1"), _raw_item("2")]})

        assert [item.item_num for item in items] == ["3", "1", "2"]

    def test_empty_list_is_accepted(self):
        assert parse_batch({BATCH_ITEMS_KEY: []}) == []

    @pytest.mark.parametrize(
        "body",
        [None, [], "MBS_Items", {}, {"items": []}, {BATCH_ITEMS_KEY: {"ItemNum": "1"}}],
    )
    def test_missing_items_list_is_rejected(self, body):
        with pytest.raises(InvalidBatchError, match=BATCH_ITEMS_KEY):
            parse_batch(body)

    def test_bad_item_rejects_whole_batch(self):
        body = {BATCH_ITEMS_KEY: [_raw_item("1"), {"ItemNum": "2"}, _raw_item("3")]}

        with pytest.raises(InvalidBatchError, match="index 1"):
            parse_batch(body)

    def test_lone_surrogate_rejects_batch(self):
        body = json.loads(
            '{"MBS_Items": [{"ItemNum": "1", "Description": "ok"},'
            ' {"ItemNum": "2", "Description": "bad \\ud800"}]}'
        )

        with pytest.raises(InvalidBatchError, match="index 1"):
            parse_batch(body)

    def test_duplicate_item_num_rejects_batch(self):
        body = {BATCH_ITEMS_KEY: [_raw_item("1"), _raw_item("2"), _raw_item("1", "Again")]}

        with pytest.raises(InvalidBatchError, match="duplicate ItemNum '1'"):
            parse_batch(body)

    @given(
        numbers=st.lists(st.integers(min_value=1, max_value=99999), max_size=30, unique=True)
    )
    @settings(max_examples=100, deadline=None)
    def test_valid_batches_parse_completely(self, numbers):
        """
        **Feature: mbs-vector-sync, Property 8: Malformed Batch Rejection**

        *For any* batch of well-formed items with unique numbers, every item
        is parsed and none is dropped.
        """
        body = {BATCH_ITEMS_KEY: [_raw_item(str(n)) for n in numbers]}

        items = parse_batch(body)

        assert [item.item_num for item in items] == [str(n) for n in numbers]

    @given(
        numbers=st.lists(st.integers(min_value=1, max_value=99999), min_size=1, max_size=20, unique=True),
        data=st.data(),
    )
    @settings(max_examples=100, deadline=None)
    def test_one_bad_item_rejects_any_batch(self, numbers, data):
        """
        **Feature: mbs-vector-sync, Property 8: Malformed Batch Rejection**

        *For any* batch, removing the description of a single item causes
        the whole batch to be rejected.
        """
        raw_items = [_raw_item(str(n)) for n in numbers]
        broken = data.draw(st.integers(min_value=0, max_value=len(raw_items) - 1))
        del raw_items[broken]["Description"]

        with pytest.raises(InvalidBatchError):
            parse_batch({BATCH_ITEMS_KEY: raw_items})


class TestLoadBatchFile:
    """Test loading batches from disk."""

    def test_loads_items(self, tmp_path):
        path = tmp_path / "mbs.json"
        path.write_text(json.dumps({BATCH_ITEMS_KEY: [SAMPLE_ITEM]}), encoding="utf-8")

        items = load_batch_file(path)

        assert len(items) == 1
        assert items[0].item_num == "23"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_batch_file(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(InvalidBatchError, match="Invalid JSON"):
            load_batch_file(path)

    def test_empty_batch_is_rejected(self, tmp_path):
        path = tmp_path / "empty.json"
        path.write_text(json.dumps({BATCH_ITEMS_KEY: []}), encoding="utf-8")

        with pytest.raises(InvalidBatchError, match="No MBS items"):
            load_batch_file(path)
