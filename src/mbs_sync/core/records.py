"""
MBS item records.

Defines the MBSItem record delivered by the inbound batch (JSON file or HTTP
body), batch parsing with whole-batch validation, and the mapping from a
record to the payload stored alongside its vector.
"""

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# Name of the list holding the records in an inbound batch
BATCH_ITEMS_KEY = "MBS_Items"


class InvalidBatchError(ValueError):
    """Raised when an inbound batch is malformed and must be rejected as a whole."""

    pass


@dataclass
class MBSItem:
    """A single Medicare Benefits Schedule item."""

    item_num: str
    description: str

    # Flags
    new_item: bool = False
    item_change: bool = False
    fee_change: bool = False
    benefit_change: bool = False
    anaes_change: bool = False
    emsn_change: bool = False
    descriptor_change: bool = False
    anaes: bool = False

    # Dates (kept as the source strings)
    item_start_date: str = ""
    item_end_date: str = ""
    fee_start_date: str = ""
    benefit_start_date: str = ""
    description_start_date: str = ""
    emsn_start_date: str = ""
    emsn_end_date: str = ""
    qfe_start_date: str = ""
    qfe_end_date: str = ""
    derived_fee_start_date: str = ""
    emsn_change_date: str = ""

    # Amounts
    schedule_fee: float = 0.0
    derived_fee: float = 0.0
    benefit_75: float = 0.0
    benefit_85: float = 0.0
    benefit_100: float = 0.0
    emsn_percentage_cap: float = 0.0
    emsn_maximum_cap: float = 0.0
    emsn_fixed_cap_amount: float = 0.0
    emsn_cap: float = 0.0
    basic_units: int = 0

    # Classification
    category: str = ""
    group: str = ""
    sub_group: str = ""
    sub_heading: str = ""
    item_type: str = ""
    sub_item_num: str = ""
    benefit_type: str = ""
    fee_type: str = ""
    provider_type: str = ""
    emsn_description: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MBSItem":
        """
        Build an item from its source JSON object.

        Keys use the source schema names (``ItemNum``, ``Benefit100``...).
        Unknown keys are ignored and ``null`` values fall back to defaults.

        Raises:
            InvalidBatchError: If a required field is missing or empty, or a
                field has the wrong type.
        """
        if not isinstance(data, dict):
            raise InvalidBatchError(f"Expected an object, got {type(data).__name__}")

        values: dict[str, Any] = {}
        for source_key, attr_name, field_type in FIELD_SPECS:
            raw = data.get(source_key)
            if raw is None:
                continue
            values[attr_name] = _coerce(source_key, raw, field_type)

        for source_key, attr_name in (("ItemNum", "item_num"), ("Description", "description")):
            if not str(values.get(attr_name, "")).strip():
                raise InvalidBatchError(f"Missing required field '{source_key}'")

        return cls(**values)

    def embedding_text(self) -> str:
        """Text sent to the embedding provider for this item."""
        return f"MBS Item {self.item_num}: {self.description}"

    def to_payload(self) -> dict[str, Any]:
        """Return every record field keyed by its payload name."""
        return asdict(self)


# (source key, attribute / payload key, type)
FIELD_SPECS: tuple[tuple[str, str, type], ...] = (
    ("ItemNum", "item_num", str),
    ("Description", "description", str),
    ("NewItem", "new_item", bool),
    ("ItemChange", "item_change", bool),
    ("FeeChange", "fee_change", bool),
    ("BenefitChange", "benefit_change", bool),
    ("AnaesChange", "anaes_change", bool),
    ("EMSNChange", "emsn_change", bool),
    ("DescriptorChange", "descriptor_change", bool),
    ("Anaes", "anaes", bool),
    ("ItemStartDate", "item_start_date", str),
    ("ItemEndDate", "item_end_date", str),
    ("FeeStartDate", "fee_start_date", str),
    ("BenefitStartDate", "benefit_start_date", str),
    ("DescriptionStartDate", "description_start_date", str),
    ("EMSNStartDate", "emsn_start_date", str),
    ("EMSNEndDate", "emsn_end_date", str),
    ("QFEStartDate", "qfe_start_date", str),
    ("QFEEndDate", "qfe_end_date", str),
    ("DerivedFeeStartDate", "derived_fee_start_date", str),
    ("EMSNChangeDate", "emsn_change_date", str),
    ("ScheduleFee", "schedule_fee", float),
    ("DerivedFee", "derived_fee", float),
    ("Benefit75", "benefit_75", float),
    ("Benefit85", "benefit_85", float),
    ("Benefit100", "benefit_100", float),
    ("EMSNPercentageCap", "emsn_percentage_cap", float),
    ("EMSNMaximumCap", "emsn_maximum_cap", float),
    ("EMSNFixedCapAmount", "emsn_fixed_cap_amount", float),
    ("EMSNCap", "emsn_cap", float),
    ("BasicUnits", "basic_units", int),
    ("Category", "category", str),
    ("Group", "group", str),
    ("SubGroup", "sub_group", str),
    ("SubHeading", "sub_heading", str),
    ("ItemType", "item_type", str),
    ("SubItemNum", "sub_item_num", str),
    ("BenefitType", "benefit_type", str),
    ("FeeType", "fee_type", str),
    ("ProviderType", "provider_type", str),
    ("EMSNDescription", "emsn_description", str),
)


def _coerce(source_key: str, value: Any, field_type: type) -> Any:
    """Check a source value against its declared type and normalize it."""
    if field_type is bool:
        if isinstance(value, bool):
            return value
    elif field_type is float:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    elif field_type is int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
    elif field_type is str:
        if isinstance(value, str):
            try:
                value.encode("utf-8")
            except UnicodeEncodeError as e:
                raise InvalidBatchError(f"Field '{source_key}' is not valid UTF-8: {e}") from e
            return value
        # Item numbers are sometimes delivered as JSON numbers
        if source_key == "ItemNum" and isinstance(value, int) and not isinstance(value, bool):
            return str(value)

    raise InvalidBatchError(
        f"Field '{source_key}' must be of type {field_type.__name__}, "
        f"got {type(value).__name__}"
    )


def parse_batch(data: Any) -> list[MBSItem]:
    """
    Parse and validate an inbound batch.

    The batch is rejected as a whole if any item is malformed or if an
    item number appears more than once.

    Args:
        data: Decoded JSON body, expected to hold an ``MBS_Items`` list

    Returns:
        Parsed items in input order

    Raises:
        InvalidBatchError: If the batch or any item in it is malformed
    """
    if not isinstance(data, dict) or not isinstance(data.get(BATCH_ITEMS_KEY), list):
        raise InvalidBatchError(f"Batch must be an object with a '{BATCH_ITEMS_KEY}' list")

    items: list[MBSItem] = []
    seen: set[str] = set()
    for index, raw in enumerate(data[BATCH_ITEMS_KEY]):
        try:
            item = MBSItem.from_dict(raw)
        except InvalidBatchError as e:
            raise InvalidBatchError(f"Invalid item at index {index}: {e}") from e

        if item.item_num in seen:
            raise InvalidBatchError(
                f"Invalid item at index {index}: duplicate ItemNum '{item.item_num}'"
            )
        seen.add(item.item_num)
        items.append(item)

    return items


def load_batch_file(path: Path | str) -> list[MBSItem]:
    """
    Load a batch from a JSON file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        InvalidBatchError: If the content is not valid JSON, is malformed,
            or holds no items
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Batch file not found: {path}")

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise InvalidBatchError(f"Invalid JSON in {path}: {e}") from e

    items = parse_batch(data)
    if not items:
        raise InvalidBatchError(f"No MBS items found in {path}")

    logger.info(f"Loaded {len(items)} items from {path}")
    return items
