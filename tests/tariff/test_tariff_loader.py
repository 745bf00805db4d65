import json
import logging

from taxotariff.storage import InMemoryKVStore, SQLiteKVStore
from taxotariff.tariff import TariffResolver, load_tariff_schedule


def test_loads_jsonl_export(tmp_path):
    export = tmp_path / "hts.jsonl"
    export.write_text(
        "\n".join(
            [
                json.dumps({"htsno": "6404.11", "description": "Sports footwear", "indent": 1}),
                json.dumps({"htsno": "6404.11.20", "description": "Tennis shoes", "indent": 2}),
                json.dumps({"htsno": "", "description": "Heading note", "indent": 0}),
                "",
            ]
        )
    )
    store = InMemoryKVStore()

    count = load_tariff_schedule(export, store)

    assert count == 2
    assert store.keys() == ["640411", "64041120"]
    assert json.loads(store.get("64041120"))["description"] == "Tennis shoes"


def test_loads_wrapped_json_array_into_sqlite(tmp_path):
    export = tmp_path / "hts.json"
    export.write_text(json.dumps({"results": [{"hsCode": "8471.30.01", "description": "Laptops"}]}))
    store = SQLiteKVStore(tmp_path / "tariff.db")

    assert load_tariff_schedule(export, store) == 1

    assert store.get("84713001") is not None
    assert json.loads(TariffResolver(store).resolve("8471300100"))["description"] == "Laptops"
    store.close()


def test_heading_and_zero_padded_subheading_stay_distinct(tmp_path):
    export = tmp_path / "hts.jsonl"
    export.write_text(
        "\n".join(
            [
                json.dumps({"htsno": "0101.30", "description": "Asses"}),
                json.dumps({"htsno": "0101.30.00", "description": "Asses, other"}),
            ]
        )
    )
    store = InMemoryKVStore()

    count = load_tariff_schedule(export, store)

    assert count == 2
    assert store.keys() == ["010130", "01013000"]
    assert json.loads(store.get("010130"))["description"] == "Asses"
    assert json.loads(store.get("01013000"))["description"] == "Asses, other"


def test_duplicate_codes_are_reported_and_counted_once(tmp_path, caplog):
    export = tmp_path / "hts.jsonl"
    export.write_text(
        "\n".join(
            [
                json.dumps({"htsno": "6404.11.20", "description": "first"}),
                json.dumps({"hsCode": "6404112", "description": "other"}),
                json.dumps({"hsCode": "64041120", "description": "second"}),
            ]
        )
    )
    store = InMemoryKVStore()

    with caplog.at_level(logging.WARNING, logger="taxotariff.tariff.loader"):
        count = load_tariff_schedule(export, store)

    assert count == len(store.keys()) == 2
    assert json.loads(store.get("64041120"))["description"] == "second"
    duplicates = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert len(duplicates) == 1
    assert "64041120" in duplicates[0].getMessage()
