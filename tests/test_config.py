from dataclasses import replace
from datetime import date

import pytest

import config as config_module
from config import ConfigCache, default_config
from models import DeliveryTier
from sheetCredential import config_to_rows, parse_to_config

SHEET = {
    "tiers": [
        ["1", "Express", "2", "3", "TRUE", "green"],
        ["2", "Standard", "3", "4", "true", ""],
        ["3", "Economy", "4", "6", "FALSE"],
        ["", "", "", ""],
    ],
    "rules": [
        ["r1", "district", "Howrah", "1", "TRUE"],
        ["r2", "City", "Durgapur", "2"],
    ],
    "settings": [
        ["enable_weekend_adjustment", "TRUE"],
        ["weekend_extra_days", "2"],
        ["enable_holiday_adjustment", "no"],
        ["default_tier", "2"],
        ["restrict_to_state", "West Bengal"],
        ["express_delivery_fee", "12.5"],
        ["ignored"],
    ],
    "holidays": [["h1", "Diwali", "2025-10-20", "TRUE"]],
}


def test_parse_sheet_rows():
    snapshot = parse_to_config(SHEET)

    assert [t.id for t in snapshot.tiers] == [1, 2, 3]
    assert snapshot.get_tier(2).color == "gray"
    assert snapshot.get_tier(3).is_active is False
    assert snapshot.rules[0].value == "howrah"
    assert snapshot.rules[1].type == "city"
    assert snapshot.rules[1].is_active is True
    assert snapshot.settings.enable_holiday_adjustment is False
    assert snapshot.settings.default_tier == 2
    assert snapshot.settings.express_delivery_fee == 12.5
    assert snapshot.holidays[0].date == date(2025, 10, 20)


def test_rows_parse_back_to_the_same_snapshot():
    snapshot = default_config()
    rows = config_to_rows(snapshot)
    assert rows["tiers"][0] == ["id", "name", "min_days", "max_days", "is_active", "color"]
    assert parse_to_config({name: values[1:] for name, values in rows.items()}) == snapshot


def test_default_config_is_valid():
    assert ConfigCache.validate_config(default_config()) == (True, None)


@pytest.mark.parametrize("mutate", [
    lambda c: replace(c, tiers=()),
    lambda c: replace(c, tiers=tuple(replace(t, is_active=False) for t in c.tiers)),
    lambda c: replace(c, tiers=c.tiers + (DeliveryTier(id=1, name="Dup", min_days=1, max_days=1),)),
    lambda c: replace(c, settings=replace(c.settings, default_tier=42)),
    lambda c: replace(c, settings=replace(c.settings, timezone="Nowhere/Land")),
])
def test_invalid_snapshots_are_rejected(mutate):
    valid, error = ConfigCache.validate_config(mutate(default_config()))
    assert not valid
    assert error


def test_built_in_config_when_no_sheet():
    assert ConfigCache.get_config() == default_config()
    assert ConfigCache.get_cache_info()["source"] == "built_in"


def test_sheet_config_is_fetched_and_stale_cache_served_on_failure(monkeypatch):
    monkeypatch.setenv("SHEET_ID", "sheet")
    monkeypatch.setenv("GOOGLE_CREDENTIALS_JSON", "{}")
    monkeypatch.setattr(config_module, "get_sheet_data", lambda: SHEET)

    fetched = ConfigCache.get_config(force_refresh=True)
    assert fetched.settings.default_tier == 2

    def broken():
        raise ConnectionError("sheet unavailable")

    monkeypatch.setattr(config_module, "get_sheet_data", broken)
    assert ConfigCache.get_config(force_refresh=True) is fetched


def test_sheet_failure_without_cache_raises(monkeypatch):
    monkeypatch.setenv("SHEET_ID", "sheet")
    monkeypatch.setenv("GOOGLE_CREDENTIALS_JSON", "{}")
    monkeypatch.setattr(config_module, "get_sheet_data", lambda: {})

    with pytest.raises(ValueError):
        ConfigCache.get_config()


def test_save_config_writes_through_to_sheet(monkeypatch):
    monkeypatch.setenv("SHEET_ID", "sheet")
    monkeypatch.setenv("GOOGLE_CREDENTIALS_JSON", "{}")
    written = []
    monkeypatch.setattr(config_module, "put_sheet_data", written.append)

    snapshot = default_config()
    ConfigCache.save_config(snapshot)

    assert written == [config_to_rows(snapshot)]
    assert ConfigCache.get_config() is snapshot


def test_save_config_rejects_invalid_snapshot():
    with pytest.raises(ValueError):
        ConfigCache.save_config(replace(default_config(), tiers=()))


def test_blank_rule_value_is_rejected():
    snapshot = parse_to_config({**SHEET, "rules": [["x", "city", "", "1", "TRUE"]] + SHEET["rules"]})
    valid, error = ConfigCache.validate_config(snapshot)
    assert not valid
    assert "blank" in error


class FakeWorksheet:
    def __init__(self, values):
        self.values = [list(row) for row in values]
        self.row_count = max(len(values), 1)
        self.col_count = max([len(row) for row in values] or [1])
        self.cleared = False

    def get_all_values(self):
        return [list(row) for row in self.values]

    def add_rows(self, count):
        self.row_count += count

    def add_cols(self, count):
        self.col_count += count

    def clear(self):
        self.cleared = True
        self.values = []


class FakeSpreadsheet:
    def __init__(self, rows_by_sheet, fail_batch=False):
        self.worksheets = {name: FakeWorksheet(rows) for name, rows in rows_by_sheet.items()}
        self.fail_batch = fail_batch
        self.batches = []

    def worksheet(self, name):
        return self.worksheets[name]

    def values_batch_update(self, body):
        self.batches.append(body)
        if self.fail_batch:
            raise ConnectionError("quota exceeded")
        for value_range in body["data"]:
            name = value_range["range"].split("!")[0].strip("'")
            self.worksheets[name].values = [list(row) for row in value_range["values"]]


def _smaller_snapshot():
    snapshot = default_config()
    return replace(
        snapshot,
        tiers=snapshot.tiers[:2],
        rules=tuple(r for r in snapshot.rules if r.tier != 3),
        settings=replace(snapshot.settings, default_tier=2),
    )


def _read_back(spreadsheet):
    return parse_to_config({
        name: ws.get_all_values()[1:] for name, ws in spreadsheet.worksheets.items()
    })


def test_failed_sheet_write_leaves_previous_configuration(monkeypatch):
    import sheetCredential

    spreadsheet = FakeSpreadsheet(config_to_rows(default_config()), fail_batch=True)
    monkeypatch.setattr(sheetCredential, "_open_spreadsheet", lambda: spreadsheet)

    with pytest.raises(ConnectionError):
        sheetCredential.put_sheet_data(config_to_rows(_smaller_snapshot()))

    assert len(spreadsheet.batches) == 1
    assert not any(ws.cleared for ws in spreadsheet.worksheets.values())
    assert _read_back(spreadsheet) == default_config()
    assert ConfigCache.validate_config(_read_back(spreadsheet)) == (True, None)


def test_sheet_write_pads_leftover_rows_with_blanks(monkeypatch):
    import sheetCredential

    spreadsheet = FakeSpreadsheet(config_to_rows(default_config()))
    monkeypatch.setattr(sheetCredential, "_open_spreadsheet", lambda: spreadsheet)

    smaller = _smaller_snapshot()
    sheetCredential.put_sheet_data(config_to_rows(smaller))

    tiers_rows = spreadsheet.worksheets["tiers"].values
    assert len(tiers_rows) == 4
    assert tiers_rows[-1] == [""] * 6
    assert _read_back(spreadsheet) == smaller


def test_failed_save_keeps_cached_config(monkeypatch):
    monkeypatch.setenv("SHEET_ID", "sheet")
    monkeypatch.setenv("GOOGLE_CREDENTIALS_JSON", "{}")
    monkeypatch.setattr(config_module, "get_sheet_data", lambda: {
        name: rows[1:] for name, rows in config_to_rows(default_config()).items()
    })

    def broken(rows):
        raise ConnectionError("quota exceeded")

    monkeypatch.setattr(config_module, "put_sheet_data", broken)

    before = ConfigCache.get_config()
    with pytest.raises(ConnectionError):
        ConfigCache.save_config(_smaller_snapshot())
    assert ConfigCache.get_config() is before


def test_sheet_with_blank_rule_value_is_not_loaded(monkeypatch):
    monkeypatch.setenv("SHEET_ID", "sheet")
    monkeypatch.setenv("GOOGLE_CREDENTIALS_JSON", "{}")
    monkeypatch.setattr(config_module, "get_sheet_data", lambda: {
        **SHEET, "rules": SHEET["rules"] + [["x", "city", "  ", "1", "TRUE"]]
    })

    with pytest.raises(ValueError, match="blank value"):
        ConfigCache.get_config()
