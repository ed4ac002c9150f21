import gspread
from google.oauth2.service_account import Credentials
from dotenv import load_dotenv
from datetime import datetime
import os
import json

from models import ConfigSnapshot, DeliverySettings, DeliveryTier, Holiday, LocationRule

load_dotenv()

TIERS_SHEET = "tiers"
RULES_SHEET = "rules"
SETTINGS_SHEET = "settings"
HOLIDAYS_SHEET = "holidays"

TIER_HEADER = ["id", "name", "min_days", "max_days", "is_active", "color"]
RULE_HEADER = ["id", "type", "value", "tier", "is_active"]
HOLIDAY_HEADER = ["id", "name", "date", "is_active"]

BOOL_SETTINGS = {
    "enable_weekend_adjustment", "enable_holiday_adjustment",
    "enable_express_delivery", "enable_cod",
}
INT_SETTINGS = {"weekend_extra_days", "holiday_extra_days", "default_tier"}
FLOAT_SETTINGS = {
    "free_delivery_threshold", "standard_delivery_fee",
    "express_delivery_fee", "cod_fee", "max_cod_amount",
}


def _open_spreadsheet():
    creds_dict = json.loads(os.getenv('GOOGLE_CREDENTIALS_JSON'))
    scopes = ["https://www.googleapis.com/auth/spreadsheets"]
    creds = Credentials.from_service_account_info(creds_dict, scopes=scopes)

    client = gspread.authorize(creds)
    return client.open_by_key(os.getenv('SHEET_ID'))


def get_sheet_data():
    """Fetch every configuration worksheet (header rows dropped)"""
    sheet = _open_spreadsheet()
    return {
        name: sheet.worksheet(name).get_all_values()[1:]
        for name in (TIERS_SHEET, RULES_SHEET, SETTINGS_SHEET, HOLIDAYS_SHEET)
    }


def padded_ranges(rows_by_sheet, existing_by_sheet):
    """
    Build one value range per worksheet, padded with blanks so rows and
    cells left over from the previous contents are overwritten
    """
    data = []
    for name, rows in rows_by_sheet.items():
        existing = existing_by_sheet.get(name, [])
        width = max([len(row) for row in list(rows) + list(existing)] or [1])
        height = max(len(rows), len(existing))
        values = [list(row) + [""] * (width - len(row)) for row in rows]
        values += [[""] * width for _ in range(height - len(rows))]
        data.append({"range": f"'{name}'!A1", "values": values})
    return data


def put_sheet_data(rows_by_sheet):
    """
    Overwrite the configuration worksheets with the given rows

    All worksheets are written in a single batch request, so a failed save
    leaves the previous configuration in place.
    """
    sheet = _open_spreadsheet()
    worksheets = {name: sheet.worksheet(name) for name in rows_by_sheet}
    existing_by_sheet = {name: ws.get_all_values() for name, ws in worksheets.items()}
    data = padded_ranges(rows_by_sheet, existing_by_sheet)

    # Grow the grid first; only blank cells are added
    for name, value_range in zip(rows_by_sheet, data):
        worksheet = worksheets[name]
        height = len(value_range["values"])
        width = len(value_range["values"][0]) if height else 0
        if height > worksheet.row_count:
            worksheet.add_rows(height - worksheet.row_count)
        if width > worksheet.col_count:
            worksheet.add_cols(width - worksheet.col_count)

    sheet.values_batch_update({"valueInputOption": "RAW", "data": data})


def _parse_bool(value):
    return value.strip().lower() in ("true", "yes", "1", "y")


def parse_to_config(values_by_sheet):
    """Parse sheet data to a configuration snapshot"""
    tiers = []
    for row in values_by_sheet.get(TIERS_SHEET, []):
        if len(row) < 4 or not row[0].strip():
            continue
        tiers.append(DeliveryTier(
            id=int(row[0]),
            name=row[1].strip(),
            min_days=int(row[2]),
            max_days=int(row[3]),
            is_active=_parse_bool(row[4]) if len(row) > 4 else True,
            color=row[5].strip().lower() if len(row) > 5 and row[5].strip() else "gray",
        ))

    rules = []
    for row in values_by_sheet.get(RULES_SHEET, []):
        if len(row) < 4 or not row[0].strip():
            continue
        rules.append(LocationRule(
            id=row[0].strip(),
            type=row[1].strip().lower(),
            value=row[2].strip().lower(),
            tier=int(row[3]),
            is_active=_parse_bool(row[4]) if len(row) > 4 else True,
        ))

    settings = {}
    for row in values_by_sheet.get(SETTINGS_SHEET, []):
        if len(row) < 2:
            continue

        key, value = row[0].strip(), row[1].strip()

        if key in BOOL_SETTINGS:
            settings[key] = _parse_bool(value)
        elif key in INT_SETTINGS:
            settings[key] = int(value)
        elif key in FLOAT_SETTINGS:
            settings[key] = float(value)
        elif key in ("restrict_to_state", "timezone"):
            settings[key] = value

    holidays = []
    for row in values_by_sheet.get(HOLIDAYS_SHEET, []):
        if len(row) < 3 or not row[0].strip():
            continue
        holidays.append(Holiday(
            id=row[0].strip(),
            name=row[1].strip(),
            date=datetime.strptime(row[2].strip(), '%Y-%m-%d').date(),
            is_active=_parse_bool(row[3]) if len(row) > 3 else True,
        ))

    return ConfigSnapshot(
        tiers=tuple(tiers),
        rules=tuple(rules),
        settings=DeliverySettings(**settings),
        holidays=tuple(holidays),
    )


def config_to_rows(snapshot):
    """Serialize a configuration snapshot to worksheet rows (with headers)"""
    settings = snapshot.settings
    return {
        TIERS_SHEET: [TIER_HEADER] + [
            [str(t.id), t.name, str(t.min_days), str(t.max_days), str(t.is_active).upper(), t.color]
            for t in snapshot.tiers
        ],
        RULES_SHEET: [RULE_HEADER] + [
            [r.id, r.type, r.value, str(r.tier), str(r.is_active).upper()]
            for r in snapshot.rules
        ],
        SETTINGS_SHEET: [["key", "value"]] + [
            [key, str(value).upper() if isinstance(value, bool) else str(value)]
            for key, value in vars(settings).items()
        ],
        HOLIDAYS_SHEET: [HOLIDAY_HEADER] + [
            [h.id, h.name, h.date.isoformat(), str(h.is_active).upper()]
            for h in snapshot.holidays
        ],
    }
