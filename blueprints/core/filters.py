from __future__ import annotations
from datetime import date, datetime

def fmt_datetime(value: datetime | None) -> str:
    if not value:
        return ""
    return value.strftime("%d.%m.%Y %H:%M")

def fmt_date(value: date | None) -> str:
    if not value:
        return ""
    return value.strftime("%d.%m.%Y")

def register_filters(app):
    app.add_template_filter(fmt_datetime, "fmt_datetime")
    app.add_template_filter(fmt_date, "fmt_date")
