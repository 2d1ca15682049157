from typing import Iterable, List, Mapping, Sequence

COMPANY_FIELDS = ("name", "contact_person", "email", "location")
LABOR_FIELDS = ("name", "phone", "role")
PROJECT_FIELDS = ("name", "location")
INVOICE_FIELDS = ("invoice_number", "company_name")


def matches(record: Mapping, term: str, fields: Sequence[str]) -> bool:
    needle = term.lower()
    return any(needle in str(record.get(f) or "").lower() for f in fields)


def filter_records(records: Iterable[Mapping], term, fields: Sequence[str]) -> List:
    """Case-insensitive substring filter; an empty term keeps everything, whitespace is matched as typed."""
    records = list(records)
    if not term:
        return records
    return [r for r in records if matches(r, term, fields)]
