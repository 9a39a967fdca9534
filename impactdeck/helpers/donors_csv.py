from __future__ import annotations

import csv
import io
import re
from dataclasses import asdict, dataclass
from typing import Dict, List, Optional, Sequence

from impactdeck.helpers.slugs import donor_slug

MAX_DONORS = 500

NAME_HEADERS = ("name", "donor_name", "full_name")
EMAIL_HEADERS = ("email", "donor_email")
AMOUNT_HEADERS = ("amount", "donation_amount", "gift_amount")

# Leading characters a spreadsheet would evaluate as a formula
_FORMULA_PREFIX = re.compile(r"^[=+\-@\t\r]")


class DonorCSVError(ValueError):
    """User-facing problem with an uploaded donor list."""


@dataclass(frozen=True)
class DonorRow:
    name: str
    email: Optional[str] = None
    amount: Optional[str] = None
    slug: str = ""

    def to_dict(self) -> Dict[str, Optional[str]]:
        return asdict(self)


def sanitize_field(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    return _FORMULA_PREFIX.sub("", value, count=1) or None


def _find_column(headers: Sequence[str], candidates: Sequence[str]) -> Optional[int]:
    for i, h in enumerate(headers):
        if h in candidates:
            return i
    return None


def _cell(row: Sequence[str], idx: Optional[int]) -> Optional[str]:
    if idx is None or idx >= len(row):
        return None
    return sanitize_field(row[idx].strip())


def parse_donor_csv(text: str, max_donors: int = MAX_DONORS) -> List[DonorRow]:
    """
    Parse a donor list. Requires a name column; email and amount are optional.
    Raises DonorCSVError with a message safe to show to the uploader.
    """
    rows = [r for r in csv.reader(io.StringIO(text or "")) if any(c.strip() for c in r)]
    if len(rows) < 2:
        raise DonorCSVError("CSV must have at least one data row")

    headers = [h.strip().lower() for h in rows[0]]
    name_idx = _find_column(headers, NAME_HEADERS)
    if name_idx is None:
        raise DonorCSVError('CSV must have a "name" column')
    email_idx = _find_column(headers, EMAIL_HEADERS)
    amount_idx = _find_column(headers, AMOUNT_HEADERS)

    donors: List[DonorRow] = []
    for row in rows[1:]:
        name = _cell(row, name_idx)
        if not name:
            continue
        donors.append(
            DonorRow(
                name=name,
                email=_cell(row, email_idx),
                amount=_cell(row, amount_idx),
                slug=donor_slug(name),
            )
        )

    if not donors:
        raise DonorCSVError("No valid donors found in CSV")
    if len(donors) > max_donors:
        raise DonorCSVError(f"Maximum {max_donors} donors per upload")
    return donors
