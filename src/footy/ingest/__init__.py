"""Input adapters that normalize registration and beef data."""

from .roster import (
    RegistrationRow,
    RosterReport,
    beef_rows_to_relations,
    load_beef_csv,
    load_candidates_csv,
    load_roster_csv,
    rows_to_candidates,
)

__all__ = [
    "RegistrationRow",
    "RosterReport",
    "beef_rows_to_relations",
    "load_beef_csv",
    "load_candidates_csv",
    "load_roster_csv",
    "rows_to_candidates",
]
