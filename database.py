import logging
import os

import pandas as pd

from data_models import DEFAULT_WEIGHT
from errors import AlreadyRegistered, InvalidWeight, Unauthorized

logger = logging.getLogger(__name__)

ROSTER_COLUMNS = ['address', 'weight']
TALLY_COLUMNS = ['index', 'name', 'party_symbol', 'vote_count']


def initialize_roster_df():
    return pd.DataFrame(columns=ROSTER_COLUMNS)


def invalid_weight_addresses(roster):
    """Addresses whose weight is missing, fractional, non-numeric or below one."""
    weights = pd.to_numeric(roster['weight'], errors='coerce')
    bad = weights.isna() | (weights % 1 != 0) | (weights < 1)
    return roster.loc[bad, 'address'].tolist()


def load_roster(db_path):
    """Read the eligible-voter roster CSV (address, optional weight).

    Blank weights default to 1; any other weight that is not a positive
    whole number rejects the whole file with InvalidWeight.
    """
    if not os.path.exists(db_path):
        return initialize_roster_df()
    df = pd.read_csv(db_path, dtype={'address': str})
    if 'address' not in df.columns:
        raise ValueError(f"Roster {db_path} has no 'address' column")
    if 'weight' not in df.columns:
        df['weight'] = DEFAULT_WEIGHT
    df['weight'] = df['weight'].fillna(DEFAULT_WEIGHT)
    df['address'] = df['address'].str.strip()
    bad = invalid_weight_addresses(df)
    if bad:
        raise InvalidWeight(f"Roster {db_path} has invalid weights for {', '.join(map(str, bad))}")
    df['weight'] = pd.to_numeric(df['weight']).astype(int)
    return df[ROSTER_COLUMNS]


def save_roster(df, db_path):
    df.to_csv(db_path, index=False)


def register_roster(election, caller, roster):
    """Register every roster row; returns the addresses already on the register.

    The caller and every weight are checked before the first registration,
    so a bad roster registers nobody. Rows already on the register are
    skipped, not rejected. A ledger write failure still stops the import
    part-way, with the earlier rows registered.
    """
    if caller != election.admin:
        raise Unauthorized()
    bad = invalid_weight_addresses(roster)
    if bad:
        raise InvalidWeight(f"Invalid roster weights for {', '.join(map(str, bad))}")
    skipped = []
    for row in roster.itertuples(index=False):
        try:
            election.register_voter(caller, row.address, int(row.weight))
        except AlreadyRegistered:
            skipped.append(row.address)
    if skipped:
        logger.warning("Skipped %d already registered roster entries", len(skipped))
    return skipped


def tally_frame(candidates):
    rows = [c.to_dict() for c in candidates]
    df = pd.DataFrame(rows, columns=TALLY_COLUMNS)
    return df.sort_values('index').reset_index(drop=True)


def save_tally(df, db_path):
    df.to_csv(db_path, index=False)
