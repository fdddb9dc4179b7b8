import json
import logging
import os

from blockchain import Blockchain
from database import load_roster, register_roster, save_tally, tally_frame
from election import Election

logger = logging.getLogger(__name__)

# --- CONFIGURATION ---
CONFIG_PATH = 'election_config.json'
DEFAULT_CONFIG = {
    "chain_path": "blockchain_data.json",
    "roster_path": "voters.csv",
    "tally_path": "tally.csv",
    "lock_candidates_on_open": False,
    "log_level": "INFO"
}


# --- PERSISTENT STATE MANAGEMENT ---
def load_config(path=CONFIG_PATH):
    data = dict(DEFAULT_CONFIG)
    if os.path.exists(path):
        with open(path, 'r') as f:
            data.update(json.load(f))
    return data


def save_config(config, path=CONFIG_PATH):
    with open(path, 'w') as f:
        json.dump(config, f, indent=4)


def configure_logging(level="INFO"):
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )


# --- INITIALIZATION ---
def open_election(admin, config=None):
    """Load (or start) the ledger and the election state replayed from it.

    `admin` is only used when no ledger file exists yet; an existing chain
    keeps the administrator recorded in its genesis block.
    """
    config = config or load_config()
    chain = Blockchain(admin, config["chain_path"])
    election = Election.from_ledger(
        chain, lock_candidates_on_open=config["lock_candidates_on_open"]
    )
    chain.attach(election)
    logger.info("Election opened with administrator %s (%d blocks)", election.admin, len(chain.chain))
    return election, chain


def import_roster(election, caller, config):
    roster = load_roster(config["roster_path"])
    skipped = register_roster(election, caller, roster)
    return len(roster) - len(skipped)


def export_tally(election, config):
    df = tally_frame(election.get_all_candidates())
    save_tally(df, config["tally_path"])
    return df
