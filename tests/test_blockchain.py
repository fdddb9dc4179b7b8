import json

import pytest

from blockchain import Blockchain
from conftest import ADMIN, T0, VOTER_1
from election import Election
from errors import AlreadyVoted, InvalidSignature, InvalidWindow, LedgerCorrupted, Unauthorized
from wallet import address_from_public_key, generate_key_pair, sign_call


@pytest.fixture
def chain():
    return Blockchain(ADMIN, filename=None)


@pytest.fixture
def recorded(chain, clock):
    election = Election(chain.admin, clock=clock)
    chain.attach(election)
    election.add_candidate(ADMIN, "Imran Khan", "Bat")
    election.register_voter(ADMIN, VOTER_1)
    election.initialize_voting_period(ADMIN, T0, T0 + 3600)
    election.vote(VOTER_1, 0)
    return election


def test_genesis_records_admin(chain):
    assert len(chain.chain) == 1
    assert chain.admin == ADMIN
    assert chain.is_valid()


def test_new_chain_requires_admin():
    with pytest.raises(ValueError):
        Blockchain(filename=None)


def test_one_block_per_committed_operation(chain, recorded):
    with pytest.raises(AlreadyVoted):
        recorded.vote(VOTER_1, 0)
    assert len(chain.chain) == 5
    assert [tx['event'] for tx in chain.transactions()] == [
        "CandidateAdded", "VoterRegistered", "VotingPeriodInitialized", "VoteCast"
    ]
    assert chain.is_valid()


def test_tampering_is_detected(chain, recorded):
    chain.chain[4].transactions[0]['payload']['candidate_index'] = 1
    assert not chain.is_valid()


def test_relinking_is_detected(chain, recorded):
    del chain.chain[2]
    assert not chain.is_valid()


def test_replay_rebuilds_state(chain, recorded, clock):
    rebuilt = Election.from_ledger(chain, clock=clock)
    assert rebuilt.admin == ADMIN
    assert rebuilt.get_all_candidates() == recorded.get_all_candidates()
    assert rebuilt.get_voter_status(VOTER_1) == (True, True, 1)
    assert rebuilt.voting_window() == recorded.voting_window()
    with pytest.raises(AlreadyVoted):
        rebuilt.vote(VOTER_1, 0)


def test_replay_refuses_tampered_chain(chain, recorded):
    chain.chain[1].transactions[0]['payload']['name'] = "Someone Else"
    with pytest.raises(LedgerCorrupted):
        Election.from_ledger(chain)


def test_persistence_round_trip(tmp_path, clock):
    path = tmp_path / "chain.json"
    chain = Blockchain(ADMIN, filename=str(path))
    election = Election(chain.admin, clock=clock)
    chain.attach(election)
    election.add_candidate(ADMIN, "A", "a")

    reloaded = Blockchain(filename=str(path))
    assert reloaded.is_valid()
    assert reloaded.admin == ADMIN
    assert Election.from_ledger(reloaded, clock=clock).get_all_candidates()[0].name == "A"


def test_unreadable_ledger_file_is_reported(tmp_path):
    path = tmp_path / "chain.json"
    path.write_text("{not json")
    with pytest.raises(LedgerCorrupted):
        Blockchain(ADMIN, filename=str(path))


def test_reset_chain(tmp_path):
    path = tmp_path / "chain.json"
    chain = Blockchain(ADMIN, filename=str(path))
    chain.record("CandidateAdded", {'index': 0, 'name': "A", 'party_symbol': "a"})
    chain.reset_chain()
    assert len(chain.chain) == 1
    assert chain.admin == ADMIN
    assert len(json.loads(path.read_text())) == 1


def test_mine_block_without_pending_transactions(chain):
    assert chain.mine_block() is False


def test_submit_signed_calls(clock):
    admin_private, admin_public = generate_key_pair()
    voter_private, voter_public = generate_key_pair()
    admin = address_from_public_key(admin_public)
    voter = address_from_public_key(voter_public)

    chain = Blockchain(admin, filename=None)
    election = Election(admin, clock=clock)
    chain.attach(election)

    assert chain.submit(election, sign_call(admin_private, "add_candidate", name="A", party_symbol="a")) == 0
    chain.submit(election, sign_call(admin_private, "register_voter", address=voter))
    chain.submit(election, sign_call(admin_private, "initialize_voting_period", start=T0, end=T0 + 60))
    call = sign_call(voter_private, "vote", candidate_index=0)
    chain.submit(election, call)

    assert election.get_voter_status(voter) == (True, True, 1)
    assert election.get_all_candidates()[0].vote_count == 1

    with pytest.raises(InvalidSignature, match="already submitted"):
        chain.submit(election, call)
    with pytest.raises(Unauthorized):
        chain.submit(election, sign_call(voter_private, "add_candidate", name="B", party_symbol="b"))
    with pytest.raises(ValueError):
        chain.submit(election, sign_call(admin_private, "_apply", event="x", payload={}))


def test_failed_ledger_write_rejects_vote(tmp_path, clock, monkeypatch):
    path = tmp_path / "chain.json"
    chain = Blockchain(ADMIN, filename=str(path))
    election = Election(chain.admin, clock=clock)
    chain.attach(election)
    election.add_candidate(ADMIN, "A", "a")
    election.register_voter(ADMIN, VOTER_1)
    election.initialize_voting_period(ADMIN, T0, T0 + 3600)
    blocks = len(chain.chain)

    def disk_full():
        raise OSError("No space left on device")

    monkeypatch.setattr(chain, "save_chain", disk_full)
    with pytest.raises(OSError):
        election.vote(VOTER_1, 0)

    assert len(chain.chain) == blocks
    assert chain.pending_transactions == []
    assert election.get_voter_status(VOTER_1) == (True, False, 1)
    assert election.get_all_candidates()[0].vote_count == 0

    monkeypatch.undo()
    election.vote(VOTER_1, 0)
    reloaded = Election.from_ledger(Blockchain(filename=str(path)), clock=clock)
    assert reloaded.get_voter_status(VOTER_1) == (True, True, 1)


def test_signed_call_is_spent_across_restart(tmp_path, clock):
    admin_private, admin_public = generate_key_pair()
    admin = address_from_public_key(admin_public)
    path = tmp_path / "chain.json"

    chain = Blockchain(admin, filename=str(path))
    election = Election(admin, clock=clock)
    chain.attach(election)
    call = sign_call(admin_private, "add_candidate", name="A", party_symbol="a")
    chain.submit(election, call)

    reopened_chain = Blockchain(filename=str(path))
    reopened = Election.from_ledger(reopened_chain, clock=clock)
    reopened_chain.attach(reopened)
    with pytest.raises(InvalidSignature, match="already submitted"):
        reopened_chain.submit(reopened, call)
    assert [c.name for c in reopened.get_all_candidates()] == ["A"]


def test_rejected_signed_call_is_not_spent(clock):
    admin_private, admin_public = generate_key_pair()
    admin = address_from_public_key(admin_public)
    chain = Blockchain(admin, filename=None)
    election = Election(admin, clock=clock)
    chain.attach(election)

    call = sign_call(admin_private, "initialize_voting_period", start=T0 + 10, end=T0)
    with pytest.raises(InvalidWindow):
        chain.submit(election, call)
    assert len(chain.chain) == 1


@pytest.mark.parametrize("args", [
    {'caller': "0xsomeone", 'name': "A", 'party_symbol': "a"},
    {'name': "A"},
    {'name': "A", 'party_symbol': "a", 'colour': "red"},
])
def test_submit_rejects_bad_arguments(clock, args):
    admin_private, admin_public = generate_key_pair()
    admin = address_from_public_key(admin_public)
    chain = Blockchain(admin, filename=None)
    election = Election(admin, clock=clock)
    chain.attach(election)

    with pytest.raises(ValueError):
        chain.submit(election, sign_call(admin_private, "add_candidate", **args))
    assert election.get_all_candidates() == []


def test_reset_chain_refuses_attached_election(chain, recorded):
    with pytest.raises(RuntimeError):
        chain.reset_chain()
    assert len(chain.chain) == 5

    chain.detach(recorded)
    chain.reset_chain()
    assert len(chain.chain) == 1
