import hashlib
import inspect
import json
import logging
import os
import threading
import time

from election import SUBMITTABLE_OPERATIONS
from errors import InvalidSignature, LedgerCorrupted
from wallet import caller_of

logger = logging.getLogger(__name__)

GENESIS = "Genesis"


class Block:
    def __init__(self, index, timestamp, previous_hash, transactions, hash=None):
        self.index = index
        self.timestamp = timestamp
        self.transactions = transactions
        self.previous_hash = previous_hash
        self.hash = hash or self.calculate_hash()

    def calculate_hash(self):
        content = json.dumps({
            'index': self.index,
            'timestamp': self.timestamp,
            'transactions': self.transactions,
            'previous_hash': self.previous_hash
        }, sort_keys=True).encode()
        return hashlib.sha256(content).hexdigest()

    def to_dict(self):
        return {
            'index': self.index,
            'timestamp': self.timestamp,
            'transactions': self.transactions,
            'previous_hash': self.previous_hash,
            'hash': self.hash
        }


class Blockchain:
    """Append-only, hash-linked log of election operations.

    Each operation is mined into its own block and written to disk before
    the election applies it. The genesis block records the administrator so
    the election can be rebuilt from the chain alone. With `filename=None`
    the chain lives only in memory.
    """
    def __init__(self, admin=None, filename='blockchain_data.json'):
        self.filename = filename
        self.chain = []
        self.pending_transactions = []
        self._seen_signatures = set()
        self._attached = []
        self._submit_lock = threading.Lock()
        # signature of the signed call being dispatched on this thread
        self._call = threading.local()
        if self.filename and os.path.exists(self.filename):
            self.load_chain()
        else:
            if admin is None:
                raise ValueError("An administrator address is required to start a new chain")
            self.create_genesis_block(admin)

    @staticmethod
    def timestamp():
        return int(time.time())

    @property
    def admin(self):
        return self.chain[0].transactions[0]['payload']['admin']

    def create_genesis_block(self, admin):
        genesis_tx = {'event': GENESIS, 'payload': {'admin': admin}, 'timestamp': self.timestamp()}
        genesis_block = Block(0, time.time(), "0", [genesis_tx])
        self.chain = [genesis_block]
        self.save_chain()

    def new_transaction(self, event, payload):
        tx = {
            'event': event,
            'payload': payload,
            'timestamp': self.timestamp()
        }
        signature = getattr(self._call, 'signature', None)
        if signature:
            tx['signature'] = signature
        self.pending_transactions.append(tx)

    def mine_block(self):
        if not self.pending_transactions:
            return False

        new_block = Block(
            index=len(self.chain),
            timestamp=time.time(),
            previous_hash=self.chain[-1].hash,
            transactions=self.pending_transactions
        )
        self.chain.append(new_block)
        try:
            self.save_chain()
        except (OSError, TypeError, ValueError):
            self.chain.pop()
            raise
        self.pending_transactions = []
        return True

    def record(self, event, payload):
        """Observer callback: write one checked election event as a block."""
        self.new_transaction(event, payload)
        try:
            self.mine_block()
        finally:
            self.pending_transactions = []

    def attach(self, election):
        election.subscribe(self.record)
        self._attached.append(election)

    def detach(self, election):
        election.unsubscribe(self.record)
        self._attached.remove(election)

    def transactions(self):
        """Yield every recorded election transaction after genesis, in order."""
        for block in self.chain[1:]:
            yield from block.transactions

    def is_valid(self):
        if not self.chain:
            return False
        genesis = self.chain[0]
        if genesis.index != 0 or genesis.previous_hash != "0" or genesis.hash != genesis.calculate_hash():
            return False
        if not genesis.transactions or genesis.transactions[0].get('event') != GENESIS:
            return False
        for prev, block in zip(self.chain, self.chain[1:]):
            if block.index != prev.index + 1:
                return False
            if block.previous_hash != prev.hash:
                return False
            if block.hash != block.calculate_hash():
                return False
        return True

    def submit(self, election, call):
        """Verify a signed call and run it against `election` as its signer.

        A signature is spent once its call succeeds; spent signatures are
        stored with their transaction, so they stay spent across restarts.
        """
        caller = caller_of(call)
        signature = call['signature']
        operation = call['operation']
        if operation not in SUBMITTABLE_OPERATIONS:
            raise ValueError(f"Unknown operation {operation!r}")
        method = getattr(election, operation)
        args = call['args']
        if not isinstance(args, dict):
            raise ValueError(f"Arguments for {operation} must be a mapping")
        try:
            inspect.signature(method).bind(caller, **args)
        except TypeError as exc:
            raise ValueError(f"Bad arguments for {operation}: {exc}") from exc
        with self._submit_lock:
            if signature in self._seen_signatures:
                raise InvalidSignature("Call already submitted")
            self._call.signature = signature
            try:
                result = method(caller, **args)
            finally:
                self._call.signature = None
            self._seen_signatures.add(signature)
        return result

    def save_chain(self):
        if not self.filename:
            return
        # write-then-rename so a failed write never truncates the ledger
        tmp_path = f"{self.filename}.tmp"
        with open(tmp_path, 'w') as f:
            json.dump([b.to_dict() for b in self.chain], f, indent=4)
        os.replace(tmp_path, self.filename)
        logger.debug("Saved %d blocks to %s", len(self.chain), self.filename)

    def load_chain(self):
        try:
            with open(self.filename, 'r') as f:
                data = json.load(f)
            self.chain = [Block(**d) for d in data]
        except (json.JSONDecodeError, TypeError) as exc:
            raise LedgerCorrupted(f"Cannot read ledger file {self.filename}") from exc
        self._seen_signatures = {tx['signature'] for tx in self.transactions() if tx.get('signature')}
        logger.debug("Loaded %d blocks from %s", len(self.chain), self.filename)

    def reset_chain(self, admin=None):
        if self._attached:
            raise RuntimeError("Detach every election before resetting the ledger")
        admin = admin or self.admin
        if self.filename and os.path.exists(self.filename):
            os.remove(self.filename)
        self.chain = []
        self.pending_transactions = []
        self._seen_signatures = set()
        self.create_genesis_block(admin)
