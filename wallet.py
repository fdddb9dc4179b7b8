import binascii
import hashlib
import json
import secrets

import ecdsa
from ecdsa.errors import MalformedPointError

from errors import InvalidSignature

_KEY_ERRORS = (binascii.Error, ValueError, MalformedPointError)


def generate_key_pair():
    # Generate SECP256k1 keys (Bitcoin standard)
    sk = ecdsa.SigningKey.generate(curve=ecdsa.SECP256k1)
    pk = sk.get_verifying_key()
    return (
        binascii.hexlify(sk.to_string()).decode(),
        binascii.hexlify(pk.to_string()).decode()
    )


def public_key_of(private_key_hex):
    sk = ecdsa.SigningKey.from_string(binascii.unhexlify(private_key_hex), curve=ecdsa.SECP256k1)
    return binascii.hexlify(sk.get_verifying_key().to_string()).decode()


def address_from_public_key(public_key_hex):
    """Opaque voter/admin address: 0x + last 20 bytes of sha256(public key)."""
    digest = hashlib.sha256(binascii.unhexlify(public_key_hex)).hexdigest()
    return "0x" + digest[-40:]


def sign_transaction(private_key_hex, message):
    try:
        sk_bytes = binascii.unhexlify(private_key_hex)
        sk = ecdsa.SigningKey.from_string(sk_bytes, curve=ecdsa.SECP256k1)
    except _KEY_ERRORS as exc:
        raise InvalidSignature("Malformed private key") from exc
    signature = sk.sign(message.encode())
    return binascii.hexlify(signature).decode()


def verify_signature(public_key_hex, message, signature_hex):
    try:
        pk_bytes = binascii.unhexlify(public_key_hex)
        sig_bytes = binascii.unhexlify(signature_hex)
        pk = ecdsa.VerifyingKey.from_string(pk_bytes, curve=ecdsa.SECP256k1)
        return pk.verify(sig_bytes, message.encode())
    except ecdsa.BadSignatureError:
        return False
    except _KEY_ERRORS:
        return False


def _call_message(operation, args, nonce):
    return json.dumps({'operation': operation, 'args': args, 'nonce': nonce}, sort_keys=True)


def sign_call(private_key_hex, operation, **args):
    """Build a signed envelope asking the ledger to run `operation(**args)`."""
    nonce = secrets.token_hex(8)
    return {
        'public_key': public_key_of(private_key_hex),
        'operation': operation,
        'args': args,
        'nonce': nonce,
        'signature': sign_transaction(private_key_hex, _call_message(operation, args, nonce))
    }


def caller_of(call):
    """Verify a signed call and return the address that signed it."""
    try:
        public_key = call['public_key']
        message = _call_message(call['operation'], call['args'], call['nonce'])
        signature = call['signature']
    except (KeyError, TypeError) as exc:
        raise InvalidSignature("Malformed call envelope") from exc
    if not verify_signature(public_key, message, signature):
        raise InvalidSignature()
    return address_from_public_key(public_key)
