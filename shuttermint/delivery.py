"""Checking and delivering transactions to the application state."""

from __future__ import annotations

import logging
from typing import Any, Callable, TypeVar

from shuttermint.dkg import DKGInstance
from shuttermint.messages import (
    AccusationMessage,
    ApologyMessage,
    BatchConfigMessage,
    BlockSeenMessage,
    CheckInMessage,
    DKGResultMessage,
    PolyCommitmentMessage,
    PolyEvalMessage,
    parse_accusation_msg,
    parse_apology_msg,
    parse_poly_commitment_msg,
    parse_poly_eval_msg,
    validate_address,
)
from shuttermint.state import ShutterApp
from shuttermint.types import (
    Address,
    BatchConfig,
    Event,
    MessageWithNonce,
    Response,
    ShutterAppError,
    new_validator_pubkey,
)
from shuttermint.voting import AlreadyVotedError, Voting

logger = logging.getLogger(__name__)

_SECP256K1_P = 2**256 - 2**32 - 977
_COMPRESSED_PUBKEY_SIZE = 33

M = TypeVar("M")


def _hex(data: bytes) -> str:
    return "0x" + data.hex()


def make_error_response(msg: str) -> Response:
    """Return a failed delivery response carrying the given log message."""
    return Response(code=1, log=msg, events=[])


def _not_a_keyper(sender: Address) -> Response:
    return make_error_response(f"sender {_hex(sender)} is not a keyper")


def _eon_started_event(
    eon: int, activation_block_number: int, keyper_config_index: int
) -> Event:
    return Event(
        "shutter.eon-started",
        {
            "Eon": str(eon),
            "ActivationBlockNumber": str(activation_block_number),
            "KeyperConfigIndex": str(keyper_config_index),
        },
    )


def _decompress_pubkey(data: bytes) -> bytes:
    """Decompress a secp256k1 public key into its 65 byte uncompressed form."""
    if len(data) != _COMPRESSED_PUBKEY_SIZE:
        raise ShutterAppError("invalid public key length")
    prefix = data[0]
    if prefix not in (2, 3):
        raise ShutterAppError("invalid public key prefix")
    x = int.from_bytes(data[1:], "big")
    if x >= _SECP256K1_P:
        raise ShutterAppError("invalid public key x coordinate")
    rhs = (pow(x, 3, _SECP256K1_P) + 7) % _SECP256K1_P
    y = pow(rhs, (_SECP256K1_P + 1) // 4, _SECP256K1_P)
    if y * y % _SECP256K1_P != rhs:
        raise ShutterAppError("invalid public key: point not on curve")
    if (y & 1) != (prefix & 1):
        y = _SECP256K1_P - y
    return b"\x04" + x.to_bytes(32, "big") + y.to_bytes(32, "big")


def check_tx(app: ShutterApp, signer: Address, msg: MessageWithNonce) -> Response:
    """Decide whether a decoded transaction may enter the mempool."""
    if msg.chain_id != app.chain_id:
        return Response(code=1, log="wrong chain")
    # app.nonce_tracker covers transactions in the chain, the check tx state
    # those seen in the mempool since the last commit.
    if not app.nonce_tracker.check(signer, msg.random_nonce):
        return Response(code=1, log="nonce already used")
    if not app.check_tx_state.add_tx(signer, msg):
        return Response(code=1, log="not a keyper set member")
    return Response(code=0, gas_wanted=1)


def deliver_tx(app: ShutterApp, signer: Address, msg: MessageWithNonce) -> Response:
    """Apply a decoded transaction included in a block."""
    if msg.chain_id != app.chain_id:
        return make_error_response(
            f"wrong chain id (expected {app.chain_id}, got {msg.chain_id})"
        )
    if not app.nonce_tracker.check(signer, msg.random_nonce):
        return make_error_response(
            f"Nonce {msg.random_nonce} of {_hex(signer)} already used"
        )
    app.nonce_tracker.add(signer, msg.random_nonce)
    return deliver_message(app, msg.msg, signer)


def _batch_config_from_message(msg: BatchConfigMessage) -> BatchConfig:
    return BatchConfig(
        keyper_config_index=msg.keyper_config_index,
        activation_block_number=msg.activation_block_number,
        keypers=[validate_address(keyper) for keyper in msg.keypers],
        threshold=msg.threshold,
    )


def _allowed_to_vote_on_config_changes(app: ShutterApp, sender: Address) -> bool:
    return app.last_config().keyper_index(sender) is not None


def _deliver_batch_config(
    app: ShutterApp, msg: BatchConfigMessage, sender: Address
) -> Response:
    try:
        bc = _batch_config_from_message(msg)
    except ShutterAppError as err:
        return make_error_response(f"Malformed BatchConfig message: {err}")

    if app.last_config() == bc:
        logger.info("keyper config %d already accepted", bc.keyper_config_index)
        return Response(code=0)

    try:
        app.check_config(bc)
    except ShutterAppError as err:
        return make_error_response(f"checkConfig: {err}")

    if not _allowed_to_vote_on_config_changes(app, sender):
        return make_error_response("not allowed to vote on config changes")

    try:
        app.config_voting.add_vote(sender, bc)
    except ShutterAppError as err:
        return make_error_response(f"Error adding vote: {err}")

    events: list[Event] = []
    if app.config_voting.outcome(app.last_config().threshold) is not None:
        app.config_voting = Voting()
        try:
            app.add_config(bc)
        except ShutterAppError as err:
            return make_error_response(f"Error in addConfig: {err}")
        events.append(bc.make_event())
        dkg = app.start_dkg(bc)
        events.append(
            _eon_started_event(
                dkg.eon, bc.activation_block_number, bc.keyper_config_index
            )
        )
    return Response(code=0, events=events)


def _deliver_block_seen(
    app: ShutterApp, msg: BlockSeenMessage, sender: Address
) -> Response:
    if msg.block_number > app.blocks_seen.get(sender, 0):
        app.blocks_seen[sender] = msg.block_number
    return Response(code=0, events=[])


def _deliver_check_in(
    app: ShutterApp, msg: CheckInMessage, sender: Address
) -> Response:
    if sender in app.identities:
        return make_error_response(f"sender {_hex(sender)} already checked in")
    if not app.is_keyper(sender):
        return _not_a_keyper(sender)
    try:
        validator_public_key = new_validator_pubkey(msg.validator_public_key)
    except ShutterAppError as err:
        return make_error_response(f"malformed validator public key: {err}")
    try:
        encryption_public_key = _decompress_pubkey(msg.encryption_public_key)
    except ShutterAppError as err:
        return make_error_response(f"malformed encryption public key: {err}")

    app.identities[sender] = validator_public_key
    event = Event(
        "shutter.check-in",
        {
            "Sender": _hex(sender),
            "EncryptionPublicKey": _hex(encryption_public_key),
        },
    )
    return Response(code=0, events=[event])


def _maybe_start_eon(app: ShutterApp, eon: int) -> DKGInstance | None:
    dkg = app.dkg_map.get(eon)
    if dkg is None:
        return None
    success = dkg.success_voting.outcome(dkg.config.threshold)
    # votes for an eon that has already been superseded are dismissed
    outdated = app.eon_counter > eon
    if success is None or success or outdated:
        return None
    return app.start_dkg(dkg.config)


def _deliver_dkg_result(
    app: ShutterApp, msg: DKGResultMessage, sender: Address
) -> Response:
    dkg = app.dkg_map.get(msg.eon)
    if dkg is None:
        return make_error_response(f"cannot handle DKGResult message for eon {msg.eon}")
    config = dkg.config
    if not config.is_keyper(sender):
        return _not_a_keyper(sender)
    try:
        dkg.success_voting.add_vote(sender, msg.success)
    except AlreadyVotedError:
        return make_error_response("already voted on dkg result")

    new_dkg = _maybe_start_eon(app, msg.eon)
    if new_dkg is None:
        return Response(code=0, events=[])
    return Response(
        code=0,
        events=[
            _eon_started_event(
                new_dkg.eon, config.activation_block_number, config.keyper_config_index
            )
        ],
    )


def _handle_dkg_message(
    app: ShutterApp,
    name: str,
    msg: Any,
    sender: Address,
    parse: Callable[[Any, Address], M],
    register: Callable[[DKGInstance, M], None],
) -> Response:
    try:
        app_msg = parse(msg, sender)
    except ShutterAppError as err:
        text = f"Error: Failed to parse {name} message: {err}"
        logger.warning(text)
        return make_error_response(text)

    dkg = app.dkg_map.get(app_msg.eon)  # type: ignore[attr-defined]
    if dkg is None:
        text = f"Error: Received {name} message while DKG is not active"
        logger.warning(text)
        return make_error_response(text)

    try:
        register(dkg, app_msg)
    except ShutterAppError as err:
        text = f"Error: Failed to register {name} message: {err}"
        logger.warning(text)
        return make_error_response(text)

    return Response(code=0, events=[app_msg.make_event()])  # type: ignore[attr-defined]


def _handle_poly_eval(app: ShutterApp, msg: PolyEvalMessage, sender: Address) -> Response:
    return _handle_dkg_message(
        app, "PolyEval", msg, sender,
        parse_poly_eval_msg, DKGInstance.register_poly_eval_msg,
    )


def _handle_poly_commitment(
    app: ShutterApp, msg: PolyCommitmentMessage, sender: Address
) -> Response:
    return _handle_dkg_message(
        app, "PolyCommitment", msg, sender,
        parse_poly_commitment_msg, DKGInstance.register_poly_commitment_msg,
    )


def _handle_accusation(
    app: ShutterApp, msg: AccusationMessage, sender: Address
) -> Response:
    return _handle_dkg_message(
        app, "Accusation", msg, sender,
        parse_accusation_msg, DKGInstance.register_accusation_msg,
    )


def _handle_apology(app: ShutterApp, msg: ApologyMessage, sender: Address) -> Response:
    return _handle_dkg_message(
        app, "Apology", msg, sender,
        parse_apology_msg, DKGInstance.register_apology_msg,
    )


_HANDLERS: dict[type, Callable[[ShutterApp, Any, Address], Response]] = {
    BatchConfigMessage: _deliver_batch_config,
    BlockSeenMessage: _deliver_block_seen,
    CheckInMessage: _deliver_check_in,
    DKGResultMessage: _deliver_dkg_result,
    PolyEvalMessage: _handle_poly_eval,
    PolyCommitmentMessage: _handle_poly_commitment,
    AccusationMessage: _handle_accusation,
    ApologyMessage: _handle_apology,
}


def deliver_message(app: ShutterApp, msg: Any, sender: Address) -> Response:
    """Dispatch a message payload to the handler for its kind."""
    handler = _HANDLERS.get(type(msg))
    if handler is None:
        logger.warning("cannot deliver message: %r", msg)
        return make_error_response("cannot deliver message")
    return handler(app, msg, sender)