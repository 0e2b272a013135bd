# shuttermint

`shuttermint` is the deterministic application state of a keyper chain. It
keeps track of:

- batch configs: keyper sets with their thresholds and activation block numbers;
- votes on new configs and on DKG results;
- the messages of each distributed key generation (DKG) instance (eon);
- the random nonces used by each sender, and a per-block limit of ten
  transactions per sender in the mempool;
- validator voting power, and the updates needed to move from one validator
  set to the next.

It has no runtime dependencies.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Modules

| Module | Contents |
| --- | --- |
| `shuttermint.types` | `BatchConfig`, `ValidatorPubkey` and `new_validator_pubkey`, `GenesisAppState` and `new_genesis_app_state`, the DKG records `PolyEval`, `PolyCommitment`, `Accusation`, `Apology`, plus `Event`, `Response`, `MessageWithNonce` and `ShutterAppError` |
| `shuttermint.noncetracker` | `NonceTracker`, recording the nonces used by each sender |
| `shuttermint.checktx` | `CheckTxState`, the mempool admission state reset at every commit, and `MAX_TXS_PER_BLOCK` |
| `shuttermint.voting` | `Voting`, where each address votes for one candidate, and `AlreadyVotedError` |
| `shuttermint.powermap` | `ValidatorUpdate`, `make_powermap`, `diff_powermaps`, `validator_updates`, `sort_validators` |
| `shuttermint.dkg` | `DKGInstance`, which checks and registers the messages of one eon, and `SenderReceiverPair` |
| `shuttermint.messages` | wire message records (`BatchConfigMessage`, `BlockSeenMessage`, `CheckInMessage`, `DKGResultMessage`, `PolyEvalMessage`, `PolyCommitmentMessage`, `AccusationMessage`, `ApologyMessage`) and the `parse_*` functions that validate them into the records of `types` |
| `shuttermint.chaininit` | `adjust_port`, `genesis_threshold` and `parse_genesis_keypers` |
| `shuttermint.state` | `ShutterApp` (block lifecycle, configs, validators, persistence), `load_shutter_app_from_file`, `num_required_transition_validators` |
| `shuttermint.delivery` | `check_tx`, `deliver_tx`, `deliver_message` and `make_error_response` |
| `shuttermint.version` | `version()`, the package version with interpreter and platform details |

Errors are raised as `ShutterAppError`. Transaction handling in
`shuttermint.delivery` does not raise for a rejected transaction; it returns a
`Response` whose `code` is 1 and whose `log` says why (`Response.ok` is true
for code 0).

## Driving the application

An application is driven one block at a time:

1. `ShutterApp.init_chain(chain_id, app_state, validators)` once, with the
   genesis keyper set.
2. For each block: `begin_block(height)`, then `deliver_tx` for each
   transaction, then `end_block(height)`, then `commit()`.

Transactions are checked with `check_tx` before they are admitted to the
mempool.

```python
from shuttermint.delivery import check_tx, deliver_tx
from shuttermint.messages import BlockSeenMessage
from shuttermint.state import ShutterApp
from shuttermint.types import GenesisAppState, MessageWithNonce

keypers = [bytes([i]) * 20 for i in range(1, 4)]

app = ShutterApp()
app.init_chain("test-chain", GenesisAppState(keypers=keypers, threshold=2), [])
app.begin_block(1)

for nonce, keyper in enumerate(keypers[:2], start=1):
    tx = MessageWithNonce(chain_id="test-chain", random_nonce=nonce,
                          msg=BlockSeenMessage(block_number=5))
    assert check_tx(app, keyper, tx).ok
    assert deliver_tx(app, keyper, tx).ok

response = app.end_block(1)
print([event.type for event in response.events])  # ['shutter.batch-config-started']
app.commit()
```

In `end_block` a config starts once enough keypers of the previous config (its
threshold) have reported a seen block at or after the config's activation
block. Its keypers take over the validator set once as many of them have
checked in as `num_required_transition_validators` asks for: the threshold or
two thirds of the set, whichever is greater. Keypers that have not checked in
give their power (10 each) to a stand-in key. In `dev_mode` the validator
updates are computed but not returned.

## Persistence

`ShutterApp.persist_to_disk()` writes the whole state with `pickle` to a
temporary file next to `ShutterApp.gobpath` and then moves it into place;
`commit()` does this when `gobpath` is set and more than 30 seconds have
passed since the last save. `load_shutter_app_from_file(path)` reads it back,
or returns a fresh `ShutterApp` when the file does not exist. Since the format
is pickle, only load files you wrote yourself.

## What this package does not do

- It does not run a node or talk to a consensus engine; calling the block
  lifecycle methods is left to the caller.
- It does not decode or verify signed transactions. `check_tx` and
  `deliver_tx` take the signer address and a decoded `MessageWithNonce`.
- It has no command line. `shuttermint.chaininit` only provides helpers for
  port numbers, the genesis threshold and keyper addresses; it does not write
  configuration, key or genesis files.
- It performs no encryption or key generation; DKG messages are only checked
  for consistency and recorded.