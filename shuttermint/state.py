"""The Shuttermint application state machine and its block lifecycle."""

from __future__ import annotations

import logging
import os
import pickle
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Iterable, NamedTuple

from shuttermint.checktx import CheckTxState
from shuttermint.dkg import DKGInstance
from shuttermint.noncetracker import NonceTracker
from shuttermint.powermap import (
    Powermap,
    ValidatorUpdate,
    diff_powermaps,
    make_powermap,
    validator_updates,
)
from shuttermint.types import (
    Address,
    BatchConfig,
    Event,
    GenesisAppState,
    Response,
    ShutterAppError,
    ValidatorPubkey,
    new_validator_pubkey,
)
from shuttermint.voting import Voting

logger = logging.getLogger(__name__)

PERSIST_MIN_DURATION = timedelta(seconds=30)
"""Minimum time between two saves of the state; zero saves on every commit."""

NON_EXISTENT_VALIDATOR: ValidatorPubkey = new_validator_pubkey(
    b"novalidator".ljust(32, b"\x00")
)
"""Stand-in key holding the voting power of keypers that have not checked in."""

_VOTING_POWER_PER_KEYPER = 10


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _copy_config(cfg: BatchConfig) -> BatchConfig:
    return replace(cfg, keypers=list(cfg.keypers))


class AppInfo(NamedTuple):
    """The latest committed state as reported to the consensus engine."""

    last_block_height: int
    last_block_app_hash: bytes


def num_required_transition_validators(config: BatchConfig) -> int:
    """Return how many validators must be online before switching to the config.

    This is the config's threshold or two thirds of the keyper set, whichever
    is greater.
    """
    n = len(config.keypers)
    if n == 0:
        return 0
    defenders = n - (n + 2) // 3 + 1
    return max(config.threshold, defenders)


@dataclass
class ShutterApp:
    """The replicated application state."""

    configs: list[BatchConfig] = field(default_factory=lambda: [BatchConfig()])
    dkg_map: dict[int, DKGInstance] = field(default_factory=dict)
    config_voting: Voting[BatchConfig] = field(default_factory=Voting)
    gobpath: str = ""
    last_saved: datetime | None = None
    last_block_height: int = 0
    identities: dict[Address, ValidatorPubkey] = field(default_factory=dict)
    blocks_seen: dict[Address, int] = field(default_factory=dict)
    validators: Powermap = field(default_factory=dict)
    eon_counter: int = 0
    dev_mode: bool = False
    check_tx_state: CheckTxState = field(default_factory=CheckTxState)
    nonce_tracker: NonceTracker = field(default_factory=NonceTracker)
    chain_id: str = ""

    # --- configs -----------------------------------------------------------

    def last_config(self) -> BatchConfig:
        """Return the config with the highest known index."""
        if not self.configs:
            raise RuntimeError("internal error: app.configs is empty")
        return self.configs[-1]

    def check_config(self, cfg: BatchConfig) -> None:
        """Raise ShutterAppError unless the config could be added."""
        cfg.ensure_valid()
        last = self.last_config()
        if cfg.activation_block_number < last.activation_block_number:
            raise ShutterAppError(
                f"start activation block number of next config "
                f"({cfg.activation_block_number}) lower than current one "
                f"({last.activation_block_number})"
            )
        if cfg.keyper_config_index <= last.keyper_config_index:
            raise ShutterAppError(
                f"config index of next config ({cfg.keyper_config_index}) not "
                f"greater than current one ({last.keyper_config_index})"
            )

    def add_config(self, cfg: BatchConfig) -> None:
        """Check and append a config, then update the allowed tx senders."""
        self.check_config(cfg)
        logger.info("adding keyper config %d", cfg.keyper_config_index)
        self.configs.append(_copy_config(cfg))
        self._update_check_tx_members()

    def _update_check_tx_members(self) -> None:
        self.check_tx_state.set_members(
            keyper for cfg in self.configs for keyper in cfg.keypers
        )

    def is_keyper(self, address: Address) -> bool:
        """Return True if the address is a keyper in any known config."""
        return any(cfg.keyper_index(address) is not None for cfg in self.configs)

    def start_dkg(self, config: BatchConfig) -> DKGInstance:
        """Start key generation for a new eon with the given config."""
        self.eon_counter += 1
        dkg = DKGInstance(_copy_config(config), self.eon_counter)
        self.dkg_map[dkg.eon] = dkg
        return dkg

    # --- validators --------------------------------------------------------

    def _make_powermap(self, keypers: Iterable[Address]) -> Powermap:
        powermap: Powermap = {}
        for keyper in keypers:
            pubkey = self.identities.get(keyper, NON_EXISTENT_VALIDATOR)
            powermap[pubkey] = powermap.get(pubkey, 0) + _VOTING_POWER_PER_KEYPER
        return powermap

    def current_validators(self) -> Powermap:
        """Return the powermap of the newest config whose validators are in effect."""
        for cfg in reversed(self.configs):
            if cfg.started and cfg.validators_updated:
                return self._make_powermap(cfg.keypers)
        return self.validators

    def _count_checked_in(self, keypers: Iterable[Address]) -> int:
        return sum(1 for keyper in keypers if keyper in self.identities)

    # --- block lifecycle ---------------------------------------------------

    def info(self) -> AppInfo:
        return AppInfo(self.last_block_height, b"")

    def query(self) -> Response:
        return Response(code=1, log="query not implemented")

    def init_chain(
        self,
        chain_id: str,
        app_state: GenesisAppState,
        validators: Iterable[ValidatorUpdate],
    ) -> Response:
        """Set up the genesis keyper set, or verify it against the stored state."""
        bc = BatchConfig(
            activation_block_number=0,
            keypers=app_state.get_keypers(),
            threshold=app_state.threshold,
        )
        try:
            bc.ensure_valid()
        except ShutterAppError as err:
            raise ShutterAppError(f"invalid genesis app state: {err}") from err

        if len(self.configs) == 1 and not self.configs[0].keypers:
            logger.info("initializing new chain")
            for index, keyper in enumerate(bc.keypers):
                logger.info("initial keyper %d: 0x%s", index, keyper.hex())
            try:
                self.validators = make_powermap(validators)
            except ShutterAppError as err:
                raise ShutterAppError(
                    f"cannot handle validator keys: {err}"
                ) from err
            self.configs = [bc]
            self.check_tx_state = CheckTxState()
            self._update_check_tx_members()
        elif bc != self.configs[0]:
            raise ShutterAppError(
                "mismatch between stored app state and initial app state"
            )

        self.chain_id = chain_id
        return Response()

    def begin_block(self, height: int) -> Response:
        events = [self.configs[0].make_event()] if height == 1 else []
        return Response(events=events)

    def end_block(self, height: int) -> Response:
        """Start configs that enough keypers have seen and update validators."""
        events: list[Event] = []
        for index, cfg in enumerate(self.configs):
            if not cfg.started:
                allowance = self.configs[max(index - 1, 0)]
                num_votes = sum(
                    1
                    for keyper in allowance.keypers
                    if keyper in self.blocks_seen
                    and self.blocks_seen[keyper] >= cfg.activation_block_number
                )
                if num_votes >= allowance.threshold:
                    logger.info("starting keyper config %d", cfg.keyper_config_index)
                    cfg.started = True
                    events.append(
                        Event(
                            "shutter.batch-config-started",
                            {"KeyperConfigIndex": str(cfg.keyper_config_index)},
                        )
                    )
            if (
                cfg.started
                and not cfg.validators_updated
                and self._count_checked_in(cfg.keypers)
                >= num_required_transition_validators(cfg)
            ):
                cfg.validators_updated = True

        new_validators = self.current_validators()
        updates = validator_updates(diff_powermaps(self.validators, new_validators))
        self.validators = new_validators
        self.last_block_height = height
        if self.dev_mode:
            if updates:
                logger.info("ignoring %d validator updates in dev mode", len(updates))
            return Response(events=events)
        if updates:
            logger.info("applying %d validator updates", len(updates))
        return Response(events=events, validator_updates=updates)

    def commit(self) -> Response:
        self.check_tx_state.reset()
        try:
            self._maybe_persist_to_disk()
        except OSError:
            logger.exception("cannot persist state to disk")
        return Response()

    # --- persistence -------------------------------------------------------

    def persist_to_disk(self) -> None:
        """Write the state to a temporary file and move it into place."""
        if not self.gobpath:
            raise ShutterAppError("no path to persist the state to")
        logger.info("persisting state to disk at height %d", self.last_block_height)
        tmppath = self.gobpath + ".tmp"
        self.last_saved = _now()
        with open(tmppath, "wb") as file:
            pickle.dump(self, file)
            file.flush()
            os.fsync(file.fileno())
        os.replace(tmppath, self.gobpath)

    def _maybe_persist_to_disk(self) -> None:
        if not self.gobpath:
            return
        if self.last_saved is not None and _now() - self.last_saved <= PERSIST_MIN_DURATION:
            return
        self.persist_to_disk()


def load_shutter_app_from_file(path: str | os.PathLike[str]) -> ShutterApp:
    """Load the state from the file, or start fresh if it does not exist."""
    path = os.fspath(path)
    try:
        with open(path, "rb") as file:
            app = pickle.load(file)
    except FileNotFoundError:
        app = ShutterApp()
    else:
        if not isinstance(app, ShutterApp):
            raise ShutterAppError(f"file {path} does not hold an application state")
        logger.info(
            "loaded shutter app from %s (last saved %s, height %d, devmode %s)",
            path,
            app.last_saved,
            app.last_block_height,
            app.dev_mode,
        )
    app.gobpath = path
    app.last_saved = _now()  # do not persist immediately after starting
    return app