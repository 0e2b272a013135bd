import pickle

import pytest

from shuttermint.types import BatchConfig, ShutterAppError
from shuttermint.voting import AlreadyVotedError, Voting

ADDR = [i.to_bytes(20, "big") for i in range(10)]
VOTES = [BatchConfig(activation_block_number=i) for i in range(10)]


def test_config_voting():
    cfgv = Voting()
    assert cfgv.outcome(0) is None
    assert cfgv.outcome(1) is None

    cfgv.add_vote(ADDR[0], VOTES[0])

    assert cfgv.outcome(0) == VOTES[0]
    assert cfgv.outcome(1) == VOTES[0]
    assert cfgv.outcome(2) is None

    with pytest.raises(AlreadyVotedError):
        cfgv.add_vote(ADDR[0], VOTES[0])  # duplicate vote, same vote
    with pytest.raises(AlreadyVotedError):
        cfgv.add_vote(ADDR[0], VOTES[1])  # duplicate vote, different vote

    cfgv.add_vote(ADDR[1], VOTES[2])
    assert cfgv.outcome(2) is None

    cfgv.add_vote(ADDR[2], VOTES[2])
    assert cfgv.outcome(2) == VOTES[2]

    restored = pickle.loads(pickle.dumps(cfgv))
    assert restored.votes == cfgv.votes
    assert restored.candidates == cfgv.candidates
    assert restored.outcome(2) == VOTES[2]


def test_already_voted_is_app_error():
    voting = Voting()
    voting.add_vote(ADDR[0], True)
    with pytest.raises(ShutterAppError):
        voting.add_vote(ADDR[0], False)


def test_set_vote_replaces_earlier_vote():
    voting = Voting()
    voting.set_vote(ADDR[0], VOTES[0])
    voting.set_vote(ADDR[0], VOTES[1])
    assert voting.outcome(1) == VOTES[1]
    assert voting.candidates == [VOTES[0], VOTES[1]]
    assert voting.votes == {ADDR[0]: 1}


def test_false_outcome_is_distinct_from_no_outcome():
    voting = Voting()
    voting.add_vote(ADDR[0], False)
    voting.add_vote(ADDR[1], False)
    assert voting.outcome(2) is False
    assert voting.outcome(3) is None


def test_custom_equality():
    voting = Voting(equals=lambda a, b: a % 10 == b % 10)
    voting.add_vote(ADDR[0], 3)
    voting.add_vote(ADDR[1], 13)
    assert voting.outcome(2) == 3
    assert voting.candidates == [3]