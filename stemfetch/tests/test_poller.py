from pathlib import Path
import sys

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from stemfetch.errors import (
    AttemptsExhausted,
    PollTimeout,
    RequestTimeout,
    StatusQueryTimeout,
    TaskFailed,
    TaskNotFound,
)
from stemfetch.poller import poll_task

from fakes import FakeGateway, asset_payload


def _status(status='processing', stems=(), midi=()):
    return {'_id': 'task-1', 'status': status, 'asset': asset_payload('src', stems=stems, midi=midi)}


def _gateway(payloads):
    gw = FakeGateway()
    gw.script_task('task-1', 'src', payloads)
    return gw


def _poll(gw, **kwargs):
    attempts = []
    sleeps = []
    task = poll_task(gw, 'task-1', lambda a, m: attempts.append((a, m)), sleep=sleeps.append, **kwargs)
    return task, attempts, sleeps


@pytest.mark.parametrize('ready_at', [1, 2, 7])
def test_returns_on_attempt_stems_appear(ready_at):
    gw = _gateway([_status()] * (ready_at - 1) + [_status('done', stems=['a', 'b'])])
    task, attempts, sleeps = _poll(gw)

    assert task.asset.stems == ['a', 'b']
    assert gw.queries['task-1'] == ready_at
    assert attempts == [(i, 60) for i in range(1, ready_at)]
    assert sleeps == [5] * (ready_at - 1)


def test_midi_only_waits_past_warmup():
    gw = _gateway([_status(midi=['m1'])])
    task, attempts, _ = _poll(gw)

    assert gw.queries['task-1'] == 13
    assert task.asset.midi == ['m1']
    assert len(attempts) == 12


def test_midi_appearing_late_returns_immediately():
    gw = _gateway([_status()] * 15 + [_status(midi=['m1'])])
    _poll(gw)
    assert gw.queries['task-1'] == 16


@pytest.mark.parametrize('status', ['error', 'failed'])
def test_failed_status_stops_polling(status):
    gw = _gateway([_status(), _status(status)])
    with pytest.raises(TaskFailed) as info:
        _poll(gw)
    assert info.value.status == status
    assert gw.queries['task-1'] == 2


def test_exhaustion_reports_max_attempts():
    gw = _gateway([_status()])
    with pytest.raises(AttemptsExhausted) as info:
        _poll(gw, max_attempts=4)

    assert info.value.max_attempts == 4
    assert '4 attempts' in str(info.value)
    assert gw.queries['task-1'] == 4


def test_exhaustion_sleeps_only_between_attempts():
    gw = _gateway([_status()])
    sleeps = []
    with pytest.raises(PollTimeout):
        poll_task(gw, 'task-1', max_attempts=3, interval=2, sleep=sleeps.append)
    assert sleeps == [2, 2]


def test_transport_timeout_is_distinct_from_exhaustion():
    gw = _gateway([_status(), RequestTimeout('Failed to query task: request timed out')])
    with pytest.raises(StatusQueryTimeout) as info:
        _poll(gw)
    assert isinstance(info.value, PollTimeout)
    assert not isinstance(info.value, AttemptsExhausted)


def test_unknown_task_propagates():
    gw = FakeGateway()
    with pytest.raises(TaskNotFound):
        poll_task(gw, 'nope', sleep=lambda s: None)
