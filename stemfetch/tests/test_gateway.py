from pathlib import Path
import sys

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from stemfetch import transport
from stemfetch.config import Settings
from stemfetch.errors import DecodeError, TaskNotFound
from stemfetch.gateway import AssetGateway
from stemfetch.models import Asset, Task


class RecordingClient:
    def __init__(self, responses):
        self.responses = list(responses)
        self.requests = []

    def get(self, path, *, context):
        self.requests.append(('GET', path, None, context))
        return self.responses.pop(0)

    def post(self, path, payload, *, context):
        self.requests.append(('POST', path, payload, context))
        return self.responses.pop(0)


def test_upload_url():
    client = RecordingClient([{'url': 'https://s3/put', 's3Path': 'bucket/a.mp3'}])
    target = AssetGateway(client).get_upload_url('a.mp3', 'mp3')
    assert (target.url, target.s3_path) == ('https://s3/put', 'bucket/a.mp3')
    assert client.requests == [('POST', 'assets/upload2', {'name': 'a.mp3', 'extension': 'mp3'}, 'Failed to get upload URL')]


def test_create_asset_default_group():
    client = RecordingClient([{'asset': {'_id': 'a1'}}])
    asset = AssetGateway(client).create_asset('a.mp3', 'mp3', 's3/a')
    assert asset.id == 'a1'
    assert client.requests[0][2] == {'name': 'a.mp3', 'extension': 'mp3', 'group': 'a.mp3-group', 's3Path': 's3/a'}


def test_create_asset_missing_field_fails_fast():
    client = RecordingClient([{'ok': True}])
    with pytest.raises(DecodeError, match="Failed to create asset: response has no 'asset'"):
        AssetGateway(client).create_asset('a.mp3', 'mp3', 's3/a', 'g')


@pytest.mark.parametrize('method,stem_type,context', [
    ('create_stem_task', None, 'Failed to create stem task'),
    ('create_drum_stem_task', 'drum-stem', 'Failed to create drum stem task'),
    ('create_other_stem_task', 'other-stem', 'Failed to create other stem task'),
])
def test_stem_tasks(method, stem_type, context):
    client = RecordingClient([{'task': {'_id': 't1', 'status': 'pending'}}])
    task = getattr(AssetGateway(client), method)('a1')
    assert task.id == 't1'
    verb, path, payload, ctx = client.requests[0]
    assert (verb, path, ctx) == ('POST', 'assets/analyze/stem', context)
    expected = {'_id': 'a1'}
    if stem_type:
        expected['stemType'] = stem_type
    assert payload == expected


def test_query_task():
    client = RecordingClient([
        {'tasks': [{'_id': 't1', 'status': 'processing', 'asset': {'_id': 'a1', 'stems': ['s1']}}]},
        {'tasks': []},
    ])
    gw = AssetGateway(client)
    task = gw.query_task('t1')
    assert task.asset.stems == ['s1']
    assert client.requests[0][:3] == ('POST', 'tasks/query', {'_ids': ['t1']})
    with pytest.raises(TaskNotFound):
        gw.query_task('t2')


def test_asset_and_download_url_paths():
    client = RecordingClient([{'asset': {'_id': 'a/1'}}, {'url': 'https://cdn/x'}])
    gw = AssetGateway(client)
    assert gw.get_asset('a/1').id == 'a/1'
    assert gw.get_download_url('a1') == 'https://cdn/x'
    assert [r[1] for r in client.requests] == ['assets/a%2F1', 'assets/download/a1/hq']


def test_transfers_delegate_to_transport(monkeypatch, tmp_path):
    calls = []
    monkeypatch.setattr(transport, 'put_file', lambda *a: calls.append(('put',) + a))
    monkeypatch.setattr(transport, 'stream_to_file', lambda url, dest: calls.append(('get', url, dest)) or dest)
    gw = AssetGateway.from_settings(Settings(api_key='k'))

    gw.upload_file('https://s3/put', str(tmp_path / 'a.mp3'), 'audio/mp3')
    assert gw.download_file('https://cdn/x', tmp_path / 'b.mp3') == tmp_path / 'b.mp3'
    assert calls == [
        ('put', 'https://s3/put', tmp_path / 'a.mp3', 'audio/mp3'),
        ('get', 'https://cdn/x', tmp_path / 'b.mp3'),
    ]
    assert gw.client.api_url == 'https://api.fadr.com'


def test_asset_decoding():
    with pytest.raises(DecodeError):
        Asset.from_payload({'name': 'no id'})
    with pytest.raises(DecodeError):
        Asset.from_payload({'_id': 'a', 'stems': 'not-a-list'})
    with pytest.raises(DecodeError, match='stemType'):
        Asset.from_payload({'_id': 'a'}).stem_type

    asset = Asset.from_payload({'_id': 'a', 'metaData': {'stemType': 'bass'}})
    assert asset.stems == [] and asset.midi == []
    assert asset.midi_type == 'bass'
    assert Asset.from_payload({'_id': 'a'}).midi_type == 'unknown'
    assert Asset.from_payload({'_id': 'a', 'metaData': {'midiType': 'drums', 'stemType': 'x'}}).midi_type == 'drums'


def test_task_decoding():
    assert Task.from_payload({'_id': 't'}).asset is None
    assert Task.from_payload({'_id': 't', 'status': 'failed'}).failed
    with pytest.raises(DecodeError):
        Task.from_payload(['t'])
