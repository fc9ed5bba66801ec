"""
Tests for the Flask web interface.
"""

import json

import pytest

import web_interface.app as web_app
from block_clipboard.clipboard import InMemoryClipboard
from block_clipboard.commands import COPY_ITEM_ID, PASTE_ITEM_ID
from block_clipboard.workspace import Workspace


class TestWebInterface:
    """Test cases for the REST API."""

    @pytest.fixture(autouse=True)
    def fresh_state(self, monkeypatch):
        """Give every test its own workspace and an in-memory clipboard."""
        self.workspace = Workspace(width=1920, height=1080)
        self.clipboard = InMemoryClipboard()
        monkeypatch.setattr(web_app, 'workspace', self.workspace)
        monkeypatch.setattr(web_app.transfer, 'clipboard', self.clipboard)
        web_app.plugin.initialize_workspace(self.workspace, web_app.registry)
        self.client = web_app.app.test_client()

    def add_block(self, data):
        response = self.client.post('/api/workspace/blocks', json=data)
        assert response.status_code == 200
        return response.get_json()['data']['block_id']

    def test_workspace_state(self):
        response = self.client.get('/api/workspace/state')
        body = response.get_json()
        assert body['success'] is True
        assert body['data']['block_count'] == 0

    def test_add_block_rejects_bad_tree(self):
        response = self.client.post('/api/workspace/blocks', json={'fields': {}})
        assert response.status_code == 400
        assert response.get_json()['success'] is False

    def test_viewport_update(self):
        response = self.client.post('/api/workspace/viewport', json={'zoom': 2.0, 'delta_x': 100})
        data = response.get_json()['data']
        assert data['zoom'] == 2.0
        assert data['pan_x'] == 50.0

    def test_list_commands(self):
        body = self.client.get('/api/commands').get_json()
        assert {item['id'] for item in body['data']} == {COPY_ITEM_ID, PASTE_ITEM_ID}

    def test_copy_and_paste(self):
        block_id = self.add_block({'type': 'text_print', 'x': 10, 'y': 10})

        copied = self.client.post('/api/clipboard/copy', json={'block_id': block_id})
        assert copied.get_json()['success'] is True
        assert json.loads(self.clipboard.text)['type'] == 'text_print'

        self.client.post('/api/pointer', json={'client_x': 400, 'client_y': 250})
        pasted = self.client.post('/api/clipboard/paste')

        body = pasted.get_json()
        assert body['success'] is True
        assert body['data']['position'] == {'x': 400, 'y': 250}
        assert self.workspace.get_state()['block_count'] == 2

    def test_copy_unknown_block(self):
        response = self.client.post('/api/clipboard/copy', json={'block_id': 'missing'})
        assert response.status_code == 404

    def test_paste_reports_variables_created(self):
        self.clipboard.text = json.dumps({
            'type': 'move', 'fields': {'VAR': {'id': None, 'name': 'Health', 'type': 'Number'}},
        })

        body = self.client.post('/api/clipboard/paste').get_json()

        assert body['success'] is True
        assert body['data']['variables_created'] == ['Health']

    def test_paste_malformed(self):
        self.clipboard.text = "not a block"

        response = self.client.post('/api/clipboard/paste')

        assert response.status_code == 400
        assert response.get_json()['data']['stage'] == 'parse'
        assert self.workspace.get_state()['block_count'] == 0

    def test_invoke_copy_command_requires_block(self):
        response = self.client.post(f'/api/commands/{COPY_ITEM_ID}', json={})
        assert response.status_code == 400

    def test_invoke_unknown_command(self):
        response = self.client.post('/api/commands/nope', json={})
        assert response.status_code == 404

    def test_invoke_paste_command(self):
        self.clipboard.text = json.dumps({'type': 'text_print'})

        response = self.client.post(f'/api/commands/{PASTE_ITEM_ID}', json={})

        assert response.get_json()['success'] is True
        assert len(self.workspace.get_top_blocks()) == 1
