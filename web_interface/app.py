"""
Flask web interface for the block clipboard.

Exposes an in-memory workspace, the registered context-menu commands and the
copy/paste pipeline over a REST API. Pointer movement arrives either over
Socket.IO (``pointer_move``) or ``POST /api/pointer``.
"""

import asyncio
import logging
import os
import threading
from typing import Any, Dict

from flask import Flask, request, jsonify
from flask_cors import CORS
from flask_socketio import SocketIO, emit

from block_clipboard.clipboard import create_clipboard
from block_clipboard.commands import ClipboardPlugin, CommandRegistry, MenuScope, ScopeType
from block_clipboard.config import ClipboardConfig, setup_logging
from block_clipboard.coordinates import PointerTracker
from block_clipboard.transfer import ClipboardTransfer, TransferResult
from block_clipboard.workspace import Workspace

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config['SECRET_KEY'] = 'block-clipboard-secret-key'
CORS(app)
socketio = SocketIO(app, cors_allowed_origins="*", async_mode='threading')


class AsyncRunner:
    """Runs coroutines on one background event loop shared by all request threads."""

    def __init__(self):
        self.loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self.loop.run_forever, daemon=True)
        self._thread.start()

    def run(self, coro, timeout: float = 30.0):
        return asyncio.run_coroutine_threadsafe(coro, self.loop).result(timeout)


# Global instances
config = ClipboardConfig.from_env()
workspace = Workspace(width=1920, height=1080)
tracker = PointerTracker()
clipboard = create_clipboard(config)
transfer = ClipboardTransfer(lambda: workspace, clipboard, config, tracker)
registry = CommandRegistry()
runner = AsyncRunner()
plugin = ClipboardPlugin(transfer, config, tracker, dispatcher=runner.run)
plugin.initialize_workspace(workspace, registry)


def _result_data(result: TransferResult) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        'operation': result.operation,
        'stage': result.stage.value,
    }
    if result.position is not None:
        data['position'] = {'x': result.position.x, 'y': result.position.y}
    if result.reconciliation is not None:
        data['variables_created'] = [v.name for v in result.reconciliation.created]
    if result.sanitization is not None:
        data['fields_repaired'] = len(result.sanitization.changed)
        data['fields_skipped'] = len(result.sanitization.skipped)
    return data


def _transfer_response(result: TransferResult):
    if result.success:
        return jsonify({'success': True, 'data': _result_data(result)})
    return jsonify({'success': False, 'error': result.error_message, 'data': _result_data(result)}), 400


@app.route('/api/workspace/state', methods=['GET'])
def get_workspace_state():
    """Get the current workspace state."""
    try:
        return jsonify({
            'success': True,
            'data': workspace.get_state()
        })
    except Exception as e:
        return jsonify({
            'success': False,
            'error': str(e)
        }), 500


@app.route('/api/workspace/blocks', methods=['POST'])
def add_blocks():
    """Materialize a serialized block tree on the workspace."""
    try:
        data = request.get_json()
        block = workspace.append(data)
        socketio.emit('workspace_changed', {'block_id': block.id})
        return jsonify({
            'success': True,
            'data': {'block_id': block.id}
        })
    except Exception as e:
        return jsonify({
            'success': False,
            'error': str(e)
        }), 400


@app.route('/api/workspace/viewport', methods=['POST'])
def update_viewport():
    """Set zoom and/or pan the viewport."""
    try:
        data = request.get_json() or {}
        if 'zoom' in data:
            workspace.set_zoom(float(data['zoom']))
        workspace.pan_viewport(float(data.get('delta_x', 0.0)), float(data.get('delta_y', 0.0)))
        return jsonify({
            'success': True,
            'data': workspace.get_state()['viewport']
        })
    except Exception as e:
        return jsonify({
            'success': False,
            'error': str(e)
        }), 400


@app.route('/api/pointer', methods=['POST'])
def pointer_moved():
    """Record a pointer position in screen coordinates."""
    try:
        data = request.get_json()
        workspace.dispatch_pointer(float(data['client_x']), float(data['client_y']))
        return jsonify({'success': True})
    except Exception as e:
        return jsonify({
            'success': False,
            'error': str(e)
        }), 400


@app.route('/api/commands', methods=['GET'])
def list_commands():
    """List registered context-menu commands."""
    items = registry.items_for_scope(ScopeType.BLOCK) + registry.items_for_scope(ScopeType.WORKSPACE)
    return jsonify({
        'success': True,
        'data': [item.to_dict() for item in items]
    })


@app.route('/api/commands/<item_id>', methods=['POST'])
def invoke_command(item_id):
    """Invoke a context-menu command; the outcome is only visible in workspace state and logs."""
    data = request.get_json(silent=True) or {}
    block = workspace.get_block(data['block_id']) if data.get('block_id') else None
    scope = MenuScope(block=block, workspace=workspace)
    item = registry.get_item(item_id)
    if item is None:
        return jsonify({'success': False, 'error': f"Unknown command: {item_id}"}), 404

    if item.scope_type == ScopeType.BLOCK and block is None:
        return jsonify({'success': False, 'error': 'block_id required'}), 400
    invoked = registry.invoke(item_id, scope)
    return jsonify({'success': invoked})


@app.route('/api/clipboard/copy', methods=['POST'])
def copy_block():
    """Copy a block (without the chain below it) to the clipboard."""
    data = request.get_json() or {}
    block = workspace.get_block(data.get('block_id', ''))
    if block is None:
        return jsonify({'success': False, 'error': 'Block not found'}), 404
    return _transfer_response(runner.run(transfer.copy_node(block)))


@app.route('/api/clipboard/paste', methods=['POST'])
def paste_block():
    """Paste the clipboard contents under the last pointer position."""
    result = runner.run(transfer.paste())
    if result.success:
        socketio.emit('workspace_changed', {'pasted': True})
    return _transfer_response(result)


@socketio.on('pointer_move')
def handle_pointer_move(data):
    """Handle pointer movement from clients."""
    try:
        workspace.dispatch_pointer(float(data['client_x']), float(data['client_y']))
    except Exception as e:
        emit('error', {'message': str(e)})


if __name__ == '__main__':
    setup_logging(config.log_level)
    host = os.environ.get('BLOCK_CLIPBOARD_HOST', '0.0.0.0')
    port = int(os.environ.get('BLOCK_CLIPBOARD_PORT', '5002'))
    logger.info(f"Access the interface at: http://localhost:{port}")
    socketio.run(app, host=host, port=port, use_reloader=False)
