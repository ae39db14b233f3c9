"""
HTTP service for inspecting .torrent files.

Uploaded torrents are parsed, stored in the torrent folder and announced to
connected Socket.IO clients; stored torrents can be listed and inspected.
"""
import datetime
import logging
import os
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request
from flask_cors import CORS
from flask_socketio import SocketIO, emit
from werkzeug.security import safe_join
from werkzeug.utils import secure_filename

from torrentinfo import config
from torrentinfo.bencode import decode
from torrentinfo.errors import TorrentInfoError
from torrentinfo.formatting import raw_to_jsonable, torrent_to_dict
from torrentinfo.scanner import (
    find_torrent_files,
    is_torrent_file,
    read_torrent_file,
    scan,
)
from torrentinfo.torrent import parse

logger = logging.getLogger(__name__)


def error_payload(error: Exception) -> Dict[str, Any]:
    if isinstance(error, TorrentInfoError):
        return error.to_dict()
    return {'kind': type(error).__name__, 'message': str(error)}


def store_upload(upload_dir: str, filename: str, data: bytes) -> str:
    """Write data under filename, adding _1, _2, ... until the name is free."""
    base, ext = os.path.splitext(filename)
    counter = 0
    while True:
        candidate = f"{base}_{counter}{ext}" if counter else filename
        try:
            # 'x' fails if another upload claimed the name first
            with open(os.path.join(upload_dir, candidate), 'xb') as f:
                f.write(data)
            return candidate
        except FileExistsError:
            counter += 1


def create_app(overrides: Optional[Dict[str, Any]] = None):
    """Create and configure the Flask application."""
    app = Flask(__name__)

    # Basic configuration
    app.config['SECRET_KEY'] = config.SECRET_KEY
    app.config['TORRENT_FOLDER'] = config.TORRENT_FOLDER
    app.config['MAX_CONTENT_LENGTH'] = config.MAX_TORRENT_SIZE
    app.config['MAX_NESTING_DEPTH'] = config.MAX_NESTING_DEPTH
    app.config['SCAN_WORKERS'] = config.SCAN_WORKERS
    if overrides:
        app.config.update(overrides)

    CORS(app, resources={
        r"/*": {
            "origins": "*",
            "methods": ["GET", "POST", "OPTIONS"],
            "allow_headers": ["Content-Type", "Authorization"],
        }
    })

    socketio = SocketIO(
        app,
        async_mode='threading',
        cors_allowed_origins="*",
        ping_timeout=30,
        ping_interval=10,
    )

    # Ensure torrent folder exists
    os.makedirs(app.config['TORRENT_FOLDER'], exist_ok=True)

    def list_torrents() -> Dict[str, Any]:
        """Parse every torrent in the torrent folder."""
        folder = app.config['TORRENT_FOLDER']
        results = scan(
            find_torrent_files(folder),
            app.config['SCAN_WORKERS'],
            app.config['MAX_CONTENT_LENGTH'],
            app.config['MAX_NESTING_DEPTH'],
        )
        torrents = []
        for result in results:
            entry = {'filename': os.path.relpath(result.path, folder), 'success': result.ok}
            if result.ok:
                entry['torrent'] = torrent_to_dict(result.torrent)
            else:
                entry['error'] = error_payload(result.error)
            torrents.append(entry)
        return {'success': True, 'torrents': torrents, 'count': len(torrents)}

    # Configuration endpoint
    @app.route('/api/config')
    def get_config():
        return jsonify({
            'torrentFolder': app.config['TORRENT_FOLDER'],
            'maxTorrentSize': app.config['MAX_CONTENT_LENGTH'],
            'maxNestingDepth': app.config['MAX_NESTING_DEPTH'],
            'scanWorkers': app.config['SCAN_WORKERS'],
        })

    @app.route('/test')
    def test():
        return jsonify({
            'status': 'ok',
            'message': 'Server is running',
            'endpoints': [
                {'method': 'GET', 'path': '/test', 'description': 'Test endpoint'},
                {'method': 'GET', 'path': '/api/config', 'description': 'Effective configuration'},
                {'method': 'GET', 'path': '/api/torrents', 'description': 'List stored torrents'},
                {'method': 'POST', 'path': '/api/torrents', 'description': 'Upload torrent file'},
                {'method': 'GET', 'path': '/api/torrents/<filename>', 'description': 'Inspect stored torrent'},
            ]
        })

    @socketio.on('connect')
    def handle_connect():
        logger.info(f"Client connected: {request.sid}")
        emit('server_message', {'type': 'info', 'message': 'Connected to torrentinfo'})

    @socketio.on('get_torrents')
    def handle_get_torrents(data=None):
        """Handle request for list of available torrents"""
        return list_torrents()

    @app.route('/api/torrents', methods=['GET'])
    def get_torrents():
        return jsonify(list_torrents())

    @app.route('/api/torrents/<path:filename>', methods=['GET'])
    def get_torrent(filename):
        """Inspect one stored torrent; ?raw=1 returns the undecoded tree."""
        filepath = safe_join(app.config['TORRENT_FOLDER'], filename)
        if filepath is None or not os.path.isfile(filepath) or not is_torrent_file(filepath):
            return jsonify({'success': False, 'error': 'Not found',
                            'message': f"No torrent named {filename}"}), 404

        try:
            data = read_torrent_file(filepath, app.config['MAX_CONTENT_LENGTH'])
            if request.args.get('raw', '').lower() in ('1', 'true'):
                raw = raw_to_jsonable(decode(data, app.config['MAX_NESTING_DEPTH']))
                return jsonify({'success': True, 'filename': filename, 'raw': raw})
            torrent = parse(data, app.config['MAX_NESTING_DEPTH'])
        except TorrentInfoError as e:
            logger.warning(f"Invalid torrent {filepath}: {e}")
            return jsonify({'success': False, 'error': e.to_dict()}), 400

        return jsonify({'success': True, 'filename': filename, 'torrent': torrent_to_dict(torrent)})

    @app.route('/upload-torrent', methods=['POST', 'OPTIONS'])
    @app.route('/api/torrents', methods=['POST'])
    def handle_upload():
        """Handle torrent file upload."""
        if request.method == 'OPTIONS':
            return jsonify({'status': 'ok'})

        # Check for both 'file' and 'torrent' field names for compatibility
        if 'file' in request.files:
            file = request.files['file']
        elif 'torrent' in request.files:
            file = request.files['torrent']
        else:
            return jsonify({
                "success": False,
                "error": "No file part",
                "message": "No file part in the request. Expected 'file' or 'torrent' field."
            }), 400

        if file.filename == '':
            return jsonify({
                "success": False,
                "error": "No selected file",
                "message": "No file was selected"
            }), 400

        if not is_torrent_file(file.filename):
            return jsonify({
                "success": False,
                "error": "Invalid file type",
                "message": "File must be a .torrent file"
            }), 400

        file_data = file.read()
        if not file_data:
            return jsonify({
                "success": False,
                "error": "Empty file",
                "message": "File is empty"
            }), 400

        try:
            torrent = parse(file_data, app.config['MAX_NESTING_DEPTH'])
        except TorrentInfoError as e:
            logger.warning(f"Rejected upload {file.filename}: {e}")
            return jsonify({
                "success": False,
                "error": e.kind,
                "message": str(e),
                "details": e.to_dict()
            }), 400

        # Generate a safe filename and avoid overwriting
        upload_dir = app.config['TORRENT_FOLDER']
        filename = secure_filename(file.filename)
        if not is_torrent_file(filename):
            filename = f"{filename or 'upload'}{config.TORRENT_EXTENSION}"
        filename = store_upload(upload_dir, filename, file_data)
        logger.info(f"Stored {filename} ({torrent.info_hash_hex}, {len(file_data)} bytes)")

        socketio.emit('torrent_added', {
            'filename': filename,
            'name': torrent.name,
            'info_hash': torrent.info_hash_hex,
            'size': torrent.total_size,
            'uploaded_at': datetime.datetime.now(datetime.timezone.utc).isoformat()
        })

        return jsonify({
            "success": True,
            "message": "Torrent uploaded successfully",
            "filename": filename,
            "torrent": torrent_to_dict(torrent)
        })

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({"error": "Endpoint not found"}), 404

    @app.errorhandler(413)
    def too_large_error(error):
        return jsonify({
            "success": False,
            "error": "File too large",
            "message": f"Torrent files are limited to {app.config['MAX_CONTENT_LENGTH']} bytes"
        }), 413

    @app.errorhandler(500)
    def internal_error(error):
        return jsonify({"error": "Internal server error"}), 500

    return app, socketio


if __name__ == '__main__':
    logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)
    app, socketio = create_app()

    print("\n" + "=" * 70)
    print("Available HTTP Endpoints:")
    print("  - GET  /test                      # Test endpoint")
    print("  - GET  /api/config                # Effective configuration")
    print("  - GET  /api/torrents              # List stored torrents")
    print("  - POST /api/torrents              # Upload torrent file")
    print("  - GET  /api/torrents/<filename>   # Inspect stored torrent")
    print("  - WS   /socket.io/                # WebSocket endpoint")
    print("=" * 70 + "\n")

    socketio.run(app,
                 host=config.HOST,
                 port=config.PORT,
                 debug=config.DEBUG,
                 use_reloader=False,
                 allow_unsafe_werkzeug=True)
