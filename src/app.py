"""
Flask web application for the tournament bracket engine.

JSON API around the bracket engine: tournaments are generated, stored and
updated through ``brackets.storage.BracketStore``. Every write takes the
version the client last saw (JSON ``version`` or an ``If-Match`` header) and
answers 409 when somebody else changed the tournament in between.
"""
import os
import random
import logging
from flask import Flask, request, jsonify
from brackets.errors import BracketError, GenerationError, StorageError
from brackets.formats import (
    FORMAT_DESCRIPTIONS,
    FORMAT_NAMES,
    calculate_match_count,
    generate,
    get_format_name,
)
from brackets.advancement import force_advance_round
from brackets.models import Bracket
from brackets.progression import apply_result, revert_result
from brackets.standings import find_champion, rank_standings
from brackets.storage import BracketStore
from brackets.swiss import pair_swiss_round

app = Flask(__name__)


BASE_DIR = os.path.dirname(os.path.dirname(__file__))
DATA_DIR = os.environ.get('BRACKET_DATA_DIR', os.path.join(BASE_DIR, 'data'))
LOCK_TIMEOUT = float(os.environ.get('BRACKET_LOCK_TIMEOUT', '10'))
LOG_LEVEL = os.environ.get('BRACKET_LOG_LEVEL', 'INFO').upper()

app.logger.setLevel(LOG_LEVEL)
logging.getLogger('brackets').setLevel(LOG_LEVEL)


def get_store() -> BracketStore:
    """Store for the configured data directory."""
    return BracketStore(DATA_DIR, lock_timeout=LOCK_TIMEOUT)


def _expected_version(data: dict):
    """Version the client based its change on, from the body or If-Match."""
    version = data.get('version')
    if version is None:
        header = request.headers.get('If-Match', '')
        version = header.replace('W/', '').strip().strip('"') or None
    if version is None:
        return None
    try:
        return int(version)
    except (TypeError, ValueError):
        raise BracketError(f"Invalid version '{version}'", version=version)


def _tournament_response(record: dict, status: int = 200):
    """Serialize a stored tournament record with its ETag."""
    bracket = Bracket.from_dict(record['bracket'])
    payload = {
        'id': record['id'],
        'name': record['name'],
        'format': record['format'],
        'format_name': get_format_name(record['format']),
        'status': record['status'],
        'version': record['version'],
        'created': record.get('created'),
        'updated': record.get('updated'),
        'champion': find_champion(bracket),
        'bracket': record['bracket'],
    }
    response = jsonify(payload)
    response.status_code = status
    response.headers['ETag'] = f'"{record["version"]}"'
    return response


def _update(tournament_id: str, operation):
    """Load, transform and save a tournament with the client's version."""
    data = request.get_json(silent=True) or {}
    expected = _expected_version(data)
    if expected is None:
        return jsonify({
            'error': 'A version is required (JSON "version" or If-Match header)',
            'code': 'version_required',
            'retryable': False,
        }), 428
    store = get_store()
    bracket, _ = store.load(tournament_id)
    updated = operation(bracket, data)
    record = store.save(tournament_id, updated, expected)
    return _tournament_response(record)


@app.errorhandler(BracketError)
def handle_bracket_error(e):
    if isinstance(e, StorageError) and e.status >= 500:
        app.logger.error(f'{e.code}: {e.message}')
    else:
        app.logger.warning(f'{e.code}: {e.message}')
    return jsonify(e.to_dict()), e.status


@app.route('/api/formats', methods=['GET'])
def api_formats():
    """List supported formats with their labels."""
    num_players = request.args.get('players', type=int)
    formats = []
    for key, name in FORMAT_NAMES.items():
        entry = {'format': key, 'name': name, 'description': FORMAT_DESCRIPTIONS[key]}
        if num_players:
            entry['match_count'] = calculate_match_count(key, num_players)
        formats.append(entry)
    return jsonify({'formats': formats})


@app.route('/api/tournaments', methods=['GET'])
def api_list_tournaments():
    return jsonify({'tournaments': get_store().list()})


@app.route('/api/tournaments', methods=['POST'])
def api_create_tournament():
    """Generate a bracket and store it as a new tournament."""
    data = request.get_json(silent=True) or {}
    name = str(data.get('name', '')).strip()
    players = data.get('players')
    if not name:
        raise GenerationError('Tournament name is required')
    if not isinstance(players, list):
        raise GenerationError('Players must be a list of names')
    seed = data.get('seed')
    rng = random.Random(seed) if seed is not None else None

    bracket = generate(data.get('format', ''), players, rounds=data.get('rounds'), rng=rng)
    record = get_store().create(name, bracket)
    app.logger.info(f'Tournament {record["id"]} created with {len(players)} players')
    return _tournament_response(record, 201)


@app.route('/api/tournaments/<tournament_id>', methods=['GET'])
def api_get_tournament(tournament_id):
    _, record = get_store().load(tournament_id)
    return _tournament_response(record)


@app.route('/api/tournaments/<tournament_id>', methods=['DELETE'])
def api_delete_tournament(tournament_id):
    get_store().delete(tournament_id)
    return jsonify({'success': True})


@app.route('/api/tournaments/<tournament_id>/results', methods=['POST'])
def api_record_result(tournament_id):
    """Record a match winner: {match_id, winner, score?, version}."""
    return _update(tournament_id, lambda bracket, data: apply_result(bracket, {
        'match_id': data.get('match_id'),
        'winner': data.get('winner'),
        'score': data.get('score'),
    }))


@app.route('/api/tournaments/<tournament_id>/undo', methods=['POST'])
def api_undo_result(tournament_id):
    """Undo the last result, or the result of ``match_id``."""
    def undo(bracket, data):
        match_id = data.get('match_id')
        if match_id:
            return revert_result(bracket, {'match_id': match_id})
        return revert_result(bracket)
    return _update(tournament_id, undo)


@app.route('/api/tournaments/<tournament_id>/advance', methods=['POST'])
def api_advance_round(tournament_id):
    """Pair the next Swiss round by hand."""
    return _update(tournament_id, lambda bracket, data: force_advance_round(bracket, data.get('round')))


@app.route('/api/tournaments/<tournament_id>/standings', methods=['GET'])
def api_standings(tournament_id):
    bracket, record = get_store().load(tournament_id)
    return jsonify({
        'format': bracket.format,
        'standings': rank_standings(bracket.standings or {}),
        'champion': find_champion(bracket),
        'version': record['version'],
    })


@app.route('/api/pairings', methods=['POST'])
def api_pairings():
    """Pair a Swiss round from posted standings without storing anything."""
    data = request.get_json(silent=True) or {}
    standings = data.get('standings')
    round_number = data.get('round', 1)
    if not isinstance(standings, (list, dict)) or not standings:
        raise GenerationError('Standings must be a non-empty list or mapping')
    if isinstance(standings, list) and not all(isinstance(s, dict) and 'player' in s for s in standings):
        raise GenerationError('Every standing needs a player')
    if isinstance(standings, dict):
        standings = [dict(value or {}, player=player) for player, value in standings.items()]
    matches = pair_swiss_round(standings, round_number)
    return jsonify({
        'round': round_number,
        'matches': [{
            'match_id': m.match_id,
            'match_number': m.match_number,
            'player1': m.player1,
            'player2': m.player2,
            'winner': m.winner,
        } for m in matches],
    })


if __name__ == '__main__':
    logging.basicConfig(level=LOG_LEVEL)
    app.run(debug=True, port=5000)
